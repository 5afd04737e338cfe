"""Best-effort cleanup of member tokens after a fanout.

Two independent groups of member updates: removing tokens the provider
declared invalid, and flagging members whose identity link is broken.
Each update is attempted on its own; a failing update is logged and the
rest still run. Nothing here raises.
"""

from datetime import UTC, datetime

import structlog

from feed.push.audience import MemberDirectory, TokenRegistry

logger = structlog.get_logger(__name__)


def prune_invalid_tokens(directory: MemberDirectory, invalid_tokens, registry: TokenRegistry, **log_context) -> int:
    """Remove invalid tokens from their owners. Returns the number of members updated."""
    updated = 0
    for member_id, tokens in registry.group_by_owner(sorted(invalid_tokens)).items():
        try:
            if directory.prune_tokens(member_id, tokens):
                updated += 1
        except Exception as exc:
            logger.warning(
                "Failed to prune invalid tokens",
                member_id=member_id,
                tokens=len(tokens),
                error=str(exc),
                **log_context,
            )
    return updated


def request_token_refresh(directory: MemberDirectory, member_ids, **log_context) -> int:
    """Flag members for token refresh. Returns the number of members flagged."""
    requested_at = datetime.now(UTC)
    flagged = 0
    for member_id in sorted(member_ids):
        try:
            directory.request_token_refresh(member_id, requested_at)
            flagged += 1
        except Exception as exc:
            logger.warning(
                "Failed to mark member for token refresh",
                member_id=member_id,
                error=str(exc),
                **log_context,
            )
    return flagged
