"""Audience resolution: who receives the push for a feed item.

The audience is every member except the author, plus any tokens named on
the feed item itself. Tokens are deduplicated across the whole run, and a
TokenRegistry remembers which members listed each token so the fanout can
route cleanup back to them.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from feed.member.member import Member

logger = structlog.get_logger(__name__)


class TokenRegistry:
    """Token -> ids of the members that registered it, for one fanout run."""

    def __init__(self):
        self._owners: dict[str, set[str]] = {}

    def register(self, token: str, member_id: str) -> None:
        self._owners.setdefault(token, set()).add(str(member_id))

    def owners_of(self, token: str) -> set[str]:
        return set(self._owners.get(token, ()))

    def group_by_owner(self, tokens: Iterable[str]) -> dict[str, list[str]]:
        """Group tokens by owning member. Tokens without an owner are left out."""
        grouped: dict[str, list[str]] = {}
        for token in tokens:
            for member_id in sorted(self._owners.get(token, ())):
                grouped.setdefault(member_id, []).append(token)
        return grouped

    def __contains__(self, token) -> bool:
        return token in self._owners

    def __len__(self) -> int:
        return len(self._owners)


@dataclass
class Audience:
    tokens: list[str] = field(default_factory=list)
    registry: TokenRegistry = field(default_factory=TokenRegistry)

    def __len__(self) -> int:
        return len(self.tokens)


class MemberDirectory:
    """Read access to all members and per-member token updates.

    Updates are a per-member read-modify-save: load one member, change the
    token or refresh fields, and save the whole aggregate. Protean's
    aggregate versioning rejects the save if another writer got there first;
    the cleanup helpers log that as a failed update for the member.
    """

    def __init__(self, page_size: int = 500):
        self.page_size = page_size

    def scan(self) -> Iterator[Member]:
        """Yield every member, one page at a time."""
        repo = current_domain.repository_for(Member)
        offset = 0
        while True:
            page = repo._dao.query.order_by("id").offset(offset).limit(self.page_size).all().items
            yield from page
            if len(page) < self.page_size:
                return
            offset += self.page_size

    def prune_tokens(self, member_id: str, tokens: list[str]) -> list[str]:
        """Remove the given token values from one member."""
        repo = current_domain.repository_for(Member)
        member = repo.get(member_id)
        removed = member.remove_device_tokens(tokens)
        if removed:
            repo.add(member)
        return removed

    def request_token_refresh(self, member_id: str, requested_at: datetime | None = None) -> None:
        """Flag one member for token refresh."""
        repo = current_domain.repository_for(Member)
        member = repo.get(member_id)
        member.request_token_refresh(requested_at or datetime.now(UTC))
        repo.add(member)


def resolve_audience(directory: MemberDirectory, author_id: str | None, explicit_tokens: Iterable[str] = ()) -> Audience:
    """Build the deduplicated token list and its owner registry.

    Explicit tokens come first and have no owner. The directory is only
    scanned when the feed item has an author; the author's own member record
    is skipped.
    """
    audience = Audience()
    candidates = [t for t in explicit_tokens if t]

    if author_id:
        scanned = 0
        for member in directory.scan():
            scanned += 1
            if str(member.id) == str(author_id):
                continue
            for token in member.device_tokens:
                candidates.append(token)
                audience.registry.register(token, member.id)

        logger.debug(
            "Member directory scanned",
            author_id=str(author_id),
            members=scanned,
            owned_tokens=len(audience.registry),
        )

    audience.tokens = list(dict.fromkeys(candidates))
    return audience
