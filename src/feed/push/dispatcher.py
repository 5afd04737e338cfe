"""Chunked multicast dispatch of one push message to a token list."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

import structlog

from feed.channel.push_port import MULTICAST_LIMIT, MulticastPushPort
from feed.push.audience import TokenRegistry
from feed.push.classifier import UNKNOWN_FAILURE, FailureKind, classify_failure
from feed.push.composer import PushMessage

logger = structlog.get_logger(__name__)


@dataclass
class DispatchOutcome:
    """Counts and cleanup work accumulated across all batches of one run."""

    success_count: int = 0
    failure_count: int = 0
    failure_reasons: dict[str, int] = field(default_factory=dict)
    invalid_tokens: set[str] = field(default_factory=set)
    refresh_owners: set[str] = field(default_factory=set)

    def tally(self, code: str) -> None:
        self.failure_reasons[code] = self.failure_reasons.get(code, 0) + 1

    def record_token_failure(self, token: str, code: str | None, registry: TokenRegistry) -> FailureKind:
        """Tally a failed token and schedule the cleanup its code calls for."""
        self.tally(code or UNKNOWN_FAILURE)

        kind = classify_failure(code)
        if kind in (FailureKind.INVALID_TOKEN, FailureKind.IDENTITY_BROKEN):
            self.invalid_tokens.add(token)
        if kind == FailureKind.IDENTITY_BROKEN:
            self.refresh_owners.update(registry.owners_of(token))
        return kind

    def record_batch_failure(self, batch: Sequence[str], error: Exception) -> str:
        """Count every token of a rejected batch as failed; tally the error once."""
        code = getattr(error, "code", None) or str(error) or "chunk_error"
        self.failure_count += len(batch)
        self.tally(code)
        return code

    @property
    def attempted(self) -> int:
        return self.success_count + self.failure_count


def chunked(tokens: Sequence[str], size: int) -> Iterator[list[str]]:
    """Split tokens into contiguous batches of at most `size`, keeping order."""
    if size < 1:
        raise ValueError("Batch size must be positive")
    for start in range(0, len(tokens), size):
        yield list(tokens[start : start + size])


class ChunkedDispatcher:
    """Sends a message to any number of tokens through a multicast port.

    One failing batch never stops the remaining batches.
    """

    def __init__(self, gateway: MulticastPushPort, batch_size: int | None = None):
        self.gateway = gateway
        self.batch_size = min(batch_size or MULTICAST_LIMIT, gateway.max_batch_size)

    def dispatch(
        self,
        tokens: Sequence[str],
        message: PushMessage,
        registry: TokenRegistry | None = None,
        **log_context,
    ) -> DispatchOutcome:
        registry = registry if registry is not None else TokenRegistry()
        outcome = DispatchOutcome()

        for index, batch in enumerate(chunked(tokens, self.batch_size)):
            try:
                response = self.gateway.send_multicast(
                    tokens=batch,
                    title=message.title,
                    body=message.body,
                    data=message.data,
                    image=message.image,
                )
            except Exception as exc:
                code = outcome.record_batch_failure(batch, exc)
                logger.error(
                    "Push batch failed",
                    batch=index,
                    batch_size=len(batch),
                    code=code,
                    error=str(exc),
                    **log_context,
                )
                continue

            outcome.success_count += response.get("success_count", 0)
            outcome.failure_count += response.get("failure_count", 0)

            for token, result in zip(batch, response.get("responses", [])):
                if not result.get("success"):
                    outcome.record_token_failure(token, result.get("error_code"), registry)

        return outcome
