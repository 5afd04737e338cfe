"""Multicast push port: abstract interface for push delivery providers."""

from abc import ABC, abstractmethod

# Hard limit of the provider's multicast endpoint
MULTICAST_LIMIT = 500


class PushTransportError(Exception):
    """A whole multicast request failed before any per-token result was produced."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class MulticastPushPort(ABC):
    """Abstract interface for multicast push adapters."""

    max_batch_size = MULTICAST_LIMIT

    @abstractmethod
    def send_multicast(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, str] | None = None,
        image: str | None = None,
    ) -> dict:
        """Send one notification to up to `max_batch_size` device tokens.

        Returns:
            dict with keys: success_count, failure_count, responses. `responses`
            holds one dict per token, in input order, with keys: success,
            message_id (optional), error_code (optional).

        Raises:
            PushTransportError: the request as a whole was rejected.
        """
        ...
