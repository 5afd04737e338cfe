"""Fake multicast push adapter: records batches in memory for testing."""

from uuid import uuid4

from feed.channel.push_port import MulticastPushPort, PushTransportError


class FakeMulticastPushAdapter(MulticastPushPort):
    """Push adapter that records multicast batches for test assertions.

    Individual tokens can be configured to fail with a provider error code,
    and whole batches can be configured to fail with a transport error.
    """

    def __init__(self):
        self.sent_batches: list[dict] = []
        self.token_errors: dict[str, str] = {}
        self.transport_error: PushTransportError | None = None
        self.failing_batches: set[int] = set()
        self.calls = 0

    def configure(self, token_errors=None, transport_error=None, failing_batches=None):
        """Configure the fake adapter behavior for testing.

        Args:
            token_errors: token -> provider error code for tokens that must fail
            transport_error: raised for every batch listed in `failing_batches`,
                or for every batch when `failing_batches` is empty
            failing_batches: zero-based indexes of the calls that raise
        """
        if token_errors is not None:
            self.token_errors = dict(token_errors)
        self.transport_error = transport_error
        self.failing_batches = set(failing_batches or ())

    def send_multicast(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, str] | None = None,
        image: str | None = None,
    ) -> dict:
        call_index = self.calls
        self.calls += 1

        if len(tokens) > self.max_batch_size:
            raise PushTransportError(
                f"Multicast accepts at most {self.max_batch_size} tokens, got {len(tokens)}",
                code="messaging/invalid-argument",
            )

        if self.transport_error is not None and (not self.failing_batches or call_index in self.failing_batches):
            raise self.transport_error

        self.sent_batches.append(
            {
                "tokens": list(tokens),
                "title": title,
                "body": body,
                "data": data,
                "image": image,
            }
        )

        responses = []
        for token in tokens:
            code = self.token_errors.get(token)
            if code is None:
                responses.append({"success": True, "message_id": f"push-{uuid4().hex[:12]}"})
            else:
                responses.append({"success": False, "error_code": code})

        success_count = sum(1 for r in responses if r["success"])
        return {
            "success_count": success_count,
            "failure_count": len(responses) - success_count,
            "responses": responses,
        }

    @property
    def delivered_tokens(self) -> list[str]:
        """Every token submitted in a recorded batch, in submission order."""
        return [token for batch in self.sent_batches for token in batch["tokens"]]

    def reset(self):
        """Clear recorded batches and configured failures (useful between tests)."""
        self.sent_batches.clear()
        self.token_errors = {}
        self.transport_error = None
        self.failing_batches = set()
        self.calls = 0
