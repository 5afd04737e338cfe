"""Tests for chunked dispatch and failure classification."""

import pytest
from feed.channel.fake_push import FakeMulticastPushAdapter
from feed.channel.push_port import PushTransportError
from feed.push.audience import TokenRegistry
from feed.push.classifier import FailureKind, classify_failure
from feed.push.composer import PushMessage
from feed.push.dispatcher import ChunkedDispatcher, DispatchOutcome, chunked

MESSAGE = PushMessage(title="Ana completó una actividad", body="Ana completó 5.2 km (run)", data={"feedId": "f1"})


def _tokens(count, prefix="tok"):
    return [f"{prefix}-{i}" for i in range(count)]


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "code",
        [
            "messaging/registration-token-not-registered",
            "registration-token-not-registered",
            "messaging/invalid-registration-token",
        ],
    )
    def test_invalid_token_codes(self, code):
        assert classify_failure(code) == FailureKind.INVALID_TOKEN

    @pytest.mark.parametrize("code", ["messaging/third-party-auth-error", "third-party-auth-error"])
    def test_identity_broken_codes(self, code):
        assert classify_failure(code) == FailureKind.IDENTITY_BROKEN

    @pytest.mark.parametrize("code", ["messaging/internal-error", "messaging/quota-exceeded", "", None])
    def test_everything_else_is_ignorable(self, code):
        assert classify_failure(code) == FailureKind.IGNORABLE


class TestChunked:
    def test_exact_multiple(self):
        assert [len(b) for b in chunked(_tokens(1000), 500)] == [500, 500]

    def test_keeps_order(self):
        tokens = _tokens(7)
        assert [t for batch in chunked(tokens, 3) for t in batch] == tokens

    def test_empty(self):
        assert list(chunked([], 500)) == []

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            list(chunked(_tokens(3), 0))


class TestDispatchOutcome:
    def test_not_registered_token_is_invalid_without_owner_refresh(self):
        registry = TokenRegistry()
        registry.register("tok-1", "member-1")
        outcome = DispatchOutcome()

        outcome.record_token_failure("tok-1", "registration-token-not-registered", registry)

        assert outcome.invalid_tokens == {"tok-1"}
        assert outcome.refresh_owners == set()
        assert outcome.failure_reasons == {"registration-token-not-registered": 1}

    def test_third_party_auth_error_flags_owners(self):
        registry = TokenRegistry()
        registry.register("tok-1", "member-1")
        registry.register("tok-1", "member-2")
        outcome = DispatchOutcome()

        outcome.record_token_failure("tok-1", "third-party-auth-error", registry)

        assert outcome.invalid_tokens == {"tok-1"}
        assert outcome.refresh_owners == {"member-1", "member-2"}

    def test_ownerless_token_can_still_be_invalid(self):
        outcome = DispatchOutcome()
        outcome.record_token_failure("explicit", "messaging/third-party-auth-error", TokenRegistry())

        assert outcome.invalid_tokens == {"explicit"}
        assert outcome.refresh_owners == set()

    def test_other_codes_are_only_tallied(self):
        outcome = DispatchOutcome()
        outcome.record_token_failure("tok-1", "messaging/internal-error", TokenRegistry())
        outcome.record_token_failure("tok-2", "messaging/internal-error", TokenRegistry())

        assert outcome.failure_reasons == {"messaging/internal-error": 2}
        assert outcome.invalid_tokens == set()

    def test_missing_code_tallied_as_unknown(self):
        outcome = DispatchOutcome()
        outcome.record_token_failure("tok-1", None, TokenRegistry())
        assert outcome.failure_reasons == {"unknown": 1}

    def test_batch_failure_counts_tokens_and_tallies_once(self):
        outcome = DispatchOutcome()
        code = outcome.record_batch_failure(_tokens(3), PushTransportError("timeout", code="messaging/unavailable"))

        assert code == "messaging/unavailable"
        assert outcome.failure_count == 3
        assert outcome.failure_reasons == {"messaging/unavailable": 1}

    def test_batch_failure_without_code_uses_message(self):
        outcome = DispatchOutcome()
        assert outcome.record_batch_failure(["t"], RuntimeError("socket closed")) == "socket closed"

    def test_batch_failure_without_code_or_message(self):
        outcome = DispatchOutcome()
        assert outcome.record_batch_failure(["t"], RuntimeError()) == "chunk_error"


class TestChunkedDispatcher:
    def setup_method(self):
        self.gateway = FakeMulticastPushAdapter()
        self.dispatcher = ChunkedDispatcher(self.gateway)

    def test_1001_tokens_make_three_calls(self):
        outcome = self.dispatcher.dispatch(_tokens(1001), MESSAGE)

        assert [len(b["tokens"]) for b in self.gateway.sent_batches] == [500, 500, 1]
        assert self.gateway.calls == 3
        assert outcome.success_count == 1001
        assert outcome.failure_count == 0

    def test_batches_follow_input_order(self):
        tokens = _tokens(1001)
        self.dispatcher.dispatch(tokens, MESSAGE)
        assert self.gateway.delivered_tokens == tokens

    def test_message_is_passed_through(self):
        message = PushMessage(title="T", body="B", data={"eventId": "e"}, image="https://img")
        self.dispatcher.dispatch(["tok-1"], message)

        batch = self.gateway.sent_batches[0]
        assert batch["title"] == "T"
        assert batch["body"] == "B"
        assert batch["data"] == {"eventId": "e"}
        assert batch["image"] == "https://img"

    def test_per_token_failures_are_classified(self):
        registry = TokenRegistry()
        registry.register("tok-1", "member-1")
        registry.register("tok-2", "member-2")
        self.gateway.configure(
            token_errors={
                "tok-1": "messaging/registration-token-not-registered",
                "tok-2": "messaging/third-party-auth-error",
                "tok-3": "messaging/internal-error",
            }
        )

        outcome = self.dispatcher.dispatch(["tok-0", "tok-1", "tok-2", "tok-3"], MESSAGE, registry)

        assert outcome.success_count == 1
        assert outcome.failure_count == 3
        assert outcome.invalid_tokens == {"tok-1", "tok-2"}
        assert outcome.refresh_owners == {"member-2"}
        assert outcome.failure_reasons == {
            "messaging/registration-token-not-registered": 1,
            "messaging/third-party-auth-error": 1,
            "messaging/internal-error": 1,
        }

    def test_failed_batch_does_not_stop_later_batches(self):
        self.gateway.configure(
            transport_error=PushTransportError("backend unavailable", code="messaging/unavailable"),
            failing_batches={0},
        )

        outcome = self.dispatcher.dispatch(_tokens(600), MESSAGE)

        assert self.gateway.calls == 2
        assert len(self.gateway.sent_batches) == 1
        assert outcome.success_count == 100
        assert outcome.failure_count == 500
        assert outcome.failure_reasons == {"messaging/unavailable": 1}
        assert outcome.attempted == 600

    def test_every_batch_failing(self):
        self.gateway.configure(transport_error=PushTransportError("down", code="messaging/unavailable"))

        outcome = self.dispatcher.dispatch(_tokens(1200), MESSAGE)

        assert outcome.success_count == 0
        assert outcome.failure_count == 1200
        assert outcome.failure_reasons == {"messaging/unavailable": 3}

    def test_smaller_batch_size(self):
        dispatcher = ChunkedDispatcher(self.gateway, batch_size=2)
        dispatcher.dispatch(_tokens(5), MESSAGE)
        assert [len(b["tokens"]) for b in self.gateway.sent_batches] == [2, 2, 1]

    def test_batch_size_never_exceeds_provider_limit(self):
        dispatcher = ChunkedDispatcher(self.gateway, batch_size=2000)
        assert dispatcher.batch_size == 500

    def test_no_tokens_no_calls(self):
        outcome = self.dispatcher.dispatch([], MESSAGE)
        assert self.gateway.calls == 0
        assert outcome.attempted == 0
