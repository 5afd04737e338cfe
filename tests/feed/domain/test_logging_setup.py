"""Tests for logging helpers."""

import structlog
from feed.utils.logging import add_context, clear_context, get_log_level


class TestLogLevel:
    def test_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        assert get_log_level() == "INFO"

        monkeypatch.setenv("PROTEAN_ENV", "test")
        assert get_log_level() == "WARNING"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert get_log_level() == "DEBUG"


class TestLogContext:
    def test_context_is_bound_until_cleared(self):
        add_context(feed_item_id="feed-1", event_id="evt-1")
        assert structlog.contextvars.get_contextvars() == {"feed_item_id": "feed-1", "event_id": "evt-1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
