"""Push gateway registry: process-wide access to the multicast push adapter.

The adapter is built on first use and reused for the lifetime of the
process. `PUSH_ADAPTER` selects the implementation; only the in-memory
fake adapter ships with the feed service. The fake adapter records every
batch as delivered, so it is refused when `PROTEAN_ENV=production`.
"""

import os

_gateway = None

_FAKE_ADAPTER = "fake"


def _is_production() -> bool:
    return os.getenv("PROTEAN_ENV", "").lower() == "production"


def get_push_gateway():
    """Return the configured multicast push adapter (singleton)."""
    global _gateway

    if _gateway is None:
        adapter = os.getenv("PUSH_ADAPTER", "" if _is_production() else _FAKE_ADAPTER).lower()
        if not adapter or (adapter == _FAKE_ADAPTER and _is_production()):
            raise ValueError("PUSH_ADAPTER must name a real push adapter in production")
        if adapter == _FAKE_ADAPTER:
            from feed.channel.fake_push import FakeMulticastPushAdapter

            _gateway = FakeMulticastPushAdapter()
        else:
            raise ValueError(f"Unknown push adapter: {adapter}")

    return _gateway


def set_push_gateway(gateway):
    """Install a specific adapter as the process-wide push gateway."""
    global _gateway
    _gateway = gateway


def reset_push_gateway():
    """Drop the push gateway singleton (useful for testing)."""
    global _gateway
    _gateway = None


def multicast_limit() -> int:
    """Batch size used for fanout: `PUSH_MULTICAST_LIMIT`, capped at the provider limit."""
    from feed.channel.push_port import MULTICAST_LIMIT

    configured = int(os.getenv("PUSH_MULTICAST_LIMIT", MULTICAST_LIMIT))
    return max(1, min(configured, MULTICAST_LIMIT))
