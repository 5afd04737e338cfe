"""Protean Engine runner for the feed domain.

Starts Engine workers that process events asynchronously:
- OutboxProcessor: polls outbox table, publishes events to the broker
- StreamSubscriptions: reads the event streams, invokes the push fanout
  handler and the delivery log projector

The event store delivers FeedItemPosted at least once. The fanout handler
checks push_sent_at before doing anything, so redelivery is harmless.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    from feed.channel import get_push_gateway, multicast_limit
    from feed.domain import feed

    feed.init()

    # Refuse to start without a usable push adapter
    get_push_gateway()
    multicast_limit()
    return feed


async def run(test_mode=False):
    engine = Engine(_get_domain(), test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Feed Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending events once and exit",
    )
    args = parser.parse_args()

    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
