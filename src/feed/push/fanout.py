"""Feed push fanout: notify the community when a feed item is posted.

Reacts to FeedItemPosted. The event may be delivered more than once, so
the fanout is built around a single terminal write to the feed item:

    1. push_sent_at already set      → nothing to do (redelivery)
    2. no author and no tokens       → Skipped "missing userId and tokens"
    3. resolve audience, empty       → Skipped "no audience tokens"
    4. compose, dispatch in batches, prune invalid tokens, flag refresh
    5. record Sent/Failed with counts and failure reasons

Any unexpected error ends in a best-effort Failed write; the handler never
raises, so a broken feed item cannot cause a redelivery storm.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from feed.channel import get_push_gateway, multicast_limit
from feed.channel.push_port import MulticastPushPort
from feed.domain import feed
from feed.item.events import FeedItemPosted
from feed.item.feed_item import FeedItem
from feed.push.audience import MemberDirectory, resolve_audience
from feed.push.composer import compose_push_message
from feed.push.dispatcher import ChunkedDispatcher
from feed.push.pruner import prune_invalid_tokens, request_token_refresh
from feed.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)

MISSING_IDENTITY = "missing userId and tokens"
EMPTY_AUDIENCE = "no audience tokens"


class FeedPushFanout:
    """Runs the push fanout for one feed item posting."""

    def __init__(
        self,
        gateway: MulticastPushPort,
        directory: MemberDirectory | None = None,
        batch_size: int | None = None,
    ):
        self.directory = directory or MemberDirectory()
        self.dispatcher = ChunkedDispatcher(gateway, batch_size=batch_size)

    def run(self, feed_item_id: str, event_id: str) -> None:
        repo = current_domain.repository_for(FeedItem)

        try:
            item = repo.get(feed_item_id)
        except ObjectNotFoundError:
            logger.error("Feed item not found for push fanout", feed_item_id=feed_item_id, event_id=event_id)
            return
        except Exception as exc:
            logger.error(
                "Failed to load feed item for push fanout",
                feed_item_id=feed_item_id,
                event_id=event_id,
                error=str(exc),
                exc_info=True,
            )
            return

        if item.push_already_sent:
            logger.info("Feed push already marked sent, skipping", feed_item_id=feed_item_id, event_id=event_id)
            return

        author_id = str(item.author_id) if item.author_id else None
        context = {"feed_item_id": feed_item_id, "event_id": event_id, "author_id": author_id}

        try:
            explicit_tokens = item.explicit_tokens

            if not author_id and not explicit_tokens:
                logger.warning("Feed item has no author and no tokens, skipping push", **context)
                item.record_push_skipped(MISSING_IDENTITY, event_id)
                repo.add(item)
                return

            audience = resolve_audience(self.directory, author_id, explicit_tokens)
            if not audience.tokens:
                logger.info("No push tokens for audience, skipping push", **context)
                item.record_push_skipped(EMPTY_AUDIENCE, event_id)
                repo.add(item)
                return

            message = compose_push_message(item, event_id)
            outcome = self.dispatcher.dispatch(audience.tokens, message, audience.registry, **context)

            if outcome.invalid_tokens:
                prune_invalid_tokens(self.directory, outcome.invalid_tokens, audience.registry, **context)
            if outcome.refresh_owners:
                request_token_refresh(self.directory, outcome.refresh_owners, **context)

            item.record_push_outcome(
                event_id=event_id,
                audience_tokens=len(audience.tokens),
                success_count=outcome.success_count,
                failure_count=outcome.failure_count,
                failure_reasons=outcome.failure_reasons,
            )
            repo.add(item)

            logger.info(
                "Feed push processed",
                audience_tokens=len(audience.tokens),
                success_count=outcome.success_count,
                failure_count=outcome.failure_count,
                invalid_tokens=len(outcome.invalid_tokens),
                refresh_members=len(outcome.refresh_owners),
                **context,
            )
        except Exception as exc:
            logger.error("Feed push failed", error=str(exc), exc_info=True, **context)
            record_fanout_error(feed_item_id, event_id, exc)


def record_fanout_error(feed_item_id: str, event_id: str, exc: Exception) -> None:
    """Best-effort Failed write for a fanout that could not finish.

    Items that already carry a terminal outcome are left alone. A failing
    write is logged and swallowed.
    """
    try:
        repo = current_domain.repository_for(FeedItem)
        item = repo.get(feed_item_id)
        if not item.push_already_sent:
            item.record_push_error(str(exc) or None, event_id)
            repo.add(item)
    except Exception as write_exc:
        logger.warning(
            "Failed to record feed push error",
            feed_item_id=feed_item_id,
            event_id=event_id,
            error=str(write_exc),
        )


@feed.event_handler(part_of=FeedItem)
class FeedPushHandler:
    """Fans a push notification out for every posted feed item."""

    @handle(FeedItemPosted)
    def on_feed_item_posted(self, event: FeedItemPosted) -> None:
        feed_item_id, event_id = str(event.feed_item_id), str(event.posting_id)
        add_context(feed_item_id=feed_item_id, event_id=event_id)
        try:
            fanout = FeedPushFanout(gateway=get_push_gateway(), batch_size=multicast_limit())
            fanout.run(feed_item_id, event_id)
        except Exception as exc:
            # A fanout failure must not fail the posting
            logger.error("Feed push fanout could not run", error=str(exc), exc_info=True)
            record_fanout_error(feed_item_id, event_id, exc)
        finally:
            clear_context()
