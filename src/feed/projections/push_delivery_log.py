"""PushDeliveryLog: one row per feed item with its push fanout outcome."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from feed.domain import feed
from feed.item.events import FeedItemPosted, FeedPushCompleted, FeedPushErrored, FeedPushSkipped
from feed.item.feed_item import FeedItem


@feed.projection
class PushDeliveryLog:
    feed_item_id: Identifier(identifier=True, required=True)
    author_id: Identifier()
    feed_type: String(max_length=100)
    status: String(required=True)
    push_event_id: String(max_length=255)
    audience_tokens: Integer(default=0)
    success_count: Integer(default=0)
    failure_count: Integer(default=0)
    failure_reasons: Text()  # JSON object: code -> count
    error: String(max_length=500)
    posted_at: DateTime()
    updated_at: DateTime()


@feed.projector(projector_for=PushDeliveryLog, aggregates=[FeedItem])
class PushDeliveryLogProjector:
    def _upsert(self, feed_item_id, **fields):
        repo = current_domain.repository_for(PushDeliveryLog)
        try:
            log = repo.get(feed_item_id)
        except ObjectNotFoundError:
            log = PushDeliveryLog(feed_item_id=feed_item_id, status=fields.get("status", "pending"))
        for key, value in fields.items():
            setattr(log, key, value)
        repo.add(log)

    @on(FeedItemPosted)
    def on_feed_item_posted(self, event):
        repo = current_domain.repository_for(PushDeliveryLog)
        try:
            log = repo.get(event.feed_item_id)
        except ObjectNotFoundError:
            log = PushDeliveryLog(feed_item_id=event.feed_item_id, status="pending", updated_at=event.posted_at)

        # The fanout may already have recorded an outcome for this item
        log.author_id = event.author_id
        log.feed_type = event.feed_type
        log.posted_at = event.posted_at
        repo.add(log)

    @on(FeedPushSkipped)
    def on_push_skipped(self, event):
        self._upsert(
            event.feed_item_id,
            status="skipped",
            push_event_id=event.push_event_id,
            error=event.reason,
            updated_at=event.skipped_at,
        )

    @on(FeedPushCompleted)
    def on_push_completed(self, event):
        self._upsert(
            event.feed_item_id,
            status=event.status,
            push_event_id=event.push_event_id,
            audience_tokens=event.audience_tokens,
            success_count=event.success_count,
            failure_count=event.failure_count,
            failure_reasons=event.failure_reasons,
            error=event.error,
            updated_at=event.sent_at,
        )

    @on(FeedPushErrored)
    def on_push_errored(self, event):
        self._upsert(
            event.feed_item_id,
            status="failed",
            push_event_id=event.push_event_id,
            error=event.error,
            updated_at=event.errored_at,
        )
