"""Domain events for the FeedItem aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from feed.domain import feed


@feed.event(part_of="FeedItem")
class FeedItemPosted:
    """A feed item was created and is waiting for its push fanout.

    `posting_id` identifies this posting occurrence. A redelivered event
    carries the same value, which is what the outcome write records.
    """

    __version__ = 1

    feed_item_id: Identifier(required=True)
    posting_id: Identifier(required=True)
    author_id: Identifier()
    feed_type: String()
    is_personal: Boolean(default=False)
    posted_at: DateTime(required=True)


@feed.event(part_of="FeedItem")
class FeedPushSkipped:
    """The fanout ended without a delivery attempt."""

    __version__ = 1

    feed_item_id: Identifier(required=True)
    push_event_id: String(required=True)
    reason: String(required=True)
    skipped_at: DateTime(required=True)


@feed.event(part_of="FeedItem")
class FeedPushCompleted:
    """Every batch of the fanout was attempted and the outcome recorded."""

    __version__ = 1

    feed_item_id: Identifier(required=True)
    push_event_id: String(required=True)
    status: String(required=True)
    audience_tokens: Integer(required=True)
    success_count: Integer(required=True)
    failure_count: Integer(required=True)
    failure_reasons: Text()  # JSON object: code -> count
    error: String()
    sent_at: DateTime(required=True)


@feed.event(part_of="FeedItem")
class FeedPushErrored:
    """The fanout stopped on an unexpected error."""

    __version__ = 1

    feed_item_id: Identifier(required=True)
    push_event_id: String(required=True)
    error: String(required=True)
    errored_at: DateTime(required=True)
