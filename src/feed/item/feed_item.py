"""FeedItem aggregate: an activity feed entry and its push delivery outcome.

Feed items are written once by the activity pipeline (or the API) and never
edited afterwards, except for the push outcome fields. Those are written by
the push fanout exactly once per posting:

    (no outcome) → Skipped            no author and no tokens, or empty audience
    (no outcome) → Sent | Failed      dispatch finished; push_sent_at is set
    (no outcome) → Failed             unexpected error; push_sent_at stays empty

`push_sent_at` is the idempotency guard: once it is set, a redelivered
FeedItemPosted event is ignored.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text, ValueObject

from feed.domain import feed
from feed.item.events import FeedItemPosted, FeedPushCompleted, FeedPushErrored, FeedPushSkipped

_MAX_ERROR_LENGTH = 500


class PushStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@feed.value_object(part_of="FeedItem")
class ActivityData:
    """Summary of the tracked activity behind a feed item."""

    activity_type: String(max_length=50)
    xp_earned: Integer()
    distance_meters: Float(min_value=0.0)


@feed.aggregate
class FeedItem:
    """An activity feed entry shown to the community.

    `tokens` / `token` are explicit delivery targets. When present they are
    pushed to in addition to the author's audience, and they are the only
    targets when the item has no author.
    """

    # Author
    author_id: Identifier()
    related_user_name: String(max_length=200)
    user_avatar_url: String(max_length=2048)

    # Content
    feed_type: String(max_length=100)
    activity_id: String(max_length=255)
    date: String(max_length=64)
    title: String(max_length=500)
    subtitle: Text()
    body: Text()
    message: Text()
    is_personal: Boolean(default=False)
    activity_data: ValueObject(ActivityData)
    xp_earned: Integer()  # Legacy: newer items carry activity_data.xp_earned

    # Explicit delivery targets
    tokens: Text()  # JSON list of device tokens
    token: String(max_length=4096)

    # Push outcome
    push_status: String(choices=PushStatus)
    push_sent_at: DateTime()
    push_event_id: String(max_length=255)
    push_success_count: Integer()
    push_failure_count: Integer()
    push_audience_tokens: Integer()
    push_failure_reasons: Text()  # JSON object: failure code -> count
    push_error: String(max_length=_MAX_ERROR_LENGTH)

    created_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def post(
        cls,
        author_id=None,
        title=None,
        subtitle=None,
        body=None,
        message=None,
        is_personal=False,
        feed_type=None,
        activity_id=None,
        date=None,
        related_user_name=None,
        user_avatar_url=None,
        activity_data=None,
        xp_earned=None,
        tokens=None,
        token=None,
        feed_item_id=None,
        posting_id=None,
    ):
        """Create a feed item and announce it for push fanout."""
        now = datetime.now(UTC)

        attributes = dict(
            author_id=author_id,
            title=title,
            subtitle=subtitle,
            body=body,
            message=message,
            is_personal=bool(is_personal),
            feed_type=feed_type,
            activity_id=activity_id,
            date=date,
            related_user_name=related_user_name,
            user_avatar_url=user_avatar_url,
            activity_data=activity_data,
            xp_earned=xp_earned,
            tokens=json.dumps(list(tokens)) if tokens is not None else None,
            token=token,
            created_at=now,
        )
        if feed_item_id:
            attributes["id"] = feed_item_id

        item = cls(**attributes)

        item.raise_(
            FeedItemPosted(
                feed_item_id=str(item.id),
                posting_id=posting_id or uuid4().hex,
                author_id=str(author_id) if author_id else None,
                feed_type=feed_type,
                is_personal=bool(is_personal),
                posted_at=now,
            )
        )

        return item

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def explicit_tokens(self) -> list[str]:
        """Delivery targets named on the item itself.

        The `tokens` list wins over the single `token` value. Empty entries
        are dropped.
        """
        if self.tokens:
            listed = json.loads(self.tokens)
            if isinstance(listed, list):
                return [t for t in listed if t]
        if self.token:
            return [self.token]
        return []

    @property
    def push_already_sent(self) -> bool:
        return self.push_sent_at is not None

    @property
    def failure_reasons(self) -> dict[str, int]:
        return json.loads(self.push_failure_reasons) if self.push_failure_reasons else {}

    # -------------------------------------------------------------------
    # Push outcome
    # -------------------------------------------------------------------
    def _assert_not_sent(self):
        if self.push_already_sent:
            raise ValidationError({"push_sent_at": ["Push outcome already recorded for this feed item"]})

    def record_push_skipped(self, reason, event_id):
        """Record that the fanout ended without attempting delivery."""
        self._assert_not_sent()

        now = datetime.now(UTC)
        self.push_status = PushStatus.SKIPPED.value
        self.push_error = reason
        self.push_event_id = event_id

        self.raise_(
            FeedPushSkipped(
                feed_item_id=str(self.id),
                push_event_id=event_id,
                reason=reason,
                skipped_at=now,
            )
        )

    def record_push_outcome(self, event_id, audience_tokens, success_count, failure_count, failure_reasons, sent_at=None):
        """Record the terminal outcome of a completed dispatch.

        The status is `sent` as soon as one token succeeded. Previous reason
        and error values are cleared when nothing failed.
        """
        self._assert_not_sent()

        now = sent_at or datetime.now(UTC)
        status = PushStatus.SENT if success_count > 0 else PushStatus.FAILED
        reasons = dict(failure_reasons or {})

        if status == PushStatus.SENT:
            error = None
        else:
            error = next(iter(reasons), "all failed")

        self.push_status = status.value
        self.push_sent_at = now
        self.push_event_id = event_id
        self.push_success_count = success_count
        self.push_failure_count = failure_count
        self.push_audience_tokens = audience_tokens
        self.push_failure_reasons = json.dumps(reasons) if reasons else None
        self.push_error = error[:_MAX_ERROR_LENGTH] if error else None

        self.raise_(
            FeedPushCompleted(
                feed_item_id=str(self.id),
                push_event_id=event_id,
                status=status.value,
                audience_tokens=audience_tokens,
                success_count=success_count,
                failure_count=failure_count,
                failure_reasons=self.push_failure_reasons,
                error=self.push_error,
                sent_at=now,
            )
        )

    def record_push_error(self, error, event_id):
        """Record an unexpected fanout failure.

        `push_sent_at` is left untouched so a redelivery can try again.
        """
        now = datetime.now(UTC)
        message = (error or "unknown error")[:_MAX_ERROR_LENGTH]

        self.push_status = PushStatus.FAILED.value
        self.push_error = message
        self.push_event_id = event_id

        self.raise_(
            FeedPushErrored(
                feed_item_id=str(self.id),
                push_event_id=event_id,
                error=message,
                errored_at=now,
            )
        )
