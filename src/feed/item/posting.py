"""PostFeedItem command and handler: publish a new activity feed entry."""

import json

from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from feed.domain import feed
from feed.item.feed_item import ActivityData, FeedItem


@feed.command(part_of="FeedItem")
class PostFeedItem:
    """Request to publish a feed item."""

    feed_item_id: Identifier()  # Optional: externally assigned id
    author_id: Identifier()
    related_user_name: String(max_length=200)
    user_avatar_url: String(max_length=2048)
    feed_type: String(max_length=100)
    activity_id: String(max_length=255)
    date: String(max_length=64)
    title: String(max_length=500)
    subtitle: Text()
    body: Text()
    message: Text()
    is_personal: Boolean(default=False)
    activity_type: String(max_length=50)
    activity_xp_earned: Integer()
    distance_meters: Float(min_value=0.0)
    xp_earned: Integer()
    tokens: Text()  # JSON list of device tokens
    token: String(max_length=4096)


@feed.command_handler(part_of=FeedItem)
class PostFeedItemHandler:
    @handle(PostFeedItem)
    def post_feed_item(self, command: PostFeedItem):
        activity_data = None
        if any(
            value is not None
            for value in (command.activity_type, command.activity_xp_earned, command.distance_meters)
        ):
            activity_data = ActivityData(
                activity_type=command.activity_type,
                xp_earned=command.activity_xp_earned,
                distance_meters=command.distance_meters,
            )

        item = FeedItem.post(
            feed_item_id=command.feed_item_id,
            author_id=command.author_id,
            related_user_name=command.related_user_name,
            user_avatar_url=command.user_avatar_url,
            feed_type=command.feed_type,
            activity_id=command.activity_id,
            date=command.date,
            title=command.title,
            subtitle=command.subtitle,
            body=command.body,
            message=command.message,
            is_personal=command.is_personal,
            activity_data=activity_data,
            xp_earned=command.xp_earned,
            tokens=json.loads(command.tokens) if command.tokens else None,
            token=command.token,
        )
        current_domain.repository_for(FeedItem).add(item)
        return str(item.id)
