"""Feed bounded context: activity feed items and their push fanout.

Members post activity feed items; every new item is pushed to the devices
of the rest of the community. Delivery outcomes are persisted on the feed
item itself so a redelivered FeedItemPosted event never pushes twice.
"""

from protean.domain import Domain

from feed.utils.logging import configure_logging

configure_logging(log_file_prefix="feed")

feed = Domain(name="feed")
