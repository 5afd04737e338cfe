"""Feed domain API package."""

from feed.api.routes import feed_router, member_router

__all__ = ["feed_router", "member_router"]
