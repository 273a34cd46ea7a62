"""
FastAPI dependencies shared by routes and the WebSocket endpoint.
"""

from starlette.requests import HTTPConnection

from services.activity_feed import ActivityFeedService


def get_activity_feed(connection: HTTPConnection) -> ActivityFeedService:
    """Return the feed service created at startup."""
    feed: ActivityFeedService | None = getattr(connection.app.state, "activity_feed", None)
    if feed is None:
        raise RuntimeError("Activity feed service is not initialized")
    return feed
