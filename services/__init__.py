"""Services package."""
from services.activity_feed import ActivityFeedService
from services.notifications import NotificationCenter

__all__ = ["ActivityFeedService", "NotificationCenter"]
