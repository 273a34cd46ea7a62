"""
Notification endpoints.

Endpoints:
- GET /api/notifications - Most recent user-visible notifications
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_activity_feed
from services.activity_feed import ActivityFeedService
from services.notifications import Notification

router = APIRouter()


@router.get("", response_model=list[Notification])
async def list_notifications(
    limit: int = Query(default=20, ge=1, le=50),
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> list[Notification]:
    return feed.notifications.recent(limit)
