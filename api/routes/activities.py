"""
Activity feed endpoints.

Endpoints:
- GET /api/activities - Current merged feed (newest first)
- POST /api/activities/refresh - Manual refresh, reports new activity ids
- POST /api/activities/messages - Post a local message into the feed
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import get_activity_feed
from services.activity_feed import ActivityFeedService

router = APIRouter()
logger = logging.getLogger(__name__)


class ActivityListResponse(BaseModel):
    """Response model for the activity feed."""
    activities: list[dict[str, Any]]
    total: int


class RefreshResponse(BaseModel):
    """Response model for a manual refresh."""
    activities: list[dict[str, Any]]
    new_ids: list[str]
    total: int


class SendMessageRequest(BaseModel):
    """Request model for posting a message."""
    content: str = Field(min_length=1, max_length=5000)


@router.get("", response_model=ActivityListResponse)
async def list_activities(
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> ActivityListResponse:
    """Fetch the merged activity feed."""
    activities = await feed.fetch_activities()
    return ActivityListResponse(
        activities=[activity.to_dict() for activity in activities],
        total=len(activities),
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_activities(
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> RefreshResponse:
    """Refresh the feed now and push it to every subscriber."""
    result = await feed.refresh()
    return RefreshResponse(
        activities=[activity.to_dict() for activity in result.activities],
        new_ids=[activity.id for activity in result.new_activities],
        total=len(result.activities),
    )


@router.post("/messages")
async def send_message(
    request: SendMessageRequest,
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> dict[str, Any]:
    """Post a message into the local feed. Nothing is sent to the CRM."""
    content = request.content.strip()
    if not content:
        raise HTTPException(status_code=422, detail="Message content is empty")

    activity = await feed.send_message(content)
    if activity is None:
        credentials = feed.get_credentials()
        if credentials is None or not credentials.is_complete:
            raise HTTPException(status_code=409, detail="API credentials are not configured")
        raise HTTPException(status_code=502, detail="Message could not be sent")
    return activity.to_dict()
