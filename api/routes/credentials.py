"""
CRM connection settings endpoints.

Endpoints:
- GET /api/credentials - Current settings (password masked)
- PUT /api/credentials - Store settings
- DELETE /api/credentials - Forget settings
- POST /api/credentials/test - Probe the CRM with given or stored settings
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_activity_feed
from models.credentials import ApiCredentials, ConnectionTestResult
from services.activity_feed import ActivityFeedService

router = APIRouter()
logger = logging.getLogger(__name__)


class CredentialsRequest(BaseModel):
    """Request model for storing CRM settings."""
    model_config = ConfigDict(populate_by_name=True)

    api_url: str = Field(alias="apiUrl")
    username: str
    password: str
    schema_id: str = Field(alias="schema")
    remember_me: bool = Field(default=True, alias="rememberMe")

    def to_credentials(self) -> ApiCredentials:
        return ApiCredentials(
            api_url=self.api_url.strip(),
            username=self.username.strip(),
            password=self.password,
            schema_id=self.schema_id.strip(),
        )


class CredentialsResponse(BaseModel):
    """Response model for the stored settings."""
    configured: bool
    remember_me: bool
    credentials: Optional[dict[str, Any]]


def _describe(feed: ActivityFeedService) -> CredentialsResponse:
    credentials = feed.get_credentials()
    return CredentialsResponse(
        configured=credentials is not None and credentials.is_complete,
        remember_me=feed.store.remember_me,
        credentials=credentials.masked() if credentials else None,
    )


@router.get("", response_model=CredentialsResponse)
async def get_credentials(
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> CredentialsResponse:
    return _describe(feed)


@router.put("", response_model=CredentialsResponse)
async def set_credentials(
    request: CredentialsRequest,
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> CredentialsResponse:
    """Store CRM settings. Whether they work is checked by /test."""
    feed.set_credentials(request.to_credentials(), remember=request.remember_me)
    return _describe(feed)


@router.delete("", response_model=CredentialsResponse)
async def clear_credentials(
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> CredentialsResponse:
    feed.clear_credentials()
    return _describe(feed)


@router.post("/test", response_model=ConnectionTestResult)
async def probe_credentials(
    request: Optional[CredentialsRequest] = None,
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> ConnectionTestResult:
    """Probe the CRM. Uses the request body if given, else the stored settings."""
    credentials = request.to_credentials() if request is not None else None
    return await feed.test_api_connection(credentials)
