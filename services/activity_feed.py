"""
Activity feed service.

The one object the API layer talks to. Wires together the credential
store, the aggregator, the polling broadcaster and user notifications, and
exposes the feed's boundary operations:

- fetch_activities / refresh
- subscribe_to_activities
- send_message (local only, never reaches the CRM)
- set_credentials / get_credentials / clear_credentials
- test_api_connection

Constructed once at application startup and injected into routes.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import BaseModel

from config import Settings, to_iso8601
from models.activity import Activity, ActivityUser
from models.credentials import ApiCredentials, ConnectionTestResult
from services.aggregator import ActivityAggregator
from services.broadcaster import ActivityBroadcaster, ActivityCallback, Unsubscribe
from services.change_detector import detect_new_activities
from services.connection_probe import probe_connection
from services.credential_store import CredentialStore
from services.notifications import NotificationCenter

logger = logging.getLogger(__name__)

LOCAL_USER = ActivityUser(id="100", name="Aktiv användare")


class RefreshResult(BaseModel):
    activities: list[Activity]
    new_activities: list[Activity]


class ActivityFeedService:
    """Aggregated CRM activity feed with polling subscriptions."""

    def __init__(
        self,
        store: CredentialStore,
        notifications: NotificationCenter,
        poll_interval_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            store: Credential storage shared with the settings endpoints
            notifications: Sink for user-visible messages
            poll_interval_seconds: Cadence of the shared polling task
            transport: Optional httpx transport for the CRM (tests)
        """
        self.store = store
        self.notifications = notifications
        self._transport = transport
        self.aggregator = ActivityAggregator(
            store.get,
            notifications=notifications,
            transport=transport,
        )
        self.broadcaster = ActivityBroadcaster(
            self._fetch_and_remember,
            interval_seconds=poll_interval_seconds,
        )
        self._last_snapshot: list[Activity] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "ActivityFeedService":
        notifications = NotificationCenter()
        store = CredentialStore(settings.CREDENTIALS_FILE, notifications=notifications)
        return cls(
            store=store,
            notifications=notifications,
            poll_interval_seconds=settings.POLL_INTERVAL_SECONDS,
        )

    @property
    def last_snapshot(self) -> list[Activity]:
        return list(self._last_snapshot)

    # ------------------------------------------------------------------
    # Feed
    # ------------------------------------------------------------------

    async def fetch_activities(self) -> list[Activity]:
        return await self._fetch_and_remember()

    async def _fetch_and_remember(self) -> list[Activity]:
        activities = await self.aggregator.fetch_activities()
        self._last_snapshot = activities
        return activities

    def subscribe_to_activities(self, callback: ActivityCallback) -> Unsubscribe:
        return self.broadcaster.subscribe(callback)

    async def refresh(self) -> RefreshResult:
        """Manual refresh: fetch, push to subscribers, report new items."""
        previous = self._last_snapshot
        activities = await self.broadcaster.refresh()
        new_activities = detect_new_activities(previous, activities)
        self.notifications.success(
            f"Flödet uppdaterat: {len(new_activities)} nya aktiviteter"
        )
        return RefreshResult(activities=activities, new_activities=new_activities)

    async def send_message(self, content: str) -> Optional[Activity]:
        """Create a local message activity and push it to subscribers.

        Nothing is written to the CRM.
        """
        credentials = self.store.get()
        if credentials is None or not credentials.is_complete:
            self.notifications.error("Vänligen konfigurera dina API-inställningar först")
            return None

        try:
            message = Activity(
                id=str(time.time_ns() // 1_000_000),
                type="message",
                content=content,
                timestamp=to_iso8601(datetime.now(timezone.utc)),
                user=LOCAL_USER,
            )
            current = await self.fetch_activities()
            self.broadcaster.publish([message, *current])
        except Exception:
            logger.exception("Error sending message")
            self.notifications.error("Kunde inte skicka meddelandet")
            return None

        self.notifications.success("Meddelande skickat")
        return message

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def set_credentials(self, credentials: ApiCredentials, remember: bool = True) -> None:
        self.store.set(credentials, remember=remember)

    def get_credentials(self) -> Optional[ApiCredentials]:
        return self.store.get()

    def clear_credentials(self) -> None:
        self.store.clear()

    async def test_api_connection(
        self, credentials: Optional[ApiCredentials] = None
    ) -> ConnectionTestResult:
        """Probe the given credentials, or the stored ones."""
        return await probe_connection(
            credentials if credentials is not None else self.store.get(),
            transport=self._transport,
        )

    async def aclose(self) -> None:
        await self.broadcaster.aclose()
