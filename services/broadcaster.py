"""
Polling broadcaster for activity subscribers.

Keeps the list of subscriber callbacks and one shared polling task:
- The first subscriber moves the broadcaster from IDLE to POLLING and
  starts the task
- The last unsubscribe cancels the task and moves it back to IDLE
- Every tick runs one aggregation and hands the complete list to each
  subscriber in subscription order

Callbacks are plain synchronous callables. Async consumers (WebSockets)
register a callback that enqueues and drain the queue themselves.
"""

import asyncio
import logging
from enum import Enum
from itertools import count
from typing import Awaitable, Callable, Optional

from models.activity import Activity

logger = logging.getLogger(__name__)

ActivityCallback = Callable[[list[Activity]], None]
Unsubscribe = Callable[[], None]
FetchActivities = Callable[[], Awaitable[list[Activity]]]


class PollingState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class ActivityBroadcaster:
    """Reference-counted polling with fan-out to subscribers."""

    def __init__(self, fetch_activities: FetchActivities, interval_seconds: float = 30.0) -> None:
        self._fetch_activities = fetch_activities
        self._interval = interval_seconds
        # Insertion-ordered: subscription id -> callback
        self._subscribers: dict[int, ActivityCallback] = {}
        self._ids = count(1)
        self._state = PollingState.IDLE
        self._poll_task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> PollingState:
        return self._state

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: ActivityCallback) -> Unsubscribe:
        """Register a callback; returns an idempotent unsubscribe function.

        Must be called from inside a running event loop, since the first
        subscriber starts the polling task.
        """
        subscription_id = next(self._ids)
        self._subscribers[subscription_id] = callback
        logger.debug("Subscriber %d added (%d total)", subscription_id, len(self._subscribers))

        if len(self._subscribers) == 1:
            self._start_polling()

        def unsubscribe() -> None:
            if self._subscribers.pop(subscription_id, None) is None:
                return
            logger.debug(
                "Subscriber %d removed (%d left)", subscription_id, len(self._subscribers)
            )
            if not self._subscribers:
                self._stop_polling()

        return unsubscribe

    async def refresh(self) -> list[Activity]:
        """Fetch once outside the polling cadence and push to subscribers."""
        activities = await self._fetch_activities()
        self.publish(activities)
        return activities

    def publish(self, activities: list[Activity]) -> None:
        """Hand one snapshot to every current subscriber, in order."""
        snapshot = list(activities)
        for subscription_id, callback in list(self._subscribers.items()):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Activity subscriber %d failed", subscription_id)

    async def aclose(self) -> None:
        """Drop all subscribers and wait for the polling task to finish."""
        self._subscribers.clear()
        task = self._poll_task
        self._stop_polling()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _start_polling(self) -> None:
        if self._state is PollingState.POLLING:
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())
        self._state = PollingState.POLLING
        logger.info("Activity polling started (every %.0fs)", self._interval)

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        if self._state is PollingState.POLLING:
            logger.info("Activity polling stopped")
        self._state = PollingState.IDLE

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                # Stopping cancels this loop, not the fetch: a started fetch
                # runs to completion and its result is dropped with the loop
                activities = await asyncio.shield(self._fetch_activities())
            except Exception:
                logger.exception("Polling error")
                continue
            self.publish(activities)
