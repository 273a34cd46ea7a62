"""
WebSocket handler for the live activity feed.

Responsibilities:
- Send the current feed on connect
- Subscribe the connection to the polling broadcaster
- Forward every broadcast snapshot with the ids that are new to this client
- Trigger a manual refresh on request

Protocol (client -> server):
- {"type": "refresh"}
- {"type": "ping"}

Protocol (server -> client):
- {"type": "activities", "activities": [...], "new_ids": [...]}
- {"type": "pong"}
"""

import asyncio
import json
import logging
from typing import Callable

from fastapi import Depends, WebSocket, WebSocketDisconnect

from api.dependencies import get_activity_feed
from models.activity import Activity
from services.activity_feed import ActivityFeedService
from services.change_detector import detect_new_activities

logger = logging.getLogger(__name__)


async def _send_snapshot(
    websocket: WebSocket,
    activities: list[Activity],
    new_ids: list[str],
) -> None:
    await websocket.send_text(json.dumps({
        "type": "activities",
        "activities": [activity.to_dict() for activity in activities],
        "new_ids": new_ids,
    }))


def latest_snapshot_sink(
    queue: "asyncio.Queue[list[Activity]]",
) -> Callable[[list[Activity]], None]:
    """Subscriber callback that keeps only the newest pending snapshot.

    The queue holds one item; a slow client skips intermediate snapshots
    instead of accumulating them.
    """

    def put_latest(activities: list[Activity]) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(activities)

    return put_latest


async def _forward_snapshots(
    websocket: WebSocket,
    queue: "asyncio.Queue[list[Activity]]",
    previous: list[Activity],
) -> None:
    """Drain broadcast snapshots into the socket, marking unseen ids."""
    while True:
        activities = await queue.get()
        new_activities = detect_new_activities(previous, activities)
        await _send_snapshot(websocket, activities, [a.id for a in new_activities])
        previous = activities


async def activities_websocket(
    websocket: WebSocket,
    feed: ActivityFeedService = Depends(get_activity_feed),
) -> None:
    """WebSocket endpoint streaming the activity feed."""
    await websocket.accept()

    queue: asyncio.Queue[list[Activity]] = asyncio.Queue(maxsize=1)
    unsubscribe = feed.subscribe_to_activities(latest_snapshot_sink(queue))
    forwarder: asyncio.Task[None] | None = None

    try:
        initial = await feed.fetch_activities()
        await _send_snapshot(websocket, initial, [])
        forwarder = asyncio.create_task(_forward_snapshots(websocket, queue, initial))

        while True:
            raw_message = await websocket.receive_text()
            try:
                data = json.loads(raw_message)
            except json.JSONDecodeError:
                data = {"type": raw_message.strip()}

            message_type = data.get("type") if isinstance(data, dict) else None
            if message_type == "refresh":
                await feed.refresh()
            elif message_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            else:
                logger.debug("Ignoring websocket message type %r", message_type)
    except WebSocketDisconnect:
        logger.info("Activity websocket disconnected")
    finally:
        unsubscribe()
        if forwarder is not None:
            forwarder.cancel()
            try:
                await forwarder
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.warning("Activity forwarder failed", exc_info=True)
