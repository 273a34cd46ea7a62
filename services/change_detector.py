"""Detect activities that appeared between two feed snapshots."""

from typing import Iterable

from models.activity import Activity


def detect_new_activities(
    previous: Iterable[Activity],
    current: Iterable[Activity],
) -> list[Activity]:
    """Activities of ``current`` whose id is not in ``previous``, in ``current`` order."""
    seen_ids: set[str] = {activity.id for activity in previous}
    return [activity for activity in current if activity.id not in seen_ids]
