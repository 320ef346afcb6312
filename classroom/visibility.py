"""
Join-URL visibility for non-admin viewers.

Every student-facing listing (today, upcoming, catalog, curriculum) must go
through sanitize_for_student so the same class at the same instant gets the
same answer everywhere.
"""

from datetime import datetime, timedelta

from .config import get_join_window_minutes
from .enums import LiveClassStatus
from .lifecycle import class_end


def can_join(
    live_class: dict,
    now: datetime,
    window_minutes: int | None = None,
) -> bool:
    """
    Whether the meeting URL may be shown at `now`.

    True while the class is LIVE, or from `window_minutes` before the start
    until the scheduled end (both bounds inclusive).
    """
    if window_minutes is None:
        window_minutes = get_join_window_minutes()

    if live_class["status"] == LiveClassStatus.LIVE:
        return True

    window_start = live_class["scheduled_at"] - timedelta(minutes=window_minutes)
    return window_start <= now <= class_end(live_class)


def minutes_until_start(live_class: dict, now: datetime) -> int:
    """Rounded minutes until the scheduled start, 0 once it has started."""
    scheduled_at = live_class["scheduled_at"]
    if scheduled_at <= now:
        return 0
    return round((scheduled_at - now).total_seconds() / 60)


def sanitize_for_student(
    live_class: dict,
    now: datetime,
    window_minutes: int | None = None,
) -> dict:
    """Build the student view of a class, hiding the meeting URL outside the join window."""
    show_url = can_join(live_class, now, window_minutes)
    return {
        "live_class_id": live_class["live_class_id"],
        "course_id": live_class["course_id"],
        "course_name": live_class.get("course_title"),
        "batch_id": live_class.get("batch_id"),
        "section_id": live_class.get("section_id"),
        "title": live_class["title"],
        "description": live_class.get("description"),
        "scheduled_at": live_class["scheduled_at"],
        "duration_minutes": live_class["duration_minutes"],
        "status": live_class["status"],
        "meeting_url": live_class["meeting_url"] if show_url else None,
        "can_join": show_url,
        "starts_in": minutes_until_start(live_class, now),
    }
