"""
Live class operations for admins and students.

Admin operations validate against the status lifecycle and raise
LiveClassValidationError / LiveClassNotFoundError; the web layer turns those
into 400 / 404 responses. Student reads always go through the visibility
policy so the meeting URL is only exposed inside the join window.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any

from .database import get_connection, get_transaction
from .enums import DevicePlatform, LiveClassStatus
from .lifecycle import (
    LiveClassValidationError,
    check_can_mark_completed,
    check_can_mark_live,
    check_can_reschedule,
    validate_scheduled_at,
)
from .notifications.actions import notify_live_class_starting
from .notifications.push import DispatchResult, PushGateway
from .queries import device_tokens as token_queries
from .queries import live_classes as queries
from .store import LiveClassStore
from .visibility import sanitize_for_student

logger = logging.getLogger(__name__)


class LiveClassNotFoundError(Exception):
    """Raised when a live class (or its course) does not exist."""

    pass


class NotEnrolledError(Exception):
    """Raised when a student asks for content of a course they are not in."""

    pass


UPDATABLE_FIELDS = {
    "title",
    "description",
    "scheduled_at",
    "duration_minutes",
    "meeting_url",
    "batch_id",
    "section_id",
}

# NOT NULL columns: an update may change them but never set them to null
REQUIRED_FIELDS = {"title", "scheduled_at", "duration_minutes", "meeting_url"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _get_or_404(conn, live_class_id: int) -> dict:
    live_class = await queries.get_live_class(conn, live_class_id)
    if not live_class:
        raise LiveClassNotFoundError("Live class not found")
    return live_class


# =============================================================================
# Admin operations
# =============================================================================


async def create_live_class(
    course_id: int,
    title: str,
    scheduled_at: datetime,
    meeting_url: str,
    duration_minutes: int = 60,
    description: str | None = None,
    batch_id: str | None = None,
    section_id: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Create a class. The scheduled time must be strictly in the future."""
    validate_scheduled_at(scheduled_at, now or _utcnow())

    async with get_transaction() as conn:
        if not await queries.get_course(conn, course_id):
            raise LiveClassNotFoundError("Course not found")
        live_class = await queries.create_live_class(
            conn,
            course_id=course_id,
            title=title,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            meeting_url=meeting_url,
            description=description,
            batch_id=batch_id,
            section_id=section_id,
        )

    logger.info(f"Live class {live_class['live_class_id']} created for course {course_id}")
    return live_class


async def update_live_class(
    live_class_id: int,
    changes: dict[str, Any],
    now: datetime | None = None,
) -> dict:
    """
    Apply a partial update.

    Moving scheduled_at is only allowed while the class is SCHEDULED, must
    land in the future, and re-arms the reminder for the new time.
    """
    values = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

    cleared = sorted(k for k in REQUIRED_FIELDS if k in values and values[k] is None)
    if cleared:
        raise LiveClassValidationError(f"Cannot clear required fields: {', '.join(cleared)}")

    async with get_transaction() as conn:
        existing = await _get_or_404(conn, live_class_id)

        new_time = values.get("scheduled_at")
        if new_time is not None and new_time != existing["scheduled_at"]:
            check_can_reschedule(existing["status"])
            validate_scheduled_at(new_time, now or _utcnow())
            values["notify_sent"] = False

        if not values:
            return existing
        updated = await queries.update_live_class(conn, live_class_id, values)

    logger.info(f"Live class {live_class_id} updated: {sorted(values)}")
    return updated


async def _transition(
    live_class_id: int,
    new_status: LiveClassStatus,
    check,
) -> dict:
    async with get_transaction() as conn:
        existing = await _get_or_404(conn, live_class_id)
        check(existing["status"])
        if not await queries.update_status(
            conn, live_class_id, new_status, expected=existing["status"]
        ):
            # Status moved underneath us (e.g. the worker just advanced it)
            raise LiveClassValidationError("Live class status changed, please retry")
        updated = await queries.get_live_class(conn, live_class_id)

    logger.info(f"Live class {live_class_id} marked as {new_status.value}")
    return updated


async def mark_as_live(live_class_id: int) -> dict:
    return await _transition(live_class_id, LiveClassStatus.LIVE, check_can_mark_live)


async def mark_as_completed(live_class_id: int) -> dict:
    return await _transition(
        live_class_id, LiveClassStatus.COMPLETED, check_can_mark_completed
    )


async def upload_recording(live_class_id: int, recording_url: str) -> dict:
    """Store the recording URL. A recording means the session is over: status becomes COMPLETED."""
    async with get_transaction() as conn:
        await _get_or_404(conn, live_class_id)
        updated = await queries.set_recording(conn, live_class_id, recording_url)

    logger.info(f"Recording uploaded for live class {live_class_id}")
    return updated


async def trigger_notification(
    live_class_id: int,
    store: LiveClassStore,
    gateway: PushGateway,
) -> DispatchResult:
    """Send the reminder right now and latch notify_sent."""
    async with get_connection() as conn:
        live_class = await _get_or_404(conn, live_class_id)

    result = await notify_live_class_starting(store, gateway, live_class)
    await store.mark_notify_sent(live_class_id)

    logger.info(f"Reminder for live class {live_class_id} triggered manually")
    return result


async def get_live_class(live_class_id: int) -> dict:
    async with get_connection() as conn:
        return await _get_or_404(conn, live_class_id)


async def list_for_course(course_id: int) -> list[dict]:
    async with get_connection() as conn:
        return await queries.get_all_for_course(conn, course_id)


async def delete_live_class(live_class_id: int) -> None:
    async with get_transaction() as conn:
        if not await queries.delete_live_class(conn, live_class_id):
            raise LiveClassNotFoundError("Live class not found")

    logger.info(f"Live class {live_class_id} deleted")


# =============================================================================
# Student operations
# =============================================================================


async def get_today_for_student(user_id: int, now: datetime | None = None) -> list[dict]:
    """Classes scheduled today (UTC day) in the student's enrolled courses."""
    now = now or _utcnow()
    day_start = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1) - timedelta(microseconds=1)

    async with get_connection() as conn:
        course_ids = await token_queries.get_enrolled_course_ids(conn, user_id)
        rows = await queries.get_classes_between_for_courses(
            conn, course_ids, day_start, day_end
        )
    return [sanitize_for_student(row, now) for row in rows]


async def get_upcoming_for_student(
    user_id: int,
    now: datetime | None = None,
    limit: int = 20,
) -> list[dict]:
    now = now or _utcnow()
    async with get_connection() as conn:
        course_ids = await token_queries.get_enrolled_course_ids(conn, user_id)
        rows = await queries.get_upcoming_for_courses(conn, course_ids, now, limit)
    return [sanitize_for_student(row, now) for row in rows]


async def get_recordings_for_course(user_id: int, course_id: int) -> list[dict]:
    async with get_connection() as conn:
        if not await token_queries.is_enrolled(conn, user_id, course_id):
            raise NotEnrolledError("You are not enrolled in this course")
        return await queries.get_recordings_for_course(conn, course_id)


async def register_device_token(
    user_id: int,
    token: str,
    platform: DevicePlatform = DevicePlatform.android,
) -> None:
    async with get_transaction() as conn:
        await token_queries.upsert_device_token(conn, user_id, token, platform)
    logger.info(f"Device token registered for user {user_id} ({platform.value})")


async def remove_device_token(user_id: int, token: str) -> bool:
    async with get_transaction() as conn:
        removed = await token_queries.delete_user_device_token(conn, user_id, token)
    logger.info(f"Device token removed for user {user_id}")
    return removed > 0
