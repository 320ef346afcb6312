"""Database queries for live classes."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import LiveClassStatus
from ..tables import courses, live_classes


def _select_with_course():
    """Select live class columns plus the owning course's title."""
    return select(live_classes, courses.c.title.label("course_title")).select_from(
        live_classes.join(courses, live_classes.c.course_id == courses.c.course_id)
    )


async def get_course(conn: AsyncConnection, course_id: int) -> dict | None:
    result = await conn.execute(select(courses).where(courses.c.course_id == course_id))
    row = result.mappings().first()
    return dict(row) if row else None


async def create_live_class(
    conn: AsyncConnection,
    course_id: int,
    title: str,
    scheduled_at: datetime,
    duration_minutes: int,
    meeting_url: str,
    description: str | None = None,
    batch_id: str | None = None,
    section_id: str | None = None,
) -> dict[str, Any]:
    """
    Create a live class record.

    Returns:
        The created row as a dict
    """
    result = await conn.execute(
        insert(live_classes)
        .values(
            course_id=course_id,
            title=title,
            description=description,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            meeting_url=meeting_url,
            batch_id=batch_id,
            section_id=section_id,
        )
        .returning(live_classes)
    )
    return dict(result.mappings().first())


async def get_live_class(conn: AsyncConnection, live_class_id: int) -> dict | None:
    """Get a single live class by ID, including its course title."""
    result = await conn.execute(
        _select_with_course().where(live_classes.c.live_class_id == live_class_id)
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def update_live_class(
    conn: AsyncConnection,
    live_class_id: int,
    values: dict[str, Any],
) -> dict | None:
    """Apply a partial update. Returns the updated row, or None if missing."""
    result = await conn.execute(
        update(live_classes)
        .where(live_classes.c.live_class_id == live_class_id)
        .values(**values, updated_at=func.now())
        .returning(live_classes)
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def update_status(
    conn: AsyncConnection,
    live_class_id: int,
    status: LiveClassStatus,
    expected: LiveClassStatus | None = None,
) -> bool:
    """
    Set a class's status.

    When expected is given the write only happens if the row still holds
    that status, so two writers racing on the same class cannot move it
    backwards.

    Returns:
        True if a row was updated
    """
    query = (
        update(live_classes)
        .where(live_classes.c.live_class_id == live_class_id)
        .values(status=status, updated_at=func.now())
    )
    if expected is not None:
        query = query.where(live_classes.c.status == expected)
    result = await conn.execute(query)
    return result.rowcount > 0


async def set_recording(
    conn: AsyncConnection,
    live_class_id: int,
    recording_url: str,
) -> dict | None:
    """Store the recording URL and force the class to COMPLETED."""
    return await update_live_class(
        conn,
        live_class_id,
        {"recording_url": recording_url, "status": LiveClassStatus.COMPLETED},
    )


async def mark_notify_sent(conn: AsyncConnection, live_class_id: int) -> None:
    await conn.execute(
        update(live_classes)
        .where(live_classes.c.live_class_id == live_class_id)
        .values(notify_sent=True, updated_at=func.now())
    )


async def mark_recording_notify_sent(conn: AsyncConnection, live_class_id: int) -> None:
    await conn.execute(
        update(live_classes)
        .where(live_classes.c.live_class_id == live_class_id)
        .values(recording_notify_sent=True, updated_at=func.now())
    )


async def get_pending_reminder_classes(
    conn: AsyncConnection,
    now: datetime,
    lead_minutes: int,
) -> list[dict]:
    """Scheduled classes starting within [now, now + lead] with no reminder sent."""
    result = await conn.execute(
        _select_with_course()
        .where(live_classes.c.status == LiveClassStatus.SCHEDULED)
        .where(live_classes.c.notify_sent.is_(False))
        .where(live_classes.c.scheduled_at >= now)
        .where(live_classes.c.scheduled_at <= now + timedelta(minutes=lead_minutes))
        .order_by(live_classes.c.scheduled_at)
    )
    return [dict(row) for row in result.mappings()]


async def get_pending_recording_classes(conn: AsyncConnection) -> list[dict]:
    """Completed classes with a recording whose alert has not gone out."""
    result = await conn.execute(
        _select_with_course()
        .where(live_classes.c.status == LiveClassStatus.COMPLETED)
        .where(live_classes.c.recording_url.isnot(None))
        .where(live_classes.c.recording_notify_sent.is_(False))
        .order_by(live_classes.c.scheduled_at)
    )
    return [dict(row) for row in result.mappings()]


async def get_classes_to_reconcile(conn: AsyncConnection, now: datetime) -> list[dict]:
    """SCHEDULED or LIVE classes whose start time has passed."""
    result = await conn.execute(
        select(live_classes)
        .where(
            live_classes.c.status.in_(
                [LiveClassStatus.SCHEDULED, LiveClassStatus.LIVE]
            )
        )
        .where(live_classes.c.scheduled_at <= now)
        .order_by(live_classes.c.scheduled_at)
    )
    return [dict(row) for row in result.mappings()]


async def get_all_for_course(conn: AsyncConnection, course_id: int) -> list[dict]:
    """All live classes for a course, newest first (admin view)."""
    result = await conn.execute(
        _select_with_course()
        .where(live_classes.c.course_id == course_id)
        .order_by(live_classes.c.scheduled_at.desc())
    )
    return [dict(row) for row in result.mappings()]


async def get_classes_between_for_courses(
    conn: AsyncConnection,
    course_ids: list[int],
    start: datetime,
    end: datetime,
) -> list[dict]:
    """Classes for the given courses scheduled within [start, end]."""
    if not course_ids:
        return []
    result = await conn.execute(
        _select_with_course()
        .where(live_classes.c.course_id.in_(course_ids))
        .where(live_classes.c.scheduled_at >= start)
        .where(live_classes.c.scheduled_at <= end)
        .order_by(live_classes.c.scheduled_at)
    )
    return [dict(row) for row in result.mappings()]


async def get_upcoming_for_courses(
    conn: AsyncConnection,
    course_ids: list[int],
    now: datetime,
    limit: int = 20,
) -> list[dict]:
    """Not-yet-finished classes for the given courses starting from now."""
    if not course_ids:
        return []
    result = await conn.execute(
        _select_with_course()
        .where(live_classes.c.course_id.in_(course_ids))
        .where(live_classes.c.scheduled_at >= now)
        .where(
            live_classes.c.status.in_(
                [LiveClassStatus.SCHEDULED, LiveClassStatus.LIVE]
            )
        )
        .order_by(live_classes.c.scheduled_at)
        .limit(limit)
    )
    return [dict(row) for row in result.mappings()]


async def get_recordings_for_course(conn: AsyncConnection, course_id: int) -> list[dict]:
    """Completed classes with recordings, newest first."""
    result = await conn.execute(
        select(
            live_classes.c.live_class_id,
            live_classes.c.title,
            live_classes.c.description,
            live_classes.c.scheduled_at,
            live_classes.c.duration_minutes,
            live_classes.c.recording_url,
        )
        .where(live_classes.c.course_id == course_id)
        .where(live_classes.c.status == LiveClassStatus.COMPLETED)
        .where(live_classes.c.recording_url.isnot(None))
        .order_by(live_classes.c.scheduled_at.desc())
    )
    return [dict(row) for row in result.mappings()]


async def delete_live_class(conn: AsyncConnection, live_class_id: int) -> bool:
    result = await conn.execute(
        delete(live_classes).where(live_classes.c.live_class_id == live_class_id)
    )
    return result.rowcount > 0
