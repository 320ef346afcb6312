"""
Live class status lifecycle.

Status only moves forward: SCHEDULED -> LIVE -> COMPLETED, or straight from
SCHEDULED to COMPLETED when a class is first looked at after it has ended.

Everything here is pure: callers pass the class row (a dict as returned by
the query layer) and the current instant.
"""

from datetime import datetime, timedelta

from .enums import LiveClassStatus

_ORDER = {
    LiveClassStatus.SCHEDULED: 0,
    LiveClassStatus.LIVE: 1,
    LiveClassStatus.COMPLETED: 2,
}


class LiveClassValidationError(Exception):
    """Raised when a requested change is not allowed for the class's state."""

    pass


def class_end(live_class: dict) -> datetime:
    """Scheduled start plus duration."""
    return live_class["scheduled_at"] + timedelta(
        minutes=live_class["duration_minutes"]
    )


def next_status(live_class: dict, now: datetime) -> LiveClassStatus | None:
    """
    Status the class should hold at `now`.

    Returns:
        The new status, or None if no transition is due
    """
    status = live_class["status"]
    if status == LiveClassStatus.COMPLETED:
        return None

    start = live_class["scheduled_at"]
    end = class_end(live_class)

    if status == LiveClassStatus.SCHEDULED and now >= start:
        return LiveClassStatus.LIVE if now < end else LiveClassStatus.COMPLETED
    if status == LiveClassStatus.LIVE and now >= end:
        return LiveClassStatus.COMPLETED
    return None


def is_forward(current: LiveClassStatus, new: LiveClassStatus) -> bool:
    """True if moving from current to new never goes backwards."""
    return _ORDER[LiveClassStatus(new)] > _ORDER[LiveClassStatus(current)]


def check_can_mark_live(status: LiveClassStatus) -> None:
    if status != LiveClassStatus.SCHEDULED:
        raise LiveClassValidationError("Can only mark scheduled classes as live")


def check_can_mark_completed(status: LiveClassStatus) -> None:
    if status == LiveClassStatus.COMPLETED:
        raise LiveClassValidationError("Class is already completed")


def validate_scheduled_at(scheduled_at: datetime, now: datetime) -> None:
    """Scheduled time must be strictly in the future."""
    if scheduled_at.tzinfo is None:
        raise LiveClassValidationError("Scheduled time must include a timezone")
    if scheduled_at <= now:
        raise LiveClassValidationError("Scheduled time must be in the future")


def check_can_reschedule(status: LiveClassStatus) -> None:
    if status != LiveClassStatus.SCHEDULED:
        raise LiveClassValidationError("Can only reschedule scheduled classes")
