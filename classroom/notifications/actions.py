"""
High-level notification actions.

Called by the worker on every tick and by the admin "notify now" operation.
Each action resolves the class's enrolled users and their device tokens,
sends one push, writes the audit log and prunes tokens that failed.
The caller is responsible for setting the matching latch flag afterwards.
"""

import json
import logging
from datetime import datetime, timezone

from classroom.enums import NotificationType
from classroom.store import LiveClassStore
from classroom.visibility import minutes_until_start
from .push import DispatchResult, PushGateway, PushMessage
from .templates import build_push_message

logger = logging.getLogger(__name__)


def _course_name(live_class: dict) -> str:
    return live_class.get("course_title") or "Your course"


async def _log_notifications(
    store: LiveClassStore,
    user_ids: list[int],
    notification_type: NotificationType,
    message: PushMessage,
    data: dict,
    live_class_id: int | None,
    sent_at: datetime,
) -> None:
    """One audit row per targeted user. Failures are logged and swallowed."""
    entries = [
        {
            "user_id": user_id,
            "type": notification_type,
            "title": message.title,
            "body": message.body,
            "data": json.dumps(data, default=str),
            "live_class_id": live_class_id,
            "sent_at": sent_at,
        }
        for user_id in user_ids
    ]
    try:
        await store.append_notification_log(entries)
    except Exception as e:
        # Don't let logging failures break notification sending
        logger.warning(f"Failed to log notifications: {e}")


async def _cleanup_tokens(store: LiveClassStore, tokens: list[str]) -> None:
    try:
        removed = await store.delete_device_tokens(tokens)
        logger.info(f"Cleaned up {removed} failed device tokens")
    except Exception as e:
        logger.warning(f"Failed to clean up device tokens: {e}")


async def notify_enrolled_users(
    store: LiveClassStore,
    gateway: PushGateway,
    live_class: dict,
    notification_type: NotificationType,
    message: PushMessage,
    data: dict,
    now: datetime | None = None,
) -> DispatchResult:
    """
    Push a message to every device of every user enrolled in the class's course.

    Returns:
        The gateway's DispatchResult (empty if nobody had a device)
    """
    now = now or datetime.now(timezone.utc)
    live_class_id = live_class["live_class_id"]

    user_ids = await store.find_enrolled_user_ids(live_class["course_id"])
    if not user_ids:
        logger.info(f"No enrolled users for live class {live_class_id}, skipping push")
        return DispatchResult()

    token_rows = await store.find_device_tokens(user_ids)
    if not token_rows:
        logger.info(
            f"No device tokens for {len(user_ids)} users of live class {live_class_id}"
        )
        return DispatchResult()

    # A token shared across accounts only needs one delivery
    tokens = list(dict.fromkeys(row["token"] for row in token_rows))

    result = await gateway.send(tokens, message, data)

    await _log_notifications(
        store, user_ids, notification_type, message, data, live_class_id, now
    )

    if result.failed_tokens:
        await _cleanup_tokens(store, result.failed_tokens)

    logger.info(
        f"{notification_type.value} push for live class {live_class_id}: "
        f"tokens={len(tokens)} success={result.success_count} "
        f"failure={result.failure_count}"
    )
    return result


async def notify_live_class_starting(
    store: LiveClassStore,
    gateway: PushGateway,
    live_class: dict,
    now: datetime | None = None,
) -> DispatchResult:
    """Send the "starting soon" reminder for a class."""
    now = now or datetime.now(timezone.utc)
    starts_in = minutes_until_start(live_class, now)
    message = build_push_message(
        "live_class_reminder",
        {
            "title": live_class["title"],
            "course_name": _course_name(live_class),
            "starts_in": starts_in,
        },
        body_field="body" if starts_in > 0 else "body_started",
    )
    data = {
        "type": NotificationType.LIVE_CLASS.value,
        "classId": live_class["live_class_id"],
        "courseId": live_class["course_id"],
        "meetingUrl": live_class.get("meeting_url"),
    }
    return await notify_enrolled_users(
        store, gateway, live_class, NotificationType.LIVE_CLASS, message, data, now
    )


async def notify_recording_available(
    store: LiveClassStore,
    gateway: PushGateway,
    live_class: dict,
    now: datetime | None = None,
) -> DispatchResult:
    """Tell enrolled users a class recording is ready."""
    if not live_class.get("recording_url"):
        logger.warning(
            f"No recording URL for live class {live_class['live_class_id']}, skipping"
        )
        return DispatchResult()

    message = build_push_message(
        "recording_available",
        {"title": live_class["title"], "course_name": _course_name(live_class)},
    )
    data = {
        "type": NotificationType.RECORDING_AVAILABLE.value,
        "classId": live_class["live_class_id"],
        "courseId": live_class["course_id"],
        "recordingUrl": live_class["recording_url"],
    }
    return await notify_enrolled_users(
        store,
        gateway,
        live_class,
        NotificationType.RECORDING_AVAILABLE,
        message,
        data,
        now,
    )
