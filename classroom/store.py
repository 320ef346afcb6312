"""
Store interface consumed by the notification worker.

The worker never touches the database directly; it talks to a LiveClassStore.
DatabaseStore is the production implementation over the query layer, opening
one short transaction per call.
"""

from datetime import datetime, timezone
from typing import Protocol

from .database import get_connection, get_transaction
from .enums import LiveClassStatus
from .queries import device_tokens as token_queries
from .queries import live_classes as live_class_queries
from .queries import notification_log as log_queries


class LiveClassStore(Protocol):
    async def find_pending_reminder_classes(
        self, now: datetime, lead_minutes: int
    ) -> list[dict]: ...

    async def find_pending_recording_classes(self) -> list[dict]: ...

    async def find_classes_to_reconcile(self, now: datetime) -> list[dict]: ...

    async def mark_notify_sent(self, live_class_id: int) -> None: ...

    async def mark_recording_notify_sent(self, live_class_id: int) -> None: ...

    async def update_status(
        self,
        live_class_id: int,
        status: LiveClassStatus,
        expected: LiveClassStatus | None = None,
    ) -> bool: ...

    async def find_enrolled_user_ids(self, course_id: int) -> list[int]: ...

    async def find_device_tokens(self, user_ids: list[int]) -> list[dict]: ...

    async def delete_device_tokens(self, tokens: list[str]) -> int: ...

    async def append_notification_log(self, entries: list[dict]) -> None: ...

    async def claim_scheduler_lease(
        self, name: str, owner: str, ttl_seconds: int
    ) -> bool: ...


class DatabaseStore:
    """LiveClassStore backed by PostgreSQL."""

    async def find_pending_reminder_classes(
        self, now: datetime, lead_minutes: int
    ) -> list[dict]:
        async with get_connection() as conn:
            return await live_class_queries.get_pending_reminder_classes(
                conn, now, lead_minutes
            )

    async def find_pending_recording_classes(self) -> list[dict]:
        async with get_connection() as conn:
            return await live_class_queries.get_pending_recording_classes(conn)

    async def find_classes_to_reconcile(self, now: datetime) -> list[dict]:
        async with get_connection() as conn:
            return await live_class_queries.get_classes_to_reconcile(conn, now)

    async def mark_notify_sent(self, live_class_id: int) -> None:
        async with get_transaction() as conn:
            await live_class_queries.mark_notify_sent(conn, live_class_id)

    async def mark_recording_notify_sent(self, live_class_id: int) -> None:
        async with get_transaction() as conn:
            await live_class_queries.mark_recording_notify_sent(conn, live_class_id)

    async def update_status(
        self,
        live_class_id: int,
        status: LiveClassStatus,
        expected: LiveClassStatus | None = None,
    ) -> bool:
        async with get_transaction() as conn:
            return await live_class_queries.update_status(
                conn, live_class_id, status, expected=expected
            )

    async def find_enrolled_user_ids(self, course_id: int) -> list[int]:
        async with get_connection() as conn:
            return await token_queries.get_enrolled_user_ids(conn, course_id)

    async def find_device_tokens(self, user_ids: list[int]) -> list[dict]:
        async with get_connection() as conn:
            return await token_queries.get_device_tokens(conn, user_ids)

    async def delete_device_tokens(self, tokens: list[str]) -> int:
        async with get_transaction() as conn:
            return await token_queries.delete_device_tokens(conn, tokens)

    async def append_notification_log(self, entries: list[dict]) -> None:
        async with get_transaction() as conn:
            await log_queries.insert_notification_logs(conn, entries)

    async def claim_scheduler_lease(
        self, name: str, owner: str, ttl_seconds: int
    ) -> bool:
        async with get_transaction() as conn:
            return await log_queries.claim_lease(
                conn, name, owner, datetime.now(timezone.utc), ttl_seconds
            )
