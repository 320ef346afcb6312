"""
Notification worker - periodic tick driving all time-based side effects.

Each tick runs, in order:
1. Reminder pass: classes starting within the lead window get a push.
2. Recording pass: completed classes with a fresh recording get a push.
3. Status reconciliation: SCHEDULED/LIVE classes move forward per lifecycle.

Ticks never overlap. A tick that arrives while another is in flight is
skipped and logged, not queued. Only one process should run the worker
unless the database lease is enabled (NOTIFICATION_WORKER_LEASE).
"""

import asyncio
import logging
import os
import socket
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

import sentry_sdk
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from classroom.config import (
    get_reminder_lead_minutes,
    get_worker_interval_minutes,
    is_worker_lease_enabled,
)
from classroom.enums import LiveClassStatus
from classroom.lifecycle import is_forward, next_status
from classroom.store import LiveClassStore
from .actions import notify_live_class_starting, notify_recording_available
from .push import PushGateway

logger = logging.getLogger(__name__)


JOB_ID = "live_class_notification_tick"
LEASE_NAME = "notification_worker"


@dataclass
class TickSummary:
    reminders_sent: int = 0
    recordings_sent: int = 0
    status_changes: int = 0
    duration_ms: int = 0
    skipped: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _default_owner_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class NotificationWorker:
    """
    Owns the tick timer and the busy flag.

    Dependencies are passed in once at startup; the worker holds no global
    state, so tests can build as many instances as they like.
    """

    def __init__(
        self,
        store: LiveClassStore,
        gateway: PushGateway,
        interval_minutes: int | None = None,
        reminder_lead_minutes: int | None = None,
        decide_status: Callable[[dict, datetime], LiveClassStatus | None] = next_status,
        clock: Callable[[], datetime] | None = None,
        lease_enabled: bool | None = None,
        owner_id: str | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.interval_minutes = interval_minutes or get_worker_interval_minutes()
        self.reminder_lead_minutes = (
            reminder_lead_minutes or get_reminder_lead_minutes()
        )
        self.decide_status = decide_status
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.lease_enabled = (
            is_worker_lease_enabled() if lease_enabled is None else lease_enabled
        )
        self.owner_id = owner_id or _default_owner_id()
        self._busy = asyncio.Lock()
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight: asyncio.Future | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """
        Run one tick immediately, then every interval_minutes.

        Must be called from inside a running event loop.
        """
        if self._scheduler is not None:
            logger.warning("Notification worker already running")
            return

        self._scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,
            },
        )
        self._scheduler.add_job(
            self._run_scheduled_tick,
            trigger="interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info(
            f"Notification worker started (every {self.interval_minutes} minutes)"
        )

    def stop(self) -> None:
        """Cancel the timer. A tick already in flight is left to finish; see wait_idle()."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Notification worker stopped")

    async def wait_idle(self) -> None:
        """Return once no tick is in flight. Await after stop() before closing the engine."""
        async with self._busy:
            pass

    async def trigger_tick(self) -> TickSummary:
        """Run a tick now (operational testing)."""
        return await self._tick()

    def status(self) -> dict:
        return {
            "running": self._scheduler is not None,
            "interval_minutes": self.interval_minutes,
            "is_processing": self._busy.locked(),
        }

    async def _run_scheduled_tick(self) -> None:
        # The executor cancels running jobs on shutdown; the shielded tick outlives stop()
        self._in_flight = asyncio.ensure_future(self._tick())
        await asyncio.shield(self._in_flight)

    # =========================================================================
    # Tick
    # =========================================================================

    async def _tick(self) -> TickSummary:
        if self._busy.locked():
            logger.warning("Previous notification tick still running, skipping")
            return TickSummary(skipped=True)

        async with self._busy:
            started = time.monotonic()
            now = self._clock()
            summary = TickSummary()

            if self.lease_enabled and not await self._claim_lease():
                summary.skipped = True
                return summary

            summary.reminders_sent = await self._run_pass(
                "reminder", self._process_reminders, now
            )
            summary.recordings_sent = await self._run_pass(
                "recording", self._process_recordings, now
            )
            summary.status_changes = await self._run_pass(
                "status reconciliation", self._reconcile_statuses, now
            )

            summary.duration_ms = int((time.monotonic() - started) * 1000)
            if summary.reminders_sent or summary.recordings_sent:
                logger.info(
                    f"Notification tick completed: reminders={summary.reminders_sent} "
                    f"recordings={summary.recordings_sent} "
                    f"status_changes={summary.status_changes} "
                    f"duration_ms={summary.duration_ms}"
                )
            else:
                logger.debug(
                    f"Notification tick completed, nothing sent "
                    f"(duration_ms={summary.duration_ms})"
                )
            return summary

    async def _run_pass(
        self,
        name: str,
        run: Callable[[datetime], Awaitable[int]],
        now: datetime,
    ) -> int:
        """Run one pass; a failing pass is reported and the tick moves on."""
        try:
            return await run(now)
        except Exception as e:
            logger.error(f"Notification {name} pass failed: {e}")
            sentry_sdk.capture_exception(e)
            return 0

    async def _claim_lease(self) -> bool:
        ttl_seconds = self.interval_minutes * 60 * 2
        try:
            claimed = await self.store.claim_scheduler_lease(
                LEASE_NAME, self.owner_id, ttl_seconds
            )
        except Exception as e:
            logger.error(f"Could not claim notification worker lease: {e}")
            sentry_sdk.capture_exception(e)
            return False
        if not claimed:
            logger.debug(f"Lease held by another process, {self.owner_id} skipping tick")
        return claimed

    async def _process_reminders(self, now: datetime) -> int:
        pending = await self.store.find_pending_reminder_classes(
            now, self.reminder_lead_minutes
        )
        if not pending:
            return 0

        logger.info(f"Found {len(pending)} live classes pending a reminder")
        sent = 0
        for live_class in pending:
            live_class_id = live_class["live_class_id"]
            try:
                await notify_live_class_starting(
                    self.store, self.gateway, live_class, now
                )
                await self.store.mark_notify_sent(live_class_id)
                sent += 1
                logger.info(f"Reminder sent for live class {live_class_id}")
            except Exception as e:
                logger.error(f"Failed to send reminder for live class {live_class_id}: {e}")
                sentry_sdk.capture_exception(e)
        return sent

    async def _process_recordings(self, now: datetime) -> int:
        pending = await self.store.find_pending_recording_classes()
        if not pending:
            return 0

        logger.info(f"Found {len(pending)} recordings pending a notification")
        sent = 0
        for live_class in pending:
            live_class_id = live_class["live_class_id"]
            try:
                await notify_recording_available(
                    self.store, self.gateway, live_class, now
                )
                await self.store.mark_recording_notify_sent(live_class_id)
                sent += 1
                logger.info(f"Recording notification sent for live class {live_class_id}")
            except Exception as e:
                logger.error(
                    f"Failed to send recording notification for live class "
                    f"{live_class_id}: {e}"
                )
                sentry_sdk.capture_exception(e)
        return sent

    async def _reconcile_statuses(self, now: datetime) -> int:
        changed = 0
        for live_class in await self.store.find_classes_to_reconcile(now):
            live_class_id = live_class["live_class_id"]
            new_status = self.decide_status(live_class, now)
            if new_status is None or not is_forward(live_class["status"], new_status):
                continue
            try:
                updated = await self.store.update_status(
                    live_class_id, new_status, expected=live_class["status"]
                )
            except Exception as e:
                logger.error(f"Failed to update status of live class {live_class_id}: {e}")
                sentry_sdk.capture_exception(e)
                continue
            if updated:
                changed += 1
                logger.info(f"Auto-marked live class {live_class_id} as {new_status.value}")
        return changed
