"""Tests for the notification worker tick.

Layers tested:
- Passes (reminder, recording, reconciliation) with a mocked store
- Isolation: one failing item / pass doesn't stop the rest
- Non-overlap guard and optional lease
- start/stop with a real in-memory APScheduler
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from classroom.enums import LiveClassStatus
from classroom.notifications.push import DispatchResult
from classroom.notifications.worker import NotificationWorker

NOW = datetime(2026, 3, 2, 13, 45, tzinfo=timezone.utc)


def make_class(live_class_id, **overrides):
    live_class = {
        "live_class_id": live_class_id,
        "course_id": 7,
        "course_title": "Algorithms",
        "title": f"Class {live_class_id}",
        "status": LiveClassStatus.SCHEDULED,
        "scheduled_at": NOW + timedelta(minutes=15),
        "duration_minutes": 60,
        "meeting_url": "https://meet.example.com/x",
        "recording_url": None,
        "notify_sent": False,
        "recording_notify_sent": False,
    }
    live_class.update(overrides)
    return live_class


def make_store(reminders=(), recordings=(), to_reconcile=()):
    store = AsyncMock()
    store.find_pending_reminder_classes.return_value = list(reminders)
    store.find_pending_recording_classes.return_value = list(recordings)
    store.find_classes_to_reconcile.return_value = list(to_reconcile)
    store.update_status.return_value = True
    store.claim_scheduler_lease.return_value = True
    return store


def make_worker(store, **kwargs):
    kwargs.setdefault("lease_enabled", False)
    return NotificationWorker(
        store,
        AsyncMock(),
        interval_minutes=5,
        reminder_lead_minutes=30,
        clock=lambda: NOW,
        **kwargs,
    )


@pytest.fixture
def mock_notify():
    with patch(
        "classroom.notifications.worker.notify_live_class_starting",
        AsyncMock(return_value=DispatchResult(success_count=1)),
    ) as reminder, patch(
        "classroom.notifications.worker.notify_recording_available",
        AsyncMock(return_value=DispatchResult(success_count=1)),
    ) as recording:
        yield reminder, recording


class TestReminderPass:
    @pytest.mark.asyncio
    async def test_sends_and_latches_each_pending_class(self, mock_notify):
        reminder, _ = mock_notify
        store = make_store(reminders=[make_class(1), make_class(2)])
        worker = make_worker(store)

        summary = await worker.trigger_tick()

        assert summary.reminders_sent == 2
        store.find_pending_reminder_classes.assert_awaited_once_with(NOW, 30)
        assert reminder.await_count == 2
        assert [c.args[0] for c in store.mark_notify_sent.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_failed_item_is_not_latched_and_others_continue(self, mock_notify):
        reminder, _ = mock_notify
        reminder.side_effect = [RuntimeError("boom"), DispatchResult()]
        store = make_store(reminders=[make_class(1), make_class(2)])
        worker = make_worker(store)

        with patch("classroom.notifications.worker.sentry_sdk") as mock_sentry:
            summary = await worker.trigger_tick()

        assert summary.reminders_sent == 1
        store.mark_notify_sent.assert_awaited_once_with(2)
        mock_sentry.capture_exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_latched_even_when_nobody_received_it(self, mock_notify):
        """Zero recipients is still a completed dispatch."""
        reminder, _ = mock_notify
        reminder.return_value = DispatchResult()
        store = make_store(reminders=[make_class(1)])

        await make_worker(store).trigger_tick()

        store.mark_notify_sent.assert_awaited_once_with(1)


class TestRecordingPass:
    @pytest.mark.asyncio
    async def test_sends_and_latches_recordings(self, mock_notify):
        _, recording = mock_notify
        completed = make_class(
            5,
            status=LiveClassStatus.COMPLETED,
            recording_url="https://cdn.example.com/5.mp4",
        )
        store = make_store(recordings=[completed])

        summary = await make_worker(store).trigger_tick()

        assert summary.recordings_sent == 1
        recording.assert_awaited_once()
        store.mark_recording_notify_sent.assert_awaited_once_with(5)


class TestPassIsolation:
    @pytest.mark.asyncio
    async def test_failing_pass_does_not_stop_later_passes(self, mock_notify):
        store = make_store(
            recordings=[
                make_class(
                    5,
                    status=LiveClassStatus.COMPLETED,
                    recording_url="https://cdn.example.com/5.mp4",
                )
            ]
        )
        store.find_pending_reminder_classes.side_effect = RuntimeError("db down")

        with patch("classroom.notifications.worker.sentry_sdk"):
            summary = await make_worker(store).trigger_tick()

        assert summary.reminders_sent == 0
        assert summary.recordings_sent == 1
        store.find_classes_to_reconcile.assert_awaited_once()


class TestStatusReconciliation:
    @pytest.mark.asyncio
    async def test_moves_classes_forward(self, mock_notify):
        started = make_class(1, scheduled_at=NOW - timedelta(minutes=5))
        ended = make_class(
            2,
            status=LiveClassStatus.LIVE,
            scheduled_at=NOW - timedelta(minutes=90),
        )
        store = make_store(to_reconcile=[started, ended])

        summary = await make_worker(store).trigger_tick()

        assert summary.status_changes == 2
        store.update_status.assert_any_await(
            1, LiveClassStatus.LIVE, expected=LiveClassStatus.SCHEDULED
        )
        store.update_status.assert_any_await(
            2, LiveClassStatus.COMPLETED, expected=LiveClassStatus.LIVE
        )

    @pytest.mark.asyncio
    async def test_scheduled_class_past_end_goes_straight_to_completed(
        self, mock_notify
    ):
        stale = make_class(1, scheduled_at=NOW - timedelta(hours=3))
        store = make_store(to_reconcile=[stale])

        await make_worker(store).trigger_tick()

        store.update_status.assert_awaited_once_with(
            1, LiveClassStatus.COMPLETED, expected=LiveClassStatus.SCHEDULED
        )

    @pytest.mark.asyncio
    async def test_no_write_when_nothing_is_due(self, mock_notify):
        store = make_store(to_reconcile=[make_class(1)])

        summary = await make_worker(store).trigger_tick()

        assert summary.status_changes == 0
        store.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_compare_and_set_is_not_counted(self, mock_notify):
        store = make_store(to_reconcile=[make_class(1, scheduled_at=NOW)])
        store.update_status.return_value = False

        summary = await make_worker(store).trigger_tick()

        assert summary.status_changes == 0

    @pytest.mark.asyncio
    async def test_uses_injected_decision_function(self, mock_notify):
        store = make_store(to_reconcile=[make_class(1)])
        worker = make_worker(
            store, decide_status=lambda live_class, now: LiveClassStatus.LIVE
        )

        summary = await worker.trigger_tick()

        assert summary.status_changes == 1

    @pytest.mark.asyncio
    async def test_backward_decision_is_ignored(self, mock_notify):
        live = make_class(1, status=LiveClassStatus.LIVE)
        store = make_store(to_reconcile=[live])
        worker = make_worker(
            store, decide_status=lambda live_class, now: LiveClassStatus.SCHEDULED
        )

        summary = await worker.trigger_tick()

        assert summary.status_changes == 0
        store.update_status.assert_not_awaited()


class TestNonOverlap:
    @pytest.mark.asyncio
    async def test_tick_skipped_while_previous_running(self, mock_notify, caplog):
        store = make_store(reminders=[make_class(1)])
        worker = make_worker(store)

        async with worker._busy:
            summary = await worker.trigger_tick()

        assert summary.skipped is True
        store.find_pending_reminder_classes.assert_not_awaited()
        assert any("still running" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_concurrent_ticks_run_once(self, mock_notify):
        reminder, _ = mock_notify
        release = asyncio.Event()

        async def slow_notify(*args, **kwargs):
            await release.wait()
            return DispatchResult()

        reminder.side_effect = slow_notify
        store = make_store(reminders=[make_class(1)])
        worker = make_worker(store)

        first = asyncio.create_task(worker.trigger_tick())
        await asyncio.sleep(0)
        assert worker.status()["is_processing"] is True

        second = await worker.trigger_tick()
        release.set()
        first_summary = await first

        assert second.skipped is True
        assert first_summary.reminders_sent == 1
        assert store.find_pending_reminder_classes.await_count == 1
        assert worker.status()["is_processing"] is False


class TestLease:
    @pytest.mark.asyncio
    async def test_skips_tick_when_lease_held_elsewhere(self, mock_notify):
        store = make_store(reminders=[make_class(1)])
        store.claim_scheduler_lease.return_value = False
        worker = make_worker(store, lease_enabled=True, owner_id="host-b:2")

        summary = await worker.trigger_tick()

        assert summary.skipped is True
        store.claim_scheduler_lease.assert_awaited_once_with(
            "notification_worker", "host-b:2", 600
        )
        store.find_pending_reminder_classes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_runs_when_lease_claimed(self, mock_notify):
        store = make_store(reminders=[make_class(1)])
        worker = make_worker(store, lease_enabled=True)

        summary = await worker.trigger_tick()

        assert summary.skipped is False
        assert summary.reminders_sent == 1

    @pytest.mark.asyncio
    async def test_lease_disabled_never_touches_lease_table(self, mock_notify):
        store = make_store()

        await make_worker(store).trigger_tick()

        store.claim_scheduler_lease.assert_not_awaited()


class TestStartStop:
    @pytest.mark.asyncio
    async def test_start_schedules_interval_job_and_stop_cancels(self, mock_notify):
        store = make_store()
        worker = make_worker(store)

        worker.start()
        try:
            status = worker.status()
            assert status["running"] is True
            assert status["interval_minutes"] == 5
            job = worker._scheduler.get_job("live_class_notification_tick")
            assert job is not None
            assert job.trigger.interval == timedelta(minutes=5)
        finally:
            worker.stop()

        assert worker.status()["running"] is False

    @pytest.mark.asyncio
    async def test_start_runs_first_tick_immediately(self, mock_notify):
        store = make_store()
        worker = make_worker(store)

        worker.start()
        try:
            for _ in range(50):
                if store.find_classes_to_reconcile.await_count:
                    break
                await asyncio.sleep(0.02)
        finally:
            worker.stop()

        store.find_pending_reminder_classes.assert_awaited()

    @pytest.mark.asyncio
    async def test_start_twice_warns(self, mock_notify, caplog):
        worker = make_worker(make_store())

        worker.start()
        try:
            worker.start()
        finally:
            worker.stop()

        assert any("already running" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_wait_idle_lets_in_flight_tick_latch(self, mock_notify):
        reminder, _ = mock_notify
        release = asyncio.Event()

        async def slow_notify(*args, **kwargs):
            await release.wait()
            return DispatchResult()

        reminder.side_effect = slow_notify
        store = make_store(reminders=[make_class(1)])
        worker = make_worker(store)

        worker.start()
        for _ in range(50):
            if reminder.await_count:
                break
            await asyncio.sleep(0.02)
        worker.stop()
        store.mark_notify_sent.assert_not_awaited()

        waiter = asyncio.create_task(worker.wait_idle())
        await asyncio.sleep(0)
        assert not waiter.done()

        release.set()
        await waiter

        store.mark_notify_sent.assert_awaited_once_with(1)
        assert worker.status()["is_processing"] is False

    @pytest.mark.asyncio
    async def test_wait_idle_returns_when_nothing_running(self):
        await make_worker(make_store()).wait_idle()

    def test_stop_without_start_is_noop(self):
        make_worker(make_store()).stop()

    def test_defaults_from_config(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_WORKER_INTERVAL", "7")
        monkeypatch.setenv("NOTIFY_BEFORE_MINUTES", "45")
        worker = NotificationWorker(make_store(), AsyncMock(), lease_enabled=False)

        assert worker.interval_minutes == 7
        assert worker.reminder_lead_minutes == 45
