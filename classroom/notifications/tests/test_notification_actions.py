"""Tests for notification actions (store and gateway mocked)."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from classroom.enums import LiveClassStatus, NotificationType
from classroom.notifications.actions import (
    notify_live_class_starting,
    notify_recording_available,
)
from classroom.notifications.push import DispatchResult

NOW = datetime(2026, 3, 2, 13, 40, tzinfo=timezone.utc)


def make_class(**overrides):
    live_class = {
        "live_class_id": 42,
        "course_id": 7,
        "course_title": "Algorithms",
        "title": "Graphs",
        "status": LiveClassStatus.SCHEDULED,
        "scheduled_at": NOW + timedelta(minutes=20),
        "duration_minutes": 60,
        "meeting_url": "https://meet.example.com/graphs",
        "recording_url": None,
        "notify_sent": False,
        "recording_notify_sent": False,
    }
    live_class.update(overrides)
    return live_class


def make_store(user_ids=(1, 2), token_rows=None):
    store = AsyncMock()
    store.find_enrolled_user_ids.return_value = list(user_ids)
    store.find_device_tokens.return_value = (
        token_rows
        if token_rows is not None
        else [{"user_id": 1, "token": "t1"}, {"user_id": 2, "token": "t2"}]
    )
    store.delete_device_tokens.return_value = 0
    return store


def make_gateway(result=None):
    gateway = AsyncMock()
    gateway.send.return_value = result or DispatchResult(success_count=2)
    return gateway


class TestNotifyLiveClassStarting:
    @pytest.mark.asyncio
    async def test_sends_reminder_to_enrolled_tokens(self):
        store, gateway = make_store(), make_gateway()

        result = await notify_live_class_starting(store, gateway, make_class(), NOW)

        assert result.success_count == 2
        store.find_enrolled_user_ids.assert_awaited_once_with(7)
        store.find_device_tokens.assert_awaited_once_with([1, 2])

        sent_tokens, message, data = gateway.send.call_args.args
        assert sent_tokens == ["t1", "t2"]
        assert message.title == "🔴 Live Class Starting Soon!"
        assert message.body == "Graphs - Algorithms is starting in 20 minutes"
        assert message.click_action == "OPEN_LIVE_CLASS"
        assert data == {
            "type": "LIVE_CLASS",
            "classId": 42,
            "courseId": 7,
            "meetingUrl": "https://meet.example.com/graphs",
        }

    @pytest.mark.asyncio
    async def test_body_when_class_already_started(self):
        store, gateway = make_store(), make_gateway()
        live_class = make_class(scheduled_at=NOW - timedelta(minutes=2))

        await notify_live_class_starting(store, gateway, live_class, NOW)

        message = gateway.send.call_args.args[1]
        assert message.body == "Graphs - Algorithms is starting now"

    @pytest.mark.asyncio
    async def test_no_enrolled_users_sends_nothing(self):
        store, gateway = make_store(user_ids=()), make_gateway()

        result = await notify_live_class_starting(store, gateway, make_class(), NOW)

        assert result.success_count == 0
        assert result.failure_count == 0
        gateway.send.assert_not_awaited()
        store.append_notification_log.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_device_tokens_sends_nothing(self):
        store, gateway = make_store(token_rows=[]), make_gateway()

        await notify_live_class_starting(store, gateway, make_class(), NOW)

        gateway.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_tokens_sent_once(self):
        store = make_store(
            token_rows=[
                {"user_id": 1, "token": "shared"},
                {"user_id": 2, "token": "shared"},
                {"user_id": 2, "token": "t2"},
            ]
        )
        gateway = make_gateway()

        await notify_live_class_starting(store, gateway, make_class(), NOW)

        assert gateway.send.call_args.args[0] == ["shared", "t2"]

    @pytest.mark.asyncio
    async def test_writes_one_log_row_per_user(self):
        store, gateway = make_store(user_ids=(1, 2, 3)), make_gateway()

        await notify_live_class_starting(store, gateway, make_class(), NOW)

        entries = store.append_notification_log.call_args.args[0]
        assert [e["user_id"] for e in entries] == [1, 2, 3]
        entry = entries[0]
        assert entry["type"] == NotificationType.LIVE_CLASS
        assert entry["live_class_id"] == 42
        assert entry["sent_at"] == NOW
        assert json.loads(entry["data"])["classId"] == 42

    @pytest.mark.asyncio
    async def test_prunes_failed_tokens(self):
        store = make_store()
        gateway = make_gateway(
            DispatchResult(
                success_count=1,
                failure_count=1,
                failed_tokens=["t2"],
                invalid_tokens=["t2"],
            )
        )

        await notify_live_class_starting(store, gateway, make_class(), NOW)

        store.delete_device_tokens.assert_awaited_once_with(["t2"])

    @pytest.mark.asyncio
    async def test_no_prune_when_everything_delivered(self):
        store, gateway = make_store(), make_gateway()

        await notify_live_class_starting(store, gateway, make_class(), NOW)

        store.delete_device_tokens.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_log_failure_does_not_change_result(self):
        store = make_store()
        store.append_notification_log.side_effect = RuntimeError("db down")
        gateway = make_gateway(DispatchResult(success_count=2))

        result = await notify_live_class_starting(store, gateway, make_class(), NOW)

        assert result.success_count == 2

    @pytest.mark.asyncio
    async def test_cleanup_failure_is_swallowed(self):
        store = make_store()
        store.delete_device_tokens.side_effect = RuntimeError("db down")
        gateway = make_gateway(
            DispatchResult(failure_count=2, failed_tokens=["t1", "t2"])
        )

        result = await notify_live_class_starting(store, gateway, make_class(), NOW)

        assert result.failed_tokens == ["t1", "t2"]


class TestNotifyRecordingAvailable:
    @pytest.mark.asyncio
    async def test_sends_recording_push(self):
        store, gateway = make_store(), make_gateway()
        live_class = make_class(
            status=LiveClassStatus.COMPLETED,
            recording_url="https://cdn.example.com/graphs.mp4",
        )

        await notify_recording_available(store, gateway, live_class, NOW)

        _, message, data = gateway.send.call_args.args
        assert message.title == "📹 Recording Available!"
        assert message.body == 'The recording for "Graphs" is now available'
        assert data == {
            "type": "RECORDING_AVAILABLE",
            "classId": 42,
            "courseId": 7,
            "recordingUrl": "https://cdn.example.com/graphs.mp4",
        }
        entries = store.append_notification_log.call_args.args[0]
        assert entries[0]["type"] == NotificationType.RECORDING_AVAILABLE

    @pytest.mark.asyncio
    async def test_skips_without_recording_url(self):
        store, gateway = make_store(), make_gateway()

        result = await notify_recording_available(store, gateway, make_class(), NOW)

        assert result.success_count == 0
        gateway.send.assert_not_awaited()
        store.find_enrolled_user_ids.assert_not_awaited()
