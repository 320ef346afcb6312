"""
Push notifications for live classes.

Public API:
    PushGateway.send(tokens, message, data) - Batched FCM delivery
    notify_live_class_starting(store, gateway, live_class) - Reminder push
    notify_recording_available(store, gateway, live_class) - Recording push
    NotificationWorker(store, gateway) - Periodic tick (start/stop/trigger_tick)
"""

from .actions import notify_live_class_starting, notify_recording_available
from .push import DispatchResult, PushGateway, PushMessage
from .worker import NotificationWorker, TickSummary

__all__ = [
    # Delivery
    "PushGateway",
    "PushMessage",
    "DispatchResult",
    # Actions
    "notify_live_class_starting",
    "notify_recording_available",
    # Worker
    "NotificationWorker",
    "TickSummary",
]
