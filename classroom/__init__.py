"""
Core business logic for live class scheduling, platform-agnostic.

Submodules:
    lifecycle     - Status state machine (SCHEDULED -> LIVE -> COMPLETED)
    visibility    - Join window / meeting URL disclosure for students
    live_classes  - Admin and student operations
    store         - LiveClassStore protocol + database implementation
    notifications - Push gateway, notification actions, periodic worker
"""

from .enums import DevicePlatform, LiveClassStatus, NotificationType
from .lifecycle import LiveClassValidationError, next_status
from .visibility import can_join, sanitize_for_student

__all__ = [
    "DevicePlatform",
    "LiveClassStatus",
    "NotificationType",
    "LiveClassValidationError",
    "next_status",
    "can_join",
    "sanitize_for_student",
]
