"""SQLAlchemy enum definitions for the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class LiveClassStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"


class NotificationType(str, enum.Enum):
    LIVE_CLASS = "LIVE_CLASS"
    RECORDING_AVAILABLE = "RECORDING_AVAILABLE"


class DevicePlatform(str, enum.Enum):
    android = "android"
    ios = "ios"
    web = "web"


# =====================================================
# SQLAlchemy Enum Types
# These reference existing PostgreSQL types (create_type=False)
# =====================================================

live_class_status_enum = SQLEnum(
    LiveClassStatus, name="live_class_status", create_type=False, native_enum=True
)
notification_type_enum = SQLEnum(
    NotificationType, name="notification_type", create_type=False, native_enum=True
)
device_platform_enum = SQLEnum(
    DevicePlatform, name="device_platform", create_type=False, native_enum=True
)
