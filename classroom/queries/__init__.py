"""Query layer for database operations using SQLAlchemy Core."""

from .device_tokens import (
    delete_device_tokens,
    get_device_tokens,
    get_enrolled_user_ids,
    upsert_device_token,
)
from .live_classes import (
    create_live_class,
    get_live_class,
    update_live_class,
    update_status,
)
from .notification_log import claim_lease, insert_notification_logs

__all__ = [
    # Live classes
    "create_live_class",
    "get_live_class",
    "update_live_class",
    "update_status",
    # Device tokens / enrollments
    "get_enrolled_user_ids",
    "get_device_tokens",
    "upsert_device_token",
    "delete_device_tokens",
    # Notification log / leases
    "insert_notification_logs",
    "claim_lease",
]
