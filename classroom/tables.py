"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP

from .enums import (
    device_platform_enum,
    live_class_status_enum,
    notification_type_enum,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. USERS
# Owned by the auth service; only the columns the live-class
# pipeline reads are declared here.
# =====================================================
users = Table(
    "users",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", Text),
    Column("name", Text),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
)


# =====================================================
# 2. COURSES
# =====================================================
courses = Table(
    "courses",
    metadata,
    Column("course_id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
)


# =====================================================
# 3. ENROLLMENTS
# =====================================================
enrollments = Table(
    "enrollments",
    metadata,
    Column("enrollment_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "course_id",
        Integer,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    Index("idx_enrollments_course_id", "course_id"),
)


# =====================================================
# 4. LIVE_CLASSES
# =====================================================
live_classes = Table(
    "live_classes",
    metadata,
    Column("live_class_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_id",
        Integer,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("batch_id", Text),
    Column("section_id", Text),  # Curriculum section the class belongs to
    Column("title", Text, nullable=False),
    Column("description", Text),
    Column("scheduled_at", TIMESTAMP(timezone=True), nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default="60"),
    Column("meeting_url", Text, nullable=False),
    Column("recording_url", Text),
    Column("status", live_class_status_enum, nullable=False, server_default="SCHEDULED"),
    # One-way latches: false -> true only
    Column("notify_sent", Boolean, nullable=False, server_default="false"),
    Column("recording_notify_sent", Boolean, nullable=False, server_default="false"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    CheckConstraint("duration_minutes > 0", name="positive_duration"),
    Index("idx_live_classes_course_id", "course_id"),
    Index("idx_live_classes_status_scheduled_at", "status", "scheduled_at"),
)


# =====================================================
# 5. DEVICE_TOKENS
# =====================================================
device_tokens = Table(
    "device_tokens",
    metadata,
    Column("device_token_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("token", Text, nullable=False),
    Column("platform", device_platform_enum, nullable=False, server_default="android"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
    Index("idx_device_tokens_token", "token"),
)


# =====================================================
# 6. NOTIFICATION_LOG
# Append-only audit trail, one row per (user, notification)
# =====================================================
notification_log = Table(
    "notification_log",
    metadata,
    Column("log_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="SET NULL"),
    ),
    Column("type", notification_type_enum, nullable=False),
    Column("title", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("data", Text),  # JSON-serialized push data payload
    Column(
        "live_class_id",
        Integer,
        ForeignKey("live_classes.live_class_id", ondelete="SET NULL"),
    ),
    Column("sent_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_notification_log_user_id", "user_id"),
    Index("idx_notification_log_live_class_id", "live_class_id"),
)


# =====================================================
# 7. SCHEDULER_LEASES
# =====================================================
scheduler_leases = Table(
    "scheduler_leases",
    metadata,
    Column("name", Text, primary_key=True),
    Column("owner", Text, nullable=False),
    Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
)
