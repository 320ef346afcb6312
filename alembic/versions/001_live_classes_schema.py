"""live classes schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the enums and tables used by live class scheduling and push
notifications. users/courses/enrollments are created only if missing, since
the platform's auth and catalog services may already own them.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


live_class_status = postgresql.ENUM(
    "SCHEDULED", "LIVE", "COMPLETED", name="live_class_status", create_type=False
)
notification_type = postgresql.ENUM(
    "LIVE_CLASS", "RECORDING_AVAILABLE", name="notification_type", create_type=False
)
device_platform = postgresql.ENUM(
    "android", "ios", "web", name="device_platform", create_type=False
)


def upgrade() -> None:
    bind = op.get_bind()
    live_class_status.create(bind, checkfirst=True)
    notification_type.create(bind, checkfirst=True)
    device_platform.create(bind, checkfirst=True)

    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            user_id SERIAL PRIMARY KEY,
            email TEXT,
            name TEXT,
            created_at TIMESTAMPTZ DEFAULT now()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS courses (
            course_id SERIAL PRIMARY KEY,
            title TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS enrollments (
            enrollment_id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
            course_id INTEGER NOT NULL REFERENCES courses(course_id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ DEFAULT now(),
            CONSTRAINT uq_enrollments_user_course UNIQUE (user_id, course_id)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_enrollments_course_id ON enrollments (course_id)"
    )

    op.create_table(
        "live_classes",
        sa.Column("live_class_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "course_id",
            sa.Integer(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("batch_id", sa.Text()),
        sa.Column("section_id", sa.Text()),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("scheduled_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "duration_minutes", sa.Integer(), nullable=False, server_default="60"
        ),
        sa.Column("meeting_url", sa.Text(), nullable=False),
        sa.Column("recording_url", sa.Text()),
        sa.Column(
            "status", live_class_status, nullable=False, server_default="SCHEDULED"
        ),
        sa.Column("notify_sent", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "recording_notify_sent",
            sa.Boolean(),
            nullable=False,
            server_default="false",
        ),
        sa.Column(
            "created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "duration_minutes > 0", name="ck_live_classes_positive_duration"
        ),
    )
    op.create_index("idx_live_classes_course_id", "live_classes", ["course_id"])
    op.create_index(
        "idx_live_classes_status_scheduled_at",
        "live_classes",
        ["status", "scheduled_at"],
    )

    op.create_table(
        "device_tokens",
        sa.Column(
            "device_token_id", sa.Integer(), primary_key=True, autoincrement=True
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column(
            "platform", device_platform, nullable=False, server_default="android"
        ),
        sa.Column(
            "created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
    )
    op.create_index("idx_device_tokens_token", "device_tokens", ["token"])

    op.create_table(
        "notification_log",
        sa.Column("log_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
        ),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("data", sa.Text()),
        sa.Column(
            "live_class_id",
            sa.Integer(),
            sa.ForeignKey("live_classes.live_class_id", ondelete="SET NULL"),
        ),
        sa.Column("sent_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_notification_log_user_id", "notification_log", ["user_id"])
    op.create_index(
        "idx_notification_log_live_class_id", "notification_log", ["live_class_id"]
    )

    op.create_table(
        "scheduler_leases",
        sa.Column("name", sa.Text(), primary_key=True),
        sa.Column("owner", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("scheduler_leases")
    op.drop_index("idx_notification_log_live_class_id", table_name="notification_log")
    op.drop_index("idx_notification_log_user_id", table_name="notification_log")
    op.drop_table("notification_log")
    op.drop_index("idx_device_tokens_token", table_name="device_tokens")
    op.drop_table("device_tokens")
    op.drop_index("idx_live_classes_status_scheduled_at", table_name="live_classes")
    op.drop_index("idx_live_classes_course_id", table_name="live_classes")
    op.drop_table("live_classes")

    bind = op.get_bind()
    device_platform.drop(bind, checkfirst=True)
    notification_type.drop(bind, checkfirst=True)
    live_class_status.drop(bind, checkfirst=True)
    # users/courses/enrollments may be shared with other services; left in place
