"""Notification core tables: notifications, webhooks, webhook_delivery_logs.

Revision ID: 001
Revises:
Create Date: 2026-10-19

The students, lecturers, semesters, enrollment_sessions and course tables
already exist (they are owned by the CRUD side of the backend). This
revision only adds the tables the notification core writes.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.Text(), nullable=False),
        sa.Column("student_id", sa.Text(), nullable=True),
        sa.Column("lecturer_id", sa.Text(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column(
            "is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(student_id IS NULL) <> (lecturer_id IS NULL)",
            name=op.f("ck_notifications_one_recipient"),
        ),
        sa.CheckConstraint(
            "type IN ('INFO', 'WARNING', 'ERROR', 'SYSTEM')",
            name=op.f("ck_notifications_notification_type"),
        ),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["students.student_id"],
            name=op.f("fk_notifications_student_id_students"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["lecturer_id"],
            ["lecturers.lecturer_id"],
            name=op.f("fk_notifications_lecturer_id_lecturers"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("notification_id", name=op.f("pk_notifications")),
    )
    op.create_index(
        "idx_notifications_student_id",
        "notifications",
        ["student_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "idx_notifications_lecturer_id",
        "notifications",
        ["lecturer_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "webhooks",
        sa.Column("webhook_id", sa.Text(), nullable=False),
        sa.Column("student_id", sa.Text(), nullable=True),
        sa.Column("lecturer_id", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("secret", sa.Text(), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(student_id IS NULL) <> (lecturer_id IS NULL)",
            name=op.f("ck_webhooks_one_owner"),
        ),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["students.student_id"],
            name=op.f("fk_webhooks_student_id_students"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["lecturer_id"],
            ["lecturers.lecturer_id"],
            name=op.f("fk_webhooks_lecturer_id_lecturers"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("webhook_id", name=op.f("pk_webhooks")),
    )
    op.create_index("idx_webhooks_student_id", "webhooks", ["student_id"], unique=False)
    op.create_index(
        "idx_webhooks_lecturer_id", "webhooks", ["lecturer_id"], unique=False
    )

    op.create_table(
        "webhook_delivery_logs",
        sa.Column("log_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("webhook_id", sa.Text(), nullable=False),
        sa.Column("notification_id", sa.Text(), nullable=True),
        sa.Column("event", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["webhook_id"],
            ["webhooks.webhook_id"],
            name=op.f("fk_webhook_delivery_logs_webhook_id_webhooks"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["notification_id"],
            ["notifications.notification_id"],
            name=op.f("fk_webhook_delivery_logs_notification_id_notifications"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("log_id", name=op.f("pk_webhook_delivery_logs")),
    )
    op.create_index(
        "idx_webhook_delivery_logs_webhook_id",
        "webhook_delivery_logs",
        ["webhook_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(
        "idx_webhook_delivery_logs_webhook_id", table_name="webhook_delivery_logs"
    )
    op.drop_table("webhook_delivery_logs")
    op.drop_index("idx_webhooks_lecturer_id", table_name="webhooks")
    op.drop_index("idx_webhooks_student_id", table_name="webhooks")
    op.drop_table("webhooks")
    op.drop_index("idx_notifications_lecturer_id", table_name="notifications")
    op.drop_index("idx_notifications_student_id", table_name="notifications")
    op.drop_table("notifications")
