"""SQLAlchemy Core table definitions for the database schema.

Only the notification, webhook and delivery-log tables are owned by the
notification core. The remaining tables belong to the CRUD side of the
backend and are declared here so the core can read them (and so the
scheduler can flip ``enrollment_sessions.is_active``).
"""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
    true,
    false,
)

from .enums import (
    delivery_status_enum,
    notification_type_enum,
    teaching_request_status_enum,
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


def new_id() -> str:
    """Primary keys are UUID strings generated client-side."""
    return str(uuid.uuid4())


# =====================================================
# 1. ACCOUNTS
# =====================================================
students = Table(
    "students",
    metadata,
    Column("student_id", Text, primary_key=True, default=new_id),
    Column("full_name", Text, nullable=False),
    Column("email", Text),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_students_is_active", "is_active"),
)

lecturers = Table(
    "lecturers",
    metadata,
    Column("lecturer_id", Text, primary_key=True, default=new_id),
    Column("full_name", Text, nullable=False),
    Column("email", Text),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_lecturers_is_active", "is_active"),
)


# =====================================================
# 2. SEMESTERS & ENROLLMENT SESSIONS
# =====================================================
semesters = Table(
    "semesters",
    metadata,
    Column("semester_id", Text, primary_key=True, default=new_id),
    Column("name", Text, nullable=False),
    Column("start_date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_semesters_start_date", "start_date"),
    Index("idx_semesters_end_date", "end_date"),
)

# The scheduler is the only automatic writer of is_active true -> false.
enrollment_sessions = Table(
    "enrollment_sessions",
    metadata,
    Column("session_id", Text, primary_key=True, default=new_id),
    Column(
        "semester_id",
        Text,
        ForeignKey("semesters.semester_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", Text, nullable=False),
    Column("start_date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_enrollment_sessions_active_end", "is_active", "end_date"),
    Index("idx_enrollment_sessions_semester_id", "semester_id"),
)


# =====================================================
# 3. COURSES & WEEKLY SLOTS
# =====================================================
courses = Table(
    "courses",
    metadata,
    Column("course_id", Text, primary_key=True, default=new_id),
    Column("name", Text, nullable=False),
    Column("code", Text),
)

# day_of_week 1..6, times are minutes of day; NULL means "not a fixed slot".
course_on_semesters = Table(
    "course_on_semesters",
    metadata,
    Column("course_on_semester_id", Text, primary_key=True, default=new_id),
    Column(
        "course_id",
        Text,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "semester_id",
        Text,
        ForeignKey("semesters.semester_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "lecturer_id",
        Text,
        ForeignKey("lecturers.lecturer_id", ondelete="SET NULL"),
    ),
    Column("day_of_week", Integer),
    Column("start_time", Integer),
    Column("end_time", Integer),
    Column("capacity", Integer),
    UniqueConstraint("course_id", "semester_id"),
    CheckConstraint(
        "day_of_week IS NULL OR (day_of_week >= 1 AND day_of_week <= 6)",
        name="day_of_week_range",
    ),
    Index("idx_course_on_semesters_lecturer_id", "lecturer_id"),
    Index("idx_course_on_semesters_semester_id", "semester_id"),
)

student_course_enrollments = Table(
    "student_course_enrollments",
    metadata,
    Column("enrollment_id", Text, primary_key=True, default=new_id),
    Column(
        "student_id",
        Text,
        ForeignKey("students.student_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "course_on_semester_id",
        Text,
        ForeignKey("course_on_semesters.course_on_semester_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("student_id", "course_on_semester_id"),
    Index("idx_enrollments_course_on_semester_id", "course_on_semester_id"),
)

exam_schedules = Table(
    "exam_schedules",
    metadata,
    Column("exam_schedule_id", Text, primary_key=True, default=new_id),
    Column(
        "course_on_semester_id",
        Text,
        ForeignKey("course_on_semesters.course_on_semester_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("exam_date", Date, nullable=False),
    Column("start_time", Integer),
    Column("end_time", Integer),
    Column("room", Text),
    Index("idx_exam_schedules_exam_date", "exam_date"),
)

course_documents = Table(
    "course_documents",
    metadata,
    Column("document_id", Text, primary_key=True, default=new_id),
    Column(
        "course_on_semester_id",
        Text,
        ForeignKey("course_on_semesters.course_on_semester_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("title", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)

lecturer_teaching_requests = Table(
    "lecturer_teaching_requests",
    metadata,
    Column("request_id", Text, primary_key=True, default=new_id),
    Column(
        "lecturer_id",
        Text,
        ForeignKey("lecturers.lecturer_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "course_on_semester_id",
        Text,
        ForeignKey("course_on_semesters.course_on_semester_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("status", teaching_request_status_enum, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("lecturer_id", "course_on_semester_id"),
)


# =====================================================
# 4. NOTIFICATIONS (owned by the notification core)
# =====================================================
notifications = Table(
    "notifications",
    metadata,
    Column("notification_id", Text, primary_key=True, default=new_id),
    Column(
        "student_id",
        Text,
        ForeignKey("students.student_id", ondelete="CASCADE"),
    ),
    Column(
        "lecturer_id",
        Text,
        ForeignKey("lecturers.lecturer_id", ondelete="CASCADE"),
    ),
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("url", Text),
    Column("type", notification_type_enum, nullable=False),
    Column("is_read", Boolean, nullable=False, default=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint(
        "(student_id IS NULL) <> (lecturer_id IS NULL)", name="one_recipient"
    ),
    Index("idx_notifications_student_id", "student_id", "created_at"),
    Index("idx_notifications_lecturer_id", "lecturer_id", "created_at"),
)


# =====================================================
# 5. WEBHOOKS (owned by the notification core)
# =====================================================
webhooks = Table(
    "webhooks",
    metadata,
    Column("webhook_id", Text, primary_key=True, default=new_id),
    Column(
        "student_id",
        Text,
        ForeignKey("students.student_id", ondelete="CASCADE"),
    ),
    Column(
        "lecturer_id",
        Text,
        ForeignKey("lecturers.lecturer_id", ondelete="CASCADE"),
    ),
    Column("url", Text, nullable=False),
    Column("secret", Text, nullable=False),  # never returned after creation
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("(student_id IS NULL) <> (lecturer_id IS NULL)", name="one_owner"),
    Index("idx_webhooks_student_id", "student_id"),
    Index("idx_webhooks_lecturer_id", "lecturer_id"),
)

# Write-once record of every attempted delivery.
webhook_delivery_logs = Table(
    "webhook_delivery_logs",
    metadata,
    Column("log_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "webhook_id",
        Text,
        ForeignKey("webhooks.webhook_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "notification_id",
        Text,
        ForeignKey("notifications.notification_id", ondelete="SET NULL"),
    ),
    Column("event", Text, nullable=False),
    Column("status", delivery_status_enum, nullable=False),
    Column("status_code", Integer),
    Column("response_body", Text),
    Column("error_message", Text),
    Column("duration_ms", Integer),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("idx_webhook_delivery_logs_webhook_id", "webhook_id", "created_at"),
)
