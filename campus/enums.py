"""SQLAlchemy enum definitions for the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SYSTEM = "SYSTEM"


class TeachingRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DeliveryStatus(str, enum.Enum):
    success = "success"
    failed = "failed"


class RecipientKind(str, enum.Enum):
    student = "student"
    lecturer = "lecturer"


# =====================================================
# SQLAlchemy Enum Types
# Stored as VARCHAR so the same schema works on PostgreSQL and SQLite
# =====================================================

notification_type_enum = SQLEnum(
    NotificationType, name="notification_type", native_enum=False, length=16
)
teaching_request_status_enum = SQLEnum(
    TeachingRequestStatus,
    name="teaching_request_status",
    native_enum=False,
    length=16,
)
delivery_status_enum = SQLEnum(
    DeliveryStatus, name="delivery_status", native_enum=False, length=16
)
