"""
Campus notification core - event-driven notifications, webhooks and the
schedule/enrollment validity checks that feed them.

The CRUD side of the backend calls into the domain operations below, which
validate, commit, and then publish on the event bus.
"""

# Database (SQLAlchemy)
from .database import close_engine, get_connection, get_engine, get_transaction, is_configured

# Errors
from .errors import (
    AlreadyAssignedError,
    CampusError,
    ConflictError,
    CourseFullError,
    DuplicateEnrollmentError,
    DuplicateRequestError,
    EnrollmentClosedError,
    InvalidStateError,
    InvalidWebhookUrlError,
    NotFoundError,
    PreconditionError,
    ScheduleConflictError,
    SemesterNotStartedError,
)

# Value types
from .enums import DeliveryStatus, NotificationType, TeachingRequestStatus
from .models import LecturerRecipient, Notification, Recipient, StudentRecipient

# Time slots and conflict detection
from .timeslots import is_within, overlaps, parse_time_of_day
from .conflicts import (
    TimeSlot,
    check_enrollment_conflict,
    check_teaching_request_conflict,
    find_conflicting_slot,
    is_enrollment_open,
)

# Events
from .events import Event, EventBus, EventName

# Domain operations (async)
from .enrollment import delete_enrollment_by_admin, enroll_student, unenroll_student
from .sessions import close_enrollment_session, open_enrollment_session
from .teaching_requests import (
    approve_teaching_request,
    create_teaching_request,
    list_teaching_requests,
    reject_teaching_request,
)

__all__ = [
    # Database
    "get_engine",
    "get_connection",
    "get_transaction",
    "close_engine",
    "is_configured",
    # Errors
    "CampusError",
    "NotFoundError",
    "PreconditionError",
    "EnrollmentClosedError",
    "CourseFullError",
    "AlreadyAssignedError",
    "SemesterNotStartedError",
    "InvalidStateError",
    "InvalidWebhookUrlError",
    "ConflictError",
    "DuplicateEnrollmentError",
    "ScheduleConflictError",
    "DuplicateRequestError",
    # Value types
    "NotificationType",
    "TeachingRequestStatus",
    "DeliveryStatus",
    "Notification",
    "Recipient",
    "StudentRecipient",
    "LecturerRecipient",
    # Time slots
    "overlaps",
    "is_within",
    "parse_time_of_day",
    "TimeSlot",
    "find_conflicting_slot",
    "check_enrollment_conflict",
    "check_teaching_request_conflict",
    "is_enrollment_open",
    # Events
    "Event",
    "EventBus",
    "EventName",
    # Domain operations
    "enroll_student",
    "unenroll_student",
    "delete_enrollment_by_admin",
    "open_enrollment_session",
    "close_enrollment_session",
    "create_teaching_request",
    "approve_teaching_request",
    "reject_teaching_request",
    "list_teaching_requests",
]
