"""The closed vocabulary of domain events."""

import enum


class EventName(str, enum.Enum):
    ENROLLMENT_CREATED = "enrollment.created"
    ENROLLMENT_DELETED = "enrollment.deleted"
    ENROLLMENT_DELETED_BY_ADMIN = "enrollment.deleted_by_admin"

    SESSION_OPENED = "enrollment_session.opened"
    SESSION_CLOSING_SOON = "enrollment_session.closing_soon"
    SESSION_CLOSED = "enrollment_session.closed"

    EXAM_CREATED = "exam_schedule.created"
    EXAM_UPDATED = "exam_schedule.updated"
    EXAM_DELETED = "exam_schedule.deleted"
    EXAM_REMINDER = "exam_schedule.reminder"

    DOCUMENT_CREATED = "document.created"
    DOCUMENT_UPDATED = "document.updated"
    DOCUMENT_DELETED = "document.deleted"

    COURSE_SEMESTER_UPDATED = "course_semester.updated"

    STUDENT_CREATED = "student.created"
    STUDENT_PASSWORD_CHANGED = "student.password_changed"

    LECTURER_CREATED = "lecturer.created"
    LECTURER_PASSWORD_CHANGED = "lecturer.password_changed"

    SEMESTER_STARTED = "semester.started"
    SEMESTER_ENDING_SOON = "semester.ending_soon"

    LECTURER_REQUEST_APPROVED = "lecturer_request.approved"
    LECTURER_REQUEST_REJECTED = "lecturer_request.rejected"

    @property
    def family(self) -> str:
        """Prefix before the dot, e.g. "document" for document.created."""
        return self.value.split(".", 1)[0]
