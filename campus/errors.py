"""Exceptions raised synchronously to the caller of a domain operation.

Delivery and fan-out failures are never raised through these; they are
logged where they happen.
"""


class CampusError(Exception):
    """Base exception for campus core errors."""

    pass


class NotFoundError(CampusError):
    """Referenced row does not exist (or is not owned by the caller)."""

    pass


class PreconditionError(CampusError):
    """The operation is not allowed in the current state."""

    pass


class EnrollmentClosedError(PreconditionError):
    """No enrollment session is open for the semester right now."""

    pass


class CourseFullError(PreconditionError):
    """The course-on-semester has reached its capacity."""

    pass


class AlreadyAssignedError(PreconditionError):
    """The slot already has a lecturer, or the lecturer is already assigned."""

    pass


class SemesterNotStartedError(PreconditionError):
    pass


class InvalidStateError(PreconditionError):
    """A state transition was requested from the wrong state."""

    pass


class InvalidWebhookUrlError(PreconditionError):
    pass


class ConflictError(CampusError):
    """Base class for duplicate/overlap conflicts."""

    pass


class DuplicateEnrollmentError(ConflictError):
    pass


class ScheduleConflictError(ConflictError):
    """Proposed weekly slot overlaps an existing commitment."""

    pass


class DuplicateRequestError(ConflictError):
    pass
