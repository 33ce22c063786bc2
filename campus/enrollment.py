"""
Student enrollment operations.

Every guard runs inside the same transaction as the write. Events are
published only after that transaction has committed.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from .conflicts import TimeSlot, find_student_conflict, is_enrollment_open
from .constants import UNKNOWN_COURSE
from .database import get_transaction
from .errors import (
    CourseFullError,
    DuplicateEnrollmentError,
    EnrollmentClosedError,
    NotFoundError,
    ScheduleConflictError,
)
from .events import EventBus, EventName
from .queries import slots as slot_queries
from .timeslots import format_slot
from .timezone import utcnow

logger = logging.getLogger(__name__)


def _enrollment_payload(enrollment: dict[str, Any], course_name: str | None) -> dict:
    return {
        "enrollment_id": enrollment["enrollment_id"],
        "student_id": enrollment["student_id"],
        "course_on_semester_id": enrollment["course_on_semester_id"],
        "course_name": course_name or UNKNOWN_COURSE,
    }


async def enroll_student(
    engine: AsyncEngine,
    bus: EventBus,
    student_id: str,
    course_on_semester_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Enroll a student in a course-on-semester.

    Raises:
        NotFoundError: If the course-on-semester doesn't exist
        EnrollmentClosedError: If no session of its semester is open now
        DuplicateEnrollmentError: If the student is already enrolled in it
        ScheduleConflictError: If it overlaps another enrolled slot
        CourseFullError: If it has reached capacity
    """
    now = now or utcnow()

    async with get_transaction(engine) as conn:
        slot = await slot_queries.get_course_on_semester(conn, course_on_semester_id)
        if slot is None:
            raise NotFoundError(f"Course-on-semester {course_on_semester_id} not found")

        if not await is_enrollment_open(conn, slot["semester_id"], now):
            raise EnrollmentClosedError(
                f"Enrollment for {slot['semester_name']} is not open"
            )

        target = TimeSlot.from_row(slot)
        conflict = await find_student_conflict(conn, student_id, target)
        if conflict is not None:
            if conflict.course_on_semester_id == target.course_on_semester_id:
                raise DuplicateEnrollmentError(
                    f"Already enrolled in {slot['course_name']}"
                )
            raise ScheduleConflictError(
                f"{slot['course_name']} "
                f"({format_slot(target.day_of_week, target.start_time, target.end_time)}) "
                f"overlaps an enrolled course "
                f"({format_slot(conflict.day_of_week, conflict.start_time, conflict.end_time)})"
            )

        capacity = slot.get("capacity")
        if capacity is not None:
            enrolled = await slot_queries.count_enrollments(conn, course_on_semester_id)
            if enrolled >= capacity:
                raise CourseFullError(f"{slot['course_name']} is full")

        try:
            enrollment = await slot_queries.create_enrollment(
                conn, student_id, course_on_semester_id
            )
        except IntegrityError as e:
            # Lost a race with a concurrent enrollment of the same pair
            raise DuplicateEnrollmentError(
                f"Already enrolled in {slot['course_name']}"
            ) from e

    logger.info(f"Student {student_id} enrolled in {course_on_semester_id}")
    bus.publish(
        EventName.ENROLLMENT_CREATED,
        _enrollment_payload(enrollment, slot["course_name"]),
    )
    return enrollment


async def unenroll_student(
    engine: AsyncEngine,
    bus: EventBus,
    student_id: str,
    enrollment_id: str,
    now: datetime | None = None,
) -> None:
    """
    Student-initiated unenrollment, allowed only while enrollment is open.

    Raises:
        NotFoundError: If the enrollment doesn't exist or isn't the student's
        EnrollmentClosedError: If no session of the semester is open now
    """
    now = now or utcnow()

    async with get_transaction(engine) as conn:
        enrollment = await slot_queries.get_enrollment(conn, enrollment_id)
        if enrollment is None or enrollment["student_id"] != student_id:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")

        if not await is_enrollment_open(conn, enrollment["semester_id"], now):
            raise EnrollmentClosedError("Enrollment is not open")

        await slot_queries.delete_enrollment(conn, enrollment_id, student_id)

    logger.info(f"Student {student_id} unenrolled from {enrollment['course_on_semester_id']}")
    bus.publish(
        EventName.ENROLLMENT_DELETED,
        _enrollment_payload(enrollment, enrollment["course_name"]),
    )


async def delete_enrollment_by_admin(
    engine: AsyncEngine,
    bus: EventBus,
    enrollment_id: str,
) -> None:
    """
    Remove an enrollment regardless of the enrollment window.

    Raises:
        NotFoundError: If the enrollment doesn't exist
    """
    async with get_transaction(engine) as conn:
        enrollment = await slot_queries.get_enrollment(conn, enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        await slot_queries.delete_enrollment(conn, enrollment_id)

    logger.info(f"Enrollment {enrollment_id} deleted by admin")
    bus.publish(
        EventName.ENROLLMENT_DELETED_BY_ADMIN,
        _enrollment_payload(enrollment, enrollment["course_name"]),
    )
