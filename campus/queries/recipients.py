"""Recipient lookups used by the notification fan-out.

Resolved at dispatch time, never cached: a roster event reaches whoever is
enrolled when the event is handled.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import (
    course_on_semesters,
    lecturers,
    student_course_enrollments,
    students,
)


async def get_active_student_ids(conn: AsyncConnection) -> list[str]:
    result = await conn.execute(
        select(students.c.student_id)
        .where(students.c.is_active.is_(True))
        .order_by(students.c.student_id)
    )
    return list(result.scalars())


async def get_active_lecturer_ids(conn: AsyncConnection) -> list[str]:
    result = await conn.execute(
        select(lecturers.c.lecturer_id)
        .where(lecturers.c.is_active.is_(True))
        .order_by(lecturers.c.lecturer_id)
    )
    return list(result.scalars())


async def get_enrolled_student_ids(
    conn: AsyncConnection,
    course_on_semester_id: str,
) -> list[str]:
    """Students currently enrolled in a course-on-semester."""
    result = await conn.execute(
        select(student_course_enrollments.c.student_id)
        .where(
            student_course_enrollments.c.course_on_semester_id
            == course_on_semester_id
        )
        .order_by(student_course_enrollments.c.student_id)
    )
    return list(result.scalars())


async def get_assigned_lecturer_id(
    conn: AsyncConnection,
    course_on_semester_id: str,
) -> str | None:
    result = await conn.execute(
        select(course_on_semesters.c.lecturer_id).where(
            course_on_semesters.c.course_on_semester_id == course_on_semester_id
        )
    )
    return result.scalar_one_or_none()
