"""Database queries for course-on-semester slots and student enrollments."""

from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import (
    course_on_semesters,
    courses,
    new_id,
    semesters,
    student_course_enrollments,
)
from ..timezone import utcnow


def _slot_query():
    return select(
        course_on_semesters,
        courses.c.name.label("course_name"),
        semesters.c.name.label("semester_name"),
        semesters.c.start_date.label("semester_start_date"),
    ).select_from(
        course_on_semesters.join(
            courses, course_on_semesters.c.course_id == courses.c.course_id
        ).join(semesters, course_on_semesters.c.semester_id == semesters.c.semester_id)
    )


async def get_course_on_semester(
    conn: AsyncConnection,
    course_on_semester_id: str,
) -> dict[str, Any] | None:
    """Get a slot with its course name and semester info."""
    result = await conn.execute(
        _slot_query().where(
            course_on_semesters.c.course_on_semester_id == course_on_semester_id
        )
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def get_student_enrolled_slots(
    conn: AsyncConnection,
    student_id: str,
) -> list[dict[str, Any]]:
    """Every slot the student is enrolled in, across all semesters."""
    result = await conn.execute(
        select(
            course_on_semesters.c.course_on_semester_id,
            course_on_semesters.c.day_of_week,
            course_on_semesters.c.start_time,
            course_on_semesters.c.end_time,
        )
        .select_from(
            student_course_enrollments.join(
                course_on_semesters,
                student_course_enrollments.c.course_on_semester_id
                == course_on_semesters.c.course_on_semester_id,
            )
        )
        .where(student_course_enrollments.c.student_id == student_id)
    )
    return [dict(row) for row in result.mappings()]


async def get_lecturer_assigned_slots(
    conn: AsyncConnection,
    lecturer_id: str,
) -> list[dict[str, Any]]:
    """Every slot the lecturer is assigned to teach (pending requests excluded)."""
    result = await conn.execute(
        select(
            course_on_semesters.c.course_on_semester_id,
            course_on_semesters.c.day_of_week,
            course_on_semesters.c.start_time,
            course_on_semesters.c.end_time,
        )
        .where(course_on_semesters.c.lecturer_id == lecturer_id)
    )
    return [dict(row) for row in result.mappings()]


async def count_enrollments(conn: AsyncConnection, course_on_semester_id: str) -> int:
    result = await conn.execute(
        select(func.count())
        .select_from(student_course_enrollments)
        .where(
            student_course_enrollments.c.course_on_semester_id == course_on_semester_id
        )
    )
    return result.scalar_one()


async def create_enrollment(
    conn: AsyncConnection,
    student_id: str,
    course_on_semester_id: str,
) -> dict[str, Any]:
    """Insert an enrollment and return it."""
    values = {
        "enrollment_id": new_id(),
        "student_id": student_id,
        "course_on_semester_id": course_on_semester_id,
        "created_at": utcnow(),
    }
    await conn.execute(insert(student_course_enrollments).values(**values))
    return values


async def get_enrollment(
    conn: AsyncConnection,
    enrollment_id: str,
) -> dict[str, Any] | None:
    """Get an enrollment with the slot's semester and course name."""
    result = await conn.execute(
        select(
            student_course_enrollments,
            course_on_semesters.c.semester_id,
            courses.c.name.label("course_name"),
        )
        .select_from(
            student_course_enrollments.join(
                course_on_semesters,
                student_course_enrollments.c.course_on_semester_id
                == course_on_semesters.c.course_on_semester_id,
            ).join(courses, course_on_semesters.c.course_id == courses.c.course_id)
        )
        .where(student_course_enrollments.c.enrollment_id == enrollment_id)
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def delete_enrollment(
    conn: AsyncConnection,
    enrollment_id: str,
    student_id: str | None = None,
) -> bool:
    """Delete an enrollment, optionally scoped to its owner. Returns True if deleted."""
    query = delete(student_course_enrollments).where(
        student_course_enrollments.c.enrollment_id == enrollment_id
    )
    if student_id is not None:
        query = query.where(student_course_enrollments.c.student_id == student_id)
    result = await conn.execute(query)
    return result.rowcount > 0


async def assign_lecturer_if_unassigned(
    conn: AsyncConnection,
    course_on_semester_id: str,
    lecturer_id: str,
) -> bool:
    """
    Assign a lecturer only if the slot is still unassigned.

    Returns False when someone else got there first.
    """
    result = await conn.execute(
        update(course_on_semesters)
        .where(course_on_semesters.c.course_on_semester_id == course_on_semester_id)
        .where(course_on_semesters.c.lecturer_id.is_(None))
        .values(lecturer_id=lecturer_id)
    )
    return result.rowcount == 1
