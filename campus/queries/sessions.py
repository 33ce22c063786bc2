"""Database queries for enrollment sessions, semesters and exam dates.

Datetime parameters are normalized to UTC before they reach the database.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import (
    course_on_semesters,
    courses,
    enrollment_sessions,
    exam_schedules,
    new_id,
    semesters,
)
from ..timezone import to_utc, utcnow


def _sessions_with_semester():
    return select(
        enrollment_sessions,
        semesters.c.name.label("semester_name"),
    ).select_from(
        enrollment_sessions.join(
            semesters, enrollment_sessions.c.semester_id == semesters.c.semester_id
        )
    )


async def get_session(conn: AsyncConnection, session_id: str) -> dict[str, Any] | None:
    result = await conn.execute(
        _sessions_with_semester().where(
            enrollment_sessions.c.session_id == session_id
        )
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def create_session(
    conn: AsyncConnection,
    semester_id: str,
    name: str,
    start_date: datetime,
    end_date: datetime,
) -> str:
    """
    Create an active enrollment session.

    Returns:
        The new session_id
    """
    session_id = new_id()
    now = utcnow()
    await conn.execute(
        insert(enrollment_sessions).values(
            session_id=session_id,
            semester_id=semester_id,
            name=name,
            start_date=to_utc(start_date),
            end_date=to_utc(end_date),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
    )
    return session_id


async def has_open_session(
    conn: AsyncConnection,
    semester_id: str,
    now: datetime,
) -> bool:
    """True if an active session of the semester has start <= now <= end."""
    now = to_utc(now)
    result = await conn.execute(
        select(enrollment_sessions.c.session_id)
        .where(enrollment_sessions.c.semester_id == semester_id)
        .where(enrollment_sessions.c.is_active.is_(True))
        .where(enrollment_sessions.c.start_date <= now)
        .where(enrollment_sessions.c.end_date >= now)
        .limit(1)
    )
    return result.first() is not None


async def close_session_if_active(
    conn: AsyncConnection,
    session_id: str,
    now: datetime,
) -> bool:
    """
    Compare-and-swap close: flips is_active only if it is still true.

    Returns True only for the caller that actually performed the flip, so
    concurrent scheduler ticks and admin closes cannot both report it.
    """
    result = await conn.execute(
        update(enrollment_sessions)
        .where(enrollment_sessions.c.session_id == session_id)
        .where(enrollment_sessions.c.is_active.is_(True))
        .values(is_active=False, updated_at=to_utc(now))
    )
    return result.rowcount == 1


async def get_active_sessions_ending_between(
    conn: AsyncConnection,
    start: datetime,
    end: datetime,
) -> list[dict[str, Any]]:
    """Active sessions with start <= end_date < end."""
    result = await conn.execute(
        _sessions_with_semester()
        .where(enrollment_sessions.c.is_active.is_(True))
        .where(enrollment_sessions.c.end_date >= to_utc(start))
        .where(enrollment_sessions.c.end_date < to_utc(end))
        .order_by(enrollment_sessions.c.end_date)
    )
    return [dict(row) for row in result.mappings()]


async def get_expired_active_sessions(
    conn: AsyncConnection,
    now: datetime,
) -> list[dict[str, Any]]:
    """Active sessions whose end_date is in the past."""
    result = await conn.execute(
        _sessions_with_semester()
        .where(enrollment_sessions.c.is_active.is_(True))
        .where(enrollment_sessions.c.end_date < to_utc(now))
        .order_by(enrollment_sessions.c.end_date)
    )
    return [dict(row) for row in result.mappings()]


async def get_semesters_starting_between(
    conn: AsyncConnection,
    start: datetime,
    end: datetime,
) -> list[dict[str, Any]]:
    result = await conn.execute(
        select(semesters)
        .where(semesters.c.start_date >= to_utc(start))
        .where(semesters.c.start_date < to_utc(end))
    )
    return [dict(row) for row in result.mappings()]


async def get_semesters_ending_between(
    conn: AsyncConnection,
    start: datetime,
    end: datetime,
) -> list[dict[str, Any]]:
    result = await conn.execute(
        select(semesters)
        .where(semesters.c.end_date >= to_utc(start))
        .where(semesters.c.end_date < to_utc(end))
    )
    return [dict(row) for row in result.mappings()]


async def get_exams_on(conn: AsyncConnection, exam_date: date) -> list[dict[str, Any]]:
    """Exams scheduled on a calendar date, with their course name."""
    result = await conn.execute(
        select(
            exam_schedules,
            courses.c.name.label("course_name"),
        )
        .select_from(
            exam_schedules.join(
                course_on_semesters,
                exam_schedules.c.course_on_semester_id
                == course_on_semesters.c.course_on_semester_id,
            ).join(courses, course_on_semesters.c.course_id == courses.c.course_id)
        )
        .where(exam_schedules.c.exam_date == exam_date)
    )
    return [dict(row) for row in result.mappings()]


async def get_semester(conn: AsyncConnection, semester_id: str) -> dict[str, Any] | None:
    result = await conn.execute(
        select(semesters).where(semesters.c.semester_id == semester_id)
    )
    row = result.mappings().first()
    return dict(row) if row else None
