"""Database queries for lecturer teaching requests."""

from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import TeachingRequestStatus
from ..tables import (
    course_on_semesters,
    courses,
    lecturer_teaching_requests,
    new_id,
    semesters,
)
from ..timezone import utcnow


def _requests_with_names():
    return select(
        lecturer_teaching_requests,
        courses.c.name.label("course_name"),
        semesters.c.name.label("semester_name"),
    ).select_from(
        lecturer_teaching_requests.join(
            course_on_semesters,
            lecturer_teaching_requests.c.course_on_semester_id
            == course_on_semesters.c.course_on_semester_id,
        )
        .join(courses, course_on_semesters.c.course_id == courses.c.course_id)
        .join(semesters, course_on_semesters.c.semester_id == semesters.c.semester_id)
    )


async def get_request(conn: AsyncConnection, request_id: str) -> dict[str, Any] | None:
    """Get a request with its course and semester names."""
    result = await conn.execute(
        _requests_with_names().where(
            lecturer_teaching_requests.c.request_id == request_id
        )
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def get_request_by_pair(
    conn: AsyncConnection,
    lecturer_id: str,
    course_on_semester_id: str,
) -> dict[str, Any] | None:
    result = await conn.execute(
        select(lecturer_teaching_requests)
        .where(lecturer_teaching_requests.c.lecturer_id == lecturer_id)
        .where(
            lecturer_teaching_requests.c.course_on_semester_id
            == course_on_semester_id
        )
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def upsert_pending_request(
    conn: AsyncConnection,
    lecturer_id: str,
    course_on_semester_id: str,
) -> str:
    """
    Create a PENDING request, or reset a previously rejected one to PENDING.

    There is at most one request per (lecturer, slot), so a rejected request
    is reopened rather than duplicated.

    Returns:
        The request_id
    """
    now = utcnow()
    existing = await get_request_by_pair(conn, lecturer_id, course_on_semester_id)
    if existing:
        await conn.execute(
            update(lecturer_teaching_requests)
            .where(lecturer_teaching_requests.c.request_id == existing["request_id"])
            .values(status=TeachingRequestStatus.PENDING, updated_at=now)
        )
        return existing["request_id"]

    request_id = new_id()
    await conn.execute(
        insert(lecturer_teaching_requests).values(
            request_id=request_id,
            lecturer_id=lecturer_id,
            course_on_semester_id=course_on_semester_id,
            status=TeachingRequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
    )
    return request_id


async def set_request_status_if(
    conn: AsyncConnection,
    request_id: str,
    from_status: TeachingRequestStatus,
    to_status: TeachingRequestStatus,
) -> bool:
    """Transition a request only if it is still in from_status."""
    result = await conn.execute(
        update(lecturer_teaching_requests)
        .where(lecturer_teaching_requests.c.request_id == request_id)
        .where(lecturer_teaching_requests.c.status == from_status)
        .values(status=to_status, updated_at=utcnow())
    )
    return result.rowcount == 1


async def list_requests(
    conn: AsyncConnection,
    lecturer_id: str | None = None,
    status: TeachingRequestStatus | None = None,
) -> list[dict[str, Any]]:
    """Requests newest first, optionally filtered by lecturer and status."""
    query = _requests_with_names().order_by(
        lecturer_teaching_requests.c.created_at.desc()
    )
    if lecturer_id is not None:
        query = query.where(lecturer_teaching_requests.c.lecturer_id == lecturer_id)
    if status is not None:
        query = query.where(lecturer_teaching_requests.c.status == status)
    result = await conn.execute(query)
    return [dict(row) for row in result.mappings()]
