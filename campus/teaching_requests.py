"""
Lecturer teaching requests: create, approve, reject, list.

A request is unique per (lecturer, course-on-semester). It starts PENDING
and moves once to APPROVED (which assigns the lecturer to the slot) or
REJECTED. A rejected request can be reopened by requesting again.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from .config import get_scheduler_timezone
from .conflicts import TimeSlot, find_lecturer_conflict
from .constants import UNKNOWN_COURSE, UNKNOWN_SEMESTER
from .database import get_connection, get_transaction
from .enums import TeachingRequestStatus
from .errors import (
    AlreadyAssignedError,
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    ScheduleConflictError,
    SemesterNotStartedError,
)
from .events import EventBus, EventName
from .queries import slots as slot_queries
from .queries import teaching_requests as request_queries
from .timeslots import format_slot
from .timezone import local_date, utcnow

logger = logging.getLogger(__name__)


def _semester_has_started(semester_start: datetime, now: datetime, tz_name: str) -> bool:
    """Calendar-day comparison: a semester starting today has started."""
    return local_date(semester_start, tz_name) <= local_date(now, tz_name)


async def create_teaching_request(
    engine: AsyncEngine,
    lecturer_id: str,
    course_on_semester_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Request to teach a course-on-semester.

    Checks run in this order, and the first failure is raised:

    Raises:
        NotFoundError: The course-on-semester doesn't exist
        AlreadyAssignedError: It already has a lecturer, or this lecturer's
            request for it was approved
        SemesterNotStartedError: Its semester starts after today
        DuplicateRequestError: A PENDING request for the pair exists
        ScheduleConflictError: It overlaps a slot the lecturer already teaches

    Returns:
        The request, now PENDING
    """
    now = now or utcnow()
    tz_name = get_scheduler_timezone()

    async with get_transaction(engine) as conn:
        slot = await slot_queries.get_course_on_semester(conn, course_on_semester_id)
        if slot is None:
            raise NotFoundError(f"Course-on-semester {course_on_semester_id} not found")

        if slot["lecturer_id"]:
            raise AlreadyAssignedError(
                f"{slot['course_name']} already has an assigned lecturer"
            )

        if not _semester_has_started(slot["semester_start_date"], now, tz_name):
            raise SemesterNotStartedError(
                f"{slot['semester_name']} has not started yet"
            )

        existing = await request_queries.get_request_by_pair(
            conn, lecturer_id, course_on_semester_id
        )
        if existing is not None:
            if existing["status"] == TeachingRequestStatus.PENDING:
                raise DuplicateRequestError(
                    f"A request for {slot['course_name']} is already pending"
                )
            if existing["status"] == TeachingRequestStatus.APPROVED:
                raise AlreadyAssignedError(
                    f"Already assigned to {slot['course_name']}"
                )

        target = TimeSlot.from_row(slot)
        conflict = await find_lecturer_conflict(conn, lecturer_id, target)
        if conflict is not None:
            raise ScheduleConflictError(
                f"{slot['course_name']} "
                f"({format_slot(target.day_of_week, target.start_time, target.end_time)}) "
                f"conflicts with an assigned course "
                f"({format_slot(conflict.day_of_week, conflict.start_time, conflict.end_time)})"
            )

        request_id = await request_queries.upsert_pending_request(
            conn, lecturer_id, course_on_semester_id
        )
        request = await request_queries.get_request(conn, request_id)

    logger.info(
        f"Lecturer {lecturer_id} requested to teach {course_on_semester_id}"
    )
    return request


async def approve_teaching_request(
    engine: AsyncEngine,
    bus: EventBus,
    request_id: str,
) -> dict[str, Any]:
    """
    Approve a PENDING request and assign the lecturer to the slot.

    The assignment and the status change commit together; the assignment
    only succeeds if the slot is still unassigned.

    Raises:
        NotFoundError: If the request doesn't exist
        InvalidStateError: If the request is not PENDING
        AlreadyAssignedError: If another lecturer was assigned meanwhile
    """
    async with get_transaction(engine) as conn:
        request = await request_queries.get_request(conn, request_id)
        if request is None:
            raise NotFoundError(f"Teaching request {request_id} not found")

        if not await request_queries.set_request_status_if(
            conn,
            request_id,
            TeachingRequestStatus.PENDING,
            TeachingRequestStatus.APPROVED,
        ):
            raise InvalidStateError(f"Teaching request {request_id} is not pending")

        if not await slot_queries.assign_lecturer_if_unassigned(
            conn, request["course_on_semester_id"], request["lecturer_id"]
        ):
            raise AlreadyAssignedError(
                f"{request['course_name']} already has an assigned lecturer"
            )

    logger.info(f"Teaching request {request_id} approved")
    bus.publish(
        EventName.LECTURER_REQUEST_APPROVED,
        lecturer_id=request["lecturer_id"],
        course_on_semester_id=request["course_on_semester_id"],
        course_name=request["course_name"] or UNKNOWN_COURSE,
        semester_name=request["semester_name"] or UNKNOWN_SEMESTER,
    )
    return {**request, "status": TeachingRequestStatus.APPROVED}


async def reject_teaching_request(
    engine: AsyncEngine,
    bus: EventBus,
    request_id: str,
) -> dict[str, Any]:
    """
    Reject a PENDING request.

    Raises:
        NotFoundError: If the request doesn't exist
        InvalidStateError: If the request is not PENDING
    """
    async with get_transaction(engine) as conn:
        request = await request_queries.get_request(conn, request_id)
        if request is None:
            raise NotFoundError(f"Teaching request {request_id} not found")

        if not await request_queries.set_request_status_if(
            conn,
            request_id,
            TeachingRequestStatus.PENDING,
            TeachingRequestStatus.REJECTED,
        ):
            raise InvalidStateError(f"Teaching request {request_id} is not pending")

    logger.info(f"Teaching request {request_id} rejected")
    bus.publish(
        EventName.LECTURER_REQUEST_REJECTED,
        lecturer_id=request["lecturer_id"],
        course_on_semester_id=request["course_on_semester_id"],
        course_name=request["course_name"] or UNKNOWN_COURSE,
        semester_name=request["semester_name"] or UNKNOWN_SEMESTER,
    )
    return {**request, "status": TeachingRequestStatus.REJECTED}


async def list_teaching_requests(
    engine: AsyncEngine,
    lecturer_id: str | None = None,
    status: TeachingRequestStatus | None = None,
) -> list[dict[str, Any]]:
    """A lecturer's own requests, or all requests (admin view) when lecturer_id is None."""
    async with get_connection(engine) as conn:
        return await request_queries.list_requests(conn, lecturer_id, status)
