"""
Validity engine: schedule conflicts and enrollment windows.

Pure predicates plus thin async wrappers that load the caller's existing
commitments. Nothing here writes to the database.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncConnection

from .queries.sessions import has_open_session
from .queries.slots import get_lecturer_assigned_slots, get_student_enrolled_slots
from .timeslots import overlaps


@dataclass(frozen=True)
class TimeSlot:
    """A course-on-semester's weekly slot. Times are minutes from midnight."""

    course_on_semester_id: str
    day_of_week: Optional[int]
    start_time: Optional[int]
    end_time: Optional[int]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TimeSlot":
        return cls(
            course_on_semester_id=row["course_on_semester_id"],
            day_of_week=row.get("day_of_week"),
            start_time=row.get("start_time"),
            end_time=row.get("end_time"),
        )

    @property
    def is_scheduled(self) -> bool:
        return (
            self.day_of_week is not None
            and self.start_time is not None
            and self.end_time is not None
        )

    def overlaps(self, other: "TimeSlot") -> bool:
        return overlaps(
            self.day_of_week,
            self.start_time,
            self.end_time,
            other.day_of_week,
            other.start_time,
            other.end_time,
        )


def find_conflicting_slot(
    target: TimeSlot,
    existing: Iterable[TimeSlot],
) -> Optional[TimeSlot]:
    """
    First existing slot that conflicts with target, or None.

    The same course-on-semester always conflicts with itself, scheduled or
    not. Otherwise unscheduled slots never conflict.
    """
    for slot in existing:
        if slot.course_on_semester_id == target.course_on_semester_id:
            return slot
        if target.overlaps(slot):
            return slot
    return None


async def find_student_conflict(
    conn: AsyncConnection,
    student_id: str,
    target: TimeSlot,
) -> Optional[TimeSlot]:
    """Enrolled slot that conflicts with target, if any."""
    rows = await get_student_enrolled_slots(conn, student_id)
    return find_conflicting_slot(target, [TimeSlot.from_row(r) for r in rows])


async def find_lecturer_conflict(
    conn: AsyncConnection,
    lecturer_id: str,
    target: TimeSlot,
) -> Optional[TimeSlot]:
    """
    Assigned slot that conflicts with target, if any.

    Only assigned courses count; other pending requests do not block.
    """
    rows = await get_lecturer_assigned_slots(conn, lecturer_id)
    return find_conflicting_slot(target, [TimeSlot.from_row(r) for r in rows])


async def check_enrollment_conflict(
    conn: AsyncConnection,
    student_id: str,
    target: TimeSlot,
) -> bool:
    return await find_student_conflict(conn, student_id, target) is not None


async def check_teaching_request_conflict(
    conn: AsyncConnection,
    lecturer_id: str,
    target: TimeSlot,
) -> bool:
    return await find_lecturer_conflict(conn, lecturer_id, target) is not None


async def is_enrollment_open(
    conn: AsyncConnection,
    semester_id: str,
    now: datetime,
) -> bool:
    """True if an active session of the semester contains now (inclusive)."""
    return await has_open_session(conn, semester_id, now)
