"""Tests for the conflict detector and enrollment window."""

from datetime import datetime, timedelta, timezone

import pytest

from campus.conflicts import (
    TimeSlot,
    check_enrollment_conflict,
    check_teaching_request_conflict,
    find_conflicting_slot,
    is_enrollment_open,
)
from campus.database import get_connection
from campus.queries.slots import get_course_on_semester
from campus.timeslots import parse_time_of_day as hm


def slot(slot_id, day, start, end):
    return TimeSlot(
        course_on_semester_id=slot_id,
        day_of_week=day,
        start_time=hm(start) if start else None,
        end_time=hm(end) if end else None,
    )


class TestFindConflictingSlot:
    def test_identical_slot_id_always_conflicts(self):
        """Duplicate guard wins even when the slot has no fixed time."""
        target = slot("cos-1", None, None, None)
        existing = [slot("cos-1", None, None, None)]

        assert find_conflicting_slot(target, existing) == existing[0]

    def test_returns_first_overlapping_slot(self):
        target = slot("cos-1", 1, "09:00", "11:00")
        existing = [
            slot("cos-2", 2, "09:00", "11:00"),
            slot("cos-3", 1, "10:00", "12:00"),
            slot("cos-4", 1, "08:00", "09:30"),
        ]

        assert find_conflicting_slot(target, existing).course_on_semester_id == "cos-3"

    def test_unscheduled_slots_coexist(self):
        target = slot("cos-1", None, None, None)
        existing = [slot("cos-2", None, None, None), slot("cos-3", 1, None, None)]

        assert find_conflicting_slot(target, existing) is None

    def test_no_existing_slots(self):
        assert find_conflicting_slot(slot("cos-1", 1, "08:00", "10:00"), []) is None


class TestCheckEnrollmentConflict:
    @pytest.mark.asyncio
    async def test_detects_overlap_with_enrolled_course(self, db_engine, seed):
        semester_id = await seed.semester()
        student_id = await seed.student()
        enrolled = await seed.course_slot(semester_id, "Databases", 3, "08:00", "10:00")
        await seed.enroll(student_id, enrolled)
        clashing = await seed.course_slot(semester_id, "Networks", 3, "09:00", "11:00")
        free = await seed.course_slot(semester_id, "Compilers", 3, "10:00", "12:00")

        async with get_connection(db_engine) as conn:
            clashing_slot = TimeSlot.from_row(await get_course_on_semester(conn, clashing))
            free_slot = TimeSlot.from_row(await get_course_on_semester(conn, free))
            enrolled_slot = TimeSlot.from_row(await get_course_on_semester(conn, enrolled))

            assert await check_enrollment_conflict(conn, student_id, clashing_slot)
            assert not await check_enrollment_conflict(conn, student_id, free_slot)
            assert await check_enrollment_conflict(conn, student_id, enrolled_slot)

    @pytest.mark.asyncio
    async def test_enrollments_in_other_semesters_count(self, db_engine, seed):
        """Should check every enrolled slot, not only those of the target's semester."""
        spring = await seed.semester("Spring 2026", datetime(2026, 2, 1, tzinfo=timezone.utc))
        fall = await seed.semester("Fall 2026")
        student_id = await seed.student()
        await seed.enroll(student_id, await seed.course_slot(spring, "Old", 1, "08:00", "10:00"))
        clashing = await seed.course_slot(fall, "New", 1, "09:00", "11:00")
        free = await seed.course_slot(fall, "Later", 1, "10:00", "12:00")

        async with get_connection(db_engine) as conn:
            clashing_slot = TimeSlot.from_row(await get_course_on_semester(conn, clashing))
            free_slot = TimeSlot.from_row(await get_course_on_semester(conn, free))

            assert await check_enrollment_conflict(conn, student_id, clashing_slot)
            assert not await check_enrollment_conflict(conn, student_id, free_slot)


class TestCheckTeachingRequestConflict:
    @pytest.mark.asyncio
    async def test_only_assigned_slots_count(self, db_engine, seed):
        semester_id = await seed.semester()
        lecturer_id = await seed.lecturer()
        await seed.course_slot(semester_id, "Taught", 2, "09:00", "11:00", lecturer_id=lecturer_id)
        target = await seed.course_slot(semester_id, "Wanted", 2, "08:00", "10:00")
        other = await seed.course_slot(semester_id, "Other", 3, "08:00", "10:00")

        async with get_connection(db_engine) as conn:
            target_slot = TimeSlot.from_row(await get_course_on_semester(conn, target))
            other_slot = TimeSlot.from_row(await get_course_on_semester(conn, other))

            assert await check_teaching_request_conflict(conn, lecturer_id, target_slot)
            assert not await check_teaching_request_conflict(conn, lecturer_id, other_slot)


class TestIsEnrollmentOpen:
    @pytest.mark.asyncio
    async def test_window_is_inclusive(self, db_engine, seed):
        semester_id = await seed.semester()
        start = datetime(2026, 8, 1, 8, 0, tzinfo=timezone.utc)
        end = start + timedelta(days=14)
        await seed.session(semester_id, start, end)

        async with get_connection(db_engine) as conn:
            assert await is_enrollment_open(conn, semester_id, start)
            assert await is_enrollment_open(conn, semester_id, end)
            assert await is_enrollment_open(conn, semester_id, start + timedelta(days=1))
            assert not await is_enrollment_open(conn, semester_id, start - timedelta(minutes=1))
            assert not await is_enrollment_open(conn, semester_id, end + timedelta(minutes=1))

    @pytest.mark.asyncio
    async def test_inactive_session_is_closed(self, db_engine, seed):
        semester_id = await seed.semester()
        start = datetime(2026, 8, 1, tzinfo=timezone.utc)
        await seed.session(semester_id, start, start + timedelta(days=14), is_active=False)

        async with get_connection(db_engine) as conn:
            assert not await is_enrollment_open(conn, semester_id, start + timedelta(days=1))
