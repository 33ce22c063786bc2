"""Root pytest configuration."""

from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    Fresh SQLite database (file-backed so separate connections share it).

    NullPool gives every get_connection()/get_transaction() its own sqlite
    connection, which is what the concurrency tests need.
    """
    from campus.tables import metadata

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'campus.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


class Seed:
    """Insert helpers for the tables the core reads but doesn't own."""

    def __init__(self, engine):
        self.engine = engine
        self._counter = 0

    def _next(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    async def _insert(self, table, **values) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(insert(table).values(**values))

    async def student(self, is_active: bool = True, full_name: str = "Test Student") -> str:
        from campus.tables import students

        student_id = self._next("student")
        await self._insert(
            students, student_id=student_id, full_name=full_name, is_active=is_active
        )
        return student_id

    async def lecturer(self, is_active: bool = True, full_name: str = "Test Lecturer") -> str:
        from campus.tables import lecturers

        lecturer_id = self._next("lecturer")
        await self._insert(
            lecturers, lecturer_id=lecturer_id, full_name=full_name, is_active=is_active
        )
        return lecturer_id

    async def semester(
        self,
        name: str = "Fall 2026",
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> str:
        from campus.tables import semesters

        start = start or datetime(2026, 9, 1, tzinfo=timezone.utc)
        end = end or start + timedelta(days=120)
        semester_id = self._next("semester")
        await self._insert(
            semesters, semester_id=semester_id, name=name, start_date=start, end_date=end
        )
        return semester_id

    async def course_slot(
        self,
        semester_id: str,
        name: str = "Algorithms",
        day: int | None = 1,
        start: str | None = "08:00",
        end: str | None = "10:00",
        lecturer_id: str | None = None,
        capacity: int | None = None,
    ) -> str:
        """Create a course and its course-on-semester slot; returns the slot id."""
        from campus.tables import course_on_semesters, courses
        from campus.timeslots import parse_time_of_day

        course_id = self._next("course")
        await self._insert(courses, course_id=course_id, name=name)

        course_on_semester_id = self._next("cos")
        await self._insert(
            course_on_semesters,
            course_on_semester_id=course_on_semester_id,
            course_id=course_id,
            semester_id=semester_id,
            lecturer_id=lecturer_id,
            day_of_week=day,
            start_time=parse_time_of_day(start) if start else None,
            end_time=parse_time_of_day(end) if end else None,
            capacity=capacity,
        )
        return course_on_semester_id

    async def enroll(self, student_id: str, course_on_semester_id: str) -> str:
        from campus.tables import student_course_enrollments

        enrollment_id = self._next("enrollment")
        await self._insert(
            student_course_enrollments,
            enrollment_id=enrollment_id,
            student_id=student_id,
            course_on_semester_id=course_on_semester_id,
        )
        return enrollment_id

    async def session(
        self,
        semester_id: str,
        start: datetime,
        end: datetime,
        is_active: bool = True,
        name: str = "Main enrollment",
    ) -> str:
        from campus.tables import enrollment_sessions

        session_id = self._next("session")
        await self._insert(
            enrollment_sessions,
            session_id=session_id,
            semester_id=semester_id,
            name=name,
            start_date=start,
            end_date=end,
            is_active=is_active,
        )
        return session_id

    async def exam(self, course_on_semester_id: str, exam_date: date) -> str:
        from campus.tables import exam_schedules

        exam_schedule_id = self._next("exam")
        await self._insert(
            exam_schedules,
            exam_schedule_id=exam_schedule_id,
            course_on_semester_id=course_on_semester_id,
            exam_date=exam_date,
        )
        return exam_schedule_id

    async def webhook(
        self,
        owner,
        url: str = "https://hooks.example.com/campus",
        secret: str = "test-secret",
        is_active: bool = True,
    ) -> str:
        from campus.models import recipient_columns
        from campus.tables import webhooks

        webhook_id = self._next("webhook")
        now = datetime.now(timezone.utc)
        await self._insert(
            webhooks,
            webhook_id=webhook_id,
            **recipient_columns(owner),
            url=url,
            secret=secret,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        return webhook_id


@pytest_asyncio.fixture
async def seed(db_engine):
    return Seed(db_engine)


# =============================================================================
# Event bus
# =============================================================================


@pytest.fixture
def recording_bus():
    """EventBus whose publish() records events instead of dispatching them."""
    from campus.events import Event, EventBus, EventName

    class RecordingBus(EventBus):
        def __init__(self):
            super().__init__()
            self.events: list[Event] = []

        def publish(self, name, payload=None, **fields):
            event = Event(name=EventName(name), payload={**(payload or {}), **fields})
            self.events.append(event)
            return event

        def names(self) -> list:
            return [event.name for event in self.events]

    return RecordingBus()
