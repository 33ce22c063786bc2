"""Tests for opening and closing enrollment sessions."""

from datetime import datetime, timedelta, timezone

import pytest

from campus.database import get_connection
from campus.errors import NotFoundError, PreconditionError
from campus.events import EventName
from campus.queries.sessions import get_session
from campus.sessions import (
    close_enrollment_session,
    open_enrollment_session,
    session_payload,
)

START = datetime(2026, 8, 1, 8, 0, tzinfo=timezone.utc)
END = datetime(2026, 8, 15, 17, 0, tzinfo=timezone.utc)


class TestSessionPayload:
    def test_formats_end_date_in_timezone(self):
        session = {
            "session_id": "s1",
            "semester_id": "sem1",
            "name": "Main enrollment",
            "semester_name": "Fall 2026",
            "end_date": datetime(2026, 1, 10, 20, 0, tzinfo=timezone.utc),
        }

        payload = session_payload(session, "America/New_York")

        assert payload["end_date"] == "Saturday, January 10 at 3:00 PM (UTC-5)"
        assert payload["session_name"] == "Main enrollment"

    def test_missing_names_fall_back(self):
        payload = session_payload({"session_id": "s1", "end_date": END}, "UTC")

        assert payload["session_name"] == "the enrollment session"
        assert payload["semester_name"] == "the semester"
        assert payload["end_date"].endswith("(UTC)")


class TestOpenEnrollmentSession:
    @pytest.mark.asyncio
    async def test_creates_active_session_and_announces(self, db_engine, seed, recording_bus):
        semester_id = await seed.semester("Fall 2026")

        session = await open_enrollment_session(
            db_engine, recording_bus, semester_id, "Main enrollment", START, END
        )

        assert session["is_active"] is True
        assert session["semester_name"] == "Fall 2026"
        assert recording_bus.names() == [EventName.SESSION_OPENED]
        assert recording_bus.events[0].payload["session_id"] == session["session_id"]

    @pytest.mark.asyncio
    async def test_inverted_window_is_rejected(self, db_engine, seed, recording_bus):
        semester_id = await seed.semester()

        with pytest.raises(PreconditionError):
            await open_enrollment_session(db_engine, recording_bus, semester_id, "Bad", END, START)
        assert recording_bus.events == []

    @pytest.mark.asyncio
    async def test_unknown_semester(self, db_engine, recording_bus):
        with pytest.raises(NotFoundError):
            await open_enrollment_session(db_engine, recording_bus, "missing", "X", START, END)


class TestCloseEnrollmentSession:
    @pytest.mark.asyncio
    async def test_closes_once(self, db_engine, seed, recording_bus):
        semester_id = await seed.semester()
        session_id = await seed.session(semester_id, START, END)

        assert await close_enrollment_session(db_engine, recording_bus, session_id) is True
        assert await close_enrollment_session(db_engine, recording_bus, session_id) is False

        assert recording_bus.names() == [EventName.SESSION_CLOSED]
        async with get_connection(db_engine) as conn:
            session = await get_session(conn, session_id)
        assert session["is_active"] is False

    @pytest.mark.asyncio
    async def test_closing_ends_the_enrollment_window(self, db_engine, seed, recording_bus):
        from campus.conflicts import is_enrollment_open

        semester_id = await seed.semester()
        session_id = await seed.session(semester_id, START, END)
        during = START + timedelta(days=2)

        await close_enrollment_session(db_engine, recording_bus, session_id, now=during)

        async with get_connection(db_engine) as conn:
            assert not await is_enrollment_open(conn, semester_id, during)

    @pytest.mark.asyncio
    async def test_unknown_session(self, db_engine, recording_bus):
        with pytest.raises(NotFoundError):
            await close_enrollment_session(db_engine, recording_bus, "missing")
