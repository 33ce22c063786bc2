"""
Enrollment session lifecycle: open, close, and the event payload both share.

Closing always goes through the conditional update in
queries.sessions.close_session_if_active, whether an admin or the
scheduler asks for it, so a session is announced closed exactly once.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from .config import get_scheduler_timezone
from .constants import UNKNOWN_SEMESTER, UNKNOWN_SESSION
from .database import get_connection, get_transaction
from .errors import NotFoundError, PreconditionError
from .events import EventBus, EventName
from .queries import sessions as session_queries
from .timezone import format_datetime_in_timezone, to_utc, utcnow

logger = logging.getLogger(__name__)


def session_payload(session: dict[str, Any], tz_name: str | None = None) -> dict[str, Any]:
    """Event payload for enrollment_session.* events."""
    tz_name = tz_name or get_scheduler_timezone()
    return {
        "session_id": session["session_id"],
        "semester_id": session.get("semester_id"),
        "session_name": session.get("name") or UNKNOWN_SESSION,
        "semester_name": session.get("semester_name") or UNKNOWN_SEMESTER,
        "end_date": format_datetime_in_timezone(session["end_date"], tz_name),
    }


async def open_enrollment_session(
    engine: AsyncEngine,
    bus: EventBus,
    semester_id: str,
    name: str,
    start_date: datetime,
    end_date: datetime,
) -> dict[str, Any]:
    """
    Create an active session and announce it.

    Raises:
        PreconditionError: If the window is empty or inverted
        NotFoundError: If the semester doesn't exist
    """
    if to_utc(end_date) <= to_utc(start_date):
        raise PreconditionError("Session end_date must be after start_date")

    async with get_transaction(engine) as conn:
        if await session_queries.get_semester(conn, semester_id) is None:
            raise NotFoundError(f"Semester {semester_id} not found")
        session_id = await session_queries.create_session(
            conn, semester_id, name, start_date, end_date
        )
        session = await session_queries.get_session(conn, session_id)

    logger.info(f"Opened enrollment session {session_id} for semester {semester_id}")
    bus.publish(EventName.SESSION_OPENED, session_payload(session))
    return session


async def close_and_announce(
    engine: AsyncEngine,
    bus: EventBus,
    session: dict[str, Any],
    now: datetime | None = None,
    tz_name: str | None = None,
) -> bool:
    """
    Close a session if it is still active and publish enrollment_session.closed.

    Returns:
        True only if this call flipped the session; the event is published
        after the update has committed.
    """
    now = now or utcnow()
    async with get_transaction(engine) as conn:
        flipped = await session_queries.close_session_if_active(
            conn, session["session_id"], now
        )
    if not flipped:
        logger.debug(f"Session {session['session_id']} already closed")
        return False

    bus.publish(EventName.SESSION_CLOSED, session_payload(session, tz_name))
    return True


async def close_enrollment_session(
    engine: AsyncEngine,
    bus: EventBus,
    session_id: str,
    now: datetime | None = None,
) -> bool:
    """
    Manually close a session.

    Returns False if it was already closed.

    Raises:
        NotFoundError: If the session doesn't exist
    """
    async with get_connection(engine) as conn:
        session = await session_queries.get_session(conn, session_id)
    if session is None:
        raise NotFoundError(f"Enrollment session {session_id} not found")

    closed = await close_and_announce(engine, bus, session, now)
    if closed:
        logger.info(f"Enrollment session {session_id} closed manually")
    return closed
