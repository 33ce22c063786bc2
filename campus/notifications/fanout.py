"""
Notification fan-out - turns domain events into per-recipient notifications.

For each event:
    1. resolve the recipient set (one user, a course roster, or everyone active)
    2. insert one notification row per recipient in a single transaction
    3. after commit, hand each row to the push sink
    4. then hand the batch to the webhook dispatcher

Steps 3 and 4 are best-effort: their failures are logged and do not undo
the batch or stop each other.
"""

import enum
import logging
from typing import Optional

import sentry_sdk
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ..database import get_transaction
from ..events import Event, EventBus, EventName
from ..models import LecturerRecipient, Notification, Recipient, StudentRecipient
from ..queries.notifications import insert_notifications
from ..queries.recipients import (
    get_active_lecturer_ids,
    get_active_student_ids,
    get_assigned_lecturer_id,
    get_enrolled_student_ids,
)
from ..tables import new_id
from ..timezone import utcnow
from ..webhooks.dispatcher import WebhookDispatcher
from .push import LoggingPushSink, PushSink
from .templates import render_notification

logger = logging.getLogger(__name__)


class Audience(enum.Enum):
    STUDENT = "student"
    LECTURER = "lecturer"
    ROSTER = "roster"
    ROSTER_AND_LECTURER = "roster_and_lecturer"
    ACTIVE_STUDENTS = "active_students"
    ACTIVE_STUDENTS_AND_LECTURERS = "active_students_and_lecturers"


_FAMILY_AUDIENCE = {
    "enrollment": Audience.STUDENT,
    "student": Audience.STUDENT,
    "lecturer": Audience.LECTURER,
    "lecturer_request": Audience.LECTURER,
    "document": Audience.ROSTER,
    "exam_schedule": Audience.ROSTER,
    "course_semester": Audience.ROSTER_AND_LECTURER,
    "enrollment_session": Audience.ACTIVE_STUDENTS,
    "semester": Audience.ACTIVE_STUDENTS_AND_LECTURERS,
}

EVENT_AUDIENCE: dict[EventName, Audience] = {
    name: _FAMILY_AUDIENCE[name.family] for name in EventName
}


def _require(event: Event, key: str) -> str:
    value = event.payload.get(key)
    if not value:
        raise ValueError(f"{event.name.value} payload is missing {key}")
    return value


async def resolve_recipients(conn: AsyncConnection, event: Event) -> list[Recipient]:
    """
    Recipients for an event, in a stable order and without duplicates.

    Raises:
        ValueError: If the payload lacks the id the audience needs
    """
    audience = EVENT_AUDIENCE[event.name]
    recipients: list[Recipient] = []

    if audience is Audience.STUDENT:
        recipients.append(StudentRecipient(_require(event, "student_id")))

    elif audience is Audience.LECTURER:
        recipients.append(LecturerRecipient(_require(event, "lecturer_id")))

    elif audience in (Audience.ROSTER, Audience.ROSTER_AND_LECTURER):
        course_on_semester_id = _require(event, "course_on_semester_id")
        student_ids = await get_enrolled_student_ids(conn, course_on_semester_id)
        recipients.extend(StudentRecipient(sid) for sid in student_ids)
        if audience is Audience.ROSTER_AND_LECTURER:
            lecturer_id = await get_assigned_lecturer_id(conn, course_on_semester_id)
            if lecturer_id:
                recipients.append(LecturerRecipient(lecturer_id))

    else:
        student_ids = await get_active_student_ids(conn)
        recipients.extend(StudentRecipient(sid) for sid in student_ids)
        if audience is Audience.ACTIVE_STUDENTS_AND_LECTURERS:
            lecturer_ids = await get_active_lecturer_ids(conn)
            recipients.extend(LecturerRecipient(lid) for lid in lecturer_ids)

    return list(dict.fromkeys(recipients))


class NotificationFanout:
    """Event handler that persists and forwards notifications."""

    def __init__(
        self,
        engine: AsyncEngine,
        push_sink: Optional[PushSink] = None,
        dispatcher: Optional[WebhookDispatcher] = None,
    ):
        self._engine = engine
        self._push_sink = push_sink or LoggingPushSink()
        self._dispatcher = dispatcher

    def register(self, bus: EventBus) -> None:
        """Subscribe to every event in the vocabulary."""
        for name in EventName:
            bus.subscribe(name, self.handle)

    async def handle(self, event: Event) -> list[Notification]:
        """
        Fan an event out to its recipients.

        Raises if the batch can't be written (nothing is stored in that
        case); push and webhook failures are only logged.

        Returns:
            The committed notifications (empty when nobody is addressed)
        """
        rendered = render_notification(event.name.value, event.payload)

        async with get_transaction(self._engine) as conn:
            recipients = await resolve_recipients(conn, event)
            if not recipients:
                logger.info(f"No recipients for {event.name.value}, skipping")
                return []

            created_at = utcnow()
            batch = [
                Notification(
                    id=new_id(),
                    recipient=recipient,
                    title=rendered.title,
                    message=rendered.message,
                    type=rendered.type,
                    created_at=created_at,
                    url=rendered.url,
                )
                for recipient in recipients
            ]
            await insert_notifications(conn, batch)

        logger.info(f"Created {len(batch)} notification(s) for {event.name.value}")

        await self._push(batch)
        await self._deliver_webhooks(batch, event)
        return batch

    async def _push(self, batch: list[Notification]) -> None:
        for notification in batch:
            try:
                await self._push_sink.send(notification)
            except Exception as e:
                logger.error(f"Push failed for notification {notification.id}: {e}")
                sentry_sdk.capture_exception(e)

    async def _deliver_webhooks(self, batch: list[Notification], event: Event) -> None:
        if self._dispatcher is None:
            return
        try:
            await self._dispatcher.deliver(batch, event=event.name.value)
        except Exception as e:
            logger.error(f"Webhook dispatch failed for {event.name.value}: {e}")
            sentry_sdk.capture_exception(e)
