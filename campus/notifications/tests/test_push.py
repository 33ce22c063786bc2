"""Tests for live push channels."""

from datetime import datetime, timezone

import pytest

from campus.enums import NotificationType
from campus.models import Notification, StudentRecipient
from campus.notifications.push import LoggingPushSink, PushHub


def make_notification(recipient_id="student-1", notification_id="n1"):
    return Notification(
        id=notification_id,
        recipient=StudentRecipient(recipient_id),
        title="Enrollment confirmed",
        message="You are now enrolled in Algorithms.",
        type=NotificationType.INFO,
        created_at=datetime(2026, 9, 1, 8, 0, tzinfo=timezone.utc),
    )


class TestPushHub:
    @pytest.mark.asyncio
    async def test_sends_payload_to_every_client_of_recipient(self):
        hub = PushHub()
        laptop = hub.subscribe("student-1")
        phone = hub.subscribe("student-1")
        other = hub.subscribe("student-2")

        await hub.send(make_notification())

        assert laptop.get_nowait()["id"] == "n1"
        assert phone.get_nowait()["recipientId"] == "student-1"
        assert other.empty()

    @pytest.mark.asyncio
    async def test_no_clients_is_a_no_op(self):
        hub = PushHub()
        await hub.send(make_notification())
        assert hub.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_slow_client_is_dropped(self):
        hub = PushHub(max_queue_size=1)
        queue = hub.subscribe("student-1")

        await hub.send(make_notification(notification_id="n1"))
        await hub.send(make_notification(notification_id="n2"))

        assert hub.subscriber_count("student-1") == 0
        assert queue.get_nowait()["id"] == "n1"

    def test_unsubscribe(self):
        hub = PushHub()
        queue = hub.subscribe("student-1")
        hub.subscribe("student-2")

        hub.unsubscribe("student-1", queue)
        hub.unsubscribe("student-1", queue)

        assert hub.subscriber_count("student-1") == 0
        assert hub.subscriber_count() == 1


class TestLoggingPushSink:
    @pytest.mark.asyncio
    async def test_send_only_logs(self):
        await LoggingPushSink().send(make_notification())
