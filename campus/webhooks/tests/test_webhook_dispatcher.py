"""Tests for webhook delivery.

HTTP is served by httpx.MockTransport; delivery logs go to the test database.
"""

import asyncio
import json
import time
from datetime import datetime, timezone

import httpx
import pytest

from campus.constants import WEBHOOK_SIGNATURE_HEADER
from campus.database import get_connection
from campus.enums import DeliveryStatus, NotificationType
from campus.models import LecturerRecipient, Notification, StudentRecipient
from campus.queries.webhooks import list_delivery_logs
from campus.webhooks.dispatcher import (
    MAX_LOGGED_RESPONSE_CHARS,
    WebhookDispatcher,
    build_webhook_payload,
)
from campus.webhooks.signing import sign_payload, verify_webhook_signature


def make_notification(recipient, notification_id="n1"):
    return Notification(
        id=notification_id,
        recipient=recipient,
        title="Exam tomorrow",
        message="Reminder: your exam for Databases is tomorrow.",
        type=NotificationType.WARNING,
        created_at=datetime(2026, 8, 10, 8, 0, tzinfo=timezone.utc),
        url="http://localhost:3000/exams",
    )


def make_dispatcher(db_engine, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookDispatcher(db_engine, client=client, timeout=1.0, max_concurrency=2)


async def logs_for(db_engine, webhook_id):
    async with get_connection(db_engine) as conn:
        return await list_delivery_logs(conn, webhook_id)


class TestBuildWebhookPayload:
    def test_envelope(self):
        payload = build_webhook_payload(make_notification(StudentRecipient("student-1")))

        assert payload["event"] == "notification"
        assert list(payload["data"]) == [
            "id",
            "title",
            "message",
            "url",
            "type",
            "recipientId",
            "createdAt",
        ]
        assert payload["data"]["type"] == "WARNING"
        assert payload["data"]["createdAt"] == "2026-08-10T08:00:00+00:00"


class TestDeliver:
    @pytest.mark.asyncio
    async def test_signed_post_and_success_log(self, db_engine, seed):
        """Should sign the exact body sent and log a successful attempt."""
        student = StudentRecipient(await seed.student())
        webhook_id = await seed.webhook(student, url="https://hooks.example.com/a", secret="s3cret")
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        dispatcher = make_dispatcher(db_engine, handler)
        results = await dispatcher.deliver(
            [make_notification(student)], event="exam_schedule.reminder"
        )
        await dispatcher.aclose()

        assert [r.ok for r in results] == [True]
        request = requests[0]
        assert str(request.url) == "https://hooks.example.com/a"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers[WEBHOOK_SIGNATURE_HEADER] == sign_payload("s3cret", request.content)
        assert verify_webhook_signature(
            "s3cret", request.content, request.headers[WEBHOOK_SIGNATURE_HEADER]
        )
        assert json.loads(request.content)["data"]["recipientId"] == student.id

        logs = await logs_for(db_engine, webhook_id)
        assert len(logs) == 1
        assert logs[0]["status"] == DeliveryStatus.success
        assert logs[0]["status_code"] == 200
        assert logs[0]["event"] == "exam_schedule.reminder"
        assert logs[0]["notification_id"] == "n1"
        assert logs[0]["error_message"] is None

    @pytest.mark.asyncio
    async def test_non_2xx_is_logged_as_failed(self, db_engine, seed):
        student = StudentRecipient(await seed.student())
        webhook_id = await seed.webhook(student)

        def handler(request):
            return httpx.Response(500, text="x" * (MAX_LOGGED_RESPONSE_CHARS + 500))

        dispatcher = make_dispatcher(db_engine, handler)
        results = await dispatcher.deliver([make_notification(student)])

        assert results[0].status is DeliveryStatus.failed
        assert results[0].status_code == 500
        logs = await logs_for(db_engine, webhook_id)
        assert logs[0]["status"] == DeliveryStatus.failed
        assert logs[0]["error_message"] == "HTTP 500"
        assert len(logs[0]["response_body"]) == MAX_LOGGED_RESPONSE_CHARS

    @pytest.mark.asyncio
    async def test_timeout_is_logged_and_does_not_raise(self, db_engine, seed):
        student = StudentRecipient(await seed.student())
        webhook_id = await seed.webhook(student)

        def handler(request):
            raise httpx.ReadTimeout("endpoint hung", request=request)

        dispatcher = make_dispatcher(db_engine, handler)
        results = await dispatcher.deliver([make_notification(student)])

        assert results[0].status is DeliveryStatus.failed
        assert results[0].status_code is None
        logs = await logs_for(db_engine, webhook_id)
        assert logs[0]["error_message"].startswith("Timed out after 1.0s")

    @pytest.mark.asyncio
    async def test_connection_error_is_logged(self, db_engine, seed):
        student = StudentRecipient(await seed.student())
        webhook_id = await seed.webhook(student)

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        dispatcher = make_dispatcher(db_engine, handler)
        await dispatcher.deliver([make_notification(student)])

        logs = await logs_for(db_engine, webhook_id)
        assert logs[0]["error_message"] == "ConnectError: refused"

    @pytest.mark.asyncio
    async def test_only_active_webhooks_of_recipients(self, db_engine, seed):
        student = StudentRecipient(await seed.student())
        lecturer = LecturerRecipient(await seed.lecturer())
        outsider = StudentRecipient(await seed.student())
        await seed.webhook(student, url="https://hooks.example.com/student-1")
        await seed.webhook(student, url="https://hooks.example.com/student-2")
        await seed.webhook(student, url="https://hooks.example.com/off", is_active=False)
        await seed.webhook(lecturer, url="https://hooks.example.com/lecturer")
        await seed.webhook(outsider, url="https://hooks.example.com/outsider")
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(204)

        dispatcher = make_dispatcher(db_engine, handler)
        results = await dispatcher.deliver(
            [make_notification(student, "n1"), make_notification(lecturer, "n2")]
        )

        assert len(results) == 3
        assert sorted(urls) == [
            "https://hooks.example.com/lecturer",
            "https://hooks.example.com/student-1",
            "https://hooks.example.com/student-2",
        ]

    @pytest.mark.asyncio
    async def test_no_webhooks_no_requests(self, db_engine, seed):
        student = StudentRecipient(await seed.student())

        def handler(request):
            raise AssertionError("no request expected")

        dispatcher = make_dispatcher(db_engine, handler)

        assert await dispatcher.deliver([make_notification(student)]) == []
        assert await dispatcher.deliver([]) == []

    @pytest.mark.asyncio
    async def test_hung_endpoint_does_not_hold_up_others(self, db_engine, seed):
        """Should cut a hung attempt at the timeout while other webhooks finish."""
        student = StudentRecipient(await seed.student())
        hung_id = await seed.webhook(student, url="https://hooks.example.com/hung")
        fast_id = await seed.webhook(student, url="https://hooks.example.com/fast")

        async def handler(request):
            if request.url.path == "/hung":
                await asyncio.sleep(30)
            return httpx.Response(200)

        dispatcher = WebhookDispatcher(
            db_engine,
            transport=httpx.MockTransport(handler),
            timeout=0.2,
            max_concurrency=2,
        )
        started = time.monotonic()
        results = await dispatcher.deliver([make_notification(student)])
        elapsed = time.monotonic() - started
        await dispatcher.aclose()

        by_webhook = {r.webhook_id: r for r in results}
        assert by_webhook[fast_id].ok
        assert by_webhook[fast_id].duration_ms < 200
        assert by_webhook[hung_id].status is DeliveryStatus.failed
        assert elapsed < 5
        hung_logs = await logs_for(db_engine, hung_id)
        assert hung_logs[0]["status"] == DeliveryStatus.failed
        assert hung_logs[0]["error_message"].startswith("Timed out after 0.2s")

    @pytest.mark.asyncio
    async def test_redirect_loop_past_limit_is_logged_as_failed(self, db_engine, seed):
        student = StudentRecipient(await seed.student())
        webhook_id = await seed.webhook(student, url="https://hooks.example.com/hop/0")
        hops = []

        def handler(request):
            hop = int(request.url.path.rsplit("/", 1)[1])
            hops.append(hop)
            return httpx.Response(
                302, headers={"Location": f"https://hooks.example.com/hop/{hop + 1}"}
            )

        dispatcher = WebhookDispatcher(
            db_engine,
            transport=httpx.MockTransport(handler),
            timeout=1.0,
            max_redirects=2,
        )
        results = await dispatcher.deliver([make_notification(student)])
        await dispatcher.aclose()

        assert hops == [0, 1, 2]
        assert results[0].status is DeliveryStatus.failed
        assert results[0].status_code is None
        logs = await logs_for(db_engine, webhook_id)
        assert len(logs) == 1
        assert logs[0]["status"] == DeliveryStatus.failed
        assert logs[0]["error_message"].startswith("TooManyRedirects")
