"""
Outbound webhook delivery.

For a batch of freshly created notifications, finds the recipients' active
webhooks and POSTs each one a signed JSON body. Every attempt is recorded
in webhook_delivery_logs. There is no retry loop here: a failed delivery is
logged as failed and left for an external re-scan.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Sequence

import httpx
import sentry_sdk
from sqlalchemy.ext.asyncio import AsyncEngine

from ..config import (
    get_webhook_max_concurrency,
    get_webhook_max_redirects,
    get_webhook_timeout_seconds,
)
from ..constants import WEBHOOK_EVENT_NAME, WEBHOOK_SIGNATURE_HEADER
from ..database import get_connection, get_transaction
from ..enums import DeliveryStatus
from ..models import Notification, Recipient, recipient_from_row
from ..queries.webhooks import get_active_webhooks_for, insert_delivery_log
from ..timezone import utcnow
from .signing import canonical_json, sign_payload

logger = logging.getLogger(__name__)

# Response bodies are truncated before they are stored
MAX_LOGGED_RESPONSE_CHARS = 1000


@dataclass(frozen=True)
class DeliveryResult:
    webhook_id: str
    notification_id: str
    status: DeliveryStatus
    status_code: int | None = None
    error: str | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.success


def build_webhook_payload(notification: Notification) -> dict[str, Any]:
    """The envelope POSTed to every webhook."""
    return {"event": WEBHOOK_EVENT_NAME, "data": notification.to_payload()}


class WebhookDispatcher:
    """Signs and delivers notifications to their recipients' webhooks."""

    def __init__(
        self,
        engine: AsyncEngine,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_redirects: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_concurrency: int | None = None,
    ):
        self._engine = engine
        self.timeout = timeout if timeout is not None else get_webhook_timeout_seconds()
        if client is None:
            client = httpx.AsyncClient(
                transport=transport,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                max_redirects=(
                    max_redirects
                    if max_redirects is not None
                    else get_webhook_max_redirects()
                ),
            )
        self._client = client
        self._semaphore = asyncio.Semaphore(
            max_concurrency
            if max_concurrency is not None
            else get_webhook_max_concurrency()
        )

    async def aclose(self) -> None:
        """Release the HTTP client. Call on shutdown."""
        await self._client.aclose()

    async def deliver(
        self,
        notifications: Sequence[Notification],
        event: str = WEBHOOK_EVENT_NAME,
    ) -> list[DeliveryResult]:
        """
        Deliver a notification batch to every matching active webhook.

        Deliveries run concurrently (bounded by the semaphore); each one is
        limited by the client timeout, so a hanging endpoint only costs its
        own slot. Never raises.

        Args:
            notifications: Notifications that have already been committed
            event: Domain event name recorded in the delivery log

        Returns:
            One DeliveryResult per (notification, webhook) attempt
        """
        if not notifications:
            return []

        try:
            async with get_connection(self._engine) as conn:
                webhooks = await get_active_webhooks_for(
                    conn, {n.recipient for n in notifications}
                )
        except Exception as e:
            logger.error(f"Failed to load webhooks for {event}: {e}")
            sentry_sdk.capture_exception(e)
            return []

        by_owner: dict[Recipient, list[dict]] = defaultdict(list)
        for webhook in webhooks:
            by_owner[recipient_from_row(webhook)].append(webhook)

        jobs = [
            (notification, webhook)
            for notification in notifications
            for webhook in by_owner.get(notification.recipient, [])
        ]
        if not jobs:
            return []

        logger.info(f"Delivering {len(jobs)} webhook(s) for {event}")
        results = await asyncio.gather(
            *(self._deliver_one(n, w, event) for n, w in jobs)
        )
        return list(results)

    async def _deliver_one(
        self,
        notification: Notification,
        webhook: dict,
        event: str,
    ) -> DeliveryResult:
        body = canonical_json(build_webhook_payload(notification))
        headers = {
            "Content-Type": "application/json",
            WEBHOOK_SIGNATURE_HEADER: sign_payload(webhook["secret"], body),
        }

        status_code = None
        response_body = None
        error = None

        async with self._semaphore:
            started = time.monotonic()
            try:
                # httpx times each phase separately; this caps the whole attempt
                response = await asyncio.wait_for(
                    self._client.post(webhook["url"], content=body, headers=headers),
                    timeout=self.timeout,
                )
                status_code = response.status_code
                response_body = response.text[:MAX_LOGGED_RESPONSE_CHARS]
                if not response.is_success:
                    error = f"HTTP {status_code}"
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                error = f"Timed out after {self.timeout}s: {e.__class__.__name__}"
            except httpx.HTTPError as e:
                error = f"{e.__class__.__name__}: {e}"
            except Exception as e:
                error = f"{e.__class__.__name__}: {e}"
                sentry_sdk.capture_exception(e)
            duration_ms = int((time.monotonic() - started) * 1000)

        result = DeliveryResult(
            webhook_id=webhook["webhook_id"],
            notification_id=notification.id,
            status=DeliveryStatus.success if error is None else DeliveryStatus.failed,
            status_code=status_code,
            error=error,
            duration_ms=duration_ms,
        )

        if result.ok:
            logger.debug(
                f"Webhook {result.webhook_id} accepted {notification.id} "
                f"({status_code}, {duration_ms}ms)"
            )
        else:
            logger.warning(
                f"Webhook {result.webhook_id} delivery failed for "
                f"{notification.id}: {error}"
            )

        await self._record(result, event, response_body)
        return result

    async def _record(
        self,
        result: DeliveryResult,
        event: str,
        response_body: str | None,
    ) -> None:
        try:
            async with get_transaction(self._engine) as conn:
                await insert_delivery_log(
                    conn,
                    webhook_id=result.webhook_id,
                    notification_id=result.notification_id,
                    event=event,
                    status=result.status,
                    status_code=result.status_code,
                    response_body=response_body,
                    error_message=result.error,
                    duration_ms=result.duration_ms,
                    created_at=utcnow(),
                )
        except Exception as e:
            logger.error(f"Failed to record delivery for webhook {result.webhook_id}: {e}")
            sentry_sdk.capture_exception(e)
