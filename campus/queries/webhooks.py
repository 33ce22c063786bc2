"""Database queries for webhooks and their delivery log."""

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..models import (
    LecturerRecipient,
    Recipient,
    StudentRecipient,
    recipient_columns,
)
from ..tables import new_id, webhook_delivery_logs, webhooks
from ..timezone import to_utc, utcnow

# Columns safe to hand back to the owner (the secret is shown once, at creation)
PUBLIC_COLUMNS = [
    webhooks.c.webhook_id,
    webhooks.c.student_id,
    webhooks.c.lecturer_id,
    webhooks.c.url,
    webhooks.c.is_active,
    webhooks.c.created_at,
    webhooks.c.updated_at,
]


def _owned_by(owner: Recipient):
    columns = recipient_columns(owner)
    if columns["student_id"] is not None:
        return webhooks.c.student_id == columns["student_id"]
    return webhooks.c.lecturer_id == columns["lecturer_id"]


async def insert_webhook(
    conn: AsyncConnection,
    owner: Recipient,
    url: str,
    secret: str,
) -> dict[str, Any]:
    """Insert a webhook and return the full row, secret included."""
    now = utcnow()
    values = {
        "webhook_id": new_id(),
        **recipient_columns(owner),
        "url": url,
        "secret": secret,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    await conn.execute(insert(webhooks).values(**values))
    return values


async def get_webhook_for_owner(
    conn: AsyncConnection,
    webhook_id: str,
    owner: Recipient,
) -> dict[str, Any] | None:
    result = await conn.execute(
        select(*PUBLIC_COLUMNS)
        .where(webhooks.c.webhook_id == webhook_id)
        .where(_owned_by(owner))
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def list_webhooks_for_owner(
    conn: AsyncConnection,
    owner: Recipient,
) -> list[dict[str, Any]]:
    result = await conn.execute(
        select(*PUBLIC_COLUMNS)
        .where(_owned_by(owner))
        .order_by(webhooks.c.created_at.desc())
    )
    return [dict(row) for row in result.mappings()]


async def update_webhook_for_owner(
    conn: AsyncConnection,
    webhook_id: str,
    owner: Recipient,
    **updates: Any,
) -> bool:
    updates["updated_at"] = utcnow()
    result = await conn.execute(
        update(webhooks)
        .where(webhooks.c.webhook_id == webhook_id)
        .where(_owned_by(owner))
        .values(**updates)
    )
    return result.rowcount > 0


async def delete_webhook_for_owner(
    conn: AsyncConnection,
    webhook_id: str,
    owner: Recipient,
) -> bool:
    result = await conn.execute(
        delete(webhooks)
        .where(webhooks.c.webhook_id == webhook_id)
        .where(_owned_by(owner))
    )
    return result.rowcount > 0


async def get_active_webhooks_for(
    conn: AsyncConnection,
    recipients: Iterable[Recipient],
) -> list[dict[str, Any]]:
    """
    Active webhooks (secrets included) owned by any of the recipients.

    One query per batch rather than one per notification.
    """
    recipients = set(recipients)
    student_ids = [r.id for r in recipients if isinstance(r, StudentRecipient)]
    lecturer_ids = [r.id for r in recipients if isinstance(r, LecturerRecipient)]

    conditions = []
    if student_ids:
        conditions.append(webhooks.c.student_id.in_(student_ids))
    if lecturer_ids:
        conditions.append(webhooks.c.lecturer_id.in_(lecturer_ids))
    if not conditions:
        return []

    result = await conn.execute(
        select(webhooks)
        .where(webhooks.c.is_active.is_(True))
        .where(or_(*conditions))
        .order_by(webhooks.c.created_at)
    )
    return [dict(row) for row in result.mappings()]


async def insert_delivery_log(
    conn: AsyncConnection,
    webhook_id: str,
    notification_id: str | None,
    event: str,
    status: str,
    status_code: int | None,
    response_body: str | None,
    error_message: str | None,
    duration_ms: int,
    created_at: datetime,
) -> None:
    await conn.execute(
        insert(webhook_delivery_logs).values(
            webhook_id=webhook_id,
            notification_id=notification_id,
            event=event,
            status=status,
            status_code=status_code,
            response_body=response_body,
            error_message=error_message,
            duration_ms=duration_ms,
            created_at=to_utc(created_at),
        )
    )


async def list_delivery_logs(
    conn: AsyncConnection,
    webhook_id: str,
    limit: int = 50,
) -> list[dict[str, Any]]:
    result = await conn.execute(
        select(webhook_delivery_logs)
        .where(webhook_delivery_logs.c.webhook_id == webhook_id)
        .order_by(webhook_delivery_logs.c.log_id.desc())
        .limit(limit)
    )
    return [dict(row) for row in result.mappings()]
