"""Database queries for notifications (the recipient's inbox)."""

from typing import Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..models import Notification, Recipient, recipient_columns
from ..tables import notifications


def _owned_by(recipient: Recipient):
    columns = recipient_columns(recipient)
    if columns["student_id"] is not None:
        return notifications.c.student_id == columns["student_id"]
    return notifications.c.lecturer_id == columns["lecturer_id"]


async def insert_notifications(
    conn: AsyncConnection,
    batch: Sequence[Notification],
) -> int:
    """
    Insert a batch of notifications with a single executemany.

    Atomicity comes from the caller's transaction.
    """
    if not batch:
        return 0
    await conn.execute(insert(notifications), [n.to_row() for n in batch])
    return len(batch)


async def list_notifications(
    conn: AsyncConnection,
    recipient: Recipient,
    unread_only: bool = False,
    limit: int | None = None,
) -> list[Notification]:
    """Recipient's notifications, newest first."""
    query = (
        select(notifications)
        .where(_owned_by(recipient))
        .order_by(notifications.c.created_at.desc())
    )
    if unread_only:
        query = query.where(notifications.c.is_read.is_(False))
    if limit is not None:
        query = query.limit(limit)
    result = await conn.execute(query)
    return [Notification.from_row(row) for row in result.mappings()]


async def get_notification(
    conn: AsyncConnection,
    notification_id: str,
    recipient: Recipient,
) -> Notification | None:
    result = await conn.execute(
        select(notifications)
        .where(notifications.c.notification_id == notification_id)
        .where(_owned_by(recipient))
    )
    row = result.mappings().first()
    return Notification.from_row(row) if row else None


async def count_unread(conn: AsyncConnection, recipient: Recipient) -> int:
    result = await conn.execute(
        select(func.count())
        .select_from(notifications)
        .where(_owned_by(recipient))
        .where(notifications.c.is_read.is_(False))
    )
    return result.scalar_one()


async def mark_as_read(
    conn: AsyncConnection,
    notification_id: str,
    recipient: Recipient,
) -> bool:
    """Mark one notification read. False if it doesn't exist or isn't the recipient's."""
    result = await conn.execute(
        update(notifications)
        .where(notifications.c.notification_id == notification_id)
        .where(_owned_by(recipient))
        .values(is_read=True)
    )
    return result.rowcount > 0


async def mark_all_as_read(conn: AsyncConnection, recipient: Recipient) -> int:
    """Returns the number of notifications that changed."""
    result = await conn.execute(
        update(notifications)
        .where(_owned_by(recipient))
        .where(notifications.c.is_read.is_(False))
        .values(is_read=True)
    )
    return result.rowcount


async def delete_notification(
    conn: AsyncConnection,
    notification_id: str,
    recipient: Recipient,
) -> bool:
    result = await conn.execute(
        delete(notifications)
        .where(notifications.c.notification_id == notification_id)
        .where(_owned_by(recipient))
    )
    return result.rowcount > 0


async def delete_all_notifications(conn: AsyncConnection, recipient: Recipient) -> int:
    result = await conn.execute(delete(notifications).where(_owned_by(recipient)))
    return result.rowcount
