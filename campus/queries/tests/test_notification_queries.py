"""Tests for notification inbox queries."""

from datetime import datetime, timedelta, timezone

import pytest

from campus.database import get_connection, get_transaction
from campus.enums import NotificationType
from campus.models import LecturerRecipient, Notification, StudentRecipient
from campus.queries.notifications import (
    count_unread,
    delete_all_notifications,
    delete_notification,
    get_notification,
    insert_notifications,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
)

BASE = datetime(2026, 9, 1, 8, 0, tzinfo=timezone.utc)
ALICE = StudentRecipient("student-1")
BOB = StudentRecipient("student-2")
LECTURER = LecturerRecipient("student-1")


def make_notification(notification_id, recipient, minutes=0):
    return Notification(
        id=notification_id,
        recipient=recipient,
        title=f"Title {notification_id}",
        message="Body",
        type=NotificationType.INFO,
        created_at=BASE + timedelta(minutes=minutes),
    )


@pytest.fixture
def inbox_rows():
    return [
        make_notification("a1", ALICE, minutes=0),
        make_notification("a2", ALICE, minutes=5),
        make_notification("a3", ALICE, minutes=10),
        make_notification("b1", BOB, minutes=1),
        make_notification("l1", LECTURER, minutes=2),
    ]


async def insert(db_engine, rows):
    async with get_transaction(db_engine) as conn:
        return await insert_notifications(conn, rows)


class TestInsertAndList:
    @pytest.mark.asyncio
    async def test_lists_newest_first_for_recipient(self, db_engine, inbox_rows):
        assert await insert(db_engine, inbox_rows) == 5

        async with get_connection(db_engine) as conn:
            alice = await list_notifications(conn, ALICE)
            lecturer = await list_notifications(conn, LECTURER)
            limited = await list_notifications(conn, ALICE, limit=2)

        assert [n.id for n in alice] == ["a3", "a2", "a1"]
        assert alice[0].created_at == BASE + timedelta(minutes=10)
        assert alice[0].recipient == ALICE
        assert [n.id for n in lecturer] == ["l1"]
        assert [n.id for n in limited] == ["a3", "a2"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, db_engine):
        assert await insert(db_engine, []) == 0

    @pytest.mark.asyncio
    async def test_get_is_owner_scoped(self, db_engine, inbox_rows):
        await insert(db_engine, inbox_rows)

        async with get_connection(db_engine) as conn:
            assert (await get_notification(conn, "a1", ALICE)).title == "Title a1"
            assert await get_notification(conn, "a1", BOB) is None
            assert await get_notification(conn, "a1", LECTURER) is None


class TestReadState:
    @pytest.mark.asyncio
    async def test_mark_one_and_all(self, db_engine, inbox_rows):
        await insert(db_engine, inbox_rows)

        async with get_transaction(db_engine) as conn:
            assert await count_unread(conn, ALICE) == 3
            assert await mark_as_read(conn, "a1", ALICE)
            assert not await mark_as_read(conn, "b1", ALICE)
            assert await count_unread(conn, ALICE) == 2

            unread = await list_notifications(conn, ALICE, unread_only=True)
            assert [n.id for n in unread] == ["a3", "a2"]

            assert await mark_all_as_read(conn, ALICE) == 2
            assert await mark_all_as_read(conn, ALICE) == 0
            assert await count_unread(conn, ALICE) == 0
            assert await count_unread(conn, BOB) == 1


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_one_and_all(self, db_engine, inbox_rows):
        await insert(db_engine, inbox_rows)

        async with get_transaction(db_engine) as conn:
            assert not await delete_notification(conn, "a1", BOB)
            assert await delete_notification(conn, "a1", ALICE)
            assert await delete_all_notifications(conn, ALICE) == 2
            assert await list_notifications(conn, ALICE) == []
            assert len(await list_notifications(conn, BOB)) == 1
