"""Query layer for database operations using SQLAlchemy Core."""

from .notifications import (
    count_unread,
    delete_all_notifications,
    delete_notification,
    insert_notifications,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
)
from .sessions import close_session_if_active, has_open_session

__all__ = [
    # Notifications
    "insert_notifications",
    "list_notifications",
    "count_unread",
    "mark_as_read",
    "mark_all_as_read",
    "delete_notification",
    "delete_all_notifications",
    # Sessions
    "has_open_session",
    "close_session_if_active",
]
