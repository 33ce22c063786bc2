"""
Value types shared by the notification core.

A recipient is either a student or a lecturer, never both. In the database
this is two nullable foreign keys guarded by a CHECK constraint; in Python
it is one of two small frozen dataclasses.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from .enums import NotificationType, RecipientKind
from .timezone import to_utc


@dataclass(frozen=True)
class StudentRecipient:
    id: str

    @property
    def kind(self) -> RecipientKind:
        return RecipientKind.student


@dataclass(frozen=True)
class LecturerRecipient:
    id: str

    @property
    def kind(self) -> RecipientKind:
        return RecipientKind.lecturer


Recipient = Union[StudentRecipient, LecturerRecipient]


def recipient_columns(recipient: Recipient) -> dict[str, Optional[str]]:
    """Map a recipient onto the (student_id, lecturer_id) column pair."""
    if isinstance(recipient, StudentRecipient):
        return {"student_id": recipient.id, "lecturer_id": None}
    if isinstance(recipient, LecturerRecipient):
        return {"student_id": None, "lecturer_id": recipient.id}
    raise TypeError(f"Unsupported recipient: {recipient!r}")


def recipient_from_row(row: Mapping[str, Any]) -> Recipient:
    """Inverse of recipient_columns()."""
    if row.get("student_id"):
        return StudentRecipient(row["student_id"])
    if row.get("lecturer_id"):
        return LecturerRecipient(row["lecturer_id"])
    raise ValueError("Row has neither student_id nor lecturer_id")


@dataclass(frozen=True)
class Notification:
    """One persisted notification row addressed to exactly one recipient."""

    id: str
    recipient: Recipient
    title: str
    message: str
    type: NotificationType
    created_at: datetime
    url: Optional[str] = None
    is_read: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Notification":
        return cls(
            id=row["notification_id"],
            recipient=recipient_from_row(row),
            title=row["title"],
            message=row["message"],
            type=NotificationType(row["type"]),
            created_at=to_utc(row["created_at"]),
            url=row.get("url"),
            is_read=bool(row.get("is_read", False)),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "notification_id": self.id,
            **recipient_columns(self.recipient),
            "title": self.title,
            "message": self.message,
            "url": self.url,
            "type": self.type,
            "is_read": self.is_read,
            "created_at": self.created_at,
        }

    def to_payload(self) -> dict[str, Any]:
        """
        Wire representation used by webhooks and the push channel.

        Key order is part of the webhook signature contract.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "message": self.message,
        }
        if self.url:
            data["url"] = self.url
        data["type"] = self.type.value
        data["recipientId"] = self.recipient.id
        data["createdAt"] = self.created_at.isoformat()
        return data
