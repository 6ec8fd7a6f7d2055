from datetime import datetime
from typing import Optional

from pydantic import Field

from backoffice.db.models import UserNotification

from .common import CamelModel


class NotificationCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)


class NotificationOut(CamelModel):
    id: int
    title: str
    message: str
    sent_by: Optional[int] = None
    sender_name: Optional[str] = None
    created_at: Optional[datetime] = None
    total_recipients: int = 0
    read_count: int = 0


class InboxItemOut(CamelModel):
    id: int
    title: str
    message: str
    sender_name: Optional[str] = None
    created_at: Optional[datetime] = None
    is_read: bool
    read_at: Optional[datetime] = None
    received_at: Optional[datetime] = None

    @classmethod
    def from_delivery(cls, delivery: UserNotification) -> "InboxItemOut":
        notification = delivery.notification
        return cls(
            id=notification.id,
            title=notification.title,
            message=notification.message,
            sender_name=notification.sender.name if notification.sender else None,
            created_at=notification.created_at,
            is_read=delivery.is_read,
            read_at=delivery.read_at,
            received_at=delivery.created_at,
        )
