"""Notification service.

Handles:
- Broadcasting a message to every active user-class identity
- Admin listing with delivery and read counts
- Per-user inbox, unread count and read receipts
"""

import logging
from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple

from sqlalchemy import case, func, insert, or_
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError
from backoffice.db.models import USER_CLASS_ROLE, Notification, User, UserNotification
from backoffice.db.pagination import paginate

logger = logging.getLogger(__name__)


class NotificationStats(NamedTuple):
    notification: Notification
    total_recipients: int
    read_count: int


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    # ============== Admin side ==============

    def send(self, *, title: str, message: str, sender: User) -> Tuple[Notification, int]:
        """Create a notification and deliver it to every active user.

        Delivery rows are written in one bulk insert within the same
        transaction as the notification. Returns the notification and the
        recipient count.
        """
        notification = Notification(title=title, message=message, sent_by=sender.id)
        self.db.add(notification)
        self.db.flush()

        recipient_ids = [
            uid for (uid,) in self.db.query(User.id).filter(
                User.status.is_(True),
                User.role == USER_CLASS_ROLE,
            ).all()
        ]
        if recipient_ids:
            self.db.execute(
                insert(UserNotification),
                [{"notification_id": notification.id, "user_id": uid} for uid in recipient_ids],
            )

        self.db.commit()
        self.db.refresh(notification)

        logger.info(
            "Notification %s sent by %s to %d users",
            notification.id, sender.id, len(recipient_ids),
        )
        return notification, len(recipient_ids)

    def list_all(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        sender_id: Optional[int] = None,
    ) -> Tuple[List[NotificationStats], int]:
        total_recipients = func.count(UserNotification.id)
        read_count = func.coalesce(
            func.sum(case((UserNotification.is_read.is_(True), 1), else_=0)), 0
        )

        query = (
            self.db.query(Notification, total_recipients, read_count)
            .outerjoin(UserNotification, UserNotification.notification_id == Notification.id)
            .group_by(Notification.id)
        )
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Notification.title.ilike(pattern),
                Notification.message.ilike(pattern),
            ))
        if sender_id is not None:
            query = query.filter(Notification.sent_by == sender_id)

        count_query = self.db.query(Notification)
        if search:
            count_query = count_query.filter(or_(
                Notification.title.ilike(f"%{search}%"),
                Notification.message.ilike(f"%{search}%"),
            ))
        if sender_id is not None:
            count_query = count_query.filter(Notification.sent_by == sender_id)
        total = count_query.count()

        rows = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [NotificationStats(n, int(t or 0), int(r or 0)) for n, t, r in rows], total

    def delete(self, notification_id: int) -> None:
        notification = self.db.get(Notification, notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        self.db.delete(notification)
        self.db.commit()
        logger.info("Notification %s deleted", notification_id)

    # ============== User side ==============

    def inbox(
        self,
        user: User,
        *,
        page: int = 1,
        limit: int = 20,
        is_read: Optional[bool] = None,
    ) -> Tuple[List[UserNotification], int]:
        query = (
            self.db.query(UserNotification)
            .options(joinedload(UserNotification.notification).joinedload(Notification.sender))
            .filter(UserNotification.user_id == user.id)
        )
        if is_read is not None:
            query = query.filter(UserNotification.is_read.is_(is_read))
        query = query.order_by(UserNotification.created_at.desc(), UserNotification.id.desc())
        return paginate(query, page, limit)

    def unread_count(self, user: User) -> int:
        return self.db.query(UserNotification).filter(
            UserNotification.user_id == user.id,
            UserNotification.is_read.is_(False),
        ).count()

    def mark_read(self, notification_id: int, user: User) -> UserNotification:
        delivery = self.db.query(UserNotification).filter(
            UserNotification.notification_id == notification_id,
            UserNotification.user_id == user.id,
        ).first()
        if not delivery:
            raise NotFoundError("Notification not found")

        if not delivery.is_read:
            delivery.is_read = True
            delivery.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(delivery)
        return delivery

    def mark_all_read(self, user: User) -> int:
        """Mark every unread delivery read. Returns how many changed."""
        updated = self.db.query(UserNotification).filter(
            UserNotification.user_id == user.id,
            UserNotification.is_read.is_(False),
        ).update(
            {UserNotification.is_read: True, UserNotification.read_at: datetime.utcnow()},
            synchronize_session=False,
        )
        self.db.commit()
        return updated
