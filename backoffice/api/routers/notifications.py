"""Notification endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_admin, protect_user
from backoffice.api.schemas.common import ok, paginated
from backoffice.api.schemas.notifications import InboxItemOut, NotificationCreate, NotificationOut
from backoffice.core.rbac import require_permission
from backoffice.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ============== Admin ==============

@router.post("/admin/send", status_code=status.HTTP_201_CREATED)
@require_permission("notification:create")
async def send_notification(
    body: NotificationCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Broadcast a notification to every active user."""
    notification, recipients = NotificationService(db).send(
        title=body.title, message=body.message, sender=principal.admin
    )
    data = NotificationOut.model_validate(notification)
    data.sender_name = principal.admin.name
    data.total_recipients = recipients
    return ok(
        {"notification": data, "recipientCount": recipients},
        f"Notification sent to {recipients} users successfully",
    )


@router.get("/admin/all")
@require_permission("notification:read")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    rows, total = NotificationService(db).list_all(page=page, limit=limit, search=search)
    items = []
    for row in rows:
        item = NotificationOut.model_validate(row.notification)
        item.sender_name = row.notification.sender.name if row.notification.sender else None
        item.total_recipients = row.total_recipients
        item.read_count = row.read_count
        items.append(item)
    return ok(paginated("notifications", items, page, limit, total), "Notifications fetched successfully")


@router.delete("/admin/{notification_id}")
@require_permission("notification:delete")
async def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    NotificationService(db).delete(notification_id)
    return ok(None, "Notification deleted successfully")


# ============== User ==============

@router.get("/user/notifications")
async def list_inbox(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_read: Optional[bool] = Query(None, alias="isRead"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    deliveries, total = NotificationService(db).inbox(
        principal.user, page=page, limit=limit, is_read=is_read
    )
    items = [InboxItemOut.from_delivery(d) for d in deliveries]
    return ok(paginated("notifications", items, page, limit, total), "Notifications fetched successfully")


@router.get("/user/unread-count")
async def unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    count = NotificationService(db).unread_count(principal.user)
    return ok({"unreadCount": count}, "Unread count fetched successfully")


@router.put("/user/mark-read/{notification_id}")
async def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    delivery = NotificationService(db).mark_read(notification_id, principal.user)
    return ok(InboxItemOut.from_delivery(delivery), "Notification marked as read")


@router.put("/user/mark-all-read")
async def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    updated = NotificationService(db).mark_all_read(principal.user)
    return ok({"updatedCount": updated}, "All notifications marked as read")
