from fastapi import APIRouter, Depends
from typing import List, Optional

from app.auth.security import get_guard
from app.db.access import AccessGuard
from app.models.notification import Notification
from app.schemas.notification import Notification as NotificationSchema

router = APIRouter()


@router.get("/", response_model=List[NotificationSchema])
def read_notifications(
    unread: Optional[bool] = None,
    skip: int = 0,
    limit: int = 100,
    guard: AccessGuard = Depends(get_guard)
):
    query = guard.query(Notification)
    if unread is not None:
        query = query.filter(Notification.is_read.is_(not unread))
    return query.order_by(Notification.id.desc()).offset(skip).limit(limit).all()


@router.patch("/{notification_id}/read", response_model=NotificationSchema)
def mark_notification_read(
    notification_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    notification = guard.get(Notification, notification_id)
    guard.update(notification, {"is_read": True})
    guard.commit()
    guard.db.refresh(notification)
    return notification
