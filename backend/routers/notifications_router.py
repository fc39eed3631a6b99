# backend/routers/notifications_router.py
from fastapi import APIRouter, Depends, Query
from typing import List

from domain.records import NotificationRecord
from routers.dependencies import get_notification_inbox
from services.notification_service import NotificationInbox

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=List[NotificationRecord])
def list_notifications(
    user_id: int,
    unread_only: bool = Query(default=False),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    return inbox.list_notifications(user_id, offset=offset, limit=limit, unread_only=unread_only)


@router.get("/unread-count")
def unread_count(user_id: int, inbox: NotificationInbox = Depends(get_notification_inbox)):
    return {"unread_count": inbox.unread_count(user_id)}


@router.post("/read-all")
def mark_all_read(user_id: int, inbox: NotificationInbox = Depends(get_notification_inbox)):
    return {"updated": inbox.mark_all_read(user_id)}


@router.post("/{notification_id}/read")
def mark_read(notification_id: int, user_id: int, inbox: NotificationInbox = Depends(get_notification_inbox)):
    inbox.mark_read(user_id, notification_id)
    return {"message": "Notification marked as read"}
