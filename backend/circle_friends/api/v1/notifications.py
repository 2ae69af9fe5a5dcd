from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from circle_friends.api.deps import get_ensured_user_id, get_notification_service
from circle_friends.schemas.notification import NotificationOut
from circle_friends.services.notifications import NotificationService

router = APIRouter()


class UnreadCountOut(BaseModel):
    count: int


class MarkAllReadOut(BaseModel):
    updated: int


@router.get("/notifications", response_model=list[NotificationOut])
async def list_notifications(
    user_id: str = Depends(get_ensured_user_id),
    notifications: NotificationService = Depends(get_notification_service),
    limit: int = Query(50, ge=1, le=100),
):
    return await notifications.get_notifications(user_id, limit=limit)


@router.get("/notifications/unread-count", response_model=UnreadCountOut)
async def unread_count(
    user_id: str = Depends(get_ensured_user_id),
    notifications: NotificationService = Depends(get_notification_service),
):
    return UnreadCountOut(count=await notifications.get_unread_count(user_id))


@router.post("/notifications/read-all", response_model=MarkAllReadOut)
async def mark_all_read(
    user_id: str = Depends(get_ensured_user_id),
    notifications: NotificationService = Depends(get_notification_service),
):
    return MarkAllReadOut(updated=await notifications.mark_all_as_read(user_id))


@router.post("/notifications/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user_id: str = Depends(get_ensured_user_id),
    notifications: NotificationService = Depends(get_notification_service),
):
    if not await notifications.mark_as_read(user_id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"ok": True}


@router.delete("/notifications/{notification_id}")
async def delete_notification(
    notification_id: int,
    user_id: str = Depends(get_ensured_user_id),
    notifications: NotificationService = Depends(get_notification_service),
):
    if not await notifications.delete_notification(user_id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"ok": True}
