"""
Notification Routes

POST /notifications - Send a notification to a user (staff)
GET /notifications - Own 20 latest notifications + unread count
PATCH /notifications/read-all - Mark all own notifications read
PATCH /notifications/{notification_id}/read - Mark one read
DELETE /notifications/{notification_id} - Delete one
DELETE /notifications - Delete all own notifications
"""

from fastapi import APIRouter, HTTPException, Depends

from app.core.auth import get_current_user, require_permission
from app.services import user_service
from app.services.notification_service import NotificationService
from app.schemas.schemas import (
    NotificationCreate, NotificationResponse, NotificationListResponse, MessageResponse
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post("", response_model=NotificationResponse, status_code=201)
async def create_notification(data: NotificationCreate,
                              user: dict = Depends(require_permission("notification.manage"))):
    if not user_service.get_user(data.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    notification = NotificationService().create(
        data.user_id, data.type.value, data.title, data.message, data.priority.value, data.application_id
    )
    return NotificationResponse(**notification)


@router.get("", response_model=NotificationListResponse)
async def my_notifications(user: dict = Depends(get_current_user)):
    service = NotificationService()
    return NotificationListResponse(
        notifications=[NotificationResponse(**n) for n in service.list_for_user(user["user_id"])],
        unread_count=service.unread_count(user["user_id"])
    )


@router.patch("/read-all", response_model=MessageResponse)
async def mark_all_read(user: dict = Depends(get_current_user)):
    count = NotificationService().mark_all_read(user["user_id"])
    return MessageResponse(message=f"{count} notifications marked as read")


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, user: dict = Depends(get_current_user)):
    notification = NotificationService().mark_read(notification_id, user["user_id"])
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationResponse(**notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    if not NotificationService().delete(notification_id, user["user_id"]):
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification deleted")


@router.delete("", response_model=MessageResponse)
async def delete_all_notifications(user: dict = Depends(get_current_user)):
    count = NotificationService().delete_all(user["user_id"])
    return MessageResponse(message=f"{count} notifications deleted")
