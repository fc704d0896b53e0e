"""Notification API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from agrimart.api.deps import CurrentUser, DbSession
from agrimart.schemas.common import MessageResponse
from agrimart.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from agrimart.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    db: DbSession,
    current_user: CurrentUser,
    unread_only: bool = Query(False),
):
    """Latest notifications, newest first."""
    service = NotificationService(db)
    notifications = await service.list_for_user(current_user.user_id, unread_only=unread_only)
    return NotificationListResponse(notifications=notifications)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(db: DbSession, current_user: CurrentUser):
    service = NotificationService(db)
    return UnreadCountResponse(count=await service.unread_count(current_user.user_id))


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(db: DbSession, current_user: CurrentUser):
    service = NotificationService(db)
    await service.mark_all_read(current_user.user_id)
    return MessageResponse(message="All notifications marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: UUID, db: DbSession, current_user: CurrentUser):
    service = NotificationService(db)
    return await service.mark_read(current_user.user_id, notification_id)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(notification_id: UUID, db: DbSession, current_user: CurrentUser):
    service = NotificationService(db)
    await service.delete(current_user.user_id, notification_id)
    return MessageResponse(message="Notification deleted")
