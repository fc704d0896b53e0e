"""Notification schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    notification_id: UUID
    type: str
    title: str
    message: str
    order_id: UUID | None
    is_read: bool
    data: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: list[NotificationResponse]


class UnreadCountResponse(BaseModel):
    success: bool = True
    count: int
