"""Notification sink and read API."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import NotFoundError
from agrimart.models.enums import NotificationType
from agrimart.models.notification import Notification

logger = logging.getLogger(__name__)

MAX_LISTED = 50


class NotificationService:
    """Service class for notification operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        order_id: UUID | None = None,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        """Write a notification in its own commit.

        Called after the state change it reports has been committed. A
        failure here is logged and swallowed so it can never undo or block
        that state change.

        Returns:
            Created notification, or None if the write failed
        """
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            order_id=order_id,
            data=data or {},
        )
        try:
            self.db.add(notification)
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to create {type.value} notification for user {user_id}: {e}")
            await self.db.rollback()
            return None
        logger.debug(f"Notification {type.value} created for user {user_id}")
        return notification

    async def list_for_user(self, user_id: UUID, unread_only: bool = False) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.db.execute(
            query.order_by(Notification.created_at.desc()).limit(MAX_LISTED)
        )
        return list(result.scalars().all())

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Notification.notification_id))
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
        )
        return result.scalar_one()

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Notification:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.notification_id == notification_id)
            .where(Notification.user_id == user_id)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def mark_all_read(self, user_id: UUID) -> None:
        await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await self.db.commit()

    async def delete(self, user_id: UUID, notification_id: UUID) -> None:
        result = await self.db.execute(
            delete(Notification)
            .where(Notification.notification_id == notification_id)
            .where(Notification.user_id == user_id)
            .returning(Notification.notification_id)
        )
        if result.first() is None:
            raise NotFoundError("Notification not found")
        await self.db.commit()
