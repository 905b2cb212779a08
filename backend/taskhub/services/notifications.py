"""
Notification service layer.
Handles notification persistence, listing with filters, and read-state changes.
"""
from typing import Optional, List, Dict, Any, Callable, Awaitable
from sqlalchemy import select, update, delete, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.db.models import Notification
from taskhub.db.enums import NotificationType, RelatedType
from taskhub.schemas import NotificationResponse

# Looks up the current status of a task; None means the task no longer exists
TaskStatusResolver = Callable[[int], Awaitable[Optional[str]]]

# Task statuses that mean the assignee has accepted the task
ACCEPTED_TASK_STATUSES = {
    "in-progress",
    "accepted",
    "review",
    "completed",
    "deadline-extension-requested",
}


class NotificationService:
    """Service for managing notifications"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        related_id: Optional[int] = None,
        related_type: Optional[RelatedType] = None,
        link: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Create a new notification"""
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            related_id=related_id,
            related_type=related_type,
            link=link,
            data=data,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def get_notification(self, notification_id: int, user_id: int) -> Optional[Notification]:
        """Get a single notification owned by the user"""
        result = await self.db.execute(
            select(Notification).where(
                and_(
                    Notification.id == notification_id,
                    Notification.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_notifications(
        self,
        user_id: int,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        """List notifications for a user, newest first"""
        query = select(Notification).where(Notification.user_id == user_id)

        if is_read is not None:
            query = query.where(Notification.is_read == is_read)

        if notification_type:
            query = query.where(Notification.type == notification_type)

        # id breaks ties between rows created within the same clock tick
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_unread_count(self, user_id: int) -> int:
        """Get count of unread notifications"""
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                and_(
                    Notification.user_id == user_id,
                    Notification.is_read == False,
                )
            )
        )
        return result.scalar() or 0

    async def mark_as_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        """Mark a notification as read. Returns None when it does not exist."""
        notification = await self.get_notification(notification_id, user_id)
        if not notification:
            return None
        notification.is_read = True
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def mark_all_as_read(self, user_id: int) -> int:
        """Mark all notifications as read for a user"""
        result = await self.db.execute(
            update(Notification)
            .where(
                and_(
                    Notification.user_id == user_id,
                    Notification.is_read == False,
                )
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount

    async def delete_notification(self, notification_id: int, user_id: int) -> bool:
        """Delete a notification"""
        notification = await self.get_notification(notification_id, user_id)
        if not notification:
            return False
        await self.db.delete(notification)
        await self.db.commit()
        return True

    async def clear_read(self, user_id: int) -> int:
        """Delete every read notification of the user"""
        result = await self.db.execute(
            delete(Notification).where(
                and_(
                    Notification.user_id == user_id,
                    Notification.is_read == True,
                )
            )
        )
        await self.db.commit()
        return result.rowcount


async def enrich_with_task_status(
    notifications: List[Notification],
    resolve_task_status: Optional[TaskStatusResolver],
) -> List[NotificationResponse]:
    """
    Convert notifications to responses, attaching the current task status to
    professional task notifications.

    A task that can no longer be found is reported as ``deleted`` so clients
    can render the notification distinctly; the notification itself is kept.
    """
    responses = []
    for n in notifications:
        response = NotificationResponse.model_validate(n)
        if (
            resolve_task_status is not None
            and n.related_type == RelatedType.professional_task
            and n.related_id
        ):
            status = await resolve_task_status(n.related_id)
            if status is None:
                response.task_status = "deleted"
                response.task_accepted = None
            else:
                response.task_status = status
                if status in ACCEPTED_TASK_STATUSES:
                    response.task_accepted = True
                elif status == "rejected":
                    response.task_accepted = False
        responses.append(response)
    return responses
