"""
Real-time notification delivery via Socket.IO.

Every helper persists first and pushes second, so a client that misses the
push still finds the notification on its next poll.
"""
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.db.models import Notification
from taskhub.db.enums import NotificationType, RelatedType
from taskhub.schemas import NotificationResponse


def notification_payload(notification: Notification) -> Dict[str, Any]:
    """Serialize a notification exactly as ``GET /notifications`` returns it."""
    return NotificationResponse.model_validate(notification).model_dump(
        by_alias=True, mode="json", exclude_none=True
    )


async def emit_notification_to_user(user_id: int, notification: Notification) -> bool:
    """
    Emit a notification to a specific user via Socket.IO
    """
    from taskhub.realtime.socket import emit_notification

    return await emit_notification(user_id, notification_payload(notification))


# ============================================================
# High-level notification + emit helpers
# ============================================================

async def create_and_emit_notification(
    db: AsyncSession,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    **kwargs
) -> Notification:
    """
    Create a notification and emit it via Socket.IO in one call
    """
    from taskhub.services.notifications import NotificationService

    service = NotificationService(db)
    notification = await service.create_notification(
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        **kwargs,
    )

    await emit_notification_to_user(user_id, notification)
    return notification


async def create_and_emit_to_multiple(
    db: AsyncSession,
    user_ids: List[int],
    notification_type: NotificationType,
    title: str,
    message: str,
    **kwargs
) -> List[Notification]:
    """
    Create notifications for multiple users and emit via Socket.IO
    """
    notifications = []
    # Preserve order, drop duplicates and empty ids
    for user_id in dict.fromkeys(uid for uid in user_ids if uid is not None):
        notification = await create_and_emit_notification(
            db,
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            **kwargs,
        )
        notifications.append(notification)
    return notifications


# ============================================================
# Domain event emitters
# ============================================================

async def notify_task_assigned(
    db: AsyncSession,
    task_id: int,
    assignee_id: int,
    task_title: str,
) -> Notification:
    """Create and emit task assigned notification"""
    return await create_and_emit_notification(
        db,
        user_id=assignee_id,
        notification_type=NotificationType.task_assigned,
        title="New Task Assigned",
        message=f"You have been assigned a new task: {task_title}",
        related_id=task_id,
        related_type=RelatedType.professional_task,
        link=f"/tasks/professional/{task_id}",
    )


async def notify_extension_requested(
    db: AsyncSession,
    task_id: int,
    notify_user_id: int,
    task_title: str,
    days: int,
    reason: Optional[str] = None,
) -> Notification:
    """Create and emit a deadline extension request for the task assigner"""
    return await create_and_emit_notification(
        db,
        user_id=notify_user_id,
        notification_type=NotificationType.extension_requested,
        title="Deadline Extension Requested",
        message=f'A deadline extension of {days} days has been requested for task "{task_title}"',
        related_id=task_id,
        related_type=RelatedType.professional_task,
        link=f"/tasks/professional/{task_id}",
        data={"extensionDays": days, "reason": reason},
    )


async def notify_leader_invitation(
    db: AsyncSession,
    project_id: int,
    invitee_id: int,
    project_name: str,
    department_name: Optional[str] = None,
) -> Notification:
    """Create and emit a project leader invitation"""
    message = f'You have been invited to lead the project "{project_name}"'
    if department_name:
        message += f" ({department_name})"
    return await create_and_emit_notification(
        db,
        user_id=invitee_id,
        notification_type=NotificationType.leader_invitation,
        title="Project Leader Invitation",
        message=message,
        related_id=project_id,
        related_type=RelatedType.professional_project,
        link=f"/projects/professional/{project_id}",
    )
