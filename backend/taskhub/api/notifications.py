from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from taskhub.db.database import get_db
from taskhub.db.enums import NotificationType
from taskhub.core.security import get_current_user, is_admin
from taskhub.core.logging import api_logger
from taskhub.schemas import (
    NotificationCreate,
    NotificationEnvelope,
    NotificationListResponse,
    NotificationResponse,
    MessageResponse,
)
from taskhub.services.notifications import (
    NotificationService,
    TaskStatusResolver,
    enrich_with_task_status,
)
from taskhub.services.notification_emitter import emit_notification_to_user

router = APIRouter()


async def get_task_status_resolver() -> Optional[TaskStatusResolver]:
    """Task lookups belong to the tasks service; overridden where it is wired in."""
    return None


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    is_read: Optional[bool] = Query(None, alias="isRead"),
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    limit: Optional[int] = Query(None, ge=1),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    resolve_task_status: Optional[TaskStatusResolver] = Depends(get_task_status_resolver),
):
    """Get notifications for the current user, newest first"""
    service = NotificationService(db)
    notifications = await service.list_notifications(
        current_user["user_id"],
        is_read=is_read,
        notification_type=notification_type,
        limit=limit,
    )
    unread_count = await service.get_unread_count(current_user["user_id"])
    data = await enrich_with_task_status(notifications, resolve_task_status)

    return NotificationListResponse(count=len(data), unread_count=unread_count, data=data)


@router.post("", response_model=NotificationEnvelope, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a notification and push it to the recipient's room"""
    # Only admin can create notifications for others
    if payload.user_id != current_user["user_id"] and not is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to create notifications for other users",
        )

    service = NotificationService(db)
    notification = await service.create_notification(
        user_id=payload.user_id,
        notification_type=payload.type,
        title=payload.title,
        message=payload.message,
        related_id=payload.related_id,
        related_type=payload.related_type,
        link=payload.link,
        data=payload.data,
    )
    await emit_notification_to_user(payload.user_id, notification)
    api_logger.info("Notification created", notification_id=notification.id, user_id=payload.user_id)

    return NotificationEnvelope(data=NotificationResponse.model_validate(notification))


# Specific routes must come before parameterized routes
@router.put("/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark all notifications as read"""
    updated = await NotificationService(db).mark_all_as_read(current_user["user_id"])
    api_logger.debug("Marked all notifications read", user_id=current_user["user_id"], updated=updated)
    return MessageResponse(message="All notifications marked as read")


@router.delete("/clear-read", response_model=MessageResponse)
async def clear_read_notifications(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete all read notifications"""
    await NotificationService(db).clear_read(current_user["user_id"])
    return MessageResponse(message="All read notifications deleted")


@router.get("/{notification_id}", response_model=NotificationEnvelope)
async def get_notification(
    notification_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(db).get_notification(notification_id, current_user["user_id"])
    if not notification:
        raise HTTPException(status_code=404, detail=f"Notification not found with id of {notification_id}")
    return NotificationEnvelope(data=NotificationResponse.model_validate(notification))


@router.put("/{notification_id}/read", response_model=NotificationEnvelope)
async def mark_notification_read(
    notification_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a notification as read"""
    notification = await NotificationService(db).mark_as_read(notification_id, current_user["user_id"])
    if not notification:
        raise HTTPException(status_code=404, detail=f"Notification not found with id of {notification_id}")
    return NotificationEnvelope(data=NotificationResponse.model_validate(notification))


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a notification"""
    deleted = await NotificationService(db).delete_notification(notification_id, current_user["user_id"])
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Notification not found with id of {notification_id}")
    return MessageResponse(message="Notification deleted")
