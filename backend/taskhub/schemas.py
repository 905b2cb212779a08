"""
Pydantic schemas for the notifications API and socket payloads.

Wire format is camelCase (``isRead``, ``createdAt``, ...); the same shape is
returned by ``GET /notifications`` and pushed on the ``notification`` socket
event.
"""
from datetime import datetime
from typing import Optional, Any, List
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from taskhub.db.enums import NotificationType, RelatedType


class NotificationCreate(BaseModel):
    """Schema for creating a notification"""
    user_id: int
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.generic
    related_id: Optional[int] = None
    related_type: Optional[RelatedType] = None
    link: Optional[str] = Field(None, max_length=255)
    data: Optional[dict[str, Any]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class NotificationResponse(BaseModel):
    """Schema for a notification as delivered to clients"""
    id: int
    title: str
    message: str
    type: NotificationType
    related_type: Optional[RelatedType] = None
    related_id: Optional[int] = None
    link: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    is_read: bool
    created_at: Optional[datetime] = None
    # Enrichment for professional tasks
    task_status: Optional[str] = None
    task_accepted: Optional[bool] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class NotificationListResponse(BaseModel):
    """Envelope for the notification list"""
    success: bool = True
    count: int
    unread_count: int
    data: List[NotificationResponse] = []

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class NotificationEnvelope(BaseModel):
    success: bool = True
    data: NotificationResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str
