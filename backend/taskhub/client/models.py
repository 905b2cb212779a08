"""
Client-side notification model and connection state enums.
"""
import enum
import json
from datetime import datetime
from typing import Optional, Any, Dict, Union
from pydantic import BaseModel, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from taskhub.db.enums import NotificationType
from taskhub.client.errors import MalformedPayloadError

NotificationId = Union[int, str]


class ConnectionStatus(str, enum.Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class DeliveryMode(str, enum.Enum):
    push = "push"
    poll = "poll"


class Notification(BaseModel):
    """
    A notification as seen by the client.

    Accepts camelCase (wire) or snake_case keys. Only ``id`` is required;
    every other missing field means "not applicable".
    """
    id: NotificationId
    title: str = ""
    message: str = ""
    type: NotificationType = NotificationType.generic
    related_type: Optional[str] = None
    related_id: Optional[NotificationId] = None
    data: Optional[Dict[str, Any]] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    link: Optional[str] = None
    task_status: Optional[str] = None
    task_accepted: Optional[bool] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        if isinstance(value, NotificationType):
            return value
        try:
            return NotificationType(value)
        except ValueError:
            return NotificationType.generic

    @field_validator("title", "message", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("is_read", mode="before")
    @classmethod
    def _none_to_unread(cls, value):
        return False if value is None else value

    @field_validator("data", mode="before")
    @classmethod
    def _decode_data(cls, value):
        # Some servers store the payload as JSON text
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return None
        return value if isinstance(value, dict) else None

    @property
    def subject_deleted(self) -> bool:
        """The related task was deleted server-side; render distinctly, keep the entry."""
        return self.task_status == "deleted"

    @classmethod
    def from_payload(cls, payload: Any) -> "Notification":
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"Notification payload must be an object, got {type(payload).__name__}")
        if payload.get("id") is None:
            raise MalformedPayloadError("Notification payload has no id")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise MalformedPayloadError(str(exc)) from exc

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
