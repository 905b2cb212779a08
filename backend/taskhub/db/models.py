from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.sql import func

from taskhub.db.database import Base
from taskhub.db.enums import NotificationType, RelatedType


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id_created_at", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Users live in the auth service; only the id is stored here
    user_id = Column(Integer, nullable=False)
    type = Column(SAEnum(NotificationType, name="notificationtype"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    related_id = Column(Integer, nullable=True)
    related_type = Column(SAEnum(RelatedType, name="relatedtype"), nullable=True)
    link = Column(String(255), nullable=True)
    data = Column(JSON, nullable=True)  # extension days/reason, invitation token, ...
    created_at = Column(DateTime(timezone=True), server_default=func.now())
