"""In-app notification — one row per recipient, created by lifecycle transitions."""

import enum

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from querydesk.infrastructure.database import Base


class NotificationType(str, enum.Enum):
    QUERY_ASSIGNED = "QUERY_ASSIGNED"
    QUERY_RESOLVED = "QUERY_RESOLVED"
    QUERY_DISMANTLED = "QUERY_DISMANTLED"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    query_id = Column(Integer, ForeignKey("queries.id"), nullable=True)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType, name="notification_type", native_enum=False, length=30), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    query = relationship("Query", lazy="joined")

    def __repr__(self):
        return f"<Notification {self.id} -> user {self.user_id} ({self.type.value if self.type else None})>"
