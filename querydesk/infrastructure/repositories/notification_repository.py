"""
SQLAlchemy Implementation of Notification Repository.
"""

from typing import List, Optional

from sqlalchemy import func

from querydesk.domain.models.notification import Notification
from querydesk.domain.repositories.notification_repository import NotificationRepository
from querydesk.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyNotificationRepository(SQLAlchemyRepository[Notification], NotificationRepository):
    """Notification repository implementation using SQLAlchemy."""

    def list_for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def count_unread(self, user_id: int) -> int:
        return (
            self.db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .scalar()
            or 0
        )

    def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if notification is None:
            return None

        notification.is_read = True
        self._commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self._commit()
        return updated
