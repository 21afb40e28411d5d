"""
Notification Repository Interface.
"""

from typing import List, Optional

from querydesk.domain.repositories.base import BaseRepository
from querydesk.domain.models.notification import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Interface for Notification-specific operations."""

    def list_for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        """Most recent notifications for a user."""
        ...

    def count_unread(self, user_id: int) -> int:
        ...

    def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        """Flip is_read on a notification owned by user_id."""
        ...

    def mark_all_read(self, user_id: int) -> int:
        """Flip is_read on every unread notification of a user; returns the count."""
        ...
