"""Pydantic schemas for in-app notifications."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from querydesk.domain.models.notification import NotificationType
from querydesk.domain.models.query import QueryStatus


class NotificationQueryRef(BaseModel):
    id: int
    title: str
    status: QueryStatus

    model_config = {"from_attributes": True}


class NotificationRead(BaseModel):
    id: int
    message: str
    type: NotificationType
    query: Optional[NotificationQueryRef] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationFeed(BaseModel):
    items: list[NotificationRead]
    unread_count: int
