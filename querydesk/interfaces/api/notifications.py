"""Notifications API routes — the signed-in user's feed and read flags."""

from fastapi import APIRouter, Depends

from querydesk.application.services.notification_service import (
    get_notification_feed,
    mark_all_notifications_read,
    mark_notification_read,
)
from querydesk.domain.models.user import User
from querydesk.domain.repositories.notification_repository import NotificationRepository
from querydesk.domain.schemas.notification import NotificationFeed, NotificationRead
from querydesk.interfaces.api.deps import get_current_user
from querydesk.interfaces.deps import get_notification_repository

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationFeed)
def list_notifications(
    repo: NotificationRepository = Depends(get_notification_repository),
    user: User = Depends(get_current_user),
):
    return get_notification_feed(repo, user)


@router.patch("/read-all")
def read_all(
    repo: NotificationRepository = Depends(get_notification_repository),
    user: User = Depends(get_current_user),
):
    updated = mark_all_notifications_read(repo, user)
    return {"message": "All notifications marked as read", "updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def read_one(
    notification_id: int,
    repo: NotificationRepository = Depends(get_notification_repository),
    user: User = Depends(get_current_user),
):
    return NotificationRead.model_validate(mark_notification_read(repo, user, notification_id))
