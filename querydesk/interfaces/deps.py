"""
API Dependencies — repositories and collaborators wired per request.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from querydesk.application.services.notification_service import Notifier, QueryNotifier
from querydesk.domain.models.notification import Notification
from querydesk.domain.models.query import Query
from querydesk.domain.models.user import User
from querydesk.domain.repositories.notification_repository import NotificationRepository
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.infrastructure.database import get_db
from querydesk.infrastructure.mail_api import MailAPIClient
from querydesk.infrastructure.otp_store import InMemoryOTPStore, OTPStore
from querydesk.infrastructure.repositories.notification_repository import SQLAlchemyNotificationRepository
from querydesk.infrastructure.repositories.query_repository import SQLAlchemyQueryRepository
from querydesk.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

_otp_store = InMemoryOTPStore()


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    """Get user repository instance."""
    return SQLAlchemyUserRepository(db, User)


def get_query_repository(db: Session = Depends(get_db)) -> QueryRepository:
    """Get query repository instance."""
    return SQLAlchemyQueryRepository(db, Query)


def get_notification_repository(db: Session = Depends(get_db)) -> NotificationRepository:
    """Get notification repository instance."""
    return SQLAlchemyNotificationRepository(db, Notification)


def get_mail_client() -> MailAPIClient:
    return MailAPIClient()


def get_notifier(
    repo: NotificationRepository = Depends(get_notification_repository),
    mail_client: MailAPIClient = Depends(get_mail_client),
) -> Notifier:
    """Get the notification channel used by lifecycle transitions and registration."""
    return QueryNotifier(repo, mail_client)


def get_otp_store() -> OTPStore:
    """Process-wide OTP registry; override this dependency to swap the backend."""
    return _otp_store
