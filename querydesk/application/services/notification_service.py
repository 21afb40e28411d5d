"""Notification service — emails and in-app notices produced by the query lifecycle.

Features:
- Resolution / dismantle notices to the participant who raised the query
- Assignment notices to the team head now holding the query
- Verification codes for new registrations
- Notification feed reads (most recent N per user) and read flags
"""

from datetime import datetime
from html import escape
from typing import Protocol

import pytz
import structlog

from querydesk.application.services.auth_service import generate_otp
from querydesk.config import get_settings
from querydesk.core.exceptions import EntityNotFoundException
from querydesk.domain.models.notification import Notification, NotificationType
from querydesk.domain.models.query import Query
from querydesk.domain.models.user import User
from querydesk.domain.repositories.notification_repository import NotificationRepository
from querydesk.domain.schemas.notification import NotificationFeed, NotificationRead
from querydesk.infrastructure.mail_api import MailAPIClient

settings = get_settings()
logger = structlog.get_logger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

FOOTER = "This is an automated message from QueryDesk. Please do not reply to this email."


class Notifier(Protocol):
    """What the lifecycle and registration flows need from a notification channel."""

    async def send_resolution_notice(self, query: Query) -> None:
        ...

    async def send_dismantle_notice(self, query: Query, actor: User) -> None:
        ...

    async def send_assignment_notice(self, query: Query) -> None:
        ...

    async def send_verification_code(self, email: str, name: str) -> str:
        ...


def _timestamp() -> str:
    return datetime.now(tz).strftime("%d/%m/%Y %H:%M")


def _html(heading: str, color: str, greeting_name: str, paragraphs: list[str]) -> str:
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        '<div style="font-family: Arial, sans-serif; padding: 20px; max-width: 600px;">'
        f'<h2 style="color: {color};">{escape(heading)}</h2>'
        f"<p>Hello <strong>{escape(greeting_name)}</strong>,</p>"
        f"{body}"
        '<hr style="border: none; border-top: 1px solid #dee2e6; margin: 20px 0;">'
        f'<p style="font-size: 12px; color: #6c757d;">{FOOTER}</p>'
        "</div>"
    )


def format_resolution_email(query: Query) -> tuple[str, str, str]:
    resolver = query.resolved_by or query.assigned_to
    resolver_label = f"{resolver.name} ({resolver.role.value})" if resolver else "QueryDesk"

    subject = f'Your Query has been Answered - "{query.title}"'
    html = _html(
        "Query Answered",
        "#2c3e50",
        query.created_by.name,
        [
            f"Your query has been answered by <strong>{escape(resolver_label)}</strong>.",
            f"<strong>Query Title:</strong> {escape(query.title)}",
            f"<strong>Your Question:</strong> {escape(query.description)}",
            f"<strong>Answer:</strong> {escape(query.answer or '')}",
            f"Query Status: <strong>{query.status.value}</strong> · {_timestamp()}",
        ],
    )
    text = "\n".join([
        "Query Answered",
        "",
        f"Hello {query.created_by.name},",
        "",
        f"Your query has been answered by {resolver_label}.",
        "",
        f"Query Title: {query.title}",
        f"Your Question: {query.description}",
        "",
        f"Answer: {query.answer}",
        "",
        f"Query Status: {query.status.value}",
        "",
        FOOTER,
    ])
    return subject, html, text


def format_dismantle_email(query: Query, actor: User) -> tuple[str, str, str]:
    actor_label = f"{actor.name} ({actor.role.value})"

    subject = f'Query Dismantled - "{query.title}"'
    html = _html(
        "Query Dismantled",
        "#dc3545",
        query.created_by.name,
        [
            f"Your query has been dismantled by <strong>{escape(actor_label)}</strong>.",
            f"<strong>Query Title:</strong> {escape(query.title)}",
            f"<strong>Your Question:</strong> {escape(query.description)}",
            f"<strong>Reason for Dismantling:</strong> {escape(query.dismantled_reason or '')}",
            f"Query Status: <strong>{query.status.value}</strong> · {_timestamp()}",
        ],
    )
    text = "\n".join([
        "Query Dismantled",
        "",
        f"Hello {query.created_by.name},",
        "",
        f"Your query has been dismantled by {actor_label}.",
        "",
        f"Query Title: {query.title}",
        f"Your Question: {query.description}",
        "",
        f"Reason for Dismantling: {query.dismantled_reason}",
        "",
        f"Query Status: {query.status.value}",
        "",
        FOOTER,
    ])
    return subject, html, text


def format_assignment_email(query: Query) -> tuple[str, str, str]:
    subject = f'Query Assigned to You - "{query.title}"'
    html = _html(
        "New Query Assigned",
        "#007bff",
        query.assigned_to.name,
        [
            f"<strong>{escape(query.title)}</strong> is now assigned to you.",
            f"<strong>Question:</strong> {escape(query.description)}",
            f"Raised by {escape(query.created_by.name)} · {_timestamp()}",
        ],
    )
    text = "\n".join([
        "New Query Assigned",
        "",
        f"Hello {query.assigned_to.name},",
        "",
        f'"{query.title}" is now assigned to you.',
        f"Question: {query.description}",
        f"Raised by {query.created_by.name}",
        "",
        FOOTER,
    ])
    return subject, html, text


def format_verification_email(name: str, code: str) -> tuple[str, str, str]:
    subject = "Welcome to QueryDesk - Verify Your Email"
    html = _html(
        "Welcome to QueryDesk!",
        "#2c3e50",
        name,
        [
            "Thank you for registering. Use the code below to verify your email:",
            f'<span style="font-size: 32px; font-weight: bold; color: #007bff; letter-spacing: 5px;">{code}</span>',
            f"This code is valid for {settings.OTP_TTL_MINUTES} minutes.",
            "If you didn't register for this account, please ignore this email.",
        ],
    )
    text = "\n".join([
        "Welcome to QueryDesk!",
        "",
        f"Hello {name},",
        "",
        f"Your verification code: {code}",
        f"This code is valid for {settings.OTP_TTL_MINUTES} minutes.",
        "",
        "If you didn't register for this account, please ignore this email.",
    ])
    return subject, html, text


class QueryNotifier:
    """Notifier backed by the notifications table and the mail API.

    The in-app notice is stored first so the feed is populated even when the
    email leg fails; email failures propagate to the caller.
    """

    def __init__(self, repo: NotificationRepository, mail_client: MailAPIClient):
        self.repo = repo
        self.mail_client = mail_client

    def _record(self, user_id: int, query: Query, message: str, type_: NotificationType) -> Notification:
        return self.repo.create(
            {"user_id": user_id, "query_id": query.id, "message": message, "type": type_}
        )

    async def send_resolution_notice(self, query: Query) -> None:
        self._record(
            query.created_by_id,
            query,
            f'Your query "{query.title}" has been answered.',
            NotificationType.QUERY_RESOLVED,
        )
        subject, html, text = format_resolution_email(query)
        await self.mail_client.send_email(query.created_by.email, subject, html, text)

    async def send_dismantle_notice(self, query: Query, actor: User) -> None:
        self._record(
            query.created_by_id,
            query,
            f'Your query "{query.title}" was dismantled: {query.dismantled_reason}',
            NotificationType.QUERY_DISMANTLED,
        )
        subject, html, text = format_dismantle_email(query, actor)
        await self.mail_client.send_email(query.created_by.email, subject, html, text)

    async def send_assignment_notice(self, query: Query) -> None:
        if query.assigned_to is None:
            return
        self._record(
            query.assigned_to_id,
            query,
            f'Query "{query.title}" has been assigned to you.',
            NotificationType.QUERY_ASSIGNED,
        )
        subject, html, text = format_assignment_email(query)
        await self.mail_client.send_email(query.assigned_to.email, subject, html, text)

    async def send_verification_code(self, email: str, name: str) -> str:
        code = generate_otp()
        subject, html, text = format_verification_email(name, code)
        await self.mail_client.send_email(email, subject, html, text)
        return code


def get_notification_feed(repo: NotificationRepository, user: User) -> NotificationFeed:
    """Most recent notifications for a user plus their unread count."""
    items = repo.list_for_user(user.id, limit=settings.NOTIFICATION_FEED_LIMIT)
    return NotificationFeed(
        items=[NotificationRead.model_validate(n) for n in items],
        unread_count=repo.count_unread(user.id),
    )


def mark_notification_read(repo: NotificationRepository, user: User, notification_id: int) -> Notification:
    notification = repo.mark_read(notification_id, user.id)
    if notification is None:
        raise EntityNotFoundException("Notification not found")
    return notification


def mark_all_notifications_read(repo: NotificationRepository, user: User) -> int:
    return repo.mark_all_read(user.id)
