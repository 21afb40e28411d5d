"""Query service — the query lifecycle state machine.

    UNASSIGNED --request/assign--> ASSIGNED --answer--> RESOLVED
         |                          |   ^
         |                          +---+ reassign
         +--------- dismantle ------+----> DISMANTLED

Every transition runs the same pipeline: role gate, payload validation, load,
ownership, current-status check, then one status-guarded UPDATE. Only after that
write has committed are notifications dispatched; a failed dispatch is logged and
never undoes the transition.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from querydesk.application.services.notification_service import Notifier
from querydesk.core.exceptions import (
    ConflictException,
    EntityNotFoundException,
    ForbiddenException,
    InvalidStateTransitionException,
    ValidationException,
)
from querydesk.domain.models.query import (
    ANSWER_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    DISMANTLED_REASON_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Query,
    QueryStatus,
)
from querydesk.domain.models.user import Role, User
from querydesk.domain.policies import (
    ALLOWED_SOURCE_STATUSES,
    QueryAction,
    can_attempt,
    can_perform,
    can_view,
    required_assignee,
    status_permits,
)
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)

FORBIDDEN_MESSAGES = {
    QueryAction.CREATE: "Only participants can create queries",
    QueryAction.REQUEST: "Only team heads can request queries",
    QueryAction.ASSIGN: "Only admins can assign queries",
    QueryAction.REASSIGN: "Only admins can reassign queries",
    QueryAction.ANSWER: "Not authorized. Query is not assigned to you.",
    QueryAction.DISMANTLE: "Not authorized to dismantle this query",
}


def _require_text(value: Optional[str], message: str, max_length: int, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationException(message, details={"field": field})
    if len(text) > max_length:
        raise ValidationException(
            f"{field.replace('_', ' ').capitalize()} cannot exceed {max_length} characters",
            details={"field": field, "max_length": max_length},
        )
    return text


def _ensure_allowed(actor: User, action: QueryAction) -> None:
    if not can_attempt(actor, action):
        raise ForbiddenException(
            FORBIDDEN_MESSAGES[action],
            details={"role": actor.role.value, "action": action.value},
        )


def _load(repo: QueryRepository, query_id: int) -> Query:
    query = repo.get_by_id(query_id)
    if query is None:
        raise EntityNotFoundException("Query not found", details={"query_id": query_id})
    return query


def _check(actor: User, action: QueryAction, query: Query) -> None:
    """Ownership first, then status: a foreign team head is refused whatever the status."""
    if not can_perform(actor, action, query):
        raise ForbiddenException(FORBIDDEN_MESSAGES[action], details={"query_id": query.id})
    if not status_permits(action, query.status):
        raise InvalidStateTransitionException(
            action.value, query.status, ALLOWED_SOURCE_STATUSES[action]
        )


def _resolve_team_head(user_repo: UserRepository, team_head_id: Optional[int]) -> User:
    if team_head_id is None:
        raise ValidationException("Please provide team_head_id", details={"field": "team_head_id"})

    team_head = user_repo.get_by_id(team_head_id)
    if team_head is None:
        raise ValidationException("Team Head not found", details={"team_head_id": team_head_id})
    if team_head.role != Role.TEAM_HEAD:
        raise ValidationException("User is not a Team Head", details={"team_head_id": team_head_id})
    return team_head


def _transition(
    repo: QueryRepository,
    actor: User,
    action: QueryAction,
    query: Query,
    values: Dict[str, Any],
) -> Query:
    """Apply a checked transition with a compare-and-swap on the current status.

    When another writer got there first the fresh row is re-checked so the caller
    learns why: a new status, a new assignee, or (if neither explains it) a plain
    conflict.
    """
    _check(actor, action, query)

    applied = repo.apply_transition(
        query.id,
        ALLOWED_SOURCE_STATUSES[action],
        values,
        expected_assignee_id=required_assignee(actor, action),
    )
    fresh = _load(repo, query.id)

    if not applied:
        logger.info(
            "Lost status-guarded write",
            query_id=query.id,
            action=action.value,
            actor_id=actor.id,
            current_status=fresh.status.value,
        )
        _check(actor, action, fresh)
        raise ConflictException(
            "Query was modified concurrently. Please retry.",
            details={"query_id": query.id, "current_status": fresh.status.value},
        )

    logger.info(
        "Query transition applied",
        query_id=fresh.id,
        action=action.value,
        actor_id=actor.id,
        status=fresh.status.value,
    )
    return fresh


async def _dispatch(description: str, send: Callable[[], Awaitable[None]], query: Query) -> None:
    """Best-effort post-commit hook; the state change already stands."""
    try:
        await send()
    except Exception as e:
        logger.warning(
            "Notification dispatch failed",
            notification=description,
            query_id=query.id,
            error=str(e),
        )


def create_query(repo: QueryRepository, actor: User, title: Optional[str], description: Optional[str]) -> Query:
    _ensure_allowed(actor, QueryAction.CREATE)

    if not (title or "").strip() or not (description or "").strip():
        raise ValidationException("Please provide title and description")
    title = _require_text(title, "Please provide a title", TITLE_MAX_LENGTH, "title")
    description = _require_text(description, "Please provide a description", DESCRIPTION_MAX_LENGTH, "description")

    query = repo.create(
        {
            "title": title,
            "description": description,
            "status": QueryStatus.UNASSIGNED,
            "created_by_id": actor.id,
        }
    )
    logger.info("Query created", query_id=query.id, created_by=actor.id)
    return query


def list_queries(repo: QueryRepository, actor: User) -> List[Query]:
    """Participants see their own queries, staff see all; newest first."""
    if actor.role == Role.PARTICIPANT:
        return repo.list_created_by(actor.id)
    return repo.list_all()


def get_query(repo: QueryRepository, actor: User, query_id: int) -> Query:
    query = _load(repo, query_id)
    if not can_view(actor, query):
        raise ForbiddenException("Not authorized to view this query", details={"query_id": query_id})
    return query


async def request_query(repo: QueryRepository, notifier: Notifier, actor: User, query_id: int) -> Query:
    """A team head takes an open query; it is assigned to them straight away."""
    _ensure_allowed(actor, QueryAction.REQUEST)
    query = _load(repo, query_id)

    query = _transition(
        repo,
        actor,
        QueryAction.REQUEST,
        query,
        {"assigned_to_id": actor.id, "status": QueryStatus.ASSIGNED},
    )
    await _dispatch("assignment", lambda: notifier.send_assignment_notice(query), query)
    return query


async def assign_query(
    repo: QueryRepository,
    user_repo: UserRepository,
    notifier: Notifier,
    actor: User,
    query_id: int,
    team_head_id: Optional[int],
) -> Query:
    _ensure_allowed(actor, QueryAction.ASSIGN)
    team_head = _resolve_team_head(user_repo, team_head_id)
    query = _load(repo, query_id)

    query = _transition(
        repo,
        actor,
        QueryAction.ASSIGN,
        query,
        {"assigned_to_id": team_head.id, "status": QueryStatus.ASSIGNED},
    )
    await _dispatch("assignment", lambda: notifier.send_assignment_notice(query), query)
    return query


async def reassign_query(
    repo: QueryRepository,
    user_repo: UserRepository,
    notifier: Notifier,
    actor: User,
    query_id: int,
    team_head_id: Optional[int],
) -> Query:
    """Move an ASSIGNED query to another team head; the status does not change."""
    _ensure_allowed(actor, QueryAction.REASSIGN)
    team_head = _resolve_team_head(user_repo, team_head_id)
    query = _load(repo, query_id)

    query = _transition(
        repo,
        actor,
        QueryAction.REASSIGN,
        query,
        {"assigned_to_id": team_head.id},
    )
    await _dispatch("assignment", lambda: notifier.send_assignment_notice(query), query)
    return query


async def answer_query(
    repo: QueryRepository,
    notifier: Notifier,
    actor: User,
    query_id: int,
    answer: Optional[str],
) -> Query:
    _ensure_allowed(actor, QueryAction.ANSWER)
    answer = _require_text(answer, "Please provide an answer", ANSWER_MAX_LENGTH, "answer")
    query = _load(repo, query_id)

    query = _transition(
        repo,
        actor,
        QueryAction.ANSWER,
        query,
        {"answer": answer, "resolved_by_id": actor.id, "status": QueryStatus.RESOLVED},
    )
    await _dispatch("resolution", lambda: notifier.send_resolution_notice(query), query)
    return query


async def dismantle_query(
    repo: QueryRepository,
    notifier: Notifier,
    actor: User,
    query_id: int,
    reason: Optional[str],
) -> Query:
    """Close a query without answering it. assigned_to is left as it was."""
    _ensure_allowed(actor, QueryAction.DISMANTLE)
    reason = _require_text(
        reason,
        "Please provide a reason for dismantling this query",
        DISMANTLED_REASON_MAX_LENGTH,
        "reason",
    )
    query = _load(repo, query_id)

    query = _transition(
        repo,
        actor,
        QueryAction.DISMANTLE,
        query,
        {"dismantled_reason": reason, "status": QueryStatus.DISMANTLED},
    )
    await _dispatch("dismantle", lambda: notifier.send_dismantle_notice(query, actor), query)
    return query
