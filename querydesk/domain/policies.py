"""Authorization predicates and the query transition table.

Each lifecycle action maps to the statuses it may start from and to a predicate
over the actor's role and, where it matters, ownership of the query. The lifecycle
service consults these before attempting a status-guarded write.
"""

import enum
from typing import Callable, Dict, Optional, Tuple

from querydesk.domain.models.query import Query, QueryStatus
from querydesk.domain.models.user import Role, User


class QueryAction(str, enum.Enum):
    CREATE = "create"
    REQUEST = "request"
    ASSIGN = "assign"
    REASSIGN = "reassign"
    ANSWER = "answer"
    DISMANTLE = "dismantle"


ALLOWED_SOURCE_STATUSES: Dict[QueryAction, Tuple[QueryStatus, ...]] = {
    QueryAction.REQUEST: (QueryStatus.UNASSIGNED, QueryStatus.REQUESTED),
    QueryAction.ASSIGN: (QueryStatus.UNASSIGNED, QueryStatus.REQUESTED),
    QueryAction.REASSIGN: (QueryStatus.ASSIGNED,),
    QueryAction.ANSWER: (QueryStatus.ASSIGNED,),
    QueryAction.DISMANTLE: (QueryStatus.UNASSIGNED, QueryStatus.REQUESTED, QueryStatus.ASSIGNED),
}

TERMINAL_STATUSES = frozenset({QueryStatus.RESOLVED, QueryStatus.DISMANTLED})

# Roles allowed to attempt each action at all; ownership is checked separately.
ACTION_ROLES: Dict[QueryAction, frozenset] = {
    QueryAction.CREATE: frozenset({Role.PARTICIPANT}),
    QueryAction.REQUEST: frozenset({Role.TEAM_HEAD}),
    QueryAction.ASSIGN: frozenset({Role.ADMIN}),
    QueryAction.REASSIGN: frozenset({Role.ADMIN}),
    QueryAction.ANSWER: frozenset({Role.ADMIN, Role.TEAM_HEAD}),
    QueryAction.DISMANTLE: frozenset({Role.ADMIN, Role.TEAM_HEAD}),
}


def is_assignee(actor: User, query: Query) -> bool:
    return query.assigned_to_id is not None and query.assigned_to_id == actor.id


def can_view(actor: User, query: Query) -> bool:
    """Participants see only their own queries; staff see everything."""
    if actor.role == Role.PARTICIPANT:
        return query.created_by_id == actor.id
    return actor.role in (Role.ADMIN, Role.TEAM_HEAD)


def can_attempt(actor: User, action: QueryAction) -> bool:
    return actor.role in ACTION_ROLES[action]


def _admin_or_assignee(actor: User, query: Query) -> bool:
    if actor.role == Role.ADMIN:
        return True
    return actor.role == Role.TEAM_HEAD and is_assignee(actor, query)


OWNERSHIP_CHECKS: Dict[QueryAction, Callable[[User, Query], bool]] = {
    QueryAction.ANSWER: _admin_or_assignee,
    QueryAction.DISMANTLE: _admin_or_assignee,
}


def can_perform(actor: User, action: QueryAction, query: Query) -> bool:
    """Role gate plus, for answer/dismantle, the assignee check."""
    if not can_attempt(actor, action):
        return False
    check = OWNERSHIP_CHECKS.get(action)
    return check(actor, query) if check else True


def status_permits(action: QueryAction, status: QueryStatus) -> bool:
    return status in ALLOWED_SOURCE_STATUSES[action]


def required_assignee(actor: User, action: QueryAction) -> Optional[int]:
    """Assignee a status-guarded write must still observe, if any.

    A team head answering or dismantling only wins the write while the query is
    still assigned to them.
    """
    if action in OWNERSHIP_CHECKS and actor.role == Role.TEAM_HEAD:
        return actor.id
    return None
