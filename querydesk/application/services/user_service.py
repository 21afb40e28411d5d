"""User service — admin management of staff accounts."""

from typing import List, Optional

import structlog

from querydesk.application.services.auth_service import create_user
from querydesk.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    ValidationException,
)
from querydesk.domain.models.user import Role, User
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)

STAFF_ROLES = (Role.ADMIN, Role.TEAM_HEAD)


def create_staff_user(repo: UserRepository, name: str, email: str, password: str, role: Role) -> User:
    """Create an Admin or Team_Head; accounts added by an admin are pre-verified."""
    if role not in STAFF_ROLES:
        raise ValidationException("Only Admin and Team_Head roles can be created through this endpoint")

    user = create_user(repo, name=name, email=email, password=password, role=role, is_verified=True)
    logger.info("Staff user created", user_id=user.id, role=role.value)
    return user


def list_users(repo: UserRepository, role: Optional[Role] = None) -> List[User]:
    """Staff accounts by default, or every user holding a given role."""
    return repo.list_by_roles([role] if role else STAFF_ROLES)


def delete_user(repo: UserRepository, query_repo: QueryRepository, actor: User, user_id: int) -> None:
    """Delete a staff account.

    At least one Admin must always remain, admins cannot delete themselves, and a
    user referenced by any query stays so query history never points at nothing.
    The delete statement re-checks the last-admin rule against the rows as they
    are at write time.
    """
    actor_id = actor.id
    user = repo.get_by_id(user_id)
    if user is None:
        raise EntityNotFoundException("User not found")

    if user.role not in STAFF_ROLES:
        raise BusinessRuleViolationException(
            "Only Admin and Team_Head users can be deleted through this endpoint"
        )

    if user.role == Role.ADMIN and repo.count_by_role(Role.ADMIN) <= 1:
        raise BusinessRuleViolationException("Cannot delete the last admin user")

    if user.id == actor_id:
        raise BusinessRuleViolationException("You cannot delete your own account")

    references = query_repo.count_referencing_user(user.id)
    if references:
        raise BusinessRuleViolationException(
            "User is referenced by existing queries and cannot be deleted",
            details={"query_count": references},
        )

    role = user.role
    if not repo.delete_unless_last_admin(user_id):
        if repo.get_by_id(user_id) is None:
            raise EntityNotFoundException("User not found")
        logger.info("Refused to delete the last admin", user_id=user_id, deleted_by=actor_id)
        raise BusinessRuleViolationException("Cannot delete the last admin user")

    logger.info("User deleted", user_id=user_id, role=role.value, deleted_by=actor_id)
