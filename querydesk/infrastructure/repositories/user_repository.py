"""
SQLAlchemy Implementation of User Repository.
"""

from typing import Iterable, List, Optional

from sqlalchemy import delete, func, or_, select

from querydesk.domain.models.user import Role, User
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User], UserRepository):
    """User repository implementation using SQLAlchemy."""

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def list_by_roles(self, roles: Iterable[Role]) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.role.in_(list(roles)))
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    def list_team_heads(self) -> List[User]:
        return self.db.query(User).filter(User.role == Role.TEAM_HEAD).order_by(User.id.asc()).all()

    def count_by_role(self, role: Role) -> int:
        return self.db.query(func.count(User.id)).filter(User.role == role).scalar() or 0

    def delete_unless_last_admin(self, user_id: int) -> bool:
        # Hold the admin rows until commit so concurrent admin deletes queue up
        self.db.query(User.id).filter(User.role == Role.ADMIN).with_for_update().all()

        admin_count = select(func.count(User.id)).where(User.role == Role.ADMIN).scalar_subquery()
        stmt = (
            delete(User)
            .where(User.id == user_id, or_(User.role != Role.ADMIN, admin_count > 1))
            .execution_options(synchronize_session=False)
        )

        result = self.db.execute(stmt)
        self._commit()
        return result.rowcount == 1
