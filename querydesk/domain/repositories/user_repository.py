"""
User Repository Interface.
"""

from typing import Iterable, List, Optional

from querydesk.domain.repositories.base import BaseRepository
from querydesk.domain.models.user import Role, User


class UserRepository(BaseRepository[User]):
    """Interface for User-specific operations."""

    def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by their (unique) email."""
        ...

    def list_by_roles(self, roles: Iterable[Role]) -> List[User]:
        """Users holding any of the given roles, newest first."""
        ...

    def list_team_heads(self) -> List[User]:
        """All Team_Head users ordered by id."""
        ...

    def count_by_role(self, role: Role) -> int:
        """Number of users holding a role."""
        ...

    def delete_unless_last_admin(self, user_id: int) -> bool:
        """Delete a user in one guarded statement that never removes the last Admin.

        Returns False when nothing was deleted: the user is gone or is the only
        Admin left at the time of the write.
        """
        ...
