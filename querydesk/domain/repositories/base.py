"""
Persistence contract shared by every QueryDesk repository.
"""

from typing import Any, Optional, Protocol, TypeVar

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Row-level access that users, queries and notifications all support.

    Writes commit immediately; ``obj_in`` may be a dict or a pydantic model.
    """

    def get_by_id(self, id: int) -> Optional[T]:
        ...

    def create(self, obj_in: Any) -> T:
        """Insert a row and return it refreshed with server defaults."""
        ...

    def update(self, db_obj: T, obj_in: Any) -> T:
        """Copy the given fields onto ``db_obj``; unknown keys are ignored."""
        ...

    def delete(self, id: int) -> Optional[T]:
        """Remove a row, returning it, or None if it was already gone."""
        ...
