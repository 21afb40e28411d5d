"""
Query Repository Interface.
Reads, status-guarded writes and the aggregates used by the team-head dashboards.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from querydesk.domain.repositories.base import BaseRepository
from querydesk.domain.models.query import Query, QueryStatus


class QueryRepository(BaseRepository[Query]):
    """Interface for Query-specific operations."""

    def list_all(self) -> List[Query]:
        """All queries, newest first."""
        ...

    def list_created_by(self, user_id: int) -> List[Query]:
        """Queries created by a user, newest first."""
        ...

    def apply_transition(
        self,
        query_id: int,
        from_statuses: Iterable[QueryStatus],
        values: Dict[str, Any],
        expected_assignee_id: Optional[int] = None,
    ) -> bool:
        """Atomically update a query only while it is still in one of from_statuses.

        Returns False when no row matched, i.e. a concurrent writer won.
        """
        ...

    def count_by_assignee(self, status: Optional[QueryStatus] = None) -> Dict[int, int]:
        """Map assignee id -> number of queries (optionally of one status)."""
        ...

    def resolved_timestamps(self) -> List[Tuple[int, datetime, datetime]]:
        """(assignee id, created_at, updated_at) for every RESOLVED query."""
        ...

    def count_referencing_user(self, user_id: int) -> int:
        """Number of queries that reference a user in any role."""
        ...
