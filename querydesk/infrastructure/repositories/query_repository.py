"""
SQLAlchemy Implementation of Query Repository.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, update

from querydesk.domain.models.query import Query, QueryStatus
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyQueryRepository(SQLAlchemyRepository[Query], QueryRepository):
    """Query repository implementation using SQLAlchemy."""

    def list_all(self) -> List[Query]:
        return self.db.query(Query).order_by(Query.created_at.desc(), Query.id.desc()).all()

    def list_created_by(self, user_id: int) -> List[Query]:
        return (
            self.db.query(Query)
            .filter(Query.created_by_id == user_id)
            .order_by(Query.created_at.desc(), Query.id.desc())
            .all()
        )

    def apply_transition(
        self,
        query_id: int,
        from_statuses: Iterable[QueryStatus],
        values: Dict[str, Any],
        expected_assignee_id: Optional[int] = None,
    ) -> bool:
        stmt = update(Query).where(Query.id == query_id, Query.status.in_(list(from_statuses)))
        if expected_assignee_id is not None:
            stmt = stmt.where(Query.assigned_to_id == expected_assignee_id)

        stmt = stmt.values(**values, updated_at=func.now()).execution_options(synchronize_session=False)

        result = self.db.execute(stmt)
        self._commit()
        # commit() expires loaded instances, so the next read sees the new row
        return result.rowcount == 1

    def count_by_assignee(self, status: Optional[QueryStatus] = None) -> Dict[int, int]:
        query = self.db.query(
            Query.assigned_to_id,
            func.count(Query.id).label("total"),
        ).filter(Query.assigned_to_id.isnot(None))

        if status is not None:
            query = query.filter(Query.status == status)

        results = query.group_by(Query.assigned_to_id).all()
        return {r.assigned_to_id: r.total for r in results}

    def resolved_timestamps(self) -> List[Tuple[int, datetime, datetime]]:
        results = (
            self.db.query(Query.assigned_to_id, Query.created_at, Query.updated_at)
            .filter(Query.status == QueryStatus.RESOLVED, Query.assigned_to_id.isnot(None))
            .all()
        )
        return [(r.assigned_to_id, r.created_at, r.updated_at) for r in results]

    def count_referencing_user(self, user_id: int) -> int:
        return (
            self.db.query(func.count(Query.id))
            .filter(
                or_(
                    Query.created_by_id == user_id,
                    Query.assigned_to_id == user_id,
                    Query.requested_by_id == user_id,
                    Query.resolved_by_id == user_id,
                )
            )
            .scalar()
            or 0
        )
