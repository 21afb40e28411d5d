"""Team head service — workload and performance aggregates for the admin dashboards.

Read-only. Counts are a point-in-time snapshot and may lag concurrent transitions.
"""

from collections import defaultdict
from typing import Dict, List

from querydesk.domain.models.query import QueryStatus
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.domain.schemas.team_head import TeamHeadLoad, TeamHeadStats

SECONDS_PER_HOUR = 3600


def list_team_heads_by_load(user_repo: UserRepository, query_repo: QueryRepository) -> List[TeamHeadLoad]:
    """Team heads with their open (ASSIGNED) query count, least busy first.

    Ties keep id order.
    """
    active = query_repo.count_by_assignee(QueryStatus.ASSIGNED)

    loads = [
        TeamHeadLoad(
            id=head.id,
            name=head.name,
            email=head.email,
            assigned_unanswered_count=active.get(head.id, 0),
        )
        for head in user_repo.list_team_heads()
    ]
    return sorted(loads, key=lambda load: (load.assigned_unanswered_count, load.id))


def _average_resolution_hours(query_repo: QueryRepository) -> Dict[int, float]:
    durations: Dict[int, List[float]] = defaultdict(list)
    for assignee_id, created_at, updated_at in query_repo.resolved_timestamps():
        if created_at is None or updated_at is None:
            continue
        durations[assignee_id].append((updated_at - created_at).total_seconds() / SECONDS_PER_HOUR)

    return {
        assignee_id: sum(hours) / len(hours)
        for assignee_id, hours in durations.items()
    }


def compute_team_head_stats(user_repo: UserRepository, query_repo: QueryRepository) -> List[TeamHeadStats]:
    """Per team head: totals, open queries, average resolution time and resolution rate.

    Sorted by total resolved, highest first.
    """
    total_assigned = query_repo.count_by_assignee()
    total_resolved = query_repo.count_by_assignee(QueryStatus.RESOLVED)
    active = query_repo.count_by_assignee(QueryStatus.ASSIGNED)
    average_hours = _average_resolution_hours(query_repo)

    stats = []
    for head in user_repo.list_team_heads():
        assigned = total_assigned.get(head.id, 0)
        resolved = total_resolved.get(head.id, 0)
        rate = round(resolved / assigned * 100, 1) if assigned else 0.0

        stats.append(
            TeamHeadStats(
                id=head.id,
                name=head.name,
                email=head.email,
                total_assigned=assigned,
                total_resolved=resolved,
                active_queries=active.get(head.id, 0),
                average_resolution_time_hours=round(average_hours.get(head.id, 0.0), 1),
                resolution_rate_percent=rate,
            )
        )

    return sorted(stats, key=lambda s: (-s.total_resolved, s.id))
