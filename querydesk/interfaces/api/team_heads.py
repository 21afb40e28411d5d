"""Team head API routes — workload list and performance stats for admins."""

from fastapi import APIRouter, Depends

from querydesk.application.services.team_head_service import (
    compute_team_head_stats,
    list_team_heads_by_load,
)
from querydesk.domain.models.user import User
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.domain.schemas.team_head import TeamHeadLoad, TeamHeadStats
from querydesk.interfaces.api.deps import require_admin
from querydesk.interfaces.deps import get_query_repository, get_user_repository

router = APIRouter(prefix="/api/team-heads", tags=["Team Heads"])


@router.get("", response_model=list[TeamHeadLoad])
def team_heads_by_load(
    user_repo: UserRepository = Depends(get_user_repository),
    query_repo: QueryRepository = Depends(get_query_repository),
    admin: User = Depends(require_admin),
):
    """Least busy team heads first."""
    return list_team_heads_by_load(user_repo, query_repo)


@router.get("/stats", response_model=list[TeamHeadStats])
def team_head_stats(
    user_repo: UserRepository = Depends(get_user_repository),
    query_repo: QueryRepository = Depends(get_query_repository),
    admin: User = Depends(require_admin),
):
    return compute_team_head_stats(user_repo, query_repo)
