"""Queries API routes — create, read and drive the query lifecycle."""

from fastapi import APIRouter, Depends, status

from querydesk.application.services import query_service
from querydesk.application.services.notification_service import Notifier
from querydesk.domain.models.user import User
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.domain.schemas.query import (
    AnswerRequest,
    AssignRequest,
    DismantleRequest,
    QueryCreate,
    QueryList,
    QueryRead,
)
from querydesk.interfaces.api.deps import get_current_user
from querydesk.interfaces.deps import get_notifier, get_query_repository, get_user_repository

router = APIRouter(prefix="/api/queries", tags=["Queries"])


@router.post("", response_model=QueryRead, status_code=status.HTTP_201_CREATED)
def create_query(
    body: QueryCreate,
    repo: QueryRepository = Depends(get_query_repository),
    user: User = Depends(get_current_user),
):
    query = query_service.create_query(repo, user, body.title, body.description)
    return QueryRead.model_validate(query)


@router.get("", response_model=QueryList)
def list_queries(
    repo: QueryRepository = Depends(get_query_repository),
    user: User = Depends(get_current_user),
):
    """All queries for staff, own queries for participants."""
    items = [QueryRead.model_validate(q) for q in query_service.list_queries(repo, user)]
    return QueryList(count=len(items), items=items)


@router.get("/{query_id}", response_model=QueryRead)
def get_query(
    query_id: int,
    repo: QueryRepository = Depends(get_query_repository),
    user: User = Depends(get_current_user),
):
    return QueryRead.model_validate(query_service.get_query(repo, user, query_id))


@router.patch("/{query_id}/request", response_model=QueryRead)
async def request_query(
    query_id: int,
    repo: QueryRepository = Depends(get_query_repository),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    """Team head takes the query for themselves."""
    query = await query_service.request_query(repo, notifier, user, query_id)
    return QueryRead.model_validate(query)


@router.patch("/{query_id}/assign", response_model=QueryRead)
async def assign_query(
    query_id: int,
    body: AssignRequest,
    repo: QueryRepository = Depends(get_query_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    query = await query_service.assign_query(repo, user_repo, notifier, user, query_id, body.team_head_id)
    return QueryRead.model_validate(query)


@router.patch("/{query_id}/reassign", response_model=QueryRead)
async def reassign_query(
    query_id: int,
    body: AssignRequest,
    repo: QueryRepository = Depends(get_query_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    query = await query_service.reassign_query(repo, user_repo, notifier, user, query_id, body.team_head_id)
    return QueryRead.model_validate(query)


@router.patch("/{query_id}/answer", response_model=QueryRead)
async def answer_query(
    query_id: int,
    body: AnswerRequest,
    repo: QueryRepository = Depends(get_query_repository),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    query = await query_service.answer_query(repo, notifier, user, query_id, body.answer)
    return QueryRead.model_validate(query)


@router.patch("/{query_id}/dismantle", response_model=QueryRead)
async def dismantle_query(
    query_id: int,
    body: DismantleRequest,
    repo: QueryRepository = Depends(get_query_repository),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    query = await query_service.dismantle_query(repo, notifier, user, query_id, body.reason)
    return QueryRead.model_validate(query)
