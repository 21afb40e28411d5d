"""User management API routes — admins create, list and delete staff accounts."""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from querydesk.application.services.user_service import create_staff_user, delete_user, list_users
from querydesk.domain.models.user import Role, User
from querydesk.domain.repositories.query_repository import QueryRepository
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.domain.schemas.auth import StaffCreate, UserRead
from querydesk.interfaces.api.deps import require_admin
from querydesk.interfaces.deps import get_query_repository, get_user_repository

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    body: StaffCreate,
    repo: UserRepository = Depends(get_user_repository),
    admin: User = Depends(require_admin),
):
    user = create_staff_user(repo, body.name, body.email, body.password, body.role)
    return UserRead.model_validate(user)


@router.get("", response_model=list[UserRead])
def get_users(
    role: Optional[Role] = None,
    repo: UserRepository = Depends(get_user_repository),
    admin: User = Depends(require_admin),
):
    return [UserRead.model_validate(u) for u in list_users(repo, role)]


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_user(
    user_id: int,
    repo: UserRepository = Depends(get_user_repository),
    query_repo: QueryRepository = Depends(get_query_repository),
    admin: User = Depends(require_admin),
):
    delete_user(repo, query_repo, admin, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
