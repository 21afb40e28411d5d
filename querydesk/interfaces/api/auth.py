"""Auth API routes — register, verify OTP, login, me."""

from fastapi import APIRouter, Depends, status

from querydesk.application.services.auth_service import (
    authenticate_user,
    create_access_token,
    register_participant,
    verify_otp,
)
from querydesk.application.services.notification_service import Notifier
from querydesk.domain.models.user import User
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.domain.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserRead,
    VerifyOTPRequest,
)
from querydesk.infrastructure.otp_store import OTPStore
from querydesk.interfaces.api.deps import get_current_user
from querydesk.interfaces.deps import get_notifier, get_otp_store, get_user_repository

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user),
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    repo: UserRepository = Depends(get_user_repository),
    notifier: Notifier = Depends(get_notifier),
    otp_store: OTPStore = Depends(get_otp_store),
):
    user = await register_participant(
        repo,
        notifier,
        otp_store,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return RegisterResponse(email=user.email)


@router.post("/verify-otp", response_model=TokenResponse)
def verify(
    body: VerifyOTPRequest,
    repo: UserRepository = Depends(get_user_repository),
    otp_store: OTPStore = Depends(get_otp_store),
):
    user = verify_otp(repo, otp_store, body.email, body.otp)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, repo: UserRepository = Depends(get_user_repository)):
    user = authenticate_user(repo, body.email, body.password)
    return _token_response(user)


@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    return UserRead.model_validate(user)
