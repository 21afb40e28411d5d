"""Auth service — password hashing, JWT tokens, registration and OTP verification."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext

from querydesk.config import get_settings
from querydesk.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    ForbiddenException,
    NotificationDeliveryException,
    UnauthorizedException,
    ValidationException,
)
from querydesk.domain.models.user import Role, User
from querydesk.domain.repositories.user_repository import UserRepository
from querydesk.infrastructure.otp_store import OTPStore

settings = get_settings()
logger = structlog.get_logger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    to_encode = {"sub": str(user.id), "role": user.role.value, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def generate_otp(length: int = settings.OTP_LENGTH) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def create_user(
    repo: UserRepository,
    name: str,
    email: str,
    password: str,
    role: Role = Role.PARTICIPANT,
    is_verified: bool = False,
) -> User:
    if repo.get_by_email(email):
        raise ValidationException("User already exists with this email")

    return repo.create(
        {
            "name": name.strip(),
            "email": email,
            "password_hash": hash_password(password),
            "role": role,
            "is_verified": is_verified,
        }
    )


def authenticate_user(repo: UserRepository, email: str, password: str) -> User:
    user = repo.get_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedException("Invalid credentials")
    if not user.is_verified:
        raise ForbiddenException("Please verify your email first. Check your inbox for the OTP.")
    return user


async def register_participant(
    repo: UserRepository,
    notifier,
    otp_store: OTPStore,
    name: str,
    email: str,
    password: str,
    role: Optional[Role] = None,
) -> User:
    """Create an unverified Participant and email them a verification code.

    If the code cannot be delivered the account is deleted again: an account
    that can never be verified is of no use to anyone.
    """
    if role is not None and role != Role.PARTICIPANT:
        raise ValidationException(
            "Only Participant role is allowed for public registration. "
            "Admins and Team Heads are added by administrators."
        )

    user = create_user(repo, name=name, email=email, password=password, role=Role.PARTICIPANT)

    try:
        code = await notifier.send_verification_code(user.email, user.name)
    except Exception as e:
        logger.warning("Verification email failed, rolling back registration", email=email, error=str(e))
        repo.delete(user.id)
        raise NotificationDeliveryException(
            "Failed to send verification email. Please try again."
        ) from e

    otp_store.put(user.email, code, timedelta(minutes=settings.OTP_TTL_MINUTES))
    logger.info("Participant registered, awaiting verification", user_id=user.id)
    return user


def verify_otp(repo: UserRepository, otp_store: OTPStore, email: str, otp: str) -> User:
    """Check a code against the registry and mark the account verified."""
    if not email or not otp:
        raise ValidationException("Please provide email and OTP")

    entry = otp_store.get(email)
    if entry is None:
        raise ValidationException("OTP not found or expired")

    if entry.is_expired(otp_store.now()):
        otp_store.delete(email)
        raise ValidationException("OTP has expired")

    if not secrets.compare_digest(entry.code, otp.strip()):
        raise ValidationException("Invalid OTP")

    otp_store.delete(email)

    user = repo.get_by_email(email)
    if user is None:
        raise EntityNotFoundException("User not found")

    return repo.update(user, {"is_verified": True})


def ensure_default_admin(repo: UserRepository) -> Optional[User]:
    """Seed an admin account when the system has none."""
    if repo.count_by_role(Role.ADMIN) > 0:
        return None
    if repo.get_by_email(settings.DEFAULT_ADMIN_EMAIL):
        raise BusinessRuleViolationException(
            "Default admin email is taken by a non-admin account",
            details={"email": settings.DEFAULT_ADMIN_EMAIL},
        )
    return create_user(
        repo,
        name=settings.DEFAULT_ADMIN_NAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password=settings.DEFAULT_ADMIN_PASSWORD,
        role=Role.ADMIN,
        is_verified=True,
    )
