import os

# Settings are read once at import time; point them at throwaway backends first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["MAIL_API_URL"] = ""
os.environ["ENVIRONMENT"] = "test"

from datetime import datetime, timedelta, timezone
from functools import lru_cache

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from querydesk.application.services.auth_service import create_access_token, hash_password
from querydesk.domain.models.notification import Notification
from querydesk.domain.models.query import Query, QueryStatus
from querydesk.domain.models.user import Role, User
from querydesk.infrastructure.database import Base, get_db
from querydesk.infrastructure.otp_store import InMemoryOTPStore
from querydesk.infrastructure.repositories.notification_repository import SQLAlchemyNotificationRepository
from querydesk.infrastructure.repositories.query_repository import SQLAlchemyQueryRepository
from querydesk.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from querydesk.interfaces.deps import get_notifier, get_otp_store

PASSWORD = "secret123"


@lru_cache
def _password_hash() -> str:
    # bcrypt is slow on purpose; hash the shared test password once
    return hash_password(PASSWORD)


class RecordingNotifier:
    """Notifier double that records calls and can be told to fail."""

    def __init__(self, fail: bool = False, code: str = "424242"):
        self.fail = fail
        self.code = code
        self.calls = []

    async def _send(self, kind, *args):
        self.calls.append((kind, *args))
        if self.fail:
            raise RuntimeError("mail provider unavailable")

    async def send_resolution_notice(self, query):
        await self._send("resolution", query.id)

    async def send_dismantle_notice(self, query, actor):
        await self._send("dismantle", query.id, actor.id)

    async def send_assignment_notice(self, query):
        await self._send("assignment", query.id, query.assigned_to_id)

    async def send_verification_code(self, email, name):
        await self._send("verification", email)
        return self.code

    def kinds(self):
        return [call[0] for call in self.calls]


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 2, 14, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user_repo(db):
    return SQLAlchemyUserRepository(db, User)


@pytest.fixture
def query_repo(db):
    return SQLAlchemyQueryRepository(db, Query)


@pytest.fixture
def notification_repo(db):
    return SQLAlchemyNotificationRepository(db, Notification)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def otp_store(clock):
    return InMemoryOTPStore(clock=clock)


@pytest.fixture
def make_user(user_repo):
    def _make(name: str, role: Role, verified: bool = True) -> User:
        return user_repo.create(
            {
                "name": name,
                "email": f"{name.lower()}@example.com",
                "password_hash": _password_hash(),
                "role": role,
                "is_verified": verified,
            }
        )

    return _make


@pytest.fixture
def participant(make_user):
    return make_user("Aanya", Role.PARTICIPANT)


@pytest.fixture
def other_participant(make_user):
    return make_user("Ishan", Role.PARTICIPANT)


@pytest.fixture
def admin(make_user):
    return make_user("Zayed", Role.ADMIN)


@pytest.fixture
def team_head(make_user):
    return make_user("Kamalesh", Role.TEAM_HEAD)


@pytest.fixture
def other_team_head(make_user):
    return make_user("Parth", Role.TEAM_HEAD)


@pytest.fixture
def make_query(db):
    """Insert a query row directly, bypassing the lifecycle, for read-side tests."""
    def _make(creator: User, status: QueryStatus = QueryStatus.UNASSIGNED, assignee: User = None,
              created_at: datetime = None, hours_to_update: float = 0, title: str = "Hostel rooms"):
        created_at = created_at or datetime(2026, 2, 1, 10, 0)
        query = Query(
            title=title,
            description="Do we get bedding?",
            status=status,
            created_by_id=creator.id,
            assigned_to_id=assignee.id if assignee else None,
            answer="Yes" if status == QueryStatus.RESOLVED else None,
            resolved_by_id=assignee.id if status == QueryStatus.RESOLVED and assignee else None,
            dismantled_reason="Duplicate" if status == QueryStatus.DISMANTLED else None,
            created_at=created_at,
            updated_at=created_at + timedelta(hours=hours_to_update),
        )
        db.add(query)
        db.commit()
        db.refresh(query)
        return query

    return _make


@pytest.fixture
def client(session_factory, notifier, otp_store):
    from querydesk.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_otp_store] = lambda: otp_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
