"""FastAPI application — main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI

from querydesk.config import get_settings
from querydesk.infrastructure.database import engine, Base, SessionLocal
from querydesk.core.logging import configure_logging
from querydesk.core.middleware import setup_middleware
from querydesk.core.exceptions import AppError, global_exception_handler

# Import all models so SQLAlchemy knows about them
from querydesk.domain.models.user import User
from querydesk.domain.models.query import Query
from querydesk.domain.models.notification import Notification

from querydesk.interfaces.api.auth import router as auth_router
from querydesk.interfaces.api.users import router as users_router
from querydesk.interfaces.api.queries import router as queries_router
from querydesk.interfaces.api.team_heads import router as team_heads_router
from querydesk.interfaces.api.notifications import router as notifications_router

settings = get_settings()

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    logger.info("Starting QueryDesk...", env=settings.ENVIRONMENT)

    # Create DB tables (use migrations for anything beyond a fresh database)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    from querydesk.application.services.auth_service import ensure_default_admin
    from querydesk.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

    db = SessionLocal()
    try:
        admin = ensure_default_admin(SQLAlchemyUserRepository(db, User))
        if admin:
            logger.info("Default admin user created", email=admin.email)
    finally:
        db.close()

    yield

    logger.info("QueryDesk stopped")


app = FastAPI(
    title="QueryDesk",
    description="Query management for event support: participants ask, team heads answer, admins oversee.",
    version="1.0.0",
    lifespan=lifespan,
)

setup_middleware(app)

app.add_exception_handler(AppError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(queries_router)
app.include_router(team_heads_router)
app.include_router(notifications_router)


@app.get("/")
def root():
    return {
        "name": "QueryDesk",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
