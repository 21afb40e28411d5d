"""User domain model — maps to the 'users' table."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func

from querydesk.infrastructure.database import Base


class Role(str, enum.Enum):
    PARTICIPANT = "Participant"
    ADMIN = "Admin"
    TEAM_HEAD = "Team_Head"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.PARTICIPANT,
        index=True,
    )
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else None})>"
