"""Query domain model — a participant's support ticket, maps to the 'queries' table."""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from querydesk.infrastructure.database import Base

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
ANSWER_MAX_LENGTH = 2000
DISMANTLED_REASON_MAX_LENGTH = 500


class QueryStatus(str, enum.Enum):
    UNASSIGNED = "UNASSIGNED"
    REQUESTED = "REQUESTED"
    ASSIGNED = "ASSIGNED"
    RESOLVED = "RESOLVED"
    DISMANTLED = "DISMANTLED"


class Query(Base):
    __tablename__ = "queries"
    __table_args__ = (
        Index("idx_queries_status_created_by", "status", "created_by_id"),
        Index("idx_queries_assigned_to_status", "assigned_to_id", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        Enum(QueryStatus, name="query_status", native_enum=False, length=20),
        nullable=False,
        default=QueryStatus.UNASSIGNED,
    )

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # Never written by any transition; kept so existing rows and clients keep their shape
    requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    answer = Column(Text, nullable=True)
    dismantled_reason = Column(String(DISMANTLED_REASON_MAX_LENGTH), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    created_by = relationship("User", foreign_keys=[created_by_id], lazy="joined")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id], lazy="joined")
    requested_by = relationship("User", foreign_keys=[requested_by_id], lazy="joined")
    resolved_by = relationship("User", foreign_keys=[resolved_by_id], lazy="joined")

    def __repr__(self):
        return f"<Query {self.id} - {self.status.value if self.status else None}>"
