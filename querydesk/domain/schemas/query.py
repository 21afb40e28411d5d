"""Pydantic schemas for Query payloads and responses.

Request bodies leave their fields optional on purpose: missing or blank values
are rejected by the lifecycle service so every caller gets the same error.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from querydesk.domain.models.query import QueryStatus
from querydesk.domain.schemas.auth import UserSummary


class QueryCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class AssignRequest(BaseModel):
    team_head_id: Optional[int] = None


class AnswerRequest(BaseModel):
    answer: Optional[str] = None


class DismantleRequest(BaseModel):
    reason: Optional[str] = None


class QueryRead(BaseModel):
    id: int
    title: str
    description: str
    status: QueryStatus
    created_by: UserSummary
    assigned_to: Optional[UserSummary] = None
    requested_by: Optional[UserSummary] = None
    answer: Optional[str] = None
    resolved_by: Optional[UserSummary] = None
    dismantled_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class QueryList(BaseModel):
    count: int
    items: list[QueryRead]
