"""Pydantic schemas for the team-head dashboards."""

from pydantic import BaseModel


class TeamHeadLoad(BaseModel):
    id: int
    name: str
    email: str
    assigned_unanswered_count: int


class TeamHeadStats(BaseModel):
    id: int
    name: str
    email: str
    total_assigned: int
    total_resolved: int
    active_queries: int
    average_resolution_time_hours: float
    resolution_rate_percent: float
