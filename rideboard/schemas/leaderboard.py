"""Leaderboard response schemas."""
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from uuid import UUID
from rideboard.schemas.base import BaseSchema


class LeaderboardEntrySchema(BaseModel):
    """One ranked rider."""
    subject_id: UUID
    username: str
    display_name: str
    avatar_url: str = ""
    rank: int
    value: float
    rank_change: int = 0


class LeaderboardUserStatus(BaseModel):
    """Where the requesting rider stands in the returned snapshot."""
    in_leaderboard: bool
    current_user_rank: Optional[int] = None
    current_user_value: Optional[float] = None
    current_user_change: Optional[int] = None


class LeaderboardResponse(BaseSchema):
    """Materialized leaderboard snapshot."""
    metric: str
    period_kind: str
    period_id: str
    start_date: datetime
    end_date: datetime
    scope: str
    geo_qualifier: Optional[str] = None
    entries: list[LeaderboardEntrySchema]
    updated_at: datetime
    is_valid: bool
    stale: bool = False
    user_status: LeaderboardUserStatus


class LeaderboardPositionResponse(BaseModel):
    """Requesting rider's position within a snapshot."""
    in_leaderboard: bool
    message: Optional[str] = None
    rank: Optional[int] = None
    value: Optional[float] = None
    total: Optional[int] = None
    percentile: Optional[int] = None
    change: Optional[int] = None
