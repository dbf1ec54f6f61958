"""Value types shared by the leaderboard materialization pipeline."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, AsyncIterator, Mapping, Optional, Protocol, Sequence
from uuid import UUID

from rideboard.models.base import LeaderboardMetric, LeaderboardScope, PeriodKind


@dataclass(frozen=True, slots=True)
class PeriodBounds:
    """Canonical identifier and inclusive UTC bounds of a period instance."""

    period_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True, slots=True)
class SnapshotKey:
    """Composite identity of a materialized leaderboard."""

    metric: LeaderboardMetric
    period_kind: PeriodKind
    period_id: str
    scope: LeaderboardScope
    geo_qualifier: str = ""

    @property
    def lock_name(self) -> str:
        return (
            f"leaderboard:{self.metric.value}:{self.period_kind.value}:{self.period_id}:"
            f"{self.scope.value}:{self.geo_qualifier}"
        )


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """One raw activity as seen by the aggregation strategies."""

    activity_id: UUID
    subject_id: UUID
    started_at: datetime
    duration_seconds: float
    distance_km: float
    max_speed_kmh: Optional[float] = None
    elevation_gain_m: Optional[float] = None
    country_code: Optional[str] = None
    region_code: Optional[str] = None
    city_code: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MetricResult:
    """Reduced score of one subject over a window."""

    subject_id: UUID
    value: float
    achieved_at: datetime


@dataclass(frozen=True, slots=True)
class DisplayInfo:
    """Profile fields copied onto leaderboard entries."""

    username: str
    display_name: str
    avatar_url: str = ""


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """One ranked subject within a snapshot."""

    subject_id: UUID
    username: str
    display_name: str
    avatar_url: str
    rank: int
    value: float
    rank_change: int = 0

    def with_rank_change(self, rank_change: int) -> "LeaderboardEntry":
        return replace(self, rank_change=rank_change)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": str(self.subject_id),
            "username": self.username,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "rank": self.rank,
            "value": self.value,
            "rank_change": self.rank_change,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LeaderboardEntry":
        return cls(
            subject_id=UUID(str(data["subject_id"])),
            username=data.get("username") or "",
            display_name=data.get("display_name") or "",
            avatar_url=data.get("avatar_url") or "",
            rank=int(data["rank"]),
            value=float(data["value"]),
            rank_change=int(data.get("rank_change") or 0),
        )


@dataclass(frozen=True, slots=True)
class PositionResult:
    """A subject's standing within a materialized snapshot."""

    present: bool
    rank: Optional[int] = None
    value: Optional[float] = None
    total: int = 0
    percentile: Optional[int] = None
    change: Optional[int] = None


class ActivityReader(Protocol):
    """Read interface over the raw activity store."""

    def query_activities(
        self,
        start: datetime,
        end: datetime,
        scope: LeaderboardScope,
        geo_qualifier: str,
    ) -> AsyncIterator[ActivityRecord]:
        ...


class ProfileReader(Protocol):
    """Read interface over subject profiles."""

    async def get_display_info(self, subject_id: UUID) -> Optional[DisplayInfo]:
        ...

    async def get_display_info_many(self, subject_ids: Sequence[UUID]) -> dict[UUID, DisplayInfo]:
        ...
