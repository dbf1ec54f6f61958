"""Leaderboard materialization: periods, aggregation, snapshots and lookups."""
from rideboard.services.leaderboard.errors import (
    LeaderboardError,
    LeaderboardInvariantError,
    LeaderboardSourceError,
    LeaderboardValidationError,
    UnsupportedMetricError,
)
from rideboard.services.leaderboard.types import (
    ActivityRecord,
    DisplayInfo,
    LeaderboardEntry,
    MetricResult,
    PeriodBounds,
    PositionResult,
    SnapshotKey,
)
from rideboard.services.leaderboard.periods import resolve_period
from rideboard.services.leaderboard.metrics import MetricAggregator, build_default_strategies
from rideboard.services.leaderboard.enrichment import EntryEnricher
from rideboard.services.leaderboard.rank_delta import annotate_rank_changes
from rideboard.services.leaderboard.snapshot_store import SnapshotStore
from rideboard.services.leaderboard.position import locate, user_status
from rideboard.services.leaderboard.service import LeaderboardRequest, LeaderboardService

__all__ = [
    "ActivityRecord",
    "DisplayInfo",
    "EntryEnricher",
    "LeaderboardEntry",
    "LeaderboardError",
    "LeaderboardInvariantError",
    "LeaderboardRequest",
    "LeaderboardService",
    "LeaderboardSourceError",
    "LeaderboardValidationError",
    "MetricAggregator",
    "MetricResult",
    "PeriodBounds",
    "PositionResult",
    "SnapshotKey",
    "SnapshotStore",
    "UnsupportedMetricError",
    "annotate_rank_changes",
    "build_default_strategies",
    "locate",
    "resolve_period",
    "user_status",
]
