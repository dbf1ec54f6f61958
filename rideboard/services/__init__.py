from rideboard.services.leaderboard import (
    LeaderboardService,
    LeaderboardError,
    LeaderboardSourceError,
    LeaderboardValidationError,
)
from rideboard.services.readers import SQLActivityReader, SQLProfileReader
from rideboard.services.statistics_service import StatisticsService, register_statistics_handlers
from rideboard.services.activity_service import ActivityService, ActivityError

__all__ = [
    "ActivityError",
    "ActivityService",
    "LeaderboardError",
    "LeaderboardService",
    "LeaderboardSourceError",
    "LeaderboardValidationError",
    "SQLActivityReader",
    "SQLProfileReader",
    "StatisticsService",
    "register_statistics_handlers",
]
