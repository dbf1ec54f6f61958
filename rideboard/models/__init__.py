"""Database models."""
from rideboard.models.user import User
from rideboard.models.vehicle import Vehicle
from rideboard.models.activity import Activity
from rideboard.models.leaderboard import LeaderboardSnapshot

__all__ = [
    "User",
    "Vehicle",
    "Activity",
    "LeaderboardSnapshot",
]
