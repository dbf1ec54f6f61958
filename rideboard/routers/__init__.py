"""API routers."""
from rideboard.routers import activities, health, leaderboards

__all__ = [
    "activities",
    "health",
    "leaderboards",
]
