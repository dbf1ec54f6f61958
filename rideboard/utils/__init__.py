"""Utilities module - lock client and datetime helpers."""
from rideboard.config import get_settings
from rideboard.utils.lock_client import LockClient, LockTimeoutError
from rideboard.utils.datetime_helpers import ensure_utc

settings = get_settings()

# Create singleton instances
lock_client = LockClient(settings.redis_url if settings.redis_url else None)

__all__ = ["lock_client", "LockTimeoutError", "ensure_utc"]
