"""Simple in-memory cache for frequently accessed data."""
import time
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class SimpleCache:
    """
    A simple in-memory cache with TTL (time-to-live) support.

    Used to keep profile display data close to leaderboard enrichment so a
    regeneration does not hit the profile store for every ranked subject.
    """

    def __init__(self, default_ttl: float = 30.0):
        self.default_ttl = default_ttl
        self._cache: Dict[str, tuple[Any, float]] = {}
        self._last_cleanup = time.time()
        self._cleanup_interval = 60.0  # Clean up every 60 seconds

    def _cleanup_expired(self):
        """Remove expired entries from cache."""
        current_time = time.time()
        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        expired_keys = [key for key, (_, expires_at) in self._cache.items() if current_time > expires_at]
        for key in expired_keys:
            self._cache.pop(key, None)

        self._last_cleanup = current_time

        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        self._cleanup_expired()

        if key not in self._cache:
            return None

        value, expires_at = self._cache[key]
        if time.time() > expires_at:
            self._cache.pop(key, None)
            return None

        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Set value in cache with TTL."""
        if ttl is None:
            ttl = self.default_ttl

        expires_at = time.time() + ttl
        self._cache[key] = (value, expires_at)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()


# Global cache instance for profile display data
profile_cache = SimpleCache(default_ttl=300.0)
