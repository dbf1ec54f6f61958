"""Named lock abstraction - Redis or in-process fallback."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

logger = logging.getLogger(__name__)


class LockTimeoutError(RuntimeError):
    """Raised when a named lock could not be acquired in time."""


class LockClient:
    """Abstraction for named locks - uses Redis if available, else asyncio locks.

    In-process locks only serialize work inside one worker; a Redis URL is
    needed to serialize across workers.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.backend = "memory"
        self._memory_locks: dict[str, asyncio.Lock] = {}
        self._memory_refcounts: dict[str, int] = {}
        self.redis = None

        if redis_url:
            try:
                import redis.asyncio as redis_asyncio
                self.redis = redis_asyncio.from_url(redis_url, decode_responses=True)
                self.backend = "redis"
                logger.info("Using Redis for named locks")
            except Exception as e:
                logger.warning(f"Redis not available, using in-process locks: {e}")
        else:
            logger.info("Using in-process locks (Redis URL not provided)")

    def _downgrade(self, error: Exception) -> None:
        if self.backend == "redis":
            logger.warning(f"Redis unreachable, falling back to in-process locks: {error}")
        self.backend = "memory"

    async def check_backend(self) -> str:
        """Ping Redis, switching to in-process locks if it is unreachable.

        Returns the backend in effect after the check.
        """
        if self.backend == "redis":
            from redis.exceptions import RedisError

            try:
                await self.redis.ping()
            except RedisError as e:
                self._downgrade(e)
        return self.backend

    @asynccontextmanager
    async def lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        """Hold the named lock for the duration of the block.

        A Redis server that cannot be reached while acquiring switches this
        client to in-process locks for the rest of its lifetime.

        Raises:
            LockTimeoutError: If the lock is not acquired within ``timeout`` seconds.
        """
        if self.backend == "redis":
            redis_lock = await self._acquire_redis_lock(name, timeout)
            if redis_lock is not None:
                try:
                    yield
                finally:
                    await self._release_redis_lock(redis_lock, name)
                return

        async with self._memory_lock(name, timeout):
            yield

    async def _acquire_redis_lock(self, name: str, timeout: float):
        from redis.exceptions import LockError, RedisError

        redis_lock = self.redis.lock(f"lock:{name}", timeout=timeout, blocking_timeout=timeout)
        try:
            acquired = await redis_lock.acquire()
        except LockError:
            raise
        except RedisError as e:
            self._downgrade(e)
            return None
        if not acquired:
            raise LockTimeoutError(f"Timed out waiting for lock {name}")
        return redis_lock

    async def _release_redis_lock(self, redis_lock, name: str) -> None:
        from redis.exceptions import LockError, RedisError

        try:
            await redis_lock.release()
        except LockError:
            # Lock expired while held; the next holder already owns it.
            logger.warning(f"Lock {name} expired before release")
        except RedisError as e:
            logger.warning(f"Could not release lock {name}: {e}")

    @asynccontextmanager
    async def _memory_lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        memory_lock = self._memory_locks.get(name)
        if memory_lock is None:
            memory_lock = asyncio.Lock()
            self._memory_locks[name] = memory_lock
        self._memory_refcounts[name] = self._memory_refcounts.get(name, 0) + 1

        try:
            try:
                await asyncio.wait_for(memory_lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError:
                raise LockTimeoutError(f"Timed out waiting for lock {name}") from None

            try:
                yield
            finally:
                memory_lock.release()
        finally:
            remaining = self._memory_refcounts[name] - 1
            if remaining:
                self._memory_refcounts[name] = remaining
            else:
                self._memory_refcounts.pop(name, None)
                self._memory_locks.pop(name, None)

    def is_locked(self, name: str) -> bool:
        """Return True if an in-process lock for ``name`` is currently held."""
        memory_lock = self._memory_locks.get(name)
        return bool(memory_lock and memory_lock.locked())
