"""SQL-backed readers over activities and profiles used by leaderboards."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rideboard.config import get_settings
from rideboard.models.activity import Activity
from rideboard.models.base import LeaderboardScope
from rideboard.models.user import User
from rideboard.services.leaderboard.types import ActivityRecord, DisplayInfo
from rideboard.utils.cache import SimpleCache, profile_cache
from rideboard.utils.datetime_helpers import ensure_utc

logger = logging.getLogger(__name__)

SCOPE_COLUMNS = {
    LeaderboardScope.NATIONAL: Activity.country_code,
    LeaderboardScope.REGIONAL: Activity.region_code,
    LeaderboardScope.CITY: Activity.city_code,
}


class SQLActivityReader:
    """Stream activity records from the ``activities`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _build_query(
        self,
        start: datetime,
        end: datetime,
        scope: LeaderboardScope,
        geo_qualifier: str,
    ):
        stmt = select(
            Activity.activity_id,
            Activity.user_id,
            Activity.started_at,
            Activity.duration_seconds,
            Activity.distance_km,
            Activity.max_speed_kmh,
            Activity.elevation_gain_m,
            Activity.country_code,
            Activity.region_code,
            Activity.city_code,
        ).where(
            Activity.started_at >= start,
            Activity.started_at <= end,
        )

        column = SCOPE_COLUMNS.get(scope)
        if column is not None:
            stmt = stmt.where(column == geo_qualifier)

        return stmt.order_by(Activity.started_at, Activity.activity_id)

    async def query_activities(
        self,
        start: datetime,
        end: datetime,
        scope: LeaderboardScope,
        geo_qualifier: str,
    ) -> AsyncIterator[ActivityRecord]:
        """Yield activities started within ``[start, end]`` in the given scope.

        Non-global scopes match only activities tagged with ``geo_qualifier``
        on the corresponding geo column.
        """
        result = await self.db.execute(self._build_query(start, end, scope, geo_qualifier))
        for row in result.all():
            yield ActivityRecord(
                activity_id=row.activity_id,
                subject_id=row.user_id,
                started_at=ensure_utc(row.started_at),
                duration_seconds=row.duration_seconds or 0.0,
                distance_km=row.distance_km or 0.0,
                max_speed_kmh=row.max_speed_kmh,
                elevation_gain_m=row.elevation_gain_m,
                country_code=row.country_code,
                region_code=row.region_code,
                city_code=row.city_code,
            )


class SQLProfileReader:
    """Resolve display information from the ``users`` table through a TTL cache.

    Profiles are cached for ``profile_cache_ttl_seconds``; a rename or soft
    delete made after a profile was cached shows up in leaderboards only once
    that entry expires.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[SimpleCache] = None,
        ttl: Optional[float] = None,
    ):
        self.db = db
        self.cache = cache if cache is not None else profile_cache
        self.ttl = ttl if ttl is not None else get_settings().profile_cache_ttl_seconds

    @staticmethod
    def _cache_key(subject_id: UUID) -> str:
        return f"profile:{subject_id}"

    async def get_display_info(self, subject_id: UUID) -> Optional[DisplayInfo]:
        resolved = await self.get_display_info_many([subject_id])
        return resolved.get(subject_id)

    async def get_display_info_many(self, subject_ids: Sequence[UUID]) -> dict[UUID, DisplayInfo]:
        """Resolve many subjects with at most one query for cache misses.

        Unknown and soft-deleted subjects are absent from the result.
        """
        resolved: dict[UUID, DisplayInfo] = {}
        missing: list[UUID] = []
        for subject_id in dict.fromkeys(subject_ids):
            cached = self.cache.get(self._cache_key(subject_id))
            if cached is not None:
                resolved[subject_id] = cached
            else:
                missing.append(subject_id)

        if not missing:
            return resolved

        result = await self.db.execute(
            select(User.user_id, User.username, User.name, User.profile_image_url).where(
                User.user_id.in_(missing),
                User.deleted_at.is_(None),
            )
        )
        for row in result.all():
            info = DisplayInfo(
                username=row.username,
                display_name=row.name or row.username,
                avatar_url=row.profile_image_url or "",
            )
            resolved[row.user_id] = info
            self.cache.set(self._cache_key(row.user_id), info, ttl=self.ttl)

        logger.debug(f"Resolved {len(resolved)}/{len(subject_ids)} profiles ({len(missing)} cache misses)")
        return resolved
