"""Leaderboard orchestration: cache reuse, regeneration and snapshot swap."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rideboard.config import Settings, get_settings
from rideboard.models.base import LeaderboardMetric, LeaderboardScope, PeriodKind
from rideboard.models.leaderboard import LeaderboardSnapshot
from rideboard.services.leaderboard.enrichment import EntryEnricher
from rideboard.services.leaderboard.errors import (
    LeaderboardError,
    LeaderboardSourceError,
    LeaderboardValidationError,
    UnsupportedMetricError,
)
from rideboard.services.leaderboard.metrics import MetricAggregator, build_default_strategies
from rideboard.services.leaderboard.periods import resolve_period
from rideboard.services.leaderboard.rank_delta import annotate_rank_changes
from rideboard.services.leaderboard.snapshot_store import SnapshotStore
from rideboard.services.leaderboard.types import (
    ActivityReader,
    LeaderboardEntry,
    PeriodBounds,
    ProfileReader,
    SnapshotKey,
)
from rideboard.utils.datetime_helpers import parse_reference_date, to_utc_datetime
from rideboard.utils.lock_client import LockClient, LockTimeoutError

logger = logging.getLogger(__name__)

RESOLVABLE_PERIOD_KINDS = {
    PeriodKind.DAILY,
    PeriodKind.WEEKLY,
    PeriodKind.MONTHLY,
    PeriodKind.YEARLY,
    PeriodKind.ALL_TIME,
}


@dataclass(frozen=True)
class LeaderboardRequest:
    """Validated leaderboard request parameters."""

    metric: LeaderboardMetric
    period_kind: PeriodKind
    reference: datetime
    scope: LeaderboardScope
    geo_qualifier: str


class LeaderboardService:
    """Serve materialized leaderboards, regenerating them when needed.

    Snapshots of closed or running non-daily periods are reused until a
    forced refresh; daily snapshots are rebuilt on every request. Each
    regeneration of a key runs under a named lock so concurrent requests
    for the same key collapse into one computation.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        activity_reader: Optional[ActivityReader] = None,
        profile_reader: Optional[ProfileReader] = None,
        store: Optional[SnapshotStore] = None,
        lock: Optional[LockClient] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        from rideboard.services.readers import SQLActivityReader, SQLProfileReader

        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.aggregator = MetricAggregator(
            activity_reader or SQLActivityReader(db),
            build_default_strategies(self.settings.avg_speed_min_activities),
        )
        self.enricher = EntryEnricher(profile_reader or SQLProfileReader(db))
        self.store = store or SnapshotStore(db)
        if lock is None:
            from rideboard.utils import lock_client
            lock = lock_client
        self.lock = lock

    def validate_request(
        self,
        metric: str,
        period_kind: str,
        date: Optional[str] = None,
        scope: Optional[str] = None,
        geo_code: Optional[str] = None,
    ) -> LeaderboardRequest:
        """Parse raw request parameters before any aggregation happens.

        Raises:
            LeaderboardValidationError: With a snake_case error code as message.
        """
        try:
            parsed_metric = LeaderboardMetric(metric)
        except ValueError:
            raise LeaderboardValidationError("invalid_metric") from None
        if not self.aggregator.supports(parsed_metric):
            raise UnsupportedMetricError("unsupported_metric")

        try:
            parsed_kind = PeriodKind(period_kind)
        except ValueError:
            raise LeaderboardValidationError("invalid_period") from None
        if parsed_kind not in RESOLVABLE_PERIOD_KINDS:
            raise LeaderboardValidationError("unsupported_period")

        try:
            reference = parse_reference_date(date, now=self.clock())
        except ValueError:
            raise LeaderboardValidationError("invalid_date") from None

        try:
            parsed_scope = LeaderboardScope(scope or LeaderboardScope.GLOBAL.value)
        except ValueError:
            raise LeaderboardValidationError("invalid_scope") from None

        geo_qualifier = ""
        if parsed_scope != LeaderboardScope.GLOBAL:
            geo_qualifier = (geo_code or "").strip().upper()
            if not geo_qualifier:
                raise LeaderboardValidationError("geo_code_required")

        return LeaderboardRequest(parsed_metric, parsed_kind, reference, parsed_scope, geo_qualifier)

    def _resolve(
        self,
        metric: LeaderboardMetric,
        period_kind: PeriodKind,
        reference: datetime,
        scope: LeaderboardScope,
        geo_qualifier: str,
    ) -> tuple[SnapshotKey, PeriodBounds]:
        bounds = resolve_period(period_kind, to_utc_datetime(reference), now=self.clock)
        key = SnapshotKey(
            metric=metric,
            period_kind=period_kind,
            period_id=bounds.period_id,
            scope=scope,
            geo_qualifier=geo_qualifier if scope != LeaderboardScope.GLOBAL else "",
        )
        return key, bounds

    async def get_cached(
        self,
        metric: LeaderboardMetric,
        period_kind: PeriodKind,
        reference: datetime,
        scope: LeaderboardScope = LeaderboardScope.GLOBAL,
        geo_qualifier: str = "",
    ) -> Optional[LeaderboardSnapshot]:
        """Return the current valid snapshot without regenerating."""
        key, _ = self._resolve(metric, period_kind, reference, scope, geo_qualifier)
        return await self.store.find(key)

    async def get_or_generate(
        self,
        metric: LeaderboardMetric,
        period_kind: PeriodKind,
        reference: datetime,
        scope: LeaderboardScope = LeaderboardScope.GLOBAL,
        geo_qualifier: str = "",
        force_refresh: bool = False,
    ) -> LeaderboardSnapshot:
        """Return the valid snapshot for the period containing ``reference``.

        Raises:
            UnsupportedMetricError: If ``metric`` has no aggregation strategy.
            LeaderboardSourceError: If aggregation or profile resolution fails
                or times out. The previous snapshot is left untouched.
        """
        if not self.aggregator.supports(metric):
            raise UnsupportedMetricError("unsupported_metric")

        key, bounds = self._resolve(metric, period_kind, reference, scope, geo_qualifier)
        reuse = not force_refresh and period_kind != PeriodKind.DAILY

        if reuse:
            cached = await self.store.find(key)
            if cached is not None:
                logger.debug(f"Leaderboard cache hit for {key.lock_name}")
                return cached

        timeout = self.settings.leaderboard_lock_timeout_seconds
        try:
            async with self.lock.lock(key.lock_name, timeout):
                return await self._regenerate(key, bounds, reuse)
        except LockTimeoutError:
            logger.warning(f"Lock wait for {key.lock_name} timed out after {timeout}s; regenerating without it")
            return await self._regenerate(key, bounds, reuse)

    async def _regenerate(self, key: SnapshotKey, bounds: PeriodBounds, reuse: bool) -> LeaderboardSnapshot:
        previous = await self.store.find(key)
        if reuse and previous is not None:
            # Another request regenerated this key while we waited for the lock
            logger.debug(f"Leaderboard {key.lock_name} produced by a concurrent request")
            return previous

        previous_entries = self.store.entries_of(previous) if previous is not None else []
        limit = self.settings.leaderboard_entry_limit

        try:
            entries = await asyncio.wait_for(
                self._compute_entries(key, bounds, limit),
                timeout=self.settings.leaderboard_aggregation_timeout_seconds,
            )
        except LeaderboardError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Leaderboard regeneration failed for {key.lock_name}: {e!r}")
            raise LeaderboardSourceError("leaderboard_source_unavailable") from e

        entries = annotate_rank_changes(entries, previous_entries)
        snapshot = await self.store.replace(key, entries, bounds, limit)
        logger.info(f"Regenerated leaderboard {key.lock_name} ({bounds.start.isoformat()}..{bounds.end.isoformat()})")
        return snapshot

    async def _compute_entries(self, key: SnapshotKey, bounds: PeriodBounds, limit: int) -> list[LeaderboardEntry]:
        results = await self.aggregator.aggregate(
            key.metric,
            bounds.start,
            bounds.end,
            key.scope,
            key.geo_qualifier,
            limit,
        )
        return await self.enricher.enrich(results)

    def entries_of(self, snapshot: LeaderboardSnapshot) -> list[LeaderboardEntry]:
        """Decode the ordered entries of a stored snapshot."""
        return self.store.entries_of(snapshot)
