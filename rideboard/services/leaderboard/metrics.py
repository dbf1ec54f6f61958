"""Metric aggregation strategies for leaderboard materialization.

Each strategy reduces a stream of activity records to one score per subject.
Strategies are registered per metric, so adding a metric only requires a new
registry entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Optional
from uuid import UUID

from rideboard.models.base import LeaderboardMetric, LeaderboardScope
from rideboard.services.leaderboard.errors import UnsupportedMetricError
from rideboard.services.leaderboard.types import ActivityReader, ActivityRecord, MetricResult

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


def rank_results(results: list[MetricResult], limit: int) -> list[MetricResult]:
    """Sort results best-first with a deterministic tie-break and truncate.

    Equal values are ordered by the earliest achievement time, then by the
    subject id string.
    """
    ordered = sorted(
        results,
        key=lambda result: (-result.value, result.achieved_at, str(result.subject_id)),
    )
    return ordered[:limit]


@dataclass
class _Accumulator:
    total: float = 0.0
    count: int = 0
    duration: float = 0.0
    achieved_at: Optional[datetime] = None


class MetricStrategy:
    """Reduction contract shared by all metrics."""

    metric: LeaderboardMetric

    async def aggregate(
        self,
        records: AsyncIterator[ActivityRecord],
        limit: int,
    ) -> list[MetricResult]:
        raise NotImplementedError


class SumStrategy(MetricStrategy):
    """Cumulative metric: sum of one numeric field per subject.

    Records whose field is ``None`` are skipped; subjects without any
    contributing record are not ranked.
    """

    def __init__(self, metric: LeaderboardMetric, field_name: str):
        self.metric = metric
        self.field_name = field_name

    async def aggregate(self, records, limit):
        totals: dict[UUID, _Accumulator] = {}
        async for record in records:
            amount = getattr(record, self.field_name)
            if amount is None:
                continue
            acc = totals.setdefault(record.subject_id, _Accumulator())
            acc.total += float(amount)
            acc.count += 1
            if acc.achieved_at is None or record.started_at < acc.achieved_at:
                acc.achieved_at = record.started_at

        results = [
            MetricResult(subject_id, acc.total, acc.achieved_at)
            for subject_id, acc in totals.items()
        ]
        return rank_results(results, limit)


class CountStrategy(MetricStrategy):
    """Cumulative metric: number of activities per subject."""

    def __init__(self, metric: LeaderboardMetric):
        self.metric = metric

    async def aggregate(self, records, limit):
        counts: dict[UUID, _Accumulator] = {}
        async for record in records:
            acc = counts.setdefault(record.subject_id, _Accumulator())
            acc.count += 1
            if acc.achieved_at is None or record.started_at < acc.achieved_at:
                acc.achieved_at = record.started_at

        results = [
            MetricResult(subject_id, float(acc.count), acc.achieved_at)
            for subject_id, acc in counts.items()
        ]
        return rank_results(results, limit)


class PeakStrategy(MetricStrategy):
    """Peak metric: best single value of one field per subject.

    The achievement time is the start of the earliest activity that reached
    the peak.
    """

    def __init__(self, metric: LeaderboardMetric, field_name: str):
        self.metric = metric
        self.field_name = field_name

    async def aggregate(self, records, limit):
        peaks: dict[UUID, MetricResult] = {}
        async for record in records:
            value = getattr(record, self.field_name)
            if value is None:
                continue
            value = float(value)
            current = peaks.get(record.subject_id)
            if (
                current is None
                or value > current.value
                or (value == current.value and record.started_at < current.achieved_at)
            ):
                peaks[record.subject_id] = MetricResult(record.subject_id, value, record.started_at)

        return rank_results(list(peaks.values()), limit)


class AverageSpeedStrategy(MetricStrategy):
    """Ratio metric: total distance over total moving time, in km/h.

    Only activities with a positive duration qualify, and a subject needs at
    least ``min_activities`` qualifying activities to be ranked.
    """

    metric = LeaderboardMetric.AVG_SPEED

    def __init__(self, min_activities: int = 1):
        self.min_activities = max(1, min_activities)

    async def aggregate(self, records, limit):
        sums: dict[UUID, _Accumulator] = {}
        async for record in records:
            if not record.duration_seconds or record.duration_seconds <= 0:
                continue
            acc = sums.setdefault(record.subject_id, _Accumulator())
            acc.total += float(record.distance_km or 0.0)
            acc.duration += float(record.duration_seconds)
            acc.count += 1
            if acc.achieved_at is None or record.started_at < acc.achieved_at:
                acc.achieved_at = record.started_at

        results = []
        for subject_id, acc in sums.items():
            if acc.count < self.min_activities or acc.duration <= 0:
                continue
            hours = acc.duration / SECONDS_PER_HOUR
            results.append(MetricResult(subject_id, acc.total / hours, acc.achieved_at))
        return rank_results(results, limit)


def build_default_strategies(avg_speed_min_activities: int = 1) -> dict[LeaderboardMetric, MetricStrategy]:
    """Return the registry of built-in metric strategies."""
    return {
        LeaderboardMetric.TOTAL_DISTANCE: SumStrategy(LeaderboardMetric.TOTAL_DISTANCE, "distance_km"),
        LeaderboardMetric.TOTAL_DURATION: SumStrategy(LeaderboardMetric.TOTAL_DURATION, "duration_seconds"),
        LeaderboardMetric.TOTAL_ELEVATION: SumStrategy(LeaderboardMetric.TOTAL_ELEVATION, "elevation_gain_m"),
        LeaderboardMetric.TOTAL_TRACKS: CountStrategy(LeaderboardMetric.TOTAL_TRACKS),
        LeaderboardMetric.MAX_SPEED: PeakStrategy(LeaderboardMetric.MAX_SPEED, "max_speed_kmh"),
        LeaderboardMetric.AVG_SPEED: AverageSpeedStrategy(avg_speed_min_activities),
    }


@dataclass
class MetricAggregator:
    """Reduce raw activities in a window and scope to ranked metric results."""

    reader: ActivityReader
    strategies: dict[LeaderboardMetric, MetricStrategy] = field(default_factory=build_default_strategies)

    def supports(self, metric: LeaderboardMetric) -> bool:
        return metric in self.strategies

    async def aggregate(
        self,
        metric: LeaderboardMetric,
        start: datetime,
        end: datetime,
        scope: LeaderboardScope,
        geo_qualifier: str,
        limit: int,
    ) -> list[MetricResult]:
        """Rank subjects by ``metric`` over activities started in ``[start, end]``.

        Raises:
            UnsupportedMetricError: If no strategy is registered for ``metric``.
        """
        strategy = self.strategies.get(metric)
        if strategy is None:
            raise UnsupportedMetricError(f"unsupported_metric:{getattr(metric, 'value', metric)}")

        records = self.reader.query_activities(start, end, scope, geo_qualifier)
        results = await strategy.aggregate(records, limit)
        logger.debug(
            f"Aggregated {metric.value} for {scope.value}:{geo_qualifier or '-'} "
            f"{start.isoformat()}..{end.isoformat()}: {len(results)} subjects"
        )
        return results
