"""Persistence of materialized leaderboard snapshots."""

from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rideboard.config import get_settings
from rideboard.models.leaderboard import LeaderboardSnapshot
from rideboard.services.leaderboard.errors import LeaderboardInvariantError
from rideboard.services.leaderboard.types import LeaderboardEntry, PeriodBounds, SnapshotKey

logger = logging.getLogger(__name__)


def find_invariant_violations(entries: Sequence[LeaderboardEntry]) -> list[str]:
    """Return human readable descriptions of ranking invariant violations."""
    problems: list[str] = []
    seen: set = set()
    previous_value: Optional[float] = None
    for position, entry in enumerate(entries, start=1):
        if entry.rank != position:
            problems.append(f"rank {entry.rank} at position {position}")
        if entry.subject_id in seen:
            problems.append(f"duplicate subject {entry.subject_id}")
        seen.add(entry.subject_id)
        if previous_value is not None and entry.value > previous_value:
            problems.append(f"value {entry.value} above preceding {previous_value} at rank {position}")
        previous_value = entry.value
    return problems


def repair_entries(entries: Sequence[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Drop duplicate subjects, restore value order and recompact ranks."""
    unique: dict = {}
    for entry in entries:
        unique.setdefault(entry.subject_id, entry)
    ordered = sorted(unique.values(), key=lambda entry: -entry.value)
    return [
        LeaderboardEntry(
            subject_id=entry.subject_id,
            username=entry.username,
            display_name=entry.display_name,
            avatar_url=entry.avatar_url,
            rank=rank,
            value=entry.value,
            rank_change=entry.rank_change,
        )
        for rank, entry in enumerate(ordered, start=1)
    ]


class SnapshotStore:
    """Read and atomically replace the valid snapshot of a leaderboard key.

    Invariant violations raise ``LeaderboardInvariantError`` when ``strict``
    (every environment except production); otherwise they are logged and the
    data is repaired before use.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        retention: Optional[int] = None,
        strict: Optional[bool] = None,
    ):
        settings = get_settings()
        self.db = db
        self.retention = settings.leaderboard_superseded_retention if retention is None else retention
        self.strict = (not settings.is_production) if strict is None else strict

    @staticmethod
    def _key_filter(key: SnapshotKey):
        return (
            LeaderboardSnapshot.metric == key.metric.value,
            LeaderboardSnapshot.period_kind == key.period_kind.value,
            LeaderboardSnapshot.period_id == key.period_id,
            LeaderboardSnapshot.scope == key.scope.value,
            LeaderboardSnapshot.geo_qualifier == (key.geo_qualifier or ""),
        )

    def _check(self, entries: Sequence[LeaderboardEntry], context: str) -> list[LeaderboardEntry]:
        problems = find_invariant_violations(entries)
        if not problems:
            return list(entries)
        message = f"Leaderboard invariant violated ({context}): {'; '.join(problems[:5])}"
        if self.strict:
            raise LeaderboardInvariantError(message)
        logger.error(message)
        return repair_entries(entries)

    def entries_of(self, snapshot: LeaderboardSnapshot) -> list[LeaderboardEntry]:
        """Decode the ordered entries of ``snapshot``, checking invariants."""
        entries = [LeaderboardEntry.from_dict(item) for item in snapshot.entries or []]
        return self._check(entries, f"read {snapshot.snapshot_id}")

    async def find(self, key: SnapshotKey) -> Optional[LeaderboardSnapshot]:
        """Return the valid snapshot for ``key``, if any."""
        result = await self.db.execute(
            select(LeaderboardSnapshot)
            .where(*self._key_filter(key), LeaderboardSnapshot.is_valid.is_(True))
            .order_by(LeaderboardSnapshot.updated_at.desc(), LeaderboardSnapshot.created_at.desc())
        )
        rows = list(result.scalars().all())
        if len(rows) > 1:
            message = f"{len(rows)} valid snapshots for {key.lock_name}"
            if self.strict:
                raise LeaderboardInvariantError(message)
            logger.error(f"{message}; using the newest")
        return rows[0] if rows else None

    async def replace(
        self,
        key: SnapshotKey,
        entries: Sequence[LeaderboardEntry],
        bounds: PeriodBounds,
        limit: int,
    ) -> LeaderboardSnapshot:
        """Swap in a new valid snapshot for ``key`` in a single transaction.

        The previous valid row is marked invalid, superseded rows beyond the
        retention count are pruned and the new row is committed. On any
        failure the transaction is rolled back and the previous valid row
        survives. Losing a uniqueness race against a concurrent writer is
        retried once.
        """
        entries = self._check(entries, f"write {key.lock_name}")
        payload = [entry.to_dict() for entry in entries]

        try:
            snapshot = await self._swap_and_commit(key, payload, bounds, limit)
        except IntegrityError:
            logger.warning(f"Concurrent snapshot write for {key.lock_name}; retrying")
            snapshot = await self._swap_and_commit(key, payload, bounds, limit)

        logger.info(f"Stored leaderboard snapshot {key.lock_name} with {len(payload)} entries")
        return snapshot

    async def _swap_and_commit(
        self,
        key: SnapshotKey,
        payload: list[dict],
        bounds: PeriodBounds,
        limit: int,
    ) -> LeaderboardSnapshot:
        try:
            snapshot = await self._swap(key, payload, bounds, limit)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return snapshot

    async def _swap(
        self,
        key: SnapshotKey,
        payload: list[dict],
        bounds: PeriodBounds,
        limit: int,
    ) -> LeaderboardSnapshot:
        now = datetime.now(UTC)
        await self.db.execute(
            update(LeaderboardSnapshot)
            .where(*self._key_filter(key), LeaderboardSnapshot.is_valid.is_(True))
            .values(is_valid=False)
        )

        snapshot = LeaderboardSnapshot(
            metric=key.metric.value,
            period_kind=key.period_kind.value,
            period_id=key.period_id,
            scope=key.scope.value,
            geo_qualifier=key.geo_qualifier or "",
            start_date=bounds.start,
            end_date=bounds.end,
            entry_limit=limit,
            entries=payload,
            is_valid=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(snapshot)
        await self.db.flush()

        await self._prune(key)
        return snapshot

    async def _prune(self, key: SnapshotKey) -> None:
        stale_ids = (
            select(LeaderboardSnapshot.snapshot_id)
            .where(*self._key_filter(key), LeaderboardSnapshot.is_valid.is_(False))
            .order_by(LeaderboardSnapshot.updated_at.desc(), LeaderboardSnapshot.created_at.desc())
            .offset(self.retention)
        )
        result = await self.db.execute(stale_ids)
        ids = [row[0] for row in result.all()]
        if ids:
            await self.db.execute(
                delete(LeaderboardSnapshot)
                .where(LeaderboardSnapshot.snapshot_id.in_(ids))
            )
            logger.debug(f"Pruned {len(ids)} superseded snapshots for {key.lock_name}")
