"""Locate a subject inside a materialized leaderboard."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable
from uuid import UUID

from rideboard.services.leaderboard.types import LeaderboardEntry, PositionResult


def percentile_for(rank: int, total: int) -> int:
    """Percentile of ``rank`` among ``total`` entries, rounded half up."""
    if total <= 0:
        return 0
    ratio = Decimal(rank) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def locate(entries: Iterable[LeaderboardEntry], subject_id: UUID) -> PositionResult:
    """Find ``subject_id`` in ``entries`` without regenerating anything."""
    entries = list(entries)
    total = len(entries)
    for entry in entries:
        if entry.subject_id == subject_id:
            return PositionResult(
                present=True,
                rank=entry.rank,
                value=entry.value,
                total=total,
                percentile=percentile_for(entry.rank, total),
                change=entry.rank_change,
            )
    return PositionResult(present=False, total=total)


def user_status(entries: Iterable[LeaderboardEntry], subject_id: UUID) -> dict[str, Any]:
    """Build the ``user_status`` block returned with a snapshot."""
    position = locate(entries, subject_id)
    if not position.present:
        return {
            "in_leaderboard": False,
            "current_user_rank": None,
            "current_user_value": None,
            "current_user_change": None,
        }
    return {
        "in_leaderboard": True,
        "current_user_rank": position.rank,
        "current_user_value": position.value,
        "current_user_change": position.change,
    }
