"""Rank movement between consecutive materializations of the same key."""

from __future__ import annotations

from typing import Iterable, Optional

from rideboard.services.leaderboard.types import LeaderboardEntry


def annotate_rank_changes(
    new_entries: list[LeaderboardEntry],
    previous_entries: Optional[Iterable[LeaderboardEntry]],
) -> list[LeaderboardEntry]:
    """Return copies of ``new_entries`` with ``rank_change`` filled in.

    A positive change means the subject climbed. Subjects absent from the
    previous snapshot get 0.

    Example:
        previous A=1, B=2, C=3 and new B=1, A=2, D=3 give
        B=+1, A=-1, D=0.
    """
    previous_ranks = {entry.subject_id: entry.rank for entry in previous_entries or ()}
    annotated = []
    for entry in new_entries:
        previous_rank = previous_ranks.get(entry.subject_id)
        change = previous_rank - entry.rank if previous_rank is not None else 0
        annotated.append(entry.with_rank_change(change))
    return annotated
