"""Attach display information to ranked metric results."""

from __future__ import annotations

import logging

from rideboard.services.leaderboard.types import LeaderboardEntry, MetricResult, ProfileReader

logger = logging.getLogger(__name__)


class EntryEnricher:
    """Turn metric results into leaderboard entries with profile fields."""

    def __init__(self, profiles: ProfileReader):
        self.profiles = profiles

    async def enrich(self, results: list[MetricResult]) -> list[LeaderboardEntry]:
        """Resolve profiles for ``results`` in one batch and assign ranks 1..N.

        Subjects without a resolvable profile are dropped and the remaining
        entries are re-ranked in input order.
        """
        if not results:
            return []

        display = await self.profiles.get_display_info_many([result.subject_id for result in results])

        entries: list[LeaderboardEntry] = []
        dropped = 0
        for result in results:
            info = display.get(result.subject_id)
            if info is None:
                dropped += 1
                continue
            entries.append(
                LeaderboardEntry(
                    subject_id=result.subject_id,
                    username=info.username,
                    display_name=info.display_name,
                    avatar_url=info.avatar_url,
                    rank=len(entries) + 1,
                    value=result.value,
                )
            )

        if dropped:
            logger.info(f"Dropped {dropped} unresolvable subjects from leaderboard")
        return entries
