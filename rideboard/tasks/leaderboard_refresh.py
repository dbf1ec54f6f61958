"""Periodic refresh of the most requested leaderboards."""
import asyncio
import logging
from datetime import datetime, UTC

from rideboard.config import get_settings
from rideboard.models.base import LeaderboardMetric, LeaderboardScope, PeriodKind
from rideboard.services.leaderboard import LeaderboardError, LeaderboardService, build_default_strategies

logger = logging.getLogger(__name__)

REFRESHED_PERIOD_KINDS = (PeriodKind.WEEKLY, PeriodKind.MONTHLY)


async def refresh_leaderboards(now: datetime | None = None, session_factory=None) -> int:
    """Force-refresh the global weekly and monthly leaderboards of every metric.

    Failures of one leaderboard are logged and do not stop the others.

    Returns:
        Number of leaderboards regenerated successfully.
    """
    if session_factory is None:
        from rideboard.database import AsyncSessionLocal as session_factory

    reference = now or datetime.now(UTC)
    refreshed = 0
    metrics: list[LeaderboardMetric] = list(build_default_strategies())

    for metric in metrics:
        for period_kind in REFRESHED_PERIOD_KINDS:
            try:
                async with session_factory() as db:
                    await LeaderboardService(db).get_or_generate(
                        metric,
                        period_kind,
                        reference,
                        LeaderboardScope.GLOBAL,
                        "",
                        force_refresh=True,
                    )
                refreshed += 1
            except LeaderboardError as e:
                logger.error(f"Leaderboard refresh failed for {metric.value}/{period_kind.value}: {e}")

    logger.info(f"Leaderboard refresh complete: {refreshed}/{len(metrics) * len(REFRESHED_PERIOD_KINDS)} regenerated")
    return refreshed


async def leaderboard_refresh_cycle():
    """Background loop that keeps weekly and monthly global leaderboards warm."""
    settings = get_settings()

    if not settings.leaderboard_background_refresh_enabled:
        logger.info("Leaderboard background refresh is disabled, not starting cycle")
        return

    startup_delay = 60
    logger.info(f"Leaderboard refresh cycle starting in {startup_delay}s")
    await asyncio.sleep(startup_delay)

    logger.info("Leaderboard refresh cycle starting main loop")

    while True:
        try:
            await refresh_leaderboards()
        except Exception as e:
            logger.error(f"Leaderboard refresh cycle error: {e}")

        await asyncio.sleep(settings.leaderboard_background_refresh_minutes * 60)
