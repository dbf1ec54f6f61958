"""Statistics service maintaining denormalized rider and vehicle totals."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID
import logging

from rideboard.events import ActivityRecorded, EventDispatcher
from rideboard.models.user import User
from rideboard.models.vehicle import Vehicle

logger = logging.getLogger(__name__)


def average_speed_kmh(distance_km: float, time_minutes: float) -> float:
    """Average speed over a cumulative distance and moving time."""
    if time_minutes <= 0:
        return 0.0
    return distance_km / (time_minutes / 60.0)


class StatisticsService:
    """Service for keeping per-rider and per-vehicle activity statistics current."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def handle_activity_recorded(self, event: ActivityRecorded) -> None:
        """
        Fold a newly recorded activity into the owner's and vehicle's statistics.

        Runs inside the session that recorded the activity; the caller commits.

        Args:
            event: ActivityRecorded event for a flushed activity
        """
        minutes = (event.duration_seconds or 0.0) / 60.0
        distance = event.distance_km or 0.0
        max_speed = event.max_speed_kmh or 0.0

        user = await self._get_user(event.user_id)
        if user is None:
            logger.warning(f"Statistics update skipped, unknown user {event.user_id}")
            return

        user.total_distance_km = (user.total_distance_km or 0.0) + distance
        user.total_time_minutes = (user.total_time_minutes or 0.0) + minutes
        user.total_tracks = (user.total_tracks or 0) + 1
        user.max_speed_kmh = max(user.max_speed_kmh or 0.0, max_speed)
        user.avg_speed_kmh = average_speed_kmh(user.total_distance_km, user.total_time_minutes)

        if event.vehicle_id:
            vehicle = await self.db.get(Vehicle, event.vehicle_id)
            if vehicle is None:
                logger.warning(f"Statistics update skipped for unknown vehicle {event.vehicle_id}")
            else:
                vehicle.total_distance_km = (vehicle.total_distance_km or 0.0) + distance
                vehicle.total_time_minutes = (vehicle.total_time_minutes or 0.0) + minutes
                vehicle.total_tracks = (vehicle.total_tracks or 0) + 1
                vehicle.max_speed_kmh = max(vehicle.max_speed_kmh or 0.0, max_speed)

        await self.db.flush()
        logger.debug(
            f"Updated statistics for {user.user_id}: tracks={user.total_tracks} "
            f"distance={user.total_distance_km:.2f}km"
        )

    async def _get_user(self, user_id: UUID):
        result = await self.db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()


async def _on_activity_recorded(event: ActivityRecorded, db: AsyncSession) -> None:
    await StatisticsService(db).handle_activity_recorded(event)


def register_statistics_handlers(dispatcher: EventDispatcher) -> None:
    """Subscribe statistics maintenance to activity events."""
    dispatcher.subscribe(ActivityRecorded, _on_activity_recorded)
