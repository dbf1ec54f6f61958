"""Activity recording service."""
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
import logging

from rideboard.events import ActivityRecorded, EventDispatcher, event_dispatcher
from rideboard.models.activity import Activity
from rideboard.models.user import User
from rideboard.models.vehicle import Vehicle
from rideboard.schemas.activity import ActivityCreate
from rideboard.utils.datetime_helpers import ensure_utc

logger = logging.getLogger(__name__)


class ActivityError(RuntimeError):
    """Raised when an activity cannot be recorded."""


class ActivityService:
    """Persist recorded activities and announce them to subscribers."""

    def __init__(self, db: AsyncSession, dispatcher: EventDispatcher = event_dispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def record_activity(self, subject_id: UUID, payload: ActivityCreate) -> Activity:
        """
        Record an activity for a rider and publish ActivityRecorded.

        The activity row and every subscriber's writes commit together.

        Raises:
            ActivityError: "user_not_found" or "vehicle_not_found"
        """
        user = await self.db.get(User, subject_id)
        if user is None or user.deleted_at is not None:
            raise ActivityError("user_not_found")

        if payload.vehicle_id is not None:
            vehicle = await self.db.get(Vehicle, payload.vehicle_id)
            if vehicle is None or vehicle.owner_id != subject_id:
                raise ActivityError("vehicle_not_found")

        started_at = ensure_utc(payload.started_at)
        ended_at = ensure_utc(payload.ended_at)
        duration_seconds = payload.duration_seconds
        if duration_seconds is None:
            duration_seconds = (ended_at - started_at).total_seconds()

        avg_speed = 0.0
        if duration_seconds > 0:
            avg_speed = payload.distance_km / (duration_seconds / 3600.0)

        activity = Activity(
            user_id=subject_id,
            vehicle_id=payload.vehicle_id,
            title=payload.title,
            started_at=started_at,
            ended_at=ended_at,
            duration_seconds=duration_seconds,
            distance_km=payload.distance_km,
            avg_speed_kmh=avg_speed,
            max_speed_kmh=payload.max_speed_kmh or 0.0,
            elevation_gain_m=payload.elevation_gain_m,
            country_code=payload.country_code,
            region_code=payload.region_code,
            city_code=payload.city_code,
        )

        try:
            self.db.add(activity)
            await self.db.flush()
            await self.dispatcher.publish(
                ActivityRecorded(
                    activity_id=activity.activity_id,
                    user_id=subject_id,
                    vehicle_id=payload.vehicle_id,
                    started_at=started_at,
                    duration_seconds=duration_seconds,
                    distance_km=payload.distance_km,
                    max_speed_kmh=activity.max_speed_kmh,
                ),
                self.db,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Recorded activity {activity.activity_id} for {subject_id} ({payload.distance_km:.2f} km)")
        return activity
