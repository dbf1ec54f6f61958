"""Base utilities for SQLAlchemy models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class LeaderboardMetric(str, Enum):
    """Scalar performance measure a leaderboard ranks by."""
    TOTAL_DISTANCE = "total_distance"
    TOTAL_TRACKS = "total_tracks"
    AVG_SPEED = "avg_speed"
    MAX_SPEED = "max_speed"
    TOTAL_DURATION = "total_duration"
    TOTAL_ELEVATION = "total_elevation"
    CHALLENGE = "challenge"


class PeriodKind(str, Enum):
    """Time window family a snapshot covers."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ALL_TIME = "all_time"
    CUSTOM = "custom"


class LeaderboardScope(str, Enum):
    """Geographic breadth of a ranking."""
    GLOBAL = "global"
    NATIONAL = "national"
    REGIONAL = "regional"
    CITY = "city"


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID stored natively on PostgreSQL and as lowercase hex elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return value.hex

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._coerce_uuid(value)


def get_uuid_column(*args, **kwargs):
    """Get a UUID column that adapts to the database dialect.

    Example:
        user_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        vehicle_id = get_uuid_column(ForeignKey("vehicles.vehicle_id"), nullable=True)
    """
    return Column(
        AdaptiveUUID(),
        *args,
        **kwargs
    )
