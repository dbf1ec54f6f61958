"""Recorded activity (track) model consumed by leaderboard aggregation."""
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from rideboard.database import Base
from rideboard.models.base import get_uuid_column


class Activity(Base):
    """A single recorded track with its summary statistics and geo tags."""
    __tablename__ = "activities"

    activity_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = get_uuid_column(ForeignKey("vehicles.vehicle_id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=False)
    duration_seconds = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=False)
    avg_speed_kmh = Column(Float, nullable=False, default=0.0)
    max_speed_kmh = Column(Float, nullable=False, default=0.0)
    elevation_gain_m = Column(Float, nullable=True)

    # Geo tags (nullable: untagged activities never appear in scoped rankings)
    country_code = Column(String(8), nullable=True)  # e.g. IT
    region_code = Column(String(16), nullable=True)  # e.g. IT-25
    city_code = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    user = relationship("User", back_populates="activities")
    vehicle = relationship("Vehicle")

    __table_args__ = (
        Index("ix_activities_started_at", "started_at"),
        Index("ix_activities_country_started", "country_code", "started_at"),
        Index("ix_activities_region_started", "region_code", "started_at"),
        Index("ix_activities_city_started", "city_code", "started_at"),
    )

    def __repr__(self):
        return (f"<Activity(activity_id={self.activity_id}, user_id={self.user_id}, "
                f"distance_km={self.distance_km}, started_at={self.started_at})>")
