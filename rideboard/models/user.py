"""User profile model with denormalized activity statistics."""
from sqlalchemy import Column, String, Integer, Float, DateTime
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from rideboard.database import Base
from rideboard.models.base import get_uuid_column


class User(Base):
    """Rider profile read by leaderboard enrichment and updated by activity statistics."""
    __tablename__ = "users"

    user_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    username = Column(String(80), unique=True, nullable=False)
    name = Column(String(120), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # Soft-deleted profiles are not shown on leaderboards

    # Denormalized statistics, maintained by StatisticsService
    total_distance_km = Column(Float, default=0.0, nullable=False)
    total_time_minutes = Column(Float, default=0.0, nullable=False)
    total_tracks = Column(Integer, default=0, nullable=False)
    max_speed_kmh = Column(Float, default=0.0, nullable=False)
    avg_speed_kmh = Column(Float, default=0.0, nullable=False)

    vehicles = relationship("Vehicle", back_populates="owner", cascade="all, delete-orphan")
    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.name or self.username

    def __repr__(self):
        return f"<User(user_id={self.user_id}, username={self.username}, total_tracks={self.total_tracks})>"
