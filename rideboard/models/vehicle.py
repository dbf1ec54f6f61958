"""Vehicle model with denormalized usage statistics."""
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from rideboard.database import Base
from rideboard.models.base import get_uuid_column


class Vehicle(Base):
    """Bike, car or other vehicle an activity was recorded with."""
    __tablename__ = "vehicles"

    vehicle_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    owner_id = get_uuid_column(ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    vehicle_type = Column(String(30), nullable=False, default="bike")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    total_distance_km = Column(Float, default=0.0, nullable=False)
    total_time_minutes = Column(Float, default=0.0, nullable=False)
    total_tracks = Column(Integer, default=0, nullable=False)
    max_speed_kmh = Column(Float, default=0.0, nullable=False)

    owner = relationship("User", back_populates="vehicles")

    def __repr__(self):
        return f"<Vehicle(vehicle_id={self.vehicle_id}, name={self.name}, total_tracks={self.total_tracks})>"
