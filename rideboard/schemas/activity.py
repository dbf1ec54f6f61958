"""Activity request and response schemas."""
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional
from uuid import UUID
from rideboard.schemas.base import BaseSchema


class ActivityCreate(BaseModel):
    """Record activity request."""
    title: Optional[str] = Field(default=None, max_length=200)
    vehicle_id: Optional[UUID] = None
    started_at: datetime
    ended_at: datetime
    duration_seconds: Optional[float] = Field(default=None, ge=0)  # Moving time; defaults to elapsed time
    distance_km: float = Field(..., ge=0)
    max_speed_kmh: Optional[float] = Field(default=None, ge=0)
    elevation_gain_m: Optional[float] = Field(default=None, ge=0)
    country_code: Optional[str] = Field(default=None, max_length=8)
    region_code: Optional[str] = Field(default=None, max_length=16)
    city_code: Optional[str] = Field(default=None, max_length=32)

    @field_validator('country_code', 'region_code', 'city_code')
    @classmethod
    def normalize_geo_code(cls, v: Optional[str]) -> Optional[str]:
        """Upper-case geo codes; blank codes mean untagged."""
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @model_validator(mode='after')
    def check_time_range(self):
        if self.ended_at < self.started_at:
            raise ValueError('ended_at must not be before started_at')
        return self


class ActivityResponse(BaseSchema):
    """Recorded activity."""
    activity_id: UUID
    user_id: UUID
    vehicle_id: Optional[UUID] = None
    title: Optional[str] = None
    started_at: datetime
    ended_at: datetime
    duration_seconds: float
    distance_km: float
    avg_speed_kmh: float
    max_speed_kmh: float
    elevation_gain_m: Optional[float] = None
    country_code: Optional[str] = None
    region_code: Optional[str] = None
    city_code: Optional[str] = None
