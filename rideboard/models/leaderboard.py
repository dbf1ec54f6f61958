"""Materialized leaderboard snapshot model."""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, Index, text
import uuid
from datetime import datetime, UTC
from rideboard.database import Base
from rideboard.models.base import get_uuid_column


class LeaderboardSnapshot(Base):
    """One materialization of a ranking for a (metric, period, scope) key.

    ``entries`` holds the ordered ranking as a JSON array of objects with
    ``subject_id``, ``username``, ``display_name``, ``avatar_url``, ``rank``,
    ``value`` and ``rank_change``. Superseded rows are kept with
    ``is_valid = False``; at most one valid row exists per key.
    """
    __tablename__ = "leaderboard_snapshots"

    snapshot_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    metric = Column(String(30), nullable=False)
    period_kind = Column(String(20), nullable=False)
    period_id = Column(String(20), nullable=False)
    scope = Column(String(20), nullable=False, default="global")
    geo_qualifier = Column(String(32), nullable=False, default="")  # Empty for global scope
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    entry_limit = Column(Integer, nullable=False, default=100)
    entries = Column(JSON, nullable=False, default=list)
    is_valid = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    __table_args__ = (
        Index(
            "uq_leaderboard_snapshots_valid_key",
            "metric",
            "period_kind",
            "period_id",
            "scope",
            "geo_qualifier",
            unique=True,
            sqlite_where=text("is_valid = 1"),
            postgresql_where=text("is_valid"),
        ),
        Index("ix_leaderboard_snapshots_key", "metric", "period_kind", "period_id", "scope", "geo_qualifier"),
    )

    def __repr__(self):
        return (f"<LeaderboardSnapshot(metric={self.metric}, period_kind={self.period_kind}, "
                f"period_id={self.period_id}, scope={self.scope}, geo_qualifier={self.geo_qualifier!r}, "
                f"is_valid={self.is_valid}, entries={len(self.entries or [])})>")
