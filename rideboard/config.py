"""Application configuration management."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./rideboard.db"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (optional, falls back to in-process locks)
    redis_url: str = ""

    # Application
    frontend_url: str = "http://localhost:5173"
    environment: str = "development"
    secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_cookie_name: str = "rideboard_access_token"

    # Leaderboards
    leaderboard_entry_limit: int = 100  # Max ranked subjects per snapshot
    leaderboard_aggregation_timeout_seconds: float = 30.0
    leaderboard_lock_timeout_seconds: float = 30.0  # Wait for a concurrent regeneration of the same key
    leaderboard_superseded_retention: int = 1  # Invalid snapshots kept per key
    leaderboard_serve_stale_on_failure: bool = False
    leaderboard_background_refresh_enabled: bool = False
    leaderboard_background_refresh_minutes: int = 60

    # Metric definitions
    avg_speed_min_activities: int = 3  # Minimum qualifying activities for the average speed ranking

    # Profile display cache
    profile_cache_ttl_seconds: float = 300.0

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security and leaderboard configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        # Security validation
        if self.is_production and self.secret_key == DEFAULT_SECRET_KEY:
            raise ValueError("secret_key must be changed from default value in production")

        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        # Leaderboard validation
        if self.leaderboard_entry_limit < 1:
            raise ValueError("leaderboard_entry_limit must be at least 1")

        if self.leaderboard_aggregation_timeout_seconds <= 0:
            raise ValueError("leaderboard_aggregation_timeout_seconds must be positive")

        if self.leaderboard_lock_timeout_seconds <= 0:
            raise ValueError("leaderboard_lock_timeout_seconds must be positive")

        if self.leaderboard_superseded_retention < 0:
            raise ValueError("leaderboard_superseded_retention cannot be negative")

        if self.leaderboard_background_refresh_minutes < 1:
            raise ValueError("leaderboard_background_refresh_minutes must be at least 1 minute")

        if self.avg_speed_min_activities < 1:
            raise ValueError("avg_speed_min_activities must be at least 1")

        # Database URL normalization
        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover - defensive fallback
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            logger.warning("Invalid DATABASE_URL; falling back to default sqlite database.")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")

        # render_as_string re-encodes special characters in the password
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
