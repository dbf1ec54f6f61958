"""Database connection and session management."""
import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from rideboard.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

try:
    parsed_url = make_url(settings.database_url)
    if not parsed_url.password and "sqlite" not in parsed_url.drivername:
        logger.warning("No password found in DATABASE_URL!")
except Exception as e:
    logger.error(f"Failed to parse DATABASE_URL: {e}")

# Determine if we need SSL (for Heroku or other cloud databases)
connect_args = {}
needs_ssl = (
    "heroku" in settings.database_url or
    "amazonaws" in settings.database_url or
    settings.is_production
)

if needs_ssl:
    connect_args["ssl"] = "require"
    logger.debug("SSL connection enabled (ssl=require)")

# Keep pool sizing conservative so leaderboard regenerations cannot exhaust connections
pool_size = max(1, settings.db_pool_size)
max_overflow = max(0, settings.db_max_overflow)

if settings.is_production:
    pool_size = min(pool_size, 5)
    max_overflow = min(max_overflow, 5)

try:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.environment == "development",
        future=True,
        connect_args=connect_args,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,   # Recycle connections every hour
        pool_size=pool_size,
        max_overflow=max_overflow,
    )
    logger.debug("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


# Dependency for FastAPI
async def get_db():
    """FastAPI dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
