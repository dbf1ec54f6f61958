"""Pytest configuration and fixtures."""
import os
import uuid
from datetime import datetime, UTC
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_URL"] = ""
os.environ["LEADERBOARD_BACKGROUND_REFRESH_ENABLED"] = "false"

from rideboard.config import get_settings
from rideboard.models import Activity, LeaderboardSnapshot, User, Vehicle
from rideboard.utils.cache import profile_cache
from rideboard.utils.tokens import create_access_token

settings = get_settings()


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")

    yield

    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # On Windows the file may still be open; the next run removes it
            pass


@pytest.fixture
async def test_engine():
    """Create test database engine using the same database as migrations."""
    engine = create_async_engine(settings.database_url, echo=False)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def clean_tables(test_engine):
    """Leaderboards aggregate across all riders, so every test starts from empty tables."""
    profile_cache.clear()
    yield
    async with test_engine.begin() as conn:
        for model in (LeaderboardSnapshot, Activity, Vehicle, User):
            await conn.execute(delete(model.__table__))
    profile_cache.clear()


@pytest.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
async def test_app(session_factory):
    """Create test app with database override and statistics handlers registered."""
    from rideboard.main import app
    from rideboard.database import get_db
    from rideboard.events import event_dispatcher
    from rideboard.services.statistics_service import register_statistics_handlers

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    register_statistics_handlers(event_dispatcher)
    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()
    event_dispatcher.clear()


@pytest.fixture
async def client(test_app):
    from httpx import AsyncClient, ASGITransport

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a subject id."""

    def _headers(subject_id: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(subject_id)}"}

    return _headers


@pytest.fixture
def user_factory(db_session):
    """Factory for creating committed test users."""

    async def _create_user(
        username: str | None = None,
        name: str | None = None,
        deleted: bool = False,
    ) -> User:
        unique_id = str(uuid.uuid4())[:8]
        user = User(
            user_id=uuid.uuid4(),
            username=username or f"rider{unique_id}",
            name=name,
            profile_image_url=f"https://img.example.com/{unique_id}.png",
            created_at=datetime.now(UTC),
            deleted_at=datetime.now(UTC) if deleted else None,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create_user


@pytest.fixture
def activity_factory(db_session):
    """Factory for creating committed activities without going through the service."""

    async def _create_activity(
        user: User,
        started_at: datetime,
        distance_km: float = 10.0,
        duration_seconds: float = 1800.0,
        max_speed_kmh: float = 30.0,
        elevation_gain_m: float | None = None,
        country_code: str | None = None,
        region_code: str | None = None,
        city_code: str | None = None,
    ) -> Activity:
        activity = Activity(
            activity_id=uuid.uuid4(),
            user_id=user.user_id,
            started_at=started_at,
            ended_at=started_at,
            duration_seconds=duration_seconds,
            distance_km=distance_km,
            avg_speed_kmh=distance_km / (duration_seconds / 3600) if duration_seconds else 0.0,
            max_speed_kmh=max_speed_kmh,
            elevation_gain_m=elevation_gain_m,
            country_code=country_code,
            region_code=region_code,
            city_code=city_code,
            created_at=datetime.now(UTC),
        )
        db_session.add(activity)
        await db_session.commit()
        return activity

    return _create_activity
