"""Tests for the SQL activity and profile readers."""
import pytest
from datetime import datetime, timedelta, UTC

from rideboard.models.base import LeaderboardScope
from rideboard.services.readers import SQLActivityReader, SQLProfileReader
from rideboard.utils.cache import SimpleCache

START = datetime(2024, 5, 13, tzinfo=UTC)
END = datetime(2024, 5, 19, 23, 59, 59, 999000, tzinfo=UTC)


async def _collect(reader, scope=LeaderboardScope.GLOBAL, geo=""):
    return [record async for record in reader.query_activities(START, END, scope, geo)]


@pytest.mark.asyncio
async def test_activity_reader_applies_inclusive_bounds_in_order(db_session, user_factory, activity_factory):
    user = await user_factory()
    late = await activity_factory(user, END, distance_km=3.0)
    early = await activity_factory(user, START, distance_km=1.0)
    await activity_factory(user, START - timedelta(seconds=1), distance_km=99.0)
    await activity_factory(user, END + timedelta(milliseconds=1), distance_km=99.0)

    records = await _collect(SQLActivityReader(db_session))

    assert [r.activity_id for r in records] == [early.activity_id, late.activity_id]
    assert records[0].subject_id == user.user_id
    assert records[0].started_at.tzinfo is not None


@pytest.mark.asyncio
async def test_activity_reader_filters_scope(db_session, user_factory, activity_factory):
    user = await user_factory()
    milan = await activity_factory(user, START, country_code="IT", region_code="IT-25", city_code="MILANO")
    await activity_factory(user, START, country_code="IT", region_code="IT-21", city_code="TORINO")
    await activity_factory(user, START)

    reader = SQLActivityReader(db_session)

    assert len(await _collect(reader)) == 3
    assert len(await _collect(reader, LeaderboardScope.NATIONAL, "IT")) == 2
    assert [r.activity_id for r in await _collect(reader, LeaderboardScope.REGIONAL, "IT-25")] == [milan.activity_id]
    assert [r.activity_id for r in await _collect(reader, LeaderboardScope.CITY, "MILANO")] == [milan.activity_id]
    assert await _collect(reader, LeaderboardScope.CITY, "ROMA") == []


@pytest.mark.asyncio
async def test_profile_reader_resolves_and_caches(db_session, user_factory):
    named = await user_factory(username="giulia", name="Giulia B.")
    plain = await user_factory(username="marco")
    deleted = await user_factory(username="ghost", deleted=True)
    cache = SimpleCache(default_ttl=60)
    reader = SQLProfileReader(db_session, cache=cache)

    resolved = await reader.get_display_info_many([named.user_id, plain.user_id, deleted.user_id])

    assert set(resolved) == {named.user_id, plain.user_id}
    assert resolved[named.user_id].display_name == "Giulia B."
    assert resolved[plain.user_id].display_name == "marco"
    assert resolved[plain.user_id].avatar_url.startswith("https://")
    assert cache.get(f"profile:{named.user_id}") == resolved[named.user_id]
    assert await reader.get_display_info(deleted.user_id) is None


@pytest.mark.asyncio
async def test_profile_reader_serves_cached_profile_until_expiry(db_session, user_factory):
    rider = await user_factory(username="luca")
    rider_id = rider.user_id
    cache = SimpleCache(default_ttl=60)
    reader = SQLProfileReader(db_session, cache=cache)
    assert rider_id in await reader.get_display_info_many([rider_id])

    rider.deleted_at = datetime.now(UTC)
    await db_session.commit()

    # Still cached, so the soft delete is not visible yet
    assert rider_id in await reader.get_display_info_many([rider_id])

    cache.clear()
    assert await reader.get_display_info_many([rider_id]) == {}
