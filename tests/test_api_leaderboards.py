"""API tests for leaderboard endpoints."""
import pytest
from datetime import datetime, timedelta, UTC
from uuid import uuid4

from rideboard.config import get_settings
from rideboard.services.leaderboard.metrics import MetricAggregator

WEEK_START = datetime(2024, 5, 13, 8, 0, tzinfo=UTC)


@pytest.fixture
async def weekly_riders(user_factory, activity_factory):
    """Three riders with distinct weekly distances in ISO week 2024-W20."""
    alice = await user_factory(username="alice", name="Alice Rossi")
    bob = await user_factory(username="bob")
    carol = await user_factory(username="carol", name="Carol")

    await activity_factory(alice, WEEK_START, distance_km=40.0, country_code="IT")
    await activity_factory(bob, WEEK_START + timedelta(days=1), distance_km=25.0, country_code="FR")
    await activity_factory(carol, WEEK_START + timedelta(days=2), distance_km=10.0, country_code="IT")
    # Outside the week
    await activity_factory(carol, WEEK_START - timedelta(days=3), distance_km=500.0, country_code="IT")

    return alice, bob, carol


@pytest.mark.asyncio
async def test_leaderboard_requires_authentication(client):
    response = await client.get("/leaderboards/total_distance/weekly")

    assert response.status_code == 401
    assert response.json()["detail"] == "missing_credentials"


@pytest.mark.asyncio
async def test_leaderboard_rejects_malformed_authorization(client):
    response = await client.get("/leaderboards/total_distance/weekly", headers={"Authorization": "Token abc"})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid_authorization_header"


@pytest.mark.asyncio
async def test_leaderboard_rejects_invalid_token(client):
    response = await client.get("/leaderboards/total_distance/weekly", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_weekly_leaderboard(client, auth_headers, weekly_riders):
    alice, bob, carol = weekly_riders

    response = await client.get(
        "/leaderboards/total_distance/weekly",
        params={"date": "2024-05-15"},
        headers=auth_headers(bob.user_id),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["metric"] == "total_distance"
    assert data["period_kind"] == "weekly"
    assert data["period_id"] == "2024-W20"
    assert data["scope"] == "global"
    assert data["stale"] is False
    assert data["is_valid"] is True
    assert data["start_date"].startswith("2024-05-13T00:00:00")
    assert [(e["username"], e["rank"], e["value"]) for e in data["entries"]] == [
        ("alice", 1, 40.0),
        ("bob", 2, 25.0),
        ("carol", 3, 10.0),
    ]
    assert data["entries"][0]["display_name"] == "Alice Rossi"
    assert data["entries"][1]["display_name"] == "bob"
    assert data["user_status"] == {
        "in_leaderboard": True,
        "current_user_rank": 2,
        "current_user_value": 25.0,
        "current_user_change": 0,
    }


@pytest.mark.asyncio
async def test_second_request_reuses_snapshot(client, auth_headers, weekly_riders, activity_factory):
    alice, bob, _ = weekly_riders
    headers = auth_headers(alice.user_id)
    params = {"date": "2024-05-15"}

    first = (await client.get("/leaderboards/total_distance/weekly", params=params, headers=headers)).json()
    await activity_factory(bob, WEEK_START + timedelta(days=3), distance_km=100.0)
    second = (await client.get("/leaderboards/total_distance/weekly", params=params, headers=headers)).json()
    refreshed = (
        await client.get(
            "/leaderboards/total_distance/weekly",
            params={**params, "forceRefresh": "true"},
            headers=headers,
        )
    ).json()

    assert second["updated_at"] == first["updated_at"]
    assert second["entries"] == first["entries"]
    assert refreshed["entries"][0]["username"] == "bob"
    assert refreshed["entries"][0]["rank_change"] == 1
    assert refreshed["user_status"]["current_user_change"] == -1


@pytest.mark.asyncio
async def test_national_leaderboard_filters_by_geo_code(client, auth_headers, weekly_riders):
    alice, _, carol = weekly_riders

    response = await client.get(
        "/leaderboards/total_distance/weekly",
        params={"date": "2024-05-15", "scope": "national", "geoCode": "it"},
        headers=auth_headers(alice.user_id),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["geo_qualifier"] == "IT"
    assert [e["username"] for e in data["entries"]] == ["alice", "carol"]


@pytest.mark.asyncio
async def test_scope_without_tagged_activities_is_empty(client, auth_headers, weekly_riders):
    alice = weekly_riders[0]

    response = await client.get(
        "/leaderboards/total_distance/weekly",
        params={"date": "2024-05-15", "scope": "city", "geoCode": "MILANO"},
        headers=auth_headers(alice.user_id),
    )

    assert response.status_code == 200
    assert response.json()["entries"] == []
    assert response.json()["user_status"]["in_leaderboard"] is False


@pytest.mark.asyncio
async def test_soft_deleted_riders_are_excluded(client, auth_headers, user_factory, activity_factory):
    active = await user_factory(username="active")
    gone = await user_factory(username="gone", deleted=True)
    await activity_factory(gone, WEEK_START, distance_km=90.0)
    await activity_factory(active, WEEK_START, distance_km=5.0)

    response = await client.get(
        "/leaderboards/total_distance/weekly",
        params={"date": "2024-05-15"},
        headers=auth_headers(active.user_id),
    )

    entries = response.json()["entries"]
    assert [(e["username"], e["rank"]) for e in entries] == [("active", 1)]


@pytest.mark.parametrize(
    "path, params, detail",
    [
        ("/leaderboards/fastest/weekly", {}, "invalid_metric"),
        ("/leaderboards/challenge/weekly", {}, "unsupported_metric"),
        ("/leaderboards/total_distance/hourly", {}, "invalid_period"),
        ("/leaderboards/total_distance/custom", {}, "unsupported_period"),
        ("/leaderboards/total_distance/weekly", {"date": "yesterday"}, "invalid_date"),
        ("/leaderboards/total_distance/weekly", {"scope": "galactic"}, "invalid_scope"),
        ("/leaderboards/total_distance/weekly", {"scope": "regional"}, "geo_code_required"),
        ("/leaderboards/total_distance/weekly/position", {"scope": "city"}, "geo_code_required"),
    ],
)
@pytest.mark.asyncio
async def test_invalid_requests_return_400(client, auth_headers, path, params, detail, monkeypatch):
    calls = []

    async def _spy(self, *args, **kwargs):
        calls.append(args)
        return []

    monkeypatch.setattr(MetricAggregator, "aggregate", _spy)

    response = await client.get(path, params=params, headers=auth_headers(uuid4()))

    assert response.status_code == 400
    assert response.json()["detail"] == detail
    assert calls == []


@pytest.mark.asyncio
async def test_position_endpoint(client, auth_headers, weekly_riders):
    alice, bob, carol = weekly_riders

    response = await client.get(
        "/leaderboards/total_distance/weekly/position",
        params={"date": "2024-05-15"},
        headers=auth_headers(carol.user_id),
    )

    assert response.status_code == 200
    assert response.json() == {
        "in_leaderboard": True,
        "rank": 3,
        "value": 10.0,
        "total": 3,
        "percentile": 100,
        "change": 0,
    }


@pytest.mark.asyncio
async def test_position_endpoint_for_absent_rider(client, auth_headers, weekly_riders):
    response = await client.get(
        "/leaderboards/total_distance/weekly/position",
        params={"date": "2024-05-15"},
        headers=auth_headers(uuid4()),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["in_leaderboard"] is False
    assert "message" in data
    assert "rank" not in data


@pytest.mark.asyncio
async def test_source_failure_returns_503(client, auth_headers, weekly_riders, monkeypatch):
    async def _broken(self, *args, **kwargs):
        raise ConnectionError("activity store unavailable")

    monkeypatch.setattr(MetricAggregator, "aggregate", _broken)

    response = await client.get(
        "/leaderboards/total_distance/weekly",
        params={"date": "2024-05-15"},
        headers=auth_headers(weekly_riders[0].user_id),
    )

    assert response.status_code == 503
    assert response.json() == {"detail": "leaderboard_source_unavailable", "retryable": True}


@pytest.mark.asyncio
async def test_stale_snapshot_served_when_enabled(client, auth_headers, weekly_riders, monkeypatch):
    headers = auth_headers(weekly_riders[0].user_id)
    params = {"date": "2024-05-15"}
    first = (await client.get("/leaderboards/total_distance/weekly", params=params, headers=headers)).json()

    async def _broken(self, *args, **kwargs):
        raise TimeoutError("activity store timed out")

    monkeypatch.setattr(MetricAggregator, "aggregate", _broken)
    monkeypatch.setattr(get_settings(), "leaderboard_serve_stale_on_failure", True)

    response = await client.get(
        "/leaderboards/total_distance/weekly",
        params={**params, "forceRefresh": "true"},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["stale"] is True
    assert data["updated_at"] == first["updated_at"]
    assert data["entries"] == first["entries"]
