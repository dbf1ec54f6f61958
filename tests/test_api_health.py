"""API tests for health and status endpoints."""
import pytest
from datetime import timedelta
from uuid import uuid4

import jwt

from rideboard.config import get_settings
from rideboard.utils.tokens import create_access_token
from rideboard.utils.lock_client import LockClient
from rideboard.version import APP_VERSION


@pytest.mark.asyncio
async def test_health_reports_database_and_lock_backend(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "connected", "locks": "memory"}


@pytest.mark.asyncio
async def test_health_reports_memory_locks_when_redis_is_down(client, monkeypatch):
    from rideboard.routers import health

    monkeypatch.setattr(health, "lock_client", LockClient("redis://127.0.0.1:1/0"))

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["locks"] == "memory"


@pytest.mark.asyncio
async def test_status_reports_version(client):
    response = await client.get("/status")

    assert response.status_code == 200
    assert response.json()["version"] == APP_VERSION
    assert response.json()["environment"] == "test"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client):
    token = create_access_token(uuid4(), expires_in=timedelta(seconds=-30))

    response = await client.get("/leaderboards/total_distance/weekly", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "token_expired"


@pytest.mark.asyncio
async def test_token_without_uuid_subject_is_rejected(client):
    settings = get_settings()
    token = jwt.encode({"sub": "not-a-uuid", "exp": 4102444800}, settings.secret_key, algorithm="HS256")

    response = await client.get("/leaderboards/total_distance/weekly", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_access_token_cookie_is_accepted(client, user_factory):
    user = await user_factory()
    cookie = f"{get_settings().access_token_cookie_name}={create_access_token(user.user_id)}"

    response = await client.get(
        "/leaderboards/total_distance/monthly",
        params={"date": "2024-02-10"},
        headers={"Cookie": cookie},
    )

    assert response.status_code == 200
    assert response.json()["period_id"] == "2024-2"
    assert response.json()["end_date"].startswith("2024-02-29T23:59:59.999")
