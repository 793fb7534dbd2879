"""
Failed register/login attempts are throttled per client IP.
"""

import pytest

from fleet_rental.app.core.config import settings


async def _bad_login(client, email):
    return await client.post("/v1/auth/login", json={"email": email, "password": "wrong-pass"})


@pytest.mark.asyncio
async def test_repeated_failures_are_throttled(client, customer, mock_redis):
    for _ in range(settings.auth_rate_limit_attempts):
        assert (await _bad_login(client, customer["email"])).status_code == 401

    response = await client.post("/v1/auth/login", json={"email": customer["email"], "password": "secret123"})
    assert response.status_code == 429
    body = response.json()
    assert body["error_code"] == "ERR_RATE_LIMITED"
    assert body["details"]["retry_after"] == settings.auth_rate_limit_window_seconds
    assert response.headers["Retry-After"] == str(settings.auth_rate_limit_window_seconds)

    blocked = await client.post(
        "/v1/auth/register", json={"name": "Late", "email": "late@example.com", "password": "secret123"}
    )
    assert blocked.status_code == 429


@pytest.mark.asyncio
async def test_successful_attempts_are_not_counted(client, customer, mock_redis):
    for _ in range(settings.auth_rate_limit_attempts + 2):
        response = await client.post("/v1/auth/login", json={"email": customer["email"], "password": "secret123"})
        assert response.status_code == 200

    assert not [key for key in mock_redis.store if key.startswith("rate_limit:")]


@pytest.mark.asyncio
async def test_other_routes_are_not_throttled(client, customer, mock_redis):
    for _ in range(settings.auth_rate_limit_attempts):
        await _bad_login(client, customer["email"])

    assert (await client.get("/v1/auth/me", headers=customer["headers"])).status_code == 200


@pytest.mark.asyncio
async def test_limiter_fails_open_without_redis(client, customer, mock_redis):
    mock_redis.fail = True
    for _ in range(settings.auth_rate_limit_attempts + 1):
        assert (await _bad_login(client, customer["email"])).status_code == 401


@pytest.mark.asyncio
async def test_limiter_can_be_disabled(client, customer, mock_redis, monkeypatch):
    monkeypatch.setattr(settings, "auth_rate_limit_enabled", False)
    for _ in range(settings.auth_rate_limit_attempts + 1):
        assert (await _bad_login(client, customer["email"])).status_code == 401
