import pytest

from conftest import ADMIN_SECRET, auth_headers
from roomfood.core.settings import get_settings


@pytest.mark.asyncio
async def test_register_returns_user_and_token(client):
    response = await client.post("/api/auth/register", json={
        "name": "Asha", "email": "asha@example.com", "password": "secret123",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "asha@example.com"
    assert data["user"]["role"] == "user"
    assert "_id" in data["user"]
    assert "passwordHash" not in data["user"]


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client, register):
    await register("dup@example.com")
    response = await client.post("/api/auth/register", json={
        "email": "dup@example.com", "password": "secret123",
    })
    assert response.status_code == 409
    assert response.json()["message"] == "User exists"


@pytest.mark.asyncio
async def test_register_admin_requires_secret(client):
    body = {"email": "boss@example.com", "password": "secret123", "role": "admin"}

    response = await client.post("/api/auth/register", json=body)
    assert response.status_code == 403
    assert response.json()["message"] == "Invalid admin secret. Cannot create admin account."

    response = await client.post("/api/auth/register", json={**body, "adminSecret": "wrong"})
    assert response.status_code == 403

    response = await client.post("/api/auth/register", json={**body, "adminSecret": ADMIN_SECRET})
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_register_short_password_is_validation_error(client):
    response = await client.post("/api/auth/register", json={"email": "x@example.com", "password": "123"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation Error"
    assert body["errors"][0]["field"] == "password"


@pytest.mark.asyncio
async def test_login_and_me(client, register):
    await register("lee@example.com", role="provider", password="pass1234")

    response = await client.post("/api/auth/login", json={"email": "lee@example.com", "password": "pass1234"})
    assert response.status_code == 200
    token = response.json()["token"]

    me = await client.get("/api/auth/me", headers=auth_headers(token))
    assert me.status_code == 200
    assert me.json()["email"] == "lee@example.com"
    assert me.json()["role"] == "provider"


@pytest.mark.asyncio
async def test_login_bad_credentials(client, register):
    await register("kim@example.com")
    for body in (
        {"email": "kim@example.com", "password": "wrong-pass"},
        {"email": "nobody@example.com", "password": "secret123"},
    ):
        response = await client.post("/api/auth/login", json=body)
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_email_is_case_sensitive(client, register):
    await register("Case@example.com")
    response = await client.post("/api/auth/login", json={"email": "case@example.com", "password": "secret123"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_protected_route_without_token(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "No token, authorization denied"

    response = await client.get("/api/auth/me", headers=auth_headers("garbage"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_profile_update(client, register):
    user, headers = await register("pat@example.com", name="Pat")
    response = await client.put("/api/users/me", json={"name": "Patricia"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Patricia"

    me = await client.get("/api/users/me", headers=headers)
    assert me.json()["name"] == "Patricia"
    assert me.json()["_id"] == user["_id"]


@pytest.mark.asyncio
async def test_unknown_route_message(client):
    response = await client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"message": "Route /api/nope not found"}


@pytest.mark.asyncio
async def test_health_reports_database(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["components"]["database"] == "healthy"
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_password_minimum_follows_settings(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "PASSWORD_MIN_LENGTH", 10)
    body = {"email": "long@example.com", "password": "short123"}

    response = await client.post("/api/auth/register", json=body)
    assert response.status_code == 400
    assert response.json()["errors"][0]["message"] == "Password must be at least 10 characters long"

    response = await client.post("/api/auth/register", json={**body, "password": "long-enough-1"})
    assert response.status_code == 200
