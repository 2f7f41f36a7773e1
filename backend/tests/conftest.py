"""
Shared fixtures: an in-memory SQLite database wired into the app's
DatabaseManager, and an httpx client driving the ASGI app directly.
"""

import os
import tempfile

# Settings are cached on first import, so the environment goes first
_tmp = tempfile.mkdtemp(prefix="roomfood-tests-")
os.environ["UPLOAD_DIR"] = os.path.join(_tmp, "uploads")
os.environ["LOG_FILE"] = os.path.join(_tmp, "test.log")
os.environ["DB_URL"] = "sqlite://"
os.environ["ENABLE_RATE_LIMITING"] = "false"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_SECRET"] = "test-admin-secret"
os.environ["BASE_URL"] = "http://testserver"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import roomfood.db.base  # noqa: F401  registers models
from roomfood.db.session import db_manager
from roomfood.main import app

ADMIN_SECRET = "test-admin-secret"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine, monkeypatch):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(db_manager, "engine", engine)
    monkeypatch.setattr(db_manager, "async_session", factory)
    return factory


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register through the API and return ``(user_json, headers)``"""

    async def _register(email, role="user", name=None, password="secret123"):
        body = {"name": name or email.split("@")[0], "email": email, "password": password, "role": role}
        if role == "admin":
            body["adminSecret"] = ADMIN_SECRET
        response = await client.post("/api/auth/register", json=body)
        assert response.status_code == 200, response.text
        data = response.json()
        return data["user"], auth_headers(data["token"])

    return _register


@pytest.fixture
def create_listing(client):
    """Create a listing through the multipart endpoint and return its JSON"""

    async def _create(headers, **fields):
        form = {"title": "Room X", "type": "room", "lat": "12.9", "lng": "77.6", "price": "5000"}
        form.update({k: str(v) for k, v in fields.items()})
        response = await client.post("/api/listings", data=form, headers=headers)
        assert response.status_code == 200, response.text
        return response.json()

    return _create
