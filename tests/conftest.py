import asyncio
import io
import os
import shutil
import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from PIL import Image

# Ensure pytest-asyncio plugin is active for async tests
pytest_plugins = ("pytest_asyncio",)

# Ensure project root on path before importing app modules
project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Configure the app to use a local SQLite database during tests
_test_db_path = project_root / "test.db"
_test_upload_dir = project_root / "test_uploads"
os.environ["APP_DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_db_path.as_posix()}"
os.environ["APP_DEBUG"] = "false"
os.environ["APP_UPLOAD_DIR"] = str(_test_upload_dir)
os.environ["APP_API_KEY"] = "test-api-key"
os.environ["APP_JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["APP_SESSION_SECRET_KEY"] = "test-session-secret"
os.environ["APP_METRICS_TOKEN"] = "test-metrics-token"
os.environ["APP_FACEBOOK_CLIENT_ID"] = "fb-client"
os.environ["APP_FACEBOOK_CLIENT_SECRET"] = "fb-secret"
os.environ["APP_GOOGLE_CLIENT_ID"] = "google-client"
os.environ["APP_GOOGLE_CLIENT_SECRET"] = "google-secret"
os.environ["APP_FOURSQUARE_CLIENT_ID"] = "fsq-client"
os.environ["APP_FOURSQUARE_CLIENT_SECRET"] = "fsq-secret"
for _var in ("APP_MAILGUN_API_KEY", "APP_MAILGUN_DOMAIN", "APP_STORAGE_BACKEND"):
    os.environ.pop(_var, None)

API_KEY = "test-api-key"

# Start each test session from a clean database file
if _test_db_path.exists():
    _test_db_path.unlink()


async def _clear_database() -> None:
    """Remove all data from the database between tests."""
    from sqlalchemy import text

    from eventhub.database import AsyncSessionLocal
    from eventhub.models import Base

    async with AsyncSessionLocal() as session:
        await session.execute(text("PRAGMA foreign_keys=OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create all tables for the duration of the test session."""
    from eventhub.database import create_tables, drop_tables

    asyncio.run(create_tables())
    yield
    asyncio.run(drop_tables())
    if _test_db_path.exists():
        _test_db_path.unlink()
    shutil.rmtree(_test_upload_dir, ignore_errors=True)


@pytest_asyncio.fixture(autouse=True)
async def clean_database_after_test(setup_database):
    """Clean up any data created via API calls after each test."""
    yield
    await _clear_database()


@pytest_asyncio.fixture
async def test_session(setup_database):
    """Provide an async database session to tests that need direct access."""
    from eventhub.database import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client():
    from eventhub.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def png_bytes(width: int = 40, height: int = 30, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


async def signup_member(client: httpx.AsyncClient, email: str = "member@example.com",
                        password: str = "secret123") -> dict:
    resp = await client.post(
        "/api/signup",
        params={"apikey": API_KEY},
        json={"email": email, "password": password, "confirmPassword": password},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return {"id": body["id"], "token": body["token"], "headers": {"Authorization": body["token"]}}


@pytest_asyncio.fixture
async def member(client):
    return await signup_member(client)


@pytest_asyncio.fixture
async def other_member(client):
    return await signup_member(client, email="other@example.com")


async def create_event(client: httpx.AsyncClient, member: dict, **overrides) -> dict:
    body = {
        "name": "Hiking",
        "description": "Lion Rock sunrise hike",
        "time": "2017-01-18 15:00:00",
        "duration": 3,
        "fee": 1000,
        "status": "upcoming",
    }
    body.update(overrides)
    resp = await client.post(
        f"/api/members/{member['id']}/events",
        params={"apikey": API_KEY},
        json=body,
        headers=member["headers"],
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["events"][-1]


async def web_login(client: httpx.AsyncClient, email: str, password: str) -> httpx.Response:
    return await client.post("/login", data={"email": email, "password": password})
