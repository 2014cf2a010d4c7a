"""Pytest configuration and fixtures for API and store tests."""
import os
import tempfile
from pathlib import Path

# Set test env BEFORE any imports that use config
_tmp_dir = Path(tempfile.mkdtemp(prefix="camp-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir / 'test.db'}"
os.environ["LEGACY_REGISTRATIONS_FILE"] = str(_tmp_dir / "no-legacy-file.json")
os.environ["PUBLIC_DIR"] = str(_tmp_dir / "public")
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "testpass123"
os.environ["ADMIN_SESSION_SECRET"] = "test-session-secret"
os.environ["DB_RETRY_BASE_DELAY_SECONDS"] = "0.01"
os.environ["EMAIL_PROVIDER"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete

from camp.models import Registration
from camp.models.base import engine, init_db
from web.api.main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
async def _init_db():
    """Fresh tables before each test (ASGI lifespan doesn't run with httpx)."""
    await init_db()
    async with engine.begin() as conn:
        await conn.execute(delete(Registration))
    yield


@pytest.fixture
def tmp_db_url(tmp_path):
    """URL of an isolated sqlite file for tests that build their own engine."""
    return f"sqlite+aiosqlite:///{tmp_path / 'isolated.db'}"


@pytest.fixture
async def client():
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def admin_headers(client):
    """Login as admin and return a Cookie header for protected endpoints."""
    r = await client.post(
        "/api/admin/login",
        json={"username": "admin", "password": "testpass123"},
    )
    assert r.status_code == 200, f"Login failed: {r.text}"
    token = r.cookies.get("admin_session")
    assert token
    client.cookies.clear()
    return {"Cookie": f"admin_session={token}"}


@pytest.fixture
def make_payload():
    """Factory for a valid registration body; override any field by its JSON name."""
    return _registration_payload


def _registration_payload(**overrides):
    body = {
        "fullName": "Kiss Anna",
        "email": "Anna.Kiss@Example.com",
        "phone": "+36 30 123 4567",
        "dateOfBirth": "1990-05-17",
        "city": "Budapest",
        "currentGradeIaido": "2 dan",
        "currentGradeJodo": "",
        "campType": "iaido",
        "mealPlan": "none",
        "accommodation": "none",
        "wantsExamIaido": False,
        "targetGradeIaido": "",
        "wantsExamJodo": False,
        "targetGradeJodo": "",
        "billingFullName": "Kiss Anna",
        "billingZip": "1111",
        "billingCity": "Budapest",
        "billingAddress": "Fo utca 1.",
        "billingCountry": "Hungary",
        "foodNotes": "",
        "privacyConsent": True,
        "termsConsent": True,
    }
    body.update(overrides)
    return body
