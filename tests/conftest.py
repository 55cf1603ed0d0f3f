"""
Pytest configuration and fixtures.

Every test gets its own SQLite file and upload directory.  The
application object is shared, but ``settings`` is patched before the
schema is created, so each test starts from a freshly migrated
database containing only the bootstrap administrator.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from event_checkin_api.app.core.config import settings
from event_checkin_api.app.core.db import init_db
from event_checkin_api.app.main import app


ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "admin-password"
SCANNER_TOKEN = "door-scanner-token"


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the app at a temporary database and disable outbound email."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "admin_email", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "admin_password", ADMIN_PASSWORD)
    monkeypatch.setattr(settings, "admin_api_token", "")
    monkeypatch.setattr(settings, "scanner_tokens", SCANNER_TOKEN)
    monkeypatch.setattr(settings, "brevo_api_key", "")
    monkeypatch.setattr(settings, "site_url", "http://checkin.test")
    monkeypatch.setattr(settings, "max_group_size", 4)
    init_db()
    return settings


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not send lifespan events; the schema is created
    # by ``isolated_settings`` instead.
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient) -> dict:
    """Bearer headers for the bootstrap administrator."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def scanner_headers() -> dict:
    return {"Authorization": f"Bearer {SCANNER_TOKEN}"}


@pytest.fixture
def sample_registration() -> dict:
    return {
        "name": "John Doe",
        "email": "john.doe@example.com",
        "phone": "+1 555 0100",
        "organization": "Acme Corporation",
        "group_size": 2,
        "team_members": [{"name": "Jane Roe", "email": "jane@example.com"}],
    }


@pytest.fixture
def sample_form() -> dict:
    return {
        "title": "Annual Conference",
        "subtitle": "Register to attend",
        "custom_fields": [
            {"id": "diet", "type": "text", "label": "Dietary requirements", "required": True},
            {"id": "photo", "type": "photo", "label": "Badge photo", "required": False},
        ],
    }
