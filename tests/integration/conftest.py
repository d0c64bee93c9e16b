from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlmodel import SQLModel, select

from config import ApplicationConfig
from src.api.app import create_app
from src.api.utils.jwt import generate_jwt
from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.domain.entities import Invitation
from tests.fixtures.json_loader import TestDataLoader


@pytest.fixture
def test_data():
    return TestDataLoader()


@pytest.fixture
def app_config(tmp_path):
    class TestConfig(ApplicationConfig):
        # File-backed so concurrent requests get separate connections
        DB_URI = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
        APP_BASE_URL = "http://test"
        API_PREFIX = "/api"
        GEO_MISMATCH_POLICY = "log"
        RATE_LIMIT_ENABLED = False

    return TestConfig


@pytest_asyncio.fixture
async def app(app_config):
    app = create_app(app_config)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield app
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def doctor_headers(app_config):
    token = generate_jwt("doctor-1", "doctor@clinic.example", app_config.JWT_SECRET, name="Dr. One")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_doctor_headers(app_config):
    token = generate_jwt("doctor-2", "other@clinic.example", app_config.JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(app_config):
    return {"X-Admin-API-Key": app_config.ADMIN_API_KEY}


@pytest.fixture
def fetch_invitation(app):
    """Read an invitation through a fresh session so no stale identity map is used"""

    async def _fetch(invitation_id):
        async with app.state.session_factory() as session:
            stmt = select(Invitation).where(Invitation.id == UUID(str(invitation_id)))
            result = await session.exec(stmt)
            return result.one_or_none()

    return _fetch


@pytest.fixture
def fetch_audit_events(app):
    async def _fetch(invitation_id):
        async with app.state.session_factory() as session:
            return await AuditEventRepository(session).list_by_invitation(
                UUID(str(invitation_id))
            )

    return _fetch


@pytest.fixture
def create_invitation(client, doctor_headers, test_data):
    """POST /api/invite/create with defaults from test_data.json"""

    async def _create(headers=None, **overrides):
        payload = test_data.get_copy("create_invitation")
        payload.update(overrides)
        response = await client.post(
            "/api/invite/create", json=payload, headers=headers or doctor_headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def validate_payload(test_data):
    def _payload(token, fingerprint="chrome_fingerprint", **extra):
        payload = {"token": token, "deviceFingerprint": test_data.get_copy(fingerprint)}
        payload.update(extra)
        return payload

    return _payload


@pytest.fixture
def update_invitation(app):
    """Write invitation columns directly, as an operator or migration would"""

    async def _update(invitation_id, **values):
        async with app.state.session_factory() as session:
            await session.execute(
                update(Invitation)
                .where(Invitation.id == UUID(str(invitation_id)))
                .values(**values)
            )
            await session.commit()

    return _update
