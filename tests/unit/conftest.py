import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.services.invitation_tokens import InvitationTokenService
from src.domain.clock import utcnow
from src.domain.entities import Invitation, InvitationStatus, WaitingPatient
from src.domain.fingerprint import DeviceFingerprint
from tests.fixtures.json_loader import TestDataLoader

TEST_SECRET = "unit-test-invite-secret"


@pytest.fixture
def mock_uow():
    """Mock UnitOfWork with every repository the use cases reach"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.invitations = MagicMock()
    uow.invitations.get_by_id = AsyncMock(return_value=None)
    uow.invitations.list_by_creator = AsyncMock(return_value=[])
    uow.invitations.create = AsyncMock()
    uow.invitations.consume = AsyncMock(return_value=True)
    uow.invitations.transition_status = AsyncMock(return_value=True)
    uow.invitations.expire_past_due = AsyncMock(return_value=[])
    uow.invitations.delete = AsyncMock(return_value=True)
    uow.invitations.purge_terminal_before = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock()
    uow.audit_events.list_by_invitation = AsyncMock(return_value=[])
    uow.audit_events.count_access_events = AsyncMock(return_value={})

    uow.waiting_patients = MagicMock()
    uow.waiting_patients.get_by_id = AsyncMock(return_value=None)
    uow.waiting_patients.create = AsyncMock(side_effect=lambda entry: entry)
    uow.waiting_patients.find_waiting = AsyncMock(return_value=None)
    uow.waiting_patients.find_latest = AsyncMock(return_value=None)
    uow.waiting_patients.count_waiting = AsyncMock(return_value=0)
    uow.waiting_patients.list_waiting = AsyncMock(return_value=[])
    uow.waiting_patients.transition_status = AsyncMock(return_value=True)
    uow.waiting_patients.delete_by_invitation = AsyncMock(return_value=0)
    uow.waiting_patients.purge_closed_before = AsyncMock(return_value=0)

    uow.rate_limit_hits = MagicMock()
    uow.rate_limit_hits.record = AsyncMock(side_effect=lambda hit: hit)
    uow.rate_limit_hits.count_since = AsyncMock(return_value=0)
    uow.rate_limit_hits.last_blocked_since = AsyncMock(return_value=None)
    uow.rate_limit_hits.purge_before = AsyncMock(return_value=0)

    return uow


@pytest.fixture
def token_service():
    return InvitationTokenService(TEST_SECRET)


@pytest.fixture
def credential_minter():
    minter = MagicMock()
    minter.mint = MagicMock(return_value="livekit.jwt.token")
    return minter


@pytest.fixture
def fingerprint():
    return DeviceFingerprint(**TestDataLoader.get_copy("chrome_fingerprint"))


@pytest.fixture
def make_invitation():
    """Factory for active invitations; keyword arguments override fields"""

    def _make(**overrides):
        now = utcnow()
        fields = dict(
            room_name="consult-room-1",
            email_allowed="patient@example.com",
            status=InvitationStatus.active,
            created_by="doctor-1",
            created_at=now,
            expires_at=now + timedelta(hours=24),
        )
        fields.update(overrides)
        return Invitation(**fields)

    return _make


@pytest.fixture
def make_waiting_patient(fingerprint):
    """Factory for waiting room entries of the chrome fingerprint; overrides apply"""

    def _make(invitation, **overrides):
        fields = dict(
            invitation_id=invitation.id,
            room_name=invitation.room_name,
            doctor_id=invitation.created_by,
            patient_email=invitation.email_allowed,
            fingerprint_hash=fingerprint.canonical_hash(),
        )
        fields.update(overrides)
        return WaitingPatient(**fields)

    return _make


class DetachedOnExit:
    """
    Stand-in for a loaded row that can no longer be read once the unit of
    work exits, the way a rolled-back session expires its instances.
    """

    def __init__(self, row):
        self.__dict__["_row"] = row
        self.__dict__["closed"] = False

    def __getattr__(self, name):
        if self.__dict__["closed"]:
            raise RuntimeError(f"{name} read after the unit of work closed")
        return getattr(self.__dict__["_row"], name)


@pytest.fixture
def detach_on_exit(mock_uow):
    """Wrap rows so that reading them after uow.__aexit__ raises"""
    rows = []

    def _on_exit(*args):
        for row in rows:
            row.__dict__["closed"] = True
        return False

    mock_uow.__aexit__.side_effect = _on_exit

    def _wrap(row):
        wrapped = DetachedOnExit(row)
        rows.append(wrapped)
        return wrapped

    return _wrap
