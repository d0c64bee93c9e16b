import asyncio
import base64
from datetime import timedelta
from unittest.mock import ANY
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from src.app.services.credential_minter import CredentialMintingError
from src.app.use_cases.invitations import ValidateInvitationUseCase
from src.domain.clock import utcnow
from src.domain.entities import (
    AuditAction,
    DenyReason,
    GeoMismatchPolicy,
    InvitationStatus,
    ParticipantRole,
)
from src.domain.fingerprint import DeviceFingerprint, Geolocation
from tests.fixtures.json_loader import TestDataLoader


def flip_signature_bit(token: str) -> str:
    """Flip one bit of the decoded signature bytes and re-encode"""
    header, payload, signature = token.split(".")
    raw = bytearray(base64.urlsafe_b64decode(signature + "=" * (-len(signature) % 4)))
    raw[0] ^= 0x01
    flipped = base64.urlsafe_b64encode(bytes(raw)).rstrip(b"=").decode("ascii")
    return ".".join([header, payload, flipped])


@pytest.fixture
def us_geolocation():
    return Geolocation(**TestDataLoader.get_copy("us_geolocation"))


@pytest.fixture
def use_case(mock_uow, token_service, credential_minter):
    return ValidateInvitationUseCase(mock_uow, token_service, credential_minter)


def _token_for(token_service, invitation, hours=24):
    return token_service.issue(invitation.id, utcnow() + timedelta(hours=hours))


# ============================================================================
# Happy path
# ============================================================================


@pytest.mark.asyncio
async def test_valid_invitation_is_consumed_and_credential_minted(
    use_case, mock_uow, token_service, credential_minter, make_invitation, fingerprint, us_geolocation
):
    # Arrange
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation
    token = token_service.issue(invitation.id, invitation.expires_at)

    # Act
    result = await use_case.execute(token, fingerprint=fingerprint, geolocation=us_geolocation)

    # Assert
    assert result.is_ok()
    assert result.value.live_kit_token == "livekit.jwt.token"
    assert result.value.room_name == "consult-room-1"
    assert result.value.invitation_id == str(invitation.id)

    mock_uow.invitations.consume.assert_awaited_once_with(
        invitation.id, ANY, fingerprint.canonical_hash(), True, "US"
    )
    credential_minter.mint.assert_called_once()
    assert credential_minter.mint.call_args.kwargs["role"] == ParticipantRole.patient
    assert credential_minter.mint.call_args.kwargs["room_name"] == "consult-room-1"

    audit = mock_uow.audit_events.create.call_args.args[0]
    assert audit.action == AuditAction.access_granted.value
    assert audit.event_metadata["fingerprint_hash"] == fingerprint.canonical_hash()
    mock_uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_serialized_camel_case_grant(use_case, mock_uow, token_service, make_invitation, fingerprint):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation
    token = _token_for(token_service, invitation)

    result = await use_case.execute(token, fingerprint=fingerprint)

    body = result.value.model_dump(by_alias=True)
    assert body == {
        "success": True,
        "liveKitToken": "livekit.jwt.token",
        "roomName": "consult-room-1",
        "invitationId": str(invitation.id),
        "waitingRoomEnabled": False,
        "waitingRoomToken": False,
        "waitingPatientId": None,
    }


# ============================================================================
# Token gates (no store access)
# ============================================================================


@pytest.mark.asyncio
async def test_one_bit_signature_change_is_invalid_token(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation
    token = flip_signature_bit(_token_for(token_service, invitation))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.is_err()
    assert result.error.reason == DenyReason.invalid_token
    assert result.error.code == "invalid-token"
    mock_uow.invitations.get_by_id.assert_not_called()
    mock_uow.invitations.consume.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "not.a.jwt"])
async def test_malformed_token_is_invalid_token(use_case, mock_uow, token, fingerprint):
    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.is_err()
    assert result.error.reason == DenyReason.invalid_token
    mock_uow.invitations.get_by_id.assert_not_called()


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_invalid_token(use_case, mock_uow, fingerprint):
    from src.app.services.invitation_tokens import InvitationTokenService

    foreign = InvitationTokenService("some-other-secret")
    token = foreign.issue(uuid4(), utcnow() + timedelta(hours=1))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.error.reason == DenyReason.invalid_token


@pytest.mark.asyncio
async def test_token_embedded_expiry_is_expired_without_store_access(
    use_case, mock_uow, token_service, fingerprint
):
    token = token_service.issue(uuid4(), utcnow() - timedelta(minutes=5))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.is_err()
    assert result.error.reason == DenyReason.expired
    mock_uow.invitations.get_by_id.assert_not_called()


# ============================================================================
# Record gates
# ============================================================================


@pytest.mark.asyncio
async def test_missing_record_is_invalid_link(use_case, mock_uow, token_service, fingerprint):
    mock_uow.invitations.get_by_id.return_value = None
    token = token_service.issue(uuid4(), utcnow() + timedelta(hours=1))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.error.reason == DenyReason.invalid_link
    audit = mock_uow.audit_events.create.call_args.args[0]
    assert audit.action == AuditAction.access_denied.value
    assert audit.event_metadata["reason"] == "invalid-link"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, reason, detail",
    [
        (InvitationStatus.used, DenyReason.already_used, "used"),
        (InvitationStatus.revoked, DenyReason.already_used, "revoked"),
        (InvitationStatus.expired, DenyReason.expired, "expired"),
    ],
)
async def test_terminal_status_is_denied(
    use_case, mock_uow, token_service, make_invitation, fingerprint, status, reason, detail
):
    invitation = make_invitation(status=status)
    mock_uow.invitations.get_by_id.return_value = invitation
    token = _token_for(token_service, invitation)

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.error.reason == reason
    assert result.error.detail == detail
    mock_uow.invitations.consume.assert_not_called()


@pytest.mark.asyncio
async def test_store_side_expiry_wins_over_live_token(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    # Record was shortened after the token was minted
    invitation = make_invitation(expires_at=utcnow() - timedelta(minutes=1))
    mock_uow.invitations.get_by_id.return_value = invitation
    token = token_service.issue(invitation.id, utcnow() + timedelta(hours=12))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.error.reason == DenyReason.expired
    mock_uow.invitations.transition_status.assert_awaited_once_with(
        invitation.id, InvitationStatus.expired, ANY
    )
    mock_uow.invitations.consume.assert_not_called()


# ============================================================================
# Binding gates
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "claimed", ["patient@example.com", "  PATIENT@Example.COM  ", "Patient@example.com"]
)
async def test_email_comparison_ignores_case_and_whitespace(
    use_case, mock_uow, token_service, make_invitation, fingerprint, claimed
):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(
        _token_for(token_service, invitation), fingerprint=fingerprint, claimed_email=claimed
    )

    assert result.is_ok()


@pytest.mark.asyncio
async def test_different_email_is_wrong_email(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(
        _token_for(token_service, invitation),
        fingerprint=fingerprint,
        claimed_email="someone.else@example.com",
    )

    assert result.error.reason == DenyReason.wrong_email
    assert result.error.violations == ("wrong-email",)
    mock_uow.invitations.consume.assert_not_called()


@pytest.mark.asyncio
async def test_matching_phone_satisfies_identity_check(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation(phone_allowed="+1 (555) 010-2000")
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(
        _token_for(token_service, invitation),
        fingerprint=fingerprint,
        claimed_email="other@example.com",
        claimed_phone="15550102000",
    )

    assert result.is_ok()


@pytest.mark.asyncio
async def test_different_pinned_device_is_wrong_device(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation(max_uses=3, use_count=1, bound_fingerprint="0" * 64)
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.wrong_device
    mock_uow.invitations.consume.assert_not_called()


@pytest.mark.asyncio
async def test_same_pinned_device_is_accepted(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation(
        max_uses=3, use_count=1, bound_fingerprint=fingerprint.canonical_hash()
    )
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.is_ok()


@pytest.mark.asyncio
async def test_country_outside_allowlist_is_wrong_country(
    use_case, mock_uow, token_service, make_invitation, fingerprint, us_geolocation
):
    invitation = make_invitation(country_allowlist=["DE", "AT"])
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(
        _token_for(token_service, invitation), fingerprint=fingerprint, geolocation=us_geolocation
    )

    assert result.error.reason == DenyReason.wrong_country


@pytest.mark.asyncio
async def test_missing_location_fails_country_allowlist(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation(country_allowlist=["US"])
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.wrong_country


@pytest.mark.asyncio
async def test_browser_outside_allowlist_is_wrong_browser(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation(browser_allowlist=["Firefox", "Safari"])
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.wrong_browser


@pytest.mark.asyncio
async def test_all_violations_reported_first_enforced_wins(
    use_case, mock_uow, token_service, make_invitation, fingerprint, us_geolocation
):
    invitation = make_invitation(
        bound_fingerprint="f" * 64,
        max_uses=2,
        use_count=1,
        country_allowlist=["DE"],
        browser_allowlist=["Firefox"],
    )
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(
        _token_for(token_service, invitation),
        fingerprint=fingerprint,
        geolocation=us_geolocation,
        claimed_email="intruder@example.com",
    )

    assert result.error.reason == DenyReason.wrong_email
    assert result.error.violations == (
        "wrong-email",
        "wrong-device",
        "wrong-country",
        "wrong-browser",
    )
    audit = mock_uow.audit_events.create.call_args.args[0]
    assert len(audit.event_metadata["violations"]) == 4


@pytest.mark.asyncio
async def test_pinned_country_drift_is_advisory_by_default(
    use_case, mock_uow, token_service, make_invitation, fingerprint, us_geolocation
):
    invitation = make_invitation(max_uses=2, use_count=1, bound_country_code="DE")
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(
        _token_for(token_service, invitation), fingerprint=fingerprint, geolocation=us_geolocation
    )

    assert result.is_ok()
    audit = mock_uow.audit_events.create.call_args.args[0]
    assert audit.event_metadata["advisory_violations"] == ["wrong-country"]


@pytest.mark.asyncio
async def test_pinned_country_drift_denied_under_deny_policy(
    mock_uow, token_service, credential_minter, make_invitation, fingerprint, us_geolocation
):
    invitation = make_invitation(max_uses=2, use_count=1, bound_country_code="DE")
    mock_uow.invitations.get_by_id.return_value = invitation
    use_case = ValidateInvitationUseCase(
        mock_uow, token_service, credential_minter, geo_policy=GeoMismatchPolicy.deny
    )

    result = await use_case.execute(
        _token_for(token_service, invitation), fingerprint=fingerprint, geolocation=us_geolocation
    )

    assert result.error.reason == DenyReason.wrong_country
    mock_uow.invitations.consume.assert_not_called()


# ============================================================================
# Consumption and infrastructure failures
# ============================================================================


@pytest.mark.asyncio
async def test_lost_consumption_race_is_already_used(
    use_case, mock_uow, token_service, credential_minter, make_invitation, fingerprint
):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation
    mock_uow.invitations.consume.return_value = False

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.already_used
    assert result.error.detail == "lost_race"
    credential_minter.mint.assert_not_called()


@pytest.mark.asyncio
async def test_device_pinned_by_concurrent_winner_is_wrong_device(
    use_case, mock_uow, token_service, credential_minter, make_invitation, fingerprint
):
    invitation = make_invitation(max_uses=3)
    pinned = make_invitation(
        id=invitation.id, max_uses=3, use_count=1, bound_fingerprint="f" * 64
    )
    mock_uow.invitations.get_by_id.side_effect = [invitation, pinned]
    mock_uow.invitations.consume.return_value = False

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.wrong_device
    assert result.error.detail == "device_pinned_concurrently"
    credential_minter.mint.assert_not_called()
    audit = mock_uow.audit_events.create.call_args.args[0]
    assert audit.event_metadata["reason"] == "wrong-device"


@pytest.mark.asyncio
async def test_lost_race_on_spent_invitation_stays_already_used(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation()
    spent = make_invitation(
        id=invitation.id,
        status=InvitationStatus.used,
        use_count=1,
        bound_fingerprint="f" * 64,
    )
    mock_uow.invitations.get_by_id.side_effect = [invitation, spent]
    mock_uow.invitations.consume.return_value = False

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.already_used
    assert result.error.detail == "lost_race"


@pytest.mark.asyncio
async def test_store_error_is_unknown(use_case, mock_uow, token_service, fingerprint):
    mock_uow.invitations.get_by_id.side_effect = SQLAlchemyError("database is unavailable")
    token = token_service.issue(uuid4(), utcnow() + timedelta(hours=1))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.is_err()
    assert result.error.reason == DenyReason.unknown


@pytest.mark.asyncio
async def test_store_timeout_is_unknown(mock_uow, token_service, credential_minter, fingerprint):
    async def slow_lookup(invitation_id):
        await asyncio.sleep(1)

    mock_uow.invitations.get_by_id.side_effect = slow_lookup
    use_case = ValidateInvitationUseCase(
        mock_uow, token_service, credential_minter, store_timeout=0.01
    )
    token = token_service.issue(uuid4(), utcnow() + timedelta(hours=1))

    result = await use_case.execute(token, fingerprint=fingerprint)

    assert result.error.reason == DenyReason.unknown


@pytest.mark.asyncio
async def test_signer_failure_is_unknown_and_not_committed(
    use_case, mock_uow, token_service, credential_minter, make_invitation, fingerprint
):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation
    credential_minter.mint.side_effect = CredentialMintingError("signing key missing")

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.unknown
    mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_client_supplied_hash_is_ignored(
    use_case, mock_uow, token_service, make_invitation
):
    data = TestDataLoader.get_copy("chrome_fingerprint")
    honest = DeviceFingerprint(**data)
    forged = DeviceFingerprint(**data, hash="0" * 64)
    invitation = make_invitation(
        max_uses=2, use_count=1, bound_fingerprint=honest.canonical_hash()
    )
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=forged)

    assert result.is_ok()


# ============================================================================
# Waiting room
# ============================================================================


@pytest.mark.asyncio
async def test_waiting_room_grant_targets_waiting_room(
    use_case, mock_uow, token_service, credential_minter, make_invitation, fingerprint
):
    invitation = make_invitation(waiting_room_enabled=True, max_patients=2)
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.is_ok()
    grant = result.value
    assert grant.room_name == "consult-room-1-waiting"
    assert grant.waiting_room_enabled is True
    assert grant.waiting_room_token is True

    entry = mock_uow.waiting_patients.create.call_args.args[0]
    assert grant.waiting_patient_id == str(entry.id)
    assert entry.invitation_id == invitation.id
    assert entry.doctor_id == "doctor-1"
    assert entry.fingerprint_hash == fingerprint.canonical_hash()

    mock_uow.invitations.consume.assert_awaited_once()
    kwargs = credential_minter.mint.call_args.kwargs
    assert kwargs["room_name"] == "consult-room-1-waiting"
    assert kwargs["identity"] == f"patient_{invitation.id}_{entry.id}"
    assert kwargs["metadata"]["joinedVia"] == "waiting_room"


@pytest.mark.asyncio
async def test_waiting_device_gets_its_place_back_without_consuming(
    use_case, mock_uow, token_service, make_invitation, make_waiting_patient, fingerprint
):
    invitation = make_invitation(waiting_room_enabled=True, max_uses=3, use_count=1)
    entry = make_waiting_patient(invitation)
    mock_uow.invitations.get_by_id.return_value = invitation
    mock_uow.waiting_patients.find_waiting.return_value = entry

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.value.waiting_patient_id == str(entry.id)
    mock_uow.invitations.consume.assert_not_called()
    mock_uow.waiting_patients.create.assert_not_called()
    audit = mock_uow.audit_events.create.call_args.args[0]
    assert audit.event_metadata["rejoined"] is True


@pytest.mark.asyncio
async def test_full_waiting_room_is_denied(
    use_case, mock_uow, token_service, credential_minter, make_invitation, fingerprint
):
    invitation = make_invitation(waiting_room_enabled=True, max_uses=5, max_patients=2)
    mock_uow.invitations.get_by_id.return_value = invitation
    mock_uow.waiting_patients.count_waiting.return_value = 2

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.error.reason == DenyReason.waiting_room_full
    mock_uow.invitations.consume.assert_not_called()
    credential_minter.mint.assert_not_called()
    audit = mock_uow.audit_events.create.call_args.args[0]
    assert audit.action == AuditAction.access_denied.value


@pytest.mark.asyncio
async def test_invitation_without_waiting_room_never_touches_it(
    use_case, mock_uow, token_service, make_invitation, fingerprint
):
    invitation = make_invitation()
    mock_uow.invitations.get_by_id.return_value = invitation

    result = await use_case.execute(_token_for(token_service, invitation), fingerprint=fingerprint)

    assert result.value.waiting_room_token is False
    mock_uow.waiting_patients.find_waiting.assert_not_called()
    mock_uow.waiting_patients.create.assert_not_called()
