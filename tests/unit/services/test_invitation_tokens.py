import base64
import json
from datetime import UTC, timedelta
from uuid import uuid4

import pytest
from jose import jwt

from src.app.services.invitation_tokens import (
    ExpiredInvitationToken,
    InvalidInvitationToken,
    InvitationTokenService,
    has_jwt_shape,
)
from src.domain.clock import utcnow


def _payload(token: str) -> dict:
    segment = token.split(".")[1]
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


def test_issue_and_verify(token_service):
    invitation_id = uuid4()
    token = token_service.issue(invitation_id, utcnow() + timedelta(hours=2))

    assert token_service.verify(token) == invitation_id


def test_token_is_url_safe_and_minimal(token_service):
    invitation_id = uuid4()
    expires_at = utcnow() + timedelta(hours=2)
    token = token_service.issue(invitation_id, expires_at)

    assert all(c.isalnum() or c in "-_." for c in token)
    payload = _payload(token)
    assert set(payload) == {"invitation_id", "typ", "iat", "exp"}
    assert payload["invitation_id"] == str(invitation_id)
    assert payload["exp"] == int(expires_at.replace(tzinfo=UTC).timestamp())


def test_expired_token(token_service):
    token = token_service.issue(uuid4(), utcnow() - timedelta(seconds=1))

    with pytest.raises(ExpiredInvitationToken):
        token_service.verify(token)


def test_tampered_payload(token_service):
    token = token_service.issue(uuid4(), utcnow() + timedelta(hours=1))
    header, _, signature = token.split(".")
    forged = base64.urlsafe_b64encode(
        json.dumps({"invitation_id": str(uuid4()), "typ": "invitation", "exp": 9999999999}).encode()
    ).rstrip(b"=").decode()

    with pytest.raises(InvalidInvitationToken):
        token_service.verify(".".join([header, forged, signature]))


def test_wrong_token_type(token_service):
    token = jwt.encode(
        {"invitation_id": str(uuid4()), "typ": "session", "exp": 9999999999},
        "unit-test-invite-secret",
        algorithm="HS256",
    )

    with pytest.raises(InvalidInvitationToken):
        token_service.verify(token)


def test_token_without_expiry_is_rejected(token_service):
    token = jwt.encode(
        {"invitation_id": str(uuid4()), "typ": "invitation"},
        "unit-test-invite-secret",
        algorithm="HS256",
    )

    with pytest.raises(InvalidInvitationToken):
        token_service.verify(token)


def test_malformed_invitation_id(token_service):
    token = jwt.encode(
        {"invitation_id": "room-1", "typ": "invitation", "exp": 9999999999},
        "unit-test-invite-secret",
        algorithm="HS256",
    )

    with pytest.raises(InvalidInvitationToken):
        token_service.verify(token)


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        InvitationTokenService("")


@pytest.mark.parametrize(
    "token, expected",
    [("a.b.c", True), ("", False), ("abc", False), ("a.b", False), ("a.b.c.d", False)],
)
def test_has_jwt_shape(token, expected):
    assert has_jwt_shape(token) is expected
