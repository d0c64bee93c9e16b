"""
Invitation Token Service

Signs and verifies the bearer token embedded in invite links. The token is
self-contained: signature and expiry are checked without touching the store.
"""

from datetime import UTC, datetime
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

TOKEN_TYPE = "invitation"
ALGORITHM = "HS256"


class InvitationTokenError(Exception):
    """Base class for token verification failures"""


class InvalidInvitationToken(InvitationTokenError):
    """Malformed token, bad signature or unexpected payload"""


class ExpiredInvitationToken(InvitationTokenError):
    """Well-signed token whose embedded exp has passed"""


def has_jwt_shape(token: str) -> bool:
    """Cheap structural check: exactly three dot-separated segments"""
    return bool(token) and len(token.split(".")) == 3


class InvitationTokenService:
    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Invitation token secret must not be empty")
        self._secret = secret

    def issue(self, invitation_id: UUID, expires_at: datetime) -> str:
        """
        Mint a URL-safe token for an invitation.

        Args:
            invitation_id: Invitation primary key
            expires_at: Naive UTC expiry copied from the record

        Returns:
            JWT string (HS256)
        """
        payload = {
            "invitation_id": str(invitation_id),
            "typ": TOKEN_TYPE,
            "iat": datetime.now(UTC),
            "exp": expires_at.replace(tzinfo=UTC),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> UUID:
        """
        Verify signature and expiry and return the embedded invitation id.

        Raises:
            InvalidInvitationToken: wrong shape, bad signature or payload
            ExpiredInvitationToken: signature valid but exp has passed
        """
        if not has_jwt_shape(token):
            raise InvalidInvitationToken("Token is not a three-segment JWT")

        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise ExpiredInvitationToken(str(exc)) from exc
        except JWTError as exc:
            raise InvalidInvitationToken(str(exc)) from exc

        if payload.get("typ") != TOKEN_TYPE:
            raise InvalidInvitationToken("Not an invitation token")
        if "exp" not in payload:
            raise InvalidInvitationToken("Token has no expiry")

        try:
            return UUID(str(payload.get("invitation_id")))
        except ValueError as exc:
            raise InvalidInvitationToken("Malformed invitation id") from exc
