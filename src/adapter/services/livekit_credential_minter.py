"""
LiveKit access token signer.

LiveKit access tokens are HS256 JWTs issued by the API key and signed with
the API secret; the `video` claim carries the room grant.
"""

import json
from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import uuid4

from jose import JWTError, jwt

from src.app.services.credential_minter import CredentialMintingError, ICredentialMinter
from src.domain.entities import ParticipantRole


class LiveKitCredentialMinter(ICredentialMinter):
    """Mints LiveKit room grants for patients and doctors"""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        patient_ttl: timedelta = timedelta(hours=1),
        doctor_ttl: timedelta = timedelta(hours=4),
    ):
        self.api_key = api_key
        self._api_secret = api_secret
        self.patient_ttl = patient_ttl
        self.doctor_ttl = doctor_ttl

    def mint(
        self,
        identity: str,
        room_name: str,
        role: ParticipantRole,
        ttl: Optional[timedelta] = None,
        name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> str:
        if not identity or not identity.strip():
            raise CredentialMintingError("Participant identity is required")
        if not room_name or not room_name.strip():
            raise CredentialMintingError("Room name is required")
        if not self.api_key or not self._api_secret:
            raise CredentialMintingError("LiveKit API key and secret are not configured")

        if ttl is None:
            ttl = self.doctor_ttl if role == ParticipantRole.doctor else self.patient_ttl

        video_grant = {
            "room": room_name,
            "roomJoin": True,
            "canPublish": True,
            "canSubscribe": True,
            "canPublishData": True,
        }
        if role == ParticipantRole.doctor:
            video_grant["roomAdmin"] = True

        now = datetime.now(UTC)
        claims = {
            "iss": self.api_key,
            "sub": identity,
            "name": name or identity,
            "jti": str(uuid4()),
            "nbf": now,
            "exp": now + ttl,
            "video": video_grant,
            "metadata": json.dumps({"participantType": role.value, **(metadata or {})}),
        }

        try:
            return jwt.encode(claims, self._api_secret, algorithm="HS256")
        except JWTError as exc:
            raise CredentialMintingError(str(exc)) from exc
