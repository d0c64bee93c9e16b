"""
Doctor Access Use Case

Issues a doctor's video session credential. Doctors are authenticated by the
identity provider and bypass the invitation checks entirely; this use case
never touches the invitation store.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.libs.result import Error, Result, Return
from src.app.services.credential_minter import CredentialMintingError, ICredentialMinter
from src.domain.clock import utcnow
from src.domain.entities import ParticipantRole

logger = logging.getLogger(__name__)


class DoctorAccessResponse(BaseModel):
    """Response DTO for DoctorAccessUseCase"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    token: str
    room_name: str
    participant_type: str
    message: str


class DoctorAccessUseCase:
    """
    Use case for ungated doctor room access.

    Business Rules:
    - Room name and doctor name are required
    - Credential gets the doctor TTL and room admin rights
    - No invitation lookup or consumption
    """

    def __init__(self, credential_minter: ICredentialMinter):
        self.credential_minter = credential_minter

    async def execute(
        self,
        doctor_id: str,
        room_name: str,
        doctor_name: str,
        doctor_email: Optional[str] = None,
    ) -> Result[DoctorAccessResponse]:
        room_name = (room_name or "").strip()
        doctor_name = (doctor_name or "").strip()

        if not room_name or not doctor_name:
            return Return.err(
                Error("MISSING_FIELDS", "Room name and doctor name are required")
            )

        try:
            token = self.credential_minter.mint(
                identity=f"doctor_{doctor_id}",
                room_name=room_name,
                role=ParticipantRole.doctor,
                name=doctor_name,
                metadata={
                    "doctorName": doctor_name,
                    "doctorEmail": doctor_email,
                    "roomName": room_name,
                    "joinedVia": "doctor-direct-access",
                    "timestamp": utcnow().isoformat() + "Z",
                },
            )
        except CredentialMintingError as exc:
            logger.error("Doctor credential minting failed: room=%s error=%s", room_name, exc)
            return Return.err(Error("CREDENTIAL_ERROR", "Could not issue room credential"))

        logger.info("Doctor access granted: room=%s doctor=%s", room_name, doctor_id)

        return Return.ok(
            DoctorAccessResponse(
                token=token,
                room_name=room_name,
                participant_type=ParticipantRole.doctor.value,
                message="Doctor access granted",
            )
        )
