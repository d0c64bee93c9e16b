"""
Check Admission Use Case

Lets a waiting patient find out whether the doctor has admitted them, and
hands out the consultation room credential once they have.
"""

import logging
from typing import Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.credential_minter import CredentialMintingError, ICredentialMinter
from src.app.services.invitation_tokens import (
    ExpiredInvitationToken,
    InvalidInvitationToken,
    InvitationTokenService,
)
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import InvitationStatus, ParticipantRole, WaitingPatientStatus
from src.domain.fingerprint import DeviceFingerprint

from .dtos import CheckAdmissionResponse

logger = logging.getLogger(__name__)


class CheckAdmissionUseCase:
    """
    Use case for a waiting patient polling for admission.

    Business Rules:
    - The patient proves the invitation with its invite token, not its id
    - The entry must belong to that invitation and to the presenting device
    - Without an explicit entry id, the device's most recent entry is used
    - Only an admitted entry of a non-revoked invitation gets a credential,
      minted for the consultation room itself
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: InvitationTokenService,
        credential_minter: ICredentialMinter,
    ):
        self.uow = uow
        self.token_service = token_service
        self.credential_minter = credential_minter

    async def execute(
        self,
        token: str,
        fingerprint: Optional[DeviceFingerprint] = None,
        waiting_patient_id: Optional[UUID] = None,
    ) -> Result[CheckAdmissionResponse]:
        """
        Execute check admission use case.

        Args:
            token: Invite token the patient validated with
            fingerprint: Device signals of the waiting browser
            waiting_patient_id: Entry returned by validation, if the client kept it

        Returns:
            Result with CheckAdmissionResponse DTO, or Error
        """
        try:
            invitation_id = self.token_service.verify(token)
        except ExpiredInvitationToken:
            return Return.err(Error("INVITATION_EXPIRED", "Invitation has expired"))
        except InvalidInvitationToken:
            return Return.err(Error("INVALID_TOKEN", "Invalid invitation token"))

        fingerprint_hash = fingerprint.canonical_hash() if fingerprint else None

        async with self.uow:
            if waiting_patient_id is not None:
                entry = await self.uow.waiting_patients.get_by_id(waiting_patient_id)
            else:
                entry = await self.uow.waiting_patients.find_latest(
                    invitation_id, fingerprint_hash
                )

            # Another device's entry is indistinguishable from a missing one
            if (
                entry is None
                or entry.invitation_id != invitation_id
                or entry.fingerprint_hash != fingerprint_hash
            ):
                return Return.err(
                    Error("WAITING_PATIENT_NOT_FOUND", "Waiting patient not found")
                )

            if entry.status != WaitingPatientStatus.admitted:
                return Return.ok(
                    CheckAdmissionResponse(
                        admitted=False,
                        status=entry.status.value,
                        waiting_patient_id=str(entry.id),
                    )
                )

            invitation = await self.uow.invitations.get_by_id(invitation_id)
            if invitation is None or invitation.status == InvitationStatus.revoked:
                return Return.err(
                    Error("INVITATION_REVOKED", "Invitation is no longer valid")
                )

            try:
                live_kit_token = self.credential_minter.mint(
                    identity=f"patient_{invitation_id}_{entry.id}",
                    room_name=entry.room_name,
                    role=ParticipantRole.patient,
                    name=entry.patient_email,
                    metadata={
                        "invitationId": str(invitation_id),
                        "roomName": entry.room_name,
                        "joinedVia": "waiting_room",
                        "waitingPatientId": str(entry.id),
                    },
                )
            except CredentialMintingError:
                logger.exception(
                    "Admission credential could not be minted: waiting_patient=%s", entry.id
                )
                return Return.err(
                    Error("CREDENTIAL_ERROR", "Could not issue room credential")
                )

            response = CheckAdmissionResponse(
                admitted=True,
                status=entry.status.value,
                waiting_patient_id=str(entry.id),
                room_name=entry.room_name,
                live_kit_token=live_kit_token,
            )

        logger.info(
            "Admitted patient collected room credential: waiting_patient=%s room=%s",
            response.waiting_patient_id,
            response.room_name,
        )
        return Return.ok(response)
