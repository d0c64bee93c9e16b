"""
Admit Waiting Patient Use Case

Handles a doctor letting a waiting patient into the consultation room.
"""

import logging
from typing import Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import AuditAction, AuditEvent, WaitingPatientStatus

from .dtos import WaitingPatientStatusResponse

logger = logging.getLogger(__name__)


class AdmitWaitingPatientUseCase:
    """
    Use case for admitting a patient from the waiting room.

    Business Rules:
    - Only the invitation's doctor can admit; others see WAITING_PATIENT_NOT_FOUND
    - The room named by the doctor must be the entry's room
    - Only a waiting entry can be admitted, and only once
    - The patient collects the main room credential by checking admission
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self,
        doctor_id: str,
        waiting_patient_id: UUID,
        room_name: Optional[str] = None,
    ) -> Result[WaitingPatientStatusResponse]:
        """
        Execute admit waiting patient use case.

        Args:
            doctor_id: Doctor admitting the patient
            waiting_patient_id: Waiting room entry to admit
            room_name: Room the doctor is admitting into

        Returns:
            Result with WaitingPatientStatusResponse DTO, or Error
        """
        async with self.uow:
            entry = await self.uow.waiting_patients.get_by_id(waiting_patient_id)

            if entry is None or entry.doctor_id != doctor_id:
                return Return.err(
                    Error("WAITING_PATIENT_NOT_FOUND", "Waiting patient not found")
                )

            if room_name is not None and room_name.strip() != entry.room_name:
                return Return.err(
                    Error("ROOM_MISMATCH", "Patient is waiting for a different room")
                )

            if entry.status != WaitingPatientStatus.waiting:
                return Return.err(
                    Error(
                        "WAITING_PATIENT_NOT_WAITING",
                        f"Patient is not waiting (status: {entry.status.value})",
                    )
                )

            admitted = await self.uow.waiting_patients.transition_status(
                waiting_patient_id,
                [WaitingPatientStatus.waiting],
                WaitingPatientStatus.admitted,
                utcnow(),
            )
            if not admitted:
                return Return.err(
                    Error(
                        "WAITING_PATIENT_NOT_WAITING",
                        "Patient left the waiting room before being admitted",
                    )
                )

            audit = AuditEvent(
                invitation_id=entry.invitation_id,
                actor=doctor_id,
                action=AuditAction.patient_admitted.value,
                event_metadata={
                    "waiting_patient_id": str(waiting_patient_id),
                    "room_name": entry.room_name,
                },
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            response = WaitingPatientStatusResponse(
                waiting_patient_id=str(waiting_patient_id),
                room_name=entry.room_name,
                status=WaitingPatientStatus.admitted.value,
            )

        logger.info(
            "Waiting patient admitted: id=%s room=%s by=%s",
            waiting_patient_id,
            response.room_name,
            doctor_id,
        )
        return Return.ok(response)
