"""
Reject Waiting Patient Use Case

Handles a doctor removing a patient from the waiting room.
"""

import logging
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import AuditAction, AuditEvent, WaitingPatientStatus

from .dtos import WaitingPatientStatusResponse

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (WaitingPatientStatus.waiting, WaitingPatientStatus.admitted)


class RejectWaitingPatientUseCase:
    """
    Use case for rejecting a waiting patient.

    Business Rules:
    - Only the invitation's doctor can reject
    - Waiting or admitted entries move to left; an admitted patient can no
      longer collect a room credential afterwards
    - The invitation itself is untouched
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, doctor_id: str, waiting_patient_id: UUID
    ) -> Result[WaitingPatientStatusResponse]:
        async with self.uow:
            entry = await self.uow.waiting_patients.get_by_id(waiting_patient_id)

            if entry is None or entry.doctor_id != doctor_id:
                return Return.err(
                    Error("WAITING_PATIENT_NOT_FOUND", "Waiting patient not found")
                )

            rejected = await self.uow.waiting_patients.transition_status(
                waiting_patient_id, _OPEN_STATUSES, WaitingPatientStatus.left, utcnow()
            )
            if not rejected:
                return Return.err(
                    Error("WAITING_PATIENT_NOT_WAITING", "Patient already left")
                )

            audit = AuditEvent(
                invitation_id=entry.invitation_id,
                actor=doctor_id,
                action=AuditAction.patient_rejected.value,
                event_metadata={
                    "waiting_patient_id": str(waiting_patient_id),
                    "room_name": entry.room_name,
                    "previous_status": entry.status.value,
                },
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            response = WaitingPatientStatusResponse(
                waiting_patient_id=str(waiting_patient_id),
                room_name=entry.room_name,
                status=WaitingPatientStatus.left.value,
            )

        logger.info("Waiting patient rejected: id=%s by=%s", waiting_patient_id, doctor_id)
        return Return.ok(response)
