"""
List Waiting Patients Use Case

Handles a doctor viewing who is waiting to join a room.
"""

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork

from .dtos import ListWaitingPatientsResponse, WaitingPatientItem


class ListWaitingPatientsUseCase:
    """
    Use case for listing a room's waiting patients.

    Only entries still waiting and owned by the requesting doctor are
    returned, earliest arrival first.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, doctor_id: str, room_name: str
    ) -> Result[ListWaitingPatientsResponse]:
        room_name = (room_name or "").strip()
        if not room_name:
            return Return.err(Error("MISSING_FIELDS", "Room name is required"))

        async with self.uow:
            entries = await self.uow.waiting_patients.list_waiting(room_name, doctor_id)

            patients = [
                WaitingPatientItem(
                    id=str(entry.id),
                    invitation_id=str(entry.invitation_id),
                    room_name=entry.room_name,
                    patient_email=entry.patient_email,
                    status=entry.status.value,
                    joined_at=entry.joined_at.isoformat() + "Z",
                )
                for entry in entries
            ]

        return Return.ok(
            ListWaitingPatientsResponse(
                room_name=room_name, patients=patients, count=len(patients)
            )
        )
