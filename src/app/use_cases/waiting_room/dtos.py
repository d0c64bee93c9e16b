"""
Waiting Room Use Case DTOs

Serialized in the browser client's camelCase shape.
"""

from typing import List, Optional

from src.app.use_cases.invitations.dtos import CamelModel


class WaitingPatientItem(CamelModel):
    """One patient in a doctor's waiting room"""

    id: str
    invitation_id: str
    room_name: str
    patient_email: Optional[str] = None
    status: str
    joined_at: str


class ListWaitingPatientsResponse(CamelModel):
    """Response for list waiting patients use case"""

    success: bool = True
    room_name: str
    patients: List[WaitingPatientItem]
    count: int


class WaitingPatientStatusResponse(CamelModel):
    """Response for admit and reject"""

    success: bool = True
    waiting_patient_id: str
    room_name: str
    status: str


class CheckAdmissionResponse(CamelModel):
    """Response for a patient polling for admission"""

    success: bool = True
    admitted: bool
    status: str
    waiting_patient_id: str
    room_name: Optional[str] = None
    live_kit_token: Optional[str] = None
