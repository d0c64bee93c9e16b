"""
Waiting Room Use Cases

Doctors admit, reject and list waiting patients; patients poll for admission.
"""

from .admit_waiting_patient_use_case import AdmitWaitingPatientUseCase
from .check_admission_use_case import CheckAdmissionUseCase
from .dtos import (
    CheckAdmissionResponse,
    ListWaitingPatientsResponse,
    WaitingPatientItem,
    WaitingPatientStatusResponse,
)
from .list_waiting_patients_use_case import ListWaitingPatientsUseCase
from .reject_waiting_patient_use_case import RejectWaitingPatientUseCase

__all__ = [
    "AdmitWaitingPatientUseCase",
    "RejectWaitingPatientUseCase",
    "ListWaitingPatientsUseCase",
    "CheckAdmissionUseCase",
    "CheckAdmissionResponse",
    "ListWaitingPatientsResponse",
    "WaitingPatientItem",
    "WaitingPatientStatusResponse",
]
