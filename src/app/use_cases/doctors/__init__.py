"""
Doctor Use Cases

Doctor-side access that bypasses invitations.
"""

from .doctor_access_use_case import DoctorAccessResponse, DoctorAccessUseCase

__all__ = [
    "DoctorAccessUseCase",
    "DoctorAccessResponse",
]
