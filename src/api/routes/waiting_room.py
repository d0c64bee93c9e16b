from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.libs.result import Error
from src.api.error import ClientError, ServerError
from src.app.services.credential_minter import ICredentialMinter
from src.app.services.invitation_tokens import InvitationTokenService
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.waiting_room import (
    AdmitWaitingPatientUseCase,
    CheckAdmissionResponse,
    CheckAdmissionUseCase,
    ListWaitingPatientsResponse,
    ListWaitingPatientsUseCase,
    RejectWaitingPatientUseCase,
    WaitingPatientStatusResponse,
)
from src.domain.fingerprint import DeviceFingerprint
from src.depends import (
    get_credential_minter,
    get_current_doctor,
    get_token_service,
    get_unit_of_work,
)

router = APIRouter(prefix="/waiting-room", tags=["Waiting Room"])

ERROR_STATUS_CODES = {
    "MISSING_FIELDS": status.HTTP_400_BAD_REQUEST,
    "ROOM_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_401_UNAUTHORIZED,
    "INVITATION_REVOKED": status.HTTP_403_FORBIDDEN,
    "WAITING_PATIENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "WAITING_PATIENT_NOT_WAITING": status.HTTP_409_CONFLICT,
    "INVITATION_EXPIRED": status.HTTP_410_GONE,
}


class AdmitPatientRequest(BaseModel):
    """Admit waiting patient HTTP request payload"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    waiting_patient_id: str = Field(..., description="Waiting room entry to admit")
    room_name: str = Field(..., description="Room the doctor is admitting into")


class RejectPatientRequest(BaseModel):
    """Reject waiting patient HTTP request payload"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    waiting_patient_id: str = Field(..., description="Waiting room entry to remove")


class CheckAdmissionRequest(BaseModel):
    """Check admission HTTP request payload"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str = Field(..., description="Invite token the patient validated with")
    device_fingerprint: DeviceFingerprint
    waiting_patient_id: Optional[str] = None


@router.post(
    "/admit",
    status_code=status.HTTP_200_OK,
    response_model=WaitingPatientStatusResponse,
    response_model_by_alias=True,
)
async def admit_patient(
    request: AdmitPatientRequest,
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Admit Waiting Patient

    Lets a waiting patient into the consultation room. The patient collects
    the room credential through check-admission.

    Raises:
        - 400 Bad Request: Invalid waitingPatientId format, ROOM_MISMATCH
        - 401 Unauthorized: Invalid or expired doctor token
        - 404 Not Found: WAITING_PATIENT_NOT_FOUND
        - 409 Conflict: WAITING_PATIENT_NOT_WAITING
    """
    waiting_patient_id = _parse_waiting_patient_id(request.waiting_patient_id)

    use_case = AdmitWaitingPatientUseCase(uow)
    result = await use_case.execute(
        current_doctor["sub"], waiting_patient_id, room_name=request.room_name
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post(
    "/reject",
    status_code=status.HTTP_200_OK,
    response_model=WaitingPatientStatusResponse,
    response_model_by_alias=True,
)
async def reject_patient(
    request: RejectPatientRequest,
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Reject Waiting Patient

    Removes a waiting or admitted patient from the room.

    Raises:
        - 400 Bad Request: Invalid waitingPatientId format
        - 401 Unauthorized: Invalid or expired doctor token
        - 404 Not Found: WAITING_PATIENT_NOT_FOUND
        - 409 Conflict: WAITING_PATIENT_NOT_WAITING
    """
    waiting_patient_id = _parse_waiting_patient_id(request.waiting_patient_id)

    use_case = RejectWaitingPatientUseCase(uow)
    result = await use_case.execute(current_doctor["sub"], waiting_patient_id)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.get(
    "/list",
    status_code=status.HTTP_200_OK,
    response_model=ListWaitingPatientsResponse,
    response_model_by_alias=True,
)
async def list_waiting_patients(
    room_name: str = Query("", alias="roomName"),
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    List Waiting Patients

    Returns the patients waiting in one of the doctor's rooms, earliest first.

    Raises:
        - 400 Bad Request: MISSING_FIELDS
        - 401 Unauthorized: Invalid or expired doctor token
    """
    use_case = ListWaitingPatientsUseCase(uow)
    result = await use_case.execute(current_doctor["sub"], room_name)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post(
    "/check-admission",
    status_code=status.HTTP_200_OK,
    response_model=CheckAdmissionResponse,
    response_model_by_alias=True,
)
async def check_admission(
    request: CheckAdmissionRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: InvitationTokenService = Depends(get_token_service),
    credential_minter: ICredentialMinter = Depends(get_credential_minter),
):
    """
    Check Admission

    Polled by a waiting patient. Once the doctor has admitted them, returns
    the consultation room credential.

    Raises:
        - 400 Bad Request: Invalid waitingPatientId format
        - 401 Unauthorized: INVALID_TOKEN
        - 403 Forbidden: INVITATION_REVOKED
        - 404 Not Found: WAITING_PATIENT_NOT_FOUND
        - 410 Gone: INVITATION_EXPIRED
        - 500 Internal Server Error: CREDENTIAL_ERROR
    """
    waiting_patient_id = None
    if request.waiting_patient_id:
        waiting_patient_id = _parse_waiting_patient_id(request.waiting_patient_id)

    use_case = CheckAdmissionUseCase(uow, token_service, credential_minter)
    result = await use_case.execute(
        request.token,
        fingerprint=request.device_fingerprint,
        waiting_patient_id=waiting_patient_id,
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


def _raise_for(error: Error):
    status_code = ERROR_STATUS_CODES.get(error.code)
    if status_code is None:
        raise ServerError(error)
    raise ClientError(error, status_code=status_code)


def _parse_waiting_patient_id(waiting_patient_id: str) -> UUID:
    try:
        return UUID(waiting_patient_id)
    except ValueError:
        raise ClientError(
            Error("INVALID_WAITING_PATIENT_ID", "Invalid waiting patient ID format"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
