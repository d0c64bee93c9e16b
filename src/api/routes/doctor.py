from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.api.error import ClientError, ServerError
from src.app.services.credential_minter import ICredentialMinter
from src.app.use_cases.doctors import DoctorAccessResponse, DoctorAccessUseCase
from src.depends import get_credential_minter, get_current_doctor

router = APIRouter(tags=["Doctor"])


class DoctorAccessRequest(BaseModel):
    """Doctor access HTTP request payload"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    room_name: str = Field(..., description="Room to join")
    doctor_name: str = Field(..., description="Display name in the room")
    doctor_email: Optional[str] = None


@router.post(
    "/doctor-access",
    status_code=status.HTTP_200_OK,
    response_model=DoctorAccessResponse,
    response_model_by_alias=True,
)
async def doctor_access(
    request: DoctorAccessRequest,
    current_doctor: dict = Depends(get_current_doctor),
    credential_minter: ICredentialMinter = Depends(get_credential_minter),
):
    """
    Doctor Access

    Issues a doctor's room credential. Doctors skip invitation validation.

    Raises:
        - 400 Bad Request: MISSING_FIELDS
        - 401 Unauthorized: Invalid or expired doctor token
        - 500 Internal Server Error: CREDENTIAL_ERROR
    """
    use_case = DoctorAccessUseCase(credential_minter)
    result = await use_case.execute(
        doctor_id=current_doctor["sub"],
        room_name=request.room_name,
        doctor_name=request.doctor_name,
        doctor_email=request.doctor_email or current_doctor.get("email"),
    )

    if result.is_err():
        error = result.error
        if error.code == "MISSING_FIELDS":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
