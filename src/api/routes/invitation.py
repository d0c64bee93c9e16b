from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.libs.result import Error
from src.api.error import ClientError, ServerError, failure_response
from src.api.utils.rate_limit import RateLimiter
from src.app.services.credential_minter import ICredentialMinter
from src.app.services.invitation_tokens import InvitationTokenService
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.invitations import (
    AccessGrant,
    CreateInvitationResponse,
    CreateInvitationUseCase,
    GetInviteLinkUseCase,
    ListInvitationsResponse,
    ListInvitationsUseCase,
    RevokeInvitationResponse,
    RevokeInvitationUseCase,
    ValidateInvitationUseCase,
)
from src.domain.entities import DenyReason
from src.domain.fingerprint import DeviceFingerprint, Geolocation
from src.depends import (
    get_config,
    get_credential_minter,
    get_current_doctor,
    get_token_service,
    get_unit_of_work,
)

router = APIRouter(prefix="/invite", tags=["Invitations"])

DENY_STATUS_CODES = {
    DenyReason.invalid_token: status.HTTP_401_UNAUTHORIZED,
    DenyReason.invalid_link: status.HTTP_404_NOT_FOUND,
    DenyReason.direct_access: status.HTTP_403_FORBIDDEN,
    DenyReason.expired: status.HTTP_410_GONE,
    DenyReason.already_used: status.HTTP_409_CONFLICT,
    DenyReason.wrong_email: status.HTTP_403_FORBIDDEN,
    DenyReason.wrong_country: status.HTTP_403_FORBIDDEN,
    DenyReason.wrong_browser: status.HTTP_403_FORBIDDEN,
    DenyReason.wrong_device: status.HTTP_403_FORBIDDEN,
    DenyReason.waiting_room_full: status.HTTP_403_FORBIDDEN,
    DenyReason.unknown: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class CreateInvitationRequest(BaseModel):
    """
    Create invitation HTTP request payload

    Accepts the browser client's camelCase field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    room_name: str = Field(..., description="Video room the invitation grants")
    email_allowed: str = Field(..., description="Patient email bound to the invitation")
    phone_allowed: Optional[str] = Field(None, description="Optional patient phone")
    expires_in_hours: Optional[int] = Field(
        None, description="Lifetime in hours (defaults to DEFAULT_INVITE_HOURS)"
    )
    max_uses: int = Field(1, description="Successful validations allowed")
    device_binding: bool = Field(True, description="Pin the first device that joins")
    country_allowlist: Optional[List[str]] = None
    browser_allowlist: Optional[List[str]] = None
    waiting_room_enabled: bool = Field(False, description="Hold the patient in a waiting room")
    max_patients: int = Field(10, description="Waiting room capacity")


class ValidateInvitationRequest(BaseModel):
    """Validate invitation HTTP request payload"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str = Field(..., description="Invite token from the link")
    device_fingerprint: DeviceFingerprint
    geolocation: Optional[Geolocation] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = None


@router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    response_model=CreateInvitationResponse,
    response_model_by_alias=True,
    dependencies=[Depends(RateLimiter("invite_create"))],
)
async def create_invitation(
    request: CreateInvitationRequest,
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: InvitationTokenService = Depends(get_token_service),
    config=Depends(get_config),
):
    """
    Create Invitation

    Issues a time-boxed invite link for a room, bound to the patient's email.

    Raises:
        - 400 Bad Request: MISSING_FIELDS, INVALID_ROOM_NAME, INVALID_EMAIL,
                           INVALID_PHONE, INVALID_EXPIRY, INVALID_MAX_USES,
                           INVALID_COUNTRY, INVALID_MAX_PATIENTS
        - 401 Unauthorized: Invalid or expired doctor token
        - 429 Too Many Requests: RATE_LIMITED
        - 500 Internal Server Error: Server error
    """
    expires_in_hours = request.expires_in_hours
    if expires_in_hours is None:
        expires_in_hours = config.DEFAULT_INVITE_HOURS

    use_case = CreateInvitationUseCase(
        uow,
        token_service,
        base_url=config.APP_BASE_URL,
        max_hours=config.MAX_INVITE_HOURS,
        max_uses_limit=config.MAX_INVITE_USES,
        max_patients_limit=config.MAX_WAITING_PATIENTS,
    )
    result = await use_case.execute(
        created_by=current_doctor["sub"],
        room_name=request.room_name,
        email_allowed=request.email_allowed,
        expires_in_hours=expires_in_hours,
        phone_allowed=request.phone_allowed,
        max_uses=request.max_uses,
        device_binding=request.device_binding,
        country_allowlist=request.country_allowlist,
        browser_allowlist=request.browser_allowlist,
        waiting_room_enabled=request.waiting_room_enabled,
        max_patients=request.max_patients,
    )

    if result.is_err():
        error = result.error
        if error.code.startswith("INVALID_") or error.code == "MISSING_FIELDS":
            return failure_response(error, status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value


@router.post(
    "/validate",
    status_code=status.HTTP_200_OK,
    response_model=AccessGrant,
    response_model_by_alias=True,
    dependencies=[Depends(RateLimiter("invite_validate"))],
)
async def validate_invitation(
    request: ValidateInvitationRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: InvitationTokenService = Depends(get_token_service),
    credential_minter: ICredentialMinter = Depends(get_credential_minter),
    config=Depends(get_config),
):
    """
    Validate Invitation

    Runs every access check for an invite link and, when all pass, consumes
    the invitation and returns a patient video credential.
    With a waiting room the credential is for the waiting room until the
    doctor admits the patient.

    Raises:
        - 401 Unauthorized: invalid-token
        - 403 Forbidden: wrong-email, wrong-device, wrong-country, wrong-browser,
                         waiting-room-full
        - 404 Not Found: invalid-link
        - 409 Conflict: already-used
        - 410 Gone: expired
        - 429 Too Many Requests: RATE_LIMITED
        - 503 Service Unavailable: unknown
    """
    use_case = ValidateInvitationUseCase(
        uow,
        token_service,
        credential_minter,
        geo_policy=config.GEO_MISMATCH_POLICY,
        store_timeout=config.STORE_TIMEOUT_SECONDS,
    )
    result = await use_case.execute(
        request.token,
        fingerprint=request.device_fingerprint,
        geolocation=request.geolocation,
        claimed_email=request.user_email,
        claimed_phone=request.user_phone,
    )

    if result.is_err():
        error = result.error
        reason = getattr(error, "reason", DenyReason.unknown)
        return failure_response(
            error,
            DENY_STATUS_CODES.get(reason, status.HTTP_503_SERVICE_UNAVAILABLE),
            reason=reason.value,
            violations=list(getattr(error, "violations", ())) or None,
        )

    return result.value


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ListInvitationsResponse,
    response_model_by_alias=True,
)
async def list_invitations(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    List Invitations

    Returns the calling doctor's invitations, newest first, with access
    attempt and violation counts.

    Raises:
        - 400 Bad Request: INVALID_STATUS
        - 401 Unauthorized: Invalid or expired doctor token
    """
    use_case = ListInvitationsUseCase(uow)
    result = await use_case.execute(current_doctor["sub"], status=status_filter)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_STATUS":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value


@router.get(
    "/{invitation_id}/link",
    status_code=status.HTTP_200_OK,
    response_model=CreateInvitationResponse,
    response_model_by_alias=True,
)
async def get_invite_link(
    invitation_id: str,
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: InvitationTokenService = Depends(get_token_service),
    config=Depends(get_config),
):
    """
    Get Invite Link

    Re-issues the invite URL for an active invitation the doctor owns.

    Raises:
        - 400 Bad Request: Invalid invitation_id format
        - 401 Unauthorized: Invalid or expired doctor token
        - 404 Not Found: INVITATION_NOT_FOUND
        - 409 Conflict: INVITATION_NOT_ACTIVE
    """
    invitation_uuid = _parse_invitation_id(invitation_id)

    use_case = GetInviteLinkUseCase(uow, token_service, base_url=config.APP_BASE_URL)
    result = await use_case.execute(current_doctor["sub"], invitation_uuid)

    if result.is_err():
        error = result.error
        if error.code == "INVITATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        elif error.code == "INVITATION_NOT_ACTIVE":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value


@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_200_OK,
    response_model=RevokeInvitationResponse,
    response_model_by_alias=True,
)
async def revoke_invitation(
    invitation_id: str,
    current_doctor: dict = Depends(get_current_doctor),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Revoke Invitation

    Moves an active invitation the doctor owns to revoked. Every later
    validation of its link is refused.

    Raises:
        - 400 Bad Request: Invalid invitation_id format
        - 401 Unauthorized: Invalid or expired doctor token
        - 404 Not Found: INVITATION_NOT_FOUND
        - 409 Conflict: INVITATION_NOT_ACTIVE
    """
    invitation_uuid = _parse_invitation_id(invitation_id)

    use_case = RevokeInvitationUseCase(uow)
    result = await use_case.execute(current_doctor["sub"], invitation_uuid)

    if result.is_err():
        error = result.error
        if error.code == "INVITATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        elif error.code == "INVITATION_NOT_ACTIVE":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value


def _parse_invitation_id(invitation_id: str) -> UUID:
    try:
        return UUID(invitation_id)
    except ValueError:
        raise ClientError(
            Error("INVALID_INVITATION_ID", "Invalid invitation ID format"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
