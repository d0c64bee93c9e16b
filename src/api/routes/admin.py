"""
Admin API Routes - Invitation Maintenance Endpoints

These endpoints are for schedulers and internal service integrations.
Authentication is via Admin API Key, not doctor JWTs.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from src.api.error import ClientError, ServerError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.invitations import (
    DeleteInvitationResponse,
    DeleteInvitationUseCase,
    ExpireInvitationsResponse,
    ExpireInvitationsUseCase,
    PurgeInvitationsResponse,
    PurgeInvitationsUseCase,
)
from src.depends import get_config, get_unit_of_work

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/invitations/expire",
    status_code=status.HTTP_200_OK,
    response_model=ExpireInvitationsResponse,
    response_model_by_alias=True,
    dependencies=[Depends(verify_admin_api_key)],
)
async def expire_invitations(uow: UnitOfWork = Depends(get_unit_of_work)):
    """
    Expire Invitations

    Scheduler endpoint that flips every active, past-due invitation to expired.

    Requires: X-Admin-API-Key header

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
        - 500 Internal Server Error: Server error
    """
    use_case = ExpireInvitationsUseCase(uow)
    result = await use_case.execute()

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.delete(
    "/invitations/{invitation_id}",
    status_code=status.HTTP_200_OK,
    response_model=DeleteInvitationResponse,
    response_model_by_alias=True,
    dependencies=[Depends(verify_admin_api_key)],
)
async def delete_invitation(
    invitation_id: UUID,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Delete Invitation

    Deletion hook: removes one invitation record. Its audit events are kept.

    Requires: X-Admin-API-Key header

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
        - 404 Not Found: INVITATION_NOT_FOUND
        - 500 Internal Server Error: Server error
    """
    use_case = DeleteInvitationUseCase(uow)
    result = await use_case.execute(invitation_id)

    if result.is_err():
        error = result.error
        if error.code == "INVITATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.post(
    "/invitations/purge",
    status_code=status.HTTP_200_OK,
    response_model=PurgeInvitationsResponse,
    response_model_by_alias=True,
    dependencies=[Depends(verify_admin_api_key)],
)
async def purge_invitations(
    older_than_days: Optional[int] = Query(None, alias="olderThanDays"),
    uow: UnitOfWork = Depends(get_unit_of_work),
    config=Depends(get_config),
):
    """
    Purge Invitations

    Retention sweep: deletes used, expired and revoked invitations created
    before the retention window (RETENTION_DAYS unless overridden).

    Requires: X-Admin-API-Key header

    Raises:
        - 400 Bad Request: INVALID_RETENTION
        - 401 Unauthorized: Missing or invalid admin API key
        - 500 Internal Server Error: Server error
    """
    if older_than_days is None:
        older_than_days = config.RETENTION_DAYS

    use_case = PurgeInvitationsUseCase(uow)
    result = await use_case.execute(older_than_days)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_RETENTION":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
