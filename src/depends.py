"""
Request dependencies.

Everything here reads the clients built once in create_app from
request.app.state; nothing is constructed at import time.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.jwt import verify_jwt
from src.app.services.credential_minter import ICredentialMinter
from src.app.services.invitation_tokens import InvitationTokenService

security = HTTPBearer()


async def get_unit_of_work(request: Request):
    async with request.app.state.session_factory() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_config(request: Request):
    return request.app.state.config


def get_token_service(request: Request) -> InvitationTokenService:
    return request.app.state.token_service


def get_credential_minter(request: Request) -> ICredentialMinter:
    return request.app.state.credential_minter


async def get_current_doctor(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to extract and verify the doctor's JWT from the Authorization header.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        Decoded JWT payload containing sub (doctor id), email, name

    Raises:
        HTTPException: 401 if token is invalid or expired
    """
    token = credentials.credentials
    payload = verify_jwt(token, request.app.state.config.JWT_SECRET)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return payload
