from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.livekit_credential_minter import LiveKitCredentialMinter
from src.app.services.invitation_tokens import InvitationTokenService
from .error import ClientError, RateLimitExceeded, ServerError, failure_response
from .middleware import EdgeGateMiddleware, build_connect_sources
import logging

logger = logging.getLogger(__name__)


async def handle_client_error(request: Request, exc: ClientError):
    error_dict = {"code": exc.base_error.code, "message": exc.base_error.message}
    logger.warning(f"Client error: {error_dict}")
    return JSONResponse(status_code=exc.status_code, content={"error": error_dict})


async def handle_server_error(request: Request, exc: ServerError):
    error_dict = {"code": exc.base_error.code, "message": "Internal server error"}
    logger.error(f"Server error: {exc.base_error.code}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": error_dict}
    )


async def handle_rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    return failure_response(
        exc.base_error,
        status.HTTP_429_TOO_MANY_REQUESTS,
        headers={
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
        },
        retryAfter=exc.retry_after,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = app.state.engine
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database schema ready.")
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed.")


def create_app(ApplicationConfig) -> FastAPI:
    app = FastAPI(title="Telehealth Invitations API", version="0.1.0", lifespan=lifespan)

    # Clients are built once here; dependencies read them from request.app.state
    engine = create_async_engine(ApplicationConfig.DB_URI)
    app.state.config = ApplicationConfig
    app.state.engine = engine
    app.state.session_factory = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    app.state.token_service = InvitationTokenService(ApplicationConfig.INVITE_TOKEN_SECRET)
    app.state.credential_minter = LiveKitCredentialMinter(
        api_key=ApplicationConfig.LIVEKIT_API_KEY,
        api_secret=ApplicationConfig.LIVEKIT_API_SECRET,
        patient_ttl=timedelta(minutes=ApplicationConfig.PATIENT_TOKEN_TTL_MINUTES),
        doctor_ttl=timedelta(minutes=ApplicationConfig.DOCTOR_TOKEN_TTL_MINUTES),
    )

    app.add_middleware(
        EdgeGateMiddleware,
        connect_sources=build_connect_sources(
            ApplicationConfig.LIVEKIT_URL, ApplicationConfig.AI_SUMMARY_URL
        ),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import admin, doctor, health_check, invitation, pages, waiting_room

    api_prefix = ApplicationConfig.API_PREFIX.rstrip("/")

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(invitation.router, prefix=api_prefix, tags=["Invitations"])
    app.include_router(doctor.router, prefix=api_prefix, tags=["Doctor"])
    app.include_router(waiting_room.router, prefix=api_prefix, tags=["Waiting Room"])
    app.include_router(pages.router, tags=["Pages"])
    app.include_router(admin.router, tags=["Admin"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit_exceeded)

    return app
