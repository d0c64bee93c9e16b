"""
Create Invitation Use Case

Handles a doctor issuing a time-boxed, identity-bound invite link for a room.
"""

import logging
import re
from datetime import timedelta
from typing import Iterable, List, Optional

from src.libs.result import Error, Result, Return
from src.app.services.invitation_tokens import InvitationTokenService
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import AuditAction, AuditEvent, Invitation, InvitationStatus
from src.domain.entities.invitation import normalize_email

from .dtos import CreateInvitationResponse

logger = logging.getLogger(__name__)

ROOM_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,50}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9 ()\-.]{6,32}$")
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")


def _clean_list(values: Optional[Iterable[str]], upper: bool = False) -> List[str]:
    cleaned = []
    for value in values or []:
        value = (value or "").strip()
        if upper:
            value = value.upper()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class CreateInvitationUseCase:
    """
    Use case for issuing patient invitations.

    Business Rules:
    - room_name and email_allowed are required and non-empty after trimming
    - expires_in_hours must be an integer between 1 and max_hours (no clamping)
    - Invitation starts active with use_count 0
    - Duplicates for the same room and email are allowed
    - Token embeds only the invitation id and expiry
    - Creates audit event for compliance tracking
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: InvitationTokenService,
        base_url: str,
        max_hours: int = 168,
        max_uses_limit: int = 10,
        max_patients_limit: int = 50,
    ):
        self.uow = uow
        self.token_service = token_service
        self.base_url = base_url.rstrip("/")
        self.max_hours = max_hours
        self.max_uses_limit = max_uses_limit
        self.max_patients_limit = max_patients_limit

    async def execute(
        self,
        created_by: str,
        room_name: str,
        email_allowed: str,
        expires_in_hours: int = 24,
        phone_allowed: Optional[str] = None,
        max_uses: int = 1,
        device_binding: bool = True,
        country_allowlist: Optional[Iterable[str]] = None,
        browser_allowlist: Optional[Iterable[str]] = None,
        waiting_room_enabled: bool = False,
        max_patients: int = 10,
    ) -> Result[CreateInvitationResponse]:
        """
        Execute create invitation use case.

        Args:
            created_by: Issuing doctor's id
            room_name: Target video room
            email_allowed: Patient email the invite is bound to
            expires_in_hours: Lifetime of the invite (1..max_hours)
            phone_allowed: Optional secondary identity
            max_uses: Number of successful validations allowed
            device_binding: Pin the first device that uses the invite
            country_allowlist: ISO country codes allowed (empty = any)
            browser_allowlist: Browser families allowed (empty = any)
            waiting_room_enabled: Hold patients in a waiting room until admitted
            max_patients: Waiting room capacity (1..max_patients_limit)

        Returns:
            Result with CreateInvitationResponse DTO, or Error
        """
        room_name = (room_name or "").strip()
        email = normalize_email(email_allowed)
        phone = (phone_allowed or "").strip() or None
        created_by = (created_by or "").strip()

        if not room_name or not email or not created_by:
            return Return.err(
                Error("MISSING_FIELDS", "Room name and allowed email are required")
            )

        if not ROOM_NAME_PATTERN.match(room_name):
            return Return.err(
                Error(
                    "INVALID_ROOM_NAME",
                    "Room name must be 3-50 characters: letters, digits, hyphens, underscores",
                )
            )

        if len(email) > 254 or not EMAIL_PATTERN.match(email):
            return Return.err(Error("INVALID_EMAIL", "Invalid email address"))

        if phone is not None and not PHONE_PATTERN.match(phone):
            return Return.err(Error("INVALID_PHONE", "Invalid phone number"))

        if (
            isinstance(expires_in_hours, bool)
            or not isinstance(expires_in_hours, int)
            or not 1 <= expires_in_hours <= self.max_hours
        ):
            return Return.err(
                Error(
                    "INVALID_EXPIRY",
                    f"expiresInHours must be a whole number between 1 and {self.max_hours}",
                )
            )

        if (
            isinstance(max_uses, bool)
            or not isinstance(max_uses, int)
            or not 1 <= max_uses <= self.max_uses_limit
        ):
            return Return.err(
                Error(
                    "INVALID_MAX_USES",
                    f"maxUses must be between 1 and {self.max_uses_limit}",
                )
            )

        if (
            isinstance(max_patients, bool)
            or not isinstance(max_patients, int)
            or not 1 <= max_patients <= self.max_patients_limit
        ):
            return Return.err(
                Error(
                    "INVALID_MAX_PATIENTS",
                    f"maxPatients must be between 1 and {self.max_patients_limit}",
                )
            )

        countries = _clean_list(country_allowlist, upper=True)
        if any(not COUNTRY_CODE_PATTERN.match(code) for code in countries):
            return Return.err(
                Error("INVALID_COUNTRY", "Country allowlist must hold ISO 3166 alpha-2 codes")
            )
        browsers = _clean_list(browser_allowlist)

        async with self.uow:
            now = utcnow()
            invitation = Invitation(
                room_name=room_name,
                email_allowed=email,
                phone_allowed=phone,
                status=InvitationStatus.active,
                max_uses=max_uses,
                created_by=created_by,
                device_binding=device_binding,
                country_allowlist=countries,
                browser_allowlist=browsers,
                waiting_room_enabled=waiting_room_enabled,
                max_patients=max_patients,
                created_at=now,
                expires_at=now + timedelta(hours=expires_in_hours),
            )

            await self.uow.invitations.create(invitation)

            audit = AuditEvent(
                invitation_id=invitation.id,
                actor=created_by,
                action=AuditAction.invitation_created.value,
                event_metadata={
                    "room_name": room_name,
                    "expires_in_hours": expires_in_hours,
                    "max_uses": max_uses,
                    "device_binding": device_binding,
                    "country_allowlist": countries,
                    "browser_allowlist": browsers,
                    "waiting_room_enabled": waiting_room_enabled,
                    "max_patients": max_patients,
                },
            )
            await self.uow.audit_events.create(audit)

            # Commit transaction
            await self.uow.commit()

        token = self.token_service.issue(invitation.id, invitation.expires_at)

        logger.info(
            "Invitation created: id=%s room=%s by=%s expires_at=%s",
            invitation.id,
            room_name,
            created_by,
            invitation.expires_at.isoformat(),
        )

        return Return.ok(
            CreateInvitationResponse(
                invitation_id=str(invitation.id),
                token=token,
                invite_url=f"{self.base_url}/invite/{token}",
                expires_at=invitation.expires_at.isoformat() + "Z",
            )
        )
