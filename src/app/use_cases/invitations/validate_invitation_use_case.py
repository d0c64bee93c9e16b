"""
Validate Invitation Use Case

Decides whether a presented invite token and device fingerprint may join the
invitation's video room, and on success consumes the invitation and mints a
patient session credential.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, List, Optional, Tuple, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from src.libs.result import Result, Return
from src.app.services.credential_minter import CredentialMintingError, ICredentialMinter
from src.app.services.invitation_tokens import (
    ExpiredInvitationToken,
    InvalidInvitationToken,
    InvitationTokenService,
)
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import (
    AuditAction,
    AuditEvent,
    DenyReason,
    GeoMismatchPolicy,
    Invitation,
    InvitationStatus,
    ParticipantRole,
    WaitingPatient,
    waiting_room_for,
)
from src.domain.fingerprint import DeviceFingerprint, Geolocation

from .dtos import AccessDenied, AccessGrant

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Terminal statuses and the reason a caller sees; the internal detail keeps
# revoked distinguishable in logs and audit.
_STATUS_DENIALS = {
    InvitationStatus.used: (DenyReason.already_used, "used"),
    InvitationStatus.revoked: (DenyReason.already_used, "revoked"),
    InvitationStatus.expired: (DenyReason.expired, "expired"),
}


@dataclass(frozen=True)
class Violation:
    reason: DenyReason
    detail: str
    enforced: bool = True


class ValidateInvitationUseCase:
    """
    Use case for validating an invitation link.

    Gates, evaluated in order:
    1. Token shape and signature -> invalid-token
    2. Token-embedded expiry -> expired (no store access)
    3. Record lookup -> invalid-link
    4. Status: used/revoked -> already-used, expired -> expired
    5. Store-side expiry -> expired, record lazily flipped to expired
    6. Claimed email/phone vs. bound identity -> wrong-email
    7. Pinned device fingerprint -> wrong-device
    8. Country/browser allowlists -> wrong-country / wrong-browser;
       drift from the pinned country follows the GeoMismatchPolicy
    9. Waiting room capacity, when enabled -> waiting-room-full
   10. Atomic consume (active -> used) -> already-used when the race is lost,
       wrong-device when a concurrent winner pinned another device

    With a waiting room the credential is for <room>-waiting until the
    doctor admits the patient. A device that is still waiting gets its place
    back without consuming another use.

    Gates 6-8 are evaluated together so every violation reaches the audit
    trail; the reported reason is the first enforced one.

    Infrastructure failures (store errors, timeouts, signer errors) are
    reported as unknown and never raised.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: InvitationTokenService,
        credential_minter: ICredentialMinter,
        geo_policy: GeoMismatchPolicy = GeoMismatchPolicy.log,
        store_timeout: float = 5.0,
    ):
        self.uow = uow
        self.token_service = token_service
        self.credential_minter = credential_minter
        self.geo_policy = GeoMismatchPolicy(geo_policy)
        self.store_timeout = store_timeout

    async def execute(
        self,
        token: str,
        fingerprint: Optional[DeviceFingerprint] = None,
        geolocation: Optional[Geolocation] = None,
        claimed_email: Optional[str] = None,
        claimed_phone: Optional[str] = None,
    ) -> Result[AccessGrant]:
        """
        Execute validate invitation use case.

        Args:
            token: Invite token from the link
            fingerprint: Device signals collected by the browser
            geolocation: IP-derived location collected by the browser
            claimed_email: Email the patient registered with, if known
            claimed_phone: Phone the patient registered with, if known

        Returns:
            Result with AccessGrant DTO, or AccessDenied error
        """
        fingerprint_hash = fingerprint.canonical_hash() if fingerprint else None

        try:
            invitation_id = self.token_service.verify(token)
        except ExpiredInvitationToken:
            return self._deny(None, DenyReason.expired, "token_expired", fingerprint_hash)
        except InvalidInvitationToken as exc:
            return self._deny(None, DenyReason.invalid_token, str(exc), fingerprint_hash)

        try:
            return await self._validate_record(
                invitation_id,
                fingerprint,
                fingerprint_hash,
                geolocation,
                claimed_email,
                claimed_phone,
            )
        except (SQLAlchemyError, TimeoutError, CredentialMintingError, OSError):
            logger.exception(
                "Invitation validation failed on infrastructure: invitation=%s",
                invitation_id,
            )
            return self._deny(
                invitation_id, DenyReason.unknown, "infrastructure_error", fingerprint_hash
            )

    async def _validate_record(
        self,
        invitation_id: UUID,
        fingerprint: Optional[DeviceFingerprint],
        fingerprint_hash: Optional[str],
        geolocation: Optional[Geolocation],
        claimed_email: Optional[str],
        claimed_phone: Optional[str],
    ) -> Result[AccessGrant]:
        async with self.uow:
            invitation = await self._bounded(self.uow.invitations.get_by_id(invitation_id))

            if invitation is None:
                await self._record_denial(
                    invitation_id, DenyReason.invalid_link, "not_found", fingerprint_hash
                )
                return self._deny(
                    invitation_id, DenyReason.invalid_link, "not_found", fingerprint_hash
                )

            if invitation.status in _STATUS_DENIALS:
                reason, detail = _STATUS_DENIALS[invitation.status]
                await self._record_denial(invitation_id, reason, detail, fingerprint_hash)
                return self._deny(invitation_id, reason, detail, fingerprint_hash)

            now = utcnow()
            if invitation.is_past_due(now):
                # Lazy expiry; a concurrent writer may already have moved it on
                await self._bounded(
                    self.uow.invitations.transition_status(
                        invitation_id, InvitationStatus.expired, now
                    )
                )
                await self._record_denial(
                    invitation_id, DenyReason.expired, "store_expired", fingerprint_hash
                )
                return self._deny(
                    invitation_id, DenyReason.expired, "store_expired", fingerprint_hash
                )

            violations = self._check_bindings(
                invitation,
                fingerprint,
                fingerprint_hash,
                geolocation,
                claimed_email,
                claimed_phone,
            )
            enforced = [v for v in violations if v.enforced]
            advisory = [v for v in violations if not v.enforced]

            if enforced:
                reason = enforced[0].reason
                await self._record_denial(
                    invitation_id,
                    reason,
                    "binding_violation",
                    fingerprint_hash,
                    violations=violations,
                )
                return self._deny(
                    invitation_id,
                    reason,
                    "binding_violation",
                    fingerprint_hash,
                    violations=violations,
                )

            country_code = geolocation.normalized_country_code if geolocation else None

            # A device still waiting from an earlier validation keeps its place
            waiting_entry = None
            if invitation.waiting_room_enabled and fingerprint_hash:
                waiting_entry = await self._bounded(
                    self.uow.waiting_patients.find_waiting(invitation_id, fingerprint_hash)
                )
            rejoined = waiting_entry is not None

            if not rejoined:
                if invitation.waiting_room_enabled:
                    waiting = await self._bounded(
                        self.uow.waiting_patients.count_waiting(invitation_id)
                    )
                    if waiting >= invitation.max_patients:
                        detail = f"{waiting} of {invitation.max_patients} waiting"
                        await self._record_denial(
                            invitation_id, DenyReason.waiting_room_full, detail, fingerprint_hash
                        )
                        return self._deny(
                            invitation_id, DenyReason.waiting_room_full, detail, fingerprint_hash
                        )

                consumed = await self._bounded(
                    self.uow.invitations.consume(
                        invitation_id,
                        now,
                        fingerprint_hash,
                        invitation.device_binding,
                        country_code,
                    )
                )
                if not consumed:
                    reason, detail = await self._lost_race(invitation_id, fingerprint_hash)
                    await self._record_denial(invitation_id, reason, detail, fingerprint_hash)
                    return self._deny(invitation_id, reason, detail, fingerprint_hash)

                if invitation.waiting_room_enabled:
                    waiting_entry = await self._bounded(
                        self.uow.waiting_patients.create(
                            WaitingPatient(
                                invitation_id=invitation_id,
                                room_name=invitation.room_name,
                                doctor_id=invitation.created_by,
                                patient_email=invitation.email_allowed,
                                fingerprint_hash=fingerprint_hash,
                                joined_at=now,
                            )
                        )
                    )

            if waiting_entry is not None:
                identity = f"patient_{invitation.id}_{waiting_entry.id}"
                target_room = waiting_room_for(invitation.room_name)
            else:
                identity = f"patient_{invitation.id}"
                target_room = invitation.room_name

            # Minted before commit so a signer failure rolls the consumption back
            live_kit_token = self.credential_minter.mint(
                identity=identity,
                room_name=target_room,
                role=ParticipantRole.patient,
                name=invitation.email_allowed,
                metadata={
                    "invitationId": str(invitation.id),
                    "roomName": invitation.room_name,
                    "joinedVia": "waiting_room" if waiting_entry is not None else "invitation",
                },
            )

            audit = AuditEvent(
                invitation_id=invitation_id,
                action=AuditAction.access_granted.value,
                event_metadata={
                    "fingerprint_hash": fingerprint_hash,
                    "country_code": country_code,
                    "browser": fingerprint.browser if fingerprint else None,
                    "advisory_violations": [v.reason.value for v in advisory],
                    "waiting_patient_id": str(waiting_entry.id) if waiting_entry else None,
                    "rejoined": rejoined,
                },
            )
            await self._bounded(self.uow.audit_events.create(audit))
            await self._bounded(self.uow.commit())

            grant = AccessGrant(
                live_kit_token=live_kit_token,
                room_name=target_room,
                invitation_id=str(invitation.id),
                waiting_room_enabled=invitation.waiting_room_enabled,
                waiting_room_token=waiting_entry is not None,
                waiting_patient_id=str(waiting_entry.id) if waiting_entry else None,
            )

        if advisory:
            logger.warning(
                "Invitation access granted with advisory violations: invitation=%s fingerprint=%s violations=%s",
                invitation_id,
                fingerprint_hash,
                [f"{v.reason.value}:{v.detail}" for v in advisory],
            )
        logger.info(
            "Invitation access granted: invitation=%s room=%s fingerprint=%s",
            invitation_id,
            grant.room_name,
            fingerprint_hash,
        )

        return Return.ok(grant)

    def _check_bindings(
        self,
        invitation: Invitation,
        fingerprint: Optional[DeviceFingerprint],
        fingerprint_hash: Optional[str],
        geolocation: Optional[Geolocation],
        claimed_email: Optional[str],
        claimed_phone: Optional[str],
    ) -> List[Violation]:
        violations: List[Violation] = []

        if claimed_email or claimed_phone:
            if not (
                invitation.matches_email(claimed_email)
                or invitation.matches_phone(claimed_phone)
            ):
                violations.append(
                    Violation(DenyReason.wrong_email, "claimed identity does not match")
                )

        if invitation.bound_fingerprint and fingerprint_hash != invitation.bound_fingerprint:
            violations.append(
                Violation(DenyReason.wrong_device, "fingerprint differs from pinned device")
            )

        country_code = geolocation.normalized_country_code if geolocation else None

        if invitation.country_allowlist:
            allowed = {code.upper() for code in invitation.country_allowlist}
            if country_code not in allowed:
                violations.append(
                    Violation(
                        DenyReason.wrong_country,
                        f"country {country_code or 'unknown'} not in allowlist",
                    )
                )

        if invitation.browser_allowlist:
            browser = fingerprint.browser if fingerprint else "Unknown"
            allowed = {name.lower() for name in invitation.browser_allowlist}
            if browser.lower() not in allowed:
                violations.append(
                    Violation(DenyReason.wrong_browser, f"browser {browser} not in allowlist")
                )

        if (
            invitation.bound_country_code
            and country_code
            and country_code != invitation.bound_country_code
        ):
            violations.append(
                Violation(
                    DenyReason.wrong_country,
                    f"country {country_code} differs from pinned {invitation.bound_country_code}",
                    enforced=self.geo_policy == GeoMismatchPolicy.deny,
                )
            )

        return violations

    async def _lost_race(
        self, invitation_id: UUID, fingerprint_hash: Optional[str]
    ) -> Tuple[DenyReason, str]:
        """Tell a device pinned by a concurrent winner apart from spent uses"""
        current = await self._bounded(self.uow.invitations.get_by_id(invitation_id))
        if (
            current is not None
            and current.status == InvitationStatus.active
            and current.device_binding
            and current.bound_fingerprint
            and current.bound_fingerprint != fingerprint_hash
        ):
            return DenyReason.wrong_device, "device_pinned_concurrently"
        return DenyReason.already_used, "lost_race"

    async def _record_denial(
        self,
        invitation_id: UUID,
        reason: DenyReason,
        detail: str,
        fingerprint_hash: Optional[str],
        violations: Optional[List[Violation]] = None,
    ) -> None:
        audit = AuditEvent(
            invitation_id=invitation_id,
            action=AuditAction.access_denied.value,
            event_metadata={
                "reason": reason.value,
                "detail": detail,
                "fingerprint_hash": fingerprint_hash,
                "violations": [
                    {"type": v.reason.value, "detail": v.detail, "enforced": v.enforced}
                    for v in violations or []
                ],
            },
        )
        await self._bounded(self.uow.audit_events.create(audit))
        await self._bounded(self.uow.commit())

    def _deny(
        self,
        invitation_id: Optional[UUID],
        reason: DenyReason,
        detail: str,
        fingerprint_hash: Optional[str],
        violations: Optional[List[Violation]] = None,
    ) -> Result[AccessGrant]:
        log = logger.error if reason == DenyReason.unknown else logger.warning
        log(
            "Invitation access denied: invitation=%s reason=%s detail=%s fingerprint=%s",
            invitation_id,
            reason.value,
            detail,
            fingerprint_hash,
        )
        return Return.err(
            AccessDenied(
                code=reason.value,
                message=f"Access denied: {reason.value}",
                reason=reason,
                violations=tuple(v.reason.value for v in violations or []),
                detail=detail,
            )
        )

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.store_timeout)
