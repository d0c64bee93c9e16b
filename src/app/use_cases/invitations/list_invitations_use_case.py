"""
List Invitations Use Case

Handles a doctor viewing the invitations they issued.
"""

from typing import Optional

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import InvitationStatus

from .dtos import InvitationListItem, ListInvitationsResponse


def _iso(value) -> Optional[str]:
    return value.isoformat() + "Z" if value else None


class ListInvitationsUseCase:
    """
    Use case for listing a doctor's own invitations.

    Business Rules:
    - Only invitations created by the requesting doctor are returned
    - Newest first
    - Active invitations past their expiry are reported as expired
      (the record itself is flipped lazily by validation or the janitor)
    - Each row carries access attempt and violation counts from the audit trail
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, doctor_id: str, status: Optional[str] = None
    ) -> Result[ListInvitationsResponse]:
        """
        Execute list invitations use case.

        Args:
            doctor_id: Doctor whose invitations are listed
            status: Optional status filter (active/used/expired/revoked)

        Returns:
            Result with ListInvitationsResponse DTO, or Error
        """
        status_filter = None
        if status:
            try:
                status_filter = InvitationStatus(status)
            except ValueError:
                return Return.err(
                    Error(
                        "INVALID_STATUS",
                        f"Invalid status: {status}. Must be one of: active, used, expired, revoked",
                    )
                )

        async with self.uow:
            invitations = await self.uow.invitations.list_by_creator(
                doctor_id, status_filter
            )
            counts = await self.uow.audit_events.count_access_events(
                [invitation.id for invitation in invitations]
            )

            # Loaded rows are expired when the unit of work rolls back on exit
            now = utcnow()
            items = []
            for invitation in invitations:
                effective_status = invitation.status
                if effective_status == InvitationStatus.active and invitation.is_past_due(now):
                    effective_status = InvitationStatus.expired

                attempts, violations = counts.get(invitation.id, (0, 0))
                items.append(
                    InvitationListItem(
                        id=str(invitation.id),
                        room_name=invitation.room_name,
                        email=invitation.email_allowed,
                        status=effective_status.value,
                        created_at=_iso(invitation.created_at),
                        expires_at=_iso(invitation.expires_at),
                        used_at=_iso(invitation.used_at),
                        use_count=invitation.use_count,
                        max_uses=invitation.max_uses,
                        waiting_room_enabled=invitation.waiting_room_enabled,
                        access_attempts=attempts,
                        violations=violations,
                    )
                )

        return Return.ok(ListInvitationsResponse(invitations=items))
