"""
User-facing explanations for every DenyReason.

The table is keyed by the enum itself so a missing entry fails at import
time rather than at the moment a patient is turned away.
"""

from typing import Dict, Optional, Tuple

from src.domain.entities.enums import DenyReason

GENERIC_TITLE = "Access Denied"
GENERIC_MESSAGE = (
    "You do not have permission to access this consultation. "
    "Please contact your doctor for a new invitation."
)

DENY_MESSAGES: Dict[DenyReason, Tuple[str, str]] = {
    DenyReason.invalid_link: (
        "Invalid Invitation",
        "The invitation link is invalid or malformed.",
    ),
    DenyReason.invalid_token: (
        "Invalid Invitation",
        "The invitation token is invalid or corrupted.",
    ),
    DenyReason.direct_access: (
        "Direct Access Not Allowed",
        "Direct access to patient rooms is not allowed. "
        "Please use the invitation link provided by your doctor.",
    ),
    DenyReason.expired: (
        "Invitation Expired",
        "This invitation has expired. Please contact your doctor for a new invitation.",
    ),
    DenyReason.already_used: (
        "Invitation Already Used",
        "This invitation has already been used. Each invitation can only be used once.",
    ),
    DenyReason.wrong_email: (
        "Email Mismatch",
        "This invitation is not valid for your email address.",
    ),
    DenyReason.wrong_country: (
        "Location Not Allowed",
        "This invitation is not valid for your current location.",
    ),
    DenyReason.wrong_browser: (
        "Browser Not Allowed",
        "This invitation requires a different web browser.",
    ),
    DenyReason.wrong_device: (
        "Device Not Recognized",
        "This invitation is bound to a different device.",
    ),
    DenyReason.waiting_room_full: (
        "Waiting Room Full",
        "The waiting room for this consultation is full. Please try again shortly.",
    ),
    DenyReason.unknown: (GENERIC_TITLE, GENERIC_MESSAGE),
}

_missing = set(DenyReason) - set(DENY_MESSAGES)
if _missing:
    raise RuntimeError(f"No denial message for: {sorted(r.value for r in _missing)}")


def parse_reason(raw: Optional[str]) -> Optional[DenyReason]:
    """Return the DenyReason for a query value, or None when unrecognized"""
    if not raw:
        return None
    try:
        return DenyReason(raw)
    except ValueError:
        return None


def describe(raw: Optional[str]) -> Tuple[str, str]:
    """(title, message) for a raw reason string; unknown values get the generic text"""
    reason = parse_reason(raw)
    if reason is None:
        return GENERIC_TITLE, GENERIC_MESSAGE
    return DENY_MESSAGES[reason]
