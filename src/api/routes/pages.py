"""
Patient-facing page endpoints.

The edge gate middleware screens /invite/<token> and /room/<id>/patient before
these handlers run; the handlers only describe what the client should render.
"""

from typing import Optional

from fastapi import APIRouter, Request

from src.domain.deny_reasons import describe, parse_reason

router = APIRouter(tags=["Pages"])


@router.get("/invite/{token}")
async def invite_landing(token: str, request: Request):
    """Invite landing payload; the client posts the token with its fingerprint"""
    return {
        "token": token,
        "validateUrl": f"{request.app.state.config.API_PREFIX.rstrip('/')}/invite/validate",
    }


@router.get("/room/{room_name}/patient")
async def patient_room_landing(room_name: str):
    return {"roomName": room_name, "participantType": "patient"}


@router.get("/access-denied")
async def access_denied(reason: Optional[str] = None):
    """Denial message for a reason code; unknown codes get the generic message"""
    title, message = describe(reason)
    parsed = parse_reason(reason)
    return {
        "reason": parsed.value if parsed else None,
        "title": title,
        "message": message,
    }
