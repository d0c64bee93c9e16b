"""
Edge Gate

Cheap request-level checks in front of the patient-facing pages, before any
handler runs. Stateless: never consults the invitation store and never checks
token signatures.

- /invite/<token>: empty token -> invalid-link, malformed token -> invalid-token
- /room/<id>/patient: must be reached from an invite page, else direct-access
- security headers on every page response it passes through

The referrer check on the room page is a spoofable heuristic that only keeps
casual users on the intended flow. The validator is the security boundary.
"""

import logging
from typing import Iterable, List, Optional
from urllib.parse import quote

from fastapi.responses import RedirectResponse

from src.app.services.invitation_tokens import has_jwt_shape
from src.domain.entities import DenyReason

logger = logging.getLogger(__name__)

INVITE_PREFIX = "/invite"
ROOM_PREFIX = "/room/"
PATIENT_SUFFIX = "/patient"
ACCESS_DENIED_PATH = "/access-denied"


def build_connect_sources(*urls: Optional[str]) -> List[str]:
    """Origins the pages may connect to, with https forms of wss endpoints"""
    sources: List[str] = []
    for url in urls:
        if not url:
            continue
        url = url.rstrip("/")
        candidates = [url]
        if url.startswith("wss://"):
            candidates.append("https://" + url[len("wss://"):])
        for candidate in candidates:
            if candidate not in sources:
                sources.append(candidate)
    return sources


def build_security_headers(connect_sources: Iterable[str]) -> List[tuple]:
    connect_src = " ".join(["'self'", *connect_sources])
    csp = "; ".join(
        [
            "default-src 'self'",
            "script-src 'self'",
            "style-src 'self' 'unsafe-inline'",
            "img-src 'self' data: blob:",
            "media-src 'self' blob:",
            f"connect-src {connect_src}",
            "frame-ancestors 'none'",
        ]
    )
    headers = {
        "x-frame-options": "DENY",
        "x-content-type-options": "nosniff",
        "referrer-policy": "strict-origin-when-cross-origin",
        "permissions-policy": "camera=(self), microphone=(self), geolocation=()",
        "content-security-policy": csp,
    }
    return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()]


class EdgeGateMiddleware:
    """Pure ASGI middleware; add with app.add_middleware(EdgeGateMiddleware, ...)"""

    def __init__(self, app, connect_sources: Iterable[str] = ()):
        self.app = app
        self.security_headers = build_security_headers(connect_sources)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")

        if path == INVITE_PREFIX or path.startswith(INVITE_PREFIX + "/"):
            token = path[len(INVITE_PREFIX):].strip("/")
            reason = None
            if not token:
                reason = DenyReason.invalid_link
            elif not has_jwt_shape(token):
                reason = DenyReason.invalid_token
            if reason is not None:
                await self._redirect(scope, receive, send, reason)
                return
            await self._pass_with_headers(scope, receive, send)
            return

        if path.startswith(ROOM_PREFIX) and path.rstrip("/").endswith(PATIENT_SUFFIX):
            referrer = self._header(scope, b"referer")
            if not referrer or "/invite/" not in referrer:
                await self._redirect(scope, receive, send, DenyReason.direct_access)
                return
            await self._pass_with_headers(scope, receive, send)
            return

        if path == ACCESS_DENIED_PATH:
            await self._pass_with_headers(scope, receive, send)
            return

        await self.app(scope, receive, send)

    async def _redirect(self, scope, receive, send, reason: DenyReason):
        logger.info("Edge gate redirect: path=%s reason=%s", scope.get("path"), reason.value)
        response = RedirectResponse(
            url=f"{ACCESS_DENIED_PATH}?reason={quote(reason.value)}",
            status_code=307,
        )
        await response(scope, receive, send)

    async def _pass_with_headers(self, scope, receive, send):
        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                existing = {name.lower() for name, _ in message.get("headers", [])}
                headers = list(message.get("headers", []))
                headers.extend(h for h in self.security_headers if h[0] not in existing)
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_headers)

    @staticmethod
    def _header(scope, name: bytes) -> Optional[str]:
        for key, value in scope.get("headers", []):
            if key.lower() == name:
                return value.decode("latin-1")
        return None
