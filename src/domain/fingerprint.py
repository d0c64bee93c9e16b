"""
Device and location fingerprint value objects.

The browser collects these signals before calling validate; the server never
trusts a client-supplied hash and recomputes it from the canonical fields.
"""

import hashlib
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

FINGERPRINT_FIELDS = (
    "user_agent",
    "language",
    "platform",
    "screen_resolution",
    "timezone",
    "cookie_enabled",
    "do_not_track",
)


class DeviceFingerprint(BaseModel):
    """Client-observable device signals, in the browser's camelCase shape"""

    model_config = ConfigDict(populate_by_name=True)

    user_agent: str = Field(..., alias="userAgent", max_length=1000)
    language: str = Field("", max_length=100)
    platform: str = Field("", max_length=100)
    screen_resolution: str = Field("", alias="screenResolution", max_length=50)
    timezone: str = Field("", max_length=100)
    cookie_enabled: bool = Field(True, alias="cookieEnabled")
    do_not_track: Optional[str] = Field(None, alias="doNotTrack", max_length=20)
    # Accepted for compatibility with older clients; ignored by the server
    hash: Optional[str] = Field(None, max_length=128)

    def canonical_string(self) -> str:
        parts = []
        for name in FINGERPRINT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool):
                parts.append("true" if value else "false")
            elif value is None:
                parts.append("")
            else:
                parts.append(str(value).strip())
        return "|".join(parts)

    def canonical_hash(self) -> str:
        """SHA-256 hex digest over the canonical field set"""
        return hashlib.sha256(self.canonical_string().encode("utf-8")).hexdigest()

    @property
    def browser(self) -> str:
        return detect_browser(self.user_agent)


class Geolocation(BaseModel):
    """Coarse location derived from the requester's IP by the client"""

    model_config = ConfigDict(populate_by_name=True)

    ip: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = Field(None, alias="countryCode", max_length=8)
    region: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None
    isp: Optional[str] = None

    @property
    def normalized_country_code(self) -> Optional[str]:
        if not self.country_code:
            return None
        return self.country_code.strip().upper() or None


# Order matters: Edge and Opera user agents also contain "Chrome" and "Safari"
_BROWSER_PATTERNS = (
    ("Edge", re.compile(r"\bEdg(e|A|iOS)?/")),
    ("Opera", re.compile(r"\b(OPR|Opera)/")),
    ("Firefox", re.compile(r"\b(Firefox|FxiOS)/")),
    ("Chrome", re.compile(r"\b(Chrome|CriOS|Chromium)/")),
    ("Safari", re.compile(r"\bSafari/")),
)


def detect_browser(user_agent: Optional[str]) -> str:
    """Browser family name from a user agent string, or "Unknown" """
    if not user_agent:
        return "Unknown"
    for name, pattern in _BROWSER_PATTERNS:
        if pattern.search(user_agent):
            return name
    return "Unknown"
