from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import JWTError, jwt


def generate_jwt(
    doctor_id: str,
    email: str,
    secret: str,
    name: Optional[str] = None,
    expires_delta: timedelta = timedelta(hours=8),
) -> str:
    """
    Generate a doctor bearer token

    In production these come from the identity provider; the service only
    needs to verify them. Used by local tooling and tests.

    Args:
        doctor_id: Doctor's identity provider id
        email: Doctor email
        secret: Shared signing secret
        name: Display name
        expires_delta: Token lifetime

    Returns:
        JWT token string (HS256)
    """
    now = datetime.now(UTC)
    payload = {
        "sub": doctor_id,
        "email": email,
        "name": name or email,
        "role": "doctor",
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def verify_jwt(token: str, secret: str) -> Optional[dict]:
    """
    Verify and decode a doctor bearer token

    Args:
        token: JWT token string
        secret: Shared signing secret

    Returns:
        Decoded payload dict or None if invalid, expired or not a doctor token
    """
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"])
    except JWTError:
        return None

    if payload.get("role") != "doctor" or not payload.get("sub"):
        return None
    return payload
