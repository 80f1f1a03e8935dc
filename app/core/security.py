"""
Security utilities for authentication

JWT verification for the socket handshake and the HTTP surface. Token
issuance lives with the identity service; create_access_token is kept for
local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.core.config import settings


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token

    Args:
        user_id: User ID to embed in the sub claim
        expires_delta: Optional custom expiration time (may be negative)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate JWT token

    Signature and expiry are both checked; a token without exp is refused.

    Returns:
        Decoded payload if valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require_exp": True},
        )
    except JWTError:
        return None


def verify_token(token: str) -> Optional[int]:
    """
    Verify token and extract user ID

    Returns:
        User ID (sub claim) if valid, None otherwise
    """
    if not token:
        return None

    payload = decode_token(token)
    if payload is None:
        return None

    # refresh tokens must not open sessions
    if payload.get("type", "access") != "access":
        return None

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
