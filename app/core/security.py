"""
Security Module
===============

Verification of Supabase-issued access tokens and the shared secret
used by the external scheduler.

Supabase signs access tokens with the project's JWT secret (HS256).
The ``sub`` claim is the auth user id and ``aud`` is ``authenticated``.
"""

import hmac
from typing import Any, Optional

from jose import JWTError, jwt

from app.config import settings


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Decode and validate a Supabase access token.

    Args:
        token: JWT token string from the ``Authorization`` header

    Returns:
        Decoded payload if valid, None otherwise
    """
    if not settings.SUPABASE_JWT_SECRET:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except JWTError:
        return None

    if not payload.get("sub"):
        return None
    return payload


def token_display_name(payload: dict[str, Any]) -> Optional[str]:
    """Best-effort display name from Supabase ``user_metadata``."""
    metadata = payload.get("user_metadata") or {}
    return metadata.get("full_name") or metadata.get("name")


def verify_shared_secret(authorization: Optional[str], secret: str) -> bool:
    """
    Constant-time check of an ``Authorization: Bearer <secret>`` header.

    An unset secret never matches.
    """
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization, f"Bearer {secret}")
