"""
Common Dependencies
===================

Shared dependencies used across the application.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Annotated, Optional
import uuid

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import AuthenticationError, ErrorCodes
from app.core.security import decode_access_token, token_display_name, verify_shared_secret
from app.db.session import get_db
from app.models.subscription import PremiumSubscription
from app.models.user import User
from app.services.cache import CacheKeys, get_redis

logger = logging.getLogger(__name__)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Security scheme for Supabase bearer tokens
security = HTTPBearer(auto_error=False)

# Development test user ID (consistent UUID for testing)
DEV_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEV_USER_EMAIL = "dev@test.local"

# Redis cache TTL for authenticated user lookup (seconds)
_USER_AUTH_CACHE_TTL = 300  # 5 minutes


# =============================================================================
# User Auth Cache Helpers
# =============================================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: str | None) -> datetime | None:
    """Parse an ISO datetime string, returning None on missing input."""
    if not value:
        return None
    return datetime.fromisoformat(value)


def _serialize_user_for_cache(user: User) -> dict:
    """Serialize a User (+ eager-loaded premium subscription) to a JSON-safe dict."""
    data: dict = {
        "user_id": str(user.user_id),
        "email": user.email,
        "full_name": user.full_name,
        "avatar_url": user.avatar_url,
        "timezone": user.timezone,
        "notification_preferences": user.notification_preferences,
        "relationship_goals": user.relationship_goals,
        "created_at": _iso(getattr(user, "created_at", None)),
        "updated_at": _iso(getattr(user, "updated_at", None)),
        "premium_subscription": None,
    }
    sub = user.premium_subscription
    if sub:
        data["premium_subscription"] = {
            "subscription_id": str(sub.subscription_id),
            "status": sub.status,
            "plan_type": sub.plan_type,
            "stripe_customer_id": sub.stripe_customer_id,
            "stripe_subscription_id": sub.stripe_subscription_id,
            "current_period_start": _iso(sub.current_period_start),
            "current_period_end": _iso(sub.current_period_end),
            "trial_ends_at": _iso(sub.trial_ends_at),
            "cancelled_at": _iso(sub.cancelled_at),
        }
    return data


def _build_user_from_cache(data: dict) -> User:
    """
    Reconstruct a *transient* (session-free) User from a cached dict.

    The returned object is NOT attached to any SQLAlchemy session, which is
    fine because ``CurrentUser`` consumers only read attributes.
    """
    user = User(
        user_id=uuid.UUID(data["user_id"]),
        email=data["email"],
        full_name=data.get("full_name"),
        avatar_url=data.get("avatar_url"),
        timezone=data.get("timezone"),
        notification_preferences=data.get("notification_preferences"),
        relationship_goals=data.get("relationship_goals"),
        created_at=_parse_dt(data.get("created_at")) or datetime.now(timezone.utc),
        updated_at=_parse_dt(data.get("updated_at")) or datetime.now(timezone.utc),
    )

    sub_data = data.get("premium_subscription")
    user.premium_subscription = None
    if sub_data:
        user.premium_subscription = PremiumSubscription(
            subscription_id=uuid.UUID(sub_data["subscription_id"]),
            user_id=user.user_id,
            status=sub_data["status"],
            plan_type=sub_data.get("plan_type"),
            stripe_customer_id=sub_data.get("stripe_customer_id"),
            stripe_subscription_id=sub_data.get("stripe_subscription_id"),
            current_period_start=_parse_dt(sub_data.get("current_period_start")),
            current_period_end=_parse_dt(sub_data.get("current_period_end")),
            trial_ends_at=_parse_dt(sub_data.get("trial_ends_at")),
            cancelled_at=_parse_dt(sub_data.get("cancelled_at")),
        )

    return user


async def _get_cached_user(user_id: uuid.UUID) -> User | None:
    """Return the cached User object, or ``None`` on miss / Redis failure."""
    try:
        client = await get_redis()
        raw = await client.get(CacheKeys.user_auth(str(user_id)))
        if raw is None:
            return None
        return _build_user_from_cache(json.loads(raw))
    except Exception as exc:
        logger.debug("User auth cache read failed: %s", exc)
        return None


async def _cache_user(user: User) -> None:
    """Best-effort cache of a DB-loaded User into Redis."""
    try:
        client = await get_redis()
        await client.setex(
            CacheKeys.user_auth(str(user.user_id)),
            _USER_AUTH_CACHE_TTL,
            json.dumps(_serialize_user_for_cache(user), default=str),
        )
    except Exception as exc:
        logger.debug("User auth cache write failed: %s", exc)


# =============================================================================
# User resolution
# =============================================================================

async def _load_or_provision_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    email: Optional[str],
    full_name: Optional[str] = None,
) -> Optional[User]:
    """
    Return the app-side user row, creating it on first sight.

    Supabase owns the identity; the row here only mirrors it.
    """
    result = await db.execute(select(User).where(User.user_id == user_id))
    user = result.scalar_one_or_none()
    if user is not None:
        return user

    if not email:
        return None

    user = User(
        user_id=user_id,
        email=email,
        full_name=full_name,
        timezone="UTC",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent first request already inserted the row
        await db.rollback()
        result = await db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    await db.refresh(user)
    logger.info("Provisioned user row for %s", user_id)
    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """
    Get or create a development test user.
    Only used when DEV_AUTH_DISABLED is True.
    """
    cached = await _get_cached_user(DEV_USER_ID)
    if cached is not None:
        return cached

    user = await _load_or_provision_user(
        db, DEV_USER_ID, DEV_USER_EMAIL, "Development User"
    )
    await _cache_user(user)
    return user


async def _resolve_user_from_token(
    credentials: HTTPAuthorizationCredentials,
    db: AsyncSession,
) -> User | None:
    """
    Verify the Supabase token, then return the User from Redis cache or DB.
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        return None

    cached = await _get_cached_user(user_id)
    if cached is not None:
        return cached

    user = await _load_or_provision_user(
        db,
        user_id,
        payload.get("email"),
        token_display_name(payload),
    )
    if user is not None:
        await _cache_user(user)
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
) -> User:
    """
    Get current authenticated user.

    Raises 401 if not authenticated or token is invalid.
    In development with DEV_AUTH_DISABLED=True, returns the dev user.
    """
    if settings.auth_disabled:
        return await get_or_create_dev_user(db)

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": ErrorCodes.AUTH_TOKEN_EXPIRED,
                "message": "Not authenticated",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _resolve_user_from_token(credentials, db)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": ErrorCodes.AUTH_TOKEN_EXPIRED,
                "message": "Invalid or expired token",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def verify_cron_secret(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
) -> None:
    """
    Guard for scheduler-triggered endpoints.

    The external scheduler sends ``Authorization: Bearer <CRON_SECRET>``.
    """
    if not verify_shared_secret(authorization, settings.CRON_SECRET):
        logger.warning("Rejected scheduled job call with invalid secret")
        raise AuthenticationError(
            code=ErrorCodes.CRON_UNAUTHORIZED,
            message="Unauthorized",
        )


# Type alias for authenticated user dependency
CurrentUser = Annotated[User, Depends(get_current_user)]
CronAuthorized = Annotated[None, Depends(verify_cron_secret)]
