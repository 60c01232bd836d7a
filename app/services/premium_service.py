"""
Premium Service
===============

Premium entitlement checks over the Stripe-mirrored subscription row.
"""

from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.subscription import PremiumSubscription, SubscriptionStatus
from app.services.cache import CacheKeys, CacheManager


def has_premium_access(
    subscription: Optional[PremiumSubscription],
    now: Optional[datetime] = None,
) -> bool:
    """
    True when the subscription currently grants premium.

    Active or trial status is required, and either the billing period has
    not ended or the trial has not ended. A missing end date counts as open.
    """
    if subscription is None:
        return False

    now = now or datetime.now(timezone.utc)
    status = subscription.status

    if status not in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIAL.value):
        return False

    period_open = (
        subscription.current_period_end is None
        or subscription.current_period_end > now
    )
    trial_open = status == SubscriptionStatus.TRIAL.value and (
        subscription.trial_ends_at is None or subscription.trial_ends_at > now
    )
    return period_open or trial_open


def subscription_tier(subscription: Optional[PremiumSubscription]) -> str:
    """Feature tier name for ``FEATURE_LIMITS``."""
    return "premium" if has_premium_access(subscription) else "free"


def build_status_payload(
    subscription: Optional[PremiumSubscription],
    now: Optional[datetime] = None,
) -> dict:
    """Response body of the subscription check."""
    if subscription is None:
        return {
            "has_premium": False,
            "subscription_status": SubscriptionStatus.NONE.value,
            "plan_type": None,
            "current_period_end": None,
            "trial_ends_at": None,
            "trial_available": True,
        }

    return {
        "has_premium": has_premium_access(subscription, now),
        "subscription_status": subscription.status,
        "plan_type": subscription.plan_type,
        "current_period_end": (
            subscription.current_period_end.isoformat()
            if subscription.current_period_end else None
        ),
        "trial_ends_at": (
            subscription.trial_ends_at.isoformat()
            if subscription.trial_ends_at else None
        ),
        "trial_available": subscription.status != SubscriptionStatus.TRIAL.value,
    }


class PremiumService:
    """Premium lookups that hit the database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_subscription(self, user_id: uuid.UUID) -> Optional[PremiumSubscription]:
        result = await self.db.execute(
            select(PremiumSubscription).where(PremiumSubscription.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_status(self, user_id: uuid.UUID) -> dict:
        """Subscription check with a one-hour cache."""
        cache_key = CacheKeys.premium_status(str(user_id))
        cached = await CacheManager.get(cache_key)
        if cached is not None:
            return cached

        payload = build_status_payload(await self.get_subscription(user_id))
        await CacheManager.set(cache_key, payload, ttl=CacheManager.TTL_HOUR)
        return payload

    async def premium_user_ids(self, user_ids: list[uuid.UUID]) -> set[uuid.UUID]:
        """Subset of ``user_ids`` with premium access right now."""
        if not user_ids:
            return set()

        result = await self.db.execute(
            select(PremiumSubscription).where(PremiumSubscription.user_id.in_(user_ids))
        )
        now = datetime.now(timezone.utc)
        return {
            sub.user_id
            for sub in result.scalars().all()
            if has_premium_access(sub, now)
        }
