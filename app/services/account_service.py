"""
Account Service
===============

Full account deletion: application data first, then the Supabase auth identity.
"""

import logging
import uuid

import httpx
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.cycle import MenstrualCycle
from app.models.insight import (
    InsightFeedback,
    PartnerSuggestion,
    RelationshipInsight,
    SuggestionFeedback,
)
from app.models.journal import DailyCheckin, JournalEntry, RelationshipCheckin
from app.models.onboarding import UniversalUserProfile
from app.models.relationship import Relationship, RelationshipMember, RelationshipProfile
from app.models.score import ConnectionScore, RelationshipHealthScore
from app.models.subscription import PremiumSubscription, StripeCustomer, SubscriptionEvent
from app.models.user import User
from app.services.cache import CacheInvalidator

logger = logging.getLogger(__name__)

# Child rows before parents
_USER_OWNED_TABLES = (
    (RelationshipProfile, RelationshipProfile.user_id),
    (UniversalUserProfile, UniversalUserProfile.user_id),
    (InsightFeedback, InsightFeedback.user_id),
    (SuggestionFeedback, SuggestionFeedback.user_id),
    (RelationshipInsight, RelationshipInsight.user_id),
    (RelationshipCheckin, RelationshipCheckin.user_id),
    (DailyCheckin, DailyCheckin.user_id),
    (JournalEntry, JournalEntry.user_id),
    (MenstrualCycle, MenstrualCycle.user_id),
    (ConnectionScore, ConnectionScore.user_id),
    (RelationshipHealthScore, RelationshipHealthScore.user_id),
    (SubscriptionEvent, SubscriptionEvent.user_id),
    (StripeCustomer, StripeCustomer.user_id),
    (PremiumSubscription, PremiumSubscription.user_id),
)


class AccountService:
    """Service for account lifecycle operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def delete_account(self, user_id: uuid.UUID) -> dict:
        """
        Remove every row belonging to ``user_id``.

        Relationships the user created are deleted together with their
        members, insights and invitations; other relationships are left.
        """
        result = await self.db.execute(
            select(Relationship.relationship_id).where(Relationship.created_by == user_id)
        )
        owned = list(result.scalars().all())

        if owned:
            await self.db.execute(
                delete(RelationshipInsight).where(RelationshipInsight.relationship_id.in_(owned))
            )
            await self.db.execute(
                delete(Relationship).where(Relationship.relationship_id.in_(owned))
            )

        left = await self.db.execute(
            delete(RelationshipMember).where(RelationshipMember.user_id == user_id)
        )

        await self.db.execute(
            delete(PartnerSuggestion).where(
                or_(
                    PartnerSuggestion.recipient_user_id == user_id,
                    PartnerSuggestion.source_user_id == user_id,
                )
            )
        )
        for model, column in _USER_OWNED_TABLES:
            await self.db.execute(delete(model).where(column == user_id))

        await self.db.execute(delete(User).where(User.user_id == user_id))
        # Application data is gone before the login is removed
        await self.db.commit()

        await CacheInvalidator.on_subscription_change(str(user_id))
        logger.info(
            "Account data deleted for %s (%d relationships deleted, %d memberships left)",
            user_id, len(owned), left.rowcount or 0,
        )

        response = {
            "deleted": True,
            "relationshipsDeleted": len(owned),
        }
        if not await self.delete_auth_identity(user_id):
            response["warning"] = "Account data deleted, but the login could not be removed. Please contact support."
        return response

    async def delete_auth_identity(self, user_id: uuid.UUID) -> bool:
        """Delete the Supabase auth user through the admin API."""
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            logger.warning("Supabase admin credentials not configured, auth user %s kept", user_id)
            return False

        async with httpx.AsyncClient() as client:
            try:
                response = await client.delete(
                    f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/admin/users/{user_id}",
                    headers={
                        "apikey": settings.SUPABASE_SERVICE_ROLE_KEY,
                        "Authorization": f"Bearer {settings.SUPABASE_SERVICE_ROLE_KEY}",
                    },
                    timeout=10.0,
                )
            except httpx.HTTPError as e:
                logger.error("Supabase admin delete failed for %s: %s", user_id, e)
                return False

        if response.status_code >= 400:
            logger.error(
                "Supabase admin delete returned %d for %s: %s",
                response.status_code, user_id, response.text[:200],
            )
            return False
        return True
