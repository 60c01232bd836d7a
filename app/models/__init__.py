"""
Database Models
===============

SQLAlchemy ORM models for all database entities.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations and relationships.
"""

from app.models.user import User
from app.models.relationship import (
    Relationship,
    RelationshipMember,
    RelationshipInvitation,
    RelationshipProfile,
    RelationshipType,
    MemberRole,
    InvitationStatus,
)
from app.models.journal import JournalEntry, DailyCheckin, RelationshipCheckin
from app.models.cycle import MenstrualCycle
from app.models.insight import (
    RelationshipInsight,
    InsightFeedback,
    InsightPriority,
    PartnerSuggestion,
    SuggestionFeedback,
)
from app.models.score import ConnectionScore, RelationshipHealthScore
from app.models.onboarding import UniversalUserProfile
from app.models.subscription import (
    PremiumSubscription,
    StripeCustomer,
    SubscriptionEvent,
    SubscriptionStatus,
    SubscriptionEventType,
    PlanType,
)
from app.models.batch import BatchProcessingLog, BatchStatus

__all__ = [
    # User
    "User",
    # Relationship
    "Relationship",
    "RelationshipMember",
    "RelationshipInvitation",
    "RelationshipProfile",
    "RelationshipType",
    "MemberRole",
    "InvitationStatus",
    # Journal / check-ins
    "JournalEntry",
    "DailyCheckin",
    "RelationshipCheckin",
    # Cycle
    "MenstrualCycle",
    # Insights
    "RelationshipInsight",
    "InsightFeedback",
    "InsightPriority",
    "PartnerSuggestion",
    "SuggestionFeedback",
    # Scores
    "ConnectionScore",
    "RelationshipHealthScore",
    # Onboarding
    "UniversalUserProfile",
    # Billing
    "PremiumSubscription",
    "StripeCustomer",
    "SubscriptionEvent",
    "SubscriptionStatus",
    "SubscriptionEventType",
    "PlanType",
    # Batch
    "BatchProcessingLog",
    "BatchStatus",
]
