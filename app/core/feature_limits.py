"""
Feature Limits
==============

Free / premium feature matrix and the dependency that enforces it.
Moving a feature between tiers is a one-line change in ``FEATURE_LIMITS``.
"""

from app.core.errors import ErrorCodes, ForbiddenError
from app.dependencies import CurrentUser
from app.services.premium_service import subscription_tier


# Feature limits by subscription tier
FEATURE_LIMITS = {
    "free": {
        "basic_insights": True,
        "daily_checkins": True,
        "journal_entries": True,
        "health_score": True,
        "relationship_cards": True,
        "partner_suggestions": False,
        "firo_compatibility": False,
        "premium_analytics": False,
        "advanced_insights": False,
        "priority_ai_processing": False,
        "data_export": False,
        "trend_analysis": False,
        "coaching_recommendations": False,
    },
    "premium": {
        "basic_insights": True,
        "daily_checkins": True,
        "journal_entries": True,
        "health_score": True,
        "relationship_cards": True,
        "partner_suggestions": True,
        "firo_compatibility": True,
        "premium_analytics": True,
        "advanced_insights": True,
        "priority_ai_processing": True,
        "data_export": True,
        "trend_analysis": True,
        "coaching_recommendations": True,
    },
}

# Display metadata for the feature catalogue endpoint
FEATURE_CATALOGUE = {
    "basic_insights": ("Basic Relationship Insights", "insights"),
    "daily_checkins": ("Daily Check-ins", "insights"),
    "journal_entries": ("Private Journal with AI Analysis", "insights"),
    "health_score": ("Relationship Health Score", "analytics"),
    "relationship_cards": ("Multiple Relationship Management", "insights"),
    "partner_suggestions": ("Daily Partner Suggestions", "ai"),
    "firo_compatibility": ("FIRO Compatibility Analysis", "analytics"),
    "premium_analytics": ("Connection Health Dashboard", "analytics"),
    "advanced_insights": ("Advanced AI Insights", "ai"),
    "priority_ai_processing": ("Priority AI Processing", "ai"),
    "data_export": ("Data Export", "data"),
    "trend_analysis": ("Trend Analysis", "analytics"),
    "coaching_recommendations": ("Coaching Recommendations", "support"),
}


def get_feature_limits(tier: str) -> dict:
    """Get feature limits for a subscription tier."""
    return FEATURE_LIMITS.get(tier, FEATURE_LIMITS["free"])


def has_feature(tier: str, feature: str) -> bool:
    """Check if a tier has access to a specific feature."""
    limits = get_feature_limits(tier)
    return limits.get(feature, False)


def get_required_tier_for_feature(feature: str) -> str:
    """Get the minimum tier required for a feature."""
    if FEATURE_LIMITS["free"].get(feature):
        return "free"
    return "premium"


class FeatureGate:
    """
    Feature gate for protecting endpoints based on subscription tier.

    Usage:
        @router.post("/endpoint")
        async def endpoint(
            current_user: CurrentUser,
            _: None = Depends(FeatureGate("partner_suggestions"))
        ):
            ...
    """

    def __init__(self, feature: str):
        self.feature = feature

    async def __call__(self, current_user: CurrentUser) -> None:
        """Check if user has access to the feature."""
        tier = subscription_tier(current_user.premium_subscription)

        if not has_feature(tier, self.feature):
            required_tier = get_required_tier_for_feature(self.feature)
            raise ForbiddenError(
                code=ErrorCodes.FEATURE_LOCKED,
                message=f"This feature requires a {required_tier} subscription",
                feature=self.feature,
                required_tier=required_tier,
                current_tier=tier,
                upgrade_url="/premium/pricing",
            )
