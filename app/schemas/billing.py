"""
Billing Schemas
===============

Pydantic schemas for premium status, Stripe checkout and the feature catalogue.
"""

from datetime import date
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field


class CheckoutRequest(BaseModel):
    """Request schema for POST /stripe/checkout."""

    plan: str = Field(..., description="monthly or yearly")
    successUrl: Optional[str] = None
    cancelUrl: Optional[str] = None


class CheckoutResponse(BaseModel):
    sessionId: str
    url: Optional[str] = None


class PortalResponse(BaseModel):
    url: str


class PremiumStatus(BaseModel):
    """Response data for GET /premium/status."""

    has_premium: bool
    subscription_status: str
    plan_type: Optional[str] = None
    current_period_end: Optional[str] = None
    trial_ends_at: Optional[str] = None
    trial_available: bool


class FeatureInfo(BaseModel):
    key: str
    name: str
    category: str
    required_tier: str
    has_access: bool


class PartnerBatchRequest(BaseModel):
    """Request schema for POST /jobs/daily-partner-suggestions."""

    model_config = ConfigDict(populate_by_name=True)

    batch_date: Optional[date] = Field(default=None, alias="date")


class FiroCompatibilityRequest(BaseModel):
    """Request schema for POST /premium/firo-compatibility."""

    model_config = ConfigDict(populate_by_name=True)

    relationship_id: uuid.UUID = Field(..., alias="relationshipId")
