"""
Subscription Models
===================

Billing state mirrored from Stripe: premium subscriptions, the Stripe
customer mapping, and an audit trail of subscription events.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, CreatedAtMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.user import User


class SubscriptionStatus(str, Enum):
    """
    Normalized subscription status values.

    Stripe statuses without a mapping (``past_due``, ``unpaid``,
    ``incomplete`` ...) are stored verbatim.
    """
    NONE = "none"
    ACTIVE = "active"
    TRIAL = "trial"
    CANCELLED = "cancelled"


class PlanType(str, Enum):
    """Premium plan variants."""
    PREMIUM_TRIAL = "premium_trial"
    PREMIUM_MONTHLY = "premium_monthly"
    PREMIUM_YEARLY = "premium_yearly"


class SubscriptionEventType(str, Enum):
    """Types of subscription events for the audit trail."""
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"


class PremiumSubscription(Base, TimestampMixin):
    """
    Premium subscription model.

    One row per user, upserted from Stripe subscription webhooks.
    """

    __tablename__ = "premium_subscriptions"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # Stripe identifiers
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=SubscriptionStatus.ACTIVE.value,
    )
    plan_type: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
    )

    # Billing period
    current_period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="premium_subscription",
    )

    def __repr__(self) -> str:
        return f"<PremiumSubscription(user_id={self.user_id}, status={self.status})>"


class StripeCustomer(Base, CreatedAtMixin):
    """Mapping from an app user to a Stripe customer."""

    __tablename__ = "stripe_customers"

    customer_row_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    stripe_customer_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )


class SubscriptionEvent(Base, CreatedAtMixin):
    """
    Subscription event audit trail.

    Stores the relevant slice of every processed Stripe webhook.
    """

    __tablename__ = "subscription_events"

    event_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    stripe_event_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    event_data: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )

    __table_args__ = (
        Index("idx_subscription_events_user", "user_id", "created_at"),
    )
