"""
Stripe Service
==============

Integration with Stripe for premium billing.

Handles:
- Checkout sessions for monthly / yearly plans
- Customer portal sessions
- Webhook signature verification
- Webhook event processing into ``premium_subscriptions`` and the
  ``subscription_events`` audit trail

The Stripe SDK is synchronous; every API call runs in a worker thread.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional
import uuid

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import (
    ConflictError,
    ErrorCodes,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from app.models.subscription import (
    PlanType,
    PremiumSubscription,
    StripeCustomer,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionStatus,
)
from app.models.user import User
from app.services.premium_service import has_premium_access

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE.value,
    "trialing": SubscriptionStatus.TRIAL.value,
    "canceled": SubscriptionStatus.CANCELLED.value,
}


def map_subscription_status(stripe_status: Optional[str]) -> str:
    """Normalize a Stripe status; unmapped statuses are stored as-is."""
    return _STATUS_MAP.get(stripe_status or "", stripe_status or SubscriptionStatus.NONE.value)


def map_plan_type(stripe_status: Optional[str], interval: Optional[str]) -> str:
    if stripe_status == "trialing":
        return PlanType.PREMIUM_TRIAL.value
    if interval == "month":
        return PlanType.PREMIUM_MONTHLY.value
    return PlanType.PREMIUM_YEARLY.value


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def _first_item(subscription: Any) -> dict:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _subscription_interval(subscription: Any) -> Optional[str]:
    price = _first_item(subscription).get("price") or {}
    return (price.get("recurring") or {}).get("interval")


def _subscription_period(subscription: Any) -> tuple[Optional[int], Optional[int]]:
    """Billing period; newer API versions report it on the subscription item."""
    item = _first_item(subscription)
    start = subscription.get("current_period_start") or item.get("current_period_start")
    end = subscription.get("current_period_end") or item.get("current_period_end")
    return start, end


def _metadata_user_id(obj: Any) -> Optional[uuid.UUID]:
    raw = (obj.get("metadata") or {}).get("supabase_user_id")
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        logger.error("Invalid supabase_user_id in Stripe metadata: %s", raw)
        return None


def _invoice_subscription_id(invoice: Any) -> Optional[str]:
    if invoice.get("subscription"):
        return invoice["subscription"]
    details = ((invoice.get("parent") or {}).get("subscription_details")) or {}
    return details.get("subscription")


class StripeService:
    """Service for Stripe billing operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.api_key = settings.STRIPE_SECRET_KEY
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        self._client: Optional[stripe.StripeClient] = None

    # -------------------------------------------------------------------------
    # Stripe API
    # -------------------------------------------------------------------------

    @property
    def client(self) -> stripe.StripeClient:
        if self._client is None:
            if not self.api_key:
                raise ServiceUnavailableError(
                    code=ErrorCodes.STRIPE_NOT_CONFIGURED,
                    message="Billing is not configured",
                )
            self._client = stripe.StripeClient(self.api_key)
        return self._client

    async def _call(self, operation: str, fn, *args, **kwargs):
        """Run a blocking SDK call in a thread, mapping Stripe errors to 503."""
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except stripe.StripeError as e:
            logger.error("Stripe %s failed: %s", operation, e)
            raise ServiceUnavailableError(
                code=ErrorCodes.STRIPE_ERROR,
                message="Payment provider request failed",
            )

    @staticmethod
    def construct_event(payload: bytes, signature: str, secret: str):
        """
        Verify the webhook signature and parse the event.

        Raises:
            ValueError: malformed payload
            stripe.SignatureVerificationError: signature mismatch
        """
        return stripe.Webhook.construct_event(payload, signature, secret)

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def get_customer(self, user_id: uuid.UUID) -> Optional[StripeCustomer]:
        result = await self.db.execute(
            select(StripeCustomer).where(StripeCustomer.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_customer(self, user: User) -> str:
        customer = await self.get_customer(user.user_id)
        if customer is not None:
            return customer.stripe_customer_id

        params = {
            "email": user.email,
            "metadata": {"supabase_user_id": str(user.user_id)},
        }
        if user.full_name:
            params["name"] = user.full_name

        created = await self._call("customer create", self.client.customers.create, params=params)
        self.db.add(StripeCustomer(
            user_id=user.user_id,
            stripe_customer_id=created["id"],
            email=user.email,
        ))
        await self.db.flush()

        logger.info("Stripe customer %s created for %s", created["id"], user.user_id)
        return created["id"]

    # -------------------------------------------------------------------------
    # Checkout & portal
    # -------------------------------------------------------------------------

    async def create_checkout_session(
        self,
        user: User,
        plan: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> dict:
        """
        Subscription-mode Checkout Session for ``plan`` (monthly or yearly).

        Raises:
            ValidationError: unknown plan or missing price id
            ConflictError: user already has active premium
        """
        price_id = settings.stripe_price_ids.get(plan)
        if not price_id:
            raise ValidationError(message=f"Invalid plan: {plan}", field="plan")

        result = await self.db.execute(
            select(PremiumSubscription).where(PremiumSubscription.user_id == user.user_id)
        )
        subscription = result.scalar_one_or_none()
        if (
            subscription is not None
            and subscription.status == SubscriptionStatus.ACTIVE.value
            and has_premium_access(subscription)
        ):
            raise ConflictError(
                code=ErrorCodes.SUB_ALREADY_ACTIVE,
                message="You already have an active premium subscription",
            )

        customer_id = await self.get_or_create_customer(user)
        metadata = {"supabase_user_id": str(user.user_id), "plan": plan}

        session = await self._call(
            "checkout session create",
            self.client.checkout.sessions.create,
            params={
                "customer": customer_id,
                "mode": "subscription",
                "line_items": [{"price": price_id, "quantity": 1}],
                "allow_promotion_codes": True,
                "success_url": success_url
                or f"{settings.APP_URL}/premium/success?session_id={{CHECKOUT_SESSION_ID}}",
                "cancel_url": cancel_url or f"{settings.APP_URL}/premium/pricing",
                "metadata": metadata,
                "subscription_data": {"metadata": metadata},
            },
        )

        logger.info("Checkout session %s created for %s (%s)", session["id"], user.user_id, plan)
        return {"sessionId": session["id"], "url": session["url"]}

    async def create_portal_session(self, user_id: uuid.UUID) -> dict:
        customer = await self.get_customer(user_id)
        if customer is None:
            raise NotFoundError(
                code=ErrorCodes.SUB_NO_CUSTOMER,
                message="No billing account found",
            )

        session = await self._call(
            "portal session create",
            self.client.billing_portal.sessions.create,
            params={
                "customer": customer.stripe_customer_id,
                "return_url": f"{settings.APP_URL}/premium/manage",
            },
        )
        return {"url": session["url"]}

    # -------------------------------------------------------------------------
    # Webhook processing
    # -------------------------------------------------------------------------

    async def _record_event(
        self,
        user_id: uuid.UUID,
        event_type: SubscriptionEventType,
        stripe_event_id: Optional[str],
        data: dict,
    ) -> None:
        self.db.add(SubscriptionEvent(
            user_id=user_id,
            event_type=event_type.value,
            stripe_event_id=stripe_event_id,
            event_data=data,
        ))

    async def _upsert_subscription(self, user_id: uuid.UUID, subscription: Any) -> PremiumSubscription:
        result = await self.db.execute(
            select(PremiumSubscription).where(PremiumSubscription.user_id == user_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = PremiumSubscription(user_id=user_id)
            self.db.add(row)

        stripe_status = subscription.get("status")
        period_start, period_end = _subscription_period(subscription)

        row.stripe_subscription_id = subscription.get("id")
        row.stripe_customer_id = subscription.get("customer")
        row.status = map_subscription_status(stripe_status)
        row.plan_type = map_plan_type(stripe_status, _subscription_interval(subscription))
        row.current_period_start = _from_timestamp(period_start)
        row.current_period_end = _from_timestamp(period_end)
        row.trial_ends_at = _from_timestamp(subscription.get("trial_end"))
        if row.status == SubscriptionStatus.CANCELLED.value:
            row.cancelled_at = _from_timestamp(subscription.get("canceled_at")) or datetime.now(timezone.utc)

        return row

    async def process_event(self, event: Any) -> Optional[uuid.UUID]:
        """
        Apply a verified Stripe event.

        Returns:
            The affected user id, or ``None`` when the event was only acknowledged.
        """
        event_type = event["type"]
        obj = event["data"]["object"]
        event_id = event.get("id")

        if event_type == "checkout.session.completed":
            user_id = _metadata_user_id(obj)
            if user_id is None:
                logger.error("checkout.session.completed %s without user metadata", event_id)
                return None
            await self._record_event(user_id, SubscriptionEventType.SUBSCRIPTION_CREATED, event_id, {
                "session_id": obj.get("id"),
                "subscription_id": obj.get("subscription"),
                "plan": (obj.get("metadata") or {}).get("plan"),
            })

        elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
            user_id = _metadata_user_id(obj)
            if user_id is None:
                logger.error("%s %s without user metadata", event_type, event_id)
                return None
            row = await self._upsert_subscription(user_id, obj)
            await self._record_event(user_id, SubscriptionEventType.SUBSCRIPTION_UPDATED, event_id, {
                "subscription_id": obj.get("id"),
                "status": row.status,
                "plan_type": row.plan_type,
            })

        elif event_type == "customer.subscription.deleted":
            user_id = _metadata_user_id(obj)
            if user_id is None:
                logger.error("%s %s without user metadata", event_type, event_id)
                return None
            result = await self.db.execute(
                select(PremiumSubscription).where(PremiumSubscription.user_id == user_id)
            )
            row = result.scalar_one_or_none()
            if row is not None:
                row.status = SubscriptionStatus.CANCELLED.value
                row.cancelled_at = datetime.now(timezone.utc)
            await self._record_event(user_id, SubscriptionEventType.SUBSCRIPTION_CANCELLED, event_id, {
                "subscription_id": obj.get("id"),
            })

        elif event_type in ("invoice.payment_succeeded", "invoice.payment_failed"):
            subscription_id = _invoice_subscription_id(obj)
            if not subscription_id:
                logger.info("Invoice %s has no subscription, acknowledging", obj.get("id"))
                return None
            subscription = await self._call(
                "subscription retrieve",
                self.client.subscriptions.retrieve,
                subscription_id,
            )
            user_id = _metadata_user_id(subscription)
            if user_id is None:
                logger.error("Subscription %s without user metadata", subscription_id)
                return None
            succeeded = event_type == "invoice.payment_succeeded"
            await self._record_event(
                user_id,
                SubscriptionEventType.PAYMENT_SUCCEEDED if succeeded else SubscriptionEventType.PAYMENT_FAILED,
                event_id,
                {
                    "invoice_id": obj.get("id"),
                    "amount": obj.get("amount_paid") if succeeded else obj.get("amount_due"),
                    "currency": obj.get("currency"),
                },
            )

        else:
            logger.info("Unhandled Stripe event type %s", event_type)
            return None

        await self.db.flush()
        logger.info("Stripe event %s (%s) applied for %s", event_id, event_type, user_id)
        return user_id
