"""
Webhooks API Endpoints
======================

Handles webhooks from Stripe.

Authentication:
    Every request carries a ``Stripe-Signature`` header that is verified
    against STRIPE_WEBHOOK_SECRET with ``stripe.Webhook.construct_event``.

Idempotency:
    Each Stripe event has a unique ``id``. We store processed event IDs
    in Redis (with TTL) to prevent duplicate processing.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import AppException, ErrorCodes
from app.db.session import get_db
from app.services.cache import CacheInvalidator, CacheKeys, get_redis
from app.services.stripe_service import StripeService

logger = logging.getLogger(__name__)

router = APIRouter()

_WEBHOOK_IDEM_TTL = 86400 * 7  # 7 days


async def _is_event_processed(event_id: str) -> bool:
    """Check if a webhook event has already been processed."""
    try:
        client = await get_redis()
        return await client.exists(CacheKeys.stripe_event(event_id)) > 0
    except Exception as exc:
        logger.warning("Redis idempotency check failed: %s", exc)
        return False


async def _mark_event_processed(event_id: str) -> None:
    """Mark a webhook event as processed in Redis."""
    try:
        client = await get_redis()
        await client.setex(CacheKeys.stripe_event(event_id), _WEBHOOK_IDEM_TTL, "1")
    except Exception as exc:
        logger.warning("Redis idempotency set failed: %s", exc)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
):
    """
    Handle Stripe webhook events.

    Events handled:
    - checkout.session.completed
    - customer.subscription.created / updated / deleted
    - invoice.payment_succeeded / payment_failed

    Anything else is acknowledged without side effects.
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        raise AppException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCodes.STRIPE_NOT_CONFIGURED,
            message="Webhook secret not configured",
        )

    # ── Verify signature ──────────────────────────────────────────────────
    payload = await request.body()
    try:
        event = StripeService.construct_event(
            payload,
            stripe_signature or "",
            settings.STRIPE_WEBHOOK_SECRET,
        )
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        raise AppException(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCodes.STRIPE_INVALID_SIGNATURE,
            message="Invalid webhook signature or payload",
        )

    event_id = event["id"]
    event_type = event["type"]
    logger.info("Stripe webhook received: type=%s event_id=%s", event_type, event_id)

    # ── Idempotency check ─────────────────────────────────────────────────
    if await _is_event_processed(event_id):
        logger.info("Duplicate webhook event %s, skipping", event_id)
        return {"received": True, "duplicate": True}

    # ── Process event ─────────────────────────────────────────────────────
    try:
        user_id = await StripeService(db).process_event(event)

        await db.commit()

        # Mark event as processed (after successful commit)
        await _mark_event_processed(event_id)

        if user_id:
            await CacheInvalidator.on_subscription_change(str(user_id))

    except Exception:
        logger.exception("Webhook processing error: type=%s event_id=%s", event_type, event_id)
        await db.rollback()
        # Return 500 so Stripe will retry
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing webhook",
        )

    return {"received": True}
