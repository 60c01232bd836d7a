"""
Stripe API Endpoints
====================

Checkout and customer-portal sessions for the premium subscription.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.billing import CheckoutRequest, CheckoutResponse, PortalResponse
from app.schemas.common import BaseResponse
from app.services.stripe_service import StripeService

router = APIRouter(dependencies=[Depends(create_rate_limit_dependency("billing"))])


@router.post(
    "/checkout",
    response_model=BaseResponse[CheckoutResponse],
)
async def create_checkout_session(
    body: CheckoutRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Start a subscription checkout for the ``monthly`` or ``yearly`` plan.

    The Stripe customer is created on first checkout and reused afterwards.
    """
    session = await StripeService(db).create_checkout_session(
        current_user,
        body.plan,
        success_url=body.successUrl,
        cancel_url=body.cancelUrl,
    )
    return BaseResponse(data=CheckoutResponse(**session))


@router.post(
    "/portal",
    response_model=BaseResponse[PortalResponse],
)
async def create_portal_session(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Billing portal link for managing or cancelling the subscription."""
    session = await StripeService(db).create_portal_session(current_user.user_id)
    return BaseResponse(data=PortalResponse(**session))
