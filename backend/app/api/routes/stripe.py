"""
Stripe Routes

Checkout, subscription status and cancellation for the authenticated
user, and the Stripe webhook endpoint.

The webhook takes no bearer token; it is authenticated by the
Stripe-Signature header over the raw request body.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel

from app.api.dependencies import (
    get_auth_context,
    get_billing,
    get_subscription_service,
)
from app.api.responses import error_response, success_response
from app.domain.interfaces import BillingLedger
from app.domain.user import AuthContext
from app.infrastructure.exceptions import WebhookSignatureError
from app.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe")


class CreateCheckoutRequest(BaseModel):
    """Request to start a checkout for a paid plan."""
    plan: Optional[str] = None


# =============================================================================
# Checkout Endpoints
# =============================================================================

@router.post("/create-checkout-session")
async def create_checkout_session(
    request: CreateCheckoutRequest,
    auth: AuthContext = Depends(get_auth_context),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Create a Stripe Checkout session for a subscription purchase.

    Returns:
        Session id and the hosted checkout URL
    """
    session = await subscription_service.create_checkout_session(auth.uid, request.plan)
    return success_response(
        "Checkout session created successfully",
        {"sessionId": session.session_id, "url": session.url},
    )


# =============================================================================
# Webhook Endpoint
# =============================================================================

@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    billing: BillingLedger = Depends(get_billing),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Handle Stripe webhook events.

    Signature failures answer 500 so Stripe retries the delivery.
    """
    if not stripe_signature:
        return error_response("Missing stripe-signature header", status_code=400)

    payload = await request.body()

    try:
        event = billing.verify_webhook_signature(payload, stripe_signature)
    except WebhookSignatureError as e:
        logger.error(f"Webhook signature verification failed: {e.message}")
        return error_response(f"Webhook Error: {e.message}")

    await subscription_service.handle_event(event)
    return {"received": True}


# =============================================================================
# Subscription Endpoints
# =============================================================================

@router.get("/subscription")
async def get_subscription(
    auth: AuthContext = Depends(get_auth_context),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Get the caller's subscription; users who never paid are on free."""
    view = await subscription_service.get_subscription(auth.uid)
    message = (
        "No active subscription"
        if view.cancel_at_period_end is None
        else "Subscription retrieved successfully"
    )
    return success_response(message, {"subscription": view.to_response()})


@router.post("/cancel-subscription")
async def cancel_subscription(
    auth: AuthContext = Depends(get_auth_context),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Cancel at the end of the current billing period."""
    view = await subscription_service.cancel_subscription(auth.uid)
    return success_response(
        "Subscription will be canceled at period end",
        {"subscription": view.to_response()},
    )
