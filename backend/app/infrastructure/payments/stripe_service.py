"""
Stripe Payment Service

Clean Architecture infrastructure service for Stripe payment processing.
Handles customers, checkout sessions, subscription lookups and updates,
and webhook signature verification.

- Hosted Checkout for minimal PCI burden
- Inline price data built from the plan catalog
- The API key is passed per request, no global SDK state
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import stripe
from stripe import StripeError

from app.domain.subscription import (
    STRIPE_PLANS,
    CheckoutSession,
    RemoteSubscription,
    SubscriptionPlan,
    map_remote_status,
)
from app.infrastructure.exceptions import (
    BillingServiceError,
    ConfigurationError,
    WebhookSignatureError,
)


logger = logging.getLogger(__name__)


def _as_dict(obj: Any) -> Mapping[str, Any]:
    """Plain-dict view of a Stripe object."""
    if isinstance(obj, Mapping) and not hasattr(obj, "to_dict"):
        return obj
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def timestamp_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """Convert a Unix timestamp to naive UTC."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def _first_item(data: Mapping[str, Any]) -> Mapping[str, Any]:
    items = data.get("items") or {}
    entries = items.get("data") or []
    return entries[0] if entries else {}


def period_bounds(data: Mapping[str, Any]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Read the current billing period of a subscription payload.

    Newer API versions carry the period on the subscription item rather
    than on the subscription itself.
    """
    item = _first_item(data)
    start = data.get("current_period_start") or item.get("current_period_start")
    end = data.get("current_period_end") or item.get("current_period_end")
    return timestamp_to_datetime(start), timestamp_to_datetime(end)


def parse_remote_subscription(data: Mapping[str, Any]) -> RemoteSubscription:
    """Map a Stripe subscription payload onto RemoteSubscription."""
    start, end = period_bounds(data)
    price = _first_item(data).get("price") or {}
    customer = data.get("customer")
    if isinstance(customer, Mapping):
        customer = customer.get("id")

    return RemoteSubscription(
        id=data["id"],
        customer_id=customer,
        price_id=price.get("id"),
        status=map_remote_status(data.get("status")),
        current_period_start=start,
        current_period_end=end,
        cancel_at_period_end=bool(data.get("cancel_at_period_end", False)),
    )


class StripeService:
    """
    Stripe payment processing service.

    All calls are single-shot and run in a worker thread; any Stripe
    failure is raised as BillingServiceError.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        webhook_secret: Optional[str],
        frontend_url: str,
    ):
        self._api_key = secret_key
        self._webhook_secret = webhook_secret
        self._frontend_url = frontend_url.rstrip("/")

    def _require_key(self) -> str:
        if not self._api_key:
            raise ConfigurationError(
                "Stripe is not configured",
                missing_keys=["STRIPE_SECRET_KEY"],
            )
        return self._api_key

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def create_customer(self, user_id: str, email: str) -> str:
        """
        Create a new Stripe customer.

        Args:
            user_id: Internal user ID (stored in metadata)
            email: Customer email for receipts

        Returns:
            Stripe customer ID
        """
        api_key = self._require_key()
        try:
            customer = await asyncio.to_thread(
                lambda: stripe.Customer.create(
                    api_key=api_key,
                    email=email,
                    metadata={"userId": user_id},
                )
            )
        except StripeError as e:
            logger.error(f"Failed to create Stripe customer: {e}")
            raise BillingServiceError(
                f"Failed to create customer: {e.user_message or e}",
                operation="create_customer",
                original_error=e,
            )

        logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
        return customer.id

    # =========================================================================
    # Checkout Session
    # =========================================================================

    async def create_checkout_session(
        self,
        customer_id: str,
        plan: SubscriptionPlan,
        user_id: str,
    ) -> CheckoutSession:
        """
        Create a Stripe Checkout Session for a recurring plan.

        Args:
            customer_id: Stripe customer ID
            plan: Paid plan to purchase
            user_id: Internal user ID for metadata

        Returns:
            CheckoutSession with redirect URL
        """
        api_key = self._require_key()
        details = STRIPE_PLANS[plan]

        try:
            session = await asyncio.to_thread(
                lambda: stripe.checkout.Session.create(
                    api_key=api_key,
                    customer=customer_id,
                    payment_method_types=["card"],
                    line_items=[
                        {
                            "price_data": {
                                "currency": details.currency,
                                "product_data": {
                                    "name": f"{details.name} Plan",
                                    "description": (
                                        f"{details.name} subscription - "
                                        f"{', '.join(details.features)}"
                                    ),
                                },
                                "unit_amount": details.price,
                                "recurring": {"interval": details.interval},
                            },
                            "quantity": 1,
                        }
                    ],
                    mode="subscription",
                    success_url=f"{self._frontend_url}/chat?session_id={{CHECKOUT_SESSION_ID}}",
                    cancel_url=f"{self._frontend_url}/chat",
                    metadata={"userId": user_id, "plan": plan.value},
                )
            )
        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise BillingServiceError(
                f"Failed to create checkout: {e.user_message or e}",
                operation="create_checkout_session",
                original_error=e,
            )

        logger.info(
            f"Created checkout session {session.id} for user {user_id}, plan={plan.value}"
        )
        return CheckoutSession(session_id=session.id, url=session.url)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def retrieve_subscription(self, subscription_id: str) -> RemoteSubscription:
        """
        Retrieve a subscription by ID.

        Args:
            subscription_id: Stripe subscription ID

        Returns:
            The subscription's current fields
        """
        api_key = self._require_key()
        try:
            subscription = await asyncio.to_thread(
                lambda: stripe.Subscription.retrieve(subscription_id, api_key=api_key)
            )
        except StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {e}")
            raise BillingServiceError(
                f"Failed to retrieve subscription: {e.user_message or e}",
                operation="retrieve_subscription",
                original_error=e,
            )
        return parse_remote_subscription(_as_dict(subscription))

    async def cancel_at_period_end(self, subscription_id: str) -> RemoteSubscription:
        """
        Schedule cancellation at the end of the current billing period.

        Args:
            subscription_id: Stripe subscription ID

        Returns:
            The updated subscription
        """
        api_key = self._require_key()
        try:
            subscription = await asyncio.to_thread(
                lambda: stripe.Subscription.modify(
                    subscription_id,
                    api_key=api_key,
                    cancel_at_period_end=True,
                )
            )
        except StripeError as e:
            logger.error(f"Failed to cancel subscription: {e}")
            raise BillingServiceError(
                f"Failed to cancel: {e.user_message or e}",
                operation="update_subscription",
                original_error=e,
            )

        logger.info(f"Scheduled cancellation of subscription {subscription_id} at period end")
        return parse_remote_subscription(_as_dict(subscription))

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict:
        """
        Verify webhook signature and decode the event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            The event as a plain dict

        Raises:
            WebhookSignatureError if the payload or signature is invalid
        """
        if not self._webhook_secret:
            raise ConfigurationError(
                "Stripe webhook secret is not configured",
                missing_keys=["STRIPE_WEBHOOK_SECRET"],
            )
        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except ValueError as e:
            raise WebhookSignatureError(
                f"Invalid payload: {e}", operation="verify_webhook", original_error=e
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(
                f"Invalid signature: {e}", operation="verify_webhook", original_error=e
            )

        return json.loads(payload)
