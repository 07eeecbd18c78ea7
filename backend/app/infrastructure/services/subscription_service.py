"""
Subscription Service

Checkout, cancellation and status reads for paid plans, plus the webhook
reconciler that mirrors Stripe lifecycle events into local records.

Handled events:
- checkout.session.completed: create the local subscription record
- customer.subscription.updated: sync status, period and cancel flag
- customer.subscription.deleted: mark canceled, downgrade user to free
- invoice.payment_failed: mark past_due

Every handler is keyed by the Stripe subscription id, so duplicate or
out-of-order deliveries never create a second record.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from app.domain.interfaces import BillingLedger
from app.domain.subscription import (
    CheckoutSession,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionView,
    parse_paid_plan,
)
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.exceptions import (
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from app.infrastructure.payments.stripe_service import parse_remote_subscription


logger = logging.getLogger(__name__)

EventHandler = Callable[[Mapping[str, Any]], Awaitable[None]]


def invoice_subscription_id(invoice: Mapping[str, Any]) -> Optional[str]:
    """
    Read the subscription reference of an invoice.

    Newer API versions nest it under ``parent.subscription_details``.
    """
    subscription = invoice.get("subscription")
    if not subscription:
        parent = invoice.get("parent") or {}
        details = parent.get("subscription_details") or {}
        subscription = details.get("subscription")
    if isinstance(subscription, Mapping):
        subscription = subscription.get("id")
    return subscription or None


class SubscriptionService:
    """
    Subscription management and reconciliation.

    Repositories handle persistence; the billing ledger is the only
    component that talks to Stripe.
    """

    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        users: UserRepository,
        billing: BillingLedger,
    ):
        self._subscriptions = subscriptions
        self._users = users
        self._billing = billing
        self._handlers: Dict[str, EventHandler] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_failed": self._handle_payment_failed,
        }

    # =========================================================================
    # User-initiated Operations
    # =========================================================================

    async def create_checkout_session(
        self,
        user_id: str,
        plan: Optional[str],
    ) -> CheckoutSession:
        """
        Open a hosted checkout for a paid plan.

        The Stripe customer is created on first checkout and stored on
        the user record.

        Raises:
            ValidationError: plan is not a paid plan
            NotFoundError: user record missing
        """
        paid_plan = parse_paid_plan(plan)
        if paid_plan is None:
            raise ValidationError("Invalid plan selected")

        user = await self._users.get_by_uid(user_id)
        if user is None:
            raise NotFoundError("User not found", operation="select", table="users")

        customer_id = user.stripe_customer_id
        if not customer_id:
            customer_id = await self._billing.create_customer(user_id, user.email)
            await self._users.set_stripe_customer_id(user_id, customer_id)

        return await self._billing.create_checkout_session(
            customer_id=customer_id,
            plan=paid_plan,
            user_id=user_id,
        )

    async def get_subscription(self, user_id: str) -> SubscriptionView:
        """Current subscription view; users without a record are on free."""
        subscription = await self._subscriptions.get_by_user_id(user_id)
        if subscription is None:
            return SubscriptionView.free()
        return SubscriptionView.from_subscription(subscription)

    async def cancel_subscription(self, user_id: str) -> SubscriptionView:
        """
        Schedule cancellation at the end of the current billing period.

        Status is left unchanged; the deletion event sets it later.

        Raises:
            NotFoundError: the user has no subscription record
        """
        subscription = await self._subscriptions.get_by_user_id(user_id)
        if subscription is None:
            raise NotFoundError(
                "No active subscription found",
                operation="select",
                table="subscriptions",
            )

        await self._billing.cancel_at_period_end(subscription.stripe_subscription_id)

        updated = await self._subscriptions.update_by_stripe_subscription_id(
            subscription.stripe_subscription_id,
            cancel_at_period_end=True,
        )
        logger.info(
            f"Subscription {subscription.stripe_subscription_id} of user {user_id} "
            f"will cancel at period end"
        )
        return SubscriptionView.from_subscription(updated or subscription)

    # =========================================================================
    # Webhook Reconciliation
    # =========================================================================

    async def handle_event(self, event: Mapping[str, Any]) -> None:
        """Apply one verified Stripe event."""
        event_type = event.get("type")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.warning(f"Unhandled event type: {event_type}")
            return

        logger.info(f"Processing webhook event: {event_type} ({event.get('id')})")
        await handler(event["data"]["object"])

    async def _mirror_onto_user(
        self,
        subscription: Subscription,
        plan: Optional[SubscriptionPlan] = None,
    ) -> None:
        """Mirror plan/status onto the user if this is their current subscription."""
        current = await self._subscriptions.get_by_user_id(subscription.user_id)
        if current is None or current.id != subscription.id:
            logger.info(
                f"Subscription {subscription.stripe_subscription_id} is not the "
                f"current one for user {subscription.user_id}; user record unchanged"
            )
            return

        user = await self._users.set_subscription_mirror(
            subscription.user_id,
            status=subscription.status,
            plan=plan,
        )
        if user is None:
            logger.warning(
                f"Subscription {subscription.stripe_subscription_id} belongs to "
                f"unknown user {subscription.user_id}"
            )

    async def _handle_checkout_completed(self, session: Mapping[str, Any]) -> None:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        subscription_id = session.get("subscription")

        if not user_id or not subscription_id:
            logger.warning(
                f"Checkout session {session.get('id')} has no user or subscription"
            )
            return

        plan = parse_paid_plan(metadata.get("plan"))
        if plan is None:
            logger.warning(
                f"Checkout session {session.get('id')} has unknown plan "
                f"{metadata.get('plan')!r}"
            )
            return

        if await self._subscriptions.get_by_stripe_subscription_id(subscription_id):
            logger.warning(f"Subscription {subscription_id} already recorded, skipping")
            return

        remote = await self._billing.retrieve_subscription(subscription_id)
        customer_id = session.get("customer") or remote.customer_id or ""

        try:
            subscription = await self._subscriptions.create_from_remote(
                user_id=user_id,
                plan=plan,
                remote=remote,
                customer_id=customer_id,
            )
        except DuplicateError:
            logger.warning(f"Subscription {subscription_id} already recorded, skipping")
            return

        await self._mirror_onto_user(subscription, plan=plan)
        logger.info(f"Subscription created for user {user_id} with plan {plan.value}")

    async def _handle_subscription_updated(self, data: Mapping[str, Any]) -> None:
        remote = parse_remote_subscription(data)
        subscription = await self._subscriptions.update_by_stripe_subscription_id(
            remote.id,
            status=remote.status,
            current_period_start=remote.current_period_start,
            current_period_end=remote.current_period_end,
            cancel_at_period_end=remote.cancel_at_period_end,
        )
        if subscription is None:
            logger.warning(f"Update for unknown subscription {remote.id}")
            return

        await self._mirror_onto_user(subscription)
        logger.info(f"Subscription {remote.id} updated: {subscription.status.value}")

    async def _handle_subscription_deleted(self, data: Mapping[str, Any]) -> None:
        subscription_id = data.get("id")
        subscription = await self._subscriptions.update_by_stripe_subscription_id(
            subscription_id,
            status=SubscriptionStatus.CANCELED,
        )
        if subscription is None:
            logger.warning(f"Deletion of unknown subscription {subscription_id}")
            return

        await self._mirror_onto_user(subscription, plan=SubscriptionPlan.FREE)
        logger.info(f"Subscription {subscription_id} deleted")

    async def _handle_payment_failed(self, invoice: Mapping[str, Any]) -> None:
        subscription_id = invoice_subscription_id(invoice)
        if not subscription_id:
            logger.debug(f"Failed invoice {invoice.get('id')} has no subscription")
            return

        subscription = await self._subscriptions.update_by_stripe_subscription_id(
            subscription_id,
            status=SubscriptionStatus.PAST_DUE,
        )
        if subscription is None:
            logger.warning(f"Payment failed for unknown subscription {subscription_id}")
            return

        await self._mirror_onto_user(subscription)
        logger.warning(f"Payment failed for subscription {subscription_id}")
