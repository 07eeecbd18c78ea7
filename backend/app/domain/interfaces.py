"""
Collaborator Interfaces for the AI Chat backend

Protocols for the external services the application consumes.
Services depend on these, never on a vendor SDK directly.
"""

from typing import Protocol, Sequence, runtime_checkable

from app.domain.chat import ChatTurn
from app.domain.subscription import CheckoutSession, RemoteSubscription, SubscriptionPlan
from app.domain.user import VerifiedIdentity


@runtime_checkable
class IdentityVerifier(Protocol):
    """Validates a bearer credential and returns the verified identity."""

    async def verify(self, token: str) -> VerifiedIdentity:
        ...


@runtime_checkable
class ResponseGenerator(Protocol):
    """Language-model completion service."""

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        """Return the next assistant turn for an ordered conversation."""
        ...

    async def generate_chat_title(self, first_message: str) -> str:
        """Return a short title; must not raise."""
        ...


@runtime_checkable
class BillingLedger(Protocol):
    """Payment provider owning customers, checkouts and subscriptions."""

    async def create_customer(self, user_id: str, email: str) -> str:
        ...

    async def create_checkout_session(
        self,
        customer_id: str,
        plan: SubscriptionPlan,
        user_id: str,
    ) -> CheckoutSession:
        ...

    async def retrieve_subscription(self, subscription_id: str) -> RemoteSubscription:
        ...

    async def cancel_at_period_end(self, subscription_id: str) -> RemoteSubscription:
        ...

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict:
        ...
