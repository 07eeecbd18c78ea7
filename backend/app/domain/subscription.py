"""
Subscription Domain Models

Domain models for subscription management following Clean Architecture.
Enums, DTOs, and domain entities for the subscription bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionPlan(str, Enum):
    """Subscription plan levels."""
    FREE = "free"
    PRO = "pro"
    TEAM = "team"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    TRIALING = "trialing"


PAID_PLANS = (SubscriptionPlan.PRO, SubscriptionPlan.TEAM)

# Stripe statuses outside the local enumeration
_REMOTE_STATUS_MAP = {
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.PAST_DUE,
    "paused": SubscriptionStatus.PAST_DUE,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}


def map_remote_status(value: Optional[str]) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the local closed enumeration."""
    if not value:
        return SubscriptionStatus.ACTIVE
    try:
        return SubscriptionStatus(value)
    except ValueError:
        return _REMOTE_STATUS_MAP.get(value, SubscriptionStatus.PAST_DUE)


# =============================================================================
# Domain Entities
# =============================================================================

class Subscription(BaseModel):
    """Local mirror of one Stripe subscription."""
    id: UUID
    user_id: str
    stripe_customer_id: str
    stripe_subscription_id: str
    stripe_price_id: str
    plan: SubscriptionPlan
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class RemoteSubscription(BaseModel):
    """Fields read back from a Stripe subscription object."""
    id: str
    customer_id: Optional[str] = None
    price_id: Optional[str] = None
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class CheckoutSession(BaseModel):
    """Redirect target for a hosted checkout."""
    session_id: str
    url: Optional[str] = None


class SubscriptionView(BaseModel):
    """Public view of a user's subscription."""
    plan: SubscriptionPlan
    status: SubscriptionStatus
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None

    def to_response(self) -> dict:
        """Serialize with camelCase keys, omitting unset period fields."""
        body = {"plan": self.plan.value, "status": self.status.value}
        if self.current_period_end is not None:
            body["currentPeriodEnd"] = self.current_period_end.isoformat()
        if self.cancel_at_period_end is not None:
            body["cancelAtPeriodEnd"] = self.cancel_at_period_end
        return body

    @classmethod
    def free(cls) -> "SubscriptionView":
        """Implicit view for users who never checked out."""
        return cls(plan=SubscriptionPlan.FREE, status=SubscriptionStatus.ACTIVE)

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SubscriptionView":
        return cls(
            plan=subscription.plan,
            status=subscription.status,
            current_period_end=subscription.current_period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
        )


# =============================================================================
# Plan Catalog (Business Logic)
# =============================================================================

class PlanDetails(BaseModel):
    """Published price and features for a paid plan."""
    name: str
    price: int = Field(description="Unit amount in cents")
    currency: str = "usd"
    interval: str = "month"
    features: list[str]


STRIPE_PLANS = {
    SubscriptionPlan.PRO: PlanDetails(
        name="Pro",
        price=1900,
        features=[
            "Unlimited messages",
            "Advanced AI model",
            "Priority response time",
            "Email support",
            "Custom instructions",
            "Chat history export",
            "API access",
        ],
    ),
    SubscriptionPlan.TEAM: PlanDetails(
        name="Team",
        price=4900,
        features=[
            "Everything in Pro",
            "Up to 10 team members",
            "Shared chat workspaces",
            "Admin dashboard",
            "Priority support",
            "Custom AI training",
            "Advanced analytics",
            "SSO integration",
        ],
    ),
}


def parse_paid_plan(value: Optional[str]) -> Optional[SubscriptionPlan]:
    """Return the paid plan named by value, or None if it is not purchasable."""
    try:
        plan = SubscriptionPlan(value)
    except ValueError:
        return None
    return plan if plan in PAID_PLANS else None
