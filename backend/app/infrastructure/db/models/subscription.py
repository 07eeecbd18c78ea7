"""
Subscription Database Model

SQLModel table for subscription data persistence.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class SubscriptionModel(UUIDMixin, TimestampMixin, table=True):
    """
    Subscription table for storing user subscription data.

    One row per Stripe subscription; ``stripe_subscription_id`` is the
    upsert key for webhook events.
    """

    __tablename__ = "subscriptions"

    user_id: str = Field(
        sa_column=Column(String(128), index=True, nullable=False)
    )

    # Stripe IDs
    stripe_customer_id: str = Field(max_length=255)
    stripe_subscription_id: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False)
    )
    stripe_price_id: str = Field(max_length=255)

    # Subscription details
    plan: str = Field(default="free", max_length=20)
    status: str = Field(default="active", max_length=20)

    # Billing period dates
    current_period_start: Optional[datetime] = Field(default=None, sa_type=DateTime())
    current_period_end: Optional[datetime] = Field(default=None, sa_type=DateTime())
    cancel_at_period_end: bool = Field(default=False)
