"""
User SQLModel

Local mirror of identity-provider users plus billing fields
maintained by the subscription reconciler.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin


class UserModel(TimestampMixin, table=True):
    """
    User database table model.

    Keyed by the identity provider's subject id, which chats and
    subscriptions reference as ``user_id``.
    """

    __tablename__ = "users"

    uid: str = Field(
        sa_column=Column(String(128), primary_key=True),
        description="Identity provider subject id"
    )
    email: str = Field(
        sa_column=Column(String(320), unique=True, index=True, nullable=False)
    )
    display_name: Optional[str] = Field(default=None, max_length=255)
    photo_url: Optional[str] = Field(default=None, max_length=2048)
    provider: str = Field(default="email", max_length=20)

    # Billing mirror
    stripe_customer_id: Optional[str] = Field(default=None, index=True, max_length=255)
    plan: str = Field(default="free", max_length=20)
    subscription_status: Optional[str] = Field(default=None, max_length=20)

    last_login_at: Optional[datetime] = Field(default=None, sa_type=DateTime())
