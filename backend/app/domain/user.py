"""
User Domain Models

Identities returned by the identity provider, the locally mirrored user
record, and the authenticated request context.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domain.subscription import SubscriptionPlan, SubscriptionStatus


class AuthProvider(str, Enum):
    """Sign-in method reported by the identity provider."""
    EMAIL = "email"
    GOOGLE = "google"


class VerifiedIdentity(BaseModel):
    """A verified identity, as returned by the identity verifier."""
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    provider: AuthProvider = AuthProvider.EMAIL

    model_config = ConfigDict(frozen=True)


class User(BaseModel):
    """Local user record, keyed by the identity provider's subject id."""
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    provider: AuthProvider = AuthProvider.EMAIL
    stripe_customer_id: Optional[str] = None
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    subscription_status: Optional[SubscriptionStatus] = None
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class UserProfileUpdate(BaseModel):
    """Profile fields a user may change on their own record."""
    display_name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=2048)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller, threaded through request handlers."""
    uid: str
    email: Optional[str] = None
    provider: AuthProvider = AuthProvider.EMAIL
