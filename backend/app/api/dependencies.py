"""
API Dependencies

FastAPI dependency injection for authentication and services.

Services are read from the container on ``app.state``; nothing here
holds module-level state. Bearer tokens are verified by the identity
verifier, never decoded without verification.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.container import ServiceContainer
from app.domain.interfaces import BillingLedger, IdentityVerifier
from app.domain.user import AuthContext
from app.infrastructure.exceptions import UnauthorizedError
from app.infrastructure.services.chat_service import ChatService
from app.infrastructure.services.subscription_service import SubscriptionService
from app.infrastructure.services.user_service import UserService


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Return the container built at startup."""
    return request.app.state.container


def get_identity_verifier(
    container: ServiceContainer = Depends(get_container),
) -> IdentityVerifier:
    return container.identity_verifier


def get_billing(container: ServiceContainer = Depends(get_container)) -> BillingLedger:
    return container.billing


def get_user_service(container: ServiceContainer = Depends(get_container)) -> UserService:
    return container.user_service


def get_chat_service(container: ServiceContainer = Depends(get_container)) -> ChatService:
    return container.chat_service


def get_subscription_service(
    container: ServiceContainer = Depends(get_container),
) -> SubscriptionService:
    return container.subscription_service


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> AuthContext:
    """
    Verify the bearer token and return the caller's context.

    Raises:
        UnauthorizedError: token missing, expired, or invalid (401)
    """
    if not credentials or not credentials.credentials:
        raise UnauthorizedError("No token provided")

    identity = await verifier.verify(credentials.credentials)
    return AuthContext(
        uid=identity.uid,
        email=identity.email,
        provider=identity.provider,
    )
