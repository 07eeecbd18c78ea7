"""
Service Container

Builds every component once at startup and wires collaborators
explicitly. The FastAPI app keeps the container on ``app.state``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.config.settings import Settings
from app.domain.interfaces import BillingLedger, IdentityVerifier, ResponseGenerator
from app.infrastructure.ai.gemini_service import GeminiService
from app.infrastructure.auth.firebase_verifier import FirebaseIdentityVerifier
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.repositories import (
    ChatRepository,
    SubscriptionRepository,
    UserRepository,
)
from app.infrastructure.payments.stripe_service import StripeService
from app.infrastructure.services.chat_service import ChatService
from app.infrastructure.services.subscription_service import SubscriptionService
from app.infrastructure.services.user_service import UserService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceContainer:
    """One instance of each component, shared by all requests."""
    settings: Settings
    database: DatabaseManager
    users: UserRepository
    chats: ChatRepository
    subscriptions: SubscriptionRepository
    identity_verifier: IdentityVerifier
    response_generator: ResponseGenerator
    billing: BillingLedger
    user_service: UserService
    chat_service: ChatService
    subscription_service: SubscriptionService


def build_container(
    settings: Settings,
    *,
    identity_verifier: Optional[IdentityVerifier] = None,
    response_generator: Optional[ResponseGenerator] = None,
    billing: Optional[BillingLedger] = None,
    database: Optional[DatabaseManager] = None,
) -> ServiceContainer:
    """
    Construct the service graph.

    Any collaborator passed in replaces the vendor-backed default.
    """
    database = database or DatabaseManager.from_settings(settings)

    identity_verifier = identity_verifier or FirebaseIdentityVerifier(
        project_id=settings.firebase_project_id,
        jwks_url=settings.firebase_jwks_url,
    )
    response_generator = response_generator or GeminiService(
        api_key=settings.google_api_key,
        model=settings.gemini_model,
        temperature=settings.chat_temperature,
        max_output_tokens=settings.chat_max_output_tokens,
    )
    billing = billing or StripeService(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        frontend_url=settings.frontend_url,
    )

    users = UserRepository(database)
    chats = ChatRepository(database)
    subscriptions = SubscriptionRepository(database)

    logger.debug("Service container built")
    return ServiceContainer(
        settings=settings,
        database=database,
        users=users,
        chats=chats,
        subscriptions=subscriptions,
        identity_verifier=identity_verifier,
        response_generator=response_generator,
        billing=billing,
        user_service=UserService(users, identity_verifier),
        chat_service=ChatService(chats, response_generator, settings.chat_list_limit),
        subscription_service=SubscriptionService(subscriptions, users, billing),
    )
