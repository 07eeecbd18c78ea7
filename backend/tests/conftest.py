"""
Test configuration and fixtures for the AI Chat backend.

Provides an in-memory database, fake vendor collaborators, a wired
service container, and an HTTP test client.
"""

import json
from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.container import build_container
from app.domain.chat import ChatTurn
from app.domain.subscription import (
    CheckoutSession,
    RemoteSubscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from app.domain.user import AuthProvider, VerifiedIdentity
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.repositories import (
    ChatRepository,
    SubscriptionRepository,
    UserRepository,
)
from app.infrastructure.exceptions import (
    AIServiceError,
    InvalidCredentialsError,
    NotFoundError,
    WebhookSignatureError,
)


IN_MEMORY_URL = "sqlite+aiosqlite://"

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"
VALID_SIGNATURE = "t=1,v1=valid"


# =============================================================================
# Fake Collaborators
# =============================================================================

class FakeIdentityVerifier:
    """Accepts a fixed set of tokens."""

    def __init__(self, identities: Dict[str, VerifiedIdentity]):
        self.identities = dict(identities)

    async def verify(self, token: str) -> VerifiedIdentity:
        identity = self.identities.get(token)
        if identity is None:
            raise InvalidCredentialsError("Invalid or expired token")
        return identity


class FakeResponseGenerator:
    """Returns canned replies and records every call."""

    def __init__(self, reply: str = "Hello!", title: str = "Friendly Greeting"):
        self.reply = reply
        self.title = title
        self.error: Optional[Exception] = None
        self.completions: List[List[ChatTurn]] = []
        self.title_requests: List[str] = []

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        self.completions.append(list(turns))
        if self.error is not None:
            raise self.error
        return self.reply

    async def generate_chat_title(self, first_message: str) -> str:
        self.title_requests.append(first_message)
        return self.title


class FakeBillingLedger:
    """In-memory stand-in for Stripe."""

    def __init__(self):
        self.customers: List[tuple] = []
        self.checkouts: List[tuple] = []
        self.canceled: List[str] = []
        self.remote: Dict[str, RemoteSubscription] = {}
        self.retrieved: List[str] = []

    def add_remote(
        self,
        subscription_id: str,
        customer_id: str = "cus_test",
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ) -> RemoteSubscription:
        start = datetime(2026, 1, 1)
        remote = RemoteSubscription(
            id=subscription_id,
            customer_id=customer_id,
            price_id="price_test",
            status=status,
            current_period_start=start,
            current_period_end=start + timedelta(days=30),
            cancel_at_period_end=False,
        )
        self.remote[subscription_id] = remote
        return remote

    async def create_customer(self, user_id: str, email: str) -> str:
        self.customers.append((user_id, email))
        return f"cus_{len(self.customers)}"

    async def create_checkout_session(
        self,
        customer_id: str,
        plan: SubscriptionPlan,
        user_id: str,
    ) -> CheckoutSession:
        self.checkouts.append((customer_id, plan, user_id))
        session_id = f"cs_{len(self.checkouts)}"
        return CheckoutSession(
            session_id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
        )

    async def retrieve_subscription(self, subscription_id: str) -> RemoteSubscription:
        self.retrieved.append(subscription_id)
        if subscription_id not in self.remote:
            raise NotFoundError(f"No such subscription: {subscription_id}")
        return self.remote[subscription_id]

    async def cancel_at_period_end(self, subscription_id: str) -> RemoteSubscription:
        self.canceled.append(subscription_id)
        remote = self.remote.get(subscription_id) or self.add_remote(subscription_id)
        updated = remote.model_copy(update={"cancel_at_period_end": True})
        self.remote[subscription_id] = updated
        return updated

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict:
        if signature != VALID_SIGNATURE:
            raise WebhookSignatureError("Invalid signature: no signatures found")
        return json.loads(payload)


# =============================================================================
# Identity Fixtures
# =============================================================================

@pytest.fixture
def alice() -> VerifiedIdentity:
    return VerifiedIdentity(
        uid="uid-alice",
        email="alice@example.com",
        display_name="Alice",
        photo_url="https://example.com/alice.png",
        provider=AuthProvider.GOOGLE,
    )


@pytest.fixture
def bob() -> VerifiedIdentity:
    return VerifiedIdentity(uid="uid-bob", email="bob@example.com")


@pytest.fixture
def identity_verifier(alice, bob) -> FakeIdentityVerifier:
    return FakeIdentityVerifier({ALICE_TOKEN: alice, BOB_TOKEN: bob})


@pytest.fixture
def response_generator() -> FakeResponseGenerator:
    return FakeResponseGenerator()


@pytest.fixture
def billing() -> FakeBillingLedger:
    return FakeBillingLedger()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def database() -> AsyncGenerator[DatabaseManager, None]:
    """Fresh in-memory database with all tables."""
    db = DatabaseManager(IN_MEMORY_URL)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def user_repository(database) -> UserRepository:
    return UserRepository(database)


@pytest.fixture
def chat_repository(database) -> ChatRepository:
    return ChatRepository(database)


@pytest.fixture
def subscription_repository(database) -> SubscriptionRepository:
    return SubscriptionRepository(database)


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="testing",
        database_url=IN_MEMORY_URL,
        database_auto_create=True,
        frontend_url="http://localhost:3000",
    )


@pytest.fixture
def container(test_settings, identity_verifier, response_generator, billing):
    """Container wired with fakes; tables are created by the app lifespan."""
    return build_container(
        test_settings,
        identity_verifier=identity_verifier,
        response_generator=response_generator,
        billing=billing,
        database=DatabaseManager(IN_MEMORY_URL),
    )


@pytest.fixture
def app(test_settings, container):
    """Get the FastAPI application."""
    from app.main import create_app
    return create_app(test_settings, container)


@pytest.fixture
def client(app):
    """Synchronous test client with the lifespan running."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def alice_headers() -> dict:
    return {"Authorization": f"Bearer {ALICE_TOKEN}"}


@pytest.fixture
def bob_headers() -> dict:
    return {"Authorization": f"Bearer {BOB_TOKEN}"}


@pytest.fixture
def signed_in(client, alice_headers):
    """Sign alice in so her user record exists."""
    response = client.post("/api/auth/verify", json={"idToken": ALICE_TOKEN})
    assert response.status_code == 200
    return alice_headers
