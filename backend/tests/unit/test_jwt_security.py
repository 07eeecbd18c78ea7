"""
Security Test Suite: Firebase ID Token Authentication

Tests that get_auth_context with the real FirebaseIdentityVerifier:
- Rejects missing Authorization headers
- Rejects malformed tokens
- Rejects expired tokens
- Rejects tokens with the wrong audience, issuer, algorithm, or signature
- Accepts properly signed RS256 tokens (mocked JWKS)
"""

import time
from unittest.mock import MagicMock

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.api.dependencies import get_auth_context, get_identity_verifier
from app.domain.user import AuthContext
from app.infrastructure.auth.firebase_verifier import FirebaseIdentityVerifier
from app.infrastructure.exceptions import ChatAppError
from app.main import app_error_handler


PROJECT_ID = "demo-project"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"

SIGNING_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
OTHER_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_token(key=SIGNING_KEY, algorithm="RS256", **overrides) -> str:
    now = int(time.time())
    payload = {
        "sub": "uid-123",
        "email": "user@example.com",
        "name": "Test User",
        "aud": PROJECT_ID,
        "iss": ISSUER,
        "iat": now,
        "exp": now + 3600,
        "firebase": {"sign_in_provider": "google.com"},
    }
    payload.update(overrides)
    return jwt.encode(payload, key, algorithm=algorithm, headers={"kid": "test-key"})


# ---------------------------------------------------------------------------
# Minimal app that uses the real dependency
# ---------------------------------------------------------------------------

verifier = FirebaseIdentityVerifier(PROJECT_ID, "https://example.com/jwks")
verifier._jwks_client = MagicMock()
verifier._jwks_client.get_signing_key_from_jwt.return_value = MagicMock(
    key=SIGNING_KEY.public_key()
)

test_app = FastAPI()
test_app.add_exception_handler(ChatAppError, app_error_handler)
test_app.dependency_overrides[get_identity_verifier] = lambda: verifier


@test_app.get("/protected")
async def protected_endpoint(auth: AuthContext = Depends(get_auth_context)):
    return {"uid": auth.uid, "provider": auth.provider.value}


client = TestClient(test_app, raise_server_exceptions=False)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Tests: rejection scenarios
# ---------------------------------------------------------------------------


class TestTokenRejection:
    """Verify that invalid/missing tokens are rejected with 401."""

    def test_no_auth_header(self):
        resp = client.get("/protected")
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_empty_bearer(self):
        resp = client.get("/protected", headers={"Authorization": "Bearer "})
        assert resp.status_code == 401

    def test_malformed_scheme(self):
        resp = client.get("/protected", headers={"Authorization": "Basic abc123"})
        assert resp.status_code == 401

    def test_garbage_token(self):
        resp = client.get("/protected", headers=bearer("not.a.jwt"))
        assert resp.status_code == 401

    def test_expired_token(self):
        token = make_token(exp=int(time.time()) - 60)
        resp = client.get("/protected", headers=bearer(token))
        assert resp.status_code == 401
        assert resp.json()["message"] == "Token has expired"

    def test_wrong_audience(self):
        resp = client.get("/protected", headers=bearer(make_token(aud="other-project")))
        assert resp.status_code == 401

    def test_wrong_issuer(self):
        token = make_token(iss="https://securetoken.google.com/other-project")
        resp = client.get("/protected", headers=bearer(token))
        assert resp.status_code == 401

    def test_foreign_signature(self):
        resp = client.get("/protected", headers=bearer(make_token(key=OTHER_KEY)))
        assert resp.status_code == 401

    def test_symmetric_algorithm_rejected(self):
        """An HS256 token must not be accepted in place of RS256."""
        token = make_token(key="shared-secret", algorithm="HS256")
        resp = client.get("/protected", headers=bearer(token))
        assert resp.status_code == 401

    def test_missing_email(self):
        resp = client.get("/protected", headers=bearer(make_token(email=None)))
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Tests: acceptance scenarios (with mocked JWKS)
# ---------------------------------------------------------------------------


class TestTokenAcceptance:
    """Verify that valid tokens are accepted."""

    def test_valid_rs256_token(self):
        resp = client.get("/protected", headers=bearer(make_token()))
        assert resp.status_code == 200
        assert resp.json() == {"uid": "uid-123", "provider": "google"}

    def test_password_provider(self):
        token = make_token(firebase={"sign_in_provider": "password"})
        resp = client.get("/protected", headers=bearer(token))
        assert resp.json()["provider"] == "email"
