"""
Firebase Identity Verifier

Verifies Firebase ID tokens cryptographically against Google's published
signing keys (RS256). Never decode without verification.
"""

import asyncio
import logging
from typing import Optional

import jwt
from jwt import PyJWKClient

from app.domain.user import AuthProvider, VerifiedIdentity
from app.infrastructure.exceptions import ConfigurationError, InvalidCredentialsError


logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"


def provider_from_claims(claims: dict) -> AuthProvider:
    """Derive the sign-in provider tag from the ``firebase`` claim."""
    firebase_claims = claims.get("firebase") or {}
    sign_in_provider = firebase_claims.get("sign_in_provider") or ""
    if "google" in sign_in_provider:
        return AuthProvider.GOOGLE
    return AuthProvider.EMAIL


def identity_from_claims(claims: dict) -> VerifiedIdentity:
    """
    Build a VerifiedIdentity from verified token claims.

    Raises:
        InvalidCredentialsError: the token carries no subject or email
    """
    uid = claims.get("sub") or claims.get("user_id")
    if not uid:
        raise InvalidCredentialsError("Invalid token: missing user ID")

    email = claims.get("email")
    if not email:
        raise InvalidCredentialsError("Invalid token: missing email")

    return VerifiedIdentity(
        uid=uid,
        email=email,
        display_name=claims.get("name"),
        photo_url=claims.get("picture"),
        provider=provider_from_claims(claims),
    )


class FirebaseIdentityVerifier:
    """
    Identity verifier for Firebase Authentication ID tokens.

    PyJWKClient caches Google's keys internally; one verifier is built
    at startup and shared by all requests.
    """

    def __init__(self, project_id: Optional[str], jwks_url: str):
        self._project_id = project_id
        self._jwks_client = PyJWKClient(jwks_url, cache_keys=True)

    @property
    def issuer(self) -> str:
        return f"{FIREBASE_ISSUER_PREFIX}{self._project_id}"

    def _decode(self, token: str) -> dict:
        """Verify signature, audience, issuer and expiry."""
        signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=self._project_id,
            issuer=self.issuer,
            options={"require": ["exp", "iat", "sub", "iss", "aud"]},
        )

    async def verify(self, token: str) -> VerifiedIdentity:
        """
        Verify a Firebase ID token.

        Args:
            token: Raw bearer credential

        Returns:
            The verified identity

        Raises:
            InvalidCredentialsError: token missing, expired, or invalid
        """
        if not self._project_id:
            raise ConfigurationError(
                "Firebase project is not configured",
                missing_keys=["FIREBASE_PROJECT_ID"],
            )
        if not token:
            raise InvalidCredentialsError("Missing authorization token")

        try:
            claims = await asyncio.to_thread(self._decode, token)
        except jwt.ExpiredSignatureError as e:
            raise InvalidCredentialsError("Token has expired", original_error=e)
        except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as e:
            logger.warning("Firebase token verification failed: %s", e)
            raise InvalidCredentialsError("Invalid or expired token", original_error=e)

        return identity_from_claims(claims)
