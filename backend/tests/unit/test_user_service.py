"""
Unit tests for UserService.
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.domain.user import AuthProvider, UserProfileUpdate, VerifiedIdentity
from app.infrastructure.exceptions import (
    ConfigurationError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.infrastructure.services.user_service import UserService


@pytest.fixture
def user_service(user_repository, identity_verifier) -> UserService:
    return UserService(user_repository, identity_verifier)


class TestVerifyAndSync:

    async def test_first_sight_creates_user(self, user_service, user_repository):
        user = await user_service.verify_and_sync("token-alice")

        assert user.uid == "uid-alice"
        assert user.provider == AuthProvider.GOOGLE
        assert (await user_repository.get_by_uid("uid-alice")) is not None

    async def test_invalid_token(self, user_service):
        with pytest.raises(UnauthorizedError):
            await user_service.verify_and_sync("bogus")

    async def test_verifier_misconfigured_is_unauthorized(self, user_repository):
        verifier = AsyncMock()
        verifier.verify.side_effect = ConfigurationError("Firebase project is not configured")
        service = UserService(user_repository, verifier)

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.verify_and_sync("token")
        assert exc_info.value.message.startswith("Authentication failed:")

    async def test_refresh_keeps_profile_when_provider_has_none(
        self, user_service, identity_verifier
    ):
        first = await user_service.verify_and_sync("token-alice")
        identity_verifier.identities["token-alice"] = VerifiedIdentity(
            uid="uid-alice", email="alice@example.com", provider=AuthProvider.GOOGLE
        )

        second = await user_service.verify_and_sync("token-alice")

        assert second.display_name == "Alice"
        assert second.photo_url == first.photo_url
        assert second.last_login_at >= first.last_login_at

    async def test_refresh_takes_new_profile(self, user_service, identity_verifier):
        await user_service.verify_and_sync("token-alice")
        identity_verifier.identities["token-alice"] = VerifiedIdentity(
            uid="uid-alice", email="alice@example.com", display_name="Alice Liddell"
        )

        user = await user_service.verify_and_sync("token-alice")

        assert user.display_name == "Alice Liddell"

    async def test_concurrent_first_login_reuses_row(
        self, user_service, user_repository, alice
    ):
        """Another request inserted the uid between lookup and insert."""
        existing = await user_repository.create(alice)

        with patch.object(
            user_repository, "get_by_uid", AsyncMock(side_effect=[None, existing])
        ):
            user = await user_service.verify_and_sync("token-alice")

        assert user.uid == "uid-alice"
        assert user.last_login_at >= existing.last_login_at

    async def test_email_taken_by_other_uid(self, user_service, identity_verifier):
        await user_service.verify_and_sync("token-alice")
        identity_verifier.identities["token-alice-2"] = VerifiedIdentity(
            uid="uid-alice-2", email="alice@example.com"
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            await user_service.verify_and_sync("token-alice-2")
        assert exc_info.value.message.startswith("Authentication failed:")


class TestProfile:

    async def test_get_unknown_user(self, user_service):
        with pytest.raises(NotFoundError):
            await user_service.get_user("uid-ghost")

    async def test_update_requires_a_field(self, user_service):
        await user_service.verify_and_sync("token-alice")
        with pytest.raises(ValidationError):
            await user_service.update_profile("uid-alice", UserProfileUpdate())

    async def test_update_display_name_only(self, user_service):
        await user_service.verify_and_sync("token-alice")

        user = await user_service.update_profile(
            "uid-alice", UserProfileUpdate(display_name="  Al  ")
        )

        assert user.display_name == "Al"
        assert user.photo_url == "https://example.com/alice.png"

    async def test_update_unknown_user(self, user_service):
        with pytest.raises(NotFoundError):
            await user_service.update_profile(
                "uid-ghost", UserProfileUpdate(display_name="Ghost")
            )
