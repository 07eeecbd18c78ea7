"""
User Service

Maps verified identities to local user records and serves profile reads
and updates.
"""

import logging
from typing import Optional

from app.domain.interfaces import IdentityVerifier
from app.domain.user import User, UserProfileUpdate, VerifiedIdentity
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.exceptions import (
    ChatAppError,
    DuplicateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


logger = logging.getLogger(__name__)


class UserService:
    """
    User directory.

    Creates a user on first sight of an identity and refreshes the
    profile fields and login time on every later verification.
    """

    def __init__(self, users: UserRepository, verifier: IdentityVerifier):
        self._users = users
        self._verifier = verifier

    async def verify_and_sync(self, id_token: str) -> User:
        """
        Verify an ID token and sync the matching user record.

        Raises:
            UnauthorizedError: verification or sync failed
        """
        try:
            identity = await self._verifier.verify(id_token)
            return await self.sync_identity(identity)
        except UnauthorizedError:
            raise
        except ChatAppError as e:
            logger.error(f"Authentication failed: {e.message}")
            raise UnauthorizedError(
                f"Authentication failed: {e.message}", original_error=e
            )

    async def sync_identity(self, identity: VerifiedIdentity) -> User:
        """Create the user for a new identity, or refresh an existing one."""
        existing = await self._users.get_by_uid(identity.uid)

        if existing is None:
            try:
                user = await self._users.create(identity)
            except DuplicateError:
                # A concurrent first login may have inserted the same uid
                existing = await self._users.get_by_uid(identity.uid)
                if existing is None:
                    raise
            else:
                logger.info(f"Created user {user.uid} ({user.provider.value})")
                return user

        user = await self._users.record_login(
            identity.uid,
            display_name=identity.display_name or existing.display_name,
            photo_url=identity.photo_url or existing.photo_url,
        )
        if user is None:
            raise NotFoundError("User not found", operation="update", table="users")
        return user

    async def get_user(self, uid: str) -> User:
        """
        Get a user by uid.

        Raises:
            NotFoundError: no such user
        """
        user = await self._users.get_by_uid(uid)
        if user is None:
            raise NotFoundError("User not found", operation="select", table="users")
        return user

    async def update_profile(self, uid: str, update: UserProfileUpdate) -> User:
        """
        Update display name and/or avatar URL.

        Empty values leave the stored field unchanged.

        Raises:
            ValidationError: neither field given
            NotFoundError: no such user
        """
        values = {}
        display_name: Optional[str] = (update.display_name or "").strip()
        if display_name:
            values["display_name"] = display_name
        if update.photo_url:
            values["photo_url"] = update.photo_url.strip()

        if not values:
            raise ValidationError(
                "At least one field (displayName or photoURL) is required"
            )

        user = await self._users.update_fields(uid, **values)
        if user is None:
            raise NotFoundError("User not found", operation="update", table="users")

        logger.info(f"Updated profile for user {uid}")
        return user
