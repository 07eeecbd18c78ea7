"""
User Repository

Data access for locally mirrored user records.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.domain.subscription import SubscriptionPlan, SubscriptionStatus
from app.domain.user import User, VerifiedIdentity
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.db.repositories.base_repository import BaseRepository
from app.infrastructure.exceptions import DuplicateError


logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[UserModel, User]):
    """Repository for the users table."""

    def __init__(self, db: DatabaseManager):
        super().__init__(db, UserModel, User)

    async def get_by_uid(self, uid: str) -> Optional[User]:
        async with self._db.session() as session:
            row = await session.get(UserModel, uid)
            return self._to_domain(row)

    async def create(self, identity: VerifiedIdentity) -> User:
        """
        Insert a user for a first-seen identity.

        Raises:
            DuplicateError: the uid or email is already stored
        """
        now = utcnow()
        row = UserModel(
            uid=identity.uid,
            email=identity.email.strip().lower(),
            display_name=identity.display_name,
            photo_url=identity.photo_url,
            provider=identity.provider.value,
            created_at=now,
            updated_at=now,
            last_login_at=now,
        )
        try:
            async with self._db.session() as session:
                session.add(row)
                await session.flush()
                await session.refresh(row)
                return self._to_domain(row)
        except IntegrityError as e:
            raise DuplicateError(
                f"User {identity.uid} conflicts with an existing user",
                operation="insert",
                table="users",
                original_error=e,
            )

    async def update_fields(self, uid: str, **values) -> Optional[User]:
        """
        Apply a single UPDATE to one user.

        Args:
            uid: User's subject id
            **values: Column values to set

        Returns:
            The updated user, or None if no such user exists
        """
        values["updated_at"] = utcnow()
        async with self._db.session() as session:
            result = await session.execute(
                update(UserModel).where(UserModel.uid == uid).values(**values)
            )
            if result.rowcount == 0:
                return None
            row = await session.get(UserModel, uid, populate_existing=True)
            return self._to_domain(row)

    async def record_login(
        self,
        uid: str,
        display_name: Optional[str],
        photo_url: Optional[str],
    ) -> Optional[User]:
        """Refresh profile fields and stamp the login time."""
        return await self.update_fields(
            uid,
            display_name=display_name,
            photo_url=photo_url,
            last_login_at=utcnow(),
        )

    async def set_stripe_customer_id(self, uid: str, customer_id: str) -> Optional[User]:
        return await self.update_fields(uid, stripe_customer_id=customer_id)

    async def set_subscription_mirror(
        self,
        uid: str,
        status: SubscriptionStatus,
        plan: Optional[SubscriptionPlan] = None,
    ) -> Optional[User]:
        """Mirror subscription plan and status onto the user record."""
        values = {"subscription_status": status.value}
        if plan is not None:
            values["plan"] = plan.value
        return await self.update_fields(uid, **values)
