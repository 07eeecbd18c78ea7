"""
Subscription Repository

Data access layer for subscription persistence.
Rows are keyed by the Stripe subscription id for webhook upserts.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from app.domain.subscription import (
    RemoteSubscription,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.subscription import SubscriptionModel
from app.infrastructure.db.repositories.base_repository import BaseRepository
from app.infrastructure.exceptions import DuplicateError


logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[SubscriptionModel, Subscription]):
    """
    Repository for subscription data access.

    Implements CRUD operations with domain model mapping.
    """

    def __init__(self, db: DatabaseManager):
        super().__init__(db, SubscriptionModel, Subscription)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Get the most recent subscription for a user.

        Args:
            user_id: Owning user's uid

        Returns:
            Subscription domain model or None
        """
        stmt = (
            select(SubscriptionModel)
            .where(SubscriptionModel.user_id == user_id)
            .order_by(SubscriptionModel.created_at.desc())
            .limit(1)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return self._to_domain(result.scalar_one_or_none())

    async def get_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
    ) -> Optional[Subscription]:
        """
        Get subscription by Stripe subscription ID.

        Args:
            stripe_subscription_id: Stripe subscription ID

        Returns:
            Subscription domain model or None
        """
        stmt = select(SubscriptionModel).where(
            SubscriptionModel.stripe_subscription_id == stripe_subscription_id
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return self._to_domain(result.scalar_one_or_none())

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create_from_remote(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        remote: RemoteSubscription,
        customer_id: str,
    ) -> Subscription:
        """
        Insert the local record for a newly purchased subscription.

        Raises:
            DuplicateError: a record for this Stripe subscription already exists
        """
        now = utcnow()
        row = SubscriptionModel(
            user_id=user_id,
            stripe_customer_id=customer_id,
            stripe_subscription_id=remote.id,
            stripe_price_id=remote.price_id or "",
            plan=plan.value,
            status=remote.status.value,
            current_period_start=remote.current_period_start,
            current_period_end=remote.current_period_end,
            cancel_at_period_end=remote.cancel_at_period_end,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._db.session() as session:
                session.add(row)
                await session.flush()
                await session.refresh(row)
                created = self._to_domain(row)
        except IntegrityError as e:
            raise DuplicateError(
                f"Subscription {remote.id} already exists",
                operation="insert",
                table="subscriptions",
                original_error=e,
            )

        logger.info(f"Created subscription {created.id} for user {user_id}")
        return created

    async def update_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
        *,
        status: Optional[SubscriptionStatus] = None,
        current_period_start: Optional[datetime] = None,
        current_period_end: Optional[datetime] = None,
        cancel_at_period_end: Optional[bool] = None,
    ) -> Optional[Subscription]:
        """
        Apply a single UPDATE keyed by the Stripe subscription id.

        Only the given fields change.

        Returns:
            Updated subscription, or None when no record matches
        """
        values = {"updated_at": utcnow()}
        if status is not None:
            values["status"] = status.value
        if current_period_start is not None:
            values["current_period_start"] = current_period_start
        if current_period_end is not None:
            values["current_period_end"] = current_period_end
        if cancel_at_period_end is not None:
            values["cancel_at_period_end"] = cancel_at_period_end

        async with self._db.session() as session:
            result = await session.execute(
                update(SubscriptionModel)
                .where(SubscriptionModel.stripe_subscription_id == stripe_subscription_id)
                .values(**values)
            )
            if result.rowcount == 0:
                return None
            row = (
                await session.execute(
                    select(SubscriptionModel).where(
                        SubscriptionModel.stripe_subscription_id == stripe_subscription_id
                    )
                )
            ).scalar_one()
            return self._to_domain(row)
