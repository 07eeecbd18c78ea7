"""
Unit tests for SubscriptionService.

Covers checkout, cancellation, the free-tier view and webhook
reconciliation against an in-memory database and a fake ledger.
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from app.domain.subscription import SubscriptionPlan, SubscriptionStatus
from app.infrastructure.exceptions import NotFoundError, ValidationError
from app.infrastructure.services.subscription_service import (
    SubscriptionService,
    invoice_subscription_id,
)


@pytest.fixture
def subscription_service(subscription_repository, user_repository, billing):
    return SubscriptionService(subscription_repository, user_repository, billing)


@pytest.fixture
async def alice_user(user_repository, alice):
    return await user_repository.create(alice)


def checkout_event(subscription_id="sub_123", user_id="uid-alice", plan="pro"):
    return {
        "id": "evt_checkout",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_123",
                "customer": "cus_test",
                "subscription": subscription_id,
                "metadata": {"userId": user_id, "plan": plan},
            }
        },
    }


def subscription_event(event_type, subscription_id="sub_123", **fields):
    data = {"id": subscription_id, "customer": "cus_test", **fields}
    return {"id": "evt_sub", "type": event_type, "data": {"object": data}}


class TestCheckout:

    async def test_invalid_plan(self, subscription_service, alice_user):
        for plan in ("free", "enterprise", None):
            with pytest.raises(ValidationError):
                await subscription_service.create_checkout_session("uid-alice", plan)

    async def test_unknown_user(self, subscription_service):
        with pytest.raises(NotFoundError):
            await subscription_service.create_checkout_session("uid-ghost", "pro")

    async def test_customer_created_once(
        self, subscription_service, alice_user, billing, user_repository
    ):
        session = await subscription_service.create_checkout_session("uid-alice", "pro")
        await subscription_service.create_checkout_session("uid-alice", "team")

        assert session.url.startswith("https://checkout.stripe.test/")
        assert billing.customers == [("uid-alice", "alice@example.com")]
        assert [c[1] for c in billing.checkouts] == [SubscriptionPlan.PRO, SubscriptionPlan.TEAM]
        assert all(c[0] == "cus_1" for c in billing.checkouts)
        user = await user_repository.get_by_uid("uid-alice")
        assert user.stripe_customer_id == "cus_1"


class TestSubscriptionView:

    async def test_free_view_when_no_record(self, subscription_service):
        view = await subscription_service.get_subscription("uid-alice")
        assert view.to_response() == {"plan": "free", "status": "active"}

    async def test_view_after_checkout(self, subscription_service, alice_user, billing):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())

        body = (await subscription_service.get_subscription("uid-alice")).to_response()
        assert body["plan"] == "pro"
        assert body["status"] == "active"
        assert body["cancelAtPeriodEnd"] is False
        assert body["currentPeriodEnd"].startswith("2026-01-31")


class TestCancel:

    async def test_cancel_without_record(self, subscription_service):
        with pytest.raises(NotFoundError):
            await subscription_service.cancel_subscription("uid-alice")

    async def test_cancel_sets_flag_only(
        self, subscription_service, alice_user, billing, subscription_repository
    ):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())

        view = await subscription_service.cancel_subscription("uid-alice")

        assert view.cancel_at_period_end is True
        assert view.status == SubscriptionStatus.ACTIVE
        assert billing.canceled == ["sub_123"]
        stored = await subscription_repository.get_by_stripe_subscription_id("sub_123")
        assert stored.status == SubscriptionStatus.ACTIVE
        assert stored.cancel_at_period_end is True


class TestWebhookReconciliation:

    async def test_checkout_completed_creates_record(
        self, subscription_service, alice_user, billing, subscription_repository, user_repository
    ):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())

        stored = await subscription_repository.get_by_stripe_subscription_id("sub_123")
        assert stored.user_id == "uid-alice"
        assert stored.plan == SubscriptionPlan.PRO
        assert stored.stripe_price_id == "price_test"
        user = await user_repository.get_by_uid("uid-alice")
        assert user.plan == SubscriptionPlan.PRO
        assert user.subscription_status == SubscriptionStatus.ACTIVE

    async def test_duplicate_checkout_creates_one_record(
        self, subscription_service, alice_user, billing, subscription_repository
    ):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())
        await subscription_service.handle_event(checkout_event())

        assert billing.retrieved == ["sub_123"]
        assert await subscription_repository.get_by_user_id("uid-alice") is not None

    async def test_checkout_without_subscription_ignored(
        self, subscription_service, billing, subscription_repository
    ):
        await subscription_service.handle_event(checkout_event(subscription_id=None))
        assert billing.retrieved == []
        assert await subscription_repository.get_by_user_id("uid-alice") is None

    async def test_subscription_updated(
        self, subscription_service, alice_user, billing, subscription_repository, user_repository
    ):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())

        await subscription_service.handle_event(
            subscription_event(
                "customer.subscription.updated",
                status="past_due",
                cancel_at_period_end=True,
                items={"data": [{
                    "price": {"id": "price_test"},
                    "current_period_start": 1767225600,
                    "current_period_end": 1769904000,
                }]},
            )
        )

        stored = await subscription_repository.get_by_stripe_subscription_id("sub_123")
        assert stored.status == SubscriptionStatus.PAST_DUE
        assert stored.cancel_at_period_end is True
        assert stored.current_period_end.year == 2026
        assert stored.current_period_end.month == 2
        user = await user_repository.get_by_uid("uid-alice")
        assert user.subscription_status == SubscriptionStatus.PAST_DUE

    async def test_update_for_unknown_subscription_is_noop(
        self, subscription_service, subscription_repository
    ):
        await subscription_service.handle_event(
            subscription_event("customer.subscription.updated", "sub_unknown", status="active")
        )
        assert await subscription_repository.get_by_stripe_subscription_id("sub_unknown") is None

    async def test_subscription_deleted(
        self, subscription_service, alice_user, billing, subscription_repository, user_repository
    ):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())

        await subscription_service.handle_event(
            subscription_event("customer.subscription.deleted", status="canceled")
        )

        stored = await subscription_repository.get_by_stripe_subscription_id("sub_123")
        assert stored.status == SubscriptionStatus.CANCELED
        user = await user_repository.get_by_uid("uid-alice")
        assert user.plan == SubscriptionPlan.FREE
        assert user.subscription_status == SubscriptionStatus.CANCELED

    async def test_events_for_older_subscription_leave_user_mirror(
        self, subscription_service, alice_user, billing, user_repository
    ):
        billing.add_remote("sub_old")
        billing.add_remote("sub_new")
        with patch(
            "app.infrastructure.db.repositories.subscription_repository.utcnow",
            return_value=datetime(2025, 1, 1),
        ):
            await subscription_service.handle_event(checkout_event("sub_old", plan="pro"))
        await subscription_service.handle_event(checkout_event("sub_new", plan="team"))

        await subscription_service.handle_event(
            subscription_event("customer.subscription.deleted", "sub_old")
        )
        await subscription_service.handle_event(
            {
                "id": "evt_invoice",
                "type": "invoice.payment_failed",
                "data": {"object": {"id": "in_1", "subscription": "sub_old"}},
            }
        )

        user = await user_repository.get_by_uid("uid-alice")
        assert user.plan == SubscriptionPlan.TEAM
        assert user.subscription_status == SubscriptionStatus.ACTIVE
        view = await subscription_service.get_subscription("uid-alice")
        assert view.to_response()["plan"] == "team"

    async def test_deleted_unknown_subscription_is_noop(
        self, subscription_service, subscription_repository
    ):
        await subscription_service.handle_event(
            subscription_event("customer.subscription.deleted", "sub_unknown")
        )
        assert await subscription_repository.get_by_stripe_subscription_id("sub_unknown") is None

    async def test_payment_failed(
        self, subscription_service, alice_user, billing, subscription_repository
    ):
        billing.add_remote("sub_123")
        await subscription_service.handle_event(checkout_event())

        await subscription_service.handle_event({
            "id": "evt_invoice",
            "type": "invoice.payment_failed",
            "data": {"object": {"id": "in_1", "subscription": "sub_123"}},
        })

        stored = await subscription_repository.get_by_stripe_subscription_id("sub_123")
        assert stored.status == SubscriptionStatus.PAST_DUE

    async def test_payment_failed_without_subscription(self, subscription_service):
        await subscription_service.handle_event({
            "id": "evt_invoice",
            "type": "invoice.payment_failed",
            "data": {"object": {"id": "in_1"}},
        })

    async def test_unhandled_event_type(self, subscription_service):
        await subscription_service.handle_event(
            {"id": "evt_x", "type": "customer.created", "data": {"object": {}}}
        )


class TestInvoiceSubscriptionId:

    def test_top_level(self):
        assert invoice_subscription_id({"subscription": "sub_1"}) == "sub_1"

    def test_nested_under_parent(self):
        invoice = {
            "subscription": None,
            "parent": {"subscription_details": {"subscription": "sub_2"}},
        }
        assert invoice_subscription_id(invoice) == "sub_2"

    def test_missing(self):
        assert invoice_subscription_id({"parent": None}) is None
