"""
Integration Tests for Webhooks (Stripe)

Verifies:
- Missing signature header (400)
- Signature verification failure (500, so Stripe retries)
- Successful event processing
- Idempotency on duplicate checkout deliveries
"""

import json

import pytest

VALID_SIGNATURE = "t=1,v1=valid"


def post_event(client, event, signature=VALID_SIGNATURE):
    headers = {"Content-Type": "application/json"}
    if signature:
        headers["stripe-signature"] = signature
    return client.post("/api/stripe/webhook", content=json.dumps(event), headers=headers)


def checkout_event(subscription_id="sub_test"):
    return {
        "id": "evt_checkout_ok",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_123",
                "customer": "cus_test",
                "subscription": subscription_id,
                "metadata": {"userId": "uid-alice", "plan": "pro"},
            }
        },
    }


class TestStripeWebhooks:

    def test_webhook_missing_signature(self, client):
        """Webhook without signature header should fail 400."""
        response = post_event(client, {"id": "evt_123"}, signature=None)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Missing stripe-signature header",
        }

    def test_webhook_invalid_signature(self, client):
        """Webhook with invalid signature should fail 500."""
        response = post_event(client, {"id": "evt_123"}, signature="t=1,v1=invalid")

        assert response.status_code == 500
        assert response.json()["message"].startswith("Webhook Error:")

    def test_webhook_checkout_completed(self, client, signed_in, billing):
        """Valid checkout.session.completed creates the subscription."""
        billing.add_remote("sub_test")

        response = post_event(client, checkout_event())

        assert response.status_code == 200
        assert response.json() == {"received": True}

        subscription = client.get("/api/stripe/subscription", headers=signed_in).json()
        assert subscription["data"]["subscription"]["plan"] == "pro"

    def test_webhook_idempotency(self, client, signed_in, billing):
        """Duplicate delivery must not retrieve or create a second record."""
        billing.add_remote("sub_test")

        assert post_event(client, checkout_event()).status_code == 200
        assert post_event(client, checkout_event()).status_code == 200

        assert billing.retrieved == ["sub_test"]

    @pytest.mark.parametrize(
        "event_type",
        ["customer.subscription.updated", "customer.subscription.deleted"],
    )
    def test_unknown_subscription_is_acknowledged(self, client, event_type):
        event = {
            "id": "evt_sub",
            "type": event_type,
            "data": {"object": {"id": "sub_unknown", "status": "canceled"}},
        }
        response = post_event(client, event)

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_unhandled_event_type(self, client):
        event = {"id": "evt_x", "type": "customer.created", "data": {"object": {}}}
        assert post_event(client, event).json() == {"received": True}
