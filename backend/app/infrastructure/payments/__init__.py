"""
Payments Infrastructure Module

Stripe payment processing and subscription management services.
"""

from app.infrastructure.payments.stripe_service import StripeService

__all__ = ["StripeService"]
