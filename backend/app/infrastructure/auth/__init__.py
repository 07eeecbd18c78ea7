"""
Authentication Infrastructure Module

Identity verification against the external identity provider.
"""

from app.infrastructure.auth.firebase_verifier import FirebaseIdentityVerifier

__all__ = ["FirebaseIdentityVerifier"]
