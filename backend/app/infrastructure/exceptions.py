"""
Custom Exceptions for the AI Chat backend

Hierarchical exception classes for proper error handling across layers.
Each class maps to one HTTP status in app.main.
"""

from typing import Optional, Dict, Any


class ChatAppError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error


class ValidationError(ChatAppError):
    """Raised when input validation fails."""
    pass


class UnauthorizedError(ChatAppError):
    """Raised when a credential is missing or cannot be verified."""
    pass


class InvalidCredentialsError(UnauthorizedError):
    """Raised by the identity verifier for a rejected token."""
    pass


class ForbiddenError(ChatAppError):
    """Raised when the caller may not act on a resource."""
    pass


class DatabaseError(ChatAppError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found or not owned."""
    pass


class DuplicateError(DatabaseError):
    """Raised when attempting to create a duplicate resource."""
    pass


class UpstreamServiceError(ChatAppError):
    """Raised when an external vendor call fails."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        details = dict(details or {})
        if service:
            details["service"] = service
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class AIServiceError(UpstreamServiceError):
    """Raised when response generation fails."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {"model": model} if model else None
        super().__init__(
            message,
            service="gemini",
            operation=operation,
            details=details,
            original_error=original_error,
        )


class RateLimitError(AIServiceError):
    """Raised when the generator's quota is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, operation="generate", original_error=original_error)


class BillingServiceError(UpstreamServiceError):
    """Raised when a Stripe call fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            service="stripe",
            operation=operation,
            original_error=original_error,
        )


class WebhookSignatureError(BillingServiceError):
    """Raised when a webhook payload fails signature verification."""
    pass


class ConfigurationError(ChatAppError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
