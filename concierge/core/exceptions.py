"""
Exception hierarchy for the AI Concierge application.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class ConciergeException(Exception):
    """Base exception for all AI Concierge application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(ConciergeException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class NotFoundError(ConciergeException):
    """Base class for missing resources."""


class ServiceRequestNotFoundError(NotFoundError):
    """Raised when a service request cannot be found."""

    def __init__(self, request_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["service_request_id"] = request_id
        super().__init__(f"Service request not found: {request_id}", details)


class ProviderNotFoundError(NotFoundError):
    """Raised when a provider cannot be found."""

    def __init__(self, provider_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["provider_id"] = provider_id
        super().__init__(f"Provider not found: {provider_id}", details)


class UserNotFoundError(NotFoundError):
    """Raised when a user cannot be found."""

    def __init__(self, user_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["user_id"] = user_id
        super().__init__(f"User not found: {user_id}", details)


class CallNotFoundError(NotFoundError):
    """Raised when a call result is not in the webhook cache."""

    def __init__(self, call_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["call_id"] = call_id
        super().__init__(f"Call result not found: {call_id}", details)


class ConflictError(ConciergeException):
    """Raised when a unique resource already exists."""


class NoProvidersError(ValidationError):
    """Raised when a batch operation receives no providers."""

    def __init__(self, message: str = "No providers provided") -> None:
        super().__init__(message, field="providers")


class OrchestrationUnavailableError(ConciergeException):
    """
    Raised when Kestra is enabled but unhealthy.

    Kestra routing is strict: enabling it and then losing it is an
    operational error, not a reason to silently switch to direct calls.
    """

    def __init__(self, kestra_url: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["kestra_url"] = kestra_url
        super().__init__(
            f"KESTRA_ENABLED=true but Kestra health check failed at {kestra_url}. "
            "Either fix Kestra or set KESTRA_ENABLED=false to use direct API calls.",
            details,
        )


class ConfigurationError(ConciergeException):
    """Raised when a required integration is not configured."""

    def __init__(self, service: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["service"] = service
        super().__init__(f"{service} is not configured", details)


class ExternalServiceError(ConciergeException):
    """Raised when a third-party API (Vapi, Kestra, Gemini, Twilio, Places) fails."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize external service error.

        Args:
            message: Error message
            service: Name of the failing service
            details: Additional context
        """
        details = details or {}
        if service:
            details["service"] = service
        super().__init__(message, details)
