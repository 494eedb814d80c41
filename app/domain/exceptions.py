"""Domain exceptions for the gateway.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class GatewayException(Exception):
    """Base exception for all gateway errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error envelope (error, message, details)."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(GatewayException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(GatewayException):
    """Raised when authentication fails (e.g. invalid credentials or token)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class TokenExpiredException(GatewayException):
    """Raised when an internal access token is past its expiry."""

    def __init__(self, message: str = "Access token expired") -> None:
        super().__init__(message, "TOKEN_EXPIRED")


class InvalidRefreshTokenException(GatewayException):
    """Raised when a refresh token is malformed, expired, revoked or already rotated."""

    def __init__(self, message: str = "Invalid refresh token") -> None:
        super().__init__(message, "INVALID_REFRESH_TOKEN")


class AuthorizationException(GatewayException):
    """Raised when the account lacks the role required for the operation."""

    def __init__(
        self,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional action and message.

        Args:
            action: Optional action that was attempted (e.g. 'approve waitlist').
            message: Human-readable message; replaced when action is given.
        """
        if action:
            message = f"Permission denied: {action}"
        details: dict[str, Any] = {"action": action} if action else {}
        super().__init__(message, "PERMISSION_DENIED", details)


class WaitlistDeniedException(GatewayException):
    """Raised when an email is missing from, or not yet approved on, the waiting list."""

    def __init__(self, email: str, reason: str, decision: str) -> None:
        """Initialize with the denied email and the user-facing reason.

        Args:
            email: Normalized email that was checked.
            reason: Exact message shown to the user.
            decision: Gate decision name (not_found or pending_approval).
        """
        super().__init__(
            reason,
            "WAITLIST_DENIED",
            {"email": email, "decision": decision},
        )


class ResourceNotFoundException(GatewayException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'account', 'waitlist_entry').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class AccountAlreadyExistsException(GatewayException):
    """Raised when registering an email that already has an account."""

    def __init__(self) -> None:
        super().__init__(
            "An account with this email already exists",
            "ACCOUNT_ALREADY_EXISTS",
            {},
        )


class WaitlistEntryExistsException(GatewayException):
    """Raised when joining the waiting list twice with the same email."""

    def __init__(self, email: str) -> None:
        super().__init__(
            f"{email} is already on the waiting list",
            "WAITLIST_ENTRY_EXISTS",
            {"email": email},
        )


class UnsupportedProviderException(GatewayException):
    """Raised for an unknown or unconfigured identity/email provider."""

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Unsupported provider: {provider}",
            "UNSUPPORTED_PROVIDER",
            {"provider": provider},
        )


class ProfileExtractionException(GatewayException):
    """Raised when a provider profile carries no usable email address."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Could not read an email address from the {provider} profile",
            "PROFILE_EXTRACTION_ERROR",
            {"provider": provider},
        )


class ConfigurationException(GatewayException):
    """Raised when required configuration (e.g. a signing secret) is missing."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR")


class ServiceUnavailableException(GatewayException):
    """Raised when an optional collaborator (e.g. the summarizer) is not configured."""

    def __init__(self, service: str) -> None:
        super().__init__(
            f"{service} is not available",
            "SERVICE_UNAVAILABLE",
            {"service": service},
        )
