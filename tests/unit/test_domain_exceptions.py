"""Tests for domain and provider exceptions (error_code, message, details)."""

from app.domain.exceptions import (
    AccountAlreadyExistsException,
    AuthenticationException,
    AuthorizationException,
    GatewayException,
    InvalidRefreshTokenException,
    ResourceNotFoundException,
    UnsupportedProviderException,
    ValidationException,
    WaitlistDeniedException,
)
from app.infrastructure.exceptions import (
    ProviderAuthExpiredError,
    ProviderAuthRejectedError,
    ProviderOperationError,
    TokenCipherError,
)


def test_gateway_exception_default_error_code() -> None:
    """Base GatewayException uses class name as error_code when not provided."""
    exc = GatewayException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "GatewayException"
    assert exc.details == {}


def test_to_dict_envelope() -> None:
    exc = GatewayException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {"error": "CUSTOM", "message": "Oops", "details": {"key": "value"}}


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("Invalid format", field="email")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "email"}
    assert ValidationException("Invalid").details == {}


def test_authentication_exception_default_and_custom_message() -> None:
    assert AuthenticationException().error_code == "AUTHENTICATION_ERROR"
    assert AuthenticationException("Invalid credentials").message == "Invalid credentials"


def test_authorization_exception_with_action() -> None:
    exc = AuthorizationException("manage")
    assert exc.error_code == "PERMISSION_DENIED"
    assert exc.message == "Permission denied: manage"
    assert exc.details == {"action": "manage"}


def test_waitlist_denied_carries_reason_as_message() -> None:
    exc = WaitlistDeniedException("a@example.com", "Access denied: not listed", "not_found")
    assert exc.message == "Access denied: not listed"
    assert exc.error_code == "WAITLIST_DENIED"
    assert exc.details == {"email": "a@example.com", "decision": "not_found"}


def test_resource_not_found() -> None:
    exc = ResourceNotFoundException("account", "abc")
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert exc.details == {"resource_type": "account", "resource_id": "abc"}


def test_unsupported_provider_custom_message() -> None:
    exc = UnsupportedProviderException("local", "Unsupported auth provider for email operations")
    assert exc.error_code == "UNSUPPORTED_PROVIDER"
    assert exc.message == "Unsupported auth provider for email operations"
    assert exc.details == {"provider": "local"}


def test_refresh_and_duplicate_codes() -> None:
    assert InvalidRefreshTokenException().error_code == "INVALID_REFRESH_TOKEN"
    assert AccountAlreadyExistsException().error_code == "ACCOUNT_ALREADY_EXISTS"


def test_provider_operation_error_keeps_cause_out_of_details() -> None:
    """The underlying cause is chained on the exception, never in details."""
    cause = RuntimeError("upstream body with secrets")
    exc = ProviderOperationError("Gmail", "send_email", cause, status_code=500)
    assert exc.error_code == "PROVIDER_OPERATION_ERROR"
    assert exc.details == {"provider": "Gmail", "operation": "send_email"}
    assert exc.cause is cause
    assert "secrets" not in str(exc.to_dict())


def test_auth_rejected_is_a_provider_operation_error_with_401() -> None:
    exc = ProviderAuthRejectedError("Outlook", "fetch_emails")
    assert isinstance(exc, ProviderOperationError)
    assert exc.status_code == 401


def test_auth_expired_and_cipher_codes() -> None:
    assert ProviderAuthExpiredError("Yahoo").error_code == "PROVIDER_AUTH_EXPIRED"
    assert TokenCipherError().error_code == "CREDENTIAL_ERROR"
