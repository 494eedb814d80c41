"""Infrastructure exceptions for external provider operations.

Provider errors extend GatewayException so presentation can map them
to HTTP responses consistently. The underlying cause is chained and
logged, never placed in the response details.
"""

from app.domain.exceptions import GatewayException


class ProviderOperationError(GatewayException):
    """A mailbox or identity provider call failed."""

    def __init__(
        self,
        provider: str,
        operation: str,
        cause: BaseException | str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            f"{provider} could not complete '{operation}'. Please try again later.",
            "PROVIDER_OPERATION_ERROR",
            {"provider": provider, "operation": operation},
        )
        self.provider = provider
        self.operation = operation
        self.cause = cause
        self.status_code = status_code


class ProviderAuthRejectedError(ProviderOperationError):
    """The provider rejected the access token (HTTP 401 / IMAP auth failure).

    Signals the orchestrator to refresh the provider token once and retry.
    """

    def __init__(
        self,
        provider: str,
        operation: str,
        cause: BaseException | str | None = None,
    ) -> None:
        super().__init__(provider, operation, cause, status_code=401)


class ProviderAuthExpiredError(GatewayException):
    """Provider credentials are missing or could not be refreshed; the user must sign in again."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Your {provider} session has expired. Please sign in again.",
            "PROVIDER_AUTH_EXPIRED",
            {"provider": provider},
        )
        self.provider = provider


class TokenCipherError(GatewayException):
    """Stored provider token could not be decrypted (wrong key or corrupted data)."""

    def __init__(self, reason: str = "invalid or corrupted ciphertext") -> None:
        super().__init__(
            "Failed to decrypt stored provider credentials",
            "CREDENTIAL_ERROR",
            {"reason": reason},
        )
