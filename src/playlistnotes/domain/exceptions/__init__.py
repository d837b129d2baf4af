"""Domain exceptions."""

from typing import Any

from playlistnotes.domain.entities.error_codes import ImportErrorCode, get_error_message


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). DON'T raise this directly - use a specific subclass so callers can catch
    # precisely (AdapterError vs ImportAbortedError is THE distinction of this package).
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422

    Example:
        raise ValidationError("Import URL must not be empty")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("Spotify client credentials not configured")
    """

    pass


class ExternalServiceError(DomainException):
    """External service (Spotify accounts, ...) returned an error.

    HTTP Status: 503 from our token endpoint, with the upstream status in the body.

    Example:
        raise ExternalServiceError("Spotify token exchange failed", status=400, error="invalid_client")
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        error: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.error = error


class AdapterError(DomainException):
    """A provider adapter failed and classified the failure into an ImportErrorCode.

    Hey future me - this is the ONLY failure type that crosses the adapter boundary. The
    `code` is what callers branch on, `details` carries the context (stage, HTTP status,
    provider, reason...) for logs and debugging. The original exception is chained via
    __cause__ when you `raise AdapterError(...) from err`.

    Example:
        raise AdapterError(
            ImportErrorCode.RATE_LIMITED,
            details={"stage": "tracks", "status": 429, "provider": "spotify"},
        ) from err
    """

    def __init__(
        self,
        code: ImportErrorCode,
        details: dict[str, Any] | None = None,
        message: str | None = None,
    ) -> None:
        # str(err) is the code itself so log lines and asserts stay greppable
        super().__init__(message or str(code))
        self.code = code
        self.details: dict[str, Any] = dict(details or {})

    @property
    def user_message(self) -> str:
        """Human readable message for this error's code."""
        return get_error_message(self.code)

    @property
    def status(self) -> int | None:
        """HTTP status recorded by the adapter, if the failure came from an HTTP response."""
        status = self.details.get("status")
        return status if isinstance(status, int) else None


class ImportAbortedError(DomainException):
    """The caller cancelled an import.

    Listen up - this is NOT a failure! It never carries an error code and the flow layer
    re-raises it untouched, so "I cancelled this" stays distinguishable from "it failed".
    """

    def __init__(self, message: str = "Import was cancelled.") -> None:
        super().__init__(message)


__all__ = [
    "AdapterError",
    "ConfigurationError",
    "DomainException",
    "ExternalServiceError",
    "ImportAbortedError",
    "ValidationError",
]
