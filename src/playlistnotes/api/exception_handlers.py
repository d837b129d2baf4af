"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
into JSON responses with appropriate status codes.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from playlistnotes.domain.entities.error_codes import (
    ImportErrorCode,
    get_error_message,
    is_retryable_error,
)
from playlistnotes.domain.exceptions import (
    AdapterError,
    ConfigurationError,
    ImportAbortedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Everything not listed is an upstream problem → 502
_ADAPTER_STATUS: dict[ImportErrorCode, int] = {
    ImportErrorCode.UNSUPPORTED_URL: status.HTTP_400_BAD_REQUEST,
    ImportErrorCode.PRIVATE_PLAYLIST: status.HTTP_403_FORBIDDEN,
    ImportErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ImportErrorCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}


def adapter_error_status(code: ImportErrorCode) -> int:
    """HTTP status for an adapter error code."""
    return _ADAPTER_STATUS.get(code, status.HTTP_502_BAD_GATEWAY)


# Hey future me, this registers GLOBAL exception handlers for the entire app! Routers raise
# domain exceptions and these turn them into JSON. Without this, an AdapterError would leak as
# a 500 with a stack trace. MUST be called during app setup, before any request arrives.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for AdapterError, ImportAbortedError, ValidationError and
    ConfigurationError.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AdapterError)
    async def adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
        """Coded adapter failure → 400/403/404/429/502 with the code in the body."""
        status_code = adapter_error_status(exc.code)
        logger.warning(
            "Adapter error at %s: %s",
            request.url.path,
            exc.code,
            extra={"path": request.url.path, "code": str(exc.code), "details": exc.details},
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "code": str(exc.code),
                "message": get_error_message(exc.code),
                "retryable": is_retryable_error(exc.code),
                "details": exc.details,
            },
        )

    @app.exception_handler(ImportAbortedError)
    async def import_aborted_handler(request: Request, exc: ImportAbortedError) -> JSONResponse:
        """Cancelled import → 409 Conflict (a newer request or a reset took over)."""
        logger.info(
            "Import aborted at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"code": str(ImportErrorCode.ABORTED), "message": exc.message},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Domain validation failure → 422."""
        logger.warning(
            "Validation error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.message},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Misconfiguration → 503 Service Unavailable."""
        logger.error(
            "Configuration error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": exc.message},
        )
