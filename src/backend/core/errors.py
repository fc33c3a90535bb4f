"""
Exception handlers mapping showcase errors to HTTP responses.

| Error                   | Status |
|-------------------------|--------|
| InvalidArgumentError    | 422    |
| NotFoundError           | 404    |
| PermissionDeniedError   | 403    |
| LedgerConflictError     | 409    |
| StorageUnavailableError | 503    |
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from core.exceptions import (
    InvalidArgumentError,
    LedgerConflictError,
    NotFoundError,
    PermissionDeniedError,
    ShowcaseError,
    StorageUnavailableError,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[ShowcaseError], int]] = [
    (InvalidArgumentError, 422),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (LedgerConflictError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for_error(exc: ShowcaseError) -> int:
    """HTTP status for a showcase error (500 for unknown subclasses)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(application: FastAPI) -> None:
    """Install the ShowcaseError handler on the application."""

    @application.exception_handler(ShowcaseError)
    async def showcase_error_handler(request: Request, exc: ShowcaseError) -> JSONResponse:
        status_code = status_for_error(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "request_failed",
            error_type=type(exc).__name__,
            error=exc.message,
            path=request.url.path,
            method=request.method,
            **{f"ctx_{k}": v for k, v in exc.context.items()},
        )

        headers = {"Retry-After": "1"} if exc.is_retryable else None
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": exc.message,
                "error_type": type(exc).__name__,
                "retryable": exc.is_retryable,
            },
            headers=headers,
        )
