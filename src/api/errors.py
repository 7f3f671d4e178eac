"""Error handling and HTTP mapping for the API.

Every error leaves the service as ``{"error": {code, message, details}}``
with the request ID echoed in the X-Request-ID header.

Error Code Mapping:
    - NoDataError -> 404 NO_DATA (no log, upstream 404, or rejected record)
    - RequestValidationError -> 422 INVALID_INPUT
    - StoreError (INVALID_ID) -> 422 INVALID_INPUT
    - StoreError (CORRUPT_LOG, WRITE_FAILED) -> 500 STORE_FAILED
    - UpstreamError -> 502 UPSTREAM_FAILED
    - Generic exceptions -> 500 INTERNAL_ERROR
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vault.errors import StoreError, UpstreamError, VaultError

from .schemas import ApiErrorResponse, ErrorDetail


logger = logging.getLogger(__name__)


# =============================================================================
# API Exception Classes
# =============================================================================


class ApiError(Exception):
    """Base exception for API errors.

    Subclasses fix the HTTP status, error code and default message as
    class attributes.

    Attributes:
        status_code: HTTP status code to return.
        code: Machine-readable error code.
        message: Human-readable error message.
        details: Optional additional context.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NoDataError(ApiError):
    """The device has no usable measurement for the day."""

    status_code = 404
    code = "NO_DATA"
    default_message = "No measurement data for this date"


class InvalidInputError(ApiError):
    """A path parameter, query parameter or body failed validation."""

    status_code = 422
    code = "INVALID_INPUT"
    default_message = "Invalid input"


class StoreFailedError(ApiError):
    """The local log store could not be read or written."""

    status_code = 500
    code = "STORE_FAILED"
    default_message = "Failed to access log data"


class UpstreamFailedError(ApiError):
    """The vault proxy failed or answered with garbage."""

    status_code = 502
    code = "UPSTREAM_FAILED"
    default_message = "Failed to fetch data from the vault API"


class InternalError(ApiError):
    """Anything not anticipated above."""


# =============================================================================
# Error Mapping
# =============================================================================


# StoreError codes that are the caller's fault rather than the store's.
_CLIENT_STORE_CODES = frozenset({"INVALID_ID"})


def map_exception_to_api_error(exc: Exception) -> ApiError:
    """Map internal exceptions to appropriate API errors.

    Args:
        exc: The exception raised during processing.

    Returns:
        An ApiError subclass with appropriate HTTP status and code.
    """
    if isinstance(exc, ApiError):
        return exc

    if isinstance(exc, StoreError):
        if exc.code in _CLIENT_STORE_CODES:
            return InvalidInputError(exc.message, details=exc.details)
        return StoreFailedError(exc.message, details={"store_code": exc.code})

    if isinstance(exc, UpstreamError):
        return UpstreamFailedError(exc.message, details={"upstream_code": exc.code})

    return InternalError(
        str(exc) or "An unexpected error occurred",
        details={"exception_type": type(exc).__name__},
    )


def create_error_response(api_error: ApiError, request_id: str) -> JSONResponse:
    """Render an API error as the standard JSON error body.

    Args:
        api_error: The API error to convert.
        request_id: ID echoed in the X-Request-ID header.

    Returns:
        JSONResponse carrying an ApiErrorResponse.
    """
    body = ApiErrorResponse(
        error=ErrorDetail(
            code=api_error.code,
            message=api_error.message,
            details=api_error.details,
        )
    )
    return JSONResponse(
        status_code=api_error.status_code,
        content=jsonable_encoder(body),
        headers={"X-Request-ID": request_id},
    )


# =============================================================================
# Exception Handlers
# =============================================================================


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """Map any exception to an error response and log it.

    Server-side failures are logged at ERROR with the traceback; errors
    caused by the request are logged at WARNING.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    api_error = map_exception_to_api_error(exc)

    if api_error.status_code >= 500:
        logger.error(
            "Request failed: code=%s message=%s",
            api_error.code,
            api_error.message,
            exc_info=not isinstance(exc, (ApiError, VaultError)),
        )
    else:
        logger.warning(
            "Request rejected: code=%s message=%s",
            api_error.code,
            api_error.message,
        )

    return create_error_response(api_error, request_id)


async def handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Answer FastAPI request validation failures with INVALID_INPUT."""
    api_error = InvalidInputError(
        "Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return await handle_exception(request, api_error)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(ApiError, handle_exception)
    app.add_exception_handler(VaultError, handle_exception)

    # Catch-all for unexpected errors
    app.add_exception_handler(Exception, handle_exception)
