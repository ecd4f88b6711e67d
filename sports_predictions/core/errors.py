"""
@file: errors.py
@description:
Error taxonomy for the Sports Predictions API and the FastAPI exception handlers
that render it.

Every error that reaches a client is a JSON object with a `message` field and a
`code` field. 5xx responses carry a generic message only; the underlying cause
is logged, never returned.

@dependencies:
- fastapi / starlette: exception handler registration and JSON responses
- sports_predictions.core.logger: For component-specific logging
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sports_predictions.core.logger import setup_logger

logger = setup_logger("sports_predictions.core.errors")


class AppError(Exception):
    """Base class for errors with a client-facing message, code and HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(AppError):
    """Malformed or out-of-range client input."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    """No row exists for the requested id."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class RateLimitedError(AppError):
    """Too many requests from one client in the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, message: str = "Too many requests from this IP, please try again later.",
                 retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class StorageError(AppError):
    """
    Failure in the underlying store: connectivity, timeout, or a constraint
    violation that is not resolved as conflict-as-success.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 unique_violation: bool = False):
        super().__init__(message)
        self.cause = cause
        self.unique_violation = unique_violation


class IngestionRecordError(AppError):
    """One bad record in an ingestion batch. Collected, never propagated."""

    code = "INGESTION_RECORD_ERROR"


class IngestionSourceError(AppError):
    """The ingestion source itself cannot be read."""

    code = "INGESTION_SOURCE_ERROR"


def error_body(message: str, code: Optional[str] = None) -> dict:
    body = {"message": message}
    if code:
        body["code"] = code
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
        message = "Internal server error"
    else:
        message = exc.message

    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, exc.code),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render FastAPI's request validation failures (bad path ids, bad bodies)
    as 400 responses instead of the framework's default 422.
    """
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))

    message = "Invalid request: " + "; ".join(problems) if problems else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, ValidationError.code),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else None
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Attach the JSON error handlers to the FastAPI application.
    """
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
