"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
and validation errors into HTTP responses with the right status codes.
Every response body has the same shape: ``{"detail": ...}``.

Storage errors and anything unexpected become a generic 500; the real error
is only logged, never sent to the client.
"""

import json
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from songstock.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolation,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "An internal error occurred. Please try again later."

# Domain exception -> (status code, log level). Looked up along the MRO, so a
# subclass of e.g. ValidationException inherits its mapping.
_DOMAIN_STATUS: dict[type[DomainException], tuple[int, int]] = {
    EntityNotFoundException: (status.HTTP_404_NOT_FOUND, logging.INFO),
    ValidationException: (status.HTTP_400_BAD_REQUEST, logging.WARNING),
    BusinessRuleViolation: (status.HTTP_400_BAD_REQUEST, logging.WARNING),
    InvalidStateException: (status.HTTP_400_BAD_REQUEST, logging.WARNING),
    DuplicateEntityException: (status.HTTP_409_CONFLICT, logging.WARNING),
    AuthenticationError: (status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    AuthorizationError: (status.HTTP_403_FORBIDDEN, logging.WARNING),
    ConfigurationError: (status.HTTP_503_SERVICE_UNAVAILABLE, logging.ERROR),
}


def status_for(exc: DomainException) -> tuple[int, int]:
    """HTTP status and log level for a domain exception (400/WARNING by default)."""
    for cls in type(exc).__mro__:
        if cls in _DOMAIN_STATUS:
            return _DOMAIN_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST, logging.WARNING


# Pydantic's exc.errors() can carry the raw body as bytes in 'input', which JSONResponse
# can't serialize. Decode recursively before building the response.
def _sanitize_validation_errors(
    errors: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Convert bytes (and other non-JSON values) inside validation errors to strings."""

    def _sanitize_value(value: Any) -> Any:
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                return value.decode("latin-1")
        if isinstance(value, dict):
            return {k: _sanitize_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [_sanitize_value(item) for item in value]
        if isinstance(value, (str, int, float, bool)) or value is None:
            return value
        return str(value)

    return [_sanitize_value(error) for error in errors]


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain, validation, storage and unexpected errors.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        status_code, level = status_for(exc)
        logger.log(
            level,
            "%s at %s: %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "status_code": status_code,
                "error": exc.message,
            },
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Pydantic request validation errors -> 422."""
        sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
        logger.warning(
            "Request validation error at %s: %s",
            request.url.path,
            sanitized_errors,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": sanitized_errors},
        )

    @app.exception_handler(json.JSONDecodeError)
    async def json_decode_error_handler(
        request: Request, exc: json.JSONDecodeError
    ) -> JSONResponse:
        logger.warning(
            "Malformed JSON at %s: %s",
            request.url.path,
            exc.msg,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": f"Malformed JSON: {exc.msg}"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "HTTP error %d at %s: %s",
            exc.status_code,
            request.url.path,
            exc.detail,
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    # Hey future me - a unique constraint that slipped past the service-level checks
    # (two concurrent registrations with the same email) lands here. It's still a
    # conflict, but the constraint text stays in the logs.
    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(
        request: Request, exc: IntegrityError
    ) -> JSONResponse:
        logger.warning(
            "Integrity error at %s: %s",
            request.url.path,
            exc.orig,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "The request conflicts with existing data"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        logger.error(
            "Database error at %s",
            request.url.path,
            exc_info=exc,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": INTERNAL_ERROR_DETAIL},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled error at %s",
            request.url.path,
            exc_info=exc,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": INTERNAL_ERROR_DETAIL},
        )
