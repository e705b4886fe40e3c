"""RFC 7807 problem responses for the callsheet error taxonomy.

Every registry, resolver and value-writer failure surfaces as an
``application/problem+json`` body:

=========================  ======  ===================================
Exception                  Status  Notes
=========================  ======  ===================================
NotFoundError              404
FieldValuesInvalidError    422     ``violations`` maps field to reason
ValidationError            422     ``context.field`` names the field
ConflictError              409
IntegrityError             409     driver message is logged, not sent
AuthenticationError        401     ``WWW-Authenticate`` per RFC 6750
AuthorizationError         403
other DomainError          400
RequestValidationError     422     FastAPI body/path/query errors
anything else              500     carries the request id
=========================  ======  ===================================

Usage:
    from callsheet.infra.fastapi.error_handlers import register_exception_handlers

    register_exception_handlers(app)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError

from callsheet.foundation.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    FieldValuesInvalidError,
    NotFoundError,
    ValidationError,
)
from callsheet.infra.fastapi.middleware.request_id import get_request_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """Problem details body (RFC 7807) with callsheet extensions."""

    type: str = Field(
        ...,
        description="URI reference identifying the problem type",
        examples=["/errors/not-found", "/errors/field-values-invalid"],
    )
    title: str = Field(..., description="Short summary of the problem type")
    status: int = Field(..., ge=400, le=599)
    detail: str = Field(..., description="Explanation specific to this occurrence")
    instance: str | None = Field(default=None, description="Request path")
    error_code: str | None = Field(
        default=None,
        examples=["RESOURCE_NOT_FOUND", "FIELD_VALUES_INVALID", "CONFLICT"],
    )
    context: dict[str, Any] | None = None
    violations: dict[str, str] | None = Field(
        default=None,
        description="Rejected field names mapped to the reason",
        examples=[{"favoriteColor": "is not a valid option"}],
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request id to quote to support (500 responses only)",
    )


_REDACTIONS = (
    (re.compile(r"postgresql(\+\w+)?://[^@]*@[^/\s]*"), "postgresql://[REDACTED]@[REDACTED]"),
    (
        re.compile(r"(password|secret|token)\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
)

_SENSITIVE_KEYS = frozenset({"password", "secret", "token", "jwt_secret", "credential"})


def _problem(
    request: Request,
    *,
    status: int,
    slug: str,
    title: str,
    detail: str,
    **extensions: Any,
) -> JSONResponse:
    problem = ProblemDetail(
        type=f"/errors/{slug}",
        title=title,
        status=status,
        detail=detail,
        instance=str(request.url.path),
        **extensions,
    )
    return JSONResponse(
        status_code=status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    """Make an error context safe and JSON-ready, or None when nothing is left.

    Sensitive keys are dropped, credentials inside strings are redacted and
    values that JSON cannot carry are stringified.
    """
    if not context:
        return None
    cleaned = {
        key: _sanitize_value(value)
        for key, value in context.items()
        if key.lower() not in _SENSITIVE_KEYS
    }
    return cleaned or None


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return _redact_sensitive_strings(value)
    if isinstance(value, dict):
        return _sanitize_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_sanitize_value(v) for v in value]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _redact_sensitive_strings(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def _domain_handler(
    status: int,
    slug: str,
    title: str,
) -> Callable[[Request, DomainError], Awaitable[JSONResponse]]:
    """Build a handler rendering a DomainError with its code and context."""

    async def handler(request: Request, exc: DomainError) -> JSONResponse:
        return _problem(
            request,
            status=status,
            slug=slug,
            title=title,
            detail=str(exc),
            error_code=exc.error_code,
            context=_sanitize_context(exc.context),
        )

    handler.__name__ = f"{slug.replace('-', '_')}_handler"
    return handler


not_found_handler = _domain_handler(404, "not-found", "Resource Not Found")
validation_error_handler = _domain_handler(422, "validation-error", "Validation Error")
conflict_error_handler = _domain_handler(409, "conflict", "Conflict")
domain_error_handler = _domain_handler(400, "domain-error", "Bad Request")


async def field_values_invalid_handler(
    request: Request,
    exc: FieldValuesInvalidError,
) -> JSONResponse:
    """Report every rejected field of a value submission at once."""
    count = len(exc.violations)
    return _problem(
        request,
        status=422,
        slug="field-values-invalid",
        title="Validation Error",
        detail=f"{count} field value{'s' if count != 1 else ''} failed validation",
        error_code=exc.error_code,
        violations=exc.violations,
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Uniqueness or foreign key violations that slipped past the registries."""
    logger.warning(
        "integrity_violation",
        extra={"path": str(request.url.path), "detail": str(exc.orig)},
    )
    return _problem(
        request,
        status=409,
        slug="conflict",
        title="Conflict",
        detail="Conflict: the change violates a uniqueness or reference constraint",
        error_code="INTEGRITY_CONFLICT",
    )


async def authentication_error_handler(
    request: Request,
    exc: AuthenticationError,
) -> JSONResponse:
    response = _problem(
        request,
        status=401,
        slug=exc.error_code.lower().replace("_", "-"),
        title="Unauthorized",
        detail=str(exc),
        error_code=exc.error_code,
    )
    response.headers["WWW-Authenticate"] = f'Bearer realm="API", error="{exc.auth_error}"'
    return response


async def authorization_error_handler(
    request: Request,
    exc: AuthorizationError,
) -> JSONResponse:
    return _problem(
        request,
        status=403,
        slug="forbidden",
        title="Forbidden",
        detail=exc.message,
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Request body, path or query parameters that do not match the endpoint."""
    errors = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return _problem(
        request,
        status=422,
        slug="request-validation-error",
        title="Request Validation Error",
        detail="Request validation failed",
        error_code="REQUEST_VALIDATION_ERROR",
        context={"errors": _sanitize_value(errors)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure in full and answer with an opaque 500."""
    correlation_id = get_request_id() or "unknown"
    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )
    return _problem(
        request,
        status=500,
        slug="internal-error",
        title="Internal Server Error",
        detail="An internal error occurred. Please contact support with the correlation ID.",
        error_code="INTERNAL_ERROR",
        correlation_id=correlation_id,
    )


_HANDLERS: tuple[tuple[type[BaseException], Callable[..., Awaitable[JSONResponse]]], ...] = (
    (AuthenticationError, authentication_error_handler),
    (AuthorizationError, authorization_error_handler),
    (NotFoundError, not_found_handler),
    (FieldValuesInvalidError, field_values_invalid_handler),
    (ValidationError, validation_error_handler),
    (ConflictError, conflict_error_handler),
    (DomainError, domain_error_handler),
    (IntegrityError, integrity_error_handler),
    (RequestValidationError, request_validation_handler),
    (Exception, unhandled_exception_handler),
)


def register_exception_handlers(app: FastAPI) -> None:
    """Register the problem handlers on an application.

    Starlette resolves handlers along the exception's MRO, so
    FieldValuesInvalidError reaches its own handler before the generic
    ValidationError one.
    """
    for exception_class, handler in _HANDLERS:
        app.add_exception_handler(exception_class, handler)
