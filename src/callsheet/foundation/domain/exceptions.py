"""Errors raised by the schema registries, the value writer and the auth boundary.

Each class fixes an ``error_code`` and keeps a ``context`` dict; the HTTP
layer turns both into a problem+json body and picks the status from the
class:

* :class:`NotFoundError`: unknown field, option or value owner (404)
* :class:`ValidationError`: one rejected input, named by ``field`` (422)
* :class:`FieldValuesInvalidError`: every rejected value of a submission (422)
* :class:`ConflictError`: blocked by stored values (409)
* :class:`AuthenticationError` (401) and :class:`AuthorizationError` (403)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DomainError",
    "FieldValuesInvalidError",
    "NotFoundError",
    "ValidationError",
]


class DomainError(Exception):
    """Root of the hierarchy; 400 when nothing more specific applies.

    Attributes:
        message: Text without the context suffix.
        context: snake_case keys describing the failure, rendered by
            ``__str__`` as ``message (k=v, ...)``.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """A field, option or other resource does not exist.

    >>> NotFoundError("FieldOption", 12).message
    'FieldOption not found: 12'
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: UUID | int | str,
        **extra_context: Any,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {"resource_type": resource_type, "resource_id": str(resource_id), **extra_context},
        )


class ValidationError(DomainError):
    """An input was rejected.

    Args:
        field: Name of the rejected input, dotted for nested input
            (``"options.0.value"``).
        reason: Why it was rejected, phrased to follow the field name
            (``"is required"``, ``"must be a number"``).
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, **extra_context: Any) -> None:
        self.field = field
        self.reason = reason
        super().__init__(
            f"Validation failed for '{field}': {reason}",
            {"field": field, "reason": reason, **extra_context},
        )


class FieldValuesInvalidError(ValidationError):
    """A value submission was rejected; ``violations`` maps each field to its reason.

    ``field`` and ``reason`` repeat the first violation, so handlers written
    for :class:`ValidationError` still say something useful.
    """

    error_code: str = "FIELD_VALUES_INVALID"

    def __init__(self, violations: Mapping[str, str], **extra_context: Any) -> None:
        if not violations:
            msg = "FieldValuesInvalidError requires at least one violation"
            raise ValueError(msg)
        self.violations = dict(violations)
        field, reason = next(iter(self.violations.items()))
        super().__init__(field, reason, fields=sorted(self.violations), **extra_context)


class ConflictError(DomainError):
    """The change contradicts stored state, e.g. deleting a field that still has values.

    >>> str(ConflictError("Field has stored values", field_id=3))
    'Conflict: Field has stored values (field_id=3)'
    """

    error_code: str = "CONFLICT"

    def __init__(self, reason: str, **context: Any) -> None:
        self.reason = reason
        super().__init__(f"Conflict: {reason}", context)


class AuthenticationError(DomainError):
    """No usable credentials.

    ``auth_error`` is the RFC 6750 code put in the ``WWW-Authenticate``
    header; ``error_code`` may be narrowed per instance (``MISSING_TOKEN``).
    """

    error_code: str = "AUTHENTICATION_ERROR"

    def __init__(
        self,
        message: str,
        auth_error: str = "invalid_token",
        error_code: str = "AUTHENTICATION_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.auth_error = auth_error
        self.error_code = error_code
        super().__init__(message, context)


class AuthorizationError(DomainError):
    """The caller is known but may not do this."""

    error_code: str = "AUTHORIZATION_ERROR"
