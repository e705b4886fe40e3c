"""Callsheet foundation domain: error taxonomy and principal value object."""

from callsheet.foundation.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    FieldValuesInvalidError,
    NotFoundError,
    ValidationError,
)
from callsheet.foundation.domain.principal import ADMIN_ROLES, Principal, Role

__all__ = [
    "ADMIN_ROLES",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DomainError",
    "FieldValuesInvalidError",
    "NotFoundError",
    "Principal",
    "Role",
    "ValidationError",
]
