"""FastAPI dependency functions for authentication and authorization.

Usage:
    from callsheet.infra.auth.dependencies import AdminPrincipal, CurrentPrincipal

    @router.post("/fields")
    def create_field(principal: AdminPrincipal, ...):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from callsheet.foundation.application.context import get_optional_principal
from callsheet.foundation.domain.exceptions import AuthenticationError, AuthorizationError
from callsheet.foundation.domain.principal import Principal


def get_current_principal() -> Principal:
    """FastAPI dependency that returns the authenticated principal.

    Reads from the principal ContextVar set by JWTAuthMiddleware.

    Returns:
        Principal extracted from the verified JWT.

    Raises:
        AuthenticationError: If no principal is present (middleware
            excluded the path or was not installed).
    """
    principal = get_optional_principal()
    if principal is None:
        raise AuthenticationError(
            "Authentication required",
            auth_error="invalid_request",
            error_code="MISSING_TOKEN",
        )
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Dependency that only admits administrators.

    Raises:
        AuthorizationError: If the principal is not ADMIN or SUPER_ADMIN.
    """
    if not principal.is_admin:
        raise AuthorizationError(
            "Administrator role required",
            context={
                "required_role": "ADMIN",
                "principal_role": str(principal.role),
                "principal_id": principal.subject,
            },
        )
    return principal


AdminPrincipal = Annotated[Principal, Depends(require_admin)]


def ensure_entity_access(principal: Principal, tenant_type: str, entity_id: str) -> None:
    """Check that the principal may read or write an entity's values.

    Administrators may access every entity; everyone else only the profile
    or studio named in their token.

    Raises:
        AuthorizationError: If the principal neither administers nor owns
            the entity.
    """
    if principal.is_admin or principal.owns(tenant_type, entity_id):
        return
    raise AuthorizationError(
        "Not permitted to access this entity's values",
        context={
            "tenant_type": tenant_type,
            "entity_id": entity_id,
            "principal_id": principal.subject,
        },
    )
