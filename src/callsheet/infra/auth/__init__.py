"""Callsheet Infra Auth: JWT verification middleware and principal dependencies.

Token issuance belongs to the marketplace's auth layer. This package verifies
bearer tokens, exposes the caller as a :class:`Principal` and provides the
administrator gate used by the schema admin endpoints.
"""

from callsheet.infra.auth.dependencies import (
    AdminPrincipal,
    CurrentPrincipal,
    ensure_entity_access,
    get_current_principal,
    require_admin,
)
from callsheet.infra.auth.dev_bypass import DEV_BYPASS_CLAIMS, resolve_dev_bypass
from callsheet.infra.auth.middleware.jwt_auth import JWTAuthMiddleware
from callsheet.infra.auth.settings import AuthSettings, get_auth_settings

__all__ = [
    "DEV_BYPASS_CLAIMS",
    "AdminPrincipal",
    "AuthSettings",
    "CurrentPrincipal",
    "JWTAuthMiddleware",
    "ensure_entity_access",
    "get_auth_settings",
    "get_current_principal",
    "require_admin",
    "resolve_dev_bypass",
]
