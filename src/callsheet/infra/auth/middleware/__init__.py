"""Authentication middleware."""

from callsheet.infra.auth.middleware.jwt_auth import JWTAuthMiddleware

__all__ = ["JWTAuthMiddleware"]
