"""Bearer token verification for every request outside the public paths.

The marketplace auth service issues HS256 tokens carrying ``sub``,
``role`` and, for talent and studio users, ``tenant_type`` and
``entity_id``. A verified token becomes the request's :class:`Principal`.

Rejections are answered here as problem+json. ``BaseHTTPMiddleware``
runs outside the application's exception handlers, so raising would end
in a bare 500.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import jwt as pyjwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from callsheet.foundation.application.context import (
    clear_principal_context,
    set_principal_context,
)
from callsheet.foundation.application.contributions import MiddlewareContribution
from callsheet.foundation.domain.principal import Principal, Role
from callsheet.infra.auth.dev_bypass import DEV_BYPASS_CLAIMS, resolve_dev_bypass
from callsheet.infra.auth.settings import get_auth_settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

PUBLIC_PATH_PREFIXES = ("/healthz", "/docs", "/openapi.json", "/redoc")

_TENANT_TYPES = frozenset({"talent", "studio"})

# Checked in order: pyjwt's hierarchy puts the specific errors under
# DecodeError and InvalidTokenError.
_DECODE_FAILURES: tuple[tuple[type[pyjwt.PyJWTError], str, str], ...] = (
    (pyjwt.ExpiredSignatureError, "token_expired", "Token has expired"),
    (pyjwt.InvalidIssuerError, "invalid_claims", "Invalid issuer claim"),
    (pyjwt.InvalidAudienceError, "invalid_claims", "Invalid audience claim"),
    (pyjwt.MissingRequiredClaimError, "invalid_claims", "Token is missing a required claim"),
    (pyjwt.InvalidSignatureError, "invalid_signature", "Token signature verification failed"),
    (pyjwt.DecodeError, "invalid_token", "Token is malformed"),
    (pyjwt.InvalidTokenError, "invalid_token", "Token validation failed"),
)


class _Rejected(Exception):
    def __init__(self, status: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Authenticates requests and publishes the caller as the current principal.

    Outcomes other than success:

    ======================  ======  ==========================
    Situation               Status  ``error_code``
    ======================  ======  ==========================
    no Authorization        401     MISSING_TOKEN
    not ``Bearer <token>``  401     INVALID_FORMAT
    expired                 401     TOKEN_EXPIRED
    wrong signature         401     INVALID_SIGNATURE
    bad iss/aud/role/...    401     INVALID_CLAIMS
    not a JWT               401     INVALID_TOKEN
    no secret configured    503     SERVICE_UNAVAILABLE
    ======================  ======  ==========================

    Constructor arguments left as ``None`` come from :class:`AuthSettings`.
    An empty ``issuer`` or ``audience`` disables that check.
    """

    def __init__(
        self,
        app: Any,
        secret: str | None = None,
        algorithm: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
        leeway: int | None = None,
        dev_bypass: bool | None = None,
        excluded_prefixes: tuple[str, ...] | None = None,
    ) -> None:
        super().__init__(app)
        settings = get_auth_settings()

        def pick(value: Any, default: Any) -> Any:
            return default if value is None else value

        self._secret = pick(secret, settings.jwt_secret)
        self._algorithm = algorithm or settings.jwt_algorithm
        self._issuer = pick(issuer, settings.issuer)
        self._audience = pick(audience, settings.audience)
        self._leeway = pick(leeway, settings.leeway_seconds)
        self._dev_bypass = resolve_dev_bypass(pick(dev_bypass, settings.dev_bypass))
        self._public = pick(excluded_prefixes, PUBLIC_PATH_PREFIXES)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path.startswith(self._public):
            return await call_next(request)

        header = request.headers.get("Authorization", "")
        try:
            if self._dev_bypass and not header:
                claims = dict(DEV_BYPASS_CLAIMS)
            else:
                claims = self._verify(header)
            principal = _principal_or_reject(claims)
        except _Rejected as rejection:
            return self._reject(request, rejection)

        request.state.jwt_claims = claims
        token = set_principal_context(principal)
        try:
            return await call_next(request)
        finally:
            clear_principal_context(token)

    def _verify(self, header: str) -> dict[str, Any]:
        if not header:
            raise _Rejected(401, "missing_token", "Authorization header is required")
        scheme, _, token = header.partition(" ")
        if scheme != "Bearer" or not token.strip():
            raise _Rejected(401, "invalid_format", "Authorization header must be 'Bearer <token>'")
        if not self._secret:
            raise _Rejected(503, "service_unavailable", "Authentication service not configured")

        options: dict[str, Any] = {"require": ["exp", "sub"]}
        if not self._audience:
            options["verify_aud"] = False
        try:
            return pyjwt.decode(
                token.strip(),
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer or None,
                audience=self._audience or None,
                leeway=self._leeway,
                options=options,
            )
        except pyjwt.PyJWTError as exc:
            for error_type, code, message in _DECODE_FAILURES:
                if isinstance(exc, error_type):
                    raise _Rejected(401, code, message) from exc
            raise _Rejected(401, "invalid_token", "Token validation failed") from exc

    def _reject(self, request: Request, rejection: _Rejected) -> JSONResponse:
        logger.info(
            "auth_validation_failed",
            extra={
                "error_code": rejection.code,
                "path": request.url.path,
                "method": request.method,
            },
        )
        headers: dict[str, str] = {}
        if rejection.status == 401:
            headers["WWW-Authenticate"] = (
                f'Bearer realm="API", error="{rejection.code}", '
                f'error_description="{rejection.message}"'
            )
        return JSONResponse(
            status_code=rejection.status,
            content={
                "type": f"/errors/{rejection.code.replace('_', '-')}",
                "title": "Unauthorized" if rejection.status == 401 else "Service Unavailable",
                "status": rejection.status,
                "detail": rejection.message,
                "error_code": rejection.code.upper(),
                "instance": request.url.path,
            },
            media_type="application/problem+json",
            headers=headers,
        )


def _principal_or_reject(claims: dict[str, Any]) -> Principal:
    try:
        return _extract_principal(claims)
    except ValueError as exc:
        raise _Rejected(401, "invalid_claims", str(exc)) from exc


def _extract_principal(claims: dict[str, Any]) -> Principal:
    """Build the principal from verified claims.

    ``role`` is matched case-insensitively against :class:`Role`.
    ``tenant_type``, when present, must be ``talent`` or ``studio``.

    Raises:
        ValueError: A required claim is missing or has an unknown value.
    """
    subject = claims.get("sub")
    if not subject:
        raise ValueError("Token is missing the 'sub' claim")

    raw_role = claims.get("role")
    if not raw_role:
        raise ValueError("Token is missing the 'role' claim")
    try:
        role = Role(str(raw_role).upper())
    except ValueError:
        raise ValueError(f"Unknown role in token: {raw_role}") from None

    tenant_type = claims.get("tenant_type")
    if tenant_type is not None:
        tenant_type = str(tenant_type).lower()
        if tenant_type not in _TENANT_TYPES:
            raise ValueError(f"Unknown tenant_type in token: {tenant_type}")

    entity_id = claims.get("entity_id")
    email = claims.get("email")
    return Principal(
        subject=str(subject),
        role=role,
        tenant_type=tenant_type,
        entity_id=None if entity_id is None else str(entity_id),
        email=None if email is None else str(email),
    )


contribution = MiddlewareContribution(middleware_class=JWTAuthMiddleware, priority=150)
