"""Tests for JWTAuthMiddleware, dev bypass resolution and auth dependencies."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import jwt as pyjwt
import pytest
from fastapi import FastAPI
from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient

from callsheet.foundation.application.context import get_current_principal
from callsheet.foundation.domain import AuthorizationError, Principal, Role
from callsheet.infra.auth import (
    AdminPrincipal,
    CurrentPrincipal,
    ensure_entity_access,
    resolve_dev_bypass,
)
from callsheet.infra.auth.middleware.jwt_auth import JWTAuthMiddleware, _extract_principal
from callsheet.infra.fastapi.error_handlers import register_exception_handlers

if TYPE_CHECKING:
    from starlette.requests import Request

SECRET = "middleware-test-secret-of-32-bytes!"


def _token(secret: str = SECRET, **overrides: Any) -> str:
    claims: dict[str, Any] = {
        "sub": "talent-1",
        "role": "TALENT",
        "tenant_type": "talent",
        "entity_id": "p-1",
        "exp": int(time.time()) + 300,
        **overrides,
    }
    claims = {k: v for k, v in claims.items() if v is not None}
    return pyjwt.encode(claims, secret, algorithm="HS256")


def _make_app(**middleware_kwargs: Any) -> Starlette:
    """Minimal Starlette app echoing the principal set by the middleware."""

    async def whoami(request: Request) -> Response:
        p = get_current_principal()
        return JSONResponse(
            {
                "subject": p.subject,
                "role": p.role.value,
                "tenant_type": p.tenant_type,
                "entity_id": p.entity_id,
            }
        )

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok"})

    app = Starlette(routes=[Route("/whoami", whoami), Route("/healthz", health)])
    kwargs: dict[str, Any] = {
        "secret": SECRET,
        "algorithm": "HS256",
        "issuer": "",
        "audience": "",
        "dev_bypass": False,
        **middleware_kwargs,
    }
    app.add_middleware(JWTAuthMiddleware, **kwargs)
    return app


def _get(app: Starlette, token: str | None = None, **headers: str) -> Any:
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    with TestClient(app, raise_server_exceptions=False) as client:
        return client.get("/whoami", headers=headers)


@pytest.mark.unit
class TestValidToken:
    def test_principal_from_claims(self) -> None:
        response = _get(_make_app(), _token())
        assert response.status_code == 200
        assert response.json() == {
            "subject": "talent-1",
            "role": "TALENT",
            "tenant_type": "talent",
            "entity_id": "p-1",
        }

    def test_excluded_path_skips_auth(self) -> None:
        with TestClient(_make_app(), raise_server_exceptions=False) as client:
            assert client.get("/healthz").status_code == 200

    def test_issuer_and_audience_checked_when_configured(self) -> None:
        app = _make_app(issuer="callsheet-auth", audience="callsheet")
        good = _token(iss="callsheet-auth", aud="callsheet")
        bad = _token(iss="someone-else", aud="callsheet")

        assert _get(app, good).status_code == 200
        assert _get(app, bad).json()["error_code"] == "INVALID_CLAIMS"


@pytest.mark.unit
class TestRejectedToken:
    def test_missing_header(self) -> None:
        response = _get(_make_app())
        assert response.status_code == 401
        assert response.json()["error_code"] == "MISSING_TOKEN"
        assert response.headers["content-type"].startswith("application/problem+json")
        assert 'error="missing_token"' in response.headers["WWW-Authenticate"]

    def test_wrong_scheme(self) -> None:
        response = _get(_make_app(), Authorization="Basic abc")
        assert response.json()["error_code"] == "INVALID_FORMAT"

    @pytest.mark.parametrize(
        ("token", "error_code"),
        [
            (_token(exp=int(time.time()) - 60), "TOKEN_EXPIRED"),
            (_token(secret="another-secret-that-is-32-bytes!!"), "INVALID_SIGNATURE"),
            ("not.a.jwt", "INVALID_TOKEN"),
            (_token(role=None), "INVALID_CLAIMS"),
            (_token(role="DIRECTOR"), "INVALID_CLAIMS"),
            (_token(tenant_type="agency"), "INVALID_CLAIMS"),
        ],
    )
    def test_invalid_tokens(self, token: str, error_code: str) -> None:
        response = _get(_make_app(), token)
        assert response.status_code == 401
        assert response.json()["error_code"] == error_code

    def test_missing_secret_is_unavailable(self) -> None:
        response = _get(_make_app(secret=""), _token())
        assert response.status_code == 503


@pytest.mark.unit
class TestDevBypass:
    def test_not_requested_returns_false(self) -> None:
        assert resolve_dev_bypass(False) is False

    def test_production_blocks_bypass(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert resolve_dev_bypass(True) is False

    def test_development_allows_bypass(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "development")
        assert resolve_dev_bypass(True) is True

    def test_bypass_injects_administrator(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "development")
        response = _get(_make_app(dev_bypass=True))
        assert response.status_code == 200
        assert response.json()["role"] == "ADMIN"

    def test_bypass_still_verifies_presented_token(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", "development")
        response = _get(_make_app(dev_bypass=True), "not.a.jwt")
        assert response.status_code == 401


@pytest.mark.unit
class TestExtractPrincipal:
    def test_role_is_case_insensitive(self) -> None:
        principal = _extract_principal({"sub": "u", "role": "admin"})
        assert principal.role is Role.ADMIN
        assert principal.tenant_type is None

    def test_missing_sub(self) -> None:
        with pytest.raises(ValueError, match="sub"):
            _extract_principal({"role": "ADMIN"})


def _dependency_app() -> FastAPI:
    app = FastAPI()

    @app.get("/admin")
    def admin_only(principal: AdminPrincipal) -> dict[str, str]:
        return {"subject": principal.subject}

    @app.get("/me")
    def me(principal: CurrentPrincipal) -> dict[str, str]:
        return {"subject": principal.subject}

    register_exception_handlers(app)
    return app


@pytest.mark.unit
class TestAuthDependencies:
    def test_no_principal_is_401(self) -> None:
        with TestClient(_dependency_app(), raise_server_exceptions=False) as client:
            response = client.get("/me")
        assert response.status_code == 401

    def test_non_admin_is_403(self) -> None:
        app = _dependency_app()
        app.add_middleware(
            JWTAuthMiddleware, secret=SECRET, issuer="", audience="", dev_bypass=False
        )
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/admin", headers={"Authorization": f"Bearer {_token()}"})
        assert response.status_code == 403
        assert response.json()["error_code"] == "AUTHORIZATION_ERROR"

    @pytest.mark.parametrize(
        ("principal", "allowed"),
        [
            (Principal(subject="a", role=Role.ADMIN), True),
            (Principal(subject="t", role=Role.TALENT, tenant_type="talent", entity_id="p-1"), True),
            (Principal(subject="t", role=Role.TALENT, tenant_type="talent", entity_id="p-2"), False),
            (Principal(subject="s", role=Role.STUDIO, tenant_type="studio", entity_id="p-1"), False),
        ],
    )
    def test_ensure_entity_access(self, principal: Principal, allowed: bool) -> None:
        if allowed:
            ensure_entity_access(principal, "talent", "p-1")
        else:
            with pytest.raises(AuthorizationError):
                ensure_entity_access(principal, "talent", "p-1")
