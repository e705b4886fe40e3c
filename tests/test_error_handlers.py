"""Unit tests for the RFC 7807 exception handlers."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from callsheet.foundation.domain import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    FieldValuesInvalidError,
    NotFoundError,
    ValidationError,
)
from callsheet.infra.fastapi.error_handlers import (
    _redact_sensitive_strings,
    _sanitize_context,
    register_exception_handlers,
)

_RAISERS: dict[str, Exception] = {
    "not-found": NotFoundError("ProfileField", 42),
    "validation": ValidationError("name", "must not be empty"),
    "values": FieldValuesInvalidError(
        {"favoriteColor": "is not a valid option", "stageName": "is required"}
    ),
    "conflict": ConflictError("Field has stored values", field_id=3, value_count=2),
    "integrity": IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed")),
    "unauthenticated": AuthenticationError(
        "Authentication required", auth_error="invalid_request", error_code="MISSING_TOKEN"
    ),
    "forbidden": AuthorizationError("Administrator role required"),
    "domain": DomainError("Something odd", context={"password": "hunter2", "field_id": 1}),
    "crash": RuntimeError("boom"),
}


def _app() -> FastAPI:
    app = FastAPI()

    @app.get("/raise/{kind}")
    def raise_error(kind: str) -> None:
        raise _RAISERS[kind]

    @app.get("/typed/{item_id}")
    def typed(item_id: int) -> dict[str, int]:
        return {"item_id": item_id}

    register_exception_handlers(app)
    return app


@pytest.fixture()
def client() -> TestClient:
    return TestClient(_app(), raise_server_exceptions=False)


@pytest.mark.unit
class TestDomainErrorMapping:
    @pytest.mark.parametrize(
        ("kind", "status", "error_code"),
        [
            ("not-found", 404, "RESOURCE_NOT_FOUND"),
            ("validation", 422, "VALIDATION_ERROR"),
            ("values", 422, "FIELD_VALUES_INVALID"),
            ("conflict", 409, "CONFLICT"),
            ("integrity", 409, "INTEGRITY_CONFLICT"),
            ("unauthenticated", 401, "MISSING_TOKEN"),
            ("forbidden", 403, "AUTHORIZATION_ERROR"),
            ("domain", 400, "DOMAIN_ERROR"),
            ("crash", 500, "INTERNAL_ERROR"),
        ],
    )
    def test_status_and_code(
        self, client: TestClient, kind: str, status: int, error_code: str
    ) -> None:
        response = client.get(f"/raise/{kind}")
        assert response.status_code == status
        body = response.json()
        assert body["status"] == status
        assert body["error_code"] == error_code
        assert body["instance"] == f"/raise/{kind}"
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_violations_listed(self, client: TestClient) -> None:
        body = client.get("/raise/values").json()
        assert body["violations"] == {
            "favoriteColor": "is not a valid option",
            "stageName": "is required",
        }
        assert body["detail"] == "2 field values failed validation"

    def test_validation_names_field(self, client: TestClient) -> None:
        body = client.get("/raise/validation").json()
        assert body["context"]["field"] == "name"

    def test_integrity_detail_not_leaked(self, client: TestClient) -> None:
        body = client.get("/raise/integrity").json()
        assert "UNIQUE" not in body["detail"]

    def test_www_authenticate_on_401(self, client: TestClient) -> None:
        response = client.get("/raise/unauthenticated")
        assert response.headers["WWW-Authenticate"] == 'Bearer realm="API", error="invalid_request"'

    def test_sensitive_context_dropped(self, client: TestClient) -> None:
        body = client.get("/raise/domain").json()
        assert body["context"] == {"field_id": 1}

    def test_internal_error_hides_detail(self, client: TestClient) -> None:
        body = client.get("/raise/crash").json()
        assert "boom" not in body["detail"]
        assert body["correlation_id"] == "unknown"


@pytest.mark.unit
class TestRequestValidation:
    def test_bad_path_param(self, client: TestClient) -> None:
        response = client.get("/typed/abc")
        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "REQUEST_VALIDATION_ERROR"
        assert body["context"]["errors"][0]["loc"] == ["path", "item_id"]


@pytest.mark.unit
class TestSanitizers:
    def test_redacts_connection_urls(self) -> None:
        text = "could not connect to postgresql+psycopg://app:pw@db:5432/callsheet"
        assert "app:pw" not in _redact_sensitive_strings(text)

    def test_empty_context_is_none(self) -> None:
        assert _sanitize_context({"secret": "x"}) is None
