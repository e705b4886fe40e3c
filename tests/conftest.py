"""Shared fixtures: in-memory database, schema cache and the assembled app."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import jwt as pyjwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from callsheet.domain.profile_schema import models  # noqa: F401
from callsheet.domain.profile_schema.dependencies import get_schema_cache
from callsheet.domain.profile_schema.resolver import SchemaCache
from callsheet.domain.profile_schema.router import router as profile_schema_router
from callsheet.foundation.application import MiddlewareContribution
from callsheet.infra.auth.middleware.jwt_auth import JWTAuthMiddleware
from callsheet.infra.fastapi import ALL_GROUPS, AppSettings, create_app
from callsheet.infra.fastapi.error_handlers import register_exception_handlers
from callsheet.infra.fastapi.middleware.request_id import (
    contribution as request_id_contribution,
)
from callsheet.infra.persistence import Base, get_db_session

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from fastapi import FastAPI
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session

TEST_SECRET = "callsheet-test-secret-at-least-32-bytes"


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
def engine() -> Iterator[Engine]:
    """Fresh in-memory SQLite database shared by every connection of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    with session_factory() as session:
        yield session


@pytest.fixture()
def schema_cache() -> SchemaCache:
    return SchemaCache(maxsize=16, ttl=300)


@pytest.fixture()
def make_token() -> Callable[..., str]:
    """Factory minting HS256 tokens the test app accepts."""

    def _make(
        *,
        sub: str = "user-1",
        role: str = "ADMIN",
        tenant_type: str | None = None,
        entity_id: str | None = None,
        expires_in: int = 3600,
        secret: str = TEST_SECRET,
        **extra: Any,
    ) -> str:
        claims: dict[str, Any] = {
            "sub": sub,
            "role": role,
            "exp": int(time.time()) + expires_in,
            **extra,
        }
        if tenant_type is not None:
            claims["tenant_type"] = tenant_type
        if entity_id is not None:
            claims["entity_id"] = entity_id
        return pyjwt.encode(claims, secret, algorithm="HS256")

    return _make


@pytest.fixture()
def auth_headers(make_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    """Factory for ``Authorization`` headers; keyword arguments become claims."""

    def _headers(**claims: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(**claims)}"}

    return _headers


@pytest.fixture()
def admin_headers(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers(sub="admin-1", role="ADMIN")


@pytest.fixture()
def talent_headers(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    """Headers of the talent who owns profile ``p-1``."""
    return auth_headers(sub="talent-1", role="TALENT", tenant_type="talent", entity_id="p-1")


@pytest.fixture()
def app(session_factory: sessionmaker[Session], schema_cache: SchemaCache) -> FastAPI:
    """Profile schema app wired to the in-memory database.

    Entry-point discovery is disabled so the test controls every
    contribution; lifespan hooks that need PostgreSQL never run.
    """
    app = create_app(
        AppSettings(title="Callsheet Test", version="0.0.0-test"),
        exclude_groups=ALL_GROUPS,
        extra_routers=[profile_schema_router],
        extra_middleware=[
            request_id_contribution,
            MiddlewareContribution(
                middleware_class=JWTAuthMiddleware,
                priority=150,
                kwargs={
                    "secret": TEST_SECRET,
                    "algorithm": "HS256",
                    "issuer": "",
                    "audience": "",
                    "dev_bypass": False,
                },
            ),
        ],
    )
    register_exception_handlers(app)

    def _override_session() -> Iterator[Session]:
        with session_factory() as session:
            try:
                yield session
            except Exception:
                session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_session
    app.dependency_overrides[get_schema_cache] = lambda: schema_cache
    return app


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
