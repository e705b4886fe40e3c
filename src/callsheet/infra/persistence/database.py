"""Database engine and session management for request handlers.

The profile schema endpoints are synchronous FastAPI handlers (run in the
threadpool), so a single sync engine and session factory serve every request.

Usage:
    # Endpoints
    from callsheet.infra.persistence.database import DbSession

    @router.get("/items")
    def list_items(session: DbSession) -> list[Item]:
        ...

    # Scripts and lifespan hooks
    from callsheet.infra.persistence.database import get_database_manager
    with get_database_manager().get_session_factory()() as session:
        ...
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

if TYPE_CHECKING:
    from collections.abc import Iterator


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model."""


class DatabaseSettings(BaseSettings):
    """Connection settings, read from ``DATABASE_*`` variables and ``.env``.

    ``DATABASE_URL`` wins when set; otherwise a psycopg URL is assembled
    from host, port, user, password and name. Pool settings only apply to
    PostgreSQL.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str | None = Field(default=None, repr=False)
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = Field(default="postgres", repr=False)
    name: str = "callsheet"

    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=5, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300, description="Seconds")
    pool_recycle: int = Field(default=3600, ge=60, le=86400, description="Seconds")
    echo: bool = False

    @model_validator(mode="after")
    def _validate_connection_url(self) -> DatabaseSettings:
        """Validate the connection URL is parseable by SQLAlchemy."""
        try:
            make_url(self.database_url)
        except Exception as exc:
            msg = f"Invalid database connection URL: {exc}"
            raise ValueError(msg) from exc
        return self

    @property
    def database_url(self) -> str:
        """The connection URL, psycopg driver unless ``url`` overrides it."""
        if self.url:
            return self.url
        return (
            f"postgresql+psycopg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
        )

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured backend is SQLite."""
        return make_url(self.database_url).get_backend_name() == "sqlite"


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """Lazily built engine and session factory for one :class:`DatabaseSettings`.

    Tests build their own managers; the application uses
    :func:`get_database_manager`.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def settings(self) -> DatabaseSettings:
        return self._settings

    def get_engine(self) -> Engine:
        """The engine, created on first use.

        SQLite gets no pool sizing and has ``PRAGMA foreign_keys`` switched on
        per connection so cascades behave as on PostgreSQL.
        """
        if self._engine is None:
            s = self._settings
            if s.is_sqlite:
                self._engine = create_engine(s.database_url, echo=s.echo)
                event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
            else:
                self._engine = create_engine(
                    s.database_url,
                    pool_size=s.pool_size,
                    max_overflow=s.max_overflow,
                    pool_pre_ping=True,
                    pool_timeout=s.pool_timeout,
                    pool_recycle=s.pool_recycle,
                    echo=s.echo,
                )
        return self._engine

    def get_session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                self.get_engine(),
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    def dispose(self) -> None:
        """Close pooled connections; the next use builds a fresh engine."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_database_manager() -> DatabaseManager:
    """Process-wide manager configured from the environment."""
    return DatabaseManager(get_database_settings())


def get_session_factory() -> sessionmaker[Session]:
    return get_database_manager().get_session_factory()


def get_db_session() -> Iterator[Session]:
    """Dependency that provides a database session per request.

    Services commit their own units of work; anything left uncommitted when
    the request fails is rolled back here.

    Yields:
        Session for database operations.
    """
    session_factory = get_session_factory()
    with session_factory() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


DbSession = Annotated[Session, Depends(get_db_session)]


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Run a block as one unit of work on an existing session.

    Commits when the block completes and rolls back if it raises, so a
    multi-row mutation either lands entirely or not at all.

    Args:
        session: The request-scoped session.

    Yields:
        The same session.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
