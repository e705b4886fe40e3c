"""Callsheet Infra Persistence: engine, session factories and ORM base."""

from callsheet.infra.persistence.database import (
    Base,
    DatabaseManager,
    DatabaseSettings,
    DbSession,
    get_database_manager,
    get_database_settings,
    get_db_session,
    get_session_factory,
    transaction,
)
from callsheet.infra.persistence.lifespan import lifespan_contribution

__all__ = [
    "Base",
    "DatabaseManager",
    "DatabaseSettings",
    "DbSession",
    "get_database_manager",
    "get_database_settings",
    "get_db_session",
    "get_session_factory",
    "lifespan_contribution",
    "transaction",
]
