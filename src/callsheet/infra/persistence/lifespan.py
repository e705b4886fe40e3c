"""Startup connectivity check and shutdown disposal of the database engine.

Runs at priority 75: after logging is configured and before the profile
schema tables are prepared.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from callsheet.foundation.application import (
    LIFESPAN_PRIORITY_PERSISTENCE,
    LifespanContribution,
)
from callsheet.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from callsheet.infra.persistence.database import DatabaseManager

logger = logging.getLogger(__name__)


def _select_one(manager: DatabaseManager) -> None:
    with manager.get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))


@asynccontextmanager
async def _persistence_lifespan(app: Any) -> AsyncIterator[None]:
    """Refuse to start against an unreachable database; dispose the pool on exit."""
    manager = get_database_manager()
    await asyncio.to_thread(_select_one, manager)
    logger.info("database_reachable")
    try:
        yield
    finally:
        manager.dispose()
        logger.info("database_engine_disposed")


lifespan_contribution = LifespanContribution(
    hook=_persistence_lifespan,
    priority=LIFESPAN_PRIORITY_PERSISTENCE,
)
