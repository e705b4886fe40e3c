"""Profile schema lifespan hook.

On startup, creates the profile schema tables when they are missing and
seeds the built-in system fields, each step controlled by
``PROFILE_SCHEMA_*`` settings. Runs at priority 100, after persistence (75)
has verified the database connection.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from callsheet.domain.profile_schema.dependencies import get_schema_cache
from callsheet.domain.profile_schema.seed import seed_system_fields
from callsheet.domain.profile_schema.settings import get_profile_schema_settings
from callsheet.foundation.application import (
    LIFESPAN_PRIORITY_PROFILE_SCHEMA,
    LifespanContribution,
)
from callsheet.infra.persistence import Base, get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def prepare_schema_store() -> None:
    """Create tables and seed system fields according to settings."""
    settings = get_profile_schema_settings()
    manager = get_database_manager()

    if settings.create_tables:
        Base.metadata.create_all(manager.get_engine())
        logger.info("profile_schema_tables_ensured")

    if settings.seed_system_fields:
        with manager.get_session_factory()() as session:
            seed_system_fields(session)
        get_schema_cache().invalidate()


@asynccontextmanager
async def _profile_schema_lifespan(app: Any) -> AsyncIterator[None]:
    """Prepare the profile schema store before serving requests.

    Args:
        app: The application instance (unused but required by protocol).
    """
    await asyncio.to_thread(prepare_schema_store)
    yield


lifespan_contribution = LifespanContribution(
    hook=_profile_schema_lifespan,
    priority=LIFESPAN_PRIORITY_PROFILE_SCHEMA,
)
