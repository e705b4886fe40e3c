"""Callsheet Infra Observability: structlog configuration and lifespan hook."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from callsheet.foundation.application.contributions import (
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LifespanContribution,
)
from callsheet.infra.observability.logging import (
    LoggingSettings,
    SensitiveDataProcessor,
    configure_logging,
    get_logger,
    get_logging_settings,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def _observability_lifespan(app: Any) -> AsyncIterator[None]:
    """Lifespan hook that configures logging on startup.

    Args:
        app: The FastAPI application instance.
    """
    configure_logging()
    get_logger(__name__).info("logging_configured", app=getattr(app, "title", None))
    yield


lifespan_contribution = LifespanContribution(
    hook=_observability_lifespan,
    priority=LIFESPAN_PRIORITY_OBSERVABILITY,
)

__all__ = [
    "LoggingSettings",
    "SensitiveDataProcessor",
    "configure_logging",
    "get_logger",
    "get_logging_settings",
    "lifespan_contribution",
]
