"""Composition of lifespan contributions into one FastAPI lifespan."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from fastapi import FastAPI

    from callsheet.foundation.application import LifespanContribution

logger = logging.getLogger(__name__)


def compose_lifespan(
    hooks: list[LifespanContribution],
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Run hooks in ascending priority on startup and in reverse on shutdown.

    Logging (50) is configured before the database is checked (75), and the
    profile schema tables are prepared (100) once the database is reachable.

    Args:
        hooks: Contributions to compose.

    Returns:
        A factory suitable for FastAPI's ``lifespan`` argument.
    """
    ordered = sorted(hooks, key=lambda h: h.priority)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for contribution in ordered:
                hook: Any = contribution.hook
                await stack.enter_async_context(hook(app))
                logger.debug(
                    "lifespan_hook_started",
                    extra={
                        "hook": getattr(hook, "__qualname__", repr(hook)),
                        "priority": contribution.priority,
                    },
                )
            logger.info("lifespan_started", extra={"hooks": len(ordered)})
            yield
        logger.info("lifespan_stopped", extra={"hooks": len(ordered)})

    return lifespan
