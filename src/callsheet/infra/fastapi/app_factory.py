"""Application factory assembling callsheet from installed entry points.

Each installed package declares what it contributes under one of four
entry point groups; :func:`create_app` loads them and wires them into a
FastAPI application. Tests and embedding applications pass their own
contributions through the ``extra_*`` arguments and switch discovery off
with ``exclude_groups``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from callsheet.foundation.application import (
    ErrorHandlerContribution,
    LifespanContribution,
    MiddlewareContribution,
    discover,
)
from callsheet.infra.fastapi.lifespan import compose_lifespan
from callsheet.infra.fastapi.settings import AppSettings

if TYPE_CHECKING:
    from fastapi import APIRouter

logger = logging.getLogger(__name__)

GROUP_ROUTERS = "callsheet.routers"
GROUP_MIDDLEWARE = "callsheet.middleware"
GROUP_ERROR_HANDLERS = "callsheet.error_handlers"
GROUP_LIFESPAN = "callsheet.lifespan"

ALL_GROUPS: frozenset[str] = frozenset(
    {GROUP_ROUTERS, GROUP_MIDDLEWARE, GROUP_ERROR_HANDLERS, GROUP_LIFESPAN}
)


def create_app(
    settings: AppSettings | None = None,
    *,
    extra_routers: list[APIRouter] | None = None,
    extra_middleware: list[MiddlewareContribution] | None = None,
    extra_lifespan_hooks: list[LifespanContribution] | None = None,
    extra_error_handlers: list[ErrorHandlerContribution] | None = None,
    exclude_groups: frozenset[str] | None = None,
    exclude_names: frozenset[str] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings; loaded from ``APP_*`` when omitted.
        extra_routers: Routers included in addition to discovered ones.
        extra_middleware: Middleware registered in addition to discovered ones.
        extra_lifespan_hooks: Lifespan hooks run in addition to discovered ones.
        extra_error_handlers: Exception handlers in addition to discovered ones.
        exclude_groups: Entry point groups not to discover at all.
        exclude_names: Entry point names to skip in every group.

    Returns:
        The assembled application.
    """
    settings = settings or AppSettings()
    groups = exclude_groups if exclude_groups is not None else settings.exclude_groups
    names = exclude_names if exclude_names is not None else settings.exclude_entry_points

    def discovered(group: str) -> list[object]:
        if group in groups:
            return []
        return [c.value for c in discover(group, exclude_names=names)]

    hooks = list(extra_lifespan_hooks or [])
    for value in discovered(GROUP_LIFESPAN):
        # a bare async context manager factory runs at the default priority
        if not isinstance(value, LifespanContribution):
            value = LifespanContribution(hook=value)
        hooks.append(value)

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=compose_lifespan(hooks),
    )
    cors = settings.cors
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        expose_headers=cors.expose_headers,
    )

    _add_middleware(app, [*(extra_middleware or []), *discovered(GROUP_MIDDLEWARE)])

    handlers = list(extra_error_handlers or [])
    for value in discovered(GROUP_ERROR_HANDLERS):
        if isinstance(value, ErrorHandlerContribution):
            handlers.append(value)
        elif callable(value):
            value(app)
        else:
            logger.warning("error_handler_entry_point_ignored", extra={"value": repr(value)})
    for contribution in handlers:
        app.add_exception_handler(contribution.exception_class, contribution.handler)

    for router in [*(extra_routers or []), *discovered(GROUP_ROUTERS)]:
        app.include_router(router)  # type: ignore[arg-type]
        logger.debug("router_included", extra={"prefix": getattr(router, "prefix", "")})

    return app


def _add_middleware(app: FastAPI, contributions: list[object]) -> None:
    """Register middleware so the lowest priority ends up outermost.

    Starlette wraps each added middleware around the previous ones, so
    contributions are added from the highest priority down.
    """
    valid = [c for c in contributions if isinstance(c, MiddlewareContribution)]
    if len(valid) != len(contributions):
        logger.warning(
            "middleware_entry_point_ignored",
            extra={"ignored": len(contributions) - len(valid)},
        )
    for contribution in sorted(valid, key=lambda c: c.priority, reverse=True):
        app.add_middleware(contribution.middleware_class, **contribution.kwargs)
        logger.debug(
            "middleware_registered",
            extra={
                "middleware": contribution.middleware_class.__name__,
                "priority": contribution.priority,
            },
        )
