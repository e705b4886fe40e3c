"""Callsheet Infra FastAPI: app factory, error handlers, request id middleware."""

from callsheet.infra.fastapi.app_factory import (
    ALL_GROUPS,
    GROUP_ERROR_HANDLERS,
    GROUP_LIFESPAN,
    GROUP_MIDDLEWARE,
    GROUP_ROUTERS,
    create_app,
)
from callsheet.infra.fastapi.error_handlers import (
    ProblemDetail,
    register_exception_handlers,
)
from callsheet.infra.fastapi.middleware.request_id import (
    RequestIdMiddleware,
    get_request_id,
)
from callsheet.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "ALL_GROUPS",
    "GROUP_ERROR_HANDLERS",
    "GROUP_LIFESPAN",
    "GROUP_MIDDLEWARE",
    "GROUP_ROUTERS",
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "create_app",
    "get_request_id",
    "register_exception_handlers",
]
