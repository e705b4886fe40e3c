"""Callsheet foundation application: request context and contribution discovery."""

from callsheet.foundation.application.context import (
    NoRequestContextError,
    clear_principal_context,
    get_current_principal,
    get_optional_principal,
    set_principal_context,
)
from callsheet.foundation.application.contributions import (
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LIFESPAN_PRIORITY_PERSISTENCE,
    LIFESPAN_PRIORITY_PROFILE_SCHEMA,
    ErrorHandlerContribution,
    LifespanContribution,
    MiddlewareContribution,
)
from callsheet.foundation.application.discovery import (
    DiscoveredContribution,
    discover,
)

__all__ = [
    "LIFESPAN_PRIORITY_OBSERVABILITY",
    "LIFESPAN_PRIORITY_PERSISTENCE",
    "LIFESPAN_PRIORITY_PROFILE_SCHEMA",
    "DiscoveredContribution",
    "ErrorHandlerContribution",
    "LifespanContribution",
    "MiddlewareContribution",
    "NoRequestContextError",
    "clear_principal_context",
    "discover",
    "get_current_principal",
    "get_optional_principal",
    "set_principal_context",
]
