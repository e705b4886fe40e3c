"""What an installed package can contribute to the assembled application.

Packages expose instances of these dataclasses through ``callsheet.*``
entry points. They carry no FastAPI types, so domain packages can declare
contributions from the foundation layer alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MIDDLEWARE_PRIORITY_MIN = 0
MIDDLEWARE_PRIORITY_MAX = 499

LIFESPAN_PRIORITY_OBSERVABILITY = 50
LIFESPAN_PRIORITY_PERSISTENCE = 75
LIFESPAN_PRIORITY_PROFILE_SCHEMA = 100


@dataclass(frozen=True, slots=True)
class MiddlewareContribution:
    """An ASGI middleware and where it sits in the stack.

    Attributes:
        middleware_class: Middleware class passed to ``add_middleware()``.
        priority: Position in the stack; lower is further out. 0-99 wraps
            everything (request id), 100-199 is security (JWT auth).
        kwargs: Constructor keyword arguments.
    """

    middleware_class: type[Any]
    priority: int = 400
    kwargs: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not MIDDLEWARE_PRIORITY_MIN <= self.priority <= MIDDLEWARE_PRIORITY_MAX:
            msg = (
                f"Middleware priority must be between {MIDDLEWARE_PRIORITY_MIN} "
                f"and {MIDDLEWARE_PRIORITY_MAX}, got {self.priority}"
            )
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ErrorHandlerContribution:
    """An exception type and the async ``(request, exc)`` handler rendering it."""

    exception_class: type[BaseException]
    handler: Any


@dataclass(frozen=True, slots=True)
class LifespanContribution:
    """A startup/shutdown hook.

    Attributes:
        hook: ``(app) -> AsyncContextManager[None]`` factory.
        priority: Hooks start in ascending priority and stop in reverse.
    """

    hook: Any
    priority: int = 500
