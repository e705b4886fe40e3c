"""The authenticated caller of the current request.

JWTAuthMiddleware stores the verified :class:`Principal` in a ContextVar for
the duration of the request, so dependencies read it without it being
passed through every signature.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextvars import Token

    from callsheet.foundation.domain.principal import Principal


class NoRequestContextError(RuntimeError):
    """Raised when the principal is read outside an authenticated request."""

    def __init__(self) -> None:
        super().__init__(
            "No principal in context; this code must run inside a request "
            "that passed JWTAuthMiddleware."
        )


_principal: ContextVar[Principal | None] = ContextVar("callsheet_principal", default=None)


def set_principal_context(principal: Principal) -> Token[Principal | None]:
    """Make ``principal`` the caller of the current request.

    Returns:
        Token to pass to :func:`clear_principal_context`.
    """
    return _principal.set(principal)


def clear_principal_context(token: Token[Principal | None]) -> None:
    _principal.reset(token)


def get_current_principal() -> Principal:
    """The caller of the current request.

    Raises:
        NoRequestContextError: Outside an authenticated request.
    """
    principal = _principal.get()
    if principal is None:
        raise NoRequestContextError()
    return principal


def get_optional_principal() -> Principal | None:
    return _principal.get()
