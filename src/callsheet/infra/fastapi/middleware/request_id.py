"""``X-Request-ID`` correlation for every request.

The id is taken from the request when the client sent a UUID and minted
otherwise. It is readable through :func:`get_request_id`, bound into the
structlog context for log lines emitted during the request, and echoed on
the response.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

from callsheet.foundation.application import MiddlewareContribution

if TYPE_CHECKING:
    from collections.abc import Callable

REQUEST_ID_HEADER = "X-Request-ID"
_HEADER_KEY = REQUEST_ID_HEADER.lower().encode("latin-1")

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Request id of the current request, or ``""`` outside one."""
    return request_id_ctx.get()


def _incoming_request_id(scope: dict[str, Any]) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() != _HEADER_KEY:
            continue
        candidate = value.decode("latin-1")
        try:
            uuid.UUID(candidate)
        except ValueError:
            return None
        return candidate
    return None


class RequestIdMiddleware:
    """Pure ASGI middleware attaching a request id to each HTTP exchange.

    A header that is not a UUID is replaced, not rejected.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                message = {
                    **message,
                    "headers": [
                        *message.get("headers", []),
                        (_HEADER_KEY, request_id.encode("latin-1")),
                    ],
                }
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            request_id_ctx.reset(token)


contribution = MiddlewareContribution(middleware_class=RequestIdMiddleware, priority=10)
