"""Profile schema service application.

Everything is auto-discovered from the installed ``callsheet.*`` entry
points: the profile schema router and lifespan, health endpoint, request id
and JWT middleware, and RFC 7807 error handlers.

Usage::

    uvicorn --factory callsheet.domain.profile_schema.app:create_profile_schema_app
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from callsheet.infra.fastapi import AppSettings, create_app

if TYPE_CHECKING:
    from fastapi import FastAPI


def create_profile_schema_app(
    *,
    settings: AppSettings | None = None,
    exclude_names: frozenset[str] | None = None,
) -> FastAPI:
    """Create the profile schema app.

    Args:
        settings: Application settings; loaded from ``APP_*`` when omitted.
        exclude_names: Entry-point names to suppress, e.g. ``{"jwt_auth"}``
            behind a gateway that already verified the caller.
    """
    return create_app(settings=settings, exclude_names=exclude_names)
