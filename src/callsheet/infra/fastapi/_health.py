"""``GET /healthz``: 200 when the database answers, 503 otherwise."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from callsheet.infra.persistence.database import get_database_manager

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _ping_database() -> None:
    with get_database_manager().get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))


async def _database_check() -> dict[str, str]:
    try:
        await asyncio.to_thread(_ping_database)
    except Exception as exc:
        logger.warning("health_database_unreachable", extra={"error": type(exc).__name__})
        return {"status": "error", "detail": type(exc).__name__}
    return {"status": "ok"}


@router.get("/healthz")
async def healthz() -> Any:
    checks = {"database": await _database_check()}
    healthy = all(check["status"] == "ok" for check in checks.values())
    return JSONResponse(
        content={"status": "ok" if healthy else "degraded", "checks": checks},
        status_code=200 if healthy else 503,
    )
