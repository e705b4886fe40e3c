"""structlog setup shared by structlog and standard library loggers.

Registry and value writer modules log through ``logging.getLogger``; their
records go through a ``ProcessorFormatter`` with the same processors as
structlog's own loggers. Production renders one JSON object per line,
anything else renders coloured console output. ``request_id`` bound by
RequestIdMiddleware appears on every line of a request.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

Processor = structlog.types.Processor

LOG_LEVELS = ("CRITICAL", "DEBUG", "ERROR", "INFO", "WARNING")

SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {"authorization", "api_key", "apikey", "bearer", "credential", "jwt_secret"}
)
_SENSITIVE_MARKERS = ("password", "secret", "token")

REDACTED_VALUE: str = "***REDACTED***"


class LoggingSettings(BaseSettings):
    """``LOG_LEVEL`` and ``ENVIRONMENT``, read without a prefix."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> str:
        return str(v).upper()

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        if v not in LOG_LEVELS:
            msg = f"log_level must be one of {list(LOG_LEVELS)}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        level: int = getattr(logging, self.log_level)
        return level


class SensitiveDataProcessor:
    """Replaces the value of credential-like keys with :data:`REDACTED_VALUE`.

    A key is credential-like when it is one of :data:`SENSITIVE_FIELDS` or
    contains ``password``, ``secret`` or ``token``, ignoring case.
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in [k for k in event_dict if _is_sensitive(k)]:
            event_dict[key] = REDACTED_VALUE
        return event_dict


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered in SENSITIVE_FIELDS or any(m in lowered for m in _SENSITIVE_MARKERS)


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Install the processor chain and replace the root logger's handlers.

    Called once at startup by the observability lifespan hook.

    Args:
        settings: Defaults to :func:`get_logging_settings`.
    """
    settings = settings or get_logging_settings()
    level = settings.log_level_int

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
    ]
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if settings.use_json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared, structlog.processors.format_exc_info, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.ExtraAdder(),
                *shared,
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


def get_logger(name: str | None = None) -> structlog.typing.WrappedLogger:
    """A structlog logger, bound to ``logger=name`` when a name is given."""
    logger = structlog.get_logger()
    return logger.bind(logger=name) if name is not None else logger
