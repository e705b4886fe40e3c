"""Settings of the FastAPI application: metadata, CORS and discovery filters.

Environment Variables:
    APP_TITLE, APP_VERSION, APP_DEBUG, ...: Application metadata
    APP_EXCLUDE_ENTRY_POINTS: Entry point names create_app must not load
    CORS_ALLOW_ORIGINS: Comma-separated origins allowed to call the API
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

CommaSeparated = Annotated[list[str], NoDecode]


class CORSSettings(BaseSettings):
    """CORS policy for the admin UI and the marketplace front end.

    List settings accept comma-separated strings (``CORS_ALLOW_ORIGINS=a,b``).
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: CommaSeparated = Field(default=["*"])
    allow_methods: CommaSeparated = Field(default=["*"])
    allow_headers: CommaSeparated = Field(default=["*"])
    allow_credentials: bool = False
    expose_headers: CommaSeparated = Field(default=["X-Request-ID"])

    @field_validator(
        "allow_origins", "allow_methods", "allow_headers", "expose_headers", mode="before"
    )
    @classmethod
    def _split(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return list(v) if isinstance(v, (list, tuple)) else ["*"]

    @model_validator(mode="after")
    def _no_credentials_with_wildcard(self) -> CORSSettings:
        if self.allow_credentials and "*" in self.allow_origins:
            msg = "CORS allow_credentials requires explicit allow_origins, not '*'"
            raise ValueError(msg)
        return self


def _installed_version() -> str:
    try:
        return version("callsheet")
    except PackageNotFoundError:
        return "0.0.0"


class AppSettings(BaseSettings):
    """Application settings loaded from ``APP_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    title: str = "Callsheet Profile Schema"
    version: str = Field(default_factory=_installed_version)
    description: str = "Admin-configurable profile fields and typed values"
    docs_url: str | None = "/docs"
    redoc_url: str | None = "/redoc"
    openapi_url: str | None = "/openapi.json"
    debug: bool = False
    cors: CORSSettings = Field(default_factory=CORSSettings)

    exclude_groups: frozenset[str] = frozenset()
    exclude_entry_points: frozenset[str] = frozenset()
