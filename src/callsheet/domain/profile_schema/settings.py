"""Profile schema configuration.

Environment Variables:
    PROFILE_SCHEMA_CACHE_TTL_SECONDS: Lifetime of a cached resolved schema
    PROFILE_SCHEMA_CACHE_MAXSIZE: Maximum number of cached tenant schemas
    PROFILE_SCHEMA_CREATE_TABLES: Create missing tables at startup
    PROFILE_SCHEMA_SEED_SYSTEM_FIELDS: Insert the built-in system fields at startup
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProfileSchemaSettings(BaseSettings):
    """Profile schema settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PROFILE_SCHEMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="Seconds a resolved schema stays cached (0 disables caching)",
    )
    cache_maxsize: int = Field(
        default=16,
        ge=1,
        description="Maximum number of cached resolved schemas",
    )
    create_tables: bool = Field(
        default=True,
        description="Create missing profile schema tables at startup",
    )
    seed_system_fields: bool = Field(
        default=True,
        description="Insert the built-in system fields at startup",
    )


@lru_cache(maxsize=1)
def get_profile_schema_settings() -> ProfileSchemaSettings:
    """Get cached profile schema settings singleton."""
    return ProfileSchemaSettings()
