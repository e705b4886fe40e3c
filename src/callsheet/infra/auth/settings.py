"""``AUTH_*`` settings for verifying marketplace tokens.

Tokens are minted by the marketplace's auth service with a shared secret;
callsheet only verifies them. An empty ``AUTH_ISSUER`` or ``AUTH_AUDIENCE``
turns that claim check off.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="", repr=False)
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    issuer: str = ""
    audience: str = ""
    leeway_seconds: int = Field(default=0, ge=0, le=300, description="Tolerated clock skew")
    dev_bypass: bool = Field(
        default=False,
        description="Run unauthenticated requests as ADMIN outside production",
    )


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    return AuthSettings()
