"""FastAPI dependencies wiring the profile schema services to a request.

The schema cache is process-wide; registries, resolver and value service
are built per request on the request's database session.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from callsheet.domain.profile_schema.registry import FieldRegistry, OptionRegistry
from callsheet.domain.profile_schema.resolver import SchemaCache, SchemaResolver
from callsheet.domain.profile_schema.service import ValueService
from callsheet.domain.profile_schema.settings import get_profile_schema_settings
from callsheet.infra.persistence import DbSession  # noqa: TC001


@lru_cache(maxsize=1)
def get_schema_cache() -> SchemaCache:
    """Process-wide schema cache sized from ``PROFILE_SCHEMA_*`` settings."""
    settings = get_profile_schema_settings()
    return SchemaCache(maxsize=settings.cache_maxsize, ttl=settings.cache_ttl_seconds)


SchemaCacheDep = Annotated[SchemaCache, Depends(get_schema_cache)]


def get_field_registry(session: DbSession, cache: SchemaCacheDep) -> FieldRegistry:
    return FieldRegistry(session, cache)


def get_option_registry(session: DbSession, cache: SchemaCacheDep) -> OptionRegistry:
    return OptionRegistry(session, cache)


def get_schema_resolver(session: DbSession, cache: SchemaCacheDep) -> SchemaResolver:
    return SchemaResolver(session, cache)


def get_value_service(session: DbSession) -> ValueService:
    return ValueService(session)


FieldRegistryDep = Annotated[FieldRegistry, Depends(get_field_registry)]
OptionRegistryDep = Annotated[OptionRegistry, Depends(get_option_registry)]
SchemaResolverDep = Annotated[SchemaResolver, Depends(get_schema_resolver)]
ValueServiceDep = Annotated[ValueService, Depends(get_value_service)]
