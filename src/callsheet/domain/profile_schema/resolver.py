"""Schema Resolver: the ordered form schema for a tenant type.

Resolution is a pure read over committed rows. Results are immutable
snapshots (:class:`ResolvedField`, :class:`ResolvedOption`) rather than ORM
instances, so they can be cached and shared between requests safely.

The cache is an explicit object passed to the resolver and to the
registries that invalidate it. It is keyed by tenant type and bounded by a
TTL so processes that did not perform a mutation converge as well.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cachetools import TTLCache  # type: ignore[import-untyped]
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from callsheet.domain.profile_schema.models import ProfileField
from callsheet.domain.profile_schema.rules import ValidationRules
from callsheet.domain.profile_schema.value_objects import (
    Applicability,
    FieldType,
    TenantType,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session

    from callsheet.domain.profile_schema.models import FieldOption

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedOption:
    """Snapshot of one option of a resolved field."""

    id: int
    value: str
    label: str
    color: str | None
    order: int
    is_default: bool

    @classmethod
    def from_model(cls, option: FieldOption) -> ResolvedOption:
        return cls(
            id=option.id,
            value=option.value,
            label=option.label,
            color=option.color,
            order=option.order,
            is_default=option.is_default,
        )


@dataclass(frozen=True, slots=True)
class ResolvedField:
    """Snapshot of a visible field as rendered in a form.

    Attributes:
        id: Field id.
        name: Internal field name (key in value mappings).
        label: Display label.
        type: Declared field type.
        applicability: Tenant types the field applies to.
        options: Ordered choices; empty unless the type is enumerated.
    """

    id: int
    name: str
    label: str
    description: str | None
    type: FieldType
    applicability: Applicability
    is_required: bool
    default_value: str | None
    placeholder: str | None
    group_name: str | None
    order: int
    is_system: bool
    validation_rules: ValidationRules = field(default_factory=ValidationRules)
    options: tuple[ResolvedOption, ...] = ()

    @classmethod
    def from_model(cls, model: ProfileField) -> ResolvedField:
        field_type = model.type
        options = (
            tuple(ResolvedOption.from_model(o) for o in _ordered(model.options))
            if field_type.is_enumerated
            else ()
        )
        return cls(
            id=model.id,
            name=model.name,
            label=model.label,
            description=model.description,
            type=field_type,
            applicability=model.applies_to,
            is_required=model.is_required,
            default_value=model.default_value,
            placeholder=model.placeholder,
            group_name=model.group_name,
            order=model.order,
            is_system=model.is_system,
            validation_rules=ValidationRules.from_json(model.validation_rules),
            options=options,
        )


def _ordered(options: list[FieldOption]) -> list[FieldOption]:
    return sorted(options, key=lambda o: (o.order, o.id))


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters exposed for diagnostics and tests."""

    hits: int
    misses: int
    invalidations: int
    size: int


class SchemaCache:
    """Read-through cache of resolved schemas keyed by tenant type.

    Lookups, stores and invalidation are guarded by a lock. A load that started
    before an invalidation never stores its (possibly stale) result.

    Args:
        maxsize: Maximum number of cached tenant types.
        ttl: Seconds an entry stays valid. ``0`` disables caching.

    Example:
        >>> cache = SchemaCache(maxsize=4, ttl=60)
        >>> cache.get_or_load(TenantType.TALENT, lambda: ())
        ()
        >>> cache.stats.misses
        1
    """

    def __init__(self, maxsize: int = 16, ttl: float = 300) -> None:
        self._ttl = ttl
        self._entries: TTLCache[TenantType, tuple[ResolvedField, ...]] = TTLCache(
            maxsize=maxsize, ttl=ttl if ttl > 0 else 1
        )
        self._lock = threading.Lock()
        self._generation = 0
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def get_or_load(
        self,
        tenant_type: TenantType,
        loader: Callable[[], tuple[ResolvedField, ...]],
    ) -> tuple[ResolvedField, ...]:
        """Return the cached schema, loading and storing it on a miss.

        The loader runs outside the lock so a slow database read does not
        block other tenant types.
        """
        with self._lock:
            cached = self._entries.get(tenant_type) if self._ttl > 0 else None
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1
            generation = self._generation

        loaded = loader()

        with self._lock:
            if self._ttl > 0 and generation == self._generation:
                self._entries[tenant_type] = loaded
        return loaded

    def invalidate(self, tenant_type: TenantType | None = None) -> None:
        """Drop one tenant type's entry, or every entry when none is given."""
        with self._lock:
            self._generation += 1
            self._invalidations += 1
            if tenant_type is None:
                self._entries.clear()
            else:
                self._entries.pop(tenant_type, None)
        logger.debug(
            "schema_cache_invalidated",
            extra={"tenant_type": str(tenant_type) if tenant_type else "all"},
        )

    @property
    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                invalidations=self._invalidations,
                size=len(self._entries),
            )


class SchemaResolver:
    """Resolves the visible, ordered fields of a tenant type.

    Args:
        session: Request-scoped SQLAlchemy session.
        cache: Shared schema cache.
    """

    def __init__(self, session: Session, cache: SchemaCache) -> None:
        self._session = session
        self._cache = cache

    def resolve(self, tenant_type: TenantType | str) -> tuple[ResolvedField, ...]:
        """Visible fields applying to ``tenant_type`` or BOTH, by order then id.

        Args:
            tenant_type: ``talent`` or ``studio``.

        Returns:
            Immutable field snapshots, options included for enumerated types.

        Raises:
            ValueError: If ``tenant_type`` is not a known tenant type.
        """
        tenant = TenantType(tenant_type)
        return self._cache.get_or_load(tenant, lambda: self._load(tenant))

    def resolve_by_name(self, tenant_type: TenantType | str) -> dict[str, ResolvedField]:
        """Resolved fields keyed by name."""
        return {f.name: f for f in self.resolve(tenant_type)}

    def _load(self, tenant_type: TenantType) -> tuple[ResolvedField, ...]:
        stmt = (
            select(ProfileField)
            .where(
                ProfileField.is_visible.is_(True),
                ProfileField.applicability.in_(tenant_type.applicabilities()),
            )
            .options(selectinload(ProfileField.options))
            .order_by(ProfileField.order, ProfileField.id)
            .execution_options(populate_existing=True)
        )
        fields = tuple(ResolvedField.from_model(f) for f in self._session.scalars(stmt).all())
        logger.debug(
            "schema_resolved",
            extra={"tenant_type": str(tenant_type), "field_count": len(fields)},
        )
        return fields

