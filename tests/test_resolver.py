"""Tests for the Schema Resolver and its cache."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from callsheet.domain.profile_schema.commands import FieldPatch, FieldSpec, OptionSpec
from callsheet.domain.profile_schema.registry import FieldRegistry, OptionRegistry
from callsheet.domain.profile_schema.resolver import (
    ResolvedField,
    SchemaCache,
    SchemaResolver,
)
from callsheet.domain.profile_schema.value_objects import (
    Applicability,
    FieldType,
    TenantType,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


@pytest.fixture()
def fields(db_session: Session, schema_cache: SchemaCache) -> FieldRegistry:
    return FieldRegistry(db_session, schema_cache)


@pytest.fixture()
def resolver(db_session: Session, schema_cache: SchemaCache) -> SchemaResolver:
    return SchemaResolver(db_session, schema_cache)


@pytest.mark.unit
class TestResolve:
    def test_applicability_filter(self, fields: FieldRegistry, resolver: SchemaResolver) -> None:
        fields.create(FieldSpec(name="t", label="T", type=FieldType.TEXT, applicability="TALENT"))
        fields.create(FieldSpec(name="s", label="S", type=FieldType.TEXT, applicability="STUDIO"))
        fields.create(FieldSpec(name="b", label="B", type=FieldType.TEXT, applicability="BOTH"))

        assert [f.name for f in resolver.resolve(TenantType.TALENT)] == ["t", "b"]
        assert [f.name for f in resolver.resolve("studio")] == ["s", "b"]

    def test_invisible_fields_never_resolved(
        self, fields: FieldRegistry, resolver: SchemaResolver
    ) -> None:
        fields.create(FieldSpec(name="shown", label="Shown", type=FieldType.TEXT))
        hidden = fields.create(
            FieldSpec(name="hidden", label="Hidden", type=FieldType.TEXT, is_visible=False)
        )

        for tenant_type in TenantType:
            assert "hidden" not in {f.name for f in resolver.resolve(tenant_type)}

        fields.update(hidden.id, FieldPatch(is_visible=True))
        assert "hidden" in {f.name for f in resolver.resolve(TenantType.TALENT)}

    def test_sorted_by_order_then_id(
        self, fields: FieldRegistry, resolver: SchemaResolver
    ) -> None:
        fields.create(FieldSpec(name="c", label="C", type=FieldType.TEXT, order=2))
        fields.create(FieldSpec(name="a", label="A", type=FieldType.TEXT, order=1))
        fields.create(FieldSpec(name="b", label="B", type=FieldType.TEXT, order=2))

        assert [f.name for f in resolver.resolve(TenantType.TALENT)] == ["a", "c", "b"]

    def test_options_joined_in_order(
        self, fields: FieldRegistry, resolver: SchemaResolver
    ) -> None:
        fields.create(
            FieldSpec(
                name="favoriteColor",
                label="Favorite Color",
                type=FieldType.DROPDOWN,
                options=[
                    OptionSpec(value="red", label="Red", order=2),
                    OptionSpec(value="blue", label="Blue", order=1),
                ],
            )
        )
        fields.create(FieldSpec(name="bio", label="Bio", type=FieldType.TEXT))

        color, bio = resolver.resolve(TenantType.TALENT)

        assert [o.value for o in color.options] == ["blue", "red"]
        assert bio.options == ()

    def test_results_are_immutable_snapshots(
        self, fields: FieldRegistry, resolver: SchemaResolver
    ) -> None:
        fields.create(FieldSpec(name="bio", label="Bio", type=FieldType.TEXT))
        (field,) = resolver.resolve(TenantType.TALENT)

        assert isinstance(field, ResolvedField)
        assert field.applicability is Applicability.BOTH
        with pytest.raises(AttributeError):
            field.label = "Changed"  # type: ignore[misc]

    def test_unknown_tenant_type(self, resolver: SchemaResolver) -> None:
        with pytest.raises(ValueError):
            resolver.resolve("agency")


@pytest.mark.unit
class TestCaching:
    def test_second_resolve_is_a_hit(
        self, fields: FieldRegistry, resolver: SchemaResolver, schema_cache: SchemaCache
    ) -> None:
        fields.create(FieldSpec(name="bio", label="Bio", type=FieldType.TEXT))

        first = resolver.resolve(TenantType.TALENT)
        second = resolver.resolve(TenantType.TALENT)

        assert first is second
        assert schema_cache.stats.hits == 1
        assert schema_cache.stats.misses == 1

    def test_option_mutation_invalidates(
        self,
        fields: FieldRegistry,
        resolver: SchemaResolver,
        db_session: Session,
        schema_cache: SchemaCache,
    ) -> None:
        color = fields.create(
            FieldSpec(
                name="favoriteColor",
                label="Favorite Color",
                type=FieldType.DROPDOWN,
                options=[OptionSpec(value="red", label="Red")],
            )
        )
        assert [o.value for o in resolver.resolve("talent")[0].options] == ["red"]

        OptionRegistry(db_session, schema_cache).create(
            color.id, OptionSpec(value="blue", label="Blue")
        )

        assert [o.value for o in resolver.resolve("talent")[0].options] == ["red", "blue"]

    def test_field_deletion_invalidates(
        self, fields: FieldRegistry, resolver: SchemaResolver
    ) -> None:
        bio = fields.create(FieldSpec(name="bio", label="Bio", type=FieldType.TEXT))
        assert len(resolver.resolve("talent")) == 1

        fields.delete(bio.id)

        assert resolver.resolve("talent") == ()


@pytest.mark.unit
class TestSchemaCache:
    def test_invalidate_single_tenant_type(self) -> None:
        cache = SchemaCache()
        cache.get_or_load(TenantType.TALENT, lambda: ())
        cache.get_or_load(TenantType.STUDIO, lambda: ())

        cache.invalidate(TenantType.TALENT)

        assert cache.stats.size == 1

    def test_zero_ttl_disables_caching(self) -> None:
        cache = SchemaCache(ttl=0)
        calls: list[int] = []

        def loader() -> tuple[ResolvedField, ...]:
            calls.append(1)
            return ()

        cache.get_or_load(TenantType.TALENT, loader)
        cache.get_or_load(TenantType.TALENT, loader)

        assert len(calls) == 2
        assert cache.stats.size == 0

    def test_load_overtaken_by_invalidation_is_not_stored(self) -> None:
        cache = SchemaCache()
        loading = threading.Event()
        release = threading.Event()

        def slow_loader() -> tuple[ResolvedField, ...]:
            loading.set()
            release.wait(timeout=5)
            return ()

        worker = threading.Thread(
            target=cache.get_or_load, args=(TenantType.TALENT, slow_loader)
        )
        worker.start()
        loading.wait(timeout=5)
        cache.invalidate()
        release.set()
        worker.join(timeout=5)

        assert cache.stats.size == 0
