"""Value Store: per-entity field values in the profile and studio tables.

All methods run on the caller's session and never commit; the registries
and the value writer own the transaction boundaries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select

from callsheet.domain.profile_schema.models import (
    VALUE_MODELS,
    ProfileField,
    entity_column,
    value_model_for,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from callsheet.domain.profile_schema.value_objects import TenantType

logger = logging.getLogger(__name__)


def _dialect_insert(dialect_name: str) -> Any:
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        msg = f"Atomic upsert is not supported for dialect {dialect_name!r}"
        raise NotImplementedError(msg)
    return insert


class ValueStore:
    """Read/write access to the stored values of profiles and studios.

    One row per (entity, field) pair, guaranteed by a unique constraint on
    each value table.

    Args:
        session: Request-scoped SQLAlchemy session.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_entity(
        self,
        tenant_type: TenantType,
        entity_id: str,
    ) -> list[tuple[ProfileField, str]]:
        """Stored values of an entity joined with their field definitions.

        Only fields that apply to ``tenant_type`` are returned, so a field
        whose applicability was narrowed no longer surfaces its old values.

        Args:
            tenant_type: Tenant type of the entity (selects the value table).
            entity_id: Profile or studio id.

        Returns:
            ``(field, raw_value)`` pairs in display order.
        """
        model = value_model_for(tenant_type)
        stmt = (
            select(ProfileField, model.value)
            .join(model, model.field_id == ProfileField.id)
            .where(
                entity_column(model) == entity_id,
                ProfileField.applicability.in_(tenant_type.applicabilities()),
            )
            .order_by(ProfileField.order, ProfileField.id)
        )
        return [(field, raw) for field, raw in self._session.execute(stmt).all()]

    def stored_field_ids(self, tenant_type: TenantType, entity_id: str) -> set[int]:
        """Ids of the fields the entity currently has a value for."""
        model = value_model_for(tenant_type)
        stmt = select(model.field_id).where(entity_column(model) == entity_id)
        return set(self._session.scalars(stmt).all())

    def upsert(self, tenant_type: TenantType, entity_id: str, field_id: int, raw: str) -> None:
        """Insert or update the value of one (entity, field) pair.

        Issued as a single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent
        submissions for the same pair cannot violate the unique constraint;
        the last writer wins.

        Args:
            tenant_type: Tenant type of the entity.
            entity_id: Profile or studio id.
            field_id: Field the value belongs to.
            raw: Encoded value.
        """
        model = value_model_for(tenant_type)
        entity_col = entity_column(model)
        insert = _dialect_insert(self._session.get_bind().dialect.name)
        stmt = insert(model).values(
            {entity_col.key: entity_id, "field_id": field_id, "value": raw}
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[entity_col.key, "field_id"],
            set_={"value": stmt.excluded["value"], "updated_at": func.now()},
        )
        self._session.execute(stmt)

    def delete(self, tenant_type: TenantType, entity_id: str, field_id: int) -> bool:
        """Remove one stored value.

        Returns:
            True if a row was deleted, False if none existed.
        """
        model = value_model_for(tenant_type)
        result = self._session.execute(
            delete(model).where(entity_column(model) == entity_id, model.field_id == field_id)
        )
        row_count: int = getattr(result, "rowcount", 0)
        return row_count > 0

    def delete_entity(self, tenant_type: TenantType, entity_id: str) -> int:
        """Remove every stored value of an entity.

        Returns:
            Number of rows deleted.
        """
        model = value_model_for(tenant_type)
        result = self._session.execute(delete(model).where(entity_column(model) == entity_id))
        row_count: int = getattr(result, "rowcount", 0)
        logger.info(
            "entity_values_purged",
            extra={"tenant_type": str(tenant_type), "entity_id": entity_id, "rows": row_count},
        )
        return row_count

    def count_for_field(self, field_id: int, tenant_type: TenantType | None = None) -> int:
        """Number of stored values referencing a field.

        Counts both tables unless ``tenant_type`` picks one.
        """
        models = VALUE_MODELS.values() if tenant_type is None else [VALUE_MODELS[tenant_type]]
        total = 0
        for model in models:
            stmt = select(func.count()).select_from(model).where(model.field_id == field_id)
            total += self._session.scalar(stmt) or 0
        return total

    def count_option_usage(self, field_id: int, token: str) -> int:
        """Number of stored values holding an option's value token."""
        total = 0
        for model in VALUE_MODELS.values():
            stmt = (
                select(func.count())
                .select_from(model)
                .where(model.field_id == field_id, model.value == token)
            )
            total += self._session.scalar(stmt) or 0
        return total

    def delete_option_usage(self, field_id: int, token: str) -> int:
        """Remove stored values holding an option's value token.

        Returns:
            Number of rows deleted across both tables.
        """
        total = 0
        for model in VALUE_MODELS.values():
            result = self._session.execute(
                delete(model).where(model.field_id == field_id, model.value == token)
            )
            total += getattr(result, "rowcount", 0)
        return total

    def delete_for_field(self, field_id: int) -> int:
        """Remove every stored value of a field across both tables.

        Returns:
            Number of rows deleted.
        """
        total = 0
        for model in VALUE_MODELS.values():
            result = self._session.execute(delete(model).where(model.field_id == field_id))
            total += getattr(result, "rowcount", 0)
        return total
