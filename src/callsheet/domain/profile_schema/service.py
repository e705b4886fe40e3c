"""Value Resolver/Writer: read and submit the field values of an entity.

A submission is validated in full before anything is written. All
violations are reported together, and the accepted writes of one submission
are committed in a single transaction so an entity never ends up with a
partial update.

Example:
    >>> service = ValueService(session)
    >>> service.set_values("talent", "p-1", {"favoriteColor": "red"})
    {'favoriteColor': 'red'}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from callsheet.domain.profile_schema.models import ProfileField
from callsheet.domain.profile_schema.repository import ValueStore
from callsheet.domain.profile_schema.rules import ValidationRules
from callsheet.domain.profile_schema.value_objects import TenantType
from callsheet.domain.profile_schema.values import coerce_value, decode_value
from callsheet.foundation.domain import FieldValuesInvalidError
from callsheet.infra.persistence import transaction

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Session

    from callsheet.domain.profile_schema.values import FieldValue

logger = logging.getLogger(__name__)

REQUIRED = "is required"
NOT_AN_OPTION = "is not a valid option"


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


class ValueService:
    """Reads, validates and writes per-entity field values.

    Args:
        session: Request-scoped SQLAlchemy session.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._store = ValueStore(session)

    def get_typed_values(
        self,
        tenant_type: TenantType | str,
        entity_id: str,
    ) -> dict[str, FieldValue]:
        """Stored values of an entity as typed variants, keyed by field name.

        Fields without a stored value are absent; defaults are not filled in.

        Raises:
            ValueError: If a stored value is not a valid encoding for its
                field's type.
        """
        tenant = TenantType(tenant_type)
        return {
            field.name: decode_value(field.type, raw)
            for field, raw in self._store.list_for_entity(tenant, entity_id)
        }

    def get_values(self, tenant_type: TenantType | str, entity_id: str) -> dict[str, Any]:
        """Stored values of an entity as plain Python values, keyed by field name."""
        return {
            name: value.value
            for name, value in self.get_typed_values(tenant_type, entity_id).items()
        }

    def set_values(
        self,
        tenant_type: TenantType | str,
        entity_id: str,
        values: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Validate and store a submission of field values.

        ``None`` or a blank string clears a field's value. Required visible
        fields must end up with a value: they may not be cleared, and when
        absent from the submission they must already have one.

        Args:
            tenant_type: ``talent`` or ``studio``.
            entity_id: Profile or studio id.
            values: Submitted values keyed by field name.

        Returns:
            The entity's values after the write, as returned by ``get_values``.

        Raises:
            FieldValuesInvalidError: Naming every field that failed, with
                its reason. Nothing is written in that case.
        """
        tenant = TenantType(tenant_type)
        violations: dict[str, str] = {}
        upserts: list[tuple[ProfileField, str]] = []
        clears: list[ProfileField] = []

        with transaction(self._session):
            fields = self._applicable_fields(tenant)
            stored_ids = self._store.stored_field_ids(tenant, entity_id)

            for name, raw in values.items():
                field = fields.get(name)
                if field is None:
                    violations[name] = f"is not a {tenant.value} field"
                    continue
                if _is_blank(raw):
                    if field.is_required and field.is_visible:
                        violations[name] = REQUIRED
                    else:
                        clears.append(field)
                    continue
                encoded, reason = _validate(field, raw)
                if reason is not None:
                    violations[name] = reason
                else:
                    upserts.append((field, encoded))

            for name, field in fields.items():
                if (
                    field.is_required
                    and field.is_visible
                    and name not in values
                    and field.id not in stored_ids
                ):
                    violations[name] = REQUIRED

            if violations:
                logger.info(
                    "field_values_rejected",
                    extra={
                        "tenant_type": tenant.value,
                        "entity_id": entity_id,
                        "fields": sorted(violations),
                    },
                )
                raise FieldValuesInvalidError(
                    violations, tenant_type=tenant.value, entity_id=entity_id
                )

            for field, encoded in upserts:
                self._store.upsert(tenant, entity_id, field.id, encoded)
            for field in clears:
                self._store.delete(tenant, entity_id, field.id)

        logger.info(
            "field_values_saved",
            extra={
                "tenant_type": tenant.value,
                "entity_id": entity_id,
                "written": len(upserts),
                "cleared": len(clears),
            },
        )
        return self.get_values(tenant, entity_id)

    def purge_entity(self, tenant_type: TenantType | str, entity_id: str) -> int:
        """Delete every stored value of an entity (profile or studio removed).

        Returns:
            Number of values deleted.
        """
        tenant = TenantType(tenant_type)
        with transaction(self._session):
            return self._store.delete_entity(tenant, entity_id)

    def _applicable_fields(self, tenant_type: TenantType) -> dict[str, ProfileField]:
        stmt = (
            select(ProfileField)
            .where(ProfileField.applicability.in_(tenant_type.applicabilities()))
            .options(selectinload(ProfileField.options))
            .order_by(ProfileField.order, ProfileField.id)
            .execution_options(populate_existing=True)
        )
        return {f.name: f for f in self._session.scalars(stmt).all()}


def _validate(field: ProfileField, raw: Any) -> tuple[str, str | None]:
    """Coerce and check one submitted value.

    Returns:
        ``(encoded, None)`` when valid, ``("", reason)`` otherwise.
    """
    try:
        value = coerce_value(field.type, raw)
    except ValueError as exc:
        return "", str(exc)
    if field.type.is_enumerated and value.value not in {o.value for o in field.options}:
        return "", NOT_AN_OPTION
    reason = ValidationRules.from_json(field.validation_rules).check(value)
    if reason is not None:
        return "", reason
    return value.encode(), None
