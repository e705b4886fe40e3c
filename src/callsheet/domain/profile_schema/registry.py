"""Field Registry and Option Registry.

Administrator-facing CRUD over field definitions and their options. Every
operation is one unit of work on the request session and every successful
mutation invalidates the shared schema cache after commit.

Authorization is enforced at the HTTP boundary; the registries assume an
administrator caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from callsheet.domain.profile_schema.models import FieldOption, ProfileField
from callsheet.domain.profile_schema.repository import ValueStore
from callsheet.domain.profile_schema.rules import ValidationRules
from callsheet.domain.profile_schema.value_objects import (
    Applicability,
    FieldName,
    FieldType,
    TenantType,
)
from callsheet.domain.profile_schema.values import coerce_value
from callsheet.foundation.domain import ConflictError, NotFoundError, ValidationError
from callsheet.infra.persistence import transaction

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.orm import Session

    from callsheet.domain.profile_schema.commands import (
        FieldPatch,
        FieldSpec,
        OptionPatch,
        OptionSpec,
        OptionSyncItem,
        OrderAssignment,
    )
    from callsheet.domain.profile_schema.resolver import SchemaCache

logger = logging.getLogger(__name__)

_SYSTEM_LOCKED = ("name", "type", "applicability")
_NOT_NULLABLE = ("label", "is_required", "is_visible", "order")


def check_default_value(
    field_type: FieldType,
    raw: str | None,
    option_values: Iterable[str],
    rules: ValidationRules,
) -> str | None:
    """Validate a field's default value and return its stored form.

    Raises:
        ValidationError: On ``default_value`` when the value does not fit the
            type, is not one of the options, or breaks a rule.
    """
    if raw is None or not raw.strip():
        return None
    try:
        value = coerce_value(field_type, raw)
    except ValueError as exc:
        raise ValidationError("default_value", str(exc)) from exc
    if field_type.is_enumerated and value.value not in set(option_values):
        raise ValidationError("default_value", "is not a valid option")
    reason = rules.check(value)
    if reason is not None:
        raise ValidationError("default_value", reason)
    return value.encode()


def _field_name(raw: str) -> str:
    try:
        return FieldName(raw).value
    except ValueError as exc:
        raise ValidationError("name", str(exc)) from exc


def _next_order(orders: Iterable[int]) -> int:
    return max(orders, default=0) + 1


class FieldRegistry:
    """Create, read, update, delete and reorder field definitions.

    Args:
        session: Request-scoped SQLAlchemy session.
        cache: Schema cache invalidated after each mutation.
    """

    def __init__(self, session: Session, cache: SchemaCache) -> None:
        self._session = session
        self._cache = cache
        self._values = ValueStore(session)

    def get(self, field_id: int) -> ProfileField:
        """Load a field with its options.

        Raises:
            NotFoundError: If no field has this id.
        """
        field = self._session.get(
            ProfileField,
            field_id,
            options=[selectinload(ProfileField.options)],
        )
        if field is None:
            raise NotFoundError("ProfileField", field_id)
        return field

    def list_fields(self, applicability: Applicability | None = None) -> list[ProfileField]:
        """All fields for the admin view, including invisible ones.

        Args:
            applicability: When given, only fields with this applicability or
                BOTH are returned.
        """
        stmt = (
            select(ProfileField)
            .options(selectinload(ProfileField.options))
            .order_by(ProfileField.order, ProfileField.id)
        )
        if applicability is not None:
            stmt = stmt.where(
                ProfileField.applicability.in_((applicability, Applicability.BOTH))
            )
        return list(self._session.scalars(stmt).all())

    def create(self, definition: FieldSpec) -> ProfileField:
        """Define a new field, with its options when it is a single-choice field.

        Raises:
            ValidationError: On a malformed or already used name, options on a
                non-choice type, duplicate option values or an invalid default.
        """
        with transaction(self._session):
            name = _field_name(definition.name)
            self._ensure_name_available(name, definition.applicability)
            if definition.options and not definition.type.is_enumerated:
                raise ValidationError(
                    "options", f"options are not supported for {definition.type} fields"
                )
            _ensure_unique_values(o.value for o in definition.options)
            _ensure_single_default(definition.options)
            rules = definition.validation_rules or ValidationRules()

            field = ProfileField(
                name=name,
                label=definition.label,
                description=definition.description,
                field_type=definition.type.value,
                applicability=definition.applicability.value,
                is_required=definition.is_required,
                is_visible=definition.is_visible,
                default_value=check_default_value(
                    definition.type,
                    definition.default_value,
                    (o.value for o in definition.options),
                    rules,
                ),
                placeholder=definition.placeholder,
                group_name=definition.group_name,
                order=(
                    definition.order
                    if definition.order is not None
                    else self._next_field_order()
                ),
                is_system=False,
                validation_rules=rules.to_json(),
            )
            for position, option in enumerate(definition.options, start=1):
                field.options.append(_new_option(option, position))
            self._session.add(field)

        self._cache.invalidate()
        logger.info(
            "profile_field_created",
            extra={
                "field_id": field.id,
                "field_name": field.name,
                "field_type": field.field_type,
                "applicability": field.applicability,
            },
        )
        return field

    def update(self, field_id: int, patch: FieldPatch) -> ProfileField:
        """Apply a partial update to a field.

        Raises:
            NotFoundError: If the field does not exist.
            ValidationError: On locked system attributes, a taken or malformed
                name, a null required attribute or an invalid default.
            ConflictError: When changing the type of a field with stored values,
                or narrowing the applicability away from a tenant type that
                holds values for it.
        """
        sent = patch.model_fields_set
        with transaction(self._session):
            field = self.get(field_id)

            if field.is_system:
                for attr in _SYSTEM_LOCKED:
                    requested = getattr(patch, attr)
                    if attr in sent and requested is not None and requested != _current(
                        field, attr
                    ):
                        raise ValidationError(attr, "cannot be changed on a system field")
            for attr in _NOT_NULLABLE:
                if attr in sent and getattr(patch, attr) is None:
                    raise ValidationError(attr, "must not be null")

            name = _field_name(patch.name) if patch.name is not None else field.name
            applicability = patch.applicability or field.applies_to
            if name != field.name or applicability is not field.applies_to:
                self._ensure_name_available(name, applicability, exclude_id=field.id)
            if applicability is not field.applies_to:
                self._ensure_no_stranded_values(field, applicability)
            field.name = name
            field.applicability = applicability.value

            if patch.type is not None and patch.type is not field.type:
                self._change_type(field, patch.type)

            for attr in (
                "label",
                "description",
                "is_required",
                "is_visible",
                "placeholder",
                "group_name",
                "order",
            ):
                if attr in sent:
                    setattr(field, attr, getattr(patch, attr))
            if "validation_rules" in sent:
                rules = patch.validation_rules
                field.validation_rules = rules.to_json() if rules is not None else None
            if "default_value" in sent:
                field.default_value = patch.default_value

            field.default_value = check_default_value(
                field.type,
                field.default_value,
                (o.value for o in field.options),
                ValidationRules.from_json(field.validation_rules),
            )

        self._cache.invalidate()
        logger.info(
            "profile_field_updated",
            extra={"field_id": field.id, "changed": sorted(sent)},
        )
        return field

    def delete(self, field_id: int, *, cascade: bool = False) -> int:
        """Delete a field and its options.

        Args:
            field_id: Field to delete.
            cascade: Also delete the values stored for the field. Without it a
                field that still has values cannot be deleted.

        Returns:
            Number of stored values deleted with the field.

        Raises:
            NotFoundError: If the field does not exist.
            ConflictError: For system fields, and for fields with stored
                values when ``cascade`` is false.
        """
        with transaction(self._session):
            field = self.get(field_id)
            if field.is_system:
                raise ConflictError("System fields cannot be deleted", field_id=field_id)
            value_count = self._values.count_for_field(field_id)
            if value_count and not cascade:
                raise ConflictError(
                    "Field has stored values; delete with cascade to remove them",
                    field_id=field_id,
                    value_count=value_count,
                )
            deleted = self._values.delete_for_field(field_id) if value_count else 0
            self._session.delete(field)

        self._cache.invalidate()
        logger.info(
            "profile_field_deleted",
            extra={"field_id": field_id, "values_deleted": deleted},
        )
        return deleted

    def reorder(self, assignments: Sequence[OrderAssignment]) -> list[ProfileField]:
        """Assign explicit display orders to several fields at once.

        Raises:
            ValidationError: If a field id appears more than once.
            NotFoundError: If an id does not name a field.
        """
        ids = [a.id for a in assignments]
        if len(set(ids)) != len(ids):
            raise ValidationError("assignments", "each field may appear only once")
        with transaction(self._session):
            fields = {
                f.id: f
                for f in self._session.scalars(
                    select(ProfileField).where(ProfileField.id.in_(ids))
                ).all()
            }
            for assignment in assignments:
                field = fields.get(assignment.id)
                if field is None:
                    raise NotFoundError("ProfileField", assignment.id)
                field.order = assignment.order

        self._cache.invalidate()
        logger.info("profile_fields_reordered", extra={"field_ids": ids})
        return sorted(fields.values(), key=lambda f: (f.order, f.id))

    def _ensure_name_available(
        self,
        name: str,
        applicability: Applicability,
        exclude_id: int | None = None,
    ) -> None:
        stmt = select(ProfileField.id).where(
            ProfileField.name == name,
            ProfileField.applicability.in_(applicability.overlapping()),
        )
        if exclude_id is not None:
            stmt = stmt.where(ProfileField.id != exclude_id)
        if self._session.scalars(stmt).first() is not None:
            raise ValidationError(
                "name",
                f"a field named '{name}' already exists for {applicability.value.lower()}",
            )

    def _next_field_order(self) -> int:
        highest = self._session.scalar(select(func.max(ProfileField.order)))
        return (highest or 0) + 1

    def _ensure_no_stranded_values(self, field: ProfileField, target: Applicability) -> None:
        for tenant_type in TenantType:
            if not field.applies_to.covers(tenant_type) or target.covers(tenant_type):
                continue
            value_count = self._values.count_for_field(field.id, tenant_type)
            if value_count:
                raise ConflictError(
                    f"Field has stored {tenant_type.value} values; "
                    f"its applicability must keep covering {tenant_type.value}",
                    field_id=field.id,
                    tenant_type=tenant_type.value,
                    value_count=value_count,
                )

    def _change_type(self, field: ProfileField, new_type: FieldType) -> None:
        value_count = self._values.count_for_field(field.id)
        if value_count:
            raise ConflictError(
                "Cannot change the type of a field that has stored values",
                field_id=field.id,
                value_count=value_count,
            )
        if not new_type.is_enumerated:
            field.options.clear()
        field.field_type = new_type.value


class OptionRegistry:
    """Manage the choices of single-choice fields.

    Args:
        session: Request-scoped SQLAlchemy session.
        cache: Schema cache invalidated after each mutation.
    """

    def __init__(self, session: Session, cache: SchemaCache) -> None:
        self._session = session
        self._cache = cache
        self._fields = FieldRegistry(session, cache)
        self._values = ValueStore(session)

    def get(self, option_id: int) -> FieldOption:
        option = self._session.get(FieldOption, option_id)
        if option is None:
            raise NotFoundError("FieldOption", option_id)
        return option

    def create(self, field_id: int, definition: OptionSpec) -> FieldOption:
        """Add an option to a single-choice field.

        Raises:
            NotFoundError: If the field does not exist.
            ValidationError: If the field is not single-choice or the value
                is already used by another option of the field.
        """
        with transaction(self._session):
            field = self._choice_field(field_id)
            if any(o.value == definition.value for o in field.options):
                raise ValidationError("value", f"option '{definition.value}' already exists")
            option = _new_option(definition, _next_order(o.order for o in field.options))
            if option.is_default:
                _clear_defaults(field)
            field.options.append(option)

        self._cache.invalidate()
        logger.info(
            "field_option_created",
            extra={"field_id": field_id, "option_id": option.id, "option_value": option.value},
        )
        return option

    def update(self, option_id: int, patch: OptionPatch) -> FieldOption:
        """Apply a partial update to an option.

        Raises:
            NotFoundError: If the option does not exist.
            ValidationError: On a null label or order, or a value already used.
            ConflictError: When renaming a value that stored values hold.
        """
        sent = patch.model_fields_set
        with transaction(self._session):
            option = self.get(option_id)
            field = option.field
            for attr in ("value", "label", "order", "is_default"):
                if attr in sent and getattr(patch, attr) is None:
                    raise ValidationError(attr, "must not be null")

            if patch.value is not None and patch.value != option.value:
                if any(o.value == patch.value for o in field.options if o.id != option.id):
                    raise ValidationError("value", f"option '{patch.value}' already exists")
                usage = self._values.count_option_usage(field.id, option.value)
                if usage:
                    raise ConflictError(
                        "Option value is held by stored values and cannot be renamed",
                        option_id=option_id,
                        value_count=usage,
                    )
                _carry_default(field, option.value, patch.value)
                option.value = patch.value
            for attr in ("label", "color", "order"):
                if attr in sent:
                    setattr(option, attr, getattr(patch, attr))
            if patch.is_default is not None:
                if patch.is_default:
                    _clear_defaults(field)
                option.is_default = patch.is_default

        self._cache.invalidate()
        logger.info(
            "field_option_updated",
            extra={"option_id": option_id, "changed": sorted(sent)},
        )
        return option

    def delete(self, option_id: int, *, cascade: bool = False) -> int:
        """Delete an option.

        Args:
            option_id: Option to delete.
            cascade: Also clear the stored values holding the option's value.

        Returns:
            Number of stored values cleared.

        Raises:
            NotFoundError: If the option does not exist.
            ConflictError: If stored values hold the option and ``cascade``
                is false.
        """
        with transaction(self._session):
            option = self.get(option_id)
            field = option.field
            usage = self._values.count_option_usage(field.id, option.value)
            if usage and not cascade:
                raise ConflictError(
                    "Option is held by stored values; delete with cascade to clear them",
                    option_id=option_id,
                    value_count=usage,
                )
            cleared = self._values.delete_option_usage(field.id, option.value) if usage else 0
            _carry_default(field, option.value, None)
            field.options.remove(option)

        self._cache.invalidate()
        logger.info(
            "field_option_deleted",
            extra={"option_id": option_id, "field_id": field.id, "values_cleared": cleared},
        )
        return cleared

    def reorder(self, field_id: int, option_ids: Sequence[int]) -> list[FieldOption]:
        """Order a field's options as listed (first listed gets order 1).

        Raises:
            NotFoundError: If the field does not exist.
            ValidationError: Unless ``option_ids`` lists every option of the
                field exactly once.
        """
        with transaction(self._session):
            field = self._choice_field(field_id)
            by_id = {o.id: o for o in field.options}
            if len(option_ids) != len(by_id) or set(option_ids) != set(by_id):
                raise ValidationError(
                    "option_ids", "must list every option of the field exactly once"
                )
            for position, option_id in enumerate(option_ids, start=1):
                by_id[option_id].order = position

        self._cache.invalidate()
        logger.info("field_options_reordered", extra={"field_id": field_id})
        return [by_id[i] for i in option_ids]

    def sync(
        self,
        field_id: int,
        items: Sequence[OptionSyncItem],
        *,
        cascade: bool = False,
    ) -> list[FieldOption]:
        """Replace a field's option set in one unit of work.

        Items with an ``id`` update that option, items without one are
        created, and options missing from ``items`` are deleted. ``order``
        defaults to the item's position.

        Raises:
            NotFoundError: If the field does not exist.
            ValidationError: On duplicate values, several defaults or an id
                belonging to another field.
            ConflictError: When a deleted or renamed option is held by stored
                values (deletions are allowed with ``cascade``).
        """
        _ensure_unique_values(item.value for item in items)
        _ensure_single_default(items)
        with transaction(self._session):
            field = self._choice_field(field_id)
            existing = {o.id: o for o in field.options}
            for index, item in enumerate(items):
                if item.id is not None and item.id not in existing:
                    raise ValidationError(f"options.{index}.id", "does not belong to this field")

            default = field.default_value
            renamed_default: str | None = None
            kept_ids = {item.id for item in items if item.id is not None}
            removed = [o for o in existing.values() if o.id not in kept_ids]
            for option in removed:
                usage = self._values.count_option_usage(field.id, option.value)
                if usage and not cascade:
                    raise ConflictError(
                        f"Option '{option.value}' is held by stored values",
                        option_id=option.id,
                        value_count=usage,
                    )
                if usage:
                    self._values.delete_option_usage(field.id, option.value)
                field.options.remove(option)
            # removed values become free before any item reuses them
            self._session.flush()

            for position, item in enumerate(items, start=1):
                if item.id is None:
                    field.options.append(_new_option(item, position))
                    continue
                option = existing[item.id]
                if item.value != option.value:
                    usage = self._values.count_option_usage(field.id, option.value)
                    if usage:
                        raise ConflictError(
                            "Option value is held by stored values and cannot be renamed",
                            option_id=option.id,
                            value_count=usage,
                        )
                    if option.value == default:
                        renamed_default = item.value
                option.value = item.value
                option.label = item.label
                option.color = item.color
                option.order = item.order if item.order is not None else position
                option.is_default = item.is_default

            if renamed_default is not None:
                field.default_value = renamed_default
            elif default not in {o.value for o in field.options}:
                field.default_value = None

        self._cache.invalidate()
        logger.info(
            "field_options_synced",
            extra={"field_id": field_id, "option_count": len(items), "removed": len(removed)},
        )
        return sorted(field.options, key=lambda o: (o.order, o.id))

    def _choice_field(self, field_id: int) -> ProfileField:
        field = self._fields.get(field_id)
        if not field.type.is_enumerated:
            raise ValidationError(
                "field_id", f"options are not supported for {field.field_type} fields"
            )
        return field


def _current(field: ProfileField, attr: str) -> Any:
    if attr == "type":
        return field.type
    if attr == "applicability":
        return field.applies_to
    return getattr(field, attr)


def _new_option(definition: OptionSpec, default_order: int) -> FieldOption:
    return FieldOption(
        value=definition.value,
        label=definition.label,
        color=definition.color,
        order=definition.order if definition.order is not None else default_order,
        is_default=definition.is_default,
    )


def _carry_default(field: ProfileField, old: str, new: str | None) -> None:
    """Point the field default at an option's new value, or clear it when the option goes."""
    if field.default_value == old:
        field.default_value = new


def _clear_defaults(field: ProfileField) -> None:
    for option in field.options:
        option.is_default = False


def _ensure_unique_values(values: Iterable[str]) -> None:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise ValidationError("options", f"duplicate option value '{value}'")
        seen.add(value)


def _ensure_single_default(specs: Iterable[OptionSpec]) -> None:
    if sum(1 for s in specs if s.is_default) > 1:
        raise ValidationError("options", "only one option can be the default")
