"""Commands accepted by the Field and Option registries.

Pydantic models so the HTTP layer can bind request bodies to them directly.
Patch models distinguish "not sent" from "sent as null" through
``model_fields_set``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from callsheet.domain.profile_schema.rules import ValidationRules  # noqa: TC001
from callsheet.domain.profile_schema.value_objects import (  # noqa: TC001
    Applicability,
    FieldType,
)


class _Command(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class OptionSpec(_Command):
    """A new option of a single-choice field.

    ``order`` defaults to the next free position when omitted.
    """

    value: str = Field(min_length=1, max_length=200)
    label: str = Field(min_length=1, max_length=200)
    color: str | None = Field(default=None, max_length=32)
    order: int | None = None
    is_default: bool = False


class OptionPatch(_Command):
    """Partial update of an option. Only fields that are sent are applied."""

    value: str | None = Field(default=None, min_length=1, max_length=200)
    label: str | None = Field(default=None, min_length=1, max_length=200)
    color: str | None = Field(default=None, max_length=32)
    order: int | None = None
    is_default: bool | None = None


class OptionSyncItem(OptionSpec):
    """One entry of a full option-set replacement; ``id`` marks an existing option."""

    id: int | None = None


class FieldSpec(_Command):
    """A new administrator-defined field."""

    name: str
    label: str = Field(min_length=1, max_length=200)
    type: FieldType
    applicability: Applicability = Applicability.BOTH
    description: str | None = None
    is_required: bool = False
    is_visible: bool = True
    default_value: str | None = None
    placeholder: str | None = Field(default=None, max_length=200)
    group_name: str | None = Field(default=None, max_length=100)
    order: int | None = None
    validation_rules: ValidationRules | None = None
    options: list[OptionSpec] = Field(default_factory=list)


class FieldPatch(_Command):
    """Partial update of a field. Only fields that are sent are applied."""

    name: str | None = None
    label: str | None = Field(default=None, min_length=1, max_length=200)
    type: FieldType | None = None
    applicability: Applicability | None = None
    description: str | None = None
    is_required: bool | None = None
    is_visible: bool | None = None
    default_value: str | None = None
    placeholder: str | None = Field(default=None, max_length=200)
    group_name: str | None = Field(default=None, max_length=100)
    order: int | None = None
    validation_rules: ValidationRules | None = None


class OrderAssignment(_Command):
    """Explicit display order for one field."""

    id: int
    order: int
