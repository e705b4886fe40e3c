"""Callsheet profile schema: administrator-defined fields for profiles and studios.

Field and Option registries define the schema, the Schema Resolver renders
it per tenant type through an invalidatable cache, and the Value service
validates and stores each entity's typed values.
"""

from callsheet.domain.profile_schema.commands import (
    FieldPatch,
    FieldSpec,
    OptionPatch,
    OptionSpec,
    OptionSyncItem,
    OrderAssignment,
)
from callsheet.domain.profile_schema.models import (
    FieldOption,
    ProfileField,
    ProfileFieldValue,
    StudioFieldValue,
)
from callsheet.domain.profile_schema.registry import FieldRegistry, OptionRegistry
from callsheet.domain.profile_schema.repository import ValueStore
from callsheet.domain.profile_schema.resolver import (
    ResolvedField,
    ResolvedOption,
    SchemaCache,
    SchemaResolver,
)
from callsheet.domain.profile_schema.rules import ValidationRules
from callsheet.domain.profile_schema.seed import SYSTEM_FIELDS, seed_system_fields
from callsheet.domain.profile_schema.service import ValueService
from callsheet.domain.profile_schema.value_objects import (
    Applicability,
    FieldName,
    FieldType,
    TenantType,
)
from callsheet.domain.profile_schema.values import (
    BooleanValue,
    ChoiceValue,
    DateValue,
    FieldValue,
    NumberValue,
    TextValue,
    coerce_value,
    decode_value,
)

__all__ = [
    "SYSTEM_FIELDS",
    "Applicability",
    "BooleanValue",
    "ChoiceValue",
    "DateValue",
    "FieldName",
    "FieldOption",
    "FieldPatch",
    "FieldRegistry",
    "FieldSpec",
    "FieldType",
    "FieldValue",
    "NumberValue",
    "OptionPatch",
    "OptionRegistry",
    "OptionSpec",
    "OptionSyncItem",
    "OrderAssignment",
    "ProfileField",
    "ProfileFieldValue",
    "ResolvedField",
    "ResolvedOption",
    "SchemaCache",
    "SchemaResolver",
    "StudioFieldValue",
    "TenantType",
    "TextValue",
    "ValidationRules",
    "ValueService",
    "ValueStore",
    "coerce_value",
    "decode_value",
    "seed_system_fields",
]
