"""Profile schema REST API router.

Discovered through the ``callsheet.routers`` entry point. Schema reads are
open to any authenticated caller, value access to administrators and the
owning profile or studio, and everything under ``/fields`` and ``/options``
to administrators only.

Endpoints are sync: FastAPI runs them in its worker pool, which suits the
blocking SQLAlchemy session.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from callsheet.domain.profile_schema.commands import (
    FieldPatch,
    FieldSpec,
    OptionPatch,
    OptionSpec,
    OptionSyncItem,
    OrderAssignment,
)
from callsheet.domain.profile_schema.dependencies import (
    FieldRegistryDep,
    OptionRegistryDep,
    SchemaResolverDep,
    ValueServiceDep,
)
from callsheet.domain.profile_schema.models import FieldOption, ProfileField
from callsheet.domain.profile_schema.resolver import ResolvedField, ResolvedOption
from callsheet.domain.profile_schema.rules import ValidationRules
from callsheet.domain.profile_schema.value_objects import Applicability, FieldType, TenantType
from callsheet.infra.auth import AdminPrincipal, CurrentPrincipal, ensure_entity_access

router = APIRouter(prefix="/profile-schema", tags=["profile-schema"])


# -- Request / Response models ------------------------------------------------


class OptionResponse(BaseModel):
    id: int
    value: str
    label: str
    color: str | None
    order: int
    is_default: bool


class SchemaFieldResponse(BaseModel):
    """A visible field as rendered in a profile or studio form."""

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
    validation_rules: dict[str, Any] | None
    options: list[OptionResponse]


class SchemaResponse(BaseModel):
    tenant_type: TenantType
    fields: list[SchemaFieldResponse]


class FieldResponse(SchemaFieldResponse):
    """Administrator view of a field, including invisible ones."""

    is_visible: bool
    created_at: datetime | None
    updated_at: datetime | None


class FieldDeletedResponse(BaseModel):
    id: int
    values_deleted: int


class OptionDeletedResponse(BaseModel):
    id: int
    values_cleared: int


class ValuesResponse(BaseModel):
    tenant_type: TenantType
    entity_id: str
    values: dict[str, Any]


class ValuesPurgedResponse(BaseModel):
    tenant_type: TenantType
    entity_id: str
    deleted: int


class SubmitValuesRequest(BaseModel):
    values: dict[str, Any] = Field(
        description="Field values keyed by field name; null or blank clears a value"
    )


class FieldReorderRequest(BaseModel):
    assignments: list[OrderAssignment] = Field(min_length=1)


class OptionReorderRequest(BaseModel):
    option_ids: list[int]


class OptionSyncRequest(BaseModel):
    options: list[OptionSyncItem]


# -- Schema and values ----------------------------------------------------------


@router.get("/schema/{tenant_type}")
def get_schema(
    tenant_type: TenantType,
    principal: CurrentPrincipal,
    resolver: SchemaResolverDep,
) -> SchemaResponse:
    """Resolved form schema of a tenant type."""
    return SchemaResponse(
        tenant_type=tenant_type,
        fields=[_schema_field_response(f) for f in resolver.resolve(tenant_type)],
    )


@router.get("/values/{tenant_type}/{entity_id}")
def get_values(
    tenant_type: TenantType,
    entity_id: str,
    principal: CurrentPrincipal,
    service: ValueServiceDep,
) -> ValuesResponse:
    """Stored field values of a profile or studio."""
    ensure_entity_access(principal, tenant_type.value, entity_id)
    return ValuesResponse(
        tenant_type=tenant_type,
        entity_id=entity_id,
        values=service.get_values(tenant_type, entity_id),
    )


@router.put("/values/{tenant_type}/{entity_id}")
def set_values(
    tenant_type: TenantType,
    entity_id: str,
    body: SubmitValuesRequest,
    principal: CurrentPrincipal,
    service: ValueServiceDep,
) -> ValuesResponse:
    """Submit field values; rejected as a whole when any field is invalid."""
    ensure_entity_access(principal, tenant_type.value, entity_id)
    return ValuesResponse(
        tenant_type=tenant_type,
        entity_id=entity_id,
        values=service.set_values(tenant_type, entity_id, body.values),
    )


@router.delete("/values/{tenant_type}/{entity_id}")
def purge_values(
    tenant_type: TenantType,
    entity_id: str,
    principal: CurrentPrincipal,
    service: ValueServiceDep,
) -> ValuesPurgedResponse:
    """Delete every stored value of a profile or studio."""
    ensure_entity_access(principal, tenant_type.value, entity_id)
    return ValuesPurgedResponse(
        tenant_type=tenant_type,
        entity_id=entity_id,
        deleted=service.purge_entity(tenant_type, entity_id),
    )


# -- Field administration -------------------------------------------------------


@router.get("/fields")
def list_fields(
    principal: AdminPrincipal,
    registry: FieldRegistryDep,
    applicability: Applicability | None = None,
) -> list[FieldResponse]:
    """All fields, including invisible ones, in display order."""
    return [_field_response(f) for f in registry.list_fields(applicability)]


@router.post("/fields", status_code=201)
def create_field(
    body: FieldSpec,
    principal: AdminPrincipal,
    registry: FieldRegistryDep,
) -> FieldResponse:
    """Define a new field."""
    return _field_response(registry.create(body))


@router.post("/fields/reorder")
def reorder_fields(
    body: FieldReorderRequest,
    principal: AdminPrincipal,
    registry: FieldRegistryDep,
) -> list[FieldResponse]:
    """Assign display orders to several fields at once."""
    return [_field_response(f) for f in registry.reorder(body.assignments)]


@router.get("/fields/{field_id}")
def get_field(
    field_id: int,
    principal: AdminPrincipal,
    registry: FieldRegistryDep,
) -> FieldResponse:
    return _field_response(registry.get(field_id))


@router.patch("/fields/{field_id}")
def update_field(
    field_id: int,
    body: FieldPatch,
    principal: AdminPrincipal,
    registry: FieldRegistryDep,
) -> FieldResponse:
    """Partially update a field; only attributes present in the body change."""
    return _field_response(registry.update(field_id, body))


@router.delete("/fields/{field_id}")
def delete_field(
    field_id: int,
    principal: AdminPrincipal,
    registry: FieldRegistryDep,
    cascade: bool = Query(default=False, description="Also delete the field's stored values"),
) -> FieldDeletedResponse:
    """Delete a field and its options (and its values with ``cascade``)."""
    return FieldDeletedResponse(
        id=field_id,
        values_deleted=registry.delete(field_id, cascade=cascade),
    )


# -- Option administration ------------------------------------------------------


@router.post("/fields/{field_id}/options", status_code=201)
def create_option(
    field_id: int,
    body: OptionSpec,
    principal: AdminPrincipal,
    registry: OptionRegistryDep,
) -> OptionResponse:
    return _option_response(registry.create(field_id, body))


@router.put("/fields/{field_id}/options")
def sync_options(
    field_id: int,
    body: OptionSyncRequest,
    principal: AdminPrincipal,
    registry: OptionRegistryDep,
    cascade: bool = Query(default=False, description="Clear values held by removed options"),
) -> list[OptionResponse]:
    """Replace a field's option set."""
    return [
        _option_response(o) for o in registry.sync(field_id, body.options, cascade=cascade)
    ]


@router.post("/fields/{field_id}/options/reorder")
def reorder_options(
    field_id: int,
    body: OptionReorderRequest,
    principal: AdminPrincipal,
    registry: OptionRegistryDep,
) -> list[OptionResponse]:
    return [_option_response(o) for o in registry.reorder(field_id, body.option_ids)]


@router.patch("/options/{option_id}")
def update_option(
    option_id: int,
    body: OptionPatch,
    principal: AdminPrincipal,
    registry: OptionRegistryDep,
) -> OptionResponse:
    return _option_response(registry.update(option_id, body))


@router.delete("/options/{option_id}")
def delete_option(
    option_id: int,
    principal: AdminPrincipal,
    registry: OptionRegistryDep,
    cascade: bool = Query(default=False, description="Clear values holding the option"),
) -> OptionDeletedResponse:
    return OptionDeletedResponse(
        id=option_id,
        values_cleared=registry.delete(option_id, cascade=cascade),
    )


# -- Helpers ------------------------------------------------------------------


def _rules_payload(rules: ValidationRules) -> dict[str, Any] | None:
    return None if rules.is_empty else rules.model_dump(exclude_none=True)


def _option_response(option: FieldOption | ResolvedOption) -> OptionResponse:
    return OptionResponse(
        id=option.id,
        value=option.value,
        label=option.label,
        color=option.color,
        order=option.order,
        is_default=option.is_default,
    )


def _schema_field_response(field: ResolvedField) -> SchemaFieldResponse:
    return SchemaFieldResponse(
        id=field.id,
        name=field.name,
        label=field.label,
        description=field.description,
        type=field.type,
        applicability=field.applicability,
        is_required=field.is_required,
        default_value=field.default_value,
        placeholder=field.placeholder,
        group_name=field.group_name,
        order=field.order,
        is_system=field.is_system,
        validation_rules=_rules_payload(field.validation_rules),
        options=[_option_response(o) for o in field.options],
    )


def _field_response(field: ProfileField) -> FieldResponse:
    options = sorted(field.options, key=lambda o: (o.order, o.id))
    return FieldResponse(
        id=field.id,
        name=field.name,
        label=field.label,
        description=field.description,
        type=field.type,
        applicability=field.applies_to,
        is_required=field.is_required,
        is_visible=field.is_visible,
        default_value=field.default_value,
        placeholder=field.placeholder,
        group_name=field.group_name,
        order=field.order,
        is_system=field.is_system,
        validation_rules=_rules_payload(ValidationRules.from_json(field.validation_rules)),
        options=[_option_response(o) for o in options],
        created_at=field.created_at,
        updated_at=field.updated_at,
    )
