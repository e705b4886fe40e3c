"""Relational model of the profile schema.

Four tables:

- ``profile_fields``: field definitions (the Field Registry)
- ``field_options``: choices of single-choice fields (the Option Registry)
- ``profile_field_values`` / ``studio_field_values``: one row per
  (entity, field) pair holding the encoded value (the Value Store)

Options and values are removed by the database when their field is deleted
(``ON DELETE CASCADE``) as well as by the ORM relationship cascades.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from callsheet.domain.profile_schema.value_objects import (
    Applicability,
    FieldType,
    TenantType,
)
from callsheet.infra.persistence.database import Base


class ProfileField(Base):
    """An administrator-defined attribute collected on profiles or studios."""

    __tablename__ = "profile_fields"
    __table_args__ = (
        UniqueConstraint("name", "applicability", name="uq_profile_fields_name_applicability"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), index=True)
    label: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    field_type: Mapped[str] = mapped_column(String(16))
    applicability: Mapped[str] = mapped_column(String(8), index=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    default_value: Mapped[str | None] = mapped_column(Text, default=None)
    placeholder: Mapped[str | None] = mapped_column(String(200), default=None)
    group_name: Mapped[str | None] = mapped_column(String(100), default=None)
    order: Mapped[int] = mapped_column("display_order", Integer, default=0)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)
    validation_rules: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    options: Mapped[list[FieldOption]] = relationship(
        back_populates="field",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [FieldOption.order, FieldOption.id],
    )
    profile_values: Mapped[list[ProfileFieldValue]] = relationship(
        back_populates="field",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    studio_values: Mapped[list[StudioFieldValue]] = relationship(
        back_populates="field",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def type(self) -> FieldType:
        return FieldType(self.field_type)

    @property
    def applies_to(self) -> Applicability:
        return Applicability(self.applicability)

    def __repr__(self) -> str:
        return f"ProfileField(id={self.id!r}, name={self.name!r}, type={self.field_type!r})"


class FieldOption(Base):
    """One selectable choice of a single-choice field."""

    __tablename__ = "field_options"
    __table_args__ = (UniqueConstraint("field_id", "value", name="uq_field_options_field_value"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    field_id: Mapped[int] = mapped_column(
        ForeignKey("profile_fields.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(String(200))
    label: Mapped[str] = mapped_column(String(200))
    color: Mapped[str | None] = mapped_column(String(32), default=None)
    order: Mapped[int] = mapped_column("display_order", Integer, default=0)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    field: Mapped[ProfileField] = relationship(back_populates="options")

    def __repr__(self) -> str:
        return f"FieldOption(id={self.id!r}, field_id={self.field_id!r}, value={self.value!r})"


class ProfileFieldValue(Base):
    """A talent profile's value for one field."""

    __tablename__ = "profile_field_values"
    __table_args__ = (
        UniqueConstraint("profile_id", "field_id", name="uq_profile_field_values_entity_field"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(String(64), index=True)
    field_id: Mapped[int] = mapped_column(
        ForeignKey("profile_fields.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    field: Mapped[ProfileField] = relationship(back_populates="profile_values")


class StudioFieldValue(Base):
    """A studio's value for one field."""

    __tablename__ = "studio_field_values"
    __table_args__ = (
        UniqueConstraint("studio_id", "field_id", name="uq_studio_field_values_entity_field"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    studio_id: Mapped[str] = mapped_column(String(64), index=True)
    field_id: Mapped[int] = mapped_column(
        ForeignKey("profile_fields.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    field: Mapped[ProfileField] = relationship(back_populates="studio_values")


VALUE_MODELS: dict[TenantType, type[ProfileFieldValue] | type[StudioFieldValue]] = {
    TenantType.TALENT: ProfileFieldValue,
    TenantType.STUDIO: StudioFieldValue,
}


def value_model_for(tenant_type: TenantType) -> type[ProfileFieldValue] | type[StudioFieldValue]:
    """The value table holding entities of ``tenant_type``."""
    return VALUE_MODELS[tenant_type]


def entity_column(model: type[ProfileFieldValue] | type[StudioFieldValue]) -> Mapped[str]:
    """The owning-entity column of a value table."""
    if model is ProfileFieldValue:
        return ProfileFieldValue.profile_id
    return StudioFieldValue.studio_id
