"""Built-in system fields.

The marketplace's fixed profile and studio attributes, expressed as system
fields so they render through the same schema as administrator-defined
ones. System fields cannot be deleted, and their name, type and
applicability cannot be changed.

Seeding is idempotent: a field is only inserted when no field with the same
name and applicability exists. A name already used by a field of an
overlapping applicability is skipped with a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select

from callsheet.domain.profile_schema.models import FieldOption, ProfileField
from callsheet.domain.profile_schema.value_objects import Applicability, FieldType
from callsheet.infra.persistence import transaction

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemOption:
    value: str
    label: str
    is_default: bool = False


@dataclass(frozen=True)
class SystemField:
    """Definition of one built-in field."""

    name: str
    label: str
    type: FieldType
    applicability: Applicability
    group_name: str
    description: str | None = None
    placeholder: str | None = None
    default_value: str | None = None
    is_required: bool = False
    options: tuple[SystemOption, ...] = field(default_factory=tuple)


_TALENT = Applicability.TALENT
_STUDIO = Applicability.STUDIO

TALENT_SYSTEM_FIELDS: tuple[SystemField, ...] = (
    SystemField(
        "bio",
        "Biography",
        FieldType.TEXTAREA,
        _TALENT,
        "Basic Information",
        description="Personal biography or description",
    ),
    SystemField(
        "height",
        "Height",
        FieldType.TEXT,
        _TALENT,
        "Physical Attributes",
        description="Your height",
        placeholder="e.g. 5'10\"",
    ),
    SystemField(
        "weight",
        "Weight",
        FieldType.TEXT,
        _TALENT,
        "Physical Attributes",
        description="Your weight",
        placeholder="e.g. 160 lbs",
    ),
    SystemField(
        "hairColor",
        "Hair Color",
        FieldType.DROPDOWN,
        _TALENT,
        "Physical Attributes",
        options=(
            SystemOption("black", "Black"),
            SystemOption("brown", "Brown", is_default=True),
            SystemOption("blonde", "Blonde"),
            SystemOption("red", "Red"),
            SystemOption("gray", "Gray/Silver"),
            SystemOption("other", "Other"),
        ),
    ),
    SystemField(
        "eyeColor",
        "Eye Color",
        FieldType.DROPDOWN,
        _TALENT,
        "Physical Attributes",
        options=(
            SystemOption("brown", "Brown", is_default=True),
            SystemOption("blue", "Blue"),
            SystemOption("green", "Green"),
            SystemOption("hazel", "Hazel"),
            SystemOption("gray", "Gray"),
            SystemOption("other", "Other"),
        ),
    ),
    SystemField(
        "gender",
        "Gender",
        FieldType.DROPDOWN,
        _TALENT,
        "Basic Information",
        options=(
            SystemOption("male", "Male"),
            SystemOption("female", "Female"),
            SystemOption("non-binary", "Non-binary"),
            SystemOption("prefer-not-to-say", "Prefer not to say", is_default=True),
            SystemOption("other", "Other"),
        ),
    ),
    SystemField(
        "ethnicity",
        "Ethnicity",
        FieldType.DROPDOWN,
        _TALENT,
        "Basic Information",
        options=(
            SystemOption("african", "African"),
            SystemOption("asian", "Asian"),
            SystemOption("caucasian", "Caucasian"),
            SystemOption("hispanic", "Hispanic/Latino"),
            SystemOption("middle-eastern", "Middle Eastern"),
            SystemOption("native-american", "Native American"),
            SystemOption("pacific-islander", "Pacific Islander"),
            SystemOption("multiracial", "Multiracial"),
            SystemOption("other", "Other"),
            SystemOption("prefer-not-to-say", "Prefer not to say", is_default=True),
        ),
    ),
    SystemField(
        "languages",
        "Languages",
        FieldType.TEXT,
        _TALENT,
        "Skills & Experience",
        description="Languages you speak (comma separated)",
        placeholder="e.g. English, Spanish, French",
    ),
    SystemField(
        "experience",
        "Experience",
        FieldType.TEXTAREA,
        _TALENT,
        "Skills & Experience",
        description="Your acting and performance experience",
    ),
    SystemField(
        "availability",
        "Available for Work",
        FieldType.BOOLEAN,
        _TALENT,
        "Availability",
        description="Are you currently available for casting?",
        default_value="true",
    ),
)

STUDIO_SYSTEM_FIELDS: tuple[SystemField, ...] = (
    SystemField(
        "name",
        "Studio Name",
        FieldType.TEXT,
        _STUDIO,
        "Basic Information",
        description="Your studio or production company name",
        is_required=True,
    ),
    SystemField(
        "description",
        "Description",
        FieldType.TEXTAREA,
        _STUDIO,
        "Basic Information",
        description="Describe your studio or production company",
    ),
    SystemField(
        "contactName",
        "Contact Name",
        FieldType.TEXT,
        _STUDIO,
        "Contact Information",
        description="Name of the primary contact person",
    ),
    SystemField(
        "contactEmail",
        "Contact Email",
        FieldType.EMAIL,
        _STUDIO,
        "Contact Information",
        description="Email address for inquiries",
    ),
    SystemField(
        "contactPhone",
        "Contact Phone",
        FieldType.PHONE,
        _STUDIO,
        "Contact Information",
        description="Phone number for inquiries",
    ),
    SystemField(
        "website",
        "Website",
        FieldType.URL,
        _STUDIO,
        "Contact Information",
        description="Your studio's website URL",
        placeholder="https://",
    ),
)

SYSTEM_FIELDS = TALENT_SYSTEM_FIELDS + STUDIO_SYSTEM_FIELDS


def seed_system_fields(
    session: Session,
    definitions: tuple[SystemField, ...] = SYSTEM_FIELDS,
) -> int:
    """Insert the system fields that are not present yet.

    Display order follows each definition's position among the fields of
    its applicability.

    Args:
        session: Session to write with; committed on success.
        definitions: Fields to ensure.

    Returns:
        Number of fields inserted.
    """
    inserted = 0
    positions: dict[Applicability, int] = {}
    with transaction(session):
        existing: dict[str, set[str]] = {}
        for name, applicability in session.execute(
            select(ProfileField.name, ProfileField.applicability)
        ):
            existing.setdefault(name, set()).add(applicability)
        for definition in definitions:
            position = positions.get(definition.applicability, 0) + 1
            positions[definition.applicability] = position
            taken = existing.get(definition.name, set())
            if definition.applicability.value in taken:
                continue
            clashes = taken.intersection(definition.applicability.overlapping())
            if clashes:
                logger.warning(
                    "system_field_name_taken",
                    extra={
                        "field_name": definition.name,
                        "applicability": definition.applicability.value,
                        "existing_applicability": sorted(clashes),
                    },
                )
                continue
            field_row = ProfileField(
                name=definition.name,
                label=definition.label,
                description=definition.description,
                field_type=definition.type.value,
                applicability=definition.applicability.value,
                is_required=definition.is_required,
                is_visible=True,
                default_value=definition.default_value,
                placeholder=definition.placeholder,
                group_name=definition.group_name,
                order=position,
                is_system=True,
            )
            for index, option in enumerate(definition.options, start=1):
                field_row.options.append(
                    FieldOption(
                        value=option.value,
                        label=option.label,
                        order=index,
                        is_default=option.is_default,
                    )
                )
            session.add(field_row)
            existing.setdefault(definition.name, set()).add(definition.applicability.value)
            inserted += 1

    logger.info("system_fields_seeded", extra={"inserted": inserted})
    return inserted
