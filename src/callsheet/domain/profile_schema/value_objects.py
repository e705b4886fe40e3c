"""Value objects for the profile schema.

Immutable, validated domain primitives. All validation occurs at
construction time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class FieldType(StrEnum):
    """Kind of data a profile field collects.

    Uses StrEnum for native JSON serialization; stored verbatim in the
    ``field_type`` column.
    """

    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    DROPDOWN = "DROPDOWN"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    EMAIL = "EMAIL"
    URL = "URL"
    PHONE = "PHONE"

    @property
    def is_enumerated(self) -> bool:
        """Whether values must be chosen from the field's options."""
        return self is FieldType.DROPDOWN

    @property
    def is_textual(self) -> bool:
        """Whether values are free text (length and pattern rules apply)."""
        return self in _TEXTUAL_TYPES


_TEXTUAL_TYPES = frozenset(
    {FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL, FieldType.URL, FieldType.PHONE}
)


class TenantType(StrEnum):
    """Category of account whose entities carry field values."""

    TALENT = "talent"
    STUDIO = "studio"

    def applicabilities(self) -> tuple[Applicability, ...]:
        """Applicability values whose fields apply to this tenant type."""
        return (Applicability(self.value.upper()), Applicability.BOTH)


class Applicability(StrEnum):
    """Which tenant types a field applies to."""

    TALENT = "TALENT"
    STUDIO = "STUDIO"
    BOTH = "BOTH"

    def covers(self, tenant_type: TenantType) -> bool:
        """Whether fields with this applicability apply to ``tenant_type``."""
        return self in tenant_type.applicabilities()

    def overlaps(self, other: Applicability) -> bool:
        """Whether two applicabilities share at least one tenant type.

        Field names must be unique among overlapping applicabilities, since
        both fields would otherwise resolve into the same form.
        """
        return self is Applicability.BOTH or other is Applicability.BOTH or self is other

    def overlapping(self) -> tuple[Applicability, ...]:
        """All applicability values that overlap this one."""
        return tuple(a for a in Applicability if self.overlaps(a))


_FIELD_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
FIELD_NAME_MAX_LENGTH = 64


@dataclass(frozen=True, slots=True)
class FieldName:
    """Validated internal field name (immutable after creation).

    Format: letters, digits and underscores, 1-64 chars.

    Attributes:
        value: The validated name string.

    Raises:
        ValueError: If the name does not meet format or length requirements.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            msg = "Field name must not be empty"
            raise ValueError(msg)
        if len(self.value) > FIELD_NAME_MAX_LENGTH:
            msg = f"Field name too long: '{self.value}' (max {FIELD_NAME_MAX_LENGTH} chars)"
            raise ValueError(msg)
        if not _FIELD_NAME_PATTERN.match(self.value):
            msg = (
                f"Invalid field name '{self.value}': must contain only letters, "
                "digits and underscores"
            )
            raise ValueError(msg)

    def __str__(self) -> str:
        return self.value
