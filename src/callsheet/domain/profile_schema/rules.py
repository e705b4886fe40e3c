"""Per-field validation rules.

Administrators attach an optional rule blob to each field. It is stored as
JSON text on the field row and parsed into :class:`ValidationRules` when a
value is checked.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from callsheet.domain.profile_schema.values import NumberValue, TextValue

if TYPE_CHECKING:
    from callsheet.domain.profile_schema.values import FieldValue


class ValidationRules(BaseModel):
    """Constraints applied to a field's values after type coercion.

    Attributes:
        min_length: Minimum text length (text-like fields).
        max_length: Maximum text length (text-like fields).
        pattern: Regular expression the whole text must match.
        min: Smallest accepted number (number fields).
        max: Largest accepted number (number fields).
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    min_length: int | None = Field(default=None, ge=0, alias="minLength")
    max_length: int | None = Field(default=None, ge=1, alias="maxLength")
    pattern: str | None = None
    min: float | None = None
    max: float | None = None

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as exc:
            msg = f"pattern is not a valid regular expression: {exc}"
            raise ValueError(msg) from exc
        return v

    @model_validator(mode="after")
    def _bounds_ordered(self) -> ValidationRules:
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            msg = "min_length must not exceed max_length"
            raise ValueError(msg)
        if self.min is not None and self.max is not None and self.min > self.max:
            msg = "min must not exceed max"
            raise ValueError(msg)
        return self

    @classmethod
    def from_json(cls, blob: str | None) -> ValidationRules:
        """Parse the stored rule blob; empty or missing blobs mean no rules."""
        if not blob or not blob.strip():
            return cls()
        data = json.loads(blob)
        # "[]" also means no rules
        if data in ([], None):
            return cls()
        return cls.model_validate(data)

    def to_json(self) -> str | None:
        """Serialize for storage, or None when no rule is set."""
        data = self.model_dump(exclude_none=True)
        return json.dumps(data, sort_keys=True) if data else None

    @property
    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def check(self, value: FieldValue) -> str | None:
        """Check a typed value against the rules.

        Length and pattern rules apply to text values, range rules to
        numbers; rules that do not fit the value's kind are ignored.

        Returns:
            The reason the value is rejected, or None when it passes.
        """
        if isinstance(value, TextValue):
            text = value.value
            if self.min_length is not None and len(text) < self.min_length:
                return f"must be at least {self.min_length} characters"
            if self.max_length is not None and len(text) > self.max_length:
                return f"must be at most {self.max_length} characters"
            if self.pattern is not None and re.fullmatch(self.pattern, text) is None:
                return "does not match the required format"
        elif isinstance(value, NumberValue):
            if self.min is not None and value.value < self.min:
                return f"must be at least {_format_bound(self.min)}"
            if self.max is not None and value.value > self.max:
                return f"must be at most {_format_bound(self.max)}"
        return None


def _format_bound(bound: float) -> str:
    return str(int(bound)) if bound.is_integer() else str(bound)
