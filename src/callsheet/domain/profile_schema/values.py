"""Typed field values.

Stored values live in a single text column whatever the field's type. In
memory they are carried as a discriminated union of pydantic models, one
variant per logical kind, each owning its storage encoding. Decoding is
driven by the field's declared :class:`FieldType`, never by guessing from
the stored text.

Example:
    >>> value = coerce_value(FieldType.BOOLEAN, "true")
    >>> value
    BooleanValue(kind='boolean', value=True)
    >>> value.encode()
    'true'
    >>> decode_value(FieldType.BOOLEAN, "true").value
    True
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from callsheet.domain.profile_schema.value_objects import FieldType


class _StoredValue(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextValue(_StoredValue):
    """Free text (short text, long text, email, url, phone)."""

    kind: Literal["text"] = "text"
    value: str

    def encode(self) -> str:
        return self.value


class NumberValue(_StoredValue):
    """Integer or decimal number."""

    kind: Literal["number"] = "number"
    value: int | float

    def encode(self) -> str:
        if isinstance(self.value, float):
            return repr(self.value)
        return str(self.value)


class BooleanValue(_StoredValue):
    """Yes/no flag, stored as ``"true"``/``"false"``."""

    kind: Literal["boolean"] = "boolean"
    value: bool

    def encode(self) -> str:
        return "true" if self.value else "false"


class DateValue(_StoredValue):
    """Calendar date, stored as ISO-8601 ``YYYY-MM-DD``."""

    kind: Literal["date"] = "date"
    value: date

    def encode(self) -> str:
        return self.value.isoformat()


class ChoiceValue(_StoredValue):
    """Option value token of a single-choice field."""

    kind: Literal["choice"] = "choice"
    value: str

    def encode(self) -> str:
        return self.value


FieldValue = Annotated[
    TextValue | NumberValue | BooleanValue | DateValue | ChoiceValue,
    Field(discriminator="kind"),
]
"""Discriminated union of every stored value kind (discriminator ``kind``)."""

field_value_adapter: TypeAdapter[FieldValue] = TypeAdapter(FieldValue)

_VARIANTS: dict[FieldType, type[_StoredValue]] = {
    FieldType.TEXT: TextValue,
    FieldType.TEXTAREA: TextValue,
    FieldType.EMAIL: TextValue,
    FieldType.URL: TextValue,
    FieldType.PHONE: TextValue,
    FieldType.NUMBER: NumberValue,
    FieldType.BOOLEAN: BooleanValue,
    FieldType.DATE: DateValue,
    FieldType.DROPDOWN: ChoiceValue,
}

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ().-]{5,18}[0-9]$")
_http_url_adapter: TypeAdapter[HttpUrl] = TypeAdapter(HttpUrl)


def variant_for(field_type: FieldType) -> type[_StoredValue]:
    """The value model used for fields of ``field_type``."""
    return _VARIANTS[field_type]


def decode_value(field_type: FieldType, raw: str) -> FieldValue:
    """Restore a typed value from its stored text.

    Args:
        field_type: Declared type of the field the value belongs to.
        raw: Text as stored in the value table.

    Returns:
        The variant matching ``field_type``.

    Raises:
        ValueError: If the stored text is not a valid encoding for the type.
    """
    if field_type is FieldType.NUMBER:
        return NumberValue(value=_parse_number(raw))
    if field_type is FieldType.BOOLEAN:
        lowered = raw.strip().lower()
        if lowered not in ("true", "false"):
            msg = f"Stored boolean is neither 'true' nor 'false': {raw!r}"
            raise ValueError(msg)
        return BooleanValue(value=lowered == "true")
    if field_type is FieldType.DATE:
        return DateValue(value=date.fromisoformat(raw.strip()))
    if field_type is FieldType.DROPDOWN:
        return ChoiceValue(value=raw)
    return TextValue(value=raw)


def coerce_value(field_type: FieldType, raw: Any) -> FieldValue:
    """Parse caller input for a field into its typed value.

    Accepts JSON scalars as well as their string forms (``"42"``,
    ``"true"``, ``"2024-05-01"``) since HTML forms submit strings.
    Blank input is handled by the caller and never reaches this function.

    Args:
        field_type: Declared type of the target field.
        raw: Submitted value.

    Returns:
        The variant matching ``field_type``.

    Raises:
        ValueError: With a human-readable reason when the input does not
            fit the type.
    """
    if field_type is FieldType.NUMBER:
        return NumberValue(value=_coerce_number(raw))
    if field_type is FieldType.BOOLEAN:
        return BooleanValue(value=_coerce_boolean(raw))
    if field_type is FieldType.DATE:
        return DateValue(value=_coerce_date(raw))

    if not isinstance(raw, str):
        msg = "must be a string"
        raise ValueError(msg)

    if field_type is FieldType.DROPDOWN:
        return ChoiceValue(value=raw)
    if field_type is FieldType.EMAIL and not _EMAIL_PATTERN.match(raw.strip()):
        msg = "must be a valid email address"
        raise ValueError(msg)
    if field_type is FieldType.URL:
        _check_url(raw.strip())
    if field_type is FieldType.PHONE and not _PHONE_PATTERN.match(raw.strip()):
        msg = "must be a valid phone number"
        raise ValueError(msg)
    return TextValue(value=raw)


def _parse_number(raw: str) -> int | float:
    text = raw.strip()
    if _INTEGER_PATTERN.match(text):
        return int(text)
    number = float(text)
    if not math.isfinite(number):
        msg = f"Not a finite number: {raw!r}"
        raise ValueError(msg)
    return number


def _coerce_number(raw: Any) -> int | float:
    if isinstance(raw, bool):
        msg = "must be a number"
        raise ValueError(msg)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            msg = "must be a finite number"
            raise ValueError(msg)
        return raw
    if isinstance(raw, str):
        try:
            return _parse_number(raw)
        except ValueError:
            msg = "must be a number"
            raise ValueError(msg) from None
    msg = "must be a number"
    raise ValueError(msg)


def _coerce_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    msg = "must be true or false"
    raise ValueError(msg)


def _coerce_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        try:
            return date.fromisoformat(raw.strip())
        except ValueError:
            pass
    msg = "must be a date in YYYY-MM-DD format"
    raise ValueError(msg)


def _check_url(text: str) -> None:
    try:
        _http_url_adapter.validate_python(text)
    except PydanticValidationError:
        msg = "must be a valid http or https URL"
        raise ValueError(msg) from None
