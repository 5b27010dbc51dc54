"""
TypeValidator - coerces gateway text values into integers, decimals and dates.

The gateway renders every scalar as text. Quantities, prices and dates are
coerced here; a value that fails to coerce is reported as absent by
``coerce_or_none`` so callers can drop just that field or allocation.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from .base_validator import BaseValidator, ValidationError

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def parse_integer(value: Any) -> int:
    """Strict integer: ``"12"`` -> 12; ``"12.0"`` and ``"abc"`` fail."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse boolean {value!r} as integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not _INTEGER_PATTERN.match(text):
        raise ValueError(f"Cannot parse '{value}' as integer")
    return int(text)


def parse_decimal(value: Any) -> Decimal:
    """Finite decimal: ``"11.50"`` -> Decimal("11.50")."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse boolean {value!r} as decimal")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse '{value}' as decimal") from e
    if not number.is_finite():
        raise ValueError(f"Cannot parse '{value}' as a finite decimal")
    return number


def parse_decimal_truncate(value: Any) -> int:
    """Decimal-formatted integer, truncated toward zero: ``"238.0"`` -> 238."""
    return int(parse_decimal(value))


def parse_edi_date(value: Any) -> date:
    """CCYYMMDD (EDI) or ISO date."""
    text = str(value).strip()
    for fmt in ("%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Cannot parse '{value}' as date")


class TypeValidator(BaseValidator):
    """
    Validates that a field can be coerced to the expected type.

    Supported types:
    - "integer": strict integer text
    - "decimal_truncate": decimal text truncated to an integer
    - "decimal": finite decimal (prices)
    - "date": CCYYMMDD or ISO date
    """

    TYPE_MAPPING: dict[str, Callable[[Any], Any]] = {
        "integer": parse_integer,
        "decimal_truncate": parse_decimal_truncate,
        "decimal": parse_decimal,
        "date": parse_edi_date,
    }

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        expected_type = self.parameters.get("expected_type")
        if not expected_type:
            raise ValueError("TypeValidator requires 'expected_type' parameter")

        self.expected_type = expected_type
        self.parser = self.TYPE_MAPPING.get(expected_type.lower())
        if not self.parser:
            raise ValueError(f"Unsupported type: {expected_type}")

    def validate(self, value: Any, document: dict[str, Any]) -> None:
        """
        Validate that the value coerces to the expected type.

        Raises:
            ValidationError: If coercion fails
        """
        # Skip validation for None (handled by required_field validator)
        if value is None:
            return
        self.coerce(value)

    def coerce(self, value: Any) -> Any:
        """
        Coerce a value to the expected type.

        Raises:
            ValidationError: If coercion fails
        """
        try:
            return self.parser(value)
        except (ValueError, TypeError) as e:
            raise ValidationError(
                rule_name="type_check",
                field_name=self.field_name,
                message=f"Cannot coerce {type(value).__name__} to {self.expected_type}: {e}"
            ) from e

    def coerce_or_none(self, value: Any) -> Any:
        """Coerce a value, treating None and failures as absent."""
        if value is None:
            return None
        try:
            return self.coerce(value)
        except ValidationError:
            return None

    @property
    def rule_type(self) -> str:
        return "type_check"
