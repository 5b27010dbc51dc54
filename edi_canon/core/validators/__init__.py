"""
Field validators and type coercion for purchase-order documents.
"""

from .base_validator import BaseValidator, ValidationError
from .required_field_validator import RequiredFieldValidator
from .type_validator import (
    TypeValidator,
    parse_decimal,
    parse_decimal_truncate,
    parse_edi_date,
    parse_integer,
)

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "TypeValidator",
    "parse_integer",
    "parse_decimal",
    "parse_decimal_truncate",
    "parse_edi_date",
]
