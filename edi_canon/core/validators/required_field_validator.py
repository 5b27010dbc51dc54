"""
RequiredFieldValidator - ensures a header field is present and not null/empty.
"""

from typing import Any

from edi_canon.core.normalize import node_at

from .base_validator import BaseValidator, ValidationError


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a mandatory document field carries a scalar value.

    Fails if:
    - The path does not exist in the document
    - The value is an object or array
    - The value is an empty string (configurable)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.allow_empty_string = self.parameters.get("allow_empty_string", False)

    def validate(self, value: Any, document: dict[str, Any]) -> None:
        """
        Validate that the field is present and not null/empty.

        Args:
            value: The scalar value read at ``field_name`` (None if absent)
            document: The parsed document

        Raises:
            ValidationError: If field is missing, not a scalar, or empty
        """
        if value is None:
            node = node_at(document, self.field_name)
            message = "Field is missing from document" if node is None else "Field value is not a scalar"
            raise ValidationError(
                rule_name="required_field",
                field_name=self.field_name,
                message=message
            )

        if not self.allow_empty_string and isinstance(value, str) and value.strip() == "":
            raise ValidationError(
                rule_name="required_field",
                field_name=self.field_name,
                message="Field value is empty string"
            )

    @property
    def rule_type(self) -> str:
        return "required_field"
