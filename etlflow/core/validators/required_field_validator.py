"""
RequiredFieldValidator - ensures a mapped source field is present.
"""

from typing import Any

from .base_validator import BaseValidator


def is_missing(record: dict[str, Any], field_name: str) -> bool:
    """A field is missing when the key is absent or its value is None."""
    return record.get(field_name) is None


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required source field is present and not null.

    Empty strings count as present; type coercion decides whether they are
    acceptable for the declared data type.
    """

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Raises:
            FieldValidationError: If the field is absent or None
        """
        if self.field_name not in record:
            raise self.fail(f"Required field {self.field_name} is missing")

        if value is None:
            raise self.fail(f"Required field {self.field_name} is null")

    @property
    def rule_type(self) -> str:
        return "required_field"
