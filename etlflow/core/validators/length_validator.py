"""
LengthValidator - validates string length bounds.
"""

from typing import Any

from .base_validator import BaseValidator


class LengthValidator(BaseValidator):
    """
    Validates that the string form of a value is within length bounds.

    Parameters:
    - minLength: Minimum number of characters (inclusive)
    - maxLength: Maximum number of characters (inclusive)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.min_length = self.parameters.get("minLength")
        self.max_length = self.parameters.get("maxLength")

        if self.min_length is None and self.max_length is None:
            raise ValueError("LengthValidator requires at least one of: minLength, maxLength")

        for key, bound in (("minLength", self.min_length), ("maxLength", self.max_length)):
            if bound is not None and (isinstance(bound, bool) or not isinstance(bound, int) or bound < 0):
                raise ValueError(f"Parameter '{key}' must be a non-negative integer, got {bound!r}")

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Raises:
            FieldValidationError: If the value is too short or too long
        """
        if value is None:
            return

        length = len(value if isinstance(value, str) else str(value))

        if self.min_length is not None and length < self.min_length:
            raise self.fail(f"Value too short: minimum {self.min_length} characters")

        if self.max_length is not None and length > self.max_length:
            raise self.fail(f"Value too long: maximum {self.max_length} characters")

    @property
    def rule_type(self) -> str:
        return "length"
