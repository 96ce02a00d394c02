"""
RangeValidator - validates numeric values are within a specified range.
"""

from typing import Any

from .base_validator import BaseValidator


class RangeValidator(BaseValidator):
    """
    Validates that a numeric field is within a specified range.

    Parameters:
    - minValue: Minimum value (inclusive)
    - maxValue: Maximum value (inclusive)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.min_value = self.parameters.get("minValue")
        self.max_value = self.parameters.get("maxValue")

        if self.min_value is None and self.max_value is None:
            raise ValueError("RangeValidator requires at least one of: minValue, maxValue")

        for key, bound in (("minValue", self.min_value), ("maxValue", self.max_value)):
            if bound is not None and (isinstance(bound, bool) or not isinstance(bound, int | float)):
                raise ValueError(f"Parameter '{key}' must be a number, got {bound!r}")

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Raises:
            FieldValidationError: If value is not numeric or outside the range
        """
        if value is None:
            return

        if isinstance(value, bool) or not isinstance(value, int | float):
            raise self.fail(f"Value must be numeric, got {type(value).__name__}")

        if self.min_value is not None and value < self.min_value:
            raise self.fail(f"Value {value} is less than minimum {self.min_value}")

        if self.max_value is not None and value > self.max_value:
            raise self.fail(f"Value {value} exceeds maximum {self.max_value}")

    @property
    def rule_type(self) -> str:
        return "range"
