"""
TypeValidator - coerces field values to a declared data type.
"""

import math
from datetime import date, datetime, time, timezone
from typing import Any

from .base_validator import BaseValidator

DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%d-%m-%Y")

TRUTHY_STRINGS = ("true", "1", "yes")


class TypeValidator(BaseValidator):
    """
    Validates a field against its declared data type and returns the coerced value.

    Supported types:
    - "number": strict numeric parse ("12" -> 12, "12.5" -> 12.5)
    - "date": calendar parse to datetime
    - "boolean": "true", "1", "yes" (any case) are True, other strings False
    - "string": str() of the value

    None is passed through unchanged; requiredness is checked separately.
    """

    SUPPORTED_TYPES = ("string", "number", "date", "boolean")

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        expected_type = self.parameters.get("expected_type")
        if not expected_type:
            raise ValueError("TypeValidator requires 'expected_type' parameter")

        if expected_type not in self.SUPPORTED_TYPES:
            raise ValueError(f"Unsupported type: {expected_type}")

        self.expected_type = expected_type

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Raises:
            FieldValidationError: If the value cannot be coerced
        """
        self.coerce(value)

    def coerce(self, value: Any) -> Any:
        """
        Coerce value to the expected type.

        Returns:
            The coerced value

        Raises:
            FieldValidationError: If coercion fails
        """
        if value is None:
            return None

        try:
            if self.expected_type == "number":
                return self._to_number(value)
            if self.expected_type == "date":
                return self._to_date(value)
            if self.expected_type == "boolean":
                return self._to_boolean(value)
            return str(value)
        except (ValueError, TypeError, OverflowError, OSError):
            raise self.fail(f'Cannot convert "{value}" to {self.expected_type}')

    @staticmethod
    def _to_number(value: Any) -> int | float:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("non-finite number")
            return value
        if isinstance(value, str):
            text = value.strip()
            if not text:
                raise ValueError("empty string")
            try:
                return int(text)
            except ValueError:
                pass
            number = float(text)
            if not math.isfinite(number):
                raise ValueError("non-finite number")
            return number
        raise TypeError(f"unsupported type {type(value).__name__}")

    @staticmethod
    def _to_date(value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time.min)
        if isinstance(value, bool):
            raise TypeError("boolean is not a date")
        if isinstance(value, int | float):
            # Epoch milliseconds
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        if isinstance(value, str):
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                return datetime.fromisoformat(text)
            except ValueError:
                pass
            for fmt in DATE_FORMATS:
                try:
                    return datetime.strptime(text, fmt)
                except ValueError:
                    continue
            raise ValueError(f"unrecognized date '{value}'")
        raise TypeError(f"unsupported type {type(value).__name__}")

    @staticmethod
    def _to_boolean(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in TRUTHY_STRINGS
        return bool(value)

    @property
    def rule_type(self) -> str:
        return "type_check"
