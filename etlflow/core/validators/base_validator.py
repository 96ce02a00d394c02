"""
Base validator interface for field-level rules.

All validators inherit from BaseValidator and implement validate().
"""

from abc import ABC, abstractmethod
from typing import Any


class FieldValidationError(Exception):
    """Raised when a field fails a mapping or validation rule."""

    def __init__(self, rule_name: str, field_name: str, message: str):
        self.rule_name = rule_name
        self.field_name = field_name
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class BaseValidator(ABC):
    """
    Abstract base class for all validators.

    Each validator implements one rule type
    (required_field, type_check, length, regex, range).
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Initialize validator.

        Args:
            field_name: Name of the field to validate
            parameters: Rule-specific parameters (e.g., minLength for length)
        """
        self.field_name = field_name
        self.parameters = parameters or {}

    @abstractmethod
    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Validate a value against this rule.

        Args:
            value: The field value to validate
            record: The entire record (for context-dependent validation)

        Raises:
            FieldValidationError: If validation fails
        """
        pass

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule type identifier."""
        pass

    def fail(self, message: str) -> FieldValidationError:
        return FieldValidationError(self.rule_type, self.field_name, message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
