"""
Field-level validation rules.

Provides validators for required fields, type coercion, length bounds,
regex patterns and numeric ranges.
"""

from .base_validator import BaseValidator, FieldValidationError
from .length_validator import LengthValidator
from .range_validator import RangeValidator
from .regex_validator import RegexValidator
from .required_field_validator import RequiredFieldValidator
from .type_validator import TypeValidator

__all__ = [
    "BaseValidator",
    "FieldValidationError",
    "RequiredFieldValidator",
    "TypeValidator",
    "LengthValidator",
    "RangeValidator",
    "RegexValidator",
]
