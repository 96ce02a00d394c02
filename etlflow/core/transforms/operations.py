"""
Handler table for pipeline-level transformation operations.

Each handler receives the current field value, the mapped record (for
derived fields) and the rule parameters, and returns the new field value.
Failures raise FieldValidationError and fail the record.
"""

import re
from typing import Any, Callable

from etlflow.core.validators import (
    BaseValidator,
    FieldValidationError,
    LengthValidator,
    RangeValidator,
    RegexValidator,
)

from .formulas import calculate, check_formula_parameters

Handler = Callable[[str, Any, dict[str, Any], dict[str, Any]], Any]

SPECIAL_CHARS = re.compile(r"[^a-zA-Z0-9\s]")
WHITESPACE_RUN = re.compile(r"\s+")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def clean(field_name: str, value: Any, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    if not isinstance(value, str):
        return value

    cleaned = value
    if parameters.get("removeSpecialChars"):
        cleaned = SPECIAL_CHARS.sub("", cleaned)
    if parameters.get("removeExtraSpaces"):
        cleaned = WHITESPACE_RUN.sub(" ", cleaned).strip()
    return cleaned


def build_rule_validators(field_name: str, parameters: dict[str, Any]) -> list[BaseValidator]:
    """
    Raises:
        ValueError: If a bound or pattern parameter is malformed
    """
    validators: list[BaseValidator] = []
    if parameters.get("minLength") is not None or parameters.get("maxLength") is not None:
        validators.append(LengthValidator(field_name, parameters))
    if parameters.get("pattern"):
        validators.append(RegexValidator(field_name, {"pattern": parameters["pattern"]}))
    if parameters.get("minValue") is not None or parameters.get("maxValue") is not None:
        validators.append(RangeValidator(field_name, parameters))
    return validators


def validate(field_name: str, value: Any, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    for validator in build_rule_validators(field_name, parameters):
        validator.validate(value, record)
    return value


def format_value(field_name: str, value: Any, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    format_type = parameters.get("type")
    if value is None or format_type not in ("currency", "percentage"):
        return value

    if isinstance(value, bool) or not isinstance(value, int | float):
        raise FieldValidationError("format", field_name, f"Cannot format non-numeric value {value!r}")

    if format_type == "percentage":
        return f"{value * 100:.2f}%"

    code = str(parameters.get("currency", "USD")).upper()
    amount = f"{abs(value):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(code)
    rendered = f"{symbol}{amount}" if symbol else f"{code} {amount}"
    return f"-{rendered}" if value < 0 else rendered


def lookup(field_name: str, value: Any, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    table = parameters.get("lookupTable")
    if not table or value is None:
        return value
    key = value if isinstance(value, str) else str(value)
    return table.get(key, value)


def calculate_value(field_name: str, value: Any, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    return calculate(field_name, record, parameters)


OPERATION_HANDLERS: dict[str, Handler] = {
    "clean": clean,
    "validate": validate,
    "calculate": calculate_value,
    "format": format_value,
    "lookup": lookup,
}


def apply_operation(
    operation: str,
    field_name: str,
    value: Any,
    record: dict[str, Any],
    parameters: dict[str, Any],
) -> Any:
    """Dispatch one transformation rule to its handler."""
    handler = OPERATION_HANDLERS.get(operation)
    if handler is None:
        raise ValueError(f"Unknown operation: {operation}")
    try:
        return handler(field_name, value, record, parameters or {})
    except ValueError as e:
        # Bad rule parameters (e.g. an invalid regex) fail the record.
        raise FieldValidationError(operation, field_name, str(e))


def check_rule_parameters(operation: str, field_name: str, parameters: dict[str, Any]) -> list[str]:
    """
    Check rule parameters before any record is processed.

    Returns:
        Problems found, each naming the offending parameter
    """
    parameters = parameters or {}
    if operation == "calculate":
        return check_formula_parameters(parameters)
    if operation == "validate":
        try:
            build_rule_validators(field_name, parameters)
        except ValueError as e:
            return [str(e)]
    if operation == "lookup" and parameters.get("lookupTable") is not None:
        if not isinstance(parameters["lookupTable"], dict):
            return ["Parameter 'lookupTable' must be an object"]
    return []
