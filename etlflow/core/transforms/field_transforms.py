"""
Per-field transformations applied right after type coercion.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable


def _trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _uppercase(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


def _lowercase(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def round_to_cents(value: Any) -> Any:
    """Round a float to two decimals, halves away from zero. Other values pass through."""
    if isinstance(value, bool) or not isinstance(value, float):
        return value
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


FIELD_TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "trim": _trim,
    "uppercase": _uppercase,
    "lowercase": _lowercase,
    "currency": round_to_cents,
}


def apply_field_transformation(value: Any, transformation: str | None) -> Any:
    """Apply a named per-field transformation; None means no transformation."""
    if transformation is None:
        return value
    handler = FIELD_TRANSFORMS.get(transformation)
    if handler is None:
        raise ValueError(f"Unknown field transformation: {transformation}")
    return handler(value)
