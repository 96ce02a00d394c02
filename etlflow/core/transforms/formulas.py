"""
Derived-field formulas for the "calculate" operation.

The formula set is closed. Which fields a formula reads is supplied by the
rule parameters, so a pipeline decides what "utilization" or "health" means
without the engine knowing about budgets or projects.

Example rule:
    {"field": "utilization_rate", "operation": "calculate",
     "parameters": {"formula": "ratio", "numerator": "spent_amount",
                    "denominator": "allocated_budget", "scale": 100}}
"""

from datetime import date, datetime, timezone
from typing import Any, Callable

from etlflow.core.validators import FieldValidationError, TypeValidator

Formula = Callable[[str, dict[str, Any], dict[str, Any]], Any]


def _error(field_name: str, message: str) -> FieldValidationError:
    return FieldValidationError("calculate", field_name, message)


def _param(field_name: str, parameters: dict[str, Any], key: str) -> Any:
    if parameters.get(key) is None:
        raise _error(field_name, f"Missing parameter '{key}'")
    return parameters[key]


def _number(field_name: str, record: dict[str, Any], operand: str) -> float:
    value = record.get(operand)
    if value is None:
        raise _error(field_name, f"Operand field {operand} is missing")
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise _error(field_name, f"Operand field {operand} is not numeric")
    return value


def _date(field_name: str, record: dict[str, Any], operand: str) -> date:
    value = record.get(operand)
    if value is None:
        raise _error(field_name, f"Operand field {operand} is missing")
    coerced = TypeValidator(operand, {"expected_type": "date"}).coerce(value)
    return coerced.date() if isinstance(coerced, datetime) else coerced


def ratio(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> float | None:
    numerator = _number(field_name, record, _param(field_name, parameters, "numerator"))
    denominator = _number(field_name, record, _param(field_name, parameters, "denominator"))
    if denominator == 0:
        return None
    scale = parameters.get("scale", 1)
    return round(numerator / denominator * scale, parameters.get("precision", 2))


def difference(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> float:
    minuend = _number(field_name, record, _param(field_name, parameters, "minuend"))
    subtrahend = _number(field_name, record, _param(field_name, parameters, "subtrahend"))
    return minuend - subtrahend


def total(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> float:
    fields = _param(field_name, parameters, "fields")
    return sum(_number(field_name, record, operand) for operand in fields)


def days_between(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> int:
    start = _date(field_name, record, _param(field_name, parameters, "start"))
    end = _date(field_name, record, _param(field_name, parameters, "end"))
    return (end - start).days


def days_until(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> int:
    target = _date(field_name, record, _param(field_name, parameters, "field"))
    if parameters.get("reference"):
        reference = _date(field_name, record, parameters["reference"])
    else:
        # UTC so results do not depend on the host timezone
        reference = datetime.now(timezone.utc).date()
    return (target - reference).days


def bucket(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    """
    Label a value by the first threshold whose "max" is not exceeded.

    Parameters:
    - source: Field to classify
    - thresholds: [{"max": 80, "label": "on_track"}, ...] in ascending order
    - default: Label when no threshold matches or the source is None
    """
    source = _param(field_name, parameters, "source")
    default = parameters.get("default")
    if record.get(source) is None:
        return default
    value = _number(field_name, record, source)
    for threshold in _param(field_name, parameters, "thresholds"):
        error = _threshold_error(threshold)
        if error:
            raise _error(field_name, error)
        if value <= threshold["max"]:
            return threshold["label"]
    return default


def _threshold_error(threshold: Any) -> str | None:
    if not isinstance(threshold, dict) or "max" not in threshold or "label" not in threshold:
        return f"Threshold {threshold!r} must have 'max' and 'label'"
    if isinstance(threshold["max"], bool) or not isinstance(threshold["max"], int | float):
        return f"Threshold max {threshold['max']!r} is not numeric"
    return None


def weighted_score(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> float:
    """
    Weighted sum of fields clamped to [min, max] (default 0..100).

    Parameters:
    - weights: {"field": weight, ...}
    - base: Starting score (default 0)
    """
    weights = _param(field_name, parameters, "weights")
    score = parameters.get("base", 0)
    for operand, weight in weights.items():
        score += _number(field_name, record, operand) * weight
    lower = parameters.get("min", 0)
    upper = parameters.get("max", 100)
    return round(min(max(score, lower), upper), parameters.get("precision", 2))


FORMULAS: dict[str, Formula] = {
    "ratio": ratio,
    "difference": difference,
    "sum": total,
    "days_between": days_between,
    "days_until": days_until,
    "bucket": bucket,
    "weighted_score": weighted_score,
}


REQUIRED_PARAMETERS: dict[str, tuple[str, ...]] = {
    "ratio": ("numerator", "denominator"),
    "difference": ("minuend", "subtrahend"),
    "sum": ("fields",),
    "days_between": ("start", "end"),
    "days_until": ("field",),
    "bucket": ("source", "thresholds"),
    "weighted_score": ("weights",),
}


def check_formula_parameters(parameters: dict[str, Any]) -> list[str]:
    """
    Check the shape of "calculate" parameters without a record.

    Returns:
        Problems found (empty when the parameters are usable)
    """
    formula_name = parameters.get("formula")
    if formula_name not in FORMULAS:
        return [f"Unknown formula: {formula_name}"]

    errors = [
        f"Missing parameter '{key}'"
        for key in REQUIRED_PARAMETERS[formula_name]
        if parameters.get(key) is None
    ]
    if errors:
        return errors

    if formula_name == "sum" and not (
        isinstance(parameters["fields"], list) and all(isinstance(f, str) for f in parameters["fields"])
    ):
        errors.append("Parameter 'fields' must be a list of field names")
    elif formula_name == "bucket":
        if not isinstance(parameters["thresholds"], list):
            errors.append("Parameter 'thresholds' must be a list")
        else:
            errors.extend(filter(None, (_threshold_error(t) for t in parameters["thresholds"])))
    elif formula_name == "weighted_score":
        weights = parameters["weights"]
        if not isinstance(weights, dict) or any(
            isinstance(w, bool) or not isinstance(w, int | float) for w in weights.values()
        ):
            errors.append("Parameter 'weights' must map field names to numbers")
    return errors


def calculate(field_name: str, record: dict[str, Any], parameters: dict[str, Any]) -> Any:
    """Compute a derived field; unknown formulas fail the record."""
    formula_name = parameters.get("formula")
    formula = FORMULAS.get(formula_name)
    if formula is None:
        raise _error(field_name, f"Unknown formula: {formula_name}")
    return formula(field_name, record, parameters)
