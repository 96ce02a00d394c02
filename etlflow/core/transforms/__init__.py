"""
Field transformations and the pipeline operation handler table.
"""

from .field_transforms import FIELD_TRANSFORMS, apply_field_transformation
from .formulas import FORMULAS, calculate
from .operations import OPERATION_HANDLERS, apply_operation, check_rule_parameters

__all__ = [
    "FIELD_TRANSFORMS",
    "apply_field_transformation",
    "FORMULAS",
    "calculate",
    "OPERATION_HANDLERS",
    "apply_operation",
    "check_rule_parameters",
]
