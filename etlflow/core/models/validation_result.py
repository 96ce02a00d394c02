"""
ConfigValidationResult model representing the outcome of validating a definition.
"""

from pydantic import BaseModel, Field, field_validator


class ConfigValidationResult(BaseModel):
    """
    Outcome of ConfigStore.validate_config().

    Attributes:
        is_valid: True when no errors were found
        errors: Human-readable problems, in discovery order
    """

    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @field_validator("errors")
    @classmethod
    def check_valid_consistency(cls, v, info):
        """Validate that is_valid=True implies errors is empty."""
        if info.data.get("is_valid") and len(v) > 0:
            raise ValueError("is_valid=True but errors is not empty")
        return v
