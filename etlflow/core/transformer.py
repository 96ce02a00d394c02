"""
Record transformer for the transform stage.

Maps raw records onto destination fields, coerces types, applies per-field
and pipeline-level transformations, and splits the batch into successful
and failed records. One bad record never aborts the batch.
"""

from typing import Any

from etlflow.core.models import FieldMapping, TransformationRule, TransformOutcome
from etlflow.core.transforms import apply_field_transformation, apply_operation
from etlflow.core.validators import (
    FieldValidationError,
    RequiredFieldValidator,
    TypeValidator,
)
from etlflow.core.validators.required_field_validator import is_missing
from etlflow.observability.logger import get_logger

logger = get_logger(__name__)


class RecordTransformFailure(Exception):
    """A record failed one step; the message names the field or rule."""


class RecordTransformer:
    """
    Applies field mappings and transformation rules to records.

    Validators are built once per mapping and reused for every record.
    """

    def __init__(
        self,
        mapping: dict[str, FieldMapping],
        transformations: list[TransformationRule] | None = None,
    ):
        """
        Initialize the transformer.

        Args:
            mapping: Destination field name -> FieldMapping, applied in order
            transformations: Pipeline-level rules, applied in declared order
        """
        self.mapping = mapping
        self.transformations = list(transformations or [])
        self._field_steps: list[tuple[str, FieldMapping, RequiredFieldValidator, TypeValidator]] = [
            (
                dest_field,
                field_mapping,
                RequiredFieldValidator(field_mapping.source_field),
                TypeValidator(dest_field, {"expected_type": field_mapping.data_type}),
            )
            for dest_field, field_mapping in mapping.items()
        ]

    def transform_record(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        Transform a single raw record.

        Args:
            record: Raw record from the extract stage

        Returns:
            The mapped and transformed record

        Raises:
            RecordTransformFailure: On the first failing field or rule
        """
        transformed: dict[str, Any] = {}

        for dest_field, field_mapping, required, coercer in self._field_steps:
            try:
                value = record.get(field_mapping.source_field)
                if is_missing(record, field_mapping.source_field):
                    if field_mapping.required:
                        required.validate(value, record)
                    value = field_mapping.default_value

                value = coercer.coerce(value)
                value = apply_field_transformation(value, field_mapping.transformation)
                transformed[dest_field] = value
            except Exception as e:
                raise RecordTransformFailure(f"Field {dest_field}: {e}") from e

        for rule in self.transformations:
            try:
                transformed[rule.field] = apply_operation(
                    rule.operation,
                    rule.field,
                    transformed.get(rule.field),
                    transformed,
                    rule.parameters,
                )
            except Exception as e:
                raise RecordTransformFailure(
                    f"Transformation rule {rule.operation} for {rule.field}: {e}"
                ) from e

        return transformed

    def transform(self, records: list[dict[str, Any]]) -> TransformOutcome:
        """
        Transform a batch of records, isolating failures per record.

        Args:
            records: Raw records in source order

        Returns:
            TransformOutcome with successful, failed and errors
        """
        successful: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []
        errors: list[str] = []

        for index, record in enumerate(records, start=1):
            try:
                successful.append(self.transform_record(record))
            except RecordTransformFailure as e:
                failed.append(record)
                errors.append(f"Record {index}: {e}")
                logger.debug(f"Record {index} failed transformation: {e}")

        logger.info(
            f"Transformation complete: {len(successful)} successful, {len(failed)} failed"
        )
        return TransformOutcome(successful=successful, failed=failed, errors=errors)
