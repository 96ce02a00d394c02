"""
Core data models for the ETL engine.

All models use Pydantic for runtime validation and type safety.
"""

from .events import EVENT_SEQUENCE, TERMINAL_EVENTS, PipelineEvent, SchedulerEvent
from .job_history import JobHistoryEntry
from .pipeline_definition import (
    DestinationConfig,
    FieldMapping,
    PipelineDefinition,
    SourceConfig,
    TransformationRule,
)
from .run_result import LoadResult, RunMetadata, RunResult, TransformOutcome
from .validation_result import ConfigValidationResult

__all__ = [
    "PipelineDefinition",
    "SourceConfig",
    "DestinationConfig",
    "FieldMapping",
    "TransformationRule",
    "RunResult",
    "RunMetadata",
    "TransformOutcome",
    "LoadResult",
    "PipelineEvent",
    "SchedulerEvent",
    "EVENT_SEQUENCE",
    "TERMINAL_EVENTS",
    "JobHistoryEntry",
    "ConfigValidationResult",
]
