"""
Exception hierarchy for the ETL engine and scheduler.

Field-level failures are raised as FieldValidationError (see core.validators)
and absorbed per record. Everything below is raised at stage or control level.
"""


class ETLError(Exception):
    """Base class for all engine and scheduler errors."""


class PipelineAlreadyRunningError(ETLError):
    """Raised when execute() is called on an engine that is already running."""

    def __init__(self, pipeline_name: str):
        self.pipeline_name = pipeline_name
        super().__init__(f"ETL pipeline is already running: {pipeline_name}")


class PipelineNotFoundError(ETLError):
    """Raised when a pipeline name is not present in the configuration store."""

    def __init__(self, pipeline_name: str):
        self.pipeline_name = pipeline_name
        super().__init__(f"Pipeline configuration not found: {pipeline_name}")


class ConfigValidationError(ETLError):
    """Raised when a pipeline definition fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid configuration: {', '.join(self.errors)}")


class InvalidScheduleError(ETLError):
    """Raised when a cron expression is rejected."""

    def __init__(self, expression: str | None, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid cron expression '{expression}': {reason}")


class DuplicateJobError(ETLError):
    """Raised when a timer is registered twice for the same pipeline."""

    def __init__(self, pipeline_name: str):
        self.pipeline_name = pipeline_name
        super().__init__(f"Pipeline already has a scheduled job: {pipeline_name}")


class ExtractError(ETLError):
    """Raised when the source cannot be read at all."""


class LoadError(ETLError):
    """Raised when the destination rejects the whole load stage."""


class UnsupportedSourceError(ExtractError):
    def __init__(self, source_type: str):
        self.source_type = source_type
        super().__init__(f"Unsupported source type: {source_type}")


class UnsupportedDestinationError(LoadError):
    def __init__(self, destination_type: str):
        self.destination_type = destination_type
        super().__init__(f"Unsupported destination type: {destination_type}")
