"""
RunResult model representing the immutable outcome of one pipeline execution.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunMetadata(BaseModel):
    """Where a run read from, where it wrote to, and when it finished."""

    source: str | None = None
    destination: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    error: str | None = None

    class Config:
        frozen = True


class RunResult(BaseModel):
    """
    Outcome of one extract -> transform -> load cycle.

    Created once at the end of a run and never mutated afterwards.

    Attributes:
        success: False when a stage failed fatally
        records_processed: Records produced by the extract stage
        records_successful: Records that passed mapping and transformation
        records_failure: Records moved to the failed set
        records_loaded: Records accepted by the destination
        errors: One message per failed record, or the fatal cause
        execution_time_ms: Wall-clock time from execute() entry to result assembly
        data_hash: Content hash of the successful record set ("" for failed runs)
        metadata: RunMetadata
    """

    success: bool
    records_processed: int = Field(0, ge=0)
    records_successful: int = Field(0, ge=0)
    records_failure: int = Field(0, ge=0)
    records_loaded: int = Field(0, ge=0)
    errors: list[str] = Field(default_factory=list)
    execution_time_ms: int = Field(0, ge=0)
    data_hash: str = ""
    metadata: RunMetadata = Field(default_factory=RunMetadata)

    @field_validator("records_failure")
    @classmethod
    def check_counts_consistency(cls, v, info):
        """Successful and failed records must account for every processed record."""
        processed = info.data.get("records_processed", 0)
        successful = info.data.get("records_successful", 0)
        if successful + v > processed:
            raise ValueError(
                f"records_successful ({successful}) + records_failure ({v}) "
                f"exceeds records_processed ({processed})"
            )
        return v

    @classmethod
    def failure(
        cls,
        error: str,
        execution_time_ms: int = 0,
        source: str | None = None,
        destination: str | None = None,
    ) -> "RunResult":
        """Build the zero-count result recorded when a stage fails fatally."""
        return cls(
            success=False,
            errors=[error],
            execution_time_ms=execution_time_ms,
            metadata=RunMetadata(source=source, destination=destination, error=error),
        )

    def summary(self) -> dict[str, Any]:
        """Short form used in log lines."""
        return {
            "success": self.success,
            "records_processed": self.records_processed,
            "records_successful": self.records_successful,
            "records_failure": self.records_failure,
            "execution_time_ms": self.execution_time_ms,
        }

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "success": True,
                "records_processed": 3,
                "records_successful": 2,
                "records_failure": 1,
                "records_loaded": 2,
                "errors": ["Record 2: Field amount: Cannot convert \"n/a\" to number"],
                "execution_time_ms": 41,
                "data_hash": "5d41402abc4b2a76b9719d911017c592",
                "metadata": {
                    "source": "./data/budget.csv",
                    "destination": "./data/processed/budget.json",
                    "timestamp": "2025-11-17T08:00:00Z"
                }
            }
        }


class TransformOutcome(BaseModel):
    """
    Result of the transform stage (ephemeral).

    Attributes:
        successful: Mapped and transformed records, in source order
        failed: Raw records that failed a mapping or transformation step
        errors: One accumulated message per failed record
    """

    successful: list[dict[str, Any]] = Field(default_factory=list)
    failed: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @field_validator("errors")
    @classmethod
    def check_errors_match_failures(cls, v, info):
        """Every failed record carries exactly one error message."""
        failed = info.data.get("failed", [])
        if len(v) != len(failed):
            raise ValueError(
                f"errors length ({len(v)}) must match failed length ({len(failed)})"
            )
        return v


class LoadResult(BaseModel):
    """Result of the load stage (ephemeral)."""

    records_loaded: int = Field(0, ge=0)
    records_failed: int = Field(0, ge=0)
