"""
JobHistoryEntry model representing one scheduler-triggered run.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .run_result import RunResult, utcnow

JobStatus = Literal["completed", "failed", "error"]


class JobHistoryEntry(BaseModel):
    """
    A run recorded by the scheduler.

    Attributes:
        pipeline_name: Pipeline that ran
        status: "completed" (success), "failed" (engine reported failure),
                "error" (engine raised)
        timestamp: When the entry was recorded
        result: RunResult of the run
    """

    pipeline_name: str
    status: JobStatus
    timestamp: datetime = Field(default_factory=utcnow)
    result: RunResult

    class Config:
        frozen = True
