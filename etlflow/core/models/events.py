"""
Lifecycle event models.

PipelineEvent is emitted by the engine for each phase of one run.
SchedulerEvent is the externally observable form republished by the scheduler.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .run_result import utcnow

EventType = Literal["started", "extracted", "transformed", "loaded", "completed", "failed"]

# Emission order within one run; the last phase is either completed or failed.
EVENT_SEQUENCE: tuple[str, ...] = ("started", "extracted", "transformed", "loaded")
TERMINAL_EVENTS: tuple[str, ...] = ("completed", "failed")


class PipelineEvent(BaseModel):
    """
    One lifecycle notification from the engine.

    Attributes:
        pipeline_name: Pipeline the run belongs to
        event_type: Phase reached
        payload: Phase details ({"record_count": n} or {"result": {...}})
        timestamp: When the phase was reached
    """

    pipeline_name: str
    event_type: EventType
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True


class SchedulerEvent(BaseModel):
    """
    Event republished by the scheduler to external observers.

    Attributes:
        pipeline_name: Pipeline the run belongs to
        event_type: "pipeline_" + engine event type (e.g. "pipeline_loaded")
        payload: Engine event payload
        timestamp: When the scheduler republished the event
    """

    pipeline_name: str
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_pipeline_event(cls, event: PipelineEvent) -> "SchedulerEvent":
        return cls(
            pipeline_name=event.pipeline_name,
            event_type=f"pipeline_{event.event_type}",
            payload=event.payload,
        )

    class Config:
        frozen = True
