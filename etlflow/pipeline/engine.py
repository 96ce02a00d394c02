"""
Pipeline execution engine.

Runs one definition through extract -> transform -> load and assembles an
immutable RunResult. Progress is reported to an optional observer as an
ordered sequence of PipelineEvents:

    started, extracted, transformed, loaded, then completed or failed

A stage-fatal error ends the run early with a failed RunResult; it is
recorded in history and returned, never raised to the caller.
"""

import asyncio
import inspect
import time
from collections import deque
from typing import Any, Awaitable, Callable, Union

from etlflow.core.exceptions import (
    PipelineAlreadyRunningError,
    UnsupportedDestinationError,
    UnsupportedSourceError,
)
from etlflow.core.models import (
    LoadResult,
    PipelineDefinition,
    PipelineEvent,
    RunMetadata,
    RunResult,
)
from etlflow.core.transformer import RecordTransformer
from etlflow.observability import metrics
from etlflow.observability.logger import get_logger, log_operation
from etlflow.utils.serialization import compute_data_hash

from .readers import (
    APIReader,
    CSVReader,
    ExcelReader,
    FixtureGenerator,
    JSONReader,
    SourceReader,
)
from .writers import APIWriter, DestinationWriter, FileWriter, TableWriter

logger = get_logger(__name__)

Observer = Callable[[PipelineEvent], Union[None, Awaitable[None]]]


def default_readers(fixtures: FixtureGenerator, http_timeout: float = 30.0) -> dict[str, SourceReader]:
    return {
        "excel": ExcelReader(fixtures),
        "csv": CSVReader(fixtures),
        "json": JSONReader(fixtures),
        "api": APIReader(timeout=http_timeout),
    }


def default_writers(http_timeout: float = 30.0) -> dict[str, DestinationWriter]:
    return {
        "database": TableWriter(),
        "file": FileWriter(),
        "api": APIWriter(timeout=http_timeout),
    }


class PipelineEngine:
    """
    Executes pipeline definitions, one run at a time.

    An engine instance never runs two definitions concurrently; callers that
    need independent pipelines to overlap use one engine per pipeline.
    """

    def __init__(
        self,
        readers: dict[str, SourceReader] | None = None,
        writers: dict[str, DestinationWriter] | None = None,
        history_limit: int = 100,
        fixtures: FixtureGenerator | None = None,
        http_timeout: float = 30.0,
    ):
        """
        Initialize the engine.

        Args:
            readers: Source type -> reader (defaults cover excel, csv, json, api)
            writers: Destination type -> writer (defaults cover database, file, api)
            history_limit: Number of RunResults retained, oldest evicted first
            fixtures: Sample data used when a file source does not exist
            http_timeout: Timeout for the default API reader and writer
        """
        self.fixtures = fixtures or FixtureGenerator()
        self.readers = readers if readers is not None else default_readers(self.fixtures, http_timeout)
        self.writers = writers if writers is not None else default_writers(http_timeout)
        self._history: deque[RunResult] = deque(maxlen=history_limit)
        self._running = False
        self._current_pipeline: str | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_pipeline(self) -> str | None:
        return self._current_pipeline

    async def execute(
        self,
        definition: PipelineDefinition,
        observer: Observer | None = None,
    ) -> RunResult:
        """
        Run a definition through extract, transform and load.

        Args:
            definition: Pipeline to run
            observer: Callable (sync or async) receiving each PipelineEvent

        Returns:
            RunResult (success=False when a stage failed fatally)

        Raises:
            PipelineAlreadyRunningError: If this engine is already executing a run
        """
        if self._running:
            raise PipelineAlreadyRunningError(definition.name)

        self._running = True
        self._current_pipeline = definition.name
        try:
            return await self._run(definition, observer)
        finally:
            self._running = False
            self._current_pipeline = None

    async def _run(self, definition: PipelineDefinition, observer: Observer | None) -> RunResult:
        name = definition.name
        source = definition.source.location
        destination = definition.destination.location
        started_at = time.perf_counter()

        logger.info(f"Starting ETL pipeline: {name}", extra={"pipeline": name})
        await self._emit(observer, name, "started", {"source": source, "destination": destination})

        try:
            with log_operation("extract", logger=logger, pipeline=name):
                raw_records = await self.extract(definition)
            await self._emit(observer, name, "extracted", {"record_count": len(raw_records)})

            with log_operation("transform", logger=logger, pipeline=name):
                transformer = RecordTransformer(definition.source.mapping, definition.transformations)
                outcome = await asyncio.to_thread(transformer.transform, raw_records)
            await self._emit(observer, name, "transformed", {"record_count": len(outcome.successful)})

            with log_operation("load", logger=logger, pipeline=name):
                load_result = await self.load(definition, outcome.successful)
            metrics.record_load_failures(name, definition.destination.type, load_result.records_failed)
            await self._emit(observer, name, "loaded", {"record_count": load_result.records_loaded})

            result = RunResult(
                success=True,
                records_processed=len(raw_records),
                records_successful=len(outcome.successful),
                records_failure=len(outcome.failed),
                records_loaded=load_result.records_loaded,
                errors=outcome.errors,
                execution_time_ms=self._elapsed_ms(started_at),
                data_hash=compute_data_hash(outcome.successful),
                metadata=RunMetadata(source=source, destination=destination),
            )
        except Exception as e:
            logger.exception(f"ETL pipeline failed: {name}: {e}", extra={"pipeline": name})
            result = RunResult.failure(
                str(e) or type(e).__name__,
                execution_time_ms=self._elapsed_ms(started_at),
                source=source,
                destination=destination,
            )

        self._history.append(result)
        metrics.record_pipeline_run(
            name,
            success=result.success,
            records_processed=result.records_processed,
            records_successful=result.records_successful,
            records_failure=result.records_failure,
            records_loaded=result.records_loaded,
            duration_seconds=result.execution_time_ms / 1000,
        )

        if result.success:
            logger.info(f"ETL pipeline completed: {name}", extra={"pipeline": name, **result.summary()})
            await self._emit(observer, name, "completed", {"result": result.model_dump(mode="json")})
        else:
            await self._emit(observer, name, "failed", {"result": result.model_dump(mode="json")})

        return result

    async def extract(self, definition: PipelineDefinition) -> list[dict[str, Any]]:
        reader = self.readers.get(definition.source.type)
        if reader is None:
            raise UnsupportedSourceError(definition.source.type)
        return await reader.read(definition)

    async def load(self, definition: PipelineDefinition, records: list[dict[str, Any]]) -> LoadResult:
        writer = self.writers.get(definition.destination.type)
        if writer is None:
            raise UnsupportedDestinationError(definition.destination.type)
        return await writer.write(definition, records)

    async def _emit(
        self,
        observer: Observer | None,
        pipeline_name: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> None:
        if observer is None:
            return

        event = PipelineEvent(pipeline_name=pipeline_name, event_type=event_type, payload=payload)
        try:
            outcome = observer(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            # Observers never change the outcome of a run
            logger.warning(
                f"Observer failed on {event_type} event for {pipeline_name}: {e}",
                extra={"pipeline": pipeline_name, "event_type": event_type},
            )

    @staticmethod
    def _elapsed_ms(started_at: float) -> int:
        return int((time.perf_counter() - started_at) * 1000)

    def get_last_run(self) -> RunResult | None:
        return self._history[-1] if self._history else None

    def get_run_history(self, limit: int | None = None) -> list[RunResult]:
        """Retained results, oldest first; limit keeps the most recent N."""
        history = list(self._history)
        if limit is not None:
            return history[-limit:] if limit > 0 else []
        return history

    async def close(self) -> None:
        """Release writer resources (database pools)."""
        for writer in self.writers.values():
            await writer.close()
