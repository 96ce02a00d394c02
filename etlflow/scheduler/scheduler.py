"""
Cron-driven pipeline scheduler.

Keeps one asyncio timer per enabled, scheduled definition, enforces
skip-if-busy exclusivity per pipeline name, records every run in a bounded
job history, sends best-effort notifications and republishes engine
lifecycle events to subscribers.
"""

import asyncio
import inspect
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Union

from etlflow.config.store import ConfigStore
from etlflow.core.exceptions import (
    ConfigValidationError,
    DuplicateJobError,
    InvalidScheduleError,
    PipelineNotFoundError,
)
from etlflow.core.models import (
    JobHistoryEntry,
    PipelineDefinition,
    PipelineEvent,
    RunResult,
    SchedulerEvent,
)
from etlflow.observability import metrics
from etlflow.observability.logger import get_logger
from etlflow.pipeline.engine import PipelineEngine
from etlflow.utils.validation import validate_limit

from .cron import next_fire_time, require_valid_cron, resolve_timezone
from .history import JobHistory
from .notifier import Notifier
from .registry import ScheduledJob, SchedulerRegistry

logger = get_logger(__name__)

Subscriber = Callable[[SchedulerEvent], Union[None, Awaitable[None]]]
EngineFactory = Callable[[], PipelineEngine]


class PipelineScheduler:
    """
    Schedules and runs pipelines defined in a ConfigStore.

    Each pipeline gets its own engine, so different pipelines run
    concurrently while runs of the same pipeline never overlap.
    Timers are only armed between start() and stop().
    """

    def __init__(
        self,
        store: ConfigStore,
        engine_factory: EngineFactory | None = None,
        notifier: Notifier | None = None,
        history_limit: int = 100,
        timezone_name: str = "UTC",
    ):
        """
        Initialize the scheduler.

        Args:
            store: Source of truth for pipeline definitions
            engine_factory: Creates the engine used for a pipeline (once per name)
            notifier: Completion/failure notification sink (disabled if None)
            history_limit: Job history entries retained
            timezone_name: Zone cron expressions are evaluated in
        """
        self.store = store
        self.engine_factory = engine_factory or PipelineEngine
        self.notifier = notifier or Notifier()
        self.timezone = resolve_timezone(timezone_name)
        self.registry = SchedulerRegistry()
        self.history = JobHistory(limit=history_limit)

        self._engines: dict[str, PipelineEngine] = {}
        self._subscribers: list[Subscriber] = []
        self._tick_tasks: set[asyncio.Task] = set()
        self._started = False
        self._started_at: float | None = None

    @property
    def is_started(self) -> bool:
        return self._started

    # =======================
    # LIFECYCLE
    # =======================

    async def start(self) -> int:
        """
        Register one timer per enabled definition that has a schedule.

        Definitions with an invalid schedule are logged and left unscheduled.

        Returns:
            Number of timers registered
        """
        if self._started:
            return len(self.registry.scheduled_jobs())

        self._started = True
        self._started_at = time.monotonic()

        for definition in self.store.get_enabled_configs():
            if not definition.schedule:
                continue
            try:
                self._register_timer(definition)
            except (InvalidScheduleError, DuplicateJobError) as e:
                logger.error(f"Failed to schedule job {definition.name}: {e}")

        count = len(self.registry.scheduled_jobs())
        logger.info(f"ETL scheduler started with {count} scheduled jobs")
        return count

    def stop(self) -> int:
        """
        Cancel every timer. In-flight runs are not interrupted.

        Returns:
            Number of timers cancelled
        """
        cancelled = self.registry.clear()
        metrics.set_gauge(metrics.scheduled_jobs, 0)
        self._started = False
        logger.info(f"ETL scheduler stopped ({cancelled} jobs cancelled)")
        return cancelled

    async def restart(self) -> int:
        """Stop, reload definitions from the store, start."""
        logger.info("Restarting ETL scheduler")
        self.stop()
        self.store.load()
        return await self.start()

    async def shutdown(self) -> None:
        """Stop timers, wait for in-flight runs, and release engine resources."""
        self.stop()
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)
        for engine in list(self._engines.values()):
            await engine.close()

    # =======================
    # TIMERS
    # =======================

    def _register_timer(self, definition: PipelineDefinition) -> ScheduledJob:
        expression = require_valid_cron(definition.schedule)
        job = ScheduledJob(name=definition.name, expression=expression)
        job.next_run = next_fire_time(expression, tz=self.timezone)
        self.registry.register(job)
        job.task = asyncio.create_task(self._timer_loop(job), name=f"timer:{definition.name}")
        metrics.set_gauge(metrics.scheduled_jobs, len(self.registry.scheduled_jobs()))
        logger.info(f"Scheduled job: {definition.name} with schedule: {expression}")
        return job

    def _unregister_timer(self, name: str) -> bool:
        job = self.registry.unregister(name)
        metrics.set_gauge(metrics.scheduled_jobs, len(self.registry.scheduled_jobs()))
        if job is not None:
            logger.info(f"Stopped job: {name}")
        return job is not None

    async def _timer_loop(self, job: ScheduledJob) -> None:
        last_fire: datetime | None = None
        while True:
            # A sleep can wake slightly early; never fire the same instant twice
            now = datetime.now(timezone.utc)
            after = max(now, last_fire) if last_fire else now
            fire_at = next_fire_time(job.expression, after=after, tz=self.timezone)
            job.next_run = fire_at
            delay = (fire_at - datetime.now(fire_at.tzinfo)).total_seconds()
            await asyncio.sleep(max(delay, 0))
            last_fire = fire_at

            # The run proceeds independently so the next fire time is computed
            # on schedule; overlapping fires are skipped by the registry.
            task = asyncio.create_task(self.handle_timer_tick(job.name), name=f"run:{job.name}")
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)

    async def handle_timer_tick(self, name: str) -> RunResult | None:
        """
        Run a pipeline because its timer fired.

        A no-op (returns None) when the job is no longer registered or the
        definition is disabled or gone.
        """
        if not self.registry.is_scheduled(name):
            logger.debug(f"Ignoring timer tick for unscheduled pipeline: {name}")
            return None

        definition = self.store.get_config(name)
        if definition is None or not definition.enabled:
            logger.debug(f"Ignoring timer tick for disabled pipeline: {name}")
            return None

        return await self._run_pipeline(definition, trigger="schedule")

    # =======================
    # EXECUTION
    # =======================

    async def run_pipeline_now(self, name: str) -> RunResult | None:
        """
        Run a pipeline immediately, regardless of its schedule.

        Returns:
            RunResult, or None when the pipeline was already running

        Raises:
            PipelineNotFoundError: If no definition has this name
        """
        definition = self.store.get_config(name)
        if definition is None:
            raise PipelineNotFoundError(name)

        logger.info(f"Running pipeline immediately: {name}")
        return await self._run_pipeline(definition, trigger="manual")

    def _engine_for(self, name: str) -> PipelineEngine:
        engine = self._engines.get(name)
        if engine is None:
            engine = self.engine_factory()
            self._engines[name] = engine
        return engine

    async def _run_pipeline(self, definition: PipelineDefinition, trigger: str) -> RunResult | None:
        name = definition.name

        if not self.registry.try_acquire(name):
            logger.warning(
                f"Pipeline {name} is already running, skipping",
                extra={"pipeline": name, "trigger": trigger},
            )
            metrics.record_skipped_trigger(name, trigger)
            return None

        metrics.set_gauge(metrics.running_pipelines, len(self.registry.running_pipelines()))
        try:
            engine = self._engine_for(name)
            try:
                result = await engine.execute(definition, observer=self._rebroadcast)
                status = "completed" if result.success else "failed"
            except Exception as e:
                logger.exception(f"Error running pipeline {name}: {e}", extra={"pipeline": name})
                metrics.record_run_error(name)
                result = RunResult.failure(
                    str(e) or type(e).__name__,
                    source=definition.source.location,
                    destination=definition.destination.location,
                )
                status = "error"

            self.history.record(name, status, result)
            logger.info(
                f"Pipeline {name} finished: {status}",
                extra={"pipeline": name, "trigger": trigger, **result.summary()},
            )
            await self.notifier.notify(name, result)
            return result
        finally:
            self.registry.release(name)
            metrics.set_gauge(metrics.running_pipelines, len(self.registry.running_pipelines()))

    # =======================
    # EVENTS
    # =======================

    def subscribe(self, callback: Subscriber) -> None:
        """Receive every SchedulerEvent (sync or async callable)."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            return True
        return False

    async def _rebroadcast(self, event: PipelineEvent) -> None:
        scheduler_event = SchedulerEvent.from_pipeline_event(event)
        for subscriber in list(self._subscribers):
            try:
                outcome = subscriber(scheduler_event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.warning(
                    f"Subscriber failed on {scheduler_event.event_type}: {e}",
                    extra={"pipeline": event.pipeline_name},
                )

    # =======================
    # JOB MANAGEMENT
    # =======================

    def schedule_job(self, definition: PipelineDefinition | dict[str, Any]) -> PipelineDefinition:
        """
        Validate, save and (when enabled and scheduled) arm a definition.

        Raises:
            ConfigValidationError: If the definition is invalid
            InvalidScheduleError: If the schedule is not an accepted cron expression
        """
        validation = self.store.validate_config(definition)
        if not validation.is_valid:
            raise ConfigValidationError(validation.errors)

        if not isinstance(definition, PipelineDefinition):
            definition = PipelineDefinition.model_validate(definition)

        if definition.schedule:
            require_valid_cron(definition.schedule)

        saved = self.store.save_config(definition)
        self._sync_timer(saved)
        logger.info(f"Added ETL job: {saved.name}")
        return saved

    def remove_scheduled_job(self, name: str) -> bool:
        """Cancel the timer and delete the definition; False if it was unknown."""
        self._unregister_timer(name)
        removed = self.store.delete_config(name)
        if removed:
            logger.info(f"Removed ETL job: {name}")
        return removed

    def update_job_schedule(self, name: str, expression: str) -> PipelineDefinition:
        """
        Raises:
            InvalidScheduleError: If the expression is rejected (nothing changes)
            PipelineNotFoundError: If the name is unknown
        """
        expression = require_valid_cron(expression)
        if name not in self.store:
            raise PipelineNotFoundError(name)

        self._unregister_timer(name)
        updated = self.store.update_schedule(name, expression)
        self._sync_timer(updated)
        logger.info(f"Updated schedule for {name}: {expression}")
        return updated

    def toggle_job(self, name: str, enabled: bool) -> PipelineDefinition:
        """
        Enable or disable a pipeline; disabling cancels its timer.

        Raises:
            PipelineNotFoundError: If the name is unknown
        """
        if enabled:
            updated = self.store.enable_config(name)
        else:
            updated = self.store.disable_config(name)

        self._sync_timer(updated)
        logger.info(f"{'Enabled' if enabled else 'Disabled'} ETL job: {name}")
        return updated

    def _sync_timer(self, definition: PipelineDefinition) -> None:
        """Make the live timer set agree with a stored definition."""
        self._unregister_timer(definition.name)
        if self._started and definition.enabled and definition.schedule:
            self._register_timer(definition)

    # =======================
    # QUERIES
    # =======================

    def get_last_run_for_pipeline(self, name: str) -> JobHistoryEntry | None:
        return self.history.last_for(name)

    def get_job_history(self, name: str | None = None, limit: int = 50) -> list[JobHistoryEntry]:
        """
        Raises:
            ValidationError: If limit is not a positive integer
        """
        return self.history.recent(name, validate_limit(limit))

    def get_running_pipelines(self) -> list[str]:
        return self.registry.running_pipelines()

    def get_scheduled_jobs(self) -> list[str]:
        return self.registry.scheduled_jobs()

    def get_jobs_status(self) -> dict[str, Any]:
        """Per-pipeline state plus totals."""
        configs = self.store.get_all_configs()
        jobs = []
        for config in configs:
            job = self.registry.get(config.name)
            last_run = self.get_last_run_for_pipeline(config.name)
            jobs.append({
                "name": config.name,
                "enabled": config.enabled,
                "schedule": config.schedule,
                "is_running": self.registry.is_running(config.name),
                "is_scheduled": job is not None,
                "next_run": job.next_run.isoformat() if job and job.next_run else None,
                "last_run": last_run.model_dump(mode="json") if last_run else None,
                "source_type": config.source.type,
                "destination_type": config.destination.type,
            })

        return {
            "jobs": jobs,
            "total_jobs": len(configs),
            "enabled_jobs": sum(1 for c in configs if c.enabled),
            "running_jobs": len(self.registry.running_pipelines()),
            "scheduled_jobs": len(self.registry.scheduled_jobs()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def get_stats(self) -> dict[str, Any]:
        """Aggregate statistics over configurations and the last 24 hours of runs."""
        configs = self.store.get_all_configs()
        now = datetime.now(timezone.utc)
        recent = self.history.since(now - timedelta(hours=24))

        successful = sum(1 for e in recent if e.status == "completed")
        failed = sum(1 for e in recent if e.status == "failed")
        errors = sum(1 for e in recent if e.status == "error")
        success_rate = round(successful / len(recent) * 100, 2) if recent else 0.0

        return {
            "total_configurations": len(configs),
            "enabled_configurations": sum(1 for c in configs if c.enabled),
            "scheduled_jobs": len(self.registry.scheduled_jobs()),
            "running_pipelines": len(self.registry.running_pipelines()),
            "last_24_hours": {
                "total_runs": len(recent),
                "successful": successful,
                "failed": failed,
                "errors": errors,
                "success_rate": success_rate,
            },
            "uptime_seconds": round(time.monotonic() - self._started_at, 3) if self._started_at else 0.0,
            "timestamp": now.isoformat(),
        }
