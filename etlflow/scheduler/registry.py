"""
Scheduler-owned registry of live timers and in-flight pipelines.

scheduled_jobs and running_pipelines are the only mutable state shared
between timer callbacks and control-surface calls; every access goes
through the registry lock.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime

from etlflow.core.exceptions import DuplicateJobError


@dataclass
class ScheduledJob:
    """A registered cron timer for one pipeline."""

    name: str
    expression: str
    task: asyncio.Task | None = field(default=None, repr=False)
    next_run: datetime | None = None

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()


class SchedulerRegistry:
    """Thread-safe container for scheduled jobs and the running set."""

    def __init__(self):
        self._lock = threading.Lock()
        self._scheduled_jobs: dict[str, ScheduledJob] = {}
        self._running_pipelines: set[str] = set()

    def try_acquire(self, name: str) -> bool:
        """Mark a pipeline running; False if it already was."""
        with self._lock:
            if name in self._running_pipelines:
                return False
            self._running_pipelines.add(name)
            return True

    def release(self, name: str) -> None:
        with self._lock:
            self._running_pipelines.discard(name)

    def is_running(self, name: str) -> bool:
        with self._lock:
            return name in self._running_pipelines

    def running_pipelines(self) -> list[str]:
        with self._lock:
            return sorted(self._running_pipelines)

    def register(self, job: ScheduledJob) -> None:
        """
        Raises:
            DuplicateJobError: If the pipeline already has a timer
        """
        with self._lock:
            if job.name in self._scheduled_jobs:
                raise DuplicateJobError(job.name)
            self._scheduled_jobs[job.name] = job

    def unregister(self, name: str) -> ScheduledJob | None:
        """Remove and cancel a timer; None if none was registered."""
        with self._lock:
            job = self._scheduled_jobs.pop(name, None)
        if job is not None:
            job.cancel()
        return job

    def get(self, name: str) -> ScheduledJob | None:
        with self._lock:
            return self._scheduled_jobs.get(name)

    def is_scheduled(self, name: str) -> bool:
        with self._lock:
            return name in self._scheduled_jobs

    def scheduled_jobs(self) -> list[str]:
        with self._lock:
            return list(self._scheduled_jobs)

    def clear(self) -> int:
        """Cancel every timer; returns how many were registered."""
        with self._lock:
            jobs = list(self._scheduled_jobs.values())
            self._scheduled_jobs.clear()
        for job in jobs:
            job.cancel()
        return len(jobs)
