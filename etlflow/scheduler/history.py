"""
Bounded job history for scheduler-triggered runs.
"""

import threading
from collections import deque
from datetime import datetime

from etlflow.core.models import JobHistoryEntry, RunResult


class JobHistory:
    """Ring buffer of JobHistoryEntry, oldest evicted first."""

    def __init__(self, limit: int = 100):
        self.limit = limit
        self._entries: deque[JobHistoryEntry] = deque(maxlen=limit)
        self._lock = threading.Lock()

    def record(self, pipeline_name: str, status: str, result: RunResult) -> JobHistoryEntry:
        entry = JobHistoryEntry(pipeline_name=pipeline_name, status=status, result=result)
        with self._lock:
            self._entries.append(entry)
        return entry

    def last_for(self, pipeline_name: str) -> JobHistoryEntry | None:
        with self._lock:
            for entry in reversed(self._entries):
                if entry.pipeline_name == pipeline_name:
                    return entry
        return None

    def recent(self, pipeline_name: str | None = None, limit: int = 50) -> list[JobHistoryEntry]:
        """Newest first, optionally filtered by pipeline."""
        with self._lock:
            entries = list(reversed(self._entries))
        if pipeline_name:
            entries = [e for e in entries if e.pipeline_name == pipeline_name]
        return entries[:limit]

    def since(self, cutoff: datetime) -> list[JobHistoryEntry]:
        with self._lock:
            return [e for e in self._entries if e.timestamp >= cutoff]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
