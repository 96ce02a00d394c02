"""
Cron scheduling, run exclusivity, job history and notifications.
"""

from .cron import next_fire_time, validate_cron_expression
from .history import JobHistory
from .notifier import Notifier
from .registry import ScheduledJob, SchedulerRegistry
from .scheduler import PipelineScheduler

__all__ = [
    "PipelineScheduler",
    "SchedulerRegistry",
    "ScheduledJob",
    "JobHistory",
    "Notifier",
    "validate_cron_expression",
    "next_fire_time",
]
