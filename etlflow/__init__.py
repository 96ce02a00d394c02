"""
etlflow: ETL pipeline execution and scheduling engine.

Runs extract -> transform -> load cycles for configured pipeline definitions,
isolates failures per record, and schedules pipelines on cron expressions with
one in-flight run per pipeline name.
"""

__version__ = "0.1.0"
