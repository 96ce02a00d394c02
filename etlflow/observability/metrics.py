"""
Prometheus metrics collection for etlflow

This module provides metrics instrumentation for monitoring pipeline runs,
record outcomes, scheduler activity and notification delivery.
"""
import os
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# PIPELINE METRICS
# =======================

pipeline_runs_total = Counter(
    name="etl_pipeline_runs_total",
    documentation="Total number of pipeline runs",
    labelnames=["pipeline", "status"],  # status: completed, failed, error
    registry=REGISTRY,
)

pipeline_run_duration_seconds = Histogram(
    name="etl_pipeline_run_duration_seconds",
    documentation="Wall-clock duration of pipeline runs in seconds",
    labelnames=["pipeline"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
    registry=REGISTRY,
)

records_total = Counter(
    name="etl_records_total",
    documentation="Records seen by the engine by outcome",
    labelnames=["pipeline", "outcome"],  # outcome: extracted, successful, failed, loaded
    registry=REGISTRY,
)

load_failures_total = Counter(
    name="etl_load_failures_total",
    documentation="Records rejected by the destination during load",
    labelnames=["pipeline", "destination_type"],
    registry=REGISTRY,
)

# =======================
# SCHEDULER METRICS
# =======================

triggers_skipped_total = Counter(
    name="etl_triggers_skipped_total",
    documentation="Triggers skipped because the pipeline was already running",
    labelnames=["pipeline", "trigger"],  # trigger: schedule, manual
    registry=REGISTRY,
)

running_pipelines = Gauge(
    name="etl_running_pipelines",
    documentation="Number of pipelines currently running",
    registry=REGISTRY,
)

scheduled_jobs = Gauge(
    name="etl_scheduled_jobs",
    documentation="Number of registered cron timers",
    registry=REGISTRY,
)

notification_failures_total = Counter(
    name="etl_notification_failures_total",
    documentation="Outbound notifications that could not be delivered",
    labelnames=["kind"],  # kind: completion, failure
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Content type for the Prometheus exposition format"""
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import: only bind a port when the endpoint is enabled
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    """
    Set a gauge metric value

    Args:
        gauge: Prometheus Gauge metric
        value: Value to set
        **labels: Label values for the metric
    """
    if labels:
        gauge.labels(**labels).set(value)
    else:
        gauge.set(value)


# =======================
# RUN-SPECIFIC HELPERS
# =======================

def record_pipeline_run(
    pipeline: str,
    success: bool,
    records_processed: int,
    records_successful: int,
    records_failure: int,
    records_loaded: int,
    duration_seconds: float,
) -> None:
    """
    Record the outcome of one engine run.

    Args:
        pipeline: Pipeline name
        success: Whether the run completed
        records_processed: Records extracted
        records_successful: Records transformed successfully
        records_failure: Records that failed transformation
        records_loaded: Records accepted by the destination
        duration_seconds: Run duration in seconds
    """
    increment_counter(pipeline_runs_total, 1, pipeline=pipeline, status="completed" if success else "failed")
    pipeline_run_duration_seconds.labels(pipeline=pipeline).observe(duration_seconds)

    increment_counter(records_total, records_processed, pipeline=pipeline, outcome="extracted")
    increment_counter(records_total, records_successful, pipeline=pipeline, outcome="successful")
    increment_counter(records_total, records_failure, pipeline=pipeline, outcome="failed")
    increment_counter(records_total, records_loaded, pipeline=pipeline, outcome="loaded")


def record_run_error(pipeline: str) -> None:
    """Record a run in which the engine raised instead of returning a result."""
    increment_counter(pipeline_runs_total, 1, pipeline=pipeline, status="error")


def record_load_failures(pipeline: str, destination_type: str, count: int) -> None:
    if count > 0:
        increment_counter(load_failures_total, count, pipeline=pipeline, destination_type=destination_type)


def record_skipped_trigger(pipeline: str, trigger: str) -> None:
    increment_counter(triggers_skipped_total, 1, pipeline=pipeline, trigger=trigger)


def record_notification_failure(kind: str) -> None:
    increment_counter(notification_failures_total, 1, kind=kind)
