"""
Runtime settings loaded from the environment (and an optional .env file).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """
    Engine and scheduler settings.

    Attributes:
        config_dir: Directory holding etl-configs.json
        history_limit: Job history entries kept by the scheduler
        run_history_limit: RunResults kept by each engine
        notify_completion_url: POST target for successful runs
        notify_failure_url: POST target for failed runs
        notify_timeout: Notification request timeout in seconds
        scheduler_timezone: Zone cron expressions are evaluated in
        http_timeout: Timeout for API sources and destinations
        log_level: LOG_LEVEL
        log_format: "json" or "text"
        metrics_port: Port for the Prometheus endpoint (disabled if None)
    """

    config_dir: Path = Path("./etl-configs")
    history_limit: int = 100
    run_history_limit: int = 100
    notify_completion_url: str | None = None
    notify_failure_url: str | None = None
    notify_timeout: float = 10.0
    scheduler_timezone: str = "UTC"
    http_timeout: float = 30.0
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_port: int | None = None

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env_file: .env file to load first (values already set in the
                      environment take precedence)
        """
        load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

        metrics_port = os.getenv("METRICS_PORT")

        return cls(
            config_dir=Path(os.getenv("ETL_CONFIG_DIR", "./etl-configs")),
            history_limit=_int("ETL_HISTORY_LIMIT", 100),
            run_history_limit=_int("ETL_RUN_HISTORY_LIMIT", 100),
            notify_completion_url=os.getenv("ETL_NOTIFY_COMPLETION_URL") or None,
            notify_failure_url=os.getenv("ETL_NOTIFY_FAILURE_URL") or None,
            notify_timeout=_float("ETL_NOTIFY_TIMEOUT", 10.0),
            scheduler_timezone=os.getenv("ETL_SCHEDULER_TIMEZONE", "UTC"),
            http_timeout=_float("ETL_HTTP_TIMEOUT", 30.0),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
            metrics_port=int(metrics_port) if metrics_port else None,
        )
