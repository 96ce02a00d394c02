"""
etlflow CLI for running, scheduling and managing ETL pipelines.

Usage:
    etlflow [--config-dir DIR] run <name>
    etlflow [--config-dir DIR] serve [--metrics-port PORT]
    etlflow [--config-dir DIR] list
    etlflow [--config-dir DIR] show <name>
    etlflow [--config-dir DIR] validate <file>
    etlflow [--config-dir DIR] enable <name>
    etlflow [--config-dir DIR] disable <name>
    etlflow [--config-dir DIR] schedule <name> "<cron expression>"
    etlflow [--config-dir DIR] remove <name>
    etlflow [--config-dir DIR] export <path>
    etlflow [--config-dir DIR] import <path>
    etlflow [--config-dir DIR] stats
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import NoReturn

import yaml

from etlflow.config import ConfigStore, Settings
from etlflow.core.exceptions import ETLError, PipelineNotFoundError
from etlflow.observability.logger import ROOT_LOGGER_NAME, get_logger, setup_logger
from etlflow.observability.metrics import start_metrics_server
from etlflow.pipeline.engine import PipelineEngine
from etlflow.scheduler import Notifier, PipelineScheduler
from etlflow.scheduler.cron import require_valid_cron
from etlflow.utils.serialization import to_json

logger = get_logger(__name__)


def load_settings(args) -> Settings:
    settings = Settings.from_env(args.env_file)
    if args.config_dir:
        settings = replace(settings, config_dir=Path(args.config_dir))
    if args.log_level:
        settings = replace(settings, log_level=args.log_level)
    return settings


def build_store(settings: Settings) -> ConfigStore:
    return ConfigStore(settings.config_dir)


def build_scheduler(settings: Settings, store: ConfigStore | None = None) -> PipelineScheduler:
    """Wire a scheduler, its engines and notifier from settings."""
    return PipelineScheduler(
        store=store or build_store(settings),
        engine_factory=lambda: PipelineEngine(
            history_limit=settings.run_history_limit,
            http_timeout=settings.http_timeout,
        ),
        notifier=Notifier(
            completion_url=settings.notify_completion_url,
            failure_url=settings.notify_failure_url,
            timeout=settings.notify_timeout,
        ),
        history_limit=settings.history_limit,
        timezone_name=settings.scheduler_timezone,
    )


def print_json(data) -> None:
    print(to_json(data, indent=2))


def fail(message: str) -> NoReturn:
    print(f"\nError: {message}")
    sys.exit(1)


# =======================
# COMMANDS
# =======================

def run_command(args, settings: Settings):
    """Run one pipeline now and print its RunResult."""
    scheduler = build_scheduler(settings)

    async def _run():
        try:
            return await scheduler.run_pipeline_now(args.name)
        finally:
            await scheduler.shutdown()

    try:
        result = asyncio.run(_run())
    except PipelineNotFoundError as e:
        fail(str(e))

    if result is None:
        fail(f"Pipeline {args.name} is already running")

    print_json(result.model_dump(mode="json"))
    if not result.success:
        sys.exit(1)


def serve_command(args, settings: Settings):
    """Start the scheduler and block until interrupted."""
    port = args.metrics_port or settings.metrics_port
    if port:
        start_metrics_server(port)
        logger.info(f"Metrics server listening on port {port}")

    scheduler = build_scheduler(settings)

    async def _serve():
        await scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.shutdown()

    asyncio.run(_serve())


def list_command(args, settings: Settings):
    store = build_store(settings)
    configs = store.get_all_configs()

    print(f"\n{'Name':<24} {'Enabled':<8} {'Schedule':<16} {'Source':<8} {'Destination'}")
    print(f"{'-' * 80}")
    for config in configs:
        print(
            f"{config.name:<24} {'yes' if config.enabled else 'no':<8} "
            f"{config.schedule or '-':<16} {config.source.type:<8} {config.destination.type}"
        )
    print(f"\n{len(configs)} configuration(s)\n")


def show_command(args, settings: Settings):
    definition = build_store(settings).get_config(args.name)
    if definition is None:
        fail(f"Pipeline configuration not found: {args.name}")
    print_json(definition.to_document())


def validate_command(args, settings: Settings):
    """Validate a definition file (JSON or YAML) without saving it."""
    path = Path(args.file)
    try:
        text = path.read_text(encoding="utf-8")
        document = yaml.safe_load(text) if path.suffix.lower() in (".yaml", ".yml") else json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        fail(f"Cannot read {path}: {e}")

    result = build_store(settings).validate_config(document)
    if result.is_valid:
        print(f"{path}: valid")
        return

    print(f"{path}: invalid")
    for error in result.errors:
        print(f"  - {error}")
    sys.exit(1)


def enable_command(args, settings: Settings):
    build_store(settings).enable_config(args.name)
    print(f"Enabled {args.name}")


def disable_command(args, settings: Settings):
    build_store(settings).disable_config(args.name)
    print(f"Disabled {args.name}")


def schedule_command(args, settings: Settings):
    expression = require_valid_cron(args.expression)
    build_store(settings).update_schedule(args.name, expression)
    print(f"Scheduled {args.name}: {expression}")


def remove_command(args, settings: Settings):
    if not build_store(settings).delete_config(args.name):
        fail(f"Pipeline configuration not found: {args.name}")
    print(f"Removed {args.name}")


def export_command(args, settings: Settings):
    if not build_store(settings).export_configurations(args.path):
        fail(f"Export to {args.path} failed")
    print(f"Exported configurations to {args.path}")


def import_command(args, settings: Settings):
    if not build_store(settings).import_configurations(args.path):
        fail(f"Import from {args.path} failed")
    print(f"Imported configurations from {args.path}")


def stats_command(args, settings: Settings):
    print_json(build_store(settings).get_stats())


COMMANDS = {
    "run": run_command,
    "serve": serve_command,
    "list": list_command,
    "show": show_command,
    "validate": validate_command,
    "enable": enable_command,
    "disable": disable_command,
    "schedule": schedule_command,
    "remove": remove_command,
    "export": export_command,
    "import": import_command,
    "stats": stats_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="etlflow",
        description="Run, schedule and manage ETL pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config-dir",
        help="Directory holding etl-configs.json (default: $ETL_CONFIG_DIR or ./etl-configs)"
    )
    parser.add_argument(
        "--env-file",
        help="Path to a .env file to load (optional)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: $LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Run a pipeline immediately")
    run_parser.add_argument("name", help="Pipeline name")

    serve_parser = subparsers.add_parser("serve", help="Start the scheduler")
    serve_parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port (default: $METRICS_PORT, disabled if unset)"
    )

    subparsers.add_parser("list", help="List pipeline configurations")

    show_parser = subparsers.add_parser("show", help="Show one pipeline configuration")
    show_parser.add_argument("name", help="Pipeline name")

    validate_parser = subparsers.add_parser("validate", help="Validate a definition file")
    validate_parser.add_argument("file", help="Path to a JSON or YAML definition")

    enable_parser = subparsers.add_parser("enable", help="Enable a pipeline")
    enable_parser.add_argument("name", help="Pipeline name")

    disable_parser = subparsers.add_parser("disable", help="Disable a pipeline")
    disable_parser.add_argument("name", help="Pipeline name")

    schedule_parser = subparsers.add_parser("schedule", help="Set a pipeline's cron schedule")
    schedule_parser.add_argument("name", help="Pipeline name")
    schedule_parser.add_argument("expression", help='Five-field cron expression, e.g. "0 */6 * * *"')

    remove_parser = subparsers.add_parser("remove", help="Delete a pipeline configuration")
    remove_parser.add_argument("name", help="Pipeline name")

    export_parser = subparsers.add_parser("export", help="Export all configurations")
    export_parser.add_argument("path", help="Output path (.json, .yaml or .yml)")

    import_parser = subparsers.add_parser("import", help="Import configurations from an export")
    import_parser.add_argument("path", help="Input path (.json, .yaml or .yml)")

    subparsers.add_parser("stats", help="Show configuration statistics")

    return parser


def main(argv: list[str] | None = None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = load_settings(args)
    setup_logger(ROOT_LOGGER_NAME, level=settings.log_level, format_type=settings.log_format)

    try:
        COMMANDS[args.command](args, settings)
    except ETLError as e:
        logger.error(f"Command {args.command} failed: {e}")
        fail(str(e))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
