"""
Configuration store for pipeline definitions.

Definitions are persisted as a JSON array at <config_dir>/etl-configs.json.
The store is the single source of truth; the scheduler's timer set is
derived from it.
"""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from etlflow.core.exceptions import ConfigValidationError, PipelineNotFoundError
from etlflow.core.models import ConfigValidationResult, PipelineDefinition
from etlflow.core.transforms import check_rule_parameters
from etlflow.observability.logger import get_logger
from etlflow.utils.serialization import to_json

from .defaults import default_definitions

logger = get_logger(__name__)

CONFIG_FILENAME = "etl-configs.json"
EXPORT_VERSION = "1.0"
YAML_SUFFIXES = {".yaml", ".yml"}

DefinitionInput = PipelineDefinition | dict[str, Any]


def format_validation_errors(error: PydanticValidationError) -> list[str]:
    """Flatten pydantic errors into "loc.path: message" strings."""
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return messages


class ConfigStore:
    """
    Thread-safe, file-backed store of PipelineDefinitions keyed by name.

    Returned definitions are copies; changes go through save_config() and
    the enable/disable/update_schedule helpers.
    """

    def __init__(self, config_dir: str | Path = "./etl-configs", create_defaults: bool = True):
        """
        Initialize the store and load persisted definitions.

        Args:
            config_dir: Directory holding etl-configs.json (created on first save)
            create_defaults: Create the default definitions when nothing can be loaded
        """
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / CONFIG_FILENAME
        self.create_defaults = create_defaults
        self._configs: dict[str, PipelineDefinition] = {}
        self._lock = threading.RLock()
        self.load()

    # =======================
    # PERSISTENCE
    # =======================

    def load(self) -> int:
        """
        (Re)load definitions from disk.

        A missing or unreadable file falls back to the default definitions
        (when create_defaults is set). Invalid entries are skipped.

        Returns:
            Number of definitions loaded
        """
        with self._lock:
            self._configs.clear()

            if not self.config_file.exists():
                logger.info("No existing ETL configurations found")
                self._install_defaults()
                return len(self._configs)

            try:
                documents = json.loads(self.config_file.read_text(encoding="utf-8"))
                if not isinstance(documents, list):
                    raise ValueError("expected a JSON array of configurations")
            except (OSError, ValueError) as e:
                logger.error(f"Error loading ETL configurations from {self.config_file}: {e}")
                self._install_defaults()
                return len(self._configs)

            for document in documents:
                try:
                    definition = PipelineDefinition.model_validate(document)
                except PydanticValidationError as e:
                    name = document.get("name") if isinstance(document, dict) else None
                    logger.warning(
                        f"Skipping invalid configuration {name}: {format_validation_errors(e)}"
                    )
                    continue
                self._configs[definition.name] = definition

            logger.info(f"Loaded {len(self._configs)} ETL configurations")
            return len(self._configs)

    def _install_defaults(self) -> None:
        if not self.create_defaults:
            return
        logger.info("Creating default ETL configurations")
        for definition in default_definitions():
            self._configs[definition.name] = definition
        self._persist()

    def _persist(self) -> None:
        """Write all definitions as one JSON document (replace on success)."""
        with self._lock:
            documents = [d.to_document() for d in self._configs.values()]
            self.config_dir.mkdir(parents=True, exist_ok=True)
            tmp_file = self.config_file.with_suffix(".json.tmp")
            tmp_file.write_text(to_json(documents, indent=2), encoding="utf-8")
            tmp_file.replace(self.config_file)
            logger.debug(f"Saved {len(documents)} ETL configurations to {self.config_file}")

    # =======================
    # QUERIES
    # =======================

    def get_all_configs(self) -> list[PipelineDefinition]:
        with self._lock:
            return [d.model_copy(deep=True) for d in self._configs.values()]

    def get_enabled_configs(self) -> list[PipelineDefinition]:
        with self._lock:
            return [d.model_copy(deep=True) for d in self._configs.values() if d.enabled]

    def get_config(self, name: str) -> PipelineDefinition | None:
        with self._lock:
            definition = self._configs.get(name)
            return definition.model_copy(deep=True) if definition else None

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._configs

    def __len__(self) -> int:
        with self._lock:
            return len(self._configs)

    # =======================
    # MUTATIONS
    # =======================

    def save_config(self, definition: DefinitionInput) -> PipelineDefinition:
        """
        Insert or replace a definition and persist.

        Raises:
            ConfigValidationError: If a raw document fails validation
        """
        if not isinstance(definition, PipelineDefinition):
            validation = self.validate_config(definition)
            if not validation.is_valid:
                raise ConfigValidationError(validation.errors)
            definition = PipelineDefinition.model_validate(definition)

        with self._lock:
            self._configs[definition.name] = definition.model_copy(deep=True)
            self._persist()

        logger.info(f"Saved ETL configuration: {definition.name}")
        return definition

    def delete_config(self, name: str) -> bool:
        with self._lock:
            if self._configs.pop(name, None) is None:
                return False
            self._persist()

        logger.info(f"Deleted ETL configuration: {name}")
        return True

    def enable_config(self, name: str) -> PipelineDefinition:
        return self._update(name, enabled=True)

    def disable_config(self, name: str) -> PipelineDefinition:
        return self._update(name, enabled=False)

    def update_schedule(self, name: str, schedule: str | None) -> PipelineDefinition:
        """
        Raises:
            PipelineNotFoundError: If the name is unknown
            ConfigValidationError: If the schedule is not a five-field expression
        """
        if schedule is not None and schedule.strip():
            error = self._schedule_error(schedule)
            if error:
                raise ConfigValidationError([error])
        return self._update(name, schedule=schedule)

    def _update(self, name: str, **changes: Any) -> PipelineDefinition:
        with self._lock:
            current = self._configs.get(name)
            if current is None:
                raise PipelineNotFoundError(name)

            document = current.model_dump()
            document.update(changes)
            updated = PipelineDefinition.model_validate(document)
            self._configs[name] = updated
            self._persist()

        logger.info(f"Updated ETL configuration: {name}", extra={"changes": list(changes)})
        return updated.model_copy(deep=True)

    # =======================
    # VALIDATION
    # =======================

    @staticmethod
    def _schedule_error(schedule: Any) -> str | None:
        if not isinstance(schedule, str) or len(schedule.split()) != 5:
            return "Schedule must be a valid cron expression (5 parts)"
        return None

    def validate_config(self, config: DefinitionInput) -> ConfigValidationResult:
        """
        Check a definition for required fields and a well-formed schedule.

        Required: name, source.type, source.location, source.mapping,
        destination.type, destination.location. Structural problems found by
        the model are reported after the required-field checks.
        """
        if isinstance(config, PipelineDefinition):
            config = config.to_document()

        if not isinstance(config, dict):
            return ConfigValidationResult(is_valid=False, errors=["Configuration must be an object"])

        errors: list[str] = []

        if not config.get("name"):
            errors.append("Configuration name is required")

        source = config.get("source")
        if not source:
            errors.append("Source configuration is required")
        elif isinstance(source, dict):
            if not source.get("type"):
                errors.append("Source type is required")
            if not source.get("location"):
                errors.append("Source location is required")
            if not source.get("mapping"):
                errors.append("Source mapping is required")

        destination = config.get("destination")
        if not destination:
            errors.append("Destination configuration is required")
        elif isinstance(destination, dict):
            if not destination.get("type"):
                errors.append("Destination type is required")
            if not destination.get("location"):
                errors.append("Destination location is required")

        if config.get("schedule"):
            schedule_error = self._schedule_error(config["schedule"])
            if schedule_error:
                errors.append(schedule_error)

        if not errors:
            try:
                definition = PipelineDefinition.model_validate(config)
            except PydanticValidationError as e:
                errors.extend(format_validation_errors(e))
            else:
                for index, rule in enumerate(definition.transformations):
                    for problem in check_rule_parameters(rule.operation, rule.field, rule.parameters):
                        errors.append(f"transformations.{index} ({rule.operation} {rule.field}): {problem}")

        return ConfigValidationResult(is_valid=not errors, errors=errors)

    # =======================
    # IMPORT / EXPORT
    # =======================

    def export_configurations(self, file_path: str | Path) -> bool:
        """
        Write all definitions wrapped in {exportDate, version, configurations}.

        A .yaml/.yml path is written as YAML.

        Returns:
            True on success, False if the file could not be written
        """
        path = Path(file_path)
        with self._lock:
            configurations = [d.to_document() for d in self._configs.values()]

        export_data = {
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "version": EXPORT_VERSION,
            "configurations": configurations,
        }

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.suffix.lower() in YAML_SUFFIXES:
                content = yaml.safe_dump(export_data, sort_keys=False, allow_unicode=True)
            else:
                content = to_json(export_data, indent=2)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"Error exporting configurations to {path}: {e}")
            return False

        logger.info(f"Exported {len(configurations)} configurations to {path}")
        return True

    def import_configurations(self, file_path: str | Path) -> bool:
        """
        Import definitions from an export file.

        Invalid entries are skipped with a warning; valid ones replace any
        definition with the same name.

        Returns:
            True if the file was read, False if it was unreadable or malformed
        """
        path = Path(file_path)
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() in YAML_SUFFIXES:
                import_data = yaml.safe_load(text)
            else:
                import_data = json.loads(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error importing configurations from {path}: {e}")
            return False

        if not isinstance(import_data, dict) or not isinstance(import_data.get("configurations"), list):
            logger.error(f"Invalid import file format: {path}")
            return False

        imported = 0
        for config in import_data["configurations"]:
            validation = self.validate_config(config)
            if not validation.is_valid:
                name = config.get("name") if isinstance(config, dict) else None
                logger.warning(f"Skipping invalid configuration {name}: {validation.errors}")
                continue
            self.save_config(config)
            imported += 1

        logger.info(f"Imported {imported} configurations from {path}")
        return True

    # =======================
    # STATISTICS
    # =======================

    def get_stats(self) -> dict[str, Any]:
        """Counts by state, source type and destination type."""
        with self._lock:
            configs = list(self._configs.values())

        source_types: dict[str, int] = {}
        destination_types: dict[str, int] = {}
        for config in configs:
            source_types[config.source.type] = source_types.get(config.source.type, 0) + 1
            destination_types[config.destination.type] = destination_types.get(config.destination.type, 0) + 1

        enabled = sum(1 for c in configs if c.enabled)
        return {
            "total": len(configs),
            "enabled": enabled,
            "disabled": len(configs) - enabled,
            "scheduled": sum(1 for c in configs if c.schedule),
            "source_types": source_types,
            "destination_types": destination_types,
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }
