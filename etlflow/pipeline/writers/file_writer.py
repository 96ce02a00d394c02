"""
File destination writer.
"""

import asyncio
from pathlib import Path
from typing import Any

import yaml

from etlflow.core.exceptions import LoadError
from etlflow.core.models import LoadResult, PipelineDefinition
from etlflow.observability.logger import get_logger
from etlflow.utils.serialization import to_json, to_jsonable

from .base_writer import DestinationWriter

logger = get_logger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class FileWriter(DestinationWriter):
    """
    Writes the full record set in a single write, replacing the file only
    once the new content is on disk.

    JSON (indent 2) by default; a .yaml/.yml destination is written as YAML.
    Parent directories are created. Any OS error fails the load stage.
    """

    async def write(self, definition: PipelineDefinition, records: list[dict[str, Any]]) -> LoadResult:
        path = Path(definition.destination.location)

        try:
            await asyncio.to_thread(self.write_file, path, records)
        except OSError as e:
            raise LoadError(f"Failed to write {path}: {e}") from e

        logger.info(f"Loaded {len(records)} records to {path}")
        return LoadResult(records_loaded=len(records))

    @staticmethod
    def write_file(path: Path, records: list[dict[str, Any]]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in YAML_SUFFIXES:
            content = yaml.safe_dump(to_jsonable(records), sort_keys=False, allow_unicode=True)
        else:
            content = to_json(records, indent=2)

        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(path)
