"""
Base reader interface for the extract stage.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from etlflow.core.exceptions import ExtractError
from etlflow.core.models import PipelineDefinition
from etlflow.observability.logger import get_logger

from .fixtures import FixtureGenerator

logger = get_logger(__name__)


class SourceReader(ABC):
    """Reads raw records for one source type."""

    @abstractmethod
    async def read(self, definition: PipelineDefinition) -> list[dict[str, Any]]:
        """
        Extract raw records in source order.

        Raises:
            ExtractError: If the source cannot be read at all
        """
        pass


class FileSourceReader(SourceReader):
    """
    Reader for local files.

    When the configured file does not exist, records come from the
    fixture generator instead, so downstream stages still run.
    File parsing happens in a worker thread.
    """

    format_name = "file"

    def __init__(self, fixtures: FixtureGenerator | None = None):
        self.fixtures = fixtures or FixtureGenerator()

    async def read(self, definition: PipelineDefinition) -> list[dict[str, Any]]:
        path = Path(definition.source.location)

        if not path.exists():
            logger.info(
                f"{self.format_name} file not found, creating sample data for {definition.name}",
                extra={"pipeline": definition.name, "location": str(path)},
            )
            return self.fixtures.for_pipeline(definition.name)

        try:
            records = await asyncio.to_thread(self.read_file, path, definition.source.options)
        except ExtractError:
            raise
        except (OSError, ValueError) as e:
            raise ExtractError(f"Failed to read {self.format_name} file {path}: {e}") from e

        logger.info(f"Extracted {len(records)} records from {self.format_name}")
        return records

    @abstractmethod
    def read_file(self, path: Path, options: dict[str, Any]) -> list[dict[str, Any]]:
        """Parse the file synchronously (runs in a worker thread)."""
        pass


def normalize_records(data: Any, origin: str) -> list[dict[str, Any]]:
    """
    Normalize parsed JSON into a list of records.

    A singleton object becomes a one-element list.

    Raises:
        ExtractError: If the payload is not an object or a list of objects
    """
    records = data if isinstance(data, list) else [data]
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ExtractError(
                f"{origin} item {index} is {type(record).__name__}, expected an object"
            )
    return records
