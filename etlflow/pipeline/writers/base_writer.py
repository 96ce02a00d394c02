"""
Base writer interface for the load stage.
"""

from abc import ABC, abstractmethod
from typing import Any

from etlflow.core.models import LoadResult, PipelineDefinition


class DestinationWriter(ABC):
    """Loads successfully transformed records into one destination type."""

    @abstractmethod
    async def write(self, definition: PipelineDefinition, records: list[dict[str, Any]]) -> LoadResult:
        """
        Load records in order.

        Per-record failures are counted in the returned LoadResult.

        Raises:
            LoadError: If the load stage cannot proceed at all
        """
        pass

    async def close(self) -> None:
        """Release any resources held across runs."""
        return None
