"""
HTTP API destination writer using httpx.
"""

from typing import Any

import httpx

from etlflow.core.models import LoadResult, PipelineDefinition
from etlflow.observability.logger import get_logger
from etlflow.utils.serialization import to_jsonable

from .base_writer import DestinationWriter

logger = get_logger(__name__)


class APIWriter(DestinationWriter):
    """
    Posts each record individually.

    A failed post (transport error or non-2xx status) is logged and counted;
    the remaining records are still sent.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        """
        Args:
            client: Shared client (a short-lived client is created per load if None)
            timeout: Request timeout in seconds
        """
        self.client = client
        self.timeout = timeout

    async def write(self, definition: PipelineDefinition, records: list[dict[str, Any]]) -> LoadResult:
        if self.client is not None:
            return await self._post_all(self.client, definition, records)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._post_all(client, definition, records)

    async def _post_all(
        self,
        client: httpx.AsyncClient,
        definition: PipelineDefinition,
        records: list[dict[str, Any]],
    ) -> LoadResult:
        destination = definition.destination
        headers = {**(destination.headers or {}), **(destination.credentials or {})}

        loaded = 0
        failed = 0
        for index, record in enumerate(records, start=1):
            try:
                response = await client.post(
                    destination.location, json=to_jsonable(record), headers=headers
                )
                response.raise_for_status()
                loaded += 1
            except httpx.HTTPError as e:
                failed += 1
                logger.error(
                    f"Failed to post record {index} to {destination.location}: {e}",
                    extra={"pipeline": definition.name},
                )

        logger.info(f"Loaded {loaded} records to API ({failed} failed)")
        return LoadResult(records_loaded=loaded, records_failed=failed)
