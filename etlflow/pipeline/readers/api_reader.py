"""
HTTP API reader using httpx.
"""

from typing import Any

import httpx

from etlflow.core.exceptions import ExtractError
from etlflow.core.models import PipelineDefinition
from etlflow.observability.logger import get_logger

from .base_reader import SourceReader, normalize_records

logger = get_logger(__name__)


class APIReader(SourceReader):
    """
    Fetches records with a single GET request.

    Configured headers and credentials are sent as request headers. The
    JSON response may be an array of objects or a single object.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        """
        Args:
            client: Shared client (a short-lived client is created per request if None)
            timeout: Request timeout in seconds
        """
        self.client = client
        self.timeout = timeout

    async def read(self, definition: PipelineDefinition) -> list[dict[str, Any]]:
        source = definition.source
        headers = {**(source.headers or {}), **(source.credentials or {})}

        try:
            if self.client is not None:
                response = await self.client.get(source.location, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(source.location, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise ExtractError(f"Failed to fetch {source.location}: {e}") from e
        except ValueError as e:
            raise ExtractError(f"Response from {source.location} is not valid JSON: {e}") from e

        records = normalize_records(data, f"API response from {source.location}")
        logger.info(f"Extracted {len(records)} records from API")
        return records
