"""
Best-effort completion and failure notifications over HTTP.

Each notification is a single POST of {pipeline, result, timestamp}. A
failed delivery is logged and counted; it never affects the run.
"""

from datetime import datetime, timezone

import httpx

from etlflow.core.models import RunResult
from etlflow.observability import metrics
from etlflow.observability.logger import get_logger

logger = get_logger(__name__)


class Notifier:
    def __init__(
        self,
        completion_url: str | None = None,
        failure_url: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            completion_url: Endpoint for successful runs (disabled if None)
            failure_url: Endpoint for failed and errored runs (disabled if None)
            timeout: Per-request timeout in seconds
            client: Shared client (a short-lived client is created per call if None)
        """
        self.completion_url = completion_url
        self.failure_url = failure_url
        self.timeout = timeout
        self.client = client

    async def notify(self, pipeline_name: str, result: RunResult) -> bool:
        if result.success:
            return await self.notify_completion(pipeline_name, result)
        return await self.notify_failure(pipeline_name, result)

    async def notify_completion(self, pipeline_name: str, result: RunResult) -> bool:
        return await self._post("completion", self.completion_url, pipeline_name, result)

    async def notify_failure(self, pipeline_name: str, result: RunResult) -> bool:
        return await self._post("failure", self.failure_url, pipeline_name, result)

    async def _post(self, kind: str, url: str | None, pipeline_name: str, result: RunResult) -> bool:
        if not url:
            return False

        body = {
            "pipeline": pipeline_name,
            "result": result.model_dump(mode="json"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            if self.client is not None:
                response = await self.client.post(url, json=body, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                f"Error sending {kind} notification for {pipeline_name}: {e}",
                extra={"pipeline": pipeline_name, "url": url},
            )
            metrics.record_notification_failure(kind)
            return False

        logger.debug(f"Sent {kind} notification for {pipeline_name}")
        return True
