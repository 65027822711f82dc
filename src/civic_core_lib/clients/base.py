"""Shared plumbing for the media and notification HTTP clients."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class BaseServiceClient:
    """HTTP client base for collaborator services.

    Each call opens a short-lived AsyncClient. The acting user travels in
    X-User-ID; the gateway has already authenticated it.

    Usage:
        class ReportClient(BaseServiceClient):
            async def publish(self, report: dict) -> None:
                await self._request("POST", "/api/v1/reports", json=report)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: e.g. http://civic-media-service:8010
            timeout: Per-request timeout in seconds
            transport: Custom transport (httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        logger.info(f"{self.__class__.__name__} -> {self.base_url}")

    def _headers(
        self,
        user_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
        content_type: Optional[str] = "application/json",
    ) -> Dict[str, str]:
        headers = {}
        if content_type:
            headers["Content-Type"] = content_type
        if user_id:
            headers["X-User-ID"] = user_id
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request and raise httpx.HTTPStatusError on a non-2xx answer."""
        async with self._get_client() as client:
            response = await client.request(method, f"{self.base_url}{path}", **kwargs)
        if response.is_error:
            logger.warning(f"{method} {path} -> {response.status_code}")
        response.raise_for_status()
        return response
