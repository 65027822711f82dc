"""HTTP client for the media storage service."""

from typing import Optional

import httpx

from civic_core_lib.clients.base import BaseServiceClient
from civic_core_lib.discovery import get_service_registry
from civic_core_lib.repositories.base import MediaStore


class HttpMediaStore(BaseServiceClient, MediaStore):
    """MediaStore backed by the media service.

    PUT {base_url}/api/v1/objects/{key} with the raw bytes; the service answers
    with {"reference": "..."}.

    Usage:
        store = HttpMediaStore()
        ref = await store.store("complaints/CMP1/photo.jpg", data, "image/jpeg")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url or get_service_registry().get_url("media"),
            timeout=timeout,
            transport=transport,
        )

    async def store(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Upload bytes and return the service's reference.

        Raises:
            httpx.HTTPStatusError: If the service rejects the upload
            KeyError: If the response carries no reference
        """
        response = await self._request(
            "PUT",
            f"/api/v1/objects/{key}",
            content=content,
            headers=self._headers(content_type=content_type or "application/octet-stream"),
        )
        return response.json()["reference"]
