"""HTTP client for the notification service."""

from typing import Any, Dict, Optional

import httpx

from civic_core_lib.clients.base import BaseServiceClient
from civic_core_lib.discovery import get_service_registry
from civic_core_lib.repositories.base import NotificationSink


class HttpNotificationSink(BaseServiceClient, NotificationSink):
    """NotificationSink posting to the notification service.

    Usage:
        sink = HttpNotificationSink(base_url="http://civic-notification-service:8011")
        await sink.notify("user-1", "status_update", "Work has started", {"complaintId": "CMP1"})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url or get_service_registry().get_url("notification"),
            timeout=timeout,
            transport=transport,
        )

    async def notify(self, user_id: str, type: str, message: str, data: Dict[str, Any]) -> None:
        await self._request(
            "POST",
            "/api/v1/notifications",
            json={"userId": user_id, "type": type, "message": message, "data": data},
            headers=self._headers(user_id=user_id),
        )
