"""HTTP clients for collaborator services"""

from civic_core_lib.clients.base import BaseServiceClient
from civic_core_lib.clients.media_client import HttpMediaStore
from civic_core_lib.clients.notification_client import HttpNotificationSink

__all__ = [
    "BaseServiceClient",
    "HttpMediaStore",
    "HttpNotificationSink",
]
