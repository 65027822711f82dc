"""Repository interfaces and implementations"""

from civic_core_lib.repositories.base import (
    ComplaintRepository,
    OfficerRepository,
    MediaStore,
    NotificationSink,
    sort_by_load,
    sort_officer_queue,
)
from civic_core_lib.repositories.memory import (
    InMemoryComplaintRepository,
    InMemoryOfficerRepository,
    InMemoryMediaStore,
    InMemoryNotificationSink,
    Notification,
)

# Redis implementations are imported lazily so the interfaces load without a Redis client
def __getattr__(name):
    """Lazy import for Redis-backed repositories."""
    if name in ("RedisComplaintRepository", "RedisOfficerRepository"):
        from civic_core_lib.repositories import redis_store
        return getattr(redis_store, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

__all__ = [
    "ComplaintRepository",
    "OfficerRepository",
    "MediaStore",
    "NotificationSink",
    "sort_by_load",
    "sort_officer_queue",
    "InMemoryComplaintRepository",
    "InMemoryOfficerRepository",
    "InMemoryMediaStore",
    "InMemoryNotificationSink",
    "Notification",
    "RedisComplaintRepository",
    "RedisOfficerRepository",
]
