"""
Collaborator interfaces consumed by the complaint engine.

Engines depend only on these abstract classes; concrete storage (in-memory,
Redis, HTTP services) is injected by the caller.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from civic_core_lib.models import (
    Category,
    Complaint,
    ComplaintPatch,
    ComplaintStatus,
    Officer,
)


class ComplaintRepository(ABC):
    """Persistence for complaint records."""

    @abstractmethod
    async def create(self, complaint: Complaint) -> str:
        """Persist a new complaint and return its id"""
        pass

    @abstractmethod
    async def get(self, complaint_id: str) -> Optional[Complaint]:
        """Return the complaint or None when it does not exist"""
        pass

    @abstractmethod
    async def query_by_user(self, user_id: str) -> List[Complaint]:
        """Complaints filed by a citizen, newest first"""
        pass

    @abstractmethod
    async def query_by_category_and_status(
        self, category: Category, exclude_status: ComplaintStatus
    ) -> List[Complaint]:
        """Complaints of a category whose status differs from exclude_status"""
        pass

    @abstractmethod
    async def query_by_statuses(self, statuses: Iterable[ComplaintStatus]) -> List[Complaint]:
        """Complaints whose status is one of statuses"""
        pass

    @abstractmethod
    async def query_by_officer(self, officer_id: str) -> List[Complaint]:
        """Complaints assigned to an officer, priority desc then created_at desc"""
        pass

    @abstractmethod
    async def list_all(self) -> List[Complaint]:
        """Every complaint (linear scan)"""
        pass

    @abstractmethod
    async def update(self, complaint_id: str, patch: ComplaintPatch) -> Complaint:
        """Apply a patch and return the updated complaint.

        Raises:
            NotFoundError: If the complaint does not exist
        """
        pass


class OfficerRepository(ABC):
    """Officer directory with load tracking."""

    @abstractmethod
    async def get(self, officer_id: str) -> Optional[Officer]:
        pass

    @abstractmethod
    async def query_active_by_department(self, department_id: str) -> List[Officer]:
        """Active officers of a department sorted by ascending load"""
        pass

    @abstractmethod
    async def adjust_load(self, officer_id: str, delta: int) -> None:
        """Change an officer's assigned count by delta (never below zero)"""
        pass


class MediaStore(ABC):
    """External storage for complaint photos."""

    @abstractmethod
    async def store(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Store bytes under key and return an opaque reference"""
        pass


class NotificationSink(ABC):
    """Delivery of user notifications; fire-and-forget from the engine's view."""

    @abstractmethod
    async def notify(self, user_id: str, type: str, message: str, data: Dict[str, Any]) -> None:
        pass


def sort_officer_queue(complaints: List[Complaint]) -> List[Complaint]:
    """Order complaints by priority desc, then created_at desc."""
    return sorted(
        complaints,
        key=lambda c: (c.priority.rank, c.created_at),
        reverse=True,
    )


def sort_by_load(officers: List[Officer]) -> List[Officer]:
    """Order officers by ascending load, ties by officer id."""
    return sorted(officers, key=lambda o: (o.assigned_count, o.officer_id))


__all__ = [
    "ComplaintRepository",
    "OfficerRepository",
    "MediaStore",
    "NotificationSink",
    "sort_officer_queue",
    "sort_by_load",
]
