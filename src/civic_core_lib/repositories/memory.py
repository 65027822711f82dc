"""In-process collaborator implementations.

Useful for tests, demos and single-process deployments. All queries are linear
scans over the stored records.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from civic_core_lib.errors import NotFoundError
from civic_core_lib.models import (
    Category,
    Complaint,
    ComplaintPatch,
    ComplaintStatus,
    Officer,
    utc_now,
)
from civic_core_lib.repositories.base import (
    ComplaintRepository,
    MediaStore,
    NotificationSink,
    OfficerRepository,
    sort_by_load,
    sort_officer_queue,
)

logger = logging.getLogger(__name__)


class InMemoryComplaintRepository(ComplaintRepository):
    """Dictionary-backed complaint storage."""

    def __init__(self, complaints: Optional[Iterable[Complaint]] = None):
        self._records: Dict[str, Complaint] = {}
        for complaint in complaints or []:
            self._records[complaint.complaint_id] = complaint

    async def create(self, complaint: Complaint) -> str:
        self._records[complaint.complaint_id] = complaint
        return complaint.complaint_id

    async def get(self, complaint_id: str) -> Optional[Complaint]:
        return self._records.get(complaint_id)

    async def query_by_user(self, user_id: str) -> List[Complaint]:
        matches = [c for c in self._records.values() if c.user_id == user_id]
        return sorted(matches, key=lambda c: c.created_at, reverse=True)

    async def query_by_category_and_status(
        self, category: Category, exclude_status: ComplaintStatus
    ) -> List[Complaint]:
        return [
            c for c in self._records.values()
            if c.category == category and c.status != exclude_status
        ]

    async def query_by_statuses(self, statuses: Iterable[ComplaintStatus]) -> List[Complaint]:
        wanted = set(statuses)
        return [c for c in self._records.values() if c.status in wanted]

    async def query_by_officer(self, officer_id: str) -> List[Complaint]:
        matches = [c for c in self._records.values() if c.assigned_officer == officer_id]
        return sort_officer_queue(matches)

    async def list_all(self) -> List[Complaint]:
        return list(self._records.values())

    async def update(self, complaint_id: str, patch: ComplaintPatch) -> Complaint:
        current = self._records.get(complaint_id)
        if current is None:
            raise NotFoundError("Complaint not found", complaint_id=complaint_id)
        updated = current.apply(patch)
        self._records[complaint_id] = updated
        return updated


class InMemoryOfficerRepository(OfficerRepository):
    """Dictionary-backed officer directory."""

    def __init__(self, officers: Optional[Iterable[Officer]] = None):
        self._officers: Dict[str, Officer] = {}
        for officer in officers or []:
            self._officers[officer.officer_id] = officer

    def add(self, officer: Officer) -> None:
        self._officers[officer.officer_id] = officer

    async def get(self, officer_id: str) -> Optional[Officer]:
        return self._officers.get(officer_id)

    async def query_active_by_department(self, department_id: str) -> List[Officer]:
        return sort_by_load([
            o for o in self._officers.values()
            if o.department_id == department_id and o.is_active
        ])

    async def adjust_load(self, officer_id: str, delta: int) -> None:
        officer = self._officers.get(officer_id)
        if officer is None:
            raise NotFoundError("Officer not found", officer_id=officer_id)
        new_count = max(0, officer.assigned_count + delta)
        self._officers[officer_id] = officer.model_copy(update={"assigned_count": new_count})


class InMemoryMediaStore(MediaStore):
    """Keeps uploaded bytes in a dictionary and returns memory:// references."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    async def store(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        self.objects[key] = content
        return f"memory://{key}"


@dataclass
class Notification:
    """One delivered notification."""

    user_id: str
    type: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    read: bool = False
    created_at: Any = field(default_factory=utc_now)


class InMemoryNotificationSink(NotificationSink):
    """Collects notifications per user."""

    def __init__(self):
        self.sent: List[Notification] = []

    async def notify(self, user_id: str, type: str, message: str, data: Dict[str, Any]) -> None:
        self.sent.append(Notification(user_id=user_id, type=type, message=message, data=dict(data)))
        logger.debug(f"Notification {type} queued for {user_id}")

    def for_user(self, user_id: str) -> List[Notification]:
        return [n for n in self.sent if n.user_id == user_id]
