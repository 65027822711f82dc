"""Redis-backed complaint and officer repositories.

Records are stored as JSON strings:
- complaint:{id}  → Complaint JSON, id listed in the "complaints" set
- officer:{id}    → Officer JSON, id listed in the "officers" set

Queries load every record of the kind and filter client-side; there is no
secondary index. Updates are read-modify-write without WATCH, so concurrent
writers to the same record are last-write-wins.
"""

import logging
from typing import Iterable, List, Optional

from redis.asyncio import Redis

from civic_core_lib.errors import NotFoundError
from civic_core_lib.models import (
    Category,
    Complaint,
    ComplaintPatch,
    ComplaintStatus,
    Officer,
)
from civic_core_lib.repositories.base import (
    ComplaintRepository,
    OfficerRepository,
    sort_by_load,
    sort_officer_queue,
)

logger = logging.getLogger(__name__)


class RedisComplaintRepository(ComplaintRepository):
    """Complaint storage on a Redis client created with decode_responses=True."""

    INDEX_KEY = "complaints"

    def __init__(self, client: Redis, prefix: str = "civic"):
        self.client = client
        self.prefix = prefix

    def _key(self, complaint_id: str) -> str:
        return f"{self.prefix}:complaint:{complaint_id}"

    def _index(self) -> str:
        return f"{self.prefix}:{self.INDEX_KEY}"

    async def _save(self, complaint: Complaint) -> None:
        await self.client.set(self._key(complaint.complaint_id), complaint.model_dump_json())

    async def create(self, complaint: Complaint) -> str:
        await self._save(complaint)
        await self.client.sadd(self._index(), complaint.complaint_id)
        logger.debug(f"Stored complaint {complaint.complaint_id}")
        return complaint.complaint_id

    async def get(self, complaint_id: str) -> Optional[Complaint]:
        raw = await self.client.get(self._key(complaint_id))
        if raw is None:
            return None
        return Complaint.model_validate_json(raw)

    async def list_all(self) -> List[Complaint]:
        ids = sorted(await self.client.smembers(self._index()))
        if not ids:
            return []
        raws = await self.client.mget([self._key(i) for i in ids])
        return [Complaint.model_validate_json(raw) for raw in raws if raw is not None]

    async def query_by_user(self, user_id: str) -> List[Complaint]:
        matches = [c for c in await self.list_all() if c.user_id == user_id]
        return sorted(matches, key=lambda c: c.created_at, reverse=True)

    async def query_by_category_and_status(
        self, category: Category, exclude_status: ComplaintStatus
    ) -> List[Complaint]:
        return [
            c for c in await self.list_all()
            if c.category == category and c.status != exclude_status
        ]

    async def query_by_statuses(self, statuses: Iterable[ComplaintStatus]) -> List[Complaint]:
        wanted = set(statuses)
        return [c for c in await self.list_all() if c.status in wanted]

    async def query_by_officer(self, officer_id: str) -> List[Complaint]:
        return sort_officer_queue([
            c for c in await self.list_all() if c.assigned_officer == officer_id
        ])

    async def update(self, complaint_id: str, patch: ComplaintPatch) -> Complaint:
        current = await self.get(complaint_id)
        if current is None:
            raise NotFoundError("Complaint not found", complaint_id=complaint_id)
        updated = current.apply(patch)
        await self._save(updated)
        return updated


class RedisOfficerRepository(OfficerRepository):
    """Officer directory on Redis."""

    INDEX_KEY = "officers"

    def __init__(self, client: Redis, prefix: str = "civic"):
        self.client = client
        self.prefix = prefix

    def _key(self, officer_id: str) -> str:
        return f"{self.prefix}:officer:{officer_id}"

    async def save(self, officer: Officer) -> None:
        await self.client.set(self._key(officer.officer_id), officer.model_dump_json())
        await self.client.sadd(f"{self.prefix}:{self.INDEX_KEY}", officer.officer_id)

    async def get(self, officer_id: str) -> Optional[Officer]:
        raw = await self.client.get(self._key(officer_id))
        if raw is None:
            return None
        return Officer.model_validate_json(raw)

    async def query_active_by_department(self, department_id: str) -> List[Officer]:
        ids = sorted(await self.client.smembers(f"{self.prefix}:{self.INDEX_KEY}"))
        if not ids:
            return []
        raws = await self.client.mget([self._key(i) for i in ids])
        officers = [Officer.model_validate_json(raw) for raw in raws if raw is not None]
        return sort_by_load([
            o for o in officers if o.department_id == department_id and o.is_active
        ])

    async def adjust_load(self, officer_id: str, delta: int) -> None:
        officer = await self.get(officer_id)
        if officer is None:
            raise NotFoundError("Officer not found", officer_id=officer_id)
        await self.save(officer.model_copy(
            update={"assigned_count": max(0, officer.assigned_count + delta)}
        ))
