"""Assignment engine: routes complaints to a department and its least-loaded officer.

Selection policy:
1. The department owning the category (NoDepartmentForCategory if none)
2. Active officers of that department
3. None available → complaint stays unassigned (not an error)
4. Lowest assigned_count wins, ties broken by officer_id ascending

The decision is made from a point-in-time read; two concurrent assignments can
pick the same officer.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from civic_core_lib.config import EngineSettings
from civic_core_lib.errors import (
    DependencyUnavailable,
    InvalidTransition,
    NoDepartmentForCategory,
    NotFoundError,
    ValidationError,
)
from civic_core_lib.models import (
    ASSIGNABLE_STATUSES,
    AssignmentPatch,
    Category,
    Complaint,
    ComplaintStatus,
    Department,
    GeoPoint,
    Officer,
    TimelineEntry,
    utc_now,
)
from civic_core_lib.repositories.base import ComplaintRepository, OfficerRepository, sort_by_load
from civic_core_lib.utils.resilience import guard_dependency

logger = logging.getLogger(__name__)


@dataclass
class Assignment:
    """Result of a successful assignment"""

    department: Department
    officer: Officer
    complaint: Complaint


class DepartmentDirectory:
    """Category → department lookup built from configuration."""

    def __init__(self, departments: Iterable[Department]):
        self._by_id: Dict[str, Department] = {}
        self._by_category: Dict[Category, Department] = {}
        for department in departments:
            self._by_id[department.department_id] = department
            for category in department.categories:
                if category in self._by_category:
                    raise ValueError(
                        f"Category '{category.value}' already owned by "
                        f"'{self._by_category[category].department_id}'"
                    )
                self._by_category[category] = department

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "DepartmentDirectory":
        return cls(settings.departments)

    def for_category(self, category: Category) -> Department:
        department = self._by_category.get(category)
        if department is None:
            raise NoDepartmentForCategory(
                "No department found for category", category=category.value
            )
        return department

    def get(self, department_id: str) -> Department:
        department = self._by_id.get(department_id)
        if department is None:
            raise NotFoundError("Department not found", department_id=department_id)
        return department

    def all(self) -> List[Department]:
        return list(self._by_id.values())


class AssignmentEngine:
    """Selects and persists complaint assignments."""

    def __init__(
        self,
        settings: EngineSettings,
        departments: DepartmentDirectory,
        officers: OfficerRepository,
        complaints: ComplaintRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.departments = departments
        self.officers = officers
        self.complaints = complaints
        self.clock = clock

    async def _call(self, operation: str, call, *, retry: bool = True, **context):
        # Writes run once; a retried write whose ack was lost would commit twice
        return await guard_dependency(
            operation,
            call,
            timeout=self.settings.dependency_timeout_s,
            attempts=self.settings.dependency_retry_attempts if retry else 1,
            **context,
        )

    async def select_officer(self, category: Category) -> Tuple[Department, Optional[Officer]]:
        """Pick the department and its least-loaded active officer (None if no capacity)."""
        department = self.departments.for_category(category)
        officers = await self._call(
            "officers.query_active_by_department",
            lambda: self.officers.query_active_by_department(department.department_id),
            department_id=department.department_id,
        )
        eligible = [
            o for o in officers
            if o.is_active and o.department_id == department.department_id
        ]
        if not eligible:
            return department, None
        return department, sort_by_load(eligible)[0]

    async def assign(
        self,
        complaint_id: str,
        category: Category,
        location: Optional[GeoPoint] = None,
    ) -> Optional[Officer]:
        """Auto-assign a complaint.

        Location is accepted for routing policies that need it; the load policy ignores it.

        Returns:
            The chosen officer, or None when the department has no active officers

        Raises:
            NoDepartmentForCategory: If no department owns the category
            NotFoundError: If the complaint does not exist
            InvalidTransition: If the complaint cannot be assigned from its status
            DependencyUnavailable: If a repository call fails
        """
        assignment = await self.route(complaint_id, category)
        return assignment.officer if assignment else None

    async def route(self, complaint_id: str, category: Category) -> Optional[Assignment]:
        """Auto-assign and return the full outcome, or None when no officer is available."""
        department, officer = await self.select_officer(category)
        if officer is None:
            logger.warning(
                f"No officers available in {department.department_id}, "
                f"complaint {complaint_id} remains unassigned"
            )
            return None

        complaint = await self._load(complaint_id)
        updated = await self._persist(complaint, department, officer, note=None)
        return Assignment(department=department, officer=officer, complaint=updated)

    async def manual_assign(
        self,
        complaint_id: str,
        department_id: str,
        officer_id: str,
        note: Optional[str] = None,
    ) -> Complaint:
        """Admin override: assign a specific officer, bypassing selection."""
        department = self.departments.get(department_id)
        officer = await self._call(
            "officers.get", lambda: self.officers.get(officer_id), officer_id=officer_id
        )
        if officer is None:
            raise NotFoundError("Officer not found", officer_id=officer_id)
        if officer.department_id != department.department_id:
            raise ValidationError(
                "Officer does not belong to department",
                officer_id=officer_id,
                department_id=department_id,
            )

        complaint = await self._load(complaint_id)
        return await self._persist(complaint, department, officer, note=note)

    async def _load(self, complaint_id: str) -> Complaint:
        complaint = await self._call(
            "complaints.get", lambda: self.complaints.get(complaint_id), complaint_id=complaint_id
        )
        if complaint is None:
            raise NotFoundError("Complaint not found", complaint_id=complaint_id)
        return complaint

    async def _persist(
        self,
        complaint: Complaint,
        department: Department,
        officer: Officer,
        note: Optional[str],
    ) -> Complaint:
        if complaint.status not in ASSIGNABLE_STATUSES:
            raise InvalidTransition(
                "Complaint cannot be assigned from its current status",
                complaint_id=complaint.complaint_id,
                status=complaint.status.value,
            )

        now = complaint.next_entry_time(self.clock())
        patch = AssignmentPatch(
            assigned_department=department.department_id,
            assigned_department_name=department.name,
            assigned_officer=officer.officer_id,
            assigned_officer_name=officer.name,
            assigned_at=now,
            updated_at=now,
            timeline_entry=TimelineEntry(
                status=ComplaintStatus.ASSIGNED,
                timestamp=now,
                note=note or f"Assigned to {officer.name} ({department.name})",
            ),
        )
        updated = await self._call(
            "complaints.update",
            lambda: self.complaints.update(complaint.complaint_id, patch),
            retry=False,
            complaint_id=complaint.complaint_id,
        )

        previous = complaint.assigned_officer
        if previous != officer.officer_id:
            await self.adjust_load(officer.officer_id, +1)
            if previous:
                await self.adjust_load(previous, -1)

        logger.info(
            f"Complaint {complaint.complaint_id} assigned to {officer.officer_id} "
            f"({department.department_id})"
        )
        return updated

    async def adjust_load(self, officer_id: str, delta: int) -> None:
        # Load is an advisory metric; a failed counter update must not undo the assignment
        try:
            await self._call(
                "officers.adjust_load",
                lambda: self.officers.adjust_load(officer_id, delta),
                retry=False,
                officer_id=officer_id,
            )
        except (DependencyUnavailable, NotFoundError) as exc:
            logger.warning(f"Load update for officer {officer_id} failed: {exc}")
