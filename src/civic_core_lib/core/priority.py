"""Priority engine.

Rules run in order and can only raise the priority (NORMAL → HIGH → CRITICAL):

1. Sensitive proximity: within sensitive_radius_m of a configured sensitive
   location → at least HIGH. First matching location wins.
2. Cluster: open complaints of the same category within cluster_radius_m,
   counting the complaint itself, reach cluster_threshold → CRITICAL.
3. Age: open longer than pending_hours → CRITICAL (re-evaluation only).

Reasons are recorded in rule order. A failed repository read in rule 2 is
logged and treated as no similar complaints.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from civic_core_lib.config import EngineSettings
from civic_core_lib.core.geo import distance_meters
from civic_core_lib.errors import DependencyUnavailable
from civic_core_lib.models import Complaint, ComplaintStatus, Priority, SensitiveLocation, utc_now
from civic_core_lib.repositories.base import ComplaintRepository
from civic_core_lib.utils.resilience import guard_dependency

logger = logging.getLogger(__name__)


@dataclass
class PriorityResult:
    """Outcome of one priority computation"""

    priority: Priority = Priority.NORMAL
    reasons: List[str] = field(default_factory=list)

    def raise_to(self, priority: Priority, reason: str) -> None:
        self.priority = self.priority.raised_to(priority)
        self.reasons.append(reason)


class PriorityEngine:
    """Computes a complaint's priority tier and the reasons for it."""

    def __init__(self, settings: EngineSettings, clock: Callable[[], datetime] = utc_now):
        self.settings = settings
        self.clock = clock

    async def compute_priority(
        self,
        complaint: Complaint,
        repository: ComplaintRepository,
        include_age: bool = True,
    ) -> PriorityResult:
        """Evaluate every rule against the complaint.

        Args:
            complaint: Complaint to evaluate (persisted or about to be)
            repository: Source of nearby complaints for the cluster rule
            include_age: Apply the age rule (False for brand-new complaints)

        Returns:
            PriorityResult with the tier and ordered reasons
        """
        result = PriorityResult()

        if complaint.location is not None:
            matched = self.match_sensitive_location(complaint)
            if matched is not None:
                result.raise_to(Priority.HIGH, f"Near {matched.name}")

            similar = await self._count_similar(complaint, repository)
            if similar >= self.settings.cluster_threshold:
                result.raise_to(Priority.CRITICAL, f"{similar} similar reports in area")

        if include_age and complaint.status != ComplaintStatus.RESOLVED:
            hours = complaint.age_hours(self.clock())
            if hours > self.settings.pending_hours:
                result.raise_to(Priority.CRITICAL, f"Pending for {math.floor(hours)} hours")

        logger.debug(
            f"Priority for {complaint.complaint_id}: {result.priority.value} {result.reasons}"
        )
        return result

    def match_sensitive_location(self, complaint: Complaint) -> Optional[SensitiveLocation]:
        """First configured sensitive location within radius, in configuration order."""
        for location in self.settings.sensitive_locations:
            if distance_meters(complaint.location, location.point) <= self.settings.sensitive_radius_m:
                return location
        return None

    async def _count_similar(self, complaint: Complaint, repository: ComplaintRepository) -> int:
        """Open same-category complaints within the cluster radius, including this one."""
        try:
            candidates = await guard_dependency(
                "complaints.query_by_category_and_status",
                lambda: repository.query_by_category_and_status(
                    complaint.category, ComplaintStatus.RESOLVED
                ),
                timeout=self.settings.dependency_timeout_s,
                attempts=self.settings.dependency_retry_attempts,
                complaint_id=complaint.complaint_id,
            )
        except DependencyUnavailable as exc:
            logger.warning(
                f"Cluster rule skipped for {complaint.complaint_id}, "
                f"treating as no similar complaints: {exc}"
            )
            return 0

        nearby = [
            other for other in candidates
            if other.complaint_id != complaint.complaint_id
            and other.location is not None
            and distance_meters(complaint.location, other.location) <= self.settings.cluster_radius_m
        ]
        return len(nearby) + 1
