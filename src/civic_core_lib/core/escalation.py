"""Escalation sweep.

Scans complaints that are SUBMITTED, ASSIGNED or IN_PROGRESS and escalates the
ones open longer than pending_hours. ESCALATED and RESOLVED complaints are never
candidates, so running the sweep again adds no further timeline entries.

The sweep runs outside request handling and tolerates concurrent updates: each
candidate is re-read before writing and skipped if its status moved on.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from civic_core_lib.config import EngineSettings
from civic_core_lib.core.notifications import NotificationType, Notifier
from civic_core_lib.core.priority import PriorityEngine
from civic_core_lib.errors import ComplaintError
from civic_core_lib.models import (
    ESCALATION_CANDIDATE_STATUSES,
    Complaint,
    ComplaintStatus,
    EscalationPatch,
    TimelineEntry,
    utc_now,
)
from civic_core_lib.repositories.base import ComplaintRepository, NotificationSink
from civic_core_lib.utils.resilience import guard_dependency

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Summary of one sweep pass"""

    scanned: int = 0
    escalated: List[str] = field(default_factory=list)
    skipped: int = 0
    failed: List[str] = field(default_factory=list)


class EscalationSweep:
    """Batch job escalating complaints pending too long."""

    def __init__(
        self,
        settings: EngineSettings,
        complaints: ComplaintRepository,
        notifications: Optional[NotificationSink] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.complaints = complaints
        self.notifier = Notifier(notifications)
        self.clock = clock
        self.priority_engine = PriorityEngine(settings, clock=clock)

    async def _call(self, operation: str, call, *, retry: bool = True, **context):
        # Writes run once; a retried write whose ack was lost would commit twice
        return await guard_dependency(
            operation,
            call,
            timeout=self.settings.dependency_timeout_s,
            attempts=self.settings.dependency_retry_attempts if retry else 1,
            **context,
        )

    async def run(self) -> SweepReport:
        """Run one pass.

        Raises:
            DependencyUnavailable: If the candidate scan itself fails
        """
        candidates = await self._call(
            "complaints.query_by_statuses",
            lambda: self.complaints.query_by_statuses(ESCALATION_CANDIDATE_STATUSES),
        )
        now = self.clock()
        report = SweepReport(scanned=len(candidates))

        for complaint in candidates:
            if not self._is_overdue(complaint, now):
                report.skipped += 1
                continue
            try:
                escalated = await self._escalate(complaint.complaint_id)
            except ComplaintError as exc:
                logger.warning(f"Escalation of {complaint.complaint_id} failed: {exc}")
                report.failed.append(complaint.complaint_id)
                continue
            if escalated:
                report.escalated.append(complaint.complaint_id)
            else:
                report.skipped += 1

        logger.info(
            f"Escalation sweep: scanned={report.scanned}, escalated={len(report.escalated)}, "
            f"skipped={report.skipped}, failed={len(report.failed)}"
        )
        return report

    async def run_periodically(self, interval_s: float, stop: asyncio.Event) -> None:
        """Run a pass every interval_s seconds until stop is set."""
        while not stop.is_set():
            try:
                await self.run()
            except ComplaintError as exc:
                logger.error(f"Escalation sweep aborted: {exc}")
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_s)
            except asyncio.TimeoutError:
                pass

    def _is_overdue(self, complaint: Complaint, now: datetime) -> bool:
        return (
            complaint.status in ESCALATION_CANDIDATE_STATUSES
            and complaint.age_hours(now) > self.settings.pending_hours
        )

    async def _escalate(self, complaint_id: str) -> bool:
        complaint = await self._call(
            "complaints.get", lambda: self.complaints.get(complaint_id), complaint_id=complaint_id
        )
        now = self.clock()
        if complaint is None or not self._is_overdue(complaint, now):
            return False

        hours = math.floor(complaint.age_hours(now))
        result = await self.priority_engine.compute_priority(complaint, self.complaints)
        entry_time = complaint.next_entry_time(now)
        patch = EscalationPatch(
            priority=result.priority,
            priority_reasons=result.reasons,
            updated_at=entry_time,
            timeline_entry=TimelineEntry(
                status=ComplaintStatus.ESCALATED,
                timestamp=entry_time,
                note=f"Automatically escalated: pending for {hours} hours",
            ),
        )
        updated = await self._call(
            "complaints.update",
            lambda: self.complaints.update(complaint_id, patch),
            retry=False,
            complaint_id=complaint_id,
        )
        await self.notifier.status_changed(updated, complaint.status)
        if updated.assigned_officer:
            await self.notifier.send(
                updated.assigned_officer,
                NotificationType.SYSTEM,
                f"Complaint {complaint_id} escalated after {hours} hours",
                {"complaintId": complaint_id},
            )
        return True
