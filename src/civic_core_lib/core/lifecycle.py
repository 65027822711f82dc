"""Complaint lifecycle: creation, status updates, feedback and queries.

Orchestrates the priority and assignment engines and owns the status state
machine (see models.complaint.is_valid_transition). Every write goes through an
explicit patch struct; media is always persisted before the record that
references it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from civic_core_lib.auth import Actor
from civic_core_lib.config import EngineSettings
from civic_core_lib.core.assignment import AssignmentEngine, DepartmentDirectory
from civic_core_lib.core.geo import distance_meters
from civic_core_lib.core.notifications import Notifier
from civic_core_lib.core.priority import PriorityEngine
from civic_core_lib.errors import (
    ComplaintError,
    InvalidTransition,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from civic_core_lib.models import (
    OFFICER_SETTABLE_STATUSES,
    Complaint,
    ComplaintDraft,
    ComplaintStatus,
    FeedbackPatch,
    GeoPoint,
    Officer,
    PhotoUpload,
    PriorityPatch,
    StatusUpdatePatch,
    TimelineEntry,
    generate_complaint_id,
    is_valid_transition,
    utc_now,
)
from civic_core_lib.repositories.base import (
    ComplaintRepository,
    MediaStore,
    NotificationSink,
    OfficerRepository,
)
from civic_core_lib.utils.resilience import guard_dependency

logger = logging.getLogger(__name__)

SUBMITTED_NOTE = "Complaint submitted"


@dataclass
class CreationResult:
    """Created complaint plus any non-fatal assignment warnings"""

    complaint: Complaint
    assigned_officer: Optional[Officer] = None
    warnings: List[str] = field(default_factory=list)


class ComplaintLifecycle:
    """Entry point for complaint operations.

    Usage:
        lifecycle = ComplaintLifecycle(
            settings=EngineSettings(),
            complaints=InMemoryComplaintRepository(),
            officers=InMemoryOfficerRepository(officers),
            media=InMemoryMediaStore(),
            notifications=InMemoryNotificationSink(),
        )
        result = await lifecycle.create_complaint({"category": "road", "description": "Pothole"})
    """

    def __init__(
        self,
        settings: EngineSettings,
        complaints: ComplaintRepository,
        officers: OfficerRepository,
        media: MediaStore,
        notifications: Optional[NotificationSink] = None,
        departments: Optional[DepartmentDirectory] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.complaints = complaints
        self.officers = officers
        self.media = media
        self.notifier = Notifier(notifications)
        self.clock = clock
        self.departments = departments or DepartmentDirectory.from_settings(settings)
        self.priority_engine = PriorityEngine(settings, clock=clock)
        self.assignment_engine = AssignmentEngine(
            settings, self.departments, officers, complaints, clock=clock
        )

    async def _call(self, operation: str, call, *, retry: bool = True, **context):
        # Writes run once; a retried write whose ack was lost would commit twice
        return await guard_dependency(
            operation,
            call,
            timeout=self.settings.dependency_timeout_s,
            attempts=self.settings.dependency_retry_attempts if retry else 1,
            **context,
        )

    # ============================================================
    # Creation
    # ============================================================
    async def create_complaint(
        self,
        data: Union[ComplaintDraft, Dict[str, Any]],
        photo: Optional[PhotoUpload] = None,
    ) -> CreationResult:
        """File a new complaint.

        Steps: validate → store photo → compute priority → persist → auto-assign.
        Assignment problems do not undo the creation; they are returned as warnings.

        Raises:
            ValidationError: If category or description is missing or invalid
            DependencyUnavailable: If the photo or the record cannot be persisted
        """
        draft = _parse_draft(data)
        now = self.clock()
        complaint_id = generate_complaint_id(now)

        photo_ref = None
        if photo is not None:
            photo_ref = await self._store_photo(f"complaints/{complaint_id}/{photo.filename}", photo)

        complaint = Complaint(
            complaint_id=complaint_id,
            user_id=draft.user_id,
            category=draft.category,
            description=draft.description,
            location=draft.location,
            address=draft.address,
            photo_ref=photo_ref,
            status=ComplaintStatus.SUBMITTED,
            timeline=[TimelineEntry(status=ComplaintStatus.SUBMITTED, timestamp=now, note=SUBMITTED_NOTE)],
            created_at=now,
            updated_at=now,
        )

        result = await self.priority_engine.compute_priority(
            complaint, self.complaints, include_age=False
        )
        complaint = complaint.model_copy(
            update={"priority": result.priority, "priority_reasons": list(result.reasons)}
        )

        await self._call(
            "complaints.create",
            lambda: self.complaints.create(complaint),
            retry=False,
            complaint_id=complaint_id,
        )
        logger.info(
            f"Complaint {complaint_id} created: category={complaint.category.value}, "
            f"priority={complaint.priority.value}"
        )
        await self.notifier.complaint_submitted(complaint)

        creation = CreationResult(complaint=complaint)
        try:
            assignment = await self.assignment_engine.route(complaint_id, complaint.category)
        except ComplaintError as exc:
            logger.warning(f"Complaint {complaint_id} left unassigned: {exc}")
            creation.warnings.append(str(exc))
            return creation

        if assignment is None:
            creation.warnings.append("No officers available; complaint remains unassigned")
            return creation

        creation.complaint = assignment.complaint
        creation.assigned_officer = assignment.officer
        await self.notifier.officer_assigned(assignment.complaint)
        await self.notifier.status_changed(assignment.complaint, ComplaintStatus.SUBMITTED)
        return creation

    # ============================================================
    # Status updates
    # ============================================================
    async def update_status(
        self,
        complaint_id: str,
        new_status: Union[ComplaintStatus, str],
        note: str,
        resolution_photo: Optional[Union[PhotoUpload, str]] = None,
        actor: Optional[Actor] = None,
    ) -> Complaint:
        """Move a complaint to a new status and append one timeline entry.

        Args:
            complaint_id: Complaint identifier
            new_status: IN_PROGRESS, RESOLVED or ESCALATED
            note: Required note for the timeline entry
            resolution_photo: Photo to store, or an already stored reference (RESOLVED only)
            actor: Caller; citizens are rejected

        Raises:
            PermissionDenied: If the actor is not staff
            ValidationError: If the note is empty or the status is not officer-settable
            NotFoundError: If the complaint does not exist
            InvalidTransition: If the state machine forbids the change
            DependencyUnavailable: If the photo or the update cannot be persisted
        """
        if actor is not None and not actor.is_staff:
            raise PermissionDenied("Only officers may update complaint status", user_id=actor.user_id)

        if not note or not note.strip():
            raise ValidationError("A note is required for status updates", complaint_id=complaint_id)

        try:
            new_status = ComplaintStatus(new_status)
        except ValueError:
            raise ValidationError("Unknown status", status=str(new_status)) from None

        if new_status not in OFFICER_SETTABLE_STATUSES:
            raise ValidationError(
                "Status cannot be set by an officer", status=new_status.value
            )

        if resolution_photo is not None and new_status != ComplaintStatus.RESOLVED:
            raise ValidationError(
                "A resolution photo is only accepted when resolving", status=new_status.value
            )

        complaint = await self.get_complaint(complaint_id)
        old_status = complaint.status

        if old_status.is_terminal:
            raise InvalidTransition(
                "Complaint is already resolved", complaint_id=complaint_id
            )
        if not is_valid_transition(old_status, new_status):
            raise InvalidTransition(
                "Status transition not allowed",
                complaint_id=complaint_id,
                from_status=old_status.value,
                to_status=new_status.value,
            )

        resolution_ref = None
        if isinstance(resolution_photo, PhotoUpload):
            resolution_ref = await self._store_photo(
                f"resolutions/{complaint_id}/{resolution_photo.filename}", resolution_photo
            )
        elif resolution_photo:
            resolution_ref = resolution_photo

        now = complaint.next_entry_time(self.clock())
        patch = StatusUpdatePatch(
            status=new_status,
            updated_at=now,
            resolved_at=now if new_status == ComplaintStatus.RESOLVED else None,
            resolution_photo_ref=resolution_ref,
            timeline_entry=TimelineEntry(status=new_status, timestamp=now, note=note.strip()),
        )
        updated = await self._call(
            "complaints.update",
            lambda: self.complaints.update(complaint_id, patch),
            retry=False,
            complaint_id=complaint_id,
        )
        logger.info(
            f"Complaint {complaint_id} status {old_status.value} -> {new_status.value}"
        )

        if new_status == ComplaintStatus.RESOLVED and updated.assigned_officer:
            await self.assignment_engine.adjust_load(updated.assigned_officer, -1)

        await self.notifier.status_changed(updated, old_status)
        return updated

    async def assign_manually(
        self,
        complaint_id: str,
        department_id: str,
        officer_id: str,
        actor: Actor,
        note: Optional[str] = None,
    ) -> Complaint:
        """Admin override of the automatic assignment.

        Raises:
            PermissionDenied: If the actor is not an admin
        """
        if not actor.is_admin:
            raise PermissionDenied("Only admins may assign complaints manually", user_id=actor.user_id)

        before = await self.get_complaint(complaint_id)
        updated = await self.assignment_engine.manual_assign(
            complaint_id, department_id, officer_id, note=note
        )
        await self.notifier.officer_assigned(updated)
        await self.notifier.status_changed(updated, before.status)
        return updated

    # ============================================================
    # Priority re-evaluation
    # ============================================================
    async def reevaluate_priority(self, complaint_id: str) -> Complaint:
        """Recompute priority with all rules and persist it; reasons are replaced wholesale."""
        complaint = await self.get_complaint(complaint_id)
        result = await self.priority_engine.compute_priority(complaint, self.complaints)
        patch = PriorityPatch(
            priority=result.priority,
            priority_reasons=result.reasons,
            updated_at=max(self.clock(), complaint.updated_at),
        )
        return await self._call(
            "complaints.update",
            lambda: self.complaints.update(complaint_id, patch),
            retry=False,
            complaint_id=complaint_id,
        )

    # ============================================================
    # Feedback
    # ============================================================
    async def submit_feedback(
        self,
        complaint_id: str,
        rating: int,
        comment: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> Complaint:
        """Record the citizen's rating of a resolved complaint (once only)."""
        complaint = await self.get_complaint(complaint_id)

        if actor is not None and complaint.user_id and actor.user_id != complaint.user_id:
            raise PermissionDenied("Only the reporting citizen may leave feedback", user_id=actor.user_id)
        if complaint.status != ComplaintStatus.RESOLVED:
            raise ValidationError("Feedback is only accepted for resolved complaints", complaint_id=complaint_id)
        if complaint.has_feedback:
            raise ValidationError("Feedback already submitted", complaint_id=complaint_id)

        try:
            patch = FeedbackPatch(
                feedback_rating=rating,
                feedback_comment=comment,
                updated_at=max(self.clock(), complaint.updated_at),
            )
        except PydanticValidationError as exc:
            raise ValidationError("Invalid feedback", complaint_id=complaint_id, detail=str(exc)) from exc

        return await self._call(
            "complaints.update",
            lambda: self.complaints.update(complaint_id, patch),
            retry=False,
            complaint_id=complaint_id,
        )

    # ============================================================
    # Queries
    # ============================================================
    async def get_complaint(self, complaint_id: str) -> Complaint:
        complaint = await self._call(
            "complaints.get", lambda: self.complaints.get(complaint_id), complaint_id=complaint_id
        )
        if complaint is None:
            raise NotFoundError("Complaint not found", complaint_id=complaint_id)
        return complaint

    async def list_user_complaints(self, user_id: str) -> List[Complaint]:
        return await self._call(
            "complaints.query_by_user", lambda: self.complaints.query_by_user(user_id), user_id=user_id
        )

    async def list_officer_complaints(self, officer_id: str) -> List[Complaint]:
        return await self._call(
            "complaints.query_by_officer",
            lambda: self.complaints.query_by_officer(officer_id),
            officer_id=officer_id,
        )

    async def nearby_complaints(self, location: GeoPoint, radius_km: float = 5.0) -> List[Complaint]:
        """Complaints within radius_km of location, nearest first."""
        complaints = await self._call("complaints.list_all", self.complaints.list_all)
        radius_m = radius_km * 1000
        scored = [
            (distance_meters(location, c.location), c)
            for c in complaints if c.location is not None
        ]
        return [c for d, c in sorted(scored, key=lambda pair: pair[0]) if d <= radius_m]

    async def _store_photo(self, key: str, photo: PhotoUpload) -> str:
        return await self._call(
            "media.store",
            lambda: self.media.store(key, photo.content, photo.content_type),
            key=key,
        )


def _parse_draft(data: Union[ComplaintDraft, Dict[str, Any]]) -> ComplaintDraft:
    if isinstance(data, ComplaintDraft):
        return data
    try:
        return ComplaintDraft.model_validate(data)
    except PydanticValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ValidationError("Invalid complaint data", fields=",".join(fields)) from exc
