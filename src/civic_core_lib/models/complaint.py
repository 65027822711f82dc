"""Complaint data models - status timeline and priority tracking.

Key Models:
- Complaint: Root complaint entity filed by a citizen
- ComplaintStatus: Lifecycle status (SUBMITTED → ASSIGNED → IN_PROGRESS → RESOLVED)
- Priority: Urgency tier (NORMAL → HIGH → CRITICAL)
- TimelineEntry: One append-only status record
- ComplaintDraft / PhotoUpload: Citizen input at creation time
- *Patch: Explicit per-operation updates; each carries only the fields that
  operation may touch

Architecture:
- Repository abstraction (no direct database imports)
- Patches are applied with Complaint.apply(), which re-validates every invariant
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from civic_core_lib.models.common import generate_complaint_id, utc_now


# ============================================================
# Enumerations
# ============================================================

class Category(str, Enum):
    """Civic issue categories a citizen can report."""

    ROAD = "road"
    WATER = "water"
    GARBAGE = "garbage"
    ELECTRICITY = "electricity"


class Priority(str, Enum):
    """
    Urgency tier driving officer attention ordering.

    Ordering: NORMAL < HIGH < CRITICAL
    """

    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    def raised_to(self, other: "Priority") -> "Priority":
        """Return the higher of the two tiers (never downgrades)."""
        return other if other.rank > self.rank else self


_PRIORITY_RANK = {Priority.NORMAL: 0, Priority.HIGH: 1, Priority.CRITICAL: 2}


class ComplaintStatus(str, Enum):
    """
    Complaint lifecycle status.

    Lifecycle Flow:
      SUBMITTED → ASSIGNED → IN_PROGRESS → RESOLVED (terminal)
          ↘          ↘           ↘
                  ESCALATED → IN_PROGRESS | RESOLVED

    Terminal States: RESOLVED (no further transitions)
    """

    SUBMITTED = "submitted"
    """Filed by the citizen, not yet routed to an officer."""

    ASSIGNED = "assigned"
    """Routed to a department officer (auto or manual)."""

    IN_PROGRESS = "in_progress"
    """Officer has started work."""

    RESOLVED = "resolved"
    """TERMINAL STATE: Issue fixed. resolved_at is set."""

    ESCALATED = "escalated"
    """Pending too long or flagged by the officer; needs attention."""

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal"""
        return self == ComplaintStatus.RESOLVED

    @property
    def is_open(self) -> bool:
        """Check if complaint still needs work"""
        return self != ComplaintStatus.RESOLVED


# Statuses an officer (or admin) may request through a status update.
OFFICER_SETTABLE_STATUSES = frozenset({
    ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.RESOLVED,
    ComplaintStatus.ESCALATED,
})

# Statuses the escalation sweep considers. ESCALATED is excluded so repeated sweeps
# never stack escalation entries.
ESCALATION_CANDIDATE_STATUSES = frozenset({
    ComplaintStatus.SUBMITTED,
    ComplaintStatus.ASSIGNED,
    ComplaintStatus.IN_PROGRESS,
})

# Statuses from which an officer can be (re)assigned.
ASSIGNABLE_STATUSES = frozenset({
    ComplaintStatus.SUBMITTED,
    ComplaintStatus.ASSIGNED,
    ComplaintStatus.ESCALATED,
})


def is_valid_transition(from_status: ComplaintStatus, to_status: ComplaintStatus) -> bool:
    """
    Validate status transition.

    Valid Transitions:
    - SUBMITTED → ASSIGNED | ESCALATED
    - ASSIGNED → IN_PROGRESS | RESOLVED | ESCALATED
    - IN_PROGRESS → RESOLVED | ESCALATED
    - ESCALATED → IN_PROGRESS | RESOLVED

    Invalid:
    - RESOLVED → * (terminal)
    """
    valid_transitions = {
        ComplaintStatus.SUBMITTED: [ComplaintStatus.ASSIGNED, ComplaintStatus.ESCALATED],
        ComplaintStatus.ASSIGNED: [
            ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED, ComplaintStatus.ESCALATED
        ],
        ComplaintStatus.IN_PROGRESS: [ComplaintStatus.RESOLVED, ComplaintStatus.ESCALATED],
        ComplaintStatus.ESCALATED: [ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED],
        ComplaintStatus.RESOLVED: [],  # Terminal
    }

    return to_status in valid_transitions.get(from_status, [])


# ============================================================
# Value Objects
# ============================================================

class GeoPoint(BaseModel):
    """WGS84 coordinate pair in degrees."""

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    class Config:
        frozen = True


class TimelineEntry(BaseModel):
    """
    Record of one status change.
    Provides the audit trail for the complaint lifecycle.
    """

    status: ComplaintStatus = Field(description="Status after this entry")

    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the status change occurred"
    )

    note: str = Field(
        description="Human-readable note for the change",
        min_length=1
    )

    class Config:
        frozen = True  # Immutable once created


class PhotoUpload(BaseModel):
    """Raw media handed over by the caller for persistence."""

    filename: str = Field(min_length=1, max_length=255)
    content: bytes
    content_type: Optional[str] = None


class ComplaintDraft(BaseModel):
    """Citizen input for a new complaint."""

    user_id: Optional[str] = Field(default=None, max_length=255)
    category: Category
    description: str = Field(min_length=1, max_length=5000)
    location: Optional[GeoPoint] = None
    address: Optional[str] = Field(default=None, max_length=500)

    @field_validator('description')
    @classmethod
    def description_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Description cannot be empty")
        return v.strip()


# ============================================================
# Complaint
# ============================================================

class Complaint(BaseModel):
    """
    Root complaint entity.
    Represents one civic issue reported by a citizen.
    """

    # Core identity
    complaint_id: str = Field(
        default_factory=generate_complaint_id,
        description="Unique complaint identifier",
        min_length=1
    )

    user_id: Optional[str] = Field(default=None, description="Citizen who filed the complaint")

    category: Category

    description: str = Field(min_length=1, max_length=5000)

    location: Optional[GeoPoint] = None

    address: Optional[str] = Field(default=None, max_length=500)

    # Media references (opaque, produced by the media store)
    photo_ref: Optional[str] = None
    resolution_photo_ref: Optional[str] = None

    # Status
    status: ComplaintStatus = Field(default=ComplaintStatus.SUBMITTED)

    timeline: List[TimelineEntry] = Field(
        default_factory=list,
        description="Append-only history of status changes"
    )

    # Priority
    priority: Priority = Field(default=Priority.NORMAL)

    priority_reasons: List[str] = Field(
        default_factory=list,
        description="Reasons for the current priority, in rule order"
    )

    # Assignment
    assigned_department: Optional[str] = None
    assigned_department_name: Optional[str] = None
    assigned_officer: Optional[str] = None
    assigned_officer_name: Optional[str] = None
    assigned_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    resolved_at: Optional[datetime] = None

    # Feedback
    has_feedback: bool = False
    feedback_rating: Optional[int] = Field(default=None, ge=1, le=5)
    feedback_comment: Optional[str] = Field(default=None, max_length=2000)

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    def age_hours(self, now: datetime) -> float:
        """Hours elapsed since creation."""
        return (now - self.created_at).total_seconds() / 3600

    def next_entry_time(self, now: datetime) -> datetime:
        """Timestamp for a new timeline entry; never earlier than the last one."""
        return max(now, self.timeline[-1].timestamp)

    def apply(self, patch: "ComplaintPatch") -> "Complaint":
        """Return a new complaint with the patch applied and all invariants re-checked."""
        data = self.model_dump()
        data.update(patch.changes())
        if patch.timeline_entry is not None:
            data["timeline"] = [*data["timeline"], patch.timeline_entry.model_dump()]
        return Complaint.model_validate(data)

    # ============================================================
    # Validation
    # ============================================================
    @field_validator('description')
    @classmethod
    def description_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Description cannot be empty")
        return v.strip()

    @model_validator(mode='after')
    def validate_timeline(self) -> 'Complaint':
        """Timeline starts with SUBMITTED, is ordered, and ends on the current status."""
        if not self.timeline:
            raise ValueError("timeline must contain at least the submission entry")

        if self.timeline[0].status != ComplaintStatus.SUBMITTED:
            raise ValueError("first timeline entry must be 'submitted'")

        for previous, current in zip(self.timeline, self.timeline[1:]):
            if previous.timestamp > current.timestamp:
                raise ValueError("timeline must be chronologically ordered")

        if self.timeline[-1].status != self.status:
            raise ValueError(
                f"last timeline status ({self.timeline[-1].status.value}) "
                f"does not match status ({self.status.value})"
            )
        return self

    @model_validator(mode='after')
    def validate_status_consistency(self) -> 'Complaint':
        """resolved_at iff RESOLVED; officers only on routed complaints."""
        if self.created_at > self.updated_at:
            raise ValueError(
                f"created_at ({self.created_at}) cannot be after updated_at ({self.updated_at})"
            )

        if self.status == ComplaintStatus.RESOLVED and not self.resolved_at:
            raise ValueError("RESOLVED status requires resolved_at timestamp")

        if self.status != ComplaintStatus.RESOLVED and self.resolved_at:
            raise ValueError(
                f"resolved_at can only be set when status is RESOLVED (current: {self.status.value})"
            )

        if self.assigned_officer and self.status == ComplaintStatus.SUBMITTED:
            raise ValueError("assigned_officer cannot be set on a SUBMITTED complaint")

        if self.has_feedback != (self.feedback_rating is not None):
            raise ValueError("feedback_rating must be set exactly when has_feedback is true")

        return self

    class Config:
        use_enum_values = False  # Keep enum instances


# ============================================================
# Patches
# ============================================================

class ComplaintPatch(BaseModel):
    """Base for explicit complaint updates.

    Unset (None) fields are left untouched; timeline_entry, when present, is appended.
    """

    updated_at: datetime = Field(default_factory=utc_now)
    timeline_entry: Optional[TimelineEntry] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"timeline_entry"})


class PriorityPatch(ComplaintPatch):
    """Written by the priority engine."""

    priority: Priority
    priority_reasons: List[str]


class AssignmentPatch(ComplaintPatch):
    """Written by the assignment engine (auto or manual override)."""

    assigned_department: str
    assigned_department_name: Optional[str] = None
    assigned_officer: str
    assigned_officer_name: Optional[str] = None
    assigned_at: datetime
    status: ComplaintStatus = ComplaintStatus.ASSIGNED


class StatusUpdatePatch(ComplaintPatch):
    """Written by the lifecycle status-update path."""

    status: ComplaintStatus
    resolved_at: Optional[datetime] = None
    resolution_photo_ref: Optional[str] = None


class EscalationPatch(ComplaintPatch):
    """Written by the escalation sweep: status and re-evaluated priority together."""

    status: ComplaintStatus = ComplaintStatus.ESCALATED
    priority: Priority
    priority_reasons: List[str]


class FeedbackPatch(ComplaintPatch):
    """Written once, when the citizen rates a resolved complaint."""

    has_feedback: bool = True
    feedback_rating: int = Field(ge=1, le=5)
    feedback_comment: Optional[str] = Field(default=None, max_length=2000)
