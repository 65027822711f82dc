"""
Shared data models for the complaint engine.

This package provides Pydantic models for complaints, their timeline and the
explicit patch structs each engine operation writes.
"""

from civic_core_lib.models.common import (
    generate_complaint_id,
    utc_now,
)
from civic_core_lib.models.complaint import (
    # Core complaint model
    Complaint,
    ComplaintStatus,
    TimelineEntry,
    Category,
    Priority,
    GeoPoint,
    is_valid_transition,
    OFFICER_SETTABLE_STATUSES,
    ESCALATION_CANDIDATE_STATUSES,
    ASSIGNABLE_STATUSES,

    # Input
    ComplaintDraft,
    PhotoUpload,

    # Patches
    ComplaintPatch,
    PriorityPatch,
    AssignmentPatch,
    StatusUpdatePatch,
    EscalationPatch,
    FeedbackPatch,
)
from civic_core_lib.models.directory import (
    Department,
    Officer,
    SensitiveLocation,
    DEFAULT_DEPARTMENTS,
)

__all__ = [
    # Helpers
    "generate_complaint_id", "utc_now",
    # Core complaint
    "Complaint", "ComplaintStatus", "TimelineEntry", "Category", "Priority", "GeoPoint",
    "is_valid_transition", "OFFICER_SETTABLE_STATUSES", "ESCALATION_CANDIDATE_STATUSES",
    "ASSIGNABLE_STATUSES",
    # Input
    "ComplaintDraft", "PhotoUpload",
    # Patches
    "ComplaintPatch", "PriorityPatch", "AssignmentPatch", "StatusUpdatePatch",
    "EscalationPatch", "FeedbackPatch",
    # Directory
    "Department", "Officer", "SensitiveLocation", "DEFAULT_DEPARTMENTS",
]
