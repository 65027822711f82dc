"""Civic Core Library

Complaint lifecycle, priority and assignment engine for the municipal
complaint portal.
"""

__version__ = "0.1.0"

# Export shared models first (no dependencies)
from civic_core_lib.models import (
    Complaint, ComplaintStatus, ComplaintDraft, Category, Priority, GeoPoint,
    TimelineEntry, PhotoUpload, Department, Officer, SensitiveLocation,
)
from civic_core_lib.errors import (
    ComplaintError, ValidationError, NotFoundError, InvalidTransition,
    NoDepartmentForCategory, DependencyUnavailable, PermissionDenied,
)
from civic_core_lib.config import EngineSettings, get_settings, reset_settings
from civic_core_lib.core import (
    distance_meters,
    PriorityEngine,
    AssignmentEngine,
    DepartmentDirectory,
    ComplaintLifecycle,
    EscalationSweep,
    complaint_stats,
)

# HTTP clients import httpx and the discovery module; load them on first use
def __getattr__(name):
    """Lazy import for HTTP collaborator clients."""
    if name in ("HttpMediaStore", "HttpNotificationSink"):
        from civic_core_lib import clients
        return getattr(clients, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

__all__ = [
    # Models
    "Complaint", "ComplaintStatus", "ComplaintDraft", "Category", "Priority", "GeoPoint",
    "TimelineEntry", "PhotoUpload", "Department", "Officer", "SensitiveLocation",
    # Errors
    "ComplaintError", "ValidationError", "NotFoundError", "InvalidTransition",
    "NoDepartmentForCategory", "DependencyUnavailable", "PermissionDenied",
    # Configuration
    "EngineSettings", "get_settings", "reset_settings",
    # Engine
    "distance_meters", "PriorityEngine", "AssignmentEngine", "DepartmentDirectory",
    "ComplaintLifecycle", "EscalationSweep", "complaint_stats",
    # Clients (lazy loaded)
    "HttpMediaStore", "HttpNotificationSink",
]
