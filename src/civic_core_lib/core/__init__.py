"""Complaint engine: geo math, priority, assignment, lifecycle and escalation."""

from civic_core_lib.core.geo import distance_meters, within_radius, EARTH_RADIUS_M
from civic_core_lib.core.priority import PriorityEngine, PriorityResult
from civic_core_lib.core.assignment import AssignmentEngine, Assignment, DepartmentDirectory
from civic_core_lib.core.notifications import NotificationType, Notifier
from civic_core_lib.core.lifecycle import ComplaintLifecycle, CreationResult
from civic_core_lib.core.escalation import EscalationSweep, SweepReport
from civic_core_lib.core.analytics import ComplaintStats, DepartmentStats, complaint_stats

__all__ = [
    "distance_meters",
    "within_radius",
    "EARTH_RADIUS_M",
    "PriorityEngine",
    "PriorityResult",
    "AssignmentEngine",
    "Assignment",
    "DepartmentDirectory",
    "NotificationType",
    "Notifier",
    "ComplaintLifecycle",
    "CreationResult",
    "EscalationSweep",
    "SweepReport",
    "ComplaintStats",
    "DepartmentStats",
    "complaint_stats",
]
