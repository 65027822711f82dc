"""Aggregate statistics for the admin dashboard."""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from civic_core_lib.models import Category, Complaint, ComplaintStatus, Department, Priority


class DepartmentStats(BaseModel):
    department_id: str
    name: str
    total: int = 0
    resolved: int = 0


class ComplaintStats(BaseModel):
    """Counts and averages over a set of complaints"""

    total: int = 0
    pending: int = Field(default=0, description="Not yet resolved")
    resolved: int = 0
    escalated: int = 0
    critical: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_department: List[DepartmentStats] = Field(default_factory=list)
    avg_resolution_hours: Optional[float] = None
    avg_feedback_rating: Optional[float] = None


def complaint_stats(
    complaints: Iterable[Complaint],
    departments: Iterable[Department] = (),
) -> ComplaintStats:
    complaints = list(complaints)
    stats = ComplaintStats(
        total=len(complaints),
        pending=sum(1 for c in complaints if c.status != ComplaintStatus.RESOLVED),
        resolved=sum(1 for c in complaints if c.status == ComplaintStatus.RESOLVED),
        escalated=sum(1 for c in complaints if c.status == ComplaintStatus.ESCALATED),
        critical=sum(1 for c in complaints if c.priority == Priority.CRITICAL),
        by_category={
            category.value: sum(1 for c in complaints if c.category == category)
            for category in Category
        },
    )

    for department in departments:
        owned = [c for c in complaints if department.owns(c.category)]
        stats.by_department.append(DepartmentStats(
            department_id=department.department_id,
            name=department.name,
            total=len(owned),
            resolved=sum(1 for c in owned if c.status == ComplaintStatus.RESOLVED),
        ))

    durations = [
        (c.resolved_at - c.created_at).total_seconds() / 3600
        for c in complaints if c.resolved_at is not None
    ]
    if durations:
        stats.avg_resolution_hours = round(sum(durations) / len(durations), 2)

    ratings = [c.feedback_rating for c in complaints if c.feedback_rating is not None]
    if ratings:
        stats.avg_feedback_rating = round(sum(ratings) / len(ratings), 2)

    return stats
