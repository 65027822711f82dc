"""Fire-and-forget notifications for lifecycle events."""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from civic_core_lib.models import Complaint, ComplaintStatus
from civic_core_lib.repositories.base import NotificationSink

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Notification kinds delivered to citizens and officers"""

    COMPLAINT_SUBMITTED = "complaint_submitted"
    COMPLAINT_ASSIGNED = "complaint_assigned"
    STATUS_UPDATE = "status_update"
    COMPLAINT_RESOLVED = "complaint_resolved"
    FEEDBACK_REQUEST = "feedback_request"
    SYSTEM = "system"


STATUS_MESSAGES = {
    ComplaintStatus.SUBMITTED: "Your complaint has been submitted",
    ComplaintStatus.ASSIGNED: "Your complaint has been assigned to an officer",
    ComplaintStatus.IN_PROGRESS: "Work has started on your complaint",
    ComplaintStatus.RESOLVED: "Your complaint has been resolved!",
    ComplaintStatus.ESCALATED: "Your complaint has been escalated for priority attention",
}


class Notifier:
    """Wraps a NotificationSink; delivery failures are logged, never raised."""

    def __init__(self, sink: Optional[NotificationSink]):
        self.sink = sink

    async def send(
        self,
        user_id: Optional[str],
        type: NotificationType,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if self.sink is None or not user_id:
            return False
        try:
            await self.sink.notify(user_id, type.value, message, data or {})
            return True
        except Exception as exc:
            logger.warning(f"Notification {type.value} to {user_id} failed: {exc!r}")
            return False

    async def complaint_submitted(self, complaint: Complaint) -> bool:
        return await self.send(
            complaint.user_id,
            NotificationType.COMPLAINT_SUBMITTED,
            f"Complaint {complaint.complaint_id} received",
            {"complaintId": complaint.complaint_id, "priority": complaint.priority.value},
        )

    async def officer_assigned(self, complaint: Complaint) -> bool:
        return await self.send(
            complaint.assigned_officer,
            NotificationType.COMPLAINT_ASSIGNED,
            f"New {complaint.category.value} complaint assigned to you",
            {"complaintId": complaint.complaint_id, "category": complaint.category.value},
        )

    async def status_changed(self, complaint: Complaint, old_status: ComplaintStatus) -> bool:
        new_status = complaint.status
        kind = (
            NotificationType.COMPLAINT_RESOLVED
            if new_status == ComplaintStatus.RESOLVED
            else NotificationType.STATUS_UPDATE
        )
        message = STATUS_MESSAGES.get(new_status, "Your complaint status has been updated")
        return await self.send(
            complaint.user_id,
            kind,
            message,
            {
                "complaintId": complaint.complaint_id,
                "oldStatus": old_status.value,
                "newStatus": new_status.value,
            },
        )
