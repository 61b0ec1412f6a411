"""
Application Status Service

Every status change goes through change_status(), which:
1. Checks the transition table
2. Appends to status_history
3. Writes a status_changed activity log entry
4. Notifies the applicant

Transition table:
    Pending               -> Under Review | Document Verification | Rejected
    Under Review          -> Document Verification | Rejected
    Document Verification -> Under Review | Interview Scheduled | Rejected
    Interview Scheduled   -> Document Verification | Approved | Rejected
    Approved, Rejected    -> terminal
"""

import logging
from datetime import datetime
from typing import Optional

from app.services.mongo_service import ApplicationService
from app.services.notification_service import NotificationService, ActivityLogger

logger = logging.getLogger(__name__)

PENDING = "Pending"
UNDER_REVIEW = "Under Review"
DOCUMENT_VERIFICATION = "Document Verification"
INTERVIEW_SCHEDULED = "Interview Scheduled"
APPROVED = "Approved"
REJECTED = "Rejected"

ALLOWED_TRANSITIONS = {
    PENDING: {UNDER_REVIEW, DOCUMENT_VERIFICATION, REJECTED},
    UNDER_REVIEW: {DOCUMENT_VERIFICATION, REJECTED},
    DOCUMENT_VERIFICATION: {UNDER_REVIEW, INTERVIEW_SCHEDULED, REJECTED},
    INTERVIEW_SCHEDULED: {DOCUMENT_VERIFICATION, APPROVED, REJECTED},
    APPROVED: set(),
    REJECTED: set(),
}

# Applicants may edit their own form only in these states
EDITABLE_STATUSES = {PENDING, DOCUMENT_VERIFICATION}


class InvalidStatusTransition(ValueError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from '{current}' to '{target}'")


def can_transition(current: str, target: str) -> bool:
    return target == current or target in ALLOWED_TRANSITIONS.get(current, set())


def change_status(application: dict, new_status: str, changed_by: int,
                  remarks: Optional[str] = None) -> dict:
    """
    Move an application to new_status.

    Args:
        application: serialized application (must carry id, user_id, status)
        new_status: target status string
        changed_by: user_id of the actor

    Returns:
        The updated application. Unchanged if new_status equals the current one.

    Raises:
        InvalidStatusTransition if the table does not allow the move.
    """
    current = application["status"]
    if new_status == current:
        return application
    if not can_transition(current, new_status):
        raise InvalidStatusTransition(current, new_status)

    applications = ApplicationService()
    applications.set_status(application["id"], new_status, {
        "from_status": current,
        "to_status": new_status,
        "changed_by": changed_by,
        "remarks": remarks,
        "changed_at": datetime.utcnow()
    })
    logger.info("Application %s: %s -> %s by user %s", application["id"], current, new_status, changed_by)

    ActivityLogger().log(
        user_id=application["user_id"],
        activity_type="status_changed",
        description=f"Status changed from {current} to {new_status}",
        application_id=application["id"],
        status=new_status,
        metadata={"from": current, "to": new_status, "changed_by": changed_by, "remarks": remarks}
    )
    NotificationService().status_changed(application["user_id"], application["id"], new_status)

    return applications.get_by_id(application["id"])


def dashboard_stats() -> dict:
    """Per-status counts for the OAS dashboard cards."""
    counts = ApplicationService().count_by_status()
    return {
        "new_applications": counts.get(PENDING, 0),
        "under_review": counts.get(UNDER_REVIEW, 0),
        "document_verification": counts.get(DOCUMENT_VERIFICATION, 0),
        "scheduled_interviews": counts.get(INTERVIEW_SCHEDULED, 0),
        "active_scholars": counts.get(APPROVED, 0),
        "rejected": counts.get(REJECTED, 0),
        "total_applications": sum(counts.values())
    }
