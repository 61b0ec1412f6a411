"""
Notification and Activity Log Services

NotificationService - in-app notifications shown on the applicant dashboard
ActivityLogger      - audit trail of everything that happens to an application

Notifications are records only; nothing is e-mailed or texted.
Activity log writes never fail the request that triggered them.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any
from pymongo import DESCENDING
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import serialize_doc, serialize_docs, parse_object_id, NEWEST_FIRST

logger = logging.getLogger(__name__)


STATUS_MESSAGES = {
    "Under Review": "Your application is now under review by our team.",
    "Document Verification": "Your documents are being verified.",
    "Interview Scheduled": "An interview has been scheduled for your application.",
    "Approved": "Congratulations! Your scholarship application has been approved.",
    "Rejected": "Your application has been reviewed. Please check your dashboard for details.",
}

DOCUMENT_STATUS_MESSAGES = {
    "verified": "Your {slot} has been verified and approved.",
    "rejected": "Your {slot} needs to be re-uploaded. Please check the requirements.",
    "uploaded": "Your {slot} is currently under review.",
}


# ============================================================
# NOTIFICATIONS
# ============================================================

class NotificationService:
    """Creates and reads in-app notifications."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["notifications"])

    def create(self, user_id: int, type: str, title: str, message: str,
               priority: str = "medium", application_id: Optional[str] = None) -> dict:
        doc = {
            "user_id": user_id,
            "type": type,
            "title": title,
            "message": message,
            "priority": priority,
            "is_read": False,
            "metadata": {"application_id": application_id} if application_id else {},
            "created_at": datetime.utcnow()
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    # ---------- typed helpers used by the routes ----------

    def application_submitted(self, user_id: int, application_id: str) -> dict:
        return self.create(
            user_id, "application_submitted",
            "Application Submitted Successfully",
            "Your scholarship application has been submitted and is being reviewed.",
            "medium", application_id
        )

    def status_changed(self, user_id: int, application_id: str, new_status: str) -> dict:
        if new_status == "Approved":
            type_, priority = "scholarship_approved", "high"
        elif new_status == "Rejected":
            type_, priority = "scholarship_rejected", "urgent"
        else:
            type_, priority = "status_change", "medium"
        message = STATUS_MESSAGES.get(
            new_status, f"Your application status has been updated to {new_status}."
        )
        return self.create(
            user_id, type_, f"Application Status: {new_status}",
            message, priority, application_id
        )

    def documents_uploaded(self, user_id: int, application_id: str, slots: List[str]) -> dict:
        return self.create(
            user_id, "document_uploaded",
            "Documents Uploaded Successfully",
            f"Your documents ({', '.join(slots)}) have been uploaded and are being reviewed.",
            "medium", application_id
        )

    def document_status(self, user_id: int, application_id: str, slot: str, status: str) -> dict:
        label = slot.replace("_", " ")
        template = DOCUMENT_STATUS_MESSAGES.get(status, "Document update for {slot}")
        return self.create(
            user_id, "document_status",
            f"Document {status.capitalize()}",
            template.format(slot=label),
            "high" if status == "rejected" else "medium",
            application_id
        )

    def interview_scheduled(self, user_id: int, application_id: str, start_time: datetime) -> dict:
        return self.create(
            user_id, "interview_scheduled",
            "Interview Scheduled",
            f"Your interview is scheduled for {start_time:%Y-%m-%d %H:%M} UTC.",
            "high", application_id
        )

    def personality_test_completed(self, user_id: int, application_id: str) -> dict:
        return self.create(
            user_id, "personality_test_completed",
            "Personality Assessment Completed",
            "Your personality assessment has been completed successfully.",
            "medium", application_id
        )

    # ---------- reads and housekeeping ----------

    def list_for_user(self, user_id: int, limit: int = 20) -> List[dict]:
        cursor = self.collection.find({"user_id": user_id}).sort(NEWEST_FIRST).limit(limit)
        return serialize_docs(cursor)

    def unread_count(self, user_id: int) -> int:
        return self.collection.count_documents({"user_id": user_id, "is_read": False})

    def mark_read(self, notification_id: str, user_id: int) -> Optional[dict]:
        """Mark one notification read. Scoped to its owner; returns None otherwise."""
        oid = parse_object_id(notification_id, "notification ID")
        result = self.collection.update_one({"_id": oid, "user_id": user_id}, {"$set": {"is_read": True}})
        if result.matched_count == 0:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid}))

    def mark_all_read(self, user_id: int) -> int:
        result = self.collection.update_many({"user_id": user_id, "is_read": False}, {"$set": {"is_read": True}})
        return result.modified_count

    def delete(self, notification_id: str, user_id: int) -> bool:
        oid = parse_object_id(notification_id, "notification ID")
        return self.collection.delete_one({"_id": oid, "user_id": user_id}).deleted_count > 0

    def delete_all(self, user_id: int) -> int:
        return self.collection.delete_many({"user_id": user_id}).deleted_count


# ============================================================
# ACTIVITY LOG
# ============================================================

ACTIVITY_TITLES = {
    "application_submitted": "Application Submitted",
    "application_updated": "Application Updated",
    "document_uploaded": "Document Uploaded",
    "document_deleted": "Documents Deleted",
    "document_verified": "Document Reviewed",
    "personality_test_started": "Personality Test Started",
    "personality_test_completed": "Personality Test Completed",
    "personality_test_stopped": "Personality Test Stopped",
    "status_changed": "Status Changed",
    "interview_scheduled": "Interview Scheduled",
    "application_viewed": "Application Viewed",
    "profile_updated": "Profile Updated",
}


class ActivityLogger:
    """
    Writes the per-application audit trail.

    log() swallows storage errors after logging them so a failing
    audit write never turns a successful request into a 500.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["activity_logs"])

    def log(self, user_id: int, activity_type: str, description: str,
            application_id: Optional[str] = None, status: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None, title: Optional[str] = None,
            is_system_generated: bool = True) -> Optional[dict]:
        doc = {
            "user_id": user_id,
            "application_id": application_id,
            "activity_type": activity_type,
            "title": title or ACTIVITY_TITLES.get(activity_type, activity_type),
            "description": description,
            "status": status,
            "metadata": metadata or {},
            "is_system_generated": is_system_generated,
            "admin_notes": None,
            "timestamp": datetime.utcnow()
        }
        try:
            result = self.collection.insert_one(doc)
        except Exception:
            logger.exception("Failed to log %s for user %s", activity_type, user_id)
            return None
        doc["_id"] = result.inserted_id
        logger.debug("Logged %s for user %s", activity_type, user_id)
        return serialize_doc(doc)

    def history_for_user(self, user_id: int, limit: int = 50) -> List[dict]:
        cursor = self.collection.find({"user_id": user_id}).sort([("timestamp", DESCENDING), ("_id", DESCENDING)]).limit(limit)
        return serialize_docs(cursor)

    def history_for_application(self, application_id: str, limit: int = 100) -> List[dict]:
        cursor = self.collection.find({"application_id": application_id}).sort([("timestamp", DESCENDING), ("_id", DESCENDING)]).limit(limit)
        return serialize_docs(cursor)

    def set_admin_notes(self, log_id: str, notes: str) -> Optional[dict]:
        oid = parse_object_id(log_id, "log ID")
        result = self.collection.update_one({"_id": oid}, {"$set": {"admin_notes": notes}})
        if result.matched_count == 0:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid}))