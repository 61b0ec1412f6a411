"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. application_forms  - One scholarship application per applicant
2. document_uploads   - Uploaded file metadata per application
3. interviews         - One interview per application
4. evaluations        - Term-end supervisor rubric per scholar
5. panelists          - Users assigned as interview panelists
6. approval_forms     - Department head endorsements

Personality tests, notifications and activity logs have their own
service modules because they carry more behaviour than plain CRUD.

All foreign references to users are PostgreSQL user_id integers.
References between Mongo documents are ObjectId strings.
"""

import math
import re
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS


# ============================================================
# HELPERS: ObjectId handling and JSON serialization
# ============================================================

def parse_object_id(value: str, label: str = "ID") -> ObjectId:
    """Convert a path/body id into an ObjectId, 400 if malformed."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {label}: {value}")


def serialize_doc(doc: dict) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict (_id -> id)."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, list):
            out[key] = [str(v) if isinstance(v, ObjectId) else v for v in value]
        else:
            out[key] = value
    return out


def serialize_docs(docs) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# created_at ties (same millisecond) fall back to insertion order
NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def paginate(collection: Collection, query: dict, page: int, limit: int,
             sort: List[Tuple[str, int]] = None) -> Tuple[List[dict], int]:
    """Run a paged find and return (docs, total)."""
    cursor = collection.find(query)
    if sort:
        cursor = cursor.sort(sort)
    docs = list(cursor.skip((page - 1) * limit).limit(limit))
    return docs, collection.count_documents(query)


# ============================================================
# APPLICATION FORMS COLLECTION
# ============================================================

class ApplicationService:
    """
    Handles scholarship application forms.
    One form per applicant; status moves through the state machine
    in status_service, never through update().
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["applications"])

    def insert(self, user_id: int, form: dict) -> dict:
        """Insert a new application in Pending status and return it."""
        now = datetime.utcnow()
        doc = {
            **form,
            "user_id": user_id,
            "status": "Pending",
            "status_history": [],
            "approvals_summary": {"interviewed_by": []},
            "created_at": now,
            "updated_at": now
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_by_id(self, application_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"_id": parse_object_id(application_id, "application ID")})
        return serialize_doc(doc)

    def get_by_user(self, user_id: int) -> Optional[dict]:
        doc = self.collection.find_one({"user_id": user_id})
        return serialize_doc(doc)

    def update(self, application_id: str, fields: dict) -> Optional[dict]:
        """Partial update of form fields. Returns the updated form."""
        fields = {k: v for k, v in fields.items() if k not in ("status", "status_history", "user_id")}
        fields["updated_at"] = datetime.utcnow()
        self.collection.update_one(
            {"_id": parse_object_id(application_id, "application ID")},
            {"$set": fields}
        )
        return self.get_by_id(application_id)

    def set_status(self, application_id: str, status: str, history_entry: dict) -> None:
        self.collection.update_one(
            {"_id": ObjectId(application_id)},
            {
                "$set": {"status": status, "updated_at": datetime.utcnow()},
                "$push": {"status_history": history_entry}
            }
        )

    def add_interviewer(self, application_id: str, user_id: int) -> None:
        """Record a panelist in approvals_summary.interviewed_by (no duplicates)."""
        self.collection.update_one(
            {"_id": ObjectId(application_id)},
            {"$addToSet": {"approvals_summary.interviewed_by": user_id}}
        )

    def delete(self, application_id: str) -> bool:
        result = self.collection.delete_one({"_id": parse_object_id(application_id, "application ID")})
        return result.deleted_count > 0

    def list(self, page: int, limit: int, status: str = None, search: str = None,
             type_of_scholarship: str = None) -> Tuple[List[dict], int]:
        """Paged listing for the OAS review table."""
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status
        if type_of_scholarship:
            query["type_of_scholarship"] = type_of_scholarship
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [
                {"first_name": pattern},
                {"last_name": pattern},
                {"email_address": pattern}
            ]
        docs, total = paginate(self.collection, query, page, limit, sort=NEWEST_FIRST)
        return serialize_docs(docs), total

    def count_by_status(self) -> Dict[str, int]:
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        return {row["_id"]: row["count"] for row in self.collection.aggregate(pipeline)}

    def ids_with_status(self, status: str) -> List[str]:
        return [str(doc["_id"]) for doc in self.collection.find({"status": status}, {"_id": 1})]

    def get_many(self, application_ids: List[str]) -> Dict[str, dict]:
        """Batch lookup keyed by id string; malformed ids are skipped."""
        oids = [ObjectId(a) for a in application_ids if ObjectId.is_valid(a)]
        return {str(doc["_id"]): serialize_doc(doc) for doc in self.collection.find({"_id": {"$in": oids}})}


# ============================================================
# DOCUMENT UPLOADS COLLECTION
# ============================================================

DOCUMENT_SLOTS = [
    "student_picture",
    "nbi_clearance",
    "grade_report",
    "income_tax_return",
    "good_moral_certificate",
    "physical_checkup",
    "certificates",
    "home_location_sketch",
]

# Max files per slot
SLOT_LIMITS = {slot: 5 for slot in DOCUMENT_SLOTS}
SLOT_LIMITS["student_picture"] = 1
SLOT_LIMITS["certificates"] = 10


def all_slots_verified(doc: dict) -> bool:
    """True when every slot holding files has been verified."""
    populated = [slot for slot in DOCUMENT_SLOTS if doc.get(slot)]
    if not populated:
        return False
    verification = doc.get("verification", {})
    return all(verification.get(slot, {}).get("status") == "verified" for slot in populated)


class DocumentService:
    """
    Handles uploaded document metadata.
    The files themselves live under settings.upload_dir.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["documents"])

    def _present(self, doc: dict) -> Optional[dict]:
        out = serialize_doc(doc)
        if out is not None:
            out["all_verified"] = all_slots_verified(doc)
        return out

    def get_raw(self, application_id: str) -> Optional[dict]:
        return self.collection.find_one({"application_id": application_id})

    def get_by_application(self, application_id: str) -> Optional[dict]:
        return self._present(self.get_raw(application_id))

    def upsert_slots(self, application_id: str, slots: Dict[str, List[dict]],
                     user_id: int) -> Tuple[dict, List[str]]:
        """
        Replace the given slots, keep untouched ones.

        Returns:
            (updated document, file paths that were replaced and should be removed)
        """
        now = datetime.utcnow()
        existing = self.get_raw(application_id)
        replaced_paths: List[str] = []

        update: Dict[str, Any] = {"updated_at": now}
        for slot, files in slots.items():
            if existing:
                replaced_paths.extend(f["file_path"] for f in existing.get(slot, []))
            update[slot] = files
            update[f"verification.{slot}"] = {
                "status": "uploaded",
                "remarks": None,
                "verified_by": None,
                "updated_at": now
            }

        if existing:
            self.collection.update_one({"_id": existing["_id"]}, {"$set": update})
        else:
            doc = {slot: [] for slot in DOCUMENT_SLOTS}
            doc.update({
                "application_id": application_id,
                "uploaded_by": user_id,
                "verification": {},
                "created_at": now,
            })
            for key, value in update.items():
                if key.startswith("verification."):
                    doc["verification"][key.split(".", 1)[1]] = value
                else:
                    doc[key] = value
            self.collection.insert_one(doc)

        return self.get_by_application(application_id), replaced_paths

    def set_verification(self, application_id: str, slot: str, status: str,
                         remarks: Optional[str], verified_by: int) -> Optional[dict]:
        self.collection.update_one(
            {"application_id": application_id},
            {"$set": {
                f"verification.{slot}": {
                    "status": status,
                    "remarks": remarks,
                    "verified_by": verified_by,
                    "updated_at": datetime.utcnow()
                },
                "updated_at": datetime.utcnow()
            }}
        )
        return self.get_by_application(application_id)

    def delete(self, application_id: str) -> List[str]:
        """Delete the record and return every stored file path."""
        doc = self.get_raw(application_id)
        if not doc:
            return []
        paths = [f["file_path"] for slot in DOCUMENT_SLOTS for f in doc.get(slot, [])]
        self.collection.delete_one({"_id": doc["_id"]})
        return paths

    def find_by_file_path(self, file_path: str) -> Optional[dict]:
        """Find the document set that owns a stored file."""
        query = {"$or": [{f"{slot}.file_path": file_path} for slot in DOCUMENT_SLOTS]}
        return self.collection.find_one(query)


# ============================================================
# INTERVIEWS COLLECTION
# ============================================================

class InterviewService:
    """
    Handles interview scheduling. One interview per application.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["interviews"])

    def insert(self, application_id: str, interviewer: int, start_time: datetime,
               end_time: datetime, scheduled_by: int) -> dict:
        now = datetime.utcnow()
        doc = {
            "application_id": application_id,
            "interviewer": interviewer,
            "start_time": start_time,
            "end_time": end_time,
            "recommendation": None,
            "scheduled_by": scheduled_by,
            "created_at": now,
            "updated_at": now
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_by_id(self, interview_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"_id": parse_object_id(interview_id, "interview ID")})
        return serialize_doc(doc)

    def get_by_application(self, application_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"application_id": application_id}))

    def list(self, page: int, limit: int, application_ids: List[str] = None) -> Tuple[List[dict], int]:
        query = {} if application_ids is None else {"application_id": {"$in": application_ids}}
        docs, total = paginate(self.collection, query, page, limit, sort=NEWEST_FIRST)
        return serialize_docs(docs), total

    def list_for_interviewer(self, interviewer: int) -> List[dict]:
        cursor = self.collection.find({"interviewer": interviewer}).sort("start_time", 1)
        return serialize_docs(cursor)

    def update(self, interview_id: str, fields: dict) -> Optional[dict]:
        fields["updated_at"] = datetime.utcnow()
        self.collection.update_one({"_id": ObjectId(interview_id)}, {"$set": fields})
        return self.get_by_id(interview_id)

    def delete(self, interview_id: str) -> bool:
        result = self.collection.delete_one({"_id": parse_object_id(interview_id, "interview ID")})
        return result.deleted_count > 0

    def delete_by_application(self, application_id: str) -> bool:
        result = self.collection.delete_one({"application_id": application_id})
        return result.deleted_count > 0


# ============================================================
# EVALUATIONS COLLECTION
# ============================================================

TIME_KEEPING_FIELDS = [
    "excused_absences",
    "unexcused_absences",
    "late_greater_than_ten_minutes",
    "late_greater_than_one_hour",
    "failure_to_punch",
    "under_time",
]


class EvaluationService:
    """
    Handles term-end evaluations of scholars by their NAS supervisor.
    Ratings are 0-5 decimals (validated by the schemas), stored as floats.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["evaluations"])

    def insert(self, data: dict, evaluated_by: int) -> dict:
        now = datetime.utcnow()
        doc = {
            **data,
            "evaluated_by": evaluated_by,
            "time_keeping_record": {field: 0 for field in TIME_KEEPING_FIELDS},
            "created_at": now,
            "updated_at": now
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_by_id(self, evaluation_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"_id": parse_object_id(evaluation_id, "evaluation ID")})
        return serialize_doc(doc)

    def list(self, page: int, limit: int, evaluatee_ids: List[int] = None) -> Tuple[List[dict], int]:
        query = {} if evaluatee_ids is None else {"evaluatee_user": {"$in": evaluatee_ids}}
        docs, total = paginate(self.collection, query, page, limit, sort=NEWEST_FIRST)
        return serialize_docs(docs), total

    def update(self, evaluation_id: str, fields: dict) -> Optional[dict]:
        # evaluatee and time keeping have their own paths
        fields = {k: v for k, v in fields.items() if k not in ("evaluatee_user", "time_keeping_record")}
        fields["updated_at"] = datetime.utcnow()
        self.collection.update_one({"_id": parse_object_id(evaluation_id, "evaluation ID")}, {"$set": fields})
        return self.get_by_id(evaluation_id)

    def update_time_keeping(self, evaluation_id: str, counters: dict) -> Optional[dict]:
        """Merge the given counters into time_keeping_record."""
        update = {f"time_keeping_record.{k}": v for k, v in counters.items() if k in TIME_KEEPING_FIELDS}
        update["updated_at"] = datetime.utcnow()
        self.collection.update_one({"_id": parse_object_id(evaluation_id, "evaluation ID")}, {"$set": update})
        return self.get_by_id(evaluation_id)

    def delete(self, evaluation_id: str) -> bool:
        result = self.collection.delete_one({"_id": parse_object_id(evaluation_id, "evaluation ID")})
        return result.deleted_count > 0


# ============================================================
# PANELISTS COLLECTION
# ============================================================

class PanelistService:
    """Handles users assigned to interview panels."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["panelists"])

    def insert(self, evaluator_user: int, evaluation: Optional[str]) -> dict:
        now = datetime.utcnow()
        doc = {
            "evaluator_user": evaluator_user,
            "evaluation": evaluation,
            "created_at": now,
            "updated_at": now
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_by_id(self, panelist_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"_id": parse_object_id(panelist_id, "panelist ID")})
        return serialize_doc(doc)

    def list(self, page: int, limit: int, evaluator_ids: List[int] = None) -> Tuple[List[dict], int]:
        query = {} if evaluator_ids is None else {"evaluator_user": {"$in": evaluator_ids}}
        docs, total = paginate(self.collection, query, page, limit, sort=NEWEST_FIRST)
        return serialize_docs(docs), total

    def set_evaluator(self, panelist_id: str, evaluator_user: int) -> Optional[dict]:
        self.collection.update_one(
            {"_id": parse_object_id(panelist_id, "panelist ID")},
            {"$set": {"evaluator_user": evaluator_user, "updated_at": datetime.utcnow()}}
        )
        return self.get_by_id(panelist_id)

    def delete(self, panelist_id: str) -> bool:
        result = self.collection.delete_one({"_id": parse_object_id(panelist_id, "panelist ID")})
        return result.deleted_count > 0


# ============================================================
# APPROVAL FORMS COLLECTION
# ============================================================

class ApprovalFormService:
    """Department head endorsements of an application."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["approval_forms"])

    def insert(self, data: dict, department_office_head: int) -> dict:
        doc = {
            **data,
            "department_office_head": department_office_head,
            "created_at": datetime.utcnow()
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_by_application(self, application_id: str) -> Optional[dict]:
        doc = self.collection.find_one(
            {"application_id": application_id},
            sort=NEWEST_FIRST
        )
        return serialize_doc(doc)

    def delete_by_application(self, application_id: str) -> int:
        return self.collection.delete_many({"application_id": application_id}).deleted_count
