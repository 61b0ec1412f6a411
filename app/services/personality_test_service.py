"""
Personality Test Service

Flow:
1. Staff maintain a bank of question templates, each tagged with a category (type)
2. Applicant starts a test: one random question per category, 15 minute limit
3. Applicant answers questions one at a time
4. Test completes when every question is answered, the applicant stops it,
   or the time limit passes (closed lazily the next time the test is touched)
5. Staff record a score and a risk level
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Optional, List, Tuple
from bson import ObjectId
from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from app.core.config import get_settings
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import serialize_doc, serialize_docs, parse_object_id, paginate

settings = get_settings()
logger = logging.getLogger(__name__)


def is_expired(test: dict, now: Optional[datetime] = None) -> bool:
    """True once start_time + time_limit_seconds has passed."""
    now = now or datetime.utcnow()
    deadline = test["start_time"] + timedelta(seconds=test["time_limit_seconds"])
    return now > deadline


# ============================================================
# QUESTION TEMPLATES
# ============================================================

class TemplateService:
    """CRUD for the question bank."""

    def __init__(self):
        self.collection = get_collection(COLLECTIONS["test_templates"])

    def create(self, type: str, question: str, created_by: int) -> dict:
        now = datetime.utcnow()
        doc = {"type": type, "question": question, "created_by": created_by,
               "created_at": now, "updated_at": now}
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def list(self, type: Optional[str] = None) -> List[dict]:
        query = {"type": type} if type else {}
        return serialize_docs(self.collection.find(query).sort("type", 1))

    def get(self, template_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"_id": parse_object_id(template_id, "template ID")}))

    def update(self, template_id: str, fields: dict) -> Optional[dict]:
        fields["updated_at"] = datetime.utcnow()
        self.collection.update_one({"_id": parse_object_id(template_id, "template ID")}, {"$set": fields})
        return self.get(template_id)

    def delete(self, template_id: str) -> bool:
        return self.collection.delete_one({"_id": parse_object_id(template_id, "template ID")}).deleted_count > 0

    def pick_one_per_category(self) -> List[dict]:
        """One random question from each distinct category."""
        picked = []
        for category in sorted(self.collection.distinct("type")):
            candidates = list(self.collection.find({"type": category}))
            if candidates:
                picked.append(random.choice(candidates))
        return serialize_docs(picked)


# ============================================================
# TEST SESSIONS AND ANSWERS
# ============================================================

class PersonalityTestService:
    """
    Test sessions are keyed by application_id and user_id.
    Answers are unique per (application_id, question_id).
    """

    def __init__(self):
        self.tests = get_collection(COLLECTIONS["tests"])
        self.answers = get_collection(COLLECTIONS["test_answers"])
        self.templates = TemplateService()

    def _close(self, test: dict, end_time: Optional[datetime] = None) -> dict:
        end_time = end_time or datetime.utcnow()
        self.tests.update_one({"_id": test["_id"]}, {"$set": {"end_time": end_time}})
        test["end_time"] = end_time
        return test

    def _close_if_expired(self, test: Optional[dict]) -> Optional[dict]:
        if test and test.get("end_time") is None and is_expired(test):
            logger.info("Personality test %s expired; closing", test["_id"])
            # Expired tests end at their deadline, not at the time we noticed
            deadline = test["start_time"] + timedelta(seconds=test["time_limit_seconds"])
            return self._close(test, deadline)
        return test

    def get_raw_for_user(self, user_id: int) -> Optional[dict]:
        test = self.tests.find_one({"user_id": user_id}, sort=[("start_time", DESCENDING)])
        return self._close_if_expired(test)

    def start(self, application: dict) -> Tuple[dict, List[dict]]:
        """
        Start a test for an application.

        Raises:
            HTTPException 409 if an unexpired test is running,
            403 if a test was already completed,
            404 if the question bank is empty.
        """
        existing = self.tests.find_one({"application_id": application["id"], "end_time": None})
        existing = self._close_if_expired(existing)
        if existing and existing.get("end_time") is None:
            raise HTTPException(status_code=409, detail="An active personality test already exists")

        if self.tests.find_one({"application_id": application["id"], "end_time": {"$ne": None}}):
            raise HTTPException(status_code=403, detail="User has already completed a personality test")

        questions = self.templates.pick_one_per_category()
        if not questions:
            raise HTTPException(status_code=404, detail="No questions available in template")

        doc = {
            "application_id": application["id"],
            "user_id": application["user_id"],
            "questions": [ObjectId(q["id"]) for q in questions],
            "answers": [],
            "start_time": datetime.utcnow(),
            "end_time": None,
            "time_limit_seconds": settings.personality_test_time_limit_seconds,
            "score": None,
            "risk_level_indicator": "Low",
            "created_at": datetime.utcnow()
        }
        result = self.tests.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc), questions

    def answer(self, user_id: int, test_id: str, question_id: str, answer: str) -> dict:
        """
        Record one answer; completes the test when every question is answered.

        Returns:
            {"answered": int, "total_questions": int, "completed": bool, "test": dict}
        """
        test = self.tests.find_one({"_id": parse_object_id(test_id, "test ID")})
        if not test:
            raise HTTPException(status_code=404, detail="Personality test not found")
        if test["user_id"] != user_id:
            raise HTTPException(status_code=403, detail="This personality test belongs to another user")

        test = self._close_if_expired(test)
        if test.get("end_time") is not None:
            raise HTTPException(status_code=403, detail="Test is already completed or past deadline")

        qid = parse_object_id(question_id, "question ID")
        if qid not in test["questions"]:
            raise HTTPException(status_code=400, detail="Question is not part of this test")

        answer_doc = {
            "application_id": test["application_id"],
            "test_id": test["_id"],
            "question_id": qid,
            "answer": answer,
            "created_at": datetime.utcnow()
        }
        if self.answers.find_one({"application_id": test["application_id"], "question_id": qid}):
            raise HTTPException(status_code=409, detail="Question already answered")
        try:
            result = self.answers.insert_one(answer_doc)
        except DuplicateKeyError:
            raise HTTPException(status_code=409, detail="Question already answered")

        self.tests.update_one({"_id": test["_id"]}, {"$push": {"answers": result.inserted_id}})
        answered = len(test["answers"]) + 1
        total = len(test["questions"])
        completed = answered >= total
        if completed:
            self._close(test)
        return {"answered": answered, "total_questions": total, "completed": completed,
                "test": serialize_doc(test)}

    def stop(self, user_id: int) -> Optional[dict]:
        """End the caller's running test. Returns None if nothing is running."""
        test = self.get_raw_for_user(user_id)
        if not test or test.get("end_time") is not None:
            return None
        return serialize_doc(self._close(test))

    def with_answers(self, test: dict) -> dict:
        """Serialize a test and join its answers to their questions."""
        out = serialize_doc(test)
        rows = list(self.answers.find({"test_id": test["_id"]}).sort([("created_at", 1), ("_id", 1)]))
        question_ids = [row["question_id"] for row in rows]
        questions = {
            q["_id"]: q for q in self.templates.collection.find({"_id": {"$in": question_ids}})
        }
        out["answers"] = []
        for row in rows:
            question = questions.get(row["question_id"], {})
            out["answers"].append({
                "id": str(row["_id"]),
                "question_id": str(row["question_id"]),
                "type": question.get("type"),
                "question": question.get("question"),
                "answer": row["answer"],
                "created_at": row["created_at"]
            })
        return out

    def list(self, page: int, limit: int) -> Tuple[List[dict], int]:
        docs, total = paginate(self.tests, {}, page, limit, sort=[("start_time", DESCENDING)])
        return [self.with_answers(self._close_if_expired(doc)) for doc in docs], total

    def set_result(self, test_id: str, fields: dict) -> Optional[dict]:
        oid = parse_object_id(test_id, "test ID")
        if fields:
            self.tests.update_one({"_id": oid}, {"$set": fields})
        test = self.tests.find_one({"_id": oid})
        return self.with_answers(test) if test else None

    def delete_for_user(self, user_id: int) -> int:
        """Delete every test of a user and their answers."""
        tests = list(self.tests.find({"user_id": user_id}, {"_id": 1}))
        test_ids = [t["_id"] for t in tests]
        self.answers.delete_many({"test_id": {"$in": test_ids}})
        return self.tests.delete_many({"user_id": user_id}).deleted_count

    def delete_for_application(self, application_id: str) -> int:
        self.answers.delete_many({"application_id": application_id})
        return self.tests.delete_many({"application_id": application_id}).deleted_count
