"""
MongoDB Connection Utility

MongoDB stores:
- Application forms (nested family/education/organization arrays)
- Document upload metadata per application
- Personality test templates, sessions and answers
- Interviews, evaluations, panelists and endorsement forms
- In-app notifications and the application activity log

WHY MongoDB for these?
- Application forms are deeply nested and vary between scholarship types
- Each record is self-contained and read as a whole by the dashboards
- Users, roles and permissions stay relational in PostgreSQL
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the nas_docs database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def set_mongo_client(client: MongoClient):
    """Swap the global client (used by tests to inject an in-memory client)."""
    global _client, _db
    _client = client
    _db = None


def get_collection(name: str) -> Collection:
    """Get a specific collection. Use the COLLECTIONS constants for names."""
    db = get_mongo_db()
    return db[name]


def check_mongo_connection() -> bool:
    """
    Check if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "applications": "application_forms",
    "documents": "document_uploads",
    "test_templates": "personality_test_templates",
    "tests": "personality_tests",
    "test_answers": "personality_test_answers",
    "interviews": "interviews",
    "evaluations": "evaluations",
    "panelists": "panelists",
    "approval_forms": "approval_forms",
    "notifications": "notifications",
    "activity_logs": "activity_logs",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # One application per applicant
    db[COLLECTIONS["applications"]].create_index("user_id", unique=True)
    db[COLLECTIONS["applications"]].create_index("status")
    db[COLLECTIONS["applications"]].create_index("type_of_scholarship")
    db[COLLECTIONS["applications"]].create_index("approvals_summary.interviewed_by")

    # One document set and one interview per application
    db[COLLECTIONS["documents"]].create_index("application_id", unique=True)
    db[COLLECTIONS["interviews"]].create_index("application_id", unique=True)
    db[COLLECTIONS["interviews"]].create_index("interviewer")

    db[COLLECTIONS["test_templates"]].create_index("type")
    db[COLLECTIONS["tests"]].create_index("application_id")
    db[COLLECTIONS["test_answers"]].create_index([
        ("application_id", ASCENDING),
        ("question_id", ASCENDING)
    ], unique=True)

    db[COLLECTIONS["evaluations"]].create_index([
        ("evaluatee_user", ASCENDING),
        ("created_at", DESCENDING)
    ])
    db[COLLECTIONS["panelists"]].create_index("evaluator_user")
    db[COLLECTIONS["approval_forms"]].create_index("application_id")

    db[COLLECTIONS["notifications"]].create_index([
        ("user_id", ASCENDING),
        ("created_at", DESCENDING)
    ])

    db[COLLECTIONS["activity_logs"]].create_index([
        ("user_id", ASCENDING),
        ("timestamp", DESCENDING)
    ])
    db[COLLECTIONS["activity_logs"]].create_index([
        ("application_id", ASCENDING),
        ("timestamp", DESCENDING)
    ])

    logger.info("MongoDB indexes created successfully")
