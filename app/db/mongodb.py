"""
MongoDB access for the document side of the marketplace.

Stored here:
- Jobs and squad projects, with roles, modules and squads embedded
- Candidate profiles and applications
- Cached AI generations (plans, milestones, job options)

A squad project is read and written as one document (roles -> modules ->
squads -> members), so invite, accept and payout never need a join.
"""
import logging

from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.collection import Collection
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Process-wide handles; pymongo pools connections behind a single client
_client: MongoClient = None
_db: Database = None

COLLECTIONS = {
    "jobs": "jobs",
    "candidates": "candidates",
    "applications": "applications",
    "ai_generations": "ai_generations"
}

# (collection, keys, unique)
INDEXES = [
    ("jobs", [("job_id", ASCENDING)], True),
    ("jobs", [("recruiter_id", ASCENDING), ("posted_at", DESCENDING)], False),
    ("jobs", [("status", ASCENDING), ("posted_at", DESCENDING)], False),
    # user-invites scans squads by member
    ("jobs", [("squads.members.member_id", ASCENDING)], False),
    ("candidates", [("user_id", ASCENDING)], True),
    ("candidates", [("open_to_squads", ASCENDING), ("updated_at", DESCENDING)], False),
    # one application per candidate per job
    ("applications", [("job_id", ASCENDING), ("candidate_id", ASCENDING)], True),
    ("ai_generations", [("kind", ASCENDING), ("input_hash", ASCENDING)], True),
]


def get_mongo_client() -> MongoClient:
    """Lazily create the shared client."""
    global _client
    if _client is None:
        _client = MongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            appname="connectx"
        )
    return _client


def get_mongo_db() -> Database:
    global _db
    if _db is None:
        _db = get_mongo_client()[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Collection by name; see COLLECTIONS for the ones in use."""
    return get_mongo_db()[name]


def test_mongo_connection() -> bool:
    """Ping the server. False (and a warning) when it can't be reached."""
    try:
        get_mongo_client().admin.command("ping")
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False
    return True


def init_mongo_indexes():
    """Create every index in INDEXES. Safe to run on each startup."""
    db = get_mongo_db()
    for collection, keys, unique in INDEXES:
        db[collection].create_index(keys, unique=unique)
    logger.info("MongoDB indexes ready (%d)", len(INDEXES))
