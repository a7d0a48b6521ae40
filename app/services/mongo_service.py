"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. jobs            - Job posts and squad projects (roles, modules, squads embedded)
2. candidates      - Candidate profiles
3. applications    - Candidate applications to jobs
4. ai_generations  - Cached AI output, keyed by a hash of the request

WHY embed squads in the job?
- Invite, accept and payout touch one project at a time
- A single document update is atomic, and the `revision` field lets us
  detect a concurrent writer (compare-and-set)
"""

import re
import uuid
from datetime import datetime
from typing import Optional, List, Tuple
from pymongo import DESCENDING
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS


# ============================================================
# DOCUMENT HELPERS
# ============================================================

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Stringify Mongo's `_id` so the document can go straight into a response model."""
    if doc is not None and "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def serialize_docs(docs: list) -> list:
    return [serialize_doc(doc) for doc in docs]


def new_id() -> str:
    return uuid.uuid4().hex


# ============================================================
# JOBS COLLECTION
# ============================================================

class JobService:
    """
    Handles job and squad-project documents.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["jobs"])

    def insert(self, doc: dict) -> dict:
        """
        Insert a job document. Assigns job_id and revision.

        Returns:
            The stored document
        """
        doc = dict(doc)
        doc.setdefault("job_id", new_id())
        doc["revision"] = 0
        self.collection.insert_one(doc)
        return serialize_doc(doc)

    def get(self, job_id: str) -> Optional[dict]:
        """Fetch a job by its public id."""
        doc = self.collection.find_one({"job_id": job_id})
        return serialize_doc(doc)

    def compare_and_set(self, job_id: str, expected_revision: int, fields: dict) -> bool:
        """
        Write fields only if nobody changed the job since we read it.

        Returns:
            False if the revision moved on (caller should report a conflict)
        """
        result = self.collection.update_one(
            {"job_id": job_id, "revision": expected_revision},
            {"$set": fields, "$inc": {"revision": 1}}
        )
        return result.modified_count > 0

    def delete(self, job_id: str) -> bool:
        result = self.collection.delete_one({"job_id": job_id})
        return result.deleted_count > 0

    def list_active(
        self,
        search: str = None,
        job_type: str = None,
        skill: str = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[dict], int]:
        """List Active jobs, newest first, with filters and pagination."""
        query = {"status": "Active"}
        if search:
            query["title"] = {"$regex": re.escape(search), "$options": "i"}
        if job_type:
            query["job_type"] = job_type
        if skill:
            query["tech_stack"] = {"$regex": re.escape(skill), "$options": "i"}

        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("posted_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return serialize_docs(list(cursor)), total

    def list_by_recruiter(self, recruiter_id: str) -> List[dict]:
        cursor = self.collection.find({"recruiter_id": recruiter_id}).sort("posted_at", DESCENDING)
        return serialize_docs(list(cursor))

    def find_by_member(self, member_id: str) -> List[dict]:
        """All jobs with a squad that lists this user as a member."""
        cursor = self.collection.find({"squads.members.member_id": member_id})
        return serialize_docs(list(cursor))


# ============================================================
# CANDIDATES COLLECTION
# ============================================================

class CandidateService:
    """
    Candidate profiles, keyed by the identity provider's user id.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["candidates"])

    def upsert(self, user_id: str, profile: dict) -> dict:
        doc = dict(profile)
        doc["user_id"] = user_id
        doc["updated_at"] = datetime.utcnow()
        self.collection.update_one({"user_id": user_id}, {"$set": doc}, upsert=True)
        return self.get(user_id)

    def get(self, user_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"user_id": user_id})
        return serialize_doc(doc)

    def get_many(self, user_ids: List[str]) -> List[dict]:
        cursor = self.collection.find({"user_id": {"$in": list(user_ids)}})
        return serialize_docs(list(cursor))

    def list_open_to_squads(self, limit: int) -> List[dict]:
        cursor = (
            self.collection.find({"open_to_squads": True})
            .sort("updated_at", DESCENDING)
            .limit(limit)
        )
        return serialize_docs(list(cursor))


# ============================================================
# APPLICATIONS COLLECTION
# ============================================================

class ApplicationService:
    """
    One document per (job, candidate).
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["applications"])

    def insert(self, job_id: str, candidate_id: str, cover_letter: str = None) -> dict:
        doc = {
            "application_id": new_id(),
            "job_id": job_id,
            "candidate_id": candidate_id,
            "cover_letter": cover_letter,
            "status": "Applied",
            "applied_at": datetime.utcnow(),
            "suitability_score": None,
            "suitability_analysis": None
        }
        self.collection.insert_one(doc)
        return serialize_doc(doc)

    def get(self, job_id: str, candidate_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"job_id": job_id, "candidate_id": candidate_id})
        return serialize_doc(doc)

    def list_for_job(self, job_id: str) -> List[dict]:
        cursor = self.collection.find({"job_id": job_id}).sort("applied_at", DESCENDING)
        return serialize_docs(list(cursor))

    def candidate_ids_for_job(self, job_id: str) -> List[str]:
        cursor = self.collection.find(
            {"job_id": job_id, "status": {"$ne": "Rejected"}},
            {"candidate_id": 1}
        )
        return [doc["candidate_id"] for doc in cursor]

    def update_status(self, job_id: str, candidate_id: str, status: str) -> bool:
        result = self.collection.update_one(
            {"job_id": job_id, "candidate_id": candidate_id},
            {"$set": {"status": status, "updated_at": datetime.utcnow()}}
        )
        return result.matched_count > 0

    def set_suitability(self, job_id: str, candidate_id: str, score: float, analysis: str) -> bool:
        result = self.collection.update_one(
            {"job_id": job_id, "candidate_id": candidate_id},
            {"$set": {
                "suitability_score": score,
                "suitability_analysis": analysis,
                "assessed_at": datetime.utcnow()
            }}
        )
        return result.matched_count > 0

    def delete_for_job(self, job_id: str) -> int:
        result = self.collection.delete_many({"job_id": job_id})
        return result.deleted_count


# ============================================================
# AI GENERATION CACHE
# Never pay for the same prompt twice
# ============================================================

class GenerationCacheService:
    """
    Caches validated AI output by (kind, input_hash).
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["ai_generations"])

    def get(self, kind: str, input_hash: str) -> Optional[dict]:
        doc = self.collection.find_one({"kind": kind, "input_hash": input_hash})
        if doc:
            return doc.get("output")
        return None

    def store(self, kind: str, input_hash: str, input_data: dict, output: dict) -> None:
        self.collection.update_one(
            {"kind": kind, "input_hash": input_hash},
            {"$set": {
                "kind": kind,
                "input_hash": input_hash,
                "input": input_data,
                "output": output,
                "created_at": datetime.utcnow()
            }},
            upsert=True
        )
