"""
Hiring Service - applications, blind hiring and suitability scoring.

Blind hiring hides who an applicant is until the recruiter hires them:
name, photo, resume link, email and education are withheld.
"""

import logging
from typing import List, Optional

from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from app.services.gemini_client import get_gemini_client, GeminiClient
from app.services.mongo_service import JobService, CandidateService, ApplicationService
from app.services.matching_service import (
    compute_skill_match_percentage, blend_suitability, clamp_score, split_skills
)
from app.services.job_service import ensure_job_owner

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous Candidate"
REDACTED_FIELDS = ("first_name", "last_name", "email", "image_url", "resume_url")


def display_name(candidate: dict) -> str:
    parts = [candidate.get("first_name"), candidate.get("last_name")]
    return " ".join(p for p in parts if p) or "Unnamed Candidate"


def build_applicant(application: dict, candidate: dict, blind_hiring: bool) -> dict:
    """
    Merge an application with the candidate's profile.
    Redacts identity unless the job is not blind or the candidate is hired.
    """
    applicant = {
        "candidate_id": application["candidate_id"],
        "display_name": display_name(candidate),
        "first_name": candidate.get("first_name"),
        "last_name": candidate.get("last_name"),
        "email": candidate.get("email"),
        "image_url": candidate.get("image_url"),
        "resume_url": candidate.get("resume_url"),
        "experience_level": candidate.get("experience_level"),
        "summary": candidate.get("summary"),
        "skills": candidate.get("skills", []),
        "work_experience": candidate.get("work_experience", []),
        "education": candidate.get("education", []),
        "status": application["status"],
        "cover_letter": application.get("cover_letter"),
        "applied_at": application["applied_at"],
        "suitability_score": application.get("suitability_score"),
        "suitability_analysis": application.get("suitability_analysis"),
        "is_redacted": False
    }

    if blind_hiring and application["status"] != "Hired":
        for field in REDACTED_FIELDS:
            applicant[field] = None
        applicant["display_name"] = ANONYMOUS_NAME
        applicant["education"] = []
        applicant["is_redacted"] = True

    return applicant


class HiringService:
    """
    Applications for regular (non-squad) jobs, and the applicant view recruiters see.
    """

    def __init__(self):
        self.jobs = JobService()
        self.candidates = CandidateService()
        self.applications = ApplicationService()

    def _job_or_404(self, job_id: str) -> dict:
        job = self.jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def _application_or_404(self, job_id: str, candidate_id: str) -> dict:
        application = self.applications.get(job_id, candidate_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        return application

    def apply(self, job_id: str, candidate_id: str, cover_letter: str = None) -> dict:
        """Apply to a job. Active jobs only, once per candidate."""
        job = self._job_or_404(job_id)
        if job["status"] != "Active":
            raise HTTPException(status_code=400, detail="Job is not accepting applications")

        if not self.candidates.get(candidate_id):
            raise HTTPException(status_code=404, detail="Candidate profile not found. Create profile first.")

        if self.applications.get(job_id, candidate_id):
            raise HTTPException(status_code=400, detail="Already applied to this job")

        try:
            application = self.applications.insert(job_id, candidate_id, cover_letter)
        except DuplicateKeyError:
            # a concurrent apply won; the unique index keeps one application
            raise HTTPException(status_code=400, detail="Already applied to this job")
        logger.info("Candidate %s applied to job %s", candidate_id, job_id)
        return application

    def list_applicants(self, job_id: str, user: Optional[dict]) -> List[dict]:
        job = self._job_or_404(job_id)
        ensure_job_owner(user, job)

        applications = self.applications.list_for_job(job_id)
        profiles = {
            c["user_id"]: c
            for c in self.candidates.get_many([a["candidate_id"] for a in applications])
        }
        return [
            build_applicant(a, profiles.get(a["candidate_id"], {}), job.get("blind_hiring", False))
            for a in applications
        ]

    def update_status(self, job_id: str, candidate_id: str, status: str, user: Optional[dict]) -> dict:
        job = self._job_or_404(job_id)
        ensure_job_owner(user, job)
        self._application_or_404(job_id, candidate_id)

        self.applications.update_status(job_id, candidate_id, status)
        logger.info("Application %s/%s -> %s", job_id, candidate_id, status)

        application = self.applications.get(job_id, candidate_id)
        candidate = self.candidates.get(candidate_id) or {}
        return build_applicant(application, candidate, job.get("blind_hiring", False))


class SuitabilityService:
    """
    AI suitability score for one applicant, blended with skill overlap.
    """

    def __init__(self):
        self.ai_client: GeminiClient = get_gemini_client()
        self.hiring = HiringService()

    def assess(self, job_id: str, candidate_id: str, user: Optional[dict]) -> dict:
        job = self.hiring._job_or_404(job_id)
        ensure_job_owner(user, job)
        self.hiring._application_or_404(job_id, candidate_id)

        candidate = self.hiring.candidates.get(candidate_id)
        if not candidate:
            raise HTTPException(status_code=404, detail="Candidate profile not found")

        skill_match_pct = compute_skill_match_percentage(
            split_skills(candidate.get("skills")),
            split_skills(job.get("tech_stack"))
        )

        result = self.ai_client.assess_suitability(job, candidate)
        if not isinstance(result, dict):
            result = {}
        ai_score = clamp_score(result.get("score"))
        analysis = str(result.get("analysis") or "").strip() or "No analysis provided."

        score = blend_suitability(ai_score, skill_match_pct)
        self.hiring.applications.set_suitability(job_id, candidate_id, score, analysis)
        logger.info("Assessed %s for job %s: %.1f", candidate_id, job_id, score)

        return {
            "candidate_id": candidate_id,
            "suitability_score": score,
            "suitability_analysis": analysis,
            "ai_score": ai_score if ai_score is not None else 0.0,
            "skill_match_pct": round(skill_match_pct, 2)
        }


def get_hiring_service() -> HiringService:
    """Get hiring service instance."""
    return HiringService()


def get_suitability_service() -> SuitabilityService:
    """Get suitability service instance."""
    return SuitabilityService()
