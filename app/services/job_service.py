"""
Job Posting Service

Turns validated request bodies into job documents and guards ownership.
Budget split: every job budget is divided into a main budget (module and
task payouts) and a compensation pool (blocker compensation).
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException

from app.core.config import get_settings
from app.services.mongo_service import JobService, ApplicationService
from app.schemas.schemas import JobCreate, JobUpdate
from app.utils.money import split_budget, to_cents

settings = get_settings()
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "timeline", "tech_stack")
# Set by the server only; the job form can't move a job out of these
FINISHED_JOB_STATES = ("Completed", "Closed")


def ensure_job_owner(user: Optional[dict], job: dict):
    """403 unless the authenticated recruiter posted this job. No-op when auth is off."""
    if user is not None and job.get("recruiter_id") != user["user_id"]:
        raise HTTPException(status_code=403, detail="Job not found or access denied")


def save_job(jobs: JobService, job: dict, fields: dict):
    """Compare-and-set write; 409 when another request got there first."""
    fields = dict(fields, updated_at=datetime.utcnow())
    if not jobs.compare_and_set(job["job_id"], job["revision"], fields):
        logger.warning("Revision conflict on job %s", job["job_id"])
        raise HTTPException(status_code=409, detail="Project was modified concurrently, please retry")

def validate_job_fields(data: JobCreate):
    """Required fields and task payouts vs budget."""
    for field in REQUIRED_FIELDS:
        if not str(getattr(data, field) or "").strip():
            raise HTTPException(status_code=400, detail="Please fill in all required fields.")

    budget_cents = to_cents(data.budget)
    task_cents = sum(to_cents(t.payout) for t in data.tasks)
    if data.budget is not None and task_cents > budget_cents:
        raise HTTPException(status_code=400, detail="Task payouts exceed the job budget")


def job_form_fields(data: JobCreate) -> dict:
    """Fields that come from the job form, with the budget split computed."""
    main_budget, compensation_budget = split_budget(data.budget or 0, settings.compensation_share)
    return {
        "title": data.title.strip(),
        "description": data.description.strip(),
        "timeline": data.timeline.strip(),
        "job_type": data.job_type.value if data.job_type else None,
        "tech_stack": data.tech_stack.strip(),
        "budget": data.budget,
        "main_budget": main_budget,
        "compensation_budget": compensation_budget,
        "deliverables": data.deliverables,
        "blind_hiring": data.blind_hiring,
        "tasks": [
            {"description": t.description.strip(), "payout": t.payout}
            for t in data.tasks if t.description.strip()
        ],
        "deadline": data.deadline,
        "status": data.status.value,
    }


def resolve_recruiter_id(user: Optional[dict], requested: Optional[str]) -> Optional[str]:
    """The token decides who posts; a mismatching recruiterId in the body is refused."""
    if user is None:
        return requested
    if requested and requested != user["user_id"]:
        raise HTTPException(status_code=403, detail="recruiterId does not match the signed-in user")
    return user["user_id"]


class JobPostingService:
    """
    Create, update and delete job posts.
    """

    def __init__(self):
        self.jobs = JobService()
        self.applications = ApplicationService()

    def get_or_404(self, job_id: str) -> dict:
        job = self.jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def new_job_document(self, data: JobCreate, user: Optional[dict]) -> dict:
        validate_job_fields(data)
        now = datetime.utcnow()
        doc = job_form_fields(data)
        doc.update({
            "recruiter_id": resolve_recruiter_id(user, data.recruiter_id),
            "compensation_used": 0.0,
            "posted_at": now,
            "updated_at": now,
            "is_squad_project": False,
            "roles": [],
            "modules": [],
            "squads": [],
            "active_squad_id": None
        })
        return doc

    def post_job(self, data: JobCreate, user: Optional[dict]) -> dict:
        job = self.jobs.insert(self.new_job_document(data, user))
        logger.info("Job %s posted by %s (%s)", job["job_id"], job["recruiter_id"], job["status"])
        return job

    def update_job(self, data: JobUpdate, user: Optional[dict]) -> dict:
        """
        Re-apply the job form. The budget split is recomputed, so the new
        budget must still cover module payouts and compensation already paid.
        """
        job = self.get_or_404(data.job_id)
        ensure_job_owner(user, job)
        validate_job_fields(data)

        fields = job_form_fields(data)
        if job["status"] in FINISHED_JOB_STATES:
            del fields["status"]
        if job.get("is_squad_project"):
            module_cents = sum(to_cents(m.get("payout")) for m in job.get("modules", []))
            if module_cents > to_cents(fields["main_budget"]):
                raise HTTPException(status_code=400, detail="Module payouts exceed the main budget")
        if to_cents(fields["compensation_budget"]) < to_cents(job.get("compensation_used")):
            raise HTTPException(status_code=400, detail="Budget is below the compensation already paid")

        save_job(self.jobs, job, fields)
        logger.info("Job %s updated", data.job_id)
        return self.jobs.get(data.job_id)

    def delete_job(self, job_id: str, user: Optional[dict]) -> None:
        job = self.get_or_404(job_id)
        ensure_job_owner(user, job)
        if any(s.get("status") == "Active" for s in job.get("squads", [])):
            raise HTTPException(status_code=409, detail="Job has an active squad")
        self.jobs.delete(job_id)
        self.applications.delete_for_job(job_id)
        logger.info("Job %s deleted", job_id)


def get_job_posting_service() -> JobPostingService:
    """Get job posting service instance."""
    return JobPostingService()
