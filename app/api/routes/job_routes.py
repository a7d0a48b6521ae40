"""
Job Routes

POST /jobs/post - Create job posting (recruiter only)
POST /jobs/update - Update job posting (owner only)
GET /jobs - List Active jobs with filters
GET /jobs/recruiter/{recruiter_id} - Jobs posted by a recruiter
GET /jobs/{job_id} - Get job details
DELETE /jobs/{job_id} - Delete job (owner only)
POST /jobs/{job_id}/apply - Apply to job (candidate only)
GET /jobs/{job_id}/applicants - Applicants, redacted under blind hiring
POST /jobs/{job_id}/applicants/{candidate_id}/status - Shortlist / hire / reject
POST /jobs/{job_id}/applicants/{candidate_id}/assess - AI suitability score
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List, Optional

from app.core.auth import get_current_recruiter, get_current_candidate, ensure_same_user
from app.services.gemini_client import AIServiceError, AIResponseError
from app.services.mongo_service import JobService
from app.services.job_service import get_job_posting_service
from app.services.hiring_service import get_hiring_service, get_suitability_service
from app.schemas.schemas import (
    JobCreate, JobUpdate, JobResponse, JobListResponse, ApplicationCreate,
    ApplicationStatusUpdate, ApplicantResponse, SuitabilityResponse, MessageResponse
)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("/post", response_model=JobResponse, status_code=201)
async def post_job(job: JobCreate, user: Optional[dict] = Depends(get_current_recruiter)):
    """Create a new job posting (Active or Draft)."""
    return get_job_posting_service().post_job(job, user)


@router.post("/update", response_model=JobResponse)
async def update_job(update: JobUpdate, user: Optional[dict] = Depends(get_current_recruiter)):
    """Update a job posting. Only the owning recruiter can update."""
    return get_job_posting_service().update_job(update, user)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50, alias="pageSize"),
    search: Optional[str] = Query(None, description="Search in title"),
    job_type: Optional[str] = Query(None, alias="type"),
    skill: Optional[str] = Query(None, description="Filter by tech stack")
):
    """List Active job postings, newest first."""
    jobs, total = JobService().list_active(search, job_type, skill, page, page_size)
    return JobListResponse(jobs=jobs, total=total, page=page, page_size=page_size)


@router.get("/recruiter/{recruiter_id}", response_model=List[JobResponse])
async def list_recruiter_jobs(recruiter_id: str, user: Optional[dict] = Depends(get_current_recruiter)):
    """All jobs posted by this recruiter, drafts included."""
    ensure_same_user(user, recruiter_id)
    return JobService().list_by_recruiter(recruiter_id)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str):
    """Get details of a specific job."""
    job = JobService().get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, user: Optional[dict] = Depends(get_current_recruiter)):
    """Delete a job posting and its applications."""
    get_job_posting_service().delete_job(job_id, user)
    return MessageResponse(message="Job deleted successfully")


@router.post("/{job_id}/apply", response_model=MessageResponse, status_code=201)
async def apply_to_job(
    job_id: str,
    application: ApplicationCreate,
    candidate_id: Optional[str] = Query(None, alias="candidateId"),
    user: Optional[dict] = Depends(get_current_candidate)
):
    """Apply to a job. Candidates only. Cannot apply twice to same job."""
    if user is not None:
        candidate_id = user["user_id"]
    if not candidate_id:
        raise HTTPException(status_code=400, detail="candidateId is required")
    get_hiring_service().apply(job_id, candidate_id, application.cover_letter)
    return MessageResponse(message="Application submitted successfully")


@router.get("/{job_id}/applicants", response_model=List[ApplicantResponse])
async def list_applicants(job_id: str, user: Optional[dict] = Depends(get_current_recruiter)):
    """Applicants for a job. Identities are hidden under blind hiring until hired."""
    return get_hiring_service().list_applicants(job_id, user)


@router.post("/{job_id}/applicants/{candidate_id}/status", response_model=ApplicantResponse)
async def update_applicant_status(
    job_id: str,
    candidate_id: str,
    update: ApplicationStatusUpdate,
    user: Optional[dict] = Depends(get_current_recruiter)
):
    """Shortlist, hire or reject an applicant."""
    return get_hiring_service().update_status(job_id, candidate_id, update.status.value, user)


@router.post("/{job_id}/applicants/{candidate_id}/assess", response_model=SuitabilityResponse)
def assess_applicant(job_id: str, candidate_id: str, user: Optional[dict] = Depends(get_current_recruiter)):
    """AI suitability score blended with skill overlap."""
    try:
        return get_suitability_service().assess(job_id, candidate_id, user)
    except AIResponseError:
        raise HTTPException(status_code=500, detail="Failed to parse AI response")
    except AIServiceError:
        raise HTTPException(status_code=500, detail="Failed to assess candidate")
