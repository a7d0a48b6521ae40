"""
Gemini Routes - AI drafting for recruiters

POST /gemini/milestones - Break a project idea into milestones
POST /gemini/job-details - Three priced job options for a project idea
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from app.core.auth import get_current_recruiter
from app.services.gemini_client import AIServiceError, AIResponseError
from app.services.planning_service import get_planning_service
from app.schemas.schemas import ProjectIdeaRequest, MilestonePlanResponse, JobOptionsResponse

router = APIRouter(prefix="/gemini", tags=["AI Planning"])


def require_idea(request: ProjectIdeaRequest) -> str:
    if not request.project_idea or not request.project_idea.strip():
        raise HTTPException(status_code=400, detail="Project idea is required")
    return request.project_idea


# Model calls block, so these run in the threadpool (plain def)
@router.post("/milestones", response_model=MilestonePlanResponse)
def generate_milestones(request: ProjectIdeaRequest, user: Optional[dict] = Depends(get_current_recruiter)):
    """Generate technical milestones for a raw project idea."""
    idea = require_idea(request)
    try:
        return get_planning_service().milestones(idea)
    except AIResponseError:
        raise HTTPException(status_code=500, detail="Failed to parse API response")
    except AIServiceError:
        raise HTTPException(status_code=500, detail="Failed to generate milestones")


@router.post("/job-details", response_model=JobOptionsResponse)
def generate_job_details(request: ProjectIdeaRequest, user: Optional[dict] = Depends(get_current_recruiter)):
    """
    Generate MVP / Standard / Advanced options for a job post.
    Budgets follow the hourly rate and task payouts always add up to the budget.
    """
    idea = require_idea(request)
    try:
        return get_planning_service().job_options(idea)
    except AIResponseError:
        raise HTTPException(status_code=500, detail="Failed to parse AI response")
    except AIServiceError:
        raise HTTPException(status_code=500, detail="Failed to generate job details")
