"""
ConnectX Routes - squad projects

POST /connectx/create-project - Create squad project (roles + modules)
POST /connectx/generate-squads - AI squad suggestions for a project
POST /connectx/invite - Invite a suggested squad
POST /connectx/squads/{job_id}/{squad_id}/members/{member_id}/status - Accept/reject invite
POST /connectx/module-complete - Review a module, release payout
POST /connectx/report-blocker - Flag a module as blocked
POST /connectx/resolve-blocker - Close a blocker, optional compensation
GET /connectx/user-invites/{user_id} - Open invites and active squads
GET /connectx/payouts/{job_id} - Payout ledger summary
POST /connectx/ai/plan - AI role-based squad plan
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from app.core.auth import (
    get_current_user, get_current_recruiter, get_current_candidate, ensure_same_user
)
from app.services.gemini_client import AIServiceError, AIResponseError
from app.services.planning_service import get_planning_service
from app.services.squad_service import get_squad_service
from app.services.payout_service import get_payout_service
from app.schemas.schemas import (
    SquadProjectCreate, JobResponse, GenerateSquadsRequest, GenerateSquadsResponse,
    InviteRequest, SquadResponse, MemberStatusUpdate, ModuleCompleteRequest,
    ModuleCompletionResponse, BlockerReport, BlockerResolve, ModuleResponse,
    UserInvitesResponse, PayoutSummaryResponse, RolePlanRequest, RolePlanResponse
)

router = APIRouter(prefix="/connectx", tags=["ConnectX"])


@router.post("/create-project", response_model=JobResponse, status_code=201)
async def create_squad_project(data: SquadProjectCreate, user: Optional[dict] = Depends(get_current_recruiter)):
    """Create a squad project. Module payouts must fit in the main budget (90%)."""
    return get_squad_service().create_project(data, user)


@router.post("/generate-squads", response_model=GenerateSquadsResponse)
def generate_squad_suggestions(request: GenerateSquadsRequest, user: Optional[dict] = Depends(get_current_recruiter)):
    """
    Ask the model to form squads from the candidate pool.

    Pool: applicants of the job, or candidates open to squads when nobody applied.
    """
    try:
        squads = get_squad_service().generate_suggestions(request.job_id, user)
    except AIResponseError:
        raise HTTPException(status_code=500, detail="Failed to parse AI response")
    except AIServiceError:
        raise HTTPException(status_code=500, detail="Failed to generate squads")
    return GenerateSquadsResponse(job_id=request.job_id, squads=squads)


@router.post("/invite", response_model=SquadResponse)
async def invite_squad(request: InviteRequest, user: Optional[dict] = Depends(get_current_recruiter)):
    """Invite every member of a suggested squad."""
    return get_squad_service().invite(request.job_id, request.squad_id, user)


@router.post("/squads/{job_id}/{squad_id}/members/{member_id}/status", response_model=SquadResponse)
async def update_squad_member_status(
    job_id: str,
    squad_id: str,
    member_id: str,
    update: MemberStatusUpdate,
    user: Optional[dict] = Depends(get_current_candidate)
):
    """Accept or reject a squad invitation. The squad goes Active once everyone accepts."""
    ensure_same_user(user, member_id)
    return get_squad_service().update_member_status(job_id, squad_id, member_id, update.status)


@router.post("/module-complete", response_model=ModuleCompletionResponse)
async def handle_module_completion(request: ModuleCompleteRequest, user: Optional[dict] = Depends(get_current_recruiter)):
    """
    Review a module against its acceptance criterion.
    Payout is released only when the criterion is met.
    """
    return get_payout_service().complete_module(request, user)


@router.post("/report-blocker", response_model=ModuleResponse)
async def report_blocker(report: BlockerReport, user: Optional[dict] = Depends(get_current_user)):
    """Flag a module as blocked. Squad members or the recruiter only."""
    return get_payout_service().report_blocker(report, user)


@router.post("/resolve-blocker", response_model=ModuleResponse)
async def resolve_blocker(request: BlockerResolve, user: Optional[dict] = Depends(get_current_recruiter)):
    """Resolve a blocker; compensation comes out of the compensation budget (10%)."""
    return get_payout_service().resolve_blocker(request, user)


@router.get("/user-invites/{user_id}", response_model=UserInvitesResponse)
async def get_user_squad_invites(user_id: str, user: Optional[dict] = Depends(get_current_user)):
    """Open squad invitations and active squads for a user."""
    ensure_same_user(user, user_id)
    return get_squad_service().user_invites(user_id)


@router.get("/payouts/{job_id}", response_model=PayoutSummaryResponse)
async def get_payout_summary(job_id: str, user: Optional[dict] = Depends(get_current_user)):
    """Ledger totals per member. Recruiter and accepted squad members only."""
    return get_payout_service().summary(job_id, user)


@router.post("/ai/plan", response_model=RolePlanResponse)
def generate_role_based_job_details(request: RolePlanRequest, user: Optional[dict] = Depends(get_current_recruiter)):
    """Draft roles and payable modules for a squad project."""
    if not request.project_idea or not request.project_idea.strip():
        raise HTTPException(status_code=400, detail="Project idea is required")
    try:
        return get_planning_service().role_plan(request.project_idea, request.budget, request.timeline)
    except AIResponseError:
        raise HTTPException(status_code=500, detail="Failed to parse AI response")
    except AIServiceError:
        raise HTTPException(status_code=500, detail="Failed to generate squad plan")
