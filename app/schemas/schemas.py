"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
The web client speaks camelCase, so every schema uses a camelCase alias
and also accepts snake_case field names on input.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Union
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(value):
    # Form fields arrive as "" when left empty
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============================================================
# ENUMS
# ============================================================

class JobType(str, Enum):
    contract = "Contract"
    freelance = "Freelance"
    full_time = "Full-time"
    part_time = "Part-time"
    internship = "Internship"


class JobStatus(str, Enum):
    active = "Active"
    draft = "Draft"
    closed = "Closed"
    completed = "Completed"


class JobFormStatus(str, Enum):
    """Statuses a recruiter may set; Completed and Closed are set by the server."""
    active = "Active"
    draft = "Draft"


class ApplicationStatus(str, Enum):
    applied = "Applied"
    shortlisted = "Shortlisted"
    hired = "Hired"
    rejected = "Rejected"


class SquadStatus(str, Enum):
    suggested = "Suggested"
    invited = "Invited"
    active = "Active"
    declined = "Declined"
    completed = "Completed"


class MemberStatus(str, Enum):
    suggested = "Suggested"
    invited = "Invited"
    accepted = "Accepted"
    rejected = "Rejected"


class ModuleStatus(str, Enum):
    pending = "Pending"
    in_progress = "InProgress"
    blocked = "Blocked"
    changes_requested = "ChangesRequested"
    completed = "Completed"


class BlockerSeverity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class BlockerStatus(str, Enum):
    open = "Open"
    resolved = "Resolved"


# ============================================================
# AI PLANNING SCHEMAS
# ============================================================

class ProjectIdeaRequest(CamelModel):
    project_idea: Optional[str] = None


class RolePlanRequest(ProjectIdeaRequest):
    budget: Optional[float] = Field(None, ge=0)
    timeline: Optional[str] = None

    @field_validator("budget", mode="before")
    @classmethod
    def blank_budget(cls, v):
        return _blank_to_none(v)


class Milestone(CamelModel):
    title: str
    description: str = ""
    estimated_hours: int = 0


class MilestonePlanResponse(CamelModel):
    project_title: str
    tech_stack: List[str] = []
    milestones: List[Milestone] = []


class OptionTask(CamelModel):
    description: str
    hours: float = 0
    payout: float = 0


class JobOption(CamelModel):
    title: str
    job_type: str = Field("Contract", alias="type")
    description: str = ""
    tech_stack: str = ""
    timeline: str = ""
    total_hours: int = 0
    budget: float = 0
    tasks: List[OptionTask] = []


class JobOptionsResponse(CamelModel):
    options: List[JobOption] = []


class RoleSpec(CamelModel):
    title: str = Field(..., min_length=1)
    skills: List[str] = []
    description: Optional[str] = None


class ModuleSpec(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    role_title: Optional[str] = None
    acceptance_criteria: str = ""
    estimated_hours: int = Field(0, ge=0)
    payout: float = Field(0, ge=0)

    @field_validator("payout", "estimated_hours", mode="before")
    @classmethod
    def blank_numbers(cls, v):
        return 0 if _blank_to_none(v) is None else v


class RolePlanResponse(CamelModel):
    title: str
    description: str = ""
    tech_stack: str = ""
    timeline: str = ""
    budget: float = 0
    main_budget: float = 0
    roles: List[RoleSpec] = []
    modules: List[ModuleSpec] = []


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobTask(CamelModel):
    description: str = ""
    payout: float = Field(0, ge=0)

    @field_validator("payout", mode="before")
    @classmethod
    def blank_payout(cls, v):
        return 0 if _blank_to_none(v) is None else v


class JobCreate(CamelModel):
    recruiter_id: Optional[str] = None
    title: str = ""
    description: str = ""
    timeline: str = ""
    job_type: Optional[JobType] = Field(None, alias="type")
    tech_stack: str = ""
    budget: Optional[float] = Field(None, ge=0)
    deliverables: Optional[str] = None
    blind_hiring: bool = False
    tasks: List[JobTask] = []
    deadline: Optional[datetime] = None
    status: JobFormStatus = JobFormStatus.active

    @field_validator("budget", "job_type", "deadline", mode="before")
    @classmethod
    def blank_optionals(cls, v):
        return _blank_to_none(v)


class JobUpdate(JobCreate):
    job_id: str


class BlockerResponse(CamelModel):
    blocker_id: str
    reported_by: str
    description: str
    severity: BlockerSeverity
    status: BlockerStatus
    reported_at: datetime
    resolution: Optional[str] = None
    compensation: float = 0
    resolved_at: Optional[datetime] = None


class RoleResponse(CamelModel):
    role_id: str
    title: str
    skills: List[str] = []
    description: Optional[str] = None


class ModuleResponse(CamelModel):
    module_id: str
    title: str
    description: str = ""
    role_id: Optional[str] = None
    role_title: Optional[str] = None
    acceptance_criteria: str = ""
    estimated_hours: int = 0
    payout: float = 0
    status: ModuleStatus
    blockers: List[BlockerResponse] = []
    review_notes: Optional[str] = None
    paid_out: float = 0
    completed_at: Optional[datetime] = None


class SquadMemberResponse(CamelModel):
    member_id: str
    name: str
    role_id: Optional[str] = None
    role_title: Optional[str] = None
    status: MemberStatus
    skill_match_pct: float = 0


class SquadResponse(CamelModel):
    squad_id: str
    name: str
    harmony_score: float
    coverage_score: float
    rationale: Optional[str] = None
    status: SquadStatus
    members: List[SquadMemberResponse] = []
    created_at: datetime
    invited_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None


class JobResponse(CamelModel):
    job_id: str
    recruiter_id: Optional[str] = None
    title: str
    description: str
    timeline: str
    job_type: Optional[str] = Field(None, alias="type")
    tech_stack: str
    budget: Optional[float] = None
    main_budget: float = 0
    compensation_budget: float = 0
    deliverables: Optional[str] = None
    blind_hiring: bool = False
    tasks: List[JobTask] = []
    deadline: Optional[datetime] = None
    status: JobStatus
    posted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_squad_project: bool = False
    roles: List[RoleResponse] = []
    modules: List[ModuleResponse] = []
    squads: List[SquadResponse] = []
    active_squad_id: Optional[str] = None


class JobListResponse(CamelModel):
    jobs: List[JobResponse]
    total: int
    page: int
    page_size: int


# ============================================================
# CANDIDATE & APPLICATION SCHEMAS
# ============================================================

class WorkExperience(CamelModel):
    role: str
    company: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None


class Education(CamelModel):
    institution: str
    degree: Optional[str] = None
    field: Optional[str] = None
    year: Optional[Union[int, str]] = None


class CandidateProfileUpdate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    image_url: Optional[str] = None
    resume_url: Optional[str] = None
    experience_level: Optional[str] = None
    summary: Optional[str] = None
    skills: List[str] = []
    work_experience: List[WorkExperience] = []
    education: List[Education] = []
    open_to_squads: bool = True

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        return _blank_to_none(v)


class CandidateResponse(CandidateProfileUpdate):
    user_id: str
    email: Optional[str] = None
    updated_at: Optional[datetime] = None


class ApplicationCreate(CamelModel):
    cover_letter: Optional[str] = None


class ApplicationStatusUpdate(CamelModel):
    status: ApplicationStatus


class ApplicantResponse(CamelModel):
    candidate_id: str
    display_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    resume_url: Optional[str] = None
    experience_level: Optional[str] = None
    summary: Optional[str] = None
    skills: List[str] = []
    work_experience: List[WorkExperience] = []
    education: List[Education] = []
    status: ApplicationStatus
    cover_letter: Optional[str] = None
    applied_at: datetime
    suitability_score: Optional[float] = None
    suitability_analysis: Optional[str] = None
    is_redacted: bool = False


class SuitabilityResponse(CamelModel):
    candidate_id: str
    suitability_score: float
    suitability_analysis: str
    ai_score: float
    skill_match_pct: float


# ============================================================
# CONNECTX (SQUAD) SCHEMAS
# ============================================================

class SquadProjectCreate(JobCreate):
    roles: List[RoleSpec] = Field(..., min_length=1)
    modules: List[ModuleSpec] = []


class GenerateSquadsRequest(CamelModel):
    job_id: str


class GenerateSquadsResponse(CamelModel):
    job_id: str
    squads: List[SquadResponse]


class InviteRequest(CamelModel):
    job_id: str
    squad_id: str


class MemberStatusUpdate(CamelModel):
    status: str


class ModuleCompleteRequest(CamelModel):
    job_id: str
    module_id: str
    criteria_met: bool = True
    notes: Optional[str] = None


class BlockerReport(CamelModel):
    job_id: str
    module_id: str
    reported_by: str
    description: str = Field(..., min_length=1)
    severity: BlockerSeverity = BlockerSeverity.medium


class BlockerResolve(CamelModel):
    job_id: str
    module_id: str
    blocker_id: str
    resolution: Optional[str] = None
    compensation: float = Field(0, ge=0)


class PayoutEntry(CamelModel):
    member_id: str
    amount: float
    source: str


class ModuleCompletionResponse(CamelModel):
    job_id: str
    module_id: str
    status: ModuleStatus
    payouts: List[PayoutEntry] = []
    squad_status: SquadStatus
    job_status: JobStatus


class MemberPayoutTotal(CamelModel):
    member_id: str
    main: float = 0
    compensation: float = 0
    total: float = 0


class PayoutSummaryResponse(CamelModel):
    job_id: str
    members: List[MemberPayoutTotal] = []
    total_paid: float = 0
    main_budget_remaining: float = 0
    compensation_remaining: float = 0


class Teammate(CamelModel):
    member_id: str
    name: str
    role: Optional[str] = None
    status: MemberStatus


class InviteResponse(CamelModel):
    id: str
    job_id: str
    squad_id: str
    job_title: str
    squad_name: str
    role: Optional[str] = None
    harmony_score: float
    members: List[Teammate] = []
    invited_at: Optional[datetime] = None


class ModuleProgress(CamelModel):
    module_id: str
    title: str
    status: ModuleStatus
    payout: float = 0


class ActiveSquadResponse(CamelModel):
    job_id: str
    squad_id: str
    job_title: str
    squad_name: str
    role: Optional[str] = None
    harmony_score: float
    members: List[Teammate] = []
    modules: List[ModuleProgress] = []
    progress: float = 0


class UserInvitesResponse(CamelModel):
    invites: List[InviteResponse] = []
    active_squads: List[ActiveSquadResponse] = []


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(CamelModel):
    message: str
    success: bool = True
