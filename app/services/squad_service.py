"""
Squad Service - ConnectX squad projects, AI squad matching and invitations.

HOW IT WORKS:
1. Recruiter creates a squad project: roles + payable modules
2. The model proposes squads from the candidate pool (applicants first,
   otherwise everyone open to squads)
3. Every proposal is validated locally: unknown candidates/roles dropped,
   coverage computed, harmony score clamped
4. Recruiter invites one squad; each member accepts or rejects
5. All accepted -> squad Active, modules move to InProgress

Squad lifecycle:   Suggested -> Invited -> Active -> Completed
                   Invited -> Declined (any member rejects)
Member lifecycle:  Suggested -> Invited -> Accepted | Rejected
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict

from fastapi import HTTPException

from app.core.config import get_settings
from app.services.gemini_client import get_gemini_client, GeminiClient
from app.services.mongo_service import JobService, CandidateService, ApplicationService, new_id
from app.services.job_service import JobPostingService, ensure_job_owner, save_job
from app.services.hiring_service import display_name
from app.services.matching_service import (
    compute_skill_match_percentage, compute_squad_coverage, compute_harmony_score, split_skills
)
from app.schemas.schemas import SquadProjectCreate
from app.utils.money import to_cents

settings = get_settings()
logger = logging.getLogger(__name__)

# Squads in these states block inviting another one
OPEN_SQUAD_STATES = ("Invited", "Active")
# Squads in these states survive a new round of suggestions
KEPT_SQUAD_STATES = ("Invited", "Active", "Completed")


# ============================================================
# DOCUMENT HELPERS (shared with the payout service)
# ============================================================

def find_squad(job: dict, squad_id: str) -> dict:
    for squad in job.get("squads", []):
        if squad["squad_id"] == squad_id:
            return squad
    raise HTTPException(status_code=404, detail="Squad not found")


def find_module(job: dict, module_id: str) -> dict:
    for module in job.get("modules", []):
        if module["module_id"] == module_id:
            return module
    raise HTTPException(status_code=404, detail="Module not found")


def find_member(squad: dict, member_id: str) -> Optional[dict]:
    for member in squad.get("members", []):
        if member["member_id"] == member_id:
            return member
    return None


def active_squad(job: dict) -> Optional[dict]:
    for squad in job.get("squads", []):
        if squad["squad_id"] == job.get("active_squad_id") and squad["status"] == "Active":
            return squad
    return None


# ============================================================
# VALIDATION OF AI SQUAD SUGGESTIONS
# ============================================================

def validate_squad_suggestions(
    raw,
    roles: List[dict],
    candidates: Dict[str, dict],
    max_squads: int
) -> List[dict]:
    """
    Validate squads proposed by the model.

    Rules:
    - members must reference a pooled candidate and a project role
    - a candidate appears at most once per squad
    - squads left with no members are discarded
    - sorted by harmony score, best first, at most max_squads
    """
    if isinstance(raw, dict):
        raw = raw.get("squads")
    role_by_title = {r["title"].lower(): r for r in roles}
    now = datetime.utcnow()

    squads = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue

        members = []
        seen = set()
        for entry in item.get("members") or []:
            if not isinstance(entry, dict):
                continue
            candidate_id = str(entry.get("candidateId") or "").strip()
            role = role_by_title.get(str(entry.get("roleTitle") or "").strip().lower())
            if candidate_id not in candidates or role is None or candidate_id in seen:
                continue
            seen.add(candidate_id)
            candidate = candidates[candidate_id]
            members.append({
                "member_id": candidate_id,
                "name": display_name(candidate),
                "role_id": role["role_id"],
                "role_title": role["title"],
                "status": "Suggested",
                "skill_match_pct": round(compute_skill_match_percentage(
                    split_skills(candidate.get("skills")), role.get("skills", [])
                ), 2)
            })

        if not members:
            continue

        coverage = compute_squad_coverage(roles, members, candidates)
        squads.append({
            "squad_id": new_id(),
            "name": str(item.get("name") or "").strip() or f"Squad {len(squads) + 1}",
            "harmony_score": compute_harmony_score(item.get("harmonyScore"), coverage),
            "coverage_score": coverage,
            "rationale": str(item.get("rationale") or "").strip() or None,
            "status": "Suggested",
            "members": members,
            "created_at": now,
            "invited_at": None,
            "activated_at": None
        })

    squads.sort(key=lambda s: s["harmony_score"], reverse=True)
    return squads[:max_squads]


# ============================================================
# SQUAD SERVICE
# ============================================================

class SquadService:
    """
    Squad project creation, matching and invitation state.
    """

    def __init__(self):
        self.ai_client: GeminiClient = get_gemini_client()
        self.jobs = JobService()
        self.candidates = CandidateService()
        self.applications = ApplicationService()
        self.postings = JobPostingService()

    def create_project(self, data: SquadProjectCreate, user: Optional[dict]) -> dict:
        """
        Create a squad project: a job with roles and payable modules.
        Module payouts must fit in the main budget.
        """
        doc = self.postings.new_job_document(data, user)

        roles = []
        role_by_title = {}
        for r in data.roles:
            key = r.title.strip().lower()
            if key in role_by_title:
                raise HTTPException(status_code=400, detail=f"Duplicate role '{r.title}'")
            role = {
                "role_id": new_id(),
                "title": r.title.strip(),
                "skills": [s.strip() for s in r.skills if s and s.strip()],
                "description": r.description
            }
            role_by_title[key] = role
            roles.append(role)

        modules = []
        for m in data.modules:
            role = None
            if m.role_title:
                role = role_by_title.get(m.role_title.strip().lower())
                if role is None:
                    raise HTTPException(
                        status_code=400,
                        detail=f"Module '{m.title}' references unknown role '{m.role_title}'"
                    )
            modules.append({
                "module_id": new_id(),
                "title": m.title.strip(),
                "description": m.description,
                "role_id": role["role_id"] if role else None,
                "role_title": role["title"] if role else None,
                "acceptance_criteria": m.acceptance_criteria,
                "estimated_hours": m.estimated_hours,
                "payout": m.payout,
                "status": "Pending",
                "blockers": [],
                "review_notes": None,
                "paid_out": 0.0,
                "completed_at": None
            })

        if sum(to_cents(m["payout"]) for m in modules) > to_cents(doc["main_budget"]):
            raise HTTPException(status_code=400, detail="Module payouts exceed the main budget")

        doc.update({"is_squad_project": True, "roles": roles, "modules": modules})
        job = self.jobs.insert(doc)
        logger.info("Squad project %s created with %d roles, %d modules",
                    job["job_id"], len(roles), len(modules))
        return job

    def _candidate_pool(self, job_id: str) -> List[dict]:
        applicant_ids = self.applications.candidate_ids_for_job(job_id)
        if applicant_ids:
            pool = self.candidates.get_many(applicant_ids)
        else:
            pool = self.candidates.list_open_to_squads(settings.candidate_pool_limit)
        return pool[:settings.candidate_pool_limit]

    def generate_suggestions(self, job_id: str, user: Optional[dict]) -> List[dict]:
        """
        Ask the model for squads, validate them and store as Suggested.
        Earlier Suggested/Declined squads are replaced.
        """
        job = self.postings.get_or_404(job_id)
        ensure_job_owner(user, job)

        roles = job.get("roles", [])
        if not roles:
            raise HTTPException(status_code=400, detail="Job has no squad roles")
        if active_squad(job):
            raise HTTPException(status_code=409, detail="Job already has an active squad")

        pool = self._candidate_pool(job_id)
        if not pool:
            raise HTTPException(status_code=400, detail="No candidates available for squad matching")

        raw = self.ai_client.suggest_squads(job, roles, pool, settings.max_squad_suggestions)
        squads = validate_squad_suggestions(
            raw, roles, {c["user_id"]: c for c in pool}, settings.max_squad_suggestions
        )

        kept = [s for s in job.get("squads", []) if s["status"] in KEPT_SQUAD_STATES]
        save_job(self.jobs, job, {"squads": kept + squads})
        logger.info("Generated %d squad suggestions for job %s from a pool of %d",
                    len(squads), job_id, len(pool))
        return squads

    def invite(self, job_id: str, squad_id: str, user: Optional[dict]) -> dict:
        """Invite every member of a suggested squad."""
        job = self.postings.get_or_404(job_id)
        ensure_job_owner(user, job)
        squad = find_squad(job, squad_id)

        if any(s["status"] in OPEN_SQUAD_STATES for s in job.get("squads", []) if s is not squad):
            raise HTTPException(status_code=409, detail="Another squad is already invited or active for this job")
        if squad["status"] != "Suggested":
            raise HTTPException(status_code=409, detail=f"Squad is {squad['status']}, only suggested squads can be invited")

        now = datetime.utcnow()
        squad["status"] = "Invited"
        squad["invited_at"] = now
        for member in squad["members"]:
            member["status"] = "Invited"

        save_job(self.jobs, job, {"squads": job["squads"]})
        logger.info("Squad %s invited for job %s (%d members)", squad_id, job_id, len(squad["members"]))
        return squad

    def update_member_status(self, job_id: str, squad_id: str, member_id: str, status: str) -> dict:
        """
        Record a member's answer to an invitation.
        Repeating the current answer is a no-op.
        """
        normalized = str(status or "").strip().capitalize()
        if normalized not in ("Accepted", "Rejected"):
            raise HTTPException(status_code=400, detail="Status must be Accepted or Rejected")

        job = self.postings.get_or_404(job_id)
        squad = find_squad(job, squad_id)
        member = find_member(squad, member_id)
        if member is None:
            raise HTTPException(status_code=404, detail="Member not found in squad")

        if member["status"] == normalized:
            return squad
        if member["status"] != "Invited" or squad["status"] != "Invited":
            raise HTTPException(status_code=409, detail="Invitation is no longer open")

        now = datetime.utcnow()
        member["status"] = normalized
        member["responded_at"] = now
        fields = {"squads": job["squads"]}

        if normalized == "Rejected":
            squad["status"] = "Declined"
            logger.info("Member %s rejected squad %s; squad declined", member_id, squad_id)
        elif all(m["status"] == "Accepted" for m in squad["members"]):
            squad["status"] = "Active"
            squad["activated_at"] = now
            for module in job.get("modules", []):
                if module["status"] == "Pending":
                    module["status"] = "InProgress"
            fields.update({"modules": job.get("modules", []), "active_squad_id": squad_id})
            logger.info("Squad %s is now active on job %s", squad_id, job_id)
        else:
            logger.info("Member %s accepted squad %s", member_id, squad_id)

        save_job(self.jobs, job, fields)
        return squad

    def user_invites(self, user_id: str) -> dict:
        """
        Open invitations and active squads for one user.
        """
        invites = []
        active_squads = []

        for job in self.jobs.find_by_member(user_id):
            for squad in job.get("squads", []):
                member = find_member(squad, user_id)
                if member is None:
                    continue
                teammates = [
                    {
                        "member_id": m["member_id"],
                        "name": m["name"],
                        "role": m.get("role_title"),
                        "status": m["status"]
                    }
                    for m in squad["members"] if m["member_id"] != user_id
                ]

                if squad["status"] == "Invited" and member["status"] == "Invited":
                    invites.append({
                        "id": f"{job['job_id']}:{squad['squad_id']}",
                        "job_id": job["job_id"],
                        "squad_id": squad["squad_id"],
                        "job_title": job["title"],
                        "squad_name": squad["name"],
                        "role": member.get("role_title"),
                        "harmony_score": squad["harmony_score"],
                        "members": teammates,
                        "invited_at": squad.get("invited_at")
                    })
                elif squad["status"] == "Active" and member["status"] == "Accepted":
                    modules = job.get("modules", [])
                    done = sum(1 for m in modules if m["status"] == "Completed")
                    active_squads.append({
                        "job_id": job["job_id"],
                        "squad_id": squad["squad_id"],
                        "job_title": job["title"],
                        "squad_name": squad["name"],
                        "role": member.get("role_title"),
                        "harmony_score": squad["harmony_score"],
                        "members": teammates,
                        "modules": [
                            {
                                "module_id": m["module_id"],
                                "title": m["title"],
                                "status": m["status"],
                                "payout": m.get("payout", 0)
                            }
                            for m in modules
                        ],
                        "progress": round(done / len(modules) * 100, 2) if modules else 0.0
                    })

        invites.sort(key=lambda i: i["invited_at"] or datetime.min, reverse=True)
        return {"invites": invites, "active_squads": active_squads}


def get_squad_service() -> SquadService:
    """Get squad service instance."""
    return SquadService()
