"""
Planning Service - AI-assisted project drafting.

PURPOSE:
AI drafts, we validate:
1. Milestones for a raw idea
2. Three priced job options (MVP / Standard / Advanced)
3. Role-based squad plans with payable modules

AI OUTPUT -> VALIDATED -> CACHED IN MONGODB -> RETURNED
The model is asked to keep budgets consistent; the validators make sure they are.

COST OPTIMIZATION:
- Results cached in MongoDB by a hash of (kind, input)
- Same idea twice never reaches the model
"""

import hashlib
import json
import logging
from typing import List, Optional

from app.core.config import get_settings
from app.services.gemini_client import get_gemini_client, GeminiClient
from app.services.mongo_service import GenerationCacheService
from app.utils.money import rescale, split_budget, to_cents, from_cents

settings = get_settings()
logger = logging.getLogger(__name__)


# ============================================================
# JSON VALIDATION HELPERS
# ============================================================

def _as_int(value, default: int = 0) -> int:
    try:
        return max(0, int(round(float(value))))
    except (ValueError, TypeError):
        return default


def _as_float(value) -> Optional[float]:
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    return number if number >= 0 else None


def _as_text(value) -> str:
    if isinstance(value, list):
        return ", ".join(str(v).strip() for v in value if v)
    return str(value).strip() if value is not None else ""


def validate_milestone_plan(data: dict) -> dict:
    """
    Validate and sanitize a milestone plan.
    Milestones without a title are dropped, hours coerced to non-negative ints.
    """
    if not isinstance(data, dict):
        data = {}

    tech_stack = data.get("techStack", [])
    if isinstance(tech_stack, str):
        tech_stack = [t.strip() for t in tech_stack.split(",")]

    milestones = []
    for item in data.get("milestones") or []:
        if not isinstance(item, dict):
            continue
        title = _as_text(item.get("title"))
        if not title:
            continue
        milestones.append({
            "title": title,
            "description": _as_text(item.get("description")),
            "estimated_hours": _as_int(item.get("estimatedHours"))
        })

    return {
        "project_title": _as_text(data.get("projectTitle")) or "Untitled Project",
        "tech_stack": [str(t).strip() for t in tech_stack if t and str(t).strip()],
        "milestones": milestones
    }


def validate_job_option(option: dict, hourly_rate: float) -> Optional[dict]:
    """
    Validate one priced job option.

    Rules:
    - budget falls back to totalHours * hourly_rate
    - task payouts always sum exactly to budget (rescaled by payout, then hours)
    """
    if not isinstance(option, dict):
        return None
    title = _as_text(option.get("title"))
    if not title:
        return None

    tasks = [t for t in option.get("tasks") or [] if isinstance(t, dict) and _as_text(t.get("description"))]
    total_hours = _as_int(option.get("totalHours"))
    if not total_hours and tasks:
        total_hours = sum(_as_int(t.get("hours")) for t in tasks)

    budget = _as_float(option.get("budget"))
    if budget is None:
        budget = total_hours * hourly_rate

    hours = [_as_float(t.get("hours")) or 0.0 for t in tasks]
    payouts = [_as_float(t.get("payout")) or 0.0 for t in tasks]
    weights = payouts if sum(payouts) > 0 else hours
    scaled = rescale(weights, budget)

    return {
        "title": title,
        "job_type": _as_text(option.get("type")) or "Contract",
        "description": _as_text(option.get("description")),
        "tech_stack": _as_text(option.get("techStack")),
        "timeline": _as_text(option.get("timeline")),
        "total_hours": total_hours,
        "budget": from_cents(to_cents(budget)),
        "tasks": [
            {"description": _as_text(t.get("description")), "hours": h, "payout": p}
            for t, h, p in zip(tasks, hours, scaled)
        ]
    }


def validate_job_options(data: dict, hourly_rate: float) -> dict:
    options = data.get("options") if isinstance(data, dict) else None
    validated = [validate_job_option(o, hourly_rate) for o in options or []]
    return {"options": [o for o in validated if o]}


def dedupe_roles(raw_roles: list) -> List[dict]:
    """Keep the first role per title (case-insensitive)."""
    roles = []
    seen = set()
    for role in raw_roles or []:
        if not isinstance(role, dict):
            continue
        title = _as_text(role.get("title"))
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        skills = role.get("skills") or []
        if isinstance(skills, str):
            skills = skills.split(",")
        roles.append({
            "title": title,
            "skills": [str(s).strip() for s in skills if s and str(s).strip()],
            "description": _as_text(role.get("description")) or None
        })
    return roles


def validate_role_plan(data: dict, budget: float = None, compensation_share: float = 0.10) -> dict:
    """
    Validate a role-based squad plan.

    Module payouts are rescaled so they add up to the main budget
    (budget minus the compensation pool). Modules naming an unknown
    role are kept but left unassigned.
    """
    if not isinstance(data, dict):
        data = {}

    roles = dedupe_roles(data.get("roles"))
    role_titles = {r["title"].lower(): r["title"] for r in roles}

    modules = []
    for item in data.get("modules") or []:
        if not isinstance(item, dict):
            continue
        title = _as_text(item.get("title"))
        if not title:
            continue
        role_title = _as_text(item.get("roleTitle"))
        modules.append({
            "title": title,
            "description": _as_text(item.get("description")),
            "role_title": role_titles.get(role_title.lower()),
            "acceptance_criteria": _as_text(item.get("acceptanceCriteria")),
            "estimated_hours": _as_int(item.get("estimatedHours")),
            "payout": _as_float(item.get("payout")) or 0.0
        })

    if budget is None:
        budget = _as_float(data.get("budget"))
    if budget is None:
        budget = sum(m["payout"] for m in modules)

    main_budget, _ = split_budget(budget, compensation_share)
    payouts = [m["payout"] for m in modules]
    weights = payouts if sum(payouts) > 0 else [m["estimated_hours"] for m in modules]
    for module, payout in zip(modules, rescale(weights, main_budget)):
        module["payout"] = payout

    return {
        "title": _as_text(data.get("title")) or "Untitled Squad Project",
        "description": _as_text(data.get("description")),
        "tech_stack": _as_text(data.get("techStack")),
        "timeline": _as_text(data.get("timeline")),
        "budget": from_cents(to_cents(budget)),
        "main_budget": main_budget,
        "roles": roles,
        "modules": modules
    }


def compute_input_hash(kind: str, payload: dict) -> str:
    """Stable hash of a generation request, used as cache key."""
    normalized = json.dumps({"kind": kind, **payload}, sort_keys=True).lower()
    return hashlib.sha256(normalized.encode()).hexdigest()


# ============================================================
# PLANNING SERVICE
# ============================================================

class PlanningService:
    """
    Complete planning workflow:
    1. Look up the cache
    2. Ask the model
    3. Validate the JSON
    4. Cache and return
    """

    def __init__(self):
        self.ai_client: GeminiClient = get_gemini_client()
        self.cache = GenerationCacheService()

    def _cached(self, kind: str, payload: dict, generate) -> dict:
        input_hash = compute_input_hash(kind, payload)
        cached = self.cache.get(kind, input_hash)
        if cached is not None:
            logger.info("Serving %s from cache", kind)
            return cached

        result = generate()
        self.cache.store(kind, input_hash, payload, result)
        return result

    def milestones(self, project_idea: str) -> dict:
        idea = project_idea.strip()
        return self._cached(
            "milestones",
            {"idea": idea},
            lambda: validate_milestone_plan(self.ai_client.generate_milestones(idea))
        )

    def job_options(self, project_idea: str) -> dict:
        idea = project_idea.strip()
        rate = settings.hourly_rate
        return self._cached(
            "job_options",
            {"idea": idea, "rate": rate},
            lambda: validate_job_options(self.ai_client.generate_job_options(idea, rate), rate)
        )

    def role_plan(self, project_idea: str, budget: float = None, timeline: str = None) -> dict:
        idea = project_idea.strip()
        return self._cached(
            "role_plan",
            {"idea": idea, "budget": budget, "timeline": timeline},
            lambda: validate_role_plan(
                self.ai_client.generate_role_plan(idea, budget, timeline),
                budget,
                settings.compensation_share
            )
        )


def get_planning_service() -> PlanningService:
    """Get planning service instance."""
    return PlanningService()
