"""
Matching & Scoring Service

PURPOSE:
Local, deterministic scores that sit next to what the model says:
1. Skill overlap between a candidate and a role (or a job)
2. Squad coverage: how well a squad's members cover its roles
3. Harmony score: the model's squad score, sanity-checked
4. Suitability: the model's candidate score blended with skill overlap

The model proposes; these numbers let the recruiter see whether the
proposal actually covers the skills asked for.
"""

import logging
from typing import List, Optional, Dict

import numpy as np

logger = logging.getLogger(__name__)

# Suitability = 70% AI judgement + 30% skill overlap
AI_SUITABILITY_WEIGHT = 0.7
SKILL_SUITABILITY_WEIGHT = 0.3


def split_skills(value) -> List[str]:
    """Accept a list or a comma separated string of skills."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(s).strip() for s in value if s and str(s).strip()]


def compute_skill_match_percentage(
    candidate_skills: List[str],
    required_skills: List[str]
) -> float:
    """
    Compute percentage of required skills that the candidate has.

    Uses case-insensitive matching.

    Returns:
        Float between 0 and 100
    """
    if not required_skills:
        return 100.0  # No requirements = 100% match

    # Normalize to lowercase for comparison
    candidate_lower = {s.lower() for s in candidate_skills}
    required_lower = {s.lower() for s in required_skills}

    matches = candidate_lower.intersection(required_lower)

    return (len(matches) / len(required_lower)) * 100


def clamp_score(value) -> Optional[float]:
    """Coerce a model-provided score into 0..100, None if unusable."""
    try:
        score = float(value)
    except (ValueError, TypeError):
        return None
    if np.isnan(score):
        return None
    return float(np.clip(score, 0, 100))


def compute_squad_coverage(roles: List[dict], members: List[dict], candidates: Dict[str, dict]) -> float:
    """
    Mean skill coverage over every role of the project.

    A role with several members takes its best member; a role with
    nobody assigned counts as 0.

    Args:
        roles: project roles (role_id, skills)
        members: squad members (member_id, role_id)
        candidates: candidate profiles by user id
    """
    if not roles:
        return 0.0

    per_role = np.zeros(len(roles))
    for idx, role in enumerate(roles):
        scores = [
            compute_skill_match_percentage(
                split_skills(candidates.get(m["member_id"], {}).get("skills")),
                role.get("skills", [])
            )
            for m in members if m.get("role_id") == role["role_id"]
        ]
        if scores:
            per_role[idx] = max(scores)

    return round(float(per_role.mean()), 2)


def compute_harmony_score(ai_score, coverage_score: float) -> float:
    """The model's harmony score if it gave a usable one, else coverage."""
    score = clamp_score(ai_score)
    if score is None:
        return coverage_score
    return round(score, 2)


def blend_suitability(ai_score, skill_match_pct: float) -> float:
    """
    Combine AI suitability with skill overlap (weighted average).
    Falls back to skill overlap alone if the model gave no score.
    """
    score = clamp_score(ai_score)
    if score is None:
        return round(skill_match_pct, 2)
    combined = score * AI_SUITABILITY_WEIGHT + skill_match_pct * SKILL_SUITABILITY_WEIGHT
    return round(combined, 2)
