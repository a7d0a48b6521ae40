"""
Gemini API Client

Gemini exposes an OpenAI-compatible endpoint, so we use the openai library
and only swap base_url and model.

AI is used ONLY for:
- Drafting milestones, job options and role-based squad plans
- Proposing squads from a candidate pool
- Candidate suitability notes

Everything the model returns is validated before it is stored or acted on.
"""
import json
import logging
from typing import List

from openai import OpenAI, OpenAIError
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """The model could not be reached or returned no content."""


class AIResponseError(Exception):
    """The model answered, but not with parseable JSON."""


class GeminiClient:
    """
    Wrapper for the Gemini API with one method per prompt.
    """

    def __init__(self):
        self.client = OpenAI(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url
        )
        self.model = settings.gemini_model

    def _call_api(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int = 2000,
        temperature: float = 0.3
    ) -> str:
        """
        Internal method to call the Gemini API.
        Returns raw text response.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content}
                ],
                max_tokens=max_tokens,
                temperature=temperature
            )
        except OpenAIError as e:
            logger.error("Gemini API error: %s", e)
            raise AIServiceError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIServiceError("Empty response from model")
        return content

    def _extract_json(self, text: str):
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        clean = text.replace("```json", "").replace("```", "").strip()
        try:
            return json.loads(clean)
        except json.JSONDecodeError as e:
            logger.error("JSON parse error on model output: %s", e)
            raise AIResponseError(str(e)) from e

    def generate_milestones(self, project_idea: str) -> dict:
        """
        Break a raw project idea into technical milestones.
        """
        system_prompt = """You are an expert project manager and technical lead.
Target audience: non-technical recruiter looking for technical candidates.
Goal: generate a list of concrete technical project milestones to build the idea.
Return ONLY valid JSON with this structure:
{
  "projectTitle": "Suggested specific title",
  "techStack": ["List", "of", "technologies"],
  "milestones": [
    {"title": "Milestone Title", "description": "What to do", "estimatedHours": 10}
  ]
}
Do not include markdown formatting."""

        response = self._call_api(system_prompt, f'Project idea: "{project_idea}"')
        return self._extract_json(response)

    def generate_job_options(self, project_idea: str, hourly_rate: float) -> dict:
        """
        Draft three implementation options (MVP, Standard, Advanced) for a job post.
        """
        system_prompt = f"""You are an expert technical project manager.
Generate 3 distinct project implementation options (e.g. MVP, Standard, Advanced) for the idea.
For each option estimate the hours required and compute the budget at ${hourly_rate:g}/hour.
Return ONLY a valid JSON object:
{{
  "options": [
    {{
      "title": "Short catchy title",
      "type": "Contract",
      "description": "Professional job description",
      "techStack": "React, Node (comma separated string)",
      "timeline": "e.g. 1-2 Weeks",
      "totalHours": 50,
      "budget": {50 * hourly_rate:g},
      "tasks": [{{"description": "Task description", "hours": 10, "payout": {10 * hourly_rate:g}}}]
    }}
  ]
}}
Ensure "budget" is approximately "totalHours" * {hourly_rate:g}.
Ensure the sum of task payouts equals budget.
Do not include markdown formatting."""

        response = self._call_api(system_prompt, f'User idea: "{project_idea}"', max_tokens=4000)
        return self._extract_json(response)

    def generate_role_plan(self, project_idea: str, budget: float = None, timeline: str = None) -> dict:
        """
        Draft a squad project: the roles to staff and the payable modules per role.
        """
        system_prompt = """You are an expert technical lead staffing a small collaborative squad.
Split the project into roles and into payable modules. Each module belongs to one role
and has a concrete acceptance criterion a non-technical recruiter can verify.
Return ONLY valid JSON:
{
  "title": "Project title",
  "description": "Professional project description",
  "techStack": "comma separated string",
  "timeline": "e.g. 2-4 Weeks",
  "budget": 3000,
  "roles": [{"title": "Frontend Developer", "skills": ["React"], "description": "..."}],
  "modules": [
    {"title": "...", "description": "...", "roleTitle": "Frontend Developer",
     "acceptanceCriteria": "...", "estimatedHours": 20, "payout": 600}
  ]
}
Do not include markdown formatting."""

        user_content = f'Project idea: "{project_idea}"'
        if budget:
            user_content += f"\nTotal budget: ${budget:g}"
        if timeline:
            user_content += f"\nTimeline: {timeline}"

        response = self._call_api(system_prompt, user_content, max_tokens=4000)
        return self._extract_json(response)

    def suggest_squads(self, job: dict, roles: List[dict], candidates: List[dict], max_squads: int) -> dict:
        """
        Ask the model to form squads from a candidate pool.
        """
        system_prompt = f"""You form freelance squads. Each squad fills every role with one candidate
from the pool. A candidate may appear in several squads but only once per squad.
Score each squad's harmony from 0 to 100 (skill fit, complementary experience, coverage).
Propose at most {max_squads} squads. Return ONLY valid JSON:
{{
  "squads": [
    {{
      "name": "Squad name",
      "harmonyScore": 87,
      "rationale": "Why these people work well together",
      "members": [{{"candidateId": "id from the pool", "roleTitle": "role title"}}]
    }}
  ]
}}
Use only candidateId values from the pool. Do not include markdown formatting."""

        payload = {
            "project": {
                "title": job.get("title"),
                "description": job.get("description"),
                "techStack": job.get("tech_stack")
            },
            "roles": [{"title": r["title"], "skills": r.get("skills", [])} for r in roles],
            "pool": [
                {
                    "candidateId": c["user_id"],
                    "skills": c.get("skills", []),
                    "experienceLevel": c.get("experience_level"),
                    "summary": c.get("summary")
                }
                for c in candidates
            ]
        }
        response = self._call_api(system_prompt, json.dumps(payload), max_tokens=3000, temperature=0.4)
        return self._extract_json(response)

    def assess_suitability(self, job: dict, candidate: dict) -> dict:
        """
        Score one candidate against one job.
        """
        system_prompt = """You screen freelance candidates. Rate how suitable the candidate is
for the job from 0 to 100 and give a two-sentence analysis.
Return ONLY valid JSON: {"score": 72, "analysis": "..."}"""

        payload = {
            "job": {
                "title": job.get("title"),
                "description": job.get("description"),
                "techStack": job.get("tech_stack")
            },
            "candidate": {
                "skills": candidate.get("skills", []),
                "experienceLevel": candidate.get("experience_level"),
                "summary": candidate.get("summary"),
                "workExperience": candidate.get("work_experience", [])
            }
        }
        response = self._call_api(system_prompt, json.dumps(payload), max_tokens=400, temperature=0.1)
        return self._extract_json(response)

    def test_connection(self) -> bool:
        """Test if the Gemini API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except AIServiceError as e:
            logger.warning("Gemini connection failed: %s", e)
            return False


# Singleton instance
_gemini_client: GeminiClient = None


def get_gemini_client() -> GeminiClient:
    """Get or create Gemini client (singleton pattern)"""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
