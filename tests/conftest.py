"""Shared fixtures: in-memory MongoDB, SQLite ledger, stubbed model and signed tokens."""

import copy
import json
import os
import tempfile

# Settings are read once at import time, so the environment goes first
_ledger_dir = tempfile.mkdtemp(prefix="connectx-ledger-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_ledger_dir, 'ledger.db')}"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["AUTH_ENABLED"] = "true"

import mongomock
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.db import mongodb, postgres
from app.main import app
from app.services.gemini_client import GeminiClient


class FakeModel:
    """Stands in for GeminiClient._call_api; answers from a queue."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, response):
        if not isinstance(response, (str, Exception)):
            response = json.dumps(response)
        self.responses.append(response)

    def __call__(self, system_prompt, user_content, max_tokens=2000, temperature=0.3):
        self.calls.append({"system": system_prompt, "user": user_content})
        if not self.responses:
            raise AssertionError("Unexpected model call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    client = mongomock.MongoClient()
    db = client["connectx_test"]
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", db)
    mongodb.init_mongo_indexes()
    return db


@pytest.fixture(autouse=True)
def ledger():
    postgres.init_postgres_schema()
    with postgres.engine.begin() as conn:
        conn.execute(postgres.module_payouts.delete())
    return postgres.module_payouts


@pytest.fixture
def model(monkeypatch):
    fake = FakeModel()
    monkeypatch.setattr(GeminiClient, "_call_api", fake)
    return fake


@pytest.fixture
def client():
    return TestClient(app)


def make_token(user_id: str, role: str) -> str:
    return jwt.encode({"sub": user_id, "role": role}, "test-secret", algorithm="HS256")


def auth(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def recruiter():
    return auth("rec-1", "recruiter")


@pytest.fixture
def other_recruiter():
    return auth("rec-2", "recruiter")


@pytest.fixture
def as_user():
    """Headers for an arbitrary user: as_user("cand-1", "candidate")."""
    return auth


# ============================================================
# SQUAD PROJECT FIXTURES
# ============================================================

PROJECT = {
    "title": "Freelance marketplace MVP",
    "description": "Job board with squad matching",
    "timeline": "4 Weeks",
    "type": "Contract",
    "techStack": "React, FastAPI",
    "budget": 1000,
    "roles": [
        {"title": "Frontend Developer", "skills": ["React", "TypeScript"]},
        {"title": "Backend Developer", "skills": ["Python", "FastAPI"]},
    ],
    "modules": [
        {"title": "UI", "roleTitle": "Frontend Developer", "acceptanceCriteria": "Pages render", "payout": 450},
        {"title": "API", "roleTitle": "Backend Developer", "acceptanceCriteria": "Endpoints pass", "payout": 450},
    ],
}

CANDIDATE_SKILLS = {
    "cand-1": ["React", "TypeScript"],
    "cand-2": ["Python", "FastAPI"],
    "cand-3": ["Python"],
}

# Alpha covers both roles; Beta repeats cand-3 and has no usable score; Ghosts is all unknown ids
SUGGESTION = {
    "squads": [
        {
            "name": "Alpha",
            "harmonyScore": 91,
            "rationale": "Full coverage",
            "members": [
                {"candidateId": "cand-1", "roleTitle": "Frontend Developer"},
                {"candidateId": "cand-2", "roleTitle": "backend developer"},
            ],
        },
        {
            "name": "Beta",
            "harmonyScore": "n/a",
            "members": [
                {"candidateId": "cand-1", "roleTitle": "Frontend Developer"},
                {"candidateId": "cand-3", "roleTitle": "Backend Developer"},
                {"candidateId": "cand-3", "roleTitle": "Frontend Developer"},
            ],
        },
        {"name": "Ghosts", "members": [{"candidateId": "nobody", "roleTitle": "Frontend Developer"}]},
    ]
}


@pytest.fixture
def project_payload():
    return copy.deepcopy(PROJECT)


@pytest.fixture
def candidates(client):
    for user_id, skills in CANDIDATE_SKILLS.items():
        response = client.put(
            f"/api/candidates/{user_id}/profile",
            json={"firstName": user_id.title(), "skills": skills},
            headers=auth(user_id, "candidate"),
        )
        assert response.status_code == 200, response.text
    return list(CANDIDATE_SKILLS)


@pytest.fixture
def suggest(client, recruiter, model):
    """suggest(job_id) queues SUGGESTION and returns the validated squads."""
    def _suggest(job_id):
        model.queue(SUGGESTION)
        response = client.post("/api/connectx/generate-squads", json={"jobId": job_id}, headers=recruiter)
        assert response.status_code == 200, response.text
        return response.json()["squads"]
    return _suggest


@pytest.fixture
def respond(client):
    """respond(job_id, squad_id, member_id, status) answers an invite as that member."""
    def _respond(job_id, squad_id, member_id, status):
        return client.post(
            f"/api/connectx/squads/{job_id}/{squad_id}/members/{member_id}/status",
            json={"status": status},
            headers=auth(member_id, "candidate"),
        )
    return _respond


@pytest.fixture
def project(client, recruiter, candidates, project_payload):
    response = client.post("/api/connectx/create-project", json=project_payload, headers=recruiter)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def active_project(client, recruiter, project, suggest, respond):
    """Project whose best squad (cand-1 frontend, cand-2 backend) has accepted."""
    job_id = project["jobId"]
    squad_id = suggest(job_id)[0]["squadId"]
    client.post("/api/connectx/invite", json={"jobId": job_id, "squadId": squad_id}, headers=recruiter)
    for member_id in ("cand-1", "cand-2"):
        assert respond(job_id, squad_id, member_id, "Accepted").status_code == 200
    job = client.get(f"/api/jobs/{job_id}").json()
    return {
        "job_id": job_id,
        "squad_id": squad_id,
        "modules": {m["title"]: m["moduleId"] for m in job["modules"]},
    }
