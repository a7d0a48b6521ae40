from app.services.gemini_client import AIServiceError
from app.services.mongo_service import ApplicationService

JOB = {
    "title": "Dashboard for a logistics startup",
    "description": "Charts and filters over shipment data",
    "timeline": "3 Weeks",
    "type": "Freelance",
    "techStack": "React, FastAPI",
    "budget": 1200,
    "blindHiring": True,
}

PROFILE = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@connectx.dev",
    "imageUrl": "https://cdn.connectx.dev/ada.png",
    "resumeUrl": "https://cdn.connectx.dev/ada.pdf",
    "experienceLevel": "Senior",
    "summary": "Frontend engineer",
    "skills": ["React", " TypeScript ", ""],
    "workExperience": [{"role": "Engineer", "company": "Analytical Engines"}],
    "education": [{"institution": "University of London", "degree": "BSc"}],
}


def create_profile(client, as_user, user_id="cand-1", **overrides):
    response = client.put(
        f"/api/candidates/{user_id}/profile",
        json={**PROFILE, **overrides},
        headers=as_user(user_id, "candidate"),
    )
    assert response.status_code == 200, response.text
    return response.json()


def post_job(client, recruiter, **overrides):
    response = client.post("/api/jobs/post", json={**JOB, **overrides}, headers=recruiter)
    assert response.status_code == 201, response.text
    return response.json()["jobId"]


def test_profile_upsert_and_fetch(client, as_user):
    profile = create_profile(client, as_user)
    assert profile["userId"] == "cand-1"
    assert profile["skills"] == ["React", "TypeScript"]
    assert profile["openToSquads"] is True

    create_profile(client, as_user, summary="Now full-stack")
    fetched = client.get("/api/candidates/cand-1", headers=as_user("cand-1", "candidate")).json()
    assert fetched["summary"] == "Now full-stack"


def test_profile_of_someone_else_is_refused(client, as_user):
    response = client.put(
        "/api/candidates/cand-2/profile", json=PROFILE, headers=as_user("cand-1", "candidate")
    )
    assert response.status_code == 403


def test_profile_requires_first_name(client, as_user):
    response = client.put(
        "/api/candidates/cand-1/profile",
        json={**PROFILE, "firstName": ""},
        headers=as_user("cand-1", "candidate"),
    )
    assert response.status_code == 422


def test_apply_once(client, recruiter, as_user):
    job_id = post_job(client, recruiter)
    create_profile(client, as_user)
    headers = as_user("cand-1", "candidate")

    first = client.post(f"/api/jobs/{job_id}/apply", json={"coverLetter": "Hi"}, headers=headers)
    assert first.status_code == 201

    again = client.post(f"/api/jobs/{job_id}/apply", json={}, headers=headers)
    assert again.status_code == 400
    assert again.json()["detail"] == "Already applied to this job"


def test_concurrent_duplicate_apply_is_refused(client, recruiter, as_user, monkeypatch, mongo):
    job_id = post_job(client, recruiter)
    create_profile(client, as_user)
    headers = as_user("cand-1", "candidate")
    assert client.post(f"/api/jobs/{job_id}/apply", json={}, headers=headers).status_code == 201

    # Both requests pass the lookup before either inserts
    monkeypatch.setattr(ApplicationService, "get", lambda self, job_id, candidate_id: None)
    again = client.post(f"/api/jobs/{job_id}/apply", json={}, headers=headers)

    assert again.status_code == 400
    assert again.json()["detail"] == "Already applied to this job"
    assert mongo["applications"].count_documents({"job_id": job_id}) == 1


def test_apply_requires_profile_and_active_job(client, recruiter, as_user):
    headers = as_user("cand-1", "candidate")
    job_id = post_job(client, recruiter)
    assert client.post(f"/api/jobs/{job_id}/apply", json={}, headers=headers).status_code == 404

    create_profile(client, as_user)
    draft_id = post_job(client, recruiter, status="Draft")
    assert client.post(f"/api/jobs/{draft_id}/apply", json={}, headers=headers).status_code == 400


def test_recruiters_cannot_apply(client, recruiter):
    job_id = post_job(client, recruiter)
    assert client.post(f"/api/jobs/{job_id}/apply", json={}, headers=recruiter).status_code == 403


def test_blind_hiring_redacts_until_hired(client, recruiter, as_user):
    job_id = post_job(client, recruiter)
    create_profile(client, as_user)
    client.post(f"/api/jobs/{job_id}/apply", json={}, headers=as_user("cand-1", "candidate"))

    applicants = client.get(f"/api/jobs/{job_id}/applicants", headers=recruiter).json()
    assert len(applicants) == 1
    hidden = applicants[0]
    assert hidden["displayName"] == "Anonymous Candidate"
    assert hidden["isRedacted"] is True
    for field in ("firstName", "lastName", "email", "imageUrl", "resumeUrl"):
        assert hidden[field] is None
    assert hidden["education"] == []
    assert hidden["skills"] == ["React", "TypeScript"]
    assert hidden["workExperience"][0]["company"] == "Analytical Engines"

    shortlisted = client.post(
        f"/api/jobs/{job_id}/applicants/cand-1/status", json={"status": "Shortlisted"}, headers=recruiter
    ).json()
    assert shortlisted["isRedacted"] is True

    hired = client.post(
        f"/api/jobs/{job_id}/applicants/cand-1/status", json={"status": "Hired"}, headers=recruiter
    ).json()
    assert hired["isRedacted"] is False
    assert hired["displayName"] == "Ada Lovelace"
    assert hired["email"] == "ada@connectx.dev"


def test_open_job_shows_identity(client, recruiter, as_user):
    job_id = post_job(client, recruiter, blindHiring=False)
    create_profile(client, as_user)
    client.post(f"/api/jobs/{job_id}/apply", json={}, headers=as_user("cand-1", "candidate"))

    applicant = client.get(f"/api/jobs/{job_id}/applicants", headers=recruiter).json()[0]
    assert applicant["isRedacted"] is False
    assert applicant["firstName"] == "Ada"


def test_applicants_owner_only(client, recruiter, other_recruiter):
    job_id = post_job(client, recruiter)
    assert client.get(f"/api/jobs/{job_id}/applicants", headers=other_recruiter).status_code == 403


def test_status_update_rejects_unknown_status(client, recruiter, as_user):
    job_id = post_job(client, recruiter)
    create_profile(client, as_user)
    client.post(f"/api/jobs/{job_id}/apply", json={}, headers=as_user("cand-1", "candidate"))
    response = client.post(
        f"/api/jobs/{job_id}/applicants/cand-1/status", json={"status": "Maybe"}, headers=recruiter
    )
    assert response.status_code == 422


def test_assess_blends_ai_and_skill_overlap(client, recruiter, as_user, model, mongo):
    job_id = post_job(client, recruiter)
    create_profile(client, as_user)
    client.post(f"/api/jobs/{job_id}/apply", json={}, headers=as_user("cand-1", "candidate"))
    model.queue({"score": 80, "analysis": "Strong React background."})

    response = client.post(f"/api/jobs/{job_id}/applicants/cand-1/assess", headers=recruiter)
    assert response.status_code == 200
    body = response.json()
    assert body["aiScore"] == 80.0
    assert body["skillMatchPct"] == 50.0
    assert body["suitabilityScore"] == 71.0

    stored = mongo["applications"].find_one({"job_id": job_id, "candidate_id": "cand-1"})
    assert stored["suitability_score"] == 71.0
    assert stored["suitability_analysis"] == "Strong React background."


def test_assess_maps_model_failure_to_500(client, recruiter, as_user, model):
    job_id = post_job(client, recruiter)
    create_profile(client, as_user)
    client.post(f"/api/jobs/{job_id}/apply", json={}, headers=as_user("cand-1", "candidate"))
    model.queue(AIServiceError("quota exceeded"))

    response = client.post(f"/api/jobs/{job_id}/applicants/cand-1/assess", headers=recruiter)
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to assess candidate"
