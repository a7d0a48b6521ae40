JOB = {
    "title": "Landing page for a bakery",
    "description": "Responsive landing page with an order form",
    "timeline": "1-2 Weeks",
    "type": "Contract",
    "techStack": "React, Tailwind",
    "budget": 500,
    "tasks": [{"description": "Design", "payout": 200}, {"description": "Build", "payout": 250}],
}


def post_job(client, headers, **overrides):
    response = client.post("/api/jobs/post", json={**JOB, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_post_job_splits_budget(client, recruiter):
    job = post_job(client, recruiter)
    assert job["recruiterId"] == "rec-1"
    assert job["type"] == "Contract"
    assert job["mainBudget"] == 450.0
    assert job["compensationBudget"] == 50.0
    assert job["status"] == "Active"
    assert job["isSquadProject"] is False
    assert len(job["tasks"]) == 2


def test_post_job_requires_fields(client, recruiter):
    response = client.post("/api/jobs/post", json={**JOB, "timeline": "  "}, headers=recruiter)
    assert response.status_code == 400
    assert response.json()["detail"] == "Please fill in all required fields."


def test_post_job_rejects_tasks_over_budget(client, recruiter):
    response = client.post(
        "/api/jobs/post",
        json={**JOB, "budget": 100, "tasks": [{"description": "Everything", "payout": 150}]},
        headers=recruiter,
    )
    assert response.status_code == 400


def test_post_job_accepts_blank_budget(client, recruiter):
    job = post_job(client, recruiter, budget="", tasks=[])
    assert job["budget"] is None
    assert job["mainBudget"] == 0


def test_post_job_rejects_foreign_recruiter_id(client, recruiter):
    response = client.post("/api/jobs/post", json={**JOB, "recruiterId": "rec-9"}, headers=recruiter)
    assert response.status_code == 403


def test_list_jobs_filters_and_hides_drafts(client, recruiter):
    post_job(client, recruiter)
    post_job(client, recruiter, title="Python scraper", techStack="Python, Scrapy", type="Freelance")
    post_job(client, recruiter, title="Secret draft", status="Draft")

    everything = client.get("/api/jobs").json()
    assert everything["total"] == 2
    assert everything["pageSize"] == 10

    by_skill = client.get("/api/jobs", params={"skill": "scrapy"}).json()
    assert [j["title"] for j in by_skill["jobs"]] == ["Python scraper"]

    by_search = client.get("/api/jobs", params={"search": "BAKERY"}).json()
    assert by_search["total"] == 1

    by_type = client.get("/api/jobs", params={"type": "Freelance"}).json()
    assert by_type["total"] == 1

    page = client.get("/api/jobs", params={"page": 2, "pageSize": 1}).json()
    assert len(page["jobs"]) == 1
    assert page["total"] == 2


def test_recruiter_jobs_include_drafts(client, recruiter, other_recruiter):
    post_job(client, recruiter)
    post_job(client, recruiter, status="Draft")

    response = client.get("/api/jobs/recruiter/rec-1", headers=recruiter)
    assert response.status_code == 200
    assert len(response.json()) == 2

    assert client.get("/api/jobs/recruiter/rec-1", headers=other_recruiter).status_code == 403


def test_update_job_owner_only(client, recruiter, other_recruiter):
    job = post_job(client, recruiter)
    update = {**JOB, "jobId": job["jobId"], "title": "Landing page v2", "budget": 1000}

    assert client.post("/api/jobs/update", json=update, headers=other_recruiter).status_code == 403

    response = client.post("/api/jobs/update", json=update, headers=recruiter)
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Landing page v2"
    assert body["mainBudget"] == 900.0
    assert body["postedAt"] is not None


def test_update_missing_job(client, recruiter):
    response = client.post("/api/jobs/update", json={**JOB, "jobId": "nope"}, headers=recruiter)
    assert response.status_code == 404


def test_get_and_delete_job(client, recruiter, other_recruiter):
    job = post_job(client, recruiter)
    job_id = job["jobId"]

    assert client.get(f"/api/jobs/{job_id}").json()["title"] == JOB["title"]
    assert client.delete(f"/api/jobs/{job_id}", headers=other_recruiter).status_code == 403

    response = client.delete(f"/api/jobs/{job_id}", headers=recruiter)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(f"/api/jobs/{job_id}").status_code == 404


def test_post_job_refuses_server_owned_status(client, recruiter):
    for status in ("Completed", "Closed"):
        response = client.post("/api/jobs/post", json={**JOB, "status": status}, headers=recruiter)
        assert response.status_code == 422
