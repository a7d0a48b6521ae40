import pytest

from app.services.planning_service import (
    compute_input_hash,
    get_planning_service,
    validate_job_options,
    validate_milestone_plan,
    validate_role_plan,
)
from app.utils.money import to_cents


def test_milestone_plan_drops_untitled_and_coerces_hours():
    plan = validate_milestone_plan({
        "projectTitle": "Recipe App",
        "techStack": "React, Firebase",
        "milestones": [
            {"title": "Auth", "description": "Sign in", "estimatedHours": "12.4"},
            {"title": "", "estimatedHours": 3},
            {"title": "Feed", "estimatedHours": -5},
            "garbage",
        ],
    })
    assert plan["project_title"] == "Recipe App"
    assert plan["tech_stack"] == ["React", "Firebase"]
    assert [m["title"] for m in plan["milestones"]] == ["Auth", "Feed"]
    assert plan["milestones"][0]["estimated_hours"] == 12
    assert plan["milestones"][1]["estimated_hours"] == 0


def test_milestone_plan_tolerates_non_dict():
    plan = validate_milestone_plan(["not", "a", "plan"])
    assert plan == {"project_title": "Untitled Project", "tech_stack": [], "milestones": []}


def test_job_option_budget_falls_back_to_hours():
    result = validate_job_options({"options": [{
        "title": "MVP",
        "totalHours": 10,
        "tasks": [{"description": "Build", "hours": 6}, {"description": "Test", "hours": 4}],
    }]}, hourly_rate=30)
    option = result["options"][0]
    assert option["budget"] == 300.0
    assert option["job_type"] == "Contract"
    assert [t["payout"] for t in option["tasks"]] == [180.0, 120.0]


def test_job_option_task_payouts_rescaled_to_budget():
    result = validate_job_options({"options": [
        {
            "title": "Standard",
            "type": "Freelance",
            "techStack": ["React", "Node"],
            "budget": 1000,
            "tasks": [
                {"description": "A", "hours": 10, "payout": 300},
                {"description": "B", "hours": 10, "payout": 300},
                {"description": "", "payout": 999},
            ],
        },
        {"description": "no title"},
    ]}, hourly_rate=30)
    assert len(result["options"]) == 1
    option = result["options"][0]
    assert option["tech_stack"] == "React, Node"
    assert option["job_type"] == "Freelance"
    assert sum(to_cents(t["payout"]) for t in option["tasks"]) == 100000


def test_role_plan_rescales_modules_to_main_budget():
    plan = validate_role_plan({
        "title": "Marketplace",
        "roles": [
            {"title": "Frontend Developer", "skills": "React, CSS"},
            {"title": "frontend developer"},
            {"title": "Backend Developer", "skills": ["Python"]},
        ],
        "modules": [
            {"title": "UI", "roleTitle": "FRONTEND DEVELOPER", "payout": 300},
            {"title": "API", "roleTitle": "Backend Developer", "payout": 300},
            {"title": "Docs", "roleTitle": "Technical Writer", "payout": 0},
        ],
    }, budget=1000, compensation_share=0.10)

    assert [r["title"] for r in plan["roles"]] == ["Frontend Developer", "Backend Developer"]
    assert plan["roles"][0]["skills"] == ["React", "CSS"]
    assert plan["main_budget"] == 900.0
    assert [m["payout"] for m in plan["modules"]] == [450.0, 450.0, 0.0]
    assert plan["modules"][0]["role_title"] == "Frontend Developer"
    assert plan["modules"][2]["role_title"] is None


def test_role_plan_uses_model_budget_when_none_given():
    plan = validate_role_plan({
        "budget": 500,
        "roles": [{"title": "Dev"}],
        "modules": [{"title": "All", "roleTitle": "Dev", "estimatedHours": 10}],
    })
    assert plan["budget"] == 500.0
    assert plan["modules"][0]["payout"] == 450.0


def test_input_hash_ignores_case_and_key_order():
    a = compute_input_hash("milestones", {"idea": "Todo App", "rate": 30})
    b = compute_input_hash("milestones", {"rate": 30, "idea": "todo app"})
    assert a == b
    assert a != compute_input_hash("job_options", {"idea": "todo app", "rate": 30})


def test_milestones_are_cached(model, mongo):
    model.queue({"projectTitle": "Todo", "milestones": [{"title": "CRUD", "estimatedHours": 5}]})
    service = get_planning_service()

    first = service.milestones("  A todo app ")
    second = service.milestones("A todo app")

    assert first == second
    assert len(model.calls) == 1
    assert mongo["ai_generations"].count_documents({"kind": "milestones"}) == 1


def test_role_plan_passes_budget_and_timeline_to_model(model):
    model.queue({"roles": [{"title": "Dev"}], "modules": [{"title": "M", "roleTitle": "Dev", "payout": 10}]})
    plan = get_planning_service().role_plan("Chat app", budget=200, timeline="2 Weeks")
    assert "Total budget: $200" in model.calls[0]["user"]
    assert "Timeline: 2 Weeks" in model.calls[0]["user"]
    assert plan["modules"][0]["payout"] == pytest.approx(180.0)
