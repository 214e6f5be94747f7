from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import goalplanner.goals as goals_router
from goalplanner.checkins import router as checkins_router
from goalplanner.dashboard import router as dashboard_router
from goalplanner.dependencies import get_store
from goalplanner.errors import PersistenceError
from goalplanner.profile import router as profile_router
from goalplanner.services import goals_service, profile_service

from .conftest import NOW, InMemoryStore, make_profile


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    monkeypatch.setattr(goals_service, "_now", lambda: NOW)
    monkeypatch.setattr(profile_service, "_now", lambda: NOW)


def _app(store) -> FastAPI:
    app = FastAPI()
    app.include_router(profile_router)
    app.include_router(goals_router.router)
    app.include_router(checkins_router)
    app.include_router(dashboard_router)
    app.dependency_overrides[get_store] = lambda: store
    return app


def _seeded(store, **profile_overrides):
    profile = make_profile(**profile_overrides)
    store.profiles[profile.user_id] = profile
    return profile, {"X-User-Id": str(profile.user_id)}


def test_user_header_required(store) -> None:
    with TestClient(_app(store)) as client:
        assert client.get("/goals").status_code == 401
        assert client.get("/goals", headers={"X-User-Id": "not-a-uuid"}).status_code == 401


def test_profile_assessment_flow(store) -> None:
    headers = {"X-User-Id": str(uuid4())}

    with TestClient(_app(store)) as client:
        assert client.get("/profile", headers=headers).status_code == 404

        created = client.post(
            "/profile",
            headers=headers,
            json={
                "name": "Asha",
                "monthly_income": "80000",
                "monthly_expenses": "45000",
                "risk_profile": "moderate",
            },
        )
        duplicate = client.post(
            "/profile",
            headers=headers,
            json={"name": "Asha", "monthly_income": "1", "monthly_expenses": "0"},
        )
        patched = client.patch("/profile", headers=headers, json={"risk_profile": "aggressive"})
        empty_patch = client.patch("/profile", headers=headers, json={})

    assert created.status_code == 201
    body = created.json()
    assert body["streak_days"] == 0
    assert body["monthly_surplus"] == "35000.00"
    assert body["daily_surplus"] == "1167.00"
    assert body["annual_return"] == "0.12"
    assert duplicate.status_code == 409
    assert patched.json()["risk_profile"] == "aggressive"
    assert empty_patch.status_code == 422


def test_create_goal_and_view_plan(store) -> None:
    profile, headers = _seeded(store)

    with TestClient(_app(store)) as client:
        created = client.post(
            "/goals",
            headers=headers,
            json={"name": "Foreign Trip", "target_amount": "500000", "horizon_months": 24},
        )
        goal_id = created.json()["id"]
        detail = client.get(f"/goals/{goal_id}", headers=headers)

    assert created.status_code == 201
    goal = created.json()
    assert goal["monthly_amount"] == "18537.00"
    assert goal["daily_amount"] == "618.00"
    assert goal["category"] == "short"
    assert goal["current_amount"] == "0.00"

    plan = detail.json()
    assert detail.status_code == 200
    assert plan["months_left"] == 25
    assert len(plan["projection"]) == 26
    assert plan["projection"][0]["projected"] == "0.00"
    assert plan["milestones"]["next_milestone"]["percentage"] == 25
    assert plan["is_feasible"] is True
    assert len(store.goals[profile.user_id]) == 1


def test_create_goal_from_template(store) -> None:
    _, headers = _seeded(store)

    with TestClient(_app(store)) as client:
        templates = client.get("/goals/templates")
        created = client.post("/goals", headers=headers, json={"template": "education"})

    assert [t["key"] for t in templates.json()][0] == "foreign_trip"
    assert templates.json()[-1]["suggested_amount"] is None
    assert created.status_code == 201
    assert created.json()["name"] == "Education"
    assert created.json()["category"] == "medium"


def test_create_goal_validation_errors(store) -> None:
    _, headers = _seeded(store)

    with TestClient(_app(store)) as client:
        no_horizon = client.post("/goals", headers=headers, json={"name": "Bike", "target_amount": "1000"})
        past_date = client.post(
            "/goals",
            headers=headers,
            json={"name": "Bike", "target_amount": "1000", "target_date": (NOW - timedelta(days=1)).isoformat()},
        )
        zero_amount = client.post(
            "/goals", headers=headers, json={"name": "Bike", "target_amount": "0", "horizon_months": 3}
        )

    assert no_horizon.status_code == 422
    assert "horizon_months" in no_horizon.json()["detail"]
    assert past_date.status_code == 422
    assert zero_amount.status_code == 422


def test_goal_requires_profile(store) -> None:
    headers = {"X-User-Id": str(uuid4())}

    with TestClient(_app(store)) as client:
        response = client.post("/goals", headers=headers, json={"template": "wedding"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Profile not found"


def test_preview_plan_saves_nothing(store) -> None:
    profile, headers = _seeded(store)

    with TestClient(_app(store)) as client:
        response = client.post(
            "/goals/plan",
            headers=headers,
            json={"target_amount": "500000", "horizon_months": 24},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["monthly_amount"] == "18537.00"
    assert body["is_feasible"] is True
    assert body["category"] == "short"
    assert profile.user_id not in store.goals


def test_edit_contribute_deactivate_delete(store) -> None:
    profile, headers = _seeded(store, last_check_in=NOW - timedelta(days=1), streak_days=6)
    goal = goals_service.create_goal(profile, {"template": "foreign_trip"}, NOW)
    store.goals[profile.user_id] = [goal]

    with TestClient(_app(store)) as client:
        edited = client.patch(f"/goals/{goal.id}", headers=headers, json={"target_amount": "400000"})
        empty = client.patch(f"/goals/{goal.id}", headers=headers, json={})
        contributed = client.post(
            f"/goals/{goal.id}/contributions", headers=headers, json={"amount": "600000"}
        )
        again = client.post(f"/goals/{goal.id}/contributions", headers=headers, json={"amount": "5"})
        bad_amount = client.post(f"/goals/{goal.id}/contributions", headers=headers, json={"amount": "0"})
        deactivated = client.post(f"/goals/{goal.id}/deactivate", headers=headers)
        active_only = client.get("/goals", headers=headers, params={"status": "active"})
        deleted = client.delete(f"/goals/{goal.id}", headers=headers)
        missing = client.get(f"/goals/{goal.id}", headers=headers)

    assert edited.status_code == 200
    assert Decimal(edited.json()["monthly_amount"]) < goal.monthly_amount
    assert empty.status_code == 422

    assert contributed.status_code == 200
    assert contributed.json()["goal"]["current_amount"] == "400000.00"
    assert contributed.json()["streak_days"] == 7
    assert contributed.json()["weekly_streak"] is True
    assert again.json()["streak_updated"] is False
    assert bad_amount.status_code == 422

    assert deactivated.json()["is_active"] is False
    assert active_only.json() == []
    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert store.profiles[profile.user_id].streak_days == 7


def test_check_in_and_dashboard(store) -> None:
    profile, headers = _seeded(store, last_check_in=NOW - timedelta(days=3), streak_days=10)
    store.goals[profile.user_id] = [goals_service.create_goal(profile, {"template": "foreign_trip"}, NOW)]

    with TestClient(_app(store)) as client:
        checked_in = client.post("/check-ins", headers=headers, json={"amount": "309"})
        dashboard = client.get("/dashboard", headers=headers)

    assert checked_in.status_code == 200
    body = checked_in.json()
    assert body["streak_days"] == 1
    assert body["daily_target"] == "618.00"
    assert body["target_progress_pct"] == "50.00"
    assert body["streak_tier"] == "building"

    summary = dashboard.json()
    assert summary["checked_in_today"] is True
    assert summary["active_goal_count"] == 1
    assert summary["streak_days"] == 1


def test_storage_failure_maps_to_503() -> None:
    class BrokenStore(InMemoryStore):
        async def load_goals(self, user_id):
            raise PersistenceError("Could not load goals")

    store = BrokenStore()
    _, headers = _seeded(store)

    with TestClient(_app(store)) as client:
        response = client.get("/goals", headers=headers)

    assert response.status_code == 503


def test_check_in_with_habits(store) -> None:
    profile, headers = _seeded(store, last_check_in=NOW - timedelta(days=1), streak_days=1)
    store.goals[profile.user_id] = [goals_service.create_goal(profile, {"template": "foreign_trip"}, NOW)]

    with TestClient(_app(store)) as client:
        habits = client.get("/check-ins/habits")
        checked_in = client.post(
            "/check-ins",
            headers=headers,
            json={"habits": ["public_transport", "cancelled_subscription"], "reflection": "okay"},
        )
        unknown = client.post("/check-ins", headers=headers, json={"habits": ["gym_membership"]})
        bad_reflection = client.post("/check-ins", headers=headers, json={"reflection": "great"})

    assert [h["savings"] for h in habits.json()] == ["50.00", "150.00", "100.00", "200.00", "300.00"]

    body = checked_in.json()
    assert checked_in.status_code == 200
    assert body["amount_saved"] == "300.00"
    assert [h["key"] for h in body["habits"]] == ["public_transport", "cancelled_subscription"]
    assert body["reflection"] == "okay"
    assert body["target_progress_pct"] == "48.54"
    assert body["streak_days"] == 2

    assert unknown.status_code == 404
    assert bad_reflection.status_code == 422
