"""
HTTP tests for the training plans router.

The plan service is swapped in through dependency_overrides so requests run
against the per-test SQLite database and in-process cache.
"""
import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient

from core.exceptions import InfrastructureError
from main import app
from routers.training_plans import get_plan_service

PLAN_BODY = {
    "goal": "strength",
    "frequency": 3,
    "available_equipment": ["gym completo"],
    "start_date": "2026-03-02",
}


@pytest.fixture
def client(plan_service):
    app.dependency_overrides[get_plan_service] = lambda: plan_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(test_user):
    return {"X-User-Id": test_user.id}


@pytest.fixture
def plan(client, headers, catalog_exercises):
    response = client.post("/v1/plans", json=PLAN_BODY, headers=headers)
    assert response.status_code == 201
    return response.json()


def _log_body(plan, workout_index=0):
    workout = plan["workouts"][workout_index]
    exercise_id = workout["exercises"][0]["exercise_id"]
    return {
        "plan_id": plan["id"],
        "sets": [{"exercise_id": exercise_id, "weight": 80, "reps": 4, "rpe": 8}],
    }


class TestPlans:

    def test_create_plan(self, plan, test_user):
        assert plan["user_id"] == test_user.id
        assert plan["goal"] == "strength"
        assert plan["progression_rule"] == "INTENSITY"
        assert len(plan["workouts"]) == 12
        assert plan["workouts"][0]["scheduled_at"] == "2026-03-02"

    def test_invalid_frequency_error_shape(self, client, headers, catalog_exercises):
        response = client.post("/v1/plans", json={**PLAN_BODY, "frequency": 7}, headers=headers)
        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR_FREQUENCY"
        assert "frequency" in body["detail"]

    def test_second_create_is_rate_limited(self, client, headers, plan):
        response = client.post("/v1/plans", json=PLAN_BODY, headers=headers)
        assert response.status_code == 429
        assert response.json()["error_code"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) > 0

    def test_missing_acting_user(self, client, catalog_exercises):
        response = client.post("/v1/plans", json=PLAN_BODY)
        assert response.status_code == 422

    def test_get_plan(self, client, headers, plan):
        response = client.get(f"/v1/plans/{plan['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == plan["id"]

    def test_get_plan_of_other_user(self, client, plan, other_user):
        response = client.get(f"/v1/plans/{plan['id']}", headers={"X-User-Id": other_user.id})
        assert response.status_code == 403
        assert response.json()["error_code"] == "OWNERSHIP_MISMATCH"

    def test_unknown_plan(self, client, headers):
        response = client.get("/v1/plans/missing", headers=headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestWorkouts:

    def test_next_workout(self, client, headers, plan):
        response = client.get("/v1/workouts/next", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"plan_id": plan["id"], "workout_id": plan["workouts"][0]["id"]}

    def test_next_workout_without_plan(self, client, headers):
        response = client.get("/v1/workouts/next", headers=headers)
        assert response.status_code == 200
        assert response.json() is None

    def test_reschedule(self, client, headers, plan):
        workout_id = plan["workouts"][0]["id"]
        response = client.patch(
            f"/v1/workouts/{workout_id}/schedule", json={"new_date": "2026-04-01"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["scheduled_at"] == "2026-04-01"

    def test_reschedule_bad_date(self, client, headers, plan):
        workout_id = plan["workouts"][0]["id"]
        response = client.patch(f"/v1/workouts/{workout_id}/schedule", json={"new_date": "soon"}, headers=headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_NEW_DATE"

    def test_log_then_conflict(self, client, headers, plan):
        workout_id = plan["workouts"][0]["id"]

        first = client.post(f"/v1/workouts/{workout_id}/log", json=_log_body(plan), headers=headers)
        second = client.post(f"/v1/workouts/{workout_id}/log", json=_log_body(plan), headers=headers)

        assert first.status_code == 200
        assert first.json()["completed_at"] is not None
        assert first.json()["adherence"] == pytest.approx(0.067)
        assert second.status_code == 409
        assert second.json()["error_code"] == "CONFLICT"


class TestDrafts:

    def test_autosave_and_read_back(self, client, plan):
        workout_id = plan["workouts"][0]["id"]
        body = {"plan_id": plan["id"], "sets": [{"exercise_id": "e1", "reps": 5}]}

        saved = client.put(f"/v1/workouts/{workout_id}/draft", json=body)
        loaded = client.get(f"/v1/workouts/{workout_id}/draft")

        assert saved.json() == {"ok": True}
        assert loaded.status_code == 200
        assert loaded.json()["sets"][0]["reps"] == 5

    def test_missing_draft(self, client):
        response = client.get("/v1/workouts/nothing/draft")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestProgressionPreview:

    def test_preview(self, client):
        response = client.post("/v1/progression/preview", json={
            "rule": "VOLUME",
            "history": [{
                "date": "2026-02-01T08:00:00",
                "exercise_id": "row",
                "weight": 40,
                "reps": 10,
                "rpe": 8,
                "adherence": 0.95,
            }],
        })
        assert response.status_code == 200
        assert response.json() == [{"exercise_id": "row", "target_weight": 40.0, "target_reps": 12, "adherence": 0.95}]

    def test_invalid_rule(self, client):
        response = client.post("/v1/progression/preview", json={"rule": "SPEED", "history": []})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_RULE"


class TestInfrastructure:

    def test_store_failure_is_generic_503(self, headers):
        service = MagicMock()
        service.create_plan.side_effect = InfrastructureError()
        app.dependency_overrides[get_plan_service] = lambda: service
        try:
            response = TestClient(app).post("/v1/plans", json=PLAN_BODY, headers=headers)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert response.json() == {
            "detail": "Temporary problem, please try again",
            "error_code": "INFRASTRUCTURE_ERROR",
        }

    def test_health(self):
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_without_database(self):
        with patch("main.check_db_connection", return_value=False):
            response = TestClient(app).get("/health")
        assert response.status_code == 503
        assert response.json()["database"] == "unavailable"

    def test_request_id_is_echoed(self):
        response = TestClient(app).get("/health", headers={"X-Request-Id": "req-abc"})
        assert response.headers["X-Request-Id"] == "req-abc"

    def test_request_id_is_generated(self):
        response = TestClient(app).get("/health")
        assert len(response.headers["X-Request-Id"]) == 32
