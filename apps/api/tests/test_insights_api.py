"""
API tests for the insights and community routers.

The engine dependency is overridden with one wired to in-memory fakes, and
auth is overridden with a plain user, so no database or Redis is needed.
"""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from core.auth import get_current_user
from fixtures.pattern_fixtures import events_days_ago, make_pattern, make_trigger
from main import app
from models import User
from routers.insights import get_insights_engine
from services.insight_types import CommunityPattern, CorrelatedPattern


@pytest.fixture
def current_user():
    return User(id=uuid4(), email="someone@example.com", role="user")


@pytest.fixture
def admin_user():
    return User(id=uuid4(), email="admin@example.com", role="admin")


@pytest.fixture
def client(engine, current_user):
    app.dependency_overrides[get_insights_engine] = lambda: engine
    app.dependency_overrides[get_current_user] = lambda: current_user
    yield TestClient(app)
    app.dependency_overrides.pop(get_insights_engine, None)
    app.dependency_overrides.pop(get_current_user, None)


def _seed(repository, user_id):
    pattern = make_pattern(
        "Late-night snacking",
        triggers=[
            make_trigger("stress", 2, 6),
            make_trigger("stress", 2, 5),
            make_trigger("boredom", 2, 5),
            make_trigger("boredom", 2, 6),
            make_trigger("boredom", 2, 5.5),
        ],
        timeline=events_days_ago(50, 40, 30, 20),
    )
    repository.patterns[user_id] = [pattern]
    return pattern


class TestGetInsights:

    def test_returns_rendered_insights_for_current_user(self, client, repository, current_user):
        _seed(repository, current_user.id)

        response = client.get("/v1/insights")

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == str(current_user.id)
        assert body["total"] == len(body["insights"])
        kinds = [i["kind"] for i in body["insights"]]
        assert kinds == ["trigger_frequency", "timeline_trend", "recurrence_prediction"]

        trigger = body["insights"][0]
        assert trigger["category"] == "trigger"
        assert "boredom" in trigger["message"]
        assert trigger["data"]["dominant_trigger"] == "boredom"
        assert trigger["data"]["mean_intensity"] == 5.5
        assert "pattern_id" not in trigger["data"]

    def test_user_without_patterns_gets_empty_list(self, client):
        response = client.get("/v1/insights")

        assert response.status_code == 200
        assert response.json()["insights"] == []
        assert response.json()["total"] == 0

    def test_second_call_is_served_from_cache(self, client, repository, current_user):
        _seed(repository, current_user.id)

        client.get("/v1/insights")
        client.get("/v1/insights")

        assert repository.load_calls == 1

    def test_non_admin_cannot_read_another_user(self, client):
        response = client.get("/v1/insights", params={"user_id": str(uuid4())})

        assert response.status_code == 403

    def test_admin_can_read_another_user(self, client, repository, admin_user):
        other_user_id = uuid4()
        _seed(repository, other_user_id)
        app.dependency_overrides[get_current_user] = lambda: admin_user

        response = client.get("/v1/insights", params={"user_id": str(other_user_id)})

        assert response.status_code == 200
        assert response.json()["user_id"] == str(other_user_id)
        assert response.json()["total"] > 0

    def test_engine_failure_is_a_generic_500(self, client, repository, insight_cache):
        repository.fail_with = RuntimeError("connection reset")

        response = client.get("/v1/insights")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch insights"
        assert "connection reset" not in response.text
        assert insight_cache.put_calls == 0


class TestAnalyzeAndRecommendations:

    def test_analyze_bypasses_cache(self, client, repository, current_user):
        _seed(repository, current_user.id)

        client.get("/v1/insights")
        response = client.post("/v1/insights/analyze")

        assert response.status_code == 200
        assert repository.load_calls == 2

    def test_analyze_failure(self, client, repository):
        repository.fail_with = RuntimeError("boom")

        response = client.post("/v1/insights/analyze")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to analyze patterns"

    def test_recommendations_for_pattern(self, client, repository, current_user):
        pattern = _seed(repository, current_user.id)

        response = client.get(f"/v1/insights/patterns/{pattern.id}/recommendations")

        assert response.status_code == 200
        body = response.json()
        assert body["pattern_id"] == str(pattern.id)
        assert "Focus on managing boredom triggers first" in body["recommendations"]
        assert len(body["recommendations"]) == len(set(body["recommendations"]))

    def test_recommendations_reject_bad_uuid(self, client):
        response = client.get("/v1/insights/patterns/not-a-uuid/recommendations")

        assert response.status_code == 422


class TestCommunityEndpoints:

    @patch("routers.community.set_cache")
    @patch("routers.community.get_cache", return_value=None)
    def test_cache_miss_reads_knowledge_base(self, mock_get, mock_set, client, repository):
        repository.knowledge_base["eating"] = CommunityPattern(
            pattern_type="eating",
            prevalence=25.0,
            common_triggers=["stress"],
            effective_interventions=["walk"],
            average_resolution_time=21.5,
            correlated_patterns=[CorrelatedPattern(pattern="sleep", correlation=0.7)],
        )

        response = client.get("/v1/community/patterns/eating")

        assert response.status_code == 200
        body = response.json()
        assert body["prevalence"] == 25.0
        assert body["correlated_patterns"] == [{"pattern": "sleep", "correlation": 0.7}]
        mock_get.assert_called_once_with("community_patterns:eating")
        assert mock_set.call_args[0][0] == "community_patterns:eating"

    @patch("routers.community.get_cache")
    def test_cache_hit_skips_knowledge_base(self, mock_get, client):
        mock_get.return_value = {"pattern_type": "eating", "prevalence": 12.5}

        response = client.get("/v1/community/patterns/eating")

        assert response.status_code == 200
        assert response.json()["prevalence"] == 12.5

    @patch("routers.community.get_cache", return_value=None)
    def test_unknown_category_is_404(self, mock_get, client):
        response = client.get("/v1/community/patterns/unknown")

        assert response.status_code == 404

    def test_refresh_requires_admin(self, client):
        response = client.post("/v1/community/refresh")

        assert response.status_code == 403

    def test_refresh_enqueues_task(self, client, admin_user):
        app.dependency_overrides[get_current_user] = lambda: admin_user

        with patch("tasks.community_tasks.refresh_community_patterns_task") as mock_task:
            mock_task.delay.return_value = MagicMock(id="task-123")
            response = client.post("/v1/community/refresh")

        assert response.status_code == 202
        assert response.json()["status"] == "queued"
        assert response.json()["task_id"] == "task-123"
        mock_task.delay.assert_called_once_with()


class TestHealth:

    def test_ping(self, client):
        assert client.get("/ping").json() == {"pong": True}

    @patch("main.check_db_connection", return_value=False)
    def test_health_reports_database_down(self, mock_check, client):
        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "unavailable"
