"""
Integration tests for the FastAPI routes in main.py.

The service dependency is overridden with one wired to in-memory
repositories, so these run without PostgreSQL.
"""

import random
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import main
from models import SLEEP_LOG
from rules import FALLBACK_KEEP_LOGGING, FALLBACK_MORE_DATA
from service_insights import InsightsService
from tests.factories import (
    AS_OF,
    USER,
    BrokenEventRepo,
    BrokenInsightRepo,
    FakeEventRepo,
    FakeInsightRepo,
    days_ago,
    event,
)


def client_for(events_repo, insights_repo, strict=False) -> TestClient:
    svc = InsightsService(
        events_repo, insights_repo, clock=lambda: AS_OF, tz=timezone.utc, strict_persist=strict
    )
    main.app.dependency_overrides[main.get_service] = lambda: svc
    main.app.dependency_overrides[main.get_event_repo] = lambda: events_repo
    return TestClient(main.app)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    main.app.dependency_overrides.clear()


class TestRunInsights:
    def test_zero_events(self):
        client = client_for(FakeEventRepo(), FakeInsightRepo())

        response = client.post("/insights", json={"user_id": USER})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "insights": [FALLBACK_KEEP_LOGGING, FALLBACK_MORE_DATA],
            "events_analyzed": 0,
            "persisted": True,
        }

    def test_counts_events_analyzed(self):
        events = [event(SLEEP_LOG, days_ago(d), quality=4) for d in range(1, 4)]
        client = client_for(FakeEventRepo(events), FakeInsightRepo())

        data = client.post("/insights", json={"user_id": USER}).json()

        assert data["events_analyzed"] == 3

    @pytest.mark.parametrize("body", [{}, {"user_id": ""}, {"user_id": "  "}])
    def test_missing_user_id_is_client_error(self, body):
        client = client_for(FakeEventRepo(), FakeInsightRepo())

        response = client.post("/insights", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "user_id is required"}

    def test_malformed_body_is_client_error(self):
        client = client_for(FakeEventRepo(), FakeInsightRepo())

        response = client.post("/insights", json={"user_id": ["a", "b"]})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_fetch_failure_is_server_error(self):
        client = client_for(BrokenEventRepo(), FakeInsightRepo())

        response = client.post("/insights", json={"user_id": USER})

        assert response.status_code == 500
        assert "connection refused" in response.json()["error"]

    def test_persist_failure_still_returns_insights(self):
        client = client_for(FakeEventRepo(), BrokenInsightRepo())

        response = client.post("/insights", json={"user_id": USER})

        assert response.status_code == 200
        assert response.json()["persisted"] is False
        assert response.json()["insights"]

    def test_persist_failure_in_strict_mode(self):
        client = client_for(FakeEventRepo(), BrokenInsightRepo(), strict=True)

        response = client.post("/insights", json={"user_id": USER})

        assert response.status_code == 500
        assert "Failed to store insights" in response.json()["error"]


class TestStoredInsights:
    def test_returns_latest_run_in_priority_order(self):
        insight_repo = FakeInsightRepo()
        client = client_for(FakeEventRepo(), insight_repo)
        client.post("/insights", json={"user_id": USER})
        client.post("/insights", json={"user_id": USER})

        response = client.get(f"/insights/{USER}")

        assert response.status_code == 200
        rows = response.json()
        assert [r["priority"] for r in rows] == [1, 2]
        assert rows[0]["insight_text"] == FALLBACK_KEEP_LOGGING

    def test_unknown_user_has_no_rows(self):
        client = client_for(FakeEventRepo(), FakeInsightRepo())
        assert client.get("/insights/nobody").json() == []


class TestHealthAndSeed:
    def test_health_ok(self):
        client = client_for(FakeEventRepo(), FakeInsightRepo())
        assert client.get("/health").json() == {"ok": True}

    def test_health_reports_db_failure(self):
        client = client_for(BrokenEventRepo(), FakeInsightRepo())

        response = client.get("/health")

        assert response.status_code == 500
        assert "DB health check failed" in response.json()["error"]

    def test_seed_writes_demo_month(self):
        events_repo = FakeEventRepo()
        client = client_for(events_repo, FakeInsightRepo())

        response = client.post("/seed", params={"user_id": USER, "days": 10, "seed": 1})

        assert response.status_code == 200
        inserted = response.json()["inserted"]
        assert inserted == len(events_repo.inserted)
        # sleep, mood, somatic and three drinks every day, activity on some
        assert 60 <= inserted <= 70
        assert {e.user_id for e in events_repo.inserted} == {USER}

    def test_demo_events_produce_insights(self):
        now = datetime.now(timezone.utc)
        demo = main.demo_events(USER, 29, now, random.Random(3))
        events_repo = FakeEventRepo(
            [event(e.event_type, e.created_at, **e.payload) for e in demo]
        )
        svc = InsightsService(events_repo, FakeInsightRepo(), clock=lambda: now, tz=timezone.utc)

        result = svc.run(USER)

        assert result.events_analyzed == len(demo)
        assert result.events_analyzed > 100
        assert FALLBACK_MORE_DATA not in result.insights


class TestErrorShape:
    def test_unknown_route_uses_error_body(self):
        client = client_for(FakeEventRepo(), FakeInsightRepo())

        response = client.get("/no-such-route")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_wrong_method_uses_error_body(self):
        client = client_for(FakeEventRepo(), FakeInsightRepo())

        response = client.get("/insights")

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}
