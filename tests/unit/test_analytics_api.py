"""Unit tests for page view ingest and the admin analytics dashboard."""

from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from src.adapters.sqlite_db import SQLitePageViewRepo
from src.domain.entities import PageView


class TestIngest:
    def test_records_page_view(
        self, client: TestClient, page_view_repo: SQLitePageViewRepo
    ) -> None:
        response = client.post("/api/analytics/pageview", json={"path": "/projects"})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert page_view_repo.count("pageviews") == 1

    def test_rejects_absolute_url(
        self, client: TestClient, page_view_repo: SQLitePageViewRepo
    ) -> None:
        response = client.post(
            "/api/analytics/pageview", json={"path": "https://elsewhere.example/x"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PATH"
        assert page_view_repo.count("pageviews") == 0

    def test_rejects_empty_path(self, client: TestClient) -> None:
        response = client.post("/api/analytics/pageview", json={"path": ""})

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_PATH"


class TestDashboard:
    def test_requires_login(self, client: TestClient) -> None:
        assert client.get("/api/admin/analytics").status_code == 401

    def test_counts_and_change(
        self, admin_client: TestClient, page_view_repo: SQLitePageViewRepo
    ) -> None:
        now = datetime.now(UTC)
        for _ in range(3):
            page_view_repo.save(PageView(path="/", created_at=now - timedelta(hours=1)))
        page_view_repo.save(PageView(path="/skills", created_at=now - timedelta(hours=2)))
        # Previous 7-day period
        for _ in range(2):
            page_view_repo.save(PageView(path="/", created_at=now - timedelta(days=10)))

        response = admin_client.get("/api/admin/analytics", params={"days": 7})

        assert response.status_code == 200
        body = response.json()
        assert body["days"] == 7
        assert body["stats"]["pageviews"] == {"count": 6, "change": 2, "percentage": 100}
        assert body["stats"]["subscribers"] == {"count": 0, "change": 0, "percentage": 0}
        assert len(body["daily_pageviews"]) == 7
        assert body["daily_pageviews"][-1]["date"] == now.date().isoformat()
        assert body["top_pages"] == [
            {"path": "/", "count": 3},
            {"path": "/skills", "count": 1},
        ]

    def test_default_period_from_rules(self, admin_client: TestClient) -> None:
        body = admin_client.get("/api/admin/analytics").json()

        assert body["days"] == 30
        assert set(body["stats"]) == {
            "pageviews",
            "subscribers",
            "newsletters",
            "projects",
            "certificates",
            "skills",
            "careers",
        }

    def test_period_bounds(self, admin_client: TestClient) -> None:
        assert admin_client.get("/api/admin/analytics", params={"days": 0}).status_code == 422
        assert admin_client.get("/api/admin/analytics", params={"days": 400}).status_code == 422
