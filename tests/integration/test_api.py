"""Tests for JobTracker API endpoints."""

import pytest

from conftest import FIXED_NOW, MISSING_URL, POSTING_URL
from jobtracker.main import app


def create_job(client, headers, **fields):
    payload = {"company": "Acme", "position": "Engineer", **fields}
    response = client.post("/jobs", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


@pytest.mark.integration
class TestPublicEndpoints:
    """Test endpoints that need no session."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "JobTracker"}

    def test_statuses(self, client):
        statuses = client.get("/statuses").json()
        assert [s["value"] for s in statuses] == ["saved", "applied", "interview", "offer", "rejected"]
        assert statuses[0] == {"value": "saved", "label": "Saved", "description": "Job saved for later application"}

    def test_unknown_route_uses_message_body(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert "message" in response.json()


@pytest.mark.integration
class TestAuthentication:
    """Test session enforcement."""

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer wrong"},
        {"Authorization": "Basic dG9rZW4tYQ=="},
    ])
    def test_rejected_without_valid_token(self, client, headers):
        response = client.get("/jobs", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}

    def test_auth_checked_before_validation(self, client):
        response = client.post("/jobs", json={}, headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401


@pytest.mark.integration
class TestJobsCrud:
    """Test job endpoints."""

    def test_create_and_get(self, client, auth_headers):
        job = create_job(client, auth_headers, status="applied", location="Remote")

        assert job["status"] == "applied"
        assert job["applied_date"] == FIXED_NOW.isoformat()

        response = client.get(f"/jobs/{job['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["location"] == "Remote"

    def test_create_requires_company_and_position(self, client, auth_headers):
        response = client.post("/jobs", json={"company": "Acme"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Company and position are required"}

    def test_create_rejects_bad_status(self, client, auth_headers):
        response = client.post("/jobs", json={"company": "Acme", "position": "Eng", "status": "bogus"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid status"}

    def test_create_rejects_bad_url(self, client, auth_headers):
        response = client.post(
            "/jobs", json={"company": "Acme", "position": "Eng", "url": "ftp://x"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert "valid URL" in response.json()["message"]

    def test_jobs_are_private(self, client, auth_headers, other_headers):
        job = create_job(client, auth_headers)

        response = client.get(f"/jobs/{job['id']}", headers=other_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Job not found"}
        assert client.get("/jobs", headers=other_headers).json() == []

    def test_update(self, client, auth_headers):
        job = create_job(client, auth_headers)
        response = client.put(f"/jobs/{job['id']}", json={"salary": "100k"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["salary"] == "100k"
        assert response.json()["position"] == "Engineer"

    def test_update_blank_company(self, client, auth_headers):
        job = create_job(client, auth_headers)
        response = client.put(f"/jobs/{job['id']}", json={"company": " "}, headers=auth_headers)
        assert response.status_code == 400

    def test_delete(self, client, auth_headers):
        job = create_job(client, auth_headers)

        response = client.delete(f"/jobs/{job['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Job deleted successfully"}
        assert client.get(f"/jobs/{job['id']}", headers=auth_headers).status_code == 404
        assert client.delete(f"/jobs/{job['id']}", headers=auth_headers).status_code == 404

    def test_list_filters_and_sorting(self, client, auth_headers):
        create_job(client, auth_headers, company="Zeta", position="Analyst")
        create_job(client, auth_headers, company="Beta", position="Engineer", status="applied")
        create_job(client, auth_headers, company="Alpha", position="Designer", location="Lisbon")

        def companies(query):
            response = client.get(f"/jobs{query}", headers=auth_headers)
            assert response.status_code == 200
            return [j["company"] for j in response.json()]

        assert companies("") == ["Alpha", "Beta", "Zeta"]
        assert companies("?status=applied") == ["Beta"]
        assert companies("?status=all&sortBy=company&sortDirection=asc") == ["Alpha", "Beta", "Zeta"]
        assert companies("?search=lisbon") == ["Alpha"]

    def test_list_rejects_unknown_sort(self, client, auth_headers):
        response = client.get("/jobs?sortBy=password", headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid sort field"}


@pytest.mark.integration
class TestLifecycleEndpoints:
    """Test status and note endpoints."""

    def test_status_update(self, client, auth_headers):
        job = create_job(client, auth_headers)
        response = client.put(f"/jobs/{job['id']}/status", json={"status": "interview"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "interview"
        assert response.json()["interview_date"] == FIXED_NOW.isoformat()

    @pytest.mark.parametrize("body", [{"status": "bogus"}, {}, {"status": None}])
    def test_invalid_status(self, client, auth_headers, body):
        job = create_job(client, auth_headers)
        response = client.put(f"/jobs/{job['id']}/status", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid status"}
        assert client.get(f"/jobs/{job['id']}", headers=auth_headers).json()["status"] == "saved"

    def test_status_update_missing_job(self, client, auth_headers):
        response = client.put("/jobs/does-not-exist/status", json={"status": "offer"}, headers=auth_headers)
        assert response.status_code == 404

    def test_add_note(self, client, auth_headers):
        job = create_job(client, auth_headers)
        response = client.post(f"/jobs/{job['id']}/notes", json={"note": "called recruiter"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["notes"].endswith(": called recruiter")

    def test_empty_note(self, client, auth_headers):
        job = create_job(client, auth_headers)
        response = client.post(f"/jobs/{job['id']}/notes", json={"note": "  "}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Note cannot be empty"}

    def test_conflict_is_409(self, client, auth_headers, store):
        job = create_job(client, auth_headers)
        original_find = store.find_by_id

        async def find_then_race(job_id, user_id):
            row = await original_find(job_id, user_id)
            await store.update(job_id, user_id, {"salary": "changed"})
            return row

        store.find_by_id = find_then_race
        response = client.put(f"/jobs/{job['id']}/status", json={"status": "offer"}, headers=auth_headers)

        assert response.status_code == 409
        assert "modified" in response.json()["message"]


@pytest.mark.integration
class TestDashboard:
    """Test stats and activity endpoints."""

    def test_stats_camel_case(self, client, auth_headers):
        create_job(client, auth_headers)
        create_job(client, auth_headers, status="applied")
        create_job(client, auth_headers, status="offer")

        response = client.get("/dashboard/stats", headers=auth_headers)
        data = response.json()

        assert response.status_code == 200
        assert data["total"] == 3
        assert data["responseRate"] == 50
        assert data["offerRate"] == 50
        assert data["averageResponseTime"] == 0
        assert len(data["monthlyData"]) == 6
        assert data["monthlyData"][-1] == {
            "month": "Oct", "year": 2026, "applied": 1, "interview": 0, "offer": 0, "rejected": 0,
        }

    def test_stats_events_mode(self, client, auth_headers):
        create_job(client, auth_headers, status="offer")
        data = client.get("/dashboard/stats?monthly=events", headers=auth_headers).json()
        assert data["monthlyData"][-1]["offer"] == 1

    def test_stats_bad_mode(self, client, auth_headers):
        assert client.get("/dashboard/stats?monthly=daily", headers=auth_headers).status_code == 400

    def test_activities(self, client, auth_headers):
        job = create_job(client, auth_headers)
        client.put(f"/jobs/{job['id']}/status", json={"status": "applied"}, headers=auth_headers)

        response = client.get("/activities?limit=5", headers=auth_headers)
        activities = response.json()

        assert response.status_code == 200
        assert [a["activity_type"] for a in activities] == ["status_changed", "job_created"]
        assert activities[0]["job"] == {"id": job["id"], "company": "Acme", "position": "Engineer"}

    @pytest.mark.parametrize("limit", ["0", "101", "many"])
    def test_activities_limit(self, client, auth_headers, limit):
        response = client.get(f"/activities?limit={limit}", headers=auth_headers)
        assert response.status_code == 400


@pytest.mark.integration
class TestPostingImport:
    """Test scraping and extraction endpoints."""

    def test_scrape_url(self, client, auth_headers):
        response = client.post("/scrape-url", json={"url": POSTING_URL}, headers=auth_headers)
        assert response.status_code == 200
        assert "<script" not in response.json()["content"]

    def test_scrape_invalid_url(self, client, auth_headers):
        response = client.post("/scrape-url", json={"url": "javascript:alert(1)"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid URL format"}

    def test_scrape_upstream_failure(self, client, auth_headers):
        response = client.post("/scrape-url", json={"url": MISSING_URL}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch URL: Not Found"}

    def test_extract_without_ai(self, client, auth_headers):
        response = client.post("/jobs/extract", json={"url": POSTING_URL}, headers=auth_headers)
        draft = response.json()

        assert response.status_code == 200
        assert draft["company"] == "Acme Corp"
        assert draft["position"] == "Senior Backend Engineer"
        assert draft["status"] == "saved"
        assert draft["url"] == POSTING_URL
        assert draft["notes"] == (
            "Requirements:\n• 5+ years of Python\n• PostgreSQL\n\nQualifications:\n• FastAPI experience"
        )

    def test_extract_with_ai(self, client, auth_headers, fake_ai):
        app.state.ai = fake_ai
        response = client.post("/jobs/extract", json={"url": POSTING_URL}, headers=auth_headers)
        draft = response.json()

        assert draft["company"] == "Initech"
        assert draft["notes"] == "Requirements:\n• Kubernetes"
        content, url = fake_ai.calls[0]
        assert url == POSTING_URL
        assert "<script" not in content

    def test_extract_saves_nothing(self, client, auth_headers, store):
        client.post("/jobs/extract", json={"url": POSTING_URL}, headers=auth_headers)
        assert store.jobs == {}

    def test_analyze_requires_content(self, client, auth_headers):
        response = client.post("/analyze-job", json={"url": POSTING_URL}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Content is required"}

    def test_analyze_without_ai(self, client, auth_headers):
        page = "<title>Chef at Good Food Co</title>"
        response = client.post("/analyze-job", json={"content": page}, headers=auth_headers)
        assert response.json()["position"] == "Chef"
        assert response.json()["company"] == "Good Food Co"
