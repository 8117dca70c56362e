"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from hermes_engine.api.config import reset_settings
from hermes_engine.api.main import create_app

API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def client(engine, monkeypatch):
    monkeypatch.setenv("HERMES_API_KEY", API_KEY)
    reset_settings()
    with TestClient(create_app(engine)) as client:
        yield client
    reset_settings()


@pytest.fixture
def created(client, make_candidate):
    response = client.post("/api/leads", json=make_candidate(), headers=HEADERS)
    assert response.status_code == 201
    return response.json()


class TestAuth:
    """Tests for request authentication."""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}

    def test_missing_key(self, client):
        response = client.get("/api/leads")
        assert response.status_code == 401

    def test_wrong_key(self, client):
        response = client.get("/api/leads", headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_missing_key_message(self, client):
        body = client.get("/api/leads").json()
        assert body["detail"]["error"] == "unauthorized"
        assert body["detail"]["detail"] == "Authentication required"

    def test_non_ascii_key_rejected(self, client):
        response = client.get("/api/leads", headers={"X-API-Key": "cl\u00e9-\u00fcber".encode("utf-8")})
        assert response.status_code == 401
        assert response.json()["detail"]["detail"] == "Invalid API key"

    def test_valid_key(self, client):
        assert client.get("/api/leads", headers=HEADERS).status_code == 200


class TestLeadRoutes:
    """Tests for /api/leads."""

    def test_create(self, created):
        assert created["status"] == "NEW"
        assert created["sourceUrl"] == "https://example.com/1"

    def test_duplicate_returns_existing(self, client, created, make_candidate):
        response = client.post("/api/leads", json=make_candidate(), headers=HEADERS)

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "conflict"
        assert body["lead"]["id"] == created["id"]

    def test_malformed_body(self, client, make_candidate):
        response = client.post("/api/leads", json=make_candidate(favouriteColor="blue"), headers=HEADERS)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_bad_url(self, client, make_candidate):
        response = client.post("/api/leads", json=make_candidate(sourceUrl="nope"), headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["field"] == "source_url"

    def test_bulk(self, client, created, make_candidate):
        batch = [make_candidate(1), make_candidate(2), {"title": "no source"}]
        response = client.post("/api/leads/bulk", json=batch, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["created"] == 1
        assert response.json()["exists"] == 1
        assert response.json()["failed"] == 1

    def test_list(self, client, created):
        body = client.get("/api/leads", params={"status": "NEW"}, headers=HEADERS).json()
        assert body["total"] == 1
        assert body["leads"][0]["id"] == created["id"]

    def test_list_invalid_status(self, client):
        response = client.get("/api/leads", params={"status": "CLOSED"}, headers=HEADERS)
        assert response.status_code == 400

    def test_detail(self, client, created):
        client.post(f"/api/leads/{created['id']}/notes", json={"content": "Hi"}, headers=HEADERS)
        body = client.get(f"/api/leads/{created['id']}", headers=HEADERS).json()

        assert body["notes"][0]["content"] == "Hi"
        assert body["messages"] == []

    def test_not_found(self, client):
        response = client.get("/api/leads/missing", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_patch(self, client, created):
        response = client.patch(
            f"/api/leads/{created['id']}",
            json={"status": "CONTACTED", "company": "Acme"},
            headers=HEADERS,
        )
        body = response.json()
        assert body["status"] == "CONTACTED"
        assert body["contactedAt"] is not None
        assert body["company"] == "Acme"

    def test_patch_invalid_status(self, client, created):
        response = client.patch(
            f"/api/leads/{created['id']}", json={"status": "CLOSED"}, headers=HEADERS
        )
        assert response.status_code == 400

    def test_manual_score(self, client, created):
        response = client.put(
            f"/api/leads/{created['id']}/score",
            json={"score": 70, "reasons": ["+referral"]},
            headers=HEADERS,
        )
        assert response.json()["scoreReasons"] == ["[Manual]", "+referral"]

    def test_delete(self, client, created):
        assert client.delete(f"/api/leads/{created['id']}", headers=HEADERS).json() == {"success": True}
        assert client.get(f"/api/leads/{created['id']}", headers=HEADERS).status_code == 404

    def test_pipeline(self, client, created):
        body = client.get("/api/leads/stats/pipeline", headers=HEADERS).json()
        assert body["NEW"] == 1
        assert body["WON"] == 0

    def test_enrich_without_domain(self, client, created):
        response = client.post(f"/api/leads/{created['id']}/enrich", headers=HEADERS)
        assert response.status_code == 400


class TestAgentRoutes:
    """Tests for /api/ai."""

    def test_qualify_and_outreach(self, client, created):
        lead_id = created["id"]
        qualified = client.post(
            f"/api/ai/qualify/{lead_id}",
            json={"score": 20, "reasons": ["+react"], "analysis": "Good fit"},
            headers=HEADERS,
        ).json()
        assert qualified["lead"]["status"] == "QUALIFIED"

        draft = client.post(f"/api/ai/outreach/{lead_id}", json={}, headers=HEADERS).json()
        assert draft["bucket"] == "startup"
        message_id = draft["message"]["id"]

        sent = client.post(
            f"/api/ai/message/{message_id}/sent", json={"externalId": "t1_x"}, headers=HEADERS
        ).json()
        assert sent["lead"]["status"] == "CONTACTED"
        assert sent["message"]["externalId"] == "t1_x"

        responded = client.post(
            f"/api/ai/lead/{lead_id}/response",
            json={"content": "Interested", "channel": "EMAIL", "sentiment": "positive"},
            headers=HEADERS,
        ).json()
        assert responded["lead"]["status"] == "RESPONDED"

    def test_qualify_rejects_non_integer(self, client, created):
        response = client.post(
            f"/api/ai/qualify/{created['id']}",
            json={"score": "high", "reasons": []},
            headers=HEADERS,
        )
        assert response.status_code == 400

    def test_next_actions(self, client, created):
        body = client.get("/api/ai/next-actions", headers=HEADERS).json()
        assert body["summary"]["leadsToQualify"] == 1

    def test_digest(self, client, created):
        body = client.get("/api/ai/digest", params={"date": "2026-03-10"}, headers=HEADERS).json()
        assert body["date"] == "2026-03-10"
        assert body["summary"]["newLeads"] == 1


class TestOutreachRoutes:
    """Tests for /api/outreach."""

    def test_draft_round(self, client, created):
        lead_id = created["id"]
        preview = client.get(f"/api/outreach/leads/{lead_id}/draft", headers=HEADERS).json()
        assert preview["isExisting"] is False

        saved = client.post(
            f"/api/outreach/leads/{lead_id}/draft",
            json={"subject": preview["subject"], "body": preview["body"]},
            headers=HEADERS,
        ).json()
        assert saved["created"] is True

        preview = client.get(f"/api/outreach/leads/{lead_id}/draft", headers=HEADERS).json()
        assert preview["isExisting"] is True

    def test_send_without_provider(self, client, created):
        response = client.post(
            f"/api/outreach/leads/{created['id']}/send",
            json={"subject": "Hi", "body": "Hello", "recipientEmail": "jane@acme.io"},
            headers=HEADERS,
        )
        assert response.status_code == 502
        assert response.json()["provider"] == "resend"

    def test_bucket_templates(self, client):
        buckets = client.get("/api/outreach/templates", headers=HEADERS).json()
        assert {b["bucket"] for b in buckets} == {"startup", "hiring_post", "web3", "followup"}


class TestTaskAndTemplateRoutes:
    """Tests for /api/tasks and /api/templates."""

    def test_task_lifecycle(self, client, created):
        task = client.post(
            "/api/tasks",
            json={"title": "Call Jane", "leadId": created["id"], "priority": "HIGH"},
            headers=HEADERS,
        ).json()
        assert task["status"] == "PENDING"

        pending = client.get("/api/tasks/pending", headers=HEADERS).json()
        assert [t["id"] for t in pending] == [task["id"]]

        done = client.post(f"/api/tasks/{task['id']}/complete", headers=HEADERS).json()
        assert done["status"] == "COMPLETED"
        assert done["completedAt"] is not None

        reopen = client.patch(f"/api/tasks/{task['id']}", json={"status": "PENDING"}, headers=HEADERS)
        assert reopen.status_code == 400

    def test_templates(self, client):
        templates = client.get("/api/templates", headers=HEADERS).json()
        assert len(templates) == 4

        rendered = client.post(
            "/api/templates/follow-up-day-7/render",
            json={"variables": {"author": "Jane", "title": "your app"}},
            headers=HEADERS,
        ).json()
        assert rendered["content"].startswith("Hey Jane,")

    def test_create_template(self, client):
        response = client.post(
            "/api/templates",
            json={"name": "Ping", "type": "CUSTOM", "content": "Hi {{firstName}}"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        assert response.json()["variables"] == ["firstName"]


class TestStatsRoutes:
    """Tests for /api/stats."""

    def test_dashboard_and_funnel(self, client, created):
        dashboard = client.get("/api/stats/dashboard", headers=HEADERS).json()
        assert dashboard["overview"]["totalLeads"] == 1

        funnel = client.get("/api/stats/funnel", headers=HEADERS).json()
        assert funnel[0] == {"stage": "Scraped", "count": 1, "rate": 100}

    def test_daily_record(self, client, created):
        recorded = client.post("/api/stats/daily/record", headers=HEADERS).json()
        assert recorded["leadsScraped"] == 1

        history = client.get("/api/stats/daily", params={"days": 7}, headers=HEADERS).json()
        assert len(history) == 1
