from __future__ import annotations

from fastapi.testclient import TestClient


def build_campaign_payload(**overrides) -> dict:
    payload = {
        "name": "Summer Launch",
        "type": "email",
        "status": "active",
        "description": "Launch sequence for the summer release",
        "targetAudience": "Existing customers",
        "budget": 5000,
        "startDate": "2026-06-01T00:00:00Z",
        "endDate": "",
        "metrics": {"leads": 100, "conversions": 10, "roi": 50},
    }
    payload.update(overrides)
    return payload


def build_contact_payload(**overrides) -> dict:
    payload = {
        "firstName": "Sarah",
        "lastName": "Johnson",
        "email": "sarah@techcorp.com",
        "company": "TechCorp Solutions",
        "leadScore": 85,
        "tags": ["enterprise"],
    }
    payload.update(overrides)
    return payload


def test_campaign_crud_round_trip(auth_client) -> None:
    created = auth_client.post("/api/campaigns", json=build_campaign_payload())
    assert created.status_code == 201
    body = created.json()
    campaign_id = body["id"]
    assert body["targetAudience"] == "Existing customers"
    assert body["endDate"] is None
    assert body["createdAt"] == body["updatedAt"]

    fetched = auth_client.get(f"/api/campaigns/{campaign_id}")
    assert fetched.status_code == 200
    assert fetched.json() == body

    patched = auth_client.patch(f"/api/campaigns/{campaign_id}", json={"status": "paused"})
    assert patched.status_code == 200
    assert patched.json()["status"] == "paused"
    assert patched.json()["name"] == "Summer Launch"

    put = auth_client.put(f"/api/campaigns/{campaign_id}", json={"name": "Summer Launch v2"})
    assert put.status_code == 200
    assert put.json()["name"] == "Summer Launch v2"
    assert put.json()["status"] == "paused"

    deleted = auth_client.delete(f"/api/campaigns/{campaign_id}")
    assert deleted.status_code == 204
    missing = auth_client.get(f"/api/campaigns/{campaign_id}")
    assert missing.status_code == 404
    assert missing.json()["detail"] == f"campaign not found: {campaign_id}"
    assert auth_client.delete(f"/api/campaigns/{campaign_id}").status_code == 404


def test_contact_create_defaults_and_update(auth_client) -> None:
    created = auth_client.post(
        "/api/contacts",
        json={"firstName": "Mike", "lastName": "Chen", "email": "mike@example.com"},
    )
    assert created.status_code == 201
    contact = created.json()
    assert contact["leadScore"] == 0
    assert contact["status"] == "new"
    assert contact["tags"] == []

    updated = auth_client.patch(
        f"/api/contacts/{contact['id']}", json={"leadScore": 72, "status": "qualified"}
    )
    assert updated.status_code == 200
    assert updated.json()["leadScore"] == 72

    invalid = auth_client.patch(f"/api/contacts/{contact['id']}", json={"leadScore": 101})
    assert invalid.status_code == 422
    nulled = auth_client.patch(f"/api/contacts/{contact['id']}", json={"email": None})
    assert nulled.status_code == 422
    assert auth_client.get(f"/api/contacts/{contact['id']}").json()["leadScore"] == 72


def test_other_user_sees_not_found(client, register_user) -> None:
    register_user(client, "alice")
    task = client.post("/api/tasks", json={"title": "Plan webinar", "priority": "high"})
    assert task.status_code == 201
    task_id = task.json()["id"]

    bob = TestClient(client.app)
    register_user(bob, "bob")

    assert bob.get("/api/tasks").json() == []
    assert bob.get(f"/api/tasks/{task_id}").status_code == 404
    assert bob.patch(f"/api/tasks/{task_id}", json={"title": "Mine"}).status_code == 404
    assert bob.delete(f"/api/tasks/{task_id}").status_code == 404

    still_there = client.get(f"/api/tasks/{task_id}")
    assert still_there.status_code == 200
    assert still_there.json()["title"] == "Plan webinar"


def test_lists_are_newest_first(auth_client) -> None:
    for title in ("first", "second", "third"):
        assert auth_client.post("/api/tasks", json={"title": title}).status_code == 201

    titles = [task["title"] for task in auth_client.get("/api/tasks").json()]

    assert titles == ["third", "second", "first"]


def test_writes_append_activities(auth_client) -> None:
    auth_client.post("/api/campaigns", json=build_campaign_payload())
    auth_client.post("/api/contacts", json=build_contact_payload())
    task = auth_client.post("/api/tasks", json={"title": "Analyze Q2 performance"}).json()
    auth_client.patch(f"/api/tasks/{task['id']}", json={"status": "in_progress"})
    auth_client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"})
    auth_client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"})

    feed = auth_client.get("/api/activities").json()

    assert [item["type"] for item in feed] == [
        "task_completed",
        "contact_created",
        "campaign_created",
    ]
    assert feed[0]["title"] == "Completed task: Analyze Q2 performance"
    assert feed[0]["metadata"] == {"entityId": task["id"], "entityType": "task"}
    assert feed[1]["title"] == "Added new contact: Sarah Johnson from TechCorp Solutions"


def test_manual_activity_and_limit(auth_client) -> None:
    for index in range(3):
        response = auth_client.post(
            "/api/activities",
            json={"type": "note", "title": f"Call notes {index}", "metadata": {"minutes": index}},
        )
        assert response.status_code == 201

    limited = auth_client.get("/api/activities?limit=2")

    assert limited.status_code == 200
    assert [item["title"] for item in limited.json()] == ["Call notes 2", "Call notes 1"]


def test_dashboard_metrics_endpoint(auth_client) -> None:
    auth_client.post("/api/campaigns", json=build_campaign_payload())
    auth_client.post(
        "/api/campaigns",
        json=build_campaign_payload(
            name="Draft", status="draft", metrics={"leads": 0, "conversions": 0, "roi": 0}
        ),
    )
    for score in (85, 65, 30):
        auth_client.post("/api/contacts", json=build_contact_payload(leadScore=score))
    auth_client.post("/api/tasks", json={"title": "Open task"})

    response = auth_client.get("/api/dashboard/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["activeCampaigns"] == 1
    assert body["totalLeads"] == 3
    assert body["conversionRate"] == "10.0%"
    assert body["roi"] == "25%"
    assert body["leadScores"] == {"hot": 1, "warm": 1, "cold": 1}
    assert body["openTasks"] == 1
    assert set(body["growth"]) == {"campaigns", "leads", "conversions", "roi"}


def test_seeded_workspace_dashboard(seeded_client) -> None:
    login = seeded_client.post(
        "/api/auth/login", json={"username": "founder", "password": "password"}
    )
    assert login.status_code == 200

    metrics = seeded_client.get("/api/dashboard/metrics").json()

    assert metrics["activeCampaigns"] == 2
    assert metrics["totalLeads"] == 2
    assert metrics["leadScores"]["hot"] == 2
    assert len(seeded_client.get("/api/campaigns").json()) == 3
    assert seeded_client.get("/api/activities").json()


def test_invalid_enum_is_rejected(auth_client) -> None:
    response = auth_client.post("/api/campaigns", json=build_campaign_payload(type="billboard"))
    assert response.status_code == 422


def test_non_finite_campaign_numbers_are_rejected(auth_client) -> None:
    # The JSON decoder accepts these literals, so validation has to refuse them.
    for body in (
        '{"name": "Inf", "type": "email", "metrics": {"leads": 1, "conversions": 0, "roi": Infinity}}',
        '{"name": "NaN", "type": "email", "budget": NaN}',
    ):
        response = auth_client.post(
            "/api/campaigns", content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422

    campaign_id = auth_client.post("/api/campaigns", json=build_campaign_payload()).json()["id"]
    patched = auth_client.patch(
        f"/api/campaigns/{campaign_id}",
        content='{"metrics": {"leads": 1, "conversions": 0, "roi": -Infinity}}',
        headers={"Content-Type": "application/json"},
    )
    assert patched.status_code == 422

    assert auth_client.get("/api/campaigns").status_code == 200
    dashboard = auth_client.get("/api/dashboard/metrics")
    assert dashboard.status_code == 200
    assert dashboard.json()["roi"] == "50%"


def test_zero_activity_limit_returns_empty_feed(auth_client) -> None:
    auth_client.post("/api/activities", json={"type": "note", "title": "Call notes"})

    response = auth_client.get("/api/activities?limit=0")

    assert response.status_code == 200
    assert response.json() == []
