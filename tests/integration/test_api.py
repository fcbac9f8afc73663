"""HTTP tests over the full application."""

import pytest

from src.core.config import constants
from tests.helpers import auth_headers


TASK_PAYLOAD = {
    "title": "Close the month",
    "primary_responsible_user_id": "alice",
    "accountable_user_id": "bob",
    "deadline_type": "days",
    "deadline_value": 2,
}


def _create_task(client, user_id: str = "alice") -> dict:
    response = client.post("/tasks", json=TASK_PAYLOAD, headers=auth_headers(user_id))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


@pytest.mark.integration
def test_scheduler_health_lists_jobs(client):
    response = client.get("/health/scheduler")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert constants.RECURRING_INSTANCES_JOB in response.json()["jobs"]


@pytest.mark.integration
def test_requests_without_a_valid_token_are_rejected(client):
    assert client.get("/tasks").status_code == 401
    assert client.get("/tasks", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


@pytest.mark.integration
def test_session_cookie_is_accepted(client):
    from src.interface.auth import SESSION_COOKIE, issue_session_token

    client.cookies.set(SESSION_COOKIE, issue_session_token("alice"))
    try:
        assert client.get("/tasks").status_code == 200
    finally:
        client.cookies.clear()


@pytest.mark.integration
def test_me_reports_roles_and_capabilities(client):
    admin = client.get("/me", headers=auth_headers("admin-1")).json()
    assert admin["roles"] == ["admin"]
    assert "users" in admin["capabilities"]
    assert admin["profile"]["name"] == "Ada Admin"

    member = client.get("/me", headers=auth_headers("alice")).json()
    assert member["roles"] == ["team_member"]
    assert "admin_dashboard" not in member["capabilities"]

    stranger = client.get("/me", headers=auth_headers("stranger")).json()
    assert stranger["profile"] is None
    assert stranger["roles"] == []


@pytest.mark.integration
def test_create_and_read_task(client):
    created = _create_task(client)
    task_id = created["template"]["id"]
    instance_id = created["instance"]["id"]

    assert created["instance"]["status"] == "assigned"
    assert client.get(f"/tasks/{task_id}", headers=auth_headers("carol")).json()["title"] == "Close the month"
    assert [t["id"] for t in client.get("/tasks/mine", headers=auth_headers("bob")).json()] == [task_id]
    assert client.get("/tasks/mine", headers=auth_headers("carol")).json() == []

    detail = client.get(f"/instances/{instance_id}", headers=auth_headers("alice")).json()
    assert detail["template"]["id"] == task_id
    assert len(detail["status_logs"]) == 1


@pytest.mark.integration
def test_invalid_payloads(client):
    short = client.post("/tasks", json={**TASK_PAYLOAD, "title": "ab"}, headers=auth_headers("alice"))
    assert short.status_code == 422

    bad_deadline = client.post("/tasks", json={**TASK_PAYLOAD, "deadline_value": "x"}, headers=auth_headers("alice"))
    assert bad_deadline.status_code == 400
    assert bad_deadline.json()["code"] == "ERR_INVALID_DEADLINE"

    missing = client.get("/tasks/999", headers=auth_headers("alice"))
    assert missing.status_code == 404
    assert missing.json()["code"] == "ERR_NOT_FOUND"


@pytest.mark.integration
def test_status_change_flow(client):
    instance_id = _create_task(client)["instance"]["id"]
    url = f"/instances/{instance_id}/status"

    ok = client.post(url, json={"status": "in-progress", "expected_version": 1}, headers=auth_headers("alice"))
    assert ok.status_code == 200
    assert ok.json()["instance"]["version"] == 2
    assert ok.json()["new_status"] == "in-progress"

    stale = client.post(url, json={"status": "completed", "expected_version": 1}, headers=auth_headers("bob"))
    assert stale.status_code == 409
    assert stale.json()["code"] == "ERR_CONFLICT"
    assert stale.json()["current_version"] == 2

    noop = client.post(url, json={"status": "in-progress"}, headers=auth_headers("alice"))
    assert noop.status_code == 400
    assert noop.json()["code"] == "ERR_INVALID_STATE_TRANSITION"

    denied = client.post(url, json={"status": "completed"}, headers=auth_headers("carol"))
    assert denied.status_code == 403
    assert denied.json()["code"] == "ERR_PERMISSION_DENIED"

    done = client.post(url, json={"status": "completed", "comment": "Filed"}, headers=auth_headers("bob"))
    assert done.status_code == 200
    detail = client.get(f"/instances/{instance_id}", headers=auth_headers("bob")).json()
    assert detail["outcome"]["outcome"] == "completed"
    assert detail["outcome"]["comments"] == "Filed"
    assert [log["new_status"] for log in detail["status_logs"]] == ["completed", "in-progress", "assigned"]


@pytest.mark.integration
def test_list_instances_with_status_filter(client):
    _create_task(client)

    assert len(client.get("/instances?status_filter=assigned", headers=auth_headers("alice")).json()) == 1
    assert client.get("/instances?status_filter=blocked", headers=auth_headers("alice")).json() == []
    assert client.get("/instances?status_filter=nope", headers=auth_headers("alice")).status_code == 400


@pytest.mark.integration
def test_dashboards_are_role_gated(client):
    _create_task(client)

    assert client.get("/dashboard/admin", headers=auth_headers("alice")).status_code == 403
    manager = client.get("/dashboard/admin", headers=auth_headers("manager-1"))
    assert manager.status_code == 200
    assert manager.json()["task_stats"]["total"] == 1

    personal = client.get("/dashboard", headers=auth_headers("alice")).json()
    assert personal["user_id"] == "alice"
    assert len(personal["instances"]) == 1


@pytest.mark.integration
def test_user_administration_is_admin_only(client):
    payload = {"user_id": "dave", "name": "Dave", "roles": ["manager"]}

    assert client.post("/users", json=payload, headers=auth_headers("manager-1")).status_code == 403
    created = client.post("/users", json=payload, headers=auth_headers("admin-1"))
    assert created.status_code == 201
    assert created.json()["roles"] == ["manager"]

    listed = client.get("/users", headers=auth_headers("manager-1"))
    assert listed.status_code == 200
    assert "dave" in {user["profile"]["user_id"] for user in listed.json()}
    assert client.get("/users", headers=auth_headers("alice")).status_code == 403

    roles = client.post("/users/dave/roles", json={"roles": ["admin"]}, headers=auth_headers("admin-1"))
    assert roles.json() == ["admin"]


@pytest.mark.integration
def test_teams_and_sops(client):
    assert client.post("/teams", json={"name": "Ops"}, headers=auth_headers("alice")).status_code == 403
    team = client.post("/teams", json={"name": "Ops"}, headers=auth_headers("manager-1"))
    assert team.status_code == 201

    sop = client.post(
        "/sops", json={"title": "Close SOP", "link": "https://example.com/close"}, headers=auth_headers("admin-1")
    )
    assert sop.status_code == 201

    assert [t["team"]["name"] for t in client.get("/teams", headers=auth_headers("alice")).json()] == ["Ops"]
    assert [s["title"] for s in client.get("/sops", headers=auth_headers("alice")).json()] == ["Close SOP"]


@pytest.mark.integration
def test_notifications_endpoint(client):
    _create_task(client)

    response = client.get("/notifications", headers=auth_headers("alice"))

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.integration
def test_patch_cannot_null_required_fields(client):
    task_id = _create_task(client)["template"]["id"]

    response = client.patch(f"/tasks/{task_id}", json={"title": None}, headers=auth_headers("alice"))

    assert response.status_code == 400
    assert response.json()["code"] == "ERR_VALIDATION"
    assert client.get(f"/tasks/{task_id}", headers=auth_headers("alice")).json()["title"] == TASK_PAYLOAD["title"]


@pytest.mark.integration
def test_grant_single_role_keeps_existing_roles(client):
    url = "/users/alice/roles/manager"

    assert client.put(url, headers=auth_headers("manager-1")).status_code == 403
    granted = client.put(url, headers=auth_headers("admin-1"))
    assert granted.status_code == 200
    assert set(granted.json()) == {"team_member", "manager"}

    again = client.put(url, headers=auth_headers("admin-1"))
    assert sorted(again.json()) == sorted(granted.json())
    assert client.put("/users/nobody/roles/manager", headers=auth_headers("admin-1")).status_code == 404
    assert client.put("/users/alice/roles/overlord", headers=auth_headers("admin-1")).status_code == 422
