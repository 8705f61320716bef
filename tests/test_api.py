from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from conftest import make_project, seed
from fieldjobs.application import configure_services
from fieldjobs.core.schema import ProjectStatus, ProjectType


@pytest.fixture()
def client(services):
    seed(
        services,
        make_project("p1", status=ProjectStatus.NEW, scheduled_date=date(2024, 3, 6)),
        make_project("p2", type=ProjectType.SURVEY.value, status=ProjectStatus.IN_PROGRESS, client_id="c2"),
        make_project("p3", status=ProjectStatus.COMPLETED),
    )
    configure_services(services)
    from fieldjobs.app import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def test_list_and_get_projects(client):
    response = client.get("/api/projects")
    assert response.status_code == 200
    assert {item["id"] for item in response.json()["items"]} == {"p1", "p2", "p3"}

    response = client.get("/api/projects", params={"status": "Nový"})
    assert [item["id"] for item in response.json()["items"]] == ["p1"]

    response = client.get("/api/projects/p2")
    assert response.status_code == 200
    assert response.json()["state"] == "Prebieha"
    assert response.json()["client"]["id"] == "c2"

    assert client.get("/api/projects/missing").status_code == 404
    assert client.get("/api/projects", params={"status": "Hotovo"}).status_code == 400
    assert client.get("/api/projects", params={"query": "weekly"}).status_code == 400


def test_unassigned_and_assigned_views(client):
    response = client.get("/api/projects/unassigned", params={"until": "2024-03-06"})
    assert [item["id"] for item in response.json()["items"]] == ["p1"]

    response = client.get("/api/projects/assigned", params={"day": "2024-03-06"})
    assert response.json()["items"] == []

    assert client.get("/api/projects/assigned", params={"day": "06.03.2024"}).status_code == 400


def test_lease_endpoints(client):
    response = client.post("/api/projects/p1/lease", json={"holder_id": "u1", "holder_name": "Ján"})
    assert response.status_code == 200
    assert response.json()["granted"] is True
    assert response.json()["expires_at"] == "2024-03-05T09:05:00+00:00"

    response = client.post("/api/projects/p1/lease", json={"holder_id": "u2", "holder_name": "Eva"})
    assert response.status_code == 409
    assert response.json()["detail"]["locked_by_name"] == "Ján"

    response = client.put("/api/projects/p1/lease", json={"holder_id": "u1"})
    assert response.json() == {"renewed": True}

    response = client.delete("/api/projects/p1/lease", params={"holder_id": "u1"})
    assert response.json() == {"released": True}

    response = client.post("/api/projects/p1/lease", json={"holder_id": "u2", "holder_name": "Eva"})
    assert response.status_code == 200

    assert client.post("/api/projects/p1/lease", json={"holder_id": "u3"}).status_code == 400


def test_planning_session_flow(client, services):
    session_id = client.post("/api/planning/sessions").json()["session_id"]

    response = client.post(
        f"/api/planning/sessions/{session_id}/assign",
        json={"project_id": "p1", "day": "2024-03-10"},
    )
    assert response.status_code == 200
    assert response.json()["project"]["state"] == "Naplánovaný"
    assert response.json()["pending"] == {"p1": "2024-03-10"}
    assert services.backend.project("p1").status is ProjectStatus.NEW

    response = client.post(
        f"/api/planning/sessions/{session_id}/assign",
        json={"project_id": "p3", "day": "2024-03-10"},
    )
    assert response.status_code == 400

    response = client.delete(f"/api/planning/sessions/{session_id}")
    assert response.status_code == 200
    assert response.json()["updated"] == {"p1": "Naplánovaný"}
    assert services.backend.project("p1").start_date == date(2024, 3, 10)

    assert client.get(f"/api/planning/sessions/{session_id}").status_code == 404


def test_planning_unassign(client, services):
    session_id = client.post("/api/planning/sessions").json()["session_id"]
    client.post(f"/api/planning/sessions/{session_id}/assign", json={"project_id": "p1", "day": "2024-03-10"})

    response = client.post(f"/api/planning/sessions/{session_id}/unassign", json={"project_id": "p1"})

    assert response.json() == {"unassigned": True, "pending": {}}
    assert client.post(f"/api/planning/sessions/{session_id}/unassign", json={"project_id": "p1"}).status_code == 400
    assert client.post("/api/planning/sessions/unknown/unassign", json={"project_id": "p1"}).status_code == 404


def test_status_change_creates_successor_and_notifies(client):
    response = client.post("/api/projects/p2/status", json={"status": "Ukončený"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["status"] == "Ukončený"
    assert body["successor_type"] == "Čistenie"
    assert client.get(f"/api/projects/{body['successor_id']}").json()["client_id"] == "c2"

    messages = [item["message"] for item in client.get("/api/notifications").json()["items"]]
    assert "Bol vytvorený nový projekt typu: Čistenie" in messages

    assert client.post("/api/projects/p2/status", json={"status": "Hotovo"}).status_code == 400
    assert client.post("/api/projects/missing/status", json={"status": "Nový"}).status_code == 404


def test_delete_project(client, services):
    response = client.delete("/api/projects/p3")

    assert response.json() == {"project_id": "p3", "deleted": True}
    assert services.backend.project("p3") is None
    assert client.delete("/api/projects/p3").status_code == 404


def test_shutdown_flushes_open_planning_sessions(services):
    seed(services, make_project("p1", status=ProjectStatus.NEW, scheduled_date=date(2024, 3, 6)))
    configure_services(services)
    from fieldjobs.app import create_app

    with TestClient(create_app()) as test_client:
        session_id = test_client.post("/api/planning/sessions").json()["session_id"]
        test_client.post(
            f"/api/planning/sessions/{session_id}/assign",
            json={"project_id": "p1", "day": "2024-03-10"},
        )
        pending = services.planning_session(session_id)
        assert services.backend.project("p1").status is ProjectStatus.NEW

    assert services.backend.project("p1").status is ProjectStatus.SCHEDULED
    assert services.backend.project("p1").start_date == date(2024, 3, 10)
    assert len(pending) == 0
    with pytest.raises(KeyError):
        services.planning_session(session_id)


def test_shutdown_releases_edit_sessions(services):
    seed(services, make_project("p1"))
    configure_services(services)
    from fieldjobs.app import create_app

    with TestClient(create_app()) as test_client:
        response = test_client.post(
            "/api/editing-sessions",
            json={"project_id": "p1", "holder_id": "u1", "holder_name": "Ján"},
        )
        assert response.status_code == 200
        assert services.backend.project("p1").locked_by == "u1"

    assert services.backend.project("p1").locked_by is None


def test_editing_session_endpoints(client, services):
    response = client.post(
        "/api/editing-sessions",
        json={"project_id": "p1", "holder_id": "u1", "holder_name": "Ján"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["granted"] is True
    assert body["expires_at"] == "2024-03-05T09:05:00+00:00"
    session_id = body["session_id"]

    response = client.get(f"/api/editing-sessions/{session_id}")
    assert response.json() == {"session_id": session_id, "project_id": "p1", "held": True, "renew_failures": 0}

    response = client.post(
        "/api/editing-sessions",
        json={"project_id": "p1", "holder_id": "u2", "holder_name": "Eva"},
    )
    assert response.status_code == 409
    assert response.json()["detail"]["locked_by_name"] == "Ján"

    response = client.delete(f"/api/editing-sessions/{session_id}")
    assert response.json() == {"session_id": session_id, "released": True}
    assert services.backend.project("p1").locked_by is None

    assert client.get(f"/api/editing-sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/editing-sessions/{session_id}").status_code == 404
    assert client.post("/api/editing-sessions", json={"project_id": "p1", "holder_id": "u2"}).status_code == 400
