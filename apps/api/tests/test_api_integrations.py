from fastapi.testclient import TestClient

import pytest

from apps.api.main import create_app
from packages.common.settings import LoggingSettings, Settings
from packages.sync.container import build_container


@pytest.fixture
def client(tmp_path, latency, never_fail) -> TestClient:
    settings = Settings(data_dir=tmp_path, simulate_latency=False, logging=LoggingSettings(log_level="WARNING"))
    container = build_container(settings, latency=latency, failures=never_fail)
    return TestClient(create_app(settings, container=container))


def _create_fortnox(client: TestClient, **config) -> str:
    response = client.post(
        "/integrations",
        json={
            "provider": "fortnox",
            "name": "Fortnox payroll",
            "config": {"client_id": "abc", "client_secret": "xyz-secret", **config},
        },
    )
    assert response.status_code == 201
    return response.json()["integration_id"]


def _seed_timesheet(client: TestClient) -> None:
    project = client.post("/projects", json={"name": "Roadworks"}).json()
    for date, hours in (("2026-03-04", 8), ("2026-03-02", 6.5)):
        response = client.post(
            "/entries",
            json={"user_id": "u1", "project_id": project["project_id"], "date": date, "hours": hours},
        )
        assert response.status_code == 201


def test_providers_expose_config_fields(client: TestClient) -> None:
    response = client.get("/integrations/providers")
    assert response.status_code == 200
    keys = [item["key"] for item in response.json()]
    assert keys == ["fortnox", "visma", "pe_accounting"]
    assert all(item["config_fields"] for item in response.json())


def test_unknown_provider_is_rejected(client: TestClient) -> None:
    response = client.post("/integrations", json={"provider": "quickbooks", "name": "QB", "config": {}})
    assert response.status_code == 400


def test_listing_masks_secrets_but_single_fetch_does_not(client: TestClient) -> None:
    integration_id = _create_fortnox(client, access_token="tok-123456789")

    (listed,) = client.get("/integrations").json()
    assert listed["config"]["client_secret"] == "xyz-••••••••"
    assert listed["config"]["access_token"] == "tok-••••••••"
    assert listed["config"]["client_id"] == "abc"

    single = client.get(f"/integrations/{integration_id}").json()
    assert single["config"]["client_secret"] == "xyz-secret"
    assert single["config"]["provider_type"] == "fortnox"


def test_update_and_delete(client: TestClient) -> None:
    integration_id = _create_fortnox(client)
    response = client.put(f"/integrations/{integration_id}", json={"name": "Renamed", "enabled": False})
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["enabled"] is False

    assert client.delete(f"/integrations/{integration_id}").status_code == 204
    assert client.get(f"/integrations/{integration_id}").status_code == 404
    assert client.put(f"/integrations/{integration_id}", json={"enabled": True}).status_code == 404


def test_connection_test_is_audited(client: TestClient) -> None:
    integration_id = _create_fortnox(client)
    response = client.post(f"/integrations/{integration_id}/test")
    assert response.status_code == 200
    assert response.json()["success"] is False
    assert "re-authorize" in response.json()["message"]

    (log,) = client.get(f"/integrations/{integration_id}/logs").json()
    assert log["status"] == "error"
    assert log["message"].startswith("Connection test: ")
    assert client.post("/integrations/int_missing/test").status_code == 404


def test_sync_requires_assigned_user_with_external_id(client: TestClient) -> None:
    integration_id = _create_fortnox(client, access_token="tok-123456789")
    payload = {"user_id": "u1", "date_from": "2026-03-01", "date_to": "2026-03-31"}

    response = client.post(f"/integrations/{integration_id}/sync", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "User is not assigned to this integration"

    client.post(f"/integrations/{integration_id}/users", json={"user_id": "u1"})
    response = client.post(f"/integrations/{integration_id}/sync", json=payload)
    assert response.status_code == 400
    assert "no external ID" in response.json()["detail"]
    assert client.get(f"/integrations/{integration_id}/logs").json() == []


def test_sync_round_trip(client: TestClient) -> None:
    _seed_timesheet(client)
    integration_id = _create_fortnox(client, access_token="tok-123456789")
    first = client.post(f"/integrations/{integration_id}/users", json={"user_id": "u1", "external_id": "OLD"})
    second = client.post(f"/integrations/{integration_id}/users", json={"user_id": "u1", "external_id": "EMP-7"})
    assert first.status_code == second.status_code == 200
    assert second.json()["external_id"] == "EMP-7"
    assert len(client.get(f"/integrations/{integration_id}").json()["users"]) == 1

    response = client.post(
        f"/integrations/{integration_id}/sync",
        json={"user_id": "u1", "date_from": "2026-03-01", "date_to": "2026-03-31"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["entries_synced"] == 2
    assert body["failed_entry_ids"] is None

    (log,) = client.get(f"/integrations/{integration_id}/logs").json()
    assert log["status"] == "success"
    assert log["user_id"] == "u1"
    assert log["entries_synced"] == 2
    assert client.get("/integrations").json()[0]["sync_log_count"] == 1


def test_sync_rejects_inverted_range(client: TestClient) -> None:
    integration_id = _create_fortnox(client)
    response = client.post(
        f"/integrations/{integration_id}/sync",
        json={"user_id": "u1", "date_from": "2026-03-31", "date_to": "2026-03-01"},
    )
    assert response.status_code == 422


def test_unassign_user(client: TestClient) -> None:
    integration_id = _create_fortnox(client)
    client.post(f"/integrations/{integration_id}/users", json={"user_id": "u1", "external_id": "EMP-7"})
    assert client.delete(f"/integrations/{integration_id}/users/u1").status_code == 204
    assert client.delete(f"/integrations/{integration_id}/users/u1").status_code == 404


def test_entries_listing_is_date_ordered(client: TestClient) -> None:
    _seed_timesheet(client)
    response = client.get("/entries", params={"user_id": "u1", "date_from": "2026-03-01", "date_to": "2026-03-31"})
    assert response.status_code == 200
    assert [item["date"] for item in response.json()] == ["2026-03-02", "2026-03-04"]
    response = client.post(
        "/entries",
        json={"user_id": "u1", "project_id": "prj_missing", "date": "2026-03-05", "hours": 2},
    )
    assert response.status_code == 400
