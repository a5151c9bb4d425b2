import datetime as dt

import pytest

from packages.common.errors import IntegrationNotFoundError
from packages.common.masking import MASK, mask_config, mask_secret
from packages.common.models import (
    IntegrationCreateRequest,
    IntegrationUpdateRequest,
    ProjectCreateRequest,
    SyncStatus,
    TimeEntryCreateRequest,
)
from packages.common.store import IntegrationStore, SyncLogStore, TimesheetStore


def _create(store: IntegrationStore, provider: str = "pe_accounting", **config):
    return store.create(IntegrationCreateRequest(provider=provider, name="Books", config=config))


def test_created_config_carries_explicit_provider_tag(tmp_path) -> None:
    store = IntegrationStore(tmp_path)
    integration = _create(store, api_token="secret-token", company_id="4711")
    assert integration.config["provider_type"] == "pe_accounting"
    assert store.get(integration.integration_id).config == integration.config


def test_update_is_partial_and_retags_config(tmp_path) -> None:
    store = IntegrationStore(tmp_path)
    integration = _create(store, api_token="a", company_id="1")
    updated = store.update(integration.integration_id, IntegrationUpdateRequest(enabled=False))
    assert updated.enabled is False
    assert updated.name == "Books"
    updated = store.update(integration.integration_id, IntegrationUpdateRequest(config={"api_token": "b", "company_id": "2"}))
    assert updated.config == {"api_token": "b", "company_id": "2", "provider_type": "pe_accounting"}


def test_assignment_is_idempotent_upsert(tmp_path) -> None:
    store = IntegrationStore(tmp_path)
    integration = _create(store)
    store.assign_user(integration.integration_id, "u1", None)
    store.assign_user(integration.integration_id, "u1", "EMP-9")
    users = store.get(integration.integration_id).users
    assert [(item.user_id, item.external_id) for item in users] == [("u1", "EMP-9")]
    assert store.unassign_user(integration.integration_id, "u1") is True
    assert store.unassign_user(integration.integration_id, "u1") is False
    assert store.get(integration.integration_id).assignment_for("u1") is None


def test_delete_and_missing_integrations(tmp_path) -> None:
    store = IntegrationStore(tmp_path)
    first = _create(store)
    second = _create(store, provider="fortnox")
    assert [item.integration_id for item in store.list_integrations()] == [first.integration_id, second.integration_id]
    store.delete(first.integration_id)
    with pytest.raises(IntegrationNotFoundError):
        store.get(first.integration_id)
    with pytest.raises(IntegrationNotFoundError):
        store.delete(first.integration_id)
    assert [item.integration_id for item in store.list_integrations()] == [second.integration_id]


def test_sync_logs_newest_first_and_limited(tmp_path) -> None:
    logs = SyncLogStore(tmp_path)
    for index in range(55):
        logs.append("int_1", status=SyncStatus.SUCCESS, message=f"run {index}", entries_synced=index)
    logs.append("int_2", status=SyncStatus.ERROR, message="other")

    recent = logs.recent("int_1")
    assert len(recent) == 50
    assert recent[0].message == "run 54"
    assert recent[-1].message == "run 5"
    assert logs.count("int_1") == 55
    assert [log.message for log in logs.recent("int_2")] == ["other"]


def test_entries_for_user_requires_known_project(tmp_path) -> None:
    timesheets = TimesheetStore(tmp_path)
    with pytest.raises(KeyError):
        timesheets.add_entry(
            TimeEntryCreateRequest(user_id="u1", project_id="prj_missing", date=dt.date(2026, 3, 1), hours=1)
        )
    project = timesheets.create_project(ProjectCreateRequest(name="Roadworks"))
    timesheets.add_entry(TimeEntryCreateRequest(user_id="u1", project_id=project.project_id, date=dt.date(2026, 3, 1), hours=1))
    ((entry, owner),) = timesheets.entries_for_user("u1", dt.date(2026, 3, 1), dt.date(2026, 3, 1))
    assert owner.name == "Roadworks"
    assert entry.hours == 1


def test_mask_config_keeps_at_most_four_characters() -> None:
    config = {
        "provider_type": "fortnox",
        "client_id": "client-visible",
        "client_secret": "s3cr3t-value",
        "access_token": "abc",
        "refresh_token": "",
        "api_token": None,
    }
    masked = mask_config(config)
    assert masked["client_id"] == "client-visible"
    assert masked["client_secret"] == "s3cr" + MASK
    assert masked["access_token"] == "ab" + MASK
    assert masked["refresh_token"] == ""
    assert masked["api_token"] is None
    assert "t-value" not in masked["client_secret"]
    assert config["client_secret"] == "s3cr3t-value"


@pytest.mark.parametrize(
    ("secret", "expected"),
    [
        ("abcdefgh", "abcd" + MASK),
        ("abcd", "abc" + MASK),
        ("abc", "ab" + MASK),
        ("x", MASK),
    ],
)
def test_mask_secret_never_reveals_a_short_secret_in_full(secret: str, expected: str) -> None:
    masked = mask_secret(secret)
    assert masked == expected
    assert masked[: len(secret)] != secret
