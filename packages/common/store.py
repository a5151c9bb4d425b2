"""Persistence helpers for integrations, sync logs, and timesheets."""

from __future__ import annotations

import datetime as dt
import shutil
import threading
import uuid
from pathlib import Path
from typing import Any

from packages.common.errors import IntegrationNotFoundError
from packages.common.io import append_jsonl, count_jsonl, ensure_dir, read_json, tail_jsonl, utcnow, write_json
from packages.common.models import (
    Integration,
    IntegrationCreateRequest,
    IntegrationUpdateRequest,
    Project,
    ProjectCreateRequest,
    SyncLog,
    SyncStatus,
    TimeEntry,
    TimeEntryCreateRequest,
    UserIntegration,
)
from packages.common.paths import integrations_dir, sync_logs_dir, timesheets_dir

RECENT_LOG_LIMIT = 50


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def tag_config(provider: str, config: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of config carrying an explicit provider_type discriminant."""
    tagged = dict(config)
    tagged.setdefault("provider_type", provider)
    return tagged


class IntegrationStore:
    def __init__(self, data_dir: Path) -> None:
        self.root = integrations_dir(data_dir)
        self._lock = threading.Lock()
        ensure_dir(self.root)

    def _path(self, integration_id: str) -> Path:
        return self.root / integration_id / "integration.json"

    def _save(self, integration: Integration) -> None:
        write_json(self._path(integration.integration_id), integration.model_dump(mode="json"))

    def create(self, request: IntegrationCreateRequest) -> Integration:
        now = utcnow()
        integration = Integration(
            integration_id=new_id("int"),
            provider=request.provider,
            name=request.name,
            config=tag_config(request.provider, request.config),
            enabled=request.enabled,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._save(integration)
        return integration

    def get(self, integration_id: str) -> Integration:
        path = self._path(integration_id)
        if not path.exists():
            raise IntegrationNotFoundError(integration_id)
        return Integration.model_validate(read_json(path))

    def list_integrations(self) -> list[Integration]:
        integrations = [
            Integration.model_validate(read_json(path)) for path in self.root.glob("*/integration.json")
        ]
        return sorted(integrations, key=lambda item: item.created_at)

    def update(self, integration_id: str, request: IntegrationUpdateRequest) -> Integration:
        with self._lock:
            integration = self.get(integration_id)
            if request.name is not None:
                integration.name = request.name
            if request.config is not None:
                integration.config = tag_config(integration.provider, request.config)
            if request.enabled is not None:
                integration.enabled = request.enabled
            integration.updated_at = utcnow()
            self._save(integration)
        return integration

    def delete(self, integration_id: str) -> None:
        with self._lock:
            path = self._path(integration_id)
            if not path.exists():
                raise IntegrationNotFoundError(integration_id)
            shutil.rmtree(path.parent)

    def assign_user(self, integration_id: str, user_id: str, external_id: str | None) -> UserIntegration:
        """Create or update the user's link; re-assigning replaces the external id."""
        with self._lock:
            integration = self.get(integration_id)
            assignment = integration.assignment_for(user_id)
            if assignment is None:
                assignment = UserIntegration(user_id=user_id, external_id=external_id or None, assigned_at=utcnow())
                integration.users.append(assignment)
            else:
                assignment.external_id = external_id or None
            integration.updated_at = utcnow()
            self._save(integration)
        return assignment

    def unassign_user(self, integration_id: str, user_id: str) -> bool:
        with self._lock:
            integration = self.get(integration_id)
            remaining = [item for item in integration.users if item.user_id != user_id]
            if len(remaining) == len(integration.users):
                return False
            integration.users = remaining
            integration.updated_at = utcnow()
            self._save(integration)
        return True


class SyncLogStore:
    """Append-only audit trail, kept apart from the integration it describes."""

    def __init__(self, data_dir: Path) -> None:
        self.root = sync_logs_dir(data_dir)
        ensure_dir(self.root)

    def _path(self, integration_id: str) -> Path:
        return self.root / f"{integration_id}.jsonl"

    def append(
        self,
        integration_id: str,
        status: SyncStatus,
        message: str | None,
        entries_synced: int = 0,
        user_id: str | None = None,
    ) -> SyncLog:
        log = SyncLog(
            log_id=new_id("log"),
            integration_id=integration_id,
            user_id=user_id,
            status=status,
            message=message,
            entries_synced=entries_synced,
            created_at=utcnow(),
        )
        append_jsonl(self._path(integration_id), log.model_dump(mode="json"))
        return log

    def count(self, integration_id: str) -> int:
        return count_jsonl(self._path(integration_id))

    def recent(self, integration_id: str, limit: int = RECENT_LOG_LIMIT) -> list[SyncLog]:
        # Appends are chronological, so file order also breaks created_at ties.
        return [SyncLog.model_validate(record) for record in tail_jsonl(self._path(integration_id), limit)]


class TimesheetStore:
    def __init__(self, data_dir: Path) -> None:
        self.root = timesheets_dir(data_dir)
        self._lock = threading.Lock()
        ensure_dir(self.root)

    @property
    def projects_path(self) -> Path:
        return self.root / "projects.json"

    @property
    def entries_path(self) -> Path:
        return self.root / "entries.json"

    def _load_projects(self) -> dict[str, Project]:
        payload = read_json(self.projects_path, default={})
        return {key: Project.model_validate(value) for key, value in payload.items()}

    def _load_entries(self) -> list[TimeEntry]:
        return [TimeEntry.model_validate(item) for item in read_json(self.entries_path, default=[])]

    def create_project(self, request: ProjectCreateRequest) -> Project:
        project = Project(project_id=new_id("prj"), name=request.name, created_at=utcnow())
        with self._lock:
            projects = self._load_projects()
            projects[project.project_id] = project
            write_json(self.projects_path, {key: value.model_dump(mode="json") for key, value in projects.items()})
        return project

    def list_projects(self) -> list[Project]:
        return sorted(self._load_projects().values(), key=lambda item: item.name.lower())

    def get_project(self, project_id: str) -> Project:
        projects = self._load_projects()
        if project_id not in projects:
            raise KeyError(f"Project not found: {project_id}")
        return projects[project_id]

    def add_entry(self, request: TimeEntryCreateRequest) -> TimeEntry:
        self.get_project(request.project_id)
        entry = TimeEntry(entry_id=new_id("ent"), created_at=utcnow(), **request.model_dump())
        with self._lock:
            entries = self._load_entries()
            entries.append(entry)
            write_json(self.entries_path, [item.model_dump(mode="json") for item in entries])
        return entry

    def entries_for_user(
        self,
        user_id: str,
        date_from: dt.date,
        date_to: dt.date,
    ) -> list[tuple[TimeEntry, Project]]:
        """Entries dated within [date_from, date_to], oldest first, with their project."""
        projects = self._load_projects()
        selected = [
            entry
            for entry in self._load_entries()
            if entry.user_id == user_id and date_from <= entry.date <= date_to
        ]
        selected.sort(key=lambda entry: entry.date)
        return [(entry, projects[entry.project_id]) for entry in selected]
