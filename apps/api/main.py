"""FastAPI application exposing integration admin, sync, and timesheet APIs."""

from __future__ import annotations

import datetime as dt
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from packages.common.errors import IntegrationNotFoundError, PreconditionError
from packages.common.masking import mask_config
from packages.common.models import (
    Integration,
    IntegrationCreateRequest,
    IntegrationUpdateRequest,
    Project,
    ProjectCreateRequest,
    SyncLog,
    SyncRequest,
    TimeEntry,
    TimeEntryCreateRequest,
    UserAssignRequest,
    UserIntegration,
)
from packages.common.settings import Settings, configure_logging, load_settings
from packages.common.store import RECENT_LOG_LIMIT
from packages.sync.container import Container, build_container
from packages.tools.integrations.base import SyncResult, TestResult
from packages.tools.integrations.registry import ProviderInfo


def get_container(request: Request) -> Container:
    return request.app.state.container


def _not_found(exc: IntegrationNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=exc.message)


def create_app(settings: Settings | None = None, container: Container | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.logging)

    app = FastAPI(title="Fauke API", version="0.1.0")
    app.state.container = container or build_container(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": dt.datetime.now(dt.UTC).isoformat()}

    @app.get("/integrations/providers", response_model=list[ProviderInfo])
    def list_providers(services: Container = Depends(get_container)) -> list[ProviderInfo]:
        return services.registry.providers()

    @app.get("/integrations")
    def list_integrations(services: Container = Depends(get_container)) -> list[dict[str, Any]]:
        listing = []
        for integration in services.integrations.list_integrations():
            payload = integration.model_dump(mode="json")
            payload["config"] = mask_config(integration.config)
            payload["sync_log_count"] = services.sync_logs.count(integration.integration_id)
            listing.append(payload)
        return listing

    @app.get("/integrations/{integration_id}", response_model=Integration)
    def get_integration(integration_id: str, services: Container = Depends(get_container)) -> Integration:
        try:
            return services.integrations.get(integration_id)
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc

    @app.post("/integrations", response_model=Integration, status_code=201)
    def create_integration(
        request: IntegrationCreateRequest,
        services: Container = Depends(get_container),
    ) -> Integration:
        if request.provider not in services.registry:
            raise HTTPException(status_code=400, detail=f"Unknown provider: {request.provider}")
        return services.integrations.create(request)

    @app.put("/integrations/{integration_id}", response_model=Integration)
    def update_integration(
        integration_id: str,
        request: IntegrationUpdateRequest,
        services: Container = Depends(get_container),
    ) -> Integration:
        try:
            return services.integrations.update(integration_id, request)
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc

    @app.delete("/integrations/{integration_id}", status_code=204)
    def delete_integration(integration_id: str, services: Container = Depends(get_container)) -> Response:
        try:
            services.integrations.delete(integration_id)
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc
        return Response(status_code=204)

    @app.post("/integrations/{integration_id}/test", response_model=TestResult)
    async def test_connection(integration_id: str, services: Container = Depends(get_container)) -> TestResult:
        try:
            return await services.orchestrator.test_connection(integration_id)
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc

    @app.post("/integrations/{integration_id}/users", response_model=UserIntegration)
    def assign_user(
        integration_id: str,
        request: UserAssignRequest,
        services: Container = Depends(get_container),
    ) -> UserIntegration:
        try:
            return services.integrations.assign_user(integration_id, request.user_id, request.external_id)
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc

    @app.delete("/integrations/{integration_id}/users/{user_id}", status_code=204)
    def unassign_user(integration_id: str, user_id: str, services: Container = Depends(get_container)) -> Response:
        try:
            removed = services.integrations.unassign_user(integration_id, user_id)
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc
        if not removed:
            raise HTTPException(status_code=404, detail=f"User {user_id} is not assigned to this integration")
        return Response(status_code=204)

    @app.post("/integrations/{integration_id}/sync", response_model=SyncResult)
    async def sync_entries(
        integration_id: str,
        request: SyncRequest,
        services: Container = Depends(get_container),
    ) -> SyncResult:
        try:
            return await services.orchestrator.sync(
                integration_id,
                request.user_id,
                request.date_from,
                request.date_to,
            )
        except IntegrationNotFoundError as exc:
            raise _not_found(exc) from exc
        except PreconditionError as exc:
            raise HTTPException(status_code=400, detail=exc.message) from exc

    @app.get("/integrations/{integration_id}/logs", response_model=list[SyncLog])
    def list_sync_logs(
        integration_id: str,
        limit: int = Query(default=RECENT_LOG_LIMIT, ge=1, le=RECENT_LOG_LIMIT),
        services: Container = Depends(get_container),
    ) -> list[SyncLog]:
        return services.sync_logs.recent(integration_id, limit=limit)

    @app.get("/projects", response_model=list[Project])
    def list_projects(services: Container = Depends(get_container)) -> list[Project]:
        return services.timesheets.list_projects()

    @app.post("/projects", response_model=Project, status_code=201)
    def create_project(request: ProjectCreateRequest, services: Container = Depends(get_container)) -> Project:
        return services.timesheets.create_project(request)

    @app.post("/entries", response_model=TimeEntry, status_code=201)
    def create_entry(request: TimeEntryCreateRequest, services: Container = Depends(get_container)) -> TimeEntry:
        try:
            return services.timesheets.add_entry(request)
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=f"Project not found: {request.project_id}") from exc

    @app.get("/entries", response_model=list[TimeEntry])
    def list_entries(
        user_id: str,
        date_from: dt.date,
        date_to: dt.date,
        services: Container = Depends(get_container),
    ) -> list[TimeEntry]:
        return [entry for entry, _ in services.timesheets.entries_for_user(user_id, date_from, date_to)]

    return app


app = create_app()
