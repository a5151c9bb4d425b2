"""Drives connection tests and time-entry syncs through the provider adapters."""

from __future__ import annotations

import asyncio
import datetime as dt
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from packages.common.errors import PreconditionError
from packages.common.models import Integration, SyncStatus
from packages.common.store import IntegrationStore, SyncLogStore, TimesheetStore
from packages.tools.integrations.base import SyncResult, SyncTimeEntry, TestResult
from packages.tools.integrations.registry import AdapterRegistry


def sync_status(result: SyncResult) -> SyncStatus:
    if result.success:
        return SyncStatus.SUCCESS
    if result.entries_synced > 0:
        return SyncStatus.PARTIAL
    return SyncStatus.ERROR


class SyncOrchestrator:
    """Resolves an integration and user, runs the adapter, and writes the audit log."""

    def __init__(
        self,
        integrations: IntegrationStore,
        sync_logs: SyncLogStore,
        timesheets: TimesheetStore,
        registry: AdapterRegistry,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.integrations = integrations
        self.sync_logs = sync_logs
        self.timesheets = timesheets
        self.registry = registry
        self.timeout_seconds = timeout_seconds
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._holders: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def _serialized(self, integration_id: str, user_id: str) -> AsyncIterator[None]:
        """Hold the (integration, user) lock; the entry is dropped once nobody holds or awaits it."""
        key = (integration_id, user_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def _record(
        self,
        integration: Integration,
        status: SyncStatus,
        message: str | None,
        entries_synced: int = 0,
        user_id: str | None = None,
    ) -> None:
        # A failed audit write must not hide the adapter's result from the caller.
        try:
            self.sync_logs.append(
                integration.integration_id,
                status=status,
                message=message,
                entries_synced=entries_synced,
                user_id=user_id,
            )
        except Exception:
            logger.exception(f"Failed to write sync log for integration {integration.integration_id}")

    async def test_connection(self, integration_id: str) -> TestResult:
        integration = self.integrations.get(integration_id)
        adapter = self.registry.get(integration.provider)
        try:
            result = await asyncio.wait_for(adapter.test_connection(integration.config), self.timeout_seconds)
        except TimeoutError:
            result = TestResult(success=False, message=f"Connection test timed out after {self.timeout_seconds:g}s")

        logger.info(
            f"Connection test for {integration.provider} integration {integration_id}: "
            f"{'ok' if result.success else 'failed'}, {result.message}"
        )
        self._record(
            integration,
            status=SyncStatus.SUCCESS if result.success else SyncStatus.ERROR,
            message=f"Connection test: {result.message}",
        )
        return result

    def _normalized_entries(
        self,
        user_id: str,
        external_id: str,
        date_from: dt.date,
        date_to: dt.date,
    ) -> list[SyncTimeEntry]:
        return [
            SyncTimeEntry(
                date=entry.date.isoformat(),
                hours=entry.hours,
                project_name=project.name,
                project_id=entry.project_id,
                note=entry.note,
                external_employee_id=external_id,
            )
            for entry, project in self.timesheets.entries_for_user(user_id, date_from, date_to)
        ]

    async def sync(
        self,
        integration_id: str,
        user_id: str,
        date_from: dt.date,
        date_to: dt.date,
    ) -> SyncResult:
        """Push one user's entries in [date_from, date_to] to the integration's provider.

        Raises IntegrationNotFoundError or PreconditionError before any adapter
        call when the integration or the user's external identity is missing.
        The integration is read under the pair's lock, so a sync queued behind
        another one sees assignment and config changes made in the meantime.
        Timeouts apply per adapter call, so entries submitted before a slow one
        stay counted.
        """
        async with self._serialized(integration_id, user_id):
            integration = self.integrations.get(integration_id)
            assignment = integration.assignment_for(user_id)
            if assignment is None:
                raise PreconditionError("User is not assigned to this integration")
            if not assignment.external_id:
                raise PreconditionError("User has no external ID configured for this integration")

            adapter = self.registry.get(integration.provider)
            entries = self._normalized_entries(user_id, assignment.external_id, date_from, date_to)
            result = await adapter.sync_time_entries(integration.config, entries)

            status = sync_status(result)
            logger.info(
                f"Sync {status.value} for user {user_id} on {integration.provider} integration {integration_id}: "
                f"{result.entries_synced}/{len(entries)} entries"
            )
            self._record(
                integration,
                status=status,
                message=result.message,
                entries_synced=result.entries_synced,
                user_id=user_id,
            )
        return result
