"""Adapter contract and result types shared by every payroll/accounting provider."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from packages.common.models import ProviderKey
from packages.tools.integrations.config import parse_provider_config
from packages.tools.integrations.simulation import FailureSource, Latency


@dataclass
class SyncTimeEntry:
    """Provider-agnostic time entry handed to adapters."""

    date: str  # YYYY-MM-DD
    hours: float
    project_name: str
    project_id: str
    note: str | None
    external_employee_id: str


@dataclass
class TestResult:
    """Outcome of a credential/connectivity check."""

    success: bool
    message: str


@dataclass
class SyncResult:
    """Outcome of pushing one batch. failed_entry_ids is None unless something failed."""

    success: bool
    entries_synced: int
    message: str | None = None
    failed_entry_ids: list[str] | None = None


def missing_fields_message(labels: Sequence[str]) -> str:
    if len(labels) == 1:
        return f"{labels[0]} is required"
    return f"{', '.join(labels[:-1])} and {labels[-1]} are required"


class IntegrationAdapter(ABC):
    """One implementation per external system. Business failures are returned, never raised."""

    provider: ProviderKey
    label: str

    @abstractmethod
    async def test_connection(self, config: Any) -> TestResult:
        """Verify that the stored credentials and tokens would authenticate."""

    @abstractmethod
    async def sync_time_entries(self, config: Any, entries: Sequence[SyncTimeEntry]) -> SyncResult:
        """Push a batch of time entries to the external system."""


class SimulatedAdapter(IntegrationAdapter):
    """Base for the mock adapters: injectable latency and per-entry failure draws."""

    config_model: type[Any]

    def __init__(self, latency: Latency, failures: FailureSource, call_timeout: float | None = None) -> None:
        self.latency = latency
        self.failures = failures
        self.call_timeout = call_timeout

    async def within_timeout(self, call: Awaitable[Any]) -> Any:
        """Bound one simulated round trip; raises TimeoutError past call_timeout."""
        if self.call_timeout is None:
            return await call
        return await asyncio.wait_for(call, self.call_timeout)

    def coerce_config(self, config: Any) -> Any | None:
        """Parse config as this provider's variant; None when the shape does not match."""
        try:
            parsed = parse_provider_config(config, self.provider.value)
        except ValueError:
            return None
        return parsed if isinstance(parsed, self.config_model) else None

    def invalid_config(self) -> str:
        return f"Invalid {self.label} configuration"

    async def submit_each(
        self,
        entries: Sequence[SyncTimeEntry],
        submit: Callable[[SyncTimeEntry], Awaitable[None]],
        delay_ms: int,
    ) -> SyncResult:
        """Submit entries one at a time, in order, collecting failures instead of aborting.

        Each entry gets its own timeout, so a slow entry fails alone and the
        entries already submitted stay counted.
        """
        failed_entry_ids: list[str] = []
        synced = 0
        for entry in entries:
            try:
                submitted = await self.within_timeout(self._submit_one(entry, submit, delay_ms))
            except TimeoutError:
                logger.warning(
                    f"[{self.label} mock] TIMED OUT after {self.call_timeout:g}s: {entry.date} {entry.hours}h \"{entry.project_name}\""
                )
                submitted = False
            if submitted:
                synced += 1
            else:
                failed_entry_ids.append(entry.project_id)
        return self.summarize(synced, len(entries), failed_entry_ids)

    async def _submit_one(
        self,
        entry: SyncTimeEntry,
        submit: Callable[[SyncTimeEntry], Awaitable[None]],
        delay_ms: int,
    ) -> bool:
        await self.latency.pause(delay_ms)
        if self.failures.should_fail():
            logger.warning(
                f"[{self.label} mock] FAILED to sync entry: {entry.date} {entry.hours}h \"{entry.project_name}\""
            )
            return False
        await submit(entry)
        return True

    def summarize(self, synced: int, total: int, failed_entry_ids: list[str]) -> SyncResult:
        if not failed_entry_ids:
            return SyncResult(
                success=True,
                entries_synced=synced,
                message=f"Synced {synced} entries to {self.label} (mock)",
            )
        return SyncResult(
            success=False,
            entries_synced=synced,
            message=f"Synced {synced}/{total} entries to {self.label}, {len(failed_entry_ids)} failed",
            failed_entry_ids=failed_entry_ids,
        )
