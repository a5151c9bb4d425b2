from __future__ import annotations

from dataclasses import dataclass

from packages.common.settings import Settings
from packages.common.store import IntegrationStore, SyncLogStore, TimesheetStore
from packages.sync.orchestrator import SyncOrchestrator
from packages.tools.integrations.registry import AdapterRegistry, build_registry
from packages.tools.integrations.simulation import FailureInjector, FailureSource, Latency, build_latency


@dataclass(frozen=True)
class Container:
    integrations: IntegrationStore
    sync_logs: SyncLogStore
    timesheets: TimesheetStore
    registry: AdapterRegistry
    orchestrator: SyncOrchestrator


def build_container(
    settings: Settings,
    *,
    latency: Latency | None = None,
    failures: FailureSource | None = None,
    registry: AdapterRegistry | None = None,
) -> Container:
    integrations = IntegrationStore(settings.data_dir)
    sync_logs = SyncLogStore(settings.data_dir)
    timesheets = TimesheetStore(settings.data_dir)

    if registry is None:
        registry = build_registry(
            latency or build_latency(settings.simulate_latency),
            failures or FailureInjector.seeded(settings.failure_rate, settings.random_seed),
            call_timeout=settings.sync_timeout_seconds,
        )
    orchestrator = SyncOrchestrator(
        integrations,
        sync_logs,
        timesheets,
        registry,
        timeout_seconds=settings.sync_timeout_seconds,
    )
    return Container(
        integrations=integrations,
        sync_logs=sync_logs,
        timesheets=timesheets,
        registry=registry,
        orchestrator=orchestrator,
    )
