"""
Mock adapters for Fortnox, Visma, and PE Accounting.

Each validates its config shape, simulates the round trips the real API would
need, and logs the request it would send. Swapping in a real implementation
means replacing the logged request with an HTTP call behind the same contract.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from xml.etree import ElementTree

from loguru import logger

from packages.common.models import ProviderKey
from packages.tools.integrations.base import (
    SimulatedAdapter,
    SyncResult,
    SyncTimeEntry,
    TestResult,
    missing_fields_message,
)
from packages.tools.integrations.config import FortnoxConfig, PEAccountingConfig, VismaConfig


def _token_hint(token: str) -> str:
    return token[:8] + "..."


class FortnoxAdapter(SimulatedAdapter):
    """
    Fortnox REST API v3.
    Auth: OAuth 2.0 access/refresh tokens. Endpoint: POST /3/timereportings, one call per entry.
    """

    provider = ProviderKey.FORTNOX
    label = "Fortnox"
    config_model = FortnoxConfig

    async def test_connection(self, config: Any) -> TestResult:
        cfg = self.coerce_config(config)
        if cfg is None:
            return TestResult(success=False, message=self.invalid_config())
        missing = [label for label, value in (("Client ID", cfg.client_id), ("Client Secret", cfg.client_secret)) if not value]
        if missing:
            return TestResult(success=False, message=missing_fields_message(missing))

        # OAuth token validation
        await self.latency.pause(600)
        if not cfg.access_token:
            return TestResult(
                success=False,
                message="No access token — user needs to re-authorize with Fortnox",
            )

        # GET /3/companyinformation verifies the token
        await self.latency.pause(400)
        logger.info(f"[Fortnox mock] GET /3/companyinformation Authorization: Bearer {_token_hint(cfg.access_token)}")
        return TestResult(success=True, message="Connected to Fortnox, company verified (mock). Token valid.")

    async def sync_time_entries(self, config: Any, entries: Sequence[SyncTimeEntry]) -> SyncResult:
        cfg = self.coerce_config(config)
        if cfg is None:
            return SyncResult(success=False, entries_synced=0, message=self.invalid_config())
        if not cfg.access_token:
            return SyncResult(success=False, entries_synced=0, message="Missing access token")
        if not entries:
            return SyncResult(success=True, entries_synced=0, message="No entries to sync")

        async def submit(entry: SyncTimeEntry) -> None:
            payload = {
                "EmployeeId": entry.external_employee_id,
                "Date": entry.date,
                "Hours": entry.hours,
                "ProjectId": entry.project_id,
                "Note": entry.note or "",
            }
            logger.info(f"[Fortnox mock] POST /3/timereportings {payload} project=\"{entry.project_name}\"")

        return await self.submit_each(entries, submit, delay_ms=150)


class VismaAdapter(SimulatedAdapter):
    """
    Visma Lön Smart (payroll) or Visma eEkonomi (bookkeeping).
    Auth: OAuth 2.0 via identity.vismaonline.com. Payroll posts each entry to
    /v2/shortcuts/hoursworked; bookkeeping sends the whole batch as one
    invoice draft, so it either syncs every entry or none.
    """

    provider = ProviderKey.VISMA
    label = "Visma"

    API_LABELS = {
        "payroll": "Visma Lön Smart (Payroll)",
        "bookkeeping": "Visma eEkonomi (Bookkeeping)",
    }
    TEST_ENDPOINTS = {
        "payroll": "GET /v2/employees",
        "bookkeeping": "GET /v2/companysettings",
    }

    config_model = VismaConfig

    async def test_connection(self, config: Any) -> TestResult:
        cfg = self.coerce_config(config)
        if cfg is None:
            return TestResult(success=False, message=self.invalid_config())
        missing = [label for label, value in (("Client ID", cfg.client_id), ("Client Secret", cfg.client_secret)) if not value]
        if missing:
            return TestResult(success=False, message=missing_fields_message(missing))

        # OAuth token exchange
        await self.latency.pause(700)
        if not cfg.access_token:
            return TestResult(
                success=False,
                message="No access token — user needs to authorize via Visma identity server",
            )

        # Test call against the selected API
        await self.latency.pause(400)
        logger.info(
            f"[Visma mock] {self.TEST_ENDPOINTS[cfg.target_api]} Authorization: Bearer {_token_hint(cfg.access_token)}"
        )
        return TestResult(success=True, message=f"Connected to {self.API_LABELS[cfg.target_api]} (mock). Bearer token valid.")

    async def sync_time_entries(self, config: Any, entries: Sequence[SyncTimeEntry]) -> SyncResult:
        cfg = self.coerce_config(config)
        if cfg is None:
            return SyncResult(success=False, entries_synced=0, message=self.invalid_config())
        if not cfg.access_token:
            return SyncResult(success=False, entries_synced=0, message="Missing access token")
        if not entries:
            return SyncResult(success=True, entries_synced=0, message="No entries to sync")

        if cfg.target_api == "payroll":
            return await self.submit_each(entries, self._post_hours_worked, delay_ms=180)
        try:
            return await self.within_timeout(self._post_invoice_draft(entries))
        except TimeoutError:
            logger.warning(f"[Visma mock] invoice draft TIMED OUT after {self.call_timeout:g}s, nothing synced")
            return SyncResult(
                success=False,
                entries_synced=0,
                message=f"Invoice draft submission to Visma timed out after {self.call_timeout:g}s",
            )

    async def _post_hours_worked(self, entry: SyncTimeEntry) -> None:
        logger.info(
            f"[Visma mock] POST /v2/shortcuts/hoursworked EmployeeId={entry.external_employee_id}, "
            f"Date={entry.date}, Hours={entry.hours}"
        )

    async def _post_invoice_draft(self, entries: Sequence[SyncTimeEntry]) -> SyncResult:
        await self.latency.pause(500)
        total_hours = sum(entry.hours for entry in entries)
        rows = [
            {"Text": f"{entry.date} {entry.project_name}", "Quantity": entry.hours, "ProjectId": entry.project_id}
            for entry in entries
        ]
        logger.info(
            f"[Visma mock] POST /v2/customerinvoicedrafts {len(rows)} line items, "
            f"{total_hours:g}h total (mock invoice draft created)"
        )
        return SyncResult(
            success=True,
            entries_synced=len(entries),
            message=f"Synced {len(entries)} entries to Visma as one invoice draft, {total_hours:g}h total (mock)",
        )


def timeregistration_xml(entry: SyncTimeEntry) -> str:
    """XML body for PE Accounting's POST /company/{id}/timeregistration."""
    root = ElementTree.Element("timeregistration")
    for tag, value in (
        ("user-id", entry.external_employee_id),
        ("date", entry.date),
        ("hours", f"{entry.hours:g}"),
        ("project-id", entry.project_id),
        ("comment", entry.note or ""),
        ("invoiceable", "true"),
    ):
        ElementTree.SubElement(root, tag).text = value
    return ElementTree.tostring(root, encoding="unicode")


class PEAccountingAdapter(SimulatedAdapter):
    """
    PE Accounting REST API v1.
    Auth: static API token in the X-Token header, no OAuth and no refresh.
    """

    provider = ProviderKey.PE_ACCOUNTING
    label = "PE Accounting"
    config_model = PEAccountingConfig

    async def test_connection(self, config: Any) -> TestResult:
        cfg = self.coerce_config(config)
        if cfg is None:
            return TestResult(success=False, message=self.invalid_config())
        missing = [label for label, value in (("API Token", cfg.api_token), ("Company ID", cfg.company_id)) if not value]
        if missing:
            return TestResult(success=False, message=missing_fields_message(missing))

        await self.latency.pause(500)
        logger.info(f"[PE Accounting mock] GET /api/v1/company/{cfg.company_id} X-Token: {_token_hint(cfg.api_token)}")
        return TestResult(
            success=True,
            message=f"Connected to PE Accounting company {cfg.company_id} (mock). API token valid.",
        )

    async def sync_time_entries(self, config: Any, entries: Sequence[SyncTimeEntry]) -> SyncResult:
        cfg = self.coerce_config(config)
        if cfg is None:
            return SyncResult(success=False, entries_synced=0, message=self.invalid_config())
        if not cfg.api_token:
            return SyncResult(success=False, entries_synced=0, message="Missing API token")
        if not cfg.company_id:
            return SyncResult(success=False, entries_synced=0, message="Missing company ID")
        if not entries:
            return SyncResult(success=True, entries_synced=0, message="No entries to sync")

        async def submit(entry: SyncTimeEntry) -> None:
            logger.info(
                f"[PE Accounting mock] POST /api/v1/company/{cfg.company_id}/timeregistration "
                f"{timeregistration_xml(entry)}"
            )

        return await self.submit_each(entries, submit, delay_ms=120)
