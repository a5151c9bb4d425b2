"""Payroll/accounting adapters for Fortnox, Visma, and PE Accounting."""

from __future__ import annotations

from .base import IntegrationAdapter, SyncResult, SyncTimeEntry, TestResult
from .registry import PROVIDERS, AdapterRegistry, build_registry

__all__ = [
    "IntegrationAdapter",
    "SyncResult",
    "SyncTimeEntry",
    "TestResult",
    "PROVIDERS",
    "AdapterRegistry",
    "build_registry",
]
