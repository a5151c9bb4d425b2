"""Latency and failure injection used by the mock adapters.

Both are injected so tests can run instantly and force either the
all-success or the partial-failure branch.
"""

from __future__ import annotations

import asyncio
import random
from typing import Protocol


class Latency(Protocol):
    async def pause(self, ms: int) -> None: ...


class FailureSource(Protocol):
    def should_fail(self) -> bool: ...


class AsyncioLatency:
    async def pause(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000)


class NoLatency:
    async def pause(self, ms: int) -> None:
        return None


class FailureInjector:
    """Independent draw per call against a private PRNG, never the global one."""

    def __init__(self, rate: float, rng: random.Random | None = None) -> None:
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"failure rate must be within [0, 1], got {rate}")
        self.rate = rate
        self.rng = rng or random.Random()

    @classmethod
    def seeded(cls, rate: float, seed: int | None) -> FailureInjector:
        return cls(rate, random.Random(seed))

    def should_fail(self) -> bool:
        return self.rng.random() < self.rate


def build_latency(simulate: bool) -> Latency:
    return AsyncioLatency() if simulate else NoLatency()
