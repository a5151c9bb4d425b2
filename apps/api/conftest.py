import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest
from dotenv import load_dotenv
from loguru import logger

# Add project root to python path for tests
ROOT_DIR = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT_DIR))

# The module-level app in apps.api.main must not write into the repository's data dir
os.environ.setdefault("FAUKE_DATA_DIR", tempfile.mkdtemp(prefix="fauke-test-"))
os.environ.setdefault("SIMULATE_LATENCY", "false")
load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")


class RecordingLatency:
    """Never sleeps; remembers every simulated round trip."""

    def __init__(self) -> None:
        self.pauses: list[int] = []

    async def pause(self, ms: int) -> None:
        self.pauses.append(ms)


class StallingLatency(RecordingLatency):
    """Really sleeps on the listed call indexes, long enough to trip a short timeout."""

    def __init__(self, stalled_calls: set[int], seconds: float = 0.5) -> None:
        super().__init__()
        self.stalled_calls = stalled_calls
        self.seconds = seconds

    async def pause(self, ms: int) -> None:
        index = len(self.pauses)
        await super().pause(ms)
        if index in self.stalled_calls:
            await asyncio.sleep(self.seconds)


class ScriptedFailures:
    """Fails exactly the draws whose index is listed; counts every draw."""

    def __init__(self, failing_draws: set[int] | None = None) -> None:
        self.failing_draws = failing_draws or set()
        self.draws = 0

    def should_fail(self) -> bool:
        index = self.draws
        self.draws += 1
        return index in self.failing_draws


@pytest.fixture
def latency() -> RecordingLatency:
    return RecordingLatency()


@pytest.fixture
def never_fail() -> ScriptedFailures:
    return ScriptedFailures()


@pytest.fixture
def scripted_failures():
    return ScriptedFailures


@pytest.fixture
def stalling_latency():
    return StallingLatency


@pytest.fixture
def log_messages():
    """Collects loguru messages emitted during the test."""
    messages: list[str] = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)
