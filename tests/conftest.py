"""Shared fixtures: a simulated clock for the admission governor."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from canlii_mcp.connectors.governor import AdmissionGovernor, AdmissionGovernorConfig


def local_ms(*args: int) -> int:
    """Epoch milliseconds of a naive local datetime."""
    return int(datetime(*args).timestamp() * 1000)  # type: ignore[arg-type]


class FakeClock:
    """Millisecond clock that only moves when told to (or when slept on)."""

    def __init__(self, start_ms: int) -> None:
        self.now_ms = start_ms
        self.sleeps: list[float] = []

    def time_fn(self) -> int:
        return self.now_ms

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now_ms += round(seconds * 1000)
        await asyncio.sleep(0)

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at local noon, far from any day boundary."""
    return FakeClock(local_ms(2026, 3, 2, 12, 0, 0))


@pytest.fixture
def make_governor(fake_clock: FakeClock):  # type: ignore[no-untyped-def]
    """Factory for governors driven by the fake clock."""

    def _make(**config_overrides: int) -> AdmissionGovernor:
        return AdmissionGovernor(
            config=AdmissionGovernorConfig(**config_overrides),
            _time_fn=fake_clock.time_fn,
            _sleep_fn=fake_clock.sleep,
        )

    return _make
