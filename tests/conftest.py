"""Shared fixtures: controllable clocks and freshly wired components."""

from datetime import datetime, timedelta, timezone

import pytest

from genui_expenses.genui import SurfaceHost, create_catalog
from genui_expenses.ledger import ExpenseLedger
from genui_expenses.surfaces import SurfaceEventHandler, SurfaceRegistry


class FakeClock:
    """Wall clock for the ledger. Advance it by hand."""

    def __init__(self, start: datetime = datetime(2024, 12, 11, 10, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Monotonic clock in seconds for the surface registry."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """Listener that remembers every notification."""

    def __init__(self):
        self.calls = []

    def __call__(self, source) -> None:
        self.calls.append(source)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def ledger(clock) -> ExpenseLedger:
    return ExpenseLedger(clock=clock)


@pytest.fixture
def registry(monotonic) -> SurfaceRegistry:
    return SurfaceRegistry(clock=monotonic)


@pytest.fixture
def host(registry) -> SurfaceHost:
    surface_host = SurfaceHost(create_catalog())
    surface_host.add_listener(SurfaceEventHandler(registry))
    return surface_host


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
