"""Shared fixtures for the gastiming test suite."""

from __future__ import annotations

import pytest

from gastiming.codec.cell import Cell
from gastiming.codec.decoder import decode_program
from gastiming.sampling.stopping import StoppingController
from gastiming.tests.fakes import FakeClock, ScriptedEngine
from gastiming.vm.adapter import ExecutionAdapter


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def divmod_code() -> Cell:
    """DIVMODC, as written on the command line."""
    return decode_program("A90E")


@pytest.fixture
def scripted_engine(clock: FakeClock) -> ScriptedEngine:
    """Target costs 1.0 ms and 10 gas; the empty baseline 0.2 ms and no gas."""
    return ScriptedEngine(
        clock,
        profiles={
            "": (0.0002, 0, 0),
            "A90E": (0.001, 10, 0),
        },
    )


@pytest.fixture
def scripted_adapter(scripted_engine: ScriptedEngine, clock: FakeClock) -> ExecutionAdapter:
    return ExecutionAdapter(scripted_engine, timer=clock)


@pytest.fixture
def make_controller(clock: FakeClock):
    """Factory for controllers driven by the shared fake clock."""

    def _make(max_samples: int = 100_000, min_samples: int = 20, time_budget: float = 2.0) -> StoppingController:
        return StoppingController(
            max_samples=max_samples,
            min_samples=min_samples,
            time_budget=time_budget,
            clock=clock,
        )

    return _make
