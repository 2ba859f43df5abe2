"""Shared measurement types used across the harness."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field


# ── Per-sample records ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class SampleResult:
    """Outcome of one timed VM execution."""

    elapsed_ms: float
    gas_consumed: int
    status: int  # 0 = success


@dataclass(frozen=True)
class DifferentialSample:
    """Target minus baseline for one paired sample.

    ``delta_time`` may be negative when the baseline happened to run slower.
    """

    delta_time: float
    delta_gas: float
    status: int


@dataclass(frozen=True)
class RunningTotal:
    """Sums folded over the differential samples taken so far."""

    time_sum: float = 0.0
    gas_sum: float = 0.0
    status: int = 0
    count: int = 0


# ── Report schemas ───────────────────────────────────────────────────────────


class Stats(BaseModel):
    """Mean and population standard deviation of one measured quantity."""

    mean: float
    stddev: float = Field(ge=0.0)


class TimingReport(BaseModel):
    """Final result of measuring one program."""

    code: str
    runtime: Stats
    gas: Stats
    any_error: bool = False
    samples: int = Field(ge=1)
    elapsed_seconds: float = 0.0
