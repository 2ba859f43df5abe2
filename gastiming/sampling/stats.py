"""Running statistics and error-status aggregation over differential samples.

Means come from the running sums folded during sampling; standard deviations
come from a second pass over the stored samples. Both use the population
formula (divide by N).
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from gastiming.core.types import DifferentialSample, RunningTotal, SampleResult, Stats


def combine_status(a: int, b: int) -> int:
    """First nonzero status wins; ``a`` takes precedence over ``b``."""
    return a if a != 0 else b


def differential(target: SampleResult, baseline: SampleResult) -> DifferentialSample:
    """Target minus baseline. Negative time deltas are kept as measured."""
    return DifferentialSample(
        delta_time=target.elapsed_ms - baseline.elapsed_ms,
        delta_gas=float(target.gas_consumed - baseline.gas_consumed),
        status=combine_status(target.status, baseline.status),
    )


def merge(total: RunningTotal, sample: DifferentialSample | RunningTotal) -> RunningTotal:
    """Fold a sample (or another total) into ``total``."""
    if isinstance(sample, RunningTotal):
        return RunningTotal(
            time_sum=total.time_sum + sample.time_sum,
            gas_sum=total.gas_sum + sample.gas_sum,
            status=combine_status(total.status, sample.status),
            count=total.count + sample.count,
        )
    return RunningTotal(
        time_sum=total.time_sum + sample.delta_time,
        gas_sum=total.gas_sum + sample.delta_gas,
        status=combine_status(total.status, sample.status),
        count=total.count + 1,
    )


def population_stats(values: Sequence[float], total_sum: float) -> Stats:
    """Mean from a precomputed sum, then population stddev in a second pass."""
    n = len(values)
    if n == 0:
        raise ValueError("cannot compute statistics over an empty sample set")
    # Rounding in the running sum can push the mean outside the sample range.
    mean = min(max(total_sum / n, min(values)), max(values))
    squared = sum((v - mean) ** 2 for v in values)
    return Stats(mean=mean, stddev=math.sqrt(squared / n))


def any_error(samples: Iterable[DifferentialSample]) -> bool:
    """True iff at least one sample finished with a nonzero status."""
    return any(s.status != 0 for s in samples)


def summarize(
    samples: Sequence[DifferentialSample], total: RunningTotal
) -> tuple[Stats, Stats, bool]:
    """Runtime stats, gas stats and the error flag for a finished sample set."""
    runtime = population_stats([s.delta_time for s in samples], total.time_sum)
    gas = population_stats([s.delta_gas for s in samples], total.gas_sum)
    return runtime, gas, any_error(samples)
