"""Adaptive stopping rule for the sampling loop.

Sampling continues until either the hard cap is reached, or the time budget
has been exceeded and at least the minimum number of samples is in hand. The
minimum is honoured even when a handful of samples already blow the budget.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_SAMPLES = 100_000
DEFAULT_MIN_SAMPLES = 20
DEFAULT_TIME_BUDGET = 2.0  # seconds


class StoppingController:
    """Decides after each sample whether to take another one."""

    def __init__(
        self,
        max_samples: int = DEFAULT_MAX_SAMPLES,
        min_samples: int = DEFAULT_MIN_SAMPLES,
        time_budget: float = DEFAULT_TIME_BUDGET,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_samples < 1:
            raise ValueError(f"max_samples must be positive, got {max_samples}")
        if min_samples < 1:
            raise ValueError(f"min_samples must be positive, got {min_samples}")
        if min_samples > max_samples:
            raise ValueError(f"min_samples ({min_samples}) exceeds max_samples ({max_samples})")
        if time_budget < 0:
            raise ValueError(f"time_budget must be non-negative, got {time_budget}")

        self.max_samples = max_samples
        self.min_samples = min_samples
        self.time_budget = time_budget
        self._clock = clock
        self._started_at: float | None = None

    def start(self) -> None:
        """Start (or restart) the stopwatch."""
        self._started_at = self._clock()

    def elapsed(self) -> float:
        """Seconds since :meth:`start`."""
        if self._started_at is None:
            raise RuntimeError("stopping controller was not started")
        return self._clock() - self._started_at

    def should_stop(self, collected: int) -> bool:
        """Called after each sample with the number collected so far."""
        elapsed = self.elapsed()
        if collected >= self.max_samples:
            return True
        if collected >= self.min_samples and elapsed > self.time_budget:
            logger.debug(
                "Time budget of %.2fs exhausted after %d samples", self.time_budget, collected
            )
            return True
        return False
