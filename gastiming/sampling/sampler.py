"""Paired differential sampler.

Each sample runs the empty program and the program under test back to back,
each against its own fresh clone of the initial stack, and records the
difference. Fixed per-run overhead (engine setup, stack initialization) is
paid by both runs and cancels out.

A run that ends with a nonzero status is recorded as data and sampling goes
on. An :class:`~gastiming.core.errors.EngineFault` raised by the adapter is
not caught here and ends the measurement.
"""

from __future__ import annotations

import logging

from gastiming.codec.cell import Cell
from gastiming.codec.decoder import EMPTY_PROGRAM
from gastiming.core.types import DifferentialSample, RunningTotal, TimingReport
from gastiming.sampling.stats import differential, merge, summarize
from gastiming.sampling.stopping import StoppingController
from gastiming.vm.adapter import ExecutionAdapter
from gastiming.vm.stack import StackTemplate

logger = logging.getLogger(__name__)


class DifferentialSampler:
    """Collects baseline/target sample pairs until the controller says stop."""

    def __init__(self, adapter: ExecutionAdapter, controller: StoppingController) -> None:
        self._adapter = adapter
        self._controller = controller

    def sample_once(self, code: Cell, template: StackTemplate) -> DifferentialSample:
        """Take one baseline/target pair."""
        baseline = self._adapter.execute(EMPTY_PROGRAM, template.clone())
        target = self._adapter.execute(code, template.clone())
        return differential(target, baseline)

    def collect(
        self, code: Cell, template: StackTemplate
    ) -> tuple[tuple[DifferentialSample, ...], RunningTotal]:
        """Sample until stopping and return the frozen sample set and its totals."""
        self._adapter.ensure_initialized()
        samples: list[DifferentialSample] = []
        total = RunningTotal()

        self._controller.start()
        while True:
            sample = self.sample_once(code, template)
            samples.append(sample)
            total = merge(total, sample)
            if self._controller.should_stop(len(samples)):
                break

        return tuple(samples), total

    def measure(self, code: Cell, template: StackTemplate, label: str | None = None) -> TimingReport:
        """Collect samples for ``code`` and reduce them to a report."""
        label = label if label is not None else code.bits_hex()
        samples, total = self.collect(code, template)
        elapsed = self._controller.elapsed()
        runtime, gas, errored = summarize(samples, total)

        logger.info(
            "Measured %s: %d samples in %.3fs",
            label,
            len(samples),
            elapsed,
            extra={"code": label, "samples": len(samples), "elapsed_s": round(elapsed, 3)},
        )
        if errored:
            logger.warning("At least one execution of %s ended abnormally", label, extra={"code": label})

        return TimingReport(
            code=label,
            runtime=runtime,
            gas=gas,
            any_error=errored,
            samples=len(samples),
            elapsed_seconds=elapsed,
        )
