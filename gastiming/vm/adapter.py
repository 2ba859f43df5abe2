"""Execution adapter: runs the engine once and times the run.

Only the engine's ``run`` call sits inside the timed region. Stack cloning,
engine initialization and status normalization all happen outside it.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from gastiming.codec.cell import Cell
from gastiming.core.errors import EngineFault, OwnershipError, SetupError
from gastiming.core.types import SampleResult
from gastiming.vm.engine import ExecutionEngine
from gastiming.vm.stack import OwnedStack, StackTemplate

logger = logging.getLogger(__name__)


def normalize_status(raw_status: int, complements_status: bool) -> int:
    """Map an engine's raw exit status to 0 = success, nonzero = abnormal.

    Engines that report success as a sentinel whose bitwise complement is
    zero (``~0 == -1``) get their status complemented.
    """
    return ~raw_status if complements_status else raw_status


class ExecutionAdapter:
    """Single-run bridge between the sampler and an execution engine."""

    def __init__(
        self,
        engine: ExecutionEngine,
        gas_limit: int | None = None,
        global_version: int = 4,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._engine = engine
        self._gas_limit = gas_limit
        self._global_version = global_version
        self._timer = timer
        self._initialized = False

    def ensure_initialized(self) -> None:
        """Initialize the engine's global tables once; later calls are no-ops."""
        if self._initialized:
            return
        try:
            self._engine.initialize(self._global_version)
        except Exception as exc:
            raise EngineFault(f"engine {self._engine.name} failed to initialize: {exc}") from exc
        self._initialized = True
        logger.debug("Initialized engine %s (global version %d)", self._engine.name, self._global_version)

    def _run(self, code: Cell, stack: OwnedStack) -> tuple[SampleResult, list[Any]]:
        self.ensure_initialized()
        if not stack.is_unique():
            raise OwnershipError("execution requires an exclusively owned stack")
        items = stack.take()

        try:
            start = self._timer()
            run = self._engine.run(code, items, self._gas_limit)
            end = self._timer()
        except Exception as exc:
            raise EngineFault(
                f"engine {self._engine.name} raised {type(exc).__name__}: {exc}"
            ) from exc

        elapsed_ms = (end - start) * 1000.0
        result = SampleResult(
            elapsed_ms=elapsed_ms if elapsed_ms >= 0 else 0.0,
            gas_consumed=run.gas_consumed,
            status=normalize_status(run.raw_status, self._engine.complements_status),
        )
        return result, items

    def execute(self, code: Cell, stack: OwnedStack) -> SampleResult:
        """Run ``code`` once against ``stack`` and return timing, gas and status."""
        result, _ = self._run(code, stack)
        return result

    def prepare_stack(self, setup_code: Cell) -> StackTemplate:
        """Run the setup program on an empty stack and capture the result."""
        result, items = self._run(setup_code, OwnedStack())
        if result.status != 0:
            raise SetupError(f"setup code exited with status {result.status}")
        template = StackTemplate(items)
        logger.debug("Prepared initial stack of depth %d", template.depth)
        return template
