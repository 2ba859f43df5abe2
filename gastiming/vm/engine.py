"""Execution engine protocol and loading.

The VM itself lives outside this project. An engine is any object that
satisfies :class:`ExecutionEngine`; it is selected by name or by a
``module:attribute`` import path, e.g.::

    GASTIMING_ENGINE=my_tvm_bindings.engine:TvmEngine gastiming A90E

The attribute may be an engine instance, an engine class, or a zero-argument
factory returning an engine.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from gastiming.codec.cell import Cell
from gastiming.core.errors import EngineLoadError

logger = logging.getLogger(__name__)


# ── Protocol ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineRun:
    """Raw outcome of one engine run, before status normalization."""
    raw_status: int
    gas_consumed: int


@runtime_checkable
class ExecutionEngine(Protocol):
    """Protocol for pluggable VM execution engines.

    Implementations must define:
        name: str — identifier used in logs
        complements_status: bool — True when success is reported as a
            sentinel whose bitwise complement is zero (e.g. ``-1``)
        initialize() — build global opcode tables and shared singletons;
            called once before the first run
        run(code, stack, gas_limit) -> EngineRun — execute ``code`` against
            ``stack`` (mutated in place) with an optional gas limit
    """
    name: str
    complements_status: bool

    def initialize(self, global_version: int) -> None:
        ...

    def run(self, code: Cell, stack: list[Any], gas_limit: int | None) -> EngineRun:
        ...


# ── Builtin engines ──────────────────────────────────────────────────────────


class NullEngine:
    """Engine that executes nothing and charges no gas.

    Useful for checking the harness wiring: every program measures a gas
    mean of zero and a runtime mean close to zero.
    """

    name = "null"
    complements_status = True

    def __init__(self) -> None:
        self.initialized = False
        self.global_version: int | None = None

    def initialize(self, global_version: int) -> None:
        self.initialized = True
        self.global_version = global_version

    def run(self, code: Cell, stack: list[Any], gas_limit: int | None) -> EngineRun:
        return EngineRun(raw_status=~0, gas_consumed=0)


BUILTIN_ENGINES: dict[str, Callable[[], Any]] = {
    "null": NullEngine,
}


# ── Loading ──────────────────────────────────────────────────────────────────


def _import_target(spec: str) -> Any:
    module_name, _, attr_path = spec.partition(":")
    if not module_name or not attr_path:
        raise EngineLoadError(
            f"engine '{spec}' is neither a builtin ({', '.join(sorted(BUILTIN_ENGINES))}) "
            "nor a 'module:attribute' path"
        )
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineLoadError(f"cannot import engine module '{module_name}': {exc}") from exc
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise EngineLoadError(f"engine module '{module_name}' has no attribute '{attr_path}'") from exc
    return target


def load_engine(spec: str) -> ExecutionEngine:
    """Resolve an engine name or import path to an engine instance."""
    if spec in BUILTIN_ENGINES:
        target: Any = BUILTIN_ENGINES[spec]
    else:
        target = _import_target(spec)

    engine = target
    if isinstance(target, type) or (not isinstance(target, ExecutionEngine) and callable(target)):
        try:
            engine = target()
        except Exception as exc:
            raise EngineLoadError(f"engine factory '{spec}' failed: {exc}") from exc

    if not isinstance(engine, ExecutionEngine):
        raise EngineLoadError(f"'{spec}' does not provide an execution engine")

    logger.info("Loaded execution engine %s from '%s'", engine.name, spec)
    return engine
