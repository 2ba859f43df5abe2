"""gastiming CLI — compare VM execution time against charged gas.

Usage:
    gastiming <CODE>                   Measure CODE on an empty initial stack
    gastiming <SETUP_CODE> <CODE>      Run SETUP_CODE once, then measure CODE
                                       against the stack it leaves behind

Examples:
    gastiming A90E
    gastiming 80FF801C A90E 2>/dev/null
    gastiming --engine my_bindings.tvm:Engine boc:te6ccgEBAgEABwABAogBAAJ7
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from gastiming.codec.decoder import decode_program
from gastiming.core.config import Settings, get_settings
from gastiming.core.errors import GasTimingError
from gastiming.core.logging import setup_logging
from gastiming.core.types import TimingReport
from gastiming.report.csv_output import write_report
from gastiming.sampling.sampler import DifferentialSampler
from gastiming.sampling.stopping import StoppingController
from gastiming.vm.adapter import ExecutionAdapter
from gastiming.vm.engine import load_engine

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FATAL = 2

USAGE = """\
This utility compares the timing of VM execution against the gas used.
It can be used to discover opcodes or opcode sequences that consume an \
inordinate amount of computational resources relative to their gas cost.

The utility expects one or two positional arguments:
The code used to set up the stack and VM state (optional) followed by the code to measure.
For example, to test the DIVMODC opcode:
\t$ {prog} 80FF801C A90E 2>/dev/null
\tOPCODE,runtime mean,runtime stddev,gas mean,gas stddev,error
\tA90E,0.006641600,0.002334960,26.000000000,0.000000000,0

Usage: {prog} [options] [SETUP_BYTECODE] BYTECODE
\tBYTECODE is either:
\t1. hex-encoded string (e.g. A90E for DIVMODC)
\t2. boc:<serialized boc in base64> (e.g. boc:te6ccgEBAgEABwABAogBAAJ7)
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gastiming",
        description="Measure VM execution time against charged gas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("programs", nargs="*", metavar="CODE", help="[SETUP_CODE] CODE")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--engine", help="Engine name or module:attribute (default: from settings)")
    parser.add_argument("--max-samples", type=int, help="Hard cap on samples")
    parser.add_argument("--min-samples", type=int, help="Samples required before the time budget applies")
    parser.add_argument("--time-budget", type=float, help="Sampling time budget in seconds")
    parser.add_argument("--log-level", help="Log level for stderr diagnostics")
    return parser


def print_usage(prog: str = "gastiming") -> None:
    print(USAGE.format(prog=prog), file=sys.stderr)


# ── Measurement ─────────────────────────────────────────────────────────────


def build_controller(args: argparse.Namespace, settings: Settings) -> StoppingController:
    return StoppingController(
        max_samples=args.max_samples if args.max_samples is not None else settings.max_samples,
        min_samples=args.min_samples if args.min_samples is not None else settings.min_samples,
        time_budget=args.time_budget if args.time_budget is not None else settings.time_budget_seconds,
    )


def run_measurement(
    setup_text: str,
    code_text: str,
    adapter: ExecutionAdapter,
    controller: StoppingController,
) -> TimingReport:
    """Decode both programs, prepare the stack and sample the code."""
    setup_code = decode_program(setup_text)
    code = decode_program(code_text)

    template = adapter.prepare_stack(setup_code)
    sampler = DifferentialSampler(adapter, controller)
    return sampler.measure(code, template, label=code_text)


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)

    if args.version:
        print(f"gastiming {VERSION}")
        return EXIT_OK

    if len(args.programs) not in (1, 2):
        print_usage(parser.prog)
        return EXIT_USAGE

    try:
        settings = get_settings()
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        print(f"{parser.prog}: invalid setting {field}: {first['msg']}", file=sys.stderr)
        return EXIT_USAGE
    setup_logging(settings.app_env, args.log_level or settings.log_level)

    if len(args.programs) == 1:
        setup_text, code_text = "", args.programs[0]
    else:
        setup_text, code_text = args.programs

    try:
        controller = build_controller(args, settings)
    except ValueError as exc:
        print(f"{parser.prog}: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        engine = load_engine(args.engine or settings.engine)
        adapter = ExecutionAdapter(
            engine,
            gas_limit=settings.gas_limit,
            global_version=settings.vm_global_version,
        )
        report = run_measurement(setup_text, code_text, adapter, controller)
    except GasTimingError as exc:
        logger.critical(
            "Measurement aborted: %s",
            exc.message,
            exc_info=exc.__cause__ is not None,
            extra={"code": code_text, "error_code": exc.code.value},
        )
        return EXIT_FATAL

    write_report(report, sys.stdout)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
