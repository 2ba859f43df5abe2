"""CSV rendering of timing reports.

Every numeric field is printed with exactly nine digits after the decimal
point; the error column is ``0`` or ``1``.
"""

from __future__ import annotations

from typing import TextIO

from gastiming.core.types import TimingReport

CSV_HEADER = "OPCODE,runtime mean,runtime stddev,gas mean,gas stddev,error"


def format_row(report: TimingReport) -> str:
    return (
        f"{report.code},"
        f"{report.runtime.mean:.9f},{report.runtime.stddev:.9f},"
        f"{report.gas.mean:.9f},{report.gas.stddev:.9f},"
        f"{int(report.any_error)}"
    )


def write_report(report: TimingReport, stream: TextIO) -> None:
    """Write the header line followed by the single data row."""
    stream.write(CSV_HEADER + "\n")
    stream.write(format_row(report) + "\n")
    stream.flush()
