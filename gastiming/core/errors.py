"""Fatal error kinds for the gastiming harness.

Only unrecoverable conditions are modelled as exceptions. A VM run that
finishes with a nonzero exit status is measurement data, not an error, and
never surfaces here.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable identifiers attached to every fatal error."""

    DECODE_ERROR = "DECODE_ERROR"
    SETUP_FAILED = "SETUP_FAILED"
    ENGINE_FAULT = "ENGINE_FAULT"
    ENGINE_LOAD_ERROR = "ENGINE_LOAD_ERROR"
    OWNERSHIP_VIOLATION = "OWNERSHIP_VIOLATION"


class GasTimingError(Exception):
    """Base class for errors that abort a measurement run."""

    code: ErrorCode = ErrorCode.ENGINE_FAULT

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DecodeError(GasTimingError):
    """The program text is neither a valid hex literal nor a valid BOC."""

    code = ErrorCode.DECODE_ERROR


class SetupError(GasTimingError):
    """The setup program did not complete successfully."""

    code = ErrorCode.SETUP_FAILED


class EngineFault(GasTimingError):
    """An exception escaped the execution engine during a run."""

    code = ErrorCode.ENGINE_FAULT


class EngineLoadError(GasTimingError):
    """The configured execution engine could not be imported or built."""

    code = ErrorCode.ENGINE_LOAD_ERROR


class OwnershipError(GasTimingError):
    """An execution context was handed to more than one execution."""

    code = ErrorCode.OWNERSHIP_VIOLATION
