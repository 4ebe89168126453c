"""
Error types raised by the compression pipeline.

Engine and accelerator calls report an integer status. Anything other than
success is unrecoverable for a batch run, so it is raised as a
FatalEngineError carrying the status, the failing operation and the call site.
"""

import inspect
from enum import IntEnum
from typing import Optional


class EngineStatus(IntEnum):
    """Status codes shared by all codec engines (bitcompResult_t numbering)."""

    SUCCESS = 0
    INVALID_PARAMETER = -1
    INVALID_COMPRESSED_DATA = -2
    INVALID_ALIGNMENT = -3
    INVALID_INPUT_LENGTH = -4
    CUDA_KERNEL_LAUNCH_ERROR = -5
    CUDA_API_ERROR = -6
    UNKNOWN_ERROR = -7

    @classmethod
    def from_code(cls, code: int) -> "EngineStatus":
        try:
            return cls(int(code))
        except ValueError:
            return cls.UNKNOWN_ERROR


class FatalEngineError(RuntimeError):
    """
    An engine or accelerator call returned a non-success status.

    Args:
        status: Status reported by the engine
        operation: Name of the failing call
        filename: Source file of the call site
        lineno: Line number of the call site
        detail: Optional extra message from the engine or library
    """

    def __init__(
        self,
        status: EngineStatus,
        operation: str,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
        detail: Optional[str] = None
    ):
        self.status = EngineStatus.from_code(status)
        self.operation = operation
        self.filename = filename
        self.lineno = lineno
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        message = f"{self.operation} failed with status {self.status.name} ({int(self.status)})"
        if self.filename is not None:
            message += f" at {self.filename}:{self.lineno}"
        if self.detail:
            message += f": {self.detail}"
        return message


class SessionStateError(RuntimeError):
    """A codec session was driven out of its open/bind/submit/sync/close order."""


def fatal_error(status: int, operation: str, detail: Optional[str] = None) -> FatalEngineError:
    """
    Builds a FatalEngineError located at the caller's file and line.

    Used where a library exception has to be re-raised as a fatal engine
    error, so the original exception can be chained with ``raise ... from``.
    """
    frame = inspect.currentframe().f_back
    try:
        filename, lineno = frame.f_code.co_filename, frame.f_lineno
    finally:
        del frame

    return FatalEngineError(status, operation, filename, lineno, detail)


def check_status(status: int, operation: str, detail: Optional[str] = None) -> None:
    """
    Raises FatalEngineError unless ``status`` is success.

    The reported file and line are those of the caller, so the error points
    at the engine call that failed rather than at this helper.
    """
    status = EngineStatus.from_code(status)
    if status is EngineStatus.SUCCESS:
        return

    frame = inspect.currentframe().f_back
    try:
        filename, lineno = frame.f_code.co_filename, frame.f_lineno
    finally:
        del frame

    raise FatalEngineError(status, operation, filename, lineno, detail)
