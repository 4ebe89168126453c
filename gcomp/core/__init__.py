"""Buffers, streams, codec engines and sessions."""

from .errors import EngineStatus, FatalEngineError, SessionStateError, check_status, fatal_error
from .types import AlgorithmVariant, CompressionMode, ElementType
from .streams import ExecutionStream
from .timing import TimingSample
from .buffers import BufferTransferLayer, CopyDirection, RawBuffer, Residency
from .engines import BitcompEngine, CodecEngine, ZstdEngine, create_engine
from .session import CodecSession, SessionState
from .verify import VerificationMismatch, find_first_mismatch

__all__ = [
    "EngineStatus",
    "FatalEngineError",
    "SessionStateError",
    "check_status",
    "fatal_error",
    "AlgorithmVariant",
    "CompressionMode",
    "ElementType",
    "ExecutionStream",
    "TimingSample",
    "BufferTransferLayer",
    "CopyDirection",
    "RawBuffer",
    "Residency",
    "BitcompEngine",
    "CodecEngine",
    "ZstdEngine",
    "create_engine",
    "CodecSession",
    "SessionState",
    "VerificationMismatch",
    "find_first_mismatch",
]
