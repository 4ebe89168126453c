"""
Codec sessions: one engine plan bound to one execution stream.

A session moves through a fixed sequence of states and never goes back:

    UNOPENED -> OPENED -> STREAM_BOUND -> SUBMITTED -> SYNCHRONIZED -> CLOSED

Compress and decompress return as soon as the work is queued on the stream.
Results (the compressed size, the output bytes) may only be read after
synchronize(). close() may be called from any opened state and waits for
in-flight work first.
"""

from enum import Enum
from typing import Any, Optional

from gcomp.core.buffers import RawBuffer, Residency
from gcomp.core.engines import CodecEngine
from gcomp.core.errors import SessionStateError
from gcomp.core.streams import ExecutionStream
from gcomp.core.types import AlgorithmVariant, CompressionMode, ElementType


class SessionState(Enum):
    UNOPENED = 0
    OPENED = 1
    STREAM_BOUND = 2
    SUBMITTED = 3
    SYNCHRONIZED = 4
    CLOSED = 5


class CodecSession:
    """
    Configured engine plan for a single compress or decompress call.

    Use CodecSession.open() to create one; sessions are context managers and
    are closed exactly once when the block exits, whether or not it raised.

    Args:
        engine: Codec engine owning the plan
        max_uncompressed_bytes: Uncompressed size the plan is built for
        element_type: Element granularity of the uncompressed data
        mode: Compression mode
        variant: Engine algorithm variant

    Example:
        >>> with CodecSession.open(engine, nbytes, ElementType.UINT8) as session:
        ...     session.bind_stream(stream)
        ...     session.compress(device_in, device_out)
        ...     session.synchronize()
        ...     size = session.compressed_size(device_out)
    """

    def __init__(
        self,
        engine: CodecEngine,
        max_uncompressed_bytes: int,
        element_type: ElementType = ElementType.UINT8,
        mode: CompressionMode = CompressionMode.LOSSLESS,
        variant: AlgorithmVariant = AlgorithmVariant.DEFAULT
    ):
        self.engine = engine
        self.max_uncompressed_bytes = max_uncompressed_bytes
        self.element_type = element_type
        self.mode = mode
        self.variant = variant

        self.state = SessionState.UNOPENED
        self.stream: Optional[ExecutionStream] = None
        self._plan: Any = None
        self._operation: Optional[str] = None

    @classmethod
    def open(
        cls,
        engine: CodecEngine,
        max_uncompressed_bytes: int,
        element_type: ElementType = ElementType.UINT8,
        mode: CompressionMode = CompressionMode.LOSSLESS,
        variant: AlgorithmVariant = AlgorithmVariant.DEFAULT
    ) -> "CodecSession":
        """Creates the engine plan. Raises FatalEngineError if the engine refuses it."""
        session = cls(engine, max_uncompressed_bytes, element_type, mode, variant)
        session._plan = engine.create_plan(max_uncompressed_bytes, element_type, mode, variant)
        session.state = SessionState.OPENED
        return session

    def max_compressed_bound(self, nbytes: Optional[int] = None) -> int:
        """Worst-case compressed size for ``nbytes`` (default: the plan size)."""
        if nbytes is None:
            nbytes = self.max_uncompressed_bytes
        return self.engine.max_compressed_bound(nbytes)

    def bind_stream(self, stream: ExecutionStream) -> None:
        self._require(SessionState.OPENED, "bind a stream")
        self.engine.set_stream(self._plan, stream)
        self.stream = stream
        self.state = SessionState.STREAM_BOUND

    def compress(self, device_input: RawBuffer, device_output: RawBuffer) -> None:
        self._require(SessionState.STREAM_BOUND, "submit compression")
        _require_device(device_input, device_output)

        if device_input.nbytes > self.max_uncompressed_bytes:
            raise ValueError(
                f"Input of {device_input.nbytes} bytes exceeds session bound "
                f"of {self.max_uncompressed_bytes} bytes"
            )
        bound = self.max_compressed_bound(device_input.nbytes)
        if device_output.nbytes < bound:
            raise ValueError(
                f"Output buffer of {device_output.nbytes} bytes is smaller than the "
                f"compressed bound of {bound} bytes"
            )

        self.engine.compress(self._plan, device_input, device_output)
        self._submitted("compress")

    def decompress(self, device_input: RawBuffer, device_output: RawBuffer) -> None:
        self._require(SessionState.STREAM_BOUND, "submit decompression")
        _require_device(device_input, device_output)

        if device_output.nbytes != self.max_uncompressed_bytes:
            raise ValueError(
                f"Decompression output must be exactly {self.max_uncompressed_bytes} bytes, "
                f"got {device_output.nbytes}"
            )

        self.engine.decompress(self._plan, device_input, device_output)
        self._submitted("decompress")

    def synchronize(self) -> None:
        self._require(SessionState.SUBMITTED, "synchronize")
        self.stream.synchronize()
        self.state = SessionState.SYNCHRONIZED

    def compressed_size(self, device_output: RawBuffer) -> int:
        """Valid length of the compressed output. Only legal after synchronize()."""
        self._require(SessionState.SYNCHRONIZED, "query the compressed size")
        if self._operation != "compress":
            raise SessionStateError("Compressed size is only defined after a compress submission")
        return self.engine.compressed_size(self._plan, device_output)

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            raise SessionStateError("Session closed twice")
        if self.state is SessionState.UNOPENED:
            raise SessionStateError("Session was never opened")

        if self.state is SessionState.SUBMITTED:
            self.synchronize()

        plan, self._plan = self._plan, None
        self.state = SessionState.CLOSED
        self.engine.destroy_plan(plan)

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def _submitted(self, operation: str) -> None:
        self._operation = operation
        self.stream.submit()
        self.state = SessionState.SUBMITTED

    def _require(self, state: SessionState, action: str) -> None:
        if self.state is not state:
            raise SessionStateError(
                f"Cannot {action} in state {self.state.name} (expected {state.name})"
            )

    def __enter__(self) -> "CodecSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.state not in (SessionState.CLOSED, SessionState.UNOPENED):
            self.close()
        return False

    def __repr__(self) -> str:
        return (
            f"CodecSession(engine={self.engine!r}, bytes={self.max_uncompressed_bytes}, "
            f"element_type={self.element_type.name}, state={self.state.name})"
        )


def _require_device(*buffers: RawBuffer) -> None:
    for buffer in buffers:
        if buffer.residency is not Residency.DEVICE:
            raise ValueError("Codec sessions only operate on device buffers")
