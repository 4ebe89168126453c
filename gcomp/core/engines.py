"""
Codec engines driven through a plan-based compress/decompress contract.

The compression algorithm itself lives in an external library. Each engine
adapts one library to the same small set of calls the CodecSession makes:

    create_plan -> set_stream -> compress | decompress -> compressed_size
                                                        -> destroy_plan

Every non-success condition is reported through check_status, so engine
failures always surface as FatalEngineError with the engine's status code.
"""

import ctypes
from typing import Any, Dict, Optional

import numpy as np
import torch

try:
    import zstandard as zstd
    ZSTD_AVAILABLE = True
except ImportError:
    ZSTD_AVAILABLE = False

from gcomp.core.buffers import RawBuffer
from gcomp.core.errors import EngineStatus, check_status, fatal_error
from gcomp.core.streams import ExecutionStream
from gcomp.core.types import AlgorithmVariant, CompressionMode, ElementType


class CodecEngine:
    """Base class for plan-based codec engines."""

    name = "base"

    def create_plan(
        self,
        nbytes: int,
        element_type: ElementType,
        mode: CompressionMode,
        variant: AlgorithmVariant
    ) -> Any:
        raise NotImplementedError

    def destroy_plan(self, plan: Any) -> None:
        raise NotImplementedError

    def set_stream(self, plan: Any, stream: ExecutionStream) -> None:
        raise NotImplementedError

    def compress(self, plan: Any, device_input: RawBuffer, device_output: RawBuffer) -> None:
        raise NotImplementedError

    def decompress(self, plan: Any, device_input: RawBuffer, device_output: RawBuffer) -> None:
        raise NotImplementedError

    def compressed_size(self, plan: Any, device_output: RawBuffer) -> int:
        raise NotImplementedError

    def max_compressed_bound(self, nbytes: int) -> int:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def zstd_compress_bound(nbytes: int) -> int:
    """Worst-case zstd frame size for ``nbytes`` of input (ZSTD_COMPRESSBOUND)."""
    small_input_margin = ((128 << 10) - nbytes) >> 11 if nbytes < (128 << 10) else 0
    return nbytes + (nbytes >> 8) + small_input_margin


class _ZstdPlan:
    def __init__(self, nbytes: int, element_type: ElementType, level: int):
        self.nbytes = nbytes
        self.element_type = element_type
        self.level = level
        self.stream: Optional[ExecutionStream] = None
        self.compressed_size: Optional[int] = None


class ZstdEngine(CodecEngine):
    """
    Zstandard engine.

    Frames are written without a content-size field and without a checksum,
    so the compressed artifact carries no length information and the
    decompressor relies on the size declared by the caller. Only lossless
    compression with the default algorithm variant is supported.

    Args:
        level: Zstandard compression level
    """

    name = "zstd"

    def __init__(self, level: int = 3):
        if not ZSTD_AVAILABLE:
            raise RuntimeError(
                "zstandard is required for the zstd engine. Install with: pip install zstandard"
            )
        self.level = level

    def create_plan(self, nbytes, element_type, mode, variant):
        if nbytes < 0:
            check_status(EngineStatus.INVALID_INPUT_LENGTH, "zstd create plan",
                         f"negative size {nbytes}")
        if mode is not CompressionMode.LOSSLESS:
            check_status(EngineStatus.INVALID_PARAMETER, "zstd create plan",
                         f"mode {mode.name} is not supported")
        if variant is not AlgorithmVariant.DEFAULT:
            check_status(EngineStatus.INVALID_PARAMETER, "zstd create plan",
                         f"algorithm {variant.name} is not supported")
        return _ZstdPlan(nbytes, element_type, self.level)

    def destroy_plan(self, plan):
        plan.stream = None

    def set_stream(self, plan, stream):
        plan.stream = stream

    def compress(self, plan, device_input, device_output):
        if device_input.nbytes > plan.nbytes:
            check_status(EngineStatus.INVALID_INPUT_LENGTH, "zstd compress",
                         f"input of {device_input.nbytes} bytes exceeds plan size {plan.nbytes}")

        with plan.stream.context():
            payload = device_input.data.cpu().numpy().tobytes()
            cctx = zstd.ZstdCompressor(
                level=plan.level,
                write_content_size=False,
                write_checksum=False
            )
            frame = cctx.compress(payload)

            if len(frame) > device_output.nbytes:
                check_status(EngineStatus.INVALID_INPUT_LENGTH, "zstd compress",
                             f"frame of {len(frame)} bytes exceeds output buffer of {device_output.nbytes}")

            _store(frame, device_output)
        plan.compressed_size = len(frame)

    def decompress(self, plan, device_input, device_output):
        with plan.stream.context():
            frame = device_input.data.cpu().numpy().tobytes()
            try:
                payload = _inflate(frame, device_output.nbytes)
            except zstd.ZstdError as e:
                check_status(EngineStatus.INVALID_COMPRESSED_DATA, "zstd decompress", str(e))

            if len(payload) != device_output.nbytes:
                check_status(EngineStatus.INVALID_INPUT_LENGTH, "zstd decompress",
                             f"frame does not hold exactly the {device_output.nbytes} bytes declared "
                             f"(decoded {len(payload)} before stopping)")

            _store(payload, device_output)

    def compressed_size(self, plan, device_output):
        if plan.compressed_size is None:
            check_status(EngineStatus.INVALID_COMPRESSED_DATA, "zstd compressed size",
                         "no frame has been compressed with this plan")
        return plan.compressed_size

    def max_compressed_bound(self, nbytes):
        return zstd_compress_bound(nbytes)

    def __repr__(self) -> str:
        return f"ZstdEngine(level={self.level})"


def _inflate(frame: bytes, limit: int) -> bytes:
    """Decodes at most ``limit + 1`` bytes of a frame, enough to detect an oversized one."""
    chunks = []
    remaining = limit + 1
    with zstd.ZstdDecompressor().stream_reader(frame) as reader:
        while remaining > 0:
            chunk = reader.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
    return b"".join(chunks)


def _store(data: bytes, device_output: RawBuffer) -> None:
    if not data:
        return
    host = torch.from_numpy(np.frombuffer(data, dtype=np.uint8).copy())
    device_output.data[:len(data)].copy_(host, non_blocking=True)


_BITCOMP_SIGNATURES = {
    'bitcompCreatePlan': (
        [ctypes.POINTER(ctypes.c_void_p), ctypes.c_size_t, ctypes.c_int, ctypes.c_int, ctypes.c_int],
        ctypes.c_int
    ),
    'bitcompDestroyPlan': ([ctypes.c_void_p], ctypes.c_int),
    'bitcompSetStream': ([ctypes.c_void_p, ctypes.c_void_p], ctypes.c_int),
    'bitcompCompressLossless': ([ctypes.c_void_p, ctypes.c_void_p, ctypes.c_void_p], ctypes.c_int),
    'bitcompUncompress': ([ctypes.c_void_p, ctypes.c_void_p, ctypes.c_void_p], ctypes.c_int),
    'bitcompGetCompressedSize': ([ctypes.c_void_p, ctypes.POINTER(ctypes.c_size_t)], ctypes.c_int),
    'bitcompMaxBuflen': ([ctypes.c_size_t], ctypes.c_size_t),
}


class BitcompEngine(CodecEngine):
    """
    NVIDIA nvCOMP Bitcomp engine, bound through its native plan API.

    The shared library is loaded on first use. All buffers passed to the
    engine must be CUDA device buffers and the plan must be bound to a CUDA
    stream; compress and decompress are asynchronous on that stream.

    Args:
        library: Name or path of the Bitcomp shared library
    """

    name = "bitcomp"

    def __init__(self, library: str = "libnvcomp_bitcomp.so"):
        self.library = library
        self._lib = None

    def _load(self):
        if self._lib is not None:
            return self._lib

        try:
            lib = ctypes.CDLL(self.library)
        except OSError as e:
            raise fatal_error(
                EngineStatus.CUDA_API_ERROR,
                f"load {self.library}",
                detail=str(e)
            ) from e

        for symbol, (argtypes, restype) in _BITCOMP_SIGNATURES.items():
            try:
                function = getattr(lib, symbol)
            except AttributeError as e:
                raise fatal_error(
                    EngineStatus.CUDA_API_ERROR,
                    f"resolve {symbol} in {self.library}",
                    detail=str(e)
                ) from e
            function.argtypes = argtypes
            function.restype = restype

        self._lib = lib
        return lib

    def create_plan(self, nbytes, element_type, mode, variant):
        lib = self._load()
        handle = ctypes.c_void_p()
        status = lib.bitcompCreatePlan(
            ctypes.byref(handle),
            nbytes,
            element_type.engine_flag,
            int(mode),
            int(variant)
        )
        check_status(status, "bitcompCreatePlan")
        return handle

    def destroy_plan(self, plan):
        check_status(self._load().bitcompDestroyPlan(plan), "bitcompDestroyPlan")

    def set_stream(self, plan, stream):
        if not stream.is_cuda:
            check_status(EngineStatus.INVALID_PARAMETER, "bitcompSetStream",
                         "bitcomp requires a CUDA stream")
        status = self._load().bitcompSetStream(plan, ctypes.c_void_p(stream.handle))
        check_status(status, "bitcompSetStream")

    def compress(self, plan, device_input, device_output):
        status = self._load().bitcompCompressLossless(
            plan,
            ctypes.c_void_p(device_input.data_ptr()),
            ctypes.c_void_p(device_output.data_ptr())
        )
        check_status(status, "bitcompCompressLossless")

    def decompress(self, plan, device_input, device_output):
        status = self._load().bitcompUncompress(
            plan,
            ctypes.c_void_p(device_input.data_ptr()),
            ctypes.c_void_p(device_output.data_ptr())
        )
        check_status(status, "bitcompUncompress")

    def compressed_size(self, plan, device_output):
        size = ctypes.c_size_t()
        status = self._load().bitcompGetCompressedSize(
            ctypes.c_void_p(device_output.data_ptr()),
            ctypes.byref(size)
        )
        check_status(status, "bitcompGetCompressedSize")
        return size.value

    def max_compressed_bound(self, nbytes):
        return int(self._load().bitcompMaxBuflen(nbytes))

    def __repr__(self) -> str:
        return f"BitcompEngine(library={self.library!r})"


ENGINES = {
    ZstdEngine.name: ZstdEngine,
    BitcompEngine.name: BitcompEngine,
}


def create_engine(engine_config: Dict[str, Any]) -> CodecEngine:
    """
    Builds an engine from the ``engine`` section of the configuration.

    Args:
        engine_config: Mapping with ``name`` plus engine-specific options
            (``zstd_level`` for zstd, ``bitcomp_library`` for bitcomp)
    """
    name = engine_config.get('name', ZstdEngine.name)
    if name == ZstdEngine.name:
        return ZstdEngine(level=engine_config.get('zstd_level', 3))
    if name == BitcompEngine.name:
        return BitcompEngine(library=engine_config.get('bitcomp_library', 'libnvcomp_bitcomp.so'))

    raise ValueError(f"Unknown engine '{name}' (expected one of: {', '.join(sorted(ENGINES))})")
