"""
Compression pipeline driver and round-trip verifier.

Each operation reads a whole file into a host buffer, stages it on the
accelerator, runs one codec session on a dedicated execution stream, copies
the result back and writes it next to the input:

    host buffer -> device buffer -> codec engine -> device result -> host buffer -> disk

All buffers and sessions are acquired through ``contextlib.ExitStack``. The
stream is synchronized and the session closed before any buffer it may still
be using is released, on success and when a FatalEngineError propagates.
"""

from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from gcomp.core.buffers import BufferTransferLayer, CopyDirection, RawBuffer
from gcomp.core.engines import CodecEngine, create_engine
from gcomp.core.errors import EngineStatus, check_status
from gcomp.core.session import CodecSession
from gcomp.core.streams import ExecutionStream
from gcomp.core.timing import TimingSample
from gcomp.core.types import AlgorithmVariant, CompressionMode, ElementType
from gcomp.core.verify import find_first_mismatch
from gcomp.io.files import file_size, read_binary, write_binary
from gcomp.utils.metrics import (
    bits_per_byte,
    compression_ratio,
    format_throughput,
    percent_savings,
    throughput
)


class CompressionPipeline:
    """
    Drives compress, decompress and round-trip verification of files.

    Args:
        engine: Codec engine performing the actual compression
        transfer: Buffer transfer layer (default: auto-detected device)
        element_type: Element granularity of the data
        mode: Compression mode handed to the engine
        variant: Engine algorithm variant
        compressed_suffix: Appended to the input path for compressed output
        decompressed_suffix: Appended to the compressed path for decompressed output
        verify_block_elements: Elements compared per step during verification
        verbose: Print progress lines

    Example:
        >>> pipeline = CompressionPipeline(ZstdEngine(), BufferTransferLayer('cpu'))
        >>> stats = pipeline.compress_file('telemetry.bin')
        >>> report = pipeline.verify_round_trip('telemetry.bin')
        >>> report['passed']
        True
    """

    def __init__(
        self,
        engine: CodecEngine,
        transfer: Optional[BufferTransferLayer] = None,
        element_type: ElementType = ElementType.UINT8,
        mode: CompressionMode = CompressionMode.LOSSLESS,
        variant: AlgorithmVariant = AlgorithmVariant.DEFAULT,
        compressed_suffix: str = '.compressed',
        decompressed_suffix: str = '.decompressed',
        verify_block_elements: int = 1 << 20,
        verbose: bool = True
    ):
        if compressed_suffix == decompressed_suffix:
            raise ValueError("Compressed and decompressed suffixes must differ")

        self.engine = engine
        self.transfer = transfer if transfer is not None else BufferTransferLayer()
        self.element_type = element_type
        self.mode = mode
        self.variant = variant
        self.compressed_suffix = compressed_suffix
        self.decompressed_suffix = decompressed_suffix
        self.verify_block_elements = verify_block_elements
        self.verbose = verbose

    @classmethod
    def from_config(cls, config: Dict[str, Any], verbose: bool = True) -> "CompressionPipeline":
        """Builds a pipeline from a configuration produced by ``load_config``."""
        codec_config = config['codec']
        pipeline_config = config['pipeline']

        transfer = BufferTransferLayer(
            device=pipeline_config.get('device'),
            pin_memory=pipeline_config.get('pin_memory', True)
        )

        return cls(
            engine=create_engine(config['engine']),
            transfer=transfer,
            element_type=ElementType.from_name(codec_config['element_type']),
            mode=CompressionMode.from_name(codec_config['mode']),
            variant=AlgorithmVariant.from_name(codec_config['algorithm']),
            compressed_suffix=pipeline_config['compressed_suffix'],
            decompressed_suffix=pipeline_config['decompressed_suffix'],
            verify_block_elements=pipeline_config['verify_block_elements'],
            verbose=verbose
        )

    @property
    def device(self):
        return self.transfer.device

    def compressed_path(self, input_path: Union[str, Path]) -> Path:
        return Path(str(input_path) + self.compressed_suffix)

    def decompressed_path(self, compressed_path: Union[str, Path]) -> Path:
        return Path(str(compressed_path) + self.decompressed_suffix)

    def compress_file(self, input_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Compresses a file to ``<input_path><compressed_suffix>``.

        Returns:
            Dictionary with compression statistics: sizes, ratio
            (uncompressed / compressed), savings, bits per byte, elapsed
            time and throughput in bytes per second
        """
        with ExitStack() as stack:
            stats, _ = self._compress(input_path, stack)
        return stats

    def decompress_file(self, compressed_path: Union[str, Path], original_size: int) -> Dict[str, Any]:
        """
        Decompresses a file to ``<compressed_path><decompressed_suffix>``.

        Args:
            compressed_path: Artifact written by compress_file
            original_size: Exact uncompressed size in bytes; the compressed
                stream does not record it

        Returns:
            Dictionary with decompression statistics
        """
        with ExitStack() as stack:
            stats, _ = self._decompress(compressed_path, original_size, stack)
        return stats

    def verify_round_trip(self, input_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Compresses and decompresses a file, then compares the result with the original.

        The original file size is used as the decompressed size. The
        comparison runs at the pipeline's element granularity and stops at
        the first differing element.

        Returns:
            Dictionary with ``compression`` and ``decompression`` statistics,
            ``mismatch`` (a VerificationMismatch or None) and ``passed``
        """
        with ExitStack() as stack:
            compression, original = self._compress(input_path, stack)
            decompression, reconstructed = self._decompress(
                compression['output_path'],
                compression['original_size'],
                stack
            )
            mismatch = find_first_mismatch(
                original.numpy(),
                reconstructed.numpy(),
                self.element_type,
                self.verify_block_elements
            )

        if mismatch is not None:
            self._log(f"Verification failed: {mismatch.describe()}")

        return {
            'compression': compression,
            'decompression': decompression,
            'mismatch': mismatch,
            'passed': mismatch is None
        }

    def _compress(self, input_path: Union[str, Path], stack: ExitStack) -> Tuple[Dict[str, Any], RawBuffer]:
        """Runs compression; the returned host input buffer is owned by ``stack``."""
        input_path = Path(input_path)
        output_path = self.compressed_path(input_path)
        original_size = file_size(input_path)

        self._log(f"Compressing {original_size:,} bytes on {self.device} with {self.engine!r}...")

        host_input = stack.enter_context(self.transfer.allocate_host(original_size))
        read_binary(input_path, host_input, original_size)

        bound = self.engine.max_compressed_bound(original_size)

        with ExitStack() as scope:
            stream = ExecutionStream(self.device)
            device_input = scope.enter_context(self.transfer.allocate_device(original_size))
            device_output = scope.enter_context(self.transfer.allocate_device(bound))
            scope.callback(stream.synchronize)

            self.transfer.copy(host_input, device_input, original_size,
                               CopyDirection.HOST_TO_DEVICE, stream)

            session = scope.enter_context(CodecSession.open(
                self.engine, original_size, self.element_type, self.mode, self.variant
            ))
            session.bind_stream(stream)

            timing = TimingSample(stream)
            timing.start()
            session.compress(device_input, device_output)
            timing.stop()
            session.synchronize()

            compressed_size = session.compressed_size(device_output)
            if compressed_size > bound:
                check_status(
                    EngineStatus.UNKNOWN_ERROR, "compressed size query",
                    f"engine reported {compressed_size} compressed bytes, above its bound of {bound}"
                )

            with self.transfer.allocate_host(compressed_size) as host_output:
                self.transfer.copy(device_output, host_output, compressed_size,
                                   CopyDirection.DEVICE_TO_HOST, stream)
                stream.synchronize()
                write_binary(output_path, host_output, compressed_size)

            elapsed = timing.elapsed_seconds()

        stats = {
            'input_path': str(input_path),
            'output_path': str(output_path),
            'original_size': original_size,
            'compressed_size': compressed_size,
            'max_compressed_size': bound,
            'ratio': compression_ratio(original_size, compressed_size),
            'savings_pct': percent_savings(original_size, compressed_size),
            'bpd': bits_per_byte(original_size, compressed_size),
            'compress_time': elapsed,
            'throughput': throughput(original_size, elapsed)
        }

        self._log(
            f"  {compressed_size:,} bytes written to {output_path} "
            f"(ratio {stats['ratio']:.4f}, {format_throughput(stats['throughput'])})"
        )
        return stats, host_input

    def _decompress(
        self,
        compressed_path: Union[str, Path],
        original_size: int,
        stack: ExitStack
    ) -> Tuple[Dict[str, Any], RawBuffer]:
        """Runs decompression; the returned host output buffer is owned by ``stack``."""
        if original_size < 0:
            raise ValueError(f"Original size must be non-negative, got {original_size}")

        compressed_path = Path(compressed_path)
        output_path = self.decompressed_path(compressed_path)
        compressed_size = file_size(compressed_path)

        self._log(f"Decompressing {compressed_size:,} bytes into {original_size:,} bytes on {self.device}...")

        host_output = stack.enter_context(self.transfer.allocate_host(original_size))

        with ExitStack() as scope:
            host_input = scope.enter_context(self.transfer.allocate_host(compressed_size))
            read_binary(compressed_path, host_input, compressed_size)

            stream = ExecutionStream(self.device)
            device_input = scope.enter_context(self.transfer.allocate_device(compressed_size))
            device_output = scope.enter_context(self.transfer.allocate_device(original_size))
            scope.callback(stream.synchronize)

            self.transfer.copy(host_input, device_input, compressed_size,
                               CopyDirection.HOST_TO_DEVICE, stream)

            session = scope.enter_context(CodecSession.open(
                self.engine, original_size, self.element_type, self.mode, self.variant
            ))
            session.bind_stream(stream)

            timing = TimingSample(stream)
            timing.start()
            session.decompress(device_input, device_output)
            timing.stop()
            session.synchronize()

            self.transfer.copy(device_output, host_output, original_size,
                               CopyDirection.DEVICE_TO_HOST, stream)
            stream.synchronize()
            elapsed = timing.elapsed_seconds()

        write_binary(output_path, host_output, original_size)

        stats = {
            'input_path': str(compressed_path),
            'output_path': str(output_path),
            'compressed_size': compressed_size,
            'decompressed_size': original_size,
            'ratio': compression_ratio(original_size, compressed_size),
            'decompress_time': elapsed,
            'throughput': throughput(original_size, elapsed)
        }

        self._log(f"  {original_size:,} bytes written to {output_path} ({format_throughput(stats['throughput'])})")
        return stats, host_output

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
