"""
Metrics for compression runs.

Compression ratio, storage savings, bits per byte and throughput as reported
by the pipeline and the benchmark script.
"""

import math


def compression_ratio(
    original_size: int,
    compressed_size: int
) -> float:
    """
    Computes the compression ratio as uncompressed size over compressed size.

    Args:
        original_size: Size of uncompressed data in bytes
        compressed_size: Size of compressed data in bytes

    Returns:
        Ratio (e.g., 4.0 means the data shrank to a quarter of its size)

    Example:
        >>> compression_ratio(original_size=10000, compressed_size=2500)
        4.0
    """
    if compressed_size == 0:
        return math.inf if original_size else 0.0

    return original_size / compressed_size


def percent_savings(
    original_size: int,
    compressed_size: int
) -> float:
    """
    Computes storage savings as percentage.

    Args:
        original_size: Size of uncompressed data in bytes
        compressed_size: Size of compressed data in bytes

    Returns:
        Percentage savings (e.g., 75.0 means 75% reduction in size)
    """
    if original_size == 0:
        return 0.0

    return (original_size - compressed_size) / original_size * 100


def bits_per_byte(original_size: int, compressed_size: int) -> float:
    """Compressed bits spent per uncompressed byte."""
    if original_size == 0:
        return 0.0
    return (compressed_size * 8) / original_size


def throughput(nbytes: int, seconds: float) -> float:
    """Bytes per second; 0.0 when no time was measured."""
    if seconds <= 0:
        return 0.0
    return nbytes / seconds


def format_throughput(bytes_per_second: float) -> str:
    """Human-readable throughput, e.g. ``'512.00 MB/s'``."""
    for unit, scale in (("GB/s", 1024 ** 3), ("MB/s", 1024 ** 2), ("KB/s", 1024)):
        if bytes_per_second >= scale:
            return f"{bytes_per_second / scale:.2f} {unit}"
    return f"{bytes_per_second:.2f} B/s"
