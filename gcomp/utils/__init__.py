"""Utilities for compression metrics."""

from .metrics import (
    compression_ratio,
    percent_savings,
    bits_per_byte,
    throughput,
    format_throughput
)

__all__ = [
    "compression_ratio",
    "percent_savings",
    "bits_per_byte",
    "throughput",
    "format_throughput"
]
