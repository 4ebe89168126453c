"""
Element-wise comparison of an original buffer against its reconstruction.

The scan is fail-fast: it walks the buffers block by block, stops at the
first block containing a difference and reports only the first differing
element. Floating-point elements are compared by bit pattern, because a
lossless round trip must reproduce the exact bytes (NaN payloads included).
"""

from typing import Any, NamedTuple, Optional

import numpy as np

from gcomp.core.types import ElementType


class VerificationMismatch(NamedTuple):
    """First difference found between the original and reconstructed data."""

    index: int
    expected: Any
    actual: Any
    element_type: ElementType = ElementType.UINT8

    def describe(self) -> str:
        return (
            f"mismatch at {self.element_type.name.lower()} index {self.index}: "
            f"expected {self.expected}, got {self.actual}"
        )


def element_view(data: np.ndarray, element_type: ElementType) -> np.ndarray:
    """Views the whole-element prefix of a uint8 array as ``element_type``."""
    whole = (data.size // element_type.itemsize) * element_type.itemsize
    return data[:whole].view(element_type.dtype)


def find_first_mismatch(
    original: np.ndarray,
    reconstructed: np.ndarray,
    element_type: ElementType = ElementType.UINT8,
    block_elements: int = 1 << 20
) -> Optional[VerificationMismatch]:
    """
    Returns the first differing element of two byte arrays, or None.

    Both arrays are raw uint8 bytes and are compared as ``element_type``.
    Blocks past the first differing one are never read. Elements are compared
    a whole block at a time, so elements after the first difference inside
    its block are still compared; with ``block_elements=1`` nothing past the
    first difference is compared at all. The reported mismatch is the same
    either way.

    Trailing bytes that do not fill a whole element are compared as uint8 and
    reported at their byte offset. When one buffer is a prefix of the other,
    the mismatch is reported at the first missing byte offset with ``None``
    for the absent value.

    Args:
        original: Original bytes
        reconstructed: Bytes produced by the round trip
        element_type: Granularity of the comparison
        block_elements: Number of elements compared per step

    Example:
        >>> a = np.array([1, 2, 3, 4], dtype=np.uint8)
        >>> b = np.array([1, 2, 9, 4], dtype=np.uint8)
        >>> mismatch = find_first_mismatch(a, b)
        >>> mismatch.index, mismatch.expected, mismatch.actual
        (2, 3, 9)
    """
    if block_elements <= 0:
        raise ValueError("block_elements must be positive")

    original = np.ascontiguousarray(original, dtype=np.uint8).reshape(-1)
    reconstructed = np.ascontiguousarray(reconstructed, dtype=np.uint8).reshape(-1)

    common = min(original.size, reconstructed.size)
    expected = element_view(original[:common], element_type)
    actual = element_view(reconstructed[:common], element_type)

    mismatch = _scan(expected, actual, element_type, block_elements)
    if mismatch is not None:
        return mismatch

    tail_start = expected.size * element_type.itemsize
    if tail_start < common:
        mismatch = _scan(
            original[tail_start:common],
            reconstructed[tail_start:common],
            ElementType.UINT8,
            block_elements,
            offset=tail_start
        )
        if mismatch is not None:
            return mismatch

    if original.size != reconstructed.size:
        if original.size > reconstructed.size:
            return VerificationMismatch(common, original[common].item(), None)
        return VerificationMismatch(common, None, reconstructed[common].item())

    return None


def _scan(
    expected: np.ndarray,
    actual: np.ndarray,
    element_type: ElementType,
    block_elements: int,
    offset: int = 0
) -> Optional[VerificationMismatch]:
    expected_bits = expected.view(element_type.bits_dtype) if element_type.is_floating else expected
    actual_bits = actual.view(element_type.bits_dtype) if element_type.is_floating else actual

    for start in range(0, expected.size, block_elements):
        stop = start + block_elements
        differing = np.flatnonzero(expected_bits[start:stop] != actual_bits[start:stop])
        if differing.size:
            index = start + int(differing[0])
            return VerificationMismatch(
                offset + index,
                expected[index].item(),
                actual[index].item(),
                element_type
            )
    return None
