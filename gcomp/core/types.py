"""Element types, compression modes and algorithm variants understood by the engines."""

from enum import Enum, IntEnum

import numpy as np


class ElementType(Enum):
    """
    Element granularity of the data being compressed.

    Each member carries both the numpy dtype used when comparing buffers and
    the engine data-type flag, so the two can never disagree.
    """

    UINT8 = ("u1", 0)
    INT8 = ("i1", 1)
    UINT16 = ("<u2", 2)
    INT16 = ("<i2", 3)
    UINT32 = ("<u4", 4)
    INT32 = ("<i4", 5)
    UINT64 = ("<u8", 6)
    INT64 = ("<i8", 7)
    FLOAT16 = ("<f2", 8)
    FLOAT32 = ("<f4", 9)
    FLOAT64 = ("<f8", 10)

    def __init__(self, dtype: str, engine_flag: int):
        self.dtype = np.dtype(dtype)
        self.engine_flag = engine_flag

    @property
    def itemsize(self) -> int:
        return self.dtype.itemsize

    @property
    def is_floating(self) -> bool:
        return self.dtype.kind == "f"

    @property
    def bits_dtype(self) -> np.dtype:
        """Unsigned integer dtype of the same width, used for bitwise comparison."""
        return np.dtype(f"<u{self.itemsize}") if self.itemsize > 1 else np.dtype("u1")

    @classmethod
    def from_name(cls, name: str) -> "ElementType":
        """Looks up a member by name, e.g. ``"float32"`` or ``"UINT8"``."""
        try:
            return cls[name.upper()]
        except KeyError:
            valid = ", ".join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown element type '{name}' (expected one of: {valid})")


class CompressionMode(IntEnum):
    LOSSLESS = 0
    LOSSY_FP_TO_SIGNED = 1
    LOSSY_FP_TO_UNSIGNED = 2

    @classmethod
    def from_name(cls, name: str) -> "CompressionMode":
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown compression mode '{name}'")


class AlgorithmVariant(IntEnum):
    DEFAULT = 0
    SPARSE = 1

    @classmethod
    def from_name(cls, name: str) -> "AlgorithmVariant":
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown algorithm variant '{name}'")
