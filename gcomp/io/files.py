"""
Whole-file binary I/O against host buffers.

Files are read into, and written from, host RawBuffers in a single call; no
partial or streamed access is offered.
"""

from pathlib import Path
from typing import Optional, Union

from gcomp.core.buffers import RawBuffer, Residency


def file_size(path: Union[str, Path]) -> int:
    """Returns the size of ``path`` in bytes."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Binary file not found: {path}")
    return path.stat().st_size


def read_binary(path: Union[str, Path], buffer: RawBuffer, nbytes: Optional[int] = None) -> int:
    """
    Reads the first ``nbytes`` of a file into a host buffer.

    Args:
        path: File to read
        buffer: Destination host buffer
        nbytes: Number of bytes to read (default: the buffer length)

    Returns:
        Number of bytes read

    Raises:
        IOError: If the file holds fewer than ``nbytes`` bytes
    """
    _require_host(buffer)
    if nbytes is None:
        nbytes = buffer.nbytes
    if nbytes > buffer.nbytes:
        raise ValueError(f"Cannot read {nbytes} bytes into a buffer of {buffer.nbytes}")

    with open(path, "rb") as f:
        read = f.readinto(memoryview(buffer.numpy()[:nbytes]))

    if read != nbytes:
        raise IOError(f"Short read from {path}: expected {nbytes} bytes, got {read}")
    return read


def write_binary(path: Union[str, Path], buffer: RawBuffer, nbytes: Optional[int] = None) -> int:
    """Writes the first ``nbytes`` of a host buffer to ``path``, replacing it."""
    _require_host(buffer)
    if nbytes is None:
        nbytes = buffer.nbytes
    if nbytes > buffer.nbytes:
        raise ValueError(f"Cannot write {nbytes} bytes from a buffer of {buffer.nbytes}")

    with open(path, "wb") as f:
        f.write(memoryview(buffer.numpy()[:nbytes]))
    return nbytes


def _require_host(buffer: RawBuffer) -> None:
    if buffer.residency is not Residency.HOST:
        raise ValueError("File I/O requires a host buffer")
