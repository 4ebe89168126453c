"""
Host and device byte buffers and the transfers between them.

Every buffer handed out by BufferTransferLayer is owned by exactly one caller
and must be released exactly once. Buffers are context managers, so the
pipeline acquires them through ``contextlib.ExitStack`` and the releases run
on every exit path, including a FatalEngineError unwinding the stack.
"""

import contextlib
import warnings
from enum import Enum
from typing import Optional, Union

import numpy as np
import torch

from gcomp.core.errors import EngineStatus, fatal_error
from gcomp.core.streams import ExecutionStream


class Residency(Enum):
    HOST = "host"
    DEVICE = "device"


class CopyDirection(Enum):
    HOST_TO_DEVICE = (Residency.HOST, Residency.DEVICE)
    DEVICE_TO_HOST = (Residency.DEVICE, Residency.HOST)
    DEVICE_TO_DEVICE = (Residency.DEVICE, Residency.DEVICE)
    HOST_TO_HOST = (Residency.HOST, Residency.HOST)

    @property
    def source(self) -> Residency:
        return self.value[0]

    @property
    def destination(self) -> Residency:
        return self.value[1]


class RawBuffer:
    """
    Owned, contiguous run of bytes with a residency tag.

    The backing storage is a 1-D ``torch.uint8`` tensor whose length is the
    declared buffer length. Buffers are never copied implicitly; use
    BufferTransferLayer.copy to move bytes between them.

    Args:
        tensor: Backing uint8 tensor
        residency: Whether the storage lives in host or device memory
        owner: Transfer layer that allocated the buffer
    """

    def __init__(self, tensor: torch.Tensor, residency: Residency, owner: "BufferTransferLayer"):
        if tensor.dtype != torch.uint8 or tensor.dim() != 1:
            raise ValueError("RawBuffer storage must be a 1-D uint8 tensor")

        self._tensor = tensor
        self._nbytes = tensor.numel()
        self.residency = residency
        self._owner = owner

    @property
    def nbytes(self) -> int:
        return self._nbytes

    @property
    def released(self) -> bool:
        return self._tensor is None

    @property
    def data(self) -> torch.Tensor:
        """Backing tensor. Raises once the buffer has been released."""
        if self._tensor is None:
            raise RuntimeError(f"Use of released {self.residency.value} buffer")
        return self._tensor

    def data_ptr(self) -> int:
        return self.data.data_ptr()

    def numpy(self) -> np.ndarray:
        """Zero-copy numpy view of a host buffer."""
        if self.residency is not Residency.HOST:
            raise RuntimeError("Only host buffers can be viewed as numpy arrays")
        return self.data.numpy()

    def release(self) -> None:
        self._owner.release(self)

    def _drop(self) -> None:
        self._tensor = None

    def __enter__(self) -> "RawBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if not self.released:
            self.release()
        return False

    def __len__(self) -> int:
        return self._nbytes

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"RawBuffer({self.residency.value}, nbytes={self._nbytes}, {state})"


class BufferTransferLayer:
    """
    Allocates host/device byte buffers and copies between them.

    Args:
        device: Accelerator device (default: CUDA when available, else CPU)
        pin_memory: Allocate page-locked host buffers when running on CUDA,
            so host/device copies can overlap with other stream work

    Example:
        >>> transfer = BufferTransferLayer()
        >>> with transfer.allocate_host(4096) as host, transfer.allocate_device(4096) as dev:
        ...     transfer.copy(host, dev, 4096, CopyDirection.HOST_TO_DEVICE, stream)
    """

    def __init__(self, device: Optional[Union[str, torch.device]] = None, pin_memory: bool = True):
        if device is None:
            device = 'cuda' if torch.cuda.is_available() else 'cpu'
        device = torch.device(device)

        if device.type == 'cuda' and not torch.cuda.is_available():
            warnings.warn("CUDA device requested but CUDA is not available; using CPU")
            device = torch.device('cpu')

        self.device = device
        self.pin_memory = pin_memory and device.type == 'cuda'
        self._live = set()

    @property
    def outstanding(self) -> int:
        """Number of buffers allocated by this layer and not yet released."""
        return len(self._live)

    def allocate_device(self, nbytes: int) -> RawBuffer:
        return self._allocate(nbytes, Residency.DEVICE)

    def allocate_host(self, nbytes: int) -> RawBuffer:
        return self._allocate(nbytes, Residency.HOST)

    def _allocate(self, nbytes: int, residency: Residency) -> RawBuffer:
        if nbytes < 0:
            raise ValueError(f"Cannot allocate a negative number of bytes ({nbytes})")

        try:
            if residency is Residency.DEVICE:
                tensor = torch.empty(nbytes, dtype=torch.uint8, device=self.device)
            else:
                tensor = torch.empty(nbytes, dtype=torch.uint8, pin_memory=self.pin_memory and nbytes > 0)
        except RuntimeError as e:
            raise fatal_error(
                EngineStatus.CUDA_API_ERROR,
                f"allocate {residency.value} buffer of {nbytes} bytes",
                detail=str(e)
            ) from e

        buffer = RawBuffer(tensor, residency, self)
        self._live.add(buffer)
        return buffer

    def copy(
        self,
        src: RawBuffer,
        dst: RawBuffer,
        nbytes: int,
        direction: CopyDirection,
        stream: Optional[ExecutionStream] = None
    ) -> None:
        """
        Copies the first ``nbytes`` of ``src`` into ``dst``.

        The copy is issued on ``stream`` and is non-blocking when the host
        side is page-locked; callers synchronize the stream before reading
        the destination.
        """
        if src.residency is not direction.source or dst.residency is not direction.destination:
            raise ValueError(
                f"{direction.name} copy requested from {src.residency.value} "
                f"to {dst.residency.value} buffer"
            )
        if nbytes < 0 or nbytes > src.nbytes or nbytes > dst.nbytes:
            raise ValueError(
                f"Copy of {nbytes} bytes does not fit source ({src.nbytes}) "
                f"and destination ({dst.nbytes})"
            )
        if nbytes == 0:
            return

        context = stream.context() if stream is not None else contextlib.nullcontext()
        try:
            with context:
                dst.data[:nbytes].copy_(src.data[:nbytes], non_blocking=True)
        except RuntimeError as e:
            raise fatal_error(
                EngineStatus.CUDA_API_ERROR,
                f"{direction.name} copy of {nbytes} bytes",
                detail=str(e)
            ) from e

        if stream is not None:
            stream.submit()

    def release(self, buffer: RawBuffer) -> None:
        if buffer.released:
            raise RuntimeError(f"{buffer.residency.value} buffer released twice")
        if buffer not in self._live:
            raise RuntimeError("Buffer was not allocated by this transfer layer")

        self._live.discard(buffer)
        buffer._drop()
