"""
Execution streams for ordering accelerator work.

An ExecutionStream owns one dedicated CUDA stream when running on a GPU. On a
CPU device it stands in for one: work runs in submission order on the calling
thread and synchronize() only updates the drain bookkeeping.
"""

import contextlib
from typing import Optional, Union

import torch


class ExecutionStream:
    """
    Ordered queue of accelerator operations for a single pipeline invocation.

    Every submission is given a ticket. A ticket counts as drained once
    synchronize() has been called after it was issued, which is what timing
    and size queries check before reading results.

    Args:
        device: Device the stream belongs to
    """

    def __init__(self, device: Union[str, torch.device]):
        self.device = torch.device(device)
        self._stream: Optional[torch.cuda.Stream] = None
        if self.device.type == "cuda":
            self._stream = torch.cuda.Stream(device=self.device)
        self._submitted = 0
        self._drained = 0

    @property
    def is_cuda(self) -> bool:
        return self._stream is not None

    @property
    def cuda_stream(self) -> Optional[torch.cuda.Stream]:
        return self._stream

    @property
    def handle(self) -> int:
        """Raw cudaStream_t value for native engines (0 for host streams)."""
        return self._stream.cuda_stream if self._stream is not None else 0

    def context(self):
        """Makes this stream current for torch operations issued inside the block."""
        if self._stream is not None:
            return torch.cuda.stream(self._stream)
        return contextlib.nullcontext()

    def submit(self) -> int:
        """Records a submission and returns its ticket."""
        self._submitted += 1
        return self._submitted

    def synchronize(self) -> None:
        """Blocks until all work submitted so far has completed."""
        if self._stream is not None:
            self._stream.synchronize()
        self._drained = self._submitted

    def is_drained(self, ticket: int) -> bool:
        return ticket <= self._drained

    def __repr__(self) -> str:
        return f"ExecutionStream(device={self.device}, handle={self.handle:#x})"
