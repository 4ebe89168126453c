"""
Stream-ordered timing markers.

On CUDA streams the markers are timing events recorded into the stream, so
the elapsed time covers the device work between them rather than the host
submission cost. Host streams fall back to a high-resolution wall clock.
"""

import time
from typing import Optional

import torch

from gcomp.core.streams import ExecutionStream


class TimingSample:
    """
    Start/stop pair recorded on an execution stream.

    The elapsed time is only available once the stream has been synchronized
    past the stop marker.

    Example:
        >>> sample = TimingSample(stream)
        >>> sample.start()
        >>> session.compress(device_in, device_out)
        >>> sample.stop()
        >>> stream.synchronize()
        >>> seconds = sample.elapsed_seconds()
    """

    def __init__(self, stream: ExecutionStream):
        self.stream = stream
        self._start_event = None
        self._stop_event = None
        self._start_time: Optional[float] = None
        self._stop_time: Optional[float] = None
        self._stop_ticket: Optional[int] = None

    def start(self) -> None:
        if self.stream.is_cuda:
            self._start_event = torch.cuda.Event(enable_timing=True)
            self._start_event.record(self.stream.cuda_stream)
        else:
            self._start_time = time.perf_counter()

    def stop(self) -> None:
        if self._start_event is None and self._start_time is None:
            raise RuntimeError("TimingSample.stop() called before start()")

        if self.stream.is_cuda:
            self._stop_event = torch.cuda.Event(enable_timing=True)
            self._stop_event.record(self.stream.cuda_stream)
        else:
            self._stop_time = time.perf_counter()
        self._stop_ticket = self.stream.submit()

    def elapsed_seconds(self) -> float:
        """
        Returns the time between the two markers in seconds.

        Raises:
            RuntimeError: If the sample is incomplete or the stream has not
                drained past the stop marker
        """
        if self._stop_ticket is None:
            raise RuntimeError("TimingSample has not been stopped")
        if not self.stream.is_drained(self._stop_ticket):
            raise RuntimeError("Stream must be synchronized before reading elapsed time")

        if self.stream.is_cuda:
            return self._start_event.elapsed_time(self._stop_event) / 1000.0
        return self._stop_time - self._start_time
