import gc

import numpy as np
import pytest
import torch

from gcomp.core.buffers import BufferTransferLayer, CopyDirection, Residency
from gcomp.core.errors import EngineStatus, FatalEngineError


def test_allocations_have_declared_length_and_residency(transfer):
    host = transfer.allocate_host(128)
    device = transfer.allocate_device(256)

    assert host.nbytes == 128 and host.data.numel() == 128
    assert device.nbytes == 256 and device.data.numel() == 256
    assert host.residency is Residency.HOST
    assert device.residency is Residency.DEVICE
    assert host.data.dtype == torch.uint8

    host.release()
    device.release()
    assert transfer.outstanding == 0


def test_outstanding_tracks_live_allocations(transfer):
    buffers = [transfer.allocate_host(16) for _ in range(3)]
    assert transfer.outstanding == 3

    for buffer in buffers:
        transfer.release(buffer)
    assert transfer.outstanding == 0


def test_leaked_buffers_stay_counted_after_collection(transfer):
    for _ in range(50):
        transfer.allocate_host(8)
        gc.collect()

    assert transfer.outstanding == 50


def test_context_manager_releases_on_exception(transfer):
    with pytest.raises(KeyError):
        with transfer.allocate_device(64) as buffer:
            raise KeyError("boom")

    assert buffer.released
    assert transfer.outstanding == 0


def test_double_release_is_an_error(transfer):
    buffer = transfer.allocate_host(8)
    buffer.release()

    with pytest.raises(RuntimeError, match="released twice"):
        buffer.release()


def test_use_after_release_is_an_error(transfer):
    buffer = transfer.allocate_host(8)
    buffer.release()

    with pytest.raises(RuntimeError, match="released"):
        _ = buffer.data


def test_release_rejects_foreign_buffer(transfer):
    other = BufferTransferLayer(device='cpu')
    buffer = other.allocate_host(8)

    with pytest.raises(RuntimeError, match="not allocated"):
        transfer.release(buffer)
    buffer.release()


def test_negative_allocation_rejected(transfer):
    with pytest.raises(ValueError):
        transfer.allocate_device(-1)


def test_host_to_device_and_back(transfer, stream):
    payload = np.arange(100, dtype=np.uint8)

    with transfer.allocate_host(100) as host, \
            transfer.allocate_device(100) as device, \
            transfer.allocate_host(100) as back:
        host.numpy()[:] = payload
        transfer.copy(host, device, 100, CopyDirection.HOST_TO_DEVICE, stream)
        transfer.copy(device, back, 100, CopyDirection.DEVICE_TO_HOST, stream)
        stream.synchronize()

        np.testing.assert_array_equal(back.numpy(), payload)


def test_partial_copy_only_touches_prefix(transfer, stream):
    with transfer.allocate_host(10) as host, transfer.allocate_host(10) as dst:
        host.numpy()[:] = 5
        dst.numpy()[:] = 0
        transfer.copy(host, dst, 4, CopyDirection.HOST_TO_HOST, stream)
        stream.synchronize()

        assert dst.numpy().tolist() == [5, 5, 5, 5, 0, 0, 0, 0, 0, 0]


def test_copy_direction_must_match_residency(transfer):
    with transfer.allocate_host(8) as host, transfer.allocate_device(8) as device:
        with pytest.raises(ValueError, match="HOST_TO_DEVICE"):
            transfer.copy(device, host, 8, CopyDirection.HOST_TO_DEVICE)


def test_copy_larger_than_buffers_rejected(transfer):
    with transfer.allocate_host(8) as host, transfer.allocate_device(4) as device:
        with pytest.raises(ValueError, match="does not fit"):
            transfer.copy(host, device, 8, CopyDirection.HOST_TO_DEVICE)


def test_zero_length_copy_is_a_no_op(transfer, stream):
    with transfer.allocate_host(0) as host, transfer.allocate_device(0) as device:
        transfer.copy(host, device, 0, CopyDirection.HOST_TO_DEVICE, stream)


def test_numpy_view_requires_host_buffer(transfer):
    with transfer.allocate_device(8) as device:
        with pytest.raises(RuntimeError, match="host"):
            device.numpy()


def test_cuda_request_without_cuda_falls_back(monkeypatch):
    monkeypatch.setattr(torch.cuda, "is_available", lambda: False)

    with pytest.warns(UserWarning, match="CUDA"):
        layer = BufferTransferLayer(device='cuda')

    assert layer.device.type == 'cpu'
    assert layer.pin_memory is False


def test_allocation_failure_is_fatal_with_location(transfer, monkeypatch):
    def out_of_memory(*args, **kwargs):
        raise RuntimeError("CUDA error: out of memory")

    monkeypatch.setattr(torch, "empty", out_of_memory)

    with pytest.raises(FatalEngineError) as excinfo:
        transfer.allocate_device(16)

    error = excinfo.value
    assert error.status is EngineStatus.CUDA_API_ERROR
    assert error.filename.endswith("buffers.py")
    assert error.lineno is not None
    assert "out of memory" in str(error)
    assert transfer.outstanding == 0
