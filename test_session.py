import pytest

from gcomp.core.errors import EngineStatus, FatalEngineError, SessionStateError
from gcomp.core.session import CodecSession, SessionState
from gcomp.core.types import CompressionMode, ElementType


def _device_pair(transfer, engine, nbytes):
    device_in = transfer.allocate_device(nbytes)
    device_out = transfer.allocate_device(engine.max_compressed_bound(nbytes))
    device_in.data.fill_(3)
    return device_in, device_out


def test_states_advance_linearly(transfer, engine, stream):
    device_in, device_out = _device_pair(transfer, engine, 1024)

    session = CodecSession.open(engine, 1024, ElementType.UINT8)
    assert session.state is SessionState.OPENED

    session.bind_stream(stream)
    assert session.state is SessionState.STREAM_BOUND

    session.compress(device_in, device_out)
    assert session.state is SessionState.SUBMITTED

    session.synchronize()
    assert session.state is SessionState.SYNCHRONIZED

    size = session.compressed_size(device_out)
    assert 0 < size <= session.max_compressed_bound(1024)

    session.close()
    assert session.closed

    device_in.release()
    device_out.release()


def test_submission_requires_bound_stream(transfer, engine):
    device_in, device_out = _device_pair(transfer, engine, 64)

    with CodecSession.open(engine, 64) as session:
        with pytest.raises(SessionStateError, match="STREAM_BOUND"):
            session.compress(device_in, device_out)


def test_stream_can_only_be_bound_once(engine, stream):
    with CodecSession.open(engine, 64) as session:
        session.bind_stream(stream)
        with pytest.raises(SessionStateError):
            session.bind_stream(stream)


def test_size_query_before_synchronize_is_rejected(transfer, engine, stream):
    device_in, device_out = _device_pair(transfer, engine, 64)

    with CodecSession.open(engine, 64) as session:
        session.bind_stream(stream)
        session.compress(device_in, device_out)
        with pytest.raises(SessionStateError, match="SYNCHRONIZED"):
            session.compressed_size(device_out)


def test_no_second_submission(transfer, engine, stream):
    device_in, device_out = _device_pair(transfer, engine, 64)

    with CodecSession.open(engine, 64) as session:
        session.bind_stream(stream)
        session.compress(device_in, device_out)
        session.synchronize()
        with pytest.raises(SessionStateError):
            session.compress(device_in, device_out)


def test_close_synchronizes_in_flight_work(transfer, engine, stream):
    device_in, device_out = _device_pair(transfer, engine, 64)

    session = CodecSession.open(engine, 64)
    session.bind_stream(stream)
    session.compress(device_in, device_out)
    ticket = stream.submit()

    session.close()

    assert session.closed
    assert stream.is_drained(ticket)


def test_close_exactly_once(engine):
    session = CodecSession.open(engine, 16)
    session.close()

    with pytest.raises(SessionStateError, match="twice"):
        session.close()


def test_context_manager_closes_after_error(engine):
    with pytest.raises(ZeroDivisionError):
        with CodecSession.open(engine, 16) as session:
            1 / 0

    assert session.closed


def test_decompress_output_must_match_declared_size(transfer, engine, stream):
    with transfer.allocate_device(32) as device_in, transfer.allocate_device(99) as device_out:
        with CodecSession.open(engine, 100) as session:
            session.bind_stream(stream)
            with pytest.raises(ValueError, match="exactly 100 bytes"):
                session.decompress(device_in, device_out)


def test_compress_output_must_hold_bound(transfer, engine, stream):
    with transfer.allocate_device(1000) as device_in, transfer.allocate_device(10) as device_out:
        with CodecSession.open(engine, 1000) as session:
            session.bind_stream(stream)
            with pytest.raises(ValueError, match="compressed bound"):
                session.compress(device_in, device_out)


def test_input_larger_than_session_bound_rejected(transfer, engine, stream):
    device_in, device_out = _device_pair(transfer, engine, 200)

    with CodecSession.open(engine, 100) as session:
        session.bind_stream(stream)
        with pytest.raises(ValueError, match="exceeds session bound"):
            session.compress(device_in, device_out)


def test_sessions_reject_host_buffers(transfer, engine, stream):
    with transfer.allocate_host(16) as host, transfer.allocate_device(128) as device:
        with CodecSession.open(engine, 16) as session:
            session.bind_stream(stream)
            with pytest.raises(ValueError, match="device buffers"):
                session.compress(host, device)


def test_open_failure_is_fatal(engine):
    with pytest.raises(FatalEngineError) as excinfo:
        CodecSession.open(engine, 16, mode=CompressionMode.LOSSY_FP_TO_SIGNED)

    assert excinfo.value.status is EngineStatus.INVALID_PARAMETER


def test_decompressing_garbage_is_fatal(transfer, engine, stream):
    with transfer.allocate_device(16) as device_in, transfer.allocate_device(16) as device_out:
        device_in.data.zero_()
        with CodecSession.open(engine, 16) as session:
            session.bind_stream(stream)
            with pytest.raises(FatalEngineError) as excinfo:
                session.decompress(device_in, device_out)

    assert excinfo.value.status is EngineStatus.INVALID_COMPRESSED_DATA
