import pytest

from gcomp.core.timing import TimingSample
from gcomp.io.files import file_size, read_binary, write_binary


def test_file_size(random_file):
    assert file_size(random_file) == 64 * 1024


def test_file_size_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        file_size(tmp_path / "missing.bin")


def test_read_and_write_whole_file(transfer, tmp_path):
    source = tmp_path / "in.bin"
    source.write_bytes(bytes(range(256)))

    with transfer.allocate_host(256) as buffer:
        assert read_binary(source, buffer) == 256
        assert write_binary(tmp_path / "out.bin", buffer, 100) == 100

    assert (tmp_path / "out.bin").read_bytes() == bytes(range(100))


def test_short_read_raises(transfer, tmp_path):
    source = tmp_path / "short.bin"
    source.write_bytes(b"abc")

    with transfer.allocate_host(10) as buffer:
        with pytest.raises(IOError, match="Short read"):
            read_binary(source, buffer)


def test_io_requires_host_buffers(transfer, tmp_path):
    with transfer.allocate_device(4) as buffer:
        with pytest.raises(ValueError, match="host buffer"):
            write_binary(tmp_path / "x.bin", buffer)


def test_read_beyond_buffer_rejected(transfer, random_file):
    with transfer.allocate_host(4) as buffer:
        with pytest.raises(ValueError):
            read_binary(random_file, buffer, 8)


def test_elapsed_requires_synchronized_stream(stream):
    sample = TimingSample(stream)
    sample.start()
    sample.stop()

    with pytest.raises(RuntimeError, match="synchronized"):
        sample.elapsed_seconds()

    stream.synchronize()
    assert sample.elapsed_seconds() >= 0.0


def test_stop_before_start_rejected(stream):
    with pytest.raises(RuntimeError, match="before start"):
        TimingSample(stream).stop()


def test_elapsed_requires_stop(stream):
    sample = TimingSample(stream)
    sample.start()

    with pytest.raises(RuntimeError, match="not been stopped"):
        sample.elapsed_seconds()


def test_host_stream_bookkeeping(stream):
    ticket = stream.submit()

    assert not stream.is_drained(ticket)
    stream.synchronize()
    assert stream.is_drained(ticket)
    assert stream.handle == 0
    assert not stream.is_cuda
