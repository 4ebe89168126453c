import numpy as np
import pytest

from gcomp.core.buffers import BufferTransferLayer
from gcomp.core.engines import ZstdEngine
from gcomp.core.streams import ExecutionStream
from gcomp.pipeline import CompressionPipeline


@pytest.fixture
def transfer():
    return BufferTransferLayer(device='cpu')


@pytest.fixture
def engine():
    return ZstdEngine(level=3)


@pytest.fixture
def stream():
    return ExecutionStream('cpu')


@pytest.fixture
def pipeline(engine, transfer):
    return CompressionPipeline(engine, transfer, verbose=False)


@pytest.fixture
def random_file(tmp_path):
    path = tmp_path / "random.bin"
    rng = np.random.default_rng(1234)
    path.write_bytes(rng.integers(0, 256, size=64 * 1024, dtype=np.uint8).tobytes())
    return path


@pytest.fixture
def constant_file(tmp_path):
    path = tmp_path / "constant.bin"
    path.write_bytes(b"\x07" * (256 * 1024))
    return path


@pytest.fixture
def empty_file(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    return path
