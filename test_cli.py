import pytest

from gcomp import cli
from gcomp.core.types import ElementType
from gcomp.core.verify import VerificationMismatch


def test_compress_command(random_file, capsys):
    assert cli.main(["-c", str(random_file), "--device", "cpu"]) == cli.EXIT_OK

    assert (random_file.parent / (random_file.name + ".compressed")).exists()
    out = capsys.readouterr().out
    assert "Compression Complete" in out
    assert "Compression ratio" in out


def test_decompress_command(random_file, capsys):
    cli.main(["-c", str(random_file), "--device", "cpu", "--quiet"])
    artifact = str(random_file) + ".compressed"
    size = str(random_file.stat().st_size)

    assert cli.main(["-d", artifact, size, "--device", "cpu"]) == cli.EXIT_OK

    restored = random_file.parent / (random_file.name + ".compressed.decompressed")
    assert restored.read_bytes() == random_file.read_bytes()
    assert "Decompression Complete" in capsys.readouterr().out


def test_roundtrip_command(constant_file, capsys):
    assert cli.main(["-r", str(constant_file), "--device", "cpu", "--element-type", "uint32"]) == cli.EXIT_OK
    assert "Verification passed" in capsys.readouterr().out


def test_roundtrip_mismatch_exit_code(constant_file, monkeypatch, capsys):
    def fake_verify(self, path):
        stats = {
            'original_size': 4, 'compressed_size': 4, 'ratio': 1.0, 'savings_pct': 0.0,
            'compress_time': 0.0, 'throughput': 0.0, 'output_path': 'x'
        }
        return {
            'compression': stats,
            'decompression': {'compressed_size': 4, 'decompressed_size': 4, 'decompress_time': 0.0,
                              'throughput': 0.0, 'output_path': 'y'},
            'mismatch': VerificationMismatch(2, 3, 9, ElementType.UINT8),
            'passed': False
        }

    monkeypatch.setattr(cli.CompressionPipeline, "verify_round_trip", fake_verify)

    assert cli.main(["-r", str(constant_file), "--device", "cpu"]) == cli.EXIT_MISMATCH
    assert "index 2" in capsys.readouterr().out


def test_wrong_original_size_is_fatal(random_file, capsys):
    cli.main(["-c", str(random_file), "--device", "cpu", "--quiet"])
    artifact = str(random_file) + ".compressed"

    assert cli.main(["-d", artifact, "10", "--device", "cpu"]) == cli.EXIT_FAILURE
    assert "Fatal engine error" in capsys.readouterr().out


def test_missing_file_is_failure(tmp_path, capsys):
    assert cli.main(["-c", str(tmp_path / "missing.bin"), "--device", "cpu"]) == cli.EXIT_FAILURE
    assert "I/O error" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [
    [],
    ["-c"],
    ["-d", "only-one-arg"],
    ["-d", "file", "not-a-number"],
    ["-d", "file", "-5"],
    ["-c", "a", "-r", "b"],
    ["-x", "file"],
    ["-c", "file", "--element-type", "complex64"],
    ["-c", ""],
    ["-r", ""],
    ["-d", "", "16"],
])
def test_usage_errors_exit_with_usage_code(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == cli.EXIT_USAGE


def test_missing_config_file_is_usage_error(random_file, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-c", str(random_file), "--config", str(tmp_path / "nope.yaml")])

    assert excinfo.value.code == cli.EXIT_USAGE
