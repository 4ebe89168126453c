import pytest
import yaml

from gcomp.config import DEFAULT_CONFIG, load_config, merge_config


def test_defaults():
    config = load_config()

    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG
    assert config['engine']['name'] == 'zstd'
    assert config['codec']['mode'] == 'lossless'


def test_yaml_file_overlays_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'engine': {'zstd_level': 9},
        'pipeline': {'compressed_suffix': '.zst'},
    }))

    config = load_config(path)

    assert config['engine']['zstd_level'] == 9
    assert config['engine']['name'] == 'zstd'
    assert config['pipeline']['compressed_suffix'] == '.zst'
    assert config['pipeline']['decompressed_suffix'] == '.decompressed'


def test_overrides_apply_last_and_skip_none(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({'codec': {'element_type': 'int8'}}))

    config = load_config(path, {'codec': {'element_type': None}, 'engine': {'name': 'bitcomp'}})

    assert config['codec']['element_type'] == 'int8'
    assert config['engine']['name'] == 'bitcomp'


def test_shipped_default_yaml_matches_defaults():
    from pathlib import Path

    config = load_config(Path(__file__).parent / "configs" / "default.yaml")

    assert config == DEFAULT_CONFIG


def test_merge_does_not_mutate_base():
    base = {'a': {'b': 1}}
    merged = merge_config(base, {'a': {'b': 2}})

    assert base == {'a': {'b': 1}}
    assert merged == {'a': {'b': 2}}


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_non_mapping_file_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")

    with pytest.raises(ValueError, match="mapping"):
        load_config(path)
