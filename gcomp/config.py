"""
Configuration loading.

Settings come from ``DEFAULT_CONFIG``, optionally overlaid with a YAML file
and then with explicit overrides (typically from the command line).
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


DEFAULT_CONFIG: Dict[str, Any] = {
    'engine': {
        'name': 'zstd',
        'zstd_level': 3,
        'bitcomp_library': 'libnvcomp_bitcomp.so',
    },
    'codec': {
        'element_type': 'uint8',
        'mode': 'lossless',
        'algorithm': 'default',
    },
    'pipeline': {
        'device': None,
        'pin_memory': True,
        'compressed_suffix': '.compressed',
        'decompressed_suffix': '.decompressed',
        'verify_block_elements': 1 << 20,
    },
}


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merges ``overrides`` into a copy of ``base``. ``None`` values are skipped."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Builds the effective configuration.

    Args:
        path: Optional YAML file whose sections overlay the defaults
        overrides: Optional nested mapping applied last

    Returns:
        Configuration dictionary with ``engine``, ``codec`` and ``pipeline`` sections
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        config = merge_config(config, loaded)

    if overrides:
        config = merge_config(config, overrides)

    return config
