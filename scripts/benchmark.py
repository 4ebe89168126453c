"""
Benchmark the accelerator pipeline against host baselines.

Round-trips each input through the configured engine (verifying the result)
and compares compression ratio and throughput with gzip and zstd run on the
host.
"""

import argparse
import gzip
import time
from pathlib import Path

from tqdm import tqdm

try:
    import zstandard as zstd
    ZSTD_AVAILABLE = True
except ImportError:
    ZSTD_AVAILABLE = False

from gcomp.config import load_config
from gcomp.pipeline import CompressionPipeline
from gcomp.utils.metrics import compression_ratio, format_throughput, throughput


def run_baselines(data: bytes) -> dict:
    """Compresses ``data`` with host gzip and zstd and returns ratio/throughput per method."""
    results = {}

    start = time.perf_counter()
    compressed = gzip.compress(data, compresslevel=6)
    elapsed = time.perf_counter() - start
    results['gzip (level 6)'] = (compression_ratio(len(data), len(compressed)), throughput(len(data), elapsed))

    if ZSTD_AVAILABLE:
        cctx = zstd.ZstdCompressor(level=3)
        start = time.perf_counter()
        compressed = cctx.compress(data)
        elapsed = time.perf_counter() - start
        results['zstd host (level 3)'] = (compression_ratio(len(data), len(compressed)), throughput(len(data), elapsed))

    return results


def benchmark_file(pipeline: CompressionPipeline, path: Path) -> dict:
    report = pipeline.verify_round_trip(path)
    compression = report['compression']

    results = {
        f"pipeline ({pipeline.engine.name})": (compression['ratio'], compression['throughput'])
    }
    results.update(run_baselines(path.read_bytes()))

    return {
        'passed': report['passed'],
        'mismatch': report['mismatch'],
        'decompress_throughput': report['decompression']['throughput'],
        'results': results
    }


def main():
    parser = argparse.ArgumentParser(description="Benchmark the compression pipeline")
    parser.add_argument('inputs', nargs='+', help='Input files to benchmark')
    parser.add_argument('--config', type=str, default=None, help='Path to YAML configuration file')
    parser.add_argument('--engine', choices=['zstd', 'bitcomp'], default=None)
    parser.add_argument('--element-type', type=str, default=None)
    parser.add_argument('--device', type=str, default=None)

    args = parser.parse_args()

    config = load_config(args.config, {
        'engine': {'name': args.engine},
        'codec': {'element_type': args.element_type},
        'pipeline': {'device': args.device},
    })
    pipeline = CompressionPipeline.from_config(config, verbose=False)

    print("=" * 70)
    print("Compression Pipeline Benchmark")
    print("=" * 70)
    print(f"Engine: {pipeline.engine!r}")
    print(f"Device: {pipeline.device}")
    print(f"Element type: {pipeline.element_type.name.lower()}")

    summaries = {}
    for name in tqdm(args.inputs, desc="Benchmarking"):
        summaries[name] = benchmark_file(pipeline, Path(name))

    for name, summary in summaries.items():
        print("\n" + "-" * 70)
        print(f"{name}: {'verified' if summary['passed'] else 'MISMATCH ' + summary['mismatch'].describe()}")
        print("-" * 70)
        print(f"{'Method':<30} {'Ratio':<12} {'Throughput':<16}")
        for method, (ratio, rate) in summary['results'].items():
            print(f"{method:<30} {ratio:<12.4f} {format_throughput(rate):<16}")
        print(f"{'pipeline decompress':<30} {'':<12} {format_throughput(summary['decompress_throughput']):<16}")

    print("\n" + "=" * 70)


if __name__ == "__main__":
    main()
