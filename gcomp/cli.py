"""
Command-line entry point for the compression pipeline.

Usage:
    gcomp -c input.bin
    gcomp -d input.bin.compressed 1048576
    gcomp -r input.bin
"""

import argparse
import sys
import traceback

from gcomp.config import load_config
from gcomp.core.errors import FatalEngineError
from gcomp.core.types import ElementType
from gcomp.pipeline import CompressionPipeline
from gcomp.utils.metrics import format_throughput


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_MISMATCH = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcomp",
        description="Compress, decompress and round-trip verify binary files on an accelerator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compress (writes data.bin.compressed)
  gcomp -c data.bin

  # Decompress, supplying the original size in bytes
  gcomp -d data.bin.compressed 1048576

  # Compress, decompress and compare with the original
  gcomp -r data.bin --element-type float32

  # Use the nvCOMP Bitcomp engine on the GPU
  gcomp -r data.bin --engine bitcomp --device cuda
"""
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "-c", "--compress",
        metavar="FILE",
        help="Compress FILE"
    )
    mode.add_argument(
        "-d", "--decompress",
        nargs=2,
        metavar=("COMPRESSED", "ORIGINAL_SIZE"),
        help="Decompress COMPRESSED into ORIGINAL_SIZE bytes"
    )
    mode.add_argument(
        "-r", "--roundtrip",
        metavar="FILE",
        help="Compress and decompress FILE, then verify the result"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "--engine",
        choices=["zstd", "bitcomp"],
        default=None,
        help="Codec engine (default: from config, zstd)"
    )
    parser.add_argument(
        "--element-type",
        choices=[member.name.lower() for member in ElementType],
        default=None,
        help="Element type of the data (default: uint8)"
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Device to use (cuda/cpu, default: auto-detect)"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print results"
    )
    return parser


def _parse_size(parser: argparse.ArgumentParser, value: str) -> int:
    try:
        size = int(value)
    except ValueError:
        parser.error(f"ORIGINAL_SIZE must be an integer, got '{value}'")
    if size < 0:
        parser.error(f"ORIGINAL_SIZE must be non-negative, got {size}")
    return size


def _print_banner(title: str) -> None:
    print("=" * 70)
    print(title)
    print("=" * 70)


def _print_compression(stats: dict) -> None:
    print(f"Original size:     {stats['original_size']:,} bytes")
    print(f"Compressed size:   {stats['compressed_size']:,} bytes")
    print(f"Compression ratio: {stats['ratio']:.4f}")
    print(f"Space savings:     {stats['savings_pct']:.2f}%")
    print(f"Time:              {stats['compress_time'] * 1000:.3f} ms")
    print(f"Throughput:        {stats['throughput']:,.0f} bytes/s ({format_throughput(stats['throughput'])})")
    print(f"Output:            {stats['output_path']}")


def _print_decompression(stats: dict) -> None:
    print(f"Compressed size:   {stats['compressed_size']:,} bytes")
    print(f"Decompressed size: {stats['decompressed_size']:,} bytes")
    print(f"Time:              {stats['decompress_time'] * 1000:.3f} ms")
    print(f"Throughput:        {stats['throughput']:,.0f} bytes/s ({format_throughput(stats['throughput'])})")
    print(f"Output:            {stats['output_path']}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    input_path = args.compress if args.compress is not None else args.roundtrip
    if args.decompress is not None:
        input_path = args.decompress[0]
    if not input_path:
        parser.error("input file path must not be empty")

    original_size = None
    if args.decompress is not None:
        original_size = _parse_size(parser, args.decompress[1])

    overrides = {
        'engine': {'name': args.engine},
        'codec': {'element_type': args.element_type},
        'pipeline': {'device': args.device},
    }

    try:
        config = load_config(args.config, overrides)
        pipeline = CompressionPipeline.from_config(config, verbose=not args.quiet)
    except (FileNotFoundError, ValueError, KeyError) as e:
        parser.error(str(e))

    try:
        if args.compress is not None:
            stats = pipeline.compress_file(args.compress)
            print()
            _print_banner("Compression Complete")
            _print_compression(stats)

        elif args.decompress is not None:
            stats = pipeline.decompress_file(args.decompress[0], original_size)
            print()
            _print_banner("Decompression Complete")
            _print_decompression(stats)

        else:
            report = pipeline.verify_round_trip(args.roundtrip)
            print()
            _print_banner("Round Trip Complete")
            _print_compression(report['compression'])
            print()
            _print_decompression(report['decompression'])
            print()
            if not report['passed']:
                print(f"Verification FAILED: {report['mismatch'].describe()}")
                return EXIT_MISMATCH
            print("Verification passed")

    except FatalEngineError as e:
        print(f"\nFatal engine error: {e}")
        return EXIT_FAILURE
    except OSError as e:
        print(f"\nI/O error: {e}")
        return EXIT_FAILURE
    except Exception as e:
        print(f"\nError: {e}")
        traceback.print_exc()
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
