"""
Generate test binary inputs for the compression pipeline.

Creates flat binary files with different compressibility:
- Constant runs (a single repeated byte, highly compressible)
- Float32 sensor telemetry (periodic signals plus noise)
- Int32 counters (monotonic with small steps)
- Random noise (incompressible)
"""

import argparse
import json
from pathlib import Path

import numpy as np


def generate_constant_runs(num_bytes: int = 1 << 20, value: int = 7,
                           output_file: str = "constant.bin"):
    """Writes ``num_bytes`` copies of a single byte value."""
    print(f"Generating {num_bytes:,} constant bytes (value={value})...")

    np.full(num_bytes, value, dtype=np.uint8).tofile(output_file)

    file_size = Path(output_file).stat().st_size
    print(f"Created {output_file}: {file_size:,} bytes ({file_size/1024/1024:.2f} MB)")
    return output_file


def generate_sensor_telemetry(duration_seconds: int = 600,
                              num_sensors: int = 16,
                              sampling_rate_hz: int = 100,
                              output_file: str = "sensor_telemetry.f32"):
    """
    Generates interleaved float32 sensor samples.

    Sensor types cycle through slow drift, fast oscillation, step changes
    and high-frequency vibration, each with Gaussian noise.
    """
    print(f"Generating {duration_seconds}s of {num_sensors} float32 sensor time series...")

    num_samples = duration_seconds * sampling_rate_hz
    t = np.arange(num_samples, dtype=np.float64)
    columns = []

    for sensor_id in range(num_sensors):
        sensor_type = sensor_id % 4

        if sensor_type == 0:
            values = 20.0 + 5.0 * np.sin(2 * np.pi * t / (3600 * sampling_rate_hz))
            values += np.random.normal(0, 0.5, num_samples)
        elif sensor_type == 1:
            values = 101325.0 + 100.0 * np.sin(2 * np.pi * t / (10 * sampling_rate_hz))
            values += np.random.normal(0, 20.0, num_samples)
        elif sensor_type == 2:
            step = (t // (300 * sampling_rate_hz)).astype(np.int64)
            values = 50.0 + (step % 5) * 10.0 + np.random.normal(0, 2.0, num_samples)
        else:
            values = 0.5 * np.sin(2 * np.pi * 50.0 * t / sampling_rate_hz)
            values += np.random.normal(0, 0.1, num_samples)

        columns.append(values.astype('<f4'))

    np.stack(columns, axis=1).tofile(output_file)

    file_size = Path(output_file).stat().st_size
    print(f"Created {output_file}: {file_size:,} bytes ({file_size/1024/1024:.2f} MB)")
    return output_file


def generate_counters(num_values: int = 1 << 18, output_file: str = "counters.i32"):
    """Generates a monotonically increasing int32 counter with small random steps."""
    print(f"Generating {num_values:,} int32 counter values...")

    steps = np.random.randint(0, 4, size=num_values).astype('<i4')
    np.cumsum(steps, dtype='<i4').tofile(output_file)

    file_size = Path(output_file).stat().st_size
    print(f"Created {output_file}: {file_size:,} bytes ({file_size/1024/1024:.2f} MB)")
    return output_file


def generate_random_noise(num_bytes: int = 1 << 20, output_file: str = "noise.bin"):
    """Generates uniformly random bytes."""
    print(f"Generating {num_bytes:,} random bytes...")

    np.random.randint(0, 256, size=num_bytes, dtype=np.uint8).tofile(output_file)

    file_size = Path(output_file).stat().st_size
    print(f"Created {output_file}: {file_size:,} bytes ({file_size/1024/1024:.2f} MB)")
    return output_file


def generate_all_test_datasets(output_dir: str = "data", num_bytes: int = 1 << 20,
                               sensor_duration: int = 600):
    """Generates all test input types and a manifest describing them."""
    output_path = Path(output_dir)
    output_path.mkdir(exist_ok=True)

    print("=" * 70)
    print("Generating Test Inputs")
    print("=" * 70)

    print("\n[1/4] Constant runs...")
    constant = generate_constant_runs(num_bytes, output_file=str(output_path / "constant.bin"))

    print("\n[2/4] Float32 sensor telemetry...")
    sensors = generate_sensor_telemetry(
        duration_seconds=sensor_duration,
        output_file=str(output_path / "sensor_telemetry.f32")
    )

    print("\n[3/4] Int32 counters...")
    counters = generate_counters(num_bytes // 4, output_file=str(output_path / "counters.i32"))

    print("\n[4/4] Random noise...")
    noise = generate_random_noise(num_bytes, output_file=str(output_path / "noise.bin"))

    manifest = {
        'datasets': {
            'constant': {'path': constant, 'element_type': 'uint8'},
            'sensor_telemetry': {'path': sensors, 'element_type': 'float32'},
            'counters': {'path': counters, 'element_type': 'int32'},
            'noise': {'path': noise, 'element_type': 'uint8'},
        }
    }
    for entry in manifest['datasets'].values():
        entry['size_bytes'] = Path(entry['path']).stat().st_size

    manifest_file = output_path / "manifest.json"
    with open(manifest_file, 'w') as f:
        json.dump(manifest, f, indent=2)

    print(f"\nManifest written to: {manifest_file}")
    print("\nTo verify a round trip:")
    print(f"  gcomp -r {sensors} --element-type float32")

    return manifest


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate test inputs for the compression pipeline")
    parser.add_argument('--output-dir', type=str, default='data',
                        help='Output directory for generated files')
    parser.add_argument('--num-bytes', type=int, default=1 << 20,
                        help='Size of the byte-oriented inputs')
    parser.add_argument('--sensor-duration', type=int, default=600,
                        help='Duration of sensor data in seconds')

    args = parser.parse_args()

    generate_all_test_datasets(
        output_dir=args.output_dir,
        num_bytes=args.num_bytes,
        sensor_duration=args.sensor_duration
    )
