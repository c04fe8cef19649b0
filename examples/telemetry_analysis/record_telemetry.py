#!/usr/bin/env python3
"""
Telemetry Analysis Example

This example demonstrates how to:
1. Record telemetry frames during a simulation
2. Add custom channels by dotted path
3. Compare braking with and without ABS
4. Export telemetry to CSV, JSON and NumPy formats

Run with: python record_telemetry.py
"""

from pathlib import Path

import numpy as np

from vdc import Simulator, Vehicle, VehicleConfig, DriverInputs
from vdc.telemetry import TelemetryRecorder, TelemetryExporter
from vdc.telemetry.exporter import ExporterConfig
from vdc.telemetry.recorder import RecorderConfig


def emergency_stop(abs_enabled: bool) -> TelemetryRecorder:
    """Full brake from 100 km/h, recording every step."""
    config = VehicleConfig()
    config.brakes.abs_enabled = abs_enabled
    vehicle = Vehicle(config)
    vehicle.reset(speed=100.0 / 3.6)

    recorder = TelemetryRecorder(RecorderConfig(sample_rate_hz=120.0))
    recorder.add_channel("brake_temp_fl", "brakes.temperatures_c.0", unit="°C", precision=1)
    recorder.add_channel("distance", "body.position.2", unit="m", precision=2)

    sim = Simulator(vehicle)
    for _ in range(6 * 60):
        frame = sim.tick(1.0 / 60.0, DriverInputs(brake=1.0))
        recorder.record(frame)
        if vehicle.speed < 0.1:
            break
    return recorder


def main():
    print("=" * 60)
    print("VDC Telemetry Recording Example")
    print("=" * 60)

    output_dir = Path(__file__).parent / "output"

    # Step 1: Record both runs
    print("\n1. Recording emergency stops from 100 km/h...")
    runs = {
        "abs": emergency_stop(abs_enabled=True),
        "locked": emergency_stop(abs_enabled=False),
    }
    for name, recorder in runs.items():
        print(f"   {name}: {recorder.sample_count} samples on {len(recorder.channels)} channels")

    # Step 2: Compare the runs
    print("\n2. Braking comparison:")
    for name, recorder in runs.items():
        slip = np.abs(recorder.get_channel("slip_ratio_fl").get_values())
        distance = recorder.get_channel("distance")
        decel = recorder.get_channel("longitudinal_g")
        print(f"\n   {name.upper()}:")
        print(f"     Stopping distance: {distance.last_value:.1f} m")
        print(f"     Peak deceleration: {-decel.min_value:.2f} g")
        print(f"     Mean |slip| FL: {slip.mean():.3f}")
        print(f"     Front brake temp: {recorder.get_channel('brake_temp_fl').last_value:.0f}°C")

    # Step 3: Time window around the first second
    print("\n3. First second of the ABS run (speed_kph):")
    times, values = runs["abs"].get_channel("speed_kph").get_range(0.0, 1.0)
    for t, v in list(zip(times, values))[::30]:
        print(f"   t={t:.3f}s  {v:.1f} km/h")

    # Step 4: Export
    print("\n4. Exporting telemetry...")
    for name, recorder in runs.items():
        exporter = TelemetryExporter(ExporterConfig(output_dir=str(output_dir / name)))
        print(f"   CSV: {exporter.export_csv(recorder, channels=['speed_kph', 'brake', 'slip_ratio_fl', 'distance'])}")
        print(f"   JSON: {exporter.export_json(recorder)}")
        print(f"   NumPy: {exporter.export_numpy(recorder)}")
        print(f"   Summary: {exporter.export_summary(recorder)}")

    print("\n" + "=" * 60)
    print(f"Telemetry exported to: {output_dir}")
    print("=" * 60)


if __name__ == "__main__":
    main()
