#!/usr/bin/env python3
"""
Basic Simulation Example

This example demonstrates how to:
1. Build a vehicle on a flat world with a low-grip patch
2. Drive it through the fixed-step simulator with scripted inputs
3. Read telemetry frames published at the end of each tick
4. Save a snapshot and restore it into a second vehicle

Run with: python run_simulation.py
"""

from vdc import Simulator, Vehicle, VehicleConfig, DriverInputs
from vdc.simulation.snapshot import capture_snapshot, restore_snapshot
from vdc.simulation.world import PatchWorld


def scripted_inputs(sim: Simulator) -> DriverInputs:
    """Accelerate, brake into a left-hander, then power out."""
    t = sim.time
    if t < 6.0:
        return DriverInputs(throttle=1.0)
    if t < 7.5:
        return DriverInputs(brake=0.6)
    if t < 10.0:
        return DriverInputs(throttle=0.3, steer=0.25)
    return DriverInputs(throttle=0.7, steer=0.05)


def main():
    print("=" * 60)
    print("VDC Basic Simulation Example")
    print("=" * 60)

    # Step 1: Build the world and vehicle
    print("\n1. Building world and vehicle...")
    world = PatchWorld("asphalt")
    world.add_patch(-20.0, 150.0, 20.0, 200.0, "wet_asphalt", wetness=0.8)

    config = VehicleConfig()
    config.drivetrain.auto_shift = True
    vehicle = Vehicle(config, world)
    vehicle.set_gear(1)

    print(f"   Mass: {config.mass:.0f} kg, layout: {config.drivetrain.layout.value.upper()}")
    print(f"   Static corner loads: {[round(load) for load in config.static_corner_loads()]} N")
    print(f"   Surface patches: {len(world.patches)}")

    # Step 2: Run at a 60 Hz frame rate; physics steps at 120 Hz
    print("\n2. Running simulation (12 seconds of 60 Hz frames)...")
    sim = Simulator(vehicle, input_source=scripted_inputs)
    frame = None
    for tick in range(12 * 60):
        frame = sim.tick(1.0 / 60.0)
        if (tick + 1) % 120 == 0:
            print(f"   t={frame.time:5.2f}s: Speed = {frame.get('body.speed_kph'):.1f} km/h, "
                  f"Gear = {frame.get('drivetrain.gear')}, "
                  f"RPM = {frame.get('engine.rpm'):.0f}")

    # Step 3: Inspect the last frame
    print("\n3. Final telemetry frame:")
    position = frame.get("body.position")
    print(f"   Position: ({position[0]:.1f}, {position[2]:.1f})")
    print(f"   Heading: {frame.get('body.heading_rad'):.3f} rad")
    print(f"   Lateral G: {frame.get('body.lateral_g'):.2f}g")
    print(f"   Engine Temp: {frame.get('engine.temperature_c'):.1f}°C")
    for corner in ("FL", "FR", "RL", "RR"):
        print(f"   {corner}: load {frame.get(f'wheels.{corner}.load_n'):.0f} N, "
              f"tire {frame.get(f'wheels.{corner}.surface_temp_c'):.1f}°C, "
              f"surface {frame.get(f'wheels.{corner}.surface')}")
    print(f"   Degraded: {frame.degraded}")

    # Step 4: Snapshot and restore
    print("\n4. Snapshot round trip:")
    snapshot = capture_snapshot(vehicle)
    twin = Vehicle(config, world)
    restore_snapshot(twin, snapshot)

    coast = DriverInputs(throttle=0.0)
    for _ in range(240):
        vehicle.step(coast, sim.dt)
        twin.step(coast, sim.dt)
    print(f"   Original after 2 s coast: {vehicle.speed_kph:.3f} km/h")
    print(f"   Restored after 2 s coast: {twin.speed_kph:.3f} km/h")
    print(f"   Identical state: {vehicle.export_state() == twin.export_state()}")

    print("\n" + "=" * 60)
    print("Simulation complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
