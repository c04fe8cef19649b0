"""
vdc-sim - Run a scripted vehicle simulation from the command line.

Usage:
    vdc-sim                                  # 10 s full throttle in first gear
    vdc-sim --throttle 0.5 --steer 0.3       # Constant-radius turn
    vdc-sim --brake 1.0 --speed 27.8 --no-abs
    vdc-sim --config car.yaml --surface ice --output ./run1
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from vdc.config import VehicleConfig
from vdc.errors import VDCError
from vdc.simulation.simulator import Simulator, SimulatorConfig
from vdc.simulation.snapshot import capture_snapshot, save_snapshot
from vdc.simulation.world import Environment, FlatWorld
from vdc.telemetry.exporter import ExporterConfig, TelemetryExporter
from vdc.telemetry.recorder import RecorderConfig, TelemetryRecorder
from vdc.vehicle.inputs import DriverInputs
from vdc.vehicle.vehicle import Vehicle

logger = logging.getLogger("vdc")


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="vdc-sim",
        description="Vehicle dynamics core simulation runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Straight-line acceleration in first gear
    vdc-sim --throttle 1.0 --gear 1

    # Emergency stop from 100 km/h without ABS
    vdc-sim --speed 27.8 --brake 1.0 --no-abs --duration 5

    # Skid pad on a wet road, exporting telemetry
    vdc-sim --throttle 0.3 --steer 0.4 --surface wet_asphalt --output ./skidpad
        """
    )

    setup = parser.add_argument_group("Vehicle and world")
    setup.add_argument("--config", type=Path, help="Vehicle configuration YAML file")
    setup.add_argument("--surface", default="asphalt", help="Ground surface kind (default: asphalt)")
    setup.add_argument("--wetness", type=float, default=0.0, help="Surface wetness 0-1 (default: 0)")
    setup.add_argument("--ambient", type=float, default=25.0, help="Ambient temperature in C (default: 25)")
    setup.add_argument("--seed", type=int, help="Override the configuration random seed")

    run = parser.add_argument_group("Run")
    run.add_argument("--duration", type=float, default=10.0, help="Simulated seconds (default: 10)")
    run.add_argument("--frame-rate", type=float, default=60.0, help="Ticks per simulated second (default: 60)")
    run.add_argument("--speed", type=float, default=0.0, help="Initial forward speed in m/s (default: 0)")
    run.add_argument("--gear", type=int, default=1, help="Starting gear, -1 reverse, 0 neutral (default: 1)")

    controls = parser.add_argument_group("Driver inputs, held constant")
    controls.add_argument("--throttle", type=float, default=1.0, help="Throttle 0-1 (default: 1)")
    controls.add_argument("--brake", type=float, default=0.0, help="Brake 0-1 (default: 0)")
    controls.add_argument("--steer", type=float, default=0.0, help="Steering -1 right to 1 left (default: 0)")
    controls.add_argument("--handbrake", action="store_true", help="Hold the handbrake")
    controls.add_argument("--no-abs", action="store_true", help="Disable ABS")

    output = parser.add_argument_group("Output")
    output.add_argument("--output", type=Path, help="Directory for telemetry CSV, JSON and summary")
    output.add_argument("--snapshot", type=Path, help="Write the final state snapshot to this file")
    output.add_argument("--sample-rate", type=float, default=60.0, help="Telemetry sample rate in Hz (default: 60)")
    output.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_simulator(args: argparse.Namespace) -> Simulator:
    """Build the vehicle, world and simulator described by the arguments.

    Raises:
        ConfigInvalidError: if the vehicle configuration is invalid
    """
    config = VehicleConfig.from_yaml(args.config) if args.config else VehicleConfig()
    if args.seed is not None:
        config.seed = args.seed
    if args.no_abs:
        config.brakes.abs_enabled = False

    world = FlatWorld(args.surface, wetness=args.wetness, environment=Environment(ambient_temp_c=args.ambient))
    vehicle = Vehicle(config, world)
    vehicle.reset(speed=args.speed)
    vehicle.set_gear(args.gear)
    return Simulator(vehicle, SimulatorConfig())


def run(args: argparse.Namespace) -> int:
    """Run the simulation and write outputs.

    Returns:
        Process exit code
    """
    try:
        sim = build_simulator(args)
    except (VDCError, ValueError) as e:
        logger.error(f"Cannot build simulation: {e}")
        return 2

    inputs = DriverInputs(
        throttle=args.throttle,
        brake=args.brake,
        steer=args.steer,
        handbrake=args.handbrake,
    )
    recorder = TelemetryRecorder(RecorderConfig(sample_rate_hz=args.sample_rate))
    frame_dt = 1.0 / args.frame_rate
    ticks = int(round(args.duration * args.frame_rate))

    logger.info(f"Running {args.duration:.1f} s on {sim.vehicle.world.surface.value}")
    frame = None
    for tick in range(ticks):
        frame = sim.tick(frame_dt, inputs)
        recorder.record(frame)
        if frame.halted:
            break
        if (tick + 1) % int(args.frame_rate) == 0:
            logger.debug(
                f"t={frame.time:.2f}s speed={frame.get('body.speed_kph', 0.0):.1f} km/h "
                f"gear={frame.get('drivetrain.gear')} rpm={frame.get('engine.rpm', 0.0):.0f}"
            )

    vehicle = sim.vehicle
    logger.info(
        f"Finished at t={vehicle.time:.2f}s: speed {vehicle.speed_kph:.1f} km/h, "
        f"position {[round(float(p), 2) for p in vehicle.position]}, heading {vehicle.heading:.3f} rad"
    )

    if args.output:
        exporter = TelemetryExporter(ExporterConfig(output_dir=str(args.output)))
        exporter.export_csv(recorder)
        exporter.export_json(recorder)
        exporter.export_summary(recorder)
    if args.snapshot:
        save_snapshot(capture_snapshot(vehicle), args.snapshot)

    if frame is not None and frame.halted:
        logger.error("Simulation halted on persistent numerical degeneracy")
        return 1
    return 0


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
