"""
VDC - Vehicle dynamics core for four-wheeled road vehicles.

This package provides a fixed-step vehicle simulation with:
- Rigid body chassis with ground and obstacle collision
- Engine, clutch, gearbox and differentials
- Brakes with ABS, Ackermann steering and per-corner suspension
- Combined-slip tire model with thermal and wear state
- Aerodynamic drag, lift, side force and ground effect
- Telemetry frames, recording and export
- Deterministic snapshots
"""

__version__ = "0.1.0"

# Simulation first: it pulls in the vehicle package in dependency order
from vdc.simulation.simulator import Simulator, SimulatorConfig
from vdc.vehicle.vehicle import Vehicle
from vdc.vehicle.inputs import DriverInputs
from vdc.config import VehicleConfig
from vdc.errors import VDCError, ConfigInvalidError, NumericalDegeneracyError, SnapshotVersionError

__all__ = [
    "Simulator",
    "SimulatorConfig",
    "Vehicle",
    "VehicleConfig",
    "DriverInputs",
    "VDCError",
    "ConfigInvalidError",
    "NumericalDegeneracyError",
    "SnapshotVersionError",
    "__version__",
]
