"""
Vehicle module - Four-wheeled vehicle model.

This module contains:
- Vehicle: Complete vehicle integrating all subsystems
- Engine: Torque curve, rev limiter, turbo and thermal state
- Drivetrain: Clutch, gearbox and differentials
- Brakes: Brake torque, fade and ABS
- Steering: Rate-limited Ackermann steering
- Suspension: Per-corner spring, damper and anti-roll bars
- Tire: Combined-slip tire with thermal and wear state
- Aerodynamics: Drag, lift, side force and ground effect
"""

from vdc.vehicle.vehicle import Vehicle
from vdc.vehicle.inputs import DriverInputs, InputConditioner
from vdc.vehicle.engine import Engine, EngineConfig
from vdc.vehicle.drivetrain import Drivetrain, DrivetrainConfig, DifferentialKind, DriveLayout
from vdc.vehicle.brakes import Brakes, BrakeConfig
from vdc.vehicle.steering import Steering, SteeringConfig
from vdc.vehicle.suspension import Suspension, SuspensionConfig
from vdc.vehicle.tires import Tire, TireConfig
from vdc.vehicle.wheel import Wheel, Corner
from vdc.vehicle.aero import Aerodynamics, AeroConfig

__all__ = [
    "Vehicle",
    "DriverInputs",
    "InputConditioner",
    "Engine",
    "EngineConfig",
    "Drivetrain",
    "DrivetrainConfig",
    "DifferentialKind",
    "DriveLayout",
    "Brakes",
    "BrakeConfig",
    "Steering",
    "SteeringConfig",
    "Suspension",
    "SuspensionConfig",
    "Tire",
    "TireConfig",
    "Wheel",
    "Corner",
    "Aerodynamics",
    "AeroConfig",
]
