"""
Wheel component - Corner identity, wheel spin and the tire it carries.

Simulates:
- Wheel angular velocity under drive, brake and tire torques
- Brake torque acting as friction (never reverses the wheel)
- Free-rolling bearing drag
"""

from enum import IntEnum
from typing import List
import numpy as np

from vdc.vehicle.tires import Tire, TireConfig


class Corner(IntEnum):
    """Stable corner tags, also the index into per-wheel lists."""
    FL = 0
    FR = 1
    RL = 2
    RR = 3

    @property
    def is_front(self) -> bool:
        return self in (Corner.FL, Corner.FR)

    @property
    def side(self) -> float:
        """+1 for left wheels, -1 for right wheels."""
        return 1.0 if self in (Corner.FL, Corner.RL) else -1.0


class Wheel:
    """One road wheel.

    Holds spin state and the per-step torques acting on it; tire forces
    come from its Tire.
    """

    def __init__(self, corner: Corner, config: TireConfig | None = None, rng: np.random.Generator | None = None):
        """Initialize wheel.

        Args:
            corner: Corner tag
            config: Tire configuration. Uses defaults if None.
            rng: Random generator shared with the vehicle
        """
        self.corner = Corner(corner)
        self.tire = Tire(config, self.corner.name, rng)
        self.config = self.tire.config
        self.reset()

    def reset(self) -> None:
        """Reset wheel to rest."""
        self.angular_velocity: float = 0.0
        self.steer_angle: float = 0.0
        self.drive_torque: float = 0.0
        self.brake_torque: float = 0.0
        self.on_ground: bool = False
        self.tire.reset()

    @property
    def radius(self) -> float:
        """Rolling radius in meters."""
        return self.tire.effective_radius

    @property
    def inertia(self) -> float:
        """Rotational inertia in kg*m^2."""
        return self.config.inertia

    def integrate(
        self,
        dt: float,
        tire_force_x: float,
        drive_torque: float,
        brake_torque: float,
        extra_inertia: float = 0.0,
    ) -> float:
        """Advance wheel spin by one time step.

        Args:
            dt: Time step in seconds
            tire_force_x: Longitudinal tire force in N
            drive_torque: Drivetrain torque in Nm
            brake_torque: Brake torque magnitude in Nm
            extra_inertia: Drivetrain inertia reflected onto this wheel

        Returns:
            New angular velocity in rad/s
        """
        self.drive_torque = drive_torque
        self.brake_torque = brake_torque
        inertia = self.config.inertia + extra_inertia

        net = drive_torque - tire_force_x * self.radius
        omega = self.angular_velocity + net / inertia * dt

        brake_delta = brake_torque / inertia * dt
        if abs(omega) <= brake_delta:
            omega = 0.0
        elif omega > 0.0:
            omega -= brake_delta
        else:
            omega += brake_delta

        if abs(drive_torque) < 1.0 and brake_torque < 1.0:
            omega *= 0.999

        self.angular_velocity = omega
        return omega

    def is_finite(self) -> bool:
        """Check wheel state for NaN/Inf."""
        tire = self.tire
        return bool(np.all(np.isfinite([
            self.angular_velocity,
            self.steer_angle,
            tire.slip_ratio,
            tire.slip_angle,
            tire.forces.fx,
            tire.forces.fy,
            tire.load,
            tire.surface_temperature,
        ])))

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "angular_velocity": self.angular_velocity,
            "steer_angle": self.steer_angle,
            "drive_torque": self.drive_torque,
            "brake_torque": self.brake_torque,
            "on_ground": self.on_ground,
            "tire": self.tire.export_state(),
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self.angular_velocity = float(state["angular_velocity"])
        self.steer_angle = float(state["steer_angle"])
        self.drive_torque = float(state["drive_torque"])
        self.brake_torque = float(state["brake_torque"])
        self.on_ground = bool(state["on_ground"])
        self.tire.import_state(state["tire"])

    def get_state(self) -> dict:
        """Get current wheel state for telemetry.

        Returns:
            Dictionary containing wheel and tire state values
        """
        state = self.tire.get_state()
        state.update({
            "angular_velocity": self.angular_velocity,
            "steer_angle_rad": self.steer_angle,
            "drive_torque_nm": self.drive_torque,
            "brake_torque_nm": self.brake_torque,
            "on_ground": self.on_ground,
        })
        return state


def wheels_from_config(config: TireConfig | None = None, rng: np.random.Generator | None = None) -> List[Wheel]:
    """Create the four wheels in corner order."""
    return [Wheel(corner, config, rng) for corner in Corner]
