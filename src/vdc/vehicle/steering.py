"""
Steering component - Rack and Ackermann geometry.

Simulates:
- Speed-sensitive steering ratio
- Rack rate limiting
- Self-centering from caster return and tire aligning torque
- Ackermann split between inner and outer front wheels
"""

from dataclasses import dataclass
from typing import Tuple
import math

from vdc.physics.mathutils import clamp, lerp, move_towards


@dataclass
class SteeringConfig:
    """Steering configuration.

    Positive angles steer left.
    """
    max_angle: float = 0.6              # Max road wheel angle in rad
    ratio: float = 14.0                 # Steering wheel to road wheel ratio
    speed_sensitive_factor: float = 0.005  # Reduction per km/h
    min_speed_factor: float = 0.3
    ackermann: float = 0.8              # 0 = parallel, 1 = full Ackermann
    return_rate: float = 4.0            # Self-centering rate, 1/s
    align_gain: float = 0.1             # rad/s per Nm of aligning torque
    max_rate: float = 2.0               # Rack rate limit in rad/s
    smoothing: float = 0.15             # Input smoothing time constant in s


class Steering:
    """Front axle steering with Ackermann geometry."""

    def __init__(self, config: SteeringConfig | None = None, wheelbase: float = 2.7, track_width: float = 1.6):
        """Initialize steering.

        Args:
            config: Steering configuration. Uses defaults if None.
            wheelbase: Distance between axles in meters
            track_width: Distance between front wheel centres in meters
        """
        self.config = config or SteeringConfig()
        self.wheelbase = wheelbase
        self.track_width = track_width

        self._input: float = 0.0
        self._center: float = 0.0
        self._left: float = 0.0
        self._right: float = 0.0
        self._speed_factor: float = 1.0

    @property
    def center_angle(self) -> float:
        """Current centre (bicycle model) steer angle in rad."""
        return self._center

    @property
    def left_angle(self) -> float:
        """Front-left road wheel angle in rad."""
        return self._left

    @property
    def right_angle(self) -> float:
        """Front-right road wheel angle in rad."""
        return self._right

    @property
    def steering_wheel_angle(self) -> float:
        """Steering wheel angle in rad."""
        return self._center * self.config.ratio

    def speed_factor(self, speed: float) -> float:
        """Steering authority at a given speed in m/s."""
        return clamp(1.0 - self.config.speed_sensitive_factor * speed * 3.6, self.config.min_speed_factor, 1.0)

    def update(self, steer: float, speed: float, aligning_torque: float, dt: float) -> Tuple[float, float, float]:
        """Update steering angles for one time step.

        Args:
            steer: Smoothed steering input -1 to 1
            speed: Vehicle speed in m/s
            aligning_torque: Sum of front tire aligning torques in Nm
            dt: Time step in seconds

        Returns:
            Tuple of (left angle, right angle, centre angle) in rad
        """
        cfg = self.config
        self._input = steer
        self._speed_factor = self.speed_factor(speed)
        target = steer * cfg.max_angle * self._speed_factor
        center = move_towards(self._center, target, cfg.max_rate * dt)

        if abs(steer) < 0.05 and speed > 1.0 and center != 0.0:
            direction = 1.0 if center > 0.0 else -1.0
            returned = center + dt * (
                -cfg.return_rate * center * self._speed_factor
                - direction * abs(aligning_torque) * cfg.align_gain
            )
            # Never swing past straight ahead
            center = returned if returned * center > 0.0 else 0.0

        self._center = clamp(center, -cfg.max_angle, cfg.max_angle)
        self._left, self._right = self.ackermann(self._center)
        return self._left, self._right, self._center

    def ackermann(self, center: float) -> Tuple[float, float]:
        """Split a centre angle into left and right wheel angles.

        Args:
            center: Centre steer angle in rad

        Returns:
            Tuple of (left, right) wheel angles in rad
        """
        cfg = self.config
        magnitude = abs(center)
        if magnitude < 1e-9:
            return 0.0, 0.0

        radius = self.wheelbase / math.tan(magnitude)
        half_track = 0.5 * self.track_width
        if radius > half_track:
            inner = math.atan(self.wheelbase / (radius - half_track))
        else:
            inner = 0.5 * math.pi
        outer = math.atan(self.wheelbase / (radius + half_track))

        inner = min(lerp(magnitude, inner, cfg.ackermann), cfg.max_angle)
        outer = min(lerp(magnitude, outer, cfg.ackermann), cfg.max_angle)

        # Turning left puts the left wheel on the inside
        if center > 0.0:
            return inner, outer
        return -outer, -inner

    def reset(self) -> None:
        """Reset steering to straight ahead."""
        self._input = 0.0
        self._center = 0.0
        self._left = 0.0
        self._right = 0.0
        self._speed_factor = 1.0

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {"input": self._input, "center": self._center, "left": self._left, "right": self._right}

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self._input = float(state["input"])
        self._center = float(state["center"])
        self._left = float(state["left"])
        self._right = float(state["right"])

    def get_state(self) -> dict:
        """Get current steering state for telemetry.

        Returns:
            Dictionary containing steering state values
        """
        return {
            "input": self._input,
            "center_angle_rad": self._center,
            "left_angle_rad": self._left,
            "right_angle_rad": self._right,
            "steering_wheel_deg": math.degrees(self.steering_wheel_angle),
            "speed_factor": self._speed_factor,
        }
