"""
Aerodynamics component - Drag, downforce, side force and yaw moment.

Simulates:
- Drag along the relative wind, growing with yaw angle
- Lift/downforce with ground effect at low ride height
- Front/rear downforce split
- Side force and yaw moment from crosswind
- Top speed from drag power
"""

from dataclasses import dataclass
from typing import List
import math
import numpy as np

from vdc.physics.mathutils import remap
from vdc.simulation.world import Environment


@dataclass
class AeroConfig:
    """Configuration for road car aerodynamics."""
    # Drag
    drag_coefficient: float = 0.32       # Cd
    frontal_area: float = 2.2            # m^2
    yaw_drag_factor: float = 0.3         # Extra drag at 90 deg yaw

    # Lift, negative = downforce
    lift_coefficient: float = -0.15      # Cl
    downforce_distribution: float = 0.45  # Front share 0-1

    # Crosswind
    side_coefficient: float = 0.8
    side_area: float = 4.0               # m^2
    yaw_moment_coefficient: float = 0.1

    # Ground effect
    ground_effect_height: float = 0.1    # Reference ride height in m
    ground_effect_multiplier: float = 1.5
    min_ride_height: float = 0.02

    def validate(self) -> List[str]:
        """Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        problems = []
        if self.drag_coefficient < 0:
            problems.append("aero.drag_coefficient must be non-negative")
        if self.frontal_area <= 0:
            problems.append("aero.frontal_area must be positive")
        if not 0 <= self.downforce_distribution <= 1:
            problems.append("aero.downforce_distribution must be in [0, 1]")
        if self.ground_effect_height <= self.min_ride_height:
            problems.append("aero.ground_effect_height must exceed aero.min_ride_height")
        return problems


@dataclass
class AeroForces:
    """World-frame aerodynamic loads for one step."""
    drag: np.ndarray
    side: np.ndarray
    front_lift: np.ndarray
    rear_lift: np.ndarray
    yaw_moment: np.ndarray

    @property
    def total(self) -> np.ndarray:
        """Resultant force in N."""
        return self.drag + self.side + self.front_lift + self.rear_lift


class Aerodynamics:
    """Aerodynamics simulation.

    Forces are computed from the velocity relative to the air and
    returned in world frame. Lift acts at the front and rear axles so
    the suspension carries the downforce split.
    """

    def __init__(self, config: AeroConfig | None = None, wheelbase: float = 2.7):
        """Initialize aerodynamics with optional custom configuration.

        Args:
            config: Aero configuration. Uses defaults if None.
            wheelbase: Moment arm reference for the yaw moment in meters
        """
        self.config = config or AeroConfig()
        self.wheelbase = wheelbase
        self.reset()

    def reset(self) -> None:
        """Reset reported values."""
        self._drag: float = 0.0
        self._front_downforce: float = 0.0
        self._rear_downforce: float = 0.0
        self._side_force: float = 0.0
        self._yaw_moment: float = 0.0
        self._yaw_angle: float = 0.0
        self._ride_height: float = 0.0
        self._ground_effect: float = 1.0

    @property
    def drag(self) -> float:
        """Drag force magnitude in N."""
        return self._drag

    @property
    def downforce(self) -> float:
        """Total downforce in N, negative when the car generates lift."""
        return self._front_downforce + self._rear_downforce

    @property
    def front_downforce(self) -> float:
        return self._front_downforce

    @property
    def rear_downforce(self) -> float:
        return self._rear_downforce

    def ground_effect_multiplier(self, ride_height: float) -> float:
        """Lift coefficient scale at a ride height.

        Equals the configured multiplier at minimum ride height and 1.0
        at twice the reference height and above.
        """
        cfg = self.config
        return remap(
            ride_height,
            cfg.min_ride_height,
            2.0 * cfg.ground_effect_height,
            cfg.ground_effect_multiplier,
            1.0,
        )

    def update(
        self,
        velocity: np.ndarray,
        forward: np.ndarray,
        left: np.ndarray,
        up: np.ndarray,
        ride_height: float,
        environment: Environment | None = None,
    ) -> AeroForces:
        """Calculate aerodynamic forces for the current state.

        Args:
            velocity: Body velocity in world frame, m/s
            forward: Body forward axis in world frame
            left: Body left axis in world frame
            up: Body up axis in world frame
            ride_height: Chassis height above ground in meters
            environment: Air density and wind source

        Returns:
            Forces and yaw moment in world frame
        """
        cfg = self.config
        env = environment or Environment()
        relative = np.asarray(velocity, dtype=float) - env.wind_velocity
        speed = float(np.linalg.norm(relative))
        q = 0.5 * env.air_density * speed * speed

        self._ride_height = ride_height
        self._ground_effect = self.ground_effect_multiplier(ride_height)
        zero = np.zeros(3)

        if speed < 1e-6:
            self._drag = self._side_force = self._yaw_moment = 0.0
            self._front_downforce = self._rear_downforce = 0.0
            self._yaw_angle = 0.0
            return AeroForces(zero, zero, zero, zero, zero)

        beta = math.atan2(float(np.dot(relative, left)), float(np.dot(relative, forward)))
        self._yaw_angle = beta
        sin_beta = math.sin(beta)

        self._drag = q * cfg.drag_coefficient * cfg.frontal_area * (1.0 + cfg.yaw_drag_factor * abs(sin_beta))
        drag = -relative / speed * self._drag

        lift = q * cfg.lift_coefficient * self._ground_effect * cfg.frontal_area
        self._front_downforce = -lift * cfg.downforce_distribution
        self._rear_downforce = -lift * (1.0 - cfg.downforce_distribution)
        front_lift = -up * self._front_downforce
        rear_lift = -up * self._rear_downforce

        if speed >= 1.0:
            self._side_force = -q * cfg.side_coefficient * cfg.side_area * sin_beta
            self._yaw_moment = q * cfg.yaw_moment_coefficient * cfg.side_area * sin_beta * 0.5 * self.wheelbase
        else:
            self._side_force = 0.0
            self._yaw_moment = 0.0
        side = left * self._side_force
        yaw_moment = up * self._yaw_moment

        return AeroForces(drag, side, front_lift, rear_lift, yaw_moment)

    def drag_power(self, speed: float, air_density: float = 1.225) -> float:
        """Power absorbed by drag in straight-line motion, in W."""
        cfg = self.config
        return 0.5 * air_density * cfg.drag_coefficient * cfg.frontal_area * speed ** 3

    def top_speed(self, power_w: float, air_density: float = 1.225, tolerance: float = 0.1) -> float:
        """Speed where drag power equals available power.

        Args:
            power_w: Available power at the wheels in W
            air_density: Air density in kg/m^3
            tolerance: Bisection tolerance in m/s

        Returns:
            Top speed in m/s
        """
        if power_w <= 0.0 or self.config.drag_coefficient <= 0.0:
            return 0.0
        low, high = 0.0, 200.0
        while high - low > tolerance:
            mid = 0.5 * (low + high)
            if self.drag_power(mid, air_density) < power_w:
                low = mid
            else:
                high = mid
        return 0.5 * (low + high)

    def get_state(self) -> dict:
        """Get current aero state for telemetry.

        Returns:
            Dictionary containing aero state values
        """
        return {
            "drag_n": self._drag,
            "downforce_front_n": self._front_downforce,
            "downforce_rear_n": self._rear_downforce,
            "side_force_n": self._side_force,
            "yaw_moment_nm": self._yaw_moment,
            "yaw_angle_rad": self._yaw_angle,
            "ride_height_m": self._ride_height,
            "ground_effect": self._ground_effect,
        }
