"""
Rigid body - Six degree-of-freedom body integration.

Provides:
- Force/torque accumulation in world frame
- Semi-implicit Euler integration with quaternion orientation
- Impulse application at a world point
- Energy-based sleeping
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
import logging
import math
import numpy as np

from vdc.physics.mathutils import (
    quat_identity,
    quat_multiply,
    quat_normalize,
    quat_rotate,
    quat_conjugate,
    quat_to_matrix,
)

logger = logging.getLogger(__name__)


@dataclass
class RigidBodyConfig:
    """Configuration for a rigid body.

    Inertia is diagonal in the body frame: Ixx pitch (about the lateral
    axis), Iyy yaw (about the vertical axis), Izz roll (about the
    longitudinal axis).
    """
    mass: float = 1400.0
    inertia: Tuple[float, float, float] = (2200.0, 2800.0, 600.0)

    # Damping as fraction of velocity lost per second
    linear_damping: float = 0.01
    angular_damping: float = 0.05

    # Sleeping
    sleep_energy: float = 0.01     # Joules
    sleep_time: float = 0.5        # Seconds below threshold before sleeping

    is_static: bool = False


class RigidBody:
    """Rigid body integrated with semi-implicit Euler.

    Position, velocity and angular velocity are world-frame numpy
    vectors; orientation is a unit quaternion (x, y, z, w).
    """

    def __init__(self, config: RigidBodyConfig | None = None):
        """Initialize body at the origin, at rest.

        Args:
            config: Body configuration. Uses defaults if None.
        """
        self.config = config or RigidBodyConfig()

        self.mass = float(self.config.mass)
        self.inverse_mass = 0.0 if self.config.is_static else 1.0 / self.mass
        self.inertia = np.array(self.config.inertia, dtype=float)
        self.inverse_inertia = np.zeros(3) if self.config.is_static else 1.0 / self.inertia

        self.position = np.zeros(3)
        self.velocity = np.zeros(3)
        self.orientation = quat_identity()
        self.angular_velocity = np.zeros(3)

        self.force = np.zeros(3)
        self.torque = np.zeros(3)

        self._asleep: bool = False
        self._sleep_timer: float = 0.0

    @property
    def is_static(self) -> bool:
        """Static bodies never move."""
        return self.config.is_static

    @property
    def asleep(self) -> bool:
        """Check if body is sleeping."""
        return self._asleep

    @property
    def rotation_matrix(self) -> np.ndarray:
        """Body-to-world rotation matrix."""
        return quat_to_matrix(self.orientation)

    def inverse_inertia_world(self) -> np.ndarray:
        """World-frame inverse inertia tensor R diag(1/I) R^T."""
        rot = quat_to_matrix(self.orientation)
        return (rot * self.inverse_inertia) @ rot.T

    def local_to_world(self, vector: np.ndarray) -> np.ndarray:
        """Rotate a body-frame direction into world frame."""
        return quat_rotate(self.orientation, vector)

    def world_to_local(self, vector: np.ndarray) -> np.ndarray:
        """Rotate a world-frame direction into body frame."""
        return quat_rotate(quat_conjugate(self.orientation), vector)

    def point_to_world(self, local_point: np.ndarray) -> np.ndarray:
        """Transform a body-frame point into world frame."""
        return self.position + quat_rotate(self.orientation, local_point)

    def point_velocity(self, world_point: np.ndarray) -> np.ndarray:
        """Velocity of a world point rigidly attached to the body."""
        return self.velocity + np.cross(self.angular_velocity, world_point - self.position)

    def kinetic_energy(self) -> float:
        """Translational plus rotational kinetic energy in Joules."""
        linear = 0.5 * self.mass * float(np.dot(self.velocity, self.velocity))
        omega_local = self.world_to_local(self.angular_velocity)
        angular = 0.5 * float(np.dot(omega_local * self.inertia, omega_local))
        return linear + angular

    def add_force(self, force: np.ndarray) -> None:
        """Accumulate a force through the centre of mass."""
        self.force += force

    def add_torque(self, torque: np.ndarray) -> None:
        """Accumulate a world-frame torque."""
        self.torque += torque

    def add_force_at_point(self, force: np.ndarray, world_point: np.ndarray) -> None:
        """Accumulate a force applied at a world point."""
        self.force += force
        self.torque += np.cross(world_point - self.position, force)

    def apply_impulse_at_point(self, impulse: np.ndarray, world_point: np.ndarray) -> None:
        """Instantaneously change linear and angular velocity.

        Args:
            impulse: World-frame impulse in N*s
            world_point: Point of application in world frame
        """
        if self.is_static:
            return
        self.wake()
        self.velocity = self.velocity + impulse * self.inverse_mass
        angular_impulse = np.cross(world_point - self.position, impulse)
        self.angular_velocity = self.angular_velocity + self.inverse_inertia_world() @ angular_impulse

    def translate(self, offset: np.ndarray) -> None:
        """Move the body without changing velocity."""
        if not self.is_static:
            self.position = self.position + offset

    def wake(self) -> None:
        """Wake the body up."""
        if self._asleep:
            logger.debug("Rigid body woke up")
        self._asleep = False
        self._sleep_timer = 0.0

    def clear_accumulators(self) -> None:
        """Zero force and torque accumulators."""
        self.force = np.zeros(3)
        self.torque = np.zeros(3)

    def integrate(self, dt: float) -> None:
        """Advance the body by one time step.

        Velocity is updated from the accumulated forces first, then
        position from the new velocity (semi-implicit Euler).

        Args:
            dt: Time step in seconds
        """
        if self.is_static or self._asleep:
            self.clear_accumulators()
            return

        # Linear
        acceleration = self.force * self.inverse_mass
        self.velocity = self.velocity + acceleration * dt
        self.velocity = self.velocity * (1.0 - self.config.linear_damping) ** dt

        # Angular
        angular_acceleration = self.inverse_inertia_world() @ self.torque
        self.angular_velocity = self.angular_velocity + angular_acceleration * dt
        self.angular_velocity = self.angular_velocity * (1.0 - self.config.angular_damping) ** dt

        self.position = self.position + self.velocity * dt

        # q_dot = 0.5 * [w, 0] * q
        omega = np.array([
            self.angular_velocity[0],
            self.angular_velocity[1],
            self.angular_velocity[2],
            0.0,
        ])
        q_dot = 0.5 * quat_multiply(omega, self.orientation)
        self.orientation = quat_normalize(self.orientation + q_dot * dt)

        self.clear_accumulators()
        self._update_sleep(dt)

    def _update_sleep(self, dt: float) -> None:
        """Put the body to sleep after a sustained low-energy period."""
        if self.kinetic_energy() < self.config.sleep_energy:
            self._sleep_timer += dt
            if self._sleep_timer > self.config.sleep_time:
                self.velocity = np.zeros(3)
                self.angular_velocity = np.zeros(3)
                self._asleep = True
                logger.debug("Rigid body fell asleep")
        else:
            self._sleep_timer = 0.0

    def is_finite(self) -> bool:
        """Check that pose and velocities contain no NaN/Inf."""
        return bool(
            np.all(np.isfinite(self.position))
            and np.all(np.isfinite(self.velocity))
            and np.all(np.isfinite(self.orientation))
            and np.all(np.isfinite(self.angular_velocity))
        )

    def quaternion_error(self) -> float:
        """Deviation of the orientation norm from 1."""
        return abs(math.sqrt(float(np.dot(self.orientation, self.orientation))) - 1.0)

    def reset(self, position: np.ndarray | None = None, orientation: np.ndarray | None = None) -> None:
        """Reset body to rest at the given pose."""
        self.position = np.zeros(3) if position is None else np.array(position, dtype=float)
        self.orientation = quat_identity() if orientation is None else quat_normalize(np.array(orientation, dtype=float))
        self.velocity = np.zeros(3)
        self.angular_velocity = np.zeros(3)
        self.clear_accumulators()
        self._asleep = False
        self._sleep_timer = 0.0

    def export_state(self) -> Dict[str, Any]:
        """Mutable state as plain data."""
        return {
            "position": self.position.tolist(),
            "velocity": self.velocity.tolist(),
            "orientation": self.orientation.tolist(),
            "angular_velocity": self.angular_velocity.tolist(),
            "asleep": self._asleep,
            "sleep_timer": self._sleep_timer,
        }

    def import_state(self, state: Dict[str, Any]) -> None:
        """Restore state produced by export_state."""
        self.position = np.array(state["position"], dtype=float)
        self.velocity = np.array(state["velocity"], dtype=float)
        self.orientation = np.array(state["orientation"], dtype=float)
        self.angular_velocity = np.array(state["angular_velocity"], dtype=float)
        self._asleep = bool(state["asleep"])
        self._sleep_timer = float(state["sleep_timer"])
        self.clear_accumulators()

    def get_state(self) -> dict:
        """Get current body state for telemetry.

        Returns:
            Dictionary containing pose and velocities
        """
        return {
            "position": self.position.tolist(),
            "orientation": self.orientation.tolist(),
            "velocity": self.velocity.tolist(),
            "angular_velocity": self.angular_velocity.tolist(),
            "speed": float(np.linalg.norm(self.velocity)),
            "asleep": self._asleep,
        }
