"""
Vehicle - Four-wheeled vehicle aggregate and its per-step update.

Integrates all vehicle components:
- Input conditioning and steering
- Engine and drivetrain
- Brakes with ABS
- Suspension and tires at four corners
- Aerodynamics
- Rigid body integration and collision response

Each step runs the components in a fixed order. The engine sees the
drivetrain resistance torque from the previous step.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Optional
import logging
import math
import numpy as np

from vdc.config import VehicleConfig
from vdc.errors import NumericalDegeneracyError
from vdc.physics.collision import CollisionEvent, CollisionResolver
from vdc.physics.mathutils import heading_of, quat_from_heading
from vdc.physics.rigid_body import RigidBody, RigidBodyConfig
from vdc.simulation.world import FlatWorld, GroundSample, WorldQuery
from vdc.vehicle.aero import Aerodynamics, AeroForces
from vdc.vehicle.brakes import Brakes
from vdc.vehicle.drivetrain import Drivetrain
from vdc.vehicle.engine import Engine
from vdc.vehicle.inputs import ConditionedInputs, DriverInputs, InputConditioner, InputConfig
from vdc.vehicle.steering import Steering
from vdc.vehicle.suspension import Suspension
from vdc.vehicle.wheel import Corner, Wheel, wheels_from_config

logger = logging.getLogger(__name__)

UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])
LEFT = np.array([1.0, 0.0, 0.0])


class Vehicle:
    """Complete vehicle simulation.

    Owns one rigid body, engine, drivetrain, brake system, steering rack,
    suspension, aerodynamics and four wheels addressed by Corner.
    """

    def __init__(self, config: VehicleConfig | None = None, world: WorldQuery | None = None):
        """Initialize vehicle.

        Args:
            config: Vehicle configuration. Uses defaults if None.
            world: Ground and obstacle source. Flat asphalt if None.

        Raises:
            ConfigInvalidError: if the configuration is invalid
        """
        self.config = config or VehicleConfig()
        self.config.validate()
        cfg = self.config

        self.world = world or FlatWorld()
        self.rng = np.random.default_rng(cfg.seed)

        self.body = RigidBody(RigidBodyConfig(
            mass=cfg.mass,
            inertia=tuple(cfg.inertia),
            linear_damping=cfg.linear_damping,
            angular_damping=cfg.angular_damping,
        ))
        self.conditioner = InputConditioner(InputConfig(steering_smoothing=cfg.steering.smoothing))
        self.steering = Steering(cfg.steering, cfg.wheelbase, cfg.track_width)
        self.engine = Engine(cfg.engine)
        self.drivetrain = Drivetrain(cfg.drivetrain)
        self.brakes = Brakes(cfg.brakes)
        self.suspension = Suspension(
            cfg.suspension,
            cfg.static_corner_loads(),
            cfg.wheelbase,
            cfg.track_width,
            self.rng,
        )
        self.aero = Aerodynamics(cfg.aero, cfg.wheelbase)
        self.collision = CollisionResolver(cfg.collision)
        self.wheels: List[Wheel] = wheels_from_config(cfg.tire, self.rng)

        # Suspension mounts in the body frame, wheel centre at rest length below
        self._mounts: List[np.ndarray] = []
        for corner in Corner:
            suspension = cfg.suspension[corner]
            mount_y = cfg.tire.radius + suspension.rest_length - cfg.cg_height
            mount_z = cfg.cg_to_front if corner.is_front else -cfg.cg_to_rear
            self._mounts.append(np.array([corner.side * 0.5 * cfg.track_width, mount_y, mount_z]))
        self._front_axle = np.array([0.0, 0.0, cfg.cg_to_front])
        self._rear_axle = np.array([0.0, 0.0, -cfg.cg_to_rear])

        self._time: float = 0.0
        self._steps: int = 0
        self._inputs = ConditionedInputs()
        self._acceleration = np.zeros(3)
        self._aero_forces: Optional[AeroForces] = None
        self._ground: List[Optional[GroundSample]] = [None, None, None, None]
        self._collisions: List[CollisionEvent] = []

        self.reset()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def time(self) -> float:
        """Simulated time since reset in seconds."""
        return self._time

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def position(self) -> np.ndarray:
        return self.body.position

    @property
    def velocity(self) -> np.ndarray:
        return self.body.velocity

    @property
    def speed(self) -> float:
        """Speed in m/s."""
        return float(np.linalg.norm(self.body.velocity))

    @property
    def speed_kph(self) -> float:
        return self.speed * 3.6

    @property
    def forward_speed(self) -> float:
        """Velocity along the body forward axis in m/s."""
        return float(np.dot(self.body.velocity, self.body.local_to_world(FORWARD)))

    @property
    def heading(self) -> float:
        """Yaw angle in rad, positive to the left of +z."""
        return heading_of(self.body.orientation)

    @property
    def yaw_rate(self) -> float:
        """Angular velocity about the body up axis in rad/s."""
        return float(np.dot(self.body.angular_velocity, self.body.local_to_world(UP)))

    @property
    def lateral_acceleration(self) -> float:
        """Acceleration towards the body left in m/s^2."""
        return float(np.dot(self._acceleration, self.body.local_to_world(LEFT)))

    @property
    def longitudinal_acceleration(self) -> float:
        return float(np.dot(self._acceleration, self.body.local_to_world(FORWARD)))

    @property
    def ride_height(self) -> float:
        """Chassis floor height above the ground below the CG in meters."""
        sample = self.world.ground_at(float(self.body.position[0]), float(self.body.position[2]))
        if sample is None:
            return math.inf
        cfg = self.config
        floor = cfg.collision.center_offset[1] - cfg.collision.half_extents[1]
        return float(self.body.position[1]) + floor - sample.height

    @property
    def last_collisions(self) -> List[CollisionEvent]:
        """Contacts resolved during the last step."""
        return list(self._collisions)

    @property
    def kinetic_energy(self) -> float:
        return self.body.kinetic_energy()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def reset(
        self,
        position: np.ndarray | None = None,
        heading: float = 0.0,
        speed: float = 0.0,
    ) -> None:
        """Reset vehicle to a deterministic initial state.

        Args:
            position: CG position in world frame. Rests on the ground at
                the origin if None.
            heading: Yaw angle in rad
            speed: Initial forward speed in m/s, wheels rolling freely
        """
        cfg = self.config
        if position is None:
            sample = self.world.ground_at(0.0, 0.0)
            ground = sample.height if sample is not None else 0.0
            position = np.array([0.0, ground + cfg.cg_height, 0.0])

        self.rng = np.random.default_rng(cfg.seed)
        self.suspension.rng = self.rng
        for wheel in self.wheels:
            wheel.tire.rng = self.rng
            wheel.reset()

        orientation = quat_from_heading(heading)
        self.body.reset(np.array(position, dtype=float), orientation)
        self.body.velocity = self.body.local_to_world(FORWARD) * speed

        self.conditioner.reset()
        self.steering.reset()
        self.engine.reset()
        self.drivetrain.reset()
        self.brakes.reset()
        self.suspension.reset()
        self.aero.reset()

        for wheel in self.wheels:
            wheel.angular_velocity = speed / wheel.radius
        self.drivetrain.set_gear(cfg.drivetrain.initial_gear, self.engine, self.wheel_speeds)

        self._time = 0.0
        self._steps = 0
        self._inputs = ConditionedInputs()
        self._acceleration = np.zeros(3)
        self._aero_forces = None
        self._ground = [None, None, None, None]
        self._collisions = []
        logger.info(f"Vehicle reset at {np.round(self.body.position, 3).tolist()}, heading {heading:.3f} rad, speed {speed:.2f} m/s")

    def set_gear(self, gear: int) -> int:
        """Select a gear immediately and synchronize engine RPM.

        Returns:
            The selected gear
        """
        return self.drivetrain.set_gear(gear, self.engine, self.wheel_speeds)

    @property
    def wheel_speeds(self) -> List[float]:
        """Wheel angular velocities (FL, FR, RL, RR) in rad/s."""
        return [wheel.angular_velocity for wheel in self.wheels]

    # ------------------------------------------------------------------
    # Step
    # ------------------------------------------------------------------

    def step(self, inputs: DriverInputs | None, dt: float) -> None:
        """Advance the vehicle by one fixed time step.

        Args:
            inputs: Raw driver inputs, neutral if None
            dt: Time step in seconds

        Raises:
            NumericalDegeneracyError: if the state is not finite afterwards
        """
        cfg = self.config
        body = self.body
        env = self.world.environment

        raw = inputs or DriverInputs()
        conditioned = self.conditioner.update(raw, dt)
        if conditioned.reset:
            self.reset()
            # Held button must be released before it resets again
            self.conditioner.latch(raw)
            return
        self._inputs = conditioned

        forward = body.local_to_world(FORWARD)
        left = body.local_to_world(LEFT)
        up = body.local_to_world(UP)
        forward_speed = float(np.dot(body.velocity, forward))
        previous_velocity = body.velocity.copy()

        # Steering from last step's front aligning torque
        front_mz = self.wheels[Corner.FL].tire.forces.mz + self.wheels[Corner.FR].tire.forces.mz
        left_angle, right_angle, _ = self.steering.update(conditioned.steer, abs(forward_speed), front_mz, dt)
        self.wheels[Corner.FL].steer_angle = left_angle
        self.wheels[Corner.FR].steer_angle = right_angle

        # Power
        self.engine.update(
            dt,
            conditioned.throttle,
            self.drivetrain.clutch_engagement,
            self.drivetrain.resistance_torque,
        )
        drive_torques = self.drivetrain.update(
            dt,
            self.engine,
            conditioned.throttle,
            conditioned.clutch,
            conditioned.shift_up,
            conditioned.shift_down,
            self.wheel_speeds,
            [wheel.inertia for wheel in self.wheels],
        )
        brake_torques = self.brakes.update(
            dt,
            conditioned.brake,
            conditioned.handbrake,
            [wheel.tire.slip_ratio for wheel in self.wheels],
            forward_speed,
        )

        # Suspension
        mounts = [body.point_to_world(mount) for mount in self._mounts]
        lengths: List[Optional[float]] = []
        for index, mount in enumerate(mounts):
            sample = self.world.ground_at(float(mount[0]), float(mount[2]))
            self._ground[index] = sample
            if sample is None:
                lengths.append(None)
            else:
                lengths.append(float(mount[1]) - sample.height - self.wheels[index].radius)
        loads = self.suspension.update(dt, lengths)

        # Tires
        forces: List[np.ndarray] = []
        torques: List[np.ndarray] = []
        reflected = self.drivetrain.reflected_inertia
        for index, wheel in enumerate(self.wheels):
            corner = wheel.corner
            suspension = self.suspension.corners[index]
            sample = self._ground[index]
            wheel.on_ground = suspension.on_ground

            if sample is not None:
                normal = np.array(sample.normal, dtype=float)
                contact = np.array([mounts[index][0], sample.height, mounts[index][2]])
            else:
                normal = up
                contact = mounts[index] - up * (wheel.radius + suspension.config.max_travel)

            # Wheel heading including steer and toe, projected onto the ground
            angle = wheel.steer_angle - suspension.config.static_toe * corner.side
            heading = body.local_to_world(np.array([math.sin(angle), 0.0, math.cos(angle)]))
            heading = heading - np.dot(heading, normal) * normal
            heading = heading / np.linalg.norm(heading)
            lateral = np.cross(normal, heading)

            contact_velocity = body.point_velocity(contact)
            trail = wheel.radius * math.sin(suspension.config.caster) if corner.is_front else 0.0
            tire = wheel.tire.update(
                dt,
                wheel.angular_velocity,
                float(np.dot(contact_velocity, heading)),
                float(np.dot(contact_velocity, lateral)),
                loads[index],
                sample.surface if sample is not None else wheel.tire.surface,
                sample.wetness if sample is not None else 0.0,
                suspension.camber,
                corner.side,
                wheel.inertia + reflected[index],
                trail,
                env.ambient_temp_c,
            )

            force = normal * loads[index] + heading * (tire.fx + tire.rolling) + lateral * tire.fy
            forces.append(force)
            torques.append(np.cross(contact - body.position, force) + normal * tire.mz)

            wheel.integrate(dt, tire.fx, drive_torques[index], brake_torques[index], reflected[index])

        # Sum per axle first so mirrored manoeuvres stay exactly mirrored
        body.add_force((forces[Corner.FL] + forces[Corner.FR]) + (forces[Corner.RL] + forces[Corner.RR]))
        body.add_torque((torques[Corner.FL] + torques[Corner.FR]) + (torques[Corner.RL] + torques[Corner.RR]))

        # Aerodynamics
        aero = self.aero.update(body.velocity, forward, left, up, self.ride_height, env)
        self._aero_forces = aero
        body.add_force(aero.drag + aero.side)
        body.add_force_at_point(aero.front_lift, body.point_to_world(self._front_axle))
        body.add_force_at_point(aero.rear_lift, body.point_to_world(self._rear_axle))
        body.add_torque(aero.yaw_moment)

        body.add_force(np.array([0.0, -env.gravity * body.mass, 0.0]))

        if body.asleep and self._should_wake():
            body.wake()
        body.integrate(dt)

        # Collisions
        nearby = self.world.obstacles_near(
            float(body.position[0]), float(body.position[2]), self.collision.bounding_radius,
        )
        contacts = self.collision.detect(body, nearby, self.world.ground_at)
        self._collisions = self.collision.resolve(body, contacts)

        self._acceleration = (body.velocity - previous_velocity) / dt
        self._time += dt
        self._steps += 1

        self.check_finite()

    def _should_wake(self) -> bool:
        """Something is pushing a sleeping body."""
        body = self.body
        weight = body.mass * self.world.environment.gravity
        if any(abs(w) > 0.1 for w in self.wheel_speeds):
            return True
        return bool(
            np.linalg.norm(body.force) > 0.01 * weight
            or np.linalg.norm(body.torque) > 0.01 * weight
        )

    def check_finite(self) -> None:
        """Verify body and wheel state contain no NaN/Inf.

        Raises:
            NumericalDegeneracyError: naming the first offending part
        """
        if not self.body.is_finite():
            raise NumericalDegeneracyError(f"Non-finite body state at step {self._steps}")
        if self.body.quaternion_error() > 1e-6:
            raise NumericalDegeneracyError(f"Orientation lost unit norm at step {self._steps}")
        for wheel in self.wheels:
            if not wheel.is_finite():
                raise NumericalDegeneracyError(f"Non-finite {wheel.corner.name} wheel state at step {self._steps}")
        if not math.isfinite(self.engine.rpm):
            raise NumericalDegeneracyError(f"Non-finite engine speed at step {self._steps}")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        """Complete mutable state as plain data."""
        return {
            "time": self._time,
            "steps": self._steps,
            "acceleration": self._acceleration.tolist(),
            "rng": self.rng.bit_generator.state,
            "body": self.body.export_state(),
            "conditioner": self.conditioner.export_state(),
            "steering": self.steering.export_state(),
            "engine": self.engine.export_state(),
            "drivetrain": self.drivetrain.export_state(),
            "brakes": self.brakes.export_state(),
            "suspension": self.suspension.export_state(),
            "wheels": [wheel.export_state() for wheel in self.wheels],
        }

    def import_state(self, state: Dict[str, Any]) -> None:
        """Restore state produced by export_state."""
        self._time = float(state["time"])
        self._steps = int(state["steps"])
        self._acceleration = np.array(state["acceleration"], dtype=float)
        self.rng.bit_generator.state = state["rng"]
        self.body.import_state(state["body"])
        self.conditioner.import_state(state["conditioner"])
        self.steering.import_state(state["steering"])
        self.engine.import_state(state["engine"])
        self.drivetrain.import_state(state["drivetrain"])
        self.brakes.import_state(state["brakes"])
        self.suspension.import_state(state["suspension"])
        for wheel, wheel_state in zip(self.wheels, state["wheels"]):
            wheel.import_state(wheel_state)
        self._collisions = []

    def get_telemetry(self) -> Dict[str, Any]:
        """Get comprehensive telemetry data.

        Returns:
            Dictionary containing all vehicle telemetry
        """
        gravity = self.world.environment.gravity
        body = self.body.get_state()
        body.update({
            "heading_rad": self.heading,
            "speed_kph": self.speed_kph,
            "forward_speed": self.forward_speed,
            "yaw_rate": self.yaw_rate,
            "lateral_g": self.lateral_acceleration / gravity,
            "longitudinal_g": self.longitudinal_acceleration / gravity,
            "kinetic_energy_j": self.kinetic_energy,
        })
        inputs = self._inputs
        return {
            "time": self._time,
            "step": self._steps,
            "inputs": {
                "throttle": inputs.throttle,
                "brake": inputs.brake,
                "steer": inputs.steer,
                "handbrake": inputs.handbrake,
                "clutch": inputs.clutch,
            },
            "body": body,
            "wheels": {wheel.corner.name: wheel.get_state() for wheel in self.wheels},
            "engine": self.engine.get_state(),
            "drivetrain": self.drivetrain.get_state(),
            "brakes": self.brakes.get_state(),
            "steering": self.steering.get_state(),
            "suspension": self.suspension.get_state(),
            "aero": self.aero.get_state(),
            "collisions": [asdict(event) for event in self._collisions],
        }
