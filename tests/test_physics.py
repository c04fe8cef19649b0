"""Tests for the rigid body, collision and math helpers."""

import math

import numpy as np
import pytest

from vdc.physics.collision import CollisionConfig, CollisionResolver
from vdc.physics.mathutils import (
    clamp,
    damp,
    heading_of,
    inverse_lerp,
    move_towards,
    quat_from_heading,
    quat_multiply,
    quat_rotate,
    remap,
    sign,
    wrap_angle,
)
from vdc.physics.rigid_body import RigidBody, RigidBodyConfig
from vdc.simulation.world import FlatWorld, Obstacle


class TestMathUtils:
    """Test scalar and quaternion helpers."""

    def test_clamp_and_remap(self):
        assert clamp(5.0, 0.0, 1.0) == 1.0
        assert clamp(-5.0, 0.0, 1.0) == 0.0
        assert inverse_lerp(0.0, 10.0, 2.5) == pytest.approx(0.25)
        assert remap(0.5, 0.0, 1.0, 10.0, 20.0) == pytest.approx(15.0)
        # Clamped outside the input range
        assert remap(5.0, 0.0, 1.0, 10.0, 20.0) == pytest.approx(20.0)

    def test_move_towards_limits_step(self):
        assert move_towards(0.0, 1.0, 0.25) == pytest.approx(0.25)
        assert move_towards(0.9, 1.0, 0.25) == 1.0
        assert move_towards(0.0, -1.0, 0.25) == pytest.approx(-0.25)

    def test_damp_is_frame_rate_independent(self):
        """Two half steps land where one full step does."""
        one = damp(0.0, 1.0, 0.2, 0.1)
        half = damp(damp(0.0, 1.0, 0.2, 0.05), 1.0, 0.2, 0.05)
        assert one == pytest.approx(half)
        assert damp(0.3, 1.0, 0.0, 0.1) == 1.0

    def test_sign_and_wrap(self):
        assert sign(0.0) == 0.0
        assert sign(-2.0) == -1.0
        assert wrap_angle(3.0 * math.pi) == pytest.approx(math.pi)
        assert wrap_angle(-0.5) == pytest.approx(-0.5)

    def test_heading_quaternion_turns_forward_left(self):
        """Positive heading rotates +z towards +x (left)."""
        q = quat_from_heading(math.pi / 2)
        forward = quat_rotate(q, np.array([0.0, 0.0, 1.0]))
        assert np.allclose(forward, [1.0, 0.0, 0.0], atol=1e-12)
        assert heading_of(q) == pytest.approx(math.pi / 2)

    def test_quaternion_product_composes_rotations(self):
        a = quat_from_heading(0.3)
        b = quat_from_heading(0.4)
        assert heading_of(quat_multiply(a, b)) == pytest.approx(0.7)


class TestRigidBody:
    """Test rigid body integration."""

    def test_force_accelerates_body(self):
        body = RigidBody(RigidBodyConfig(mass=1000.0, linear_damping=0.0))
        body.add_force(np.array([0.0, 0.0, 1000.0]))
        body.integrate(0.1)

        assert body.velocity[2] == pytest.approx(0.1)
        # Semi-implicit: position uses the new velocity
        assert body.position[2] == pytest.approx(0.01)
        assert np.allclose(body.force, 0.0)

    def test_force_at_point_creates_torque(self):
        body = RigidBody(RigidBodyConfig(angular_damping=0.0))
        body.add_force_at_point(np.array([1000.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]))
        body.integrate(0.01)
        # +x force ahead of the CG yaws the body towards +x
        assert body.angular_velocity[1] > 0.0

    def test_orientation_stays_normalized(self):
        body = RigidBody()
        body.angular_velocity = np.array([3.0, 5.0, -2.0])
        for _ in range(1000):
            body.integrate(1.0 / 120.0)
        assert body.quaternion_error() < 1e-9

    def test_impulse_changes_velocity_immediately(self):
        body = RigidBody(RigidBodyConfig(mass=500.0))
        body.apply_impulse_at_point(np.array([0.0, 0.0, 1000.0]), body.position)
        assert body.velocity[2] == pytest.approx(2.0)
        assert np.allclose(body.angular_velocity, 0.0)

    def test_static_body_never_moves(self):
        body = RigidBody(RigidBodyConfig(is_static=True))
        body.add_force(np.array([1e6, 0.0, 0.0]))
        body.apply_impulse_at_point(np.array([1e6, 0.0, 0.0]), np.zeros(3))
        body.integrate(0.1)
        assert np.allclose(body.position, 0.0)
        assert np.allclose(body.velocity, 0.0)

    def test_body_falls_asleep_and_wakes(self):
        body = RigidBody(RigidBodyConfig(sleep_time=0.1))
        for _ in range(30):
            body.integrate(0.01)
        assert body.asleep

        # Forces on a sleeping body are discarded until woken
        body.add_force(np.array([0.0, 0.0, 1e5]))
        body.integrate(0.01)
        assert np.allclose(body.velocity, 0.0)

        body.wake()
        body.add_force(np.array([0.0, 0.0, 1e5]))
        body.integrate(0.01)
        assert not body.asleep
        assert body.velocity[2] > 0.0

    def test_non_finite_state_detected(self):
        body = RigidBody()
        assert body.is_finite()
        body.velocity = np.array([np.nan, 0.0, 0.0])
        assert not body.is_finite()

    def test_state_round_trip(self):
        body = RigidBody()
        body.velocity = np.array([1.0, 2.0, 3.0])
        body.angular_velocity = np.array([0.1, 0.2, 0.3])
        body.integrate(0.01)
        state = body.export_state()

        other = RigidBody()
        other.import_state(state)
        assert other.export_state() == state

    def test_kinetic_energy(self):
        body = RigidBody(RigidBodyConfig(mass=2.0, inertia=(1.0, 1.0, 1.0)))
        body.velocity = np.array([3.0, 0.0, 0.0])
        assert body.kinetic_energy() == pytest.approx(9.0)


class TestCollision:
    """Test contact generation and resolution."""

    def _body_at(self, position, velocity=(0.0, 0.0, 0.0)):
        body = RigidBody()
        body.reset(np.array(position, dtype=float))
        body.velocity = np.array(velocity, dtype=float)
        return body

    def test_ground_contact_found_for_sunk_box(self):
        resolver = CollisionResolver(CollisionConfig())
        world = FlatWorld()
        # Box bottom sits at y = center_offset - half_extent = -0.25 below the CG
        body = self._body_at((0.0, 0.1, 0.0), velocity=(0.0, -2.0, 0.0))

        contacts = resolver.detect(body, [], world.ground_at)
        assert len(contacts) == 1
        assert contacts[0].penetration == pytest.approx(0.15)

        events = resolver.resolve(body, contacts)
        assert events[0].kind == "ground"
        assert events[0].impulse > 0.0
        # Corner impulse slows the fall and pitches the body
        assert -2.0 < body.velocity[1]
        assert np.linalg.norm(body.angular_velocity) > 0.0
        # Positional correction lifted the body
        assert body.position[1] > 0.1

    def test_no_contact_when_clear(self):
        resolver = CollisionResolver()
        body = self._body_at((0.0, 1.0, 0.0))
        barrier = Obstacle(position=(10.0, 1.0, 0.0), radius=0.5)
        assert resolver.detect(body, [barrier], FlatWorld().ground_at) == []

    def test_sphere_obstacle_pushes_body_back(self):
        resolver = CollisionResolver()
        # Sphere just ahead of the front bumper, car driving into it
        body = self._body_at((0.0, 1.0, 0.0), velocity=(0.0, 0.0, 10.0))
        post = Obstacle(position=(0.0, 1.2, 2.5), radius=0.5, kind="post")

        contacts = resolver.detect(body, [post])
        assert len(contacts) == 1
        assert contacts[0].normal[2] < 0.0

        events = resolver.resolve(body, contacts)
        assert events[0].kind == "post"
        assert body.velocity[2] < 10.0

    def test_box_obstacle_contact(self):
        resolver = CollisionResolver()
        body = self._body_at((0.0, 1.0, 0.0), velocity=(-5.0, 0.0, 0.0))
        wall = Obstacle(position=(-1.5, 1.0, 0.0), half_extents=(0.7, 2.0, 10.0), kind="wall")

        contacts = resolver.detect(body, [wall])
        assert len(contacts) == 1
        assert contacts[0].normal[0] == pytest.approx(1.0)
        resolver.resolve(body, contacts)
        assert body.velocity[0] > -5.0

    def test_narrow_box_between_corners_is_detected(self):
        """A post narrower than the car touches no corner but still collides."""
        resolver = CollisionResolver()
        body = self._body_at((0.0, 1.0, 0.0), velocity=(0.0, 0.0, 10.0))
        post = Obstacle(position=(0.0, 1.0, 2.3), half_extents=(0.2, 1.0, 0.2), kind="post")
        assert not any(np.all(np.abs(corner - np.array(post.position)) < post.half_extents)
                       for corner in resolver.box_corners(body))

        contacts = resolver.detect(body, [post])
        assert len(contacts) == 1
        assert contacts[0].normal[2] == pytest.approx(-1.0)
        assert contacts[0].penetration == pytest.approx(0.1)
        assert contacts[0].point[2] == pytest.approx(2.2)

        resolver.resolve(body, contacts)
        assert body.velocity[2] < 10.0

    def test_box_clear_along_one_axis_has_no_contact(self):
        resolver = CollisionResolver()
        body = self._body_at((0.0, 1.0, 0.0))
        # Beside the car: overlaps along y and z but not x
        post = Obstacle(position=(1.2, 1.0, 0.0), half_extents=(0.2, 1.0, 0.2))
        assert resolver.detect(body, [post]) == []

    def test_separating_contact_applies_no_impulse(self):
        resolver = CollisionResolver()
        body = self._body_at((0.0, 0.1, 0.0), velocity=(0.0, 1.0, 0.0))
        contacts = resolver.detect(body, [], FlatWorld().ground_at)
        events = resolver.resolve(body, contacts)
        assert events[0].impulse == 0.0
        assert body.velocity[1] == pytest.approx(1.0)

    def test_dynamic_obstacle_shares_impulse(self):
        """A light movable obstacle absorbs less of the car's momentum."""
        heavy = CollisionResolver()
        body_static = self._body_at((0.0, 1.0, 0.0), velocity=(0.0, 0.0, 10.0))
        fixed = Obstacle(position=(0.0, 1.2, 2.5), radius=0.5)
        heavy.resolve(body_static, heavy.detect(body_static, [fixed]))

        body_dynamic = self._body_at((0.0, 1.0, 0.0), velocity=(0.0, 0.0, 10.0))
        cone = Obstacle(position=(0.0, 1.2, 2.5), radius=0.5, mass=5.0)
        heavy.resolve(body_dynamic, heavy.detect(body_dynamic, [cone]))

        assert body_dynamic.velocity[2] > body_static.velocity[2]
