"""
Collision - Contact generation and impulse resolution for the vehicle body.

Provides:
- Oriented vehicle box against sphere obstacles, axis-aligned box
  obstacles (separating axes) and the ground
- Positional correction with slop
- Restitution impulse plus Coulomb-clamped friction impulse at the
  contact point, against static or dynamic obstacles
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Callable
import numpy as np

from vdc.physics.rigid_body import RigidBody

# Edge axes must beat a face axis by this factor to be chosen
EDGE_AXIS_BIAS = 1.05


@dataclass
class CollisionConfig:
    """Collision shape and response configuration."""
    # Vehicle box, body frame (x left, y up, z forward)
    half_extents: Tuple[float, float, float] = (0.9, 0.45, 2.2)
    center_offset: Tuple[float, float, float] = (0.0, 0.2, 0.0)

    # Response
    restitution: float = 0.3
    friction: float = 0.5
    position_correction: float = 0.2   # Fraction of penetration removed per step
    slop: float = 0.01                 # Penetration allowed without correction

    collide_with_ground: bool = True


@dataclass
class Contact:
    """Contact between the vehicle and something else.

    The normal points away from the other object, towards the vehicle.
    """
    point: np.ndarray
    normal: np.ndarray
    penetration: float
    obstacle: Optional[object] = None   # None for ground contacts


@dataclass(frozen=True)
class CollisionEvent:
    """Resolved contact, reported in telemetry."""
    point: Tuple[float, float, float]
    normal: Tuple[float, float, float]
    penetration: float
    impulse: float
    kind: str


class CollisionResolver:
    """Detects and resolves contacts for a single rigid body."""

    def __init__(self, config: CollisionConfig | None = None):
        """Initialize resolver.

        Args:
            config: Collision configuration. Uses defaults if None.
        """
        self.config = config or CollisionConfig()
        self._half = np.array(self.config.half_extents, dtype=float)
        self._offset = np.array(self.config.center_offset, dtype=float)
        self._signs = np.array([
            [sx, sy, sz]
            for sx in (-1.0, 1.0)
            for sy in (-1.0, 1.0)
            for sz in (-1.0, 1.0)
        ])
        self._local_corners = self._signs * self._half + self._offset

    @property
    def bounding_radius(self) -> float:
        """Radius of a sphere enclosing the vehicle box."""
        return float(np.linalg.norm(self._half) + np.linalg.norm(self._offset))

    def box_corners(self, body: RigidBody) -> List[np.ndarray]:
        """World positions of the eight vehicle box corners."""
        return [body.point_to_world(corner) for corner in self._local_corners]

    def detect(
        self,
        body: RigidBody,
        obstacles: List[object],
        ground_at: Callable[[float, float], object] | None = None,
    ) -> List[Contact]:
        """Generate contacts for the current body pose.

        Args:
            body: Vehicle body
            obstacles: Obstacles near the vehicle
            ground_at: Ground query (x, z) -> sample or None

        Returns:
            List of contacts, at most one per obstacle and one for ground
        """
        contacts = []
        for obstacle in obstacles:
            if obstacle.half_extents is not None:
                contact = self._box_contact(body, obstacle)
            else:
                contact = self._sphere_contact(body, obstacle)
            if contact is not None:
                contacts.append(contact)

        if ground_at is not None and self.config.collide_with_ground:
            contact = self._ground_contact(body, ground_at)
            if contact is not None:
                contacts.append(contact)
        return contacts

    def _sphere_contact(self, body: RigidBody, obstacle) -> Optional[Contact]:
        """Closest point on the vehicle box to the sphere centre."""
        center = np.array(obstacle.position, dtype=float)
        local = body.world_to_local(center - body.position) - self._offset
        closest = np.clip(local, -self._half, self._half)
        delta = local - closest
        distance = float(np.linalg.norm(delta))

        if distance < 1e-9:
            # Centre inside the box: push out along the shallowest axis
            depths = self._half - np.abs(local)
            axis = int(np.argmin(depths))
            normal_local = np.zeros(3)
            normal_local[axis] = -1.0 if local[axis] >= 0.0 else 1.0
            penetration = float(depths[axis]) + obstacle.radius
            point = center
        elif distance < obstacle.radius:
            normal_local = -delta / distance
            penetration = obstacle.radius - distance
            point = body.point_to_world(closest + self._offset)
        else:
            return None

        return Contact(point, body.local_to_world(normal_local), penetration, obstacle)

    def _box_contact(self, body: RigidBody, obstacle) -> Optional[Contact]:
        """Separating-axis test of the vehicle box against an axis-aligned box.

        Tests the three world axes, the three vehicle axes and their nine
        cross products. The axis of least overlap gives the normal and the
        penetration depth, so a post narrower than the car is caught even
        when no vehicle corner is inside it.
        """
        center = np.array(obstacle.position, dtype=float)
        half = np.array(obstacle.half_extents, dtype=float)
        body_axes = body.rotation_matrix.T
        delta = body.point_to_world(self._offset) - center

        candidates = [(axis, "obstacle") for axis in np.eye(3)]
        candidates += [(axis, "vehicle") for axis in body_axes]
        for world_axis in np.eye(3):
            for body_axis in body_axes:
                cross = np.cross(world_axis, body_axis)
                length = float(np.linalg.norm(cross))
                if length > 1e-6:
                    candidates.append((cross / length, "edge"))

        best = None
        best_score = np.inf
        for axis, kind in candidates:
            reach = float(np.abs(body_axes @ axis) @ self._half + np.abs(axis) @ half)
            distance = float(np.dot(delta, axis))
            depth = reach - abs(distance)
            if depth <= 0.0:
                return None
            # Face axes win near-ties against edge axes
            score = depth * EDGE_AXIS_BIAS if kind == "edge" else depth
            if score < best_score:
                best_score = score
                normal = axis if distance >= 0.0 else -axis
                best = (normal, depth, kind)

        normal, depth, kind = best
        point = self._box_contact_point(body, center, half, normal, kind)
        return Contact(point, normal, depth, obstacle)

    def _box_contact_point(self, body, center, half, normal, kind) -> np.ndarray:
        """Contact point for a box overlap along the given normal."""
        corners = np.array(self.box_corners(body))
        heights = corners @ normal
        vehicle_point = corners[heights <= heights.min() + 1e-3].mean(axis=0)
        if kind == "obstacle":
            return np.clip(vehicle_point, center - half, center + half)

        obstacle_corners = center + self._signs * half
        heights = obstacle_corners @ normal
        obstacle_point = obstacle_corners[heights >= heights.max() - 1e-3].mean(axis=0)
        if kind == "vehicle":
            local = body.world_to_local(obstacle_point - body.position) - self._offset
            local = np.clip(local, -self._half, self._half)
            return body.point_to_world(local + self._offset)
        return 0.5 * (vehicle_point + obstacle_point)

    def _ground_contact(self, body: RigidBody, ground_at) -> Optional[Contact]:
        """Deepest vehicle corner below the ground."""
        best = None
        for corner in self.box_corners(body):
            sample = ground_at(float(corner[0]), float(corner[2]))
            if sample is None:
                continue
            depth = sample.height - float(corner[1])
            if depth > 0.0 and (best is None or depth > best.penetration):
                best = Contact(corner, np.array(sample.normal, dtype=float), depth, None)
        return best

    def resolve(self, body: RigidBody, contacts: List[Contact]) -> List[CollisionEvent]:
        """Apply positional correction and impulses for each contact.

        Args:
            body: Vehicle body
            contacts: Contacts from detect()

        Returns:
            One event per contact with the applied impulse magnitude
        """
        events = []
        for contact in contacts:
            events.append(self._resolve_contact(body, contact))
        return events

    def _resolve_contact(self, body: RigidBody, contact: Contact) -> CollisionEvent:
        normal = contact.normal
        obstacle = contact.obstacle

        correction = self.config.position_correction * max(contact.penetration - self.config.slop, 0.0)
        if correction > 0.0:
            body.translate(normal * correction)

        other_inverse_mass = 0.0
        other_velocity = np.zeros(3)
        if obstacle is not None and obstacle.mass:
            other_inverse_mass = 1.0 / obstacle.mass
            other_velocity = np.array(obstacle.velocity, dtype=float)

        r = contact.point - body.position
        relative = body.point_velocity(contact.point) - other_velocity
        normal_speed = float(np.dot(relative, normal))

        total_impulse = 0.0
        if normal_speed < 0.0:
            inv_inertia = body.inverse_inertia_world()
            k_normal = (
                body.inverse_mass
                + other_inverse_mass
                + float(np.dot(np.cross(inv_inertia @ np.cross(r, normal), r), normal))
            )
            j = -(1.0 + self.config.restitution) * normal_speed / k_normal
            body.apply_impulse_at_point(normal * j, contact.point)

            # Friction along the remaining sliding direction
            relative = body.point_velocity(contact.point) - other_velocity
            tangent_velocity = relative - np.dot(relative, normal) * normal
            tangent_speed = float(np.linalg.norm(tangent_velocity))
            jt = 0.0
            if tangent_speed > 1e-9:
                tangent = tangent_velocity / tangent_speed
                k_tangent = (
                    body.inverse_mass
                    + other_inverse_mass
                    + float(np.dot(np.cross(inv_inertia @ np.cross(r, tangent), r), tangent))
                )
                jt = min(tangent_speed / k_tangent, self.config.friction * j)
                body.apply_impulse_at_point(-tangent * jt, contact.point)
            total_impulse = float(np.hypot(j, jt))

        kind = "ground" if obstacle is None else obstacle.kind
        return CollisionEvent(
            point=tuple(float(v) for v in contact.point),
            normal=tuple(float(v) for v in normal),
            penetration=float(contact.penetration),
            impulse=total_impulse,
            kind=kind,
        )
