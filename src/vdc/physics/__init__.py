"""
Physics module - Rigid body dynamics and collision.

This module contains:
- RigidBody: 6-DOF body with semi-implicit Euler integration and sleeping
- CollisionResolver: Ground and obstacle contacts for the chassis box
- mathutils: Scalar helpers and (x, y, z, w) quaternions
"""

from vdc.physics.rigid_body import RigidBody, RigidBodyConfig
from vdc.physics.collision import CollisionResolver, CollisionConfig, CollisionEvent, Contact

__all__ = [
    "RigidBody",
    "RigidBodyConfig",
    "CollisionResolver",
    "CollisionConfig",
    "CollisionEvent",
    "Contact",
]
