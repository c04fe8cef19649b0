"""
World - Ground, obstacle and environment queries consumed by the vehicle.

Manages:
- Canonical surface kinds and their grip/rolling-resistance table
- World queries answering ground height/normal/surface at a point
- Obstacles near a point for collision
- Environment conditions (ambient temperature, altitude, wind)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple
import math
import re
import numpy as np

from vdc.physics.mathutils import lerp


class SurfaceKind(str, Enum):
    """Canonical ground surface kinds."""
    ASPHALT = "asphalt"
    WET_ASPHALT = "wet_asphalt"
    CONCRETE = "concrete"
    GRAVEL = "gravel"
    DIRT = "dirt"
    GRASS = "grass"
    ICE = "ice"
    SNOW = "snow"

    @classmethod
    def parse(cls, value: "SurfaceKind | str") -> "SurfaceKind":
        """Normalize an external surface name.

        Accepts 'asphalt', 'ASPHALT', 'WetAsphalt', 'wet-asphalt',
        'wet asphalt' and similar spellings.

        Raises:
            ValueError: If the name matches no surface kind
        """
        if isinstance(value, SurfaceKind):
            return value
        text = str(value).strip()
        text = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", text)
        text = re.sub(r"[\s\-]+", "_", text).lower()
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown surface kind: {value!r}") from None


@dataclass(frozen=True)
class SurfaceProperties:
    """Grip and rolling resistance of one surface kind."""
    dry_grip: float
    wet_grip: float
    rolling_resistance: float


SURFACE_TABLE = {
    SurfaceKind.ASPHALT: SurfaceProperties(1.0, 0.7, 0.015),
    SurfaceKind.WET_ASPHALT: SurfaceProperties(0.7, 0.7, 0.015),
    SurfaceKind.CONCRETE: SurfaceProperties(0.95, 0.65, 0.012),
    SurfaceKind.GRAVEL: SurfaceProperties(0.6, 0.5, 0.04),
    SurfaceKind.DIRT: SurfaceProperties(0.5, 0.35, 0.05),
    SurfaceKind.GRASS: SurfaceProperties(0.4, 0.3, 0.08),
    SurfaceKind.ICE: SurfaceProperties(0.1, 0.05, 0.01),
    SurfaceKind.SNOW: SurfaceProperties(0.25, 0.2, 0.03),
}


def surface_grip(kind: SurfaceKind, wetness: float = 0.0) -> float:
    """Grip multiplier for a surface, blended dry to wet by wetness."""
    props = SURFACE_TABLE[kind]
    return lerp(props.dry_grip, props.wet_grip, min(max(wetness, 0.0), 1.0))


def rolling_resistance(kind: SurfaceKind) -> float:
    """Rolling resistance coefficient for a surface."""
    return SURFACE_TABLE[kind].rolling_resistance


@dataclass(frozen=True)
class GroundSample:
    """Result of a ground query at one point."""
    height: float
    normal: Tuple[float, float, float] = (0.0, 1.0, 0.0)
    surface: SurfaceKind = SurfaceKind.ASPHALT
    wetness: float = 0.0


@dataclass(frozen=True)
class Obstacle:
    """Sphere or axis-aligned box obstacle.

    Static obstacles have mass None. Dynamic obstacles carry mass and
    velocity; the world owns their motion.
    """
    position: Tuple[float, float, float]
    radius: float = 0.0
    half_extents: Optional[Tuple[float, float, float]] = None
    mass: Optional[float] = None
    velocity: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    kind: str = "barrier"

    @property
    def is_box(self) -> bool:
        """Check if obstacle is a box."""
        return self.half_extents is not None

    @property
    def bounding_radius(self) -> float:
        """Radius of a sphere enclosing the obstacle."""
        if self.half_extents is not None:
            return float(np.linalg.norm(self.half_extents))
        return self.radius


@dataclass
class Environment:
    """Environmental conditions affecting the simulation."""
    # Temperature
    ambient_temp_c: float = 25.0

    # Air
    altitude_m: float = 0.0
    wind_speed_mps: float = 0.0
    wind_direction_rad: float = 0.0  # Direction the wind blows towards

    gravity: float = 9.81

    @property
    def air_density(self) -> float:
        """Air density in kg/m^3 from altitude and temperature."""
        return 1.225 * math.exp(-self.altitude_m / 8500.0) * (288.15 / (273.15 + self.ambient_temp_c))

    @property
    def wind_velocity(self) -> np.ndarray:
        """World-frame wind velocity vector."""
        return np.array([
            self.wind_speed_mps * math.sin(self.wind_direction_rad),
            0.0,
            self.wind_speed_mps * math.cos(self.wind_direction_rad),
        ])


class WorldQuery:
    """Interface the vehicle uses to query the world.

    Subclasses answer ground and obstacle queries. Returning None from
    ground_at means there is no ground below the point.
    """

    def __init__(self, environment: Environment | None = None):
        """Initialize world.

        Args:
            environment: Environment conditions. Uses defaults if None.
        """
        self.environment = environment or Environment()
        self.obstacles: List[Obstacle] = []

    def ground_at(self, x: float, z: float) -> Optional[GroundSample]:
        """Ground sample below (x, z), or None if there is no ground."""
        raise NotImplementedError

    def obstacles_near(self, x: float, z: float, radius: float) -> List[Obstacle]:
        """Obstacles whose bounds come within radius of (x, z)."""
        near = []
        for obstacle in self.obstacles:
            dx = obstacle.position[0] - x
            dz = obstacle.position[2] - z
            reach = radius + obstacle.bounding_radius
            if dx * dx + dz * dz <= reach * reach:
                near.append(obstacle)
        return near

    def add_obstacle(self, obstacle: Obstacle) -> None:
        """Add an obstacle to the world."""
        self.obstacles.append(obstacle)


class FlatWorld(WorldQuery):
    """Infinite flat ground of a single surface."""

    def __init__(
        self,
        surface: SurfaceKind | str = SurfaceKind.ASPHALT,
        height: float = 0.0,
        wetness: float = 0.0,
        environment: Environment | None = None,
    ):
        """Initialize flat world.

        Args:
            surface: Surface kind (any accepted spelling)
            height: Ground height in meters
            wetness: Surface wetness 0-1
            environment: Environment conditions
        """
        super().__init__(environment)
        self.surface = SurfaceKind.parse(surface)
        self.height = height
        self.wetness = wetness
        self._sample = GroundSample(height, (0.0, 1.0, 0.0), self.surface, wetness)

    def ground_at(self, x: float, z: float) -> Optional[GroundSample]:
        return self._sample


@dataclass(frozen=True)
class SurfacePatch:
    """Axis-aligned rectangle of a different surface."""
    min_x: float
    min_z: float
    max_x: float
    max_z: float
    surface: SurfaceKind
    wetness: float = 0.0

    def contains(self, x: float, z: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_z <= z <= self.max_z


class PatchWorld(FlatWorld):
    """Flat ground with rectangular patches of other surfaces.

    Later patches take precedence over earlier ones.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.patches: List[SurfacePatch] = []

    def add_patch(
        self,
        min_x: float,
        min_z: float,
        max_x: float,
        max_z: float,
        surface: SurfaceKind | str,
        wetness: float = 0.0,
    ) -> SurfacePatch:
        """Add a surface patch.

        Returns:
            The created patch
        """
        patch = SurfacePatch(min_x, min_z, max_x, max_z, SurfaceKind.parse(surface), wetness)
        self.patches.append(patch)
        return patch

    def ground_at(self, x: float, z: float) -> Optional[GroundSample]:
        for patch in reversed(self.patches):
            if patch.contains(x, z):
                return GroundSample(self.height, (0.0, 1.0, 0.0), patch.surface, patch.wetness)
        return self._sample


class EmptyWorld(WorldQuery):
    """World with no ground at all; every wheel is airborne."""

    def ground_at(self, x: float, z: float) -> Optional[GroundSample]:
        return None
