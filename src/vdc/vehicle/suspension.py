"""
Suspension component - Four spring/damper corners with anti-roll bars.

Simulates:
- Compression from chassis mount height over the ground
- Spring with static preload, progressive bump stop and droop stop
- Separate compression and rebound damping
- Anti-roll coupling between left and right corners of an axle
- Body pitch, roll and heave derived from corner compressions
"""

from dataclasses import dataclass
from typing import List, Optional
import math
import numpy as np

from vdc.physics.mathutils import clamp

FL, FR, RL, RR = 0, 1, 2, 3
OPPOSITE = (FR, FL, RR, RL)


@dataclass
class SuspensionConfig:
    """Configuration for one suspension corner.

    Travel is measured as the spring length between the chassis mount
    and the wheel centre: max_travel is full droop, min_travel is full
    bump. Angles are in radians.
    """
    # Spring and dampers
    spring_rate: float = 35000.0          # N/m
    compression_damping: float = 3500.0   # N*s/m
    rebound_damping: float = 4500.0       # N*s/m
    preload: Optional[float] = None       # N at rest position, None = static corner load

    # Travel
    max_travel: float = 0.15
    min_travel: float = 0.02
    rest_position: float = 0.5           # Compression at rest, 0-1

    # Anti-roll bar, N per unit of relative compression over track
    anti_roll_stiffness: float = 25000.0

    # Geometry
    static_camber: float = -0.01
    static_toe: float = 0.0
    caster: float = 0.1
    camber_gain: float = -0.02            # rad per unit compression

    @property
    def travel_range(self) -> float:
        """Usable travel in meters."""
        return self.max_travel - self.min_travel

    @property
    def rest_length(self) -> float:
        """Spring length at the rest position."""
        return self.max_travel - self.rest_position * self.travel_range

    def validate(self, name: str = "suspension") -> List[str]:
        """Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        problems = []
        if self.spring_rate <= 0:
            problems.append(f"{name}.spring_rate must be positive")
        if self.compression_damping < 0 or self.rebound_damping < 0:
            problems.append(f"{name} damping must be non-negative")
        if self.max_travel <= self.min_travel:
            problems.append(f"{name}.max_travel must exceed min_travel")
        if not 0 <= self.rest_position <= 1:
            problems.append(f"{name}.rest_position must be in [0, 1]")
        return problems


class SuspensionCorner:
    """One spring/damper corner."""

    def __init__(self, config: SuspensionConfig | None = None, static_load: float = 3433.0):
        """Initialize corner.

        Args:
            config: Corner configuration. Uses defaults if None.
            static_load: Corner load at rest, used when preload is None
        """
        self.config = config or SuspensionConfig()
        self.preload = self.config.preload if self.config.preload is not None else static_load
        self.reset()

    def reset(self) -> None:
        """Reset corner to its rest position."""
        self.compression: float = self.config.rest_position
        self.velocity: float = 0.0
        self.force: float = 0.0
        self.on_ground: bool = True
        self.bump_stop: bool = False
        self.droop_stop: bool = False
        self._raw_compression: float = self.config.rest_position

    @property
    def camber(self) -> float:
        """Dynamic camber in radians."""
        cfg = self.config
        return cfg.static_camber + cfg.camber_gain * (self.compression - cfg.rest_position)

    def set_length(self, length: Optional[float], dt: float) -> None:
        """Update compression from the current spring length.

        Args:
            length: Mount-to-wheel-centre length in meters, None without ground
            dt: Time step in seconds
        """
        cfg = self.config
        previous = self.compression
        if length is None or length > cfg.max_travel:
            self.on_ground = False
            self._raw_compression = 0.0
            self.compression = 0.0
        else:
            self.on_ground = True
            self._raw_compression = (cfg.max_travel - length) / cfg.travel_range
            self.compression = clamp(self._raw_compression, 0.0, 1.0)
        self.velocity = (self.compression - previous) * cfg.travel_range / dt

    def compute_force(self, opposite_compression: float, track_width: float, damage: float = 0.0) -> float:
        """Spring, damper, stops and anti-roll force on the tire.

        Args:
            opposite_compression: Compression of the other corner on the axle
            track_width: Axle track in meters
            damage: Corner damage 0-1

        Returns:
            Normal load in N, never negative
        """
        if not self.on_ground:
            self.force = 0.0
            self.bump_stop = False
            self.droop_stop = False
            return 0.0

        cfg = self.config
        travel = cfg.travel_range
        s = self.compression
        raw = self._raw_compression

        force = cfg.spring_rate * (s - cfg.rest_position) * travel + self.preload

        self.bump_stop = raw >= 0.98
        if self.bump_stop:
            force += 5.0 * cfg.spring_rate * (raw - 0.98) * travel
        self.droop_stop = s <= 0.02
        if self.droop_stop:
            force -= 2.0 * cfg.spring_rate * (0.02 - s) * travel

        damping = cfg.compression_damping if self.velocity > 0.0 else cfg.rebound_damping
        force += damping * self.velocity

        force += cfg.anti_roll_stiffness * (s - opposite_compression) * travel / track_width

        force *= 1.0 - 0.3 * damage
        self.force = max(0.0, force)
        return self.force

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "compression": self.compression,
            "raw_compression": self._raw_compression,
            "velocity": self.velocity,
            "force": self.force,
            "on_ground": self.on_ground,
            "bump_stop": self.bump_stop,
            "droop_stop": self.droop_stop,
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self.compression = float(state["compression"])
        self._raw_compression = float(state["raw_compression"])
        self.velocity = float(state["velocity"])
        self.force = float(state["force"])
        self.on_ground = bool(state["on_ground"])
        self.bump_stop = bool(state["bump_stop"])
        self.droop_stop = bool(state["droop_stop"])


class Suspension:
    """Four suspension corners (FL, FR, RL, RR).

    Calculates:
    - Normal load per corner
    - Body pitch, roll and heave from compressions
    """

    def __init__(
        self,
        corners: List[SuspensionConfig] | None = None,
        static_loads: List[float] | None = None,
        wheelbase: float = 2.7,
        track_width: float = 1.6,
        rng: np.random.Generator | None = None,
    ):
        """Initialize suspension.

        Args:
            corners: Per-corner configurations. Uses defaults if None.
            static_loads: Per-corner loads at rest in N
            wheelbase: Distance between axles in meters
            track_width: Track width in meters
            rng: Random generator for damage noise
        """
        configs = corners or [SuspensionConfig() for _ in range(4)]
        loads = static_loads or [3433.0] * 4
        self.corners = [SuspensionCorner(configs[i], loads[i]) for i in range(4)]
        self.wheelbase = wheelbase
        self.track_width = track_width
        self.rng = rng or np.random.default_rng(0)
        self.damage: List[float] = [0.0, 0.0, 0.0, 0.0]

    def reset(self) -> None:
        """Reset all corners to rest."""
        for corner in self.corners:
            corner.reset()
        self.damage = [0.0, 0.0, 0.0, 0.0]

    @property
    def compressions(self) -> List[float]:
        """Compression per corner 0-1."""
        return [corner.compression for corner in self.corners]

    @property
    def forces(self) -> List[float]:
        """Normal load per corner in N."""
        return [corner.force for corner in self.corners]

    @property
    def pitch(self) -> float:
        """Chassis pitch from compressions in rad, positive nose down."""
        travel = self.corners[FL].config.travel_range
        front = 0.5 * (self.corners[FL].compression + self.corners[FR].compression)
        rear = 0.5 * (self.corners[RL].compression + self.corners[RR].compression)
        return math.atan((front - rear) * travel / self.wheelbase)

    @property
    def roll(self) -> float:
        """Chassis roll from compressions in rad, positive left side down."""
        travel = self.corners[FL].config.travel_range
        left = 0.5 * (self.corners[FL].compression + self.corners[RL].compression)
        right = 0.5 * (self.corners[FR].compression + self.corners[RR].compression)
        return math.atan((left - right) * travel / self.track_width)

    @property
    def heave(self) -> float:
        """Average compression displacement in meters."""
        return sum(c.compression * c.config.travel_range for c in self.corners) / 4.0

    def update(self, dt: float, lengths: List[Optional[float]]) -> List[float]:
        """Update all corners for one time step.

        Args:
            dt: Time step in seconds
            lengths: Spring length per corner, None where there is no ground

        Returns:
            Normal load per corner in N
        """
        for corner, length in zip(self.corners, lengths):
            corner.set_length(length, dt)

        loads = []
        for index, corner in enumerate(self.corners):
            opposite = self.corners[OPPOSITE[index]].compression
            load = corner.compute_force(opposite, self.track_width, self.damage[index])
            if self.damage[index] > 0.3 and load > 0.0:
                load = max(0.0, load * (1.0 + 0.02 * self.damage[index] * float(self.rng.standard_normal())))
                corner.force = load
            loads.append(load)
        return loads

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "corners": [corner.export_state() for corner in self.corners],
            "damage": list(self.damage),
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        for corner, corner_state in zip(self.corners, state["corners"]):
            corner.import_state(corner_state)
        self.damage = [float(v) for v in state["damage"]]

    def get_state(self) -> dict:
        """Get current suspension state for telemetry.

        Returns:
            Dictionary containing suspension state values
        """
        return {
            "compression": self.compressions,
            "velocity_mps": [c.velocity for c in self.corners],
            "force_n": self.forces,
            "bump_stop": [c.bump_stop for c in self.corners],
            "pitch_rad": self.pitch,
            "roll_rad": self.roll,
            "heave_m": self.heave,
        }
