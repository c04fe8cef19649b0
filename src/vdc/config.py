"""
Vehicle configuration - The record a Vehicle is built from.

Provides:
- VehicleConfig aggregating geometry and every subsystem configuration
- Loading from a plain mapping (camelCase or snake_case keys) or YAML
- Validation that reports every problem at once
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple
import logging
import re

import yaml

from vdc.errors import ConfigInvalidError
from vdc.physics.collision import CollisionConfig
from vdc.vehicle.aero import AeroConfig
from vdc.vehicle.brakes import BrakeConfig
from vdc.vehicle.drivetrain import DrivetrainConfig
from vdc.vehicle.engine import EngineConfig
from vdc.vehicle.steering import SteeringConfig
from vdc.vehicle.suspension import SuspensionConfig
from vdc.vehicle.tires import TireConfig

logger = logging.getLogger(__name__)

CORNER_NAMES = ("FL", "FR", "RL", "RR")

# Record keys whose snake_case form differs from the field name
_ALIASES: Dict[type, Dict[str, str]] = {
    DrivetrainConfig: {"shift_time_seconds": "shift_time"},
    BrakeConfig: {"fade_start": "fade_start_c", "fade_full": "fade_full_c"},
}

# Top-level record keys that belong to the aero block
_AERO_KEYS = {
    "frontal_area": "frontal_area",
    "drag_coefficient": "drag_coefficient",
    "lift_coefficient": "lift_coefficient",
    "downforce_distribution": "downforce_distribution",
}


def _snake(name: str) -> str:
    """camelCase / PascalCase / acronym-suffixed key to snake_case."""
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.lower()


def _plain(value: Any) -> Any:
    """Convert dataclass output into YAML/JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _build(cls: type, record: Any, path: str, problems: List[str]) -> Any:
    """Build a config dataclass from a mapping, collecting problems.

    Nested dataclass fields are built recursively; list values given for
    tuple defaults are converted to tuples.
    """
    if isinstance(record, cls):
        return record
    if not isinstance(record, Mapping):
        problems.append(f"{path} must be a mapping")
        return cls()

    known = {f.name: f for f in fields(cls)}
    aliases = _ALIASES.get(cls, {})
    defaults = cls()
    kwargs = {}
    for key, value in record.items():
        name = key if key in known else aliases.get(_snake(key), _snake(key))
        if name not in known:
            problems.append(f"{path}.{key} is not a recognized option")
            continue
        current = getattr(defaults, name)
        if is_dataclass(current):
            kwargs[name] = _build(type(current), value, f"{path}.{key}", problems)
        elif name == "torque_curve":
            kwargs[name] = _torque_curve(value, f"{path}.{key}", problems)
        elif isinstance(current, tuple) and isinstance(value, (list, tuple)):
            kwargs[name] = tuple(float(v) for v in value)
        elif isinstance(current, list) and isinstance(value, (list, tuple)):
            kwargs[name] = list(value)
        else:
            kwargs[name] = value
    try:
        return cls(**kwargs)
    except ValueError as e:
        problems.append(f"{path}: {e}")
        return defaults


def _torque_curve(value: Any, path: str, problems: List[str]) -> List[Tuple[float, float]]:
    """Torque curve from [[rpm, multiplier], ...] or [{rpm, multiplier}, ...]."""
    points = []
    for index, point in enumerate(value or []):
        if isinstance(point, Mapping):
            rpm = point.get("rpm", point.get("RPM"))
            multiplier = point.get("multiplier", point.get("torque"))
        elif isinstance(point, (list, tuple)) and len(point) == 2:
            rpm, multiplier = point
        else:
            rpm = multiplier = None
        if rpm is None or multiplier is None:
            problems.append(f"{path}[{index}] must be an (rpm, multiplier) pair")
            continue
        points.append((float(rpm), float(multiplier)))
    return points


def _inertia(value: Any, path: str, problems: List[str]) -> Tuple[float, float, float]:
    if isinstance(value, Mapping):
        try:
            return (float(value["Ixx"]), float(value["Iyy"]), float(value["Izz"]))
        except KeyError as e:
            problems.append(f"{path} is missing {e.args[0]}")
            return VehicleConfig.inertia
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return tuple(float(v) for v in value)
    problems.append(f"{path} must be {{Ixx, Iyy, Izz}} or a 3-element list")
    return VehicleConfig.inertia


def _suspension(value: Any, problems: List[str]) -> List[SuspensionConfig]:
    """Per-corner suspension from one block, front/rear blocks or corner blocks."""
    if isinstance(value, (list, tuple)):
        if len(value) != 4:
            problems.append("suspension list must have four corners (FL, FR, RL, RR)")
            return [SuspensionConfig() for _ in CORNER_NAMES]
        return [_build(SuspensionConfig, item, f"suspension[{i}]", problems) for i, item in enumerate(value)]
    if not isinstance(value, Mapping):
        problems.append("suspension must be a mapping or a list")
        return [SuspensionConfig() for _ in CORNER_NAMES]

    keys = set(value)
    if keys and keys <= set(CORNER_NAMES):
        return [
            _build(SuspensionConfig, value.get(name, {}), f"suspension.{name}", problems)
            for name in CORNER_NAMES
        ]
    if keys and keys <= {"front", "rear"}:
        front = _build(SuspensionConfig, value.get("front", {}), "suspension.front", problems)
        rear = _build(SuspensionConfig, value.get("rear", {}), "suspension.rear", problems)
        return [front, SuspensionConfig(**vars(front)), rear, SuspensionConfig(**vars(rear))]
    block = _build(SuspensionConfig, value, "suspension", problems)
    return [SuspensionConfig(**vars(block)) for _ in CORNER_NAMES]


@dataclass
class VehicleConfig:
    """Complete vehicle configuration.

    Default values describe a 1400 kg rear-drive road car. Geometry is
    fixed for the life of a Vehicle.
    """
    # Geometry in meters
    wheelbase: float = 2.7
    track_width: float = 1.6
    cg_height: float = 0.5
    cg_to_front: float = 1.2          # CG to front axle, rear is wheelbase - cg_to_front

    # Mass properties
    mass: float = 1400.0
    inertia: Tuple[float, float, float] = (2200.0, 2800.0, 600.0)   # Ixx pitch, Iyy yaw, Izz roll
    linear_damping: float = 0.01
    angular_damping: float = 0.05

    seed: int = 0

    engine: EngineConfig = field(default_factory=EngineConfig)
    drivetrain: DrivetrainConfig = field(default_factory=DrivetrainConfig)
    brakes: BrakeConfig = field(default_factory=BrakeConfig)
    steering: SteeringConfig = field(default_factory=SteeringConfig)
    suspension: List[SuspensionConfig] = field(default_factory=lambda: [SuspensionConfig() for _ in CORNER_NAMES])
    tire: TireConfig = field(default_factory=TireConfig)
    aero: AeroConfig = field(default_factory=AeroConfig)
    collision: CollisionConfig = field(default_factory=CollisionConfig)

    @property
    def cg_to_rear(self) -> float:
        """CG to rear axle distance in meters."""
        return self.wheelbase - self.cg_to_front

    def static_corner_loads(self, gravity: float = 9.81) -> List[float]:
        """Corner loads at rest on level ground (FL, FR, RL, RR) in N."""
        weight = self.mass * gravity
        front = 0.5 * weight * self.cg_to_rear / self.wheelbase
        rear = 0.5 * weight * self.cg_to_front / self.wheelbase
        return [front, front, rear, rear]

    def validate(self) -> None:
        """Check the whole configuration.

        Raises:
            ConfigInvalidError: listing every problem found
        """
        problems = []
        if self.mass <= 0:
            problems.append(f"mass must be positive, got {self.mass}")
        if len(self.inertia) != 3 or any(i <= 0 for i in self.inertia):
            problems.append("inertia components must be positive")
        if self.wheelbase <= 0:
            problems.append("wheelbase must be positive")
        if self.track_width <= 0:
            problems.append("track_width must be positive")
        if self.cg_height <= 0:
            problems.append("cg_height must be positive")
        if not 0 < self.cg_to_front < self.wheelbase:
            problems.append("cg_to_front must lie between the axles")
        if len(self.suspension) != 4:
            problems.append("suspension needs four corners")

        problems.extend(self.engine.validate())
        problems.extend(self.drivetrain.validate())
        problems.extend(self.brakes.validate())
        problems.extend(self.tire.validate())
        problems.extend(self.aero.validate())
        for name, corner in zip(CORNER_NAMES, self.suspension):
            problems.extend(corner.validate(f"suspension.{name}"))

        steering = self.steering
        if not 0 <= steering.ackermann <= 1:
            problems.append("steering.ackermann must be in [0, 1]")
        if steering.max_angle <= 0:
            problems.append("steering.max_angle must be positive")

        if problems:
            raise ConfigInvalidError(problems)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any] | None) -> "VehicleConfig":
        """Build a configuration from a plain record.

        Keys may be camelCase or snake_case. Aerodynamic keys may appear
        at the top level or in an ``aero`` block.

        Raises:
            ConfigInvalidError: on unknown keys or malformed values
        """
        record = dict(record or {})
        problems: List[str] = []
        top = {}
        aero = dict(record.pop("aero", {}) or {})
        suspension = record.pop("suspension", None)
        inertia = record.pop("inertia", None)

        for key, value in record.items():
            name = key if key in cls.__dataclass_fields__ else _snake(key)
            if name in _AERO_KEYS:
                aero[_AERO_KEYS[name]] = value
            else:
                top[key] = value

        config = _build(cls, top, "vehicle", problems)
        config.aero = _build(AeroConfig, aero, "aero", problems)
        if suspension is not None:
            config.suspension = _suspension(suspension, problems)
        if inertia is not None:
            config.inertia = _inertia(inertia, "inertia", problems)

        if problems:
            raise ConfigInvalidError(problems)
        return config

    @classmethod
    def from_yaml(cls, path: str | Path) -> "VehicleConfig":
        """Load a configuration record from a YAML file."""
        path = Path(path)
        with open(path) as f:
            record = yaml.safe_load(f) or {}
        config = cls.from_dict(record)
        logger.info(f"Loaded vehicle configuration from {path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Plain record that round-trips through from_dict."""
        record = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "suspension":
                record[f.name] = {name: _plain(vars(c)) for name, c in zip(CORNER_NAMES, value)}
            elif is_dataclass(value):
                record[f.name] = _plain(_asdict(value))
            else:
                record[f.name] = _plain(value)
        return record

    def to_yaml(self, path: str | Path) -> None:
        """Write the configuration record to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _asdict(obj: Any) -> Dict[str, Any]:
    """Shallow-recursive dataclass to dict that keeps enum members for _plain."""
    result = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        result[f.name] = _asdict(value) if is_dataclass(value) else value
    return result
