"""
Telemetry frame - Immutable end-of-tick snapshot for external readers.

Provides:
- Read-only nested view of vehicle telemetry
- Orchestrator status (degraded, halted, interpolation factor)
- Dotted-path lookup of individual values
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping


def _freeze(value: Any) -> Any:
    """Recursively convert dicts to read-only mappings and lists to tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class TelemetryFrame:
    """Telemetry published at the end of one orchestrator tick."""
    time: float
    step: int
    degraded: bool = False
    halted: bool = False
    interpolation_alpha: float = 0.0
    substeps: int = 0
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def capture(
        cls,
        telemetry: Dict[str, Any],
        degraded: bool = False,
        halted: bool = False,
        interpolation_alpha: float = 0.0,
        substeps: int = 0,
    ) -> "TelemetryFrame":
        """Freeze a vehicle telemetry dict into a frame."""
        return cls(
            time=float(telemetry.get("time", 0.0)),
            step=int(telemetry.get("step", 0)),
            degraded=degraded,
            halted=halted,
            interpolation_alpha=interpolation_alpha,
            substeps=substeps,
            data=_freeze(telemetry),
        )

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a value by dotted path, e.g. ``wheels.FL.slip_ratio``.

        Integer path parts index into sequences.
        """
        value: Any = self.data
        for part in path.split("."):
            if isinstance(value, Mapping) and part in value:
                value = value[part]
            elif isinstance(value, tuple) and part.lstrip("-").isdigit() and -len(value) <= int(part) < len(value):
                value = value[int(part)]
            else:
                return default
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Mutable deep copy of the frame."""
        return {
            "time": self.time,
            "step": self.step,
            "degraded": self.degraded,
            "halted": self.halted,
            "interpolation_alpha": self.interpolation_alpha,
            "substeps": self.substeps,
            "data": _thaw(self.data),
        }
