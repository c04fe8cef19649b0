"""
Driver inputs - Raw control values and their per-step conditioning.

Provides:
- DriverInputs: raw values delivered by the input source each step
- ConditionedInputs: clamped, smoothed, edge-detected targets
- InputConditioner: converts one into the other
"""

from dataclasses import dataclass
import math

from vdc.physics.mathutils import clamp, damp


@dataclass
class DriverInputs:
    """Raw inputs from the input source.

    Button fields are levels; the conditioner turns them into one-shot
    edges.
    """
    throttle: float = 0.0      # 0.0 to 1.0
    brake: float = 0.0         # 0.0 to 1.0
    steer: float = 0.0         # -1.0 (right) to 1.0 (left)
    handbrake: bool = False
    clutch: float = 0.0        # Pedal, 0.0 released to 1.0 fully pressed
    shift_up: bool = False
    shift_down: bool = False
    reset: bool = False


@dataclass
class ConditionedInputs:
    """Per-step targets consumed by the vehicle subsystems."""
    throttle: float = 0.0
    brake: float = 0.0
    steer: float = 0.0
    handbrake: bool = False
    clutch: float = 0.0
    shift_up: bool = False
    shift_down: bool = False
    reset: bool = False


@dataclass
class InputConfig:
    """Input conditioning configuration."""
    steering_smoothing: float = 0.15   # Time constant in seconds


class InputConditioner:
    """Clamps, smooths and edge-detects driver inputs."""

    def __init__(self, config: InputConfig | None = None):
        """Initialize conditioner.

        Args:
            config: Conditioning configuration. Uses defaults if None.
        """
        self.config = config or InputConfig()
        self._steer: float = 0.0
        self._shift_up_held: bool = False
        self._shift_down_held: bool = False
        self._reset_held: bool = False

    @property
    def smoothed_steer(self) -> float:
        """Current smoothed steering value."""
        return self._steer

    def update(self, raw: DriverInputs, dt: float) -> ConditionedInputs:
        """Condition one step of raw inputs.

        Any NaN value yields a neutral input for this step. Never raises.

        Args:
            raw: Raw inputs from the input source
            dt: Time step in seconds

        Returns:
            Conditioned inputs
        """
        values = (raw.throttle, raw.brake, raw.steer, raw.clutch)
        if any(math.isnan(float(v)) for v in values):
            return ConditionedInputs()

        self._steer = damp(self._steer, clamp(float(raw.steer), -1.0, 1.0), self.config.steering_smoothing, dt)

        shift_up = bool(raw.shift_up) and not self._shift_up_held
        shift_down = bool(raw.shift_down) and not self._shift_down_held
        reset = bool(raw.reset) and not self._reset_held
        self._shift_up_held = bool(raw.shift_up)
        self._shift_down_held = bool(raw.shift_down)
        self._reset_held = bool(raw.reset)

        return ConditionedInputs(
            throttle=clamp(float(raw.throttle), 0.0, 1.0),
            brake=clamp(float(raw.brake), 0.0, 1.0),
            steer=self._steer,
            handbrake=bool(raw.handbrake),
            clutch=clamp(float(raw.clutch), 0.0, 1.0),
            shift_up=shift_up,
            shift_down=shift_down,
            reset=reset,
        )

    def latch(self, raw: DriverInputs) -> None:
        """Record button levels without producing edges."""
        self._shift_up_held = bool(raw.shift_up)
        self._shift_down_held = bool(raw.shift_down)
        self._reset_held = bool(raw.reset)

    def reset(self) -> None:
        """Reset conditioner to initial state."""
        self._steer = 0.0
        self._shift_up_held = False
        self._shift_down_held = False
        self._reset_held = False

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "steer": self._steer,
            "shift_up_held": self._shift_up_held,
            "shift_down_held": self._shift_down_held,
            "reset_held": self._reset_held,
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self._steer = float(state["steer"])
        self._shift_up_held = bool(state["shift_up_held"])
        self._shift_down_held = bool(state["shift_down_held"])
        self._reset_held = bool(state["reset_held"])
