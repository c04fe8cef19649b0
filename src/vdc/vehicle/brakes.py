"""
Brakes component - Disc brakes with thermal fade, wear and ABS.

Simulates:
- Pedal force split by front/rear bias
- Handbrake on the rear axle
- Disc temperature, fade and pad wear per wheel
- ABS slip-threshold activation with hysteresis and fixed-frequency
  release/apply cycling
- Damage derating
"""

from dataclasses import dataclass
from typing import List
import logging
import math

from vdc.physics.mathutils import clamp, lerp, inverse_lerp

logger = logging.getLogger(__name__)


@dataclass
class BrakeConfig:
    """Configuration for the brake system."""
    # Force
    max_force: float = 70000.0       # Total clamp force at full pedal in N
    bias: float = 0.65               # Front share 0.3-0.8
    pad_friction: float = 0.45
    front_disc_radius: float = 0.175
    rear_disc_radius: float = 0.15
    handbrake_factor: float = 0.8

    # ABS
    abs_enabled: bool = True
    abs_threshold: float = 0.15      # Slip ratio that activates ABS
    abs_release: float = 0.10        # Slip ratio that deactivates ABS
    abs_frequency_hz: float = 20.0
    abs_release_scale: float = 0.3
    abs_apply_scale: float = 0.8

    # Thermal
    ambient_temp_c: float = 25.0
    heat_generation: float = 2e-4    # deg C per Joule of braking work
    heat_dissipation: float = 0.1    # 1/s
    max_temp_c: float = 800.0
    fade_start_c: float = 400.0
    fade_full_c: float = 600.0

    wear_rate: float = 1e-8

    def validate(self) -> List[str]:
        """Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        problems = []
        if self.max_force < 0:
            problems.append("brakes.max_force must be non-negative")
        if not 0.3 <= self.bias <= 0.8:
            problems.append("brakes.bias must be in [0.3, 0.8]")
        if self.abs_release >= self.abs_threshold:
            problems.append("brakes.abs_release must be below brakes.abs_threshold")
        if self.abs_frequency_hz <= 0:
            problems.append("brakes.abs_frequency_hz must be positive")
        if self.fade_start_c >= self.fade_full_c:
            problems.append("brakes.fade_start_c must be below brakes.fade_full_c")
        return problems


@dataclass
class WheelBrake:
    """Per-wheel brake state."""
    temperature: float = 25.0
    wear: float = 0.0
    damage: float = 0.0
    abs_active: bool = False
    force: float = 0.0
    torque: float = 0.0


class Brakes:
    """Four-wheel brake system with ABS.

    Wheel order is FL, FR, RL, RR.
    """

    def __init__(self, config: BrakeConfig | None = None):
        """Initialize brakes with optional custom configuration.

        Args:
            config: Brake configuration. Uses defaults if None.
        """
        self.config = config or BrakeConfig()
        self.wheels: List[WheelBrake] = []
        self.reset()

    def reset(self) -> None:
        """Reset brakes to initial state."""
        self.wheels = [WheelBrake(temperature=self.config.ambient_temp_c) for _ in range(4)]
        self._abs_timer: float = 0.0
        self._system_damage: float = 0.0
        self._pedal: float = 0.0
        self._handbrake: bool = False

    @property
    def abs_enabled(self) -> bool:
        """Check if ABS is switched on."""
        return self.config.abs_enabled

    @abs_enabled.setter
    def abs_enabled(self, value: bool) -> None:
        self.config.abs_enabled = bool(value)

    @property
    def abs_phase(self) -> float:
        """Position within the current ABS cycle, 0-1."""
        period = 1.0 / self.config.abs_frequency_hz
        return math.fmod(self._abs_timer, period) / period

    @property
    def system_damage(self) -> float:
        """Damage to the hydraulic system 0-1."""
        return self._system_damage

    @system_damage.setter
    def system_damage(self, value: float) -> None:
        self._system_damage = clamp(float(value), 0.0, 1.0)

    @property
    def torques(self) -> List[float]:
        """Brake torque per wheel in Nm."""
        return [wheel.torque for wheel in self.wheels]

    @property
    def temperatures(self) -> List[float]:
        """Disc temperature per wheel in Celsius."""
        return [wheel.temperature for wheel in self.wheels]

    def fade_factor(self, temperature: float) -> float:
        """Friction multiplier from disc temperature."""
        cfg = self.config
        if temperature <= cfg.fade_start_c:
            return 1.0
        return lerp(1.0, 0.3, inverse_lerp(cfg.fade_start_c, cfg.fade_full_c, temperature))

    def update(
        self,
        dt: float,
        pedal: float,
        handbrake: bool,
        slip_ratios: List[float],
        speed: float,
    ) -> List[float]:
        """Update brake state for one time step.

        Args:
            dt: Time step in seconds
            pedal: Brake pedal 0-1
            handbrake: Handbrake engaged
            slip_ratios: Wheel slip ratios from the previous step
            speed: Vehicle speed in m/s

        Returns:
            Brake torque per wheel (FL, FR, RL, RR) in Nm
        """
        cfg = self.config
        pedal = clamp(pedal, 0.0, 1.0)
        self._pedal = pedal
        self._handbrake = bool(handbrake)
        speed = abs(speed)

        base = pedal * cfg.max_force
        front = 0.5 * base * cfg.bias
        rear = 0.5 * base * (1.0 - cfg.bias)
        handbrake_force = 0.5 * cfg.max_force * cfg.handbrake_factor * 0.5 if handbrake else 0.0
        forces = [front, front, rear + handbrake_force, rear + handbrake_force]

        self._abs_timer += dt
        abs_on = cfg.abs_enabled and pedal > 0.1
        phase = self.abs_phase
        abs_scale = cfg.abs_release_scale if phase < 0.5 else cfg.abs_apply_scale

        for index, wheel in enumerate(self.wheels):
            force = forces[index]

            wheel.temperature = clamp(
                wheel.temperature
                + (
                    force * speed * cfg.heat_generation
                    - (wheel.temperature - cfg.ambient_temp_c) * cfg.heat_dissipation * (1.0 + 0.05 * speed)
                ) * dt,
                cfg.ambient_temp_c,
                cfg.max_temp_c,
            )
            force *= self.fade_factor(wheel.temperature)

            if force > 0.0 and speed > 1.0:
                wheel.wear = min(1.0, wheel.wear + force * speed * cfg.wear_rate * dt)
            force *= 1.0 - 0.3 * wheel.wear

            slip = abs(slip_ratios[index])
            was_active = wheel.abs_active
            if abs_on:
                if slip > cfg.abs_threshold:
                    wheel.abs_active = True
                elif slip < cfg.abs_release:
                    wheel.abs_active = False
            else:
                wheel.abs_active = False
            if wheel.abs_active != was_active:
                logger.debug(f"ABS wheel {index} {'engaged' if wheel.abs_active else 'released'}")
            if wheel.abs_active:
                force *= abs_scale

            force *= max(0.0, 1.0 - 0.5 * (wheel.damage + self._system_damage))

            radius = cfg.front_disc_radius if index < 2 else cfg.rear_disc_radius
            wheel.force = force
            wheel.torque = force * radius * cfg.pad_friction

        return self.torques

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "abs_timer": self._abs_timer,
            "system_damage": self._system_damage,
            "pedal": self._pedal,
            "handbrake": self._handbrake,
            "wheels": [
                {
                    "temperature": w.temperature,
                    "wear": w.wear,
                    "damage": w.damage,
                    "abs_active": w.abs_active,
                    "force": w.force,
                    "torque": w.torque,
                }
                for w in self.wheels
            ],
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self._abs_timer = float(state["abs_timer"])
        self._system_damage = float(state["system_damage"])
        self._pedal = float(state["pedal"])
        self._handbrake = bool(state["handbrake"])
        self.wheels = [
            WheelBrake(
                temperature=float(w["temperature"]),
                wear=float(w["wear"]),
                damage=float(w["damage"]),
                abs_active=bool(w["abs_active"]),
                force=float(w["force"]),
                torque=float(w["torque"]),
            )
            for w in state["wheels"]
        ]

    def get_state(self) -> dict:
        """Get current brake state for telemetry.

        Returns:
            Dictionary containing brake state values
        """
        return {
            "pedal": self._pedal,
            "handbrake": self._handbrake,
            "abs_enabled": self.config.abs_enabled,
            "abs_phase": self.abs_phase,
            "abs_active": [w.abs_active for w in self.wheels],
            "temperatures_c": [w.temperature for w in self.wheels],
            "torques_nm": [w.torque for w in self.wheels],
            "wear": [w.wear for w in self.wheels],
        }
