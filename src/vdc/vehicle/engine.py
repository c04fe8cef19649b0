"""
Engine component - Crank dynamics and power delivery.

Simulates:
- RPM-based piecewise-linear torque curve
- Turbo boost with spool lag
- Rev limiter with timed fuel cut
- Crank inertia against friction and drivetrain load
- Idle governor and stall
- Engine temperature, overheat damage and fuel consumption
"""

from dataclasses import dataclass, field
from typing import List, Tuple
import logging
import math
import numpy as np

from vdc.physics.mathutils import clamp

logger = logging.getLogger(__name__)

RPM_TO_RAD_S = 2.0 * math.pi / 60.0
RAD_S_TO_RPM = 60.0 / (2.0 * math.pi)


@dataclass
class TurboConfig:
    """Turbocharger configuration."""
    boost: float = 0.5          # Peak boost pressure fraction
    lag: float = 0.5            # Lag factor, divides the spool rate
    spool_rate: float = 2.0     # Spool-up rate, spool-down is twice as fast


@dataclass
class EngineConfig:
    """Configuration for the engine.

    Defaults describe a 400 Nm turbocharged petrol engine.
    """
    # Torque
    max_torque: float = 400.0        # Peak torque in Nm
    max_torque_rpm: float = 4500.0

    # Curve as (rpm, multiplier) points, sorted by rpm
    torque_curve: List[Tuple[float, float]] = field(default_factory=lambda: [
        (0.0, 0.0),
        (800.0, 0.4),
        (1500.0, 0.65),
        (3000.0, 0.9),
        (4500.0, 1.0),
        (6000.0, 0.95),
        (7000.0, 0.85),
        (8000.0, 0.7),
    ])

    # RPM limits
    idle_rpm: float = 800.0
    redline: float = 7000.0
    rev_limiter: float = 7500.0
    limiter_cut_time: float = 0.05   # Fuel cut duration in seconds

    # Crank
    inertia: float = 0.25            # Crank + flywheel in kg*m^2
    friction: float = 0.02           # Fraction of max torque

    turbo: TurboConfig = field(default_factory=TurboConfig)

    # Thermal
    initial_temp_c: float = 80.0
    ambient_temp_c: float = 25.0
    heat_rate: float = 50.0          # deg C/s at full throttle at redline
    cooling_rate: float = 0.5        # 1/s
    overheat_temp_c: float = 120.0
    max_temp_c: float = 150.0
    overheat_damage_rate: float = 0.01

    # Fuel (L/h)
    idle_fuel_rate: float = 1.5
    load_fuel_rate: float = 30.0

    stall_rpm: float = 300.0

    def validate(self) -> List[str]:
        """Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        problems = []
        if self.max_torque <= 0:
            problems.append("engine.max_torque must be positive")
        if self.inertia <= 0:
            problems.append("engine.inertia must be positive")
        if len(self.torque_curve) < 2:
            problems.append("engine.torque_curve needs at least two points")
        rpms = [point[0] for point in self.torque_curve]
        if any(b <= a for a, b in zip(rpms, rpms[1:])):
            problems.append("engine.torque_curve rpm values must be strictly increasing")
        if any(point[1] < 0 for point in self.torque_curve):
            problems.append("engine.torque_curve multipliers must be non-negative")
        if not 0 < self.idle_rpm < self.redline <= self.rev_limiter:
            problems.append("engine rpm limits must satisfy 0 < idle_rpm < redline <= rev_limiter")
        if self.turbo.lag <= 0:
            problems.append("engine.turbo.lag must be positive")
        return problems


class Engine:
    """Engine with crank dynamics.

    Provides:
    - Torque delivery from throttle, curve, boost, temperature, damage
    - RPM integration against friction and clutch load
    - Rev limiter, idle governor, stall
    """

    def __init__(self, config: EngineConfig | None = None):
        """Initialize engine with optional custom configuration.

        Args:
            config: Engine configuration. Uses defaults if None.
        """
        self.config = config or EngineConfig()

        self._curve_rpms = np.array([p[0] for p in self.config.torque_curve], dtype=float)
        self._curve_values = np.array([p[1] for p in self.config.torque_curve], dtype=float)

        self.reset()

    def reset(self) -> None:
        """Reset engine to initial state."""
        self._rpm: float = self.config.idle_rpm
        self._running: bool = True
        self._throttle: float = 0.0
        self._boost: float = 0.0
        self._temperature: float = self.config.initial_temp_c
        self._damage: float = 0.0
        self._limiter_active: bool = False
        self._limiter_timer: float = 0.0
        self._output_torque: float = 0.0
        self._friction_torque: float = 0.0
        self._fuel_rate: float = 0.0
        self._fuel_used: float = 0.0

    @property
    def rpm(self) -> float:
        """Current crank RPM."""
        return self._rpm

    @rpm.setter
    def rpm(self, value: float) -> None:
        """Set crank RPM, clamped to valid range."""
        self._rpm = clamp(float(value), 0.0, self.config.rev_limiter + 100.0)

    @property
    def angular_velocity(self) -> float:
        """Crank angular velocity in rad/s."""
        return self._rpm * RPM_TO_RAD_S

    @property
    def running(self) -> bool:
        """Check if engine is running."""
        return self._running

    @property
    def rev_limiter_active(self) -> bool:
        """Check if rev limiter is cutting fuel."""
        return self._limiter_active

    @property
    def output_torque(self) -> float:
        """Combustion torque from the last update in Nm."""
        return self._output_torque

    @property
    def friction_torque(self) -> float:
        """Internal friction torque from the last update in Nm."""
        return self._friction_torque

    @property
    def net_torque(self) -> float:
        """Combustion minus friction torque available at the flywheel."""
        return self._output_torque - self._friction_torque

    @property
    def power_kw(self) -> float:
        """Current power output in kW."""
        return self._output_torque * self.angular_velocity / 1000.0

    @property
    def boost(self) -> float:
        """Current turbo pressure fraction."""
        return self._boost

    @property
    def temperature(self) -> float:
        """Current engine temperature in Celsius."""
        return self._temperature

    @property
    def damage(self) -> float:
        """Engine damage 0-1."""
        return self._damage

    @damage.setter
    def damage(self, value: float) -> None:
        self._damage = clamp(float(value), 0.0, 1.0)

    @property
    def fuel_used(self) -> float:
        """Total fuel consumed in liters."""
        return self._fuel_used

    @property
    def is_overheating(self) -> bool:
        """Check if engine is overheating."""
        return self._temperature > self.config.overheat_temp_c

    def torque_multiplier(self, rpm: float) -> float:
        """Torque curve multiplier at an RPM, endpoints clamped.

        Args:
            rpm: Engine RPM to query

        Returns:
            Fraction of max torque available at this RPM
        """
        return float(np.interp(rpm, self._curve_rpms, self._curve_values))

    def temperature_factor(self) -> float:
        """Torque multiplier from engine temperature."""
        temp = self._temperature
        if temp < 60.0:
            return 0.9 + 0.1 * clamp(temp / 60.0, 0.0, 1.0)
        if temp > 100.0:
            return max(0.7, 1.0 - (temp - 100.0) * 0.006)
        return 1.0

    def start(self) -> bool:
        """Start the engine at idle.

        Returns:
            True if the engine is running afterwards
        """
        if self._damage >= 0.9:
            return False
        if not self._running:
            self._running = True
            self._rpm = self.config.idle_rpm
        return True

    def stop(self) -> None:
        """Shut the engine off."""
        self._running = False

    def update(self, dt: float, throttle: float, clutch: float, resistance_torque: float) -> float:
        """Update engine state for one time step.

        Args:
            dt: Time step in seconds
            throttle: Throttle position 0-1
            clutch: Clutch engagement 0-1 from the previous step
            resistance_torque: Drivetrain reaction torque from the previous step

        Returns:
            Combustion torque output in Nm
        """
        cfg = self.config
        throttle = clamp(throttle, 0.0, 1.0)
        if not self._running:
            throttle = 0.0
        # Damage reduces throttle authority
        self._throttle = throttle * (1.0 - 0.5 * self._damage)

        self._update_turbo(dt)
        self._update_limiter(dt)

        if self._running:
            torque = (
                self._throttle
                * self.torque_multiplier(self._rpm)
                * cfg.max_torque
                * (1.0 + self._boost * cfg.turbo.boost * 0.3)
                * self.temperature_factor()
                * (1.0 - 0.4 * self._damage)
            )
            if self._limiter_active:
                torque *= 0.1
        else:
            torque = 0.0
        self._output_torque = torque

        friction = cfg.friction * cfg.max_torque * (1.0 + self._rpm / cfg.redline)
        if self._running and self._rpm < cfg.idle_rpm and self._throttle < 0.1:
            # Idle air control opens just enough to cover internal friction
            friction = 0.0
        self._friction_torque = friction if self._rpm > 0.0 else 0.0

        net = torque - self._friction_torque - clutch * resistance_torque
        self._rpm += net / cfg.inertia * dt * RAD_S_TO_RPM

        if self._running and self._rpm < cfg.idle_rpm and self._throttle < 0.1:
            self._rpm += (cfg.idle_rpm - self._rpm) * 5.0 * dt

        self._rpm = clamp(self._rpm, 0.0, cfg.rev_limiter + 100.0)

        if self._running and self._rpm < cfg.stall_rpm and clutch > 0.5:
            self._running = False
            self._rpm = 0.0
            self._output_torque = 0.0
            logger.warning("Engine stalled")

        self._update_temperature(dt)
        self._update_fuel(dt)
        return self._output_torque

    def _update_turbo(self, dt: float) -> None:
        """First-order lag of boost pressure towards its target."""
        turbo = self.config.turbo
        target = self._throttle * clamp((self._rpm - 2000.0) / 4000.0, 0.0, 1.0)
        rate = turbo.spool_rate if target > self._boost else 2.0 * turbo.spool_rate
        alpha = 1.0 - math.exp(-rate / turbo.lag * dt)
        self._boost += (target - self._boost) * alpha

    def _update_limiter(self, dt: float) -> None:
        """Start or count down the fuel cut."""
        if self._rpm >= self.config.rev_limiter:
            self._limiter_active = True
            self._limiter_timer = self.config.limiter_cut_time
        elif self._limiter_active:
            self._limiter_timer -= dt
            if self._limiter_timer <= 0.0:
                self._limiter_active = False
                self._limiter_timer = 0.0

    def _update_temperature(self, dt: float) -> None:
        cfg = self.config
        heat = cfg.heat_rate * self._throttle * self._rpm / cfg.redline
        cooling = cfg.cooling_rate * (self._temperature - cfg.ambient_temp_c) * (1.0 - 0.5 * self._damage)
        self._temperature = clamp(
            self._temperature + (heat - cooling) * dt,
            cfg.ambient_temp_c,
            cfg.max_temp_c,
        )
        if self._temperature > cfg.overheat_temp_c:
            self.damage = self._damage + cfg.overheat_damage_rate * (self._temperature - cfg.overheat_temp_c) / 30.0 * dt

    def _update_fuel(self, dt: float) -> None:
        cfg = self.config
        if not self._running:
            self._fuel_rate = 0.0
            return
        load = self._throttle * self._output_torque / cfg.max_torque
        self._fuel_rate = cfg.idle_fuel_rate + load * (self._rpm / cfg.redline) * cfg.load_fuel_rate
        self._fuel_used += self._fuel_rate / 3600.0 * dt

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "rpm": self._rpm,
            "running": self._running,
            "throttle": self._throttle,
            "boost": self._boost,
            "temperature": self._temperature,
            "damage": self._damage,
            "limiter_active": self._limiter_active,
            "limiter_timer": self._limiter_timer,
            "output_torque": self._output_torque,
            "friction_torque": self._friction_torque,
            "fuel_rate": self._fuel_rate,
            "fuel_used": self._fuel_used,
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self._rpm = float(state["rpm"])
        self._running = bool(state["running"])
        self._throttle = float(state["throttle"])
        self._boost = float(state["boost"])
        self._temperature = float(state["temperature"])
        self._damage = float(state["damage"])
        self._limiter_active = bool(state["limiter_active"])
        self._limiter_timer = float(state["limiter_timer"])
        self._output_torque = float(state["output_torque"])
        self._friction_torque = float(state["friction_torque"])
        self._fuel_rate = float(state["fuel_rate"])
        self._fuel_used = float(state["fuel_used"])

    def get_state(self) -> dict:
        """Get current engine state for telemetry.

        Returns:
            Dictionary containing engine state values
        """
        return {
            "rpm": self._rpm,
            "running": self._running,
            "throttle": self._throttle,
            "torque_nm": self._output_torque,
            "power_kw": self.power_kw,
            "boost": self._boost,
            "temperature_c": self._temperature,
            "damage": self._damage,
            "fuel_rate_lph": self._fuel_rate,
            "fuel_used_l": self._fuel_used,
            "rev_limiter_active": self._limiter_active,
        }
