"""
Tire component - Pacejka combined-slip tire with thermal and wear model.

Simulates:
- Slip ratio and slip angle from contact-patch velocity
- Relaxation-length lag of slip quantities
- Pacejka Magic Formula forces with load sensitivity and camber thrust
- Friction-ellipse combined slip
- Self-aligning torque from pneumatic and mechanical trail
- Surface, temperature, pressure and wear grip modifiers
- Two-mass (surface/core) thermal model, wear and punctures
- Rolling resistance
"""

from dataclasses import dataclass, field
from typing import List
import logging
import math
import numpy as np

from vdc.physics.mathutils import clamp
from vdc.simulation.world import SurfaceKind, surface_grip, rolling_resistance

logger = logging.getLogger(__name__)

GRAVITY = 9.81


@dataclass
class PacejkaCoefficients:
    """Magic Formula coefficients B (stiffness), C (shape), D (peak), E (curvature)."""
    B: float = 10.0
    C: float = 1.9
    D: float = 1.0
    E: float = 0.97


def pacejka(x: float, coefficients: PacejkaCoefficients, peak: float | None = None) -> float:
    """Evaluate the Magic Formula D*sin(C*atan(Bx - E*(Bx - atan(Bx)))).

    Args:
        x: Slip quantity (slip ratio or slip angle in rad)
        coefficients: Curve coefficients
        peak: Peak value overriding coefficients.D

    Returns:
        Normalized force
    """
    d = coefficients.D if peak is None else peak
    bx = coefficients.B * x
    return d * math.sin(coefficients.C * math.atan(bx - coefficients.E * (bx - math.atan(bx))))


@dataclass
class TireConfig:
    """Configuration for a road tire and its wheel."""
    # Dimensions
    radius: float = 0.33
    width: float = 0.225
    mass: float = 12.0
    inertia: float = 1.2                # Wheel + tire rotational inertia in kg*m^2

    # Magic Formula
    pacejka_lateral: PacejkaCoefficients = field(default_factory=PacejkaCoefficients)
    pacejka_longitudinal: PacejkaCoefficients = field(
        default_factory=lambda: PacejkaCoefficients(B=12.0, C=1.65, D=1.0, E=0.9)
    )
    reference_slip_angle: float = math.pi / 6.0   # Normalizes slip angle in the ellipse

    # Load sensitivity
    nominal_load: float = 3500.0
    load_sensitivity: float = -0.1
    camber_stiffness: float = 500.0     # N/rad

    # Relaxation lengths in meters
    relaxation_longitudinal: float = 0.15
    relaxation_lateral: float = 0.4

    # Aligning torque
    pneumatic_trail: float = 0.03

    # Temperature grip
    optimal_temperature: float = 85.0
    temperature_range: float = 30.0
    initial_temperature: float = 80.0

    # Two-mass thermal model
    surface_heat_capacity: float = 2000.0   # J/K
    core_heat_capacity: float = 13000.0     # J/K
    heat_efficiency: float = 0.8
    conduction: float = 10.0                # W/K surface to core
    convection: float = 2.0                 # W/K surface to air at rest
    convection_speed_factor: float = 0.05   # Per m/s

    # Pressure in kPa
    cold_pressure: float = 185.0
    cold_reference_temp: float = 20.0
    optimal_pressure: float = 220.0

    # Wear
    wear_rate: float = 1e-5                 # Load term
    slip_wear_rate: float = 1e-4
    heat_wear_rate: float = 1e-3
    puncture_rate: float = 0.12             # Probability per second once worn out

    # Low-speed force limiting
    low_speed_fade: float = 5.0             # m/s

    def validate(self) -> List[str]:
        """Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        problems = []
        if self.radius <= 0:
            problems.append("tire.radius must be positive")
        if self.inertia <= 0:
            problems.append("tire.inertia must be positive")
        if self.nominal_load <= 0:
            problems.append("tire.nominal_load must be positive")
        if self.temperature_range <= 0:
            problems.append("tire.temperature_range must be positive")
        if self.relaxation_longitudinal <= 0 or self.relaxation_lateral <= 0:
            problems.append("tire relaxation lengths must be positive")
        return problems


@dataclass
class TireForces:
    """Tire outputs in the wheel frame (x forward, y left)."""
    fx: float = 0.0
    fy: float = 0.0
    mz: float = 0.0
    rolling: float = 0.0


class Tire:
    """Single tire simulation.

    Calculates forces based on:
    - Slip ratio and slip angle (relaxed)
    - Vertical load
    - Surface, temperature, pressure and wear
    """

    def __init__(self, config: TireConfig | None = None, position: str = "FL", rng: np.random.Generator | None = None):
        """Initialize tire with optional configuration.

        Args:
            config: Tire configuration. Uses defaults if None.
            position: Tire position identifier (FL, FR, RL, RR)
            rng: Random generator for punctures
        """
        self.config = config or TireConfig()
        self.position = position
        self.rng = rng or np.random.default_rng(0)
        self.reset()

    def reset(self) -> None:
        """Reset tire to initial state."""
        cfg = self.config
        self._slip_ratio: float = 0.0
        self._slip_angle: float = 0.0
        self._relaxed_slip_ratio: float = 0.0
        self._relaxed_slip_angle: float = 0.0
        self._combined_slip: float = 0.0
        self._forces = TireForces()
        self._load: float = 0.0
        self._surface_temp: float = cfg.initial_temperature
        self._core_temp: float = cfg.initial_temperature
        self._wear: float = 0.0
        self._flat: bool = False
        self._pressure: float = self._pressure_at(cfg.initial_temperature)
        self._grip: float = 1.0
        self._contact_area: float = 0.0
        self._surface: SurfaceKind = SurfaceKind.ASPHALT

    @property
    def slip_ratio(self) -> float:
        """Slip ratio kappa in [-1, 1]."""
        return self._slip_ratio

    @property
    def slip_angle(self) -> float:
        """Slip angle alpha in rad, in (-pi, pi]."""
        return self._slip_angle

    @property
    def relaxed_slip_ratio(self) -> float:
        """Lagged slip ratio used for forces."""
        return self._relaxed_slip_ratio

    @property
    def relaxed_slip_angle(self) -> float:
        """Lagged slip angle used for forces."""
        return self._relaxed_slip_angle

    @property
    def forces(self) -> TireForces:
        """Forces from the last update."""
        return self._forces

    @property
    def load(self) -> float:
        """Normal load in N."""
        return self._load

    @property
    def surface_temperature(self) -> float:
        """Tread surface temperature in Celsius."""
        return self._surface_temp

    @property
    def core_temperature(self) -> float:
        """Carcass core temperature in Celsius."""
        return self._core_temp

    @property
    def wear(self) -> float:
        """Tread wear (0 = new, 1 = worn)."""
        return self._wear

    @wear.setter
    def wear(self, value: float) -> None:
        # Wear only decreases through reset()
        self._wear = clamp(max(self._wear, float(value)), 0.0, 1.0)

    @property
    def pressure(self) -> float:
        """Inflation pressure in kPa."""
        return self._pressure

    @property
    def grip(self) -> float:
        """Total grip multiplier from the last update."""
        return self._grip

    @property
    def contact_area(self) -> float:
        """Estimated contact patch area in m^2."""
        return self._contact_area

    @property
    def is_flat(self) -> bool:
        """Check if the tire is punctured."""
        return self._flat

    @property
    def surface(self) -> SurfaceKind:
        """Surface under the tire at the last update."""
        return self._surface

    @property
    def effective_radius(self) -> float:
        """Rolling radius, reduced when flat."""
        return self.config.radius * (0.85 if self._flat else 1.0)

    def puncture(self) -> None:
        """Deflate the tire."""
        if not self._flat:
            self._flat = True
            logger.warning(f"Tire {self.position} punctured at wear {self._wear:.2f}")

    def _pressure_at(self, temperature: float) -> float:
        cfg = self.config
        return cfg.cold_pressure * (temperature + 273.15) / (cfg.cold_reference_temp + 273.15)

    def temperature_factor(self) -> float:
        """Grip multiplier from surface temperature."""
        cfg = self.config
        offset = (self._surface_temp - cfg.optimal_temperature) / cfg.temperature_range
        factor = math.exp(-0.1 * offset * offset)
        if self._surface_temp < cfg.optimal_temperature:
            return clamp(factor, 0.5, 1.0)
        return max(0.4, factor)

    def pressure_factor(self) -> float:
        """Grip multiplier from inflation pressure."""
        if self._flat:
            return 1.0
        return max(0.0, 1.0 - 0.3 * abs(1.0 - self._pressure / self.config.optimal_pressure))

    def wear_factor(self) -> float:
        """Grip multiplier from tread wear."""
        return 1.0 - 0.4 * self._wear

    def load_sensitivity(self, load: float) -> float:
        """Friction scaling with normal load."""
        cfg = self.config
        return max(0.1, 1.0 + cfg.load_sensitivity * (load - cfg.nominal_load) / cfg.nominal_load)

    def update(
        self,
        dt: float,
        wheel_speed: float,
        forward_velocity: float,
        lateral_velocity: float,
        normal_load: float,
        surface: SurfaceKind = SurfaceKind.ASPHALT,
        wetness: float = 0.0,
        camber: float = 0.0,
        side: float = 1.0,
        effective_inertia: float | None = None,
        mechanical_trail: float = 0.0,
        ambient_temp: float = 25.0,
    ) -> TireForces:
        """Update tire state and calculate forces.

        Args:
            dt: Time step in seconds
            wheel_speed: Wheel angular velocity in rad/s
            forward_velocity: Contact patch velocity along the wheel heading in m/s
            lateral_velocity: Contact patch velocity to the wheel's left in m/s
            normal_load: Vertical load in N
            surface: Surface kind under the tire
            wetness: Surface wetness 0-1
            camber: Camber angle in rad, negative tops the wheel inboard
            side: +1 for left wheels, -1 for right wheels
            effective_inertia: Wheel inertia including reflected drivetrain inertia
            mechanical_trail: Caster trail in meters
            ambient_temp: Air temperature in Celsius

        Returns:
            Forces in the wheel frame
        """
        cfg = self.config
        self._surface = surface
        self._load = max(0.0, normal_load)
        radius = self.effective_radius
        speed = math.hypot(forward_velocity, lateral_velocity)
        inertia = effective_inertia if effective_inertia is not None else cfg.inertia

        # Slip
        peripheral = wheel_speed * radius
        denominator = max(abs(peripheral), abs(forward_velocity), 0.1)
        self._slip_ratio = clamp((peripheral - forward_velocity) / denominator, -1.0, 1.0)
        self._slip_angle = -math.atan2(lateral_velocity, forward_velocity)
        if self._slip_angle == -math.pi:
            self._slip_angle = math.pi
        force_slip_angle = -math.atan2(lateral_velocity, abs(forward_velocity))

        # Relaxation length lag
        rate = max(speed, 1.0)
        a_long = dt / (dt + cfg.relaxation_longitudinal / rate)
        a_lat = dt / (dt + cfg.relaxation_lateral / rate)
        self._relaxed_slip_ratio += a_long * (self._slip_ratio - self._relaxed_slip_ratio)
        self._relaxed_slip_angle += a_lat * (force_slip_angle - self._relaxed_slip_angle)
        kappa = self._relaxed_slip_ratio
        alpha = self._relaxed_slip_angle
        self._combined_slip = math.hypot(alpha / cfg.reference_slip_angle, kappa)

        # Grip
        self._grip = (
            surface_grip(surface, wetness)
            * self.temperature_factor()
            * self.pressure_factor()
            * self.wear_factor()
            * (0.3 if self._flat else 1.0)
        )

        if self._load <= 10.0:
            self._forces = TireForces()
            self._contact_area = 0.0
            self._update_thermal(dt, speed, ambient_temp)
            return self._forces

        # Pure slip
        sensitivity = self.load_sensitivity(self._load)
        fx0 = pacejka(kappa, cfg.pacejka_longitudinal, cfg.pacejka_longitudinal.D * self._grip) * self._load * sensitivity
        fy0 = pacejka(alpha, cfg.pacejka_lateral, cfg.pacejka_lateral.D * self._grip) * self._load * sensitivity
        fy0 += camber * cfg.camber_stiffness * sensitivity * side

        # Friction ellipse; the force direction follows the same normalized
        # slip vector whose length is sigma
        fx, fy = fx0, fy0
        if abs(kappa) > 1e-3 and abs(alpha) > 1e-3:
            sx = abs(kappa)
            sy = abs(alpha) / cfg.reference_slip_angle
            sigma = math.hypot(sx, sy)
            scale = min(1.0, 1.0 / sigma)
            fx = fx0 * (sx / sigma) * scale
            fy = fy0 * (sy / sigma) * scale

        # Low-speed limiter: never reverse the contact slip within one step
        if speed < cfg.low_speed_fade:
            fade = max(1.0 - speed / cfg.low_speed_fade, 1e-6)
            corner_mass = self._load / GRAVITY
            slip_velocity = peripheral - forward_velocity
            limit_x = 0.5 * abs(slip_velocity) / (dt * (radius * radius / inertia + 1.0 / corner_mass)) / fade
            limit_y = 0.5 * abs(lateral_velocity) * corner_mass / dt / fade
            fx = clamp(fx, -limit_x, limit_x)
            fy = clamp(fy, -limit_y, limit_y)

        trail = cfg.pneumatic_trail * max(0.0, math.cos(2.0 * alpha)) + mechanical_trail
        mz = -fy * trail

        roll_coefficient = rolling_resistance(surface) * (5.0 if self._flat else 1.0)
        rolling = (
            -roll_coefficient * self._load * (1.0 + 0.01 * abs(forward_velocity))
            * clamp(forward_velocity / 0.5, -1.0, 1.0)
        )

        self._forces = TireForces(fx=fx, fy=fy, mz=mz, rolling=rolling)
        self._contact_area = clamp(
            self._load / (200000.0 + self._pressure * 1000.0),
            0.01,
            cfg.width * 0.15,
        )

        self._update_thermal(dt, speed, ambient_temp)
        self._update_wear(dt)
        return self._forces

    def _update_thermal(self, dt: float, speed: float, ambient_temp: float) -> None:
        """Two-mass thermal update of surface and core temperatures."""
        cfg = self.config
        forces = self._forces
        friction_heat = (
            abs(forces.fx * self._relaxed_slip_ratio) + abs(forces.fy * self._relaxed_slip_angle)
        ) * cfg.heat_efficiency
        conduction = cfg.conduction * (self._core_temp - self._surface_temp)
        convection = cfg.convection * (1.0 + cfg.convection_speed_factor * speed) * (self._surface_temp - ambient_temp)

        surface = self._surface_temp + (friction_heat + conduction - convection) / cfg.surface_heat_capacity * dt
        core = self._core_temp - conduction / cfg.core_heat_capacity * dt
        self._surface_temp = clamp(surface, ambient_temp, 200.0)
        self._core_temp = clamp(core, ambient_temp, 180.0)
        self._pressure = 0.0 if self._flat else self._pressure_at(self._core_temp)

    def _update_wear(self, dt: float) -> None:
        cfg = self.config
        rate = (
            cfg.slip_wear_rate * abs(self._combined_slip)
            + cfg.heat_wear_rate * max(0.0, self._surface_temp - cfg.optimal_temperature - 20.0)
            + cfg.wear_rate * self._load / cfg.nominal_load
        )
        self._wear = min(1.0, self._wear + rate * dt)
        if self._wear > 0.95 and not self._flat and self.rng.random() < cfg.puncture_rate * dt:
            self.puncture()

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "slip_ratio": self._slip_ratio,
            "slip_angle": self._slip_angle,
            "relaxed_slip_ratio": self._relaxed_slip_ratio,
            "relaxed_slip_angle": self._relaxed_slip_angle,
            "combined_slip": self._combined_slip,
            "forces": [self._forces.fx, self._forces.fy, self._forces.mz, self._forces.rolling],
            "load": self._load,
            "surface_temp": self._surface_temp,
            "core_temp": self._core_temp,
            "wear": self._wear,
            "pressure": self._pressure,
            "grip": self._grip,
            "contact_area": self._contact_area,
            "flat": self._flat,
            "surface": self._surface.value,
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self._slip_ratio = float(state["slip_ratio"])
        self._slip_angle = float(state["slip_angle"])
        self._relaxed_slip_ratio = float(state["relaxed_slip_ratio"])
        self._relaxed_slip_angle = float(state["relaxed_slip_angle"])
        self._combined_slip = float(state["combined_slip"])
        self._forces = TireForces(*[float(v) for v in state["forces"]])
        self._load = float(state["load"])
        self._surface_temp = float(state["surface_temp"])
        self._core_temp = float(state["core_temp"])
        self._wear = float(state["wear"])
        self._pressure = float(state["pressure"])
        self._grip = float(state["grip"])
        self._contact_area = float(state["contact_area"])
        self._flat = bool(state["flat"])
        self._surface = SurfaceKind.parse(state["surface"])

    def get_state(self) -> dict:
        """Get current tire state for telemetry.

        Returns:
            Dictionary containing tire state values
        """
        return {
            "position": self.position,
            "slip_ratio": self._slip_ratio,
            "slip_angle_rad": self._slip_angle,
            "force_x_n": self._forces.fx,
            "force_y_n": self._forces.fy,
            "aligning_torque_nm": self._forces.mz,
            "rolling_resistance_n": self._forces.rolling,
            "load_n": self._load,
            "surface_temp_c": self._surface_temp,
            "core_temp_c": self._core_temp,
            "wear": self._wear,
            "pressure_kpa": self._pressure,
            "grip": self._grip,
            "contact_area_m2": self._contact_area,
            "flat": self._flat,
            "surface": self._surface.value,
        }
