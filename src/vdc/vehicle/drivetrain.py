"""
Drivetrain component - Clutch, gearbox, final drive and differentials.

Simulates:
- Friction clutch with slip and lock-up, with launch anti-stall
- Gearbox with reverse, neutral and forward gears
- Shift state machine with clutch ramp and torque interruption
- Optional automatic shifting
- Open, limited-slip and locked differentials
- RWD, FWD and AWD layouts
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Tuple
import logging

from vdc.physics.mathutils import clamp, sign
from vdc.vehicle.engine import Engine, RAD_S_TO_RPM

logger = logging.getLogger(__name__)

FL, FR, RL, RR = 0, 1, 2, 3


class GearState(IntEnum):
    """Special gear positions."""
    REVERSE = -1
    NEUTRAL = 0
    FIRST = 1


class ShiftState(str, Enum):
    """Gearbox shift state machine."""
    IDLE = "idle"
    SHIFTING = "shifting"


class DifferentialKind(str, Enum):
    """Differential types."""
    OPEN = "open"
    LSD = "lsd"
    LOCKED = "locked"


class DriveLayout(str, Enum):
    """Driven axle layout."""
    RWD = "rwd"
    FWD = "fwd"
    AWD = "awd"


@dataclass
class DifferentialConfig:
    """Differential configuration."""
    kind: DifferentialKind = DifferentialKind.LSD
    preload: float = 50.0         # Minimum lock torque in Nm while the wheels differ
    accel_lock: float = 0.5       # Fraction of axle torque on throttle
    decel_lock: float = 0.3       # Fraction of axle torque off throttle
    lsd_stiffness: float = 50.0   # Nm per rad/s of wheel speed difference
    locked_gain: float = 0.5      # Fraction of speed difference removed per step when locked

    def __post_init__(self):
        if not isinstance(self.kind, DifferentialKind):
            self.kind = DifferentialKind(str(self.kind).lower())


@dataclass
class DrivetrainConfig:
    """Configuration for clutch, gearbox and differential."""
    # Gear ratios
    ratios: List[float] = field(default_factory=lambda: [3.5, 2.3, 1.7, 1.3, 1.0, 0.8])
    reverse_ratio: float = 3.2
    final_drive: float = 3.7
    efficiency: float = 0.92

    # Shifting
    shift_time: float = 0.15          # Seconds, clutch ramps out and back in
    initial_gear: int = 0

    # Automatic shifting
    auto_shift: bool = False
    upshift_rpm: float = 6800.0
    downshift_rpm: float = 3000.0
    auto_shift_cooldown: float = 0.5

    # Clutch
    clutch_max_torque: float = 650.0  # Nm
    slip_threshold: float = 5.0       # rad/s below which the clutch may lock
    anti_stall: bool = True
    launch_rpm: float = 2500.0        # Clutch capacity fully available above this

    layout: DriveLayout = DriveLayout.RWD
    awd_front_bias: float = 0.4
    differential: DifferentialConfig = field(default_factory=DifferentialConfig)

    def __post_init__(self):
        if not isinstance(self.layout, DriveLayout):
            self.layout = DriveLayout(str(self.layout).lower())

    def validate(self) -> List[str]:
        """Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        problems = []
        if not self.ratios:
            problems.append("drivetrain.ratios must contain at least one forward gear")
        for index, ratio in enumerate(self.ratios, start=1):
            if ratio <= 0:
                problems.append(f"drivetrain.ratios gear {index} must be positive, got {ratio}")
        if self.reverse_ratio <= 0:
            problems.append("drivetrain.reverse_ratio must be positive")
        if self.final_drive <= 0:
            problems.append("drivetrain.final_drive must be positive")
        if not 0 < self.efficiency <= 1:
            problems.append("drivetrain.efficiency must be in (0, 1]")
        if self.shift_time <= 0:
            problems.append("drivetrain.shift_time must be positive")
        if self.clutch_max_torque <= 0:
            problems.append("drivetrain.clutch_max_torque must be positive")
        if not 0 <= self.awd_front_bias <= 1:
            problems.append("drivetrain.awd_front_bias must be in [0, 1]")
        return problems


class Differential:
    """Splits axle torque between left and right wheels."""

    def __init__(self, config: DifferentialConfig | None = None):
        """Initialize differential.

        Args:
            config: Differential configuration. Uses defaults if None.
        """
        self.config = config or DifferentialConfig()

    @property
    def kind(self) -> DifferentialKind:
        """Current differential kind."""
        return self.config.kind

    @kind.setter
    def kind(self, value: DifferentialKind | str) -> None:
        if not isinstance(value, DifferentialKind):
            value = DifferentialKind(str(value).lower())
        self.config.kind = value

    def split(
        self,
        torque: float,
        left_speed: float,
        right_speed: float,
        on_throttle: bool,
        left_inertia: float,
        right_inertia: float,
        dt: float,
    ) -> Tuple[float, float]:
        """Split axle torque between the wheels.

        Args:
            torque: Axle drive torque in Nm
            left_speed: Left wheel angular velocity in rad/s
            right_speed: Right wheel angular velocity in rad/s
            on_throttle: Driver is on the throttle
            left_inertia: Left wheel effective inertia in kg*m^2
            right_inertia: Right wheel effective inertia in kg*m^2
            dt: Time step in seconds

        Returns:
            Tuple of (left, right) wheel torques in Nm
        """
        cfg = self.config
        half = 0.5 * torque
        delta = left_speed - right_speed

        if cfg.kind == DifferentialKind.OPEN:
            return half, half

        if cfg.kind == DifferentialKind.LOCKED:
            reduced = left_inertia * right_inertia / (left_inertia + right_inertia)
            transfer = cfg.locked_gain * delta * reduced / dt
            return half - transfer, half + transfer

        if delta == 0.0:
            return half, half
        lock_ratio = cfg.accel_lock if on_throttle else cfg.decel_lock
        # Preload acts whatever the speed difference
        lock = min(abs(delta) * cfg.lsd_stiffness, lock_ratio * abs(torque))
        lock = sign(delta) * max(cfg.preload, lock)
        return half - 0.5 * lock, half + 0.5 * lock


class Drivetrain:
    """Clutch, gearbox and differentials between engine and wheels.

    Provides:
    - Shift state machine (Idle/Shifting)
    - Clutch slip/lock model with resistance torque back to the engine
    - Per-wheel drive torque through the differentials
    """

    def __init__(self, config: DrivetrainConfig | None = None):
        """Initialize drivetrain with optional custom configuration.

        Args:
            config: Drivetrain configuration. Uses defaults if None.
        """
        self.config = config or DrivetrainConfig()
        self.differential = Differential(self.config.differential)
        self.reset()

    def reset(self) -> None:
        """Reset drivetrain to initial state."""
        self._gear: int = self._clamp_gear(self.config.initial_gear)
        self._target_gear: int = self._gear
        self._shift_state: ShiftState = ShiftState.IDLE
        self._shift_timer: float = 0.0
        self._auto_shift_timer: float = 0.0
        self._clutch: float = 1.0
        self._locked: bool = False
        self._last_slip: float = 0.0
        self._transmitted_torque: float = 0.0
        self._resistance_torque: float = 0.0
        self._wheel_torques: List[float] = [0.0, 0.0, 0.0, 0.0]
        self._reflected_inertia: List[float] = [0.0, 0.0, 0.0, 0.0]
        self._damage: float = 0.0

    @property
    def gear(self) -> int:
        """Current gear (-1 reverse, 0 neutral, 1..N forward)."""
        return self._gear

    @property
    def target_gear(self) -> int:
        """Gear being shifted into."""
        return self._target_gear

    @property
    def max_gear(self) -> int:
        """Highest forward gear."""
        return len(self.config.ratios)

    @property
    def shift_state(self) -> ShiftState:
        """Current shift state."""
        return self._shift_state

    @property
    def is_shifting(self) -> bool:
        """Check if a shift is in progress."""
        return self._shift_state == ShiftState.SHIFTING

    @property
    def shift_progress(self) -> float:
        """Shift progress 0-1 (1 when idle)."""
        if not self.is_shifting:
            return 1.0
        return clamp(1.0 - self._shift_timer / self.config.shift_time, 0.0, 1.0)

    @property
    def clutch_engagement(self) -> float:
        """Effective clutch engagement 0-1 from the last update."""
        return self._clutch

    @property
    def clutch_locked(self) -> bool:
        """Check if the clutch is locked up."""
        return self._locked

    @property
    def resistance_torque(self) -> float:
        """Reaction torque fed back to the engine on the next step."""
        return self._resistance_torque

    @property
    def transmitted_torque(self) -> float:
        """Torque through the clutch in Nm."""
        return self._transmitted_torque

    @property
    def wheel_torques(self) -> List[float]:
        """Drive torque per wheel (FL, FR, RL, RR) in Nm."""
        return list(self._wheel_torques)

    @property
    def reflected_inertia(self) -> List[float]:
        """Engine inertia reflected onto each wheel while locked."""
        return list(self._reflected_inertia)

    @property
    def damage(self) -> float:
        """Drivetrain damage 0-1."""
        return self._damage

    @damage.setter
    def damage(self, value: float) -> None:
        self._damage = clamp(float(value), 0.0, 1.0)

    def _clamp_gear(self, gear: int) -> int:
        return int(clamp(int(gear), int(GearState.REVERSE), self.max_gear))

    def get_gear_ratio(self, gear: int | None = None) -> float:
        """Gearbox ratio for a gear (negative in reverse, 0 in neutral).

        Args:
            gear: Gear number (uses current if None)

        Returns:
            Gear ratio
        """
        gear = self._gear if gear is None else gear
        if gear == int(GearState.REVERSE):
            return -self.config.reverse_ratio
        if gear <= 0 or gear > self.max_gear:
            return 0.0
        return self.config.ratios[gear - 1]

    def get_total_ratio(self, gear: int | None = None) -> float:
        """Gearbox times final drive; zero while shifting."""
        if gear is None and self.is_shifting:
            return 0.0
        return self.get_gear_ratio(gear) * self.config.final_drive

    def driven_wheels(self) -> List[int]:
        """Corner indices receiving drive torque."""
        layout = self.config.layout
        if layout == DriveLayout.FWD:
            return [FL, FR]
        if layout == DriveLayout.RWD:
            return [RL, RR]
        return [FL, FR, RL, RR]

    def _axle_shares(self) -> Tuple[float, float]:
        """Fraction of drive torque to (front, rear)."""
        layout = self.config.layout
        if layout == DriveLayout.FWD:
            return 1.0, 0.0
        if layout == DriveLayout.RWD:
            return 0.0, 1.0
        return self.config.awd_front_bias, 1.0 - self.config.awd_front_bias

    def driven_speed(self, wheel_speeds: List[float]) -> float:
        """Torque-weighted average angular velocity of the driven wheels."""
        front, rear = self._axle_shares()
        front_speed = 0.5 * (wheel_speeds[FL] + wheel_speeds[FR])
        rear_speed = 0.5 * (wheel_speeds[RL] + wheel_speeds[RR])
        return front * front_speed + rear * rear_speed

    def shift_up(self) -> bool:
        """Request upshift.

        Returns:
            True if shift request accepted
        """
        if self.is_shifting or self._gear >= self.max_gear:
            return False
        return self._begin_shift(self._gear + 1)

    def shift_down(self) -> bool:
        """Request downshift.

        Returns:
            True if shift request accepted
        """
        if self.is_shifting or self._gear <= int(GearState.REVERSE):
            return False
        return self._begin_shift(self._gear - 1)

    def _begin_shift(self, target: int) -> bool:
        self._target_gear = target
        self._shift_state = ShiftState.SHIFTING
        self._shift_timer = self.config.shift_time
        self._locked = False
        logger.debug(f"Shift {self._gear} -> {target}")
        return True

    def set_gear(self, gear: int, engine: Engine | None = None, wheel_speeds: List[float] | None = None) -> int:
        """Select a gear immediately, bypassing the shift state machine.

        Args:
            gear: Target gear, clamped to the valid range
            engine: Engine whose RPM is synchronized to road speed
            wheel_speeds: Wheel angular velocities in rad/s

        Returns:
            The selected gear
        """
        self._gear = self._clamp_gear(gear)
        self._target_gear = self._gear
        self._shift_state = ShiftState.IDLE
        self._shift_timer = 0.0
        self._locked = False
        ratio = self.get_total_ratio()
        if engine is not None and wheel_speeds is not None and ratio != 0.0:
            synced = abs(self.driven_speed(wheel_speeds) * ratio) * RAD_S_TO_RPM
            engine.rpm = max(engine.config.idle_rpm, synced)
        return self._gear

    def _update_shift(self, dt: float, shift_up: bool, shift_down: bool, rpm: float) -> float:
        """Advance the shift state machine.

        Returns:
            Clutch command from the shift ramp (1 when idle)
        """
        cfg = self.config
        self._auto_shift_timer = max(0.0, self._auto_shift_timer - dt)

        if self._shift_state == ShiftState.IDLE:
            if shift_up:
                self.shift_up()
            elif shift_down:
                self.shift_down()
            elif cfg.auto_shift and self._gear >= int(GearState.FIRST) and self._auto_shift_timer <= 0.0:
                if rpm >= cfg.upshift_rpm and self._gear < self.max_gear:
                    self.shift_up()
                    self._auto_shift_timer = cfg.auto_shift_cooldown
                elif rpm <= cfg.downshift_rpm and self._gear > int(GearState.FIRST):
                    self.shift_down()
                    self._auto_shift_timer = cfg.auto_shift_cooldown

        if self._shift_state != ShiftState.SHIFTING:
            return 1.0

        self._shift_timer -= dt
        if self._shift_timer <= 0.0:
            self._gear = self._target_gear
            self._shift_state = ShiftState.IDLE
            self._shift_timer = 0.0
            return 1.0

        progress = self.shift_progress
        if progress < 0.5:
            return 1.0 - 2.0 * progress
        return 2.0 * progress - 1.0

    def _clutch_inertia(self, engine: Engine, ratio: float, inertias: List[float]) -> float:
        """Crank and driven wheel inertia reduced across the clutch, at the crank."""
        front, rear = self._axle_shares()
        wheels = 0.0
        if front > 0.0:
            wheels += inertias[FL] + inertias[FR]
        if rear > 0.0:
            wheels += inertias[RL] + inertias[RR]
        wheels /= ratio * ratio
        crank = engine.config.inertia
        return crank * wheels / (crank + wheels)

    def _launch_factor(self, rpm: float, engine: Engine) -> float:
        """Clutch capacity fraction available at an engine speed."""
        if not self.config.anti_stall:
            return 1.0
        idle = engine.config.idle_rpm
        return clamp((rpm - idle) / (self.config.launch_rpm - idle), 0.0, 1.0)

    def update(
        self,
        dt: float,
        engine: Engine,
        throttle: float,
        clutch_pedal: float,
        shift_up: bool,
        shift_down: bool,
        wheel_speeds: List[float],
        wheel_inertias: List[float] | None = None,
    ) -> List[float]:
        """Update drivetrain state for one time step.

        Args:
            dt: Time step in seconds
            engine: Engine, already updated this step
            throttle: Throttle position 0-1
            clutch_pedal: Clutch pedal 0 (released) to 1 (pressed)
            shift_up: Upshift edge
            shift_down: Downshift edge
            wheel_speeds: Wheel angular velocities (FL, FR, RL, RR) in rad/s
            wheel_inertias: Wheel rotational inertias in kg*m^2

        Returns:
            Drive torque per wheel (FL, FR, RL, RR) in Nm
        """
        cfg = self.config
        inertias = wheel_inertias or [1.0, 1.0, 1.0, 1.0]

        was_shifting = self.is_shifting
        ramp = self._update_shift(dt, shift_up, shift_down, engine.rpm)
        self._clutch = clamp(1.0 - clutch_pedal, 0.0, 1.0) * ramp
        ratio = self.get_total_ratio()

        if was_shifting and not self.is_shifting and ratio != 0.0 and engine.running:
            # Synchronizer matches the crank to the new gear as it engages
            synced = abs(self.driven_speed(wheel_speeds) * ratio) * RAD_S_TO_RPM
            engine.rpm = max(engine.config.idle_rpm, synced)
            self._last_slip = 0.0

        self._reflected_inertia = [0.0, 0.0, 0.0, 0.0]
        if ratio == 0.0 or self._clutch <= 0.0 or not engine.running:
            self._locked = False
            self._last_slip = 0.0
            self._transmitted_torque = 0.0
            self._resistance_torque = 0.0
            self._wheel_torques = [0.0, 0.0, 0.0, 0.0]
            return list(self._wheel_torques)

        wheel_side = self.driven_speed(wheel_speeds) * ratio
        slip = engine.angular_velocity - wheel_side
        capacity = self._clutch * cfg.clutch_max_torque * self._launch_factor(engine.rpm, engine)
        demand = engine.net_torque
        can_lock = wheel_side > 0.0 and capacity > 0.0 and abs(demand) <= capacity
        if cfg.anti_stall:
            # Never lock the crank to wheels turning slower than idle
            can_lock = can_lock and wheel_side * RAD_S_TO_RPM >= engine.config.idle_rpm

        crossed = False
        if self._locked:
            self._locked = can_lock
        else:
            crossed = self._last_slip != 0.0 and sign(slip) != sign(self._last_slip)
            self._locked = can_lock and (abs(slip) <= cfg.slip_threshold or crossed)
        self._last_slip = slip

        if self._locked:
            transmitted = demand
            engine.rpm = wheel_side * RAD_S_TO_RPM
            front, rear = self._axle_shares()
            reflected = engine.config.inertia * ratio * ratio
            self._reflected_inertia = [
                0.5 * front * reflected,
                0.5 * front * reflected,
                0.5 * rear * reflected,
                0.5 * rear * reflected,
            ]
        else:
            direction = sign(slip) if slip != 0.0 else sign(demand)
            transmitted = capacity * direction
            if crossed:
                # Only the torque that closes the slip within this step
                closing = abs(slip) * self._clutch_inertia(engine, ratio, inertias) / dt
                transmitted = direction * min(capacity, closing)

        self._transmitted_torque = transmitted
        self._resistance_torque = transmitted / self._clutch

        drive = transmitted * ratio * cfg.efficiency * (1.0 - 0.3 * self._damage)
        self._wheel_torques = self._distribute(drive, throttle > 0.05, wheel_speeds, inertias, dt)
        return list(self._wheel_torques)

    def _distribute(
        self,
        drive: float,
        on_throttle: bool,
        wheel_speeds: List[float],
        inertias: List[float],
        dt: float,
    ) -> List[float]:
        """Split drive torque across axles and through the differential."""
        front, rear = self._axle_shares()
        torques = [0.0, 0.0, 0.0, 0.0]
        effective = [inertias[i] + self._reflected_inertia[i] for i in range(4)]
        if front > 0.0:
            torques[FL], torques[FR] = self.differential.split(
                drive * front, wheel_speeds[FL], wheel_speeds[FR], on_throttle,
                effective[FL], effective[FR], dt,
            )
        if rear > 0.0:
            torques[RL], torques[RR] = self.differential.split(
                drive * rear, wheel_speeds[RL], wheel_speeds[RR], on_throttle,
                effective[RL], effective[RR], dt,
            )
        return torques

    def export_state(self) -> dict:
        """Mutable state as plain data."""
        return {
            "gear": self._gear,
            "target_gear": self._target_gear,
            "shift_state": self._shift_state.value,
            "shift_timer": self._shift_timer,
            "auto_shift_timer": self._auto_shift_timer,
            "clutch": self._clutch,
            "locked": self._locked,
            "last_slip": self._last_slip,
            "transmitted_torque": self._transmitted_torque,
            "resistance_torque": self._resistance_torque,
            "wheel_torques": list(self._wheel_torques),
            "reflected_inertia": list(self._reflected_inertia),
            "damage": self._damage,
            "differential": self.differential.kind.value,
        }

    def import_state(self, state: dict) -> None:
        """Restore state produced by export_state."""
        self._gear = int(state["gear"])
        self._target_gear = int(state["target_gear"])
        self._shift_state = ShiftState(state["shift_state"])
        self._shift_timer = float(state["shift_timer"])
        self._auto_shift_timer = float(state["auto_shift_timer"])
        self._clutch = float(state["clutch"])
        self._locked = bool(state["locked"])
        self._last_slip = float(state["last_slip"])
        self._transmitted_torque = float(state["transmitted_torque"])
        self._resistance_torque = float(state["resistance_torque"])
        self._wheel_torques = [float(v) for v in state["wheel_torques"]]
        self._reflected_inertia = [float(v) for v in state["reflected_inertia"]]
        self._damage = float(state["damage"])
        self.differential.kind = state["differential"]

    def get_state(self) -> dict:
        """Get current drivetrain state for telemetry.

        Returns:
            Dictionary containing drivetrain state values
        """
        return {
            "gear": self._gear,
            "target_gear": self._target_gear,
            "shift_state": self._shift_state.value,
            "shift_progress": self.shift_progress,
            "clutch": self._clutch,
            "clutch_locked": self._locked,
            "total_ratio": self.get_total_ratio(),
            "transmitted_torque_nm": self._transmitted_torque,
            "wheel_torques_nm": list(self._wheel_torques),
            "differential": self.differential.kind.value,
            "layout": self.config.layout.value,
        }
