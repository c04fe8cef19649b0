"""
Simulator - Fixed-step driver for the vehicle dynamics core.

Provides:
- Wall-clock accumulator with bounded catch-up substeps
- Numerical degeneracy recovery from the last good state
- End-of-tick telemetry frames
- Step callbacks
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import logging

from vdc.errors import ConfigInvalidError, NumericalDegeneracyError
from vdc.simulation.world import WorldQuery
from vdc.telemetry.frame import TelemetryFrame
from vdc.vehicle.inputs import DriverInputs
from vdc.vehicle.vehicle import Vehicle

logger = logging.getLogger(__name__)

InputSource = Callable[["Simulator"], DriverInputs]


@dataclass
class SimulatorConfig:
    """Simulator configuration."""
    # Time stepping
    fixed_dt: float = 1.0 / 120.0      # Physics time step (120 Hz)
    max_substeps: int = 4              # Catch-up limit per tick
    max_accumulator: float = 0.1       # Wall-clock backlog cap in seconds

    # Recovery
    degeneracy_limit: int = 8          # Consecutive failed steps before halting

    # Telemetry
    enable_telemetry: bool = True
    telemetry_buffer: int = 10000      # Frames kept, trimmed to half when exceeded

    def __post_init__(self):
        problems = []
        if self.fixed_dt <= 0:
            problems.append("simulator.fixed_dt must be positive")
        if self.max_substeps < 1:
            problems.append("simulator.max_substeps must be at least 1")
        if self.max_accumulator < self.fixed_dt:
            problems.append("simulator.max_accumulator must be at least fixed_dt")
        if self.degeneracy_limit < 1:
            problems.append("simulator.degeneracy_limit must be at least 1")
        if self.telemetry_buffer < 2:
            problems.append("simulator.telemetry_buffer must be at least 2")
        if problems:
            raise ConfigInvalidError(problems)


class Simulator:
    """Drives one Vehicle at a fixed time step.

    Features:
    - Fixed time-step physics decoupled from frame time
    - Snapshot-based recovery from NaN/Inf state
    - Telemetry frames for HUD, audio and replay readers
    - Callback system for scripted scenarios

    Usage:
        sim = Simulator(Vehicle())
        frame = sim.tick(1 / 60, DriverInputs(throttle=1.0))
    """

    def __init__(
        self,
        vehicle: Vehicle | None = None,
        config: SimulatorConfig | None = None,
        world: WorldQuery | None = None,
        input_source: InputSource | None = None,
    ):
        """Initialize simulator.

        Args:
            vehicle: Vehicle to drive. Built from defaults if None.
            config: Simulator configuration. Uses defaults if None.
            world: World for a default vehicle; ignored if vehicle is given
            input_source: Called once per step when tick/step get no inputs
        """
        self.config = config or SimulatorConfig()
        self.vehicle = vehicle or Vehicle(world=world)
        self.input_source = input_source

        self._accumulator: float = 0.0
        self._degraded: bool = False
        self._halted: bool = False
        self._failures: int = 0
        self._last_substeps: int = 0
        self._last_good: Dict[str, Any] = self.vehicle.export_state()
        self._last_frame: Optional[TelemetryFrame] = None

        self._telemetry_buffer: List[TelemetryFrame] = []
        self._pre_step_callbacks: List[Callable] = []
        self._post_step_callbacks: List[Callable] = []

    @property
    def time(self) -> float:
        """Current simulation time."""
        return self.vehicle.time

    @property
    def dt(self) -> float:
        return self.config.fixed_dt

    @property
    def degraded(self) -> bool:
        """A step has failed and state was rolled back at least once."""
        return self._degraded

    @property
    def halted(self) -> bool:
        """Degeneracy persisted; no further steps run until reset."""
        return self._halted

    @property
    def interpolation_alpha(self) -> float:
        """Fraction of a step left in the accumulator, for render interpolation."""
        return self._accumulator / self.config.fixed_dt

    @property
    def last_frame(self) -> Optional[TelemetryFrame]:
        return self._last_frame

    def add_pre_step_callback(self, callback: Callable) -> None:
        """Add callback called before each step.

        Args:
            callback: Function taking (simulator, dt) arguments
        """
        self._pre_step_callbacks.append(callback)

    def add_post_step_callback(self, callback: Callable) -> None:
        """Add callback called after each step.

        Args:
            callback: Function taking (simulator, dt) arguments
        """
        self._post_step_callbacks.append(callback)

    def tick(self, frame_dt: float, inputs: DriverInputs | None = None) -> TelemetryFrame:
        """Advance by one frame of wall-clock time.

        Runs whole fixed steps while the accumulator allows, at most
        max_substeps per call, then publishes a telemetry frame.

        Args:
            frame_dt: Wall-clock time since the previous tick in seconds
            inputs: Driver inputs held for every substep of this tick

        Returns:
            End-of-tick telemetry frame
        """
        cfg = self.config
        self._accumulator = min(self._accumulator + max(frame_dt, 0.0), cfg.max_accumulator)

        substeps = 0
        while not self._halted and self._accumulator >= cfg.fixed_dt and substeps < cfg.max_substeps:
            self.step(inputs)
            self._accumulator -= cfg.fixed_dt
            substeps += 1
        self._last_substeps = substeps

        return self._publish()

    def step(self, inputs: DriverInputs | None = None) -> bool:
        """Run exactly one fixed step.

        Args:
            inputs: Driver inputs. Pulled from the input source if None.

        Returns:
            True if the step completed without degeneracy
        """
        if self._halted:
            return False

        dt = self.config.fixed_dt
        if inputs is None and self.input_source is not None:
            inputs = self.input_source(self)

        for callback in self._pre_step_callbacks:
            callback(self, dt)

        try:
            self.vehicle.step(inputs, dt)
        except NumericalDegeneracyError as e:
            self._recover(e)
            return False

        self._failures = 0
        self._last_good = self.vehicle.export_state()

        for callback in self._post_step_callbacks:
            callback(self, dt)
        return True

    def _recover(self, error: NumericalDegeneracyError) -> None:
        """Roll back to the last good state and track persistence."""
        self.vehicle.import_state(self._last_good)
        self._failures += 1
        if not self._degraded:
            logger.warning(f"Numerical degeneracy, restored last good state: {error}")
        self._degraded = True
        if self._failures >= self.config.degeneracy_limit:
            self._halted = True
            logger.error(f"Simulation halted after {self._failures} consecutive degenerate steps")

    def step_until(
        self,
        condition: Callable[["Simulator"], bool],
        input_provider: Callable[["Simulator"], DriverInputs] | None = None,
        max_steps: int = 100000,
    ) -> int:
        """Step until condition is met.

        Args:
            condition: Function returning True when should stop
            input_provider: Function providing inputs each step
            max_steps: Maximum steps to take

        Returns:
            Number of steps taken
        """
        steps = 0
        while not self._halted and steps < max_steps:
            if condition(self):
                break
            self.step(input_provider(self) if input_provider else None)
            steps += 1
        return steps

    def run(self, duration: float, inputs: DriverInputs | None = None) -> TelemetryFrame:
        """Step for a duration of simulated time with fixed inputs.

        Returns:
            Telemetry frame after the last step
        """
        steps = int(round(duration / self.config.fixed_dt))
        for _ in range(steps):
            if not self.step(inputs) and self._halted:
                break
        self._last_substeps = steps
        return self._publish()

    def _publish(self) -> TelemetryFrame:
        frame = TelemetryFrame.capture(
            self.vehicle.get_telemetry(),
            degraded=self._degraded,
            halted=self._halted,
            interpolation_alpha=self.interpolation_alpha,
            substeps=self._last_substeps,
        )
        self._last_frame = frame
        if self.config.enable_telemetry:
            self._telemetry_buffer.append(frame)
            if len(self._telemetry_buffer) > self.config.telemetry_buffer:
                self._telemetry_buffer = self._telemetry_buffer[-(self.config.telemetry_buffer // 2):]
        return frame

    def get_telemetry(self) -> List[TelemetryFrame]:
        """Published frames, oldest first."""
        return self._telemetry_buffer.copy()

    def clear_telemetry(self) -> None:
        self._telemetry_buffer.clear()

    def reset(self) -> None:
        """Reset vehicle and orchestrator state."""
        self.vehicle.reset()
        self._accumulator = 0.0
        self._degraded = False
        self._halted = False
        self._failures = 0
        self._last_substeps = 0
        self._last_good = self.vehicle.export_state()
        self._last_frame = None
        self._telemetry_buffer.clear()

    def get_state(self) -> Dict[str, Any]:
        """Get orchestrator status.

        Returns:
            Dictionary containing simulator state
        """
        return {
            "config": {
                "fixed_dt": self.config.fixed_dt,
                "max_substeps": self.config.max_substeps,
                "max_accumulator": self.config.max_accumulator,
            },
            "time": self.time,
            "accumulator": self._accumulator,
            "degraded": self._degraded,
            "halted": self._halted,
            "consecutive_failures": self._failures,
        }
