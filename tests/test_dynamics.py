"""Integration tests for vehicle dynamics."""

import math

import numpy as np
import pytest

from vdc.config import VehicleConfig
from vdc.errors import NumericalDegeneracyError
from vdc.simulation.world import FlatWorld, Obstacle
from vdc.vehicle.engine import RAD_S_TO_RPM
from vdc.vehicle.inputs import DriverInputs
from vdc.vehicle.vehicle import Vehicle
from vdc.vehicle.wheel import Corner

DT = 1.0 / 120.0


def _course(vehicle: Vehicle) -> float:
    """Direction of travel over the ground, positive to the left of +z."""
    return math.atan2(float(vehicle.velocity[0]), float(vehicle.velocity[2]))


def _hold_speed(target: float, steer: float):
    """Input provider trimming throttle to hold a speed."""
    def provider(vehicle: Vehicle) -> DriverInputs:
        throttle = min(1.0, max(0.0, 0.3 + 0.5 * (target - vehicle.speed)))
        return DriverInputs(throttle=throttle, steer=steer)
    return provider


def _road_rpm(vehicle: Vehicle) -> float:
    """Engine speed the driven wheels imply in the selected gear."""
    drivetrain = vehicle.drivetrain
    ratio = drivetrain.get_total_ratio(drivetrain.gear)
    return drivetrain.driven_speed(vehicle.wheel_speeds) * ratio * RAD_S_TO_RPM


def _run_skid_pad(world: FlatWorld | None = None, seconds: float = 5.0, steer: float = 0.12):
    """Constant steer holding 20 m/s in third gear, sampling each step."""
    vehicle = Vehicle(world=world)
    vehicle.reset(speed=20.0)
    vehicle.set_gear(3)
    provider = _hold_speed(20.0, steer)
    samples = []
    for _ in range(int(round(seconds / DT))):
        vehicle.step(provider(vehicle), DT)
        samples.append((vehicle.time, vehicle.yaw_rate, vehicle.lateral_acceleration))
    return vehicle, np.array(samples)


def _longest_run(flags) -> int:
    """Length of the longest run of consecutive true values."""
    longest = current = 0
    for flag in flags:
        current = current + 1 if flag else 0
        longest = max(longest, current)
    return longest


def _run_braking(abs_enabled: bool):
    config = VehicleConfig()
    config.brakes.abs_enabled = abs_enabled
    vehicle = Vehicle(config)
    vehicle.reset(speed=30.0)
    start = vehicle.position.copy()

    slips = []
    abs_seen = False
    for _ in range(240):
        vehicle.step(DriverInputs(brake=1.0), DT)
        slips.append([wheel.tire.slip_ratio for wheel in vehicle.wheels])
        abs_seen = abs_seen or any(w.abs_active for w in vehicle.brakes.wheels)
    distance = float(np.linalg.norm(vehicle.position - start))
    return vehicle, np.abs(np.array(slips)), distance, abs_seen


class TestRest:
    """Test a parked car stays parked."""

    def test_idle_sanity(self, vehicle):
        start = vehicle.position.copy()
        for _ in range(600):
            vehicle.step(None, DT)
            rpm = vehicle.engine.rpm
            assert vehicle.engine.config.idle_rpm - 5.0 <= rpm <= vehicle.engine.config.idle_rpm + 5.0

        assert np.linalg.norm(vehicle.position - start) <= 1e-3

    def test_parked_car_falls_asleep(self, vehicle):
        for _ in range(1200):
            vehicle.step(DriverInputs(), DT)
        assert vehicle.body.asleep
        assert vehicle.speed < 1e-3

    def test_throttle_wakes_sleeping_car(self, vehicle):
        for _ in range(1200):
            vehicle.step(DriverInputs(), DT)
        vehicle.set_gear(1)
        for _ in range(240):
            vehicle.step(DriverInputs(throttle=0.6), DT)
        assert not vehicle.body.asleep
        assert vehicle.forward_speed > 1.0

    @pytest.mark.parametrize("throttle", [0.4, 0.5, 0.6, 0.7, 0.8])
    def test_partial_throttle_standing_start(self, throttle):
        vehicle = Vehicle()
        vehicle.set_gear(1)
        for _ in range(240):
            vehicle.step(DriverInputs(throttle=throttle), DT)
            assert vehicle.engine.running

        assert vehicle.forward_speed > 1.0
        assert vehicle.engine.rpm >= vehicle.engine.config.stall_rpm

    def test_orientation_stays_unit_norm(self, vehicle):
        vehicle.reset(speed=15.0)
        vehicle.set_gear(2)
        for step in range(600):
            vehicle.step(DriverInputs(throttle=0.5, steer=math.sin(step * 0.02)), DT)
            assert vehicle.body.quaternion_error() <= 1e-6


class TestLongitudinal:
    """Test acceleration, braking and coasting."""

    def test_straight_line_acceleration(self):
        vehicle = Vehicle()
        vehicle.set_gear(1)

        shift_steps = []
        was_shifting = False
        for step in range(1200):
            shift = vehicle.engine.rpm >= 6800.0 and not vehicle.drivetrain.is_shifting
            if shift:
                shift_steps.append(step)
            vehicle.step(DriverInputs(throttle=1.0, shift_up=shift), DT)
            if was_shifting and not vehicle.drivetrain.is_shifting:
                # The new gear engages with the crank matched to road speed
                assert vehicle.engine.rpm == pytest.approx(_road_rpm(vehicle), rel=0.05)
            was_shifting = vehicle.drivetrain.is_shifting

        assert all(later - earlier > 60 for earlier, later in zip(shift_steps, shift_steps[1:]))

        assert 35.0 <= vehicle.forward_speed <= 45.0
        assert vehicle.drivetrain.gear >= 3
        assert vehicle.engine.temperature >= 85.0
        assert abs(vehicle.heading) < 0.05

    def test_hard_braking_without_abs(self):
        vehicle, slips, _, abs_seen = _run_braking(abs_enabled=False)

        assert not abs_seen
        assert slips.max() > 0.5
        assert vehicle.speed < 15.0
        temps = vehicle.brakes.temperatures
        assert temps[Corner.FL] > temps[Corner.RL]
        assert temps[Corner.FR] > temps[Corner.RR]

    def test_hard_braking_with_abs(self):
        plain, plain_slips, plain_distance, _ = _run_braking(abs_enabled=False)
        vehicle, slips, distance, abs_seen = _run_braking(abs_enabled=True)

        assert abs_seen
        assert slips.mean() < plain_slips.mean()
        assert distance == pytest.approx(plain_distance, rel=0.10)
        # No wheel stays past 0.2 slip for longer than one ABS cycle
        cycle = int(round(1.0 / (vehicle.config.brakes.abs_frequency_hz * DT)))
        for corner in range(4):
            assert _longest_run(slips[:, corner] > 0.2) <= cycle
        assert vehicle.speed < 30.0

    def test_braking_from_reverse(self):
        vehicle = Vehicle()
        vehicle.reset(speed=-8.0)
        for _ in range(480):
            vehicle.step(DriverInputs(brake=1.0), DT)
        assert abs(vehicle.forward_speed) < 0.5

    def test_coast_down_loses_energy_every_step(self):
        vehicle = Vehicle()
        vehicle.reset(speed=25.0)
        energy = vehicle.kinetic_energy
        for _ in range(600):
            vehicle.step(DriverInputs(), DT)
            assert vehicle.kinetic_energy < energy
            energy = vehicle.kinetic_energy

    def test_handbrake_slows_rear_wheels_only(self):
        vehicle = Vehicle()
        vehicle.reset(speed=15.0)
        for _ in range(60):
            vehicle.step(DriverInputs(handbrake=True), DT)

        torques = vehicle.brakes.torques
        assert torques[Corner.FL] == 0.0
        assert torques[Corner.RL] > 0.0
        assert vehicle.wheels[Corner.RL].angular_velocity < vehicle.wheels[Corner.FL].angular_velocity
        assert vehicle.forward_speed < 15.0


class TestCornering:
    """Test steady-state and limit cornering."""

    def test_skid_pad_steady_state(self):
        vehicle, samples = _run_skid_pad(steer=0.3)
        time, yaw_rate, lateral = samples[:, 0], samples[:, 1], samples[:, 2]

        early = (time > 3.0) & (time <= 4.0)
        late = time > 4.0
        # Converged: the last two seconds agree
        assert yaw_rate[late].mean() > 0.0
        assert lateral[late].mean() > 0.0
        assert yaw_rate[late].mean() == pytest.approx(yaw_rate[early].mean(), rel=0.1)
        assert lateral[late].mean() == pytest.approx(lateral[early].mean(), rel=0.1)

        # Left turn loads the right-hand wheels
        loads = [wheel.tire.load for wheel in vehicle.wheels]
        outer = loads[Corner.FR] + loads[Corner.RR]
        inner = loads[Corner.FL] + loads[Corner.RL]
        assert outer > 1.3 * inner

    def test_skid_pad_holds_speed(self):
        vehicle, _ = _run_skid_pad(seconds=4.0)
        assert vehicle.speed == pytest.approx(20.0, abs=3.0)

    def test_ice_patch_leaves_the_line(self):
        """Driving onto ice from the skid pad with the same steer and throttle trim."""
        vehicle, samples = _run_skid_pad(seconds=3.0, steer=0.3)
        course = _course(vehicle)
        provider = _hold_speed(20.0, 0.3)
        vehicle.world = FlatWorld("ice")

        lateral = []
        for _ in range(120):
            vehicle.step(provider(vehicle), DT)
            lateral.append(vehicle.lateral_acceleration)

        assert all(wheel.tire.grip <= 0.15 for wheel in vehicle.wheels)
        # The ice cannot hold the circle: cornering force collapses
        assert abs(np.mean(lateral[-60:])) < 0.25 * abs(samples[-120:, 2].mean())
        # and the path turns through less than half what a second on the circle would
        turned = _course(vehicle) - course
        assert turned < 0.5 * samples[-120:, 1].mean()

    def test_mirrored_steer_gives_mirrored_outputs(self):
        left = Vehicle()
        right = Vehicle()
        for car in (left, right):
            car.reset(speed=15.0)
            car.set_gear(2)
        for step in range(240):
            steer = 0.4 * min(1.0, step / 60.0)
            left.step(DriverInputs(throttle=0.4, steer=steer, brake=0.2), DT)
            right.step(DriverInputs(throttle=0.4, steer=-steer, brake=0.2), DT)

        assert left.heading > 0.05
        assert right.heading == pytest.approx(-left.heading, abs=1e-9)
        assert right.position[0] == pytest.approx(-left.position[0], abs=1e-9)
        assert right.position[2] == pytest.approx(left.position[2], abs=1e-9)

        pairs = [(Corner.FL, Corner.FR), (Corner.FR, Corner.FL), (Corner.RL, Corner.RR), (Corner.RR, Corner.RL)]
        for a, b in pairs:
            tire_a = left.wheels[a].tire
            tire_b = right.wheels[b].tire
            assert tire_b.load == pytest.approx(tire_a.load, abs=1e-9)
            assert tire_b.forces.fx == pytest.approx(tire_a.forces.fx, abs=1e-9)
            assert tire_b.forces.fy == pytest.approx(-tire_a.forces.fy, abs=1e-9)
            assert right.brakes.torques[b] == pytest.approx(left.brakes.torques[a], abs=1e-9)

    def test_differential_mode_can_change_while_driving(self):
        vehicle = Vehicle()
        vehicle.reset(speed=10.0)
        vehicle.set_gear(2)
        for _ in range(60):
            vehicle.step(DriverInputs(throttle=0.5, steer=0.5), DT)
        vehicle.drivetrain.differential.kind = "open"
        for _ in range(60):
            vehicle.step(DriverInputs(throttle=0.5, steer=0.5), DT)
        torques = vehicle.drivetrain.wheel_torques
        assert torques[Corner.RL] == pytest.approx(torques[Corner.RR])


class TestObstacles:
    """Test the car against obstacles in the world."""

    @pytest.mark.parametrize("post", [
        Obstacle(position=(0.0, 1.0, 8.0), radius=0.2, kind="post"),
        Obstacle(position=(0.0, 1.0, 8.0), half_extents=(0.2, 1.0, 0.2), kind="post"),
    ])
    def test_post_dead_ahead_stops_the_car(self, post):
        world = FlatWorld()
        world.add_obstacle(post)
        vehicle = Vehicle(world=world)
        vehicle.reset(speed=10.0)

        hits = 0
        for _ in range(240):
            vehicle.step(DriverInputs(), DT)
            hits += sum(1 for event in vehicle.last_collisions if event.kind == "post")

        assert hits > 0
        # The front bumper never gets past the post
        assert vehicle.position[2] + 2.2 < 8.0 + 0.2
        assert vehicle.forward_speed < 5.0


class TestDeterminism:
    """Test repeatability and state handling."""

    def _scripted(self, vehicle: Vehicle, steps: int = 360) -> None:
        for step in range(steps):
            vehicle.step(DriverInputs(
                throttle=0.8 if step < 200 else 0.0,
                brake=0.0 if step < 200 else 0.6,
                steer=0.3 * math.sin(step / 40.0),
                shift_up=step == 100,
            ), DT)

    def test_identical_runs_match_exactly(self):
        a = Vehicle()
        b = Vehicle()
        for car in (a, b):
            car.set_gear(1)
            self._scripted(car)
        assert a.export_state() == b.export_state()

    def test_reset_restores_initial_state(self):
        vehicle = Vehicle()
        initial = vehicle.export_state()
        vehicle.set_gear(1)
        self._scripted(vehicle, 120)
        vehicle.reset()
        assert vehicle.export_state() == initial

    def test_reset_button_resets_once_per_press(self):
        vehicle = Vehicle()
        vehicle.set_gear(1)
        for _ in range(120):
            vehicle.step(DriverInputs(throttle=1.0), DT)
        assert vehicle.time > 0.0

        vehicle.step(DriverInputs(reset=True), DT)
        assert vehicle.time == 0.0
        vehicle.step(DriverInputs(reset=True), DT)
        assert vehicle.time == pytest.approx(DT)

    def test_non_finite_state_raises(self):
        vehicle = Vehicle()
        vehicle.check_finite()

        vehicle.body.angular_velocity = np.array([0.0, math.inf, 0.0])
        with pytest.raises(NumericalDegeneracyError, match="body"):
            vehicle.check_finite()

        vehicle.reset()
        vehicle.wheels[Corner.RR].angular_velocity = math.nan
        with pytest.raises(NumericalDegeneracyError, match="RR"):
            vehicle.check_finite()

    def test_telemetry_contains_every_subsystem(self):
        vehicle = Vehicle()
        vehicle.step(DriverInputs(throttle=0.2), DT)
        telemetry = vehicle.get_telemetry()
        for key in ("body", "wheels", "engine", "drivetrain", "brakes", "steering", "suspension", "aero"):
            assert key in telemetry
        assert set(telemetry["wheels"]) == {"FL", "FR", "RL", "RR"}
