"""Tests for the vehicle subsystems."""

import math

import numpy as np
import pytest

from vdc.simulation.world import Environment
from vdc.vehicle.aero import AeroConfig, Aerodynamics
from vdc.vehicle.brakes import BrakeConfig, Brakes
from vdc.vehicle.drivetrain import (
    DifferentialConfig,
    DifferentialKind,
    Differential,
    DriveLayout,
    Drivetrain,
    DrivetrainConfig,
    GearState,
)
from vdc.vehicle.engine import Engine, EngineConfig, RAD_S_TO_RPM
from vdc.vehicle.inputs import DriverInputs, InputConditioner, InputConfig
from vdc.vehicle.steering import Steering, SteeringConfig
from vdc.vehicle.suspension import Suspension, SuspensionConfig
from vdc.vehicle.wheel import Corner, Wheel, wheels_from_config

DT = 1.0 / 120.0


class TestInputs:
    """Test driver input conditioning."""

    def test_values_are_clamped(self):
        conditioner = InputConditioner(InputConfig(steering_smoothing=0.0))
        out = conditioner.update(DriverInputs(throttle=1.7, brake=-0.5, steer=-3.0, clutch=2.0), DT)
        assert out.throttle == 1.0
        assert out.brake == 0.0
        assert out.steer == -1.0
        assert out.clutch == 1.0

    def test_nan_input_is_neutral(self):
        conditioner = InputConditioner()
        out = conditioner.update(DriverInputs(throttle=float("nan"), brake=0.5), DT)
        assert out.throttle == 0.0
        assert out.brake == 0.0

    def test_buttons_fire_once_per_press(self):
        conditioner = InputConditioner()
        held = DriverInputs(shift_up=True)
        assert conditioner.update(held, DT).shift_up
        assert not conditioner.update(held, DT).shift_up
        conditioner.update(DriverInputs(), DT)
        assert conditioner.update(held, DT).shift_up

    def test_latch_suppresses_next_edge(self):
        conditioner = InputConditioner()
        pressed = DriverInputs(reset=True)
        conditioner.latch(pressed)
        assert not conditioner.update(pressed, DT).reset

    def test_steering_is_smoothed(self):
        conditioner = InputConditioner(InputConfig(steering_smoothing=0.15))
        first = conditioner.update(DriverInputs(steer=1.0), DT).steer
        assert 0.0 < first < 1.0
        for _ in range(240):
            last = conditioner.update(DriverInputs(steer=1.0), DT).steer
        assert last == pytest.approx(1.0, abs=1e-3)


class TestEngine:
    """Test engine component."""

    def test_engine_initialization(self):
        """Test engine initializes at idle and running."""
        engine = Engine()
        assert engine.rpm == engine.config.idle_rpm
        assert engine.running

    def test_torque_curve_interpolation(self):
        engine = Engine()
        assert engine.torque_multiplier(4500.0) == pytest.approx(1.0)
        assert engine.torque_multiplier(3750.0) == pytest.approx(0.95)
        # Endpoints clamp
        assert engine.torque_multiplier(9000.0) == pytest.approx(0.7)
        assert engine.torque_multiplier(-100.0) == pytest.approx(0.0)

    def test_free_revving_raises_rpm(self):
        engine = Engine()
        for _ in range(30):
            engine.update(DT, 1.0, 0.0, 0.0)
        assert engine.rpm > engine.config.idle_rpm + 500
        assert engine.output_torque > 0.0

    def test_rev_limiter_cuts_torque(self):
        """Test rev limiter cuts torque."""
        engine = Engine()
        engine.rpm = engine.config.rev_limiter
        engine.update(DT, 1.0, 0.0, 0.0)

        assert engine.rev_limiter_active
        assert engine.output_torque < 0.2 * engine.config.max_torque

        for _ in range(600):
            engine.update(DT, 1.0, 0.0, 0.0)
            assert engine.rpm <= engine.config.rev_limiter + 100.0

    def test_idle_governor_holds_idle(self):
        engine = Engine()
        engine.rpm = 600.0
        for _ in range(480):
            engine.update(DT, 0.0, 0.0, 0.0)
        assert engine.rpm == pytest.approx(engine.config.idle_rpm, abs=50.0)

    def test_engine_stalls_under_load(self):
        engine = Engine()
        engine.rpm = 350.0
        engine.update(DT, 0.0, 1.0, 500.0)

        assert not engine.running
        assert engine.rpm == 0.0

        engine.update(DT, 1.0, 0.0, 0.0)
        assert engine.output_torque == 0.0

        assert engine.start()
        assert engine.rpm == engine.config.idle_rpm

    def test_heavily_damaged_engine_will_not_start(self):
        engine = Engine()
        engine.stop()
        engine.damage = 0.95
        assert not engine.start()

    def test_turbo_spools_with_lag(self):
        engine = Engine()
        engine.rpm = 5000.0
        engine.update(DT, 1.0, 1.0, 300.0)
        early = engine.boost
        for _ in range(240):
            engine.update(DT, 1.0, 1.0, 300.0)
        assert 0.0 < early < engine.boost

    def test_temperature_rises_under_load(self):
        engine = Engine()
        initial = engine.temperature
        engine.rpm = 6000.0
        for _ in range(120):
            engine.update(DT, 1.0, 1.0, 350.0)
        assert engine.temperature > initial

    def test_overheating_causes_damage(self):
        engine = Engine()
        engine._temperature = 145.0
        for _ in range(120):
            engine.update(DT, 1.0, 0.0, 0.0)
        assert engine.damage > 0.0

    def test_fuel_is_consumed(self):
        engine = Engine()
        for _ in range(120):
            engine.update(DT, 0.5, 0.0, 0.0)
        assert engine.fuel_used > 0.0

    def test_engine_state(self):
        """Test engine state dictionary."""
        state = Engine().get_state()
        for key in ("rpm", "throttle", "torque_nm", "power_kw", "boost", "temperature_c"):
            assert key in state

    def test_state_round_trip(self):
        engine = Engine()
        for _ in range(10):
            engine.update(DT, 0.8, 0.0, 0.0)
        state = engine.export_state()
        other = Engine()
        other.import_state(state)
        assert other.export_state() == state


class TestDifferential:
    """Test differential torque split."""

    def test_open_splits_evenly(self):
        diff = Differential(DifferentialConfig(kind=DifferentialKind.OPEN))
        assert diff.split(1000.0, 50.0, 10.0, True, 1.2, 1.2, DT) == (500.0, 500.0)

    def test_lsd_favours_slower_wheel(self):
        diff = Differential(DifferentialConfig(kind=DifferentialKind.LSD))
        left, right = diff.split(1000.0, 12.0, 10.0, True, 1.2, 1.2, DT)
        assert left == pytest.approx(450.0)
        assert right == pytest.approx(550.0)
        assert left + right == pytest.approx(1000.0)

    @pytest.mark.parametrize("left_speed", [10.01, 10.5, 20.0])
    def test_lsd_preload_sets_minimum_lock(self, left_speed):
        diff = Differential(DifferentialConfig(kind=DifferentialKind.LSD, preload=80.0))
        left, right = diff.split(0.0, left_speed, 10.0, False, 1.2, 1.2, DT)
        assert right - left == pytest.approx(80.0)

    def test_lsd_without_speed_difference_splits_evenly(self):
        diff = Differential(DifferentialConfig(kind=DifferentialKind.LSD, preload=80.0))
        assert diff.split(600.0, 10.0, 10.0, True, 1.2, 1.2, DT) == (300.0, 300.0)

    def test_split_mirrors_with_wheel_speeds(self):
        for kind in DifferentialKind:
            diff = Differential(DifferentialConfig(kind=kind))
            left, right = diff.split(800.0, 14.0, 11.0, True, 1.2, 1.5, DT)
            mirrored_left, mirrored_right = diff.split(800.0, 11.0, 14.0, True, 1.5, 1.2, DT)
            assert left == pytest.approx(mirrored_right)
            assert right == pytest.approx(mirrored_left)

    def test_locked_equalizes_speeds(self):
        diff = Differential(DifferentialConfig(kind=DifferentialKind.LOCKED))
        left, right = diff.split(0.0, 11.0, 10.0, True, 1.0, 1.0, DT)
        assert left < 0.0 < right

    def test_kind_accepts_strings(self):
        diff = Differential()
        diff.kind = "OPEN"
        assert diff.kind == DifferentialKind.OPEN


class TestDrivetrain:
    """Test clutch, gearbox and shifting."""

    def test_initialization_in_neutral(self):
        drivetrain = Drivetrain()
        assert drivetrain.gear == int(GearState.NEUTRAL)
        assert drivetrain.get_total_ratio() == 0.0

    def test_gear_ratios(self):
        drivetrain = Drivetrain()
        cfg = drivetrain.config
        assert drivetrain.get_total_ratio(1) == pytest.approx(cfg.ratios[0] * cfg.final_drive)
        assert drivetrain.get_gear_ratio(-1) == pytest.approx(-cfg.reverse_ratio)
        assert drivetrain.get_gear_ratio(0) == 0.0

    def test_set_gear_clamps_and_syncs_rpm(self):
        drivetrain = Drivetrain()
        engine = Engine()
        speeds = [50.0, 50.0, 50.0, 50.0]

        assert drivetrain.set_gear(2, engine, speeds) == 2
        expected = 50.0 * drivetrain.get_total_ratio() * RAD_S_TO_RPM
        assert engine.rpm == pytest.approx(expected)

        assert drivetrain.set_gear(99) == drivetrain.max_gear
        assert drivetrain.set_gear(-5) == int(GearState.REVERSE)

    def test_upshift_completes_after_shift_time(self):
        """Test upshift mechanics."""
        drivetrain = Drivetrain()
        engine = Engine()
        drivetrain.set_gear(1)

        assert drivetrain.shift_up()
        assert drivetrain.is_shifting
        assert drivetrain.get_total_ratio() == 0.0

        drivetrain.update(0.01, engine, 0.0, 0.0, False, False, [0.0] * 4)
        assert drivetrain.clutch_engagement < 1.0

        for _ in range(20):
            drivetrain.update(0.01, engine, 0.0, 0.0, False, False, [0.0] * 4)
        assert drivetrain.gear == 2
        assert not drivetrain.is_shifting

    def test_slip_crossing_applies_only_closing_torque(self):
        drivetrain = Drivetrain()
        engine = Engine()
        drivetrain.set_gear(1)
        engine.rpm = 1500.0
        engine.update(DT, 1.0, 0.0, 0.0)
        ratio = drivetrain.get_total_ratio()
        crank = engine.angular_velocity

        # Half-pressed pedal keeps capacity below engine torque, so no lock
        slow = 0.5 * crank / ratio
        drivetrain.update(DT, engine, 1.0, 0.6, False, False, [0.0, 0.0, slow, slow])
        assert not drivetrain.clutch_locked
        capacity = drivetrain.transmitted_torque
        assert capacity > 0.0

        fast = (crank + 5.0) / ratio
        drivetrain.update(DT, engine, 1.0, 0.6, False, False, [0.0, 0.0, fast, fast])
        assert not drivetrain.clutch_locked
        assert -0.1 * capacity < drivetrain.transmitted_torque < 0.0

    @pytest.mark.parametrize("anti_stall, locks", [(True, False), (False, True)])
    def test_anti_stall_never_locks_below_idle(self, anti_stall, locks):
        drivetrain = Drivetrain(DrivetrainConfig(anti_stall=anti_stall))
        engine = Engine()
        drivetrain.set_gear(1)
        engine.rpm = 830.0
        # Slip is inside the lock threshold but the wheels turn below idle
        crawl = 790.0 / RAD_S_TO_RPM / drivetrain.get_total_ratio()
        drivetrain.update(DT, engine, 0.0, 0.0, False, False, [crawl, crawl, crawl, crawl])

        assert drivetrain.clutch_locked is locks
        assert engine.rpm == pytest.approx(790.0 if locks else 830.0)

    def test_upshift_syncs_engine_to_new_gear(self):
        drivetrain = Drivetrain()
        engine = Engine()
        drivetrain.set_gear(1)
        road = 6800.0 / RAD_S_TO_RPM / drivetrain.get_total_ratio()
        speeds = [road, road, road, road]
        engine.rpm = 7400.0

        drivetrain.shift_up()
        while drivetrain.is_shifting:
            drivetrain.update(DT, engine, 1.0, 0.0, False, False, speeds)

        assert drivetrain.gear == 2
        expected = road * drivetrain.get_total_ratio() * RAD_S_TO_RPM
        assert engine.rpm == pytest.approx(expected)
        assert engine.rpm < 6800.0

    def test_shift_limits(self):
        drivetrain = Drivetrain()
        drivetrain.set_gear(drivetrain.max_gear)
        assert not drivetrain.shift_up()
        drivetrain.set_gear(-1)
        assert not drivetrain.shift_down()

    def test_shift_request_from_inputs(self):
        drivetrain = Drivetrain()
        engine = Engine()
        drivetrain.set_gear(3)
        drivetrain.update(DT, engine, 0.0, 0.0, False, True, [0.0] * 4)
        assert drivetrain.target_gear == 2

    def test_auto_shift_up_at_high_rpm(self):
        drivetrain = Drivetrain(DrivetrainConfig(auto_shift=True))
        engine = Engine()
        drivetrain.set_gear(1)
        engine.rpm = 7000.0
        drivetrain.update(DT, engine, 1.0, 0.0, False, False, [0.0, 0.0, 200.0, 200.0])
        assert drivetrain.target_gear == 2

    def test_neutral_transmits_nothing(self):
        drivetrain = Drivetrain()
        engine = Engine()
        torques = drivetrain.update(DT, engine, 1.0, 0.0, False, False, [0.0] * 4)
        assert torques == [0.0, 0.0, 0.0, 0.0]
        assert drivetrain.resistance_torque == 0.0

    def test_clutch_pedal_disconnects(self):
        drivetrain = Drivetrain()
        engine = Engine()
        drivetrain.set_gear(1)
        torques = drivetrain.update(DT, engine, 1.0, 1.0, False, False, [0.0] * 4)
        assert torques == [0.0, 0.0, 0.0, 0.0]

    @pytest.mark.parametrize("layout, driven, undriven", [
        (DriveLayout.RWD, [Corner.RL, Corner.RR], [Corner.FL, Corner.FR]),
        (DriveLayout.FWD, [Corner.FL, Corner.FR], [Corner.RL, Corner.RR]),
        (DriveLayout.AWD, list(Corner), []),
    ])
    def test_layout_routes_torque(self, layout, driven, undriven):
        drivetrain = Drivetrain(DrivetrainConfig(layout=layout))
        engine = Engine()
        speeds = [20.0] * 4
        drivetrain.set_gear(1, engine, speeds)
        engine.update(DT, 1.0, 1.0, 0.0)
        torques = drivetrain.update(DT, engine, 1.0, 0.0, False, False, speeds)

        for corner in driven:
            assert torques[corner] > 0.0
        for corner in undriven:
            assert torques[corner] == 0.0

    def test_layout_accepts_strings(self):
        assert DrivetrainConfig(layout="AWD").layout == DriveLayout.AWD

    def test_state_round_trip(self):
        drivetrain = Drivetrain()
        drivetrain.set_gear(2)
        drivetrain.shift_up()
        state = drivetrain.export_state()
        other = Drivetrain()
        other.import_state(state)
        assert other.export_state() == state


class TestBrakes:
    """Test brake system and ABS."""

    def test_no_pedal_no_torque(self):
        brakes = Brakes()
        assert brakes.update(DT, 0.0, False, [0.0] * 4, 20.0) == [0.0, 0.0, 0.0, 0.0]

    def test_bias_favours_front(self):
        brakes = Brakes()
        cfg = brakes.config
        torques = brakes.update(DT, 1.0, False, [0.0] * 4, 0.0)

        expected_front = 0.5 * cfg.max_force * cfg.bias * cfg.front_disc_radius * cfg.pad_friction
        assert torques[Corner.FL] == pytest.approx(expected_front)
        assert torques[Corner.FL] == torques[Corner.FR]
        assert torques[Corner.FL] > torques[Corner.RL]

    def test_handbrake_acts_on_rear_only(self):
        brakes = Brakes()
        torques = brakes.update(DT, 0.0, True, [0.0] * 4, 0.0)
        assert torques[Corner.FL] == 0.0
        assert torques[Corner.RL] > 0.0
        assert torques[Corner.RL] == torques[Corner.RR]

    def test_abs_reduces_torque_on_locking_wheel(self):
        with_abs = Brakes(BrakeConfig(abs_enabled=True))
        without = Brakes(BrakeConfig(abs_enabled=False))
        slips = [-0.5, 0.0, 0.0, 0.0]

        torques_abs = with_abs.update(DT, 1.0, False, slips, 0.0)
        torques_plain = without.update(DT, 1.0, False, slips, 0.0)

        assert with_abs.wheels[Corner.FL].abs_active
        assert not with_abs.wheels[Corner.FR].abs_active
        assert torques_abs[Corner.FL] < torques_plain[Corner.FL]
        assert torques_abs[Corner.FR] == pytest.approx(torques_plain[Corner.FR])

    def test_abs_hysteresis(self):
        brakes = Brakes()
        brakes.update(DT, 1.0, False, [0.2, 0.0, 0.0, 0.0], 0.0)
        assert brakes.wheels[0].abs_active
        brakes.update(DT, 1.0, False, [0.12, 0.0, 0.0, 0.0], 0.0)
        assert brakes.wheels[0].abs_active
        brakes.update(DT, 1.0, False, [0.05, 0.0, 0.0, 0.0], 0.0)
        assert not brakes.wheels[0].abs_active

    def test_abs_can_be_switched_off(self):
        brakes = Brakes()
        brakes.abs_enabled = False
        brakes.update(DT, 1.0, False, [0.9] * 4, 0.0)
        assert not any(w.abs_active for w in brakes.wheels)

    def test_brakes_heat_at_speed(self):
        brakes = Brakes()
        for _ in range(120):
            brakes.update(DT, 1.0, False, [0.0] * 4, 30.0)
        assert all(t > brakes.config.ambient_temp_c for t in brakes.temperatures)
        assert brakes.temperatures[Corner.FL] > brakes.temperatures[Corner.RL]

    def test_fade_factor(self):
        brakes = Brakes()
        assert brakes.fade_factor(300.0) == 1.0
        assert brakes.fade_factor(500.0) == pytest.approx(0.65)
        assert brakes.fade_factor(700.0) == pytest.approx(0.3)

    def test_state_round_trip(self):
        brakes = Brakes()
        brakes.update(DT, 0.7, True, [0.3, 0.0, 0.0, 0.0], 15.0)
        state = brakes.export_state()
        other = Brakes()
        other.import_state(state)
        assert other.export_state() == state


class TestSteering:
    """Test steering rack and Ackermann geometry."""

    def test_rack_rate_limited(self):
        steering = Steering()
        _, _, center = steering.update(1.0, 0.0, 0.0, DT)
        assert center == pytest.approx(steering.config.max_rate * DT)

    def test_reaches_full_lock_at_rest(self):
        steering = Steering()
        for _ in range(120):
            steering.update(1.0, 0.0, 0.0, DT)
        assert steering.center_angle == pytest.approx(steering.config.max_angle)

    def test_speed_sensitivity(self):
        steering = Steering()
        assert steering.speed_factor(0.0) == 1.0
        assert steering.speed_factor(100.0 / 3.6) == pytest.approx(0.5)
        assert steering.speed_factor(500.0) == steering.config.min_speed_factor

    def test_ackermann_inner_wheel_steers_more(self):
        steering = Steering()
        left, right = steering.ackermann(0.3)
        assert left > 0.3 > right > 0.0

    def test_ackermann_is_mirrored(self):
        steering = Steering()
        left, right = steering.ackermann(0.25)
        mirrored_left, mirrored_right = steering.ackermann(-0.25)
        assert mirrored_left == -right
        assert mirrored_right == -left

    def test_parallel_steer_without_ackermann(self):
        steering = Steering(SteeringConfig(ackermann=0.0))
        assert steering.ackermann(0.2) == pytest.approx((0.2, 0.2))

    def test_self_centering_never_overshoots(self):
        steering = Steering()
        for _ in range(60):
            steering.update(0.5, 15.0, 0.0, DT)
        assert steering.center_angle > 0.0

        for _ in range(600):
            steering.update(0.0, 15.0, 50.0, DT)
            assert steering.center_angle >= 0.0
        assert steering.center_angle == pytest.approx(0.0, abs=1e-6)

    def test_steering_wheel_angle(self):
        steering = Steering()
        steering.update(1.0, 0.0, 0.0, DT)
        assert steering.steering_wheel_angle == pytest.approx(steering.center_angle * steering.config.ratio)


class TestSuspension:
    """Test suspension corners."""

    STATIC = [4000.0, 4000.0, 3000.0, 3000.0]

    def _suspension(self, **kwargs):
        return Suspension([SuspensionConfig(**kwargs) for _ in range(4)], self.STATIC, rng=np.random.default_rng(1))

    def test_rest_length_carries_static_load(self):
        suspension = self._suspension()
        rest = suspension.corners[0].config.rest_length
        loads = suspension.update(DT, [rest] * 4)
        assert loads == pytest.approx(self.STATIC)

    def test_compression_increases_load(self):
        suspension = self._suspension()
        rest = suspension.corners[0].config.rest_length
        suspension.update(DT, [rest] * 4)
        loads = suspension.update(DT, [rest - 0.01] * 4)
        for load, static in zip(loads, self.STATIC):
            assert load > static

    def test_airborne_corner_has_no_load(self):
        suspension = self._suspension()
        cfg = suspension.corners[0].config
        loads = suspension.update(DT, [None, cfg.max_travel + 0.05, cfg.rest_length, cfg.rest_length])
        assert loads[0] == 0.0
        assert loads[1] == 0.0
        assert not suspension.corners[0].on_ground
        assert not suspension.corners[1].on_ground
        assert loads[2] > 0.0

    def test_anti_roll_bar_couples_axle(self):
        with_bar = self._suspension()
        without_bar = self._suspension(anti_roll_stiffness=0.0)
        rest = with_bar.corners[0].config.rest_length
        lengths = [rest - 0.02, rest, rest, rest]
        for suspension in (with_bar, without_bar):
            suspension.update(DT, [rest] * 4)
        loaded = with_bar.update(DT, lengths)
        free = without_bar.update(DT, lengths)

        assert loaded[Corner.FL] > free[Corner.FL]
        assert loaded[Corner.FR] < free[Corner.FR]
        assert loaded[Corner.RL] == pytest.approx(free[Corner.RL])

    def test_bump_stop(self):
        suspension = self._suspension()
        cfg = suspension.corners[0].config
        suspension.update(DT, [cfg.min_travel - 0.01] * 4)
        assert all(c.bump_stop for c in suspension.corners)

    def test_roll_and_pitch_signs(self):
        suspension = self._suspension()
        rest = suspension.corners[0].config.rest_length
        suspension.update(DT, [rest - 0.02, rest, rest - 0.02, rest])
        assert suspension.roll > 0.0
        suspension.update(DT, [rest - 0.02, rest - 0.02, rest, rest])
        assert suspension.pitch > 0.0

    def test_camber_gain(self):
        suspension = self._suspension()
        corner = suspension.corners[0]
        rest = corner.config.rest_length
        suspension.update(DT, [rest] * 4)
        static = corner.camber
        suspension.update(DT, [rest - 0.03] * 4)
        assert corner.camber < static

    def test_damage_noise_is_seeded(self):
        results = []
        for _ in range(2):
            suspension = self._suspension()
            suspension.damage = [0.8, 0.0, 0.0, 0.0]
            rest = suspension.corners[0].config.rest_length
            results.append([suspension.update(DT, [rest] * 4)[0] for _ in range(5)])
        assert results[0] == results[1]


class TestAerodynamics:
    """Test aerodynamic loads."""

    FORWARD = np.array([0.0, 0.0, 1.0])
    LEFT = np.array([1.0, 0.0, 0.0])
    UP = np.array([0.0, 1.0, 0.0])

    def _update(self, aero, velocity, ride_height=0.3, environment=None):
        return aero.update(np.array(velocity, dtype=float), self.FORWARD, self.LEFT, self.UP, ride_height, environment)

    def test_no_forces_at_rest(self):
        aero = Aerodynamics()
        forces = self._update(aero, [0.0, 0.0, 0.0])
        assert np.allclose(forces.total, 0.0)
        assert aero.drag == 0.0

    def test_drag_opposes_motion(self):
        aero = Aerodynamics()
        env = Environment()
        forces = self._update(aero, [0.0, 0.0, 30.0], environment=env)
        cfg = aero.config
        expected = 0.5 * env.air_density * 900.0 * cfg.drag_coefficient * cfg.frontal_area

        assert forces.drag[2] == pytest.approx(-expected)
        assert aero.drag == pytest.approx(expected)

    def test_downforce_split(self):
        aero = Aerodynamics(AeroConfig(lift_coefficient=-0.5, downforce_distribution=0.4))
        forces = self._update(aero, [0.0, 0.0, 40.0])

        assert forces.front_lift[1] < 0.0
        assert forces.rear_lift[1] < 0.0
        assert aero.front_downforce / aero.downforce == pytest.approx(0.4)

    def test_yaw_increases_drag(self):
        straight = Aerodynamics()
        yawed = Aerodynamics()
        self._update(straight, [0.0, 0.0, 30.0])
        self._update(yawed, [15.0, 0.0, 26.0])
        assert yawed.drag > straight.drag

    def test_side_force_opposes_sideslip(self):
        aero = Aerodynamics()
        forces = self._update(aero, [5.0, 0.0, 20.0])
        assert forces.side[0] < 0.0
        assert forces.yaw_moment[1] != 0.0

    def test_no_side_force_at_walking_pace(self):
        aero = Aerodynamics()
        forces = self._update(aero, [0.5, 0.0, 0.5])
        assert np.allclose(forces.side, 0.0)
        assert np.allclose(forces.yaw_moment, 0.0)

    def test_ground_effect(self):
        aero = Aerodynamics()
        cfg = aero.config
        assert aero.ground_effect_multiplier(cfg.min_ride_height) == pytest.approx(cfg.ground_effect_multiplier)
        assert aero.ground_effect_multiplier(0.0) == pytest.approx(cfg.ground_effect_multiplier)
        assert aero.ground_effect_multiplier(1.0) == pytest.approx(1.0)

    def test_wind_pushes_stationary_car(self):
        aero = Aerodynamics()
        env = Environment(wind_speed_mps=10.0, wind_direction_rad=0.0)
        forces = self._update(aero, [0.0, 0.0, 0.0], environment=env)
        assert forces.drag[2] > 0.0

    def test_top_speed_balances_power(self):
        aero = Aerodynamics()
        top = aero.top_speed(100000.0)
        assert aero.drag_power(top) == pytest.approx(100000.0, rel=0.01)
        assert aero.top_speed(0.0) == 0.0


class TestWheel:
    """Test wheel spin integration."""

    def test_corner_tags(self):
        assert Corner.FL.is_front and Corner.FL.side == 1.0
        assert not Corner.RR.is_front and Corner.RR.side == -1.0
        assert [w.corner for w in wheels_from_config()] == list(Corner)

    def test_drive_torque_spins_wheel(self):
        wheel = Wheel(Corner.RL)
        wheel.integrate(DT, 0.0, 100.0, 0.0)
        assert wheel.angular_velocity == pytest.approx(100.0 / wheel.inertia * DT)

    def test_brake_never_reverses_wheel(self):
        wheel = Wheel(Corner.FL)
        wheel.angular_velocity = 1.0
        wheel.integrate(DT, 0.0, 0.0, 5000.0)
        assert wheel.angular_velocity == 0.0

        wheel.angular_velocity = -1.0
        wheel.integrate(DT, 0.0, 0.0, 5000.0)
        assert wheel.angular_velocity == 0.0

    def test_tire_force_slows_wheel(self):
        wheel = Wheel(Corner.FR)
        wheel.angular_velocity = 50.0
        wheel.integrate(DT, 2000.0, 0.0, 0.0)
        assert wheel.angular_velocity < 50.0

    def test_state_round_trip(self):
        wheel = Wheel(Corner.RR)
        wheel.angular_velocity = 12.0
        wheel.steer_angle = 0.1
        state = wheel.export_state()
        other = Wheel(Corner.RR)
        other.import_state(state)
        assert other.export_state() == state
        assert math.isfinite(other.angular_velocity)
