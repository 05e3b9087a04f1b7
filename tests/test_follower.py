import math

import pytest

from tank_pathfinder.errors import InvalidArgumentError, StateError
from tank_pathfinder.follower import DynamicTankDriveFollower, FollowerState, TankDriveFollower
from tank_pathfinder.model import RobotSpecs
from tank_pathfinder.motor_controller import FollowerGains, WheelController
from tank_pathfinder.path import Path, Waypoint
from tank_pathfinder.trajectory import (
    RotationTankDriveProfile,
    StraightTankDriveProfile,
    TankDriveTrajectory,
)

from fakes import ConstantTarget, FakeEncoder, FakeGyro, FakeMotor

SPECS = RobotSpecs(max_velocity=2.0, max_acceleration=1.0, base_width=0.5)


def make_follower(
    target, timer, motors, encoders, gains=None, gyro=None, cls=TankDriveFollower, **kwargs
):
    left_motor, right_motor = motors
    left_enc, right_enc = encoders
    return cls(
        target,
        left_motor,
        right_motor,
        left_enc,
        right_enc,
        timer=timer,
        gains=gains,
        direction_source=gyro,
        **kwargs,
    )


# ----------------------------------------------------------------------------
# WheelController
# ----------------------------------------------------------------------------


def test_wheel_controller_proportional():
    c = WheelController(FollowerGains(kp=-0.5))
    assert c.compute(2.0, 0.0, 0.0, 1.0, 0.1) == pytest.approx(0.5)
    assert c.last_error == pytest.approx(-1.0)


def test_wheel_controller_feedforward():
    c = WheelController(FollowerGains(kv=0.5, ka=0.1))
    assert c.compute(0.0, 1.0, 2.0, 0.0, 0.1) == pytest.approx(0.7)


def test_wheel_controller_integral_and_reset():
    c = WheelController(FollowerGains(ki=1.0))
    c.compute(0.0, 0.0, 0.0, 1.0, 0.5)
    assert c.integral == pytest.approx(0.5)
    assert c.compute(0.0, 0.0, 0.0, 1.0, 0.5) == pytest.approx(1.0)
    c.reset()
    assert c.integral == 0.0
    assert c.last_error == 0.0


def test_wheel_controller_zero_dt_skips_rate():
    c = WheelController(FollowerGains(kd=1.0, ki=1.0))
    c.compute(0.0, 0.0, 0.0, 1.0, 0.0)
    assert c.last_derivative == 0.0
    assert c.integral == 0.0
    diag = c.get_diagnostics()
    assert set(diag) == {"error", "integral", "derivative", "output"}


# ----------------------------------------------------------------------------
# TankDriveFollower
# ----------------------------------------------------------------------------


def test_proportional_output(timer, motors, encoders):
    follower = make_follower(ConstantTarget(), timer, motors, encoders, FollowerGains(kp=0.1))
    follower.initialize()
    encoders[0].value = 5.0
    encoders[1].value = -5.0
    follower.run()
    assert motors[0].last == pytest.approx(0.5)
    assert motors[1].last == pytest.approx(-0.5)
    assert follower.last_left_error == pytest.approx(5.0)


def test_output_is_clamped(timer, motors, encoders):
    follower = make_follower(ConstantTarget(), timer, motors, encoders, FollowerGains(kp=10.0))
    follower.initialize()
    encoders[0].value = 5.0
    encoders[1].value = -5.0
    follower.run()
    assert motors[0].last == 1.0
    assert motors[1].last == -1.0


def test_feedforward(timer, motors, encoders):
    target = ConstantTarget(velocity=1.0, acceleration=2.0)
    follower = make_follower(target, timer, motors, encoders, FollowerGains(kv=0.5, ka=0.1))
    follower.run()
    assert motors[0].last == pytest.approx(0.7)
    assert motors[1].last == pytest.approx(0.7)


def test_derivative_term(timer, motors, encoders):
    follower = make_follower(ConstantTarget(), timer, motors, encoders, FollowerGains(kd=0.1))
    follower.initialize()
    follower.run()
    assert motors[0].last == pytest.approx(0.0)

    timer.advance(0.1)
    encoders[0].value = 0.2
    encoders[1].value = 0.2
    follower.run()
    # error went 0 -> 0.2 in 0.1s
    assert motors[0].last == pytest.approx(0.2)
    assert motors[1].last == pytest.approx(0.2)


def test_heading_correction(timer, motors, encoders):
    gyro = FakeGyro(math.pi / 2)
    follower = make_follower(
        ConstantTarget(), timer, motors, encoders, FollowerGains(kdp=1.0), gyro=gyro
    )
    follower.initialize()
    gyro.value = math.pi / 2 + 0.1
    follower.run()
    assert follower.direction_error == pytest.approx(0.1)
    assert motors[0].last == pytest.approx(0.1)
    assert motors[1].last == pytest.approx(-0.1)


def test_heading_correction_across_wrap(timer, motors, encoders):
    gyro = FakeGyro(math.pi - 0.05)
    follower = make_follower(
        ConstantTarget(), timer, motors, encoders, FollowerGains(kdp=1.0), gyro=gyro
    )
    follower.initialize()
    gyro.value = -math.pi + 0.05
    follower.run()
    assert follower.direction_error == pytest.approx(0.1)


def test_state_transitions(timer, motors, encoders):
    follower = make_follower(ConstantTarget(duration=1.0), timer, motors, encoders)
    assert follower.state is FollowerState.IDLE

    follower.run()
    assert follower.running
    assert encoders[0].resets == 1
    assert encoders[1].resets == 1

    timer.advance(0.5)
    follower.run()
    assert follower.running

    timer.advance(0.6)
    follower.run()
    assert follower.finished
    assert motors[0].last == 0.0
    assert motors[1].last == 0.0

    count = len(motors[0].outputs)
    follower.run()
    assert len(motors[0].outputs) == count


def test_initialize_while_running_is_ignored(timer, motors, encoders):
    follower = make_follower(ConstantTarget(), timer, motors, encoders)
    follower.initialize()
    timer.advance(1.0)
    follower.initialize()
    assert follower.init_time == 0.0
    assert encoders[0].resets == 1


def test_stop_zeroes_motors(timer, motors, encoders):
    follower = make_follower(
        ConstantTarget(velocity=1.0), timer, motors, encoders, FollowerGains(kv=0.5)
    )
    follower.run()
    assert motors[0].last == pytest.approx(0.5)
    follower.stop()
    assert follower.finished
    assert motors[0].last == 0.0
    assert motors[1].last == 0.0


def test_can_restart_after_finish(timer, motors, encoders):
    follower = make_follower(ConstantTarget(duration=1.0), timer, motors, encoders)
    follower.run()
    follower.stop()
    timer.advance(5.0)
    follower.initialize()
    assert follower.running
    assert follower.init_time == 5.0


def test_setters_blocked_while_running(timer, motors, encoders):
    follower = make_follower(ConstantTarget(), timer, motors, encoders)
    follower.set_target(ConstantTarget(duration=2.0))
    follower.initialize()

    with pytest.raises(StateError):
        follower.set_target(ConstantTarget())
    with pytest.raises(StateError):
        follower.set_motors(FakeMotor(), FakeMotor())
    with pytest.raises(StateError):
        follower.set_distance_sources(FakeEncoder(), FakeEncoder())
    with pytest.raises(StateError):
        follower.set_direction_source(FakeGyro())
    with pytest.raises(StateError):
        follower.set_timestamp_source(timer)

    gains = FollowerGains(kp=-1.0)
    follower.set_gains(gains)
    assert follower.left_controller.gains is gains

    follower.stop()
    follower.set_target(ConstantTarget())


def test_diagnostics(timer, motors, encoders):
    follower = make_follower(ConstantTarget(distance=1.0), timer, motors, encoders)
    diag = follower.get_diagnostics()
    assert diag["state"] == "idle"
    assert math.isnan(diag["left_target"])

    follower.run()
    diag = follower.get_diagnostics()
    assert diag["state"] == "running"
    assert diag["left_target"] == 1.0
    assert diag["left_error"] == pytest.approx(-1.0)


def test_follows_straight_profile_targets(timer, motors, encoders):
    profile = StraightTankDriveProfile(SPECS, 4.0)
    follower = make_follower(profile, timer, motors, encoders, FollowerGains(kv=0.5))
    follower.initialize()
    timer.advance(1.0)
    follower.run()
    # mid-acceleration: v = 1.0
    assert motors[0].last == pytest.approx(0.5)
    assert follower.last_moment.left_distance == pytest.approx(0.5)


# ----------------------------------------------------------------------------
# DynamicTankDriveFollower
# ----------------------------------------------------------------------------


def test_dynamic_follower_requires_dynamic_target(timer, motors, encoders):
    path = Path([Waypoint(0, 0, math.pi / 2), Waypoint(0, 2, math.pi / 2)], alpha=0.0)
    trajectory = TankDriveTrajectory(path, SPECS)
    with pytest.raises(InvalidArgumentError):
        make_follower(trajectory, timer, motors, encoders, cls=DynamicTankDriveFollower)


def test_dynamic_follower_rebases_profile(timer, motors, encoders):
    profile = StraightTankDriveProfile(SPECS, 4.0)
    follower = make_follower(
        profile, timer, motors, encoders, cls=DynamicTankDriveFollower, update_delay=0.25
    )
    follower.initialize()
    for value in (0.0, 0.01, 0.03, 0.06):
        encoders[0].value = encoders[1].value = value
        follower.run()
        timer.advance(0.1)

    assert profile.profile.left.init_time == pytest.approx(0.3)
    assert profile.profile.right.init_dist == pytest.approx(0.06)
    assert follower.left_velocity == pytest.approx(0.3)
    assert follower.last_update_time == pytest.approx(0.3)


def test_dynamic_follower_updates_disabled(timer, motors, encoders):
    profile = RotationTankDriveProfile(SPECS, math.pi / 2)
    follower = make_follower(
        profile, timer, motors, encoders, cls=DynamicTankDriveFollower, update_delay=None
    )
    assert not follower.updates_enabled
    follower.initialize()
    for _ in range(5):
        follower.run()
        timer.advance(0.1)
    assert profile.profile.left.init_time == 0.0
