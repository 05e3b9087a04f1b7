import math

import numpy as np
import pytest

from tank_pathfinder.errors import InvalidArgumentError, RangeError
from tank_pathfinder.model import RobotSpecs
from tank_pathfinder.moment import Moment, TankMoment
from tank_pathfinder.path import Path, Waypoint
from tank_pathfinder.trajectory import (
    BasicTrajectory,
    RotationTankDriveProfile,
    StraightTankDriveProfile,
    TankDriveTrajectory,
    TrajectoryParams,
    TrapezoidalBasicProfile,
)

SPECS = RobotSpecs(max_velocity=2.0, max_acceleration=1.0, base_width=0.5)


def straight_path():
    return Path([Waypoint(0, 0, math.pi / 2), Waypoint(0, 10, math.pi / 2)], alpha=0.0)


def left_turn_path():
    return Path([Waypoint(0, 0, 0), Waypoint(2, 2, math.pi / 2)], alpha=2.5)


@pytest.fixture
def straight():
    return TankDriveTrajectory(straight_path(), SPECS)


@pytest.fixture
def left_turn():
    return TankDriveTrajectory(left_turn_path(), SPECS)


def test_straight_trajectory_wheels_match_centre(straight):
    assert straight.length == pytest.approx(10.0, abs=1e-3)
    assert straight.total_time() == pytest.approx(7.0, abs=1e-3)
    for t in np.linspace(0, straight.total_time(), 15):
        m = straight.get(t)
        assert m.left_distance == pytest.approx(m.distance)
        assert m.right_distance == pytest.approx(m.distance)
        assert m.left_velocity == pytest.approx(m.velocity)
        assert m.heading == pytest.approx(math.pi / 2)
    end = straight.get(straight.total_time())
    assert end.distance == pytest.approx(straight.length)
    assert end.velocity == pytest.approx(0, abs=1e-9)


def test_sets_path_base_radius(straight):
    assert straight.path.base_radius == pytest.approx(0.25)
    assert straight.initial_facing == pytest.approx(math.pi / 2)


def test_time_out_of_range(straight):
    with pytest.raises(RangeError):
        straight.get(-0.5)
    with pytest.raises(RangeError):
        straight.get(straight.total_time() + 0.5)


def test_requires_base_width():
    with pytest.raises(InvalidArgumentError):
        TankDriveTrajectory(straight_path(), RobotSpecs(2.0, 1.0))


def test_left_turn_outer_wheel_travels_further(left_turn):
    end = left_turn.get(left_turn.total_time())
    assert end.right_distance > end.left_distance
    assert (end.left_distance + end.right_distance) / 2 == pytest.approx(end.distance)
    assert end.distance == pytest.approx(left_turn.length)


def test_wheel_velocities_within_limits(left_turn):
    for t in np.linspace(0, left_turn.total_time(), 50):
        m = left_turn.get(t)
        assert abs(m.left_velocity) <= SPECS.max_velocity + 1e-9
        assert abs(m.right_velocity) <= SPECS.max_velocity + 1e-9
        assert m.velocity == pytest.approx((m.left_velocity + m.right_velocity) / 2)


def test_mirror_left_right_swaps_wheels(left_turn):
    mirrored = left_turn.mirror_left_right()
    end = left_turn.get(left_turn.total_time())
    mirrored_end = mirrored.get(mirrored.total_time())
    assert mirrored.total_time() == pytest.approx(left_turn.total_time(), rel=1e-6)
    assert mirrored_end.left_distance == pytest.approx(end.right_distance, rel=1e-6)
    assert mirrored_end.right_distance == pytest.approx(end.left_distance, rel=1e-6)


def test_mirror_front_back_drives_backwards(straight):
    mirrored = straight.mirror_front_back()
    assert mirrored.backwards is True
    assert mirrored.initial_facing == pytest.approx(math.pi / 2)

    end = mirrored.get(mirrored.total_time())
    assert end.distance == pytest.approx(-10.0, abs=1e-3)
    assert end.left_distance == pytest.approx(end.distance)
    assert end.right_distance == pytest.approx(end.distance)
    assert end.backwards is True
    assert end.relative_facing == pytest.approx(0, abs=1e-9)


def test_retrace_left_turn(left_turn):
    retraced = left_turn.retrace()
    assert retraced.backwards is True
    # facing stays the same as the original trajectory's final facing
    _, final_facing = left_turn.pose_at(left_turn.total_time())
    assert math.cos(retraced.initial_facing) == pytest.approx(math.cos(final_facing), abs=1e-6)
    assert math.sin(retraced.initial_facing) == pytest.approx(math.sin(final_facing), abs=1e-6)

    end = retraced.get(retraced.total_time())
    # reversing through a left turn, the right wheel still covers the outside
    assert end.right_distance < end.left_distance < 0


def test_initial_velocity_from_first_waypoint():
    path = Path(
        [Waypoint(0, 0, math.pi / 2, velocity=1.0), Waypoint(0, 10, math.pi / 2)], alpha=0.0
    )
    trajectory = TankDriveTrajectory(path, SPECS)
    assert trajectory.get(0).velocity == pytest.approx(1.0)


def test_params_default_alpha_is_mean_chord():
    params = TrajectoryParams(
        waypoints=[Waypoint(0, 0, 0), Waypoint(3, 4, 0), Waypoint(3, 8, 0)]
    )
    assert params.resolved_alpha() == pytest.approx(4.5)
    assert TrajectoryParams(waypoints=params.waypoints, alpha=1.0).resolved_alpha() == 1.0


def test_from_params():
    params = TrajectoryParams(
        waypoints=[Waypoint(0, 0, math.pi / 2), Waypoint(0, 4, math.pi / 2)], sample_count=200
    )
    trajectory = TankDriveTrajectory.from_params(SPECS, params)
    assert trajectory.path.alpha == pytest.approx(4.0)
    assert trajectory.length == pytest.approx(4.0, rel=0.2)


def test_pose_at(left_turn):
    pos, facing = left_turn.pose_at(0)
    assert (pos.x, pos.y) == pytest.approx((0, 0))
    assert facing == pytest.approx(0, abs=1e-9)

    pos, facing = left_turn.pose_at(left_turn.total_time())
    assert (pos.x, pos.y) == pytest.approx((2, 2), abs=1e-6)
    assert facing == pytest.approx(math.pi / 2, abs=1e-6)


def test_sample_includes_end(straight):
    moments = straight.sample(0.3)
    assert moments[0].time == 0
    assert moments[-1].time == pytest.approx(straight.total_time())
    assert all(isinstance(m, TankMoment) for m in moments)


def test_straight_profile():
    profile = StraightTankDriveProfile(SPECS, 4.0)
    assert profile.total_time() == pytest.approx(4.0)
    end = profile.get(4.0)
    assert end.left_distance == pytest.approx(4.0)
    assert end.right_distance == pytest.approx(4.0)
    assert end.distance == pytest.approx(4.0)
    assert end.heading == pytest.approx(math.pi / 2)
    assert end.relative_facing == pytest.approx(0)


def test_straight_profile_backwards():
    profile = StraightTankDriveProfile(SPECS, -4.0)
    end = profile.get(profile.total_time())
    assert end.backwards is True
    assert end.distance == pytest.approx(-4.0)
    assert end.heading == pytest.approx(-math.pi / 2)
    assert end.facing == pytest.approx(math.pi / 2)
    assert end.relative_facing == pytest.approx(0, abs=1e-9)


def test_rotation_profile():
    profile = RotationTankDriveProfile(SPECS, math.pi / 2)
    arc = math.pi / 2 * 0.25
    end = profile.get(profile.total_time())
    assert end.left_distance == pytest.approx(-arc)
    assert end.right_distance == pytest.approx(arc)
    assert end.distance == 0
    assert math.cos(end.heading) == pytest.approx(-1.0)
    assert end.relative_facing == pytest.approx(math.pi / 2)

    start = profile.get(0)
    assert start.relative_facing == pytest.approx(0)


def test_rotation_requires_base_width():
    with pytest.raises(InvalidArgumentError):
        RotationTankDriveProfile(RobotSpecs(2.0, 1.0), 1.0)


def test_rotation_profile_update():
    profile = RotationTankDriveProfile(SPECS, math.pi / 2)
    arc = math.pi / 2 * 0.25
    measured = TankMoment(
        distance=0.0,
        velocity=0.0,
        acceleration=0.0,
        heading=math.pi / 2,
        time=0.5,
        initial_facing=math.pi / 2,
        left_distance=-0.1,
        right_distance=0.1,
        left_velocity=-0.5,
        right_velocity=0.5,
        left_acceleration=0.0,
        right_acceleration=0.0,
    )
    profile.update(measured)
    assert profile.profile.left.init_time == 0.5
    assert profile.profile.right.init_time == 0.5
    assert profile.get(0.5).right_distance == pytest.approx(0.1)

    end = profile.get(profile.total_time())
    assert end.left_distance == pytest.approx(-arc)
    assert end.right_distance == pytest.approx(arc)


def test_caller_path_is_left_untouched():
    path = Path([Waypoint(0, 0, 0), Waypoint(2, 2, math.pi / 2)], alpha=2.5, base_radius=1.0)
    narrow = TankDriveTrajectory(path, RobotSpecs(2.0, 1.0, 0.5))
    left, right = narrow.path.wheels_at(0.5)

    wide = TankDriveTrajectory(path, RobotSpecs(2.0, 1.0, 1.5))
    assert path.base_radius == 1.0
    assert not path.length_computed
    assert narrow.path is not wide.path
    assert narrow.path.base_radius == pytest.approx(0.25)
    assert wide.path.base_radius == pytest.approx(0.75)

    left_after, right_after = narrow.path.wheels_at(0.5)
    assert (left_after.x, left_after.y) == pytest.approx((left.x, left.y))
    assert (right_after.x, right_after.y) == pytest.approx((right.x, right.y))


def straight_through(velocity=None):
    return Path(
        [Waypoint(0, 0, 0), Waypoint(5, 0, 0, velocity=velocity), Waypoint(10, 0, 0)],
        alpha=5.0,
    )


def test_interior_waypoint_velocity_is_met():
    free = TankDriveTrajectory(straight_through(), SPECS)
    slowed = TankDriveTrajectory(straight_through(0.1), SPECS)
    assert free.total_time() == pytest.approx(7.0, abs=1e-3)
    assert slowed.total_time() > free.total_time() + 1.0

    profile = slowed.profile
    index = int(np.searchsorted(profile.distances, slowed.path.t2s(1.0) - 1e-6))
    assert profile.velocities[index] == pytest.approx(0.1)
    moment = slowed.get(float(profile.times[index]))
    assert moment.velocity == pytest.approx(0.1)
    assert moment.left_velocity == pytest.approx(0.1)


@pytest.mark.parametrize("velocity", [3.0, -0.5])
def test_waypoint_velocity_outside_limits(velocity):
    with pytest.raises(InvalidArgumentError):
        TankDriveTrajectory(straight_through(velocity), SPECS)


def test_waypoint_velocity_out_of_reach():
    # 2 units/s cannot be reached within 1 unit at 1 unit/s²
    path = Path(
        [Waypoint(0, 0, 0), Waypoint(1, 0, 0, velocity=2.0), Waypoint(2, 0, 0)], alpha=1.0
    )
    with pytest.raises(InvalidArgumentError):
        TankDriveTrajectory(path, SPECS)


def test_final_waypoint_velocity():
    path = Path(
        [Waypoint(0, 0, math.pi / 2), Waypoint(0, 10, math.pi / 2, velocity=0.5)], alpha=0.0
    )
    trajectory = TankDriveTrajectory(path, SPECS)
    assert trajectory.get(trajectory.total_time()).velocity == pytest.approx(0.5)


def test_curve_slows_the_centre(left_turn):
    basic = BasicTrajectory(left_turn_path(), SPECS)
    assert left_turn.total_time() > basic.total_time()
    assert np.max(left_turn.profile.velocities) < SPECS.max_velocity


def test_wheel_acceleration_is_wheel_velocity_slope(left_turn):
    profile = left_turn.profile
    for i in range(50, len(profile.times) - 50, 97):
        start, end = profile.times[i], profile.times[i + 1]
        t, h = (start + end) / 2, (end - start) / 4
        before, moment, after = left_turn.get(t - h), left_turn.get(t), left_turn.get(t + h)
        left_slope = (after.left_velocity - before.left_velocity) / (2 * h)
        right_slope = (after.right_velocity - before.right_velocity) / (2 * h)
        assert moment.left_acceleration == pytest.approx(left_slope, rel=1e-3, abs=1e-4)
        assert moment.right_acceleration == pytest.approx(right_slope, rel=1e-3, abs=1e-4)


# ----------------------------------------------------------------------------
# Centre-only targets
# ----------------------------------------------------------------------------


def test_basic_trajectory_yields_centre_moments():
    trajectory = BasicTrajectory(left_turn_path(), RobotSpecs(2.0, 1.0))
    moment = trajectory.get(trajectory.total_time() / 2)
    assert type(moment) is Moment
    assert moment.velocity > 0

    end = trajectory.get(trajectory.total_time())
    assert end.distance == pytest.approx(trajectory.length)
    assert end.velocity == pytest.approx(0, abs=1e-9)
    assert end.heading == pytest.approx(math.pi / 2, abs=1e-6)
    assert trajectory.path.base_radius == 0.0


def test_basic_trajectory_is_not_slowed_by_straight_line():
    trajectory = BasicTrajectory(straight_path(), RobotSpecs(2.0, 1.0))
    assert trajectory.total_time() == pytest.approx(7.0, abs=1e-3)
    for t in np.linspace(0, trajectory.total_time(), 20):
        m = trajectory.get(t)
        assert 0 <= m.velocity <= 2.0 + 1e-9
        assert abs(m.acceleration) <= 1.0 + 1e-9


def test_basic_trajectory_mirror_front_back():
    mirrored = BasicTrajectory(straight_path(), SPECS).mirror_front_back()
    assert type(mirrored) is BasicTrajectory
    assert mirrored.backwards is True
    end = mirrored.get(mirrored.total_time())
    assert end.distance == pytest.approx(-10.0, abs=1e-3)
    assert end.backwards is True
    assert end.relative_facing == pytest.approx(0, abs=1e-9)


def test_basic_from_params():
    params = TrajectoryParams(
        waypoints=[Waypoint(0, 0, math.pi / 2), Waypoint(0, 4, math.pi / 2)], sample_count=200
    )
    trajectory = BasicTrajectory.from_params(RobotSpecs(2.0, 1.0), params)
    assert type(trajectory) is BasicTrajectory
    assert trajectory.length == pytest.approx(4.0, rel=0.2)


def test_trapezoidal_basic_profile():
    profile = TrapezoidalBasicProfile(SPECS, 4.0)
    assert profile.total_time() == pytest.approx(4.0)
    mid = profile.get(2.0)
    assert type(mid) is Moment
    assert mid.distance == pytest.approx(2.0)
    assert mid.velocity == pytest.approx(2.0)
    end = profile.get(4.0)
    assert end.distance == pytest.approx(4.0)
    assert end.heading == pytest.approx(math.pi / 2)
    assert end.relative_facing == pytest.approx(0)


def test_trapezoidal_basic_profile_backwards():
    profile = TrapezoidalBasicProfile(SPECS, -4.0)
    end = profile.get(profile.total_time())
    assert end.backwards is True
    assert end.distance == pytest.approx(-4.0)
    assert end.facing == pytest.approx(math.pi / 2)


def test_trapezoidal_basic_profile_update():
    profile = TrapezoidalBasicProfile(SPECS, 4.0)
    measured = Moment(
        distance=1.0,
        velocity=1.0,
        acceleration=0.0,
        heading=math.pi / 2,
        time=1.5,
        initial_facing=math.pi / 2,
    )
    profile.update(measured)
    assert profile.profile.init_time == 1.5
    assert profile.get(1.5).distance == pytest.approx(1.0)
    assert profile.get(1.5).velocity == pytest.approx(1.0)
    assert profile.get(profile.total_time()).distance == pytest.approx(4.0)
