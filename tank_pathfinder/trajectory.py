"""Trajectories and followable motion profiles.

This module turns geometry into timed targets:
- ``BasicTrajectory``: follows a spline path with a single centre motion
  profile and produces centre-only ``Moment`` objects
- ``TankDriveTrajectory``: the same, slowed down on curves and split into
  left/right wheel targets by curvature
- ``TrapezoidalBasicProfile``: drives the centre a straight distance
- ``StraightTankDriveProfile``: drives both wheels the same distance
- ``RotationTankDriveProfile``: turns in place by a given angle

The tank-drive variants produce ``TankMoment`` objects for a follower.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt

from .config import DEFAULT_INITIAL_FACING, DEFAULT_SAMPLE_COUNT, FLOAT_TOLERANCE
from .errors import RangeError
from .followable import DynamicFollowable, Followable
from .mathutils import Vec2D, restrict_angle
from .model import RobotSpecs, inverse_kinematics, max_center_velocity, wheel_scales
from .moment import Moment, TankMoment
from .motion_profile import DualMotionProfile, SampledMotionProfile, TrapezoidalMotionProfile
from .path import Path, PathType, Waypoint


@dataclass
class TrajectoryParams:
    """Inputs for generating a trajectory from waypoints.

    Attributes:
        waypoints: Waypoints to pass through (at least two).
        alpha: Tangent magnitude. None uses the mean distance between
            consecutive waypoints.
        sample_count: Resolution of the arc-length and wheel tables.
        path_type: Spline family.
    """

    waypoints: Sequence[Waypoint]
    alpha: Optional[float] = None
    sample_count: int = DEFAULT_SAMPLE_COUNT
    path_type: PathType = PathType.QUINTIC_HERMITE

    def resolved_alpha(self) -> float:
        if self.alpha is not None:
            return self.alpha
        chords = [
            a.position.dist(b.position) for a, b in zip(self.waypoints, self.waypoints[1:])
        ]
        return sum(chords) / len(chords) if chords else 0.0


def _check_time(t: float, total_time: float) -> float:
    if t < -FLOAT_TOLERANCE or t > total_time + FLOAT_TOLERANCE:
        raise RangeError(f"Time out of range ({t} not in [0, {total_time}])")
    return min(max(t, 0.0), total_time)


class BasicTrajectory(Followable):
    """Timed targets for the robot centre along a spline path.

    The centre speed is planned over evenly spaced arc-length samples with
    a ``SampledMotionProfile``. Waypoint velocities become constraints: the
    first and last set the initial and final velocity (0 when unset) and
    every interior one pins the centre speed where the path passes it.

    The trajectory plans on its own copy of the path and never changes after
    construction. Mirrors and retrace return new trajectories.

    Attributes:
        path: The trajectory's private copy of the path, length computed.
        specs: Robot limits.
        profile: Centre velocity plan over arc length.
        backwards: True if the robot drives the path in reverse.
        initial_facing: Facing of the robot at the start.
    """

    def __init__(
        self,
        path: Path,
        specs: RobotSpecs,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
    ):
        """Generate the trajectory.

        Args:
            path: Path to follow. It is copied, never modified.
            specs: Robot limits.
            sample_count: Resolution of the arc-length and speed tables.

        Raises:
            InvalidArgumentError: If a waypoint velocity is negative, above
                the speed limit where it applies, or cannot be met within
                the acceleration limit.
        """
        self.specs = specs
        self.sample_count = sample_count
        self.path = self._own_path(path)
        length = self.path.compute_length(sample_count)

        self._s_samples = np.linspace(0.0, length, sample_count)
        self._curvatures = np.array(
            [self.path.curvature(self.path.s2t(s)) for s in self._s_samples]
        )

        velocity_limits, accel_limits = self._limits()
        waypoints = self.path.waypoints
        self.profile = SampledMotionProfile(
            length,
            velocity_limits,
            accel_limits,
            init_velocity=waypoints[0].velocity or 0.0,
            final_velocity=waypoints[-1].velocity or 0.0,
            constraints=self._waypoint_constraints(),
            tolerance=self.path.tolerance,
        )

        self.backwards = self.path.driving_backwards
        facing = self.path.heading_at(0.0) + (math.pi if self.backwards else 0.0)
        self.initial_facing = restrict_angle(facing)

        logging.debug(
            f"{type(self).__name__}: length={length:.4f} total_time={self.total_time():.4f}"
            f"{' (backwards)' if self.backwards else ''}"
        )

    @classmethod
    def from_params(cls, specs: RobotSpecs, params: TrajectoryParams):
        path = Path(params.waypoints, params.resolved_alpha(), params.path_type)
        return cls(path, specs, params.sample_count)

    def _own_path(self, path: Path) -> Path:
        return path.copy()

    def _limits(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Centre velocity and acceleration limit at each arc-length sample."""
        return (
            np.full(self.sample_count, self.specs.max_velocity),
            np.full(self.sample_count, self.specs.max_acceleration),
        )

    def _waypoint_constraints(self) -> list[tuple[float, float]]:
        # Waypoint i sits at path parameter i
        waypoints = self.path.waypoints
        return [
            (self.path.t2s(float(i)), wp.velocity)
            for i, wp in enumerate(waypoints[1:-1], start=1)
            if wp.velocity is not None
        ]

    def total_time(self) -> float:
        return self.profile.total_time()

    @property
    def length(self) -> float:
        return self.path.length

    def _curvature_at(self, s: float) -> float:
        return float(np.interp(s, self._s_samples, self._curvatures))

    def get(self, t: float) -> Moment:
        """Centre targets at time ``t``.

        Raises:
            RangeError: If ``t`` is outside [0, total_time()].
        """
        t = _check_time(t, self.total_time())
        s = self.profile.position(t)
        sign = -1.0 if self.backwards else 1.0

        return Moment(
            distance=sign * s,
            velocity=sign * self.profile.velocity(t),
            acceleration=sign * self.profile.acceleration(t),
            heading=self.path.heading_at(self.path.s2t(s)),
            time=t,
            initial_facing=self.initial_facing,
            backwards=self.backwards,
        )

    def pose_at(self, t: float) -> tuple[Vec2D, float]:
        """Target position and facing of the robot centre at time ``t``."""
        t = _check_time(t, self.total_time())
        param = self.path.s2t(self.profile.position(t))
        facing = self.path.heading_at(param) + (math.pi if self.backwards else 0.0)
        return self.path.at(param), restrict_angle(facing)

    def sample(self, dt: float) -> list:
        """Moments every ``dt`` seconds, always including the final one."""
        total = self.total_time()
        count = int(math.floor(total / dt)) + 1
        times = [i * dt for i in range(count)]
        if not times or times[-1] < total:
            times.append(total)
        return [self.get(t) for t in times]

    def mirror_left_right(self):
        return type(self)(self.path.mirror_left_right(), self.specs, self.sample_count)

    def mirror_front_back(self):
        return type(self)(self.path.mirror_front_back(), self.specs, self.sample_count)

    def retrace(self):
        return type(self)(self.path.retrace(), self.specs, self.sample_count)


class TankDriveTrajectory(BasicTrajectory):
    """Timed per-wheel targets along a spline path.

    The centre speed limit at each arc-length sample is lowered so the
    outer wheel stays within the robot's limits, using the sharpest
    curvature among the sample and its neighbours. Every wheel target comes
    from the centre motion and the curvature ``k`` at the current arc
    length:
    - distance: running integral of ``1 -/+ k * base_width / 2``
    - velocity: ``v -/+ (v * k) * base_width / 2``
    - acceleration: the time derivative of the velocity,
      ``a -/+ (a * k + v**2 * dk/ds) * base_width / 2``

    Wheel accelerations include the curvature-rate term, so they may exceed
    ``max_acceleration`` where the curvature changes quickly.
    """

    def __init__(
        self,
        path: Path,
        specs: RobotSpecs,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
    ):
        """Generate the trajectory.

        Args:
            path: Path to follow. It is copied with its base radius set to
                half the base width; the caller's path is never modified.
            specs: Robot limits. ``base_width`` is required.
            sample_count: Resolution of the arc-length and wheel tables.

        Raises:
            InvalidArgumentError: If ``specs`` has no base width or a
                waypoint velocity cannot be met.
        """
        self.base_width = specs.require_base_width()
        super().__init__(path, specs, sample_count)

        left_scale, right_scale = wheel_scales(self._curvatures, self.base_width)
        ds = np.diff(self._s_samples)
        self._left_table = np.concatenate(
            ([0.0], np.cumsum((left_scale[1:] + left_scale[:-1]) * 0.5 * ds))
        )
        self._right_table = np.concatenate(
            ([0.0], np.cumsum((right_scale[1:] + right_scale[:-1]) * 0.5 * ds))
        )
        self._curvature_slopes = np.divide(
            np.diff(self._curvatures), ds, out=np.zeros_like(ds), where=ds > 0
        )

    def _own_path(self, path: Path) -> Path:
        return path.copy(base_radius=self.base_width / 2)

    def _limits(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        bends = np.pad(np.abs(self._curvatures), 1, mode="edge")
        sharpest = np.maximum(np.maximum(bends[:-2], bends[1:-1]), bends[2:])
        velocity_limits = max_center_velocity(self.specs.max_velocity, sharpest, self.base_width)
        accel_limits = self.specs.max_acceleration * velocity_limits / self.specs.max_velocity
        return velocity_limits, accel_limits

    def _curvature_slope_at(self, s: float) -> float:
        i = int(np.searchsorted(self._s_samples, s, side="right")) - 1
        return float(self._curvature_slopes[min(max(i, 0), len(self._curvature_slopes) - 1)])

    def get(self, t: float) -> TankMoment:
        """Per-wheel targets at time ``t``.

        Raises:
            RangeError: If ``t`` is outside [0, total_time()].
        """
        t = _check_time(t, self.total_time())
        s = self.profile.position(t)
        v = self.profile.velocity(t)
        a = self.profile.acceleration(t)

        heading = self.path.heading_at(self.path.s2t(s))
        k = self._curvature_at(s)
        left_v, right_v = inverse_kinematics(v, v * k, self.base_width)
        left_a, right_a = inverse_kinematics(
            a, a * k + v * v * self._curvature_slope_at(s), self.base_width
        )
        left_dist = float(np.interp(s, self._s_samples, self._left_table))
        right_dist = float(np.interp(s, self._s_samples, self._right_table))

        if self.backwards:
            return TankMoment(
                distance=-s,
                velocity=-v,
                acceleration=-a,
                heading=heading,
                time=t,
                initial_facing=self.initial_facing,
                backwards=True,
                left_distance=-right_dist,
                right_distance=-left_dist,
                left_velocity=-right_v,
                right_velocity=-left_v,
                left_acceleration=-right_a,
                right_acceleration=-left_a,
            )

        return TankMoment(
            distance=s,
            velocity=v,
            acceleration=a,
            heading=heading,
            time=t,
            initial_facing=self.initial_facing,
            left_distance=left_dist,
            right_distance=right_dist,
            left_velocity=left_v,
            right_velocity=right_v,
            left_acceleration=left_a,
            right_acceleration=right_a,
        )


class TrapezoidalBasicProfile(Followable, DynamicFollowable):
    """Drive the robot centre straight ahead (or back, for a negative distance).

    Produces centre-only ``Moment`` objects and re-plans from a measured
    centre state.
    """

    def __init__(
        self,
        specs: RobotSpecs,
        distance: float,
        initial_facing: float = DEFAULT_INITIAL_FACING,
    ):
        self.distance = distance
        self.initial_facing = initial_facing
        self.backwards = distance < 0
        self.profile = TrapezoidalMotionProfile.from_specs(specs, distance)

    def total_time(self) -> float:
        return self.profile.total_time()

    def get(self, t: float) -> Moment:
        t = _check_time(t, self.total_time())
        heading = self.initial_facing + (math.pi if self.backwards else 0.0)
        return Moment(
            distance=self.profile.position(t),
            velocity=self.profile.velocity(t),
            acceleration=self.profile.acceleration(t),
            heading=restrict_angle(heading),
            time=t,
            initial_facing=self.initial_facing,
            backwards=self.backwards,
        )

    def update(self, moment: Moment) -> None:
        if self.profile.update(moment.time, moment.distance, moment.velocity, moment.acceleration):
            logging.debug(f"Profile re-based at t={moment.time:.3f} overshoots its target")


class StraightTankDriveProfile(Followable, DynamicFollowable):
    """Drive straight ahead (or back, for a negative distance).

    Both wheels follow identical trapezoidal profiles; the facing never
    changes.
    """

    def __init__(
        self,
        specs: RobotSpecs,
        distance: float,
        initial_facing: float = DEFAULT_INITIAL_FACING,
    ):
        self.distance = distance
        self.initial_facing = initial_facing
        self.backwards = distance < 0
        self.profile = DualMotionProfile(
            TrapezoidalMotionProfile.from_specs(specs, distance),
            TrapezoidalMotionProfile.from_specs(specs, distance),
        )

    def total_time(self) -> float:
        return self.profile.total_time()

    def get(self, t: float) -> TankMoment:
        t = _check_time(t, self.total_time())
        p = self.profile
        left_d, right_d = p.left_position(t), p.right_position(t)
        left_v, right_v = p.left_velocity(t), p.right_velocity(t)
        left_a, right_a = p.left_acceleration(t), p.right_acceleration(t)
        heading = self.initial_facing + (math.pi if self.backwards else 0.0)

        return TankMoment(
            distance=(left_d + right_d) / 2,
            velocity=(left_v + right_v) / 2,
            acceleration=(left_a + right_a) / 2,
            heading=restrict_angle(heading),
            time=t,
            initial_facing=self.initial_facing,
            backwards=self.backwards,
            left_distance=left_d,
            right_distance=right_d,
            left_velocity=left_v,
            right_velocity=right_v,
            left_acceleration=left_a,
            right_acceleration=right_a,
        )

    def update(self, moment: TankMoment) -> None:
        _update_dual(self.profile, moment)


class RotationTankDriveProfile(Followable, DynamicFollowable):
    """Turn in place by ``angle`` radians (positive is counter-clockwise).

    The wheels travel the arc ``angle * base_width / 2`` in opposite
    directions; the left wheel backwards for a positive angle.
    """

    def __init__(
        self,
        specs: RobotSpecs,
        angle: float,
        initial_facing: float = DEFAULT_INITIAL_FACING,
    ):
        self.angle = angle
        self.initial_facing = initial_facing
        self.base_radius = specs.require_base_width() / 2
        arc = angle * self.base_radius
        self.profile = DualMotionProfile(
            TrapezoidalMotionProfile.from_specs(specs, -arc),
            TrapezoidalMotionProfile.from_specs(specs, arc),
        )

    def total_time(self) -> float:
        return self.profile.total_time()

    def get(self, t: float) -> TankMoment:
        t = _check_time(t, self.total_time())
        p = self.profile
        right_d = p.right_position(t)

        return TankMoment(
            distance=0.0,
            velocity=0.0,
            acceleration=0.0,
            heading=restrict_angle(self.initial_facing + right_d / self.base_radius),
            time=t,
            initial_facing=self.initial_facing,
            left_distance=p.left_position(t),
            right_distance=right_d,
            left_velocity=p.left_velocity(t),
            right_velocity=p.right_velocity(t),
            left_acceleration=p.left_acceleration(t),
            right_acceleration=p.right_acceleration(t),
        )

    def update(self, moment: TankMoment) -> None:
        _update_dual(self.profile, moment)


def _update_dual(profile: DualMotionProfile, moment: TankMoment) -> None:
    overshoot_left = profile.update_left(
        moment.time, moment.left_distance, moment.left_velocity, moment.left_acceleration
    )
    overshoot_right = profile.update_right(
        moment.time, moment.right_distance, moment.right_velocity, moment.right_acceleration
    )
    if overshoot_left or overshoot_right:
        logging.debug(f"Profile re-based at t={moment.time:.3f} overshoots its target")
