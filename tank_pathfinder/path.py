"""Spline path through a list of waypoints.

This module fits a piecewise polynomial path through headed waypoints and
provides an arc-length parameterization of it:
- Position, derivatives, heading and curvature at any path parameter
- Left/right wheel positions for a robot of a given base radius
- Cumulative arc-length table with s <-> t conversion
- Mirrored and retraced copies of the path

The global path parameter runs from 0 to the number of segments; segment i
covers [i, i + 1].
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt

from .config import DEFAULT_SAMPLE_COUNT, FLOAT_TOLERANCE
from .errors import IllegalStateError, InvalidArgumentError, InvalidWaypointsError, RangeError
from .mathutils import Vec2D, curvature, mirror_angle, restrict_angle
from .segments import BezierSegment, CubicHermiteSegment, QuinticHermiteSegment, SplineSegment


@dataclass(frozen=True)
class Waypoint:
    """A point the path must pass through, with the heading it must have there.

    Attributes:
        x: X coordinate.
        y: Y coordinate.
        heading: Direction of travel in radians (0 = +x, pi/2 = +y).
        velocity: Optional speed at this waypoint. The first waypoint's
            velocity becomes a trajectory's initial velocity.
        acceleration: Optional second-derivative magnitude along the heading.
            Only quintic paths can honour it.
    """

    x: float
    y: float
    heading: float
    velocity: Optional[float] = None
    acceleration: Optional[float] = None

    @property
    def position(self) -> Vec2D:
        return Vec2D(self.x, self.y)


class PathType(Enum):
    """Spline family used between consecutive waypoints."""

    BEZIER = "bezier"
    CUBIC_HERMITE = "cubic"
    QUINTIC_HERMITE = "quintic"


class Path:
    """Piecewise spline path with arc-length lookup.

    Attributes:
        waypoints: Waypoints the path was built from.
        alpha: Tangent magnitude applied at every waypoint.
        path_type: Spline family of every segment.
        base_radius: Half the robot's base width, used by ``wheels_at``.
        driving_backwards: True if the robot traverses this path in reverse.
        tolerance: Slack allowed on the parameter range checks.
    """

    def __init__(
        self,
        waypoints: Sequence[Waypoint],
        alpha: float,
        path_type: PathType = PathType.QUINTIC_HERMITE,
        base_radius: float = 0.0,
        driving_backwards: bool = False,
        tolerance: float = FLOAT_TOLERANCE,
    ):
        """Fit segments through the waypoints.

        Args:
            waypoints: At least two waypoints.
            alpha: Tangent magnitude. Larger values pull the curve further
                along each waypoint's heading before it turns.
            path_type: Spline family. Default: quintic Hermite.
            base_radius: Half the base width of the robot.
            driving_backwards: Whether the robot drives this path in reverse.
            tolerance: Slack allowed when checking parameter ranges.

        Raises:
            InvalidWaypointsError: If fewer than two waypoints are given.
        """
        if len(waypoints) < 2:
            raise InvalidWaypointsError(f"A path needs at least 2 waypoints, got {len(waypoints)}")

        self.waypoints: tuple[Waypoint, ...] = tuple(waypoints)
        self.alpha = alpha
        self.path_type = PathType(path_type)
        self.base_radius = base_radius
        self.driving_backwards = driving_backwards
        self.tolerance = tolerance

        self.segments: list[SplineSegment] = [
            self._build_segment(a, b) for a, b in zip(self.waypoints, self.waypoints[1:])
        ]

        # Arc-length table, filled by compute_length()
        self._t_samples: Optional[npt.NDArray[np.float64]] = None
        self._s_samples: Optional[npt.NDArray[np.float64]] = None
        self._length: Optional[float] = None

    def _build_segment(self, start: Waypoint, end: Waypoint) -> SplineSegment:
        m0 = Vec2D.from_angle(start.heading, self.alpha)
        m1 = Vec2D.from_angle(end.heading, self.alpha)

        if self.path_type is PathType.BEZIER:
            return BezierSegment.from_hermite(start.position, end.position, m0, m1)
        if self.path_type is PathType.CUBIC_HERMITE:
            return CubicHermiteSegment(start.position, end.position, m0, m1)

        a0 = Vec2D.from_angle(start.heading, start.acceleration or 0.0)
        a1 = Vec2D.from_angle(end.heading, end.acceleration or 0.0)
        return QuinticHermiteSegment(start.position, end.position, m0, m1, a0, a1)

    def _copy_with(
        self,
        waypoints: Sequence[Waypoint],
        driving_backwards: bool,
        base_radius: Optional[float] = None,
    ) -> "Path":
        return Path(
            waypoints,
            self.alpha,
            self.path_type,
            base_radius=self.base_radius if base_radius is None else base_radius,
            driving_backwards=driving_backwards,
            tolerance=self.tolerance,
        )

    def copy(self, base_radius: Optional[float] = None) -> "Path":
        """Return an independent path over the same waypoints.

        The copy has no arc-length table yet.

        Args:
            base_radius: Base radius of the copy. None keeps this path's.
        """
        return self._copy_with(self.waypoints, self.driving_backwards, base_radius)

    # ------------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------------

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    def _locate(self, t: float) -> tuple[SplineSegment, float]:
        n = self.segment_count
        if t < -self.tolerance or t > n + self.tolerance:
            raise RangeError(f"Path parameter {t} outside [0, {n}]")
        t = min(max(t, 0.0), float(n))

        index = min(int(math.floor(t)), n - 1)
        return self.segments[index], t - index

    def at(self, t: float) -> Vec2D:
        segment, local_t = self._locate(t)
        return segment.at(local_t)

    def deriv_at(self, t: float) -> Vec2D:
        segment, local_t = self._locate(t)
        return segment.deriv_at(local_t)

    def second_deriv_at(self, t: float) -> Vec2D:
        segment, local_t = self._locate(t)
        return segment.second_deriv_at(local_t)

    def heading_at(self, t: float) -> float:
        """Direction of the path tangent at ``t`` (radians).

        Where the tangent vanishes (e.g. waypoints with alpha = 0) the
        direction of the second derivative is used, and failing that the
        heading of the nearest waypoint.
        """
        deriv = self.deriv_at(t)
        if deriv.magnitude() > self.tolerance:
            return deriv.angle()

        second = self.second_deriv_at(t)
        if second.magnitude() > self.tolerance:
            return second.angle()

        index = int(round(min(max(t, 0.0), float(self.segment_count))))
        return self.waypoints[index].heading

    def curvature(self, t: float) -> float:
        """Signed curvature at ``t`` (positive turns left)."""
        d = self.deriv_at(t)
        dd = self.second_deriv_at(t)
        return curvature(d.x, dd.x, d.y, dd.y)

    def wheels_at(self, t: float) -> tuple[Vec2D, Vec2D]:
        """Positions of the left and right wheels at ``t``.

        The wheels sit ``base_radius`` either side of the path along the unit
        normal. When driving backwards the robot faces the other way, so the
        sides swap.

        Returns:
            Tuple of (left, right) wheel positions.
        """
        pos = self.at(t)
        heading = self.heading_at(t)
        offset = Vec2D(-math.sin(heading), math.cos(heading)) * self.base_radius

        if self.driving_backwards:
            return pos - offset, pos + offset
        return pos + offset, pos - offset

    # ------------------------------------------------------------------------
    # Arc length
    # ------------------------------------------------------------------------

    def compute_length(self, sample_count: int = DEFAULT_SAMPLE_COUNT) -> float:
        """Integrate the path speed and cache the cumulative length table.

        Uses trapezoidal integration of |deriv_at(t)| over ``sample_count``
        evenly spaced parameter values.

        Args:
            sample_count: Number of samples in the table (at least 2).

        Returns:
            Total path length.

        Raises:
            InvalidArgumentError: If ``sample_count`` is less than 2.
        """
        if sample_count < 2:
            raise InvalidArgumentError(f"sample_count must be at least 2, got {sample_count}")

        t_samples = np.linspace(0.0, float(self.segment_count), sample_count)
        speeds = np.array([self.deriv_at(t).magnitude() for t in t_samples])

        increments = (speeds[1:] + speeds[:-1]) * 0.5 * np.diff(t_samples)
        s_samples = np.concatenate(([0.0], np.cumsum(increments)))

        self._t_samples = t_samples
        self._s_samples = s_samples
        self._length = float(s_samples[-1])

        logging.debug(
            f"Path length {self._length:.4f} over {self.segment_count} segment(s), "
            f"{sample_count} samples"
        )
        return self._length

    @property
    def length_computed(self) -> bool:
        return self._length is not None

    @property
    def length(self) -> float:
        """Total arc length.

        Raises:
            IllegalStateError: If ``compute_length`` has not been called.
        """
        if self._length is None:
            raise IllegalStateError("Path length has not been computed")
        return self._length

    def _require_table(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        if self._t_samples is None or self._s_samples is None:
            raise IllegalStateError("Path length has not been computed")
        return self._t_samples, self._s_samples

    def s2t(self, s: float) -> float:
        """Convert an arc length into a path parameter.

        Lengths outside [0, length] are clamped. Where the table is flat
        (zero-speed stretch) the parameter at the start of the flat region
        is returned.

        Raises:
            IllegalStateError: If ``compute_length`` has not been called.
        """
        t_samples, s_samples = self._require_table()
        s = min(max(s, 0.0), float(s_samples[-1]))

        i = int(np.searchsorted(s_samples, s, side="left"))
        if i == 0 or s_samples[i] == s:
            return float(t_samples[i])

        s0, s1 = s_samples[i - 1], s_samples[i]
        f = (s - s0) / (s1 - s0)
        return float(t_samples[i - 1] + (t_samples[i] - t_samples[i - 1]) * f)

    def t2s(self, t: float) -> float:
        """Convert a path parameter into the arc length travelled up to it.

        Raises:
            IllegalStateError: If ``compute_length`` has not been called.
        """
        t_samples, s_samples = self._require_table()
        return float(np.interp(t, t_samples, s_samples))

    # ------------------------------------------------------------------------
    # Transformations
    # ------------------------------------------------------------------------

    def mirror_left_right(self) -> "Path":
        """Mirror the path across the first waypoint's line of travel.

        Turns to the left become turns to the right. The start pose is
        unchanged.
        """
        origin = self.waypoints[0].position
        ref_heading = self.waypoints[0].heading
        ref = Vec2D.from_angle(ref_heading)

        mirrored = [
            Waypoint(
                *_as_tuple(origin + (wp.position - origin).reflect(ref)),
                mirror_angle(wp.heading, ref_heading),
                wp.velocity,
                wp.acceleration,
            )
            for wp in self.waypoints
        ]
        return self._copy_with(mirrored, self.driving_backwards)

    def mirror_front_back(self) -> "Path":
        """Mirror the path across the line through the first waypoint
        perpendicular to its heading.

        The robot covers the mirrored geometry by driving backwards, so the
        ``driving_backwards`` flag flips.
        """
        origin = self.waypoints[0].position
        ref_heading = self.waypoints[0].heading + math.pi / 2
        ref = Vec2D.from_angle(ref_heading)

        mirrored = [
            Waypoint(
                *_as_tuple(origin + (wp.position - origin).reflect(ref)),
                mirror_angle(wp.heading, ref_heading),
                wp.velocity,
                wp.acceleration,
            )
            for wp in self.waypoints
        ]
        return self._copy_with(mirrored, not self.driving_backwards)

    def retrace(self) -> "Path":
        """Return a path over the same geometry in the opposite direction.

        Waypoint order is reversed and every heading turned by pi. The
        robot keeps its facing, so ``driving_backwards`` flips.
        """
        reversed_waypoints = [
            Waypoint(
                wp.x,
                wp.y,
                restrict_angle(wp.heading + math.pi),
                wp.velocity,
                -wp.acceleration if wp.acceleration is not None else None,
            )
            for wp in reversed(self.waypoints)
        ]
        return self._copy_with(reversed_waypoints, not self.driving_backwards)


def _as_tuple(v: Vec2D) -> tuple[float, float]:
    return v.x, v.y
