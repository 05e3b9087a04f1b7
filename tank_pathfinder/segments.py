"""Polynomial spline segments.

Each segment maps a local parameter t in [0, 1] to a point in the plane and
provides closed-form first and second derivatives. Segments are immutable.

Supported families:
- Bezier (cubic, Bernstein basis)
- Cubic Hermite (endpoints + tangents)
- Quintic Hermite (endpoints + tangents + second derivatives)
"""

from abc import ABC, abstractmethod

from .mathutils import Vec2D


class SplineSegment(ABC):
    """A single polynomial piece of a path."""

    @abstractmethod
    def at(self, t: float) -> Vec2D:
        """Position at local parameter ``t``."""

    @abstractmethod
    def deriv_at(self, t: float) -> Vec2D:
        """First derivative with respect to ``t``."""

    @abstractmethod
    def second_deriv_at(self, t: float) -> Vec2D:
        """Second derivative with respect to ``t``."""


def _combine(weights: tuple[float, ...], points: tuple[Vec2D, ...]) -> Vec2D:
    x = 0.0
    y = 0.0
    for w, p in zip(weights, points):
        x += w * p.x
        y += w * p.y
    return Vec2D(x, y)


class BezierSegment(SplineSegment):
    """Cubic Bezier segment with control points p0..p3."""

    def __init__(self, p0: Vec2D, p1: Vec2D, p2: Vec2D, p3: Vec2D):
        self.control_points = (p0, p1, p2, p3)

    @classmethod
    def from_hermite(cls, p0: Vec2D, p1: Vec2D, m0: Vec2D, m1: Vec2D) -> "BezierSegment":
        """Build the Bezier equivalent of a cubic Hermite segment.

        Args:
            p0: Start point.
            p1: End point.
            m0: Tangent at the start.
            m1: Tangent at the end.
        """
        return cls(p0, p0 + m0 / 3, p1 - m1 / 3, p1)

    def at(self, t: float) -> Vec2D:
        u = 1 - t
        return _combine((u**3, 3 * u * u * t, 3 * u * t * t, t**3), self.control_points)

    def deriv_at(self, t: float) -> Vec2D:
        p0, p1, p2, p3 = self.control_points
        u = 1 - t
        return _combine((3 * u * u, 6 * u * t, 3 * t * t), (p1 - p0, p2 - p1, p3 - p2))

    def second_deriv_at(self, t: float) -> Vec2D:
        p0, p1, p2, p3 = self.control_points
        return _combine((6 * (1 - t), 6 * t), (p2 - p1 * 2 + p0, p3 - p2 * 2 + p1))


class CubicHermiteSegment(SplineSegment):
    """Cubic Hermite segment from endpoints and endpoint tangents."""

    def __init__(self, p0: Vec2D, p1: Vec2D, m0: Vec2D, m1: Vec2D):
        self.p0 = p0
        self.p1 = p1
        self.m0 = m0
        self.m1 = m1

    def _points(self) -> tuple[Vec2D, ...]:
        return (self.p0, self.m0, self.m1, self.p1)

    def at(self, t: float) -> Vec2D:
        t2 = t * t
        t3 = t2 * t
        h00 = 2 * t3 - 3 * t2 + 1
        h10 = t3 - 2 * t2 + t
        h01 = -2 * t3 + 3 * t2
        h11 = t3 - t2
        return _combine((h00, h10, h11, h01), self._points())

    def deriv_at(self, t: float) -> Vec2D:
        t2 = t * t
        h00 = 6 * t2 - 6 * t
        h10 = 3 * t2 - 4 * t + 1
        h01 = -6 * t2 + 6 * t
        h11 = 3 * t2 - 2 * t
        return _combine((h00, h10, h11, h01), self._points())

    def second_deriv_at(self, t: float) -> Vec2D:
        h00 = 12 * t - 6
        h10 = 6 * t - 4
        h01 = -12 * t + 6
        h11 = 6 * t - 2
        return _combine((h00, h10, h11, h01), self._points())


class QuinticHermiteSegment(SplineSegment):
    """Quintic Hermite segment.

    Matches position, first derivative and second derivative at both ends,
    which keeps curvature continuous across segment joins.

    Args:
        p0: Start point.
        p1: End point.
        v0: First derivative at the start.
        v1: First derivative at the end.
        a0: Second derivative at the start.
        a1: Second derivative at the end.
    """

    def __init__(
        self,
        p0: Vec2D,
        p1: Vec2D,
        v0: Vec2D,
        v1: Vec2D,
        a0: Vec2D = Vec2D(),
        a1: Vec2D = Vec2D(),
    ):
        self.p0 = p0
        self.p1 = p1
        self.v0 = v0
        self.v1 = v1
        self.a0 = a0
        self.a1 = a1

    def _points(self) -> tuple[Vec2D, ...]:
        return (self.p0, self.v0, self.a0, self.a1, self.v1, self.p1)

    def at(self, t: float) -> Vec2D:
        t2 = t * t
        t3 = t2 * t
        t4 = t3 * t
        t5 = t4 * t
        weights = (
            1 - 10 * t3 + 15 * t4 - 6 * t5,
            t - 6 * t3 + 8 * t4 - 3 * t5,
            0.5 * t2 - 1.5 * t3 + 1.5 * t4 - 0.5 * t5,
            0.5 * t3 - t4 + 0.5 * t5,
            -4 * t3 + 7 * t4 - 3 * t5,
            10 * t3 - 15 * t4 + 6 * t5,
        )
        return _combine(weights, self._points())

    def deriv_at(self, t: float) -> Vec2D:
        t2 = t * t
        t3 = t2 * t
        t4 = t3 * t
        weights = (
            -30 * t2 + 60 * t3 - 30 * t4,
            1 - 18 * t2 + 32 * t3 - 15 * t4,
            t - 4.5 * t2 + 6 * t3 - 2.5 * t4,
            1.5 * t2 - 4 * t3 + 2.5 * t4,
            -12 * t2 + 28 * t3 - 15 * t4,
            30 * t2 - 60 * t3 + 30 * t4,
        )
        return _combine(weights, self._points())

    def second_deriv_at(self, t: float) -> Vec2D:
        t2 = t * t
        t3 = t2 * t
        weights = (
            -60 * t + 180 * t2 - 120 * t3,
            -36 * t + 96 * t2 - 60 * t3,
            1 - 9 * t + 18 * t2 - 10 * t3,
            3 * t - 12 * t2 + 10 * t3,
            -24 * t + 84 * t2 - 60 * t3,
            60 * t - 180 * t2 + 120 * t3,
        )
        return _combine(weights, self._points())
