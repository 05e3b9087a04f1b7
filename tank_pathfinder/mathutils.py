"""2D vector algebra and scalar math helpers.

Provides the Vec2D value type used by splines and paths, polynomial root
solvers, angle normalization and interpolation, and a tolerance-aware float
comparator.
"""

import math
from dataclasses import dataclass

from .config import FLOAT_TOLERANCE

TWO_PI = 2 * math.pi


@dataclass(frozen=True)
class Vec2D:
    """Immutable 2D vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Vec2D") -> "Vec2D":
        return Vec2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vec2D") -> "Vec2D":
        return Vec2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> "Vec2D":
        return Vec2D(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vec2D":
        return Vec2D(self.x / scalar, self.y / scalar)

    def __neg__(self) -> "Vec2D":
        return Vec2D(-self.x, -self.y)

    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def angle(self) -> float:
        """Direction of the vector in radians, measured from +x."""
        return math.atan2(self.y, self.x)

    def normalized(self) -> "Vec2D":
        """Return the unit vector in the same direction.

        The zero vector is returned unchanged.
        """
        mag = self.magnitude()
        if mag == 0:
            return self
        return self / mag

    def dot(self, other: "Vec2D") -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: "Vec2D") -> float:
        """Z component of the 3D cross product."""
        return self.x * other.y - self.y * other.x

    def dist(self, other: "Vec2D") -> float:
        return (self - other).magnitude()

    def proj(self, other: "Vec2D") -> "Vec2D":
        """Projection of this vector onto ``other``."""
        denom = other.dot(other)
        if denom == 0:
            return Vec2D()
        return other * (self.dot(other) / denom)

    def reflect(self, ref: "Vec2D") -> "Vec2D":
        """Reflect this vector across the line spanned by ``ref``.

        Args:
            ref: Direction of the mirror line (any non-zero length).

        Returns:
            The mirrored vector.
        """
        return self.proj(ref) * 2 - self

    @staticmethod
    def lerp(a: "Vec2D", b: "Vec2D", f: float) -> "Vec2D":
        return Vec2D(lerp(a.x, b.x, f), lerp(a.y, b.y, f))

    @staticmethod
    def from_angle(theta: float, magnitude: float = 1.0) -> "Vec2D":
        return Vec2D(magnitude * math.cos(theta), magnitude * math.sin(theta))


# ============================================================================
# Root solving
# ============================================================================


def quadratic_roots(a: float, b: float, c: float, min_unit: float = 0.0) -> tuple[float, float]:
    """Solve a*x^2 + b*x + c = 0.

    Args:
        a: Quadratic coefficient. If zero, the linear root is returned twice.
        b: Linear coefficient.
        c: Constant coefficient.
        min_unit: Discriminants with magnitude below this are treated as 0.

    Returns:
        Tuple of both roots, smaller-sign root first. Complex or undefined
        roots are reported as NaN.
    """
    if a == 0:
        root = -c / b if b != 0 else math.nan
        return root, root

    disc = b * b - 4 * a * c
    if abs(disc) <= min_unit:
        disc = 0.0
    if disc < 0:
        return math.nan, math.nan

    sqrt_disc = math.sqrt(disc)
    return (-b + sqrt_disc) / (2 * a), (-b - sqrt_disc) / (2 * a)


def positive_quadratic_root(a: float, b: float, c: float, min_unit: float = 0.0) -> float:
    """Return the first non-negative real root of a quadratic, or NaN."""
    for root in quadratic_roots(a, b, c, min_unit):
        if not math.isnan(root) and root >= 0:
            return root
    return math.nan


def _cbrt(x: float) -> float:
    return math.copysign(abs(x) ** (1 / 3), x)


def cubic_discriminant(a: float, b: float, c: float, d: float) -> float:
    return 18 * a * b * c * d - 4 * b**3 * d + b**2 * c**2 - 4 * a * c**3 - 27 * a**2 * d**2


def real_cubic_root(a: float, b: float, c: float, d: float) -> float:
    """Return one real root of a*x^3 + b*x^2 + c*x + d = 0.

    Uses Cardano's method on the depressed cubic. When ``a`` is zero the
    problem degrades to a quadratic and its first non-negative root is used.
    """
    if a == 0:
        return positive_quadratic_root(b, c, d)

    # Depressed cubic t^3 + p*t + q = 0 with x = t - b / (3a)
    p = (3 * a * c - b * b) / (3 * a * a)
    q = (2 * b**3 - 9 * a * b * c + 27 * a * a * d) / (27 * a**3)
    shift = -b / (3 * a)

    inner = q * q / 4 + p**3 / 27
    if inner >= 0:
        sqrt_inner = math.sqrt(inner)
        return _cbrt(-q / 2 + sqrt_inner) + _cbrt(-q / 2 - sqrt_inner) + shift

    # Three real roots, take the trigonometric one for k = 0
    r = 2 * math.sqrt(-p / 3)
    phi = math.acos(clamp(3 * q / (p * r), -1.0, 1.0))
    return r * math.cos(phi / 3) + shift


# ============================================================================
# Curves and interpolation
# ============================================================================


def curvature(dx: float, ddx: float, dy: float, ddy: float) -> float:
    """Signed curvature of a parametric curve from its derivatives.

    Positive curvature turns left (counter-clockwise). Returns 0 where the
    first derivative vanishes.
    """
    speed_sq = dx * dx + dy * dy
    if speed_sq == 0:
        return 0.0
    return (dx * ddy - dy * ddx) / speed_sq**1.5


def lerp(a: float, b: float, f: float) -> float:
    return a + (b - a) * f


def lerp_angle(a: float, b: float, f: float) -> float:
    """Interpolate between two angles along the shorter arc."""
    return restrict_angle(a + angle_diff(a, b) * f)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_abs(value: float, magnitude: float) -> float:
    """Clamp ``value`` to [-magnitude, magnitude]."""
    return clamp(value, -abs(magnitude), abs(magnitude))


# ============================================================================
# Angles
# ============================================================================


def restrict_angle(theta: float) -> float:
    """Normalize an angle to the range (-pi, pi]."""
    r = math.fmod(theta, TWO_PI)
    if r <= -math.pi:
        r += TWO_PI
    elif r > math.pi:
        r -= TWO_PI
    return r


def mirror_angle(theta: float, ref: float) -> float:
    """Reflect ``theta`` about the direction ``ref``."""
    return restrict_angle(2 * ref - theta)


def angle_diff(src: float, target: float) -> float:
    """Signed shortest rotation from ``src`` to ``target``, in (-pi, pi]."""
    return restrict_angle(target - src)


@dataclass(frozen=True)
class FloatComparator:
    """Tolerance-aware float comparisons.

    Attributes:
        tolerance: Absolute difference under which two values are equal.
    """

    tolerance: float = FLOAT_TOLERANCE

    def eq(self, a: float, b: float) -> bool:
        return abs(a - b) <= self.tolerance

    def lt_eq(self, a: float, b: float) -> bool:
        return a < b or self.eq(a, b)

    def gt_eq(self, a: float, b: float) -> bool:
        return a > b or self.eq(a, b)

    def lt(self, a: float, b: float) -> bool:
        return a < b and not self.eq(a, b)

    def gt(self, a: float, b: float) -> bool:
        return a > b and not self.eq(a, b)
