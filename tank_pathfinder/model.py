"""
Tank-drive robot kinematic model.

This module describes the physical limits of a differential (tank) drive
robot and converts between robot-centre motion and individual wheel motion.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidArgumentError


@dataclass(frozen=True)
class RobotSpecs:
    """Physical limits of a tank-drive robot.

    Attributes:
        max_velocity: Maximum wheel velocity (units/s).
        max_acceleration: Maximum wheel acceleration (units/s²).
        base_width: Distance between left and right wheels (units). Only
            required by tank-drive trajectories and point turns.
    """

    max_velocity: float
    max_acceleration: float
    base_width: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.max_velocity > 0:
            raise InvalidArgumentError(f"max_velocity must be positive, got {self.max_velocity}")
        if not self.max_acceleration > 0:
            raise InvalidArgumentError(
                f"max_acceleration must be positive, got {self.max_acceleration}"
            )
        if self.base_width is not None and not self.base_width > 0:
            raise InvalidArgumentError(f"base_width must be positive, got {self.base_width}")

    def require_base_width(self) -> float:
        """Return the base width, raising if it was never given.

        Raises:
            InvalidArgumentError: If ``base_width`` is None.
        """
        if self.base_width is None:
            raise InvalidArgumentError("RobotSpecs.base_width is required for tank drive")
        return self.base_width


def inverse_kinematics(v: float, omega: float, base_width: float) -> tuple[float, float]:
    """
    Compute wheel velocities from desired linear and angular velocities.

    For a tank drive robot:
        v_left = v - (b/2) * omega
        v_right = v + (b/2) * omega

    Args:
        v: Linear velocity of the robot centre.
        omega: Angular velocity (rad/s), positive counter-clockwise.
        base_width: Distance between the wheels.

    Returns:
        tuple[float, float]: (v_left, v_right)
    """
    half = base_width / 2.0
    return v - half * omega, v + half * omega


def forward_kinematics(v_left: float, v_right: float, base_width: float) -> tuple[float, float]:
    """Compute centre linear and angular velocity from wheel velocities.

    Returns:
        tuple[float, float]: (v, omega)
    """
    return (v_left + v_right) / 2.0, (v_right - v_left) / base_width


def wheel_scales(curvature: float, base_width: float) -> tuple[float, float]:
    """Ratio of each wheel's travel to the centre's travel at a given curvature.

    Returns:
        tuple[float, float]: (left_scale, right_scale) = (1 - k*b/2, 1 + k*b/2)
    """
    offset = curvature * base_width / 2.0
    return 1.0 - offset, 1.0 + offset


def max_center_velocity(max_velocity: float, max_curvature: float, base_width: float) -> float:
    """Centre speed limit that keeps the outer wheel within ``max_velocity``."""
    return max_velocity / (1.0 + abs(max_curvature) * base_width / 2.0)
