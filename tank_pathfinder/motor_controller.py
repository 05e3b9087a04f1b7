"""Per-wheel feedback controller for trajectory following.

This module provides the feedforward + PID controller that turns a wheel's
target state and its measured distance into a normalized motor output.
"""

from dataclasses import dataclass
from typing import Dict

from .mathutils import clamp


@dataclass
class FollowerGains:
    """Gains shared by both wheels of a tank-drive follower.

    Wheel error is defined as measured - target, so corrective ``kp`` and
    ``kd`` are zero or negative. Heading error (also measured - target) is
    added to the left output and subtracted from the right, so a corrective
    ``kdp`` is positive.

    Attributes:
        kv: Velocity feedforward gain.
        ka: Acceleration feedforward gain.
        kp: Proportional gain on distance error.
        ki: Integral gain on distance error.
        kd: Derivative gain on distance error rate.
        kdp: Proportional gain on heading error (applied with opposite signs
            to the two wheels).
    """

    kv: float = 0.0
    ka: float = 0.0
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0
    kdp: float = 0.0


def clamp_output(u: float) -> float:
    """Clamp a motor output to [-1, 1]."""
    return clamp(u, -1.0, 1.0)


class WheelController:
    """Feedforward + PID controller for a single wheel.

    Control law:
        e = measured - target
        derivative = (e - e_prev) / dt - v_target
        integral += e * dt
        u = ka * a_target + kv * v_target + kp * e + ki * integral + kd * derivative

    Subtracting the target velocity makes the D-term track the error rate
    rather than the raw slope of the measurement.

    Attributes:
        gains: Shared follower gains (read on every call).
        last_error: Error from the previous call.
        integral: Accumulated error since the last reset.
        last_derivative: Derivative term from the previous call.
        last_output: Unclamped output from the previous call.
    """

    def __init__(self, gains: FollowerGains):
        """Initialize the wheel controller.

        Args:
            gains: Gains object. Held by reference so gain changes take
                effect on the next tick.
        """
        self.gains = gains

        # Previous error for derivative computation
        self.last_error: float = 0.0

        # Integral state (accumulated error)
        self.integral: float = 0.0

        # Diagnostics
        self.last_derivative: float = 0.0
        self.last_output: float = 0.0

    def compute(
        self,
        target_position: float,
        target_velocity: float,
        target_acceleration: float,
        measured_position: float,
        dt: float,
    ) -> float:
        """Compute the unclamped motor output for one tick.

        Args:
            target_position: Target wheel distance.
            target_velocity: Target wheel velocity.
            target_acceleration: Target wheel acceleration.
            measured_position: Measured wheel distance.
            dt: Time since the previous tick (seconds). A non-positive
                dt drops the error-rate part of the derivative and
                skips integration.

        Returns:
            Motor output before clamping.
        """
        error = measured_position - target_position

        if dt > 0:
            error_rate = (error - self.last_error) / dt
        else:
            error_rate = 0.0
            dt = 0.0
        derivative = error_rate - target_velocity

        self.integral += error * dt

        g = self.gains
        output = (
            g.ka * target_acceleration
            + g.kv * target_velocity
            + g.kp * error
            + g.ki * self.integral
            + g.kd * derivative
        )

        self.last_error = error
        self.last_derivative = derivative
        self.last_output = output
        return output

    def reset(self) -> None:
        """Reset integral and error history.

        Call this when (re)starting a trajectory.
        """
        self.last_error = 0.0
        self.integral = 0.0
        self.last_derivative = 0.0
        self.last_output = 0.0

    def get_diagnostics(self) -> Dict[str, float]:
        """Get diagnostic information for logging and debugging.

        Returns:
            Dictionary with the last error, derivative and output.
        """
        return {
            "error": self.last_error,
            "integral": self.integral,
            "derivative": self.last_derivative,
            "output": self.last_output,
        }
