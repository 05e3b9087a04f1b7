"""Kinematic tank-drive simulator.

Provides in-process implementations of the follower's sensor and actuator
interfaces, so a trajectory can be followed without hardware:
- ``SimulatedClock``: manually advanced timestamp source
- ``SimulatedTankDrive``: motors, encoders and a gyro backed by a
  first-order motor lag and differential-drive kinematics
"""

import math
from dataclasses import dataclass

from .config import DEFAULT_INITIAL_FACING, SIM_MOTOR_TIME_CONSTANT
from .mathutils import Vec2D, clamp, restrict_angle
from .model import forward_kinematics


class SimulatedClock:
    """Timestamp source that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.time = start

    def now(self) -> float:
        return self.time

    def advance(self, dt: float) -> float:
        self.time += dt
        return self.time


class SimulatedMotor:
    """Stores the last commanded output."""

    def __init__(self) -> None:
        self.output = 0.0

    def set(self, output: float) -> None:
        self.output = clamp(output, -1.0, 1.0)


class SimulatedEncoder:
    """Distance source reading one wheel of a simulated drive."""

    def __init__(self) -> None:
        self.total = 0.0
        self._offset = 0.0

    def distance(self) -> float:
        return self.total - self._offset

    def reset_distance(self) -> None:
        self._offset = self.total


class SimulatedGyro:
    def __init__(self, drive: "SimulatedTankDrive") -> None:
        self._drive = drive

    def heading(self) -> float:
        return self._drive.heading


@dataclass
class DriveParams:
    base_width: float = 0.5  # distance between wheels
    max_velocity: float = 2.0  # wheel speed at full output
    time_constant: float = SIM_MOTOR_TIME_CONSTANT  # first-order motor lag (s)


class SimulatedTankDrive:
    """Planar tank drive driven by normalized motor outputs.

    A motor output u commands a wheel velocity of ``u * max_velocity``; the
    actual wheel velocity approaches it with time constant
    ``time_constant``.
    """

    def __init__(
        self,
        params: DriveParams | None = None,
        x: float = 0.0,
        y: float = 0.0,
        heading: float = DEFAULT_INITIAL_FACING,
    ) -> None:
        self.p = params or DriveParams()
        self.left_motor = SimulatedMotor()
        self.right_motor = SimulatedMotor()
        self.left_encoder = SimulatedEncoder()
        self.right_encoder = SimulatedEncoder()
        self.gyro = SimulatedGyro(self)
        self.reset(x, y, heading)

    def reset(self, x: float = 0.0, y: float = 0.0, heading: float = DEFAULT_INITIAL_FACING) -> None:
        self.x, self.y, self.heading = x, y, heading
        self.left_velocity = self.right_velocity = 0.0

    @property
    def position(self) -> Vec2D:
        return Vec2D(self.x, self.y)

    def _lag(self, current: float, command: float, dt: float) -> float:
        tau = self.p.time_constant
        if tau <= 0:
            return command
        return current + (command - current) * min(1.0, dt / tau)

    def step(self, dt: float) -> tuple[float, float, float]:
        """Advance the simulation by ``dt`` seconds.

        Returns:
            New (x, y, heading).
        """
        self.left_velocity = self._lag(
            self.left_velocity, self.left_motor.output * self.p.max_velocity, dt
        )
        self.right_velocity = self._lag(
            self.right_velocity, self.right_motor.output * self.p.max_velocity, dt
        )
        self.left_encoder.total += self.left_velocity * dt
        self.right_encoder.total += self.right_velocity * dt

        v, omega = forward_kinematics(self.left_velocity, self.right_velocity, self.p.base_width)
        # integrate with midpoint heading
        mid = self.heading + omega * dt / 2
        self.x += v * math.cos(mid) * dt
        self.y += v * math.sin(mid) * dt
        self.heading = restrict_angle(self.heading + omega * dt)
        return self.x, self.y, self.heading
