"""Motion profiles.

A motion profile maps time to position, velocity and acceleration along a
single axis. The trapezoidal profile accelerates at the maximum rate,
cruises at the maximum (or highest reachable) velocity and decelerates to
rest exactly at the target distance. The sampled profile does the same over
a table of distance samples whose limits may vary along the way.

Trapezoidal profiles are dynamic: ``update`` re-bases the remaining motion
on the measured state, so a follower can fold tracking error back into the
plan.
"""

import copy
import logging
import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt

from .config import FLOAT_TOLERANCE
from .errors import InvalidArgumentError, RangeError
from .mathutils import FloatComparator
from .model import RobotSpecs


class MotionProfile(ABC):
    """Time-parameterized one-dimensional motion."""

    @abstractmethod
    def total_time(self) -> float:
        """Time at which the motion ends."""

    @abstractmethod
    def is_reversed(self) -> bool:
        """True if the motion is in the negative direction."""

    @abstractmethod
    def position(self, t: float) -> float:
        pass

    @abstractmethod
    def velocity(self, t: float) -> float:
        pass

    @abstractmethod
    def acceleration(self, t: float) -> float:
        pass


class DynamicMotionProfile(MotionProfile):
    """Motion profile that can be re-planned from a measured state."""

    @abstractmethod
    def update(
        self, current_time: float, current_pos: float, current_vel: float, current_accel: float
    ) -> bool:
        """Re-plan the rest of the motion from the given state.

        Returns:
            True if the re-planned motion overshoots the target.
        """


class TrapezoidalMotionProfile(DynamicMotionProfile):
    """Trapezoidal velocity profile with optional initial velocity.

    The motion is computed on the distance magnitude; a negative distance
    sets ``reversed`` and negates every output.

    If the initial velocity points at the target but the distance is too
    short to stop at ``max_acceleration``, the profile decelerates at the
    maximum rate and comes to rest past the target. In that case:
    - ``overshoot`` is True
    - ``distance`` is the distance actually covered
    - ``requested_distance`` keeps the distance that was asked for
    - construction logs a warning and ``update`` returns True

    Attributes:
        max_velocity: Velocity limit (units/s).
        max_acceleration: Acceleration limit (units/s²).
        distance: Distance magnitude covered by the current plan.
        requested_distance: Signed distance that was requested.
        init_velocity: Initial velocity in the profile's own direction.
        cruise_velocity: Peak velocity reached.
        t_accel: Duration of the acceleration phase.
        t_cruise: Duration of the cruise phase.
        t_decel: Duration of the deceleration phase.
        t_total: Duration of the whole plan (excludes ``init_time``).
        accel_dist: Distance covered while accelerating.
        cruise_dist: Distance covered while cruising.
        decel_dist: Distance covered while decelerating.
        init_time: Time at which the current plan starts.
        init_dist: Position at which the current plan starts.
        reversed: True if the current plan moves in the negative direction.
        overshoot: True if the current plan passes the requested target.
        tolerance: Slack used for the time range checks.
    """

    def __init__(
        self,
        max_velocity: float,
        max_acceleration: float,
        distance: float,
        init_velocity: float = 0.0,
        tolerance: float = FLOAT_TOLERANCE,
    ):
        """Plan a motion over ``distance`` starting at ``init_velocity``.

        Raises:
            InvalidArgumentError: If a limit is not positive or the initial
                velocity exceeds ``max_velocity``.
        """
        if not max_velocity > 0:
            raise InvalidArgumentError(f"max_velocity must be positive, got {max_velocity}")
        if not max_acceleration > 0:
            raise InvalidArgumentError(f"max_acceleration must be positive, got {max_acceleration}")

        self.tolerance = tolerance
        self._cmp = FloatComparator(tolerance)
        if self._cmp.gt(abs(init_velocity), max_velocity):
            raise InvalidArgumentError(
                f"Initial velocity {init_velocity} exceeds max velocity {max_velocity}"
            )

        self.max_velocity = max_velocity
        self.max_acceleration = max_acceleration
        self.init_time = 0.0
        self.init_dist = 0.0
        self._target = distance
        self.overshoot = self._construct(distance, init_velocity)

    @classmethod
    def from_specs(
        cls, specs: RobotSpecs, distance: float, init_velocity: float = 0.0
    ) -> "TrapezoidalMotionProfile":
        return cls(specs.max_velocity, specs.max_acceleration, distance, init_velocity)

    def _construct(self, distance: float, init_velocity: float) -> bool:
        self.requested_distance = distance
        self.reversed = distance < 0
        if self.reversed:
            distance = -distance
            init_velocity = -init_velocity

        init_velocity = min(max(init_velocity, -self.max_velocity), self.max_velocity)
        self.init_velocity = init_velocity
        a = self.max_acceleration
        overshoot = False

        d_accel = distance / 2 - init_velocity * init_velocity / (4 * a)
        if d_accel < 0 and init_velocity > 0:
            # Too close to stop: brake at the limit and pass the target
            d_decel = init_velocity * init_velocity / (2 * a)
            logging.warning(
                f"Motion profile overshoots: requested {distance:.4f}, "
                f"stopping distance at v0={init_velocity:.4f} is {d_decel:.4f}"
            )
            distance = d_decel
            overshoot = True
        else:
            d_decel = distance - d_accel

        self.distance = distance
        self.cruise_velocity = min(self.max_velocity, math.sqrt(max(2 * a * d_decel, 0.0)))
        vc = self.cruise_velocity

        self.t_accel = (vc - init_velocity) / a
        self.accel_dist = a * self.t_accel**2 / 2 + init_velocity * self.t_accel
        self.t_decel = vc / a
        self.decel_dist = a * self.t_decel**2 / 2

        cruise_dist = distance - self.accel_dist - self.decel_dist
        if cruise_dist < 0 and self._cmp.eq(cruise_dist, 0.0):
            cruise_dist = 0.0
        self.cruise_dist = cruise_dist
        self.t_cruise = cruise_dist / vc if vc > 0 else 0.0
        self.t_total = self.t_accel + self.t_cruise + self.t_decel

        logging.debug(
            f"Trapezoidal profile: dist={distance:.4f} v0={init_velocity:.4f} vc={vc:.4f} "
            f"t_accel={self.t_accel:.4f} t_cruise={self.t_cruise:.4f} t_total={self.t_total:.4f}"
            f"{' (reversed)' if self.reversed else ''}"
        )
        return overshoot

    def total_time(self) -> float:
        return self.t_total + self.init_time

    def is_reversed(self) -> bool:
        return self.reversed

    def _relative_time(self, t: float) -> float:
        rel = t - self.init_time
        if self._cmp.lt(rel, 0.0) or self._cmp.gt(rel, self.t_total):
            raise RangeError(
                f"Time out of range ({t} not in [{self.init_time}, {self.total_time()}])"
            )
        return max(rel, 0.0)

    def _sign(self, value: float) -> float:
        return -value if self.reversed else value

    def position(self, t: float) -> float:
        rel = self._relative_time(t)
        a = self.max_acceleration

        if rel < self.t_accel:
            result = a * rel * rel / 2 + self.init_velocity * rel
        elif rel < self.t_accel + self.t_cruise:
            result = self.accel_dist + (rel - self.t_accel) * self.cruise_velocity
        else:
            td = min(rel, self.t_total) - self.t_accel - self.t_cruise
            result = (
                self.accel_dist + self.cruise_dist + td * self.cruise_velocity - a * td * td / 2
            )
        return self._sign(result) + self.init_dist

    def velocity(self, t: float) -> float:
        rel = self._relative_time(t)
        a = self.max_acceleration

        if rel < self.t_accel:
            result = self.init_velocity + a * rel
        elif rel < self.t_accel + self.t_cruise:
            result = self.cruise_velocity
        else:
            td = min(rel, self.t_total) - self.t_accel - self.t_cruise
            result = self.cruise_velocity - a * td
        return self._sign(result)

    def acceleration(self, t: float) -> float:
        rel = self._relative_time(t)

        if rel < self.t_accel:
            result = self.max_acceleration
        elif rel < self.t_accel + self.t_cruise:
            result = 0.0
        elif self.t_decel > 0:
            result = -self.max_acceleration
        else:
            result = 0.0
        return self._sign(result)

    def update(
        self, current_time: float, current_pos: float, current_vel: float, current_accel: float
    ) -> bool:
        """Re-plan from a measured state toward the original target position.

        Args:
            current_time: Time at which the new plan starts.
            current_pos: Measured position.
            current_vel: Measured velocity. Clamped to ``max_velocity``.
            current_accel: Measured acceleration (unused by this profile).

        Returns:
            True if the new plan overshoots the target.
        """
        if self._cmp.gt(abs(current_vel), self.max_velocity):
            logging.warning(
                f"Measured velocity {current_vel:.4f} exceeds max velocity "
                f"{self.max_velocity:.4f}; clamping"
            )

        self.init_time = current_time
        self.init_dist = current_pos
        self.overshoot = self._construct(self._target - current_pos, current_vel)
        return self.overshoot

    def copy(self) -> "TrapezoidalMotionProfile":
        return copy.copy(self)


class SampledMotionProfile(MotionProfile):
    """Velocity plan over evenly spaced distance samples.

    Each sample carries its own velocity and acceleration limit, and
    samples may be pinned to an exact velocity. A forward pass accelerates
    as hard as the limits allow and a backward pass brakes in time for every
    slower sample ahead, which gives a trapezoid wherever the limits are
    constant. Acceleration is constant between two samples, so position and
    velocity are exact in between.

    Attributes:
        distances: Sample positions from 0 to the total distance.
        velocities: Planned velocity at each sample.
        accelerations: Acceleration from each sample to the next (last is 0).
        times: Time at which each sample is reached.
        tolerance: Slack used for the constraint and time range checks.
    """

    def __init__(
        self,
        distance: float,
        max_velocities: npt.ArrayLike,
        max_accelerations: npt.ArrayLike,
        init_velocity: float = 0.0,
        final_velocity: float = 0.0,
        constraints: Optional[Sequence[tuple[float, float]]] = None,
        tolerance: float = FLOAT_TOLERANCE,
    ):
        """Plan the motion.

        Args:
            distance: Total distance (non-negative).
            max_velocities: Velocity limit at each sample (at least two).
            max_accelerations: Acceleration limit at each sample.
            init_velocity: Velocity at the first sample.
            final_velocity: Velocity at the last sample.
            constraints: ``(distance, velocity)`` pairs. Each pins the first
                sample at or past ``distance`` to ``velocity``.
            tolerance: Slack used for comparisons.

        Raises:
            InvalidArgumentError: If the limits are malformed, a pinned
                velocity is negative or above its sample's limit, or the
                pinned velocities cannot all be met within the acceleration
                limits.
        """
        velocity_limits = np.asarray(max_velocities, dtype=float)
        accel_limits = np.asarray(max_accelerations, dtype=float)
        count = len(velocity_limits)
        if count < 2 or len(accel_limits) != count:
            raise InvalidArgumentError(
                f"Need matching limit arrays of at least 2 samples, got "
                f"{count} and {len(accel_limits)}"
            )
        if np.any(velocity_limits <= 0) or np.any(accel_limits <= 0):
            raise InvalidArgumentError("Velocity and acceleration limits must be positive")
        if distance < 0:
            raise InvalidArgumentError(f"distance must be non-negative, got {distance}")

        self.tolerance = tolerance
        self._cmp = FloatComparator(tolerance)
        self.distances = np.linspace(0.0, distance, count)
        step = distance / (count - 1)

        pinned = {0: init_velocity, count - 1: final_velocity}
        for position, velocity in constraints or ():
            index = min(int(np.searchsorted(self.distances, position - tolerance)), count - 1)
            pinned[index] = velocity
        for index, velocity in pinned.items():
            if velocity < 0 or self._cmp.gt(velocity, velocity_limits[index]):
                raise InvalidArgumentError(
                    f"Velocity {velocity} at distance {self.distances[index]:.4f} is outside "
                    f"[0, {velocity_limits[index]:.4f}]"
                )

        velocities = np.empty(count)
        velocities[0] = pinned[0]
        for i in range(1, count):
            accel = min(accel_limits[i - 1], accel_limits[i])
            reachable = math.sqrt(velocities[i - 1] ** 2 + 2 * accel * step)
            if i in pinned:
                if self._cmp.gt(pinned[i], reachable):
                    raise InvalidArgumentError(
                        f"Velocity {pinned[i]} at distance {self.distances[i]:.4f} cannot be "
                        f"reached (at most {reachable:.4f})"
                    )
                velocities[i] = pinned[i]
            else:
                velocities[i] = min(velocity_limits[i], reachable)

        for i in range(count - 2, -1, -1):
            accel = min(accel_limits[i], accel_limits[i + 1])
            reachable = math.sqrt(velocities[i + 1] ** 2 + 2 * accel * step)
            if velocities[i] > reachable:
                if i in pinned and self._cmp.gt(velocities[i], reachable):
                    raise InvalidArgumentError(
                        f"Velocity {velocities[i]} at distance {self.distances[i]:.4f} is too "
                        f"fast to slow down for the next constraint (at most {reachable:.4f})"
                    )
                velocities[i] = reachable

        start, end = velocities[:-1], velocities[1:]
        sums = start + end
        durations = np.divide(2 * step, sums, out=np.zeros_like(sums), where=sums > 0)
        self.velocities = velocities
        self.times = np.concatenate(([0.0], np.cumsum(durations)))
        self.accelerations = np.zeros(count)
        if step > 0:
            self.accelerations[:-1] = (end * end - start * start) / (2 * step)

        logging.debug(
            f"Sampled profile: dist={distance:.4f} samples={count} "
            f"pinned={len(pinned) - 2} t_total={self.total_time():.4f}"
        )

    def total_time(self) -> float:
        return float(self.times[-1])

    def is_reversed(self) -> bool:
        return False

    def _locate(self, t: float) -> tuple[int, float]:
        total = self.total_time()
        if self._cmp.lt(t, 0.0) or self._cmp.gt(t, total):
            raise RangeError(f"Time out of range ({t} not in [0, {total}])")
        t = min(max(t, 0.0), total)
        index = int(np.searchsorted(self.times, t, side="right")) - 1
        index = min(max(index, 0), len(self.times) - 2)
        return index, t - float(self.times[index])

    def position(self, t: float) -> float:
        i, tau = self._locate(t)
        return float(
            self.distances[i] + self.velocities[i] * tau + self.accelerations[i] * tau * tau / 2
        )

    def velocity(self, t: float) -> float:
        i, tau = self._locate(t)
        return float(self.velocities[i] + self.accelerations[i] * tau)

    def acceleration(self, t: float) -> float:
        i, _ = self._locate(t)
        return float(self.accelerations[i])


class DualMotionProfile:
    """Pair of independent motion profiles for the left and right wheels.

    Each side is evaluated on its own timeline; once a side has finished it
    holds its final state until the other side is done.
    """

    def __init__(self, left: MotionProfile, right: MotionProfile):
        self.left = left
        self.right = right

    def total_time(self) -> float:
        return max(self.left.total_time(), self.right.total_time())

    def is_reversed(self) -> bool:
        return self.left.is_reversed() and self.right.is_reversed()

    @staticmethod
    def _clamped(profile: MotionProfile, t: float) -> float:
        return min(t, profile.total_time())

    def left_position(self, t: float) -> float:
        return self.left.position(self._clamped(self.left, t))

    def right_position(self, t: float) -> float:
        return self.right.position(self._clamped(self.right, t))

    def left_velocity(self, t: float) -> float:
        return self.left.velocity(self._clamped(self.left, t))

    def right_velocity(self, t: float) -> float:
        return self.right.velocity(self._clamped(self.right, t))

    def left_acceleration(self, t: float) -> float:
        return self.left.acceleration(self._clamped(self.left, t))

    def right_acceleration(self, t: float) -> float:
        return self.right.acceleration(self._clamped(self.right, t))

    def update_left(self, current_time: float, pos: float, vel: float, accel: float) -> bool:
        return self._update(self.left, current_time, pos, vel, accel)

    def update_right(self, current_time: float, pos: float, vel: float, accel: float) -> bool:
        return self._update(self.right, current_time, pos, vel, accel)

    @staticmethod
    def _update(
        profile: MotionProfile, current_time: float, pos: float, vel: float, accel: float
    ) -> bool:
        if not isinstance(profile, DynamicMotionProfile):
            raise TypeError(f"{type(profile).__name__} cannot be updated")
        return profile.update(current_time, pos, vel, accel)

    def copy(self) -> "DualMotionProfile":
        return DualMotionProfile(copy.copy(self.left), copy.copy(self.right))
