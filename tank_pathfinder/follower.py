"""Tank-drive trajectory follower.

This module implements the closed-loop control step that drives a tank-drive
robot along a trajectory:
- Samples the target moment at the time elapsed since initialization
- Computes per-wheel feedforward + PID outputs from encoder distances
- Optionally corrects heading drift from a direction sensor
- Clamps outputs to [-1, 1] and writes them to the motors

The follower is a small state machine (IDLE -> RUNNING -> FINISHED). Every
lifecycle call is serialized by an internal lock, so a runner thread calling
``run()`` and an owner thread calling ``stop()`` never interleave.
"""

import logging
import math
import threading
import time
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from .config import FOLLOWER_UPDATE_DELAY
from .errors import InvalidArgumentError, StateError
from .followable import DynamicFollowable, Followable
from .mathutils import angle_diff, restrict_angle
from .moment import TankMoment
from .motor_controller import FollowerGains, WheelController, clamp_output


class TimestampSource(Protocol):
    def now(self) -> float:
        """Monotonic time in seconds."""
        ...


class DistanceSource(Protocol):
    def distance(self) -> float:
        """Distance travelled by the wheel since the last reset."""
        ...

    def reset_distance(self) -> None:
        ...


class DirectionSource(Protocol):
    def heading(self) -> float:
        """Current heading in radians."""
        ...


class Motor(Protocol):
    def set(self, output: float) -> None:
        """Apply a normalized output in [-1, 1]."""
        ...


class MonotonicClock:
    """TimestampSource backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()


class FollowerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class TankDriveFollower:
    """Follows a tank-drive target with per-wheel feedback.

    Attributes:
        target: Trajectory or profile being followed.
        gains: Controller gains, shared by both wheels.
        state: Current lifecycle state.
        init_time: Timestamp of the last ``initialize()``.
        last_time: Timestamp of the last completed tick.
        last_moment: Target moment used by the last tick.
        direction_error: Last heading error (measured - target, radians).
        left_output: Last clamped output written to the left motor.
        right_output: Last clamped output written to the right motor.
    """

    def __init__(
        self,
        target: Followable,
        left_motor: Motor,
        right_motor: Motor,
        left_distance: DistanceSource,
        right_distance: DistanceSource,
        timer: Optional[TimestampSource] = None,
        gains: Optional[FollowerGains] = None,
        direction_source: Optional[DirectionSource] = None,
    ):
        """Create an idle follower.

        Args:
            target: Followable producing ``TankMoment`` targets.
            left_motor: Left motor.
            right_motor: Right motor.
            left_distance: Left wheel encoder.
            right_distance: Right wheel encoder.
            timer: Timestamp source. Default: ``MonotonicClock``.
            gains: Controller gains. Default: all zero.
            direction_source: Optional heading sensor enabling the heading
                correction term.
        """
        self._lock = threading.RLock()

        self.target = target
        self.left_motor = left_motor
        self.right_motor = right_motor
        self.left_distance = left_distance
        self.right_distance = right_distance
        self.timer: TimestampSource = timer if timer is not None else MonotonicClock()
        self.direction_source = direction_source

        self.gains = gains if gains is not None else FollowerGains()
        self.left_controller = WheelController(self.gains)
        self.right_controller = WheelController(self.gains)

        self.state = FollowerState.IDLE
        self.init_time = 0.0
        self.last_time = 0.0
        self.initial_direction = 0.0

        self.last_moment: Optional[TankMoment] = None
        self.left_measured = 0.0
        self.right_measured = 0.0
        self.direction_error = 0.0
        self.left_output = 0.0
        self.right_output = 0.0

    # ------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self.state is FollowerState.RUNNING

    @property
    def finished(self) -> bool:
        return self.state is FollowerState.FINISHED

    def _check_not_running(self, what: str) -> None:
        if self.running:
            raise StateError(f"{what} cannot be changed while the follower is running")

    # ------------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------------

    def set_target(self, target: Followable) -> None:
        with self._lock:
            self._check_not_running("Target")
            self.target = target

    def set_motors(self, left_motor: Motor, right_motor: Motor) -> None:
        with self._lock:
            self._check_not_running("Motors")
            self.left_motor = left_motor
            self.right_motor = right_motor

    def set_distance_sources(
        self, left_distance: DistanceSource, right_distance: DistanceSource
    ) -> None:
        with self._lock:
            self._check_not_running("Distance sources")
            self.left_distance = left_distance
            self.right_distance = right_distance

    def set_timestamp_source(self, timer: TimestampSource) -> None:
        with self._lock:
            self._check_not_running("Timestamp source")
            self.timer = timer

    def set_direction_source(self, direction_source: Optional[DirectionSource]) -> None:
        with self._lock:
            self._check_not_running("Direction source")
            self.direction_source = direction_source

    def set_gains(self, gains: FollowerGains) -> None:
        """Replace the gains. Allowed at any time; applies from the next tick."""
        with self._lock:
            self.gains = gains
            self.left_controller.gains = gains
            self.right_controller.gains = gains

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------

    def initialize(self) -> None:
        """Zero the encoders and start the trajectory clock.

        Does nothing if the follower is already running.
        """
        with self._lock:
            if self.running:
                return

            self.left_distance.reset_distance()
            self.right_distance.reset_distance()
            if self.direction_source is not None:
                self.initial_direction = self.direction_source.heading()

            self.init_time = self.last_time = self.timer.now()
            self.left_controller.reset()
            self.right_controller.reset()
            self.last_moment = None
            self.left_measured = self.right_measured = 0.0
            self.direction_error = 0.0

            self.state = FollowerState.RUNNING
            self._on_initialize()
            logging.debug(f"Follower initialized at t0={self.init_time:.4f}")

    def run(self) -> None:
        """Execute one control tick.

        Initializes first if idle. Stops the follower once the trajectory
        time has elapsed. Does nothing once finished.
        """
        with self._lock:
            if self.finished:
                return
            if not self.running:
                self.initialize()

            timestamp = self.timer.now()
            t = timestamp - self.init_time
            dt = timestamp - self.last_time

            if t > self.target.total_time():
                logging.debug(f"Follower finished at t={t:.4f}")
                self.stop()
                return

            moment = self.target.get(t)
            self.left_measured = self.left_distance.distance()
            self.right_measured = self.right_distance.distance()

            left = self.left_controller.compute(
                moment.left_distance,
                moment.left_velocity,
                moment.left_acceleration,
                self.left_measured,
                dt,
            )
            right = self.right_controller.compute(
                moment.right_distance,
                moment.right_velocity,
                moment.right_acceleration,
                self.right_measured,
                dt,
            )

            if self.direction_source is not None:
                measured = restrict_angle(self.direction_source.heading() - self.initial_direction)
                self.direction_error = angle_diff(moment.relative_facing, measured)
                left += self.gains.kdp * self.direction_error
                right -= self.gains.kdp * self.direction_error

            self.left_output = clamp_output(left)
            self.right_output = clamp_output(right)
            self.left_motor.set(self.left_output)
            self.right_motor.set(self.right_output)

            self.last_time = timestamp
            self.last_moment = moment
            self._after_tick(timestamp, t, dt)

    def stop(self) -> None:
        """Zero both motors and finish."""
        with self._lock:
            self.left_motor.set(0.0)
            self.right_motor.set(0.0)
            self.left_output = self.right_output = 0.0
            if not self.finished:
                logging.debug("Follower stopped")
            self.state = FollowerState.FINISHED

    def _on_initialize(self) -> None:
        pass

    def _after_tick(self, timestamp: float, t: float, dt: float) -> None:
        pass

    # ------------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------------

    @property
    def last_left_error(self) -> float:
        return self.left_controller.last_error

    @property
    def last_right_error(self) -> float:
        return self.right_controller.last_error

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic information for logging and debugging.

        Returns:
            Dictionary of the last tick's targets, measurements, errors and
            outputs. Target fields are NaN before the first tick.
        """
        m = self.last_moment
        nan = math.nan
        return {
            "t": m.time if m else nan,
            "state": self.state.value,
            "left_target": m.left_distance if m else nan,
            "right_target": m.right_distance if m else nan,
            "left_measured": self.left_measured,
            "right_measured": self.right_measured,
            "left_error": self.left_controller.last_error,
            "right_error": self.right_controller.last_error,
            "left_derivative": self.left_controller.last_derivative,
            "right_derivative": self.right_controller.last_derivative,
            "direction_error": self.direction_error,
            "left_output": self.left_output,
            "right_output": self.right_output,
        }


class DynamicTankDriveFollower(TankDriveFollower):
    """Follower that periodically re-plans its target from the measured state.

    Every ``update_delay`` seconds the wheel velocities and accelerations are
    estimated by finite differences of the encoder distances, and the target
    is re-based onto the measured state via ``DynamicFollowable.update``.
    """

    def __init__(
        self,
        target: Followable,
        left_motor: Motor,
        right_motor: Motor,
        left_distance: DistanceSource,
        right_distance: DistanceSource,
        timer: Optional[TimestampSource] = None,
        gains: Optional[FollowerGains] = None,
        direction_source: Optional[DirectionSource] = None,
        update_delay: Optional[float] = FOLLOWER_UPDATE_DELAY,
    ):
        """Create an idle dynamic follower.

        Args:
            update_delay: Seconds between re-plans. None or NaN disables
                re-planning.

        Raises:
            InvalidArgumentError: If ``target`` cannot be updated.
        """
        _require_dynamic(target)
        super().__init__(
            target, left_motor, right_motor, left_distance, right_distance,
            timer, gains, direction_source,
        )
        self.update_delay = update_delay
        self.last_update_time = 0.0
        self._reset_estimates()

    def _reset_estimates(self) -> None:
        self.left_velocity = self.right_velocity = 0.0
        self.left_acceleration = self.right_acceleration = 0.0
        self._last_left = self._last_right = 0.0

    def set_target(self, target: Followable) -> None:
        _require_dynamic(target)
        super().set_target(target)

    @property
    def updates_enabled(self) -> bool:
        return self.update_delay is not None and not math.isnan(self.update_delay)

    def _on_initialize(self) -> None:
        self.last_update_time = self.init_time
        self._reset_estimates()

    def _after_tick(self, timestamp: float, t: float, dt: float) -> None:
        if dt > 0:
            left_v = (self.left_measured - self._last_left) / dt
            right_v = (self.right_measured - self._last_right) / dt
            self.left_acceleration = (left_v - self.left_velocity) / dt
            self.right_acceleration = (right_v - self.right_velocity) / dt
            self.left_velocity, self.right_velocity = left_v, right_v
        self._last_left, self._last_right = self.left_measured, self.right_measured

        if self.updates_enabled and timestamp - self.last_update_time >= self.update_delay:
            self._update_target(t)
            self.last_update_time = timestamp

    def _update_target(self, t: float) -> None:
        last = self.last_moment
        if self.direction_source is not None:
            relative = self.direction_source.heading() - self.initial_direction
            facing = relative + last.initial_facing
        else:
            facing = last.facing
        heading = facing + math.pi if last.backwards else facing

        measured = TankMoment(
            distance=(self.left_measured + self.right_measured) / 2,
            velocity=(self.left_velocity + self.right_velocity) / 2,
            acceleration=(self.left_acceleration + self.right_acceleration) / 2,
            heading=restrict_angle(heading),
            time=t,
            initial_facing=last.initial_facing,
            backwards=last.backwards,
            left_distance=self.left_measured,
            right_distance=self.right_measured,
            left_velocity=self.left_velocity,
            right_velocity=self.right_velocity,
            left_acceleration=self.left_acceleration,
            right_acceleration=self.right_acceleration,
        )
        logging.debug(
            f"Re-planning at t={t:.3f}: L={self.left_measured:.4f} R={self.right_measured:.4f}"
        )
        self.target.update(measured)


def _require_dynamic(target: Followable) -> None:
    if not isinstance(target, DynamicFollowable):
        raise InvalidArgumentError(f"{type(target).__name__} does not support re-planning")
