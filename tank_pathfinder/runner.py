"""Background runners that tick a follower at a fixed rate.

A runner owns a daemon worker thread that calls ``initialize()`` once and
then ``run()`` every period until the follower finishes or ``stop()`` is
called. ``stop()`` joins the worker before stopping the follower, so once it
returns no further motor command can be issued.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from .config import RUNNER_FREQUENCY_HZ
from .errors import InvalidArgumentError
from .follower import TankDriveFollower


class FollowerRunner(ABC):
    """Runs a follower on a dedicated thread."""

    def __init__(self) -> None:
        self.follower: Optional[TankDriveFollower] = None
        self.frequency = RUNNER_FREQUENCY_HZ
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self, follower: TankDriveFollower, frequency: float = RUNNER_FREQUENCY_HZ) -> None:
        """Start ticking ``follower`` at ``frequency`` Hz.

        Does nothing if this runner is already running.

        Raises:
            InvalidArgumentError: If ``frequency`` is not positive.
        """
        if not frequency > 0:
            raise InvalidArgumentError(f"frequency must be positive, got {frequency}")

        with self._lock:
            if self.is_alive:
                return
            self.follower = follower
            self.frequency = frequency
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._worker, name=type(self).__name__, daemon=True
            )
            self._thread.start()
        logging.debug(f"{type(self).__name__} started at {frequency:.1f} Hz")

    def stop(self) -> None:
        """Stop ticking and stop the follower.

        Blocks until the worker thread has exited.
        """
        with self._lock:
            self._stop_event.set()
            thread = self._thread
            if thread is not None and thread is not threading.current_thread():
                thread.join()
            if self.follower is not None:
                self.follower.stop()
        logging.debug(f"{type(self).__name__} stopped")

    @property
    def period(self) -> float:
        return 1.0 / self.frequency

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_finished(self) -> bool:
        return self.follower is not None and self.follower.finished

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the follower to finish on its own.

        Returns:
            True if the worker thread has exited.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return not self.is_alive

    def _worker(self) -> None:
        follower = self.follower
        follower.initialize()
        self._loop(follower)

    def _tick(self, follower: TankDriveFollower) -> bool:
        """Run one tick unless stopped. Returns False when the loop should end."""
        if self._stop_event.is_set():
            return False
        follower.run()
        return not follower.finished

    @abstractmethod
    def _loop(self, follower: TankDriveFollower) -> None:
        pass

    def __enter__(self) -> "FollowerRunner":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()


class SimpleFollowerRunner(FollowerRunner):
    """Runs the follower, then sleeps one period. Best-effort rate."""

    def _loop(self, follower: TankDriveFollower) -> None:
        while self._tick(follower):
            if self._stop_event.wait(self.period):
                break


class TimedFollowerRunner(FollowerRunner):
    """Runs the follower on a drift-corrected schedule.

    Tick k is due at ``start + k * period``. If a tick overruns, the missed
    deadlines are skipped rather than run back to back.
    """

    def _loop(self, follower: TankDriveFollower) -> None:
        start = time.monotonic()
        tick = 0
        while self._tick(follower):
            tick += 1
            now = time.monotonic()
            due = start + tick * self.period
            if due < now:
                missed = int((now - due) / self.period) + 1
                logging.debug(f"Follower runner missed {missed} tick(s)")
                tick += missed
                due = start + tick * self.period
            if self._stop_event.wait(due - now):
                break
