"""Interfaces for anything a follower can track.

A ``Followable`` produces a target moment for any time in its domain. A
``DynamicFollowable`` additionally accepts the measured state so it can
re-plan the remainder of its motion. Concrete targets implement one or both.

Centre-only targets produce plain ``Moment`` objects; tank-drive targets
produce ``TankMoment`` objects and are updated with them.
"""

from abc import ABC, abstractmethod

from .moment import Moment


class Followable(ABC):
    @abstractmethod
    def get(self, t: float) -> Moment:
        """Target moment at time ``t``.

        Raises:
            RangeError: If ``t`` is outside [0, total_time()].
        """

    @abstractmethod
    def total_time(self) -> float:
        """Time at which the target motion ends."""


class DynamicFollowable(ABC):
    @abstractmethod
    def update(self, moment: Moment) -> None:
        """Re-plan from the measured state described by ``moment``."""
