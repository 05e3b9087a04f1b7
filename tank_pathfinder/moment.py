"""Snapshots of a trajectory's target state at one instant."""

import math
from dataclasses import dataclass

from .mathutils import restrict_angle


@dataclass(frozen=True)
class Moment:
    """Target state of the robot centre at a given time.

    Attributes:
        distance: Distance travelled along the trajectory.
        velocity: Signed velocity.
        acceleration: Signed acceleration.
        heading: Direction of travel (radians).
        time: Trajectory time of this snapshot.
        initial_facing: Facing of the robot at the start of the trajectory.
        backwards: True if the robot drives in reverse, so its facing is
            opposite its direction of travel.
    """

    distance: float
    velocity: float
    acceleration: float
    heading: float
    time: float
    initial_facing: float
    backwards: bool = False

    @property
    def facing(self) -> float:
        """Direction the front of the robot points."""
        if self.backwards:
            return restrict_angle(self.heading + math.pi)
        return restrict_angle(self.heading)

    @property
    def relative_facing(self) -> float:
        """Facing relative to the facing at the start of the trajectory."""
        return restrict_angle(self.facing - self.initial_facing)


@dataclass(frozen=True, kw_only=True)
class TankMoment(Moment):
    """Moment with per-wheel targets for a tank drive."""

    left_distance: float
    right_distance: float
    left_velocity: float
    right_velocity: float
    left_acceleration: float
    right_acceleration: float

    def as_dict(self) -> dict[str, float]:
        return {
            "time": self.time,
            "distance": self.distance,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "heading": self.heading,
            "left_distance": self.left_distance,
            "right_distance": self.right_distance,
            "left_velocity": self.left_velocity,
            "right_velocity": self.right_velocity,
            "left_acceleration": self.left_acceleration,
            "right_acceleration": self.right_acceleration,
        }
