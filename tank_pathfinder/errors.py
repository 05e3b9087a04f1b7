"""Exception types raised by the path planning and following stack.

Construction errors are raised when a path, profile or trajectory cannot be
built from its inputs. Precondition errors signal that an object was used in
the wrong state. Range errors signal a query outside the valid domain.
"""


class PathfinderError(Exception):
    """Base class for all tank_pathfinder errors."""


class ConstructionError(PathfinderError, ValueError):
    """An object could not be constructed from the given arguments."""


class InvalidWaypointsError(ConstructionError):
    """A path was requested with fewer than two waypoints."""


class InvalidArgumentError(ConstructionError):
    """An argument is outside the range the constructor can honour."""


class PreconditionError(PathfinderError, RuntimeError):
    """An operation was attempted before its preconditions were met."""


class IllegalStateError(PreconditionError):
    """Arc-length data was queried before it was computed."""


class StateError(PreconditionError):
    """A follower was reconfigured while it was running."""


class RangeError(PathfinderError, ValueError):
    """A time or path parameter lies outside the valid domain."""
