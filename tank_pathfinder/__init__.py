"""Tank Pathfinder - Path Planning and Following for Tank-Drive Robots

Plans smooth paths through headed waypoints, times them with trapezoidal
motion profiles, splits them into per-wheel targets and follows them with a
feedforward + PID control loop.

## Architecture Overview

The system is a pipeline of four layers:

### Layer 1: Geometry (segments.py, path.py)
Fits Bezier, cubic Hermite or quintic Hermite splines through waypoints.
- Closed-form position and derivatives per segment
- Arc-length table with s <-> t conversion
- Curvature, wheel positions, mirrored and retraced copies

### Layer 2: Timing (motion_profile.py)
Trapezoidal velocity profiles with reversal and mid-course re-planning.
- Overshoot is reported, not raised
- Dual profiles drive each wheel independently
- Sampled profiles follow speed limits that vary along a path

### Layer 3: Tank-Drive Targets (trajectory.py)
Turns a path or a straight/turn request into timed targets.
- Centre-only trajectories and profiles yield plain moments
- Tank-drive centre speed limited by local curvature and waypoint velocities
- Wheel distance and velocity scaled by 1 -/+ k*b/2

### Layer 4: Following (follower.py, motor_controller.py, runner.py)
Closed-loop control at a fixed rate.
- Per-wheel feedforward + PID, optional heading correction
- Outputs clamped to [-1, 1]
- Runner threads with a stop() that guarantees no further commands

## Modules

### Core
- `mathutils.py` - Vec2D, root solvers, angle helpers, float comparison
- `segments.py` - Spline segment families
- `path.py` - Waypoints and spline paths
- `motion_profile.py` - Trapezoidal, sampled and dual motion profiles
- `moment.py` - Target snapshots
- `followable.py` - Interfaces for followable targets
- `model.py` - Robot limits and tank-drive kinematics
- `trajectory.py` - Basic and tank-drive trajectories, straight and rotation profiles
- `motor_controller.py` - Per-wheel feedforward + PID
- `follower.py` - Follower state machine
- `runner.py` - Threaded follower runners

### Support
- `config.py` - Default parameters with documentation
- `errors.py` - Exception types
- `simulation.py` - Kinematic tank-drive simulator
- `data_collector.py` - CSV logging of trajectories and follower ticks
- `cli.py` - Command-line interface

## Quick Start

```python
import math
from tank_pathfinder import RobotSpecs, TankDriveTrajectory, TrajectoryParams, Waypoint

specs = RobotSpecs(max_velocity=2.0, max_acceleration=1.0, base_width=0.5)
params = TrajectoryParams([Waypoint(0, 0, math.pi / 2), Waypoint(2, 3, math.pi / 2)])
trajectory = TankDriveTrajectory.from_params(specs, params)
moment = trajectory.get(trajectory.total_time() / 2)
```

Or use the command-line interface:
```bash
python -m tank_pathfinder -w 0,0,1.5708 -w 2,3,1.5708 \
    --max-velocity 2 --max-acceleration 1 --base-width 0.5 --simulate
```

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"
__author__ = "Nishalan Govender"

# Export key classes for convenience
from .errors import (
    ConstructionError,
    IllegalStateError,
    InvalidArgumentError,
    InvalidWaypointsError,
    PathfinderError,
    PreconditionError,
    RangeError,
    StateError,
)
from .follower import DynamicTankDriveFollower, FollowerState, TankDriveFollower
from .mathutils import Vec2D
from .model import RobotSpecs
from .moment import Moment, TankMoment
from .motion_profile import DualMotionProfile, SampledMotionProfile, TrapezoidalMotionProfile
from .motor_controller import FollowerGains
from .path import Path, PathType, Waypoint
from .runner import SimpleFollowerRunner, TimedFollowerRunner
from .trajectory import (
    BasicTrajectory,
    RotationTankDriveProfile,
    StraightTankDriveProfile,
    TankDriveTrajectory,
    TrajectoryParams,
    TrapezoidalBasicProfile,
)

__all__ = [
    "Vec2D",
    "Waypoint",
    "PathType",
    "Path",
    "TrapezoidalMotionProfile",
    "SampledMotionProfile",
    "DualMotionProfile",
    "Moment",
    "TankMoment",
    "RobotSpecs",
    "TrajectoryParams",
    "BasicTrajectory",
    "TankDriveTrajectory",
    "TrapezoidalBasicProfile",
    "StraightTankDriveProfile",
    "RotationTankDriveProfile",
    "FollowerGains",
    "FollowerState",
    "TankDriveFollower",
    "DynamicTankDriveFollower",
    "SimpleFollowerRunner",
    "TimedFollowerRunner",
    "PathfinderError",
    "ConstructionError",
    "InvalidWaypointsError",
    "InvalidArgumentError",
    "PreconditionError",
    "IllegalStateError",
    "StateError",
    "RangeError",
]
