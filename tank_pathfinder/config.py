"""Configuration parameters for the tank-drive path planner and follower.

This module centralizes the default values used across the package:
- Numerical tolerances and sampling resolution
- Path generation defaults
- Follower gains and re-basing period
- Runner and simulation timing
- Terminal output settings

Components never read these at runtime behind the caller's back; every value
here is only the default of an explicit constructor or CLI argument.
"""

import math

# ============================================================================
# Numerics
# ============================================================================

FLOAT_TOLERANCE = 1e-7
"""Absolute tolerance for floating-point comparisons.

Used by motion profiles for phase boundaries and the cruise-distance clamp,
and by paths for parameter range checks. A value of 1e-7 absorbs the
rounding of the closed-form profile equations without masking real errors.
"""

DEFAULT_SAMPLE_COUNT = 1000
"""Number of parameter samples in a path's arc-length table.

Higher = more accurate s <-> t inversion and wheel distance tables.
1000 keeps the round trip s2t(t2s(t)) within ~1e-3 on typical paths.
"""

# ============================================================================
# Path Generation
# ============================================================================

DEFAULT_PATH_TYPE = "quintic"
"""Default spline family ("bezier", "cubic" or "quintic")."""

DEFAULT_INITIAL_FACING = math.pi / 2
"""Facing assumed by straight and point-turn profiles (radians).

Pi/2 means the robot starts pointing along +y.
"""

# ============================================================================
# Follower Gains
# ============================================================================
# Wheel error is measured - target, so corrective kP and kD are
# non-positive. Heading error is also measured - target but is added to the
# left wheel and subtracted from the right, so a corrective kDP is positive.

FOLLOWER_KA = 0.02
"""Acceleration feedforward gain (output per m/s²)."""

FOLLOWER_KP = -0.8
"""Proportional gain on wheel distance error (output per meter)."""

FOLLOWER_KD = -0.01
"""Derivative gain on wheel distance error rate (output per m/s)."""

FOLLOWER_KDP = 0.2
"""Proportional gain on heading error (output per radian)."""

FOLLOWER_UPDATE_DELAY = 0.25
"""Seconds between motion profile re-basing in the dynamic follower."""

# ============================================================================
# Runner and Simulation Timing
# ============================================================================

RUNNER_FREQUENCY_HZ = 100.0
"""Default follower tick rate (Hz)."""

SIM_TIME_STEP = 0.01
"""Simulation integration step (seconds)."""

SIM_MOTOR_TIME_CONSTANT = 0.05
"""First-order motor lag of the simulated drive (seconds).

0 means wheels reach the commanded velocity instantly.
"""

# ============================================================================
# Output
# ============================================================================

RESULTS_DIR_NAME = "results"
"""Directory (under the output dir) that holds timestamped run folders."""

TERM_BLUE = "\033[94m"
"""ANSI escape for blue terminal text."""

TERM_ORANGE = "\033[38;5;208m"
"""ANSI escape for orange terminal text."""

TERM_RESET = "\033[0m"
"""ANSI escape resetting terminal colour."""
