"""Command-line interface for generating and simulating trajectories.

Builds a tank-drive trajectory (spline path, straight drive or point turn),
reports its length and duration, and optionally follows it against the
kinematic simulator while logging every tick to CSV.

Example:
    python -m tank_pathfinder --waypoint 0,0,1.5708 --waypoint 2,3,1.5708 \\
        --max-velocity 2 --max-acceleration 1 --base-width 0.5 --simulate
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import (
    DEFAULT_PATH_TYPE,
    DEFAULT_SAMPLE_COUNT,
    FOLLOWER_KA,
    FOLLOWER_KD,
    FOLLOWER_KDP,
    FOLLOWER_KP,
    FOLLOWER_UPDATE_DELAY,
    SIM_MOTOR_TIME_CONSTANT,
    SIM_TIME_STEP,
    TERM_BLUE,
    TERM_ORANGE,
    TERM_RESET,
)
from .data_collector import DataCollector
from .errors import PathfinderError
from .followable import Followable
from .follower import DynamicTankDriveFollower, TankDriveFollower
from .model import RobotSpecs
from .motor_controller import FollowerGains
from .path import PathType, Waypoint
from .simulation import DriveParams, SimulatedClock, SimulatedTankDrive
from .trajectory import (
    RotationTankDriveProfile,
    StraightTankDriveProfile,
    TankDriveTrajectory,
    TrajectoryParams,
)


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    INFO lines print bare; WARNING, ERROR and DEBUG lines keep a timestamp
    and level.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        # Repeated calls in one process keep a single handler
        if any(isinstance(h.formatter, CustomFormatter) for h in logger.handlers):
            return
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)


def parse_waypoint(text: str) -> Waypoint:
    """Parse ``x,y,heading[,velocity]`` (heading in radians).

    Raises:
        argparse.ArgumentTypeError: If the text is malformed.
    """
    parts = text.split(",")
    if len(parts) not in (3, 4):
        raise argparse.ArgumentTypeError(f"Expected x,y,heading[,velocity], got '{text}'")
    try:
        values = [float(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Non-numeric waypoint '{text}'")
    return Waypoint(*values)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tank_pathfinder",
        description="Generate a tank-drive trajectory and optionally follow it in simulation",
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--waypoint",
        "-w",
        type=parse_waypoint,
        action="append",
        dest="waypoints",
        metavar="X,Y,HEADING[,V]",
        help="Waypoint (repeat for each point, heading in radians)",
    )
    target.add_argument("--straight", type=float, metavar="DIST", help="Drive straight DIST")
    target.add_argument("--turn", type=float, metavar="ANGLE", help="Turn in place ANGLE radians")

    robot = parser.add_argument_group("robot")
    robot.add_argument("--max-velocity", type=float, required=True)
    robot.add_argument("--max-acceleration", type=float, required=True)
    robot.add_argument("--base-width", type=float, required=True)

    path = parser.add_argument_group("path")
    path.add_argument(
        "--path-type",
        choices=[t.value for t in PathType],
        default=DEFAULT_PATH_TYPE,
    )
    path.add_argument("--alpha", type=float, default=None, help="Tangent magnitude (default: mean waypoint spacing)")
    path.add_argument("--samples", type=int, default=DEFAULT_SAMPLE_COUNT)

    sim = parser.add_argument_group("simulation")
    sim.add_argument("--simulate", action="store_true", help="Follow the trajectory in simulation")
    sim.add_argument("--dynamic", action="store_true", help="Re-plan straight/turn profiles while following")
    sim.add_argument("--dt", type=float, default=SIM_TIME_STEP)
    sim.add_argument("--motor-lag", type=float, default=SIM_MOTOR_TIME_CONSTANT)
    sim.add_argument("--kv", type=float, default=None, help="Default: 1 / max velocity")
    sim.add_argument("--ka", type=float, default=FOLLOWER_KA)
    sim.add_argument("--kp", type=float, default=FOLLOWER_KP)
    sim.add_argument("--ki", type=float, default=0.0)
    sim.add_argument("--kd", type=float, default=FOLLOWER_KD)
    sim.add_argument("--kdp", type=float, default=FOLLOWER_KDP)
    sim.add_argument("--output-dir", default=None, help="Write CSV logs under this directory")

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    return parser


def build_target(args: argparse.Namespace, specs: RobotSpecs) -> Followable:
    if args.straight is not None:
        return StraightTankDriveProfile(specs, args.straight)
    if args.turn is not None:
        return RotationTankDriveProfile(specs, args.turn)

    params = TrajectoryParams(
        waypoints=args.waypoints,
        alpha=args.alpha,
        sample_count=args.samples,
        path_type=PathType(args.path_type),
    )
    return TankDriveTrajectory.from_params(specs, params)


def simulate(
    target: Followable,
    specs: RobotSpecs,
    gains: FollowerGains,
    dt: float,
    motor_lag: float = SIM_MOTOR_TIME_CONSTANT,
    dynamic: bool = False,
    collector: Optional[DataCollector] = None,
) -> Dict[str, Any]:
    """Follow ``target`` with a simulated drive until the follower finishes.

    Args:
        target: Trajectory or profile to follow.
        specs: Robot limits (``base_width`` required).
        gains: Follower gains.
        dt: Simulation and control period (seconds).
        motor_lag: Motor time constant of the simulated drive.
        dynamic: Use the re-planning follower (straight/turn profiles only).
        collector: Optional CSV logger.

    Returns:
        Summary dictionary with tick count and final errors.
    """
    x = y = 0.0
    if isinstance(target, TankDriveTrajectory):
        first = target.path.waypoints[0]
        x, y = first.x, first.y
    facing = target.get(0.0).initial_facing

    drive = SimulatedTankDrive(
        DriveParams(specs.require_base_width(), specs.max_velocity, motor_lag),
        x=x,
        y=y,
        heading=facing,
    )
    clock = SimulatedClock()
    follower_cls = DynamicTankDriveFollower if dynamic else TankDriveFollower
    extra = {"update_delay": FOLLOWER_UPDATE_DELAY} if dynamic else {}
    follower = follower_cls(
        target,
        drive.left_motor,
        drive.right_motor,
        drive.left_encoder,
        drive.right_encoder,
        timer=clock,
        gains=gains,
        direction_source=drive.gyro,
        **extra,
    )

    ticks = 0
    max_left_error = max_right_error = 0.0
    follower.initialize()
    while not follower.finished:
        follower.run()
        if follower.finished:
            break
        ticks += 1
        max_left_error = max(max_left_error, abs(follower.last_left_error))
        max_right_error = max(max_right_error, abs(follower.last_right_error))
        if collector is not None:
            collector.log_follower(
                clock.now(), follower.get_diagnostics(), (drive.x, drive.y, drive.heading)
            )
        drive.step(dt)
        clock.advance(dt)

    end = target.get(target.total_time())
    summary: Dict[str, Any] = {
        "ticks": ticks,
        "total_time": target.total_time(),
        "final_left_error": drive.left_encoder.distance() - end.left_distance,
        "final_right_error": drive.right_encoder.distance() - end.right_distance,
        "max_left_error": max_left_error,
        "max_right_error": max_right_error,
    }
    if isinstance(target, TankDriveTrajectory):
        goal, _ = target.pose_at(target.total_time())
        summary["final_position_error"] = drive.position.dist(goal)
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI.

    Returns:
        Process exit status: 0 on success, 1 on a planning error.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        specs = RobotSpecs(args.max_velocity, args.max_acceleration, args.base_width)
        target = build_target(args, specs)
        logging.info(f"{TERM_BLUE}Total time: {target.total_time():.3f}s{TERM_RESET}")
        if isinstance(target, TankDriveTrajectory):
            logging.info(f"{TERM_BLUE}Path length: {target.length:.3f}{TERM_RESET}")

        collector = DataCollector(args.output_dir) if args.output_dir else None
        if collector is not None:
            collector.setup()
        try:
            if collector is not None and isinstance(target, TankDriveTrajectory):
                collector.log_trajectory(target, args.dt)

            if args.simulate:
                gains = FollowerGains(
                    kv=args.kv if args.kv is not None else 1.0 / specs.max_velocity,
                    ka=args.ka,
                    kp=args.kp,
                    ki=args.ki,
                    kd=args.kd,
                    kdp=args.kdp,
                )
                summary = simulate(
                    target, specs, gains, args.dt, args.motor_lag, args.dynamic, collector
                )
                logging.info(
                    f"{TERM_ORANGE}→ Final wheel error L: {summary['final_left_error']:.4f}  "
                    f"R: {summary['final_right_error']:.4f}{TERM_RESET}"
                )
                if "final_position_error" in summary:
                    logging.info(
                        f"{TERM_ORANGE}→ Final position error: "
                        f"{summary['final_position_error']:.4f}{TERM_RESET}"
                    )
                if collector is not None:
                    collector.log_summary(summary)
        finally:
            if collector is not None:
                collector.cleanup()
    except PathfinderError as e:
        logging.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
