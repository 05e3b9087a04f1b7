"""Data collection and CSV logging for trajectory following runs.

This module provides CSV data logging for:
- Trajectory samples (per-wheel targets over time)
- Follower diagnostics (targets, measurements, errors, outputs per tick)
- Run summary (length, timing, final tracking error)
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from .config import RESULTS_DIR_NAME, TERM_BLUE, TERM_RESET
from .trajectory import TankDriveTrajectory

TRAJECTORY_COLUMNS = [
    "time",
    "distance",
    "velocity",
    "acceleration",
    "heading",
    "left_distance",
    "right_distance",
    "left_velocity",
    "right_velocity",
    "left_acceleration",
    "right_acceleration",
    "x",
    "y",
]

FOLLOWER_COLUMNS = [
    "timestamp",
    "t",
    "state",
    "left_target",
    "right_target",
    "left_measured",
    "right_measured",
    "left_error",
    "right_error",
    "left_derivative",
    "right_derivative",
    "direction_error",
    "left_output",
    "right_output",
    "x",
    "y",
    "heading",
]


class DataCollector:
    """Manages CSV file creation and logging for a following run.

    Attributes:
        run_dir: Directory path for this run's output files.
        trajectory_csv_file: File handle for trajectory samples CSV.
        follower_csv_file: File handle for follower diagnostics CSV.
        summary_output_path: Path for the run summary text file.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates a
                timestamped directory under ``<output_dir>/results``.

        Raises:
            ValueError: If output_dir exists but is not a directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        # CSV file handles
        self.trajectory_csv_file: Optional[TextIO] = None
        self.trajectory_csv_writer: Any = None
        self.follower_csv_file: Optional[TextIO] = None
        self.follower_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        else:
            # Create timestamped directory: results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / RESULTS_DIR_NAME / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.trajectory_output_path: Path = self.run_dir / "trajectory_data.csv"
        self.follower_output_path: Path = self.run_dir / "follower_data.csv"
        self.summary_output_path: Path = self.run_dir / "summary.txt"

    def setup(self) -> None:
        """Initialize CSV files with headers.

        Must be called before writing data.
        """
        self.trajectory_csv_file = open(self.trajectory_output_path, "w", newline="")
        self.trajectory_csv_writer = csv.writer(self.trajectory_csv_file)
        self.trajectory_csv_writer.writerow(TRAJECTORY_COLUMNS)
        self.trajectory_csv_file.flush()

        self.follower_csv_file = open(self.follower_output_path, "w", newline="")
        self.follower_csv_writer = csv.writer(self.follower_csv_file)
        self.follower_csv_writer.writerow(FOLLOWER_COLUMNS)
        self.follower_csv_file.flush()

    def log_trajectory(self, trajectory: TankDriveTrajectory, dt: float) -> int:
        """Write trajectory samples every ``dt`` seconds.

        Args:
            trajectory: Trajectory to sample.
            dt: Sampling period (seconds).

        Returns:
            Number of rows written.
        """
        if self.trajectory_csv_writer is None:
            return 0

        moments = trajectory.sample(dt)
        for moment in moments:
            pos, _ = trajectory.pose_at(moment.time)
            row = moment.as_dict()
            row["x"] = pos.x
            row["y"] = pos.y
            self.trajectory_csv_writer.writerow([row[c] for c in TRAJECTORY_COLUMNS])
        if self.trajectory_csv_file:
            self.trajectory_csv_file.flush()
        return len(moments)

    def log_follower(
        self,
        timestamp: float,
        diagnostics: Dict[str, Any],
        pose: Optional[tuple[float, float, float]] = None,
    ) -> None:
        """Log one follower tick.

        Args:
            timestamp: Time of the tick.
            diagnostics: Output of ``TankDriveFollower.get_diagnostics()``.
            pose: Optional measured (x, y, heading) of the robot.
        """
        if self.follower_csv_writer is None:
            return

        x, y, heading = pose if pose is not None else ("", "", "")
        row = dict(diagnostics, timestamp=timestamp, x=x, y=y, heading=heading)
        self.follower_csv_writer.writerow([row.get(c, "") for c in FOLLOWER_COLUMNS])

    def log_summary(self, summary: Dict[str, Any]) -> None:
        """Write a key: value summary of the run.

        Args:
            summary: Values to record, written in insertion order.
        """
        with open(self.summary_output_path, "w") as f:
            for key, value in summary.items():
                if isinstance(value, float):
                    f.write(f"{key}: {value:.6f}\n")
                else:
                    f.write(f"{key}: {value}\n")
        logging.info(f"{TERM_BLUE}✓ Saved run summary to {self.summary_output_path.name}{TERM_RESET}")

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        if self.trajectory_csv_file:
            self.trajectory_csv_file.close()
            self.trajectory_csv_file = None
            self.trajectory_csv_writer = None
        if self.follower_csv_file:
            self.follower_csv_file.close()
            self.follower_csv_file = None
            self.follower_csv_writer = None

        logging.info(f"{TERM_BLUE}✓ Saved run data to {self.run_dir}{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        """Context manager entry point.

        Returns:
            Self reference for use in with statement.
        """
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called."""
        self.cleanup()
