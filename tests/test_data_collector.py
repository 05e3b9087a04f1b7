import csv
import math

import pytest

from tank_pathfinder.data_collector import FOLLOWER_COLUMNS, TRAJECTORY_COLUMNS, DataCollector
from tank_pathfinder.model import RobotSpecs
from tank_pathfinder.path import Path, Waypoint
from tank_pathfinder.trajectory import TankDriveTrajectory


def read_rows(path):
    with open(path, newline="") as f:
        return list(csv.reader(f))


@pytest.fixture
def trajectory():
    path = Path([Waypoint(0, 0, math.pi / 2), Waypoint(0, 2, math.pi / 2)], alpha=0.0)
    return TankDriveTrajectory(path, RobotSpecs(2.0, 1.0, 0.5), sample_count=200)


def test_creates_timestamped_run_dir(tmp_path):
    collector = DataCollector(str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")
    assert collector.run_dir.is_dir()


def test_explicit_run_dir(tmp_path):
    run_dir = tmp_path / "my_run"
    collector = DataCollector(run_dir=str(run_dir))
    assert collector.run_dir == run_dir
    assert run_dir.is_dir()


def test_rejects_file_as_output_dir(tmp_path):
    target = tmp_path / "not_a_dir"
    target.write_text("x")
    with pytest.raises(ValueError):
        DataCollector(str(target))


def test_headers_written_on_setup(tmp_path):
    with DataCollector(str(tmp_path)) as collector:
        pass
    assert read_rows(collector.trajectory_output_path) == [TRAJECTORY_COLUMNS]
    assert read_rows(collector.follower_output_path) == [FOLLOWER_COLUMNS]


def test_log_trajectory(tmp_path, trajectory):
    with DataCollector(str(tmp_path)) as collector:
        count = collector.log_trajectory(trajectory, 0.1)

    rows = read_rows(collector.trajectory_output_path)
    assert count == len(trajectory.sample(0.1))
    assert len(rows) == count + 1
    last = dict(zip(rows[0], rows[-1]))
    assert float(last["time"]) == pytest.approx(trajectory.total_time())
    assert float(last["y"]) == pytest.approx(2.0, abs=1e-3)


def test_log_before_setup_is_ignored(tmp_path, trajectory):
    collector = DataCollector(str(tmp_path))
    assert collector.log_trajectory(trajectory, 0.1) == 0
    collector.log_follower(0.0, {"t": 0.0})
    assert not collector.follower_output_path.exists()


def test_log_follower(tmp_path):
    diagnostics = {"t": 0.5, "state": "running", "left_error": -0.01, "right_output": 0.3}
    with DataCollector(str(tmp_path)) as collector:
        collector.log_follower(10.5, diagnostics, (1.0, 2.0, 0.5))
        collector.log_follower(10.6, diagnostics)

    rows = read_rows(collector.follower_output_path)
    first = dict(zip(rows[0], rows[1]))
    assert first["timestamp"] == "10.5"
    assert first["state"] == "running"
    assert first["right_output"] == "0.3"
    assert first["x"] == "1.0"
    assert first["left_target"] == ""
    second = dict(zip(rows[0], rows[2]))
    assert second["heading"] == ""


def test_log_summary(tmp_path):
    collector = DataCollector(str(tmp_path))
    collector.log_summary({"ticks": 12, "final_left_error": 0.0123456789})
    text = collector.summary_output_path.read_text()
    assert "ticks: 12\n" in text
    assert "final_left_error: 0.012346\n" in text


def test_cleanup_is_idempotent(tmp_path):
    collector = DataCollector(str(tmp_path))
    collector.setup()
    collector.cleanup()
    collector.cleanup()
    assert collector.trajectory_csv_file is None
    assert collector.follower_csv_file is None
