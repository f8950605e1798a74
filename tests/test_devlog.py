import json
from pathlib import Path

from colony.devlog import DevLogger


def _rows(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_disabled_or_unconfigured_logger_writes_nothing(tmp_path: Path) -> None:
    DevLogger(log_dir=str(tmp_path), filename="a.jsonl", enabled=False).emit("scheduler_idle", {})
    DevLogger(log_dir=str(tmp_path)).emit("scheduler_idle", {})

    assert list(tmp_path.iterdir()) == []


def test_event_routing_by_prefix(tmp_path: Path) -> None:
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl")

    log.emit("cache_refresh", {"time": 1})
    log.emit("planner_error", {"time": 2})
    log.emit("something_else", {"time": 3})

    rows = _rows(tmp_path / "run.jsonl")
    assert [r["module"] for r in rows] == ["state", "scheduler", "misc"]
    assert (tmp_path / "run" / "state.jsonl").exists()
    assert (tmp_path / "run" / "scheduler.jsonl").exists()
    assert (tmp_path / "run" / "misc.jsonl").exists()


def test_meta_overrides_routing(tmp_path: Path) -> None:
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl")

    log.emit("scheduler_selected", {"time": 1}, meta={"module": "Custom", "component": "custom/part:1"})

    row = _rows(tmp_path / "run.jsonl")[0]
    assert row["module"] == "custom"
    assert row["component"] == "custom/part:1"
    assert (tmp_path / "run" / "components" / "custom_part_1.jsonl").exists()


def test_cycle_events_get_a_tick_file(tmp_path: Path) -> None:
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl")

    log.emit("runtime_cycle", {"time": 1})

    assert (tmp_path / "run" / "ticks" / "runtime.jsonl").exists()


def test_io_errors_never_propagate(tmp_path: Path) -> None:
    # the target path is a directory, so appending fails
    (tmp_path / "run.jsonl").mkdir()
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl")

    log.emit("scheduler_idle", {"time": 1})
