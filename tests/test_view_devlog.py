import json
from pathlib import Path

import pandas as pd

from colony.devlog import DevLogger
from tools.view_devlog import build_dataframe, export_csv, main, maybe_filter, read_jsonl, summarize


def _sample_log(tmp_path: Path) -> Path:
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl", split_by_module=False)
    log.emit("scheduler_selected", {"colony": "home", "time": 20, "archetype": "gatherer", "cost": 200})
    log.emit("cache_refresh", {"colony": "home", "time": 10, "nodes": 2})
    log.emit("scheduler_wait", {"colony": "home", "time": 30, "waiting_for": "transporter"})
    path = tmp_path / "run.jsonl"
    with path.open("a", encoding="utf-8") as f:
        f.write("{broken\n")
    return path


def test_rows_keep_line_numbers_and_parse_errors(tmp_path: Path) -> None:
    rows = read_jsonl(_sample_log(tmp_path))

    assert len(rows) == 4
    assert rows[0]["_line"] == 1
    assert "_parse_error" in rows[3]


def test_dataframe_flattens_payload_and_sorts_by_time(tmp_path: Path) -> None:
    df = build_dataframe(read_jsonl(_sample_log(tmp_path)))

    assert isinstance(df, pd.DataFrame)
    assert list(df["event"].iloc[:3]) == ["cache_refresh", "scheduler_selected", "scheduler_wait"]
    assert "payload__archetype" in df.columns
    assert "meta__module" not in df.columns or df["meta__module"].isna().all()
    assert int(df["_has_parse_error"].sum()) == 1


def test_filter_and_summary(tmp_path: Path) -> None:
    df = build_dataframe(read_jsonl(_sample_log(tmp_path)))
    only = maybe_filter(df, "SCHEDULER")

    assert len(only) == 2
    text = summarize(only)
    assert "Rows: 2" in text
    assert "Time range: 20 -> 30" in text
    assert maybe_filter(df, None) is df


def test_csv_export_serializes_raw_columns(tmp_path: Path) -> None:
    df = build_dataframe(read_jsonl(_sample_log(tmp_path)))
    out = tmp_path / "out.csv"

    export_csv(df, out)

    back = pd.read_csv(out)
    assert len(back) == len(df)
    first = back[back["event"] == "cache_refresh"].iloc[0]
    assert json.loads(first["payload_raw"])["nodes"] == 2


def test_cli_prints_summary(tmp_path: Path, capsys) -> None:
    path = _sample_log(tmp_path)

    main([str(path), "--contains", "wait", "--csv", str(tmp_path / "w.csv")])

    out = capsys.readouterr().out
    assert "Rows: 1" in out
    assert (tmp_path / "w.csv").exists()
