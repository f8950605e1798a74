# tools/view_devlog.py
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


def read_jsonl(path: Path) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for i, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                rows.append({"_parse_error": str(e), "_line": i, "_raw": line})
                continue
            if isinstance(obj, dict):
                obj["_line"] = i
            rows.append(obj)
    return rows


def _extract_time(payload: Any) -> Optional[float]:
    if not isinstance(payload, dict):
        return None
    for key in ("time", "t"):
        t = payload.get(key)
        if isinstance(t, (int, float)) and not isinstance(t, bool):
            return float(t)
    return None


def build_dataframe(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Columns:
      - base: ts_utc, event, module, time, _line, _has_parse_error, _parse_error, _raw
      - payload flattened as payload__*
      - meta flattened as meta__*
      - payload_raw/meta_raw kept for auditing
    """
    base: List[Dict[str, Any]] = []
    payload_list: List[Dict[str, Any]] = []
    meta_list: List[Dict[str, Any]] = []

    for r in rows:
        if not isinstance(r, dict):
            r = {"_raw": str(r), "_parse_error": "non_dict_row"}

        payload = r.get("payload", {})
        meta = r.get("meta", {})
        if not isinstance(payload, dict):
            payload = {"_non_dict_payload": str(payload)}
        if not isinstance(meta, dict):
            meta = {"_non_dict_meta": str(meta)}

        base.append(
            {
                "ts_utc": r.get("ts_utc"),
                "event": r.get("event"),
                "module": r.get("module"),
                "time": _extract_time(payload),
                "_line": r.get("_line"),
                "_has_parse_error": bool(r.get("_parse_error")),
                "_parse_error": r.get("_parse_error"),
                "_raw": r.get("_raw"),
                "payload_raw": r.get("payload", {}),
                "meta_raw": r.get("meta", {}),
            }
        )
        payload_list.append(payload)
        meta_list.append(meta)

    df_base = pd.DataFrame(base)
    df_payload = pd.json_normalize(payload_list).add_prefix("payload__")
    df_meta = pd.json_normalize(meta_list).add_prefix("meta__")
    df = pd.concat([df_base, df_payload, df_meta], axis=1)

    if len(df) and "time" in df.columns:
        df = df.sort_values(by=["time", "_line"], ascending=[True, True], na_position="last", kind="stable")

    return df.reset_index(drop=True)


def summarize(df: pd.DataFrame) -> str:
    lines = ["================ SUMMARY ================", f"Rows: {len(df)}"]
    if not len(df):
        return "\n".join(lines)

    if df["_has_parse_error"].any():
        lines.append(f"Parse errors: {int(df['_has_parse_error'].sum())}")

    lines.append("")
    lines.append("Top events:")
    lines.append(df["event"].value_counts(dropna=False).to_string())

    if df["time"].notna().any():
        tmin = int(df["time"].dropna().min())
        tmax = int(df["time"].dropna().max())
        lines.append("")
        lines.append(f"Time range: {tmin} -> {tmax}")

    payload_cols = [c for c in df.columns if c.startswith("payload__")]
    meta_cols = [c for c in df.columns if c.startswith("meta__")]
    lines.append("")
    lines.append(f"Columns: total={len(df.columns)} payload={len(payload_cols)} meta={len(meta_cols)}")
    return "\n".join(lines)


def maybe_filter(df: pd.DataFrame, contains: Optional[str]) -> pd.DataFrame:
    if not contains or not len(df):
        return df
    c = contains.lower()
    return df[df["event"].astype(str).str.lower().str.contains(c, na=False, regex=False)].reset_index(drop=True)


def export_csv(df: pd.DataFrame, out: Path) -> None:
    df2 = df.copy()
    # raw dicts are serialized so the csv stays stable
    for col in ("payload_raw", "meta_raw"):
        if col in df2.columns:
            df2[col] = df2[col].apply(
                lambda x: json.dumps(x, ensure_ascii=False) if isinstance(x, (dict, list)) else str(x)
            )
    df2.to_csv(out, index=False, encoding="utf-8")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Inspect a scheduler devlog (JSONL).")
    p.add_argument("path", help="Path to the consolidated .jsonl file")
    p.add_argument("--contains", default=None, help="Keep only events whose name contains this text")
    p.add_argument("--csv", default=None, help="Export the table to this csv path")
    p.add_argument("--gui", action="store_true", help="Open the table in pandasgui")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    path = Path(args.path)
    if not path.exists():
        raise SystemExit(f"File not found: {path}")

    df = build_dataframe(read_jsonl(path))
    df = maybe_filter(df, args.contains)
    print(summarize(df))

    if args.csv:
        export_csv(df, Path(args.csv))
        print(f"\nCSV exported to: {args.csv}")

    if args.gui:
        from pandasgui import show  # lazy import

        show(df)


if __name__ == "__main__":
    main()
