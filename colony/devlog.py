# colony/devlog.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class DevLogger:
    """
    JSONL logger (one event per line).

    Output layout:
    - consolidated: logs/<filename>
    - per module: logs/<run_stem>/<module>.jsonl
    - per component: logs/<run_stem>/components/<component>.jsonl
    - cycle events per module: logs/<run_stem>/ticks/<module>.jsonl
    """

    log_dir: str = "logs"
    filename: Optional[str] = None
    enabled: bool = True
    split_by_module: bool = True

    def _ensure_dir(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

    def set_file(self, filename: str) -> None:
        self.filename = filename

    @staticmethod
    def _module_from_event(event: str, meta: Optional[Dict[str, Any]] = None) -> str:
        if isinstance(meta, dict):
            mod = meta.get("module")
            if isinstance(mod, str) and mod.strip():
                return mod.strip().lower()

        ev = str(event or "").strip().lower()
        if ev.startswith("scheduler_") or ev.startswith("planner_"):
            return "scheduler"
        if ev.startswith("build_"):
            return "build"
        if ev.startswith("cache_") or ev.startswith("colony_"):
            return "state"
        if ev.startswith("economy_"):
            return "economy"
        if ev.startswith("runtime_"):
            return "runtime"
        return "misc"

    @staticmethod
    def _component_from_event(event: str, meta: Optional[Dict[str, Any]] = None) -> str:
        if isinstance(meta, dict):
            comp = meta.get("component")
            if isinstance(comp, str) and comp.strip():
                return comp.strip().lower()
        return DevLogger._module_from_event(event, meta)

    @staticmethod
    def _safe_stem(filename: str) -> str:
        stem, _ = os.path.splitext(str(filename))
        return stem or "devlog"

    @staticmethod
    def _write_jsonl(path: str, row: Dict[str, Any]) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")

    def emit(
        self,
        event: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.enabled:
            return
        if not self.filename:
            # no file configured: drop the event instead of failing the cycle
            return

        self._ensure_dir()

        module = self._module_from_event(event, meta)
        component = self._component_from_event(event, meta)
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "module": module,
            "component": component,
            "payload": payload or {},
            "meta": meta or {},
        }

        consolidated_path = os.path.join(self.log_dir, self.filename)
        try:
            self._write_jsonl(consolidated_path, row)

            if self.split_by_module:
                run_stem = self._safe_stem(self.filename)
                split_dir = os.path.join(self.log_dir, run_stem)
                os.makedirs(split_dir, exist_ok=True)

                module_path = os.path.join(split_dir, f"{module}.jsonl")
                self._write_jsonl(module_path, row)

                components_dir = os.path.join(split_dir, "components")
                os.makedirs(components_dir, exist_ok=True)
                safe_component = component.replace("/", "_").replace("\\", "_").replace(":", "_")
                component_path = os.path.join(components_dir, f"{safe_component}.jsonl")
                self._write_jsonl(component_path, row)

                if str(event).lower().endswith("_cycle"):
                    ticks_dir = os.path.join(split_dir, "ticks")
                    os.makedirs(ticks_dir, exist_ok=True)
                    ticks_path = os.path.join(ticks_dir, f"{module}.jsonl")
                    self._write_jsonl(ticks_path, row)
        except OSError:
            # logging must never take the scheduler down
            pass
