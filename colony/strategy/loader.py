#colony/strategy/loader.py
from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Type, TypeVar

from colony.strategy.archetypes import DEFAULT_WORKER_TYPES, Archetype, with_overrides
from .schema import (
    CacheCfg,
    Profile,
    RemoteCfg,
    ReserveThresholds,
    SchedulerCfg,
    TargetsCfg,
    UtilityWeights,
)

T = TypeVar("T")

_SECTIONS: Dict[str, type] = {
    "cache": CacheCfg,
    "reserves": ReserveThresholds,
    "weights": UtilityWeights,
    "targets": TargetsCfg,
    "remote": RemoteCfg,
    "scheduler": SchedulerCfg,
}

_ARCHETYPE_KEYS = ("max_repeats", "minimum_cost")


def _as_str(x: Any, *, path: str) -> str:
    if not isinstance(x, str):
        raise TypeError(f"{path}: expected str, got {type(x).__name__}")
    return x


def _as_int(x: Any, *, path: str) -> int:
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        raise TypeError(f"{path}: expected int, got {type(x).__name__}")
    return int(x)


def _as_float(x: Any, *, path: str) -> float:
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        raise TypeError(f"{path}: expected float, got {type(x).__name__}")
    return float(x)


def _as_bool(x: Any, *, path: str) -> bool:
    if not isinstance(x, bool):
        raise TypeError(f"{path}: expected bool, got {type(x).__name__}")
    return x


def _require_obj(d: Dict[str, Any], key: str, *, path: str) -> Dict[str, Any]:
    if key not in d:
        raise KeyError(f"{path}: missing required key '{key}'")
    v = d[key]
    if not isinstance(v, dict):
        raise TypeError(f"{path}.{key}: must be object")
    return v


def _parse_section(cls: Type[T], raw: Mapping[str, Any], *, path: str) -> T:
    """
    Build a config dataclass from a JSON object.
    Missing keys keep their defaults; unknown keys are rejected.
    The expected type of each key is the type of its default.
    """
    defaults = cls()
    known = {f.name for f in fields(cls)}
    for k in raw:
        if k not in known:
            raise KeyError(f"{path}: unknown key '{k}' (allowed={sorted(known)})")

    values: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in raw:
            continue
        default = getattr(defaults, f.name)
        p = f"{path}.{f.name}"
        if isinstance(default, bool):
            values[f.name] = _as_bool(raw[f.name], path=p)
        elif isinstance(default, int):
            values[f.name] = _as_int(raw[f.name], path=p)
        elif isinstance(default, float):
            values[f.name] = _as_float(raw[f.name], path=p)
        else:
            values[f.name] = _as_str(raw[f.name], path=p)
    return cls(**values)


def _parse_archetypes(raw: Any, *, path: str) -> Dict[Archetype, Dict[str, int]]:
    if not isinstance(raw, dict):
        raise TypeError(f"{path}: must be object")

    out: Dict[Archetype, Dict[str, int]] = {}
    for name, body in raw.items():
        try:
            archetype = Archetype(str(name).lower())
        except ValueError as e:
            raise ValueError(
                f"{path}.{name}: unknown archetype (allowed={sorted(a.value for a in Archetype)})"
            ) from e
        if not isinstance(body, dict):
            raise TypeError(f"{path}.{name}: must be object")

        overrides: Dict[str, int] = {}
        for k, v in body.items():
            if k not in _ARCHETYPE_KEYS:
                raise KeyError(f"{path}.{name}: unknown key '{k}' (allowed={list(_ARCHETYPE_KEYS)})")
            overrides[k] = _as_int(v, path=f"{path}.{name}.{k}")
        out[archetype] = overrides
    return out


def _resolve_path(name_or_path: str) -> Path:
    p = Path(name_or_path)
    if p.suffix == ".json" or p.exists():
        return p
    base = Path(__file__).resolve().parents[1] / "profiles"
    return base / f"{name_or_path}.json"


def load_profile(name_or_path: str = "default") -> Profile:
    path = _resolve_path(name_or_path)

    if not path.exists():
        raise FileNotFoundError(f"Profile file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse JSON profile: {path}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Profile root must be JSON object: {path}")

    name = _as_str(data.get("name", path.stem), path="name")

    sections: Dict[str, Any] = {}
    for key, cls in _SECTIONS.items():
        if key not in data or data[key] is None:
            continue
        raw = _require_obj(data, key, path=str(path))
        sections[key] = _parse_section(cls, raw, path=key)

    worker_types = dict(DEFAULT_WORKER_TYPES)
    if data.get("archetypes") is not None:
        # WorkerTypeConfig re-validates on construction
        worker_types = with_overrides(worker_types, _parse_archetypes(data["archetypes"], path="archetypes"))

    profile = Profile(name=name, worker_types=worker_types, **sections)
    profile.validate()
    return profile
