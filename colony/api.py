#colony/api.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple

from colony.engine.modules import Module

Position = Tuple[int, int]


class StructureKind(str, Enum):
    FACILITY = "facility"
    TOWER = "tower"
    STORAGE = "storage"
    CONTAINER = "container"
    RELAY = "relay"
    EXTENSION = "extension"
    ROAD = "road"
    OTHER = "other"


@dataclass(frozen=True)
class ResourceReading:
    available: int
    capacity: int


@dataclass(frozen=True)
class WorkerRecord:
    name: str
    archetype: str
    modules: Tuple[Module, ...]
    ttl: Optional[int] = None  # None while still in production
    target_node: Optional[str] = None
    target_site: Optional[str] = None


@dataclass(frozen=True)
class HostileRecord:
    hostile_id: str
    owner: str
    modules: Tuple[Module, ...]
    pos: Position = (0, 0)


@dataclass(frozen=True)
class StructureRecord:
    structure_id: str
    kind: StructureKind
    pos: Position = (0, 0)
    hits: int = 1
    hits_max: int = 1
    stored: int = 0
    storage_relay: bool = False


@dataclass(frozen=True)
class SiteRecord:
    """Construction site at home."""
    site_id: str
    kind: StructureKind


@dataclass(frozen=True)
class SourceRecord:
    source_id: str
    pos: Position = (0, 0)


@dataclass(frozen=True)
class RemoteSiteIntel:
    """Last known facts about an adjacent site, as of `last_scan`."""
    source_ids: Tuple[str, ...] = ()
    has_keepers: bool = False
    owner: Optional[str] = None
    reserved_by: Optional[str] = None
    reservation_ticks: int = 0
    hostiles: int = 0
    hostile_combat: int = 0
    last_scan: Optional[int] = None
    visible: bool = False
    construction_sites: int = 0
    container_sites: int = 0


@dataclass(frozen=True)
class AdjacentSite:
    site_id: str
    intel: Optional[RemoteSiteIntel] = None


class ColonyEnvironment(Protocol):
    """Read-only facts the cache pulls from the host world."""

    def time(self) -> int: ...

    def is_controlled(self, colony_id: str) -> bool: ...

    def tier(self, colony_id: str) -> int: ...

    def expansion_ceiling(self) -> int: ...

    def resources(self, colony_id: str) -> ResourceReading: ...

    def workers(self, colony_id: str) -> List[WorkerRecord]: ...

    def hostiles(self, colony_id: str) -> List[HostileRecord]: ...

    def structures(self, colony_id: str) -> List[StructureRecord]: ...

    def construction_sites(self, colony_id: str) -> List[SiteRecord]: ...

    def sources(self, colony_id: str) -> List[SourceRecord]: ...

    def remote_sites(self, colony_id: str) -> List[AdjacentSite]: ...

    def username(self) -> str: ...


@dataclass
class ColonyFacts:
    controlled: bool = True
    tier: int = 1
    available: int = 300
    capacity: int = 300
    workers: List[WorkerRecord] = field(default_factory=list)
    hostiles: List[HostileRecord] = field(default_factory=list)
    structures: List[StructureRecord] = field(default_factory=list)
    construction_sites: List[SiteRecord] = field(default_factory=list)
    sources: List[SourceRecord] = field(default_factory=list)
    remote_sites: List[AdjacentSite] = field(default_factory=list)


@dataclass
class StaticEnvironment:
    """
    In-memory environment. Facts are mutated directly between steps;
    the clock only moves through advance().
    """
    colonies: Dict[str, ColonyFacts] = field(default_factory=dict)
    now: int = 0
    owner: str = "me"
    ceiling: int = 3

    def advance(self, steps: int = 1) -> int:
        self.now += int(steps)
        return self.now

    def facts(self, colony_id: str) -> ColonyFacts:
        return self.colonies[colony_id]

    def time(self) -> int:
        return self.now

    def is_controlled(self, colony_id: str) -> bool:
        f = self.colonies.get(colony_id)
        return bool(f and f.controlled)

    def tier(self, colony_id: str) -> int:
        return int(self.colonies[colony_id].tier)

    def expansion_ceiling(self) -> int:
        return int(self.ceiling)

    def resources(self, colony_id: str) -> ResourceReading:
        f = self.colonies[colony_id]
        return ResourceReading(available=int(f.available), capacity=int(f.capacity))

    def workers(self, colony_id: str) -> List[WorkerRecord]:
        return list(self.colonies[colony_id].workers)

    def hostiles(self, colony_id: str) -> List[HostileRecord]:
        return list(self.colonies[colony_id].hostiles)

    def structures(self, colony_id: str) -> List[StructureRecord]:
        return list(self.colonies[colony_id].structures)

    def construction_sites(self, colony_id: str) -> List[SiteRecord]:
        return list(self.colonies[colony_id].construction_sites)

    def sources(self, colony_id: str) -> List[SourceRecord]:
        return list(self.colonies[colony_id].sources)

    def remote_sites(self, colony_id: str) -> List[AdjacentSite]:
        return list(self.colonies[colony_id].remote_sites)

    def username(self) -> str:
        return self.owner

    # ---------------------------
    # Scenario files
    # ---------------------------
    @classmethod
    def from_scenario(cls, data: Dict[str, Any]) -> "StaticEnvironment":
        if not isinstance(data, dict):
            raise TypeError("scenario root must be object")
        raw_colonies = data.get("colonies")
        if not isinstance(raw_colonies, dict) or not raw_colonies:
            raise KeyError("scenario: missing required object 'colonies'")

        colonies: Dict[str, ColonyFacts] = {}
        for cid, raw in raw_colonies.items():
            if not isinstance(raw, dict):
                raise TypeError(f"colonies.{cid}: must be object")
            colonies[str(cid)] = _parse_colony(raw, path=f"colonies.{cid}")

        return cls(
            colonies=colonies,
            now=int(data.get("time", 0)),
            owner=str(data.get("username", "me")),
            ceiling=int(data.get("expansion_ceiling", 3)),
        )


def _modules(raw: Any, *, path: str) -> Tuple[Module, ...]:
    if not isinstance(raw, list):
        raise TypeError(f"{path}: expected array of module names")
    try:
        return tuple(Module(str(m).lower()) for m in raw)
    except ValueError as e:
        raise ValueError(f"{path}: {e}") from e


def _pos(raw: Any) -> Position:
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        return int(raw[0]), int(raw[1])
    return 0, 0


def _parse_colony(raw: Dict[str, Any], *, path: str) -> ColonyFacts:
    workers = [
        WorkerRecord(
            name=str(w["name"]),
            archetype=str(w["archetype"]).lower(),
            modules=_modules(w.get("modules", []), path=f"{path}.workers[{i}].modules"),
            ttl=w.get("ttl"),
            target_node=w.get("target_node"),
            target_site=w.get("target_site"),
        )
        for i, w in enumerate(raw.get("workers", []))
    ]
    hostiles = [
        HostileRecord(
            hostile_id=str(h.get("id", f"h{i}")),
            owner=str(h.get("owner", "invader")),
            modules=_modules(h.get("modules", []), path=f"{path}.hostiles[{i}].modules"),
            pos=_pos(h.get("pos")),
        )
        for i, h in enumerate(raw.get("hostiles", []))
    ]
    structures = [
        StructureRecord(
            structure_id=str(s.get("id", f"s{i}")),
            kind=StructureKind(str(s["kind"]).lower()),
            pos=_pos(s.get("pos")),
            hits=int(s.get("hits", 1)),
            hits_max=int(s.get("hits_max", s.get("hits", 1))),
            stored=int(s.get("stored", 0)),
            storage_relay=bool(s.get("storage_relay", False)),
        )
        for i, s in enumerate(raw.get("structures", []))
    ]
    sites = [
        SiteRecord(site_id=str(s.get("id", f"c{i}")), kind=StructureKind(str(s.get("kind", "other")).lower()))
        for i, s in enumerate(raw.get("construction_sites", []))
    ]
    sources = [SourceRecord(source_id=str(s)) for s in raw.get("sources", [])]

    remote: List[AdjacentSite] = []
    for i, r in enumerate(raw.get("remote_sites", [])):
        intel_raw = r.get("intel")
        intel = None
        if isinstance(intel_raw, dict):
            intel = RemoteSiteIntel(
                source_ids=tuple(str(x) for x in intel_raw.get("source_ids", [])),
                has_keepers=bool(intel_raw.get("has_keepers", False)),
                owner=intel_raw.get("owner"),
                reserved_by=intel_raw.get("reserved_by"),
                reservation_ticks=int(intel_raw.get("reservation_ticks", 0)),
                hostiles=int(intel_raw.get("hostiles", 0)),
                hostile_combat=int(intel_raw.get("hostile_combat", 0)),
                last_scan=intel_raw.get("last_scan"),
                visible=bool(intel_raw.get("visible", False)),
                construction_sites=int(intel_raw.get("construction_sites", 0)),
                container_sites=int(intel_raw.get("container_sites", 0)),
            )
        remote.append(AdjacentSite(site_id=str(r.get("site_id", f"r{i}")), intel=intel))

    return ColonyFacts(
        controlled=bool(raw.get("controlled", True)),
        tier=int(raw.get("tier", 1)),
        available=int(raw.get("available", 300)),
        capacity=int(raw.get("capacity", 300)),
        workers=workers,
        hostiles=hostiles,
        structures=structures,
        construction_sites=sites,
        sources=sources,
        remote_sites=remote,
    )
