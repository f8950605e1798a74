# colony/mind/world_state.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from colony.api import StructureRecord
from colony.engine.modules import Module
from colony.strategy.archetypes import Archetype

if TYPE_CHECKING:
    from colony.planners.proposals import Candidate


class ThreatLevel(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass(frozen=True)
class ResourceSnapshot:
    available: int
    capacity: int
    stored: int = 0
    container_stock: int = 0
    income: float = 0.0
    income_max: float = 0.0
    trend: float = 0.0
    upgrade_consumption: float = 0.0
    build_consumption: float = 0.0

    @property
    def income_ratio(self) -> float:
        return min(1.0, float(self.income) / max(float(self.income_max), 1.0))


@dataclass(frozen=True)
class WorkerInfo:
    name: str
    archetype: Archetype
    modules: Tuple[Module, ...] = ()
    ttl: Optional[int] = None
    target_node: Optional[str] = None
    target_site: Optional[str] = None


@dataclass(frozen=True)
class RosterSnapshot:
    counts: Dict[Archetype, int] = field(default_factory=dict)
    expiring: Dict[Archetype, int] = field(default_factory=dict)
    workers: Tuple[WorkerInfo, ...] = ()

    def names(self) -> frozenset:
        return frozenset(w.name for w in self.workers)

    def of(self, archetype: Archetype) -> Tuple[WorkerInfo, ...]:
        return tuple(w for w in self.workers if w.archetype is archetype)


@dataclass(frozen=True)
class ThreatSnapshot:
    level: ThreatLevel = ThreatLevel.NONE
    hostiles: int = 0
    healers: int = 0
    ranged: int = 0
    melee: int = 0
    combat_modules: int = 0
    facility_under_attack: bool = False


@dataclass(frozen=True)
class StructureInventory:
    facilities: Tuple[StructureRecord, ...] = ()
    towers: Tuple[StructureRecord, ...] = ()
    storage: Optional[StructureRecord] = None
    containers: Tuple[StructureRecord, ...] = ()
    relays: Tuple[StructureRecord, ...] = ()
    refreshed_at: int = 0

    @property
    def storage_relay(self) -> Optional[StructureRecord]:
        for r in self.relays:
            if r.storage_relay:
                return r
        return None

    @property
    def stocked_containers(self) -> Tuple[StructureRecord, ...]:
        return tuple(c for c in self.containers if c.stored > 0)


@dataclass(frozen=True)
class ConstructionBacklog:
    home_sites: int = 0
    home_non_road: int = 0
    remote_sites: int = 0
    remote_container_sites: int = 0

    @property
    def total(self) -> int:
        return int(self.home_sites) + int(self.remote_sites)


@dataclass(frozen=True)
class NodeAssignment:
    node_id: str
    worker: Optional[str] = None
    container_id: Optional[str] = None


@dataclass(frozen=True)
class RemoteSite:
    site_id: str
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
    scan_age: Optional[int] = None

    @property
    def has_intel(self) -> bool:
        return self.last_scan is not None


@dataclass(frozen=True)
class AssignmentView:
    """Live workers per remote target, merged from roster targets and the store."""
    miners_by_source: Dict[str, int] = field(default_factory=dict)
    miners_by_site: Dict[str, int] = field(default_factory=dict)
    haulers_by_site: Dict[str, int] = field(default_factory=dict)
    reservers_by_site: Dict[str, int] = field(default_factory=dict)
    defenders_by_site: Dict[str, int] = field(default_factory=dict)
    # site -> defenders still missing from an open squad
    squad_needs: Dict[str, int] = field(default_factory=dict)

    def has_miner(self, source_id: str) -> bool:
        return self.miners_by_source.get(source_id, 0) > 0

    @property
    def total_squad_need(self) -> int:
        return sum(n for n in self.squad_needs.values() if n > 0)

    def with_worker(self, archetype: Archetype, *, node_id: Optional[str], site_id: Optional[str]) -> "AssignmentView":
        def bump(d: Dict[str, int], key: Optional[str]) -> Dict[str, int]:
            out = dict(d)
            if key is not None:
                out[key] = out.get(key, 0) + 1
            return out

        if archetype is Archetype.REMOTE_MINER:
            return replace(
                self,
                miners_by_source=bump(self.miners_by_source, node_id),
                miners_by_site=bump(self.miners_by_site, site_id),
            )
        if archetype is Archetype.REMOTE_HAULER:
            return replace(self, haulers_by_site=bump(self.haulers_by_site, site_id))
        if archetype is Archetype.RESERVER:
            return replace(self, reservers_by_site=bump(self.reservers_by_site, site_id))
        if archetype is Archetype.REMOTE_DEFENDER:
            needs = dict(self.squad_needs)
            if site_id is not None and needs.get(site_id, 0) > 0:
                needs[site_id] -= 1
            return replace(self, defenders_by_site=bump(self.defenders_by_site, site_id), squad_needs=needs)
        return self


@dataclass(frozen=True)
class EmergencyFlags:
    no_gatherers: bool = False
    facility_critical: bool = False
    reserves_low: bool = False
    is_emergency: bool = False
    reasons: Tuple[str, ...] = ()

    @classmethod
    def derive(cls, *, no_gatherers: bool, facility_critical: bool, reserves_low: bool) -> "EmergencyFlags":
        reasons = []
        if no_gatherers:
            reasons.append("no_gatherers")
        if facility_critical:
            reasons.append("facility_critical")
        if reserves_low:
            reasons.append("reserves_low")
        # low reserves alone are normal early on; only fatal without gatherers
        is_emergency = no_gatherers or facility_critical or (reserves_low and no_gatherers)
        return cls(
            no_gatherers=no_gatherers,
            facility_critical=facility_critical,
            reserves_low=reserves_low,
            is_emergency=is_emergency,
            reasons=tuple(reasons),
        )


@dataclass(frozen=True)
class WorldState:
    """
    Per-cycle colony snapshot (read-only).
    - immutable once handed out
    - the cache owns refresh; consumers never write back
    """
    colony_id: str
    time: int
    tier: int
    expansion_ceiling: int
    resources: ResourceSnapshot
    roster: RosterSnapshot = RosterSnapshot()
    threat: ThreatSnapshot = ThreatSnapshot()
    structures: StructureInventory = StructureInventory()
    construction: ConstructionBacklog = ConstructionBacklog()
    nodes: Tuple[NodeAssignment, ...] = ()
    remote_sites: Tuple[RemoteSite, ...] = ()
    assignments: AssignmentView = AssignmentView()
    emergency: EmergencyFlags = EmergencyFlags()

    def count(self, archetype: Archetype) -> int:
        return int(self.roster.counts.get(archetype, 0))

    def expiring_count(self, archetype: Archetype) -> int:
        return int(self.roster.expiring.get(archetype, 0))

    @property
    def income_ratio(self) -> float:
        return self.resources.income_ratio

    @property
    def has_income(self) -> bool:
        return self.resources.income > 0

    @property
    def home_staffed(self) -> bool:
        return self.count(Archetype.GATHERER) >= 1 and self.count(Archetype.TRANSPORTER) >= 1

    def site(self, site_id: str) -> Optional[RemoteSite]:
        for s in self.remote_sites:
            if s.site_id == site_id:
                return s
        return None

    def with_admission(self, candidate: "Candidate") -> "WorldState":
        """
        State as seen by the next free facility in the same cycle:
        the candidate's cost is spent and the worker counts as live.
        """
        archetype = candidate.archetype
        counts = dict(self.roster.counts)
        counts[archetype] = counts.get(archetype, 0) + 1

        pending = WorkerInfo(
            name=f"pending:{archetype.value}:{len(self.roster.workers)}",
            archetype=archetype,
            modules=candidate.spec.modules,
            ttl=None,
            target_node=candidate.assignment.node_id,
            target_site=candidate.assignment.site_id,
        )
        roster = RosterSnapshot(
            counts=counts,
            expiring=dict(self.roster.expiring),
            workers=self.roster.workers + (pending,),
        )
        resources = replace(self.resources, available=max(0, int(self.resources.available) - int(candidate.cost)))
        emergency = EmergencyFlags.derive(
            no_gatherers=counts.get(Archetype.GATHERER, 0) == 0,
            facility_critical=self.emergency.facility_critical,
            reserves_low=self.emergency.reserves_low,
        )
        assignments = self.assignments.with_worker(
            archetype,
            node_id=candidate.assignment.node_id,
            site_id=candidate.assignment.site_id,
        )
        nodes = self.nodes
        if archetype is Archetype.GATHERER and candidate.assignment.node_id is not None:
            nodes = tuple(
                replace(n, worker=pending.name) if n.node_id == candidate.assignment.node_id else n
                for n in self.nodes
            )
        return replace(
            self,
            resources=resources,
            roster=roster,
            emergency=emergency,
            assignments=assignments,
            nodes=nodes,
        )
