# colony/mind/world_cache.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

from colony.api import ColonyEnvironment
from colony.devlog import DevLogger
from colony.infra.store import ColonyStore
from colony.intel.economy_intel import EconomyTracker
from colony.mind.world_state import (
    ConstructionBacklog,
    NodeAssignment,
    StructureInventory,
    WorldState,
)
from colony.policies.emergency import derive_emergency
from colony.policies.remote import mining_targets, site_view
from colony.policies.threat import ThreatPolicy
from colony.sensors.assignment_sensor import derive_assignments, node_claims
from colony.sensors.economy_sensor import derive_resource_snapshot
from colony.sensors.roster_sensor import derive_roster
from colony.sensors.structure_sensor import (
    derive_construction,
    derive_node_table,
    derive_structures,
    occupy_nodes,
)
from colony.sensors.threat_sensor import derive_threat
from colony.strategy.schema import CacheCfg, RemoteCfg


@dataclass
class _Entry:
    state: WorldState
    last_periodic: int
    structures: StructureInventory
    construction: ConstructionBacklog
    node_table: Tuple[NodeAssignment, ...]
    stale: bool = False


class WorldStateCache:
    """
    Tiered read cache: one immutable WorldState per colony per time step.

    - per-cycle tier (resources, roster, threat, node occupancy, assignments,
      emergency): rebuilt on the first get() of a new time step
    - periodic tier (structures, node list and drop containers, construction
      backlog): rebuilt when `refresh_interval` steps have passed; assignment
      records of dead workers are pruned from the store at the same time
    - repeated get() within one step returns the same object
    """

    def __init__(
        self,
        *,
        env: ColonyEnvironment,
        store: ColonyStore,
        log: Optional[DevLogger] = None,
        cfg: Optional[CacheCfg] = None,
        remote_cfg: Optional[RemoteCfg] = None,
        clock: Optional[Callable[[], int]] = None,
        threat: Optional[ThreatPolicy] = None,
        tracker: Optional[EconomyTracker] = None,
    ):
        self.env = env
        self.store = store
        self.log = log
        self.cfg = cfg or CacheCfg()
        self.remote_cfg = remote_cfg or RemoteCfg()
        self.clock = clock or env.time
        self.threat = threat or ThreatPolicy()
        self.tracker = tracker or EconomyTracker(store=store, cfg=self.cfg, log=log)
        self._entries: Dict[str, _Entry] = {}

    # ---------------- API ----------------

    def get(self, colony_id: str) -> Optional[WorldState]:
        if not self.env.is_controlled(colony_id):
            self._entries.pop(colony_id, None)
            return None

        now = int(self.clock())
        entry = self._entries.get(colony_id)
        if entry is not None and entry.state.time == now and not entry.stale:
            return entry.state

        periodic = entry is None or (now - entry.last_periodic) >= int(self.cfg.refresh_interval)
        return self._refresh(colony_id, now=now, entry=entry, periodic=periodic)

    def invalidate(self, colony_id: str) -> None:
        """Next get() rebuilds the per-cycle tier even within the same step."""
        entry = self._entries.get(colony_id)
        if entry is not None:
            entry.stale = True

    def force_refresh(self, colony_id: str) -> Optional[WorldState]:
        """Rebuild both tiers now."""
        if not self.env.is_controlled(colony_id):
            self._entries.pop(colony_id, None)
            return None
        now = int(self.clock())
        return self._refresh(colony_id, now=now, entry=self._entries.get(colony_id), periodic=True)

    # ---------------- internals ----------------

    def _refresh(self, colony_id: str, *, now: int, entry: Optional[_Entry], periodic: bool) -> WorldState:
        env = self.env
        username = env.username()

        roster = derive_roster(env.workers(colony_id), expiring_ttl=self.cfg.expiring_ttl)
        remote_sites = site_view(env.remote_sites(colony_id), now=now)

        if periodic or entry is None:
            structures = derive_structures(env.structures(colony_id), now=now)
            construction = derive_construction(
                env.construction_sites(colony_id),
                mining_targets(remote_sites, username=username),
                cfg=self.remote_cfg,
            )
            node_table = derive_node_table(env.sources(colony_id), structures=structures)
            self.store.prune(colony_id, roster.names())
            last_periodic = now
        else:
            structures = entry.structures
            construction = entry.construction
            node_table = entry.node_table
            last_periodic = entry.last_periodic

        nodes = occupy_nodes(node_table, node_claims(colony_id, roster=roster, store=self.store))

        provisional = derive_resource_snapshot(
            env.resources(colony_id),
            structures=structures,
            roster=roster,
            source_count=len(nodes),
            trend=0.0,
            cfg=self.cfg,
        )
        trend = self.tracker.observe(
            colony_id,
            now=now,
            stock=provisional.stored + provisional.container_stock,
            income=provisional.income,
            burn=provisional.upgrade_consumption + provisional.build_consumption,
        )
        resources = replace(provisional, trend=trend)

        threat = derive_threat(
            env.hostiles(colony_id),
            structures=structures,
            policy=self.threat,
            username=username,
        )
        emergency = derive_emergency(roster=roster, resources=resources, structures=structures, cfg=self.cfg)

        state = WorldState(
            colony_id=colony_id,
            time=now,
            tier=int(env.tier(colony_id)),
            expansion_ceiling=int(env.expansion_ceiling()),
            resources=resources,
            roster=roster,
            threat=threat,
            structures=structures,
            construction=construction,
            nodes=nodes,
            remote_sites=remote_sites,
            assignments=derive_assignments(colony_id, roster=roster, store=self.store),
            emergency=emergency,
        )

        was_emergency = entry is not None and entry.state.emergency.is_emergency
        if self.log and emergency.is_emergency and not was_emergency:
            self.log.emit(
                "colony_emergency",
                {"colony": colony_id, "time": now, "reasons": list(emergency.reasons)},
                meta={"module": "state", "component": "state.cache"},
            )
        if self.log and periodic:
            self.log.emit(
                "cache_refresh",
                {
                    "colony": colony_id,
                    "time": now,
                    "tier": "periodic",
                    "facilities": len(structures.facilities),
                    "nodes": len(nodes),
                    "sites": construction.total,
                },
                meta={"module": "state", "component": "state.cache"},
            )

        self._entries[colony_id] = _Entry(
            state=state,
            last_periodic=last_periodic,
            structures=structures,
            construction=construction,
            node_table=node_table,
        )
        return state
