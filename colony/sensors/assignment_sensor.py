# colony/sensors/assignment_sensor.py
from __future__ import annotations

from collections import Counter
from typing import Dict

from colony.infra.store import AssignmentKind, ColonyStore
from colony.mind.world_state import AssignmentView, RosterSnapshot
from colony.strategy.archetypes import Archetype

_KIND_OF = {
    AssignmentKind.REMOTE_NODE: Archetype.REMOTE_MINER,
    AssignmentKind.REMOTE_HAUL: Archetype.REMOTE_HAULER,
    AssignmentKind.RESERVATION: Archetype.RESERVER,
    AssignmentKind.REMOTE_DEFENSE: Archetype.REMOTE_DEFENDER,
}


def node_claims(colony_id: str, *, roster: RosterSnapshot, store: ColonyStore) -> Dict[str, str]:
    """
    Home node -> live gatherer working it.
    A gatherer's own target wins over its node record; the first claim on a node holds.
    """
    records = {r.worker: r.node_id for r in store.assignments(colony_id, AssignmentKind.NODE)}
    claims: Dict[str, str] = {}
    for w in roster.of(Archetype.GATHERER):
        node = w.target_node or records.get(w.name)
        if node is not None and node not in claims:
            claims[node] = w.name
    return claims


def derive_assignments(colony_id: str, *, roster: RosterSnapshot, store: ColonyStore) -> AssignmentView:
    """
    Remote assignment view over live workers.
    A worker's own targets win; the store fills in targets the worker does not carry.
    Records of dead workers are ignored.
    """
    targets = {}
    for w in roster.workers:
        targets[w.name] = (w.archetype, w.target_node, w.target_site)

    for rec in store.assignments(colony_id):
        if rec.worker not in targets:
            continue
        archetype, node, site = targets[rec.worker]
        if _KIND_OF.get(rec.kind) is not archetype:
            continue
        targets[rec.worker] = (archetype, node or rec.node_id, site or rec.site_id)

    miners_by_source: Counter = Counter()
    miners_by_site: Counter = Counter()
    haulers: Counter = Counter()
    reservers: Counter = Counter()
    defenders: Counter = Counter()

    for archetype, node, site in targets.values():
        if archetype is Archetype.REMOTE_MINER:
            if node is not None:
                miners_by_source[node] += 1
            if site is not None:
                miners_by_site[site] += 1
        elif site is None:
            continue
        elif archetype is Archetype.REMOTE_HAULER:
            haulers[site] += 1
        elif archetype is Archetype.RESERVER:
            reservers[site] += 1
        elif archetype is Archetype.REMOTE_DEFENDER:
            defenders[site] += 1

    live = roster.names()
    needs = {}
    for squad in store.squads(colony_id):
        missing = squad.missing(live)
        if missing > 0:
            needs[squad.site_id] = missing

    return AssignmentView(
        miners_by_source=dict(miners_by_source),
        miners_by_site=dict(miners_by_site),
        haulers_by_site=dict(haulers),
        reservers_by_site=dict(reservers),
        defenders_by_site=dict(defenders),
        squad_needs=needs,
    )
