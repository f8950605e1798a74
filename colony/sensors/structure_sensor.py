# colony/sensors/structure_sensor.py
from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Tuple

from colony.api import SiteRecord, SourceRecord, StructureKind, StructureRecord
from colony.mind.world_state import (
    ConstructionBacklog,
    NodeAssignment,
    RemoteSite,
    StructureInventory,
)
from colony.policies.remote import remote_construction
from colony.strategy.schema import RemoteCfg


def derive_structures(records: Iterable[StructureRecord], *, now: int) -> StructureInventory:
    rs = list(records)
    storage = next((s for s in rs if s.kind is StructureKind.STORAGE), None)
    return StructureInventory(
        facilities=tuple(s for s in rs if s.kind is StructureKind.FACILITY),
        towers=tuple(s for s in rs if s.kind is StructureKind.TOWER),
        storage=storage,
        containers=tuple(s for s in rs if s.kind is StructureKind.CONTAINER),
        relays=tuple(s for s in rs if s.kind is StructureKind.RELAY),
        refreshed_at=int(now),
    )


def derive_construction(
    home_sites: Iterable[SiteRecord],
    remote_targets: Iterable[RemoteSite],
    *,
    cfg: RemoteCfg,
) -> ConstructionBacklog:
    hs = list(home_sites)
    remote_total, remote_containers = remote_construction(remote_targets, cfg=cfg)
    return ConstructionBacklog(
        home_sites=len(hs),
        home_non_road=sum(1 for s in hs if s.kind is not StructureKind.ROAD),
        remote_sites=int(remote_total),
        remote_container_sites=int(remote_containers),
    )


def _adjacent(a, b) -> bool:
    return max(abs(a[0] - b[0]), abs(a[1] - b[1])) <= 1


def derive_node_table(sources: Iterable[SourceRecord], *, structures: StructureInventory) -> Tuple[NodeAssignment, ...]:
    """Resource nodes with no worker yet; a container next to the node is its drop point."""
    out: List[NodeAssignment] = []
    for src in sources:
        container = next((c.structure_id for c in structures.containers if _adjacent(c.pos, src.pos)), None)
        out.append(NodeAssignment(node_id=src.source_id, container_id=container))
    return tuple(out)


def occupy_nodes(table: Iterable[NodeAssignment], claims: Dict[str, str]) -> Tuple[NodeAssignment, ...]:
    return tuple(replace(n, worker=claims.get(n.node_id)) for n in table)
