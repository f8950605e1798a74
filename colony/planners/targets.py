# colony/planners/targets.py
from __future__ import annotations

import math
from typing import Dict

from colony.mind.world_state import WorldState
from colony.policies.remote import mining_targets, needs_scout, remote_source_count
from colony.strategy.archetypes import ALL_ARCHETYPES, Archetype
from colony.strategy.schema import RemoteCfg, TargetsCfg


def desired_counts(
    state: WorldState,
    *,
    username: str,
    cfg: TargetsCfg = TargetsCfg(),
    remote_cfg: RemoteCfg = RemoteCfg(),
) -> Dict[Archetype, int]:
    """Desired live count per archetype. Every archetype gets an entry."""
    out: Dict[Archetype, int] = {a: 0 for a in ALL_ARCHETYPES}

    nodes = len(state.nodes)
    has_storage = state.structures.storage is not None
    tier = int(state.tier)

    # a colony always wants at least one gatherer, even before its nodes are known
    out[Archetype.GATHERER] = max(nodes, 1)
    out[Archetype.TRANSPORTER] = max(cfg.transporter_min_with_storage, nodes) if has_storage else nodes
    if state.count(Archetype.GATHERER) > 0:
        # gatherers with nobody to move their output
        out[Archetype.TRANSPORTER] = max(out[Archetype.TRANSPORTER], 1)

    out[Archetype.UPGRADER] = min(tier, cfg.upgrader_cap) if tier < cfg.max_tier else cfg.upgrader_at_max_tier

    sites = state.construction.total
    if sites > 0:
        out[Archetype.BUILDER] = min(
            int(math.ceil(sites / float(cfg.builder_sites_per_worker))),
            min(tier, cfg.builder_cap),
        )

    if (
        tier >= cfg.relay_filler_tier
        and state.resources.stored > cfg.relay_filler_reserve
        and state.structures.storage_relay is not None
    ):
        out[Archetype.RELAY_FILLER] = 1

    if tier >= cfg.remote_tier:
        targets = mining_targets(state.remote_sites, username=username)[: max(0, int(state.expansion_ceiling))]
        sources = remote_source_count(targets)
        out[Archetype.REMOTE_MINER] = sources
        out[Archetype.REMOTE_HAULER] = int(math.ceil(sources * cfg.remote_haulers_per_miner))
        out[Archetype.RESERVER] = len(targets)
        out[Archetype.SCOUT] = 1 if needs_scout(state.remote_sites, cfg=remote_cfg) else 0

    # remote defenders are squad-driven; their need is read from the assignment view
    out[Archetype.REMOTE_DEFENDER] = state.assignments.total_squad_need
    # defenders are threat-driven
    out[Archetype.DEFENDER] = 0
    return out


def effective_deficit(state: WorldState, archetype: Archetype, targets: Dict[Archetype, int]) -> int:
    """target - live + expiring: a worker about to expire is already a gap."""
    return int(targets.get(archetype, 0)) - state.count(archetype) + state.expiring_count(archetype)
