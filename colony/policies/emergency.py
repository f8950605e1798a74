#colony/policies/emergency.py
from __future__ import annotations

from colony.mind.world_state import EmergencyFlags, ResourceSnapshot, RosterSnapshot, StructureInventory
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import CacheCfg


def derive_emergency(
    *,
    roster: RosterSnapshot,
    resources: ResourceSnapshot,
    structures: StructureInventory,
    cfg: CacheCfg,
) -> EmergencyFlags:
    """
    Survival flags, recomputed every cycle.
    Rule: no side-effects.
    """
    no_gatherers = int(roster.counts.get(Archetype.GATHERER, 0)) == 0

    facility_critical = False
    if structures.facilities:
        first = structures.facilities[0]
        if first.hits_max > 0:
            facility_critical = first.hits < cfg.facility_critical_ratio * first.hits_max

    reserves_low = (
        resources.available < cfg.low_available
        and resources.stored < cfg.low_storage
        and not structures.stocked_containers
    )

    return EmergencyFlags.derive(
        no_gatherers=no_gatherers,
        facility_critical=facility_critical,
        reserves_low=reserves_low,
    )
