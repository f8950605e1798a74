# colony/sensors/economy_sensor.py
from __future__ import annotations

from colony.api import ResourceReading
from colony.intel.economy_intel import build_consumption, income_max, realized_income, upgrade_consumption
from colony.mind.world_state import ResourceSnapshot, RosterSnapshot, StructureInventory
from colony.strategy.schema import CacheCfg


def container_stock(structures: StructureInventory) -> int:
    return sum(int(c.stored) for c in structures.containers)


def derive_resource_snapshot(
    reading: ResourceReading,
    *,
    structures: StructureInventory,
    roster: RosterSnapshot,
    source_count: int,
    trend: float,
    cfg: CacheCfg,
) -> ResourceSnapshot:
    """
    Economy snapshot:
    - spendable pool (available/capacity)
    - reserves (storage, containers)
    - realized vs theoretical income, consumption estimates, trend

    Rule: no side-effects.
    """
    stored = int(structures.storage.stored) if structures.storage is not None else 0
    return ResourceSnapshot(
        available=max(0, int(reading.available)),
        capacity=max(0, int(reading.capacity)),
        stored=stored,
        container_stock=container_stock(structures),
        income=realized_income(roster.workers, harvest_per_work=cfg.harvest_per_work),
        income_max=income_max(source_count, per_source=cfg.source_income_max),
        trend=float(trend),
        upgrade_consumption=upgrade_consumption(roster.workers),
        build_consumption=build_consumption(roster.workers),
    )
