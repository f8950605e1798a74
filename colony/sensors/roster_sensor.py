# colony/sensors/roster_sensor.py
from __future__ import annotations

from collections import Counter
from typing import Iterable, List

from colony.api import WorkerRecord
from colony.mind.world_state import RosterSnapshot, WorkerInfo
from colony.strategy.archetypes import Archetype


def derive_roster(records: Iterable[WorkerRecord], *, expiring_ttl: int = 100) -> RosterSnapshot:
    """
    Worker census:
    - counts per archetype (workers still in production count as live)
    - expiring: remaining lifetime below expiring_ttl

    Rule: no side-effects. Unknown archetypes are not ours to schedule and are skipped.
    """
    workers: List[WorkerInfo] = []
    counts: Counter = Counter()
    expiring: Counter = Counter()

    for r in records:
        try:
            archetype = Archetype(str(r.archetype).lower())
        except ValueError:
            continue

        workers.append(
            WorkerInfo(
                name=r.name,
                archetype=archetype,
                modules=tuple(r.modules),
                ttl=r.ttl,
                target_node=r.target_node,
                target_site=r.target_site,
            )
        )
        counts[archetype] += 1
        if r.ttl is not None and int(r.ttl) < int(expiring_ttl):
            expiring[archetype] += 1

    return RosterSnapshot(counts=dict(counts), expiring=dict(expiring), workers=tuple(workers))
