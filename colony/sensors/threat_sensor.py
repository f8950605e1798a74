# colony/sensors/threat_sensor.py
from __future__ import annotations

from typing import Iterable

from colony.api import HostileRecord
from colony.mind.world_state import StructureInventory, ThreatSnapshot
from colony.policies.threat import ThreatPolicy


def derive_threat(
    hostiles: Iterable[HostileRecord],
    *,
    structures: StructureInventory,
    policy: ThreatPolicy,
    username: str,
) -> ThreatSnapshot:
    """
    Home threat snapshot.
    Own workers reported as hostile (stale ownership) are ignored.
    """
    hs = [h for h in hostiles if h.owner != username]
    return policy.evaluate(hs, structures.facilities)
