#colony/policies/threat.py
from __future__ import annotations

from typing import Iterable, List

from colony.api import HostileRecord, Position, StructureRecord
from colony.engine.modules import Module, count_of
from colony.mind.world_state import ThreatLevel, ThreatSnapshot


def _in_range(a: Position, b: Position, r: int) -> bool:
    # grid range: king-move distance
    return max(abs(a[0] - b[0]), abs(a[1] - b[1])) <= r


class ThreatPolicy:
    """
    Home threat classification from hostile composition.

      - CRITICAL: any hostile within `near_range` of a production facility
      - HIGH: more than `high_modules` combat modules
      - MEDIUM: more than `medium_modules` combat modules or more than `medium_hostiles` hostiles
      - LOW: any other hostile presence

    This is NOT combat assessment; it only sizes the defensive response.
    """

    def __init__(
        self,
        *,
        near_range: int = 3,
        high_modules: int = 20,
        medium_modules: int = 5,
        medium_hostiles: int = 3,
    ):
        self.near_range = int(near_range)
        self.high_modules = int(high_modules)
        self.medium_modules = int(medium_modules)
        self.medium_hostiles = int(medium_hostiles)

    def evaluate(self, hostiles: Iterable[HostileRecord], facilities: Iterable[StructureRecord]) -> ThreatSnapshot:
        hs: List[HostileRecord] = list(hostiles)
        if not hs:
            return ThreatSnapshot()

        healers = [h for h in hs if count_of(h.modules, Module.HEAL) > 0]
        ranged = [h for h in hs if count_of(h.modules, Module.RANGED_ATTACK) > 0]
        melee = [h for h in hs if count_of(h.modules, Module.ATTACK) > 0]

        combat = (
            sum(count_of(h.modules, Module.HEAL) for h in healers)
            + sum(count_of(h.modules, Module.RANGED_ATTACK) for h in ranged)
            + sum(count_of(h.modules, Module.ATTACK) for h in melee)
        )

        under_attack = any(_in_range(h.pos, f.pos, self.near_range) for f in facilities for h in hs)

        if under_attack:
            level = ThreatLevel.CRITICAL
        elif combat > self.high_modules:
            level = ThreatLevel.HIGH
        elif combat > self.medium_modules or len(hs) > self.medium_hostiles:
            level = ThreatLevel.MEDIUM
        else:
            level = ThreatLevel.LOW

        return ThreatSnapshot(
            level=level,
            hostiles=len(hs),
            healers=len(healers),
            ranged=len(ranged),
            melee=len(melee),
            combat_modules=int(combat),
            facility_under_attack=bool(under_attack),
        )
