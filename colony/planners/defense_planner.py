# colony/planners/defense_planner.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from colony.engine.smoothing import finite
from colony.mind.world_state import ThreatLevel, WorldState
from colony.planners.proposals import Proposal
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import UtilityWeights


def defender_utility(state: WorldState, w: UtilityWeights) -> float:
    """
    Zero without a threat, whatever the deficit.
    Scales with hostile count, divided down by defenders already present, capped
    below the collapse-time gatherer score.
    """
    if state.threat.level is ThreatLevel.NONE or state.threat.hostiles <= 0:
        return 0.0
    defenders = state.count(Archetype.DEFENDER)
    u = state.threat.hostiles * w.defender_per_hostile / (defenders + 1)
    return finite(min(u, w.defender_cap))


@dataclass
class DefensePlanner:
    """
    Reactive home defense.
    - Only proposes when a threat is present.
    """
    planner_id: str = "defense_planner"
    weights: UtilityWeights = UtilityWeights()

    def propose(self, state: WorldState, *, targets: Dict[Archetype, int]) -> List[Proposal]:
        u = defender_utility(state, self.weights)
        if u <= 0:
            return []
        return [
            Proposal(
                archetype=Archetype.DEFENDER,
                utility=u,
                planner=self.planner_id,
                reason=f"threat:{state.threat.level.name.lower()}",
            )
        ]
