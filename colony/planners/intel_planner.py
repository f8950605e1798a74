# colony/planners/intel_planner.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from colony.engine.smoothing import finite
from colony.mind.world_state import WorldState
from colony.planners.proposals import Proposal
from colony.planners.targets import effective_deficit
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import TargetsCfg, UtilityWeights


@dataclass
class IntelPlanner:
    """
    Scout requests: a luxury, only when the economy has income to spare.
    Which site gets scouted is the scouting subsystem's call.
    """
    planner_id: str = "intel_planner"
    weights: UtilityWeights = UtilityWeights()
    targets_cfg: TargetsCfg = TargetsCfg()

    def propose(self, state: WorldState, *, targets: Dict[Archetype, int]) -> List[Proposal]:
        if state.tier < self.targets_cfg.scout_tier:
            return []
        deficit = effective_deficit(state, Archetype.SCOUT, targets)
        if deficit <= 0:
            return []
        u = finite(deficit * self.weights.scout_base * state.income_ratio)
        if u <= 0:
            return []
        return [Proposal(archetype=Archetype.SCOUT, utility=u, planner=self.planner_id, reason="stale_intel")]
