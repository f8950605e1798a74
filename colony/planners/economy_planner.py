# colony/planners/economy_planner.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from colony.engine.smoothing import finite
from colony.mind.world_state import WorldState
from colony.planners.proposals import Assignment, NO_ASSIGNMENT, Proposal
from colony.planners.targets import effective_deficit
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import UtilityWeights


def gatherer_utility(deficit: int, state: WorldState, w: UtilityWeights) -> float:
    """Scarcity multiplier grows without bound as income falls to zero."""
    if deficit <= 0:
        return 0.0
    scarcity = 1.0 / max(state.income_ratio, w.min_income_ratio)
    return finite(deficit * w.gatherer_base * scarcity)


def transporter_utility(deficit: int, state: WorldState, w: UtilityWeights) -> float:
    if deficit <= 0:
        return 0.0
    # nothing to carry yet
    if state.count(Archetype.GATHERER) == 0:
        return 0.0
    if state.has_income and state.count(Archetype.TRANSPORTER) == 0:
        # resources piling up with nobody moving them
        return finite(deficit * w.transporter_base * w.transporter_bootstrap_mult)
    return finite(deficit * w.transporter_base * (1.0 + state.income_ratio))


def _free_node(state: WorldState) -> Optional[str]:
    for n in state.nodes:
        if n.worker is None:
            return n.node_id
    return None


@dataclass
class EconomyPlanner:
    """
    Foundational economy: gatherers and transporters.
    Gatherers must always dominate a collapsed colony.
    """
    planner_id: str = "economy_planner"
    weights: UtilityWeights = UtilityWeights()

    def propose(self, state: WorldState, *, targets: Dict[Archetype, int]) -> List[Proposal]:
        out: List[Proposal] = []

        g = gatherer_utility(effective_deficit(state, Archetype.GATHERER, targets), state, self.weights)
        if g > 0:
            node = _free_node(state)
            out.append(
                Proposal(
                    archetype=Archetype.GATHERER,
                    utility=g,
                    planner=self.planner_id,
                    assignment=Assignment(node_id=node) if node else NO_ASSIGNMENT,
                    reason="scarcity" if state.emergency.no_gatherers else "deficit",
                )
            )

        t = transporter_utility(effective_deficit(state, Archetype.TRANSPORTER, targets), state, self.weights)
        if t > 0:
            out.append(Proposal(archetype=Archetype.TRANSPORTER, utility=t, planner=self.planner_id, reason="deficit"))

        return out
