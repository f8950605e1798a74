# colony/planners/remote_planner.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from colony.engine.smoothing import finite
from colony.mind.world_state import WorldState
from colony.planners.proposals import Assignment, Proposal
from colony.planners.targets import effective_deficit
from colony.policies.remote import (
    mining_targets,
    site_needing_hauler,
    site_needing_miner,
    site_needing_reserver,
    threatened_site,
)
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import RemoteCfg, TargetsCfg, UtilityWeights


@dataclass
class RemotePlanner:
    """
    Expansion workers for adjacent sites.

    Gates (all must hold):
      - development tier >= targets.remote_tier
      - home economy staffed (>= 1 gatherer and >= 1 transporter)
      - a resolvable target; unresolved proposals are still emitted and
        dropped by the scheduler so the exclusion is logged in one place
    """
    planner_id: str = "remote_planner"
    username: str = ""
    weights: UtilityWeights = UtilityWeights()
    targets_cfg: TargetsCfg = TargetsCfg()
    remote: RemoteCfg = RemoteCfg()

    def _gated(self, state: WorldState) -> bool:
        return state.tier < self.targets_cfg.remote_tier or not state.home_staffed

    def propose(self, state: WorldState, *, targets: Dict[Archetype, int]) -> List[Proposal]:
        if self._gated(state):
            return []

        w = self.weights
        ratio = state.income_ratio
        view = state.assignments
        sites = mining_targets(
            state.remote_sites,
            username=self.username,
            max_age=self.remote.scan_stale_after,
        )[: max(0, int(state.expansion_ceiling))]
        miners = state.count(Archetype.REMOTE_MINER)
        out: List[Proposal] = []

        deficit = effective_deficit(state, Archetype.REMOTE_MINER, targets)
        home_ready = (
            state.count(Archetype.GATHERER) >= self.remote.min_home_gatherers
            and state.count(Archetype.TRANSPORTER) >= self.remote.min_home_transporters
        )
        if deficit > 0 and sites and home_ready:
            u = finite(deficit * w.remote_miner_base * ratio)
            if u > 0:
                hit = site_needing_miner(sites, view)
                assignment = Assignment(site_id=hit[0], node_id=hit[1]) if hit else Assignment()
                out.append(Proposal(archetype=Archetype.REMOTE_MINER, utility=u, planner=self.planner_id, assignment=assignment))

        # haulers and reservers are useless before the first miner exists
        if miners > 0:
            deficit = effective_deficit(state, Archetype.REMOTE_HAULER, targets)
            if deficit > 0:
                u = finite(deficit * w.remote_hauler_base * ratio)
                if u > 0:
                    site = site_needing_hauler(sites, view, per_miner=self.targets_cfg.remote_haulers_per_miner)
                    out.append(
                        Proposal(
                            archetype=Archetype.REMOTE_HAULER,
                            utility=u,
                            planner=self.planner_id,
                            assignment=Assignment(site_id=site),
                        )
                    )

            deficit = effective_deficit(state, Archetype.RESERVER, targets)
            if deficit > 0 and sites:
                u = finite(deficit * w.reserver_base * ratio)
                if u > 0:
                    site = site_needing_reserver(sites, view, username=self.username, cfg=self.remote)
                    out.append(
                        Proposal(
                            archetype=Archetype.RESERVER,
                            utility=u,
                            planner=self.planner_id,
                            assignment=Assignment(site_id=site),
                        )
                    )

        need = view.total_squad_need
        if need > 0:
            u = finite(need * w.remote_defender_base * ratio)
            if u > 0:
                out.append(
                    Proposal(
                        archetype=Archetype.REMOTE_DEFENDER,
                        utility=u,
                        planner=self.planner_id,
                        assignment=Assignment(site_id=threatened_site(view, state.remote_sites)),
                        reason=f"squad_need:{need}",
                    )
                )

        return out
