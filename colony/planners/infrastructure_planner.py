# colony/planners/infrastructure_planner.py
"""
Improvement and construction workers.

These utilities combine bounded [0, 1] factors with a geometric mean so a
single disqualifying factor (e.g. unsustainable consumption) zeroes the
whole score instead of being averaged away.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from colony.engine.modules import Module, count_of
from colony.engine.smoothing import combine_utilities, finite, role_count_utility, scale, sigmoid, smooth_step
from colony.intel.economy_intel import BUILD_PER_WORK, UPGRADE_PER_WORK
from colony.mind.world_state import WorldState
from colony.planners.proposals import Proposal
from colony.planners.targets import effective_deficit
from colony.strategy.archetypes import DEFAULT_WORKER_TYPES, Archetype
from colony.strategy.schema import ReserveThresholds, UtilityWeights


def reserve_ramp(stored: float, t: ReserveThresholds) -> float:
    """0 when empty, 0.5 at low, 1.0 at mid, 1.5 at high."""
    if stored <= t.low:
        return scale(stored, 0, t.low, 0.0, 0.5)
    if stored <= t.mid:
        return scale(stored, t.low, t.mid, 0.5, 1.0)
    return scale(stored, t.mid, t.high, 1.0, 1.5)


def sustainability(current: float, additional: float, income: float, w: UtilityWeights) -> float:
    """1 while projected consumption stays under income, 0 once it clearly exceeds it."""
    if income <= 0:
        # no income data yet; do not block young colonies
        return 0.5
    ratio = (current + additional) / income
    return 1.0 - smooth_step(w.sustain_low, w.sustain_high, ratio)


def trend_factor(trend: float, w: UtilityWeights) -> float:
    return sigmoid(trend, steepness=w.trend_steepness)


def _pattern_work(archetype: Archetype) -> int:
    return count_of(DEFAULT_WORKER_TYPES[archetype].pattern, Module.WORK)


def upgrader_utility(
    deficit: int,
    target: int,
    state: WorldState,
    w: UtilityWeights,
    reserves: ReserveThresholds,
) -> float:
    if deficit <= 0:
        return 0.0
    r = state.resources
    current = r.upgrade_consumption + r.build_consumption
    # no storage yet: reserves are unknown, not empty
    ramp = reserve_ramp(r.stored, reserves) if state.structures.storage is not None else 0.5
    factors = combine_utilities(
        ramp,
        sustainability(current, _pattern_work(Archetype.UPGRADER) * UPGRADE_PER_WORK, r.income, w),
        trend_factor(r.trend, w),
        role_count_utility(state.count(Archetype.UPGRADER), target),
    )
    u = deficit * w.upgrader_base * state.income_ratio * factors
    if r.stored > w.upgrader_storage_bonus_at:
        u *= w.upgrader_storage_bonus
    return finite(u)


def builder_utility(deficit: int, target: int, state: WorldState, w: UtilityWeights) -> float:
    if deficit <= 0:
        return 0.0
    sites = state.construction.total
    if sites <= 0:
        return 0.0
    r = state.resources
    current = r.upgrade_consumption + r.build_consumption
    factors = combine_utilities(
        sustainability(current, _pattern_work(Archetype.BUILDER) * BUILD_PER_WORK, r.income, w),
        trend_factor(r.trend, w),
        role_count_utility(state.count(Archetype.BUILDER), target),
    )
    u = deficit * w.builder_base * state.income_ratio * min(sites / w.builder_sites_norm, w.builder_sites_cap) * factors
    if state.construction.remote_container_sites > 0:
        u *= w.builder_remote_container_bonus
    return finite(u)


def relay_filler_utility(deficit: int, state: WorldState, w: UtilityWeights) -> float:
    if deficit <= 0:
        return 0.0
    return finite(deficit * w.relay_filler_base * state.income_ratio)


@dataclass
class InfrastructurePlanner:
    planner_id: str = "infrastructure_planner"
    weights: UtilityWeights = UtilityWeights()
    reserves: ReserveThresholds = ReserveThresholds()

    def propose(self, state: WorldState, *, targets: Dict[Archetype, int]) -> List[Proposal]:
        out: List[Proposal] = []
        w = self.weights

        up = upgrader_utility(
            effective_deficit(state, Archetype.UPGRADER, targets),
            targets.get(Archetype.UPGRADER, 0),
            state,
            w,
            self.reserves,
        )
        if up > 0:
            out.append(Proposal(archetype=Archetype.UPGRADER, utility=up, planner=self.planner_id, reason="improvement"))

        bu = builder_utility(
            effective_deficit(state, Archetype.BUILDER, targets),
            targets.get(Archetype.BUILDER, 0),
            state,
            w,
        )
        if bu > 0:
            out.append(Proposal(archetype=Archetype.BUILDER, utility=bu, planner=self.planner_id, reason="construction"))

        rf = relay_filler_utility(effective_deficit(state, Archetype.RELAY_FILLER, targets), state, w)
        if rf > 0:
            relay = state.structures.storage_relay
            out.append(
                Proposal(
                    archetype=Archetype.RELAY_FILLER,
                    utility=rf,
                    planner=self.planner_id,
                    reason=f"relay:{relay.structure_id}" if relay else "relay",
                )
            )
        return out
