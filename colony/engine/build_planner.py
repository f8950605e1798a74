# colony/engine/build_planner.py
"""
Capability loadout construction.

`build(config, budget)` is pure: same config and budget, same spec. It never
returns a spec costing more than the budget, never exceeds MAX_MODULES and
never returns a spec missing the archetype's required modules.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from colony.engine.modules import (
    MAX_MODULES,
    MOBILITY_RATIO,
    MODULE_COST,
    SURVIVABILITY_ORDER,
    Mobility,
    Module,
    ModuleStats,
    count_of,
    derive_stats,
    module_cost,
)
from colony.strategy.archetypes import WorkerTypeConfig

# repeats stop short of the ceiling so suffix/mobility modules still fit
REPEAT_CEILING = 48
FALLBACK_BAND = 1.5
MIN_USEFUL_MODULES = 3


@dataclass(frozen=True)
class BuildSpec:
    modules: Tuple[Module, ...]
    cost: int
    stats: ModuleStats
    degenerate: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.modules, tuple):
            raise TypeError(f"BuildSpec.modules must be tuple, got {type(self.modules)!r}")
        if len(self.modules) > MAX_MODULES:
            raise ValueError(f"BuildSpec has {len(self.modules)} modules (max {MAX_MODULES})")
        if self.cost != module_cost(self.modules):
            raise ValueError(f"BuildSpec.cost={self.cost} does not match module costs")

    @property
    def size(self) -> int:
        return len(self.modules)

    def is_empty(self) -> bool:
        return not self.modules

    def contains(self, required) -> bool:
        present = set(self.modules)
        return all(m in present for m in required)

    def to_dict(self) -> dict:
        return {
            "modules": [m.value for m in self.modules],
            "cost": self.cost,
            "degenerate": self.degenerate,
        }


def make_spec(modules, *, degenerate: bool = False) -> BuildSpec:
    ms = tuple(modules)
    return BuildSpec(modules=ms, cost=module_cost(ms), stats=derive_stats(ms), degenerate=degenerate)


def _non_mobility(modules) -> int:
    return sum(1 for m in modules if m is not Module.MOVE)


def _mobility_needed(non_mobility: int, ratio: float) -> int:
    return int(math.ceil(non_mobility * ratio))


def _finalize(config: WorkerTypeConfig, modules: List[Module], *, degenerate: bool = False) -> Optional[BuildSpec]:
    if config.sort_for_survivability:
        modules = sorted(modules, key=lambda m: SURVIVABILITY_ORDER[m])
    spec = make_spec(modules, degenerate=degenerate)
    if not spec.contains(config.required):
        return None
    return spec


def _fallback(config: WorkerTypeConfig, budget: int) -> Optional[BuildSpec]:
    if not config.fallback or config.fallback_cost > budget:
        return None
    return _finalize(config, list(config.fallback))


def build(config: WorkerTypeConfig, budget: int) -> Optional[BuildSpec]:
    """
    Largest loadout for `config` that fits in `budget`, or None.

    Order: prefix, pattern repeats (each reserving its mobility share), suffix,
    mobility top-up, then the degenerate/fallback guards.
    """
    budget = int(budget)
    if budget < config.minimum_cost:
        return None

    # scarce budget: the minimal loadout beats a half-built pattern
    if config.fallback and budget < FALLBACK_BAND * config.fallback_cost:
        return _fallback(config, budget)

    mobility = config.mobility
    ratio = MOBILITY_RATIO[mobility]
    modules: List[Module] = []
    remaining = budget
    reserved = 0

    prefix_cost = module_cost(config.prefix)
    if config.prefix and prefix_cost <= remaining:
        modules.extend(config.prefix)
        remaining -= prefix_cost

    pattern = config.pattern
    pattern_cost = module_cost(pattern)
    repeats = 0
    if mobility is Mobility.PATTERN:
        while (
            repeats < config.repeat_cap
            and remaining >= pattern_cost
            and len(modules) + len(pattern) <= REPEAT_CEILING
        ):
            modules.extend(pattern)
            remaining -= pattern_cost
            repeats += 1
    else:
        share = _mobility_needed(_non_mobility(pattern), ratio)
        repeat_cost = pattern_cost + share * MODULE_COST[Module.MOVE]
        while (
            repeats < config.repeat_cap
            and remaining - reserved * MODULE_COST[Module.MOVE] >= repeat_cost
            and len(modules) + len(pattern) + reserved + share <= REPEAT_CEILING
        ):
            modules.extend(pattern)
            remaining -= pattern_cost
            reserved += share
            repeats += 1

    suffix_cost = module_cost(config.suffix)
    if (
        config.suffix
        and remaining - reserved * MODULE_COST[Module.MOVE] >= suffix_cost
        and len(modules) + len(config.suffix) <= MAX_MODULES
    ):
        modules.extend(config.suffix)
        remaining -= suffix_cost

    move_cost = MODULE_COST[Module.MOVE]
    if mobility is not Mobility.PATTERN:
        needed = _mobility_needed(_non_mobility(modules), ratio)
        while (
            count_of(modules, Module.MOVE) < needed
            and len(modules) < MAX_MODULES
            and remaining >= move_cost
        ):
            modules.append(Module.MOVE)
            remaining -= move_cost

    if len(modules) < MIN_USEFUL_MODULES:
        fb = _fallback(config, budget)
        if fb is not None:
            return fb

    if mobility is not Mobility.PATTERN and modules and count_of(modules, Module.MOVE) == 0:
        if remaining >= move_cost and len(modules) < MAX_MODULES:
            modules.append(Module.MOVE)
        elif len(modules) > 2:
            # trade the newest non-mobility module for one mobility module
            for i in range(len(modules) - 1, -1, -1):
                if modules[i] is not Module.MOVE:
                    refund = MODULE_COST[modules[i]]
                    if remaining + refund >= move_cost:
                        del modules[i]
                        modules.append(Module.MOVE)
                        remaining = remaining + refund - move_cost
                    break
        if count_of(modules, Module.MOVE) == 0:
            return _finalize(config, modules, degenerate=True)

    if not modules:
        return None
    return _finalize(config, modules)
