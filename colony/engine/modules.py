# colony/engine/modules.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable


class Module(str, Enum):
    MOVE = "move"
    WORK = "work"
    CARRY = "carry"
    ATTACK = "attack"
    RANGED_ATTACK = "ranged_attack"
    HEAL = "heal"
    CLAIM = "claim"
    TOUGH = "tough"


class Mobility(str, Enum):
    PAVED = "paved"
    OPEN_TERRAIN = "open_terrain"
    ROUGH_TERRAIN = "rough_terrain"
    STATIONARY = "stationary"
    PATTERN = "pattern"


MODULE_COST: Dict[Module, int] = {
    Module.MOVE: 50,
    Module.WORK: 100,
    Module.CARRY: 50,
    Module.ATTACK: 80,
    Module.RANGED_ATTACK: 150,
    Module.HEAL: 250,
    Module.CLAIM: 600,
    Module.TOUGH: 10,
}

# mobility modules required per non-mobility module
MOBILITY_RATIO: Dict[Mobility, float] = {
    Mobility.PAVED: 0.5,
    Mobility.OPEN_TERRAIN: 1.0,
    Mobility.ROUGH_TERRAIN: 5.0,
    Mobility.STATIONARY: 0.2,
    Mobility.PATTERN: 0.0,
}

# survivability order: soak first, recovery and mobility last
SURVIVABILITY_ORDER: Dict[Module, int] = {
    Module.TOUGH: 0,
    Module.WORK: 1,
    Module.CARRY: 2,
    Module.ATTACK: 3,
    Module.RANGED_ATTACK: 4,
    Module.CLAIM: 5,
    Module.HEAL: 6,
    Module.MOVE: 7,
}

MAX_MODULES = 50
MODULE_HITS = 100

HARVEST_PER_WORK = 2
CARRY_CAPACITY = 50
ATTACK_DAMAGE = 30
RANGED_DAMAGE = 10
HEAL_PER_MODULE = 12


@dataclass(frozen=True)
class ModuleStats:
    throughput: int = 0
    transport_capacity: int = 0
    damage_output: int = 0
    recovery_output: int = 0
    damage_soak: int = 0


def module_cost(modules: Iterable[Module]) -> int:
    return sum(MODULE_COST[m] for m in modules)


def derive_stats(modules: Iterable[Module]) -> ModuleStats:
    ms = list(modules)
    work = sum(1 for m in ms if m is Module.WORK)
    carry = sum(1 for m in ms if m is Module.CARRY)
    attack = sum(1 for m in ms if m is Module.ATTACK)
    ranged = sum(1 for m in ms if m is Module.RANGED_ATTACK)
    heal = sum(1 for m in ms if m is Module.HEAL)
    return ModuleStats(
        throughput=work * HARVEST_PER_WORK,
        transport_capacity=carry * CARRY_CAPACITY,
        damage_output=attack * ATTACK_DAMAGE + ranged * RANGED_DAMAGE,
        recovery_output=heal * HEAL_PER_MODULE,
        damage_soak=len(ms) * MODULE_HITS,
    )


def count_of(modules: Iterable[Module], module: Module) -> int:
    return sum(1 for m in modules if m is module)
