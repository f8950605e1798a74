# colony/strategy/archetypes.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from colony.engine.modules import MAX_MODULES, Mobility, Module, module_cost


class Archetype(str, Enum):
    GATHERER = "gatherer"
    TRANSPORTER = "transporter"
    UPGRADER = "upgrader"
    BUILDER = "builder"
    DEFENDER = "defender"
    REMOTE_MINER = "remote_miner"
    REMOTE_HAULER = "remote_hauler"
    REMOTE_DEFENDER = "remote_defender"
    RESERVER = "reserver"
    SCOUT = "scout"
    RELAY_FILLER = "relay_filler"


# evaluation order; also the tie-break order for equal utilities
ALL_ARCHETYPES: Tuple[Archetype, ...] = tuple(Archetype)

ECONOMIC: FrozenSet[Archetype] = frozenset({Archetype.GATHERER, Archetype.TRANSPORTER})
DEFENSE: FrozenSet[Archetype] = frozenset({Archetype.DEFENDER, Archetype.REMOTE_DEFENDER})
REMOTE: FrozenSet[Archetype] = frozenset(
    {Archetype.REMOTE_MINER, Archetype.REMOTE_HAULER, Archetype.REMOTE_DEFENDER, Archetype.RESERVER}
)
CONSTRUCTION: FrozenSet[Archetype] = frozenset({Archetype.BUILDER})
IMPROVEMENT: FrozenSet[Archetype] = frozenset({Archetype.UPGRADER})

# archetypes that cannot be admitted without a resolved remote target
NEEDS_TARGET_SITE: FrozenSet[Archetype] = REMOTE


@dataclass(frozen=True)
class WorkerTypeConfig:
    """
    Static loadout recipe for one archetype.

    Contract:
      - pattern: non-empty, repeated up to max_repeats
      - prefix/suffix: fixed modules placed before/after the repeats
      - minimum_cost: below it the archetype is unaffordable at any size
      - fallback: minimal loadout for scarce budgets
      - required: minimum viable module set (every valid spec contains it)
    """
    archetype: Archetype
    pattern: Tuple[Module, ...]
    mobility: Mobility
    minimum_cost: int
    prefix: Tuple[Module, ...] = ()
    suffix: Tuple[Module, ...] = ()
    max_repeats: Optional[int] = None
    fallback: Tuple[Module, ...] = ()
    sort_for_survivability: bool = False
    required: FrozenSet[Module] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.archetype, Archetype):
            raise TypeError(f"WorkerTypeConfig.archetype must be Archetype, got {type(self.archetype)!r}")
        if not isinstance(self.mobility, Mobility):
            raise TypeError(f"WorkerTypeConfig.mobility must be Mobility, got {type(self.mobility)!r}")
        if not self.pattern:
            raise ValueError(f"{self.archetype.value}: pattern must not be empty")
        for part in (*self.pattern, *self.prefix, *self.suffix, *self.fallback, *self.required):
            if not isinstance(part, Module):
                raise TypeError(f"{self.archetype.value}: modules must be Module, got {part!r}")
        if not isinstance(self.minimum_cost, int) or self.minimum_cost < 0:
            raise ValueError(f"{self.archetype.value}: minimum_cost must be an int >= 0")
        if self.max_repeats is not None and (not isinstance(self.max_repeats, int) or self.max_repeats <= 0):
            raise ValueError(f"{self.archetype.value}: max_repeats must be > 0")
        if len(self.fallback) > MAX_MODULES:
            raise ValueError(f"{self.archetype.value}: fallback exceeds {MAX_MODULES} modules")

    @property
    def repeat_cap(self) -> int:
        if self.max_repeats is not None:
            return self.max_repeats
        return MAX_MODULES // len(self.pattern)

    @property
    def fallback_cost(self) -> int:
        return module_cost(self.fallback)


W, C, M = Module.WORK, Module.CARRY, Module.MOVE
A, R, H, CL, T = Module.ATTACK, Module.RANGED_ATTACK, Module.HEAL, Module.CLAIM, Module.TOUGH


DEFAULT_WORKER_TYPES: Dict[Archetype, WorkerTypeConfig] = {
    # sits on its node; five work modules saturate one node
    Archetype.GATHERER: WorkerTypeConfig(
        archetype=Archetype.GATHERER,
        pattern=(W,),
        suffix=(C,),
        max_repeats=5,
        minimum_cost=200,
        fallback=(W, C, M),
        mobility=Mobility.PAVED,
        required=frozenset({W}),
    ),
    Archetype.TRANSPORTER: WorkerTypeConfig(
        archetype=Archetype.TRANSPORTER,
        pattern=(C, M),
        max_repeats=16,
        minimum_cost=100,
        fallback=(C, M),
        mobility=Mobility.PATTERN,
        required=frozenset({C}),
    ),
    Archetype.UPGRADER: WorkerTypeConfig(
        archetype=Archetype.UPGRADER,
        pattern=(W, W, W, C),
        minimum_cost=200,
        fallback=(W, C, M),
        mobility=Mobility.PAVED,
        required=frozenset({W}),
    ),
    Archetype.BUILDER: WorkerTypeConfig(
        archetype=Archetype.BUILDER,
        pattern=(W, C, M),
        max_repeats=10,
        minimum_cost=200,
        fallback=(W, C, M),
        mobility=Mobility.PATTERN,
        required=frozenset({W, C}),
    ),
    Archetype.DEFENDER: WorkerTypeConfig(
        archetype=Archetype.DEFENDER,
        pattern=(A, M),
        prefix=(T, T, T),
        max_repeats=11,
        minimum_cost=130,
        fallback=(A, M, M),
        mobility=Mobility.PATTERN,
        sort_for_survivability=True,
        required=frozenset({A}),
    ),
    Archetype.REMOTE_MINER: WorkerTypeConfig(
        archetype=Archetype.REMOTE_MINER,
        pattern=(W,),
        suffix=(C,),
        max_repeats=5,
        minimum_cost=300,
        fallback=(W, W, C, M),
        mobility=Mobility.OPEN_TERRAIN,
        required=frozenset({W}),
    ),
    Archetype.REMOTE_HAULER: WorkerTypeConfig(
        archetype=Archetype.REMOTE_HAULER,
        pattern=(C, M),
        max_repeats=16,
        minimum_cost=200,
        fallback=(C, C, M, M),
        mobility=Mobility.PATTERN,
        required=frozenset({C}),
    ),
    Archetype.REMOTE_DEFENDER: WorkerTypeConfig(
        archetype=Archetype.REMOTE_DEFENDER,
        pattern=(R, M),
        prefix=(T, T),
        suffix=(H, H, M, M),
        max_repeats=8,
        minimum_cost=520,
        fallback=(R, R, H, M, M, M),
        mobility=Mobility.PATTERN,
        sort_for_survivability=True,
        required=frozenset({R}),
    ),
    Archetype.RESERVER: WorkerTypeConfig(
        archetype=Archetype.RESERVER,
        pattern=(CL, M),
        max_repeats=2,
        minimum_cost=650,
        fallback=(CL, M),
        mobility=Mobility.PATTERN,
        required=frozenset({CL}),
    ),
    Archetype.SCOUT: WorkerTypeConfig(
        archetype=Archetype.SCOUT,
        pattern=(M,),
        max_repeats=1,
        minimum_cost=50,
        fallback=(M,),
        mobility=Mobility.PATTERN,
        required=frozenset({M}),
    ),
    # parked between storage and the storage relay
    Archetype.RELAY_FILLER: WorkerTypeConfig(
        archetype=Archetype.RELAY_FILLER,
        pattern=(C, C),
        max_repeats=3,
        minimum_cost=150,
        fallback=(C, C, M),
        mobility=Mobility.STATIONARY,
        required=frozenset({C}),
    ),
}


def with_overrides(
    base: Mapping[Archetype, WorkerTypeConfig],
    overrides: Mapping[Archetype, Mapping[str, int]],
) -> Dict[Archetype, WorkerTypeConfig]:
    """Copy of `base` with per-archetype max_repeats/minimum_cost overrides applied."""
    out = dict(base)
    for archetype, fields in overrides.items():
        if archetype not in out:
            raise KeyError(f"unknown archetype override: {archetype!r}")
        out[archetype] = replace(out[archetype], **dict(fields))
    return out
