# colony/planners/proposals.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol

from colony.engine.build_planner import BuildSpec
from colony.strategy.archetypes import NEEDS_TARGET_SITE, Archetype

if TYPE_CHECKING:
    from colony.mind.world_state import WorldState


@dataclass(frozen=True)
class Assignment:
    node_id: Optional[str] = None
    site_id: Optional[str] = None

    def resolved_for(self, archetype: Archetype) -> bool:
        if archetype not in NEEDS_TARGET_SITE:
            return True
        if self.site_id is None:
            return False
        if archetype is Archetype.REMOTE_MINER:
            return self.node_id is not None
        return True


NO_ASSIGNMENT = Assignment()


@dataclass(frozen=True)
class Proposal:
    """
    Scored request from a planner, before a loadout is built.

    Contract (strict):
      - utility: finite float > 0 (planners drop non-positive scores themselves)
      - assignment: unresolved targets are kept; the scheduler drops them
    """
    archetype: Archetype
    utility: float
    planner: str
    assignment: Assignment = NO_ASSIGNMENT
    reason: str = ""

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.archetype, Archetype):
            raise TypeError(f"Proposal.archetype must be Archetype, got {type(self.archetype)!r}")
        if not isinstance(self.utility, (int, float)) or not math.isfinite(self.utility):
            raise ValueError(f"Proposal.utility must be finite, got {self.utility!r}")
        if self.utility <= 0:
            raise ValueError("Proposal.utility must be > 0")
        if not isinstance(self.planner, str) or not self.planner.strip():
            raise ValueError("Proposal.planner must be a non-empty string")
        if not isinstance(self.assignment, Assignment):
            raise TypeError(f"Proposal.assignment must be Assignment, got {type(self.assignment)!r}")


@dataclass(frozen=True)
class Candidate:
    """
    Admissible production option: archetype + loadout + score.
    Only candidates with a non-empty spec and a resolved assignment exist.
    """
    archetype: Archetype
    utility: float
    spec: BuildSpec
    cost: int
    assignment: Assignment = NO_ASSIGNMENT
    planner: str = ""

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.archetype, Archetype):
            raise TypeError(f"Candidate.archetype must be Archetype, got {type(self.archetype)!r}")
        if not isinstance(self.utility, (int, float)) or not math.isfinite(self.utility):
            raise ValueError(f"Candidate.utility must be finite, got {self.utility!r}")
        if not isinstance(self.spec, BuildSpec):
            raise TypeError(f"Candidate.spec must be BuildSpec, got {type(self.spec)!r}")
        if self.spec.is_empty():
            raise ValueError("Candidate.spec must not be empty")
        if self.cost != self.spec.cost:
            raise ValueError(f"Candidate.cost={self.cost} != spec.cost={self.spec.cost}")
        if not self.assignment.resolved_for(self.archetype):
            raise ValueError(f"Candidate for {self.archetype.value} has no resolved target")

    @classmethod
    def from_proposal(cls, proposal: Proposal, spec: BuildSpec) -> "Candidate":
        return cls(
            archetype=proposal.archetype,
            utility=float(proposal.utility),
            spec=spec,
            cost=spec.cost,
            assignment=proposal.assignment,
            planner=proposal.planner,
        )

    def to_dict(self) -> dict:
        return {
            "archetype": self.archetype.value,
            "utility": round(float(self.utility), 3),
            "cost": int(self.cost),
            "modules": [m.value for m in self.spec.modules],
            "node": self.assignment.node_id,
            "site": self.assignment.site_id,
            "planner": self.planner,
        }


class Planner(Protocol):
    planner_id: str

    def propose(self, state: "WorldState", *, targets: Dict[Archetype, int]) -> List[Proposal]: ...
