# colony/infra/store.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Tuple


class AssignmentKind(str, Enum):
    NODE = "node"
    REMOTE_NODE = "remote_node"
    REMOTE_HAUL = "remote_haul"
    RESERVATION = "reservation"
    REMOTE_DEFENSE = "remote_defense"


_NEEDS_NODE = {AssignmentKind.NODE, AssignmentKind.REMOTE_NODE}
_NEEDS_SITE = {
    AssignmentKind.REMOTE_NODE,
    AssignmentKind.REMOTE_HAUL,
    AssignmentKind.RESERVATION,
    AssignmentKind.REMOTE_DEFENSE,
}


class SquadStatus(str, Enum):
    FORMING = "forming"
    READY = "ready"
    ENGAGED = "engaged"
    DISBANDED = "disbanded"


# squads still recruiting
OPEN_SQUAD = frozenset({SquadStatus.FORMING, SquadStatus.READY})


def _require_str(value, *, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{what} must be a non-empty string")


@dataclass(frozen=True)
class AssignmentRecord:
    kind: AssignmentKind
    worker: str
    colony_id: str
    node_id: Optional[str] = None
    site_id: Optional[str] = None
    start: int = 0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.kind, AssignmentKind):
            raise TypeError(f"AssignmentRecord.kind must be AssignmentKind, got {type(self.kind)!r}")
        _require_str(self.worker, what="AssignmentRecord.worker")
        _require_str(self.colony_id, what="AssignmentRecord.colony_id")
        if self.kind in _NEEDS_NODE:
            _require_str(self.node_id, what=f"AssignmentRecord.node_id ({self.kind.value})")
        if self.kind in _NEEDS_SITE:
            _require_str(self.site_id, what=f"AssignmentRecord.site_id ({self.kind.value})")
        if not isinstance(self.start, int) or self.start < 0:
            raise ValueError("AssignmentRecord.start must be an int >= 0")


@dataclass(frozen=True)
class SquadRecord:
    site_id: str
    status: SquadStatus
    required_size: int
    members: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        _require_str(self.site_id, what="SquadRecord.site_id")
        if not isinstance(self.status, SquadStatus):
            raise TypeError(f"SquadRecord.status must be SquadStatus, got {type(self.status)!r}")
        if not isinstance(self.required_size, int) or self.required_size < 0:
            raise ValueError("SquadRecord.required_size must be an int >= 0")
        if not isinstance(self.members, tuple):
            raise TypeError("SquadRecord.members must be a tuple")

    def missing(self, live: Iterable[str]) -> int:
        """Members still needed, counting only members that are alive."""
        if self.status not in OPEN_SQUAD:
            return 0
        alive = set(live)
        present = sum(1 for m in self.members if m in alive)
        return max(0, self.required_size - present)


@dataclass(frozen=True)
class EconomySample:
    time: int
    stored: int
    income: float
    burn: float

    def __post_init__(self) -> None:
        if not isinstance(self.time, int) or self.time < 0:
            raise ValueError("EconomySample.time must be an int >= 0")


class ColonyStore:
    """
    Persistent per-colony records.
    - fixed schema per record kind, validated at the boundary
    - the scheduler only reads (through the cache)
    """

    def __init__(self, *, history_size: int = 50):
        self.history_size = int(history_size)
        self._assignments: Dict[str, Dict[str, AssignmentRecord]] = {}
        self._squads: Dict[str, Dict[str, SquadRecord]] = {}
        self._history: Dict[str, Deque[EconomySample]] = {}

    def reset(self) -> None:
        self._assignments.clear()
        self._squads.clear()
        self._history.clear()

    # ---------------- Assignments ----------------

    def assign(self, record: AssignmentRecord) -> None:
        if not isinstance(record, AssignmentRecord):
            raise TypeError(f"ColonyStore.assign expects AssignmentRecord, got {type(record)!r}")
        self._assignments.setdefault(record.colony_id, {})[record.worker] = record

    def release(self, colony_id: str, worker: str) -> bool:
        recs = self._assignments.get(colony_id)
        if not recs or worker not in recs:
            return False
        del recs[worker]
        return True

    def assignment_of(self, colony_id: str, worker: str) -> Optional[AssignmentRecord]:
        return self._assignments.get(colony_id, {}).get(worker)

    def assignments(self, colony_id: str, kind: Optional[AssignmentKind] = None) -> List[AssignmentRecord]:
        recs = list(self._assignments.get(colony_id, {}).values())
        if kind is None:
            return recs
        return [r for r in recs if r.kind is kind]

    def prune(self, colony_id: str, live: Iterable[str]) -> int:
        """Drop assignment records of workers that no longer exist."""
        alive = set(live)
        recs = self._assignments.get(colony_id, {})
        dead = [w for w in recs if w not in alive]
        for w in dead:
            del recs[w]
        return len(dead)

    # ---------------- Squads ----------------

    def put_squad(self, colony_id: str, squad: SquadRecord) -> None:
        if not isinstance(squad, SquadRecord):
            raise TypeError(f"ColonyStore.put_squad expects SquadRecord, got {type(squad)!r}")
        self._squads.setdefault(colony_id, {})[squad.site_id] = squad

    def squads(self, colony_id: str) -> List[SquadRecord]:
        return list(self._squads.get(colony_id, {}).values())

    def remove_squad(self, colony_id: str, site_id: str) -> None:
        self._squads.get(colony_id, {}).pop(site_id, None)

    # ---------------- Economy history ----------------

    def append_sample(self, colony_id: str, sample: EconomySample) -> None:
        if not isinstance(sample, EconomySample):
            raise TypeError(f"ColonyStore.append_sample expects EconomySample, got {type(sample)!r}")
        ring = self._history.get(colony_id)
        if ring is None:
            ring = deque(maxlen=self.history_size)
            self._history[colony_id] = ring
        ring.append(sample)

    def history(self, colony_id: str) -> List[EconomySample]:
        return list(self._history.get(colony_id, ()))
