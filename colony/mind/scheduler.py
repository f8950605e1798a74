# colony/mind/scheduler.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from colony.devlog import DevLogger
from colony.engine.build_planner import build
from colony.mind.world_cache import WorldStateCache
from colony.mind.world_state import WorldState
from colony.planners.proposals import Candidate, Planner, Proposal
from colony.planners.targets import desired_counts
from colony.strategy.archetypes import ALL_ARCHETYPES, Archetype
from colony.strategy.schema import Profile

_ORDER: Dict[Archetype, int] = {a: i for i, a in enumerate(ALL_ARCHETYPES)}


@dataclass(frozen=True)
class Ranking:
    """Scored, buildable candidates for one state, best first."""
    candidates: Tuple[Candidate, ...]
    budget: int
    dropped: Tuple[Tuple[str, str], ...] = ()  # (archetype, reason)
    # unaffordable now, buildable once the pool refills to capacity
    deferred: Tuple[Proposal, ...] = ()

    def outranked_by_deferred(self) -> Optional[Proposal]:
        best = min(self.deferred, key=_key, default=None)
        if best is None:
            return None
        if self.candidates and _key(self.candidates[0]) <= _key(best):
            return None
        return best


def _key(x) -> Tuple[float, int]:
    return (-float(x.utility), _ORDER[x.archetype])


class UtilityScheduler:
    """
    Picks at most one archetype to admit per free facility.

    Admission policy:
      1) best-ranked candidate if affordable now
      2) otherwise wait while income is positive (budget will come); this
         includes a higher-ranked archetype that has no loadout until the
         pool refills
      3) otherwise (collapse) the best candidate that is affordable now
    """

    def __init__(
        self,
        *,
        cache: Optional[WorldStateCache],
        planners: List[Planner],
        profile: Optional[Profile] = None,
        log: Optional[DevLogger] = None,
        username: str = "",
    ):
        self.cache = cache
        self.planners = list(planners)
        self.profile = profile or Profile()
        self.log = log
        self.username = username

        # audit throttle: (colony, event) -> (key, time)
        self._last_logged: Dict[Tuple[str, str], Tuple[str, int]] = {}

    def register_planner(self, planner: Planner) -> None:
        self.planners.append(planner)

    # ---------------- API ----------------

    def select_candidate(self, colony_id: str) -> Optional[Candidate]:
        if self.cache is None:
            raise RuntimeError("UtilityScheduler has no cache; use select_from_state()")
        state = self.cache.get(colony_id)
        if state is None:
            return None
        return self.select_from_state(state)

    def select_from_state(self, state: WorldState) -> Optional[Candidate]:
        ranking = self.rank(state)
        available = int(state.resources.available)

        # outranked by an archetype that only needs the pool to refill
        blocked = ranking.outranked_by_deferred()
        if blocked is not None and state.has_income:
            self._emit(
                state,
                "scheduler_wait",
                key=blocked.archetype.value,
                payload={"waiting_for": blocked.archetype.value, "budget": ranking.budget, "available": available},
            )
            return None

        if not ranking.candidates:
            self._emit(state, "scheduler_idle", key="empty", payload={"dropped": [list(d) for d in ranking.dropped]})
            return None

        best = ranking.candidates[0]
        if best.cost <= available:
            self._emit(state, "scheduler_selected", key=best.archetype.value, payload=self._payload(best, ranking, "best"))
            return best

        if state.has_income:
            self._emit(
                state,
                "scheduler_wait",
                key=best.archetype.value,
                payload={"waiting_for": best.archetype.value, "cost": best.cost, "available": available},
            )
            return None

        for c in ranking.candidates[1:]:
            if c.cost <= available:
                self._emit(state, "scheduler_bootstrap", key=c.archetype.value, payload=self._payload(c, ranking, "bootstrap"))
                return c

        self._emit(state, "scheduler_idle", key="unaffordable", payload={"best": best.archetype.value, "cost": best.cost})
        return None

    def rank(self, state: WorldState) -> Ranking:
        """Utilities -> loadouts -> ordering. No admission decision."""
        p = self.profile
        targets = desired_counts(state, username=self.username, cfg=p.targets, remote_cfg=p.remote)

        proposals: List[Proposal] = []
        for pl in self.planners:
            try:
                proposals.extend(pl.propose(state, targets=targets))
            except Exception as e:
                # one broken planner must not starve the others
                self._emit(
                    state,
                    "planner_error",
                    key=getattr(pl, "planner_id", "unknown"),
                    payload={"planner": getattr(pl, "planner_id", "unknown"), "err": str(e)},
                    throttle=False,
                )

        budget = self.build_budget(state)
        candidates: List[Candidate] = []
        dropped: List[Tuple[str, str]] = []
        deferred: List[Proposal] = []
        capacity = int(state.resources.capacity)
        seen = set()

        for prop in proposals:
            a = prop.archetype
            if a in seen:
                dropped.append((a.value, "duplicate"))
                continue
            seen.add(a)

            if not prop.assignment.resolved_for(a):
                dropped.append((a.value, "unassignable"))
                continue

            cfg = p.worker_types[a]
            spec = build(cfg, budget)
            if spec is None or spec.is_empty():
                dropped.append((a.value, "unaffordable"))
                if budget < capacity and build(cfg, capacity) is not None:
                    deferred.append(prop)
                continue
            if spec.degenerate:
                self._emit(
                    state,
                    "build_degenerate",
                    key=a.value,
                    payload={"archetype": a.value, "budget": budget, "spec": spec.to_dict()},
                )
            candidates.append(Candidate.from_proposal(prop, spec))

        candidates.sort(key=_key)
        return Ranking(
            candidates=tuple(candidates),
            budget=budget,
            dropped=tuple(dropped),
            deferred=tuple(deferred),
        )

    @staticmethod
    def build_budget(state: WorldState) -> int:
        # without a working economy, build for what can be spent now
        if state.count(Archetype.GATHERER) == 0 or state.count(Archetype.TRANSPORTER) == 0:
            return int(state.resources.available)
        return int(state.resources.capacity)

    # ---------------- audit ----------------

    @staticmethod
    def _payload(c: Candidate, ranking: Ranking, mode: str) -> dict:
        out = c.to_dict()
        out["mode"] = mode
        out["budget"] = ranking.budget
        out["ranked"] = [(x.archetype.value, round(x.utility, 2)) for x in ranking.candidates[:5]]
        return out

    def _emit(self, state: WorldState, event: str, *, key: str, payload: dict, throttle: bool = True) -> None:
        if self.log is None or not self.profile.scheduler.log_decisions:
            return

        slot = (state.colony_id, event)
        last = self._last_logged.get(slot)
        if throttle and last is not None:
            last_key, last_t = last
            changed = last_key != key
            due = (state.time - last_t) >= int(self.profile.scheduler.log_every_steps)
            if not (changed or due):
                return
        self._last_logged[slot] = (key, int(state.time))

        row = {"colony": state.colony_id, "time": int(state.time)}
        row.update(payload)
        self.log.emit(event, row, meta={"module": "scheduler", "component": f"scheduler.{state.colony_id}"})
