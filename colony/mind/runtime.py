# colony/mind/runtime.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from colony.api import ColonyEnvironment
from colony.devlog import DevLogger
from colony.infra.store import AssignmentKind, AssignmentRecord, ColonyStore
from colony.mind.scheduler import UtilityScheduler
from colony.mind.world_cache import WorldStateCache
from colony.planners.defense_planner import DefensePlanner
from colony.planners.economy_planner import EconomyPlanner
from colony.planners.infrastructure_planner import InfrastructurePlanner
from colony.planners.intel_planner import IntelPlanner
from colony.planners.proposals import Candidate
from colony.planners.remote_planner import RemotePlanner
from colony.policies.threat import ThreatPolicy
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import Profile

_ASSIGNMENT_KIND = {
    Archetype.GATHERER: AssignmentKind.NODE,
    Archetype.REMOTE_MINER: AssignmentKind.REMOTE_NODE,
    Archetype.REMOTE_HAULER: AssignmentKind.REMOTE_HAUL,
    Archetype.RESERVER: AssignmentKind.RESERVATION,
    Archetype.REMOTE_DEFENDER: AssignmentKind.REMOTE_DEFENSE,
}


@dataclass(frozen=True)
class Admission:
    facility_id: str
    candidate: Candidate


@dataclass
class RuntimeApp:
    env: ColonyEnvironment
    store: ColonyStore
    profile: Profile
    log: DevLogger
    cache: WorldStateCache
    scheduler: UtilityScheduler

    @classmethod
    def build(
        cls,
        *,
        env: ColonyEnvironment,
        store: Optional[ColonyStore] = None,
        profile: Optional[Profile] = None,
        log: Optional[DevLogger] = None,
    ) -> "RuntimeApp":
        profile = profile or Profile()
        log = log or DevLogger(enabled=False)
        store = store or ColonyStore(history_size=profile.cache.history_size)
        username = env.username()

        cache = WorldStateCache(
            env=env,
            store=store,
            log=log,
            cfg=profile.cache,
            remote_cfg=profile.remote,
            threat=ThreatPolicy(),
        )

        planners = [
            EconomyPlanner(weights=profile.weights),
            InfrastructurePlanner(weights=profile.weights, reserves=profile.reserves),
            DefensePlanner(weights=profile.weights),
            RemotePlanner(
                username=username,
                weights=profile.weights,
                targets_cfg=profile.targets,
                remote=profile.remote,
            ),
            IntelPlanner(weights=profile.weights, targets_cfg=profile.targets),
        ]

        scheduler = UtilityScheduler(
            cache=cache,
            planners=planners,
            profile=profile,
            log=log,
            username=username,
        )
        return cls(env=env, store=store, profile=profile, log=log, cache=cache, scheduler=scheduler)

    def step(self, colony_id: str, free_facilities: Iterable[str]) -> List[Admission]:
        """
        One admission decision per free facility.
        Later facilities see the budget and roster left by earlier admissions.
        Starting production and recording assignments stay with the caller.
        """
        facilities = list(free_facilities)
        if not facilities:
            return []

        state = self.cache.get(colony_id)
        if state is None:
            return []

        out: List[Admission] = []
        for fid in facilities:
            cand = self.scheduler.select_from_state(state)
            if cand is None:
                break
            out.append(Admission(facility_id=fid, candidate=cand))
            self.log.emit(
                "runtime_admission",
                {"colony": colony_id, "time": state.time, "facility": fid, **cand.to_dict()},
                meta={"module": "runtime", "component": f"runtime.{colony_id}"},
            )
            state = state.with_admission(cand)

        self.log.emit(
            "runtime_cycle",
            {
                "colony": colony_id,
                "time": state.time,
                "facilities": len(facilities),
                "admitted": [a.candidate.archetype.value for a in out],
                "available": int(state.resources.available),
            },
            meta={"module": "runtime", "component": f"runtime.{colony_id}"},
        )
        return out

    def commit(self, colony_id: str, admission: Admission, *, worker: str) -> Optional[AssignmentRecord]:
        """Record the assignment of a worker whose production has started."""
        cand = admission.candidate
        kind = _ASSIGNMENT_KIND.get(cand.archetype)
        if kind is None:
            return None
        if kind is AssignmentKind.NODE and cand.assignment.node_id is None:
            return None
        rec = AssignmentRecord(
            kind=kind,
            worker=worker,
            colony_id=colony_id,
            node_id=cand.assignment.node_id,
            site_id=cand.assignment.site_id,
            start=int(self.env.time()),
        )
        self.store.assign(rec)
        self.cache.invalidate(colony_id)
        return rec
