import itertools
import json
from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest

from colony.api import StaticEnvironment
from colony.devlog import DevLogger
from colony.mind.runtime import RuntimeApp
from colony.mind.scheduler import UtilityScheduler
from colony.mind.world_state import (
    ConstructionBacklog,
    EmergencyFlags,
    NodeAssignment,
    RemoteSite,
    ResourceSnapshot,
    RosterSnapshot,
    ThreatLevel,
    ThreatSnapshot,
    WorldState,
)
from colony.planners.defense_planner import defender_utility
from colony.planners.proposals import Proposal
from colony.strategy.archetypes import CONSTRUCTION, IMPROVEMENT, REMOTE, Archetype
from colony.strategy.schema import UtilityWeights

NON_ECONOMIC = IMPROVEMENT | CONSTRUCTION | REMOTE | {Archetype.SCOUT, Archetype.RELAY_FILLER}
STALE_SITES = (
    RemoteSite(site_id="W1N2", source_ids=("rs_1",), last_scan=0, scan_age=100),
    RemoteSite(site_id="W9N9"),
)


def _state(
    *,
    gatherers: int = 0,
    transporters: int = 0,
    counts: Optional[Dict[Archetype, int]] = None,
    available: int = 300,
    capacity: int = 1800,
    income: float = 0.0,
    tier: int = 1,
    sites: int = 0,
    hostiles: int = 0,
    remote_sites: Tuple[RemoteSite, ...] = (),
) -> WorldState:
    c = {Archetype.GATHERER: gatherers, Archetype.TRANSPORTER: transporters}
    c.update(counts or {})
    threat = ThreatSnapshot(level=ThreatLevel.LOW, hostiles=hostiles) if hostiles else ThreatSnapshot()
    return WorldState(
        colony_id="home",
        time=500,
        tier=tier,
        expansion_ceiling=2,
        resources=ResourceSnapshot(available=available, capacity=capacity, income=income, income_max=20.0),
        roster=RosterSnapshot(counts=c),
        threat=threat,
        construction=ConstructionBacklog(home_sites=sites),
        nodes=(NodeAssignment(node_id="src_a"), NodeAssignment(node_id="src_b")),
        remote_sites=remote_sites,
        emergency=EmergencyFlags.derive(no_gatherers=gatherers == 0, facility_critical=False, reserves_low=False),
    )


def _scheduler(log: Optional[DevLogger] = None) -> UtilityScheduler:
    return RuntimeApp.build(env=StaticEnvironment(owner="me"), log=log).scheduler


def _rows(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


# ---------------- scenarios ----------------


def test_collapsed_colony_selects_minimal_gatherer() -> None:
    st = _state(gatherers=0, transporters=0, available=250, capacity=1800, income=0.0)
    cand = _scheduler().select_from_state(st)

    assert cand is not None
    assert cand.archetype is Archetype.GATHERER
    assert cand.cost <= 250
    assert cand.assignment.node_id == "src_a"


def test_missing_transporters_select_transporter_over_backlog() -> None:
    st = _state(gatherers=2, transporters=0, available=500, capacity=1800, income=10.0, tier=3, sites=40)
    cand = _scheduler().select_from_state(st)

    assert cand is not None
    assert cand.archetype is Archetype.TRANSPORTER
    assert cand.cost == 500


def test_missing_transporters_wait_instead_of_buying_cheaper_role() -> None:
    st = _state(
        gatherers=2,
        transporters=0,
        available=80,
        capacity=1800,
        income=10.0,
        tier=4,
        remote_sites=STALE_SITES,
    )
    sched = _scheduler()

    ranking = sched.rank(st)
    assert [c.archetype for c in ranking.candidates] == [Archetype.SCOUT]
    assert sched.select_from_state(st) is None


def test_no_threat_means_zero_defense_utility() -> None:
    st = _state(gatherers=2, transporters=2, income=20.0)

    assert defender_utility(st, UtilityWeights()) == 0.0
    assert all(c.archetype is not Archetype.DEFENDER for c in _scheduler().rank(st).candidates)


# ---------------- admission policy ----------------


def test_waits_for_best_candidate_while_income_flows() -> None:
    st = _state(gatherers=2, transporters=1, available=100, capacity=1000, income=10.0)

    assert _scheduler().select_from_state(st) is None


class _ScoutStub:
    planner_id = "scout_stub"

    def propose(self, state, *, targets):
        return [Proposal(archetype=Archetype.SCOUT, utility=1.0, planner=self.planner_id)]


def test_bootstrap_takes_affordable_candidate_without_income() -> None:
    st = _state(gatherers=1, transporters=1, available=100, capacity=1000, income=0.0)
    sched = _scheduler()
    sched.register_planner(_ScoutStub())

    cand = sched.select_from_state(st)

    assert sched.rank(st).candidates[0].archetype is Archetype.GATHERER
    assert cand is not None
    assert cand.archetype is Archetype.SCOUT
    assert cand.cost == 50


def test_gatherer_boundary_at_minimum_cost() -> None:
    sched = _scheduler()

    at_min = sched.select_from_state(_state(available=200))
    below = sched.select_from_state(_state(available=199))

    assert at_min is not None and at_min.archetype is Archetype.GATHERER
    assert at_min.cost == 200
    assert below is None


def test_selection_is_idempotent() -> None:
    st = _state(gatherers=2, transporters=1, available=1800, capacity=1800, income=15.0, tier=3, sites=7)
    sched = _scheduler()

    assert sched.select_from_state(st) == sched.select_from_state(st)
    assert sched.rank(st) == sched.rank(st)


def test_budget_is_available_until_economy_is_staffed() -> None:
    assert UtilityScheduler.build_budget(_state(gatherers=0, transporters=1, available=250)) == 250
    assert UtilityScheduler.build_budget(_state(gatherers=1, transporters=0, available=250)) == 250
    assert UtilityScheduler.build_budget(_state(gatherers=1, transporters=1, available=250)) == 1800


def test_select_candidate_requires_cache() -> None:
    sched = UtilityScheduler(cache=None, planners=[])

    with pytest.raises(RuntimeError):
        sched.select_candidate("home")


# ---------------- audit ----------------


class _Broken:
    planner_id = "broken"

    def propose(self, state, *, targets):
        raise ZeroDivisionError("boom")


def test_broken_planner_is_isolated_and_logged(tmp_path: Path) -> None:
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl", split_by_module=False)
    sched = _scheduler(log)
    sched.register_planner(_Broken())

    cand = sched.select_from_state(_state(available=250))

    assert cand is not None and cand.archetype is Archetype.GATHERER
    rows = _rows(tmp_path / "run.jsonl")
    errors = [r for r in rows if r["event"] == "planner_error"]
    assert errors and errors[0]["payload"]["planner"] == "broken"
    assert any(r["event"] == "scheduler_selected" for r in rows)


def test_repeated_decisions_are_throttled(tmp_path: Path) -> None:
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl", split_by_module=False)
    sched = _scheduler(log)
    st = _state(available=250)

    for _ in range(5):
        sched.select_from_state(st)

    selected = [r for r in _rows(tmp_path / "run.jsonl") if r["event"] == "scheduler_selected"]
    assert len(selected) == 1
    assert selected[0]["meta"]["module"] == "scheduler"


# ---------------- invariants ----------------

_GRID = list(
    itertools.product(
        (0, 1, 2),  # gatherers
        (0, 1),  # transporters
        (0, 120, 250, 600, 1800),  # available
        (0.0, 12.0),  # income
        (1, 3, 4, 6),  # tier
        (0, 3),  # hostiles
        (0, 6),  # construction sites
    )
)


def _check_invariants(
    sched: UtilityScheduler,
    gatherers: int,
    transporters: int,
    available: int,
    income: float,
    tier: int,
    hostiles: int,
    sites: int,
) -> None:
    if gatherers == 0:
        income = 0.0
    st = _state(
        gatherers=gatherers,
        transporters=transporters,
        counts={Archetype.UPGRADER: 0},
        available=available,
        capacity=1800,
        income=income,
        tier=tier,
        hostiles=hostiles,
        sites=sites,
        remote_sites=STALE_SITES,
    )
    cand = sched.select_from_state(st)

    if gatherers == 0 and available >= 200:
        assert cand is not None and cand.archetype is Archetype.GATHERER
    if cand is None:
        return

    assert cand.cost <= available
    if gatherers > 0 and transporters == 0 and available >= 100:
        assert cand.archetype not in NON_ECONOMIC
    if gatherers == 0 or transporters == 0:
        assert cand.archetype not in REMOTE
    if hostiles == 0:
        assert cand.archetype is not Archetype.DEFENDER
    if sites == 0:
        assert cand.archetype is not Archetype.BUILDER


def test_selection_invariants() -> None:
    sched = _scheduler()
    for combo in _GRID:
        _check_invariants(sched, *combo)
