import json
from pathlib import Path

from colony.api import ColonyFacts, SourceRecord, StaticEnvironment, StructureKind, StructureRecord, WorkerRecord
from colony.devlog import DevLogger
from colony.engine.modules import Module
from colony.infra.store import AssignmentKind, AssignmentRecord, ColonyStore, SquadRecord, SquadStatus
from colony.mind.world_cache import WorldStateCache
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import CacheCfg


def _env() -> StaticEnvironment:
    facts = ColonyFacts(
        tier=2,
        available=300,
        capacity=550,
        sources=[SourceRecord("src_a", pos=(10, 10)), SourceRecord("src_b", pos=(40, 40))],
        structures=[
            StructureRecord("fac_1", StructureKind.FACILITY, pos=(25, 25), hits=5000, hits_max=5000),
            StructureRecord("cont_a", StructureKind.CONTAINER, pos=(11, 11), stored=120),
        ],
    )
    return StaticEnvironment(colonies={"home": facts}, now=100)


def _gatherer(name: str, node: str, ttl: int = 1200) -> WorkerRecord:
    return WorkerRecord(name, "gatherer", (Module.WORK,) * 5 + (Module.CARRY, Module.MOVE), ttl=ttl, target_node=node)


def _cache(env: StaticEnvironment, store: ColonyStore = None, log: DevLogger = None) -> WorldStateCache:
    return WorldStateCache(env=env, store=store or ColonyStore(), log=log, cfg=CacheCfg(refresh_interval=50))


def test_repeated_get_in_one_step_returns_same_object() -> None:
    env = _env()
    cache = _cache(env)

    first = cache.get("home")

    assert first is not None
    assert cache.get("home") is first


def test_new_step_rebuilds_cycle_tier_only() -> None:
    env = _env()
    cache = _cache(env)
    first = cache.get("home")

    env.facts("home").workers.append(_gatherer("g1", "src_a"))
    env.facts("home").structures.append(StructureRecord("fac_2", StructureKind.FACILITY))
    env.advance(10)
    second = cache.get("home")

    assert second is not first
    assert second.count(Archetype.GATHERER) == 1
    # periodic tier still cached
    assert len(second.structures.facilities) == 1
    assert second.structures is first.structures

    env.advance(40)
    third = cache.get("home")

    assert len(third.structures.facilities) == 2


def test_invalidate_rebuilds_within_step() -> None:
    env = _env()
    cache = _cache(env)
    first = cache.get("home")

    env.facts("home").workers.append(_gatherer("g1", "src_a"))
    assert cache.get("home") is first

    cache.invalidate("home")
    rebuilt = cache.get("home")

    assert rebuilt is not first
    assert rebuilt.count(Archetype.GATHERER) == 1
    assert cache.get("home") is rebuilt


def test_force_refresh_rebuilds_periodic_tier() -> None:
    env = _env()
    cache = _cache(env)
    cache.get("home")

    env.facts("home").structures.append(StructureRecord("fac_2", StructureKind.FACILITY))
    state = cache.force_refresh("home")

    assert len(state.structures.facilities) == 2


def test_uncontrolled_colony_yields_none() -> None:
    env = _env()
    cache = _cache(env)
    assert cache.get("home") is not None

    env.facts("home").controlled = False

    assert cache.get("home") is None
    assert cache.get("elsewhere") is None
    assert cache.force_refresh("home") is None


def test_snapshot_contents() -> None:
    env = _env()
    env.facts("home").workers.extend(
        [_gatherer("g1", "src_a"), _gatherer("g2", "src_b", ttl=40), WorkerRecord("x", "claimer?", ())]
    )
    state = _cache(env).get("home")

    assert state.count(Archetype.GATHERER) == 2
    assert state.expiring_count(Archetype.GATHERER) == 1
    assert [n.node_id for n in state.nodes] == ["src_a", "src_b"]
    assert state.nodes[0].worker == "g1"
    assert state.nodes[0].container_id == "cont_a"
    assert state.nodes[1].container_id is None
    assert state.resources.income == 20.0
    assert state.resources.income_max == 20.0
    assert state.resources.container_stock == 120
    assert not state.emergency.is_emergency


def test_assignment_view_ignores_dead_workers() -> None:
    env = _env()
    env.facts("home").workers.append(WorkerRecord("rm1", "remote_miner", (Module.WORK,), ttl=900))
    store = ColonyStore()
    store.assign(AssignmentRecord(AssignmentKind.REMOTE_NODE, "rm1", "home", node_id="rs_1", site_id="W1N2"))
    store.assign(AssignmentRecord(AssignmentKind.REMOTE_NODE, "gone", "home", node_id="rs_2", site_id="W1N2"))
    store.put_squad("home", SquadRecord("W2N2", SquadStatus.FORMING, required_size=2, members=("gone",)))

    view = _cache(env, store=store).get("home").assignments

    assert view.miners_by_source == {"rs_1": 1}
    assert view.miners_by_site == {"W1N2": 1}
    assert view.squad_needs == {"W2N2": 2}


def test_entering_emergency_is_logged_once(tmp_path: Path) -> None:
    env = _env()
    log = DevLogger(log_dir=str(tmp_path), filename="run.jsonl", split_by_module=False)
    cache = _cache(env, log=log)

    state = cache.get("home")
    env.advance(1)
    cache.get("home")

    assert state.emergency.no_gatherers
    rows = [json.loads(line) for line in (tmp_path / "run.jsonl").read_text(encoding="utf-8").splitlines()]
    emergencies = [r for r in rows if r["event"] == "colony_emergency"]
    assert len(emergencies) == 1
    assert emergencies[0]["payload"]["reasons"] == ["no_gatherers"]
    assert any(r["event"] == "cache_refresh" for r in rows)


def test_node_occupancy_follows_store_records_between_periodic_refreshes() -> None:
    env = _env()
    store = ColonyStore()
    cache = _cache(env, store=store)
    assert [n.worker for n in cache.get("home").nodes] == [None, None]

    env.facts("home").workers.append(WorkerRecord("g1", "gatherer", (Module.WORK, Module.MOVE)))
    store.assign(AssignmentRecord(AssignmentKind.NODE, "g1", "home", node_id="src_b", start=100))
    env.advance(1)
    state = cache.get("home")

    assert [n.worker for n in state.nodes] == [None, "g1"]
    assert state.nodes[0].container_id == "cont_a"


def test_periodic_refresh_prunes_records_of_dead_workers() -> None:
    env = _env()
    env.facts("home").workers.append(_gatherer("g1", "src_a"))
    store = ColonyStore()
    store.assign(AssignmentRecord(AssignmentKind.NODE, "g1", "home", node_id="src_a"))
    store.assign(AssignmentRecord(AssignmentKind.NODE, "gone", "home", node_id="src_b"))
    cache = _cache(env, store=store)

    cache.get("home")

    assert [r.worker for r in store.assignments("home")] == ["g1"]

    # between periodic refreshes the store is left alone
    store.assign(AssignmentRecord(AssignmentKind.NODE, "late", "home", node_id="src_b"))
    env.advance(10)
    cache.get("home")
    assert len(store.assignments("home")) == 2

    env.advance(40)
    cache.get("home")
    assert [r.worker for r in store.assignments("home")] == ["g1"]
