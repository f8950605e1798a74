import math

import pytest

from colony.engine.build_planner import BuildSpec, build, make_spec
from colony.engine.modules import MAX_MODULES, MOBILITY_RATIO, Mobility, Module, count_of
from colony.strategy.archetypes import DEFAULT_WORKER_TYPES, Archetype, WorkerTypeConfig

W, C, M = Module.WORK, Module.CARRY, Module.MOVE
A, T = Module.ATTACK, Module.TOUGH


def _cfg(archetype: Archetype) -> WorkerTypeConfig:
    return DEFAULT_WORKER_TYPES[archetype]


def _custom(**kw) -> WorkerTypeConfig:
    base = dict(archetype=Archetype.GATHERER, pattern=(W,), mobility=Mobility.PAVED, minimum_cost=0)
    base.update(kw)
    return WorkerTypeConfig(**base)


def test_gatherer_at_minimum_cost_uses_fallback() -> None:
    spec = build(_cfg(Archetype.GATHERER), 200)

    assert spec is not None
    assert spec.modules == (W, C, M)
    assert spec.cost == 200


def test_gatherer_below_minimum_cost_is_none() -> None:
    assert build(_cfg(Archetype.GATHERER), 199) is None


def test_gatherer_reserves_mobility_per_repeat() -> None:
    spec = build(_cfg(Archetype.GATHERER), 550)

    assert spec is not None
    assert spec.modules == (W, W, W, C, M, M)
    assert spec.cost == 450


def test_gatherer_drops_suffix_when_reserve_would_be_spent() -> None:
    spec = build(_cfg(Archetype.GATHERER), 300)

    assert spec is not None
    assert spec.modules == (W, W, M)
    assert spec.cost == 250


def test_transporter_pattern_mode_fills_budget() -> None:
    spec = build(_cfg(Archetype.TRANSPORTER), 500)

    assert spec is not None
    assert spec.modules == (C, M) * 5
    assert spec.cost == 500


def test_defender_prefix_and_survivability_order() -> None:
    spec = build(_cfg(Archetype.DEFENDER), 300)

    assert spec is not None
    assert spec.modules == (T, T, T, A, A, M, M)
    assert spec.cost == 290


def test_open_terrain_keeps_one_move_per_module() -> None:
    spec = build(_custom(mobility=Mobility.OPEN_TERRAIN), 300)

    assert spec is not None
    assert spec.modules == (W, W, M, M)
    assert spec.cost == 300


def test_rough_terrain_reserves_five_moves_per_module() -> None:
    spec = build(_custom(pattern=(C,), mobility=Mobility.ROUGH_TERRAIN), 600)

    assert spec is not None
    assert count_of(spec.modules, C) == 2
    assert count_of(spec.modules, M) == 10
    assert spec.cost == 600


def test_stationary_mode_meets_its_mobility_ratio() -> None:
    spec = build(_cfg(Archetype.RELAY_FILLER), 1000)

    assert spec is not None
    non_move = len(spec.modules) - count_of(spec.modules, M)
    needed = math.ceil(non_move * MOBILITY_RATIO[Mobility.STATIONARY])
    assert count_of(spec.modules, M) >= needed
    assert count_of(spec.modules, C) == 6


def test_repeats_stop_below_module_ceiling() -> None:
    spec = build(_cfg(Archetype.UPGRADER), 100_000)

    assert spec is not None
    assert spec.size == 48
    assert count_of(spec.modules, W) == 24
    assert count_of(spec.modules, M) == 16


def test_eviction_trades_last_work_for_move() -> None:
    cfg = _custom(pattern=(C,), prefix=(W, W, W))
    spec = build(cfg, 300)

    assert spec is not None
    assert spec.modules == (W, W, M)
    assert spec.cost == 250
    assert not spec.degenerate


def test_unfixable_mobility_is_flagged_degenerate() -> None:
    cfg = _custom(pattern=(C,), prefix=(W, W))
    spec = build(cfg, 200)

    assert spec is not None
    assert spec.modules == (W, W)
    assert spec.degenerate


def test_missing_required_module_returns_none() -> None:
    cfg = _custom(pattern=(C,), prefix=(W, W), required=frozenset({Module.CLAIM}))

    assert build(cfg, 200) is None


def test_build_is_deterministic() -> None:
    for archetype in Archetype:
        cfg = _cfg(archetype)
        for budget in (0, 150, 420, 1300, 5600):
            assert build(cfg, budget) == build(cfg, budget)


@pytest.mark.parametrize("archetype", list(Archetype))
def test_specs_never_exceed_budget_or_module_cap(archetype: Archetype) -> None:
    cfg = _cfg(archetype)
    for budget in range(0, 6000, 37):
        spec = build(cfg, budget)
        if spec is None:
            continue
        assert spec.cost <= budget
        assert spec.size <= MAX_MODULES
        assert spec.contains(cfg.required)
        assert not spec.is_empty()


def test_build_spec_rejects_mismatched_cost() -> None:
    good = make_spec((W, C, M))

    with pytest.raises(ValueError):
        BuildSpec(modules=good.modules, cost=good.cost + 1, stats=good.stats)


def test_make_spec_derives_stats() -> None:
    spec = make_spec((W, W, C, M))

    assert spec.stats.throughput == 4
    assert spec.stats.transport_capacity == 50
    assert spec.stats.damage_soak == 400


def test_worker_type_config_rejects_empty_pattern() -> None:
    with pytest.raises(ValueError):
        _custom(pattern=())
