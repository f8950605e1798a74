import math

from colony.engine.smoothing import (
    clamp,
    combine_utilities,
    diminishing_returns,
    finite,
    role_count_utility,
    scale,
    sigmoid,
    smooth_step,
)


def test_smooth_step_edges() -> None:
    assert smooth_step(0.8, 1.2, 0.5) == 0.0
    assert smooth_step(0.8, 1.2, 1.5) == 1.0
    assert math.isclose(smooth_step(0.8, 1.2, 1.0), 0.5)


def test_sigmoid_is_half_at_midpoint_and_never_overflows() -> None:
    assert math.isclose(sigmoid(0.0), 0.5)
    assert sigmoid(1e9, steepness=1.0) == 1.0
    assert sigmoid(-1e9, steepness=1.0) == 0.0


def test_geometric_mean_zeroed_by_any_zero_factor() -> None:
    assert combine_utilities(1.0, 1.0, 0.0) == 0.0
    assert math.isclose(combine_utilities(0.25, 1.0), 0.5)
    assert combine_utilities() == 0.0


def test_role_count_curve() -> None:
    assert role_count_utility(0, 0) == 0.0
    assert role_count_utility(0, 2) == 1.0
    assert math.isclose(role_count_utility(1, 2), 0.5)
    assert role_count_utility(2, 2) == 1.0
    assert role_count_utility(4, 2) == 0.0


def test_diminishing_returns_half_point() -> None:
    assert math.isclose(diminishing_returns(2.0, 2.0), 0.5)


def test_scale_and_clamp() -> None:
    assert scale(25_000, 0, 50_000, 0.0, 0.5) == 0.25
    assert scale(-5, 0, 10) == 0.0
    assert clamp(3.0) == 1.0


def test_finite_guard() -> None:
    assert finite(float("nan")) == 0.0
    assert finite(float("inf")) == 1e12
