# colony/engine/smoothing.py
"""
Bounded utility math.

Smooth transitions instead of hard cutoffs. Every helper returns a finite
float; inputs outside the expected range are clamped.
"""
from __future__ import annotations

import math
from typing import Iterable


def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, float(x)))


def smooth_step(edge0: float, edge1: float, x: float) -> float:
    """0 at edge0, 1 at edge1, eased in between."""
    if edge1 == edge0:
        return 1.0 if x >= edge1 else 0.0
    t = clamp((x - edge0) / (edge1 - edge0))
    return t * t * (3.0 - 2.0 * t)


def sigmoid(x: float, midpoint: float = 0.0, steepness: float = 1.0) -> float:
    z = -steepness * (x - midpoint)
    # math.exp overflows past ~709
    if z > 700.0:
        return 0.0
    if z < -700.0:
        return 1.0
    return 1.0 / (1.0 + math.exp(z))


def diminishing_returns(count: float, half_point: float = 2.0) -> float:
    """First items count most; 0.5 at half_point."""
    if half_point <= 0:
        return 0.0
    return half_point / (half_point + max(0.0, count))


def role_count_utility(count: float, optimal: float) -> float:
    """Population curve: diminishing below optimal, steep drop past it."""
    if optimal <= 0:
        return 0.0
    if count >= optimal:
        return max(0.0, 1.0 - (count - optimal) * 0.5)
    return diminishing_returns(count, optimal / 2.0)


def scale(value: float, in_min: float, in_max: float, out_min: float = 0.0, out_max: float = 1.0) -> float:
    if in_max == in_min:
        return out_max if value >= in_max else out_min
    t = clamp((value - in_min) / (in_max - in_min))
    return out_min + t * (out_max - out_min)


def combine_utilities(*factors: float) -> float:
    """
    Geometric mean. A single zero factor zeroes the result instead of being
    averaged away.
    """
    if not factors:
        return 0.0
    product = 1.0
    for f in factors:
        product *= max(0.0, float(f))
    if product <= 0.0:
        return 0.0
    return product ** (1.0 / len(factors))


def finite(x: float, *, ceiling: float = 1e12) -> float:
    """Clamp to a finite range; NaN collapses to 0."""
    v = float(x)
    if math.isnan(v):
        return 0.0
    return max(-ceiling, min(ceiling, v))


def mean(values: Iterable[float]) -> float:
    vs = [float(v) for v in values]
    if not vs:
        return 0.0
    return sum(vs) / len(vs)
