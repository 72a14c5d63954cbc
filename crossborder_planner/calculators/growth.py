"""Investment growth for one year.

The deterministic path multiplies each account by ``1 + return``.  The
stochastic path draws one standard normal variate per account with the
Box-Muller transform over the uniform stream of a ``numpy`` generator, so a
seeded generator reproduces the same sequence of returns.
"""

from __future__ import annotations

import math
from typing import Dict, Mapping

import numpy as np

from ..models import ACCOUNT_KEYS, AccountBundle


def standard_normal(rng: np.random.Generator) -> float:
    """One standard normal variate from two uniforms (Box-Muller)."""
    u = 0.0
    v = 0.0
    while u == 0.0:
        u = rng.random()
    while v == 0.0:
        v = rng.random()
    return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def draw_returns(
    returns: Mapping[str, float],
    stdevs: Mapping[str, float],
    rng: np.random.Generator,
) -> Dict[str, float]:
    """Sample this year's return per account as ``mean + z * stdev``."""
    drawn = {}
    for key in ACCOUNT_KEYS:
        mean = returns.get(key, 0.0)
        stdev = stdevs.get(key, 0.0)
        drawn[key] = mean + standard_normal(rng) * stdev
    return drawn


def apply_growth(balances: AccountBundle, returns: Mapping[str, float]) -> AccountBundle:
    """Grow ``balances`` in place and return the growth per account."""
    growth = AccountBundle()
    for key in ACCOUNT_KEYS:
        delta = balances[key] * returns.get(key, 0.0)
        balances[key] += delta
        growth[key] = delta
    return growth


__all__ = ["apply_growth", "draw_returns", "standard_normal"]
