"""Tests for deterministic and stochastic growth."""

import numpy as np
import pytest

from crossborder_planner.calculators import growth
from crossborder_planner.models import AccountBundle


def test_apply_growth_mutates_and_reports():
    balances = AccountBundle(rrsp=100.0, tfsa=200.0, nonreg=0.0, lif=50.0)
    delta = growth.apply_growth(balances, {"rrsp": 0.05, "tfsa": -0.10, "nonreg": 0.05, "lif": 0.0})
    assert balances.rrsp == pytest.approx(105.0)
    assert balances.tfsa == pytest.approx(180.0)
    assert balances.lif == 50.0
    assert delta.rrsp == pytest.approx(5.0)
    assert delta.tfsa == pytest.approx(-20.0)
    assert delta.nonreg == 0.0


def test_zero_stdev_returns_the_mean():
    rng = np.random.default_rng(1)
    means = {"rrsp": 0.06, "tfsa": 0.05, "nonreg": 0.04, "lif": 0.03}
    drawn = growth.draw_returns(means, {k: 0.0 for k in means}, rng)
    assert drawn == means


def test_seeded_draws_repeat():
    means = {"rrsp": 0.06, "tfsa": 0.06, "nonreg": 0.06, "lif": 0.05}
    stdevs = {k: 0.12 for k in means}
    a = growth.draw_returns(means, stdevs, np.random.default_rng(42))
    b = growth.draw_returns(means, stdevs, np.random.default_rng(42))
    assert a == b


def test_standard_normal_moments():
    rng = np.random.default_rng(7)
    samples = np.array([growth.standard_normal(rng) for _ in range(5000)])
    assert abs(samples.mean()) < 0.1
    assert abs(samples.std() - 1.0) < 0.1
