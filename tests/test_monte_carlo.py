"""Tests for the Monte Carlo driver."""

import asyncio

import pytest

from crossborder_planner.calculators import monte_carlo
from crossborder_planner.models import (
    ACCOUNT_KEYS,
    AccountBundle,
    HouseholdScenario,
    IncomeItem,
    ItemKind,
    Person,
)


def _build_simple_scenario(stdev: float = 0.0, assets=None, expense: float = 30000.0) -> HouseholdScenario:
    user = Person(
        birth_year=1960,
        years_in_canada=0,
        assets=assets if assets is not None else AccountBundle(rrsp=300000, tfsa=50000, nonreg=100000),
        items=[IncomeItem(ItemKind.EXPENSE_THAI, expense)],
    )
    return HouseholdScenario(
        user=user,
        retirement_age=65,
        max_age=80,
        returns={"rrsp": 0.05, "tfsa": 0.05, "nonreg": 0.05, "lif": 0.04},
        stdevs={k: stdev for k in ACCOUNT_KEYS},
    )


def test_quantile():
    assert monte_carlo._get_quantile([10, 20, 30, 40], 0.5) == 25
    assert monte_carlo._get_quantile([], 0.3) == 0
    assert monte_carlo._get_quantile([5], 0.9) == 5
    assert monte_carlo._get_quantile([0, 100], 0.1) == pytest.approx(10)


def test_zero_stdev_collapses_bands():
    scenario = _build_simple_scenario(stdev=0.0)
    result = monte_carlo.run_monte_carlo(scenario, n_runs=50, seed=1)
    assert result.p10 == result.median == result.p90
    assert len(result.time_series) == 16
    for row in result.time_series:
        assert row["p10"] == row["p50"] == row["p90"]
        assert row["p25"] == row["p75"] == row["p50"]


def test_time_series_years_and_ages():
    scenario = _build_simple_scenario()
    result = monte_carlo.run_monte_carlo(scenario, n_runs=3, seed=1)
    assert result.time_series[0]["year"] == 2025
    assert result.time_series[0]["age"] == 65
    assert result.time_series[-1]["age"] == 80


def test_repeatability_with_seed():
    scenario = _build_simple_scenario(stdev=0.12)
    r1 = monte_carlo.run_monte_carlo(scenario, n_runs=30, seed=12345)
    r2 = monte_carlo.run_monte_carlo(scenario, n_runs=30, seed=12345)
    assert r1.success_rate == r2.success_rate
    assert r1.time_series == r2.time_series


def test_percentiles_ordered():
    scenario = _build_simple_scenario(stdev=0.15)
    result = monte_carlo.run_monte_carlo(scenario, n_runs=60, seed=9)
    for row in result.time_series:
        assert row["p10"] <= row["p25"] <= row["p50"] <= row["p75"] <= row["p90"]
    assert result.p10 <= result.median <= result.p90
    assert 0.0 <= result.success_rate <= 1.0


def test_depleted_runs_fail():
    scenario = _build_simple_scenario(assets=AccountBundle(), expense=10000)
    result = monte_carlo.run_monte_carlo(scenario, n_runs=5, seed=0)
    assert result.success_rate == 0.0
    assert all(row["p90"] == 0.0 for row in result.time_series)


def test_progress_callback():
    calls = []
    scenario = _build_simple_scenario()
    scenario.max_age = 66
    monte_carlo.run_monte_carlo(scenario, n_runs=250, seed=0, progress=calls.append)
    assert calls == [0.0, 0.4, 0.8, 1.0]


def test_async_matches_sync():
    scenario = _build_simple_scenario(stdev=0.1)
    sync = monte_carlo.run_monte_carlo(scenario, n_runs=20, seed=5)
    calls = []
    result = asyncio.run(
        monte_carlo.run_monte_carlo_async(scenario, n_runs=20, seed=5, progress=calls.append)
    )
    assert result.time_series == sync.time_series
    assert result.success_rate == sync.success_rate
    assert calls[-1] == 1.0


def test_as_dict_shape():
    scenario = _build_simple_scenario()
    out = monte_carlo.run_monte_carlo(scenario, n_runs=2, seed=0).as_dict()
    assert set(out) == {"successRate", "p10", "median", "p90", "timeSeries"}
    assert set(out["timeSeries"][0]) == {"year", "age", "p10", "p25", "p50", "p75", "p90"}


def test_path_matches_projection_and_pads_after_depletion():
    import numpy as np

    from crossborder_planner.calculators import engine
    from crossborder_planner.models import SimulationSettings, Strategy

    scenario = _build_simple_scenario(assets=AccountBundle(rrsp=100000), expense=40000)
    projection = engine.simulate_scenario(scenario, strategy=Strategy.NONREG_FIRST)
    path = monte_carlo.simulate_path(scenario, SimulationSettings(), Strategy.NONREG_FIRST, np.random.default_rng(0))
    assert len(path) == 16
    assert projection[-1].depleted
    survived = len(projection) - 1
    assert list(path[:survived]) == pytest.approx([r.closing.total() for r in projection[:survived]])
    assert all(v == 0.0 for v in path[survived:])
