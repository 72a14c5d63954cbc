from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..models import HouseholdScenario, SimulationSettings, Strategy
from .engine import projection_years, simulate_scenario
from .strategy import resolve_strategy

logger = logging.getLogger(__name__)

DEFAULT_RUNS = 1000
PROGRESS_INTERVAL = 100
PERCENTILES = (0.10, 0.25, 0.50, 0.75, 0.90)

ProgressCallback = Callable[[float], None]


@dataclass
class MonteCarloResult:
    success_rate: float
    p10: float
    median: float
    p90: float
    time_series: List[Dict] = field(default_factory=list)

    def as_dict(self) -> Dict:
        return {
            "successRate": self.success_rate,
            "p10": self.p10,
            "median": self.median,
            "p90": self.p90,
            "timeSeries": [dict(row) for row in self.time_series],
        }


def _get_quantile(sorted_data: Sequence[float], p: float) -> float:
    """Linearly interpolated quantile of already sorted data; 0 when empty."""
    if len(sorted_data) == 0:
        return 0.0
    return float(np.quantile(np.asarray(sorted_data, dtype=float), p))


def simulate_path(
    scenario: HouseholdScenario,
    settings: SimulationSettings,
    strategy: Strategy,
    rng: np.random.Generator,
) -> np.ndarray:
    """Household total balance at the end of each projection year.

    Years after depletion are zero.
    """
    path = np.zeros(len(projection_years(scenario)))
    for i, result in enumerate(simulate_scenario(scenario, settings, rng=rng, strategy=strategy)):
        if result.depleted:
            break
        path[i] = result.closing.total()
    return path


def _summarize(scenario: HouseholdScenario, paths: List[np.ndarray]) -> MonteCarloResult:
    n_runs = len(paths)
    if n_runs == 0:
        return MonteCarloResult(success_rate=0.0, p10=0.0, median=0.0, p90=0.0)

    stacked = np.vstack(paths)  # n_runs x years
    if stacked.shape[1] == 0:
        final = np.zeros(n_runs)
    else:
        final = np.sort(stacked[:, -1])
    success_rate = float(np.mean(final > 0.0))

    time_series = []
    start_year = projection_years(scenario).start
    for i in range(stacked.shape[1]):
        column = np.sort(stacked[:, i])
        row = {"year": start_year + i, "age": scenario.retirement_age + i}
        for p in PERCENTILES:
            row[f"p{int(round(p * 100))}"] = _get_quantile(column, p)
        time_series.append(row)

    return MonteCarloResult(
        success_rate=success_rate,
        p10=_get_quantile(final, 0.10),
        median=_get_quantile(final, 0.50),
        p90=_get_quantile(final, 0.90),
        time_series=time_series,
    )


def _prepare(scenario, settings, seed, rng):
    settings = settings or SimulationSettings()
    strategy = resolve_strategy(scenario, settings)
    rng = rng if rng is not None else np.random.default_rng(seed)
    return settings, strategy, rng


def run_monte_carlo(
    scenario: HouseholdScenario,
    settings: Optional[SimulationSettings] = None,
    n_runs: int = DEFAULT_RUNS,
    seed: int | None = None,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressCallback] = None,
) -> MonteCarloResult:
    """Run ``n_runs`` stochastic projections and summarise the outcomes.

    ``progress`` receives the completed fraction every 100 trials and 1.0 at
    the end.
    """
    settings, strategy, rng = _prepare(scenario, settings, seed, rng)
    paths: List[np.ndarray] = []
    for i in range(n_runs):
        paths.append(simulate_path(scenario, settings, strategy, rng))
        if progress is not None and i % PROGRESS_INTERVAL == 0:
            progress(i / n_runs)
    if progress is not None:
        progress(1.0)
    result = _summarize(scenario, paths)
    logger.info("monte carlo: %d runs, success rate %.3f", n_runs, result.success_rate)
    return result


async def run_monte_carlo_async(
    scenario: HouseholdScenario,
    settings: Optional[SimulationSettings] = None,
    n_runs: int = DEFAULT_RUNS,
    seed: int | None = None,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressCallback] = None,
) -> MonteCarloResult:
    """Same as :func:`run_monte_carlo`, yielding to the event loop every 100 trials."""
    settings, strategy, rng = _prepare(scenario, settings, seed, rng)
    paths: List[np.ndarray] = []
    for i in range(n_runs):
        paths.append(simulate_path(scenario, settings, strategy, rng))
        if i % PROGRESS_INTERVAL == 0:
            if progress is not None:
                progress(i / n_runs)
            await asyncio.sleep(0)
    if progress is not None:
        progress(1.0)
    result = _summarize(scenario, paths)
    logger.info("monte carlo: %d runs, success rate %.3f", n_runs, result.success_rate)
    return result


__all__ = ["run_monte_carlo", "run_monte_carlo_async", "simulate_path", "MonteCarloResult"]
