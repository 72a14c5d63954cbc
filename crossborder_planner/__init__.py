"""Canada-Thailand retirement projection.

Projects a household's retirement year by year for a Canadian non-resident
living in Thailand: tax-aware withdrawals across RRSP/RRIF, TFSA,
non-registered and LIF accounts, Canadian withholding and OAS clawback, Thai
tax on remitted income, and Monte Carlo percentile bands.
"""

from .calculators.engine import ComparisonResult, run_comparison, simulate_scenario
from .calculators.monte_carlo import MonteCarloResult, run_monte_carlo, run_monte_carlo_async
from .models import (
    AccountBundle,
    HouseholdScenario,
    IncomeItem,
    ItemKind,
    Person,
    SimulationSettings,
    Strategy,
    YearResult,
)
from .scenario_io import load_scenario, save_scenario, scenario_from_dict, scenario_to_dict

__all__ = [
    "AccountBundle",
    "HouseholdScenario",
    "IncomeItem",
    "ItemKind",
    "Person",
    "SimulationSettings",
    "Strategy",
    "YearResult",
    "simulate_scenario",
    "run_comparison",
    "ComparisonResult",
    "run_monte_carlo",
    "run_monte_carlo_async",
    "MonteCarloResult",
    "load_scenario",
    "save_scenario",
    "scenario_from_dict",
    "scenario_to_dict",
]
