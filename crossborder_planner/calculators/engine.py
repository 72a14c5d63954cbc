"""Year-by-year household projection.

Each calendar year from retirement to the maximum age runs the same
pipeline for both partners: growth, income, expenses (including last year's
Thai tax, paid in arrears), withdrawals, tax, then reinvestment of any
surplus into the non-registered accounts.  The projection stops after the
year in which the household runs out of money.

Example
-------

>>> from crossborder_planner.models import (
...     AccountBundle, HouseholdScenario, IncomeItem, ItemKind, Person)
>>> user = Person(birth_year=1960, years_in_canada=0,
...               assets=AccountBundle(rrsp=500000),
...               items=[IncomeItem(ItemKind.EXPENSE_THAI, 40000)])
>>> scenario = HouseholdScenario(user=user, retirement_age=65, max_age=66,
...                              returns={k: 0.0 for k in ("rrsp", "tfsa", "nonreg", "lif")})
>>> [r.age for r in simulate_scenario(scenario)]
[65, 66]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..models import (
    AccountBundle,
    HouseholdScenario,
    PersonYear,
    SimulationSettings,
    Strategy,
    YearResult,
)
from .benefits import inflation_index
from .cashflows import SPOUSE, USER, compute_income, household_expenses
from .growth import apply_growth, draw_returns
from .strategy import resolve_strategy
from .taxes import compute_person_tax, household_thai_tax, thai_taxable_base
from .withdrawals import SHORTFALL_EPSILON, allocate_withdrawals, settle_deficit

logger = logging.getLogger(__name__)

REINVEST_THRESHOLD = 0.01


@dataclass
class ComparisonResult:
    results_a: List[YearResult]
    results_b: List[YearResult]
    strategy_a: Strategy
    strategy_b: Strategy


def _birth_years(scenario: HouseholdScenario) -> List[int]:
    years = [scenario.user.birth_year]
    if scenario.couple:
        years.append(scenario.spouse.birth_year)
    return years


def initial_balances(scenario: HouseholdScenario) -> List[AccountBundle]:
    """Private copies of each partner's accounts."""
    balances = [scenario.user.assets.copy()]
    if scenario.couple:
        balances.append(scenario.spouse.assets.copy())
    return balances


def simulate_year(
    scenario: HouseholdScenario,
    settings: SimulationSettings,
    year: int,
    balances: Sequence[AccountBundle],
    prior_thai_tax: Sequence[float],
    strategy: Strategy,
    rng: Optional[np.random.Generator] = None,
    first_year: bool = False,
) -> YearResult:
    """Run one calendar year, mutating ``balances`` in place."""
    couple = scenario.couple
    owners = [USER, SPOUSE] if couple else [USER]
    ages = [year - b for b in _birth_years(scenario)]
    index = inflation_index(year, scenario.inflation, settings.base_year)
    people = [PersonYear(age=age, opening=b.copy()) for age, b in zip(ages, balances)]

    # 1. growth, one market draw shared by the household
    if not (first_year and settings.skip_first_year_growth):
        if rng is not None:
            rates = draw_returns(scenario.returns, scenario.stdevs, rng)
        else:
            rates = scenario.returns
        for p, b in zip(people, balances):
            p.growth = apply_growth(b, rates)

    # 2. income
    for owner, p in zip(owners, people):
        p.income = compute_income(scenario, owner, p.age, year, settings)

    # 3. expenses
    spouse_age = ages[1] if couple else None
    expenses_thai, expenses_overseas = household_expenses(scenario, ages[0], spouse_age, year, settings)
    expenses_thai_tax = sum(prior_thai_tax)

    # 4. withdrawals
    allocation = allocate_withdrawals(
        people,
        balances,
        expenses_thai=expenses_thai,
        expenses_overseas=expenses_overseas,
        prior_thai_tax=expenses_thai_tax,
        strategy=strategy,
        exchange_rate=scenario.exchange_rate,
        index=index,
        settings=settings,
    )
    depleted = allocation.depleted

    # 5. tax
    bases = [thai_taxable_base(p.income, p.withdrawals) for p in people]
    thai_tax = household_thai_tax(
        bases,
        scenario.exchange_rate,
        index,
        income_splitting=settings.income_splitting and couple,
        year=settings.base_year,
        tax_tables=settings.tax_tables,
    )
    for p, thai in zip(people, thai_tax):
        p.tax = compute_person_tax(
            p.income,
            p.withdrawals,
            scenario.exchange_rate,
            index,
            settings.base_year,
            settings.tax_tables,
            thai_tax=thai,
        )

    # 6. surplus or deficit
    expenses = expenses_thai + expenses_overseas + expenses_thai_tax
    cash_in = sum(p.income.total + p.withdrawals.total for p in people)
    cash_out = expenses + sum(p.tax.canada for p in people)
    net = cash_in - cash_out
    reinvested = 0.0
    if net > REINVEST_THRESHOLD:
        share = net / len(people)
        for p, b in zip(people, balances):
            b.nonreg += share
            p.reinvested = share
        reinvested = net
    elif -net > SHORTFALL_EPSILON and not depleted:
        wht_before = [p.withdrawals.wht_deducted for p in people]
        unmet = settle_deficit(
            -net,
            people,
            balances,
            strategy=strategy,
            exchange_rate=scenario.exchange_rate,
            index=index,
            settings=settings,
        )
        for p, before in zip(people, wht_before):
            extra = p.withdrawals.wht_deducted - before
            p.tax.canada += extra
            p.tax.total += extra
        if unmet > SHORTFALL_EPSILON:
            logger.info("year %s: %.2f of tax and spending left unfunded", year, unmet)
            depleted = True

    if depleted:
        for b in balances:
            b.clear()
    for p, b in zip(people, balances):
        p.closing = b.copy()

    result = YearResult(
        year=year,
        age=ages[0],
        user=people[0],
        spouse=people[1] if couple else None,
        expenses_thai=expenses_thai,
        expenses_overseas=expenses_overseas,
        expenses_thai_tax=expenses_thai_tax,
        reinvested=reinvested,
        depleted=depleted,
    )
    logger.debug(
        "year %s age %s: income=%.2f withdrawals=%.2f tax=%.2f closing=%.2f",
        year, result.age, result.income_total, result.withdrawals_total,
        result.tax_total, result.closing.total(),
    )
    return result


def projection_years(scenario: HouseholdScenario) -> range:
    start = scenario.user.birth_year + scenario.retirement_age
    end = scenario.user.birth_year + scenario.max_age
    return range(start, end + 1)


def simulate_scenario(
    scenario: HouseholdScenario,
    settings: Optional[SimulationSettings] = None,
    rng: Optional[np.random.Generator] = None,
    strategy: Optional[Strategy] = None,
) -> List[YearResult]:
    """Project ``scenario`` from retirement to the maximum age.

    The scenario is not modified.  Passing ``rng`` switches growth to the
    stochastic path using the scenario's standard deviations.
    """
    settings = settings or SimulationSettings()
    if strategy is None:
        strategy = resolve_strategy(scenario, settings)
    balances = initial_balances(scenario)
    prior_thai_tax = [0.0] * len(balances)
    results: List[YearResult] = []

    for i, year in enumerate(projection_years(scenario)):
        result = simulate_year(
            scenario,
            settings,
            year,
            balances,
            prior_thai_tax,
            strategy,
            rng=rng,
            first_year=i == 0,
        )
        results.append(result)
        prior_thai_tax = [p.tax.thailand for p in result.people]
        if result.depleted:
            logger.info("assets depleted in %s at age %s", year, result.age)
            break
    return results


def run_comparison(
    scenario_a: HouseholdScenario,
    scenario_b: HouseholdScenario,
    settings: Optional[SimulationSettings] = None,
) -> ComparisonResult:
    """Project scenario A and scenario B under the same settings."""
    settings = settings or SimulationSettings()
    strategy_a = resolve_strategy(scenario_a, settings)
    strategy_b = resolve_strategy(scenario_b, settings)
    return ComparisonResult(
        results_a=simulate_scenario(scenario_a, settings, strategy=strategy_a),
        results_b=simulate_scenario(scenario_b, settings, strategy=strategy_b),
        strategy_a=strategy_a,
        strategy_b=strategy_b,
    )


__all__ = [
    "simulate_scenario",
    "simulate_year",
    "run_comparison",
    "initial_balances",
    "projection_years",
    "ComparisonResult",
]
