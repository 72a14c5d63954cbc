"""Automatic choice between the two withdrawal priorities.

A large RRSP converted to a RRIF forces minimum withdrawals from 71.  Added
to CPP and OAS those minimums can push world income over the OAS recovery
threshold.  When that is likely for either partner it pays to draw the
tax-deferred accounts down early (``rrsp_first``); otherwise the household
spends taxable money first (``nonreg_first``).
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models import HouseholdScenario, Person, SimulationSettings, Strategy
from . import rrif
from .taxes import year_tables

logger = logging.getLogger(__name__)


def clawback_risk(
    person: Person,
    rrsp_return: float,
    inflation: float,
    settings: Optional[SimulationSettings] = None,
) -> bool:
    """Whether ``person`` is projected to exceed the OAS threshold at 71."""
    settings = settings or SimulationSettings()
    current_age = settings.base_year - person.birth_year
    years = rrif.RRIF_FIRST_AGE - current_age
    if years <= 0:
        return True

    oas = year_tables(settings.base_year, settings.tax_tables)["canada"]["oas"]
    deferred = person.assets.rrsp + person.assets.lif
    future_value = deferred * (1 + rrsp_return) ** years
    growth = (1 + inflation) ** years
    income = (
        future_value * rrif.minimum_rate(rrif.RRIF_FIRST_AGE)
        + (person.cpp_at_65 + oas["max_annual"]) * growth
    )
    threshold = oas["clawback_threshold"] * growth
    return income > threshold


def resolve_strategy(
    scenario: HouseholdScenario,
    settings: Optional[SimulationSettings] = None,
) -> Strategy:
    """Return the concrete strategy for ``scenario``.

    Raises ``ValueError`` for an unknown strategy name.
    """
    strategy = Strategy(scenario.withdrawal_strategy)
    if strategy is not Strategy.AUTO:
        return strategy

    rrsp_return = scenario.returns.get("rrsp", 0.0)
    at_risk = clawback_risk(scenario.user, rrsp_return, scenario.inflation, settings)
    if scenario.couple:
        at_risk = at_risk or clawback_risk(scenario.spouse, rrsp_return, scenario.inflation, settings)
    resolved = Strategy.RRSP_FIRST if at_risk else Strategy.NONREG_FIRST
    logger.debug("auto strategy resolved to %s", resolved.value)
    return resolved


__all__ = ["resolve_strategy", "clawback_risk"]
