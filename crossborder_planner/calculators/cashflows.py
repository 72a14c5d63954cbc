"""Income and expense models.

Recurring items are entered in base-year dollars and inflate with their own
COLA.  Items are shared by the household: an item tagged ``joint`` is split
50/50 between partners, and an untagged item belongs to the primary person.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..models import HouseholdScenario, IncomeItem, IncomeRecord, ItemKind, Person, SimulationSettings
from .benefits import cpp_benefit, inflation_index, oas_benefit

logger = logging.getLogger(__name__)

USER = "user"
SPOUSE = "spouse"
JOINT = "joint"


def owner_share(item: IncomeItem, owner: str, couple: bool) -> float:
    """Fraction of ``item`` attributed to ``owner`` (``"user"`` or ``"spouse"``)."""
    if item.owner == owner:
        return 1.0
    if item.owner == JOINT:
        if couple:
            return 0.5
        return 1.0 if owner == USER else 0.0
    if not item.owner and owner == USER:
        return 1.0
    return 0.0


def item_amount(item: IncomeItem, year: int, base_year: int) -> float:
    """Amount of ``item`` in ``year`` dollars."""
    return item.amount * (1 + item.cola) ** max(0, year - base_year)


def _in_range(item: IncomeItem, age: int) -> bool:
    return item.start_age <= age <= item.end_age


def compute_income(
    scenario: HouseholdScenario,
    owner: str,
    age: int,
    year: int,
    settings: Optional[SimulationSettings] = None,
) -> IncomeRecord:
    """Gross income of ``owner`` at ``age`` in ``year``.

    CPP and OAS come from the person's own parameters; pension, taxable and
    overseas items are taken from the household item list by owner tag.
    """
    settings = settings or SimulationSettings()
    person: Person = scenario.user if owner == USER else scenario.spouse
    record = IncomeRecord()
    if person is None:
        return record

    index = inflation_index(year, scenario.inflation, settings.base_year)
    record.cpp = cpp_benefit(
        person.cpp_at_65,
        person.cpp_start_age,
        age,
        year,
        person.birth_year,
        inflation=scenario.inflation,
        base_year=settings.base_year,
        tax_tables=settings.tax_tables,
    )
    record.oas = oas_benefit(
        person.oas_start_age,
        age,
        person.years_in_canada,
        index=index,
        base_year=settings.base_year,
        tax_tables=settings.tax_tables,
    )

    for item in scenario.items:
        if item.kind.is_expense:
            continue
        share = owner_share(item, owner, scenario.couple)
        if share <= 0 or not _in_range(item, age):
            continue
        amount = item_amount(item, year, settings.base_year) * share
        if item.kind is ItemKind.PENSION:
            record.pension += amount
        elif item.kind is ItemKind.INCOME:
            record.other_taxable += amount
        elif item.kind is ItemKind.INCOME_OVERSEAS:
            record.other_non_remitted += amount
    return record


def household_expenses(
    scenario: HouseholdScenario,
    user_age: int,
    spouse_age: Optional[int],
    year: int,
    settings: Optional[SimulationSettings] = None,
) -> Tuple[float, float]:
    """Return ``(thai, overseas)`` expense totals for the household.

    Each expense is gated by its owner's age; partner-owned items fall back
    to the primary person's age when there is no partner.
    """
    settings = settings or SimulationSettings()
    thai = 0.0
    overseas = 0.0
    for item in scenario.items:
        if not item.kind.is_expense:
            continue
        if item.owner == SPOUSE and scenario.couple and spouse_age is not None:
            age = spouse_age
        else:
            age = user_age
        if not _in_range(item, age):
            continue
        amount = item_amount(item, year, settings.base_year)
        if item.kind is ItemKind.EXPENSE_THAI:
            thai += amount
        else:
            overseas += amount
    logger.debug("expenses %s: thai=%.2f overseas=%.2f", year, thai, overseas)
    return thai, overseas


__all__ = ["compute_income", "household_expenses", "owner_share", "item_amount"]
