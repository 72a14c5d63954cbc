"""Simplified CPP and OAS benefit estimators for a non-resident.

The planner asks for the CPP pension a person would receive at 65 (from My
Service Canada Account) and their chosen start ages.  This module applies the
actuarial adjustment for starting early or late and indexes the amount with
inflation.  It does not model contributory history, survivor benefits or GIS
(which is not paid abroad).

The rules are approximated as follows:

* CPP starting before 65 is reduced by 0.6 % per month early; starting after
  65 it is increased by 0.7 % per month late.  The amount at 65 is expressed in
  base-year dollars and indexed to the start year, then indexed every year
  after that.
* OAS is only paid abroad after 20 years of residence in Canada after age 18.
  The full pension needs 40 years; partial pensions are pro-rated.  Deferral
  past 65 earns 0.6 % per month and the pension rises 10 % from age 75.

Example
-------

>>> # 12 000 CAD/yr at 65, started at 60 (60 months early)
>>> round(cpp_benefit(12000, start_age=60, age=60, year=2025, birth_year=1965), 2)
7680.0

>>> # 30 years in Canada, started at 65, no inflation
>>> round(oas_benefit(start_age=65, age=66, years_in_canada=30), 2)
6660.75
"""

from __future__ import annotations

from typing import Dict, Optional

from ..models import DEFAULT_BASE_YEAR
from .taxes import year_tables


def inflation_index(year: int, inflation: float, base_year: int = DEFAULT_BASE_YEAR) -> float:
    """Cumulative inflation multiplier from ``base_year`` to ``year`` (1.0 before it)."""
    return (1 + inflation) ** max(0, year - base_year)


def cpp_benefit(
    cpp_at_65: float,
    start_age: int,
    age: int,
    year: int,
    birth_year: int,
    inflation: float = 0.0,
    base_year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Annual CPP retirement pension received at ``age`` in ``year``.

    Parameters
    ----------
    cpp_at_65 : float
        Annual pension at 65 in base-year dollars.
    start_age : int
        Age at which the pension starts.
    age, year : int
        Age and calendar year being evaluated.
    birth_year : int
        Used to locate the start year.
    inflation : float
        Annual indexing rate.

    Returns
    -------
    float
        Zero before ``start_age``.
    """
    if age < start_age or cpp_at_65 <= 0:
        return 0.0
    rules = year_tables(base_year, tax_tables)["canada"]["cpp"]
    start_year = birth_year + start_age
    months = (start_age - rules["normal_start_age"]) * 12
    if months < 0:
        adjustment = months * rules["early_monthly_reduction"]
    else:
        adjustment = months * rules["late_monthly_increase"]
    at_start = cpp_at_65 * inflation_index(start_year, inflation, base_year) * (1 + adjustment)
    # indexing after the start year continues from the later of start and base year
    years_paid = max(0, year - max(start_year, base_year))
    return at_start * (1 + inflation) ** years_paid


def oas_benefit(
    start_age: int,
    age: int,
    years_in_canada: float,
    index: float = 1.0,
    base_year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Annual OAS pension received at ``age``.

    ``index`` is the inflation multiplier from the base year to the year being
    evaluated.
    """
    if age < start_age:
        return 0.0
    rules = year_tables(base_year, tax_tables)["canada"]["oas"]
    if years_in_canada < rules["min_residency_years"]:
        return 0.0
    residency = min(1.0, max(0.0, years_in_canada / rules["full_residency_years"]))
    deferral_months = max(0, (start_age - rules["normal_start_age"]) * 12)
    bonus = deferral_months * rules["deferral_monthly_bonus"]
    amount = rules["max_annual"] * residency * (1 + bonus) * index
    if age >= rules["late_uplift_age"]:
        amount *= 1 + rules["late_uplift"]
    return amount


__all__ = ["cpp_benefit", "oas_benefit", "inflation_index"]
