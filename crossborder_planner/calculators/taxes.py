"""Cross-border tax calculation utilities.

This module implements the simplified tax position of a Canadian non-resident
living in Thailand.  Canada taxes the household at source: a flat treaty
withholding on CPP, OAS and pension income, withholding on RRSP/RRIF/LIF draws
(captured by the withdrawal allocator), and the OAS recovery tax ("clawback")
on world income above an indexed threshold.  Thailand taxes only income that
is remitted into the country and is not treaty exempt, using progressive
brackets after a personal allowance.

The default rates are embedded in ``data/tax_tables.json`` keyed by table
year.  Bracket limits and the clawback threshold are expressed in table-year
money and are scaled by an inflation ``index`` supplied by the caller; the
personal allowance is a fixed amount.

Example
-------

>>> # Thai tax on 20 000 CAD remitted at 25 THB/CAD (500 000 THB)
>>> round(compute_thai_tax(20000, exchange_rate=25.0), 2)
860.0

>>> thai_marginal_rate(20000, exchange_rate=25.0)
0.1

The tables can be customised by passing a dictionary matching the schema of
``data/tax_tables.json``.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..models import DEFAULT_BASE_YEAR, IncomeRecord, TaxRecord, WithdrawalRecord

logger = logging.getLogger(__name__)

_DEFAULT_TAX_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "tax_tables.json"

# Share of a non-registered withdrawal counted as capital gain for the
# clawback test.  Adjusted cost base is not tracked.
NONREG_GAIN_PROXY = 0.5


def _load_tax_tables(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load tax tables from JSON.  If ``path`` is not provided, return the
    default tables shipped with the package (parsed once per process).

    Parameters
    ----------
    path : Path, optional
        Path to a JSON file containing the tax tables.

    Returns
    -------
    dict
        The parsed tax tables.
    """
    if path is None:
        return _default_tables()
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _default_tables() -> Dict[str, Dict]:
    with open(_DEFAULT_TAX_TABLE_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def year_tables(year: int = DEFAULT_BASE_YEAR, tax_tables: Optional[Dict[str, Dict]] = None) -> Dict:
    """Return the rules for ``year``, falling back to the latest table year."""
    tables = tax_tables or _load_tax_tables()
    key = str(year)
    if key not in tables:
        key = max(tables, key=int)
        logger.debug("no tax table for %s, using %s", year, key)
    return tables[key]


def withholding_rate(
    kind: str = "registered",
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Canadian non-resident withholding rate for ``registered`` or ``benefits``."""
    return float(year_tables(year, tax_tables)["canada"]["withholding"][kind])


def _progressive_tax(taxable: float, brackets: Sequence[Dict], index: float = 1.0) -> float:
    tax = 0.0
    remaining = taxable
    for bracket in brackets:
        rate = bracket["rate"]
        start = bracket["start"] * index
        end = bracket["end"] * index if bracket["end"] is not None else float("inf")
        width = end - start
        if remaining <= 0:
            break
        if taxable > start:
            amount = min(remaining, width)
            tax += amount * rate
            remaining -= amount
        else:
            break
    return tax


def compute_thai_tax_thb(
    income_thb: float,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Compute Thai personal income tax in THB on assessable income.

    The personal allowance is deducted before the progressive rates are
    applied.  Bracket limits are multiplied by ``index``.
    """
    thai = year_tables(year, tax_tables)["thailand"]
    taxable = max(0.0, income_thb - thai.get("personal_allowance", 0.0))
    if taxable <= 0:
        return 0.0
    return _progressive_tax(taxable, thai["brackets"], index)


def compute_thai_tax(
    income: float,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Compute Thai tax in CAD on ``income`` CAD of taxable remittance."""
    if income <= 0 or exchange_rate <= 0:
        return 0.0
    tax_thb = compute_thai_tax_thb(income * exchange_rate, index, year, tax_tables)
    return tax_thb / exchange_rate


def compute_split_thai_tax(
    combined_income: float,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Thai tax for a couple splitting ``combined_income`` equally.

    The tax on half of the combined base is computed and doubled.  With
    progressive brackets this never exceeds the tax on the unsplit base.
    """
    half = compute_thai_tax(combined_income / 2.0, exchange_rate, index, year, tax_tables)
    return 2.0 * half


def _net_taxable_thb(income: float, exchange_rate: float, year: int, tax_tables) -> float:
    thai = year_tables(year, tax_tables)["thailand"]
    return income * exchange_rate - thai.get("personal_allowance", 0.0)


def thai_marginal_rate(
    income: float,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Marginal Thai rate applying to the next dollar above ``income`` CAD.

    A base sitting exactly on a bracket limit is charged the rate of the
    bracket above it.
    """
    net = _net_taxable_thb(income, exchange_rate, year, tax_tables)
    brackets = year_tables(year, tax_tables)["thailand"]["brackets"]
    for bracket in brackets:
        if bracket["end"] is None or net < bracket["end"] * index:
            return float(bracket["rate"])
    return float(brackets[-1]["rate"])


def thai_bracket_room(
    income: float,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """CAD of additional taxable income before the next Thai bracket starts.

    Returns ``inf`` inside the open top bracket.
    """
    if exchange_rate <= 0:
        return float("inf")
    net = _net_taxable_thb(income, exchange_rate, year, tax_tables)
    for bracket in year_tables(year, tax_tables)["thailand"]["brackets"]:
        if bracket["end"] is None:
            return float("inf")
        limit = bracket["end"] * index
        if net < limit:
            return (limit - net) / exchange_rate
    return float("inf")


def thai_taxable_base(income: IncomeRecord, withdrawals: WithdrawalRecord) -> float:
    """Income counted by Thailand: remitted taxable income plus taxable draws."""
    return income.other_taxable + withdrawals.thai_taxable_remittance


def world_income(income: IncomeRecord, withdrawals: WithdrawalRecord) -> float:
    """Net world income used by the OAS recovery test."""
    return (
        income.total
        + withdrawals.rrsp
        + withdrawals.lif
        + withdrawals.nonreg * NONREG_GAIN_PROXY
    )


def compute_oas_clawback(
    income: IncomeRecord,
    withdrawals: WithdrawalRecord,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """OAS recovery tax, never more than the OAS received."""
    oas_rules = year_tables(year, tax_tables)["canada"]["oas"]
    threshold = oas_rules["clawback_threshold"] * index
    excess = world_income(income, withdrawals) - threshold
    return max(0.0, min(income.oas, excess * oas_rules["clawback_rate"]))


def compute_person_tax(
    income: IncomeRecord,
    withdrawals: WithdrawalRecord,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
    thai_tax: Optional[float] = None,
) -> TaxRecord:
    """Compute one person's tax for the year.

    Parameters
    ----------
    income, withdrawals : IncomeRecord, WithdrawalRecord
        The person's realised income and withdrawals.
    exchange_rate : float
        THB per CAD.
    index : float
        Inflation multiplier applied to bracket limits and the clawback
        threshold.
    thai_tax : float, optional
        Pre-computed Thai tax (used when a couple splits income).  When
        omitted the person's own base is taxed.

    Returns
    -------
    TaxRecord
        ``canada`` holds benefit withholding, the clawback and the
        withholding already deducted from registered draws.
    """
    clawback = compute_oas_clawback(income, withdrawals, index, year, tax_tables)
    net_oas = max(0.0, income.oas - clawback)
    benefit_base = income.cpp + net_oas + income.pension
    benefit_wht = benefit_base * withholding_rate("benefits", year, tax_tables)
    canada = benefit_wht + clawback + withdrawals.wht_deducted

    if thai_tax is None:
        thai_tax = compute_thai_tax(
            thai_taxable_base(income, withdrawals), exchange_rate, index, year, tax_tables
        )
    return TaxRecord(total=canada + thai_tax, canada=canada, thailand=thai_tax, clawback=clawback)


def household_thai_tax(
    bases: Sequence[float],
    exchange_rate: float = 25.0,
    index: float = 1.0,
    income_splitting: bool = False,
    year: int = DEFAULT_BASE_YEAR,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> List[float]:
    """Thai tax per person for a household.

    Without splitting each base is taxed on its own.  With splitting a couple
    pays tax on the halved combined base, doubled, and each partner carries
    the share matching their part of the base.
    """
    if not income_splitting or len(bases) < 2:
        return [compute_thai_tax(b, exchange_rate, index, year, tax_tables) for b in bases]
    combined = sum(bases)
    if combined <= 0:
        return [0.0 for _ in bases]
    total = compute_split_thai_tax(combined, exchange_rate, index, year, tax_tables)
    return [total * b / combined for b in bases]


__all__ = [
    "compute_thai_tax",
    "compute_thai_tax_thb",
    "compute_split_thai_tax",
    "thai_marginal_rate",
    "thai_bracket_room",
    "thai_taxable_base",
    "world_income",
    "compute_oas_clawback",
    "compute_person_tax",
    "household_thai_tax",
    "withholding_rate",
    "year_tables",
]
