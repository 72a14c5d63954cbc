"""Tabular views of a projection.

:func:`ledger` flattens a result series into equal-length columns, the shape
consumed by tables, CSV export and charts.  :func:`summarize` reduces a series
to the headline numbers used to compare scenario A with scenario B.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import pandas as pd

from .models import ACCOUNT_KEYS, YearResult

LEDGER_COLUMNS = (
    "year",
    "age",
    "spouse_age",
    "opening_total",
    "growth_rrsp",
    "growth_tfsa",
    "growth_nonreg",
    "growth_lif",
    "growth_total",
    "income_cpp",
    "income_oas",
    "income_pension",
    "income_other_taxable",
    "income_other_non_remitted",
    "income_total",
    "expenses_thai",
    "expenses_overseas",
    "expenses_thai_tax",
    "expenses_total",
    "withdrawal_rrsp",
    "withdrawal_tfsa",
    "withdrawal_nonreg",
    "withdrawal_lif",
    "withdrawal_total",
    "wht_deducted",
    "thai_taxable_remittance",
    "tax_canada",
    "tax_thailand",
    "oas_clawback",
    "tax_total",
    "reinvested",
    "closing_rrsp",
    "closing_tfsa",
    "closing_nonreg",
    "closing_lif",
    "closing_total",
    "depleted",
)


def ledger(series: Sequence[YearResult]) -> Dict[str, List]:
    """Household-level columns, one row per projected year."""
    out: Dict[str, List] = {c: [] for c in LEDGER_COLUMNS}
    for r in series:
        people = r.people
        closing = r.closing
        out["year"].append(r.year)
        out["age"].append(r.age)
        out["spouse_age"].append(r.spouse.age if r.spouse is not None else None)
        out["opening_total"].append(r.opening.total())
        growth = [sum(p.growth[k] for p in people) for k in ACCOUNT_KEYS]
        for k, g in zip(ACCOUNT_KEYS, growth):
            out[f"growth_{k}"].append(g)
        out["growth_total"].append(sum(growth))
        for bucket in ("cpp", "oas", "pension", "other_taxable", "other_non_remitted"):
            out[f"income_{bucket}"].append(sum(getattr(p.income, bucket) for p in people))
        out["income_total"].append(r.income_total)
        out["expenses_thai"].append(r.expenses_thai)
        out["expenses_overseas"].append(r.expenses_overseas)
        out["expenses_thai_tax"].append(r.expenses_thai_tax)
        out["expenses_total"].append(r.expenses)
        for k in ACCOUNT_KEYS:
            out[f"withdrawal_{k}"].append(sum(p.withdrawals[k] for p in people))
            out[f"closing_{k}"].append(closing[k])
        out["withdrawal_total"].append(r.withdrawals_total)
        out["wht_deducted"].append(sum(p.withdrawals.wht_deducted for p in people))
        out["thai_taxable_remittance"].append(
            sum(p.withdrawals.thai_taxable_remittance for p in people)
        )
        out["tax_canada"].append(r.tax_canada)
        out["tax_thailand"].append(r.tax_thailand)
        out["oas_clawback"].append(r.clawback)
        out["tax_total"].append(r.tax_total)
        out["reinvested"].append(r.reinvested)
        out["closing_total"].append(closing.total())
        out["depleted"].append(r.depleted)
    return out


def to_frame(series: Sequence[YearResult]) -> pd.DataFrame:
    return pd.DataFrame(ledger(series), columns=list(LEDGER_COLUMNS))


def summarize(series: Sequence[YearResult]) -> Dict[str, Optional[float]]:
    """Totals over the projection and the final position."""
    depletion_age = next((r.age for r in series if r.depleted), None)
    return {
        "years": len(series),
        "total_tax_canada": sum(r.tax_canada for r in series),
        "total_tax_thailand": sum(r.tax_thailand for r in series),
        "total_clawback": sum(r.clawback for r in series),
        "final_assets": series[-1].closing.total() if series else 0.0,
        "depletion_age": depletion_age,
    }


def comparison_frame(series_a: Sequence[YearResult], series_b: Sequence[YearResult]) -> pd.DataFrame:
    """Scenario A and B metrics side by side with the B - A difference."""
    a = summarize(series_a)
    b = summarize(series_b)
    frame = pd.DataFrame({"A": pd.Series(a, dtype=object), "B": pd.Series(b, dtype=object)})
    frame["difference"] = pd.Series(
        [(b[k] - a[k]) if a[k] is not None and b[k] is not None else None for k in frame.index],
        index=frame.index,
        dtype=object,
    )
    return frame


__all__ = ["ledger", "to_frame", "summarize", "comparison_frame", "LEDGER_COLUMNS"]
