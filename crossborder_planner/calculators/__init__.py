"""Calculators behind the cross-border retirement projection.

The `calculators` package contains small, focused modules that each implement
one piece of the projection:

* ``rrif`` – RRIF/LIF minimum withdrawal rates and LIF maximum factors.
* ``taxes`` – Thai progressive tax, OAS clawback and Canadian withholding.
* ``benefits`` – CPP and OAS estimation with early/late start adjustments.
* ``cashflows`` – recurring income and expense items by owner and age.
* ``growth`` – deterministic and randomised investment growth.
* ``withdrawals`` – tax-aware allocation of spending across accounts and partners.
* ``strategy`` – automatic choice of withdrawal priority.
* ``engine`` – the year-by-year projection and A/B comparison.
* ``monte_carlo`` – randomised trials and percentile bands.

Each module exposes a few public functions with clear parameters and returns.  See
individual docstrings for details.
"""

from . import (  # noqa: F401
    benefits,
    cashflows,
    engine,
    growth,
    monte_carlo,
    rrif,
    strategy,
    taxes,
    withdrawals,
)

__all__ = [
    "rrif",
    "taxes",
    "benefits",
    "cashflows",
    "growth",
    "withdrawals",
    "strategy",
    "engine",
    "monte_carlo",
]
