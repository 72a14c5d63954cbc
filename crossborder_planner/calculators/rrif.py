"""RRIF minimum withdrawals and LIF maximum withdrawals.

Once an RRSP is converted to a RRIF the holder must withdraw a minimum
percentage of the 1 January balance each year.  The prescribed factors start
at age 71 (the last year an RRSP may stay open) and rise every year until the
flat 20 % rate that applies from age 95 onwards.  The same minimum applies to a
Life Income Fund (LIF).

A LIF is additionally capped by a maximum annual withdrawal.  The factors here
are the Ontario schedule; nothing may be drawn from a LIF before age 55 and
from age 89 the whole balance may be taken.

Example
-------

>>> minimum_rate(71)
0.0528

>>> round(compute_minimum(100000, 80), 2)
6810.0

>>> lif_maximum_factor(54)
0.0
"""

from __future__ import annotations

from typing import Dict

RRIF_FIRST_AGE = 71
RRIF_TOP_RATE = 0.20
RRIF_TOP_RATE_AGE = 95
LIF_FIRST_AGE = 55
LIF_FULL_AGE = 90


def _rrif_minimum_table() -> Dict[int, float]:
    """Return the prescribed RRIF minimum withdrawal factors by age."""
    return {
        71: 0.0528,
        72: 0.0540,
        73: 0.0553,
        74: 0.0567,
        75: 0.0582,
        76: 0.0598,
        77: 0.0617,
        78: 0.0636,
        79: 0.0658,
        80: 0.0681,
        81: 0.0708,
        82: 0.0738,
        83: 0.0771,
        84: 0.0808,
        85: 0.0851,
        86: 0.0899,
        87: 0.0955,
        88: 0.1021,
        89: 0.1099,
        90: 0.1192,
        91: 0.1306,
        92: 0.1449,
        93: 0.1634,
        94: 0.1879,
    }


def _lif_maximum_table() -> Dict[int, float]:
    """Return the Ontario LIF maximum withdrawal factors by age."""
    return {
        55: 0.0651,
        56: 0.0657,
        57: 0.0663,
        58: 0.0670,
        59: 0.0677,
        60: 0.0685,
        61: 0.0694,
        62: 0.0704,
        63: 0.0714,
        64: 0.0726,
        65: 0.0738,
        66: 0.0752,
        67: 0.0767,
        68: 0.0783,
        69: 0.0802,
        70: 0.0822,
        71: 0.0845,
        72: 0.0871,
        73: 0.0900,
        74: 0.0934,
        75: 0.0971,
        76: 0.1015,
        77: 0.1066,
        78: 0.1125,
        79: 0.1196,
        80: 0.1282,
        81: 0.1387,
        82: 0.1519,
        83: 0.1690,
        84: 0.1919,
        85: 0.2240,
        86: 0.2723,
        87: 0.3529,
        88: 0.5146,
        89: 1.0000,
        90: 1.0000,
    }


def minimum_rate(age: int) -> float:
    """Minimum withdrawal rate for a RRIF or LIF holder of ``age``.

    Returns zero below age 71 and the flat top rate from age 95.
    """
    if age < RRIF_FIRST_AGE:
        return 0.0
    if age >= RRIF_TOP_RATE_AGE:
        return RRIF_TOP_RATE
    return _rrif_minimum_table().get(age, 0.0)


def compute_minimum(balance: float, age: int) -> float:
    """Minimum gross withdrawal from an account holding ``balance`` on 1 January."""
    if balance <= 0:
        return 0.0
    return balance * minimum_rate(age)


def lif_maximum_factor(age: int) -> float:
    """Maximum fraction of the opening LIF balance that may be withdrawn."""
    if age < LIF_FIRST_AGE:
        return 0.0
    if age >= LIF_FULL_AGE:
        return 1.0
    return _lif_maximum_table().get(age, 0.0)


def safe_withholding_limit(balance: float, age: int) -> float:
    """Largest RRIF draw still treated as a periodic payment for withholding.

    Payments above the greater of twice the minimum and 10 % of the opening
    balance are lump sums under Part XIII and lose the treaty rate.
    """
    if balance <= 0:
        return 0.0
    return max(2.0 * compute_minimum(balance, age), 0.10 * balance)


__all__ = [
    "minimum_rate",
    "compute_minimum",
    "lif_maximum_factor",
    "safe_withholding_limit",
    "RRIF_FIRST_AGE",
]
