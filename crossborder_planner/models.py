"""Value objects shared by the calculators.

A projection is driven by a :class:`HouseholdScenario` (what the household
owns and spends) and a :class:`SimulationSettings` (which rules and policy
switches apply).  Each simulated calendar year produces one
:class:`YearResult`.  The calculators never reach for module level state;
everything they need travels through these objects.

Account keys follow the Canadian registered-plan vocabulary used throughout
the package:

* ``rrsp`` – tax-deferred registered account (RRSP/RRIF)
* ``tfsa`` – tax-free registered account
* ``nonreg`` – non-registered (taxable) account
* ``lif`` – locked-in tax-deferred account (LIF)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional

ACCOUNT_KEYS = ("rrsp", "tfsa", "nonreg", "lif")
TAX_DEFERRED_KEYS = ("lif", "rrsp")

DEFAULT_BASE_YEAR = 2025
DEFAULT_RETURNS = {"rrsp": 0.06, "tfsa": 0.06, "nonreg": 0.06, "lif": 0.05}


class ItemKind(str, Enum):
    """Kinds of user-defined recurring cash flows."""

    PENSION = "pension"                    # exempt from Thai tax
    INCOME = "income"                      # Thai taxable when remitted
    INCOME_OVERSEAS = "income_overseas"    # kept offshore, untaxed in Thailand
    EXPENSE_THAI = "expense_thai"          # remitted living cost
    EXPENSE_OVERSEAS = "expense_overseas"  # paid offshore, never remitted

    @property
    def is_expense(self) -> bool:
        return self in (ItemKind.EXPENSE_THAI, ItemKind.EXPENSE_OVERSEAS)


class Strategy(str, Enum):
    AUTO = "auto"
    RRSP_FIRST = "rrsp_first"
    NONREG_FIRST = "nonreg_first"


@dataclass
class AccountBundle:
    rrsp: float = 0.0
    tfsa: float = 0.0
    nonreg: float = 0.0
    lif: float = 0.0

    def __getitem__(self, key: str) -> float:
        if key not in ACCOUNT_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def __setitem__(self, key: str, value: float) -> None:
        if key not in ACCOUNT_KEYS:
            raise KeyError(key)
        setattr(self, key, value)

    def total(self) -> float:
        return self.rrsp + self.tfsa + self.nonreg + self.lif

    def copy(self) -> "AccountBundle":
        return AccountBundle(self.rrsp, self.tfsa, self.nonreg, self.lif)

    def as_dict(self) -> Dict[str, float]:
        return {k: getattr(self, k) for k in ACCOUNT_KEYS}

    def clear(self) -> None:
        for k in ACCOUNT_KEYS:
            setattr(self, k, 0.0)

    def __add__(self, other: "AccountBundle") -> "AccountBundle":
        return AccountBundle(*(self[k] + other[k] for k in ACCOUNT_KEYS))


@dataclass
class IncomeItem:
    """A recurring income or expense expressed in base-year dollars.

    ``end_age`` is inclusive.  ``owner`` is ``"user"``, ``"spouse"`` or
    ``"joint"``; ``None`` is treated as the primary person.
    """

    kind: ItemKind
    amount: float
    start_age: int = 0
    end_age: int = 110
    cola: float = 0.0
    owner: Optional[str] = "user"
    description: str = ""


@dataclass
class Person:
    birth_year: int = 1980
    cpp_start_age: int = 65
    oas_start_age: int = 65
    cpp_at_65: float = 0.0
    years_in_canada: float = 40.0
    assets: AccountBundle = field(default_factory=AccountBundle)
    items: List[IncomeItem] = field(default_factory=list)


@dataclass
class HouseholdScenario:
    user: Person = field(default_factory=Person)
    spouse: Optional[Person] = None
    has_spouse: bool = False
    retirement_age: int = 60
    returns: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RETURNS))
    stdevs: Dict[str, float] = field(default_factory=lambda: {k: 0.0 for k in ACCOUNT_KEYS})
    withdrawal_strategy: Strategy = Strategy.AUTO
    inflation: float = 0.025
    max_age: int = 95
    exchange_rate: float = 25.0

    @property
    def couple(self) -> bool:
        return self.has_spouse and self.spouse is not None

    @property
    def items(self) -> List[IncomeItem]:
        """The household's shared item list (primary first, then partner).

        Partner items count only while the partner is switched on, and an
        item on the partner's own list that names no one else belongs to
        the partner.
        """
        shared = list(self.user.items)
        if self.couple:
            for item in self.spouse.items:
                if item.owner in (None, "user"):
                    item = replace(item, owner="spouse")
                shared.append(item)
        return shared


@dataclass
class SimulationSettings:
    base_year: int = DEFAULT_BASE_YEAR
    tax_tables: Optional[Dict[str, Dict]] = None
    income_splitting: bool = False
    cross_credit_aware: bool = False
    rrsp_safe_limit: bool = False
    skip_first_year_growth: bool = False


@dataclass
class IncomeRecord:
    cpp: float = 0.0
    oas: float = 0.0
    pension: float = 0.0
    other_taxable: float = 0.0
    other_non_remitted: float = 0.0

    @property
    def total(self) -> float:
        return self.cpp + self.oas + self.pension + self.other_taxable + self.other_non_remitted

    @property
    def benefits(self) -> float:
        return self.cpp + self.oas + self.pension


@dataclass
class WithdrawalRecord:
    """Gross withdrawals per account plus their tax attributes."""

    rrsp: float = 0.0
    tfsa: float = 0.0
    nonreg: float = 0.0
    lif: float = 0.0
    thai_taxable_remittance: float = 0.0
    wht_deducted: float = 0.0

    def __getitem__(self, key: str) -> float:
        if key not in ACCOUNT_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def __setitem__(self, key: str, value: float) -> None:
        if key not in ACCOUNT_KEYS:
            raise KeyError(key)
        setattr(self, key, value)

    @property
    def total(self) -> float:
        return self.rrsp + self.tfsa + self.nonreg + self.lif


@dataclass
class TaxRecord:
    total: float = 0.0
    canada: float = 0.0
    thailand: float = 0.0
    clawback: float = 0.0


@dataclass
class PersonYear:
    age: int
    opening: AccountBundle
    growth: AccountBundle = field(default_factory=AccountBundle)
    income: IncomeRecord = field(default_factory=IncomeRecord)
    withdrawals: WithdrawalRecord = field(default_factory=WithdrawalRecord)
    tax: TaxRecord = field(default_factory=TaxRecord)
    reinvested: float = 0.0
    closing: AccountBundle = field(default_factory=AccountBundle)


@dataclass(frozen=True)
class YearResult:
    year: int
    age: int
    user: PersonYear
    spouse: Optional[PersonYear]
    expenses_thai: float
    expenses_overseas: float
    expenses_thai_tax: float
    reinvested: float
    depleted: bool

    @property
    def people(self) -> List[PersonYear]:
        return [p for p in (self.user, self.spouse) if p is not None]

    @property
    def expenses(self) -> float:
        return self.expenses_thai + self.expenses_overseas + self.expenses_thai_tax

    @property
    def opening(self) -> AccountBundle:
        return _sum_bundles(p.opening for p in self.people)

    @property
    def closing(self) -> AccountBundle:
        return _sum_bundles(p.closing for p in self.people)

    @property
    def income_total(self) -> float:
        return sum(p.income.total for p in self.people)

    @property
    def withdrawals_total(self) -> float:
        return sum(p.withdrawals.total for p in self.people)

    @property
    def tax_canada(self) -> float:
        return sum(p.tax.canada for p in self.people)

    @property
    def tax_thailand(self) -> float:
        return sum(p.tax.thailand for p in self.people)

    @property
    def tax_total(self) -> float:
        return sum(p.tax.total for p in self.people)

    @property
    def clawback(self) -> float:
        return sum(p.tax.clawback for p in self.people)


def _sum_bundles(bundles) -> AccountBundle:
    out = AccountBundle()
    for b in bundles:
        out = out + b
    return out
