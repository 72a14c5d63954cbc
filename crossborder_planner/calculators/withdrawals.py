"""Withdrawal allocation for one household year.

Spending is split into two pools.  The Thai pool (living costs remitted into
Thailand plus last year's Thai tax) is funded first: benefit income net of
withholding and taxable income already received are used up, then accounts
are drawn with a greedy "water-filling" loop.  Each step compares the cost of
the sources still available:

* non-registered money costs the holder's marginal Thai rate because the
  remittance is assessable; once only TFSA money remains the cost is zero;
* RRSP/RRIF and LIF money costs the Canadian withholding rate.  Under the
  treaty those draws are exempt in Thailand, so they do not move the holder
  up the Thai brackets.

The cheapest source is drawn up to the next Thai bracket limit, then costs are
re-evaluated.  The overseas pool is never remitted and is drained in a fixed
order split between partners.  Finally RRIF/LIF minimums are forced.

Tax-deferred draws are grossed up: to put ``N`` dollars in hand at a
withholding rate ``r`` the account gives up ``N / (1 - r)``.

Example
-------

>>> from crossborder_planner.models import AccountBundle, PersonYear
>>> person = PersonYear(age=65, opening=AccountBundle(rrsp=100000))
>>> balances = [AccountBundle(rrsp=100000)]
>>> result = allocate_withdrawals([person], balances, expenses_thai=8500)
>>> round(person.withdrawals.rrsp, 2)
10000.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..models import AccountBundle, PersonYear, SimulationSettings, Strategy, WithdrawalRecord
from . import rrif
from .taxes import thai_bracket_room, thai_marginal_rate, withholding_rate

logger = logging.getLogger(__name__)

SHORTFALL_EPSILON = 0.01
MIN_STEP = 1.0
MAX_FILL_ITERATIONS = 200
STRATEGY_TIE_TOLERANCE = 0.001
DEPLETION_BALANCE_THRESHOLD = 10.0

TAXABLE = "taxable"
DEFERRED = "deferred"

_OVERSEAS_ORDER = {
    Strategy.NONREG_FIRST: ("nonreg", "tfsa", DEFERRED),
    Strategy.RRSP_FIRST: (DEFERRED, "nonreg", "tfsa"),
}


@dataclass
class AllocationResult:
    depleted: bool = False
    unmet_thai: float = 0.0
    unmet_overseas: float = 0.0


@dataclass
class _Holder:
    """Live view of one person during allocation."""

    index: int
    age: int
    balances: AccountBundle
    opening: AccountBundle
    record: WithdrawalRecord
    simulated_income: float = 0.0


@dataclass
class _Rules:
    registered_wht: float
    exchange_rate: float
    index: float
    settings: SimulationSettings
    safe_limit: bool = False

    @property
    def year(self) -> int:
        return self.settings.base_year

    @property
    def tables(self):
        return self.settings.tax_tables

    def marginal_rate(self, income: float) -> float:
        return thai_marginal_rate(income, self.exchange_rate, self.index, self.year, self.tables)

    def room(self, income: float) -> float:
        return thai_bracket_room(income, self.exchange_rate, self.index, self.year, self.tables)


def withdraw(key: str, amount: float, holder: _Holder, thai_taxable: bool = False) -> float:
    """Draw up to ``amount`` from a TFSA or non-registered account."""
    if amount <= 0 or holder.balances[key] <= 0:
        return 0.0
    taken = min(amount, holder.balances[key])
    holder.balances[key] -= taken
    holder.record[key] += taken
    if thai_taxable:
        holder.record.thai_taxable_remittance += taken
    return taken


def _deferred_limit(key: str, holder: _Holder, rules: _Rules) -> float:
    """Gross amount still allowed out of a tax-deferred account this year."""
    available = holder.balances[key]
    if key == "lif":
        cap = holder.opening.lif * rrif.lif_maximum_factor(holder.age)
        available = min(available, max(0.0, cap - holder.record.lif))
    elif rules.safe_limit:
        cap = rrif.safe_withholding_limit(holder.opening.rrsp, holder.age)
        available = min(available, max(0.0, cap - holder.record.rrsp))
    return max(0.0, available)


def withdraw_grossed_up(key: str, net_amount: float, holder: _Holder, rules: _Rules) -> float:
    """Draw enough from ``rrsp`` or ``lif`` to net ``net_amount`` after withholding.

    Returns the net amount actually received.
    """
    if net_amount <= 0 or holder.balances[key] <= 0:
        return 0.0
    complement = 1.0 - rules.registered_wht
    if complement <= 0:
        return 0.0
    gross = min(net_amount / complement, _deferred_limit(key, holder, rules))
    if gross <= 0:
        return 0.0
    net = gross * complement
    holder.balances[key] -= gross
    holder.record[key] += gross
    holder.record.wht_deducted += gross - net
    return net


def _withdraw_deferred(net_amount: float, holder: _Holder, rules: _Rules) -> float:
    got = withdraw_grossed_up("lif", net_amount, holder, rules)
    if got < net_amount:
        got += withdraw_grossed_up("rrsp", net_amount - got, holder, rules)
    return got


def _deferred_capacity(holder: _Holder, rules: _Rules) -> float:
    return _deferred_limit("lif", holder, rules) + _deferred_limit("rrsp", holder, rules)


def _candidates(holders: Sequence[_Holder], rules: _Rules) -> List[Dict]:
    found = []
    for h in holders:
        rate = rules.marginal_rate(h.simulated_income)
        if h.balances.nonreg > 0 or h.balances.tfsa > 0:
            cost = rate if h.balances.nonreg > 0 else 0.0
            found.append({"holder": h, "kind": TAXABLE, "cost": cost})
        if _deferred_capacity(h, rules) > 0:
            cost = rules.registered_wht
            if rules.settings.cross_credit_aware:
                cost = max(cost, rate)
            found.append({"holder": h, "kind": DEFERRED, "cost": cost})
    return found


def choose_source(candidates: List[Dict], strategy: Strategy) -> Optional[Dict]:
    """Pick the cheapest candidate.

    Candidates within the tie tolerance of the cheapest are close; among
    those the strategy's preferred kind wins, then the holder with the lower
    simulated income, then the primary person.
    """
    if not candidates:
        return None
    cheapest = min(c["cost"] for c in candidates)
    close = [c for c in candidates if c["cost"] <= cheapest + STRATEGY_TIE_TOLERANCE]
    preferred = DEFERRED if strategy is Strategy.RRSP_FIRST else TAXABLE
    favoured = [c for c in close if c["kind"] == preferred] or close
    return min(favoured, key=lambda c: (c["holder"].simulated_income, c["holder"].index))


def _moves_bracket(kind: str, holder: _Holder, rules: _Rules) -> bool:
    if kind == TAXABLE:
        return holder.balances.nonreg > 0
    return rules.settings.cross_credit_aware


def fill_thai_shortfall(
    shortfall: float,
    holders: Sequence[_Holder],
    rules: _Rules,
    strategy: Strategy,
) -> float:
    """Water-fill the remitted shortfall.  Returns the amount left unfunded."""
    remaining = shortfall
    iterations = 0
    while remaining > SHORTFALL_EPSILON and iterations < MAX_FILL_ITERATIONS:
        iterations += 1
        choice = choose_source(_candidates(holders, rules), strategy)
        if choice is None:
            break
        holder = choice["holder"]
        kind = choice["kind"]
        room = float("inf")
        if _moves_bracket(kind, holder, rules):
            room = rules.room(holder.simulated_income)
        step = min(remaining, max(room, MIN_STEP))

        if kind == TAXABLE:
            got = withdraw("nonreg", step, holder, thai_taxable=True)
            thai_part = got
            if got < step:
                got += withdraw("tfsa", step - got, holder)
        else:
            got = _withdraw_deferred(step, holder, rules)
            thai_part = got if rules.settings.cross_credit_aware else 0.0
        holder.simulated_income += thai_part

        logger.debug(
            "fill step %d: person=%d source=%s cost=%.4f drew=%.2f",
            iterations, holder.index, kind, choice["cost"], got,
        )
        if got <= 0:
            break
        remaining -= got
    if iterations >= MAX_FILL_ITERATIONS and remaining > SHORTFALL_EPSILON:
        logger.warning(
            "withdrawal fill stopped after %d iterations with %.2f unfunded",
            MAX_FILL_ITERATIONS, remaining,
        )
    return max(0.0, remaining)


def _draw_group(group: str, amount: float, holder: _Holder, rules: _Rules) -> float:
    if group == DEFERRED:
        return _withdraw_deferred(amount, holder, rules)
    return withdraw(group, amount, holder)


def drain_fixed_order(
    amount: float,
    holders: Sequence[_Holder],
    rules: _Rules,
    strategy: Strategy = Strategy.NONREG_FIRST,
) -> float:
    """Fund ``amount`` without remitting it.  Returns the amount left unfunded.

    Each account group is split evenly between partners; whatever one partner
    cannot cover falls to the other.
    """
    remaining = amount
    order = _OVERSEAS_ORDER.get(strategy, _OVERSEAS_ORDER[Strategy.NONREG_FIRST])
    first, others = holders[0], holders[1:]
    for group in order:
        if remaining <= 0:
            break
        share = remaining / len(holders)
        remaining -= _draw_group(group, share, first, rules)
        for h in others:
            remaining -= _draw_group(group, remaining, h, rules)
        if remaining > 0:
            remaining -= _draw_group(group, remaining, first, rules)
    return max(0.0, remaining)


def apply_minimums(holder: _Holder, rules: _Rules) -> None:
    """Force the RRIF/LIF minimum on each tax-deferred account."""
    for key in ("rrsp", "lif"):
        required = rrif.compute_minimum(holder.opening[key], holder.age)
        shortfall = required - holder.record[key]
        if shortfall <= 0:
            continue
        gross = min(shortfall, holder.balances[key])
        if gross <= 0:
            continue
        holder.balances[key] -= gross
        holder.record[key] += gross
        holder.record.wht_deducted += gross * rules.registered_wht
        logger.debug("minimum top-up person=%d %s=%.2f", holder.index, key, gross)


def make_rules(
    settings: SimulationSettings,
    exchange_rate: float,
    index: float,
) -> _Rules:
    return _Rules(
        registered_wht=withholding_rate("registered", settings.base_year, settings.tax_tables),
        exchange_rate=exchange_rate,
        index=index,
        settings=settings,
    )


def make_holders(people: Sequence[PersonYear], balances: Sequence[AccountBundle]) -> List[_Holder]:
    return [
        _Holder(
            index=i,
            age=p.age,
            balances=b,
            opening=p.opening,
            record=p.withdrawals,
            simulated_income=p.income.other_taxable,
        )
        for i, (p, b) in enumerate(zip(people, balances))
    ]


def allocate_withdrawals(
    people: Sequence[PersonYear],
    balances: Sequence[AccountBundle],
    expenses_thai: float = 0.0,
    expenses_overseas: float = 0.0,
    prior_thai_tax: float = 0.0,
    strategy: Strategy = Strategy.NONREG_FIRST,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    settings: Optional[SimulationSettings] = None,
) -> AllocationResult:
    """Fund the household's spending for one year.

    Parameters
    ----------
    people : sequence of PersonYear
        One entry per household member (primary first).  ``age``,
        ``opening`` and ``income`` must be filled in; ``withdrawals`` is
        written to.
    balances : sequence of AccountBundle
        Live post-growth balances, mutated in place.
    expenses_thai, expenses_overseas : float
        Remitted and non-remitted spending.
    prior_thai_tax : float
        Thai tax assessed on last year's income, payable this year.
    strategy : Strategy
        ``rrsp_first`` or ``nonreg_first``.

    Returns
    -------
    AllocationResult
        Unfunded amounts and the household depletion flag.
    """
    settings = settings or SimulationSettings()
    if strategy is Strategy.AUTO:
        raise ValueError("strategy must be resolved before allocation")
    rules = make_rules(settings, exchange_rate, index)
    holders = make_holders(people, balances)
    start_total = sum(b.total() for b in balances)

    benefits_net = 1.0 - withholding_rate("benefits", settings.base_year, settings.tax_tables)
    pension_left = [p.income.benefits * benefits_net for p in people]

    # Thai pool
    thai = expenses_thai + prior_thai_tax
    for i in range(len(people)):
        used = min(thai, pension_left[i])
        thai -= used
        pension_left[i] -= used
    for p in people:
        thai -= min(thai, p.income.other_taxable)
    unmet_thai = 0.0
    if thai > SHORTFALL_EPSILON:
        # RRSP safe limit binds the first pass only
        rules.safe_limit = settings.rrsp_safe_limit
        unmet_thai = fill_thai_shortfall(thai, holders, rules, strategy)
        if unmet_thai > SHORTFALL_EPSILON and rules.safe_limit:
            logger.debug("lifting RRSP safe limit for %.2f", unmet_thai)
            rules.safe_limit = False
            unmet_thai = fill_thai_shortfall(unmet_thai, holders, rules, strategy)
        rules.safe_limit = False

    # Overseas pool
    overseas = expenses_overseas
    for i in range(len(people)):
        overseas -= min(overseas, pension_left[i])
    for p in people:
        overseas -= min(overseas, p.income.other_non_remitted)
    unmet_overseas = 0.0
    if overseas > SHORTFALL_EPSILON:
        unmet_overseas = drain_fixed_order(overseas, holders, rules, strategy)

    for h in holders:
        apply_minimums(h, rules)

    end_total = sum(b.total() for b in balances)
    fell_below = start_total >= DEPLETION_BALANCE_THRESHOLD and end_total < DEPLETION_BALANCE_THRESHOLD
    depleted = (
        fell_below
        or unmet_thai > SHORTFALL_EPSILON
        or unmet_overseas > SHORTFALL_EPSILON
    )
    if depleted:
        logger.info(
            "household depleted: balance=%.2f unmet thai=%.2f overseas=%.2f",
            end_total, unmet_thai, unmet_overseas,
        )
    return AllocationResult(depleted=depleted, unmet_thai=unmet_thai, unmet_overseas=unmet_overseas)


def settle_deficit(
    deficit: float,
    people: Sequence[PersonYear],
    balances: Sequence[AccountBundle],
    strategy: Strategy = Strategy.NONREG_FIRST,
    exchange_rate: float = 25.0,
    index: float = 1.0,
    settings: Optional[SimulationSettings] = None,
) -> float:
    """Cover cash still owed after taxes with the fixed-order drain.

    Returns the amount that could not be drawn.
    """
    settings = settings or SimulationSettings()
    rules = make_rules(settings, exchange_rate, index)
    holders = make_holders(people, balances)
    return drain_fixed_order(deficit, holders, rules, strategy)


__all__ = [
    "allocate_withdrawals",
    "settle_deficit",
    "choose_source",
    "withdraw",
    "withdraw_grossed_up",
    "AllocationResult",
    "MAX_FILL_ITERATIONS",
    "SHORTFALL_EPSILON",
    "DEPLETION_BALANCE_THRESHOLD",
]
