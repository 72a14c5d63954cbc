"""Unit tests for the taxes module.

These tests verify Thai progressive tax, the marginal-rate lookups used by
the withdrawal allocator, income splitting, the OAS clawback and the
per-person tax record, using the embedded 2025 tables.
"""

import copy
import math

import pytest

from crossborder_planner.calculators import taxes as tax_calc
from crossborder_planner.models import IncomeRecord, WithdrawalRecord


def test_thai_tax_zero_base():
    assert tax_calc.compute_thai_tax(0.0) == 0.0
    assert tax_calc.compute_thai_tax(-100.0) == 0.0


def test_thai_tax_within_allowance():
    """60 000 THB of income is covered by the personal allowance."""
    assert tax_calc.compute_thai_tax(2400.0, exchange_rate=25.0) == 0.0


def test_thai_tax_example():
    """20 000 CAD = 500 000 THB, 440 000 THB taxable: 7 500 + 14 000 THB."""
    tax = tax_calc.compute_thai_tax(20000, exchange_rate=25.0)
    assert math.isclose(tax, 21500 / 25.0, rel_tol=1e-9)


def test_thai_tax_in_thb():
    assert math.isclose(tax_calc.compute_thai_tax_thb(1_000_000), 103000.0, rel_tol=1e-9)


def test_thai_tax_monotonic():
    bases = [i * 500.0 for i in range(0, 600)]
    taxes = [tax_calc.compute_thai_tax(b) for b in bases]
    assert all(b >= a for a, b in zip(taxes, taxes[1:]))


def test_thai_tax_slope_equals_bracket_rate():
    """Between 200k and 250k THB taxable the slope is the 5% rate."""
    lo = (60000 + 200000) / 25.0
    hi = (60000 + 250000) / 25.0
    slope = (tax_calc.compute_thai_tax(hi) - tax_calc.compute_thai_tax(lo)) / (hi - lo)
    assert slope == pytest.approx(0.05)


def test_bracket_index_widens_brackets():
    """Doubling bracket limits moves 440k THB taxable into the 5% band."""
    tax = tax_calc.compute_thai_tax(20000, exchange_rate=25.0, index=2.0)
    assert math.isclose(tax, 140000 * 0.05 / 25.0, rel_tol=1e-9)


def test_income_splitting_never_costs_more():
    for base in [0.0, 5000.0, 12000.0, 40000.0, 90000.0, 250000.0]:
        split = tax_calc.compute_split_thai_tax(base)
        unsplit = tax_calc.compute_thai_tax(base)
        assert split <= unsplit + 1e-9


def test_income_splitting_strictly_lower_across_brackets():
    assert tax_calc.compute_split_thai_tax(40000) < tax_calc.compute_thai_tax(40000)


def test_marginal_rate_at_bracket_limit():
    """Exactly 150 000 THB taxable is charged the next bracket's rate."""
    income = (60000 + 150000) / 25.0
    assert tax_calc.thai_marginal_rate(income) == 0.05
    assert tax_calc.thai_marginal_rate(income - 1.0) == 0.0


def test_bracket_room():
    assert math.isclose(tax_calc.thai_bracket_room(0.0), 8400.0)
    income = (60000 + 150000) / 25.0
    assert math.isclose(tax_calc.thai_bracket_room(income), 6000.0)
    assert math.isinf(tax_calc.thai_bracket_room(1_000_000.0))


def test_custom_tables():
    tables = copy.deepcopy(tax_calc._load_tax_tables())
    tables["2025"]["thailand"] = {
        "personal_allowance": 0,
        "brackets": [{"start": 0, "end": None, "rate": 0.10}],
    }
    assert math.isclose(tax_calc.compute_thai_tax(1000, tax_tables=tables), 100.0)


def test_missing_table_year_uses_latest():
    assert tax_calc.year_tables(2040) == tax_calc.year_tables(2025)


def test_clawback_partial_and_capped():
    income = IncomeRecord(oas=8881, other_taxable=141119)
    clawback = tax_calc.compute_oas_clawback(income, WithdrawalRecord())
    assert math.isclose(clawback, (150000 - 90997) * 0.15, rel_tol=1e-9)

    rich = IncomeRecord(oas=8881, other_taxable=300000)
    assert tax_calc.compute_oas_clawback(rich, WithdrawalRecord()) == 8881

    modest = IncomeRecord(oas=8881, cpp=12000)
    assert tax_calc.compute_oas_clawback(modest, WithdrawalRecord()) == 0.0


def test_world_income_counts_half_of_nonreg():
    wd = WithdrawalRecord(nonreg=100000, rrsp=10000, tfsa=50000)
    assert tax_calc.world_income(IncomeRecord(), wd) == 60000


def test_person_tax():
    income = IncomeRecord(cpp=10000, oas=8881, pension=5000)
    wd = WithdrawalRecord(rrsp=10000, wht_deducted=1500)
    tax = tax_calc.compute_person_tax(income, wd)
    assert tax.clawback == 0.0
    assert tax.thailand == 0.0
    assert tax.canada == pytest.approx(23881 * 0.15 + 1500)
    assert tax.total == pytest.approx(tax.canada)


def test_person_tax_thai_component():
    income = IncomeRecord(other_taxable=5000)
    wd = WithdrawalRecord(nonreg=15000, thai_taxable_remittance=15000)
    tax = tax_calc.compute_person_tax(income, wd)
    assert tax.thailand == pytest.approx(tax_calc.compute_thai_tax(20000))
    assert tax.canada == 0.0


def test_household_thai_tax_splitting():
    unsplit = tax_calc.household_thai_tax([20000, 0])
    assert unsplit[0] == pytest.approx(860.0)
    assert unsplit[1] == 0.0

    split = tax_calc.household_thai_tax([20000, 0], income_splitting=True)
    assert sum(split) == pytest.approx(160.0)
    assert split[1] == 0.0


def test_household_thai_tax_single_person_ignores_splitting():
    assert tax_calc.household_thai_tax([20000], income_splitting=True) == [
        pytest.approx(860.0)
    ]
