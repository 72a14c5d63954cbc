"""Tests for scenario loading, coercion and persistence."""

import json

import pytest

from crossborder_planner import scenario_io
from crossborder_planner.models import (
    AccountBundle,
    HouseholdScenario,
    IncomeItem,
    ItemKind,
    Person,
    Strategy,
)


def _full_scenario() -> HouseholdScenario:
    user = Person(
        birth_year=1962,
        cpp_start_age=70,
        oas_start_age=67,
        cpp_at_65=11000.0,
        years_in_canada=35.0,
        assets=AccountBundle(rrsp=400000.0, tfsa=90000.0, nonreg=120000.0, lif=30000.0),
        items=[
            IncomeItem(ItemKind.EXPENSE_THAI, 36000.0, start_age=0, end_age=110, cola=0.02, owner="joint"),
            IncomeItem(ItemKind.PENSION, 15000.0, start_age=65, end_age=90, owner="user", description="DB plan"),
        ],
    )
    spouse = Person(birth_year=1965, assets=AccountBundle(tfsa=50000.0))
    return HouseholdScenario(
        user=user,
        spouse=spouse,
        has_spouse=True,
        retirement_age=62,
        returns={"rrsp": 0.05, "tfsa": 0.05, "nonreg": 0.04, "lif": 0.045},
        stdevs={"rrsp": 0.1, "tfsa": 0.1, "nonreg": 0.12, "lif": 0.08},
        withdrawal_strategy=Strategy.RRSP_FIRST,
        inflation=0.02,
        max_age=92,
        exchange_rate=24.5,
    )


def test_round_trip_dict():
    scenario = _full_scenario()
    assert scenario_io.scenario_from_dict(scenario_io.scenario_to_dict(scenario)) == scenario


def test_round_trip_file(tmp_path):
    scenario = _full_scenario()
    path = tmp_path / "scenario.json"
    scenario_io.save_scenario(scenario, path)
    assert json.loads(path.read_text(encoding="utf-8"))["withdrawal_strategy"] == "rrsp_first"
    assert scenario_io.load_scenario(path) == scenario


def test_empty_dict_uses_fallbacks():
    scenario = scenario_io.scenario_from_dict({})
    assert scenario.exchange_rate == 25.0
    assert scenario.max_age == 95
    assert scenario.inflation == 0.025
    assert scenario.retirement_age == 60
    assert scenario.user.birth_year == 1980
    assert scenario.user.assets.total() == 0.0
    assert scenario.spouse is None
    assert scenario.withdrawal_strategy is Strategy.AUTO
    assert scenario.returns["lif"] == 0.05


def test_malformed_numbers_coerced():
    scenario = scenario_io.scenario_from_dict(
        {
            "exchange_rate": "abc",
            "max_age": 0,
            "inflation": None,
            "retirement_age": "62",
            "user": {"assets": {"rrsp": "1000", "tfsa": "n/a", "nonreg": float("nan")}},
        }
    )
    assert scenario.exchange_rate == 25.0
    assert scenario.max_age == 95
    assert scenario.inflation == 0.025
    assert scenario.retirement_age == 62
    assert scenario.user.assets.rrsp == 1000.0
    assert scenario.user.assets.tfsa == 0.0
    assert scenario.user.assets.nonreg == 0.0


def test_zero_inflation_kept():
    assert scenario_io.scenario_from_dict({"inflation": 0}).inflation == 0.0


def test_items_cleaned():
    data = {
        "user": {
            "items": [
                {"kind": "expense_thai", "amount": "1200", "end_age": 0},
                {"kind": "lottery", "amount": 5},
                {"type": "income", "amount": 300, "owner": "neighbour"},
            ]
        }
    }
    items = scenario_io.scenario_from_dict(data).user.items
    assert len(items) == 2
    assert items[0].kind is ItemKind.EXPENSE_THAI
    assert items[0].amount == 1200.0
    assert items[0].end_age == 110
    assert items[1].kind is ItemKind.INCOME
    assert items[1].owner == "user"


def test_unknown_strategy_raises():
    with pytest.raises(ValueError):
        scenario_io.scenario_from_dict({"withdrawal_strategy": "yolo"})


def test_load_scenarios_copies_a_into_missing_b():
    a, b = scenario_io.load_scenarios({"a": {"retirement_age": 63}})
    assert a == b
    assert a is not b
    assert b.retirement_age == 63


def test_saved_partner_switched_off_adds_no_spending():
    from crossborder_planner.calculators import engine

    data = {
        "retirement_age": 65,
        "max_age": 65,
        "has_spouse": False,
        "user": {"birth_year": 1960, "years_in_canada": 0, "assets": {"tfsa": 100000}},
        "spouse": {
            "birth_year": 1962,
            "items": [{"kind": "expense_thai", "amount": 30000, "owner": "spouse"}],
        },
    }
    (result,) = engine.simulate_scenario(scenario_io.scenario_from_dict(data))
    assert result.spouse is None
    assert result.expenses_thai == 0.0
