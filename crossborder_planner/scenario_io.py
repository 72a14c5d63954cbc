"""Scenario loading and saving.

Scenarios arrive from forms or saved JSON files with missing or malformed
fields.  :func:`scenario_from_dict` is the only place values are coerced:
non-numeric entries become zero or a documented fallback, unknown item kinds
are dropped and unknown owners fall back to the primary person.  The
calculators can then assume a well-formed :class:`HouseholdScenario`.

A scenario written by :func:`scenario_to_dict` reads back unchanged.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .models import (
    ACCOUNT_KEYS,
    DEFAULT_RETURNS,
    AccountBundle,
    HouseholdScenario,
    IncomeItem,
    ItemKind,
    Person,
    Strategy,
)

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE_RATE = 25.0
DEFAULT_MAX_AGE = 95
DEFAULT_INFLATION = 0.025
DEFAULT_RETIREMENT_AGE = 60
DEFAULT_BIRTH_YEAR = 1980
DEFAULT_START_AGE = 65
DEFAULT_YEARS_IN_CANADA = 40.0
NO_END_AGE = 110

_OWNERS = ("user", "spouse", "joint")


def _number(value: Any, default: float = 0.0) -> float:
    """``value`` as a float, or ``default`` when missing or not a number."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def _positive(value: Any, default: float) -> float:
    """Like :func:`_number` but zero and negatives also take the fallback."""
    number = _number(value, default)
    return number if number > 0 else default


def _int(value: Any, default: int) -> int:
    return int(_positive(value, default))


def _assets(data: Optional[Mapping]) -> AccountBundle:
    data = data or {}
    return AccountBundle(**{k: max(0.0, _number(data.get(k))) for k in ACCOUNT_KEYS})


def _item(data: Mapping) -> Optional[IncomeItem]:
    try:
        kind = ItemKind(data.get("kind", data.get("type")))
    except ValueError:
        logger.debug("dropping item with unknown kind %r", data.get("kind", data.get("type")))
        return None
    owner = data.get("owner")
    if owner is not None and owner not in _OWNERS:
        owner = "user"
    end_age = int(_number(data.get("end_age")))
    return IncomeItem(
        kind=kind,
        amount=_number(data.get("amount")),
        start_age=int(_number(data.get("start_age"))),
        end_age=end_age if end_age > 0 else NO_END_AGE,
        cola=_number(data.get("cola")),
        owner=owner,
        description=str(data.get("description") or ""),
    )


def _person(data: Optional[Mapping]) -> Person:
    data = data or {}
    items = [it for it in (_item(d) for d in data.get("items") or []) if it is not None]
    return Person(
        birth_year=_int(data.get("birth_year"), DEFAULT_BIRTH_YEAR),
        cpp_start_age=_int(data.get("cpp_start_age"), DEFAULT_START_AGE),
        oas_start_age=_int(data.get("oas_start_age"), DEFAULT_START_AGE),
        cpp_at_65=max(0.0, _number(data.get("cpp_at_65"))),
        years_in_canada=_number(data.get("years_in_canada"), DEFAULT_YEARS_IN_CANADA),
        assets=_assets(data.get("assets")),
        items=items,
    )


def _rates(data: Optional[Mapping], defaults: Mapping[str, float]) -> Dict[str, float]:
    data = data or {}
    return {k: _number(data.get(k), defaults.get(k, 0.0)) for k in ACCOUNT_KEYS}


def scenario_from_dict(data: Mapping) -> HouseholdScenario:
    """Build a validated scenario from a plain dictionary.

    Raises ``ValueError`` for an unknown withdrawal strategy name.
    """
    spouse_data = data.get("spouse")
    return HouseholdScenario(
        user=_person(data.get("user")),
        spouse=_person(spouse_data) if spouse_data else None,
        has_spouse=bool(data.get("has_spouse", False)),
        retirement_age=_int(data.get("retirement_age"), DEFAULT_RETIREMENT_AGE),
        returns=_rates(data.get("returns"), DEFAULT_RETURNS),
        stdevs=_rates(data.get("stdevs"), {}),
        withdrawal_strategy=Strategy(data.get("withdrawal_strategy") or Strategy.AUTO.value),
        inflation=_number(data.get("inflation"), DEFAULT_INFLATION),
        max_age=_int(data.get("max_age"), DEFAULT_MAX_AGE),
        exchange_rate=_positive(data.get("exchange_rate"), DEFAULT_EXCHANGE_RATE),
    )


def _item_to_dict(item: IncomeItem) -> Dict[str, Any]:
    return {
        "kind": item.kind.value,
        "amount": item.amount,
        "start_age": item.start_age,
        "end_age": item.end_age,
        "cola": item.cola,
        "owner": item.owner,
        "description": item.description,
    }


def _person_to_dict(person: Person) -> Dict[str, Any]:
    return {
        "birth_year": person.birth_year,
        "cpp_start_age": person.cpp_start_age,
        "oas_start_age": person.oas_start_age,
        "cpp_at_65": person.cpp_at_65,
        "years_in_canada": person.years_in_canada,
        "assets": person.assets.as_dict(),
        "items": [_item_to_dict(it) for it in person.items],
    }


def scenario_to_dict(scenario: HouseholdScenario) -> Dict[str, Any]:
    """Plain, JSON-serialisable form of ``scenario``."""
    return {
        "retirement_age": scenario.retirement_age,
        "max_age": scenario.max_age,
        "inflation": scenario.inflation,
        "exchange_rate": scenario.exchange_rate,
        "withdrawal_strategy": Strategy(scenario.withdrawal_strategy).value,
        "returns": dict(scenario.returns),
        "stdevs": dict(scenario.stdevs),
        "has_spouse": scenario.has_spouse,
        "user": _person_to_dict(scenario.user),
        "spouse": _person_to_dict(scenario.spouse) if scenario.spouse is not None else None,
    }


def load_scenario(path: Union[str, Path]) -> HouseholdScenario:
    """Read a scenario from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return scenario_from_dict(data)


def save_scenario(scenario: HouseholdScenario, path: Union[str, Path]) -> None:
    """Write ``scenario`` to a JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(scenario_to_dict(scenario), f, indent=2)


def load_scenarios(data: Mapping) -> List[HouseholdScenario]:
    """Read an ``{"a": ..., "b": ...}`` pair; a missing ``b`` copies ``a``."""
    a = scenario_from_dict(data.get("a") or {})
    b = scenario_from_dict(data.get("b") or data.get("a") or {})
    return [a, b]


__all__ = [
    "scenario_from_dict",
    "scenario_to_dict",
    "load_scenario",
    "save_scenario",
    "load_scenarios",
]
