from __future__ import annotations

from datetime import datetime, timedelta

from energy_model.compiler.compile import compile_elements, count_by_concept
from energy_model.dataset.builders import (
    add_arrow,
    add_balance,
    add_battery,
    add_commodity,
    add_exogen_balance,
    add_flow,
    add_horizon,
    add_power_transmission,
    add_price,
    add_scenario_time_period,
)
from energy_model.dataset.keys import DataElement, Id
from energy_model.problem import PulpProblem


def test_power_balance_gets_slack_flow() -> None:
    elements: list[DataElement] = []
    add_balance(elements, "North", "Power")

    assert [(element.concept, element.instance) for element in elements] == [
        ("Balance", "North"),
        ("Flow", "SlackVarNorth"),
        ("Arrow", "SlackArrowNorth"),
    ]
    assert elements[2].value["Direction"] == "Out"
    assert elements[2].value["Conversion"] == 1.0


def test_other_balances_have_no_slack() -> None:
    elements: list[DataElement] = []
    add_balance(elements, "Reservoir", "Water")

    assert len(elements) == 1


def test_transmission_and_battery_compile() -> None:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 3, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_commodity(elements, "Battery", "H")
    add_balance(elements, "North", "Power")
    add_balance(elements, "South", "Power")
    add_power_transmission(elements, "North", "South", 500.0, 0.97)
    add_battery(elements, "B1", "South", 2.0, 0.05, 100.0)

    objects = compile_elements(elements)

    assert Id("Flow", "North->South") in objects
    assert Id("Storage", "BatteryStorage_B1") in objects
    assert count_by_concept(objects) == {"Balance": 3, "Flow": 5, "Storage": 1}
    assert [arrow.id.instance for arrow in objects[Id("Flow", "North->South")].arrows] == [
        "North->SouthFrom",
        "North->SouthTo",
    ]


def test_price_and_scenario_period_elements() -> None:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 2, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_balance(elements, "Home", "Power")
    add_scenario_time_period(elements, "ScenarioTimePeriod", datetime(1991, 1, 1), datetime(1992, 1, 1))
    add_price(elements, "Spot", 40.0)
    add_exogen_balance(elements, "Market", "Power", "Spot")
    add_flow(elements, "Import")
    add_arrow(elements, "ImportFromMarket", 1.0, "Import", "Market", "Out")
    add_arrow(elements, "ImportToHome", 1.0, "Import", "Home", "In")

    problem = PulpProblem(compile_elements(elements))
    problem.initialize()

    assert problem.get_obj_coeff(Id("Flow", "Import"), 1) == 40.0
