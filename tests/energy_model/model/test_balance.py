from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from energy_model.compiler.compile import compile_elements
from energy_model.compiler.errors import StructuralError
from energy_model.dataset.builders import (
    add_arrow,
    add_commodity,
    add_cost,
    add_element,
    add_exogen_balance,
    add_flow,
    add_horizon,
    add_rhs_term,
)
from energy_model.dataset.keys import DataElement, Id
from energy_model.problem import PulpProblem
from energy_model.time.probtime import TwoTime

_BALANCE = Id("Balance", "B")
_START = TwoTime(datetime(2025, 1, 1), datetime(2025, 1, 1))


def _make_elements() -> list[DataElement]:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 3, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_element(elements, "Balance", "BaseBalance", "B", Commodity="Power")
    return elements


def _add_series_demand(elements: list[DataElement]) -> None:
    add_element(
        elements,
        "TimeIndex",
        "VectorTimeIndex",
        "DemandIndex",
        Vector=[datetime(2025, 1, 1), datetime(2025, 1, 1, 2)],
    )
    add_element(elements, "TimeValues", "VectorTimeValues", "DemandValues", Vector=[100.0, 200.0])
    add_element(
        elements,
        "TimeVector",
        "InfiniteTimeVector",
        "DemandLevel",
        TimeIndex="DemandIndex",
        TimeValues="DemandValues",
    )
    add_element(elements, "Param", "MWToGWhSeriesParam", "Demand", Level="DemandLevel", Profile=1.0)
    add_rhs_term(elements, "Demand", "B", "Out")


def test_constant_rhs_terms_are_signed_by_direction() -> None:
    elements = _make_elements()
    add_element(elements, "Param", "MWToGWhParam", "Load", Param=500.0)
    add_element(elements, "Param", "MWToGWhParam", "Inflow", Param=200.0)
    add_rhs_term(elements, "Load", "B", "Out")
    add_rhs_term(elements, "Inflow", "B", "In")

    problem = PulpProblem(compile_elements(elements))
    problem.initialize()

    for t in range(3):
        assert abs(problem.get_rhs_term(_BALANCE, Id("RHSTerm", "Load"), t) - 0.5) < 1e-9
        assert abs(problem.get_rhs_term(_BALANCE, Id("RHSTerm", "Inflow"), t) + 0.2) < 1e-9
        assert abs(problem.get_rhs(_BALANCE, t) - 0.3) < 1e-9


def test_time_series_rhs_term_is_written_on_update() -> None:
    elements = _make_elements()
    _add_series_demand(elements)

    problem = PulpProblem(compile_elements(elements))
    problem.initialize()
    assert not problem.has_rhs_term(_BALANCE, Id("RHSTerm", "Demand"), 0)

    problem.update(_START)

    values = [problem.get_rhs_term(_BALANCE, Id("RHSTerm", "Demand"), t) for t in range(3)]
    assert [round(value, 9) for value in values] == [0.1, 0.1, 0.2]


def test_update_follows_the_start_time() -> None:
    elements = _make_elements()
    _add_series_demand(elements)
    problem = PulpProblem(compile_elements(elements))
    problem.initialize()

    problem.update(_START + timedelta(hours=1))

    values = [problem.get_rhs_term(_BALANCE, Id("RHSTerm", "Demand"), t) for t in range(3)]
    assert [round(value, 9) for value in values] == [0.1, 0.2, 0.2]


def test_rhs_terms_are_not_allowed_on_exogen_balances() -> None:
    elements = _make_elements()
    add_exogen_balance(elements, "Market", "Power", 40.0)
    add_element(elements, "Param", "MWToGWhParam", "Load", Param=500.0)
    add_rhs_term(elements, "Load", "Market", "Out")

    with pytest.raises(StructuralError, match="is exogenous"):
        compile_elements(elements)


def test_flow_cost_direction() -> None:
    elements = _make_elements()
    add_flow(elements, "Gen")
    add_arrow(elements, "GenArrow", 1.0, "Gen", "B", "In")
    add_cost(elements, "Fuel", 30.0, "Gen")
    add_cost(elements, "Subsidy", 5.0, "Gen", direction="Out")

    problem = PulpProblem(compile_elements(elements))
    problem.initialize()

    assert problem.get_obj_coeff(Id("Flow", "Gen"), 0) == 25.0


def test_durational_cost_param_is_rejected() -> None:
    elements = _make_elements()
    add_flow(elements, "Gen")
    add_arrow(elements, "GenArrow", 1.0, "Gen", "B", "In")
    add_element(elements, "Param", "MWToGWhParam", "PerPeriod", Param=1.0)
    add_cost(elements, "Fuel", "PerPeriod", "Gen")

    with pytest.raises(StructuralError, match="must not be durational"):
        compile_elements(elements)


def test_balance_waits_for_commodity_and_horizon() -> None:
    elements = _make_elements()
    elements.reverse()

    objects = compile_elements(elements)

    assert objects[_BALANCE].horizon is not None
    assert objects[_BALANCE].horizon.num_periods == 3
