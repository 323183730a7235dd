from __future__ import annotations

import copy
import random
from datetime import datetime, timedelta

import pytest

from energy_model.compiler.compile import compact_dependencies, compile_elements, count_by_concept
from energy_model.compiler.errors import (
    DuplicateElementError,
    StructuralError,
    UnresolvableDependencyError,
)
from energy_model.dataset.builders import (
    add_arrow,
    add_balance,
    add_battery,
    add_capacity,
    add_commodity,
    add_cost,
    add_element,
    add_flow,
    add_horizon,
    add_power_transmission,
    add_rhs_term,
    add_start_equal_stop,
    add_storage,
)
from energy_model.dataset.keys import DataElement, ElementKey, Id
from energy_model.problem import PulpProblem
from energy_model.time.probtime import TwoTime


def _make_single_flow() -> list[DataElement]:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 3, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_element(elements, "Balance", "BaseBalance", "B", Commodity="Power")
    add_flow(elements, "F")
    add_arrow(elements, "A", 1.0, "F", "B", "Out")
    add_capacity(elements, "FCap", "Upper", 100.0, "F")
    return elements


def _make_system() -> list[DataElement]:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 4, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_commodity(elements, "Battery", "H")
    add_balance(elements, "North", "Power")
    add_balance(elements, "South", "Power")
    add_power_transmission(elements, "North", "South", 500.0, 0.97)
    add_battery(elements, "B1", "South", 2.0, 0.05, 100.0)
    add_start_equal_stop(elements, "B1Cycle", "BatteryStorage_B1")
    add_element(elements, "Param", "MWToGWhParam", "NorthDemand", Param=300.0)
    add_rhs_term(elements, "NorthDemand", "North", "Out")
    add_flow(elements, "Thermal")
    add_arrow(elements, "ThermalArrow", 1.0, "Thermal", "North", "In")
    add_element(elements, "Param", "MWToGWhParam", "ThermalCapParam", Param=1000.0)
    add_capacity(elements, "ThermalCap", "Upper", "ThermalCapParam", "Thermal")
    add_cost(elements, "ThermalFuel", 40.0, "Thermal")
    add_element(
        elements,
        "Loss",
        "SimpleLoss",
        "ThermalArrowLoss",
        WhichConcept="Arrow",
        WhichInstance="ThermalArrow",
        LossFactor=0.02,
        Utilization=0.5,
    )
    add_element(elements, "Metadata", "Storagehint", "B1Hint", Storage="BatteryStorage_B1", Period=86_400_000)
    add_element(elements, "Metadata", "Residualhint", "DemandHint", RHSTerm="NorthDemand", Residualhint="True")
    return elements


def test_outgoing_arrow_and_capacity() -> None:
    objects = compile_elements(_make_single_flow())

    assert sorted(objects) == [Id("Balance", "B"), Id("Flow", "F")]

    problem = PulpProblem(objects)
    problem.build()
    problem.set_constants()
    for t in range(3):
        assert problem.get_con_coeff(Id("Balance", "B"), Id("Flow", "F"), t, t) == -1.0
        assert problem.get_ub(Id("Flow", "F"), t) == 100.0
        assert problem.get_lb(Id("Flow", "F"), t) == 0.0


def test_missing_flow_is_the_only_root_cause() -> None:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 2, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_element(elements, "Balance", "BaseBalance", "B", Commodity="Power")
    add_arrow(elements, "A", 1.0, "F2", "B", "In")
    add_element(
        elements,
        "Loss",
        "SimpleLoss",
        "ALoss",
        WhichConcept="Arrow",
        WhichInstance="A",
        LossFactor=0.1,
        Utilization=1.0,
    )

    with pytest.raises(UnresolvableDependencyError) as exc_info:
        compile_elements(elements)

    error = exc_info.value
    assert [cause.elkey for cause in error.root_causes] == [ElementKey("Arrow", "BaseArrow", "A")]
    assert error.root_causes[0].missing == (Id("Flow", "F2"),)
    assert "missing element Flow:F2" in str(error)
    assert "ALoss" not in str(error)
    assert set(error.failed) == {
        ElementKey("Arrow", "BaseArrow", "A"),
        ElementKey("Loss", "SimpleLoss", "ALoss"),
    }
    assert error.total == len(elements)


def test_every_missing_reference_of_an_element_is_reported() -> None:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 2, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_arrow(elements, "A", 1.0, "F2", "B2", "In")

    with pytest.raises(UnresolvableDependencyError) as exc_info:
        compile_elements(elements)

    message = str(exc_info.value)
    assert exc_info.value.root_causes[0].missing == (Id("Flow", "F2"), Id("Balance", "B2"))
    assert "missing element Flow:F2 referenced by Arrow:BaseArrow:A" in message
    assert "missing element Balance:B2 referenced by Arrow:BaseArrow:A" in message
    assert "alternatives" not in message


def test_power_balance_is_feasible_without_demand() -> None:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 2, timedelta(hours=1))
    add_commodity(elements, "Power", "H")
    add_balance(elements, "PowerBalance", "Power")

    objects = compile_elements(elements)

    assert Id("Flow", "SlackVarPowerBalance") in objects
    problem = PulpProblem(objects)
    problem.initialize()
    problem.update(TwoTime(datetime(2025, 1, 1), datetime(2025, 1, 1)))
    assert problem.get_con_coeff(
        Id("Balance", "PowerBalance"), Id("Flow", "SlackVarPowerBalance"), 0, 0
    ) == -1.0
    assert problem.solve() == "Optimal"


def test_constant_terms_survive_repeated_updates() -> None:
    problem = PulpProblem(compile_elements(_make_system()))
    problem.initialize()
    snapshot = copy.deepcopy(
        (problem._coeffs, problem._rhs, problem._lb, problem._ub, problem._obj)
    )

    start = TwoTime(datetime(2025, 1, 1), datetime(2025, 1, 1))
    for step in range(4):
        problem.update(start + timedelta(hours=7 * step))

        assert problem._coeffs == snapshot[0]
        assert problem._rhs == snapshot[1]
        assert problem._lb == snapshot[2]
        assert problem._ub == snapshot[3]
        assert problem._obj == snapshot[4]

    north_demand = problem.get_rhs_term(Id("Balance", "North"), Id("RHSTerm", "NorthDemand"), 0)
    assert north_demand == pytest.approx(0.3)
    assert problem.solve() == "Optimal"


def test_compile_is_deterministic() -> None:
    first = compile_elements(_make_system())
    second = compile_elements(_make_system())

    assert list(first) == list(second)
    assert first == second


def test_compile_is_independent_of_element_order() -> None:
    elements = _make_system()
    expected = compile_elements(elements)

    rng = random.Random(7)
    orders = [list(reversed(elements))]
    for _ in range(5):
        shuffled = list(elements)
        rng.shuffle(shuffled)
        orders.append(shuffled)

    for order in orders:
        assert compile_elements(order) == expected


def test_compile_system_top_level_objects() -> None:
    objects = compile_elements(_make_system())

    assert count_by_concept(objects) == {
        "Balance": 3,
        "BoundaryCondition": 1,
        "Flow": 6,
        "Storage": 1,
    }
    thermal = objects[Id("Flow", "Thermal")]
    assert [cost.id for cost in thermal.costs] == [Id("Cost", "ThermalFuel")]
    assert thermal.arrows[0].loss is not None
    storage = objects[Id("Storage", "BatteryStorage_B1")]
    assert storage.metadata == {"Storagehint": timedelta(days=1)}
    north = objects[Id("Balance", "North")]
    assert north.rhs_terms[0].metadata == {"Residualhint": True}


def test_compile_rejects_duplicate_elements() -> None:
    elements = _make_single_flow()
    elements.append(elements[0])

    with pytest.raises(DuplicateElementError, match="Duplicate data elements: Horizon:SequentialHorizon:H"):
        compile_elements(elements)


def test_dependency_map_covers_every_lookup() -> None:
    elements = _make_single_flow()

    objects, deps = compile_elements(elements, deps=True)

    assert len(objects) == 2
    positions = {element.instance: index for index, element in enumerate(elements)}
    assert deps[positions["H"]] == []
    assert deps[positions["Power"]] == [positions["H"]]
    assert deps[positions["B"]] == [positions["Power"]]
    assert deps[positions["A"]] == sorted([positions["F"], positions["B"]])
    assert deps[positions["FCap"]] == [positions["F"]]


def test_compact_dependencies_skips_self_references() -> None:
    elements = [DataElement("Flow", "BaseFlow", "F")]
    compact = compact_dependencies(elements, {ElementKey("Flow", "BaseFlow", "F"): (Id("Flow", "F"),)})
    assert compact == {0: []}


def test_flow_without_arrows_fails_assembly() -> None:
    elements: list[DataElement] = []
    add_flow(elements, "Lonely")

    with pytest.raises(StructuralError, match="No arrows for Flow:Lonely"):
        compile_elements(elements)


def test_storage_needs_two_periods() -> None:
    elements: list[DataElement] = []
    add_horizon(elements, "H", 1, timedelta(hours=1))
    add_commodity(elements, "Water", "H")
    add_element(elements, "Balance", "BaseBalance", "Reservoir", Commodity="Water")
    add_storage(elements, "Lake", "Reservoir")
    add_capacity(elements, "LakeCap", "Upper", 10.0, "Lake", "Storage")

    with pytest.raises(StructuralError, match="at least 2 periods"):
        compile_elements(elements)


def test_second_upper_capacity_is_rejected() -> None:
    elements = _make_single_flow()
    add_capacity(elements, "FCap2", "Upper", 50.0, "F")

    with pytest.raises(StructuralError, match="already has an upper bound"):
        compile_elements(elements)


def test_rhs_term_requires_durational_param() -> None:
    elements = _make_single_flow()
    add_rhs_term(elements, "Demand", "B", "Out", param=5.0)

    with pytest.raises(StructuralError, match="must be durational"):
        compile_elements(elements)
