from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from energy_model.compiler.compile import compile_elements
from energy_model.compiler.errors import StructuralError
from energy_model.compiler.inclusion import include_elements
from energy_model.compiler.builtin import default_registry
from energy_model.dataset.keys import DataElement, Id
from energy_model.time.horizons import SequentialHorizon, finest_horizon
from energy_model.time.probtime import ConstantTime, FixedDataTwoTime, TwoTime

_HOUR = timedelta(hours=1)


def test_sequential_horizon_periods() -> None:
    horizon = SequentialHorizon(((2, _HOUR), (1, 2 * _HOUR)))

    assert horizon.num_periods == 3
    assert list(horizon.T) == [0, 1, 2]
    assert horizon.duration == 4 * _HOUR
    assert horizon.get_time_delta(2) == 2 * _HOUR
    assert horizon.get_start_duration(2) == 2 * _HOUR
    assert horizon.has_constant_durations()
    with pytest.raises(IndexError):
        horizon.get_time_delta(3)


def test_start_time_advances_problem_time() -> None:
    horizon = SequentialHorizon.uniform(4, _HOUR)
    start = TwoTime(datetime(2025, 1, 1), datetime(1991, 1, 1))

    assert horizon.get_start_time(3, start) == TwoTime(datetime(2025, 1, 1, 3), datetime(1991, 1, 1, 3))
    assert horizon.get_start_time(3, ConstantTime()) == ConstantTime()


def test_fixed_data_time_only_moves_scenario_time() -> None:
    start = FixedDataTwoTime(datetime(2025, 1, 1), datetime(1991, 1, 1))

    moved = start + timedelta(days=2)

    assert moved.datatime == datetime(2025, 1, 1)
    assert moved.scenariotime == datetime(1991, 1, 3)


def test_subperiods_of_a_coarser_horizon() -> None:
    coarse = SequentialHorizon.uniform(2, 2 * _HOUR)
    fine = SequentialHorizon.uniform(4, _HOUR)

    assert coarse.get_subperiods(fine, 1) == range(2, 4)
    assert fine.get_subperiods(fine, 2) == range(2, 3)
    assert finest_horizon([coarse, fine]) is fine


def test_misaligned_subperiods_are_rejected() -> None:
    coarse = SequentialHorizon.uniform(1, timedelta(minutes=90))
    fine = SequentialHorizon.uniform(2, _HOUR)

    with pytest.raises(StructuralError, match="does not align"):
        coarse.get_subperiods(fine, 0)


@pytest.mark.parametrize("periods", [(), ((0, _HOUR),), ((1, timedelta(0)),)])
def test_invalid_horizons(periods: tuple[tuple[int, timedelta], ...]) -> None:
    with pytest.raises(StructuralError):
        SequentialHorizon(periods)


def test_horizon_element_with_period_groups() -> None:
    elements = [
        DataElement("Horizon", "SequentialHorizon", "Mixed", {"Periods": [[2, 3_600_000], [1, 7_200_000]]}),
        DataElement("Horizon", "SequentialHorizon", "Uniform", {"NumPeriods": 24, "Period": 3_600_000}),
    ]

    state = include_elements(elements, default_registry())

    assert state.lowlevel[Id("Horizon", "Mixed")] == SequentialHorizon(((2, _HOUR), (1, 2 * _HOUR)))
    assert state.lowlevel[Id("Horizon", "Uniform")].num_periods == 24


def test_horizon_element_rejects_malformed_groups() -> None:
    elements = [DataElement("Horizon", "SequentialHorizon", "Bad", {"Periods": [[2]]})]

    with pytest.raises(StructuralError, match="count, milliseconds"):
        compile_elements(elements)
