from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import pytest

from energy_model.dataset.keys import Id
from energy_model.problem import PulpProblem, ProblemState, ProblemStateError
from energy_model.problem.base import Problem
from energy_model.time.probtime import ProbTime, TwoTime

_X0 = Id("Flow", "Cheap")
_X1 = Id("Flow", "Dear")
_CON = Id("Balance", "Demand")
_START = TwoTime(datetime(2025, 1, 1), datetime(2025, 1, 1))


@dataclass
class _TwoSources:
    """Cheap source capped at 1, dear source uncapped, together covering a demand of 3."""

    updates: list[ProbTime] = field(default_factory=list)

    def build(self, problem: Problem) -> None:
        problem.add_var(_X0, 1)
        problem.add_var(_X1, 1)
        problem.add_eq(_CON, 1)
        problem.make_fixable(_X1, 0)

    def set_constants(self, problem: Problem) -> None:
        problem.set_con_coeff(_CON, _X0, 0, 0, 1.0)
        problem.set_con_coeff(_CON, _X1, 0, 0, 1.0)
        problem.set_lb(_X0, 0, 0.0)
        problem.set_ub(_X0, 0, 1.0)
        problem.set_lb(_X1, 0, 0.0)
        problem.set_obj_coeff(_X0, 0, 1.0)
        problem.set_obj_coeff(_X1, 0, 2.0)
        problem.set_rhs_term(_CON, Id("RHSTerm", "Base"), 0, 1.0)
        problem.set_rhs_term(_CON, Id("RHSTerm", "Peak"), 0, 2.0)

    def update(self, problem: Problem, start: ProbTime) -> None:
        self.updates.append(start)


def _make_problem() -> tuple[PulpProblem, _TwoSources]:
    sources = _TwoSources()
    problem = PulpProblem([sources])
    problem.initialize()
    problem.update(_START)
    return problem, sources


def test_lifecycle_order_is_enforced() -> None:
    problem = PulpProblem([_TwoSources()])
    assert problem.state is ProblemState.UNBUILT

    with pytest.raises(ProblemStateError, match="state unbuilt"):
        problem.set_constants()
    with pytest.raises(ProblemStateError, match="Cannot update"):
        problem.update(_START)

    problem.build()
    assert problem.state is ProblemState.BUILT
    with pytest.raises(ProblemStateError, match="Cannot build"):
        problem.build()

    problem.set_constants()
    problem.update(_START)
    problem.update(_START)
    assert problem.state is ProblemState.READY


def test_objects_must_take_part_in_problems() -> None:
    with pytest.raises(TypeError, match="cannot take part in a problem"):
        PulpProblem([object()])


def test_solve_small_problem() -> None:
    problem, sources = _make_problem()

    assert problem.solve() == "Optimal"
    assert abs(problem.get_objective_value() - 5.0) < 1e-6
    assert abs(problem.get_var_value(_X0, 0) - 1.0) < 1e-6
    assert abs(problem.get_var_value(_X1, 0) - 2.0) < 1e-6
    assert abs(problem.get_con_dual(_CON, 0) - 2.0) < 1e-6
    assert problem.get_rhs(_CON, 0) == 3.0
    assert sources.updates == [_START]


def test_fixed_variable_changes_the_solution() -> None:
    problem, _ = _make_problem()

    problem.fix(_X1, 0, 2.5)
    problem.solve()
    assert abs(problem.get_objective_value() - 5.5) < 1e-6
    assert abs(problem.get_var_value(_X0, 0) - 0.5) < 1e-6

    problem.unfix(_X1, 0)
    problem.solve()
    assert abs(problem.get_objective_value() - 5.0) < 1e-6


def test_infeasible_status_is_reported() -> None:
    problem, _ = _make_problem()
    problem.set_ub(_X1, 0, 0.5)

    assert problem.solve() == "Infeasible"
    assert problem.status == "Infeasible"


def test_results_need_a_solve() -> None:
    problem, _ = _make_problem()

    with pytest.raises(ValueError, match="has not been solved"):
        problem.get_objective_value()


def test_structure_errors() -> None:
    problem, _ = _make_problem()

    with pytest.raises(ValueError, match="already exists"):
        problem.add_var(_X0, 1)
    with pytest.raises(ValueError, match="already exists"):
        problem.add_le(_CON, 1)
    with pytest.raises(KeyError):
        problem.set_ub(Id("Flow", "Missing"), 0, 1.0)
    with pytest.raises(IndexError):
        problem.set_obj_coeff(_X0, 1, 1.0)
    with pytest.raises(KeyError):
        problem.get_rhs_term(_CON, Id("RHSTerm", "Missing"), 0)
    with pytest.raises(ValueError, match="not fixable"):
        problem.fix(_X0, 0, 1.0)


def test_unset_entries_have_defaults() -> None:
    problem, _ = _make_problem()
    problem.add_var(Id("Flow", "Idle"), 2)

    assert problem.get_ub(Id("Flow", "Idle"), 1) is None
    assert problem.get_obj_coeff(Id("Flow", "Idle"), 1) == 0.0
    assert problem.get_con_coeff(_CON, Id("Flow", "Idle"), 0, 1) == 0.0
    assert problem.num_periods(Id("Flow", "Idle")) == 2
    assert problem.has_var(_X0) and problem.has_con(_CON)
