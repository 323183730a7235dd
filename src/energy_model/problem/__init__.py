"""Numeric optimisation problems populated by compiled model objects."""

from energy_model.problem.base import Problem, ProblemState, ProblemStateError
from energy_model.problem.pulp_problem import PulpProblem

__all__ = ["Problem", "ProblemState", "ProblemStateError", "PulpProblem"]
