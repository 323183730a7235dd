from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable, Mapping
from typing import Any, Literal

import pulp

from energy_model.dataset.keys import Id
from energy_model.problem.base import Problem

logger = logging.getLogger(__name__)

Sense = Literal["==", "<=", ">="]

_ILLEGAL_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def _lp_name(prefix: str, object_id: Id, t: int, serial: int) -> str:
    base = f"{object_id.concept}_{object_id.instance}"
    return f"{prefix}{serial}_{_ILLEGAL_NAME_CHARS.sub('_', base)}_{t}"


class PulpProblem(Problem):
    """Problem backed by pulp and the bundled CBC solver.

    Structure and coefficients live in plain maps so they can be rewritten
    between solves; a fresh ``pulp.LpProblem`` is assembled on every ``solve``.
    """

    def __init__(
        self,
        objects: Mapping[Id, Any] | Iterable[Any],
        *,
        name: str = "energy_model",
        msg: bool = False,
        time_limit_seconds: float | None = None,
    ) -> None:
        super().__init__(objects)
        self._name = name
        self._msg = msg
        self._time_limit_seconds = time_limit_seconds
        self._warmstart = False

        self._vars: dict[Id, list[pulp.LpVariable]] = {}
        self._lb: dict[tuple[Id, int], float] = {}
        self._ub: dict[tuple[Id, int], float] = {}
        self._obj: dict[tuple[Id, int], float] = {}
        self._fixable: set[tuple[Id, int]] = set()
        self._fixed: dict[tuple[Id, int], float] = {}

        self._senses: dict[Id, Sense] = {}
        self._coeffs: dict[Id, list[dict[tuple[Id, int], float]]] = {}
        self._rhs: dict[Id, list[dict[Id, float]]] = {}

        self._lp: pulp.LpProblem | None = None
        self._lp_cons: dict[tuple[Id, int], pulp.LpConstraint] = {}
        self._status = "Not Solved"

    # Structure

    def add_var(self, var_id: Id, n: int) -> None:
        if var_id in self._vars:
            raise ValueError(f"Variable {var_id} already exists")
        serial = len(self._vars)
        self._vars[var_id] = [pulp.LpVariable(_lp_name("x", var_id, t, serial)) for t in range(n)]

    def add_eq(self, con_id: Id, n: int) -> None:
        self._add_con(con_id, n, "==")

    def add_le(self, con_id: Id, n: int) -> None:
        self._add_con(con_id, n, "<=")

    def add_ge(self, con_id: Id, n: int) -> None:
        self._add_con(con_id, n, ">=")

    def _add_con(self, con_id: Id, n: int, sense: Sense) -> None:
        if con_id in self._senses:
            raise ValueError(f"Constraint {con_id} already exists")
        self._senses[con_id] = sense
        self._coeffs[con_id] = [{} for _ in range(n)]
        self._rhs[con_id] = [{} for _ in range(n)]

    # Coefficients, bounds and objective

    def set_con_coeff(self, con_id: Id, var_id: Id, con_t: int, var_t: int, value: float) -> None:
        self._check_var(var_id, var_t)
        self._row(con_id, con_t)[(var_id, var_t)] = value

    def get_con_coeff(self, con_id: Id, var_id: Id, con_t: int, var_t: int) -> float:
        return self._row(con_id, con_t).get((var_id, var_t), 0.0)

    def set_ub(self, var_id: Id, t: int, value: float) -> None:
        self._check_var(var_id, t)
        self._ub[(var_id, t)] = value

    def get_ub(self, var_id: Id, t: int) -> float | None:
        self._check_var(var_id, t)
        return self._ub.get((var_id, t))

    def set_lb(self, var_id: Id, t: int, value: float) -> None:
        self._check_var(var_id, t)
        self._lb[(var_id, t)] = value

    def get_lb(self, var_id: Id, t: int) -> float | None:
        self._check_var(var_id, t)
        return self._lb.get((var_id, t))

    def set_obj_coeff(self, var_id: Id, t: int, value: float) -> None:
        self._check_var(var_id, t)
        self._obj[(var_id, t)] = value

    def get_obj_coeff(self, var_id: Id, t: int) -> float:
        self._check_var(var_id, t)
        return self._obj.get((var_id, t), 0.0)

    def set_rhs_term(self, con_id: Id, term_id: Id, t: int, value: float) -> None:
        self._rhs_row(con_id, t)[term_id] = value

    def get_rhs_term(self, con_id: Id, term_id: Id, t: int) -> float:
        row = self._rhs_row(con_id, t)
        if term_id not in row:
            raise KeyError(f"No right-hand side term {term_id} in {con_id} at {t}")
        return row[term_id]

    def has_rhs_term(self, con_id: Id, term_id: Id, t: int) -> bool:
        return term_id in self._rhs_row(con_id, t)

    def get_rhs(self, con_id: Id, t: int) -> float:
        return sum(self._rhs_row(con_id, t).values())

    # State variables

    def make_fixable(self, var_id: Id, t: int) -> None:
        self._check_var(var_id, t)
        self._fixable.add((var_id, t))

    def fix(self, var_id: Id, t: int, value: float) -> None:
        if (var_id, t) not in self._fixable:
            raise ValueError(f"Variable {var_id} at {t} is not fixable")
        self._fixed[(var_id, t)] = value

    def unfix(self, var_id: Id, t: int) -> None:
        if (var_id, t) not in self._fixable:
            raise ValueError(f"Variable {var_id} at {t} is not fixable")
        self._fixed.pop((var_id, t), None)

    def is_fixed(self, var_id: Id, t: int) -> bool:
        return (var_id, t) in self._fixed

    def get_fix_var_dual(self, var_id: Id, t: int) -> float:
        if (var_id, t) not in self._fixed:
            raise ValueError(f"Variable {var_id} at {t} is not fixed")
        dj = self._vars[var_id][t].dj
        return float(dj) if dj is not None else 0.0

    # Solving

    def solve(self) -> str:
        assemble_start = time.perf_counter()
        lp = pulp.LpProblem(self._name, pulp.LpMinimize)
        lp += pulp.lpSum(value * self._vars[var_id][t] for (var_id, t), value in self._obj.items())

        self._apply_bounds()
        self._lp_cons = {}
        for con_id, rows in self._coeffs.items():
            sense = self._senses[con_id]
            for t, row in enumerate(rows):
                rhs = sum(self._rhs[con_id][t].values())
                if not row and rhs == 0:
                    continue
                expr = pulp.lpSum(value * self._vars[var_id][s] for (var_id, s), value in row.items())
                if sense == "==":
                    constraint = expr == rhs
                elif sense == "<=":
                    constraint = expr <= rhs
                else:
                    constraint = expr >= rhs
                name = _lp_name("c", con_id, t, len(self._lp_cons))
                lp += constraint, name
                self._lp_cons[(con_id, t)] = lp.constraints[name]

        assemble_seconds = time.perf_counter() - assemble_start
        solver = pulp.PULP_CBC_CMD(
            msg=self._msg,
            timeLimit=self._time_limit_seconds,
            warmStart=self._warmstart,
        )
        solve_start = time.perf_counter()
        status = lp.solve(solver)
        solve_seconds = time.perf_counter() - solve_start

        self._lp = lp
        self._status = pulp.LpStatus.get(status, "Unknown")
        logger.info(
            "Solved %s: status=%s vars=%s cons=%s assemble=%.3fs solve=%.3fs",
            self._name,
            self._status,
            sum(len(block) for block in self._vars.values()),
            len(self._lp_cons),
            assemble_seconds,
            solve_seconds,
        )
        if self._status != "Optimal":
            logger.warning("Problem %s finished with status %s", self._name, self._status)
        return self._status

    def _apply_bounds(self) -> None:
        for var_id, block in self._vars.items():
            for t, var in enumerate(block):
                key = (var_id, t)
                if key in self._fixed:
                    var.lowBound = self._fixed[key]
                    var.upBound = self._fixed[key]
                else:
                    var.lowBound = self._lb.get(key)
                    var.upBound = self._ub.get(key)
                if self._warmstart and var.varValue is not None:
                    var.setInitialValue(var.varValue)

    @property
    def status(self) -> str:
        return self._status

    def get_objective_value(self) -> float:
        lp = self._solved()
        value = pulp.value(lp.objective)
        return float(value) if value is not None else 0.0

    def get_var_value(self, var_id: Id, t: int) -> float:
        self._solved()
        self._check_var(var_id, t)
        value = self._vars[var_id][t].varValue
        return float(value) if value is not None else 0.0

    def get_con_dual(self, con_id: Id, t: int) -> float:
        self._solved()
        self._row(con_id, t)
        constraint = self._lp_cons.get((con_id, t))
        if constraint is None or constraint.pi is None:
            return 0.0
        return float(constraint.pi)

    def get_warmstart(self) -> bool:
        return self._warmstart

    def set_warmstart(self, enabled: bool) -> None:
        self._warmstart = enabled

    def set_silent(self) -> None:
        self._msg = False

    def unset_silent(self) -> None:
        self._msg = True

    # Introspection

    def has_var(self, var_id: Id) -> bool:
        return var_id in self._vars

    def has_con(self, con_id: Id) -> bool:
        return con_id in self._senses

    def num_periods(self, object_id: Id) -> int:
        if object_id in self._vars:
            return len(self._vars[object_id])
        if object_id in self._coeffs:
            return len(self._coeffs[object_id])
        raise KeyError(f"Unknown variable or constraint {object_id}")

    def _solved(self) -> pulp.LpProblem:
        if self._lp is None:
            raise ValueError("Problem has not been solved")
        return self._lp

    def _check_var(self, var_id: Id, t: int) -> None:
        block = self._vars.get(var_id)
        if block is None:
            raise KeyError(f"Unknown variable {var_id}")
        if not 0 <= t < len(block):
            raise IndexError(f"Period {t} outside variable {var_id} with {len(block)} periods")

    def _row(self, con_id: Id, t: int) -> dict[tuple[Id, int], float]:
        rows = self._coeffs.get(con_id)
        if rows is None:
            raise KeyError(f"Unknown constraint {con_id}")
        if not 0 <= t < len(rows):
            raise IndexError(f"Period {t} outside constraint {con_id} with {len(rows)} periods")
        return rows[t]

    def _rhs_row(self, con_id: Id, t: int) -> dict[Id, float]:
        self._row(con_id, t)
        return self._rhs[con_id][t]
