from __future__ import annotations

import bisect
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import BALANCE_CONCEPT, STORAGE_CONCEPT
from energy_model.dataset.attributes import get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.balance import BaseBalance
from energy_model.model.capacity import Capacity, LowerZeroCapacity
from energy_model.model.cost import CostTerm, SumCost
from energy_model.model.evaluation import constant_value, period_value
from energy_model.model.loss import SimpleLoss
from energy_model.model.metadata import assign_metadata
from energy_model.time.horizons import Horizon
from energy_model.time.probtime import ProbTime

if TYPE_CHECKING:
    from energy_model.problem.base import Problem

# (variable id, period) pairs: the state entering the horizon and the state leaving it.
StateVariable = tuple[tuple[Id, int], tuple[Id, int]]


@dataclass(slots=True)
class BaseStorage:
    """Stored quantity at the end of each period of its balance.

    Contributes ``-x[t] + (1 - loss) * x[t-1]`` to the balance, with the
    state before the first period held by a separate fixable start variable.
    """

    id: Id
    balance: BaseBalance
    lb: Capacity = field(default_factory=LowerZeroCapacity)
    ub: Capacity | None = None
    loss: SimpleLoss | None = None
    costs: list[CostTerm] = field(default_factory=list)
    sum_cost: SumCost | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    has_explicit_lb: bool = False
    assembled: bool = False

    @property
    def horizon(self) -> Horizon | None:
        return self.balance.horizon

    @property
    def start_var_id(self) -> Id:
        return Id(self.id.concept, f"Start{self.id.instance}")

    def state_variables(self) -> list[StateVariable]:
        last = self._horizon().num_periods - 1
        return [((self.start_var_id, 0), (self.id, last))]

    def set_ub(self, capacity: Capacity) -> None:
        if self.ub is not None:
            raise StructuralError(f"{self.id} already has an upper bound")
        self.ub = capacity

    def set_lb(self, capacity: Capacity) -> None:
        if self.has_explicit_lb:
            raise StructuralError(f"{self.id} already has a lower bound")
        self.lb = capacity
        self.has_explicit_lb = True

    def set_loss(self, loss: SimpleLoss) -> None:
        if self.loss is not None:
            raise StructuralError(f"{self.id} already has a loss")
        self.loss = loss

    def add_cost(self, cost: CostTerm) -> None:
        bisect.insort(self.costs, cost, key=lambda item: item.id)

    def set_metadata(self, key: str, value: Any) -> None:
        assign_metadata(self.metadata, self.id, key, value)

    def assemble(self) -> bool:
        if self.ub is None:
            raise StructuralError(f"No upper bound for {self.id}")
        horizon = self.balance.horizon
        if horizon is None:
            return False
        if horizon.num_periods < 2:
            raise StructuralError(f"Storage balance must have at least 2 periods in horizon for {self.id}")
        if self.costs:
            self.sum_cost = SumCost.of(self.costs)
        self.assembled = True
        return True

    def build(self, problem: Problem) -> None:
        n = self._horizon().num_periods
        problem.add_var(self.id, n)
        problem.add_var(self.start_var_id, 1)
        problem.make_fixable(self.start_var_id, 0)
        problem.make_fixable(self.id, n - 1)

    def set_constants(self, problem: Problem) -> None:
        horizon = self._horizon()
        balance_id = self.balance.id
        for t in horizon.T:
            problem.set_con_coeff(balance_id, self.id, t, t, -1.0)

        if self.loss is None or self.loss.is_constant():
            coeff = 1.0 if self.loss is None else 1.0 - constant_value(self.loss)
            for t in horizon.T[1:]:
                problem.set_con_coeff(balance_id, self.id, t, t - 1, coeff)
            problem.set_con_coeff(balance_id, self.start_var_id, 0, 0, coeff)

        self.lb.set_constants(problem, self)
        if self.ub is not None:
            self.ub.set_constants(problem, self)
        if self.sum_cost is not None and self.sum_cost.is_constant():
            for t in horizon.T:
                problem.set_obj_coeff(self.id, t, constant_value(self.sum_cost, horizon.get_time_delta(t)))

    def update(self, problem: Problem, start: ProbTime) -> None:
        horizon = self._horizon()
        self.lb.update(problem, self, start)
        if self.ub is not None:
            self.ub.update(problem, self, start)
        if self.sum_cost is not None and not self.sum_cost.is_constant():
            for t in horizon.T:
                problem.set_obj_coeff(self.id, t, period_value(self.sum_cost, horizon, t, start))

        if self.loss is not None and not self.loss.is_constant():
            balance_id = self.balance.id
            coeff = 1.0 - period_value(self.loss, horizon, 0, start)
            problem.set_con_coeff(balance_id, self.start_var_id, 0, 0, coeff)
            for t in horizon.T[1:]:
                coeff = 1.0 - period_value(self.loss, horizon, t, start)
                problem.set_con_coeff(balance_id, self.id, t, t - 1, coeff)

    def _horizon(self) -> Horizon:
        if self.balance.horizon is None:
            raise StructuralError(f"{self.id} is not assembled")
        return self.balance.horizon


def include_base_storage(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    balance_id = Id(BALANCE_CONCEPT, get_str(value, BALANCE_CONCEPT, elkey))
    balance = deps.require(toplevel, balance_id)
    if not deps.satisfied:
        return deps.deferred()
    if balance.is_exogen:
        raise StructuralError(f"{elkey} cannot store into exogenous {balance_id}")
    toplevel[elkey.object_id] = BaseStorage(elkey.object_id, balance)
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(STORAGE_CONCEPT, "BaseStorage", include_base_storage)
