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
from energy_model.constants import FLOW_CONCEPT
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.arrow import Arrow
from energy_model.model.capacity import Capacity, LowerZeroCapacity
from energy_model.model.cost import CostTerm, SumCost
from energy_model.model.evaluation import constant_value, period_value
from energy_model.model.metadata import assign_metadata
from energy_model.time.horizons import Horizon, finest_horizon
from energy_model.time.probtime import ProbTime

if TYPE_CHECKING:
    from energy_model.problem.base import Problem


@dataclass(slots=True)
class BaseFlow:
    """A variable per period, bounded by capacities and tied to balances by arrows.

    The horizon is the finest horizon among the balances the arrows point at,
    so it is only known after every connected balance is assembled.
    """

    id: Id
    horizon: Horizon | None = None
    ub: Capacity | None = None
    lb: Capacity = field(default_factory=LowerZeroCapacity)
    costs: list[CostTerm] = field(default_factory=list)
    sum_cost: SumCost | None = None
    arrows: list[Arrow] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    has_explicit_lb: bool = False

    def set_ub(self, capacity: Capacity) -> None:
        if self.ub is not None:
            raise StructuralError(f"{self.id} already has an upper bound")
        self.ub = capacity

    def set_lb(self, capacity: Capacity) -> None:
        if self.has_explicit_lb:
            raise StructuralError(f"{self.id} already has a lower bound")
        self.lb = capacity
        self.has_explicit_lb = True

    def add_arrow(self, arrow: Arrow) -> None:
        bisect.insort(self.arrows, arrow, key=lambda item: item.id)

    def add_cost(self, cost: CostTerm) -> None:
        bisect.insort(self.costs, cost, key=lambda item: item.id)

    def set_metadata(self, key: str, value: Any) -> None:
        assign_metadata(self.metadata, self.id, key, value)

    def assemble(self) -> bool:
        if not self.arrows:
            raise StructuralError(f"No arrows for {self.id}")
        horizons = [arrow.horizon for arrow in self.arrows]
        if any(horizon is None for horizon in horizons):
            return False

        costs = list(self.costs)
        for arrow in self.arrows:
            exogen_cost = arrow.exogen_cost()
            if exogen_cost is not None:
                costs.append(exogen_cost)
        self.costs = sorted(costs, key=lambda item: item.id)
        self.horizon = finest_horizon([horizon for horizon in horizons if horizon is not None])
        if self.costs:
            self.sum_cost = SumCost.of(self.costs)
        return True

    def build(self, problem: Problem) -> None:
        problem.add_var(self.id, self._horizon().num_periods)
        self.lb.build(problem, self)
        if self.ub is not None:
            self.ub.build(problem, self)
        for arrow in self.arrows:
            arrow.build(problem, self)

    def set_constants(self, problem: Problem) -> None:
        horizon = self._horizon()
        if self.sum_cost is not None and self.sum_cost.is_constant():
            for t in horizon.T:
                problem.set_obj_coeff(self.id, t, constant_value(self.sum_cost, horizon.get_time_delta(t)))
        self.lb.set_constants(problem, self)
        if self.ub is not None:
            self.ub.set_constants(problem, self)
        for arrow in self.arrows:
            arrow.set_constants(problem, self)

    def update(self, problem: Problem, start: ProbTime) -> None:
        horizon = self._horizon()
        if self.sum_cost is not None and not self.sum_cost.is_constant():
            for t in horizon.T:
                problem.set_obj_coeff(self.id, t, period_value(self.sum_cost, horizon, t, start))
        self.lb.update(problem, self, start)
        if self.ub is not None:
            self.ub.update(problem, self, start)
        for arrow in self.arrows:
            arrow.update(problem, self, start)

    def _horizon(self) -> Horizon:
        if self.horizon is None:
            raise StructuralError(f"{self.id} is not assembled")
        return self.horizon


def include_base_flow(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    toplevel[elkey.object_id] = BaseFlow(elkey.object_id)
    return Dependencies().included()


def register(registry: TypeRegistry) -> None:
    registry.register(FLOW_CONCEPT, "BaseFlow", include_base_flow)
