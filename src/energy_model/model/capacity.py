"""Capacities bound a variable from above or below in every period."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, cast

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
)
from energy_model.constants import CAPACITY_CONCEPT, WHICH_CONCEPT, WHICH_INSTANCE
from energy_model.dataset.attributes import get_is_upper, get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.evaluation import constant_value, period_value
from energy_model.model.params import ParamLike, resolve_param
from energy_model.time.horizons import Horizon, must_dynamic_update
from energy_model.time.probtime import ProbTime

if TYPE_CHECKING:
    from energy_model.problem.base import Problem


class BoundedVariable(Protocol):
    @property
    def id(self) -> Id: ...

    @property
    def horizon(self) -> Horizon | None: ...


def _horizon(owner: BoundedVariable) -> Horizon:
    horizon = owner.horizon
    if horizon is None:
        raise StructuralError(f"{owner.id} has no horizon")
    return horizon


@dataclass(frozen=True, slots=True)
class PositiveCapacity:
    id: Id
    param: ParamLike
    is_upper: bool

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return self.param.is_durational()

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def build(self, problem: Problem, owner: BoundedVariable) -> None:
        return None

    def set_constants(self, problem: Problem, owner: BoundedVariable) -> None:
        horizon = _horizon(owner)
        if must_dynamic_update(self, horizon):
            return
        if self.is_durational():
            for t in horizon.T:
                self._set(problem, owner.id, t, constant_value(self.param, horizon.get_time_delta(t)))
        else:
            value = constant_value(self.param)
            for t in horizon.T:
                self._set(problem, owner.id, t, value)

    def update(self, problem: Problem, owner: BoundedVariable, start: ProbTime) -> None:
        horizon = _horizon(owner)
        if not must_dynamic_update(self, horizon):
            return
        for t in horizon.T:
            self._set(problem, owner.id, t, period_value(self.param, horizon, t, start))

    def _set(self, problem: Problem, var_id: Id, t: int, value: float) -> None:
        if self.is_upper:
            problem.set_ub(var_id, t, value)
        else:
            problem.set_lb(var_id, t, value)


@dataclass(frozen=True, slots=True)
class LowerZeroCapacity:
    """Non-negativity; the default lower bound of flows and storages."""

    is_upper = False

    def is_constant(self) -> bool:
        return True

    def is_durational(self) -> bool:
        return False

    def is_stateful(self) -> bool:
        return False

    def build(self, problem: Problem, owner: BoundedVariable) -> None:
        return None

    def set_constants(self, problem: Problem, owner: BoundedVariable) -> None:
        for t in _horizon(owner).T:
            problem.set_lb(owner.id, t, 0.0)

    def update(self, problem: Problem, owner: BoundedVariable, start: ProbTime) -> None:
        return None


Capacity = PositiveCapacity | LowerZeroCapacity


def _attach(target: Any, target_id: Id, elkey: ElementKey, capacity: Capacity) -> None:
    setter = getattr(target, "set_ub" if capacity.is_upper else "set_lb", None)
    if setter is None:
        raise StructuralError(f"{target_id} referenced by {elkey} cannot have a capacity")
    setter(capacity)


def include_positive_capacity(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    deps = Dependencies()
    param = resolve_param(lowlevel, elkey, value, deps)
    target_id = Id(get_str(value, WHICH_CONCEPT, elkey), get_str(value, WHICH_INSTANCE, elkey))
    target = deps.require(toplevel, target_id)
    is_upper = get_is_upper(value, elkey)
    if not deps.satisfied:
        return deps.deferred()
    _attach(target, target_id, elkey, PositiveCapacity(elkey.object_id, cast(ParamLike, param), is_upper))
    return deps.included()


def include_lower_zero_capacity(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    deps = Dependencies()
    target_id = Id(get_str(value, WHICH_CONCEPT, elkey), get_str(value, WHICH_INSTANCE, elkey))
    target = deps.require(toplevel, target_id)
    if not deps.satisfied:
        return deps.deferred()
    _attach(target, target_id, elkey, LowerZeroCapacity())
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(CAPACITY_CONCEPT, "PositiveCapacity", include_positive_capacity)
    registry.register(CAPACITY_CONCEPT, "LowerZeroCapacity", include_lower_zero_capacity)
