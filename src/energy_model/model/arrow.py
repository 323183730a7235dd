"""Arrows connect a variable to a balance.

A ``BaseArrow`` puts the variable into the balance scaled by its conversion
(and loss). A ``SegmentedArrow`` splits the variable into segments, each with
its own capacity and conversion, for piecewise efficiency curves.
"""

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
    ensure_free,
)
from energy_model.constants import (
    ARROW_CONCEPT,
    BALANCE_CONCEPT,
    CAPACITY_CONCEPT,
    CONVERSION_CONCEPT,
    COST_CONCEPT,
    FLOW_CONCEPT,
)
from energy_model.dataset.attributes import get_is_ingoing, get_list, get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.balance import Balance
from energy_model.model.conversion import BaseConversion, as_conversion, resolve_conversion
from energy_model.model.cost import CostTerm
from energy_model.model.evaluation import constant_value, period_value, signed
from energy_model.model.loss import SimpleLoss
from energy_model.model.params import (
    ExogenCostParam,
    ExogenIncomeParam,
    InConversionLossParam,
    OutConversionLossParam,
    ParamLike,
    TwoProductParam,
    as_param,
)
from energy_model.model.price import VectorPrice
from energy_model.time.horizons import Horizon, must_dynamic_update
from energy_model.time.probtime import ProbTime

if TYPE_CHECKING:
    from energy_model.problem.base import Problem


class ArrowOwner(Protocol):
    @property
    def id(self) -> Id: ...

    @property
    def horizon(self) -> Horizon | None: ...


def _owner_horizon(owner: ArrowOwner) -> Horizon:
    if owner.horizon is None:
        raise StructuralError(f"{owner.id} is not assembled")
    return owner.horizon


def _balance_horizon(balance: Balance) -> Horizon:
    if balance.horizon is None:
        raise StructuralError(f"{balance.id} is not assembled")
    return balance.horizon


@dataclass(slots=True)
class BaseArrow:
    id: Id
    balance: Balance
    conversion: BaseConversion
    is_ingoing: bool
    loss: SimpleLoss | None = None

    @property
    def horizon(self) -> Horizon | None:
        return self.balance.horizon

    def set_loss(self, loss: SimpleLoss) -> None:
        if self.loss is not None:
            raise StructuralError(f"{self.id} already has a loss")
        self.loss = loss

    def contribution_param(self) -> ParamLike:
        if self.loss is None:
            return self.conversion
        if self.is_ingoing:
            return InConversionLossParam(self.conversion, self.loss)
        return OutConversionLossParam(self.conversion, self.loss)

    def exogen_cost(self) -> CostTerm | None:
        """Objective term for trading with an exogenous balance, if connected to one."""
        if not self.balance.is_exogen:
            return None
        price = self.balance.price
        param: Any
        if self.loss is None and self.conversion.is_one():
            param = price
        elif isinstance(price, VectorPrice):
            raise StructuralError(f"{self.id} needs conversion 1 and no loss to trade at a VectorPrice")
        elif self.loss is None:
            param = TwoProductParam(price, self.conversion)
        elif self.is_ingoing:
            param = ExogenIncomeParam(price, self.conversion, self.loss)
        else:
            param = ExogenCostParam(price, self.conversion, self.loss)
        cost_id = Id(COST_CONCEPT, f"ExCost_{self.id.instance}")
        return CostTerm(cost_id, param, not self.is_ingoing)

    def build(self, problem: Problem, owner: ArrowOwner) -> None:
        return None

    def set_constants(self, problem: Problem, owner: ArrowOwner) -> None:
        if self.balance.is_exogen:
            return
        param = self.contribution_param()
        if not param.is_constant():
            return
        value = signed(constant_value(param), not self.is_ingoing)
        self._each_cell(owner, lambda s, t: problem.set_con_coeff(self.balance.id, owner.id, s, t, value))

    def update(self, problem: Problem, owner: ArrowOwner, start: ProbTime) -> None:
        if self.balance.is_exogen:
            return
        param = self.contribution_param()
        if param.is_constant():
            return
        horizon = _owner_horizon(owner)

        def write(s: int, t: int) -> None:
            value = signed(period_value(param, horizon, t, start), not self.is_ingoing)
            problem.set_con_coeff(self.balance.id, owner.id, s, t, value)

        self._each_cell(owner, write)

    def _each_cell(self, owner: ArrowOwner, write: Any) -> None:
        balance_horizon = _balance_horizon(self.balance)
        owner_horizon = _owner_horizon(owner)
        for s in balance_horizon.T:
            for t in balance_horizon.get_subperiods(owner_horizon, s):
                write(s, t)


@dataclass(slots=True)
class SegmentedArrow:
    id: Id
    balance: Balance
    conversions: tuple[BaseConversion, ...]
    capacities: tuple[ParamLike, ...]
    is_ingoing: bool

    @property
    def horizon(self) -> Horizon | None:
        return self.balance.horizon

    def segment_id(self, i: int) -> Id:
        return Id(self.id.concept, f"{self.id.instance}{i + 1}")

    @property
    def eq_id(self) -> Id:
        return Id(self.id.concept, f"{self.id.instance}Eq")

    def set_loss(self, loss: SimpleLoss) -> None:
        raise StructuralError(f"{self.id} is segmented and does not support losses")

    def exogen_cost(self) -> CostTerm | None:
        return None

    def _segment_param(self, conversion: BaseConversion) -> Any:
        if not self.balance.is_exogen:
            return conversion
        if conversion.is_one():
            return self.balance.price
        if isinstance(self.balance.price, VectorPrice):
            raise StructuralError(f"{self.id} needs conversion 1 to trade at a VectorPrice")
        return TwoProductParam(self.balance.price, conversion)

    def _negate(self) -> bool:
        # Segments trading with an exogenous balance earn income when ingoing.
        return self.is_ingoing if self.balance.is_exogen else not self.is_ingoing

    def build(self, problem: Problem, owner: ArrowOwner) -> None:
        n = _owner_horizon(owner).num_periods
        problem.add_eq(self.eq_id, n)
        for i in range(len(self.conversions)):
            problem.add_var(self.segment_id(i), n)

    def set_constants(self, problem: Problem, owner: ArrowOwner) -> None:
        horizon = _owner_horizon(owner)
        for t in horizon.T:
            problem.set_con_coeff(self.eq_id, owner.id, t, t, 1.0)

        for i, (conversion, capacity) in enumerate(zip(self.conversions, self.capacities, strict=True)):
            segment = self.segment_id(i)
            for t in horizon.T:
                problem.set_con_coeff(self.eq_id, segment, t, t, -1.0)
                problem.set_lb(segment, t, 0.0)

            if not must_dynamic_update(capacity, horizon):
                if capacity.is_durational():
                    for t in horizon.T:
                        problem.set_ub(segment, t, constant_value(capacity, horizon.get_time_delta(t)))
                else:
                    value = constant_value(capacity)
                    for t in horizon.T:
                        problem.set_ub(segment, t, value)

            param = self._segment_param(conversion)
            if not param.is_constant():
                continue
            value = signed(constant_value(param), self._negate())
            if self.balance.is_exogen:
                for t in horizon.T:
                    problem.set_obj_coeff(segment, t, value)
            else:
                balance_horizon = _balance_horizon(self.balance)
                for s in balance_horizon.T:
                    for t in balance_horizon.get_subperiods(horizon, s):
                        problem.set_con_coeff(self.balance.id, segment, s, t, value)

    def update(self, problem: Problem, owner: ArrowOwner, start: ProbTime) -> None:
        horizon = _owner_horizon(owner)
        for i, (conversion, capacity) in enumerate(zip(self.conversions, self.capacities, strict=True)):
            segment = self.segment_id(i)
            if must_dynamic_update(capacity, horizon):
                for t in horizon.T:
                    problem.set_lb(segment, t, 0.0)
                    problem.set_ub(segment, t, period_value(capacity, horizon, t, start))

            param = self._segment_param(conversion)
            if param.is_constant():
                continue
            if self.balance.is_exogen:
                for t in horizon.T:
                    value = signed(period_value(param, horizon, t, start), self.is_ingoing)
                    problem.set_obj_coeff(segment, t, value)
            else:
                balance_horizon = _balance_horizon(self.balance)
                for s in balance_horizon.T:
                    for t in balance_horizon.get_subperiods(horizon, s):
                        value = signed(period_value(param, horizon, t, start), not self.is_ingoing)
                        problem.set_con_coeff(self.balance.id, segment, s, t, value)


Arrow = BaseArrow | SegmentedArrow


def _attach(flow: Any, flow_id: Id, elkey: ElementKey, arrow: Arrow) -> None:
    add_arrow = getattr(flow, "add_arrow", None)
    if add_arrow is None:
        raise StructuralError(f"{flow_id} referenced by {elkey} cannot have arrows")
    add_arrow(arrow)


def include_base_arrow(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    is_ingoing = get_is_ingoing(value, elkey)
    deps = Dependencies()
    flow_id = Id(FLOW_CONCEPT, get_str(value, FLOW_CONCEPT, elkey))
    flow = deps.require(toplevel, flow_id)
    balance = deps.require(toplevel, Id(BALANCE_CONCEPT, get_str(value, BALANCE_CONCEPT, elkey)))
    conversion = resolve_conversion(lowlevel, elkey, value, deps)
    if not deps.satisfied:
        return deps.deferred()
    arrow = BaseArrow(elkey.object_id, balance, cast(BaseConversion, conversion), is_ingoing)
    _attach(flow, flow_id, elkey, arrow)
    lowlevel[elkey.object_id] = arrow
    return deps.included()


def include_segmented_arrow(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    is_ingoing = get_is_ingoing(value, elkey)
    raw_conversions = get_list(value, CONVERSION_CONCEPT, elkey)
    raw_capacities = get_list(value, CAPACITY_CONCEPT, elkey)
    if not raw_conversions or len(raw_conversions) != len(raw_capacities):
        raise StructuralError(f"{elkey} needs as many capacities as conversions, and at least one")

    deps = Dependencies()
    conversions = [as_conversion(raw, lowlevel, elkey, deps) for raw in raw_conversions]
    capacities = [as_param(raw, lowlevel, elkey, CAPACITY_CONCEPT, deps) for raw in raw_capacities]
    balance = deps.require(toplevel, Id(BALANCE_CONCEPT, get_str(value, BALANCE_CONCEPT, elkey)))
    flow_id = Id(FLOW_CONCEPT, get_str(value, FLOW_CONCEPT, elkey))
    flow = deps.require(toplevel, flow_id)
    if not deps.satisfied:
        return deps.deferred()
    arrow = SegmentedArrow(
        elkey.object_id,
        balance,
        tuple(conversions),
        tuple(capacities),
        is_ingoing,
    )
    _attach(flow, flow_id, elkey, arrow)
    lowlevel[elkey.object_id] = arrow
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(ARROW_CONCEPT, "BaseArrow", include_base_arrow)
    registry.register(ARROW_CONCEPT, "SegmentedArrow", include_segmented_arrow)
