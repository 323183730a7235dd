"""Balances: one equation per period, or an exogenous price for a commodity.

A ``BaseBalance`` sums contributions from variables (through arrows) and
right-hand side terms. An ``ExogenBalance`` builds nothing; arrows into it
become objective terms priced by the balance instead.
"""

from __future__ import annotations

import bisect
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, cast

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import BALANCE_CONCEPT, COMMODITY_CONCEPT
from energy_model.dataset.attributes import get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.commodity import BaseCommodity
from energy_model.model.evaluation import period_value, signed
from energy_model.model.metadata import assign_metadata
from energy_model.model.price import Price, resolve_price
from energy_model.model.rhsterm import BaseRHSTerm
from energy_model.time.horizons import Horizon, must_dynamic_update
from energy_model.time.probtime import ConstantTime, ProbTime

if TYPE_CHECKING:
    from energy_model.problem.base import Problem


def _assemble_horizon(balance_id: Id, commodity: BaseCommodity) -> Horizon:
    if commodity.horizon is None:
        raise StructuralError(f"No horizon for {balance_id}")
    return commodity.horizon


@dataclass(slots=True)
class BaseBalance:
    id: Id
    commodity: BaseCommodity
    horizon: Horizon | None = None
    rhs_terms: list[BaseRHSTerm] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_exogen(self) -> bool:
        return False

    def add_rhs_term(self, rhs_term: BaseRHSTerm) -> None:
        bisect.insort(self.rhs_terms, rhs_term, key=lambda term: term.id)

    def set_metadata(self, key: str, value: Any) -> None:
        assign_metadata(self.metadata, self.id, key, value)

    def assemble(self) -> bool:
        if self.horizon is None:
            self.horizon = _assemble_horizon(self.id, self.commodity)
        return True

    def build(self, problem: Problem) -> None:
        problem.add_eq(self.id, self._horizon().num_periods)

    def set_constants(self, problem: Problem) -> None:
        horizon = self._horizon()
        if not horizon.has_constant_durations():
            return
        for rhs_term in self.rhs_terms:
            if must_dynamic_update(rhs_term):
                continue
            for t in horizon.T:
                self._set_term(problem, rhs_term, t, ConstantTime())

    def update(self, problem: Problem, start: ProbTime) -> None:
        horizon = self._horizon()
        for rhs_term in self.rhs_terms:
            if must_dynamic_update(rhs_term) or not horizon.has_constant_durations():
                for t in horizon.T:
                    self._set_term(problem, rhs_term, t, start)

    def _set_term(self, problem: Problem, rhs_term: BaseRHSTerm, t: int, start: ProbTime) -> None:
        value = period_value(rhs_term, self._horizon(), t, start)
        problem.set_rhs_term(self.id, rhs_term.id, t, signed(value, rhs_term.is_ingoing))

    def _horizon(self) -> Horizon:
        if self.horizon is None:
            raise StructuralError(f"{self.id} is not assembled")
        return self.horizon


@dataclass(slots=True)
class ExogenBalance:
    id: Id
    commodity: BaseCommodity
    price: Price
    horizon: Horizon | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_exogen(self) -> bool:
        return True

    def set_metadata(self, key: str, value: Any) -> None:
        assign_metadata(self.metadata, self.id, key, value)

    def assemble(self) -> bool:
        if self.horizon is None:
            self.horizon = _assemble_horizon(self.id, self.commodity)
        return True

    def build(self, problem: Problem) -> None:
        return None

    def set_constants(self, problem: Problem) -> None:
        return None

    def update(self, problem: Problem, start: ProbTime) -> None:
        return None


Balance = BaseBalance | ExogenBalance


def include_base_balance(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    commodity = deps.require(lowlevel, Id(COMMODITY_CONCEPT, get_str(value, COMMODITY_CONCEPT, elkey)))
    if not deps.satisfied:
        return deps.deferred()
    toplevel[elkey.object_id] = BaseBalance(elkey.object_id, commodity)
    return deps.included()


def include_exogen_balance(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    commodity = deps.require(lowlevel, Id(COMMODITY_CONCEPT, get_str(value, COMMODITY_CONCEPT, elkey)))
    price = resolve_price(lowlevel, elkey, value, deps)
    if not deps.satisfied:
        return deps.deferred()
    toplevel[elkey.object_id] = ExogenBalance(elkey.object_id, commodity, cast(Price, price))
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(BALANCE_CONCEPT, "BaseBalance", include_base_balance)
    registry.register(BALANCE_CONCEPT, "ExogenBalance", include_exogen_balance)
