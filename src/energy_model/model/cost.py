"""Objective contributions of flows and storages."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
)
from energy_model.constants import COST_CONCEPT, WHICH_CONCEPT, WHICH_INSTANCE
from energy_model.dataset.attributes import get_is_ingoing, get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.params import ParamLike, resolve_param
from energy_model.model.price import PRICE_TYPES, Price
from energy_model.time.probtime import ProbTime


@dataclass(frozen=True, slots=True)
class CostTerm:
    """A single objective term; outgoing terms count as income."""

    id: Id
    param: ParamLike | Price
    is_ingoing: bool

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return self.param.is_durational()

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def value(self, start: ProbTime, delta: timedelta, ix: int | None = None) -> float:
        if isinstance(self.param, PRICE_TYPES):
            found = self.param.value(start, delta, ix)
        else:
            found = self.param.value(start, delta)
        return found if self.is_ingoing else -found


@dataclass(frozen=True, slots=True)
class SumCost:
    terms: tuple[CostTerm, ...]

    @classmethod
    def of(cls, terms: Sequence[CostTerm]) -> SumCost:
        return cls(tuple(sorted(terms, key=lambda term: term.id)))

    def is_constant(self) -> bool:
        return all(term.is_constant() and not term.is_stateful() for term in self.terms)

    def is_durational(self) -> bool:
        return any(term.is_durational() for term in self.terms)

    def is_stateful(self) -> bool:
        return any(term.is_stateful() for term in self.terms)

    def value(self, start: ProbTime, delta: timedelta, ix: int | None = None) -> float:
        return sum(term.value(start, delta, ix) for term in self.terms)


def include_cost_term(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    deps = Dependencies()
    param = resolve_param(lowlevel, elkey, value, deps)
    target_id = Id(get_str(value, WHICH_CONCEPT, elkey), get_str(value, WHICH_INSTANCE, elkey))
    target = deps.require(toplevel, target_id)
    is_ingoing = get_is_ingoing(value, elkey)
    if not deps.satisfied:
        return deps.deferred()
    param = cast(ParamLike, param)
    if param.is_durational():
        raise StructuralError(f"Cost parameter of {elkey} must not be durational")
    add_cost = getattr(target, "add_cost", None)
    if add_cost is None:
        raise StructuralError(f"{target_id} referenced by {elkey} cannot have costs")
    add_cost(CostTerm(elkey.object_id, param, is_ingoing))
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(COST_CONCEPT, "CostTerm", include_cost_term)
