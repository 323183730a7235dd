from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from energy_model.compiler.errors import AttributeTypeError, StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import PARAM_CONCEPT, PRICE_CONCEPT
from energy_model.dataset.attributes import get_attr, get_float_list
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.params import PARAM_TYPES, ConstantParam, ParamLike, resolve_param
from energy_model.time.probtime import ProbTime


@dataclass(frozen=True, slots=True)
class BasePrice:
    param: ParamLike

    def __post_init__(self) -> None:
        if self.param.is_durational():
            raise StructuralError(f"Price parameter {self.param!r} must not be durational")

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return False

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def is_zero(self) -> bool:
        return self.param.is_zero()

    def is_one(self) -> bool:
        return self.param.is_one()

    def value(self, start: ProbTime, delta: timedelta, ix: int | None = None) -> float:
        return self.param.value(start, delta)


@dataclass(frozen=True, slots=True)
class VectorPrice:
    """One price per horizon period, looked up by period index."""

    values: tuple[float, ...]

    def is_constant(self) -> bool:
        return False

    def is_durational(self) -> bool:
        return False

    def is_stateful(self) -> bool:
        return True

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta, ix: int | None = None) -> float:
        if ix is None:
            raise StructuralError("VectorPrice can only be evaluated for a period index")
        if not 0 <= ix < len(self.values):
            raise StructuralError(f"VectorPrice has {len(self.values)} values, period {ix} requested")
        return self.values[ix]


Price = BasePrice | VectorPrice
PRICE_TYPES = (BasePrice, VectorPrice)


def as_price(
    raw: Any,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    deps: Dependencies,
) -> Price | None:
    if isinstance(raw, bool):
        raise AttributeTypeError(elkey, PRICE_CONCEPT, "a number, a name, a Param or a Price", raw)
    if isinstance(raw, int | float):
        return BasePrice(ConstantParam(float(raw)))
    if isinstance(raw, PRICE_TYPES):
        return raw
    if isinstance(raw, PARAM_TYPES):
        return BasePrice(raw)
    if isinstance(raw, str):
        found = deps.require_any(
            lowlevel,
            (Id(PRICE_CONCEPT, raw), Id(PARAM_CONCEPT, raw)),
            f"{elkey} needs {raw!r} as either a Price or a Param",
        )
        if found is None or isinstance(found, PRICE_TYPES):
            return found
        return BasePrice(found)
    raise AttributeTypeError(elkey, PRICE_CONCEPT, "a number, a name, a Param or a Price", raw)


def resolve_price(
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
    deps: Dependencies,
) -> Price | None:
    return as_price(get_attr(value, PRICE_CONCEPT, elkey), lowlevel, elkey, deps)


def include_base_price(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    param = resolve_param(lowlevel, elkey, value, deps)
    if not deps.satisfied:
        return deps.deferred()
    lowlevel[elkey.object_id] = BasePrice(cast(ParamLike, param))
    return deps.included()


def include_vector_price(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    lowlevel[elkey.object_id] = VectorPrice(tuple(get_float_list(value, "values", elkey)))
    return Dependencies().included()


def register(registry: TypeRegistry) -> None:
    registry.register(PRICE_CONCEPT, "BasePrice", include_base_price)
    registry.register(PRICE_CONCEPT, "VectorPrice", include_vector_price)
