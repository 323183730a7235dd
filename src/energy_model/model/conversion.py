"""Conversions turn a variable into the commodity of the balance it feeds."""

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
from energy_model.constants import CONVERSION_CONCEPT, PARAM_CONCEPT
from energy_model.dataset.attributes import get_attr
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.params import PARAM_TYPES, ConstantParam, ParamLike, resolve_param
from energy_model.time.probtime import ProbTime


@dataclass(frozen=True, slots=True)
class BaseConversion:
    param: ParamLike

    def __post_init__(self) -> None:
        if self.param.is_durational():
            raise StructuralError(f"Conversion parameter {self.param!r} must not be durational")

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

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta)


def as_conversion(
    raw: Any,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    deps: Dependencies,
    key: str = CONVERSION_CONCEPT,
) -> BaseConversion | None:
    """Resolve a number, a Param, a Conversion or a name of either."""
    if isinstance(raw, bool):
        raise AttributeTypeError(elkey, key, "a number, a name, a Param or a Conversion", raw)
    if isinstance(raw, int | float):
        return BaseConversion(ConstantParam(float(raw)))
    if isinstance(raw, BaseConversion):
        return raw
    if isinstance(raw, PARAM_TYPES):
        return BaseConversion(raw)
    if isinstance(raw, str):
        found = deps.require_any(
            lowlevel,
            (Id(CONVERSION_CONCEPT, raw), Id(PARAM_CONCEPT, raw)),
            f"{elkey} needs {raw!r} as either a Conversion or a Param",
        )
        if found is None or isinstance(found, BaseConversion):
            return found
        return BaseConversion(found)
    raise AttributeTypeError(elkey, key, "a number, a name, a Param or a Conversion", raw)


def resolve_conversion(
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
    deps: Dependencies,
) -> BaseConversion | None:
    return as_conversion(get_attr(value, CONVERSION_CONCEPT, elkey), lowlevel, elkey, deps)


def include_base_conversion(
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
    lowlevel[elkey.object_id] = BaseConversion(cast(ParamLike, param))
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(CONVERSION_CONCEPT, "BaseConversion", include_base_conversion)
