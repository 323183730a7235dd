"""Parameters: time-dependent scalar terms used as coefficients, bounds and costs.

Every parameter answers ``is_constant``, ``is_durational``, ``is_stateful``,
``is_zero``, ``is_one`` and ``value(start, delta)``. Durational parameters
scale with the length of the queried period.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol, cast

from energy_model.compiler.errors import AttributeTypeError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import PARAM_CONCEPT, TIMEVECTOR_CONCEPT
from energy_model.dataset.attributes import get_attr, get_float
from energy_model.dataset.keys import ElementKey, Id
from energy_model.time.probtime import ProbTime
from energy_model.time.timevectors import (
    ConstantTimeVector,
    InfiniteTimeVector,
    RotatingTimeVector,
    TimeVector,
)


class ParamLike(Protocol):
    def is_constant(self) -> bool: ...

    def is_durational(self) -> bool: ...

    def is_stateful(self) -> bool: ...

    def is_zero(self) -> bool: ...

    def is_one(self) -> bool: ...

    def value(self, start: ProbTime, delta: timedelta) -> float: ...


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600.0


class _Leaf:
    __slots__ = ()

    def is_constant(self) -> bool:
        return True

    def is_durational(self) -> bool:
        return False

    def is_stateful(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class ZeroParam(_Leaf):
    def is_zero(self) -> bool:
        return True

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return 0.0


@dataclass(frozen=True, slots=True)
class PlusOneParam(_Leaf):
    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return True

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return 1.0


@dataclass(frozen=True, slots=True)
class MinusOneParam(_Leaf):
    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return -1.0


@dataclass(frozen=True, slots=True)
class ConstantParam(_Leaf):
    constant: float

    def is_zero(self) -> bool:
        return self.constant == 0

    def is_one(self) -> bool:
        return self.constant == 1

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.constant


@dataclass(frozen=True, slots=True)
class TwoProductParam:
    param1: ParamLike
    param2: ParamLike

    def is_constant(self) -> bool:
        return self.param1.is_constant() and self.param2.is_constant()

    def is_durational(self) -> bool:
        return self.param1.is_durational() or self.param2.is_durational()

    def is_stateful(self) -> bool:
        return self.param1.is_stateful() or self.param2.is_stateful()

    def is_zero(self) -> bool:
        return self.param1.is_zero() and self.param2.is_zero()

    def is_one(self) -> bool:
        return self.param1.is_one() and self.param2.is_one()

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param1.value(start, delta) * self.param2.value(start, delta)


@dataclass(frozen=True, slots=True)
class HourProductParam:
    """Multiplies a per-hour value by the length of the period in hours."""

    param: ParamLike

    def is_constant(self) -> bool:
        return False

    def is_durational(self) -> bool:
        return True

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta) * _hours(delta)


@dataclass(frozen=True, slots=True)
class FlipSignParam:
    param: ParamLike

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return self.param.is_durational()

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def is_zero(self) -> bool:
        return self.param.is_zero()

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return -self.param.value(start, delta)


@dataclass(frozen=True, slots=True)
class StatefulParam:
    """Marks a parameter whose value depends on solver state between steps."""

    param: ParamLike

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return self.param.is_durational()

    def is_stateful(self) -> bool:
        return True

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta)


@dataclass(frozen=True, slots=True)
class _SeriesParam:
    level: TimeVector
    profile: TimeVector

    def is_constant(self) -> bool:
        return self.level.is_constant() and self.profile.is_constant()

    def is_stateful(self) -> bool:
        return False

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def _mean(self, start: ProbTime, delta: timedelta) -> float:
        level = self.level.weighted_average(start.datatime, delta)
        profile = self.profile.weighted_average(start.scenariotime, delta)
        return level * profile


@dataclass(frozen=True, slots=True)
class MeanSeriesParam(_SeriesParam):
    """Level read at data time scaled by a profile read at scenario time."""

    def is_durational(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self._mean(start, delta)


@dataclass(frozen=True, slots=True)
class MWToGWhSeriesParam(_SeriesParam):
    def is_durational(self) -> bool:
        return True

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self._mean(start, delta) * _hours(delta) / 1e3


@dataclass(frozen=True, slots=True)
class M3SToMM3SeriesParam(_SeriesParam):
    def is_durational(self) -> bool:
        return True

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self._mean(start, delta) * delta.total_seconds() / 1e6


@dataclass(frozen=True, slots=True)
class _UnitParam:
    param: ParamLike

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return True

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class MWToGWhParam(_UnitParam):
    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta) * _hours(delta) / 1e3


@dataclass(frozen=True, slots=True)
class M3SToMM3Param(_UnitParam):
    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta) * delta.total_seconds() / 1e6


@dataclass(frozen=True, slots=True)
class CostPerMWToGWhParam(_UnitParam):
    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta) / _hours(delta) * 1e3


@dataclass(frozen=True, slots=True)
class InConversionLossParam:
    """Conversion reduced by the loss on the way in: ``conversion * (1 - loss)``."""

    conversion: ParamLike
    loss: ParamLike

    def is_constant(self) -> bool:
        return self.conversion.is_constant() and self.loss.is_constant()

    def is_durational(self) -> bool:
        return self.conversion.is_durational() or self.loss.is_durational()

    def is_stateful(self) -> bool:
        return False

    def is_zero(self) -> bool:
        return self.conversion.is_zero()

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.conversion.value(start, delta) * (1 - self.loss.value(start, delta))


@dataclass(frozen=True, slots=True)
class OutConversionLossParam(InConversionLossParam):
    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.conversion.value(start, delta) / (1 - self.loss.value(start, delta))


@dataclass(frozen=True, slots=True)
class ExogenCostParam:
    """Price paid for each unit delivered from an exogenous balance."""

    price: ParamLike
    conversion: ParamLike
    loss: ParamLike

    def is_constant(self) -> bool:
        return self.price.is_constant() and self.conversion.is_constant() and self.loss.is_constant()

    def is_durational(self) -> bool:
        return (
            self.price.is_durational()
            or self.conversion.is_durational()
            or self.loss.is_durational()
        )

    def is_stateful(self) -> bool:
        return False

    def is_zero(self) -> bool:
        return self.price.is_zero() and self.conversion.is_zero()

    def is_one(self) -> bool:
        return False

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return (
            self.price.value(start, delta)
            * self.conversion.value(start, delta)
            / (1 - self.loss.value(start, delta))
        )


@dataclass(frozen=True, slots=True)
class ExogenIncomeParam(ExogenCostParam):
    def value(self, start: ProbTime, delta: timedelta) -> float:
        return (
            self.price.value(start, delta)
            * self.conversion.value(start, delta)
            * (1 - self.loss.value(start, delta))
        )


PARAM_TYPES = (
    ZeroParam,
    PlusOneParam,
    MinusOneParam,
    ConstantParam,
    TwoProductParam,
    HourProductParam,
    FlipSignParam,
    StatefulParam,
    MeanSeriesParam,
    MWToGWhSeriesParam,
    M3SToMM3SeriesParam,
    MWToGWhParam,
    M3SToMM3Param,
    CostPerMWToGWhParam,
    InConversionLossParam,
    ExogenCostParam,
)
TIMEVECTOR_TYPES = (ConstantTimeVector, InfiniteTimeVector, RotatingTimeVector)


def as_param(
    raw: Any,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    key: str,
    deps: Dependencies,
) -> ParamLike | None:
    """Resolve a number, a Param reference or a Param object; ``None`` when not yet available."""
    if isinstance(raw, bool):
        raise AttributeTypeError(elkey, key, "a number, a Param name or a Param", raw)
    if isinstance(raw, int | float):
        return ConstantParam(float(raw))
    if isinstance(raw, str):
        found: ParamLike | None = deps.require(lowlevel, Id(PARAM_CONCEPT, raw))
        return found
    if isinstance(raw, PARAM_TYPES):
        return raw
    raise AttributeTypeError(elkey, key, "a number, a Param name or a Param", raw)


def resolve_param(
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
    deps: Dependencies,
    key: str = PARAM_CONCEPT,
) -> ParamLike | None:
    return as_param(get_attr(value, key, elkey), lowlevel, elkey, key, deps)


def resolve_time_vector(
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
    key: str,
    deps: Dependencies,
) -> TimeVector | None:
    raw = get_attr(value, key, elkey)
    if isinstance(raw, bool):
        raise AttributeTypeError(elkey, key, "a number, a TimeVector name or a TimeVector", raw)
    if isinstance(raw, int | float):
        return ConstantTimeVector(float(raw))
    if isinstance(raw, str):
        found: TimeVector | None = deps.require(lowlevel, Id(TIMEVECTOR_CONCEPT, raw))
        return found
    if isinstance(raw, TIMEVECTOR_TYPES):
        return raw
    raise AttributeTypeError(elkey, key, "a number, a TimeVector name or a TimeVector", raw)


def include_constant_param(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    lowlevel[elkey.object_id] = ConstantParam(get_float(value, "Value", elkey))
    return Dependencies().included()


def _wrapping_handler(wrapper: type) -> Any:
    def include(
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
        lowlevel[elkey.object_id] = wrapper(param)
        return deps.included()

    include.__name__ = f"include_{wrapper.__name__}"
    return include


def _series_handler(series: type) -> Any:
    def include(
        toplevel: ObjectStore,
        lowlevel: ObjectStore,
        elkey: ElementKey,
        value: Mapping[str, Any],
    ) -> InclusionResult:
        ensure_free(toplevel, lowlevel, elkey.object_id)
        deps = Dependencies()
        level = resolve_time_vector(lowlevel, elkey, value, "Level", deps)
        profile = resolve_time_vector(lowlevel, elkey, value, "Profile", deps)
        if not deps.satisfied:
            return deps.deferred()
        lowlevel[elkey.object_id] = series(level, profile)
        return deps.included()

    include.__name__ = f"include_{series.__name__}"
    return include


def include_two_product_param(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    param1 = resolve_param(lowlevel, elkey, value, deps, key="Param1")
    param2 = resolve_param(lowlevel, elkey, value, deps, key="Param2")
    if not deps.satisfied:
        return deps.deferred()
    lowlevel[elkey.object_id] = TwoProductParam(cast(ParamLike, param1), cast(ParamLike, param2))
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(PARAM_CONCEPT, "ConstantParam", include_constant_param)
    registry.register(PARAM_CONCEPT, "TwoProductParam", include_two_product_param)
    for wrapper in (
        HourProductParam,
        FlipSignParam,
        StatefulParam,
        MWToGWhParam,
        M3SToMM3Param,
        CostPerMWToGWhParam,
    ):
        registry.register(PARAM_CONCEPT, wrapper.__name__, _wrapping_handler(wrapper))
    for series in (MeanSeriesParam, MWToGWhSeriesParam, M3SToMM3SeriesParam):
        registry.register(PARAM_CONCEPT, series.__name__, _series_handler(series))
