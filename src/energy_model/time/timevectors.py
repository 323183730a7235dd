"""Time series evaluated as weighted averages over query windows.

``InfiniteTimeVector`` is a step function that keeps its first value before the
index starts and its last value after it ends. ``RotatingTimeVector`` repeats
the part of its series that lies inside a scenario period.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, cast

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import (
    TIMEINDEX_CONCEPT,
    TIMEPERIOD_CONCEPT,
    TIMEVALUES_CONCEPT,
    TIMEVECTOR_CONCEPT,
)
from energy_model.dataset.attributes import (
    get_datetime,
    get_float,
    get_float_list,
    get_int,
    get_list,
    get_str,
    get_timedelta,
    to_datetime,
)
from energy_model.dataset.keys import ElementKey, Id

SCENARIO_TIME_PERIOD = "ScenarioTimePeriod"


@dataclass(frozen=True, slots=True)
class TimeIndex:
    points: tuple[datetime, ...]

    def __post_init__(self) -> None:
        if not self.points:
            raise StructuralError("Time index must not be empty")
        if any(b <= a for a, b in zip(self.points, self.points[1:], strict=False)):
            raise StructuralError("Time index must be strictly increasing")

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True, slots=True)
class TimeValues:
    values: tuple[float, ...]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True, slots=True)
class ScenarioTimePeriod:
    start: datetime
    stop: datetime

    @property
    def length(self) -> timedelta:
        return self.stop - self.start


@dataclass(frozen=True, slots=True)
class ConstantTimeVector:
    value: float

    def is_constant(self) -> bool:
        return True

    def weighted_average(self, start: datetime, delta: timedelta) -> float:
        return self.value


@dataclass(frozen=True, slots=True)
class InfiniteTimeVector:
    index: tuple[datetime, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        _check_lengths(self.index, self.values)

    def is_constant(self) -> bool:
        return False

    def weighted_average(self, start: datetime, delta: timedelta) -> float:
        if delta <= timedelta(0):
            return self._value_at(start)
        return _step_integral(self.index, self.values, start, start + delta) / delta.total_seconds()

    def _value_at(self, when: datetime) -> float:
        i = max(bisect_right(self.index, when) - 1, 0)
        return self.values[i]


@dataclass(frozen=True, slots=True)
class RotatingTimeVector:
    index: tuple[datetime, ...]
    values: tuple[float, ...]
    start: datetime
    stop: datetime

    def __post_init__(self) -> None:
        _check_lengths(self.index, self.values)
        if self.stop <= self.start:
            raise StructuralError("Rotating time vector needs start before stop")
        first = bisect_left(self.index, self.start)
        last = bisect_right(self.index, self.stop)
        if first >= last:
            raise StructuralError("Rotating time vector has no data inside its period")
        object.__setattr__(self, "index", self.index[first:last])
        object.__setattr__(self, "values", self.values[first:last])

    def is_constant(self) -> bool:
        return False

    def weighted_average(self, start: datetime, delta: timedelta) -> float:
        period = self.stop - self.start
        cursor = self.start + (start - self.start) % period
        if delta <= timedelta(0):
            return self.values[max(bisect_right(self.index, cursor) - 1, 0)]
        remaining = delta
        total = 0.0
        while remaining > timedelta(0):
            chunk = min(remaining, self.stop - cursor)
            total += _step_integral(self.index, self.values, cursor, cursor + chunk)
            remaining -= chunk
            cursor = self.start
        return total / delta.total_seconds()


TimeVector = ConstantTimeVector | InfiniteTimeVector | RotatingTimeVector


def _check_lengths(index: Sequence[datetime], values: Sequence[float]) -> None:
    if len(index) != len(values):
        raise StructuralError(
            f"Time index has {len(index)} points but {len(values)} values were given"
        )
    if not index:
        raise StructuralError("Time vector must hold at least one value")


def _step_integral(
    index: Sequence[datetime],
    values: Sequence[float],
    begin: datetime,
    end: datetime,
) -> float:
    """Integral in value-seconds of the step function over ``[begin, end)``."""
    total = 0.0
    cursor = begin
    i = max(bisect_right(index, begin) - 1, 0)
    while cursor < end:
        boundary = index[i + 1] if i + 1 < len(index) else end
        segment_end = min(boundary, end)
        total += values[i] * (segment_end - cursor).total_seconds()
        cursor = segment_end
        i += 1
    return total


def include_vector_time_index(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    points = tuple(to_datetime(item, "Vector", elkey) for item in get_list(value, "Vector", elkey))
    lowlevel[elkey.object_id] = TimeIndex(points)
    return Dependencies().included()


def include_range_time_index(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    start = get_datetime(value, "Start", elkey)
    steps = get_int(value, "Steps", elkey)
    delta = get_timedelta(value, "Delta", elkey)
    if steps < 1:
        raise StructuralError(f"{elkey} needs at least one step")
    lowlevel[elkey.object_id] = TimeIndex(tuple(start + delta * i for i in range(steps)))
    return Dependencies().included()


def include_vector_time_values(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    lowlevel[elkey.object_id] = TimeValues(tuple(get_float_list(value, "Vector", elkey)))
    return Dependencies().included()


def include_scenario_time_period(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    period = ScenarioTimePeriod(
        start=get_datetime(value, "Start", elkey),
        stop=get_datetime(value, "Stop", elkey),
    )
    if period.stop <= period.start:
        raise StructuralError(f"{elkey} must have Start before Stop")
    lowlevel[elkey.object_id] = period
    return Dependencies().included()


def include_constant_time_vector(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    lowlevel[elkey.object_id] = ConstantTimeVector(get_float(value, "Value", elkey))
    return Dependencies().included()


def _index_and_values(
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
    deps: Dependencies,
) -> tuple[TimeIndex | None, TimeValues | None]:
    index = deps.require(lowlevel, Id(TIMEINDEX_CONCEPT, get_str(value, TIMEINDEX_CONCEPT, elkey)))
    values = deps.require(
        lowlevel, Id(TIMEVALUES_CONCEPT, get_str(value, TIMEVALUES_CONCEPT, elkey))
    )
    return index, values


def include_infinite_time_vector(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    index, values = _index_and_values(lowlevel, elkey, value, deps)
    if not deps.satisfied:
        return deps.deferred()
    index, values = cast(TimeIndex, index), cast(TimeValues, values)
    lowlevel[elkey.object_id] = InfiniteTimeVector(index.points, values.values)
    return deps.included()


def include_rotating_time_vector(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    index, values = _index_and_values(lowlevel, elkey, value, deps)
    period = deps.require(lowlevel, Id(TIMEPERIOD_CONCEPT, SCENARIO_TIME_PERIOD))
    if not deps.satisfied:
        return deps.deferred()
    index, values = cast(TimeIndex, index), cast(TimeValues, values)
    lowlevel[elkey.object_id] = RotatingTimeVector(
        index.points,
        values.values,
        period.start,
        period.stop,
    )
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(TIMEINDEX_CONCEPT, "VectorTimeIndex", include_vector_time_index)
    registry.register(TIMEINDEX_CONCEPT, "RangeTimeIndex", include_range_time_index)
    registry.register(TIMEVALUES_CONCEPT, "VectorTimeValues", include_vector_time_values)
    registry.register(TIMEPERIOD_CONCEPT, SCENARIO_TIME_PERIOD, include_scenario_time_period)
    registry.register(TIMEVECTOR_CONCEPT, "ConstantTimeVector", include_constant_time_vector)
    registry.register(TIMEVECTOR_CONCEPT, "InfiniteTimeVector", include_infinite_time_vector)
    registry.register(TIMEVECTOR_CONCEPT, "RotatingTimeVector", include_rotating_time_vector)
