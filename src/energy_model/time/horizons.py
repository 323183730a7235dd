from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import HORIZON_CONCEPT
from energy_model.dataset.attributes import (
    get_int,
    get_list,
    get_timedelta,
    has_attr,
    to_timedelta,
)
from energy_model.dataset.keys import ElementKey
from energy_model.time.probtime import ProbTime


class TimeTerm(Protocol):
    def is_constant(self) -> bool: ...

    def is_durational(self) -> bool: ...

    def is_stateful(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class SequentialHorizon:
    """Consecutive periods described as (count, duration) groups."""

    periods: tuple[tuple[int, timedelta], ...]

    def __post_init__(self) -> None:
        if not self.periods:
            raise StructuralError("SequentialHorizon needs at least one period group")
        for count, duration in self.periods:
            if count < 1:
                raise StructuralError(f"Period count must be positive, got {count}")
            if duration <= timedelta(0):
                raise StructuralError(f"Period duration must be positive, got {duration}")

    @classmethod
    def uniform(cls, count: int, duration: timedelta) -> SequentialHorizon:
        return cls(((count, duration),))

    @property
    def num_periods(self) -> int:
        return sum(count for count, _ in self.periods)

    @property
    def T(self) -> range:
        return range(self.num_periods)

    @property
    def duration(self) -> timedelta:
        return sum((duration * count for count, duration in self.periods), timedelta(0))

    def has_constant_durations(self) -> bool:
        return True

    def get_time_delta(self, t: int) -> timedelta:
        self._check_period(t)
        remaining = t
        for count, duration in self.periods:
            if remaining < count:
                return duration
            remaining -= count
        raise AssertionError("unreachable")

    def get_start_duration(self, t: int) -> timedelta:
        self._check_period(t)
        elapsed = timedelta(0)
        remaining = t
        for count, duration in self.periods:
            steps = min(remaining, count)
            elapsed += duration * steps
            remaining -= steps
            if remaining == 0:
                break
        return elapsed

    def get_start_time(self, t: int, start: ProbTime) -> ProbTime:
        return start + self.get_start_duration(t)

    def get_subperiods(self, fine: SequentialHorizon, t: int) -> range:
        """Periods of ``fine`` that cover period ``t`` of this horizon."""
        if fine == self:
            return range(t, t + 1)
        begin = self.get_start_duration(t)
        end = begin + self.get_time_delta(t)
        first: int | None = None
        last: int | None = None
        for s in fine.T:
            s_begin = fine.get_start_duration(s)
            if s_begin == begin:
                first = s
            if s_begin + fine.get_time_delta(s) == end:
                last = s
                break
        if first is None or last is None:
            raise StructuralError(f"Period {t} does not align with the periods of the finer horizon")
        return range(first, last + 1)

    def _check_period(self, t: int) -> None:
        if not 0 <= t < self.num_periods:
            raise IndexError(f"Period {t} outside horizon with {self.num_periods} periods")


Horizon = SequentialHorizon


def must_dynamic_update(term: TimeTerm, horizon: Horizon | None = None) -> bool:
    """True when a term has to be rewritten on every update."""
    if term.is_stateful():
        return True
    if not term.is_constant():
        return True
    if horizon is not None and term.is_durational() and not horizon.has_constant_durations():
        return True
    return False


def finest_horizon(horizons: Sequence[Horizon]) -> Horizon:
    return max(horizons, key=lambda horizon: horizon.num_periods)


def include_sequential_horizon(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    if has_attr(value, "Periods"):
        groups: list[tuple[int, timedelta]] = []
        for group in get_list(value, "Periods", elkey):
            if not isinstance(group, list | tuple) or len(group) != 2:
                raise StructuralError(f"Periods of {elkey} must be [count, milliseconds] pairs")
            count, duration = group
            if isinstance(count, bool) or not isinstance(count, int):
                raise StructuralError(f"Period count of {elkey} must be an integer")
            groups.append((count, to_timedelta(duration, "Periods", elkey)))
        horizon = SequentialHorizon(tuple(groups))
    else:
        count = get_int(value, "NumPeriods", elkey)
        duration = get_timedelta(value, "Period", elkey)
        horizon = SequentialHorizon.uniform(count, duration)
    lowlevel[elkey.object_id] = horizon
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(HORIZON_CONCEPT, "SequentialHorizon", include_sequential_horizon)
