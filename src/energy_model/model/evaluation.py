"""Helpers for evaluating time-dependent terms over horizon periods."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from energy_model.model.cost import CostTerm, SumCost
from energy_model.model.price import PRICE_TYPES
from energy_model.time.horizons import Horizon
from energy_model.time.probtime import ConstantTime, ProbTime

HOUR = timedelta(hours=1)

# Terms whose value may be looked up by period index instead of by time.
PERIOD_INDEXED = (*PRICE_TYPES, CostTerm, SumCost)


def constant_value(term: Any, delta: timedelta = HOUR) -> float:
    return term.value(ConstantTime(), delta)


def period_value(term: Any, horizon: Horizon, t: int, start: ProbTime) -> float:
    query_start = horizon.get_start_time(t, start)
    delta = horizon.get_time_delta(t)
    if isinstance(term, PERIOD_INDEXED):
        return term.value(query_start, delta, t)
    return term.value(query_start, delta)


def signed(value: float, negate: bool) -> float:
    return -value if negate else value
