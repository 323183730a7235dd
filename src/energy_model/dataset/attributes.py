"""Checked accessors for the untyped attribute maps of data elements."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from energy_model.compiler.errors import AttributeTypeError, MissingAttributeError
from energy_model.constants import (
    BOUND_KEY,
    BOUND_LOWER,
    BOUND_UPPER,
    DIRECTION_IN,
    DIRECTION_KEY,
    DIRECTION_OUT,
)
from energy_model.dataset.keys import ElementKey

_MISSING = object()


def get_attr(value: Mapping[str, Any], key: str, elkey: ElementKey) -> Any:
    if not isinstance(value, Mapping):
        raise AttributeTypeError(elkey, "<value>", "a mapping", value)
    found = value.get(key, _MISSING)
    if found is _MISSING:
        raise MissingAttributeError(elkey, key)
    return found


def get_float(value: Mapping[str, Any], key: str, elkey: ElementKey) -> float:
    found = get_attr(value, key, elkey)
    if isinstance(found, bool) or not isinstance(found, int | float):
        raise AttributeTypeError(elkey, key, "a number", found)
    return float(found)


def get_int(value: Mapping[str, Any], key: str, elkey: ElementKey) -> int:
    found = get_attr(value, key, elkey)
    if isinstance(found, bool) or not isinstance(found, int):
        raise AttributeTypeError(elkey, key, "an integer", found)
    return found


def get_str(value: Mapping[str, Any], key: str, elkey: ElementKey) -> str:
    found = get_attr(value, key, elkey)
    if not isinstance(found, str):
        raise AttributeTypeError(elkey, key, "a string", found)
    return found


def get_bool(value: Mapping[str, Any], key: str, elkey: ElementKey) -> bool:
    found = get_attr(value, key, elkey)
    if not isinstance(found, bool):
        raise AttributeTypeError(elkey, key, "a boolean", found)
    return found


def get_list(value: Mapping[str, Any], key: str, elkey: ElementKey) -> list[Any]:
    found = get_attr(value, key, elkey)
    if isinstance(found, str) or not isinstance(found, Sequence):
        raise AttributeTypeError(elkey, key, "a list", found)
    return list(found)


def get_float_list(value: Mapping[str, Any], key: str, elkey: ElementKey) -> list[float]:
    items = get_list(value, key, elkey)
    for item in items:
        if isinstance(item, bool) or not isinstance(item, int | float):
            raise AttributeTypeError(elkey, key, "a list of numbers", item)
    return [float(item) for item in items]


def get_choice(
    value: Mapping[str, Any],
    key: str,
    choices: Sequence[str],
    elkey: ElementKey,
) -> str:
    found = get_str(value, key, elkey)
    if found not in choices:
        raise AttributeTypeError(elkey, key, f"one of {', '.join(choices)}", found)
    return found


def get_datetime(value: Mapping[str, Any], key: str, elkey: ElementKey) -> datetime:
    return to_datetime(get_attr(value, key, elkey), key, elkey)


def to_datetime(found: Any, key: str, elkey: ElementKey) -> datetime:
    if isinstance(found, datetime):
        return found
    if isinstance(found, str):
        try:
            return datetime.fromisoformat(found)
        except ValueError as exc:
            raise AttributeTypeError(elkey, key, "an ISO-8601 datetime", found) from exc
    raise AttributeTypeError(elkey, key, "a datetime", found)


def get_timedelta(value: Mapping[str, Any], key: str, elkey: ElementKey) -> timedelta:
    return to_timedelta(get_attr(value, key, elkey), key, elkey)


def to_timedelta(found: Any, key: str, elkey: ElementKey) -> timedelta:
    """Accept a timedelta or a whole number of milliseconds."""
    if isinstance(found, timedelta):
        return found
    if isinstance(found, int) and not isinstance(found, bool):
        return timedelta(milliseconds=found)
    raise AttributeTypeError(elkey, key, "a duration in milliseconds", found)


def has_attr(value: Mapping[str, Any], key: str) -> bool:
    return isinstance(value, Mapping) and key in value


def get_is_ingoing(value: Mapping[str, Any], elkey: ElementKey) -> bool:
    """``Direction`` is ``In`` or ``Out``; ``In`` means towards the balance or objective."""
    return get_choice(value, DIRECTION_KEY, (DIRECTION_IN, DIRECTION_OUT), elkey) == DIRECTION_IN


def get_is_upper(value: Mapping[str, Any], elkey: ElementKey) -> bool:
    return get_choice(value, BOUND_KEY, (BOUND_UPPER, BOUND_LOWER), elkey) == BOUND_UPPER
