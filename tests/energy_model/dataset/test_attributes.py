from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from energy_model.compiler.errors import AttributeTypeError, MissingAttributeError
from energy_model.dataset.attributes import (
    get_bool,
    get_choice,
    get_datetime,
    get_float,
    get_float_list,
    get_int,
    get_is_ingoing,
    get_is_upper,
    get_list,
    get_timedelta,
    has_attr,
)
from energy_model.dataset.keys import ElementKey

_ELKEY = ElementKey("Flow", "BaseFlow", "Gen")


def test_numbers_reject_booleans() -> None:
    assert get_float({"Value": 3}, "Value", _ELKEY) == 3.0
    with pytest.raises(AttributeTypeError, match="'Value' must be a number, got bool"):
        get_float({"Value": True}, "Value", _ELKEY)
    with pytest.raises(AttributeTypeError, match="must be an integer"):
        get_int({"Steps": 2.5}, "Steps", _ELKEY)


def test_missing_attribute_names_element_and_key() -> None:
    with pytest.raises(MissingAttributeError, match="Element Flow:BaseFlow:Gen is missing attribute 'Value'"):
        get_float({}, "Value", _ELKEY)


def test_attribute_map_must_be_a_mapping() -> None:
    with pytest.raises(AttributeTypeError, match="must be a mapping"):
        get_float([1.0], "Value", _ELKEY)  # type: ignore[arg-type]
    assert not has_attr([1.0], "Value")  # type: ignore[arg-type]


def test_durations_and_datetimes() -> None:
    assert get_timedelta({"Period": 3_600_000}, "Period", _ELKEY) == timedelta(hours=1)
    assert get_timedelta({"Period": timedelta(minutes=5)}, "Period", _ELKEY) == timedelta(minutes=5)
    assert get_datetime({"Start": "2025-01-01T06:00:00"}, "Start", _ELKEY) == datetime(2025, 1, 1, 6)
    with pytest.raises(AttributeTypeError, match="duration in milliseconds"):
        get_timedelta({"Period": 1.5}, "Period", _ELKEY)
    with pytest.raises(AttributeTypeError, match="ISO-8601"):
        get_datetime({"Start": "yesterday"}, "Start", _ELKEY)


def test_lists() -> None:
    assert get_list({"Vector": (1, 2)}, "Vector", _ELKEY) == [1, 2]
    assert get_float_list({"Vector": [1, 2.5]}, "Vector", _ELKEY) == [1.0, 2.5]
    with pytest.raises(AttributeTypeError, match="must be a list"):
        get_list({"Vector": "1,2"}, "Vector", _ELKEY)
    with pytest.raises(AttributeTypeError, match="list of numbers"):
        get_float_list({"Vector": [1.0, "2"]}, "Vector", _ELKEY)


def test_choices() -> None:
    assert get_choice({"Mode": "Fast"}, "Mode", ("Fast", "Slow"), _ELKEY) == "Fast"
    assert get_is_ingoing({"Direction": "In"}, _ELKEY)
    assert not get_is_ingoing({"Direction": "Out"}, _ELKEY)
    assert not get_is_upper({"Bound": "Lower"}, _ELKEY)
    with pytest.raises(AttributeTypeError, match="one of In, Out"):
        get_is_ingoing({"Direction": "Up"}, _ELKEY)


def test_booleans() -> None:
    assert get_bool({"Enabled": False}, "Enabled", _ELKEY) is False
    with pytest.raises(AttributeTypeError, match="must be a boolean"):
        get_bool({"Enabled": "True"}, "Enabled", _ELKEY)
