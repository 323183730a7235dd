from __future__ import annotations

import pytest

from energy_model.dataset.keys import DataElement, ElementKey, Id, TypeKey


def test_string_forms() -> None:
    element = DataElement("Flow", "BaseFlow", "Gen", {})

    assert str(element.element_key) == "Flow:BaseFlow:Gen"
    assert str(element.type_key) == "Flow:BaseFlow"
    assert str(element.object_id) == "Flow:Gen"


def test_keys_derive_from_each_other() -> None:
    elkey = ElementKey("Balance", "BaseBalance", "North")

    assert elkey.type_key == TypeKey("Balance", "BaseBalance")
    assert elkey.object_id == Id("Balance", "North")
    assert sorted([Id("Flow", "B"), Id("Balance", "Z"), Id("Flow", "A")]) == [
        Id("Balance", "Z"),
        Id("Flow", "A"),
        Id("Flow", "B"),
    ]


def test_element_attributes_are_read_only() -> None:
    attributes = {"Horizon": "H"}
    element = DataElement("Commodity", "BaseCommodity", "Power", attributes)

    attributes["Horizon"] = "Other"

    assert element.value["Horizon"] == "H"
    assert element.value == {"Horizon": "H"}
    with pytest.raises(TypeError):
        element.value["Horizon"] = "Other"  # type: ignore[index]
