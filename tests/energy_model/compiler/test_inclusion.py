from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from energy_model.compiler.compile import compile_elements
from energy_model.compiler.errors import (
    MalformedReturnError,
    UnregisteredTypeError,
    UnresolvableDependencyError,
)
from energy_model.compiler.inclusion import include_elements
from energy_model.compiler.registry import Dependencies, InclusionResult, ObjectStore, TypeRegistry
from energy_model.dataset.keys import DataElement, ElementKey, Id


def _include_needing(target: str) -> Any:
    """A handler that stores a marker once ``Test:<target>`` is available."""

    def include(
        toplevel: ObjectStore,
        lowlevel: ObjectStore,
        elkey: ElementKey,
        value: Mapping[str, Any],
    ) -> InclusionResult:
        deps = Dependencies()
        deps.require(lowlevel, Id("Test", target))
        if not deps.satisfied:
            return deps.deferred()
        lowlevel[elkey.object_id] = elkey.instance
        return deps.included()

    return include


def _include_leaf(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    lowlevel[elkey.object_id] = elkey.instance
    return Dependencies().included()


def _make_registry() -> TypeRegistry:
    registry = TypeRegistry()
    registry.register("Test", "Leaf", _include_leaf)
    for target in ("Leaf", "Middle", "Ping", "Pong", "Missing"):
        registry.register("Test", f"Needs{target}", _include_needing(target))
    return registry


def test_chain_resolves_in_reverse_order() -> None:
    elements = [
        DataElement("Test", "NeedsMiddle", "Top"),
        DataElement("Test", "NeedsLeaf", "Middle"),
        DataElement("Test", "Leaf", "Leaf"),
    ]

    state = include_elements(elements, _make_registry())

    assert state.rounds == 3
    assert set(state.lowlevel) == {Id("Test", "Top"), Id("Test", "Middle"), Id("Test", "Leaf")}
    assert state.completed == {element.element_key for element in elements}
    assert state.dependencies[ElementKey("Test", "NeedsMiddle", "Top")] == (Id("Test", "Middle"),)


def test_cycle_terminates_with_circular_root_causes() -> None:
    elements = [
        DataElement("Test", "NeedsPong", "Ping"),
        DataElement("Test", "NeedsPing", "Pong"),
        DataElement("Test", "Leaf", "Leaf"),
    ]

    with pytest.raises(UnresolvableDependencyError) as exc_info:
        include_elements(elements, _make_registry())

    causes = exc_info.value.root_causes
    assert {cause.elkey.instance for cause in causes} == {"Ping", "Pong"}
    assert all(cause.circular for cause in causes)
    assert "circular dependency" in str(exc_info.value)


def test_only_the_first_failure_in_a_chain_is_a_root_cause() -> None:
    elements = [
        DataElement("Test", "NeedsMissing", "First"),
        DataElement("Test", "NeedsFirst", "Second"),
    ]
    registry = _make_registry()
    registry.register("Test", "NeedsFirst", _include_needing("First"))

    with pytest.raises(UnresolvableDependencyError) as exc_info:
        include_elements(elements, registry)

    causes = exc_info.value.root_causes
    assert [cause.elkey.instance for cause in causes] == ["First"]
    assert causes[0].missing == (Id("Test", "Missing"),)
    assert len(exc_info.value.failed) == 2


def test_unregistered_type_is_fatal() -> None:
    with pytest.raises(UnregisteredTypeError, match="Test:Unknown"):
        include_elements([DataElement("Test", "Unknown", "X")], _make_registry())


def test_legacy_tuple_results_are_accepted() -> None:
    registry = TypeRegistry()

    @registry.handler("Test", "Legacy")
    def include_legacy(
        toplevel: ObjectStore,
        lowlevel: ObjectStore,
        elkey: ElementKey,
        value: Mapping[str, Any],
    ) -> tuple[bool, list[Id]]:
        lowlevel[elkey.object_id] = 1
        return True, []

    objects = compile_elements([DataElement("Test", "Legacy", "X")], registry=registry)

    assert objects == {}


def test_malformed_result_is_fatal() -> None:
    registry = TypeRegistry()
    registry.register("Test", "Broken", lambda toplevel, lowlevel, elkey, value: "yes")

    with pytest.raises(MalformedReturnError, match="expected an inclusion result"):
        include_elements([DataElement("Test", "Broken", "X")], registry)


def test_deferred_handler_does_not_mutate_stores() -> None:
    elements = [DataElement("Test", "NeedsMissing", "Lonely")]
    registry = _make_registry()

    with pytest.raises(UnresolvableDependencyError):
        include_elements(elements, registry)

    toplevel: ObjectStore = {}
    lowlevel: ObjectStore = {}
    result = registry.lookup(elements[0].element_key)(toplevel, lowlevel, elements[0].element_key, {})
    assert not result.ok
    assert toplevel == {}
    assert lowlevel == {}
