from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any, Literal, overload

from energy_model.compiler.assembly import assemble_objects
from energy_model.compiler.builtin import default_registry
from energy_model.compiler.diagnostics import producers_by_id
from energy_model.compiler.inclusion import include_elements
from energy_model.compiler.registry import ObjectStore, TypeRegistry
from energy_model.dataset.keys import DataElement, ElementKey, Id
from energy_model.dataset.validation import validate_model_objects

logger = logging.getLogger(__name__)


@overload
def compile_elements(
    elements: Sequence[DataElement],
    *,
    registry: TypeRegistry | None = ...,
    validate: bool = ...,
    deps: Literal[False] = ...,
) -> ObjectStore: ...


@overload
def compile_elements(
    elements: Sequence[DataElement],
    *,
    registry: TypeRegistry | None = ...,
    validate: bool = ...,
    deps: Literal[True],
) -> tuple[ObjectStore, dict[int, list[int]]]: ...


def compile_elements(
    elements: Sequence[DataElement],
    *,
    registry: TypeRegistry | None = None,
    validate: bool = True,
    deps: bool = False,
) -> ObjectStore | tuple[ObjectStore, dict[int, list[int]]]:
    """Compile data elements into assembled top-level model objects.

    With ``deps=True`` the compacted dependency index map is returned as well.
    """
    if registry is None:
        registry = default_registry()

    start = time.perf_counter()
    state = include_elements(elements, registry)
    include_seconds = time.perf_counter() - start

    assemble_start = time.perf_counter()
    assembly_rounds = assemble_objects(state.toplevel)
    assemble_seconds = time.perf_counter() - assemble_start

    if validate:
        validate_model_objects(state.toplevel, state.lowlevel, state.dependencies)

    logger.info(
        "Compiled %s elements into %s top-level and %s low-level objects "
        "(inclusion rounds=%s %.3fs, assembly rounds=%s %.3fs)",
        len(elements),
        len(state.toplevel),
        len(state.lowlevel),
        state.rounds,
        include_seconds,
        assembly_rounds,
        assemble_seconds,
    )

    if deps:
        return state.toplevel, compact_dependencies(elements, state.dependencies)
    return state.toplevel


def compact_dependencies(
    elements: Sequence[DataElement],
    dependencies: Mapping[ElementKey, Sequence[Id]],
) -> dict[int, list[int]]:
    """Map each element position to the sorted positions of the elements it depended on."""
    positions = {element.element_key: index for index, element in enumerate(elements)}
    producers = producers_by_id(elements)
    compact: dict[int, list[int]] = {}
    for element in elements:
        elkey = element.element_key
        found: set[int] = set()
        for object_id in dependencies.get(elkey, ()):
            for producer in producers.get(object_id, []):
                if producer != elkey:
                    found.add(positions[producer])
        compact[positions[elkey]] = sorted(found)
    return compact


def count_by_concept(objects: Mapping[Id, Any]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for object_id in sorted(objects):
        counts[object_id.concept] = counts.get(object_id.concept, 0) + 1
    return counts
