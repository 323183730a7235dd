"""Root-cause analysis for elements the inclusion engine could not resolve."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence
from typing import NoReturn

from energy_model.compiler.errors import RootCause, UnresolvableDependencyError
from energy_model.dataset.keys import DataElement, ElementKey, Id

logger = logging.getLogger(__name__)


def producers_by_id(elements: Sequence[DataElement]) -> dict[Id, list[ElementKey]]:
    producers: dict[Id, list[ElementKey]] = {}
    for element in elements:
        producers.setdefault(element.object_id, []).append(element.element_key)
    return producers


def find_root_causes(
    elements: Sequence[DataElement],
    completed: Collection[ElementKey],
    dependencies: Mapping[ElementKey, Sequence[Id]],
    messages: Mapping[ElementKey, Sequence[str]] | None = None,
) -> list[RootCause]:
    """Return the failed elements that do not depend on another failed element.

    Elements caught in a reference cycle that leads to no other root cause are
    reported as circular root causes.
    """
    messages = messages or {}
    producers = producers_by_id(elements)
    failed = [element.element_key for element in elements if element.element_key not in completed]
    failed_set = set(failed)

    failed_deps: dict[ElementKey, list[ElementKey]] = {}
    missing: dict[ElementKey, list[Id]] = {}
    for elkey in failed:
        deps = dependencies.get(elkey, ())
        failed_deps[elkey] = [
            producer
            for object_id in deps
            for producer in producers.get(object_id, [])
            if producer in failed_set and producer != elkey
        ]
        missing[elkey] = [object_id for object_id in deps if object_id not in producers]

    roots = {elkey for elkey in failed if not failed_deps[elkey]}
    circular: set[ElementKey] = set()
    for elkey in failed:
        if elkey in roots:
            continue
        reachable = _reachable(elkey, failed_deps)
        if elkey in reachable and not reachable & roots:
            circular.add(elkey)

    return [
        RootCause(
            elkey=elkey,
            missing=tuple(missing[elkey]),
            messages=tuple(messages.get(elkey, ())),
            circular=elkey in circular,
        )
        for elkey in failed
        if elkey in roots or elkey in circular
    ]


def _reachable(start: ElementKey, edges: Mapping[ElementKey, list[ElementKey]]) -> set[ElementKey]:
    seen: set[ElementKey] = set()
    stack = list(edges.get(start, []))
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        stack.extend(edges.get(current, []))
    return seen


def raise_unresolved(
    elements: Sequence[DataElement],
    completed: Collection[ElementKey],
    dependencies: Mapping[ElementKey, Sequence[Id]],
    messages: Mapping[ElementKey, Sequence[str]],
) -> NoReturn:
    root_causes = find_root_causes(elements, completed, dependencies, messages)
    failed = [element.element_key for element in elements if element.element_key not in completed]
    logger.error(
        "Inclusion stalled with %s of %s elements unresolved (%s root causes)",
        len(failed),
        len(elements),
        len(root_causes),
    )
    raise UnresolvableDependencyError(failed, len(elements), root_causes)
